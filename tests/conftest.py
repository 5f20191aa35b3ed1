import asyncio
import random
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from stockpulse.config import Settings
from stockpulse.exceptions import ProviderError, ProviderErrorReason
from stockpulse.market.clock import Clock
from stockpulse.market.providers.base import MarketDataProvider
from stockpulse.market.rate_limiter import RateLimiter
from stockpulse.market.schemas import Candle, Quote, SearchResult
from stockpulse.runtime import build_market_service

DAY_MS = 24 * 60 * 60 * 1000


@dataclass
class _FakeTimer:
    due: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock(Clock):
    """Virtual time: ``sleep`` and ``advance`` move time forward instantly."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._wall = start
        self._mono = 1_000.0
        self._timers: list[_FakeTimer] = []
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self._wall

    def monotonic(self) -> float:
        return self._mono

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._move(seconds)
        await asyncio.sleep(0)

    def call_later(self, delay: float, callback: Callable[[], None]) -> _FakeTimer:
        timer = _FakeTimer(due=self._mono + delay, callback=callback)
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due timers in order."""
        target = self._mono + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self._move(timer.due - self._mono)
            timer.callback()
        self._move(target - self._mono)

    @property
    def pending_timers(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def _move(self, seconds: float) -> None:
        self._wall += seconds
        self._mono += seconds


def make_quote(symbol: str = "AAPL", price: float = 190.0, is_real_time: bool = True) -> Quote:
    return Quote(
        symbol=symbol,
        price=price,
        change=1.5,
        change_percent=0.79,
        high=price + 2,
        low=price - 2,
        open=price - 1,
        previous_close=price - 1.5,
        volume=50_000_000,
        timestamp="2024-01-05T15:59:00+00:00",
        exchange="NASDAQ",
        is_real_time=is_real_time,
    )


def make_series(closes: list[float], start_ms: int = 1_700_000_000_000) -> list[Candle]:
    return [
        Candle(
            time=start_ms + i * DAY_MS,
            open=close,
            high=close + 1,
            low=close - 1,
            close=close,
            volume=1_000_000,
            is_real_time=True,
        )
        for i, close in enumerate(closes)
    ]


@dataclass
class FakeProvider(MarketDataProvider):
    """Scripted provider. Set ``fail`` to make every call raise ``ProviderError``."""

    quotes: dict[str, list[Quote]] = field(default_factory=dict)
    series: dict[str, list[Candle]] = field(default_factory=dict)
    search_results: list[SearchResult] = field(default_factory=list)
    fail: bool = False
    gate: asyncio.Event | None = None
    calls: list[tuple[str, str]] = field(default_factory=list)
    closed: bool = False

    async def get_quote(self, symbol: str) -> Quote:
        await self._enter("quote", symbol)
        queue = self.quotes.get(symbol)
        if not queue:
            raise ProviderError(ProviderErrorReason.missing_fields, f"no quote for {symbol}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def get_series(self, symbol: str, interval: str, count: int) -> list[Candle]:
        await self._enter("series", symbol)
        if symbol not in self.series:
            raise ProviderError(ProviderErrorReason.missing_fields, f"no series for {symbol}")
        return self.series[symbol]

    async def search(self, query: str) -> list[SearchResult]:
        await self._enter("search", query)
        return list(self.search_results)

    async def aclose(self) -> None:
        self.closed = True

    async def _enter(self, kind: str, subject: str) -> None:
        self.calls.append((kind, subject))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise ProviderError(ProviderErrorReason.transport_error, "connection refused")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> Settings:
    return Settings(
        twelve_data_api_key="test-key",
        default_symbol="",
        rate_limit_delay_ms=2000,
        max_daily_calls=800,
    )


@pytest.fixture
def limiter(clock: FakeClock, config: Settings) -> RateLimiter:
    return RateLimiter(
        clock, min_interval_ms=config.rate_limit_delay_ms, max_daily_calls=config.max_daily_calls
    )


@pytest.fixture
def provider() -> FakeProvider:
    closes = [180.0 + i for i in range(30)]
    return FakeProvider(
        quotes={"AAPL": [make_quote("AAPL", 209.5)]},
        series={"AAPL": make_series(closes)},
        search_results=[
            SearchResult(symbol="AAPL", name="Apple Inc", exchange="NASDAQ", country="United States"),
            SearchResult(symbol="APLE", name="Apple Hospitality REIT", exchange="NYSE"),
        ],
    )


@pytest.fixture
def service(clock: FakeClock, config: Settings, provider: FakeProvider, limiter: RateLimiter):
    return build_market_service(
        config, clock=clock, provider=provider, limiter=limiter, rng=random.Random(7)
    )
