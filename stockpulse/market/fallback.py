import random
from datetime import UTC, datetime

import structlog

from stockpulse.market.catalog import base_price
from stockpulse.market.clock import Clock
from stockpulse.market.schemas import Candle, Quote

logger = structlog.get_logger()

_DAY_MS = 24 * 60 * 60 * 1000
_QUOTE_PERTURBATION = 0.04  # +/-2%
_MIN_DAILY_VOLATILITY = 0.02
_DAILY_VOLATILITY_SPREAD = 0.03  # up to 5%


class FallbackGenerator:
    """Synthetic quotes and candles used when the provider cannot answer.

    Everything produced here is tagged ``is_real_time=False``.
    """

    def __init__(self, clock: Clock, rng: random.Random | None = None) -> None:
        self._clock = clock
        self._rng = rng or random.Random()

    def fallback_quote(self, symbol: str) -> Quote:
        symbol = symbol.upper()
        logger.warning("fallback_quote_generated", symbol=symbol)

        base = base_price(symbol)
        change = (self._rng.random() - 0.5) * _QUOTE_PERTURBATION
        price = base * (1 + change)
        return Quote(
            symbol=symbol,
            price=price,
            change=base * change,
            change_percent=change * 100,
            high=price * 1.02,
            low=price * 0.98,
            open=base,
            previous_close=base,
            volume=self._random_volume(),
            timestamp=datetime.fromtimestamp(self._clock.time(), UTC).isoformat(),
            exchange="Unknown",
            is_real_time=False,
        )

    def fallback_series(self, symbol: str, count: int) -> list[Candle]:
        symbol = symbol.upper()
        logger.warning("fallback_series_generated", symbol=symbol, count=count)

        now = self._clock.now_ms()
        previous_close = base_price(symbol)
        candles: list[Candle] = []
        for days_back in range(count - 1, -1, -1):
            volatility = _MIN_DAILY_VOLATILITY + self._rng.random() * _DAILY_VOLATILITY_SPREAD
            open_ = previous_close * (1 + (self._rng.random() - 0.5) * volatility)
            close = open_ * (1 + (self._rng.random() - 0.5) * volatility)
            high = max(open_, close) * (1 + self._rng.random() * volatility * 0.5)
            low = min(open_, close) * (1 - self._rng.random() * volatility * 0.5)
            candles.append(
                Candle(
                    time=now - days_back * _DAY_MS,
                    open=open_,
                    high=high,
                    low=low,
                    close=close,
                    volume=self._random_volume(),
                    is_real_time=False,
                )
            )
            previous_close = close
        return candles

    def _random_volume(self) -> int:
        return self._rng.randint(10_000_000, 109_999_999)
