import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import TypeVar

import structlog

from stockpulse.analytics import indicators as ind
from stockpulse.analytics import prediction
from stockpulse.analytics.schemas import IndicatorSet, PredictionModel, PredictionResult
from stockpulse.exceptions import (
    NotFoundError,
    PredictionPreconditionError,
    QuotaExceededError,
    ValidationError,
)
from stockpulse.market.client import ProviderClient
from stockpulse.market.rate_limiter import RateLimiter
from stockpulse.market.scheduler import RefreshScheduler
from stockpulse.market.schemas import (
    ApiUsage,
    Candle,
    MarketStatus,
    Quote,
    SearchResult,
    SymbolRecord,
)
from stockpulse.market.search_cache import SearchCache
from stockpulse.market.store import SymbolStore

logger = structlog.get_logger()

T = TypeVar("T")

_MIN_QUERY_LENGTH = 2


class MarketService:
    """Entry point for the UI layer: selection, refresh, search and analytics."""

    def __init__(
        self,
        client: ProviderClient,
        limiter: RateLimiter,
        store: SymbolStore,
        cache: SearchCache,
        scheduler_factory: Callable[["MarketService"], RefreshScheduler],
        series_interval: str = "1day",
        series_outputsize: int = 30,
    ) -> None:
        self._client = client
        self._limiter = limiter
        self._store = store
        self._cache = cache
        self._series_interval = series_interval
        self._series_outputsize = series_outputsize
        self._active_symbol: str | None = None
        self._in_flight: dict[Hashable, asyncio.Task] = {}
        self.scheduler = scheduler_factory(self)

    @property
    def active_symbol(self) -> str | None:
        return self._active_symbol

    @property
    def store(self) -> SymbolStore:
        return self._store

    async def select_symbol(self, symbol: str) -> SymbolRecord:
        symbol = self._canonical(symbol)
        self._active_symbol = symbol
        logger.info("market_select_symbol", symbol=symbol)

        quote = await self._fetch_quote(symbol)
        series = await self._fetch_series(symbol, self._series_interval, self._series_outputsize)
        record = self._store.upsert(symbol, quote, series)

        logger.info(
            "market_symbol_loaded",
            symbol=symbol,
            price=round(quote.price, 4),
            data_points=len(series),
            is_real_time_data=record.is_real_time_data,
        )
        return record

    async def refresh_active(self) -> Quote:
        """Re-fetch the active symbol's quote, keeping its series.

        Raises ``QuotaExceededError`` rather than storing synthetic data once
        the daily quota is spent.
        """
        symbol = self._active_symbol
        if symbol is None:
            raise ValidationError("No symbol selected")

        quote = await self._fetch_quote(symbol, fallback_on_quota=False)
        if symbol not in self._store:
            # Selection still loading; it writes quote and series together.
            logger.debug("market_refresh_deferred", symbol=symbol)
            return quote

        self._store.upsert(symbol, quote)
        logger.info("market_quote_refreshed", symbol=symbol, is_real_time=quote.is_real_time)
        return quote

    async def search(self, query: str) -> list[SearchResult]:
        query = query.strip()
        if len(query) < _MIN_QUERY_LENGTH:
            return []

        cached = self._cache.get(query)
        if cached is not None:
            logger.debug("search_cache_hit", query=query)
            return cached

        results, from_provider = await self._client.search(query)
        if from_provider:
            self._cache.put(query, results)
        logger.info("market_search", query=query, results=len(results), from_provider=from_provider)
        return results

    def get_record(self, symbol: str) -> SymbolRecord:
        symbol = self._canonical(symbol)
        record = self._store.get(symbol)
        if record is None:
            raise NotFoundError("Symbol", symbol)
        return record

    def indicators(self, symbol: str) -> IndicatorSet:
        record = self.get_record(symbol)
        prices = [candle.close for candle in record.series]
        if not prices:
            raise ValidationError(f"No price history available for {record.symbol}")

        support, resistance, target = ind.support_resistance(prices, record.quote.price)
        score = ind.sentiment(prices)
        return IndicatorSet(
            symbol=record.symbol,
            rsi=ind.rsi(prices, 14),
            sma20=ind.sma(prices, 20),
            sma50=ind.sma(prices, 50),
            volatility=ind.volatility(prices[-20:]),
            sentiment=score,
            sentiment_label=ind.sentiment_label(score),
            support=support,
            resistance=resistance,
            target=target,
            data_points=len(prices),
        )

    def predict(
        self, symbol: str | None, model: PredictionModel | str, days: int
    ) -> PredictionResult:
        target = symbol.strip().upper() if symbol and symbol.strip() else self._active_symbol
        if target is None:
            raise PredictionPreconditionError("Select a symbol before requesting a prediction")

        record = self._store.get(target)
        if record is None:
            raise PredictionPreconditionError(f"No data loaded for {target} yet")
        if not record.is_real_time_data:
            raise PredictionPreconditionError(
                f"Real-time data required for predictions; {target} is using fallback data"
            )

        prices = [candle.close for candle in record.series]
        result = prediction.predict(
            record.symbol,
            prices,
            model,
            days,
            last_time=record.series[-1].time if record.series else None,
        )
        logger.info(
            "market_prediction",
            symbol=record.symbol,
            model=result.model.value,
            days=days,
            predicted_price=round(result.predicted_price, 4),
            confidence=round(result.confidence, 1),
        )
        return result

    def pause_refresh(self) -> MarketStatus:
        self.scheduler.pause()
        return self.market_status()

    async def resume_refresh(self) -> MarketStatus:
        await self.scheduler.resume()
        return self.market_status()

    def usage(self) -> ApiUsage:
        budget = self._limiter.budget
        return ApiUsage(
            calls_today=budget.calls_today,
            calls_remaining=budget.remaining,
            max_daily_calls=budget.max_daily_calls,
            last_call_at=budget.last_call_at,
            connected=self._client.connected,
            last_error=self._client.last_error,
        )

    def market_status(self) -> MarketStatus:
        return MarketStatus(
            is_market_open=self.scheduler.is_market_open,
            checked_at=self.scheduler.market_checked_at,
            refresh_state=self.scheduler.state.value,
            active_symbol=self._active_symbol,
        )

    def start(self) -> None:
        self.scheduler.start()

    async def close(self) -> None:
        await self.scheduler.stop()
        self._cache.clear()
        await self._client.aclose()

    async def _fetch_quote(self, symbol: str, fallback_on_quota: bool = True) -> Quote:
        # The shared request surfaces quota errors; each caller picks its own policy.
        try:
            return await self._deduplicated(
                ("quote", symbol),
                lambda: self._client.get_quote(symbol, fallback_on_quota=False),
            )
        except QuotaExceededError:
            if not fallback_on_quota:
                raise
            return self._client.fallback_quote(symbol)

    async def _fetch_series(self, symbol: str, interval: str, count: int) -> list[Candle]:
        return await self._deduplicated(
            ("series", symbol, interval, count),
            lambda: self._client.get_series(symbol, interval, count),
        )

    async def _deduplicated(self, key: Hashable, fetch: Callable[[], Awaitable[T]]) -> T:
        """Share one outstanding provider request between overlapping callers."""
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch())
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        else:
            logger.debug("market_request_shared", key=key)
        return await asyncio.shield(task)

    @staticmethod
    def _canonical(symbol: str) -> str:
        symbol = symbol.strip().upper()
        if not symbol:
            raise ValidationError("Symbol must not be empty")
        return symbol
