from collections.abc import Callable
from typing import TypeVar

import structlog

from stockpulse.exceptions import FallbackUnavailableError, ProviderError, QuotaExceededError
from stockpulse.market.catalog import match_popular
from stockpulse.market.fallback import FallbackGenerator
from stockpulse.market.providers.base import MarketDataProvider
from stockpulse.market.schemas import Candle, Quote, SearchResult

logger = structlog.get_logger()

T = TypeVar("T")

_MAX_SEARCH_RESULTS = 10


class ProviderClient:
    """Provider access that always yields usable data.

    ``get_quote`` and ``get_series`` never raise ``ProviderError``: failures
    are replaced by synthetic data. The one opt-out is ``get_quote`` with
    ``fallback_on_quota=False``, which lets quota errors through.
    ``search`` degrades to the popular-symbol list instead of fabricating
    entries.
    """

    def __init__(self, provider: MarketDataProvider, fallback: FallbackGenerator) -> None:
        self._provider = provider
        self._fallback = fallback
        self.connected = True
        self.last_error: str | None = None

    async def get_quote(self, symbol: str, *, fallback_on_quota: bool = True) -> Quote:
        """Fetch a quote, substituting synthetic data on any ``ProviderError``.

        With ``fallback_on_quota=False`` a ``QuotaExceededError`` is re-raised
        so the caller can skip the update instead of storing synthetic data.
        """
        try:
            quote = await self._provider.get_quote(symbol)
        except ProviderError as exc:
            self._record_failure("quote", symbol, exc)
            if isinstance(exc, QuotaExceededError) and not fallback_on_quota:
                raise
            return self.fallback_quote(symbol)
        self._record_success()
        return quote

    def fallback_quote(self, symbol: str) -> Quote:
        return self._run_fallback(symbol, lambda: self._fallback.fallback_quote(symbol))

    async def get_series(self, symbol: str, interval: str, count: int) -> list[Candle]:
        try:
            series = await self._provider.get_series(symbol, interval, count)
        except ProviderError as exc:
            self._record_failure("series", symbol, exc)
            return self._run_fallback(
                symbol, lambda: self._fallback.fallback_series(symbol, count)
            )
        self._record_success()
        return series

    async def search(self, query: str) -> tuple[list[SearchResult], bool]:
        """Return ``(results, from_provider)``."""
        popular = [SearchResult(**stock) for stock in match_popular(query)]
        try:
            found = await self._provider.search(query)
        except ProviderError as exc:
            self._record_failure("search", query, exc)
            logger.info("search_popular_fallback", query=query, results=len(popular))
            return popular, False
        self._record_success()

        merged: list[SearchResult] = []
        seen: set[str] = set()
        for item in [*popular, *found]:
            if item.symbol in seen:
                continue
            seen.add(item.symbol)
            merged.append(item)
        return merged[:_MAX_SEARCH_RESULTS], True

    async def aclose(self) -> None:
        await self._provider.aclose()

    def _run_fallback(self, symbol: str, generate: Callable[[], T]) -> T:
        try:
            return generate()
        except Exception as exc:
            logger.error("fallback_failed", symbol=symbol, error=str(exc))
            raise FallbackUnavailableError(symbol) from exc

    def _record_failure(self, kind: str, subject: str, exc: ProviderError) -> None:
        self.connected = False
        self.last_error = exc.reason.value
        logger.error(
            "provider_error",
            kind=kind,
            subject=subject,
            reason=exc.reason.value,
            error=exc.message,
        )

    def _record_success(self) -> None:
        self.connected = True
        self.last_error = None
