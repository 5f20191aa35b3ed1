from datetime import UTC, datetime

import httpx
import pydantic
import structlog
from pydantic import BaseModel, Field

from stockpulse.exceptions import ProviderError, ProviderErrorReason
from stockpulse.market.providers.base import MarketDataProvider
from stockpulse.market.rate_limiter import RateLimiter
from stockpulse.market.schemas import Candle, Quote, SearchResult

logger = structlog.get_logger()

_MAX_SEARCH_RESULTS = 10
_STOCK_INSTRUMENT_TYPE = "Common Stock"


class _QuotePayload(BaseModel):
    symbol: str | None = None
    close: float | None = None
    change: float | None = None
    percent_change: float | None = None
    high: float | None = None
    low: float | None = None
    open: float | None = None
    previous_close: float | None = None
    volume: float | None = None
    timestamp: str | None = Field(default=None, alias="datetime")
    exchange: str | None = None
    currency: str | None = None


class _CandlePayload(BaseModel):
    timestamp: str = Field(alias="datetime")
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float
    volume: float | None = None


class _InstrumentPayload(BaseModel):
    symbol: str
    instrument_name: str | None = None
    instrument_type: str | None = None
    exchange: str | None = None
    country: str | None = None


def _parse_time_ms(value: str) -> int:
    """Provider datetimes are ``YYYY-MM-DD`` or ``YYYY-MM-DD HH:MM:SS``, read as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp() * 1000)


def parse_quote(data: dict) -> Quote:
    try:
        payload = _QuotePayload.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ProviderError(
            ProviderErrorReason.invalid_payload, f"Malformed quote payload: {exc}"
        ) from exc

    if not payload.symbol:
        raise ProviderError(ProviderErrorReason.missing_fields, "Quote payload has no symbol")
    if payload.close is None:
        raise ProviderError(
            ProviderErrorReason.missing_fields, f"Quote payload for {payload.symbol} has no close"
        )

    close = payload.close
    try:
        return Quote(
            symbol=payload.symbol.upper(),
            price=close,
            change=payload.change if payload.change is not None else 0.0,
            change_percent=payload.percent_change if payload.percent_change is not None else 0.0,
            high=payload.high if payload.high is not None else close,
            low=payload.low if payload.low is not None else close,
            open=payload.open if payload.open is not None else close,
            previous_close=(
                payload.previous_close if payload.previous_close is not None else close
            ),
            volume=int(payload.volume or 0),
            timestamp=payload.timestamp or datetime.now(UTC).isoformat(),
            exchange=payload.exchange or "Unknown",
            currency=payload.currency or "USD",
            is_real_time=True,
        )
    except pydantic.ValidationError as exc:
        raise ProviderError(
            ProviderErrorReason.invalid_payload, f"Inconsistent quote for {payload.symbol}: {exc}"
        ) from exc


def parse_series(data: dict) -> list[Candle]:
    """Parse ``values`` into candles sorted ascending and deduplicated by time."""
    values = data.get("values")
    if not isinstance(values, list) or not values:
        raise ProviderError(ProviderErrorReason.missing_fields, "No time series data available")

    by_time: dict[int, Candle] = {}
    for item in values:
        try:
            payload = _CandlePayload.model_validate(item)
            time_ms = _parse_time_ms(payload.timestamp)
        except (pydantic.ValidationError, ValueError, TypeError) as exc:
            raise ProviderError(
                ProviderErrorReason.invalid_payload, f"Malformed series entry {item!r}: {exc}"
            ) from exc

        close = payload.close
        by_time[time_ms] = Candle(
            time=time_ms,
            open=payload.open if payload.open is not None else close,
            high=payload.high if payload.high is not None else close,
            low=payload.low if payload.low is not None else close,
            close=close,
            volume=max(0, int(payload.volume or 0)),
            is_real_time=True,
        )

    return [by_time[t] for t in sorted(by_time)]


def parse_search(data: dict) -> list[SearchResult]:
    items = data.get("data")
    if not isinstance(items, list):
        raise ProviderError(ProviderErrorReason.missing_fields, "Search payload has no data list")

    results: list[SearchResult] = []
    for item in items:
        try:
            payload = _InstrumentPayload.model_validate(item)
        except pydantic.ValidationError as exc:
            raise ProviderError(
                ProviderErrorReason.invalid_payload, f"Malformed search entry {item!r}: {exc}"
            ) from exc
        if payload.instrument_type not in (None, _STOCK_INSTRUMENT_TYPE):
            continue
        results.append(
            SearchResult(
                symbol=payload.symbol,
                name=payload.instrument_name or payload.symbol,
                exchange=payload.exchange,
                country=payload.country,
            )
        )
        if len(results) >= _MAX_SEARCH_RESULTS:
            break
    return results


class TwelveDataProvider(MarketDataProvider):
    def __init__(
        self,
        limiter: RateLimiter,
        api_key: str,
        base_url: str = "https://api.twelvedata.com",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._limiter = limiter
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url)

    async def get_quote(self, symbol: str) -> Quote:
        data = await self._request("/quote", {"symbol": symbol.upper()})
        return parse_quote(data)

    async def get_series(self, symbol: str, interval: str, count: int) -> list[Candle]:
        data = await self._request(
            "/time_series",
            {"symbol": symbol.upper(), "interval": interval, "outputsize": str(count)},
        )
        return parse_series(data)

    async def search(self, query: str) -> list[SearchResult]:
        data = await self._request("/symbol_search", {"symbol": query})
        return parse_search(data)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, endpoint: str, params: dict[str, str]) -> dict:
        async with self._limiter.slot():
            logger.info(
                "provider_call",
                endpoint=endpoint,
                calls_today=self._limiter.budget.calls_today,
                **params,
            )
            try:
                response = await self._client.get(
                    endpoint, params={"apikey": self._api_key, **params}
                )
            except httpx.HTTPError as exc:
                raise ProviderError(
                    ProviderErrorReason.transport_error, f"{endpoint} request failed: {exc}"
                ) from exc

        if response.is_error:
            raise ProviderError(
                ProviderErrorReason.http_error,
                f"{endpoint} returned {response.status_code} {response.reason_phrase}",
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                ProviderErrorReason.invalid_payload, f"{endpoint} returned non-JSON body"
            ) from exc

        if not isinstance(data, dict):
            raise ProviderError(
                ProviderErrorReason.invalid_payload, f"{endpoint} returned {type(data).__name__}"
            )
        if data.get("status") == "error":
            raise ProviderError(
                ProviderErrorReason.provider_error,
                data.get("message") or "API returned error status",
            )
        return data
