import structlog

from stockpulse.market.catalog import company_name, estimated_shares
from stockpulse.market.clock import Clock
from stockpulse.market.schemas import Candle, Quote, SymbolRecord

logger = structlog.get_logger()


def _series_is_real(series: list[Candle]) -> bool:
    return bool(series) and all(candle.is_real_time for candle in series)


class SymbolStore:
    """Symbol -> SymbolRecord, kept for the process lifetime.

    Records are replaced whole on every ``upsert`` and never mutated in place,
    so a reader always sees a consistent quote/series pair (last write wins).
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._records: dict[str, SymbolRecord] = {}

    def upsert(
        self, symbol: str, quote: Quote, series: list[Candle] | None = None
    ) -> SymbolRecord:
        symbol = symbol.upper()
        existing = self._records.get(symbol)
        series_replaced = series is not None
        if series is None:
            series = list(existing.series) if existing else []
        else:
            series = list(series)

        record = SymbolRecord(
            symbol=symbol,
            name=company_name(symbol),
            quote=quote,
            series=series,
            last_update=self._clock.now_ms(),
            is_real_time_data=quote.is_real_time and _series_is_real(series),
            market_cap=quote.price * estimated_shares(symbol),
        )
        self._records[symbol] = record
        logger.debug(
            "symbol_record_upserted",
            symbol=symbol,
            series_replaced=series_replaced,
            is_real_time_data=record.is_real_time_data,
        )
        return record

    def get(self, symbol: str) -> SymbolRecord | None:
        return self._records.get(symbol.upper())

    def symbols(self) -> list[str]:
        return list(self._records)

    def __contains__(self, symbol: str) -> bool:
        return symbol.upper() in self._records

    def __len__(self) -> int:
        return len(self._records)
