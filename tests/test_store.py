import pydantic
import pytest

from stockpulse.market.store import SymbolStore
from tests.conftest import make_quote, make_series


class TestSymbolStore:
    def test_get_unknown_symbol(self, clock) -> None:
        assert SymbolStore(clock).get("AAPL") is None

    def test_full_upsert_creates_record(self, clock) -> None:
        store = SymbolStore(clock)

        record = store.upsert("aapl", make_quote(), make_series([1.0, 2.0]))

        assert record.symbol == "AAPL"
        assert record.name == "Apple Inc."
        assert record.last_update == clock.now_ms()
        assert record.is_real_time_data
        assert record.market_cap == 190.0 * 15.7e9
        assert store.get("AAPL") is record
        assert "aapl" in store

    def test_quote_only_upsert_keeps_series(self, clock) -> None:
        store = SymbolStore(clock)
        series = make_series([1.0, 2.0, 3.0])
        store.upsert("AAPL", make_quote(price=190.0), series)
        clock.advance(30)

        record = store.upsert("AAPL", make_quote(price=191.0))

        assert record.quote.price == 191.0
        assert record.series == series
        assert record.last_update == clock.now_ms()

    def test_series_upsert_replaces_both(self, clock) -> None:
        store = SymbolStore(clock)
        store.upsert("AAPL", make_quote(price=190.0), make_series([1.0]))

        record = store.upsert("AAPL", make_quote(price=200.0), make_series([5.0, 6.0]))

        assert record.quote.price == 200.0
        assert [c.close for c in record.series] == [5.0, 6.0]

    def test_fallback_quote_clears_real_time_flag(self, clock) -> None:
        store = SymbolStore(clock)
        store.upsert("AAPL", make_quote(), make_series([1.0]))

        record = store.upsert("AAPL", make_quote(is_real_time=False))

        assert not record.is_real_time_data

    def test_quote_only_upsert_for_new_symbol(self, clock) -> None:
        store = SymbolStore(clock)

        record = store.upsert("ZZZZ", make_quote("ZZZZ", 10.0))

        assert record.series == []
        assert not record.is_real_time_data
        assert record.name == "ZZZZ Corporation"

    def test_records_are_retained(self, clock) -> None:
        store = SymbolStore(clock)
        for symbol in ("AAPL", "MSFT", "TSLA"):
            store.upsert(symbol, make_quote(symbol))

        assert store.symbols() == ["AAPL", "MSFT", "TSLA"]
        assert len(store) == 3

    def test_records_cannot_be_mutated_in_place(self, clock) -> None:
        store = SymbolStore(clock)
        record = store.upsert("AAPL", make_quote(), make_series([1.0]))

        with pytest.raises(pydantic.ValidationError):
            record.is_real_time_data = False
        with pytest.raises(pydantic.ValidationError):
            record.quote.price = 1.0
        with pytest.raises(pydantic.ValidationError):
            record.series[0].close = 1.0

        assert store.get("AAPL").quote.price == 190.0
