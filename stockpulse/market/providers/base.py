from abc import ABC, abstractmethod

from stockpulse.market.schemas import Candle, Quote, SearchResult


class MarketDataProvider(ABC):
    """Raw provider access. Implementations raise ``ProviderError`` on any failure."""

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote: ...

    @abstractmethod
    async def get_series(self, symbol: str, interval: str, count: int) -> list[Candle]: ...

    @abstractmethod
    async def search(self, query: str) -> list[SearchResult]: ...

    async def aclose(self) -> None:
        return None
