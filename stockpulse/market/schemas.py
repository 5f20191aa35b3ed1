from pydantic import BaseModel, Field, model_validator


class Quote(BaseModel):
    model_config = {"frozen": True}

    symbol: str
    price: float = Field(ge=0)
    change: float
    change_percent: float
    high: float = Field(ge=0)
    low: float = Field(ge=0)
    open: float
    previous_close: float
    volume: int = Field(ge=0)
    timestamp: str  # ISO-8601
    exchange: str
    currency: str = "USD"
    is_real_time: bool

    @model_validator(mode="after")
    def _check_range(self) -> "Quote":
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) is below low ({self.low})")
        return self


class Candle(BaseModel):
    model_config = {"frozen": True}

    time: int  # epoch ms
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(ge=0)
    is_real_time: bool


class SymbolRecord(BaseModel):
    model_config = {"frozen": True}

    symbol: str
    name: str
    quote: Quote
    series: list[Candle]
    last_update: int  # epoch ms
    is_real_time_data: bool
    market_cap: float


class SearchResult(BaseModel):
    symbol: str
    name: str
    exchange: str | None = None
    country: str | None = None


class ApiUsage(BaseModel):
    calls_today: int
    calls_remaining: int
    max_daily_calls: int
    last_call_at: int | None = None  # epoch ms
    connected: bool
    last_error: str | None = None


class MarketStatus(BaseModel):
    is_market_open: bool
    checked_at: int  # epoch ms
    refresh_state: str  # "active", "paused"
    active_symbol: str | None = None
