from enum import StrEnum

from pydantic import BaseModel, Field


class PredictionModel(StrEnum):
    linear = "linear"
    moving_average = "moving_average"
    momentum = "momentum"


class SentimentLabel(StrEnum):
    bullish = "Bullish"
    bearish = "Bearish"
    neutral = "Neutral"


class IndicatorSet(BaseModel):
    symbol: str
    rsi: float = Field(ge=0, le=100)
    sma20: float
    sma50: float
    volatility: float = Field(ge=0)  # annualised, as a fraction
    sentiment: float = Field(ge=0, le=100)
    sentiment_label: SentimentLabel
    support: float
    resistance: float
    target: float
    data_points: int


class ForecastPoint(BaseModel):
    time: int  # epoch ms
    price: float


class PredictionResult(BaseModel):
    symbol: str
    model: PredictionModel
    model_name: str
    horizon_days: int
    current_price: float
    predicted_price: float
    change: float
    change_percent: float
    confidence: float = Field(ge=0, le=100)
    accuracy_band: str  # e.g. "70-90%"
    data_points: int
    data_quality: str = "Real-Time Market Data"
    path: list[ForecastPoint] = Field(default_factory=list)
