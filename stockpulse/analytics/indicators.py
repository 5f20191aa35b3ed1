"""Technical indicators over an ordered sequence of closing prices."""

import math
import statistics
from collections.abc import Sequence

from stockpulse.analytics.schemas import SentimentLabel

TRADING_DAYS_PER_YEAR = 252
SENTIMENT_WINDOW = 10
LEVELS_WINDOW = 20
TARGET_VOLATILITY_FACTOR = 0.6


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def daily_returns(prices: Sequence[float]) -> list[float]:
    """Simple day-over-day returns. A zero previous price contributes a zero return."""
    return [
        (current - previous) / previous if previous else 0.0
        for previous, current in zip(prices, prices[1:], strict=False)
    ]


def rsi(prices: Sequence[float], period: int = 14) -> float:
    if len(prices) < period + 1:
        return 50.0

    window = prices[-(period + 1):]
    gains = 0.0
    losses = 0.0
    for previous, current in zip(window, window[1:], strict=False):
        delta = current - previous
        if delta > 0:
            gains += delta
        else:
            losses -= delta

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return _clamp(100 - 100 / (1 + rs), 0.0, 100.0)


def sma(prices: Sequence[float], period: int) -> float:
    if not prices:
        raise ValueError("sma requires at least one price")
    if len(prices) < period:
        return prices[-1]
    return sum(prices[-period:]) / period


def volatility(prices: Sequence[float]) -> float:
    """Annualised population standard deviation of daily returns."""
    if len(prices) < 2:
        return 0.0
    return statistics.pstdev(daily_returns(prices)) * math.sqrt(TRADING_DAYS_PER_YEAR)


def sentiment(prices: Sequence[float]) -> float:
    recent = prices[-SENTIMENT_WINDOW:]
    if len(recent) < 2 or not recent[0]:
        return 50.0
    trend = (recent[-1] - recent[0]) / recent[0]
    return _clamp(50 + trend * 1000, 0.0, 100.0)


def sentiment_label(score: float) -> SentimentLabel:
    if score > 65:
        return SentimentLabel.bullish
    if score < 35:
        return SentimentLabel.bearish
    return SentimentLabel.neutral


def support_resistance(
    prices: Sequence[float], current_price: float
) -> tuple[float, float, float]:
    """Return ``(support, resistance, target)`` from the recent price window."""
    if not prices:
        raise ValueError("support_resistance requires at least one price")
    recent = prices[-LEVELS_WINDOW:]
    target = current_price * (1 + volatility(recent) * TARGET_VOLATILITY_FACTOR)
    return min(recent), max(recent), target
