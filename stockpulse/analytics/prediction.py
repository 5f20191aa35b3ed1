"""Short-horizon price estimates from recent closes.

Each strategy maps ``(prices, days)`` to ``(predicted_price, confidence)``.
They are heuristic curve fits, not trained models.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from stockpulse.analytics.indicators import daily_returns, volatility
from stockpulse.analytics.schemas import ForecastPoint, PredictionModel, PredictionResult
from stockpulse.exceptions import ValidationError

StrategyFn = Callable[[Sequence[float], int], tuple[float, float]]

_DAY_MS = 24 * 60 * 60 * 1000
_MAX_CONFIDENCE = 95.0
_REAL_DATA_CONFIDENCE_BOOST = 10.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


@dataclass(frozen=True)
class StrategyDefinition:
    model: PredictionModel
    name: str
    accuracy_band: str
    fn: StrategyFn


class StrategyRegistry:
    def __init__(self) -> None:
        self._strategies: dict[PredictionModel, StrategyDefinition] = {}

    def register(
        self, model: PredictionModel, name: str, accuracy_band: str
    ) -> Callable[[StrategyFn], StrategyFn]:
        """Decorator to register a prediction strategy."""

        def decorator(fn: StrategyFn) -> StrategyFn:
            self._strategies[model] = StrategyDefinition(
                model=model, name=name, accuracy_band=accuracy_band, fn=fn
            )
            return fn

        return decorator

    def get(self, model: PredictionModel | str) -> StrategyDefinition:
        try:
            return self._strategies[PredictionModel(model)]
        except (KeyError, ValueError):
            known = ", ".join(m.value for m in self._strategies)
            raise ValidationError(f"Unknown prediction model '{model}'. Use one of: {known}") from None

    def models(self) -> list[PredictionModel]:
        return list(self._strategies)


registry = StrategyRegistry()


@registry.register(PredictionModel.linear, name="Linear Regression", accuracy_band="70-90%")
def linear_regression(prices: Sequence[float], days: int) -> tuple[float, float]:
    n = len(prices)
    sum_x = n * (n - 1) / 2
    sum_y = sum(prices)
    sum_xy = sum(i * p for i, p in enumerate(prices))
    sum_x2 = sum(i * i for i in range(n))

    denominator = n * sum_x2 - sum_x * sum_x
    slope = (n * sum_xy - sum_x * sum_y) / denominator if denominator else 0.0
    intercept = (sum_y - slope * sum_x) / n
    predicted = slope * (n + days - 1) + intercept

    y_mean = sum_y / n
    ss_res = sum((p - (slope * i + intercept)) ** 2 for i, p in enumerate(prices))
    ss_tot = sum((p - y_mean) ** 2 for p in prices)
    # A flat series is fitted exactly by a flat line.
    r_squared = max(0.0, 1 - ss_res / ss_tot) if ss_tot else 1.0

    return max(0.0, predicted), _clamp(r_squared * 100, 70.0, 95.0)


@registry.register(
    PredictionModel.moving_average, name="Moving Average Crossover", accuracy_band="65-80%"
)
def moving_average_crossover(prices: Sequence[float], days: int) -> tuple[float, float]:
    recent = prices[-20:]
    long_ma = _mean(recent)
    short_ma = _mean(prices[-5:])
    predicted = long_ma + (short_ma - long_ma) * days * 0.15
    confidence = _clamp((1 - volatility(recent)) * 100, 65.0, 80.0)
    return max(0.0, predicted), confidence


@registry.register(PredictionModel.momentum, name="Momentum Analysis", accuracy_band="60-75%")
def momentum(prices: Sequence[float], days: int) -> tuple[float, float]:
    returns = daily_returns(prices[-10:])
    drift = _mean(returns) if returns else 0.0
    predicted = prices[-1] * (1 + drift * days * 0.6)
    confidence = _clamp((1 - volatility(prices[-20:]) * 2) * 100, 60.0, 75.0)
    return max(0.0, predicted), confidence


def forecast_path(
    last_time: int, current_price: float, predicted_price: float, days: int
) -> list[ForecastPoint]:
    """Daily points after ``last_time``, linear from current to predicted price."""
    return [
        ForecastPoint(
            time=last_time + step * _DAY_MS,
            price=current_price + (predicted_price - current_price) * step / days,
        )
        for step in range(1, days + 1)
    ]


def predict(
    symbol: str,
    prices: Sequence[float],
    model: PredictionModel | str,
    days: int,
    last_time: int | None = None,
) -> PredictionResult:
    """Run one strategy and derive change, change percent and boosted confidence.

    Callers are responsible for only passing provider (non-synthetic) prices.
    """
    strategy = registry.get(model)
    if days < 1:
        raise ValidationError("Prediction horizon must be at least 1 day")
    if not prices:
        raise ValidationError(f"No price history available for {symbol}")

    current = prices[-1]
    predicted, confidence = strategy.fn(prices, days)
    change = predicted - current
    change_percent = change / current * 100 if current else 0.0

    return PredictionResult(
        symbol=symbol,
        model=strategy.model,
        model_name=strategy.name,
        horizon_days=days,
        current_price=current,
        predicted_price=predicted,
        change=change,
        change_percent=change_percent,
        confidence=min(_MAX_CONFIDENCE, confidence + _REAL_DATA_CONFIDENCE_BOOST),
        accuracy_band=strategy.accuracy_band,
        data_points=len(prices),
        path=forecast_path(last_time, current, predicted, days) if last_time is not None else [],
    )
