import pytest

from stockpulse.analytics.prediction import (
    forecast_path,
    linear_regression,
    momentum,
    moving_average_crossover,
    predict,
    registry,
)
from stockpulse.analytics.schemas import PredictionModel
from stockpulse.exceptions import ValidationError
from tests.conftest import DAY_MS


class TestLinearRegression:
    def test_perfect_line(self) -> None:
        predicted, confidence = linear_regression([10.0, 11.0, 12.0, 13.0, 14.0], 1)

        assert predicted == pytest.approx(15.0)
        assert confidence == 95.0

    def test_horizon_extends_the_line(self) -> None:
        predicted, _ = linear_regression([10.0, 11.0, 12.0, 13.0, 14.0], 7)

        assert predicted == pytest.approx(21.0)

    def test_confidence_floor(self) -> None:
        _, confidence = linear_regression([10.0, 20.0, 10.0, 20.0, 10.0, 20.0], 1)

        assert confidence == 70.0

    def test_prediction_is_floored_at_zero(self) -> None:
        predicted, _ = linear_regression([50.0, 40.0, 30.0, 20.0, 10.0], 30)

        assert predicted == 0.0

    def test_flat_series(self) -> None:
        predicted, confidence = linear_regression([5.0, 5.0, 5.0], 3)

        assert predicted == pytest.approx(5.0)
        assert confidence == 95.0

    def test_single_point(self) -> None:
        predicted, _ = linear_regression([8.0], 5)

        assert predicted == 8.0


class TestMovingAverageCrossover:
    def test_flat_series_predicts_average(self) -> None:
        predicted, confidence = moving_average_crossover([20.0] * 30, 7)

        assert predicted == pytest.approx(20.0)
        assert confidence == 80.0

    def test_uptrend_adjusts_upwards(self) -> None:
        prices = [float(p) for p in range(100, 120)]
        long_ma = sum(prices) / 20
        short_ma = sum(prices[-5:]) / 5

        predicted, _ = moving_average_crossover(prices, 10)

        assert predicted == pytest.approx(long_ma + (short_ma - long_ma) * 10 * 0.15)

    def test_confidence_band(self) -> None:
        _, confidence = moving_average_crossover([10.0, 30.0] * 10, 1)

        assert 65.0 <= confidence <= 80.0


class TestMomentum:
    def test_flat_series_keeps_price(self) -> None:
        predicted, confidence = momentum([50.0] * 10, 5)

        assert predicted == pytest.approx(50.0)
        assert confidence == 75.0

    def test_uses_mean_of_last_nine_returns(self) -> None:
        prices = [1.0] * 5 + [100.0 * 1.01**i for i in range(10)]

        predicted, _ = momentum(prices, 2)

        assert predicted == pytest.approx(prices[-1] * (1 + 0.01 * 2 * 0.6))

    def test_confidence_floor(self) -> None:
        _, confidence = momentum([10.0, 20.0] * 10, 1)

        assert confidence == 60.0


class TestPredict:
    def test_linear_wrapper_metrics(self) -> None:
        result = predict("AAPL", [10.0, 11.0, 12.0, 13.0, 14.0], PredictionModel.linear, 1)

        assert result.current_price == 14.0
        assert result.predicted_price == pytest.approx(15.0)
        assert result.change == pytest.approx(1.0)
        assert result.change_percent == pytest.approx(100 / 14)
        assert result.confidence == 95.0
        assert result.model_name == "Linear Regression"
        assert result.accuracy_band == "70-90%"
        assert result.horizon_days == 1
        assert result.data_points == 5

    def test_confidence_boost_is_capped(self) -> None:
        result = predict("AAPL", [10.0, 20.0] * 5, "momentum", 3)

        assert result.confidence == 70.0
        assert result.accuracy_band == "60-75%"

    def test_model_accepts_plain_string(self) -> None:
        result = predict("AAPL", [20.0] * 25, "moving_average", 5)

        assert result.model is PredictionModel.moving_average
        assert result.confidence == 90.0

    def test_unknown_model(self) -> None:
        with pytest.raises(ValidationError):
            predict("AAPL", [1.0, 2.0], "lstm", 1)

    def test_horizon_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            predict("AAPL", [1.0, 2.0], PredictionModel.linear, 0)

    def test_empty_history(self) -> None:
        with pytest.raises(ValidationError):
            predict("AAPL", [], PredictionModel.linear, 1)

    def test_path_included_when_last_time_known(self) -> None:
        result = predict("AAPL", [10.0, 11.0, 12.0], PredictionModel.linear, 3, last_time=0)

        assert [p.time for p in result.path] == [DAY_MS, 2 * DAY_MS, 3 * DAY_MS]
        assert result.path[-1].price == pytest.approx(result.predicted_price)

    def test_registry_lists_all_models(self) -> None:
        assert set(registry.models()) == set(PredictionModel)


class TestForecastPath:
    def test_linear_interpolation(self) -> None:
        path = forecast_path(1_000, 100.0, 110.0, 2)

        assert [p.time for p in path] == [1_000 + DAY_MS, 1_000 + 2 * DAY_MS]
        assert [p.price for p in path] == [pytest.approx(105.0), pytest.approx(110.0)]
