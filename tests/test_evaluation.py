# tests/test_evaluation.py
import numpy as np
import pandas as pd
import pytest

from retail_forecast.common import ForecastAlignmentError
from retail_forecast.sales_prediction import ForecastEvaluator


def _forecast(start="2017-08-02", values=(10.0, 12.0, 14.0), width=2.0):
    values = np.asarray(values, dtype=float)
    return pd.DataFrame({
        "ds": pd.date_range(start, periods=len(values), freq="D"),
        "yhat": values,
        "yhat_lower": values - width,
        "yhat_upper": values + width,
    })


def _actual(start="2017-08-02", values=(10.0, 12.0, 14.0)):
    return pd.DataFrame({
        "date": pd.date_range(start, periods=len(values), freq="D"),
        "sales": np.asarray(values, dtype=float),
    })


def test_exact_forecast_has_zero_rmse():
    metrics = ForecastEvaluator().calculate_metrics([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
    assert metrics["rmse"] == 0.0
    assert metrics["mae"] == 0.0
    assert metrics["mape"] == 0.0


def test_rmse_positive_for_any_error():
    rng = np.random.default_rng(1)
    actual = rng.uniform(0, 100, 14)
    predicted = actual.copy()
    predicted[3] += 0.5

    metrics = ForecastEvaluator().calculate_metrics(actual, predicted)
    assert metrics["rmse"] > 0
    assert metrics["rmse"] == pytest.approx(np.sqrt(0.25 / 14))
    assert metrics["rmse"] >= metrics["mae"]


def test_known_metric_values():
    metrics = ForecastEvaluator().calculate_metrics([10.0, 20.0], [12.0, 16.0])

    assert metrics["mae"] == pytest.approx(3.0)
    assert metrics["rmse"] == pytest.approx(np.sqrt((4 + 16) / 2))
    assert metrics["mape"] == pytest.approx((20 + 20) / 2)
    assert metrics["bias"] == pytest.approx(-1.0)


def test_all_zero_series_against_itself():
    zeros = np.zeros(14)
    metrics = ForecastEvaluator().calculate_metrics(zeros, zeros)

    assert metrics["rmse"] == 0.0
    assert np.isnan(metrics["mape"])
    assert metrics["smape"] == 0.0


def test_mape_skips_zero_actuals():
    metrics = ForecastEvaluator().calculate_metrics([0.0, 10.0], [5.0, 11.0])
    assert metrics["mape"] == pytest.approx(10.0)


def test_mase_uses_seasonal_naive_scale():
    training = np.tile([1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0], 3) + np.repeat([0.0, 1.0, 2.0], 7)
    metrics = ForecastEvaluator(seasonal_period=7).calculate_metrics([10.0], [12.0], training=training)
    assert metrics["mase"] == pytest.approx(2.0)


@pytest.mark.parametrize("actual,predicted", [
    ([], []),
    ([1.0, 2.0], [1.0]),
    ([1.0, 2.0], [1.0, np.nan]),
])
def test_invalid_inputs_raise_alignment_error(actual, predicted):
    with pytest.raises(ForecastAlignmentError):
        ForecastEvaluator().calculate_metrics(actual, predicted)


def test_align_on_exact_dates():
    forecast = _forecast().iloc[::-1]
    aligned = ForecastEvaluator().align(forecast, _actual())

    assert list(aligned["ds"]) == list(pd.date_range("2017-08-02", periods=3))
    np.testing.assert_allclose(aligned["actual"], aligned["yhat"])


def test_shifted_dates_raise_alignment_error():
    with pytest.raises(ForecastAlignmentError, match="differ"):
        ForecastEvaluator().align(_forecast(start="2017-08-03"), _actual())


def test_length_mismatch_raises_alignment_error():
    with pytest.raises(ForecastAlignmentError, match="periods"):
        ForecastEvaluator().align(_forecast(values=(1.0, 2.0)), _actual())


def test_duplicate_dates_raise_alignment_error():
    actual = _actual()
    actual.loc[2, "date"] = actual.loc[1, "date"]
    with pytest.raises(ForecastAlignmentError, match="Duplicate"):
        ForecastEvaluator().align(_forecast(), actual)


def test_evaluate_forecast_adds_interval_metrics():
    actual = _actual(values=(10.0, 12.0, 20.0))
    metrics = ForecastEvaluator().evaluate_forecast(_forecast(), actual, target_coverage=0.95)

    assert metrics["coverage"] == pytest.approx(200 / 3)
    # width 4 everywhere, plus 2/alpha * 4 for the miss on the last day
    assert metrics["winkler"] == pytest.approx((4 + 4 + 4 + (2 / 0.05) * 4) / 3)


def test_compare_models_ranks_by_rmse_then_mae_then_name():
    comparison = ForecastEvaluator().compare_models({
        "B": {"rmse": 1.0, "mae": 0.5},
        "A": {"rmse": 1.0, "mae": 0.5},
        "C": {"rmse": 1.0, "mae": 0.4},
        "D": {"rmse": 0.5, "mae": 0.9},
    })

    assert list(comparison.index) == ["D", "C", "A", "B"]
    assert list(comparison["rmse_rank"]) == [1, 2, 3, 4]


def test_compare_models_requires_results():
    with pytest.raises(ValueError):
        ForecastEvaluator().compare_models({})


def test_residual_diagnostics_white_noise():
    residuals = np.random.default_rng(0).normal(0, 1, 300)
    diagnostics = ForecastEvaluator().residual_diagnostics(residuals)

    assert abs(diagnostics["mean"]) < 0.2
    assert 0.0 <= diagnostics["ljung_box_pvalue"] <= 1.0
    assert diagnostics["has_autocorrelation"] in (True, False)


def test_residual_diagnostics_short_or_constant_residuals():
    diagnostics = ForecastEvaluator().residual_diagnostics(np.zeros(30))
    assert np.isnan(diagnostics["ljung_box_pvalue"])
    assert diagnostics["has_autocorrelation"] is None

