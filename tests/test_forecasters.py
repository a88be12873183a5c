# tests/test_forecasters.py
import numpy as np
import pandas as pd
import pytest
from scipy import stats

from conftest import make_series
from retail_forecast.common import FitError
from retail_forecast.sales_prediction import (
    ARIMAForecaster, DriftForecaster, ETSForecaster, MeanForecaster, NaiveForecaster,
    SeasonalNaiveForecaster, create_forecaster, fit_model, forecast
)


def _check_forecast_frame(result, train, horizon):
    assert list(result.columns) == ["ds", "yhat", "yhat_lower", "yhat_upper"]
    assert len(result) == horizon
    expected = pd.date_range(train["date"].max() + pd.Timedelta(days=1), periods=horizon, freq="D")
    assert (pd.DatetimeIndex(result["ds"]) == expected).all()
    assert np.isfinite(result["yhat"]).all()
    assert (result["yhat_lower"] <= result["yhat"] + 1e-9).all()
    assert (result["yhat"] <= result["yhat_upper"] + 1e-9).all()


@pytest.mark.parametrize("forecaster", [
    MeanForecaster(), NaiveForecaster(), SeasonalNaiveForecaster(period=7), DriftForecaster()
])
def test_benchmark_forecast_length_equals_horizon(forecaster, weekly_series):
    result = forecaster.fit(weekly_series, "date", "sales").predict(horizon=14)
    _check_forecast_frame(result, weekly_series, 14)


def test_seasonal_naive_reproduces_last_week():
    train = make_series(n_days=63)
    result = SeasonalNaiveForecaster(period=7).fit(train).predict(horizon=14)

    last_week = train["sales"].values[-7:]
    np.testing.assert_allclose(result["yhat"].values, np.tile(last_week, 2))


def test_seasonal_naive_periodic_series_has_zero_width_interval():
    train = make_series(n_days=63)
    result = SeasonalNaiveForecaster(period=7).fit(train).predict(horizon=7)
    np.testing.assert_allclose(result["yhat_lower"], result["yhat_upper"])


def test_seasonal_naive_needs_more_than_one_season():
    with pytest.raises(ValueError, match="more than one season"):
        SeasonalNaiveForecaster(period=7).fit(make_series(n_days=7))


def test_mean_forecast_and_interval():
    train = pd.DataFrame({"date": pd.date_range("2017-01-01", periods=4), "sales": [1.0, 2.0, 3.0, 4.0]})
    result = MeanForecaster().fit(train).predict(horizon=3, confidence_interval=0.95)

    sigma = np.std([1.0, 2.0, 3.0, 4.0], ddof=1)
    margin = stats.norm.ppf(0.975) * sigma * np.sqrt(1 + 1 / 4)
    np.testing.assert_allclose(result["yhat"], 2.5)
    np.testing.assert_allclose(result["yhat_upper"] - result["yhat"], margin)


def test_naive_interval_widens_with_sqrt_h():
    train = pd.DataFrame({"date": pd.date_range("2017-01-01", periods=5),
                          "sales": [10.0, 12.0, 11.0, 13.0, 12.0]})
    result = NaiveForecaster().fit(train).predict(horizon=4)

    np.testing.assert_allclose(result["yhat"], 12.0)
    width = (result["yhat_upper"] - result["yhat"]).values
    np.testing.assert_allclose(width / width[0], np.sqrt([1, 2, 3, 4]))


def test_drift_extends_first_to_last_line():
    train = pd.DataFrame({"date": pd.date_range("2017-01-01", periods=5),
                          "sales": [0.0, 1.0, 2.0, 3.0, 4.0]})
    result = DriftForecaster().fit(train).predict(horizon=3)
    np.testing.assert_allclose(result["yhat"], [5.0, 6.0, 7.0])


def test_constant_series_gives_zero_width_intervals():
    train = pd.DataFrame({"date": pd.date_range("2017-01-01", periods=30), "sales": 0.0})
    for forecaster in (MeanForecaster(), NaiveForecaster(), SeasonalNaiveForecaster(), DriftForecaster()):
        result = forecaster.fit(train).predict(horizon=5)
        np.testing.assert_allclose(result["yhat"], 0.0)
        np.testing.assert_allclose(result["yhat_upper"], result["yhat_lower"])


def test_predict_in_sample_columns(weekly_series):
    in_sample = NaiveForecaster().fit(weekly_series).predict_in_sample()
    assert list(in_sample.columns) == ["ds", "actual", "predicted"]
    assert len(in_sample) == len(weekly_series)
    assert np.isnan(in_sample.loc[0, "predicted"])


def test_predict_before_fit_raises():
    with pytest.raises(ValueError, match="not fitted"):
        MeanForecaster().predict(horizon=3)


@pytest.mark.parametrize("horizon", [0, -1, 2.5])
def test_invalid_horizon_raises(horizon, weekly_series):
    model = MeanForecaster().fit(weekly_series)
    with pytest.raises(ValueError, match="Horizon"):
        model.predict(horizon=horizon)


def test_invalid_confidence_interval_raises(weekly_series):
    model = MeanForecaster().fit(weekly_series)
    with pytest.raises(ValueError, match="Confidence interval"):
        model.predict(horizon=3, confidence_interval=95)


def test_fit_rejects_gapped_series(weekly_series):
    gapped = weekly_series.drop(index=10)
    with pytest.raises(ValueError, match="not contiguous"):
        NaiveForecaster().fit(gapped)


def test_fit_rejects_missing_values(weekly_series):
    series = weekly_series.copy()
    series.loc[5, "sales"] = np.nan
    with pytest.raises(ValueError, match="missing values"):
        NaiveForecaster().fit(series)


def test_ets_additive_seasonal(weekly_series):
    model = ETSForecaster(error="add", trend=None, seasonal="add", seasonal_period=7)
    result = model.fit(weekly_series).predict(horizon=14)

    _check_forecast_frame(result, weekly_series, 14)
    assert model.spec_label == "ETS(A,N,A)"
    assert model.get_model_info()["aic"] is not None


def test_ets_auto_selects_a_specification(weekly_series):
    model = ETSForecaster(auto=True, seasonal_period=7).fit(weekly_series)
    assert model.spec_label.startswith("ETS(")
    _check_forecast_frame(model.predict(horizon=7), weekly_series, 7)


def test_ets_auto_skips_multiplicative_forms_for_zero_values(weekly_series):
    series = weekly_series.copy()
    series.loc[3, "sales"] = 0.0
    specs = ETSForecaster(auto=True)._candidate_specs(series.set_index("date")["sales"])

    assert specs
    assert all(error == "add" and seasonal != "mul" for error, _, _, seasonal in specs)


def test_arima_manual_order(weekly_series):
    model = ARIMAForecaster(order=(1, 0, 1), seasonal_order=(0, 1, 1, 7))
    result = model.fit(weekly_series).predict(horizon=14)

    _check_forecast_frame(result, weekly_series, 14)
    assert model.order == (1, 0, 1)
    assert model.spec_label == "ARIMA(1,0,1)(0,1,1)[7]"

    diagnostics = model.get_diagnostics()
    assert 0.0 <= diagnostics["ljung_box_pvalue"] <= 1.0


def test_arima_auto_order(weekly_series):
    model = ARIMAForecaster(auto_order=True, max_p=1, max_q=1, seasonal=True, seasonal_period=7)
    result = model.fit(weekly_series).predict(horizon=7)

    _check_forecast_frame(result, weekly_series, 7)
    assert model.seasonal_order[3] == 7


def test_non_converged_fit_raises_fit_error(weekly_series):
    model = ARIMAForecaster(order=(2, 0, 2), seasonal_order=(1, 0, 1, 7), maxiter=1)
    with pytest.raises(FitError) as excinfo:
        model.fit(weekly_series)
    assert excinfo.value.model == "ARIMA"
    message = str(excinfo.value)
    assert message.startswith("[ARIMA] SARIMAX(2, 0, 2)(1, 0, 1, 7)")
    assert message.count("[ARIMA]") == 1


def test_registry_builds_from_config(weekly_series):
    model = create_forecaster({"model": "arima", "params": {"order": [1, 0, 0], "seasonal": False}})
    assert isinstance(model, ARIMAForecaster)
    assert model.manual_order == (1, 0, 0)

    fitted = fit_model(weekly_series, {"model": "snaive", "params": {"period": 7}})
    assert len(forecast(fitted, horizon=10)) == 10


def test_registry_rejects_unknown_model():
    with pytest.raises(ValueError, match="Unknown model"):
        create_forecaster({"model": "lstm"})


def test_prophet_forecast_and_components(weekly_series):
    pytest.importorskip("prophet")
    from retail_forecast.sales_prediction import ProphetForecaster

    holidays = pd.DataFrame({"holiday": ["Dia del Trabajo"], "ds": [pd.Timestamp("2017-05-01")]})
    model = ProphetForecaster(yearly_seasonality=False, holidays=holidays)
    result = model.fit(weekly_series).predict(horizon=14, confidence_interval=0.8)

    _check_forecast_frame(result, weekly_series, 14)
    components = model.get_components()
    assert "trend" in components
    assert "weekly" in components
    assert model.get_model_info()["n_holidays"] == 1
    assert model.get_model_info()["confidence_interval"] == pytest.approx(80.0)


def test_holidays_from_calendar_keeps_national_not_transferred():
    from retail_forecast.sales_prediction.prophet_forecaster import ProphetForecaster

    calendar = pd.DataFrame({
        "date": pd.to_datetime(["2017-08-10", "2017-08-11", "2017-12-06", "2017-12-25"]),
        "type": ["Holiday", "Transfer", "Holiday", "Holiday"],
        "locale": ["National", "National", "Local", "National"],
        "locale_name": ["Ecuador", "Ecuador", "Quito", "Ecuador"],
        "description": ["Independencia", "Traslado Independencia", "Fundacion de Quito", "Navidad"],
        "transferred": [True, False, False, False],
    })
    holidays = ProphetForecaster.holidays_from_calendar(calendar)

    assert list(holidays.columns) == ["holiday", "ds"]
    assert list(holidays["ds"]) == [pd.Timestamp("2017-08-11"), pd.Timestamp("2017-12-25")]
