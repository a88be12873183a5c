# tests/test_time_series_analysis.py
import numpy as np
import pandas as pd
import pytest

from conftest import make_series
from retail_forecast.common import DataLoader, Preprocessor
from retail_forecast.sales_prediction import time_series_analysis as tsa


def _store1_grocery(data_dir):
    tables = DataLoader().load_all(data_dir)
    series = Preprocessor().build_series(tables["sales"], 1, "GROCERY I",
                                         start="2016-06-01", end="2017-08-16")
    return series.set_index("date")["sales"]


def test_store1_grocery_acf_spikes_at_lag_7(data_dir):
    ts = _store1_grocery(data_dir)
    acf = tsa.autocorrelation(ts, nlags=28)

    assert acf.index[0] == 0
    assert acf.loc[0] == pytest.approx(1.0)
    assert acf.loc[7] == acf.loc[1:13].max()
    assert acf.loc[7] > 1.96 / np.sqrt(len(ts))
    assert tsa.has_weekly_seasonality(ts, period=7)


def test_white_noise_has_no_weekly_seasonality():
    noise = pd.Series(np.random.default_rng(3).normal(0, 1, 365))
    assert not tsa.has_weekly_seasonality(noise, period=7)


def test_stl_decomposition_of_weekly_series():
    ts = make_series(n_days=140, noise=1.0).set_index("date")["sales"]
    decomposition = tsa.stl_decompose(ts, period=7)

    reconstructed = decomposition.trend + decomposition.seasonal + decomposition.resid
    np.testing.assert_allclose(reconstructed.values, ts.values)
    assert tsa.seasonal_strength(decomposition) > 0.64
    assert tsa.nsdiffs(ts, period=7) == 1


def test_stl_needs_two_seasons():
    with pytest.raises(ValueError, match="two seasons"):
        tsa.stl_decompose(pd.Series(np.arange(10.0)), period=7)


def test_ndiffs_random_walk_needs_one_difference():
    walk = pd.Series(np.cumsum(np.random.default_rng(5).normal(0, 1, 500)))
    assert tsa.ndiffs(walk) == 1


def test_ndiffs_stationary_noise_needs_none():
    noise = pd.Series(np.random.default_rng(5).normal(0, 1, 500))
    assert tsa.ndiffs(noise) == 0


def test_ndiffs_constant_series():
    assert tsa.ndiffs(pd.Series(np.ones(50))) == 0


def test_stationarity_report_keys():
    ts = make_series(n_days=140, noise=1.0).set_index("date")["sales"]
    report = tsa.stationarity_report(ts, period=7)

    assert set(report) == {"adf", "kpss", "ndiffs", "nsdiffs"}
    assert set(report["adf"]) >= {"statistic", "p_value", "lags", "critical_values", "is_stationary"}
