# tests/test_reporting.py
import json

import numpy as np
import pandas as pd

from conftest import make_series
from retail_forecast.common import Preprocessor, Reporter
from retail_forecast.sales_prediction import run_model_comparison


def _result(skip_failures=False, configs=None):
    series = make_series(n_days=84, noise=1.0)
    train, test = Preprocessor().train_test_split(series, series["date"].iloc[-14], horizon=14)
    configs = configs or [
        {"label": "Naive", "model": "naive"},
        {"label": "Seasonal Naive", "model": "snaive"},
    ]
    return run_model_comparison(train, test, configs, skip_failures=skip_failures)


def test_print_accuracy_table(capsys, tmp_path):
    result = _result()
    text = Reporter(output_dir=tmp_path).print_accuracy_table(result["comparison"])

    out = capsys.readouterr().out
    assert "RMSE" in out and "MAE" in out
    assert text in out
    assert text.index("Seasonal Naive") < text.index("\nNaive")


def test_comparison_report_formats(tmp_path):
    result = _result()
    paths = Reporter(output_dir=tmp_path).generate_comparison_report(
        result, "store1", series_info={"store_nbr": 1, "family": "GROCERY I"}
    )

    assert set(paths) == {"csv", "forecasts_csv", "json", "html"}

    table = pd.read_csv(paths["csv"], index_col="model")
    assert list(table.index) == list(result["comparison"].index)

    forecasts = pd.read_csv(paths["forecasts_csv"])
    assert len(forecasts) == 28
    assert set(forecasts["model"]) == {"Naive", "Seasonal Naive"}

    with open(paths["json"]) as f:
        report = json.load(f)
    assert report["best_model"] == "Seasonal Naive"
    assert report["series"]["family"] == "GROCERY I"
    assert report["model_info"]["Naive"]["type"] == "Naive"

    html = paths["html"].read_text()
    assert "Seasonal Naive" in html
    assert "GROCERY I" in html


def test_report_lists_failures(tmp_path):
    result = _result(skip_failures=True, configs=[
        {"label": "Naive", "model": "naive"},
        {"label": "ARIMA broken", "model": "arima",
         "params": {"order": [2, 0, 2], "seasonal_order": [1, 0, 1, 7], "maxiter": 1}},
    ])
    paths = Reporter(output_dir=tmp_path).generate_comparison_report(result, "with_failures",
                                                                     formats=["json", "html"])

    with open(paths["json"]) as f:
        report = json.load(f)
    assert "ARIMA broken" in report["failures"]
    assert "ARIMA broken" in paths["html"].read_text()


def test_convert_to_serializable_handles_numpy_and_nan(tmp_path):
    reporter = Reporter(output_dir=tmp_path)
    converted = reporter._convert_to_serializable({
        "a": np.float64(1.5), "b": np.int64(2), "c": np.nan, "d": np.array([1, 2]),
        "e": pd.Timestamp("2017-08-02"), "f": np.bool_(True)
    })

    assert converted == {"a": 1.5, "b": 2, "c": None, "d": [1, 2], "e": "2017-08-02", "f": True}
    json.dumps(converted)


def test_eda_report(tmp_path):
    path = Reporter(output_dir=tmp_path).generate_eda_report({"seasonal_strength": np.float64(0.9)})
    with open(path) as f:
        assert json.load(f)["seasonal_strength"] == 0.9
