# tests/test_run_analytics.py
import sys

import pytest
import yaml

import run_analytics
from run_analytics import DEFAULT_CONFIG, load_config, main


def _write_config(tmp_path, data_dir, models=None):
    config = {
        "data": {"dir": str(data_dir)},
        "series": {"store_nbr": 1, "family": "GROCERY I", "start": "2016-06-01", "end": "2017-08-16"},
        "split": {"cutoff": "2017-08-02", "horizon": 14},
        "models": models or [
            {"label": "Naive", "model": "naive"},
            {"label": "Seasonal Naive", "model": "snaive", "params": {"period": 7}},
        ],
        "output": {"dir": str(tmp_path / "outputs")},
    }
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(config))
    return path


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["run_analytics.py", *argv])
    main()


def test_load_config_deep_merges_over_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("split:\n  horizon: 7\n")

    config = load_config(str(path))

    assert config["split"]["horizon"] == 7
    assert config["split"]["cutoff"] == "2017-08-02"
    assert config["series"]["family"] == "GROCERY I"
    assert len(config["models"]) == 9
    assert DEFAULT_CONFIG["split"]["horizon"] == 14


def test_missing_config_uses_defaults(tmp_path):
    config = load_config(str(tmp_path / "missing.yaml"))
    assert config["series"]["store_nbr"] == 1
    assert config["split"]["horizon"] == 14


def test_forecast_task_end_to_end(monkeypatch, tmp_path, data_dir, capsys):
    config = _write_config(tmp_path, data_dir)
    _run(monkeypatch, "--task", "forecast", "--config", str(config))

    out = capsys.readouterr().out
    assert "Seasonal Naive" in out
    reports = tmp_path / "outputs" / "reports"
    assert list(reports.glob("forecast_comparison_*.json"))
    assert (tmp_path / "outputs" / "plots" / "forecast_comparison.png").exists()


def test_eda_task_end_to_end(monkeypatch, tmp_path, data_dir):
    config = _write_config(tmp_path, data_dir)
    _run(monkeypatch, "--task", "eda", "--config", str(config), "--output", str(tmp_path / "eda"))

    plots = tmp_path / "eda" / "plots"
    for name in ("total_daily_sales", "sales_by_family", "sales_by_cluster",
                 "transactions_by_weekday", "series_decomposition", "series_acf"):
        assert (plots / f"{name}.png").exists()
    assert list((tmp_path / "eda" / "reports").glob("eda_summary_*.json"))


def test_malformed_input_exits_non_zero(monkeypatch, tmp_path, data_dir):
    sales = data_dir / "train.csv"
    lines = sales.read_text().splitlines()
    lines[1] = lines[1].replace("2016-06-01", "2016-06-XX")
    sales.write_text("\n".join(lines) + "\n")

    config = _write_config(tmp_path, data_dir)
    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, "--task", "forecast", "--config", str(config))
    assert excinfo.value.code == 1


def test_fit_failure_exits_non_zero_unless_skipped(monkeypatch, tmp_path, data_dir):
    models = [
        {"label": "Naive", "model": "naive"},
        {"label": "ARIMA broken", "model": "arima",
         "params": {"order": [2, 0, 2], "seasonal_order": [1, 0, 1, 7], "maxiter": 1}},
    ]
    config = _write_config(tmp_path, data_dir, models=models)

    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, "--task", "forecast", "--config", str(config))
    assert excinfo.value.code == 1

    _run(monkeypatch, "--task", "forecast", "--config", str(config), "--skip-failures")


def test_data_dir_flag_overrides_config(monkeypatch, tmp_path, data_dir):
    config = _write_config(tmp_path, tmp_path / "nowhere")
    with pytest.raises(SystemExit):
        _run(monkeypatch, "--task", "forecast", "--config", str(config))

    _run(monkeypatch, "--task", "forecast", "--config", str(config), "--data-dir", str(data_dir))
    assert run_analytics.DEFAULT_CONFIG["data"]["dir"] == "data"
