# tests/conftest.py
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

# Add the repository root to sys.path (run_analytics, data/generate_sample_data)
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from data.generate_sample_data import (  # noqa: E402
    generate_sales_data, generate_stores, generate_transaction_data,
    generate_promotion_data, generate_holiday_data
)

WEEKLY = np.array([0.9, 0.8, 0.85, 0.8, 1.0, 1.3, 1.4])


def make_series(n_days=120, start="2017-01-02", level=100.0, weekly=True, noise=0.0, seed=0):
    """Contiguous daily series with an optional weekly pattern."""
    rng = np.random.default_rng(seed)
    dates = pd.date_range(start, periods=n_days, freq="D")
    values = np.full(n_days, level)
    if weekly:
        values = values * WEEKLY[dates.dayofweek.values]
    if noise:
        values = values + rng.normal(0, noise, n_days)
    return pd.DataFrame({"date": dates, "sales": values})


def write_tables(data_dir, start_date="2016-06-01", end_date="2017-08-15", n_stores=2,
                 families=("GROCERY I", "BEVERAGES")):
    """Write a small synthetic data directory and return the frames."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    families = list(families)

    sales = generate_sales_data(start_date, end_date, n_stores=n_stores, families=families)
    tables = {
        "train.csv": sales,
        "stores.csv": generate_stores(n_stores),
        "transactions.csv": generate_transaction_data(sales),
        "test.csv": generate_promotion_data(n_stores=n_stores, families=families, first_id=len(sales)),
        "holidays_events.csv": generate_holiday_data(2016, 2017),
    }
    for name, df in tables.items():
        df.to_csv(data_dir / name, index=False, date_format="%Y-%m-%d")
    return tables


@pytest.fixture
def weekly_series():
    return make_series(n_days=140, noise=2.0)


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    write_tables(path)
    return path
