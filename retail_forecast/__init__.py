"""
Store Sales Forecasting
=======================

Batch pipeline comparing off-the-shelf forecasting models on one
store / product family daily sales series:
- Loading and strict parsing of the sales, store, transaction and promotion tables
- Filtering and gap-filling into a contiguous daily series
- Exploratory charts and STL decomposition
- Mean, Naive, Seasonal Naive, Drift, ETS, ARIMA and Prophet forecasters
- RMSE / MAE / MAPE comparison against a held-out calendar window

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Retail Analytics Team"

from .common import (
    DataLoader, Preprocessor, Visualizer, Reporter,
    ParseError, FitError, ForecastAlignmentError
)
from .sales_prediction import (
    ARIMAForecaster, ProphetForecaster, ETSForecaster,
    MeanForecaster, NaiveForecaster, SeasonalNaiveForecaster, DriftForecaster,
    ForecastEvaluator, fit_model, forecast, run_model_comparison
)

__all__ = [
    "DataLoader",
    "Preprocessor",
    "Visualizer",
    "Reporter",
    "ParseError",
    "FitError",
    "ForecastAlignmentError",
    "ARIMAForecaster",
    "ProphetForecaster",
    "ETSForecaster",
    "MeanForecaster",
    "NaiveForecaster",
    "SeasonalNaiveForecaster",
    "DriftForecaster",
    "ForecastEvaluator",
    "fit_model",
    "forecast",
    "run_model_comparison",
]
