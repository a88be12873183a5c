"""
Sales Prediction Module
======================

Daily sales forecasting with benchmark, ETS, ARIMA and Prophet models
behind one fit / predict contract.
"""

from .base import BaseForecaster
from .baseline_forecasters import (
    MeanForecaster, NaiveForecaster, SeasonalNaiveForecaster, DriftForecaster
)
from .ets_forecaster import ETSForecaster
from .arima_forecaster import ARIMAForecaster
from .prophet_forecaster import ProphetForecaster
from .model_evaluation import ForecastEvaluator
from .registry import FORECASTERS, create_forecaster, fit_model, forecast
from .pipeline import DEFAULT_MODELS, run_model_comparison
from . import time_series_analysis

__all__ = [
    "BaseForecaster",
    "MeanForecaster",
    "NaiveForecaster",
    "SeasonalNaiveForecaster",
    "DriftForecaster",
    "ETSForecaster",
    "ARIMAForecaster",
    "ProphetForecaster",
    "ForecastEvaluator",
    "FORECASTERS",
    "create_forecaster",
    "fit_model",
    "forecast",
    "DEFAULT_MODELS",
    "run_model_comparison",
    "time_series_analysis",
]
