"""
Forecaster Registry
===================

Builds forecasters from plain configuration dictionaries so that the
pipeline can swap models without touching its own code.

Usage:
    from retail_forecast.sales_prediction import fit_model, forecast

    model = fit_model(train, {'model': 'arima', 'params': {'order': [1, 0, 1]}})
    result = forecast(model, horizon=14)
"""

import pandas as pd
from typing import Dict, Any, Type

from .base import BaseForecaster
from .baseline_forecasters import (
    MeanForecaster, NaiveForecaster, SeasonalNaiveForecaster, DriftForecaster
)
from .ets_forecaster import ETSForecaster
from .arima_forecaster import ARIMAForecaster
from .prophet_forecaster import ProphetForecaster


FORECASTERS: Dict[str, Type[BaseForecaster]] = {
    'mean': MeanForecaster,
    'naive': NaiveForecaster,
    'snaive': SeasonalNaiveForecaster,
    'drift': DriftForecaster,
    'ets': ETSForecaster,
    'arima': ARIMAForecaster,
    'prophet': ProphetForecaster,
}

# YAML has no tuples; these ARIMA parameters must be hashable orders
_TUPLE_PARAMS = ('order', 'seasonal_order')


def create_forecaster(config: Dict[str, Any]) -> BaseForecaster:
    """
    Build an unfitted forecaster from {'model': name, 'params': {...}}.

    Raises:
        ValueError: If the model name is unknown
    """
    name = str(config.get('model', '')).lower()
    if name not in FORECASTERS:
        raise ValueError(f"Unknown model '{name}'. Choose from {sorted(FORECASTERS)}")

    params = dict(config.get('params') or {})
    for key in _TUPLE_PARAMS:
        if params.get(key) is not None:
            params[key] = tuple(params[key])

    return FORECASTERS[name](**params)


def fit_model(
    series: pd.DataFrame,
    config: Dict[str, Any],
    date_column: str = 'date',
    value_column: str = 'sales'
) -> BaseForecaster:
    """Build and fit a forecaster on a training series."""
    return create_forecaster(config).fit(series, date_column, value_column)


def forecast(
    model: BaseForecaster,
    horizon: int,
    confidence_interval: float = 0.95
) -> pd.DataFrame:
    """Forecast `horizon` days after the model's training data."""
    return model.predict(horizon=horizon, confidence_interval=confidence_interval)
