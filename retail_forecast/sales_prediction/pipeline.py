"""
Model Comparison Pipeline
=========================

Fits each configured model on the training slice, forecasts the test
window and scores it against the held-out actuals, one model after the
other.

Usage:
    from retail_forecast.sales_prediction import run_model_comparison, DEFAULT_MODELS

    result = run_model_comparison(train, test, DEFAULT_MODELS)
    print(result['comparison'][['rmse', 'mae', 'mape']])
"""

import pandas as pd
from typing import Optional, Dict, List, Any
from loguru import logger

from .model_evaluation import ForecastEvaluator
from .registry import fit_model, forecast
from ..common.exceptions import FitError


DEFAULT_MODELS: List[Dict[str, Any]] = [
    {'label': 'Mean', 'model': 'mean'},
    {'label': 'Naive', 'model': 'naive'},
    {'label': 'Seasonal Naive', 'model': 'snaive', 'params': {'period': 7}},
    {'label': 'Drift', 'model': 'drift'},
    {'label': 'ETS (auto)', 'model': 'ets', 'params': {'auto': True, 'seasonal_period': 7}},
    {'label': 'ETS (A,N,A)', 'model': 'ets',
     'params': {'error': 'add', 'trend': None, 'seasonal': 'add', 'seasonal_period': 7}},
    {'label': 'ARIMA manual', 'model': 'arima',
     'params': {'order': [1, 0, 1], 'seasonal_order': [0, 1, 1, 7]}},
    {'label': 'ARIMA auto', 'model': 'arima',
     'params': {'auto_order': True, 'seasonal': True, 'seasonal_period': 7}},
    {'label': 'Prophet', 'model': 'prophet', 'params': {'seasonality_mode': 'multiplicative'}},
]


def _label(config: Dict[str, Any]) -> str:
    return config.get('label') or config['model']


def run_model_comparison(
    train: pd.DataFrame,
    test: pd.DataFrame,
    model_configs: List[Dict[str, Any]],
    date_column: str = 'date',
    value_column: str = 'sales',
    confidence_interval: float = 0.95,
    holidays: Optional[pd.DataFrame] = None,
    skip_failures: bool = False,
    evaluator: Optional[ForecastEvaluator] = None
) -> Dict[str, Any]:
    """
    Fit, forecast and evaluate every configured model in turn.

    Args:
        train: Training slice (contiguous daily series)
        test: Held-out slice; the forecast horizon is its length
        model_configs: List of {'label', 'model', 'params'} dictionaries
        date_column: Name of date column
        value_column: Name of value column
        confidence_interval: Coverage of the prediction intervals
        holidays: Prophet holidays frame passed to Prophet models
        skip_failures: Record FitErrors and continue instead of raising
        evaluator: Evaluator to use (a default one is created otherwise)

    Returns:
        Dictionary with forecasts, metrics, models, diagnostics and
        failures keyed by model label, and a comparison table ranked by RMSE

    Raises:
        FitError: If a model fails and skip_failures is False
    """
    if train[date_column].max() >= test[date_column].min():
        raise ValueError("Training data overlaps the test window")

    evaluator = evaluator or ForecastEvaluator()
    horizon = len(test)
    result = {
        'forecasts': {},
        'metrics': {},
        'models': {},
        'diagnostics': {},
        'failures': {},
        'comparison': None
    }

    labels = [_label(c) for c in model_configs]
    if len(set(labels)) != len(labels):
        raise ValueError(f"Model labels must be unique: {labels}")

    for config, label in zip(model_configs, labels):
        if config['model'] == 'prophet' and holidays is not None:
            params = {'holidays': holidays, **(config.get('params') or {})}
            config = {**config, 'params': params}

        logger.info(f"[{label}] fitting {config['model']}")
        try:
            model = fit_model(train, config, date_column, value_column)
        except FitError as e:
            if not skip_failures:
                raise
            logger.error(f"[{label}] {e}")
            result['failures'][label] = str(e)
            continue

        predictions = forecast(model, horizon, confidence_interval)
        metrics = evaluator.evaluate_forecast(
            predictions, test,
            training=train,
            date_column=date_column,
            value_column=value_column,
            target_coverage=confidence_interval
        )

        result['models'][label] = model
        result['forecasts'][label] = predictions
        result['metrics'][label] = metrics
        result['diagnostics'][label] = evaluator.residual_diagnostics(model.residuals().values)
        if hasattr(model, 'get_diagnostics'):
            result['diagnostics'][label]['fit'] = model.get_diagnostics()

        logger.info(f"[{label}] RMSE={metrics['rmse']:.2f} MAE={metrics['mae']:.2f}")

    if result['metrics']:
        result['comparison'] = evaluator.compare_models(result['metrics'])
    else:
        logger.warning("No model produced a forecast")

    return result
