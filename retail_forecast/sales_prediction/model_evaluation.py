"""
Forecast Model Evaluation Module
================================

Accuracy metrics for forecasts against held-out actuals. Forecasts are
always compared on the exact date index; misaligned dates raise
ForecastAlignmentError instead of being dropped.

Usage:
    from retail_forecast.sales_prediction import ForecastEvaluator

    evaluator = ForecastEvaluator()
    metrics = evaluator.evaluate_forecast(forecast, test, training=train)
    comparison = evaluator.compare_models({'ARIMA': metrics})
"""

import pandas as pd
import numpy as np
from typing import Dict, Any, Optional
from sklearn.metrics import mean_squared_error, mean_absolute_error, r2_score
from statsmodels.stats.diagnostic import acorr_ljungbox
from loguru import logger
import warnings

from ..common.exceptions import ForecastAlignmentError

warnings.filterwarnings('ignore')


class ForecastEvaluator:
    """
    Evaluation toolkit for forecast models.

    Provides alignment checks, metrics calculation, interval coverage and
    model comparison for daily sales forecasts.

    Example:
        >>> evaluator = ForecastEvaluator()
        >>> metrics = evaluator.calculate_metrics(actual, predicted)
        >>> print(f"RMSE: {metrics['rmse']:.2f}")
    """

    def __init__(self, seasonal_period: int = 7):
        """
        Initialize ForecastEvaluator.

        Args:
            seasonal_period: Period of the seasonal naive scale used by MASE
        """
        self.seasonal_period = seasonal_period
        logger.info("ForecastEvaluator initialized")

    def calculate_metrics(
        self,
        actual: np.ndarray,
        predicted: np.ndarray,
        training: Optional[np.ndarray] = None
    ) -> Dict[str, float]:
        """
        Calculate forecast evaluation metrics.

        Args:
            actual: Actual values
            predicted: Predicted values, same length and order as actual
            training: Training values; enables MASE

        Returns:
            Dictionary of metric names and values

        Raises:
            ForecastAlignmentError: If the inputs are empty or differ in length

        Example:
            >>> metrics = evaluator.calculate_metrics(actual, predicted)
            >>> print(f"RMSE: {metrics['rmse']:.2f}")
        """
        actual = np.asarray(actual, dtype=float).flatten()
        predicted = np.asarray(predicted, dtype=float).flatten()

        if len(actual) == 0:
            raise ForecastAlignmentError("Cannot evaluate an empty forecast")
        if len(actual) != len(predicted):
            raise ForecastAlignmentError(
                f"Length mismatch: {len(actual)} actuals vs {len(predicted)} predictions"
            )
        if np.isnan(predicted).any():
            raise ForecastAlignmentError("Predictions contain missing values")

        mse = mean_squared_error(actual, predicted)
        metrics = {
            'rmse': float(np.sqrt(mse)),
            'mse': float(mse),
            'mae': float(mean_absolute_error(actual, predicted)),
            'bias': float(np.mean(predicted - actual))
        }

        # MAPE (avoiding division by zero)
        mask = actual != 0
        if mask.any():
            metrics['mape'] = float(np.mean(np.abs((actual[mask] - predicted[mask]) / actual[mask])) * 100)
        else:
            metrics['mape'] = np.nan

        # sMAPE (symmetric)
        denominator = np.abs(actual) + np.abs(predicted)
        mask = denominator != 0
        if mask.any():
            metrics['smape'] = float(np.mean(2 * np.abs(actual[mask] - predicted[mask]) / denominator[mask]) * 100)
        else:
            metrics['smape'] = 0.0

        metrics['r2'] = float(r2_score(actual, predicted)) if len(actual) > 1 else np.nan

        if training is not None:
            metrics['mase'] = self._calculate_mase(actual, predicted, np.asarray(training, dtype=float))

        return metrics

    def _calculate_mase(
        self,
        actual: np.ndarray,
        predicted: np.ndarray,
        training: np.ndarray
    ) -> float:
        """Mean Absolute Scaled Error against the in-sample seasonal naive MAE."""
        m = self.seasonal_period
        if len(training) <= m:
            return np.nan

        scale = np.mean(np.abs(training[m:] - training[:-m]))
        if scale == 0:
            return np.nan

        return float(np.mean(np.abs(actual - predicted)) / scale)

    def align(
        self,
        forecast: pd.DataFrame,
        actual: pd.DataFrame,
        date_column: str = 'date',
        value_column: str = 'sales'
    ) -> pd.DataFrame:
        """
        Align a forecast with held-out actuals on the exact date index.

        Args:
            forecast: Forecast with columns ds, yhat and optional interval columns
            actual: Held-out slice with the date and value columns

        Returns:
            DataFrame with ds, actual, yhat (+ yhat_lower, yhat_upper)

        Raises:
            ForecastAlignmentError: On differing lengths, differing dates or
                duplicated dates
        """
        forecast_dates = pd.DatetimeIndex(pd.to_datetime(forecast['ds']))
        actual_dates = pd.DatetimeIndex(pd.to_datetime(actual[date_column]))

        if forecast_dates.has_duplicates or actual_dates.has_duplicates:
            raise ForecastAlignmentError("Duplicate dates in forecast or actuals")

        if len(forecast_dates) != len(actual_dates):
            raise ForecastAlignmentError(
                f"Forecast has {len(forecast_dates)} periods, actuals have {len(actual_dates)}"
            )

        unmatched = forecast_dates.symmetric_difference(actual_dates)
        if len(unmatched) > 0:
            raise ForecastAlignmentError(
                f"Forecast and actual dates differ on {len(unmatched)} days, "
                f"first: {unmatched[0]:%Y-%m-%d}"
            )

        interval_cols = [c for c in ('yhat_lower', 'yhat_upper') if c in forecast.columns]
        aligned = pd.DataFrame({
            'ds': forecast_dates,
            **{c: forecast[c].values for c in ['yhat'] + interval_cols}
        })
        actuals = pd.Series(actual[value_column].values, index=actual_dates)
        aligned['actual'] = actuals.reindex(forecast_dates).values

        return aligned.sort_values('ds').reset_index(drop=True)

    def evaluate_forecast(
        self,
        forecast: pd.DataFrame,
        actual: pd.DataFrame,
        training: Optional[pd.DataFrame] = None,
        date_column: str = 'date',
        value_column: str = 'sales',
        target_coverage: float = 0.95
    ) -> Dict[str, float]:
        """
        Align a forecast with actuals and compute its metrics.

        Interval metrics (coverage, winkler) are added when the forecast has
        yhat_lower and yhat_upper columns.

        Example:
            >>> metrics = evaluator.evaluate_forecast(forecast, test, training=train)
        """
        aligned = self.align(forecast, actual, date_column, value_column)
        train_values = training[value_column].values if training is not None else None

        metrics = self.calculate_metrics(aligned['actual'].values, aligned['yhat'].values, train_values)

        if {'yhat_lower', 'yhat_upper'}.issubset(aligned.columns):
            interval = self.evaluate_interval_coverage(
                aligned['actual'].values,
                aligned['yhat_lower'].values,
                aligned['yhat_upper'].values,
                target_coverage=target_coverage
            )
            metrics['coverage'] = interval['actual_coverage']
            metrics['winkler'] = interval['winkler_score']

        return metrics

    def evaluate_interval_coverage(
        self,
        actual: np.ndarray,
        lower: np.ndarray,
        upper: np.ndarray,
        target_coverage: float = 0.95
    ) -> Dict[str, float]:
        """
        Evaluate prediction interval coverage and width.

        Args:
            actual: Actual values
            lower: Lower bound of prediction interval
            upper: Upper bound of prediction interval
            target_coverage: Expected coverage (e.g., 0.95)

        Returns:
            Dictionary with coverage metrics
        """
        actual = np.asarray(actual, dtype=float).flatten()
        lower = np.asarray(lower, dtype=float).flatten()
        upper = np.asarray(upper, dtype=float).flatten()

        within_interval = (actual >= lower) & (actual <= upper)
        actual_coverage = np.mean(within_interval)

        alpha = 1 - target_coverage

        return {
            'actual_coverage': float(actual_coverage * 100),
            'target_coverage': target_coverage * 100,
            'coverage_gap': float((actual_coverage - target_coverage) * 100),
            'mean_interval_width': float(np.mean(upper - lower)),
            'winkler_score': self._calculate_winkler_score(actual, lower, upper, alpha)
        }

    def _calculate_winkler_score(
        self,
        actual: np.ndarray,
        lower: np.ndarray,
        upper: np.ndarray,
        alpha: float
    ) -> float:
        """Calculate Winkler Score for prediction intervals."""
        width = upper - lower
        below = actual < lower
        above = actual > upper

        score = width.copy()
        score[below] += (2/alpha) * (lower[below] - actual[below])
        score[above] += (2/alpha) * (actual[above] - upper[above])

        return float(np.mean(score))

    def compare_models(
        self,
        model_metrics: Dict[str, Dict[str, float]]
    ) -> pd.DataFrame:
        """
        Rank models by accuracy.

        Args:
            model_metrics: Dictionary of model_name -> metrics

        Returns:
            DataFrame indexed by model, sorted by RMSE, then MAE, then name

        Example:
            >>> comparison = evaluator.compare_models({
            ...     'ARIMA': arima_metrics,
            ...     'Prophet': prophet_metrics
            ... })
        """
        if not model_metrics:
            raise ValueError("No model results to compare")

        comparison_df = pd.DataFrame.from_dict(model_metrics, orient='index')
        comparison_df.index.name = 'model'

        comparison_df = (
            comparison_df
            .reset_index()
            .sort_values(['rmse', 'mae', 'model'], kind='mergesort')
            .set_index('model')
        )
        comparison_df['rmse_rank'] = np.arange(1, len(comparison_df) + 1)

        logger.info(f"Model comparison complete. Best model: {comparison_df.index[0]}")
        return comparison_df

    def residual_diagnostics(self, residuals: np.ndarray, lags: Optional[int] = None) -> Dict[str, Any]:
        """
        Summarize in-sample residuals with a Ljung-Box autocorrelation test.

        Args:
            residuals: One-step residuals (NaNs are dropped)
            lags: Ljung-Box lag (defaults to two seasonal periods)

        Returns:
            Dictionary with residual mean, std and Ljung-Box results
        """
        residuals = np.asarray(residuals, dtype=float)
        residuals = residuals[~np.isnan(residuals)]

        diagnostics = {
            'mean': float(np.mean(residuals)) if len(residuals) else np.nan,
            'std': float(np.std(residuals)) if len(residuals) else np.nan
        }

        lags = lags or 2 * self.seasonal_period
        if len(residuals) > lags and np.std(residuals) > 0:
            lb_result = acorr_ljungbox(residuals, lags=[lags], return_df=True)
            p_value = float(lb_result['lb_pvalue'].values[0])
            diagnostics['ljung_box_stat'] = float(lb_result['lb_stat'].values[0])
            diagnostics['ljung_box_pvalue'] = p_value
            diagnostics['has_autocorrelation'] = p_value < 0.05
        else:
            diagnostics['ljung_box_stat'] = np.nan
            diagnostics['ljung_box_pvalue'] = np.nan
            diagnostics['has_autocorrelation'] = None

        return diagnostics
