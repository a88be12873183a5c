"""
Forecaster Base Module
======================

Shared contract for every forecasting model: fit on a contiguous daily
series, forecast a fixed number of days ahead with prediction intervals.

Usage:
    forecaster = SeasonalNaiveForecaster(period=7)
    forecaster.fit(train, 'date', 'sales')
    forecast = forecaster.predict(horizon=14)
"""

import pandas as pd
import numpy as np
from typing import Optional, Dict, Tuple, Any
from loguru import logger

from ..common.exceptions import FitError


class BaseForecaster:
    """
    Base class for daily sales forecasters.

    Subclasses implement _fit, _forecast and _fitted_values. The base class
    owns input preparation, the future date index and the result layout
    (ds, yhat, yhat_lower, yhat_upper).
    """

    name = 'base'
    freq = 'D'

    def __init__(self):
        self.fitted_model = None
        self.train_data: Optional[pd.Series] = None
        self.date_column: Optional[str] = None
        self.value_column: Optional[str] = None

    def fit(
        self,
        df: pd.DataFrame,
        date_column: str = 'date',
        value_column: str = 'sales'
    ) -> 'BaseForecaster':
        """
        Fit the model to a training series.

        Args:
            df: DataFrame with one row per calendar day
            date_column: Name of date column
            value_column: Name of value column

        Returns:
            Self for method chaining

        Raises:
            ValueError: If the series is not a contiguous daily series
            FitError: If the underlying estimator fails or does not converge
        """
        self.date_column = date_column
        self.value_column = value_column
        self.train_data = self._prepare_series(df, date_column, value_column)

        logger.info(f"Fitting {self.name} on {len(self.train_data)} observations")
        self._fit(self.train_data)
        return self

    def predict(
        self,
        horizon: int = 30,
        confidence_interval: float = 0.95
    ) -> pd.DataFrame:
        """
        Generate forecasts for the days following the training data.

        Args:
            horizon: Number of days to forecast
            confidence_interval: Coverage of the prediction interval

        Returns:
            DataFrame with columns: ds, yhat, yhat_lower, yhat_upper
        """
        self._check_fitted()

        if int(horizon) != horizon or horizon < 1:
            raise ValueError(f"Horizon must be a positive integer, got {horizon}")
        if not 0 < confidence_interval < 1:
            raise ValueError(f"Confidence interval must be in (0, 1), got {confidence_interval}")
        horizon = int(horizon)

        mean, lower, upper = self._forecast(horizon, confidence_interval)

        result = pd.DataFrame({
            'ds': self._future_dates(horizon),
            'yhat': np.asarray(mean, dtype=float),
            'yhat_lower': np.asarray(lower, dtype=float),
            'yhat_upper': np.asarray(upper, dtype=float)
        })

        logger.info(f"{self.name}: generated {horizon}-period forecast")
        return result

    def predict_in_sample(self) -> pd.DataFrame:
        """
        Get in-sample predictions for model evaluation.

        Returns:
            DataFrame with actual and predicted values
        """
        self._check_fitted()

        predicted = np.asarray(self._fitted_values(), dtype=float)

        return pd.DataFrame({
            'ds': self.train_data.index,
            'actual': self.train_data.values,
            'predicted': predicted
        })

    def residuals(self) -> pd.Series:
        """In-sample one-step residuals (NaN where no fitted value exists)."""
        in_sample = self.predict_in_sample()
        return pd.Series(
            (in_sample['actual'] - in_sample['predicted']).values,
            index=in_sample['ds'],
            name='residual'
        )

    def get_model_info(self) -> Dict[str, Any]:
        """Get model information for reporting."""
        return {
            'type': self.name,
            'n_observations': len(self.train_data) if self.train_data is not None else 0
        }

    def _fit(self, ts: pd.Series) -> None:
        raise NotImplementedError

    def _forecast(
        self,
        horizon: int,
        confidence_interval: float
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        raise NotImplementedError

    def _fitted_values(self) -> np.ndarray:
        raise NotImplementedError

    def _check_fitted(self) -> None:
        if self.fitted_model is None:
            raise ValueError("Model not fitted. Call fit() first.")

    def _future_dates(self, horizon: int) -> pd.DatetimeIndex:
        last_date = self.train_data.index[-1]
        return pd.date_range(
            start=last_date + pd.Timedelta(days=1),
            periods=horizon,
            freq=self.freq
        )

    def _prepare_series(
        self,
        df: pd.DataFrame,
        date_column: str,
        value_column: str
    ) -> pd.Series:
        """Turn a slice into a float Series with a daily DatetimeIndex."""
        for col in (date_column, value_column):
            if col not in df.columns:
                raise ValueError(f"Column '{col}' not in training data")

        df = df[[date_column, value_column]].copy()
        df[date_column] = pd.to_datetime(df[date_column])
        df = df.sort_values(date_column)

        ts = df.set_index(date_column)[value_column].astype(float)

        if len(ts) < 2:
            raise ValueError(f"Need at least 2 observations, got {len(ts)}")
        if ts.index.has_duplicates:
            raise ValueError("Training series has duplicate dates")

        expected = pd.date_range(ts.index[0], ts.index[-1], freq=self.freq)
        if len(expected) != len(ts):
            raise ValueError(
                f"Training series is not contiguous: {len(expected) - len(ts)} missing days. "
                "Fill the calendar before fitting."
            )
        if ts.isna().any():
            raise ValueError(f"Training series has {int(ts.isna().sum())} missing values")

        return ts.asfreq(self.freq)

    def _check_convergence(self, results: Any) -> None:
        """Raise FitError when a statsmodels result did not converge."""
        retvals = getattr(results, 'mle_retvals', None) or {}
        converged = retvals.get('converged', retvals.get('success', True))
        if not converged:
            raise FitError("optimizer did not converge", model=self.name)

        params = np.asarray(getattr(results, 'params', []), dtype=float)
        if params.size and not np.all(np.isfinite(params)):
            raise FitError("estimated parameters are not finite", model=self.name)
