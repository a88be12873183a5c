"""
Benchmark Forecasting Module
============================

Simple benchmark methods: mean, naive, seasonal naive and drift.
Prediction intervals assume normally distributed one-step residuals.

Usage:
    from retail_forecast.sales_prediction import SeasonalNaiveForecaster

    forecaster = SeasonalNaiveForecaster(period=7)
    forecaster.fit(train, 'date', 'sales')
    forecast = forecaster.predict(horizon=14)
"""

import pandas as pd
import numpy as np
from typing import Dict, Tuple, Any
from scipy import stats

from .base import BaseForecaster


class _BenchmarkForecaster(BaseForecaster):
    """Benchmark methods keep their state in plain arrays."""

    def _fit(self, ts: pd.Series) -> None:
        y = ts.values
        self._fitted = self._compute_fitted(y)
        resid = y - self._fitted
        resid = resid[~np.isnan(resid)]
        self.sigma = float(np.std(resid, ddof=1)) if len(resid) > 1 else 0.0
        self.fitted_model = {'y': y, 'sigma': self.sigma}

    def _compute_fitted(self, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _point_forecast(self, horizon: int) -> np.ndarray:
        raise NotImplementedError

    def _standard_errors(self, horizon: int) -> np.ndarray:
        raise NotImplementedError

    def _forecast(
        self,
        horizon: int,
        confidence_interval: float
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        mean = self._point_forecast(horizon)
        z = stats.norm.ppf(0.5 + confidence_interval / 2)
        margin = z * self._standard_errors(horizon)
        return mean, mean - margin, mean + margin

    def _fitted_values(self) -> np.ndarray:
        return self._fitted

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info['residual_std'] = getattr(self, 'sigma', None)
        return info


class MeanForecaster(_BenchmarkForecaster):
    """Forecast every future day as the historical mean."""

    name = 'Mean'

    def _compute_fitted(self, y: np.ndarray) -> np.ndarray:
        return np.full(len(y), y.mean())

    def _point_forecast(self, horizon: int) -> np.ndarray:
        return np.full(horizon, self.fitted_model['y'].mean())

    def _standard_errors(self, horizon: int) -> np.ndarray:
        n = len(self.fitted_model['y'])
        return np.full(horizon, self.sigma * np.sqrt(1 + 1 / n))


class NaiveForecaster(_BenchmarkForecaster):
    """Forecast every future day as the last observation."""

    name = 'Naive'

    def _compute_fitted(self, y: np.ndarray) -> np.ndarray:
        fitted = np.full(len(y), np.nan)
        fitted[1:] = y[:-1]
        return fitted

    def _point_forecast(self, horizon: int) -> np.ndarray:
        return np.full(horizon, self.fitted_model['y'][-1])

    def _standard_errors(self, horizon: int) -> np.ndarray:
        return self.sigma * np.sqrt(np.arange(1, horizon + 1))


class SeasonalNaiveForecaster(_BenchmarkForecaster):
    """
    Repeat the last observed season.

    With period=7 the forecast for each future day is the value observed on
    the same weekday in the last training week.
    """

    name = 'Seasonal Naive'

    def __init__(self, period: int = 7):
        super().__init__()
        if period < 1:
            raise ValueError(f"Period must be positive, got {period}")
        self.period = period

    def _fit(self, ts: pd.Series) -> None:
        if len(ts) <= self.period:
            raise ValueError(
                f"Seasonal naive needs more than one season ({self.period} days), got {len(ts)}"
            )
        super()._fit(ts)

    def _compute_fitted(self, y: np.ndarray) -> np.ndarray:
        m = self.period
        fitted = np.full(len(y), np.nan)
        fitted[m:] = y[:-m]
        return fitted

    def _point_forecast(self, horizon: int) -> np.ndarray:
        y = self.fitted_model['y']
        last_season = y[-self.period:]
        steps = np.arange(horizon)
        return last_season[steps % self.period]

    def _standard_errors(self, horizon: int) -> np.ndarray:
        k = (np.arange(1, horizon + 1) - 1) // self.period
        return self.sigma * np.sqrt(k + 1)

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info['period'] = self.period
        return info


class DriftForecaster(_BenchmarkForecaster):
    """Extend the line between the first and last observations."""

    name = 'Drift'

    def _fit(self, ts: pd.Series) -> None:
        y = ts.values
        self.slope = float((y[-1] - y[0]) / (len(y) - 1))
        super()._fit(ts)

    def _compute_fitted(self, y: np.ndarray) -> np.ndarray:
        fitted = np.full(len(y), np.nan)
        fitted[1:] = y[:-1] + self.slope
        return fitted

    def _point_forecast(self, horizon: int) -> np.ndarray:
        h = np.arange(1, horizon + 1)
        return self.fitted_model['y'][-1] + h * self.slope

    def _standard_errors(self, horizon: int) -> np.ndarray:
        n = len(self.fitted_model['y'])
        h = np.arange(1, horizon + 1)
        return self.sigma * np.sqrt(h * (1 + h / (n - 1)))

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info['slope'] = getattr(self, 'slope', None)
        return info
