"""
ARIMA Forecasting Module
========================

Implements ARIMA and SARIMA models for daily sales forecasting with
manual orders or automatic order selection.

Usage:
    from retail_forecast.sales_prediction import ARIMAForecaster

    forecaster = ARIMAForecaster(order=(1, 0, 1), seasonal_order=(0, 1, 1, 7))
    forecaster.fit(train, 'date', 'sales')
    forecast = forecaster.predict(horizon=14)
"""

import pandas as pd
import numpy as np
from typing import Optional, Dict, Tuple, Any, List
from statsmodels.tsa.statespace.sarimax import SARIMAX
from statsmodels.stats.diagnostic import acorr_ljungbox
from loguru import logger
import warnings
import itertools

from .base import BaseForecaster
from .time_series_analysis import ndiffs, nsdiffs
from ..common.exceptions import FitError

warnings.filterwarnings('ignore')


class ARIMAForecaster(BaseForecaster):
    """
    ARIMA/SARIMA forecasting with manual or automatic order selection.

    Automatic selection picks the differencing order with KPSS tests, the
    seasonal differencing order from STL seasonal strength, then searches
    (p, q) and the seasonal (P, Q) by information criterion.

    Example:
        >>> forecaster = ARIMAForecaster(auto_order=True, seasonal_period=7)
        >>> forecaster.fit(train, 'date', 'sales')
        >>> forecast = forecaster.predict(horizon=14)
        >>> diagnostics = forecaster.get_diagnostics()
    """

    name = 'ARIMA'

    def __init__(
        self,
        order: Optional[Tuple[int, int, int]] = None,
        seasonal_order: Optional[Tuple[int, int, int, int]] = None,
        auto_order: bool = True,
        max_p: int = 3,
        max_d: int = 2,
        max_q: int = 3,
        seasonal: bool = True,
        seasonal_period: int = 7,
        information_criterion: str = 'aic',
        maxiter: int = 200
    ):
        """
        Initialize ARIMA Forecaster.

        Args:
            order: Manual (p, d, q) order (overrides auto)
            seasonal_order: Manual (P, D, Q, s) seasonal order
            auto_order: Automatically select optimal orders
            max_p: Maximum AR order to test
            max_d: Maximum differencing order to test
            max_q: Maximum MA order to test
            seasonal: Include seasonal components
            seasonal_period: Seasonal period (7 for weekly patterns in daily data)
            information_criterion: Criterion for model selection ('aic', 'bic')
            maxiter: Maximum optimizer iterations
        """
        super().__init__()
        self.manual_order = tuple(order) if order is not None else None
        self.manual_seasonal_order = tuple(seasonal_order) if seasonal_order is not None else None
        self.auto_order = auto_order
        self.max_p = max_p
        self.max_d = max_d
        self.max_q = max_q
        self.seasonal = seasonal or self.manual_seasonal_order is not None
        self.seasonal_period = seasonal_period
        self.information_criterion = information_criterion
        self.maxiter = maxiter

        self.order = None
        self.seasonal_order = None

        logger.info("ARIMAForecaster initialized")

    def _fit(self, ts: pd.Series) -> None:
        # Determine order
        if self.manual_order:
            self.order = self.manual_order
        elif self.auto_order:
            self.order = self._find_optimal_order(ts)
        else:
            self.order = (1, ndiffs(ts, max_d=self.max_d), 1)

        logger.info(f"Using ARIMA order: {self.order}")

        # Determine seasonal order
        if self.seasonal:
            if self.manual_seasonal_order:
                self.seasonal_order = self.manual_seasonal_order
            elif self.auto_order:
                self.seasonal_order = self._find_seasonal_order(ts)
            else:
                D = nsdiffs(ts, period=self.seasonal_period)
                self.seasonal_order = (1, D, 1, self.seasonal_period)
            logger.info(f"Using seasonal order: {self.seasonal_order}")
        else:
            self.seasonal_order = (0, 0, 0, 0)

        self.fitted_model = self._fit_orders(ts, self.order, self.seasonal_order)
        logger.info(f"Model fitted. AIC: {self.fitted_model.aic:.2f}")

    def _fit_orders(
        self,
        ts: pd.Series,
        order: Tuple[int, int, int],
        seasonal_order: Tuple[int, int, int, int]
    ) -> Any:
        """Fit one SARIMAX specification, raising FitError on failure."""
        label = f"{order}{seasonal_order}"
        try:
            model = SARIMAX(
                ts,
                order=order,
                seasonal_order=seasonal_order,
                enforce_stationarity=False,
                enforce_invertibility=False
            )
            fitted = model.fit(disp=False, maxiter=self.maxiter)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise FitError(f"SARIMAX{label} failed: {e}", model=self.name) from e

        try:
            self._check_convergence(fitted)
        except FitError as e:
            raise FitError(f"SARIMAX{label}: {e.reason}", model=self.name) from e
        return fitted

    def _score(self, fitted: Any) -> float:
        if self.information_criterion == 'aic':
            return fitted.aic
        return fitted.bic

    def _find_optimal_order(self, ts: pd.Series) -> Tuple[int, int, int]:
        """Find optimal ARIMA order using grid search."""
        d = ndiffs(ts, max_d=self.max_d)

        best_score = float('inf')
        best_order = None

        p_range = range(0, self.max_p + 1)
        q_range = range(0, self.max_q + 1)

        for p, q in itertools.product(p_range, q_range):
            if p == 0 and q == 0:
                continue

            try:
                fitted = self._fit_orders(ts, (p, d, q), (0, 0, 0, 0))
            except FitError as e:
                logger.debug(f"Skipping candidate: {e}")
                continue

            score = self._score(fitted)
            if np.isfinite(score) and score < best_score:
                best_score = score
                best_order = (p, d, q)

        if best_order is None:
            raise FitError(f"no ARIMA order converged (d={d})", model=self.name)

        logger.info(f"Optimal order: {best_order} ({self.information_criterion}={best_score:.2f})")
        return best_order

    def _seasonal_candidates(self, D: int) -> List[Tuple[int, int, int, int]]:
        s = self.seasonal_period
        return [
            (1, D, 1, s),
            (0, D, 1, s),
            (1, D, 0, s),
            (2, D, 1, s),
            (1, D, 2, s)
        ]

    def _find_seasonal_order(self, ts: pd.Series) -> Tuple[int, int, int, int]:
        """Find optimal seasonal order among common patterns."""
        D = nsdiffs(ts, period=self.seasonal_period)

        best_score = float('inf')
        best_order = None

        for seasonal_order in self._seasonal_candidates(D):
            try:
                fitted = self._fit_orders(ts, self.order, seasonal_order)
            except FitError as e:
                logger.debug(f"Skipping candidate: {e}")
                continue

            score = self._score(fitted)
            if np.isfinite(score) and score < best_score:
                best_score = score
                best_order = seasonal_order

        if best_order is None:
            raise FitError(f"no seasonal order converged for {self.order}", model=self.name)

        return best_order

    def _forecast(
        self,
        horizon: int,
        confidence_interval: float
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        forecast = self.fitted_model.get_forecast(steps=horizon)
        conf_int = forecast.conf_int(alpha=1 - confidence_interval)
        return (
            forecast.predicted_mean.values,
            conf_int.iloc[:, 0].values,
            conf_int.iloc[:, 1].values
        )

    def _fitted_values(self) -> np.ndarray:
        return np.asarray(self.fitted_model.fittedvalues)

    @property
    def spec_label(self) -> str:
        if self.order is None:
            return self.name
        p, d, q = self.order
        label = f"ARIMA({p},{d},{q})"
        if self.seasonal_order and self.seasonal_order[3]:
            P, D, Q, s = self.seasonal_order
            label += f"({P},{D},{Q})[{s}]"
        return label

    def get_diagnostics(self) -> Dict[str, Any]:
        """
        Get model diagnostics and statistics.

        Returns:
            Dictionary with diagnostic information

        Example:
            >>> diagnostics = forecaster.get_diagnostics()
            >>> print(f"AIC: {diagnostics['aic']}")
        """
        self._check_fitted()

        residuals = self.fitted_model.resid

        diagnostics = {
            'order': self.order,
            'seasonal_order': self.seasonal_order,
            'aic': self.fitted_model.aic,
            'bic': self.fitted_model.bic,
            'n_observations': len(self.train_data),
            'residual_mean': residuals.mean(),
            'residual_std': residuals.std(),
            'ljung_box_pvalue': self._ljung_box_test(residuals)
        }

        return diagnostics

    def _ljung_box_test(self, residuals: pd.Series) -> float:
        """Perform Ljung-Box test on residuals."""
        lags = min(2 * self.seasonal_period, len(residuals) - 1)
        result = acorr_ljungbox(residuals, lags=[lags], return_df=True)
        return float(result['lb_pvalue'].values[0])

    def get_model_info(self) -> Dict[str, Any]:
        """Get model information for reporting."""
        return {
            'type': self.spec_label,
            'order': self.order,
            'seasonal_order': self.seasonal_order,
            'auto_order': self.auto_order and self.manual_order is None,
            'aic': self.fitted_model.aic if self.fitted_model is not None else None,
            'bic': self.fitted_model.bic if self.fitted_model is not None else None,
            'n_observations': len(self.train_data) if self.train_data is not None else 0
        }
