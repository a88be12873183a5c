"""
ETS Forecasting Module
======================

Error-Trend-Seasonal exponential smoothing state space models with
either a fixed model form or automatic selection by information
criterion.

Usage:
    from retail_forecast.sales_prediction import ETSForecaster

    forecaster = ETSForecaster(auto=True, seasonal_period=7)
    forecaster.fit(train, 'date', 'sales')
    forecast = forecaster.predict(horizon=14)
"""

import pandas as pd
import numpy as np
from typing import Optional, Dict, Tuple, Any, List
from statsmodels.tsa.exponential_smoothing.ets import ETSModel
from loguru import logger
import warnings
import itertools

from .base import BaseForecaster
from ..common.exceptions import FitError

warnings.filterwarnings('ignore')


class ETSForecaster(BaseForecaster):
    """
    ETS forecasting with optional automatic model selection.

    With auto=True every admissible (error, trend, damped, seasonal)
    combination is fitted and the one with the lowest information criterion
    is kept. Multiplicative components are only tried on strictly positive
    series.

    Example:
        >>> forecaster = ETSForecaster(error='add', trend='add', seasonal='add')
        >>> forecaster.fit(train, 'date', 'sales')
        >>> forecast = forecaster.predict(horizon=14)
    """

    name = 'ETS'

    def __init__(
        self,
        error: str = 'add',
        trend: Optional[str] = None,
        damped_trend: bool = False,
        seasonal: Optional[str] = 'add',
        seasonal_period: int = 7,
        auto: bool = False,
        information_criterion: str = 'aic',
        maxiter: int = 1000
    ):
        """
        Initialize ETS Forecaster.

        Args:
            error: 'add' or 'mul'
            trend: None, 'add' or 'mul'
            damped_trend: Dampen the trend component
            seasonal: None, 'add' or 'mul'
            seasonal_period: Seasonal period (7 for weekly patterns in daily data)
            auto: Select the model form automatically
            information_criterion: Criterion for model selection ('aic', 'aicc', 'bic')
            maxiter: Maximum optimizer iterations
        """
        super().__init__()
        self.error = error
        self.trend = trend
        self.damped_trend = damped_trend and trend is not None
        self.seasonal = seasonal
        self.seasonal_period = seasonal_period
        self.auto = auto
        self.information_criterion = information_criterion
        self.maxiter = maxiter

        logger.info("ETSForecaster initialized")

    def _fit(self, ts: pd.Series) -> None:
        if self.auto:
            spec, results = self._select_model(ts)
            self.error, self.trend, self.damped_trend, self.seasonal = spec
        else:
            results = self._fit_spec(ts, (self.error, self.trend, self.damped_trend, self.seasonal))

        self._check_convergence(results)
        self.fitted_model = results
        logger.info(f"Model fitted: {self.spec_label} "
                    f"{self.information_criterion.upper()}: {self._score(results):.2f}")

    def _fit_spec(self, ts: pd.Series, spec: Tuple) -> Any:
        error, trend, damped, seasonal = spec
        try:
            model = ETSModel(
                ts,
                error=error,
                trend=trend,
                damped_trend=damped,
                seasonal=seasonal,
                seasonal_periods=self.seasonal_period if seasonal else None
            )
            return model.fit(disp=False, maxiter=self.maxiter)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise FitError(f"ETS{self._label(spec)} failed: {e}", model=self.name) from e

    def _candidate_specs(self, ts: pd.Series) -> List[Tuple]:
        positive = bool((ts > 0).all())
        errors = ['add', 'mul'] if positive else ['add']
        trends = [None, 'add']
        seasonals = [None, 'add', 'mul'] if positive else [None, 'add']

        if len(ts) < 2 * self.seasonal_period + 1:
            seasonals = [None]

        candidates = []
        for error, trend, seasonal in itertools.product(errors, trends, seasonals):
            # additive errors with multiplicative seasonality are numerically unstable
            if error == 'add' and seasonal == 'mul':
                continue
            dampings = [False, True] if trend else [False]
            for damped in dampings:
                candidates.append((error, trend, damped, seasonal))
        return candidates

    def _select_model(self, ts: pd.Series) -> Tuple[Tuple, Any]:
        best_score = float('inf')
        best = None

        for spec in self._candidate_specs(ts):
            try:
                results = self._fit_spec(ts, spec)
                self._check_convergence(results)
            except FitError as e:
                logger.debug(f"Skipping candidate: {e}")
                continue

            score = self._score(results)
            if np.isfinite(score) and score < best_score:
                best_score = score
                best = (spec, results)

        if best is None:
            raise FitError("no ETS specification converged", model=self.name)

        logger.info(f"Selected ETS{self._label(best[0])} "
                    f"({self.information_criterion}={best_score:.2f})")
        return best

    def _score(self, results: Any) -> float:
        return float(getattr(results, self.information_criterion))

    def _forecast(
        self,
        horizon: int,
        confidence_interval: float
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        n = len(self.train_data)
        prediction = self.fitted_model.get_prediction(start=n, end=n + horizon - 1)
        frame = prediction.summary_frame(alpha=1 - confidence_interval)
        return frame['mean'].values, frame['pi_lower'].values, frame['pi_upper'].values

    def _fitted_values(self) -> np.ndarray:
        return np.asarray(self.fitted_model.fittedvalues)

    @staticmethod
    def _label(spec: Tuple) -> str:
        error, trend, damped, seasonal = spec
        code = {None: 'N', 'add': 'A', 'mul': 'M'}
        trend_code = code[trend] + ('d' if damped else '')
        return f"({code[error]},{trend_code},{code[seasonal]})"

    @property
    def spec_label(self) -> str:
        return f"ETS{self._label((self.error, self.trend, self.damped_trend, self.seasonal))}"

    def get_model_info(self) -> Dict[str, Any]:
        """Get model information for reporting."""
        return {
            'type': self.spec_label,
            'auto': self.auto,
            'seasonal_period': self.seasonal_period,
            'aic': self.fitted_model.aic if self.fitted_model is not None else None,
            'bic': self.fitted_model.bic if self.fitted_model is not None else None,
            'n_observations': len(self.train_data) if self.train_data is not None else 0
        }
