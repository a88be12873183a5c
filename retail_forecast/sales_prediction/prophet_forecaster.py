"""
Prophet Forecasting Module
==========================

Implements Prophet for daily sales forecasting with multiplicative
seasonality and optional holiday effects.

Usage:
    from retail_forecast.sales_prediction import ProphetForecaster

    forecaster = ProphetForecaster()
    forecaster.fit(train, 'date', 'sales')
    forecast = forecaster.predict(horizon=14)
"""

import pandas as pd
import numpy as np
from typing import Optional, Dict, Tuple, Any, Union
from loguru import logger
import warnings

from .base import BaseForecaster
from ..common.exceptions import FitError

warnings.filterwarnings('ignore')

try:
    from prophet import Prophet
    PROPHET_AVAILABLE = True
except ImportError:
    PROPHET_AVAILABLE = False
    logger.warning("Prophet not installed. Install with: pip install prophet")


class ProphetForecaster(BaseForecaster):
    """
    Prophet forecasting with multiplicative seasonality by default.

    Features:
    - Weekly and yearly seasonality
    - Holiday effects from the holidays calendar
    - Trend changepoint detection
    - Uncertainty intervals

    Example:
        >>> forecaster = ProphetForecaster()
        >>> forecaster.fit(train, 'date', 'sales')
        >>> forecast = forecaster.predict(horizon=14)
        >>> components = forecaster.get_components()
    """

    name = 'Prophet'

    def __init__(
        self,
        growth: str = 'linear',
        seasonality_mode: str = 'multiplicative',
        yearly_seasonality: Union[bool, str] = 'auto',
        weekly_seasonality: Union[bool, str] = True,
        daily_seasonality: Union[bool, str] = False,
        changepoint_prior_scale: float = 0.05,
        seasonality_prior_scale: float = 10.0,
        holidays_prior_scale: float = 10.0,
        interval_width: float = 0.95,
        holidays: Optional[pd.DataFrame] = None
    ):
        """
        Initialize Prophet Forecaster.

        Args:
            growth: Growth model ('linear' or 'flat')
            seasonality_mode: 'additive' or 'multiplicative'
            yearly_seasonality: Enable yearly seasonality
            weekly_seasonality: Enable weekly seasonality
            daily_seasonality: Enable daily seasonality
            changepoint_prior_scale: Flexibility of trend changes
            seasonality_prior_scale: Flexibility of seasonality
            holidays_prior_scale: Flexibility of holiday effects
            interval_width: Width of uncertainty intervals
            holidays: DataFrame with 'holiday' and 'ds' columns
        """
        if not PROPHET_AVAILABLE:
            raise ImportError("Prophet is not installed")

        super().__init__()
        self.growth = growth
        self.seasonality_mode = seasonality_mode
        self.yearly_seasonality = yearly_seasonality
        self.weekly_seasonality = weekly_seasonality
        self.daily_seasonality = daily_seasonality
        self.changepoint_prior_scale = changepoint_prior_scale
        self.seasonality_prior_scale = seasonality_prior_scale
        self.holidays_prior_scale = holidays_prior_scale
        self.interval_width = interval_width
        self.holidays = holidays

        self.forecast = None

        logger.info("ProphetForecaster initialized")

    @staticmethod
    def holidays_from_calendar(
        calendar: pd.DataFrame,
        locales: Tuple[str, ...] = ('National',)
    ) -> pd.DataFrame:
        """
        Convert the holidays table into Prophet's holidays frame.

        Transferred holidays are dropped; the day they moved to appears as
        its own 'Transfer' row in the calendar.

        Args:
            calendar: Holidays table from DataLoader.load_holidays
            locales: Locales to keep

        Returns:
            DataFrame with 'holiday' and 'ds' columns
        """
        mask = calendar['locale'].isin(locales) & ~calendar['transferred']
        holidays = calendar.loc[mask, ['description', 'date']].rename(
            columns={'description': 'holiday', 'date': 'ds'}
        )
        return holidays.drop_duplicates().reset_index(drop=True)

    def _fit(self, ts: pd.Series) -> None:
        prophet_df = pd.DataFrame({'ds': ts.index, 'y': ts.values})

        prophet_params = {
            "growth": self.growth,
            "seasonality_mode": self.seasonality_mode,
            "yearly_seasonality": self.yearly_seasonality,
            "weekly_seasonality": self.weekly_seasonality,
            "daily_seasonality": self.daily_seasonality,
            "changepoint_prior_scale": self.changepoint_prior_scale,
            "seasonality_prior_scale": self.seasonality_prior_scale,
            "holidays_prior_scale": self.holidays_prior_scale,
            "interval_width": self.interval_width
        }
        if self.holidays is not None:
            prophet_params["holidays"] = self.holidays
        model = Prophet(**prophet_params)

        logger.info("Fitting Prophet model...")
        try:
            model.fit(prophet_df)
        except (RuntimeError, ValueError) as e:
            raise FitError(f"Prophet fit failed: {e}", model=self.name) from e

        self.fitted_model = model
        self._prophet_df = prophet_df
        logger.info(f"Model fitted on {len(prophet_df)} observations")

    @property
    def model(self):
        return self.fitted_model

    def _forecast(
        self,
        horizon: int,
        confidence_interval: float
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        future = self.model.make_future_dataframe(
            periods=horizon,
            freq=self.freq,
            include_history=False
        )

        # Prophet reads the interval width at prediction time; keep the
        # reported width in step with the last forecast
        self.model.interval_width = confidence_interval
        self.interval_width = confidence_interval
        self.forecast = self.model.predict(future)

        return (
            self.forecast['yhat'].values,
            self.forecast['yhat_lower'].values,
            self.forecast['yhat_upper'].values
        )

    def _fitted_values(self) -> np.ndarray:
        in_sample = self.model.predict(self._prophet_df[['ds']])
        return in_sample['yhat'].values

    def get_components(self) -> Dict[str, pd.DataFrame]:
        """
        Get forecast components (trend, seasonality, holidays).

        Returns:
            Dictionary with component DataFrames

        Example:
            >>> components = forecaster.get_components()
            >>> trend = components['trend']
        """
        if self.forecast is None:
            raise ValueError("No forecast available. Call predict() first.")

        components = {'trend': self.forecast[['ds', 'trend']].copy()}

        for name in ('yearly', 'weekly', 'daily', 'holidays'):
            if name in self.forecast.columns:
                components[name] = self.forecast[['ds', name]].copy()

        return components

    def get_model_info(self) -> Dict[str, Any]:
        """Get model information for reporting."""
        return {
            'type': 'Prophet',
            'growth': self.growth,
            'seasonality_mode': self.seasonality_mode,
            'yearly_seasonality': self.yearly_seasonality,
            'weekly_seasonality': self.weekly_seasonality,
            'n_holidays': len(self.holidays) if self.holidays is not None else 0,
            'n_observations': len(self.train_data) if self.train_data is not None else 0,
            'confidence_interval': self.interval_width * 100
        }
