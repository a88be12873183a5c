"""
Time Series Analysis Module
===========================

Decomposition, autocorrelation and stationarity tests used for exploratory
analysis and for choosing ARIMA differencing orders.

Usage:
    from retail_forecast.sales_prediction import time_series_analysis as tsa

    decomposition = tsa.stl_decompose(series['sales'], period=7)
    tsa.has_weekly_seasonality(series['sales'])
    d = tsa.ndiffs(series['sales'])
"""

import pandas as pd
import numpy as np
from typing import Dict, Any
from statsmodels.tsa.seasonal import STL, DecomposeResult
from statsmodels.tsa.stattools import acf, adfuller, kpss
from loguru import logger
import warnings

warnings.filterwarnings('ignore')


def stl_decompose(
    series: pd.Series,
    period: int = 7,
    robust: bool = True
) -> DecomposeResult:
    """
    Seasonal-trend decomposition using Loess.

    Args:
        series: Daily series (contiguous, no missing values)
        period: Seasonal period
        robust: Use robust weights to limit the influence of outliers

    Returns:
        statsmodels DecomposeResult with trend, seasonal and resid
    """
    if len(series) < 2 * period:
        raise ValueError(f"STL needs at least two seasons ({2 * period} points), got {len(series)}")

    result = STL(series, period=period, robust=robust).fit()
    logger.debug(f"STL decomposition done (period={period})")
    return result


def seasonal_strength(decomposition: DecomposeResult) -> float:
    """Strength of seasonality: max(0, 1 - Var(R) / Var(S + R))."""
    resid = np.asarray(decomposition.resid)
    detrended = np.asarray(decomposition.seasonal) + resid
    denominator = np.var(detrended)
    if denominator == 0:
        return 0.0
    return float(max(0.0, 1 - np.var(resid) / denominator))


def trend_strength(decomposition: DecomposeResult) -> float:
    """Strength of trend: max(0, 1 - Var(R) / Var(T + R))."""
    resid = np.asarray(decomposition.resid)
    deseasonalized = np.asarray(decomposition.trend) + resid
    denominator = np.var(deseasonalized)
    if denominator == 0:
        return 0.0
    return float(max(0.0, 1 - np.var(resid) / denominator))


def autocorrelation(series: pd.Series, nlags: int = 28) -> pd.Series:
    """
    Sample autocorrelation function.

    Returns:
        Series indexed by lag (0..nlags)
    """
    values = acf(np.asarray(series, dtype=float), nlags=nlags, fft=True)
    return pd.Series(values, index=pd.RangeIndex(len(values), name='lag'), name='acf')


def has_weekly_seasonality(series: pd.Series, period: int = 7) -> bool:
    """
    Detect a weekly pattern from the autocorrelation spike at lag `period`.

    True when the ACF at the seasonal lag lies outside the 95% band and is the
    largest autocorrelation among lags 2..period.
    """
    correlations = autocorrelation(series, nlags=period)
    bound = 1.96 / np.sqrt(len(series))
    seasonal = correlations.loc[period]
    others = correlations.loc[2:period - 1]

    return bool(seasonal > bound and (others.empty or seasonal >= others.max()))


def kpss_test(series: pd.Series, alpha: float = 0.05, regression: str = 'c') -> Dict[str, Any]:
    """
    KPSS test; the null hypothesis is stationarity.

    statsmodels truncates p-values to the [0.01, 0.1] table range.
    """
    statistic, p_value, lags, critical = kpss(
        np.asarray(series, dtype=float), regression=regression, nlags='auto'
    )
    return {
        'statistic': float(statistic),
        'p_value': float(p_value),
        'lags': int(lags),
        'critical_values': critical,
        'is_stationary': bool(p_value >= alpha)
    }


def adf_test(series: pd.Series, alpha: float = 0.05) -> Dict[str, Any]:
    """Augmented Dickey-Fuller test; the null hypothesis is a unit root."""
    result = adfuller(np.asarray(series, dtype=float), autolag='AIC')
    return {
        'statistic': float(result[0]),
        'p_value': float(result[1]),
        'lags': int(result[2]),
        'critical_values': result[4],
        'is_stationary': bool(result[1] < alpha)
    }


def ndiffs(series: pd.Series, alpha: float = 0.05, max_d: int = 2) -> int:
    """
    Number of first differences needed for KPSS stationarity.

    Returns the smallest d in 0..max_d for which the KPSS test does not
    reject stationarity, or max_d when none does.
    """
    test_series = pd.Series(np.asarray(series, dtype=float))

    for d in range(max_d + 1):
        if d > 0:
            test_series = test_series.diff().dropna()
        if test_series.nunique() <= 1:
            logger.debug(f"Series constant after d={d}")
            return d

        result = kpss_test(test_series, alpha=alpha)
        if result['is_stationary']:
            logger.debug(f"Series stationary at d={d} (p={result['p_value']:.4f})")
            return d

    return max_d


def nsdiffs(series: pd.Series, period: int = 7, threshold: float = 0.64) -> int:
    """Number of seasonal differences: 1 when STL seasonal strength >= threshold."""
    if len(series) < 2 * period:
        return 0
    strength = seasonal_strength(stl_decompose(series, period=period))
    logger.debug(f"Seasonal strength {strength:.3f} (period={period})")
    return int(strength >= threshold)


def stationarity_report(series: pd.Series, period: int = 7) -> Dict[str, Any]:
    """Collect ADF, KPSS and differencing recommendations for logging."""
    return {
        'adf': adf_test(series),
        'kpss': kpss_test(series),
        'ndiffs': ndiffs(series),
        'nsdiffs': nsdiffs(series, period=period)
    }
