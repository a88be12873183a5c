"""
Visualization Module
====================

Exploratory and forecast charts for store sales series with support for
static and interactive plots. Every method returns the figure and leaves
its input tables untouched.

Usage:
    from retail_forecast.common import Visualizer

    viz = Visualizer(output_dir="outputs/plots")
    viz.plot_time_series(series, 'date', 'sales', title='Daily Sales')
    viz.plot_box(series, 'day_of_week', 'sales', title='Sales by Weekday')
"""

import pandas as pd
import numpy as np
from pathlib import Path
from typing import Optional, List, Dict, Tuple, Any
import matplotlib.pyplot as plt
import seaborn as sns
import plotly.graph_objects as go
from statsmodels.graphics.tsaplots import plot_acf
from loguru import logger
import warnings

warnings.filterwarnings('ignore')


class Visualizer:
    """
    Visualization toolkit for sales forecasting.

    Supports both static (matplotlib/seaborn) and interactive (plotly)
    visualizations with consistent styling and export capabilities.

    Example:
        >>> viz = Visualizer(output_dir="outputs/plots")
        >>> viz.plot_time_series(series, 'date', 'sales')
        >>> viz.plot_decomposition(decomposition, title='STL (period 7)')
    """

    def __init__(
        self,
        output_dir: str = "outputs/plots",
        style: str = "seaborn-v0_8-whitegrid",
        figsize: Tuple[int, int] = (12, 6),
        dpi: int = 100,
        palette: str = "husl",
        show: bool = False
    ):
        """
        Initialize Visualizer.

        Args:
            output_dir: Directory for saving plots
            style: Matplotlib style
            figsize: Default figure size
            dpi: Resolution for saved figures
            palette: Color palette
            show: Display each figure with plt.show() after drawing it
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.figsize = figsize
        self.dpi = dpi
        self.palette = palette
        self.show = show

        try:
            plt.style.use(style)
        except OSError:
            plt.style.use('seaborn-v0_8-whitegrid')

        sns.set_palette(palette)
        logger.info(f"Visualizer initialized. Output: {self.output_dir}")

    def _finish(self, fig: plt.Figure, save_name: Optional[str], kind: str) -> plt.Figure:
        fig.tight_layout()

        if save_name:
            save_path = self.output_dir / f"{save_name}.png"
            fig.savefig(save_path, dpi=self.dpi, bbox_inches='tight')
            logger.info(f"Saved {kind}: {save_path}")

        if self.show:
            plt.show()
        else:
            plt.close(fig)
        return fig

    @staticmethod
    def _label(column: str) -> str:
        return column.replace('_', ' ').title()

    def plot_time_series(
        self,
        df: pd.DataFrame,
        date_column: str,
        value_column: str,
        title: str = "Time Series",
        forecast_df: Optional[pd.DataFrame] = None,
        confidence_interval: Optional[Tuple[str, str]] = None,
        save_name: Optional[str] = None,
        interactive: bool = False
    ) -> Any:
        """
        Plot time series data with optional forecast and confidence intervals.

        Args:
            df: DataFrame with time series data
            date_column: Name of date column
            value_column: Name of value column
            title: Plot title
            forecast_df: DataFrame with forecasted values (same column names)
            confidence_interval: Tuple of (lower, upper) column names
            save_name: Filename for saving plot
            interactive: Use plotly for interactive plot

        Returns:
            Matplotlib figure, or plotly figure if interactive
        """
        if interactive:
            return self._plot_time_series_interactive(
                df, date_column, value_column, title,
                forecast_df, confidence_interval, save_name
            )

        fig, ax = plt.subplots(figsize=self.figsize)

        ax.plot(df[date_column], df[value_column], label='Actual', linewidth=1.5)

        if forecast_df is not None:
            ax.plot(
                forecast_df[date_column],
                forecast_df[value_column],
                label='Forecast',
                linestyle='--',
                linewidth=2
            )

            if confidence_interval:
                lower_col, upper_col = confidence_interval
                ax.fill_between(
                    forecast_df[date_column],
                    forecast_df[lower_col],
                    forecast_df[upper_col],
                    alpha=0.3,
                    label='Prediction interval'
                )

        ax.set_xlabel('Date', fontsize=12)
        ax.set_ylabel(self._label(value_column), fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.legend()
        ax.grid(True, alpha=0.3)

        return self._finish(fig, save_name, 'plot')

    def _plot_time_series_interactive(
        self,
        df: pd.DataFrame,
        date_column: str,
        value_column: str,
        title: str,
        forecast_df: Optional[pd.DataFrame],
        confidence_interval: Optional[Tuple[str, str]],
        save_name: Optional[str]
    ) -> go.Figure:
        """Create interactive time series plot with plotly."""
        fig = go.Figure()

        fig.add_trace(go.Scatter(
            x=df[date_column],
            y=df[value_column],
            mode='lines',
            name='Actual',
            line=dict(width=2)
        ))

        if forecast_df is not None:
            fig.add_trace(go.Scatter(
                x=forecast_df[date_column],
                y=forecast_df[value_column],
                mode='lines',
                name='Forecast',
                line=dict(dash='dash', width=2)
            ))

            if confidence_interval:
                lower_col, upper_col = confidence_interval
                fig.add_trace(go.Scatter(
                    x=pd.concat([forecast_df[date_column], forecast_df[date_column][::-1]]),
                    y=pd.concat([forecast_df[upper_col], forecast_df[lower_col][::-1]]),
                    fill='toself',
                    fillcolor='rgba(68, 68, 68, 0.2)',
                    line=dict(color='rgba(255,255,255,0)'),
                    name='Prediction interval'
                ))

        fig.update_layout(
            title=title,
            xaxis_title='Date',
            yaxis_title=self._label(value_column),
            hovermode='x unified'
        )

        if save_name:
            save_path = self.output_dir / f"{save_name}.html"
            fig.write_html(str(save_path))
            logger.info(f"Saved interactive plot: {save_path}")

        return fig

    def plot_box(
        self,
        df: pd.DataFrame,
        x_column: str,
        y_column: str,
        title: str = "Distribution",
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """
        Box plot of a value across categories (e.g. sales by weekday).

        Args:
            df: Input DataFrame
            x_column: Category column
            y_column: Value column
            title: Plot title
            save_name: Filename for saving
        """
        fig, ax = plt.subplots(figsize=self.figsize)

        sns.boxplot(data=df, x=x_column, y=y_column, ax=ax)

        ax.set_xlabel(self._label(x_column), fontsize=12)
        ax.set_ylabel(self._label(y_column), fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.tick_params(axis='x', rotation=45)
        ax.grid(True, alpha=0.3, axis='y')

        return self._finish(fig, save_name, 'box plot')

    def plot_bar(
        self,
        df: pd.DataFrame,
        x_column: str,
        y_column: str,
        title: str = "Totals",
        top_n: Optional[int] = None,
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """
        Horizontal bar chart of totals by category, largest first.

        Args:
            df: Aggregated DataFrame
            x_column: Category column
            y_column: Value column
            title: Plot title
            top_n: Number of categories to show
            save_name: Filename for saving
        """
        data = df.sort_values(y_column, ascending=False)
        if top_n:
            data = data.head(top_n)

        fig, ax = plt.subplots(figsize=self.figsize)

        ax.barh(
            data[x_column].astype(str),
            data[y_column],
            color=sns.color_palette(self.palette)[0]
        )
        ax.invert_yaxis()

        ax.set_xlabel(self._label(y_column), fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3, axis='x')

        return self._finish(fig, save_name, 'bar chart')

    def plot_decomposition(
        self,
        decomposition: Any,
        title: str = "STL Decomposition",
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """
        Plot the observed, trend, seasonal and residual panels.

        Args:
            decomposition: statsmodels DecomposeResult
            title: Plot title
            save_name: Filename for saving
        """
        panels = {
            'Observed': decomposition.observed,
            'Trend': decomposition.trend,
            'Seasonal': decomposition.seasonal,
            'Residual': decomposition.resid
        }

        fig, axes = plt.subplots(len(panels), 1, figsize=(self.figsize[0], 10), sharex=True)

        for ax, (name, values) in zip(axes, panels.items()):
            if name == 'Residual':
                ax.scatter(values.index, values.values, s=4, alpha=0.6)
                ax.axhline(0, color='black', linewidth=0.8)
            else:
                ax.plot(values.index, values.values, linewidth=1)
            ax.set_ylabel(name)
            ax.grid(True, alpha=0.3)

        axes[-1].set_xlabel('Date')
        fig.suptitle(title, fontsize=14, fontweight='bold')

        return self._finish(fig, save_name, 'decomposition plot')

    def plot_acf(
        self,
        series: pd.Series,
        lags: int = 28,
        title: str = "Autocorrelation",
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """Autocorrelation bars with the 95% confidence band."""
        fig, ax = plt.subplots(figsize=self.figsize)

        plot_acf(np.asarray(series, dtype=float), lags=lags, ax=ax, zero=False)

        ax.set_xlabel('Lag (days)', fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3)

        return self._finish(fig, save_name, 'ACF plot')

    def plot_forecasts(
        self,
        history: pd.DataFrame,
        actual: pd.DataFrame,
        forecasts: Dict[str, pd.DataFrame],
        date_column: str = 'date',
        value_column: str = 'sales',
        title: str = "Forecast Comparison",
        history_points: int = 56,
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """
        Plot several models' forecasts against the held-out actuals.

        Args:
            history: Training slice (the tail is shown for context)
            actual: Held-out slice
            forecasts: Dictionary of model name -> forecast (ds, yhat)
            date_column: Name of date column
            value_column: Name of value column
            title: Plot title
            history_points: Number of training days to show
            save_name: Filename for saving
        """
        fig, ax = plt.subplots(figsize=self.figsize)

        tail = history.tail(history_points)
        ax.plot(tail[date_column], tail[value_column], color='black', linewidth=1.5, label='History')
        ax.plot(actual[date_column], actual[value_column], color='black', linewidth=2,
                linestyle=':', label='Actual')

        colors = sns.color_palette(self.palette, len(forecasts))
        for color, (name, forecast) in zip(colors, forecasts.items()):
            ax.plot(forecast['ds'], forecast['yhat'], color=color, linewidth=1.5, label=name)

        ax.set_xlabel('Date', fontsize=12)
        ax.set_ylabel(self._label(value_column), fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.legend(loc='upper left', fontsize=9)
        ax.grid(True, alpha=0.3)

        return self._finish(fig, save_name, 'forecast comparison')

    def plot_forecast_components(
        self,
        components: Dict[str, pd.DataFrame],
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """
        Plot forecast components (trend, seasonality, etc.).

        Args:
            components: Dictionary with component DataFrames
            save_name: Filename for saving plot
        """
        n_components = len(components)
        fig, axes = plt.subplots(n_components, 1, figsize=(self.figsize[0], 3 * n_components))

        if n_components == 1:
            axes = [axes]

        for ax, (name, data) in zip(axes, components.items()):
            ax.plot(data['ds'], data[name])
            ax.set_xlabel('Date')
            ax.set_ylabel(self._label(name))
            ax.set_title(f'{self._label(name)} Component')
            ax.grid(True, alpha=0.3)

        return self._finish(fig, save_name, 'components plot')

    def plot_metric_comparison(
        self,
        comparison: pd.DataFrame,
        metric: str = 'rmse',
        title: Optional[str] = None,
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """Bar chart of one accuracy metric per model, best first."""
        data = comparison[[metric]].dropna().sort_values(metric)

        fig, ax = plt.subplots(figsize=self.figsize)

        ax.barh(data.index.astype(str), data[metric], color=sns.color_palette(self.palette)[0])
        ax.invert_yaxis()

        ax.set_xlabel(metric.upper(), fontsize=12)
        ax.set_title(title or f'{metric.upper()} by Model', fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3, axis='x')

        return self._finish(fig, save_name, 'metric comparison')

    def plot_correlation_matrix(
        self,
        df: pd.DataFrame,
        columns: Optional[List[str]] = None,
        title: str = "Correlation Matrix",
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """
        Plot correlation matrix heatmap.

        Args:
            df: Input DataFrame
            columns: Columns to include (None for all numeric)
            title: Plot title
            save_name: Filename for saving
        """
        if columns:
            corr = df[columns].corr()
        else:
            corr = df.select_dtypes(include=[np.number]).corr()

        fig, ax = plt.subplots(figsize=(8, 6))

        sns.heatmap(
            corr,
            annot=True,
            fmt='.2f',
            cmap='coolwarm',
            center=0,
            ax=ax
        )

        ax.set_title(title, fontsize=14, fontweight='bold')

        return self._finish(fig, save_name, 'correlation matrix')
