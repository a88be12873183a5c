#!/usr/bin/env python3
"""
Store Sales Forecasting - Main Runner
=====================================

Command-line interface for the exploratory analysis and the forecast model
comparison on one store / product family series.

Usage:
    python run_analytics.py --task eda --data-dir data/
    python run_analytics.py --task forecast --config config/settings.yaml
    python run_analytics.py --task all --output outputs/

Examples:
    # Generate synthetic input tables first
    python data/generate_sample_data.py --output-dir data/

    # Compare the configured models, keep going when one fails to converge
    python run_analytics.py --task forecast --skip-failures
"""

import argparse
import copy
import sys
from pathlib import Path
from typing import Any, Dict, Optional
import matplotlib
import yaml
from loguru import logger

matplotlib.use('Agg')

from retail_forecast.common import (
    DataLoader, Preprocessor, Visualizer, Reporter,
    ParseError, FitError, ForecastAlignmentError
)
from retail_forecast.sales_prediction import (
    DEFAULT_MODELS, ProphetForecaster, run_model_comparison
)
from retail_forecast.sales_prediction import time_series_analysis as tsa


DEFAULT_CONFIG: Dict[str, Any] = {
    'data': {
        'dir': 'data',
        'filenames': {
            'sales': 'train.csv',
            'stores': 'stores.csv',
            'transactions': 'transactions.csv',
            'promotions': 'test.csv',
            'holidays': 'holidays_events.csv',
        },
        'date_format': '%Y-%m-%d',
        'min_data_points': 30,
        'missing_value_threshold': 0.3,
        'fill_value': 0.0,
    },
    'series': {
        'store_nbr': 1,
        'family': 'GROCERY I',
        'start': '2015-08-01',
        'end': '2017-08-16',
    },
    'split': {
        'cutoff': '2017-08-02',
        'horizon': 14,
        'confidence_interval': 0.95,
    },
    'models': copy.deepcopy(DEFAULT_MODELS),
    'output': {
        'dir': 'outputs',
        'dpi': 100,
    },
}


def setup_logging(log_level: str = "INFO"):
    """Configure logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>"
    )


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str]) -> dict:
    """
    Load configuration from YAML file over the built-in defaults.

    Nested sections are merged key by key; lists (the model list) replace
    the default list entirely.
    """
    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        return _deep_merge(DEFAULT_CONFIG, loaded)

    if config_path:
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
    return copy.deepcopy(DEFAULT_CONFIG)


def _load_tables(args, config, loader: DataLoader) -> Dict[str, Any]:
    data_dir = args.data_dir or config['data']['dir']
    tables = loader.load_all(data_dir, config['data'].get('filenames'))

    is_valid, report = loader.validate_data(tables['sales'], schema='sales')
    for warning in report['warnings']:
        logger.warning(warning)
    if not is_valid:
        raise ParseError(f"Sales table failed validation: {report['errors']}")

    return tables


def _build_series(tables, config, preprocessor, loader: DataLoader):
    series_cfg = config['series']
    series = preprocessor.build_series(
        tables['sales'],
        store_nbr=int(series_cfg['store_nbr']),
        family=series_cfg['family'],
        transactions=tables['transactions'],
        start=series_cfg.get('start'),
        end=series_cfg.get('end')
    )

    is_valid, report = loader.validate_data(series, required_columns=['date', 'sales'])
    for warning in report['warnings']:
        logger.warning(warning)
    if not is_valid:
        raise ParseError(f"Series failed validation: {report['errors']}")

    return series


def run_eda(args, config):
    """Run exploratory analysis of transactions and the selected series."""
    logger.info("Starting Exploratory Analysis")

    loader = DataLoader(config_path=args.config)
    tables = _load_tables(args, config, loader)
    preprocessor = Preprocessor(fill_value=config['data']['fill_value'])
    viz = Visualizer(output_dir=Path(args.output) / 'plots', dpi=config['output']['dpi'])

    sales = preprocessor.join_stores(tables['sales'], tables['stores'])
    transactions = preprocessor.add_calendar_features(tables['transactions'])

    # Portfolio-level views
    daily = preprocessor.aggregate_sales(sales, 'date')
    viz.plot_time_series(daily, 'date', 'sales', title='Total Daily Sales', save_name='total_daily_sales')

    by_family = preprocessor.aggregate_sales(sales, 'family')
    viz.plot_bar(by_family, 'family', 'sales', title='Sales by Product Family', top_n=15,
                 save_name='sales_by_family')

    by_cluster = preprocessor.aggregate_sales(sales, 'cluster')
    viz.plot_bar(by_cluster, 'cluster', 'sales', title='Sales by Store Cluster', save_name='sales_by_cluster')

    daily_transactions = preprocessor.aggregate_sales(transactions, 'date', value_column='transactions')
    viz.plot_time_series(daily_transactions, 'date', 'transactions', title='Total Daily Transactions',
                         save_name='daily_transactions')
    viz.plot_box(transactions, 'day_of_week', 'transactions', title='Transactions by Day of Week',
                 save_name='transactions_by_weekday')

    # Selected series
    series = _build_series(tables, config, preprocessor, loader)
    store_nbr, family = config['series']['store_nbr'], config['series']['family']
    label = f"Store {store_nbr} / {family}"

    closures = preprocessor.summarize_closures(series)
    logger.info(
        f"{label}: {closures['n_zero_days']} zero-sales days, "
        f"recurring closures: {closures['recurring_closures'] or 'none'}"
    )

    viz.plot_time_series(series, 'date', 'sales', title=f'{label} Daily Sales', save_name='series_sales')
    viz.plot_box(preprocessor.add_calendar_features(series), 'day_of_week', 'sales',
                 title=f'{label} Sales by Day of Week', save_name='series_by_weekday')
    viz.plot_correlation_matrix(series, columns=[c for c in ('sales', 'onpromotion', 'transactions')
                                                 if c in series.columns],
                                title=f'{label} Correlations', save_name='series_correlation')

    ts = series.set_index('date')['sales']
    decomposition = tsa.stl_decompose(ts, period=7)
    viz.plot_decomposition(decomposition, title=f'{label} STL Decomposition (period 7)',
                           save_name='series_decomposition')
    viz.plot_acf(ts, lags=28, title=f'{label} Autocorrelation', save_name='series_acf')

    stationarity = tsa.stationarity_report(ts, period=7)
    summary = {
        'series': {'store_nbr': store_nbr, 'family': family, 'n_days': len(series),
                   'start': series['date'].min(), 'end': series['date'].max()},
        'sales_table': loader.get_data_summary(tables['sales']),
        'closures': {k: v for k, v in closures.items() if k != 'zero_dates'},
        'seasonal_strength': tsa.seasonal_strength(decomposition),
        'trend_strength': tsa.trend_strength(decomposition),
        'weekly_seasonality': tsa.has_weekly_seasonality(ts, period=7),
        'stationarity': stationarity
    }

    logger.info(
        f"Seasonal strength {summary['seasonal_strength']:.2f}, "
        f"weekly seasonality: {summary['weekly_seasonality']}, "
        f"ADF p={stationarity['adf']['p_value']:.3f}, KPSS p={stationarity['kpss']['p_value']:.3f}, "
        f"ndiffs={stationarity['ndiffs']}, nsdiffs={stationarity['nsdiffs']}"
    )

    reporter = Reporter(output_dir=Path(args.output) / 'reports')
    reporter.generate_eda_report(summary, 'eda_summary')

    logger.info(f"Exploratory analysis complete. Results saved to {args.output}")
    return summary


def run_forecast(args, config):
    """Run the forecast model comparison."""
    logger.info("Starting Sales Forecasting Pipeline")

    loader = DataLoader(config_path=args.config)
    tables = _load_tables(args, config, loader)
    preprocessor = Preprocessor(fill_value=config['data']['fill_value'])

    series = _build_series(tables, config, preprocessor, loader)
    split_cfg = config['split']
    train, test = preprocessor.train_test_split(series, split_cfg['cutoff'], int(split_cfg['horizon']))

    holidays = None
    if 'holidays' in tables:
        holidays = ProphetForecaster.holidays_from_calendar(tables['holidays'])
        logger.info(f"Using {len(holidays)} national holidays for Prophet")

    result = run_model_comparison(
        train, test,
        config['models'],
        confidence_interval=float(split_cfg.get('confidence_interval', 0.95)),
        holidays=holidays,
        skip_failures=args.skip_failures
    )

    if result['comparison'] is None:
        raise FitError("No model could be fitted")

    reporter = Reporter(output_dir=Path(args.output) / 'reports')
    reporter.print_accuracy_table(result['comparison'])

    # Visualize
    viz = Visualizer(output_dir=Path(args.output) / 'plots', dpi=config['output']['dpi'])
    label = f"Store {config['series']['store_nbr']} / {config['series']['family']}"
    viz.plot_forecasts(train, test, result['forecasts'], title=f'{label} Forecasts',
                       save_name='forecast_comparison')
    viz.plot_metric_comparison(result['comparison'], metric='rmse', save_name='rmse_by_model')

    best = result['comparison'].index[0]
    best_forecast = result['forecasts'][best].rename(columns={'ds': 'date', 'yhat': 'sales'})
    viz.plot_time_series(
        series, 'date', 'sales',
        title=f'{label}: {best}',
        forecast_df=best_forecast,
        confidence_interval=('yhat_lower', 'yhat_upper'),
        save_name='best_forecast'
    )

    for model_label, model in result['models'].items():
        if isinstance(model, ProphetForecaster):
            viz.plot_forecast_components(model.get_components(),
                                         save_name=f"components_{model_label.lower().replace(' ', '_')}")

    reporter.generate_comparison_report(
        result, 'forecast_comparison',
        series_info={
            'store_nbr': config['series']['store_nbr'],
            'family': config['series']['family'],
            'cutoff': split_cfg['cutoff'],
            'horizon': split_cfg['horizon']
        }
    )

    logger.info(f"Forecast complete. Best model: {best}. Results saved to {args.output}")
    return result


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Store Sales Forecasting',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--task',
        choices=['eda', 'forecast', 'all'],
        required=True,
        help='Analytics task to run'
    )

    parser.add_argument(
        '--data-dir',
        type=str,
        default=None,
        help='Directory with the input CSV files (overrides the config)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config/settings.yaml',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output directory for results (overrides the config)'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )

    parser.add_argument(
        '--skip-failures',
        action='store_true',
        help='Record models that fail to fit and continue with the rest'
    )

    args = parser.parse_args()

    # Setup
    setup_logging(args.log_level)
    config = load_config(args.config)
    args.output = args.output or config['output']['dir']

    # Create output directory
    Path(args.output).mkdir(parents=True, exist_ok=True)

    try:
        if args.task in ('eda', 'all'):
            run_eda(args, config)
        if args.task in ('forecast', 'all'):
            run_forecast(args, config)
    except (ParseError, FitError, ForecastAlignmentError, FileNotFoundError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
