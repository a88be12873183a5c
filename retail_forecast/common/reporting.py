"""
Reporting Module
================

Print the model accuracy table and export comparison reports (CSV, JSON,
HTML) for a forecasting run.

Usage:
    from retail_forecast.common import Reporter

    reporter = Reporter(output_dir="outputs/reports")
    reporter.print_accuracy_table(result['comparison'])
    reporter.generate_comparison_report(result, "store1_grocery")
"""

import pandas as pd
import numpy as np
from pathlib import Path
from typing import List, Dict, Any, Optional
from datetime import datetime
import json
from loguru import logger


ACCURACY_COLUMNS = ['rmse', 'mae', 'mape', 'smape', 'mase', 'bias', 'coverage']


class Reporter:
    """
    Report generation for forecast model comparisons.

    Generates reports in multiple formats (CSV, JSON, HTML) from the
    dictionary returned by run_model_comparison.

    Example:
        >>> reporter = Reporter(output_dir="outputs/reports")
        >>> reporter.generate_comparison_report(result, "sales_forecast")
    """

    def __init__(self, output_dir: str = "outputs/reports"):
        """
        Initialize Reporter.

        Args:
            output_dir: Directory for saving reports
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Reporter initialized. Output: {self.output_dir}")

    def format_accuracy_table(
        self,
        comparison: pd.DataFrame,
        columns: Optional[List[str]] = None
    ) -> str:
        """Render the ranked comparison table as fixed-width text."""
        columns = [c for c in (columns or ACCURACY_COLUMNS) if c in comparison.columns]
        table = comparison[columns].copy()
        table.columns = [c.upper() for c in columns]
        return table.to_string(float_format=lambda v: f"{v:,.2f}", na_rep='-')

    def print_accuracy_table(
        self,
        comparison: pd.DataFrame,
        columns: Optional[List[str]] = None,
        title: str = "Forecast accuracy on the test window"
    ) -> str:
        """
        Print the accuracy table to stdout.

        Args:
            comparison: Ranked table from ForecastEvaluator.compare_models
            columns: Metric columns to show
            title: Heading printed above the table

        Returns:
            The printed table text
        """
        text = self.format_accuracy_table(comparison, columns)
        print(f"\n{title}\n{'=' * len(title)}\n{text}\n")
        return text

    def generate_comparison_report(
        self,
        result: Dict[str, Any],
        report_name: str,
        formats: List[str] = ['csv', 'json', 'html'],
        series_info: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Path]:
        """
        Generate the model comparison report.

        Args:
            result: Dictionary from run_model_comparison containing:
                - comparison: ranked metrics table
                - forecasts: model label -> forecast DataFrame
                - models: model label -> fitted forecaster
                - diagnostics: model label -> residual diagnostics
                - failures: model label -> error message
            report_name: Base name for report files
            formats: Output formats to generate
            series_info: Store, family and split details shown in the report

        Returns:
            Dictionary of format -> file path

        Example:
            >>> paths = reporter.generate_comparison_report(result, "store1_grocery")
            >>> paths['json']
        """
        output_paths = {}
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        comparison = result.get('comparison')
        if comparison is None:
            comparison = pd.DataFrame()
        forecasts = result.get('forecasts', {})
        failures = result.get('failures', {})
        series_info = series_info or {}
        model_info = {
            label: model.get_model_info()
            for label, model in result.get('models', {}).items()
        }

        # CSV Export
        if 'csv' in formats and not comparison.empty:
            csv_path = self.output_dir / f"{report_name}_{timestamp}.csv"
            comparison.to_csv(csv_path)
            output_paths['csv'] = csv_path

            forecasts_path = self.output_dir / f"{report_name}_forecasts_{timestamp}.csv"
            self._stack_forecasts(forecasts).to_csv(forecasts_path, index=False)
            output_paths['forecasts_csv'] = forecasts_path
            logger.info(f"Saved CSV report: {csv_path}")

        # JSON Export
        if 'json' in formats:
            json_path = self.output_dir / f"{report_name}_{timestamp}.json"

            json_data = {
                'generated_at': timestamp,
                'series': self._convert_to_serializable(series_info),
                'best_model': comparison.index[0] if not comparison.empty else None,
                'metrics': self._convert_to_serializable(
                    comparison.reset_index().to_dict('records') if not comparison.empty else []
                ),
                'model_info': self._convert_to_serializable(model_info),
                'diagnostics': self._convert_to_serializable(result.get('diagnostics', {})),
                'failures': failures
            }

            with open(json_path, 'w') as f:
                json.dump(json_data, f, indent=2, default=str)
            output_paths['json'] = json_path
            logger.info(f"Saved JSON report: {json_path}")

        # HTML Report
        if 'html' in formats:
            html_path = self.output_dir / f"{report_name}_{timestamp}.html"
            html_content = self._generate_comparison_html(
                comparison, model_info, failures, series_info, report_name
            )

            with open(html_path, 'w') as f:
                f.write(html_content)
            output_paths['html'] = html_path
            logger.info(f"Saved HTML report: {html_path}")

        return output_paths

    def generate_eda_report(
        self,
        summary: Dict[str, Any],
        report_name: str = "eda_summary"
    ) -> Path:
        """
        Save exploratory statistics (closures, stationarity, seasonality) as JSON.

        Returns:
            Path to the JSON file
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        json_path = self.output_dir / f"{report_name}_{timestamp}.json"

        with open(json_path, 'w') as f:
            json.dump(
                {'generated_at': timestamp, **self._convert_to_serializable(summary)},
                f, indent=2, default=str
            )

        logger.info(f"Saved EDA summary: {json_path}")
        return json_path

    @staticmethod
    def _stack_forecasts(forecasts: Dict[str, pd.DataFrame]) -> pd.DataFrame:
        if not forecasts:
            return pd.DataFrame(columns=['model', 'ds', 'yhat', 'yhat_lower', 'yhat_upper'])
        frames = [f.assign(model=label) for label, f in forecasts.items()]
        stacked = pd.concat(frames, ignore_index=True)
        return stacked[['model'] + [c for c in stacked.columns if c != 'model']]

    def _convert_to_serializable(self, obj: Any) -> Any:
        """Convert numpy/pandas types to JSON serializable."""
        if isinstance(obj, dict):
            return {str(k): self._convert_to_serializable(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self._convert_to_serializable(v) for v in obj]
        elif isinstance(obj, (bool, np.bool_)):
            return bool(obj)
        elif isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return None if np.isnan(obj) else float(obj)
        elif isinstance(obj, np.ndarray):
            return [self._convert_to_serializable(v) for v in obj.tolist()]
        elif isinstance(obj, pd.DataFrame):
            return self._convert_to_serializable(obj.to_dict('records'))
        elif isinstance(obj, pd.Series):
            return self._convert_to_serializable(obj.to_dict())
        elif isinstance(obj, pd.Timestamp):
            return obj.strftime('%Y-%m-%d')
        elif isinstance(obj, float) and np.isnan(obj):
            return None
        else:
            return obj

    @staticmethod
    def _fmt(value: Any, spec: str = '.2f') -> str:
        if isinstance(value, (int, float, np.integer, np.floating)) and not pd.isna(value):
            return format(value, spec)
        return 'N/A'

    def _generate_comparison_html(
        self,
        comparison: pd.DataFrame,
        model_info: Dict[str, Dict[str, Any]],
        failures: Dict[str, str],
        series_info: Dict[str, Any],
        report_name: str
    ) -> str:
        """Generate HTML report for a model comparison."""
        columns = [c for c in ACCURACY_COLUMNS if c in comparison.columns]

        header = ''.join(f"<th>{c.upper()}</th>" for c in columns)
        metric_rows = ''.join(
            f"<tr><td>{label}</td><td>{model_info.get(label, {}).get('type', 'N/A')}</td>"
            + ''.join(f"<td>{self._fmt(row[c])}</td>" for c in columns)
            + "</tr>"
            for label, row in comparison.iterrows()
        ) if not comparison.empty else f'<tr><td colspan="{len(columns) + 2}">No models evaluated</td></tr>'

        failure_rows = ''.join(
            f'<div class="alert"><strong>{label}:</strong> {message}</div>'
            for label, message in failures.items()
        ) or '<p>All models fitted successfully.</p>'

        best = comparison.iloc[0] if not comparison.empty else {}
        best_name = comparison.index[0] if not comparison.empty else 'N/A'

        return f"""
<!DOCTYPE html>
<html>
<head>
    <title>{report_name} - Forecast Comparison</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; background: #f5f5f5; }}
        .container {{ max-width: 1200px; margin: 0 auto; background: white; padding: 30px; border-radius: 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }}
        h1 {{ color: #2c3e50; border-bottom: 3px solid #3498db; padding-bottom: 10px; }}
        h2 {{ color: #34495e; margin-top: 30px; }}
        .metrics {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 20px; margin: 20px 0; }}
        .metric-card {{ background: #ecf0f1; padding: 20px; border-radius: 8px; text-align: center; }}
        .metric-value {{ font-size: 2em; font-weight: bold; color: #2980b9; }}
        .metric-label {{ color: #7f8c8d; margin-top: 5px; }}
        table {{ width: 100%; border-collapse: collapse; margin: 20px 0; }}
        th, td {{ padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }}
        th {{ background: #3498db; color: white; }}
        tr:hover {{ background: #f5f5f5; }}
        .info-box {{ background: #e8f4fd; padding: 15px; border-radius: 5px; margin: 10px 0; border-left: 4px solid #3498db; }}
        .alert {{ background: #fdf2f2; padding: 15px; border-radius: 5px; margin: 10px 0; border-left: 4px solid #e74c3c; }}
        .timestamp {{ color: #95a5a6; font-size: 0.9em; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Sales Forecast Model Comparison</h1>
        <p class="timestamp">Generated: {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</p>

        <h2>Series</h2>
        <div class="info-box">
            <strong>Store:</strong> {series_info.get('store_nbr', 'N/A')}<br>
            <strong>Family:</strong> {series_info.get('family', 'N/A')}<br>
            <strong>Cutoff:</strong> {series_info.get('cutoff', 'N/A')}<br>
            <strong>Horizon:</strong> {series_info.get('horizon', 'N/A')} days
        </div>

        <h2>Best Model</h2>
        <div class="metrics">
            <div class="metric-card">
                <div class="metric-value">{best_name}</div>
                <div class="metric-label">Lowest RMSE</div>
            </div>
            <div class="metric-card">
                <div class="metric-value">{self._fmt(best.get('rmse') if len(best) else None)}</div>
                <div class="metric-label">RMSE</div>
            </div>
            <div class="metric-card">
                <div class="metric-value">{self._fmt(best.get('mae') if len(best) else None)}</div>
                <div class="metric-label">MAE</div>
            </div>
        </div>

        <h2>Accuracy by Model</h2>
        <table>
            <tr><th>Model</th><th>Type</th>{header}</tr>
            {metric_rows}
        </table>

        <h2>Fit Failures</h2>
        {failure_rows}
    </div>
</body>
</html>
"""
