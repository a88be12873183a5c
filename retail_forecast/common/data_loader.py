"""
Data Loading and Validation Module
===================================

Loads the store sales input tables with strict date and numeric parsing.
Malformed rows are never repaired: the first bad field raises a ParseError
naming the file, the column and the offending rows.

Usage:
    from retail_forecast.common import DataLoader

    loader = DataLoader(config_path="config/settings.yaml")
    tables = loader.load_all("data/")
    sales = tables['sales']

    # Validate data
    is_valid, report = loader.validate_data(sales, schema="sales")
"""

import pandas as pd
import numpy as np
from pathlib import Path
from typing import Optional, Union, List, Dict, Tuple, Any
import yaml
from loguru import logger

from .exceptions import ParseError


TABLE_SCHEMAS: Dict[str, Dict[str, List[str]]] = {
    'sales': {
        'required': ['date', 'store_nbr', 'family', 'sales', 'onpromotion'],
        'datetime': ['date'],
        'float': ['sales'],
        'integer': ['store_nbr', 'onpromotion'],
        'key': ['date', 'store_nbr', 'family'],
    },
    'stores': {
        'required': ['store_nbr', 'cluster'],
        'datetime': [],
        'float': [],
        'integer': ['store_nbr', 'cluster'],
        'key': ['store_nbr'],
    },
    'transactions': {
        'required': ['date', 'store_nbr', 'transactions'],
        'datetime': ['date'],
        'float': [],
        'integer': ['store_nbr', 'transactions'],
        'key': ['date', 'store_nbr'],
    },
    'promotions': {
        'required': ['date', 'store_nbr', 'family', 'onpromotion'],
        'datetime': ['date'],
        'float': [],
        'integer': ['store_nbr', 'onpromotion'],
        'key': ['date', 'store_nbr', 'family'],
    },
    'holidays': {
        'required': ['date', 'type', 'locale', 'locale_name', 'description', 'transferred'],
        'datetime': ['date'],
        'float': [],
        'integer': [],
        'key': [],
    },
}

DEFAULT_FILENAMES = {
    'sales': 'train.csv',
    'stores': 'stores.csv',
    'transactions': 'transactions.csv',
    'promotions': 'test.csv',
    'holidays': 'holidays_events.csv',
}

OPTIONAL_TABLES = ('holidays',)

_MAX_REPORTED_ROWS = 5


class DataLoader:
    """
    Loader for the sales, store, transaction and promotion tables.

    Attributes:
        config (dict): Configuration dictionary loaded from YAML
        supported_formats (list): List of supported file formats

    Example:
        >>> loader = DataLoader()
        >>> sales = loader.load_sales("data/train.csv")
        >>> print(f"Loaded {len(sales)} records")
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize DataLoader with optional configuration.

        Args:
            config_path: Path to YAML configuration file
        """
        self.config = self._load_config(config_path)
        self.supported_formats = ['.csv']
        logger.info("DataLoader initialized")

    def _load_config(self, config_path: Optional[str]) -> dict:
        """Load configuration from YAML file."""
        default_config = {
            'data': {
                'date_format': "%Y-%m-%d",
                'missing_value_threshold': 0.3,
                'min_data_points': 30
            }
        }

        if config_path and Path(config_path).exists():
            with open(config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
            data_cfg = {**default_config['data'], **(loaded.get('data') or {})}
            return {**loaded, 'data': data_cfg}
        return default_config

    @property
    def date_format(self) -> str:
        return self.config.get('data', {}).get('date_format', "%Y-%m-%d")

    def load_csv(
        self,
        filepath: Union[str, Path],
        **kwargs
    ) -> pd.DataFrame:
        """
        Load a CSV file as-is.

        Args:
            filepath: Path to CSV file
            **kwargs: Additional arguments passed to pd.read_csv

        Returns:
            DataFrame with loaded data

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is unsupported
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        if filepath.suffix.lower() not in self.supported_formats:
            raise ValueError(f"Unsupported format: {filepath.suffix}")

        logger.info(f"Loading data from {filepath}")

        read_kwargs = {
            'low_memory': False,
            **kwargs
        }
        df = pd.read_csv(filepath, **read_kwargs)

        logger.info(f"Loaded {len(df)} records with {len(df.columns)} columns")
        return df

    def load_table(self, filepath: Union[str, Path], schema: str) -> pd.DataFrame:
        """
        Load one input table and coerce it to its schema.

        Every column is read as text first so that malformed values can be
        reported instead of being silently turned into NaN by pandas.

        Args:
            filepath: Path to CSV file
            schema: One of 'sales', 'stores', 'transactions', 'promotions', 'holidays'

        Returns:
            Typed DataFrame

        Raises:
            ParseError: On a missing column, malformed date or numeric field,
                or a duplicated primary key
        """
        if schema not in TABLE_SCHEMAS:
            raise ValueError(f"Unknown schema: {schema}")

        table = TABLE_SCHEMAS[schema]
        source = Path(filepath).name
        df = self.load_csv(filepath, dtype=str, keep_default_na=False)

        missing = [c for c in table['required'] if c not in df.columns]
        if missing:
            raise ParseError(f"{source}: missing required columns {missing}")

        for col in table['datetime']:
            df[col] = self._parse_dates(df[col], source)
        for col in table['float']:
            df[col] = self._parse_numeric(df[col], source, integer=False)
        for col in table['integer']:
            df[col] = self._parse_numeric(df[col], source, integer=True)

        if table['key']:
            duplicated = df.duplicated(subset=table['key'], keep=False)
            if duplicated.any():
                rows = self._row_numbers(duplicated)
                raise ParseError(
                    f"{source}: duplicate key {table['key']} at rows {rows}"
                )

        return df

    def load_sales(self, filepath: Union[str, Path]) -> pd.DataFrame:
        """
        Load daily sales records (date, store_nbr, family, sales, onpromotion).

        Example:
            >>> sales = loader.load_sales("data/train.csv")
        """
        df = self.load_table(filepath, 'sales')
        df['family'] = df['family'].str.strip()
        return df.sort_values(['store_nbr', 'family', 'date']).reset_index(drop=True)

    def load_stores(self, filepath: Union[str, Path]) -> pd.DataFrame:
        """Load store metadata (store_nbr, cluster, ...)."""
        return self.load_table(filepath, 'stores')

    def load_transactions(self, filepath: Union[str, Path]) -> pd.DataFrame:
        """Load daily transaction counts per store."""
        df = self.load_table(filepath, 'transactions')
        return df.sort_values(['store_nbr', 'date']).reset_index(drop=True)

    def load_promotions(self, filepath: Union[str, Path]) -> pd.DataFrame:
        """Load known-in-advance promotion counts for the forecast period."""
        df = self.load_table(filepath, 'promotions')
        df['family'] = df['family'].str.strip()
        return df.sort_values(['store_nbr', 'family', 'date']).reset_index(drop=True)

    def load_holidays(self, filepath: Union[str, Path]) -> pd.DataFrame:
        """Load the holiday and event calendar."""
        source = Path(filepath).name
        df = self.load_table(filepath, 'holidays')

        flags = df['transferred'].str.strip().str.lower()
        bad = ~flags.isin(['true', 'false'])
        if bad.any():
            raise ParseError(
                f"{source}: malformed boolean in column 'transferred' "
                f"at rows {self._row_numbers(bad)}"
            )
        df['transferred'] = flags == 'true'
        return df.sort_values('date').reset_index(drop=True)

    def load_all(
        self,
        data_dir: Union[str, Path],
        filenames: Optional[Dict[str, str]] = None
    ) -> Dict[str, pd.DataFrame]:
        """
        Load every input table found in a data directory.

        Args:
            data_dir: Directory holding the CSV files
            filenames: Overrides for DEFAULT_FILENAMES

        Returns:
            Dictionary of table name -> DataFrame. 'holidays' is only present
            when its file exists.
        """
        data_dir = Path(data_dir)
        names = {**DEFAULT_FILENAMES, **(filenames or {})}

        loaders = {
            'sales': self.load_sales,
            'stores': self.load_stores,
            'transactions': self.load_transactions,
            'promotions': self.load_promotions,
            'holidays': self.load_holidays,
        }

        tables = {}
        for name, load in loaders.items():
            path = data_dir / names[name]
            if name in OPTIONAL_TABLES and not path.exists():
                logger.debug(f"Optional table '{name}' not found at {path}")
                continue
            tables[name] = load(path)

        logger.info(f"Loaded tables: {', '.join(tables)}")
        return tables

    def _parse_dates(self, values: pd.Series, source: str) -> pd.Series:
        """Parse a text column into datetimes using the configured format."""
        parsed = pd.to_datetime(values.str.strip(), format=self.date_format, errors='coerce')
        bad = parsed.isna()
        if bad.any():
            raise ParseError(
                f"{source}: malformed date in column '{values.name}' "
                f"at rows {self._row_numbers(bad)} "
                f"(expected format {self.date_format})"
            )
        return parsed

    def _parse_numeric(self, values: pd.Series, source: str, integer: bool) -> pd.Series:
        """Parse a text column into floats or integers."""
        parsed = pd.to_numeric(values.str.strip(), errors='coerce')
        bad = parsed.isna() | ~np.isfinite(parsed)
        if integer:
            bad |= (parsed % 1 != 0)

        if bad.any():
            kind = 'integer' if integer else 'numeric'
            raise ParseError(
                f"{source}: malformed {kind} value in column '{values.name}' "
                f"at rows {self._row_numbers(bad)}"
            )

        if integer:
            return parsed.astype('int64')
        return parsed.astype('float64')

    @staticmethod
    def _row_numbers(mask: pd.Series) -> List[int]:
        # +2: one for the header line, one for 1-based line numbers
        rows = (np.flatnonzero(mask.to_numpy()) + 2).tolist()
        return rows[:_MAX_REPORTED_ROWS]

    def validate_data(
        self,
        df: pd.DataFrame,
        required_columns: Optional[List[str]] = None,
        schema: Optional[str] = None
    ) -> Tuple[bool, Dict[str, Any]]:
        """
        Validate DataFrame against requirements and generate quality report.

        Args:
            df: DataFrame to validate
            required_columns: List of required column names
            schema: Schema type ('sales', 'stores', 'transactions', 'promotions')

        Returns:
            Tuple of (is_valid, validation_report)

        Example:
            >>> is_valid, report = loader.validate_data(df, schema="sales")
            >>> if not is_valid:
            ...     print(report['errors'])
        """
        report = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'statistics': {}
        }

        # Check minimum data points
        min_points = self.config.get('data', {}).get('min_data_points', 30)
        if len(df) < min_points:
            report['errors'].append(f"Insufficient data: {len(df)} < {min_points} required")
            report['is_valid'] = False

        # Check required columns
        if required_columns:
            missing = [c for c in required_columns if c not in df.columns]
            if missing:
                report['errors'].append(f"Missing required columns: {missing}")
                report['is_valid'] = False

        # Joined columns (transactions) may carry gaps the loaders never see
        missing_threshold = self.config.get('data', {}).get('missing_value_threshold', 0.3)
        missing_ratios = df.isna().mean() if len(df) else pd.Series(dtype=float)
        for col, ratio in missing_ratios[missing_ratios > missing_threshold].items():
            report['warnings'].append(f"High missing ratio in '{col}': {ratio:.2%}")

        report['statistics'] = {
            'n_rows': len(df),
            'n_columns': len(df.columns),
            'memory_usage_mb': df.memory_usage(deep=True).sum() / 1024**2,
            'missing_values': df.isna().sum().to_dict(),
            'dtypes': df.dtypes.astype(str).to_dict()
        }

        if schema:
            schema_validation = self._validate_schema(df, schema)
            report['errors'].extend(schema_validation.get('errors', []))
            report['warnings'].extend(schema_validation.get('warnings', []))
            if schema_validation.get('errors'):
                report['is_valid'] = False

        return report['is_valid'], report

    def _validate_schema(self, df: pd.DataFrame, schema: str) -> Dict[str, List[str]]:
        """Validate DataFrame against predefined schemas."""
        result = {'errors': [], 'warnings': []}

        if schema not in TABLE_SCHEMAS:
            result['warnings'].append(f"Unknown schema: {schema}")
            return result

        schema_def = TABLE_SCHEMAS[schema]

        missing = set(schema_def['required']) - set(df.columns)
        if missing:
            result['errors'].append(f"Schema '{schema}' missing columns: {missing}")

        for col in schema_def['float'] + schema_def['integer']:
            if col in df.columns and not pd.api.types.is_numeric_dtype(df[col]):
                result['warnings'].append(f"Column '{col}' should be numeric")

        for col in schema_def['datetime']:
            if col in df.columns and not pd.api.types.is_datetime64_any_dtype(df[col]):
                result['warnings'].append(f"Column '{col}' should be datetime")

        if 'sales' in df.columns and pd.api.types.is_numeric_dtype(df['sales']):
            n_negative = int((df['sales'] < 0).sum())
            if n_negative:
                result['warnings'].append(f"{n_negative} rows have negative sales")

        return result


    def get_data_summary(self, df: pd.DataFrame) -> Dict[str, Any]:
        """
        Generate a descriptive summary of a loaded table.

        Args:
            df: Input DataFrame

        Returns:
            Dictionary with shape, missing values, numeric statistics,
            top categorical values and the date range
        """
        summary = {
            'n_rows': len(df),
            'columns': list(df.columns),
            'missing_values': df.isna().sum().to_dict(),
            'numeric_summary': {},
            'categorical_summary': {}
        }

        numeric_cols = df.select_dtypes(include=[np.number]).columns
        if len(numeric_cols) > 0:
            summary['numeric_summary'] = df[numeric_cols].describe().to_dict()

        cat_cols = df.select_dtypes(include=['object', 'category']).columns
        for col in cat_cols:
            summary['categorical_summary'][col] = {
                'unique_values': df[col].nunique(),
                'top_values': df[col].value_counts().head(5).to_dict()
            }

        if 'date' in df.columns and pd.api.types.is_datetime64_any_dtype(df['date']):
            summary['date_range'] = (df['date'].min(), df['date'].max())

        return summary
