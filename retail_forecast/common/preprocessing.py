"""
Data Preprocessing Module
=========================

Filtering, joining and reshaping of store sales tables into the single
(store, family) daily series that every forecasting model consumes.

Missing calendar days are treated as store closures and filled with zero
sales. They are never interpolated.

Usage:
    from retail_forecast.common import Preprocessor

    preprocessor = Preprocessor()
    series = preprocessor.build_series(sales, 1, 'GROCERY I', transactions)
    train, test = preprocessor.train_test_split(series, '2017-08-02', horizon=14)
"""

import pandas as pd
from typing import Optional, List, Union, Tuple, Dict, Any
from loguru import logger


DateLike = Union[str, pd.Timestamp]

KEY_COLUMNS = ['store_nbr', 'family']
VALUE_COLUMNS = ['sales', 'onpromotion', 'transactions']


class Preprocessor:
    """
    Aggregator and filter for store sales data.

    Provides methods for:
    - Projecting the sales table onto one store and product family
    - Joining transaction counts and store metadata
    - Filling the daily calendar with the zero-sales closure convention
    - Calendar train/test splitting
    - Aggregates for exploratory charts

    Example:
        >>> preprocessor = Preprocessor()
        >>> series = preprocessor.build_series(sales, 1, 'GROCERY I')
        >>> preprocessor.validate_contiguous(series)
    """

    def __init__(self, date_column: str = 'date', fill_value: float = 0.0):
        """
        Initialize Preprocessor.

        Args:
            date_column: Name of the date column in every table
            fill_value: Value used for days missing from the sales table
        """
        self.date_column = date_column
        self.fill_value = fill_value
        logger.info("Preprocessor initialized")

    def filter_series(
        self,
        sales: pd.DataFrame,
        store_nbr: int,
        family: str
    ) -> pd.DataFrame:
        """
        Project the sales table down to one store and product family.

        Args:
            sales: Sales records
            store_nbr: Store identifier
            family: Product family name

        Returns:
            Chronologically sorted rows for the pair

        Raises:
            ValueError: If the pair has no rows or repeats a date
        """
        mask = (sales['store_nbr'] == store_nbr) & (sales['family'] == family)
        df = sales.loc[mask].sort_values(self.date_column).reset_index(drop=True)

        if df.empty:
            raise ValueError(f"No sales records for store {store_nbr}, family '{family}'")

        if df[self.date_column].duplicated().any():
            raise ValueError(
                f"Duplicate dates for store {store_nbr}, family '{family}'"
            )

        logger.info(f"Filtered {len(df)} records for store {store_nbr}, family '{family}'")
        return df

    def filter_dates(
        self,
        df: pd.DataFrame,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None
    ) -> pd.DataFrame:
        """
        Keep rows with start <= date < end.

        Args:
            df: Input DataFrame
            start: Inclusive lower bound (None for no bound)
            end: Exclusive upper bound (None for no bound)

        Returns:
            Filtered DataFrame
        """
        mask = pd.Series(True, index=df.index)
        if start is not None:
            mask &= df[self.date_column] >= pd.Timestamp(start)
        if end is not None:
            mask &= df[self.date_column] < pd.Timestamp(end)
        return df.loc[mask].reset_index(drop=True)

    def join_transactions(
        self,
        df: pd.DataFrame,
        transactions: pd.DataFrame,
        how: str = 'left'
    ) -> pd.DataFrame:
        """
        Join daily transaction counts on (date, store_nbr).

        Args:
            df: Sales records or a series slice
            transactions: Transaction records
            how: 'left' or 'inner'

        Returns:
            DataFrame with a 'transactions' column
        """
        if how not in ('left', 'inner'):
            raise ValueError(f"Unsupported join: {how}")

        on = [self.date_column, 'store_nbr']
        result = pd.merge(
            df,
            transactions[on + ['transactions']],
            on=on,
            how=how,
            validate='many_to_one'
        )

        n_missing = int(result['transactions'].isna().sum())
        if n_missing:
            logger.warning(f"{n_missing} rows have no transaction count")

        logger.info(f"Joined transactions ({how}): {len(result)} records")
        return result

    def join_stores(self, df: pd.DataFrame, stores: pd.DataFrame) -> pd.DataFrame:
        """Left-join store metadata on store_nbr."""
        result = pd.merge(df, stores, on='store_nbr', how='left', validate='many_to_one')
        logger.info(f"Joined store metadata: {len(result)} records")
        return result

    def fill_calendar(
        self,
        df: pd.DataFrame,
        value_columns: Optional[List[str]] = None,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        fill_value: Optional[float] = None
    ) -> pd.DataFrame:
        """
        Reindex to a complete daily calendar.

        Missing days get fill_value in the value columns. Key columns that are
        constant across the slice (store, family) are carried onto the new
        rows.

        Args:
            df: Single-series DataFrame with unique dates
            value_columns: Columns to fill (defaults to the known value columns present)
            start: First calendar day (defaults to the first date in df)
            end: Last calendar day, inclusive (defaults to the last date in df)
            fill_value: Overrides the preprocessor's fill value

        Returns:
            DataFrame with exactly one row per calendar day

        Example:
            >>> filled = preprocessor.fill_calendar(series, ['sales', 'onpromotion'])
        """
        if fill_value is None:
            fill_value = self.fill_value
        if value_columns is None:
            value_columns = [c for c in VALUE_COLUMNS if c in df.columns]

        if df[self.date_column].duplicated().any():
            raise ValueError("Cannot fill calendar: duplicate dates in input")

        start = pd.Timestamp(start) if start is not None else df[self.date_column].min()
        end = pd.Timestamp(end) if end is not None else df[self.date_column].max()
        calendar = pd.date_range(start=start, end=end, freq='D', name=self.date_column)

        indexed = df.set_index(self.date_column)
        filled = indexed.reindex(calendar)

        # only inserted days are closures; NaNs on observed days stay NaN
        inserted = ~calendar.isin(indexed.index)
        n_filled = int(inserted.sum())
        if value_columns:
            filled.loc[inserted, value_columns] = filled.loc[inserted, value_columns].fillna(fill_value)

        # reindexing turns integer counts into floats
        for col in value_columns:
            if (pd.api.types.is_integer_dtype(indexed[col]) and float(fill_value).is_integer()
                    and not filled[col].isna().any()):
                filled[col] = filled[col].astype(indexed[col].dtype)

        for col in filled.columns:
            if col in value_columns:
                continue
            if indexed[col].nunique(dropna=True) == 1:
                filled[col] = indexed[col].dropna().iloc[0]

        if n_filled:
            logger.warning(f"Filled {n_filled} missing calendar days with {fill_value}")

        return filled.reset_index()

    def build_series(
        self,
        sales: pd.DataFrame,
        store_nbr: int,
        family: str,
        transactions: Optional[pd.DataFrame] = None,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None
    ) -> pd.DataFrame:
        """
        Build the gap-filled daily series for one store and product family.

        Args:
            sales: Sales records
            store_nbr: Store identifier
            family: Product family name
            transactions: Optional transaction records to join
            start: Inclusive first date
            end: Exclusive last date

        Returns:
            Time series slice with columns date, store_nbr, family, sales,
            onpromotion and (when joined) transactions
        """
        df = self.filter_series(sales, store_nbr, family)
        df = self.filter_dates(df, start, end)

        if df.empty:
            raise ValueError(f"No sales records between {start} and {end}")

        if transactions is not None:
            df = self.join_transactions(df, transactions, how='left')

        # zero-fill covers gaps between observed records, never days before
        # the first or after the last record
        first, last = df[self.date_column].min(), df[self.date_column].max()
        if start is not None and first > pd.Timestamp(start):
            logger.warning(f"Series starts at {first:%Y-%m-%d}, after requested start {start}")
        if end is not None and last < pd.Timestamp(end) - pd.Timedelta(days=1):
            logger.warning(f"Series ends at {last:%Y-%m-%d}, before requested end {end}")

        columns = [self.date_column] + [c for c in KEY_COLUMNS + VALUE_COLUMNS if c in df.columns]
        df = self.fill_calendar(df[columns], start=first, end=last)

        self.validate_contiguous(df)
        logger.info(
            f"Built series for store {store_nbr}, family '{family}': "
            f"{len(df)} days ({df[self.date_column].min():%Y-%m-%d} to "
            f"{df[self.date_column].max():%Y-%m-%d})"
        )
        return df

    def train_test_split(
        self,
        df: pd.DataFrame,
        cutoff: DateLike,
        horizon: Optional[int] = None
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Split a series at a fixed calendar cutoff.

        Args:
            df: Time series slice
            cutoff: First test date; training keeps dates strictly before it
            horizon: Number of test days to keep (None for all remaining)

        Returns:
            Tuple of (train, test)

        Example:
            >>> train, test = preprocessor.train_test_split(series, '2017-08-02', horizon=14)
        """
        cutoff = pd.Timestamp(cutoff)
        train = self.filter_dates(df, end=cutoff)

        test_end = cutoff + pd.Timedelta(days=horizon) if horizon is not None else None
        test = self.filter_dates(df, start=cutoff, end=test_end)

        if train.empty:
            raise ValueError(f"No training data before {cutoff:%Y-%m-%d}")
        if test.empty:
            raise ValueError(f"No test data from {cutoff:%Y-%m-%d}")
        if horizon is not None and len(test) < horizon:
            raise ValueError(
                f"Test window has {len(test)} days, fewer than horizon {horizon}"
            )

        logger.info(f"Split at {cutoff:%Y-%m-%d}: train={len(train)}, test={len(test)}")
        return train, test

    def validate_contiguous(self, df: pd.DataFrame) -> None:
        """
        Check that a series has exactly one row per calendar day.

        Raises:
            ValueError: If dates are missing or duplicated
        """
        dates = pd.DatetimeIndex(df[self.date_column])

        if dates.has_duplicates:
            raise ValueError("Series has duplicate dates")
        if not dates.is_monotonic_increasing:
            raise ValueError("Series is not in chronological order")

        expected = pd.date_range(dates.min(), dates.max(), freq='D')
        if len(expected) != len(dates):
            missing = expected.difference(dates)
            raise ValueError(
                f"Series has {len(missing)} missing dates, first: {missing[0]:%Y-%m-%d}"
            )

    def aggregate_sales(
        self,
        df: pd.DataFrame,
        by: Union[str, List[str]],
        value_column: str = 'sales',
        agg: str = 'sum'
    ) -> pd.DataFrame:
        """
        Group totals for exploratory charts.

        Args:
            df: Sales records (optionally joined with stores)
            by: Grouping column(s), e.g. 'date', 'family', ['date', 'cluster']
            value_column: Column to aggregate
            agg: Aggregation function

        Returns:
            Flat DataFrame with the grouping columns and the aggregate
        """
        result = df.groupby(by, as_index=False)[value_column].agg(agg)
        logger.debug(f"Aggregated {value_column} by {by}: {len(result)} groups")
        return result

    def add_calendar_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add day_of_week, month and year columns for box plots."""
        df = df.copy()
        dates = df[self.date_column].dt
        df['day_of_week'] = pd.Categorical(
            dates.day_name(),
            categories=['Monday', 'Tuesday', 'Wednesday', 'Thursday',
                        'Friday', 'Saturday', 'Sunday'],
            ordered=True
        )
        df['month'] = dates.month
        df['year'] = dates.year
        return df

    def summarize_closures(
        self,
        df: pd.DataFrame,
        value_column: str = 'sales'
    ) -> Dict[str, Any]:
        """
        Describe the zero-sales days of a series.

        Returns:
            Dictionary with the number of zero days and the dates that recur
            every year (e.g. a fixed holiday closure)
        """
        zero_days = df.loc[df[value_column] == 0, self.date_column]
        month_day = zero_days.dt.strftime('%m-%d')
        n_years = df[self.date_column].dt.year.nunique()

        recurring = sorted(
            md for md, count in month_day.value_counts().items()
            if n_years > 1 and count >= n_years - 1
        )

        return {
            'n_zero_days': len(zero_days),
            'zero_dates': list(zero_days),
            'recurring_closures': recurring
        }
