#!/usr/bin/env python3
"""
Sample Data Generator
=====================

Generates synthetic store sales tables in the input layout expected by the
forecasting pipeline.

Usage:
    python data/generate_sample_data.py
    python data/generate_sample_data.py --output-dir data/ --seed 7

This will create:
    - train.csv: daily sales per store and product family
    - stores.csv: store metadata with clusters
    - transactions.csv: daily transaction counts per store
    - test.csv: promotion counts for the 16 days after the sales history
    - holidays_events.csv: national and local holiday calendar

Stores are closed on December 25, so that date has no rows in train.csv
or transactions.csv.
"""

import argparse
import os
import pandas as pd
import numpy as np
from typing import List, Optional


FAMILIES = ['GROCERY I', 'BEVERAGES', 'PRODUCE', 'CLEANING', 'DAIRY', 'BREAD/BAKERY']

# Monday .. Sunday
WEEKLY_PATTERN = np.array([0.90, 0.82, 0.88, 0.80, 1.00, 1.30, 1.42])

FAMILY_BASE = {
    'GROCERY I': 2400.0,
    'BEVERAGES': 1800.0,
    'PRODUCE': 900.0,
    'CLEANING': 700.0,
    'DAIRY': 600.0,
    'BREAD/BAKERY': 350.0,
}


def _open_days(start_date: str, end_date: str) -> pd.DatetimeIndex:
    dates = pd.date_range(start=start_date, end=end_date, freq='D', name='date')
    return dates[~((dates.month == 12) & (dates.day == 25))]


def generate_stores(n_stores: int = 6, seed: int = 42) -> pd.DataFrame:
    """
    Generate store metadata.

    Args:
        n_stores: Number of stores
        seed: Random seed

    Returns:
        DataFrame with store_nbr, city, state, type and cluster
    """
    rng = np.random.default_rng(seed)
    cities = [('Quito', 'Pichincha'), ('Guayaquil', 'Guayas'), ('Cuenca', 'Azuay')]

    records = []
    for store_nbr in range(1, n_stores + 1):
        city, state = cities[(store_nbr - 1) % len(cities)]
        records.append({
            'store_nbr': store_nbr,
            'city': city,
            'state': state,
            'type': rng.choice(['A', 'B', 'C', 'D']),
            'cluster': int(rng.integers(1, 6))
        })

    return pd.DataFrame(records)


def generate_sales_data(
    start_date: str = '2015-08-01',
    end_date: str = '2017-08-15',
    n_stores: int = 6,
    families: Optional[List[str]] = None,
    seed: int = 42
) -> pd.DataFrame:
    """
    Generate synthetic daily sales per store and product family.

    Creates daily sales with:
    - Weekly seasonality (weekends higher)
    - Slight growth trend
    - Yearly seasonality
    - Promotion lift
    - Noise

    Args:
        start_date: First sales date
        end_date: Last sales date
        n_stores: Number of stores
        families: Product families (defaults to FAMILIES)
        seed: Random seed

    Returns:
        DataFrame with id, date, store_nbr, family, sales and onpromotion
    """
    rng = np.random.default_rng(seed)
    families = families or FAMILIES
    dates = _open_days(start_date, end_date)
    n_days = len(dates)

    t = np.arange(n_days)
    weekly = WEEKLY_PATTERN[dates.dayofweek.values]
    yearly = 1 + 0.08 * np.sin(2 * np.pi * dates.dayofyear.values / 365.25)
    trend = 1 + 0.15 * t / max(n_days - 1, 1)

    frames = []
    for store_nbr in range(1, n_stores + 1):
        store_scale = rng.uniform(0.6, 1.4)
        for family in families:
            base = FAMILY_BASE.get(family, 500.0) * store_scale
            onpromotion = rng.poisson(2.0, n_days) * (rng.random(n_days) < 0.3)
            lift = 1 + 0.02 * onpromotion
            noise = rng.normal(1.0, 0.06, n_days)

            sales = np.maximum(base * weekly * yearly * trend * lift * noise, 0)

            frames.append(pd.DataFrame({
                'date': dates,
                'store_nbr': store_nbr,
                'family': family,
                'sales': np.round(sales, 3),
                'onpromotion': onpromotion.astype(int)
            }))

    df = pd.concat(frames, ignore_index=True)
    df = df.sort_values(['date', 'store_nbr', 'family']).reset_index(drop=True)
    df.insert(0, 'id', np.arange(len(df)))

    return df


def generate_transaction_data(sales: pd.DataFrame, seed: int = 42) -> pd.DataFrame:
    """
    Derive daily transaction counts per store from the sales table.

    Args:
        sales: Output of generate_sales_data
        seed: Random seed

    Returns:
        DataFrame with date, store_nbr and transactions
    """
    rng = np.random.default_rng(seed)

    totals = sales.groupby(['date', 'store_nbr'], as_index=False)['sales'].sum()
    basket = rng.normal(4.5, 0.3, len(totals))
    totals['transactions'] = np.maximum(np.round(totals['sales'] / basket), 1).astype(int)

    return totals[['date', 'store_nbr', 'transactions']]


def generate_promotion_data(
    start_date: str = '2017-08-16',
    end_date: str = '2017-08-31',
    n_stores: int = 6,
    families: Optional[List[str]] = None,
    first_id: int = 0,
    seed: int = 42
) -> pd.DataFrame:
    """
    Generate known-in-advance promotion counts for the forecast period.

    Returns:
        DataFrame with id, date, store_nbr, family and onpromotion
    """
    rng = np.random.default_rng(seed)
    families = families or FAMILIES
    index = pd.MultiIndex.from_product(
        [_open_days(start_date, end_date), range(1, n_stores + 1), families],
        names=['date', 'store_nbr', 'family']
    )

    df = index.to_frame(index=False)
    df['onpromotion'] = rng.poisson(2.0, len(df)) * (rng.random(len(df)) < 0.3)
    df.insert(0, 'id', np.arange(first_id, first_id + len(df)))

    return df


def generate_holiday_data(start_year: int = 2015, end_year: int = 2017) -> pd.DataFrame:
    """
    Generate a holiday calendar with national, regional and local events.

    Independence Day falls on August 10 and is transferred to the following
    Friday in 2017, which appears as its own 'Transfer' row.
    """
    records = []
    for year in range(start_year, end_year + 1):
        records.extend([
            {'date': f'{year}-01-01', 'type': 'Holiday', 'locale': 'National',
             'locale_name': 'Ecuador', 'description': 'Primer dia del ano', 'transferred': False},
            {'date': f'{year}-05-01', 'type': 'Holiday', 'locale': 'National',
             'locale_name': 'Ecuador', 'description': 'Dia del Trabajo', 'transferred': False},
            {'date': f'{year}-08-10', 'type': 'Holiday', 'locale': 'National',
             'locale_name': 'Ecuador', 'description': 'Primer Grito de Independencia',
             'transferred': year == 2017},
            {'date': f'{year}-12-25', 'type': 'Holiday', 'locale': 'National',
             'locale_name': 'Ecuador', 'description': 'Navidad', 'transferred': False},
            {'date': f'{year}-12-06', 'type': 'Holiday', 'locale': 'Local',
             'locale_name': 'Quito', 'description': 'Fundacion de Quito', 'transferred': False},
            {'date': f'{year}-11-03', 'type': 'Holiday', 'locale': 'Regional',
             'locale_name': 'Azuay', 'description': 'Independencia de Cuenca', 'transferred': False},
        ])
        if year == 2017:
            records.append({
                'date': '2017-08-11', 'type': 'Transfer', 'locale': 'National',
                'locale_name': 'Ecuador', 'description': 'Traslado Primer Grito de Independencia',
                'transferred': False
            })

    df = pd.DataFrame(records)
    df['transferred'] = df['transferred'].map({True: 'True', False: 'False'})
    return df.sort_values('date').reset_index(drop=True)


def main():
    """Generate all sample tables."""
    parser = argparse.ArgumentParser(description='Generate synthetic store sales tables')
    parser.add_argument('--output-dir', type=str,
                        default=os.path.dirname(os.path.abspath(__file__)),
                        help='Directory to write the CSV files to')
    parser.add_argument('--n-stores', type=int, default=6, help='Number of stores')
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    args = parser.parse_args()

    os.makedirs(args.output_dir, exist_ok=True)

    print("Generating sample tables...")

    stores_df = generate_stores(args.n_stores, seed=args.seed)
    sales_df = generate_sales_data(n_stores=args.n_stores, seed=args.seed)
    transactions_df = generate_transaction_data(sales_df, seed=args.seed)
    promotions_df = generate_promotion_data(n_stores=args.n_stores, first_id=len(sales_df), seed=args.seed)
    holidays_df = generate_holiday_data()

    outputs = {
        'train.csv': sales_df,
        'stores.csv': stores_df,
        'transactions.csv': transactions_df,
        'test.csv': promotions_df,
        'holidays_events.csv': holidays_df,
    }

    for filename, df in outputs.items():
        path = os.path.join(args.output_dir, filename)
        df.to_csv(path, index=False, date_format='%Y-%m-%d')
        print(f"  Saved {len(df)} records to {path}")

    print("\nSample data generation complete!")
    print(f"  Sales: {sales_df['date'].min():%Y-%m-%d} to {sales_df['date'].max():%Y-%m-%d}, "
          f"{sales_df['store_nbr'].nunique()} stores, {sales_df['family'].nunique()} families")


if __name__ == '__main__':
    main()
