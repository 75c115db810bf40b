"""
Exploratory statistics for the cleaned listing table.

Grouped aggregates run as SQL over the DataFrame with DuckDB; the
correlation analysis uses pandas.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import duckdb
import pandas as pd

from listing_pricer.data.schema import CORRELATION_FEATURES


GROUP_STATS_QUERY = """
SELECT
    {group} AS {alias},
    AVG(price) AS avg_price,
    MEDIAN(price) AS median_price,
    COUNT(*) AS listings,
    100.0 * COUNT(*) / SUM(COUNT(*)) OVER () AS pct,
    AVG(review_scores_rating) AS avg_rating
FROM listings
GROUP BY {group}
ORDER BY {order}
"""


def _flatten(df: pd.DataFrame) -> pd.DataFrame:
    """Categorical columns as plain strings so DuckDB can group on them."""
    cols = ['neighborhood', 'property_type', 'room_type', 'host_is_superhost',
            'instant_bookable', 'bedrooms', 'price', 'review_scores_rating']
    flat = df[[c for c in cols if c in df.columns]].copy()
    for col in flat.columns:
        if isinstance(flat[col].dtype, pd.CategoricalDtype):
            flat[col] = flat[col].astype(str)
    return flat


def group_price_stats(df: pd.DataFrame, group: str, order: str = 'median_price DESC') -> pd.DataFrame:
    """
    Price statistics per level of one column.

    Args:
        df: Cleaned listing table
        group: Column to group by
        order: SQL ORDER BY clause over the result columns

    Returns:
        DataFrame with group, avg_price, median_price, listings, pct, avg_rating
    """
    query = GROUP_STATS_QUERY.format(group=group, alias=group, order=order)
    con = duckdb.connect(':memory:')
    try:
        con.register('listings', _flatten(df))
        return con.execute(query).fetchdf()
    finally:
        con.close()


def price_summary(df: pd.DataFrame) -> Dict[str, float]:
    """Mean, median, spread and range of price."""
    price = df['price']
    return {
        'mean': float(price.mean()),
        'median': float(price.median()),
        'std': float(price.std()),
        'min': float(price.min()),
        'max': float(price.max()),
        'q1': float(price.quantile(0.25)),
        'q3': float(price.quantile(0.75)),
    }


def correlation_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """Pearson correlations over the numeric analysis columns (complete rows only)."""
    cols = [c for c in CORRELATION_FEATURES if c in df.columns]
    return df[cols].astype(float).dropna().corr()


def price_correlations(corr: pd.DataFrame) -> pd.DataFrame:
    """Correlation of each variable with price, strongest positive first."""
    series = corr['price'].drop('price').sort_values(ascending=False)
    return series.rename_axis('variable').reset_index(name='correlation')


def _ratio(numerator: Optional[float], denominator: Optional[float]) -> float:
    if numerator is None or not denominator:
        return float('nan')
    return numerator / denominator


@dataclass
class EdaSummary:
    """Statistics behind the EDA report and plots."""
    n_listings: int
    price: Dict[str, float]
    by_neighborhood: pd.DataFrame
    by_property_type: pd.DataFrame
    by_room_type: pd.DataFrame
    by_bedrooms: pd.DataFrame
    by_superhost: pd.DataFrame
    correlations: pd.DataFrame
    top_correlations: pd.DataFrame

    def _avg_price(self, table: pd.DataFrame, column: str, level: str) -> Optional[float]:
        rows = table.loc[table[column] == level, 'avg_price']
        return float(rows.iloc[0]) if len(rows) else None

    @property
    def neighborhood_spread_pct(self) -> float:
        """Gap between highest and lowest neighborhood median price, in percent."""
        medians = self.by_neighborhood['median_price']
        return float((medians.max() - medians.min()) / medians.min() * 100)

    @property
    def entire_home_multiple(self) -> float:
        """Average price of entire homes over private rooms."""
        return _ratio(
            self._avg_price(self.by_room_type, 'room_type', 'Entire home/apt'),
            self._avg_price(self.by_room_type, 'room_type', 'Private room'),
        )

    @property
    def superhost_premium_pct(self) -> float:
        """Percent by which superhost average price exceeds other hosts."""
        return (_ratio(
            self._avg_price(self.by_superhost, 'host_is_superhost', 'Yes'),
            self._avg_price(self.by_superhost, 'host_is_superhost', 'No'),
        ) - 1) * 100

    @property
    def superhost_share_pct(self) -> float:
        rows = self.by_superhost.loc[self.by_superhost['host_is_superhost'] == 'Yes', 'pct']
        return float(rows.iloc[0]) if len(rows) else 0.0


def explore(df: pd.DataFrame) -> EdaSummary:
    """
    Computes every statistic used by the EDA report.

    Args:
        df: Cleaned listing table

    Returns:
        EdaSummary
    """
    corr = correlation_matrix(df)
    return EdaSummary(
        n_listings=len(df),
        price=price_summary(df),
        by_neighborhood=group_price_stats(df, 'neighborhood'),
        by_property_type=group_price_stats(df, 'property_type'),
        by_room_type=group_price_stats(df, 'room_type', order='avg_price DESC'),
        by_bedrooms=group_price_stats(df, 'bedrooms', order='bedrooms'),
        by_superhost=group_price_stats(df, 'host_is_superhost', order='host_is_superhost'),
        correlations=corr,
        top_correlations=price_correlations(corr),
    )
