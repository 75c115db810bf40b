"""
Market comparison against historical listings.

Comparable listings share the neighborhood and bedroom count of the
listing being priced. The predicted price is placed within their price
distribution and labelled with a positioning band.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Optional

import duckdb
import pandas as pd
from scipy import stats

from listing_pricer.config import DEFAULT_POSITIONING, POSITIONING_THRESHOLDS


@dataclass
class MarketComparison:
    """Predicted price in the context of comparable listings."""
    neighborhood: str
    bedrooms: int
    n_comparables: int
    mean_price: float
    median_price: float
    min_price: float
    max_price: float
    predicted_price: float
    percentile: float
    positioning: str

    def to_dict(self) -> Dict:
        return asdict(self)


def positioning_label(percentile: float) -> str:
    """
    Maps a market percentile to a positioning label.

    PREMIUM above 75, ABOVE AVERAGE above 50, BELOW AVERAGE above 25,
    BUDGET otherwise.
    """
    for threshold, label in POSITIONING_THRESHOLDS:
        if percentile > threshold:
            return label
    return DEFAULT_POSITIONING


def price_percentile(comparable_prices, predicted_price: float) -> float:
    """Share of comparable prices strictly below the predicted price, times 100."""
    return float(stats.percentileofscore(list(comparable_prices), predicted_price, kind='strict'))


def compare_to_market(
    historical: pd.DataFrame,
    listing: pd.Series,
    predicted_price: float
) -> Optional[MarketComparison]:
    """
    Compares a predicted price with comparable historical listings.

    Args:
        historical: Cleaned listing table with price
        listing: New listing (neighborhood, bedrooms)
        predicted_price: Blended price for the listing

    Returns:
        MarketComparison, or None when no comparable listings exist
    """
    neighborhood = str(listing['neighborhood'])
    bedrooms = listing['bedrooms']

    mask = (historical['neighborhood'].astype(str) == neighborhood) & (historical['bedrooms'] == bedrooms)
    prices = historical.loc[mask, 'price'].astype(float)
    if prices.empty:
        return None

    percentile = price_percentile(prices, predicted_price)
    return MarketComparison(
        neighborhood=neighborhood,
        bedrooms=int(bedrooms),
        n_comparables=int(len(prices)),
        mean_price=float(prices.mean()),
        median_price=float(prices.median()),
        min_price=float(prices.min()),
        max_price=float(prices.max()),
        predicted_price=float(predicted_price),
        percentile=percentile,
        positioning=positioning_label(percentile),
    )


def neighborhood_landscape(historical: pd.DataFrame) -> pd.DataFrame:
    """
    Per-neighborhood price and quality summary, most expensive first.

    Returns:
        DataFrame with neighborhood, avg_price, median_price, listings,
        avg_rating, superhost_pct
    """
    listings = historical[['neighborhood', 'price', 'review_scores_rating', 'host_is_superhost']].copy()
    listings['neighborhood'] = listings['neighborhood'].astype(str)
    listings['host_is_superhost'] = listings['host_is_superhost'].astype(str)

    query = """
    SELECT
        neighborhood,
        AVG(price) AS avg_price,
        MEDIAN(price) AS median_price,
        COUNT(*) AS listings,
        AVG(review_scores_rating) AS avg_rating,
        100.0 * AVG(CASE WHEN host_is_superhost = 'Yes' THEN 1 ELSE 0 END) AS superhost_pct
    FROM listings
    GROUP BY neighborhood
    ORDER BY avg_price DESC
    """
    con = duckdb.connect(':memory:')
    try:
        con.register('listings', listings)
        return con.execute(query).fetchdf()
    finally:
        con.close()
