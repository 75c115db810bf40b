"""
Feature engineering for listing price prediction.

Derived features:
- Price ratios: price_per_bedroom, price_per_guest
- Normalized scores: amenity_score (min-max), availability_score
- Quality flags: high_rated, experienced_host, popular_listing
- Composition: bed_bath_ratio, luxury_score (0-5)
"""

from typing import Optional, Tuple

import numpy as np
import pandas as pd

from listing_pricer.config import (
    EXPERIENCED_HOST_YEARS,
    HIGH_RATED_THRESHOLD,
    LUXURY_MIN_AMENITIES,
    LUXURY_MIN_BATHROOMS,
    LUXURY_MIN_BEDROOMS,
    LUXURY_MIN_RATING,
    MIN_BATHROOMS_FOR_RATIO,
    POPULAR_REVIEWS_QUANTILE,
)


# =============================================================================
# NORMALIZATION
# =============================================================================

def amenity_range(num_amenities: pd.Series) -> Tuple[float, float]:
    """Returns (min, max) of the amenity counts used for min-max scaling."""
    return float(num_amenities.min()), float(num_amenities.max())


def compute_amenity_score(
    num_amenities: pd.Series,
    amenity_min: float,
    amenity_max: float
) -> pd.Series:
    """
    Min-max scales amenity counts.

    When every listing has the same count the range is zero and all
    scores are 0.0.
    """
    span = amenity_max - amenity_min
    if span == 0:
        return pd.Series(0.0, index=num_amenities.index)
    return (num_amenities - amenity_min) / span


def popularity_threshold(number_of_reviews: pd.Series) -> float:
    """75th percentile of review counts (linear interpolation)."""
    return float(number_of_reviews.quantile(POPULAR_REVIEWS_QUANTILE))


# =============================================================================
# ROW-LEVEL FEATURES
# =============================================================================

def compute_bed_bath_ratio(bedrooms: pd.Series, bathrooms: pd.Series) -> pd.Series:
    """Bedrooms per bathroom, with bathrooms floored at 0.5."""
    return bedrooms / np.maximum(bathrooms, MIN_BATHROOMS_FOR_RATIO)


def compute_luxury_score(df: pd.DataFrame) -> pd.Series:
    """
    Counts luxury indicators per listing.

    One point each for: 3+ bedrooms, 2+ bathrooms, 20+ amenities,
    superhost, rating of 4.7 or more.
    """
    indicators = [
        df['bedrooms'] >= LUXURY_MIN_BEDROOMS,
        df['bathrooms'] >= LUXURY_MIN_BATHROOMS,
        df['num_amenities'] >= LUXURY_MIN_AMENITIES,
        df['host_is_superhost'].astype(str) == 'Yes',
        df['review_scores_rating'] >= LUXURY_MIN_RATING,
    ]
    return sum(ind.astype(int) for ind in indicators)


def derive_features(
    df: pd.DataFrame,
    amenity_bounds: Optional[Tuple[float, float]] = None,
    popular_cutoff: Optional[float] = None
) -> pd.DataFrame:
    """
    Computes every derived attribute in a single pass.

    Expects an imputed, capped table. Normalization constants default to the
    table's own statistics; pass them explicitly to reuse training values.

    Args:
        df: Listing table with price
        amenity_bounds: (min, max) amenity counts for amenity_score
        popular_cutoff: Review count at or above which a listing is popular

    Returns:
        New DataFrame with derived columns added
    """
    df = df.copy()

    if amenity_bounds is None:
        amenity_bounds = amenity_range(df['num_amenities'])
    if popular_cutoff is None:
        popular_cutoff = popularity_threshold(df['number_of_reviews'])

    df['price_per_bedroom'] = df['price'] / np.maximum(df['bedrooms'], 1)
    df['price_per_guest'] = df['price'] / np.maximum(df['accommodates'], 1)
    df['amenity_score'] = compute_amenity_score(df['num_amenities'], *amenity_bounds)
    df['high_rated'] = df['review_scores_rating'] >= HIGH_RATED_THRESHOLD
    df['availability_score'] = df['availability_365'] / 365
    df['experienced_host'] = df['host_years_active'] >= EXPERIENCED_HOST_YEARS
    df['popular_listing'] = df['number_of_reviews'] >= popular_cutoff
    df['bed_bath_ratio'] = compute_bed_bath_ratio(df['bedrooms'], df['bathrooms'])
    df['luxury_score'] = compute_luxury_score(df).astype(int)

    return df


def engineer_listing_features(
    df: pd.DataFrame,
    amenity_min: float,
    amenity_max: float
) -> pd.DataFrame:
    """
    Derives the model inputs available for unpriced listings.

    Uses the training-time amenity range so scores line up with the
    values the models were fitted on.
    """
    df = df.copy()
    df['amenity_score'] = compute_amenity_score(df['num_amenities'], amenity_min, amenity_max)
    df['bed_bath_ratio'] = compute_bed_bath_ratio(df['bedrooms'], df['bathrooms'])
    return df
