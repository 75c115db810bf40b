"""
Synthetic listing generator.

Draws listing attributes from fixed categorical distributions and computes
price from a multiplicative formula with Gaussian noise. All randomness
comes from a single seeded numpy Generator so a seed reproduces the table.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from listing_pricer.config import (
    BASE_PRICE,
    MIN_GENERATED_PRICE,
    NEIGHBORHOOD_FACTORS,
    PROPERTY_FACTORS,
    ROOM_FACTORS,
    GeneratorConfig,
)
from listing_pricer.data.schema import (
    LISTING_INPUT_COLUMNS,
    NEIGHBORHOODS,
    PROPERTY_TYPES,
    RAW_COLUMNS,
    ROOM_TYPES,
)

logger = logging.getLogger(__name__)


BEDROOM_CHOICES = [1, 2, 3, 4, 5]
BEDROOM_PROBS = [0.35, 0.30, 0.20, 0.10, 0.05]

BATHROOM_CHOICES = [1.0, 1.5, 2.0, 2.5, 3.0]
BATHROOM_PROBS = [0.30, 0.25, 0.25, 0.15, 0.05]

MINIMUM_NIGHT_CHOICES = [1, 2, 3, 7, 30]
MINIMUM_NIGHT_PROBS = [0.40, 0.25, 0.15, 0.15, 0.05]


def _yes_no(rng: np.random.Generator, n: int, p_yes: float) -> np.ndarray:
    return rng.choice(['Yes', 'No'], size=n, p=[p_yes, 1 - p_yes])


def compute_listing_price(df: pd.DataFrame, noise: np.ndarray) -> pd.Series:
    """
    Applies the pricing formula to listing attributes.

    price = base × neighborhood × property × room × (1 + 0.3·bedrooms)
            × (1 + 0.15·bathrooms) × (1 + 0.01·amenities) × superhost premium
            × (1 + 0.05·min(rating − 3, 2)) × (1 + noise)

    Args:
        df: Listings with categorical and numeric attributes
        noise: Relative noise per row (same length as df)

    Returns:
        Unrounded price series
    """
    rating_component = np.minimum(df['review_scores_rating'] - 3, 2)
    superhost = np.where(df['host_is_superhost'] == 'Yes', 1.15, 1.0)

    return (
        BASE_PRICE
        * df['neighborhood'].map(NEIGHBORHOOD_FACTORS).fillna(1.0)
        * df['property_type'].map(PROPERTY_FACTORS).fillna(1.0)
        * df['room_type'].map(ROOM_FACTORS).fillna(1.0)
        * (1 + 0.3 * df['bedrooms'])
        * (1 + 0.15 * df['bathrooms'])
        * (1 + 0.01 * df['num_amenities'])
        * superhost
        * (1 + 0.05 * rating_component)
        * (1 + noise)
    )


def generate_listings(config: Optional[GeneratorConfig] = None) -> pd.DataFrame:
    """
    Generates the synthetic listing table.

    Args:
        config: Sampling configuration (defaults to 1000 rows, seed 123)

    Returns:
        DataFrame with the raw listing columns, including injected nulls
        in review_scores_rating and host_years_active
    """
    config = config or GeneratorConfig()
    rng = np.random.default_rng(config.seed)
    n = config.n_listings

    df = pd.DataFrame({
        'listing_id': np.arange(1, n + 1),
        'neighborhood': rng.choice(NEIGHBORHOODS, size=n, p=list(config.neighborhood_probs)),
        'property_type': rng.choice(PROPERTY_TYPES, size=n, p=list(config.property_type_probs)),
        'room_type': rng.choice(ROOM_TYPES, size=n, p=list(config.room_type_probs)),
        'bedrooms': rng.choice(BEDROOM_CHOICES, size=n, p=BEDROOM_PROBS),
        'bathrooms': rng.choice(BATHROOM_CHOICES, size=n, p=BATHROOM_PROBS),
        'accommodates': np.maximum(2, rng.normal(4, 2, size=n)),
        'num_amenities': rng.integers(5, 31, size=n),
        'host_is_superhost': _yes_no(rng, n, config.superhost_prob),
        'host_listings_count': np.maximum(1, rng.poisson(3, size=n)),
        'host_years_active': rng.integers(1, 11, size=n).astype(float),
        'number_of_reviews': np.maximum(0, rng.poisson(25, size=n)),
        'review_scores_rating': np.clip(rng.normal(4.5, 0.5, size=n), 3, 5),
        'availability_365': rng.integers(0, 366, size=n),
        'minimum_nights': rng.choice(MINIMUM_NIGHT_CHOICES, size=n, p=MINIMUM_NIGHT_PROBS),
        'instant_bookable': _yes_no(rng, n, config.instant_bookable_prob),
    })

    noise = rng.normal(0, config.price_noise_sd, size=n)
    price = compute_listing_price(df, noise)

    df['price'] = np.round(np.maximum(MIN_GENERATED_PRICE, price), 2)
    df['accommodates'] = np.round(df['accommodates']).astype(int)
    df['review_scores_rating'] = np.round(df['review_scores_rating'], 2)

    # Listings without reviews have no rating; a few more are missing at random
    no_reviews = df['number_of_reviews'] == 0
    rating_dropout = rng.random(n) < config.rating_missing_rate
    df.loc[no_reviews | rating_dropout, 'review_scores_rating'] = np.nan

    years_dropout = rng.random(n) < config.years_active_missing_rate
    df.loc[years_dropout, 'host_years_active'] = np.nan

    logger.info(
        f"Generated {n:,} listings "
        f"(mean price ${df['price'].mean():.2f}, "
        f"{df['review_scores_rating'].isna().sum()} missing ratings, "
        f"{df['host_years_active'].isna().sum()} missing host years)"
    )

    return df[RAW_COLUMNS]


def sample_new_listings() -> pd.DataFrame:
    """
    Returns the demonstration listings scored by the prediction stage.

    Scenarios: budget suburban apartment, luxury downtown house, beach condo
    with amenities, private room near the university, waterfront townhouse.
    """
    return pd.DataFrame({
        'listing_id': ['NEW_001', 'NEW_002', 'NEW_003', 'NEW_004', 'NEW_005'],
        'neighborhood': ['Suburbs', 'Downtown', 'Beach Area', 'University Area', 'Waterfront'],
        'property_type': ['Apartment', 'House', 'Condo', 'Apartment', 'Townhouse'],
        'room_type': ['Entire home/apt', 'Entire home/apt', 'Entire home/apt',
                      'Private room', 'Entire home/apt'],
        'bedrooms': [1, 4, 2, 1, 3],
        'bathrooms': [1.0, 3.0, 2.0, 1.0, 2.5],
        'accommodates': [2, 8, 4, 2, 6],
        'num_amenities': [10, 28, 22, 8, 25],
        'host_is_superhost': ['No', 'Yes', 'Yes', 'No', 'Yes'],
        'host_listings_count': [1, 5, 3, 1, 2],
        'host_years_active': [1.0, 7.0, 4.0, 2.0, 5.0],
        'number_of_reviews': [5, 150, 80, 12, 95],
        'review_scores_rating': [4.2, 4.9, 4.7, 4.3, 4.8],
        'availability_365': [300, 180, 250, 350, 200],
        'minimum_nights': [2, 3, 2, 1, 3],
        'instant_bookable': ['Yes', 'No', 'Yes', 'Yes', 'Yes'],
    })[LISTING_INPUT_COLUMNS]
