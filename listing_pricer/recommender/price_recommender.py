"""
Price recommendations for new listings.

Blends the linear and tree predictions, attaches a ±15% price band,
picks a pricing strategy from reviews and host status, suggests
improvements and positions the price against comparable listings.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from listing_pricer.config import (
    PRICE_BAND_PCT,
    TIP_MAX_MINIMUM_NIGHTS,
    TIP_MIN_AMENITIES,
    TIP_SUPERHOST_MIN_YEARS,
    RecommenderConfig,
)
from listing_pricer.data.loader import check_columns
from listing_pricer.data.schema import ID_COLUMN, LISTING_INPUT_COLUMNS, MODEL_NUMERIC_FEATURES
from listing_pricer.exceptions import InputDataError
from listing_pricer.features.engineering import engineer_listing_features
from listing_pricer.features.preprocessing import PreprocessingArtifacts
from listing_pricer.models.trainer import ModelBundle
from listing_pricer.recommender.market import MarketComparison, compare_to_market

logger = logging.getLogger(__name__)


# Strategy name -> (reason, price column)
STRATEGIES = {
    'Premium Pricing': (
        "Excellent reviews and Superhost status justify premium",
        'price_high',
    ),
    'Competitive Pricing': (
        "New listing - attract early guests with lower price",
        'price_low',
    ),
    'Market Rate': (
        "Standard pricing based on market conditions",
        'predicted_price_avg',
    ),
}

PREDICTION_COLUMNS = [
    ID_COLUMN, 'neighborhood', 'property_type', 'bedrooms',
    'predicted_price_lr', 'predicted_price_dt', 'predicted_price_avg',
    'price_low', 'price_high',
]


@dataclass
class PricingRecommendation:
    """Recommendation for one new listing."""
    listing_id: str
    strategy: str
    recommended_price: float
    price_low: float
    price_high: float
    reason: str
    tips: List[str] = field(default_factory=list)
    market: Optional[MarketComparison] = None

    @property
    def price_range(self) -> str:
        return f"${self.price_low} - ${self.price_high}"

    def to_dict(self) -> Dict:
        """Flat dictionary for tabular output."""
        return {
            'listing_id': self.listing_id,
            'strategy': self.strategy,
            'recommended_price': self.recommended_price,
            'price_range': self.price_range,
            'reason': self.reason,
            'tips': '; '.join(self.tips) if self.tips else 'None',
            'market_percentile': self.market.percentile if self.market else None,
            'positioning': self.market.positioning if self.market else None,
        }


# =============================================================================
# FEATURES AND PREDICTIONS
# =============================================================================

def prepare_new_listings(df: pd.DataFrame, artifacts: PreprocessingArtifacts) -> pd.DataFrame:
    """
    Reconstructs model inputs for unpriced listings.

    Missing ratings and host tenure are filled with the training medians,
    amenity_score is scaled with the training amenity range, and
    categoricals are cast to the recorded training levels.

    Raises:
        InputDataError: missing columns, blank numeric values or unknown category values
    """
    check_columns(df, LISTING_INPUT_COLUMNS, source='new listings')
    df = df.copy()
    for col, median in artifacts.imputation_medians.items():
        if col in df.columns:
            df[col] = df[col].fillna(median)
    df = engineer_listing_features(df, artifacts.amenity_min, artifacts.amenity_max)

    nulls = df[MODEL_NUMERIC_FEATURES].isna()
    if nulls.any().any():
        columns = [col for col in MODEL_NUMERIC_FEATURES if nulls[col].any()]
        listing_ids = df.loc[nulls.any(axis=1), ID_COLUMN].astype(str).tolist()
        raise InputDataError(
            f"New listings have missing values in {columns} (listings: {listing_ids})",
            details={'columns': columns, 'listing_ids': listing_ids}
        )
    return artifacts.category_levels.apply(df)


def predict_prices(bundle: ModelBundle, df: pd.DataFrame, band_pct: float = PRICE_BAND_PCT) -> pd.DataFrame:
    """
    Predicts nightly prices with both models and blends them.

    Args:
        bundle: Trained models with preprocessing artifacts
        df: New listings (raw attribute columns)
        band_pct: Half-width of the price band around the blended price

    Returns:
        New DataFrame with the input columns plus predicted_price_lr,
        predicted_price_dt, predicted_price_avg, price_low, price_high
    """
    prepared = prepare_new_listings(df, bundle.artifacts)

    lr = bundle.linear.predict(prepared)
    dt = bundle.tree.predict(prepared)
    avg = (lr + dt) / 2

    prepared['predicted_price_lr'] = lr.round(2)
    prepared['predicted_price_dt'] = dt.round(2)
    prepared['predicted_price_avg'] = avg.round(2)
    prepared['price_low'] = (avg * (1 - band_pct)).round(2)
    prepared['price_high'] = (avg * (1 + band_pct)).round(2)
    return prepared


# =============================================================================
# STRATEGY AND TIPS
# =============================================================================

def classify_strategy(listing, config: Optional[RecommenderConfig] = None) -> str:
    """
    Picks exactly one pricing strategy; the first matching rule wins.

    1. Premium Pricing: rating >= 4.7 and superhost
    2. Competitive Pricing: fewer than 10 reviews
    3. Market Rate: everything else
    """
    config = config or RecommenderConfig()
    rating = listing['review_scores_rating']
    if pd.notna(rating) and rating >= config.premium_min_rating and str(listing['host_is_superhost']) == 'Yes':
        return 'Premium Pricing'
    if listing['number_of_reviews'] < config.new_listing_max_reviews:
        return 'Competitive Pricing'
    return 'Market Rate'


def optimization_tips(listing) -> List[str]:
    """Improvement suggestions in fixed order."""
    tips = []
    if listing['num_amenities'] < TIP_MIN_AMENITIES:
        tips.append("Add more amenities to justify higher pricing")
    if str(listing['instant_bookable']) == 'No':
        tips.append("Enable instant booking to increase visibility")
    if listing['minimum_nights'] > TIP_MAX_MINIMUM_NIGHTS:
        tips.append("Consider reducing minimum nights for flexibility")
    if str(listing['host_is_superhost']) == 'No' and listing['host_years_active'] > TIP_SUPERHOST_MIN_YEARS:
        tips.append("Work towards Superhost status for price premium")
    return tips


def recommend_listing(
    listing: pd.Series,
    historical: Optional[pd.DataFrame] = None,
    config: Optional[RecommenderConfig] = None
) -> PricingRecommendation:
    """Builds the recommendation for one priced listing row."""
    strategy = classify_strategy(listing, config)
    reason, price_column = STRATEGIES[strategy]

    market = None
    if historical is not None:
        market = compare_to_market(historical, listing, listing['predicted_price_avg'])

    return PricingRecommendation(
        listing_id=str(listing[ID_COLUMN]),
        strategy=strategy,
        recommended_price=round(float(listing[price_column]), 2),
        price_low=float(listing['price_low']),
        price_high=float(listing['price_high']),
        reason=reason,
        tips=optimization_tips(listing),
        market=market,
    )


def recommend(
    bundle: ModelBundle,
    new_listings: pd.DataFrame,
    historical: Optional[pd.DataFrame] = None,
    config: Optional[RecommenderConfig] = None
) -> List[PricingRecommendation]:
    """
    Predicts prices and builds a recommendation per new listing.

    Args:
        bundle: Trained models with preprocessing artifacts
        new_listings: Listings to price
        historical: Cleaned listing table used for market comparison
        config: Band width and strategy thresholds

    Returns:
        One PricingRecommendation per input row, in input order
    """
    config = config or RecommenderConfig()
    priced = predict_prices(bundle, new_listings, band_pct=config.band_pct)

    recommendations = []
    for _, listing in priced.iterrows():
        rec = recommend_listing(listing, historical, config)
        if historical is not None and rec.market is None:
            logger.info(f"  • {rec.listing_id}: no comparable listings, market comparison skipped")
        recommendations.append(rec)
    return recommendations
