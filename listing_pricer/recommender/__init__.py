"""Price recommendation for new listings."""
from .market import (
    MarketComparison,
    compare_to_market,
    neighborhood_landscape,
    positioning_label,
    price_percentile,
)
from .price_recommender import (
    PREDICTION_COLUMNS,
    STRATEGIES,
    PricingRecommendation,
    classify_strategy,
    optimization_tips,
    predict_prices,
    prepare_new_listings,
    recommend,
    recommend_listing,
)

__all__ = [
    'MarketComparison', 'compare_to_market', 'neighborhood_landscape',
    'positioning_label', 'price_percentile',
    'PREDICTION_COLUMNS', 'STRATEGIES', 'PricingRecommendation',
    'classify_strategy', 'optimization_tips', 'predict_prices',
    'prepare_new_listings', 'recommend', 'recommend_listing',
]
