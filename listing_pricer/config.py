"""
Configuration for the listing price pipeline.

Contains generator distributions, preprocessing thresholds, tree control
parameters, recommendation rules and file locations.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple


# =============================================================================
# REPRODUCIBILITY
# =============================================================================

RANDOM_STATE = 123


# =============================================================================
# DATA GENERATION
# =============================================================================

BASE_PRICE = 80.0
MIN_GENERATED_PRICE = 30.0

NEIGHBORHOOD_FACTORS = {
    'Downtown': 1.40,
    'Beach Area': 1.50,
    'Suburbs': 0.90,
    'Historic District': 1.25,
    'Business District': 1.30,
    'University Area': 0.95,
    'Airport Area': 0.85,
    'Waterfront': 1.45,
}

PROPERTY_FACTORS = {
    'Apartment': 1.00,
    'House': 1.30,
    'Condo': 1.10,
    'Loft': 1.25,
    'Townhouse': 1.15,
}

ROOM_FACTORS = {
    'Entire home/apt': 1.5,
    'Private room': 1.0,
    'Shared room': 0.6,
}


@dataclass
class GeneratorConfig:
    """Sampling setup for the synthetic listing table."""
    n_listings: int = 1000
    seed: int = RANDOM_STATE
    neighborhood_probs: Tuple[float, ...] = (0.15, 0.12, 0.18, 0.10, 0.12, 0.15, 0.08, 0.10)
    property_type_probs: Tuple[float, ...] = (0.35, 0.25, 0.20, 0.10, 0.10)
    room_type_probs: Tuple[float, ...] = (0.65, 0.30, 0.05)
    superhost_prob: float = 0.25
    instant_bookable_prob: float = 0.60
    price_noise_sd: float = 0.15
    rating_missing_rate: float = 0.05
    years_active_missing_rate: float = 0.03


# =============================================================================
# PREPROCESSING
# =============================================================================

OUTLIER_IQR_MULTIPLIER = 1.5

# Derived-feature thresholds
HIGH_RATED_THRESHOLD = 4.5
EXPERIENCED_HOST_YEARS = 3
POPULAR_REVIEWS_QUANTILE = 0.75
MIN_BATHROOMS_FOR_RATIO = 0.5

# Luxury indicators (each contributes one point)
LUXURY_MIN_BEDROOMS = 3
LUXURY_MIN_BATHROOMS = 2
LUXURY_MIN_AMENITIES = 20
LUXURY_MIN_RATING = 4.7


@dataclass
class PreprocessConfig:
    """
    Configuration for the preprocessing pass.

    impute_fallbacks supplies a value for a column whose values are all null;
    without one such a column raises DegenerateStatisticError.
    """
    impute_columns: Tuple[str, ...] = ('review_scores_rating', 'host_years_active')
    impute_fallbacks: Dict[str, float] = field(default_factory=dict)
    outlier_column: str = 'price'
    iqr_multiplier: float = OUTLIER_IQR_MULTIPLIER
    validation_mode: str = 'warn'  # 'warn' or 'fail'


# =============================================================================
# MODEL CONFIGURATION
# =============================================================================

TEST_SIZE = 0.2
STRATIFY_BINS = 5


@dataclass
class TreeParams:
    """
    Control parameters for the pruned regression tree.

    cp is relative to the root node error, so a split must lower the
    overall lack of fit by at least cp to be kept.
    """
    min_split: int = 20
    min_leaf: int = 10
    cp: float = 0.001
    max_depth: int = 10
    cv_folds: int = 10
    # Among cp values tied on cross-validated error pick the simplest tree
    prefer_simpler: bool = True


@dataclass
class TrainingConfig:
    """Configuration for the train/evaluate stage."""
    test_size: float = TEST_SIZE
    seed: int = RANDOM_STATE
    stratify_bins: int = STRATIFY_BINS
    tree: TreeParams = field(default_factory=TreeParams)


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

PRICE_BAND_PCT = 0.15

PREMIUM_MIN_RATING = 4.7
NEW_LISTING_MAX_REVIEWS = 10

TIP_MIN_AMENITIES = 15
TIP_MAX_MINIMUM_NIGHTS = 2
TIP_SUPERHOST_MIN_YEARS = 2

# Percentile cut points for market positioning labels
POSITIONING_THRESHOLDS = (
    (75.0, 'PREMIUM'),
    (50.0, 'ABOVE AVERAGE'),
    (25.0, 'BELOW AVERAGE'),
)
DEFAULT_POSITIONING = 'BUDGET'


@dataclass
class RecommenderConfig:
    """Configuration for blending and strategy selection."""
    band_pct: float = PRICE_BAND_PCT
    premium_min_rating: float = PREMIUM_MIN_RATING
    new_listing_max_reviews: int = NEW_LISTING_MAX_REVIEWS


# =============================================================================
# FILE PATHS
# =============================================================================

DATA_DIR = 'data'
OUTPUT_DIR = 'outputs'
VISUALIZATION_DIR = 'visualizations'

RAW_DATA_FILENAME = 'listings.csv'
CLEAN_DATA_FILENAME = 'listings_cleaned.csv'
DATA_DICTIONARY_FILENAME = 'data_dictionary.txt'
PREPROCESSING_ARTIFACTS_FILENAME = 'preprocessing_artifacts.pkl'
MODEL_BUNDLE_FILENAME = 'price_models.pkl'
FEATURE_IMPORTANCE_FILENAME = 'feature_importance.csv'
TEST_PREDICTIONS_FILENAME = 'predictions_sample.csv'
NEW_PREDICTIONS_FILENAME = 'new_listing_predictions.csv'

PREPROCESSING_REPORT = 'preprocessing_summary.txt'
EDA_REPORT = 'eda_insights_report.txt'
MODEL_REPORT = 'model_performance_report.txt'
RECOMMENDATION_REPORT = 'pricing_recommendations_report.txt'

# Figure file names, written under the visualization directory
EDA_PLOTS = [
    '01_price_distribution.png',
    '02_price_by_property_type.png',
    '03_price_by_neighborhood.png',
    '04_correlation_matrix.png',
    '05_price_by_room_type.png',
    '06_amenities_vs_price.png',
    '07_superhost_comparison.png',
    '08_ratings_vs_price.png',
    '09_price_by_bedrooms.png',
    '10_comprehensive_analysis.png',
]

MODEL_PLOTS = [
    '11_decision_tree.png',
    '12_model_comparison.png',
    '13_predicted_vs_actual.png',
    '14_residuals.png',
    '15_feature_importance.png',
]

PREDICTION_PLOTS = ['16_new_listing_predictions.png']


@dataclass
class PipelineConfig:
    """Paths and per-stage settings for a full run."""
    data_dir: Path = field(default_factory=lambda: Path(DATA_DIR))
    output_dir: Path = field(default_factory=lambda: Path(OUTPUT_DIR))
    viz_dir: Path = field(default_factory=lambda: Path(VISUALIZATION_DIR))
    new_listings_path: Optional[Path] = None
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    recommender: RecommenderConfig = field(default_factory=RecommenderConfig)
    make_plots: bool = True

    @property
    def raw_data_path(self) -> Path:
        return Path(self.data_dir) / RAW_DATA_FILENAME

    @property
    def clean_data_path(self) -> Path:
        return Path(self.data_dir) / CLEAN_DATA_FILENAME

    @property
    def artifacts_path(self) -> Path:
        return Path(self.output_dir) / PREPROCESSING_ARTIFACTS_FILENAME

    @property
    def model_path(self) -> Path:
        return Path(self.output_dir) / MODEL_BUNDLE_FILENAME


def get_validation_mode(mode: str) -> str:
    """
    Normalizes a validation mode name.

    Args:
        mode: 'warn' or 'fail' (case-insensitive)

    Returns:
        Lower-case mode string
    """
    normalized = mode.lower().strip()
    if normalized not in ('warn', 'fail'):
        raise ValueError(f"Unknown validation mode: {mode}. Choose from: ['warn', 'fail']")
    return normalized
