"""Preprocessing and feature engineering for listing price prediction."""
from .engineering import (
    amenity_range,
    compute_amenity_score,
    compute_bed_bath_ratio,
    compute_luxury_score,
    derive_features,
    engineer_listing_features,
    popularity_threshold,
)
from .preprocessing import (
    CategoryLevels,
    OutlierBounds,
    PreprocessingArtifacts,
    PreprocessResult,
    cap_outliers,
    detect_outliers,
    impute_median,
    preprocess,
)
