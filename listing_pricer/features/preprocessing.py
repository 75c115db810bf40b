"""
Preprocessing pass for the listing table.

Order: median imputation -> IQR outlier capping -> feature derivation ->
categorical encoding. Every step returns a new DataFrame; the statistics it
learns (medians, bounds, ranges, level sets) are collected in
PreprocessingArtifacts so inference can reuse them.
"""

import logging
import pickle
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd

from listing_pricer.config import OUTLIER_IQR_MULTIPLIER, PreprocessConfig
from listing_pricer.data.schema import CATEGORICAL_FEATURES
from listing_pricer.data.validator import ValidationReport, validate_listings
from listing_pricer.exceptions import DegenerateStatisticError, InputDataError
from listing_pricer.features.engineering import (
    amenity_range,
    derive_features,
    popularity_threshold,
)

logger = logging.getLogger(__name__)


# =============================================================================
# MISSING VALUES
# =============================================================================

def impute_median(
    df: pd.DataFrame,
    columns: Iterable[str],
    fallbacks: Optional[Dict[str, float]] = None
) -> Tuple[pd.DataFrame, Dict[str, float], Dict[str, int]]:
    """
    Replaces nulls with the median of the column's non-null values.

    Medians are computed once from the values present on entry, so
    filled cells never feed back into the statistic.

    Args:
        df: Input table
        columns: Columns to impute
        fallbacks: Value to use for a column with no non-null values

    Returns:
        (imputed copy, median used per column, number of cells filled per column)

    Raises:
        DegenerateStatisticError: all-null column without a fallback
    """
    fallbacks = fallbacks or {}
    df = df.copy()
    medians = {}
    counts = {}

    for col in columns:
        missing = df[col].isna()
        observed = df.loc[~missing, col]

        if observed.empty:
            if col not in fallbacks:
                raise DegenerateStatisticError(col, "median undefined, column has no non-null values")
            fill_value = float(fallbacks[col])
            logger.warning(f"  • {col}: all values missing, using fallback {fill_value}")
        else:
            fill_value = float(observed.median())

        df.loc[missing, col] = fill_value
        medians[col] = fill_value
        counts[col] = int(missing.sum())

    return df, medians, counts


# =============================================================================
# OUTLIERS
# =============================================================================

@dataclass
class OutlierBounds:
    """IQR fences computed from one distribution."""
    q1: float
    q3: float
    iqr: float
    lower: float
    upper: float

    @classmethod
    def from_values(cls, values, multiplier: float = OUTLIER_IQR_MULTIPLIER) -> 'OutlierBounds':
        """
        Computes Q1, Q3 (linear interpolation) and the fences
        Q1 - multiplier·IQR, Q3 + multiplier·IQR.
        """
        arr = np.asarray(values, dtype=float)
        arr = arr[~np.isnan(arr)]
        if arr.size == 0:
            raise DegenerateStatisticError('values', "quartiles undefined for an empty sequence")

        q1, q3 = np.percentile(arr, [25, 75])
        iqr = q3 - q1
        return cls(
            q1=float(q1),
            q3=float(q3),
            iqr=float(iqr),
            lower=float(q1 - multiplier * iqr),
            upper=float(q3 + multiplier * iqr),
        )


def detect_outliers(values, multiplier: float = OUTLIER_IQR_MULTIPLIER) -> np.ndarray:
    """
    Flags values outside the IQR fences.

    Args:
        values: Numeric sequence
        multiplier: Fence width in IQRs (1.5 by default)

    Returns:
        Boolean array, True where value < lower fence or value > upper fence.
        Nulls are never flagged.
    """
    arr = np.asarray(values, dtype=float)
    bounds = OutlierBounds.from_values(arr, multiplier)
    with np.errstate(invalid='ignore'):
        return (arr < bounds.lower) | (arr > bounds.upper)


def cap_outliers(
    df: pd.DataFrame,
    column: str = 'price',
    bounds: Optional[OutlierBounds] = None,
    multiplier: float = OUTLIER_IQR_MULTIPLIER
) -> Tuple[pd.DataFrame, OutlierBounds]:
    """
    Winsorizes a column into its IQR fences.

    The untouched values are kept in ``<column>_original``; an existing
    original column is left as is so repeated capping keeps the raw values.
    Rows are never dropped.

    Args:
        df: Input table
        column: Column to cap
        bounds: Pre-computed fences (computed from df when omitted)
        multiplier: Fence width in IQRs

    Returns:
        (capped copy, bounds used)
    """
    df = df.copy()
    if bounds is None:
        bounds = OutlierBounds.from_values(df[column], multiplier)

    original_col = f'{column}_original'
    if original_col not in df.columns:
        df[original_col] = df[column]

    df[column] = df[column].clip(lower=bounds.lower, upper=bounds.upper)
    return df, bounds


# =============================================================================
# CATEGORICAL ENCODING
# =============================================================================

@dataclass
class CategoryLevels:
    """
    Recorded level set per categorical column.

    Levels are the sorted distinct values seen when the table was encoded;
    the first level is the reference level for indicator contrasts.
    """
    levels: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, columns: Iterable[str] = CATEGORICAL_FEATURES) -> 'CategoryLevels':
        levels = {}
        for col in columns:
            values = df[col].dropna().astype(str).unique()
            levels[col] = tuple(sorted(values))
        return cls(levels=levels)

    @property
    def columns(self):
        return list(self.levels.keys())

    def reference_level(self, column: str) -> str:
        return self.levels[column][0]

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Casts categorical columns to pandas Categorical with the recorded levels.

        Raises:
            InputDataError: a value is not one of the recorded levels
        """
        df = df.copy()
        for col, levels in self.levels.items():
            if col not in df.columns:
                raise InputDataError(f"Column '{col}' required for encoding is missing")
            values = df[col].astype(object)
            values = values.where(values.isna(), values.astype(str))
            unknown = sorted(set(values.dropna()) - set(levels))
            if unknown:
                raise InputDataError(
                    f"Unknown levels for '{col}': {unknown}. Known levels: {list(levels)}",
                    details={'column': col, 'unknown': unknown}
                )
            df[col] = pd.Categorical(values, categories=list(levels))
        return df


# =============================================================================
# FULL PASS
# =============================================================================

@dataclass
class PreprocessingArtifacts:
    """Statistics learned during preprocessing, reused at inference."""
    imputation_medians: Dict[str, float]
    imputed_counts: Dict[str, int]
    price_bounds: OutlierBounds
    n_outliers: int
    amenity_min: float
    amenity_max: float
    popular_threshold: float
    category_levels: CategoryLevels

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            pickle.dump(self, f)
        logger.info(f"Saved preprocessing artifacts to {path}")

    @classmethod
    def load(cls, path: Path) -> 'PreprocessingArtifacts':
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(
                f"Preprocessing artifacts not found at {path}. Run the preprocess stage first."
            )
        with open(path, 'rb') as f:
            return pickle.load(f)


@dataclass
class PreprocessResult:
    """Output of preprocess(): cleaned table, learned statistics, checks."""
    data: pd.DataFrame
    artifacts: PreprocessingArtifacts
    validation: ValidationReport


def preprocess(df: pd.DataFrame, config: Optional[PreprocessConfig] = None) -> PreprocessResult:
    """
    Runs imputation, capping, feature derivation, encoding and validation.

    Args:
        df: Raw listing table (not modified)
        config: Preprocessing configuration

    Returns:
        PreprocessResult with the modeling-ready table
    """
    config = config or PreprocessConfig()

    imputed, medians, counts = impute_median(df, config.impute_columns, config.impute_fallbacks)
    for col, n_filled in counts.items():
        logger.info(f"  • {col}: filled {n_filled} missing values with median {medians[col]:.2f}")

    outlier_mask = detect_outliers(imputed[config.outlier_column], config.iqr_multiplier)
    n_outliers = int(outlier_mask.sum())
    logger.info(f"  • {config.outlier_column} outliers detected: {n_outliers} listings")

    capped, bounds = cap_outliers(imputed, config.outlier_column, multiplier=config.iqr_multiplier)
    logger.info(
        f"  • {config.outlier_column} range after capping: "
        f"{capped[config.outlier_column].min():.2f} - {capped[config.outlier_column].max():.2f}"
    )

    amenity_bounds = amenity_range(capped['num_amenities'])
    if amenity_bounds[0] == amenity_bounds[1]:
        logger.warning("  • num_amenities has zero range; amenity_score set to 0.0")
    popular_cutoff = popularity_threshold(capped['number_of_reviews'])
    derived = derive_features(capped, amenity_bounds, popular_cutoff)

    levels = CategoryLevels.from_frame(derived)
    encoded = levels.apply(derived)
    for col in levels.columns:
        logger.info(f"  • {col}: {len(levels.levels[col])} levels")

    report = validate_listings(encoded, mode=config.validation_mode)

    artifacts = PreprocessingArtifacts(
        imputation_medians=medians,
        imputed_counts=counts,
        price_bounds=bounds,
        n_outliers=n_outliers,
        amenity_min=amenity_bounds[0],
        amenity_max=amenity_bounds[1],
        popular_threshold=popular_cutoff,
        category_levels=levels,
    )
    return PreprocessResult(data=encoded, artifacts=artifacts, validation=report)
