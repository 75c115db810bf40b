"""
Tests for listing_pricer/features - imputation, outliers, derived features, encoding.
"""

import numpy as np
import pandas as pd
import pytest

from listing_pricer.config import PreprocessConfig
from listing_pricer.data.schema import CATEGORICAL_FEATURES, DERIVED_FEATURES, MODEL_FEATURES
from listing_pricer.exceptions import DataValidationError, DegenerateStatisticError, InputDataError
from listing_pricer.features.engineering import (
    compute_amenity_score,
    compute_luxury_score,
    derive_features,
    engineer_listing_features,
)
from listing_pricer.features.preprocessing import (
    CategoryLevels,
    OutlierBounds,
    PreprocessingArtifacts,
    cap_outliers,
    detect_outliers,
    impute_median,
    preprocess,
)


class TestImputeMedian:
    """Test median imputation."""

    def test_fills_with_median_of_observed_values(self, small_listings):
        """Nulls take the median of the values present before imputation."""
        imputed, medians, counts = impute_median(
            small_listings, ['review_scores_rating', 'host_years_active']
        )
        assert medians['review_scores_rating'] == pytest.approx(4.55)
        assert medians['host_years_active'] == pytest.approx(3.5)
        assert counts == {'review_scores_rating': 2, 'host_years_active': 2}
        assert imputed['review_scores_rating'].isna().sum() == 0
        assert imputed.loc[0, 'review_scores_rating'] == pytest.approx(4.55)

    def test_non_null_values_unchanged(self, small_listings):
        imputed, _, _ = impute_median(small_listings, ['review_scores_rating'])
        observed = small_listings['review_scores_rating'].notna()
        pd.testing.assert_series_equal(
            imputed.loc[observed, 'review_scores_rating'],
            small_listings.loc[observed, 'review_scores_rating']
        )

    def test_input_not_mutated(self, small_listings):
        before = small_listings.copy()
        impute_median(small_listings, ['review_scores_rating'])
        pd.testing.assert_frame_equal(small_listings, before)

    def test_all_null_column_raises(self, small_listings):
        df = small_listings.assign(review_scores_rating=np.nan)
        with pytest.raises(DegenerateStatisticError, match='review_scores_rating'):
            impute_median(df, ['review_scores_rating'])

    def test_all_null_column_uses_fallback(self, small_listings):
        df = small_listings.assign(review_scores_rating=np.nan)
        imputed, medians, _ = impute_median(df, ['review_scores_rating'], {'review_scores_rating': 4.0})
        assert medians['review_scores_rating'] == 4.0
        assert (imputed['review_scores_rating'] == 4.0).all()


class TestOutliers:
    """Test IQR outlier detection and capping."""

    def test_detects_single_high_outlier(self):
        mask = detect_outliers([1, 2, 3, 4, 5, 100])
        assert mask.tolist() == [False, False, False, False, False, True]

    def test_bounds_use_linear_quantiles(self):
        bounds = OutlierBounds.from_values([1, 2, 3, 4, 5, 100])
        assert bounds.q1 == pytest.approx(2.25)
        assert bounds.q3 == pytest.approx(4.75)
        assert bounds.upper == pytest.approx(8.5)
        assert bounds.lower == pytest.approx(-1.5)

    def test_nulls_never_flagged(self):
        mask = detect_outliers([1, 2, np.nan, 3, 4, 5, 100])
        assert bool(mask[2]) is False

    def test_capping_keeps_rows_and_original(self, small_listings):
        capped, bounds = cap_outliers(small_listings, 'price')
        assert len(capped) == len(small_listings)
        assert capped['price'].max() == pytest.approx(bounds.upper)
        assert capped.loc[4, 'price_original'] == 1200.0
        assert capped['price'].between(bounds.lower, bounds.upper).all()

    def test_capping_is_idempotent(self, small_listings):
        once, bounds = cap_outliers(small_listings, 'price')
        twice, _ = cap_outliers(once, 'price', bounds=bounds)
        pd.testing.assert_series_equal(once['price'], twice['price'])
        pd.testing.assert_series_equal(once['price_original'], twice['price_original'])

    def test_recapping_keeps_raw_original(self, small_listings):
        once, _ = cap_outliers(small_listings, 'price')
        twice, _ = cap_outliers(once, 'price')
        assert twice.loc[4, 'price_original'] == 1200.0


class TestDerivedFeatures:
    """Test feature derivation."""

    def test_all_derived_columns_present(self, small_listings):
        derived = derive_features(small_listings.fillna({'review_scores_rating': 4.5, 'host_years_active': 3}))
        for col in DERIVED_FEATURES:
            assert col in derived.columns

    def test_ratios(self, small_listings):
        derived = derive_features(small_listings)
        row = derived.loc[2]
        assert row['price_per_bedroom'] == pytest.approx(210.0 / 3)
        assert row['price_per_guest'] == pytest.approx(210.0 / 6)
        assert row['bed_bath_ratio'] == pytest.approx(1.5)
        assert row['availability_score'] == pytest.approx(200 / 365)

    def test_amenity_score_range(self, small_listings):
        derived = derive_features(small_listings)
        assert derived['amenity_score'].min() == pytest.approx(0.0)
        assert derived['amenity_score'].max() == pytest.approx(1.0)

    def test_amenity_score_zero_range(self):
        scores = compute_amenity_score(pd.Series([12, 12, 12]), 12, 12)
        assert (scores == 0.0).all()

    def test_luxury_score_counts_indicators(self):
        df = pd.DataFrame({
            'bedrooms': [3, 1],
            'bathrooms': [2.0, 1.0],
            'num_amenities': [25, 5],
            'host_is_superhost': ['Yes', 'No'],
            'review_scores_rating': [4.8, 3.5],
        })
        assert compute_luxury_score(df).tolist() == [5, 0]

    def test_inference_features_use_training_range(self):
        df = pd.DataFrame({'num_amenities': [5, 30, 40], 'bedrooms': [1, 2, 2], 'bathrooms': [0.0, 1.0, 2.0]})
        out = engineer_listing_features(df, 5, 30)
        assert out['amenity_score'].tolist() == pytest.approx([0.0, 1.0, 1.4])
        assert out['bed_bath_ratio'].tolist() == pytest.approx([2.0, 2.0, 1.0])


class TestCategoryLevels:
    """Test recorded categorical levels."""

    def test_levels_sorted_with_first_as_reference(self, small_listings):
        levels = CategoryLevels.from_frame(small_listings)
        assert levels.levels['neighborhood'] == ('Beach Area', 'Downtown', 'Suburbs')
        assert levels.reference_level('neighborhood') == 'Beach Area'
        assert levels.columns == CATEGORICAL_FEATURES

    def test_apply_casts_to_categorical(self, small_listings):
        levels = CategoryLevels.from_frame(small_listings)
        encoded = levels.apply(small_listings)
        assert isinstance(encoded['room_type'].dtype, pd.CategoricalDtype)
        assert list(encoded['room_type'].cat.categories) == ['Entire home/apt', 'Private room', 'Shared room']

    def test_unknown_level_raises(self, small_listings):
        levels = CategoryLevels.from_frame(small_listings)
        df = small_listings.copy()
        df.loc[0, 'neighborhood'] = 'Airport Area'
        with pytest.raises(InputDataError, match='Airport Area'):
            levels.apply(df)


class TestPreprocess:
    """Test the full preprocessing pass."""

    def test_generated_table_passes_checks(self, cleaned_listings):
        assert cleaned_listings.validation.passed
        assert len(cleaned_listings.data) == 1000
        assert (cleaned_listings.data['price'] <= cleaned_listings.artifacts.price_bounds.upper).all()

    def test_invariants_hold(self, small_listings):
        result = preprocess(small_listings)
        df = result.data
        assert df[MODEL_FEATURES + ['price'] + DERIVED_FEATURES].isna().sum().sum() == 0
        assert (df['price'] > 0).all()
        assert (df['bedrooms'] > 0).all()
        assert df['review_scores_rating'].between(1, 5).all()
        assert result.validation.passed

    def test_row_count_and_input_unchanged(self, small_listings):
        before = small_listings.copy()
        result = preprocess(small_listings)
        assert len(result.data) == len(small_listings)
        pd.testing.assert_frame_equal(small_listings, before)

    def test_artifacts_recorded(self, small_listings):
        artifacts = preprocess(small_listings).artifacts
        assert artifacts.n_outliers == 1
        assert artifacts.amenity_min == 5
        assert artifacts.amenity_max == 30
        assert artifacts.imputation_medians['host_years_active'] == pytest.approx(3.5)

    def test_artifacts_round_trip(self, small_listings, tmp_path):
        artifacts = preprocess(small_listings).artifacts
        path = tmp_path / 'artifacts.pkl'
        artifacts.save(path)
        loaded = PreprocessingArtifacts.load(path)
        assert loaded.category_levels.levels == artifacts.category_levels.levels
        assert loaded.price_bounds == artifacts.price_bounds

    def test_missing_artifacts_raise(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PreprocessingArtifacts.load(tmp_path / 'missing.pkl')

    def test_fail_mode_raises_on_invalid_rows(self, small_listings):
        df = small_listings.copy()
        df.loc[3, 'bedrooms'] = 0
        with pytest.raises(DataValidationError, match='valid_bedrooms'):
            preprocess(df, PreprocessConfig(validation_mode='fail'))

    def test_warn_mode_reports_failures(self, small_listings):
        df = small_listings.copy()
        df.loc[3, 'bedrooms'] = 0
        result = preprocess(df, PreprocessConfig(validation_mode='warn'))
        assert result.validation.failed_checks == ['valid_bedrooms']
