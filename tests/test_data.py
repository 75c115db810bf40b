"""
Tests for listing_pricer/data - generator, loader, validator.
"""

import numpy as np
import pandas as pd
import pytest

from listing_pricer.config import MIN_GENERATED_PRICE, GeneratorConfig
from listing_pricer.data.generator import generate_listings, sample_new_listings
from listing_pricer.data.loader import load_listings, save_table
from listing_pricer.data.schema import LISTING_INPUT_COLUMNS, NEIGHBORHOODS, RAW_COLUMNS
from listing_pricer.data.validator import ListingValidator, validate_listings
from listing_pricer.exceptions import DataValidationError, InputDataError


class TestGenerator:
    """Test the synthetic listing generator."""

    def test_shape_and_columns(self, generated_listings):
        assert len(generated_listings) == 1000
        assert list(generated_listings.columns) == RAW_COLUMNS
        assert generated_listings['listing_id'].is_unique

    def test_same_seed_same_table(self):
        config = GeneratorConfig(n_listings=200, seed=7)
        pd.testing.assert_frame_equal(generate_listings(config), generate_listings(config))

    def test_different_seed_different_table(self):
        a = generate_listings(GeneratorConfig(n_listings=200, seed=7))
        b = generate_listings(GeneratorConfig(n_listings=200, seed=8))
        assert not a['price'].equals(b['price'])

    def test_price_floor_and_rounding(self, generated_listings):
        prices = generated_listings['price']
        assert (prices >= MIN_GENERATED_PRICE).all()
        assert np.allclose(prices, prices.round(2))

    def test_attribute_ranges(self, generated_listings):
        df = generated_listings
        assert set(df['neighborhood']).issubset(NEIGHBORHOODS)
        assert df['bedrooms'].between(1, 5).all()
        assert df['num_amenities'].between(5, 30).all()
        assert df['accommodates'].min() >= 2
        assert df['review_scores_rating'].dropna().between(3, 5).all()

    def test_listings_without_reviews_have_no_rating(self, generated_listings):
        df = generated_listings
        assert df.loc[df['number_of_reviews'] == 0, 'review_scores_rating'].isna().all()
        assert df['review_scores_rating'].isna().any()
        assert df['host_years_active'].isna().any()

    def test_sample_new_listings(self):
        df = sample_new_listings()
        assert len(df) == 5
        assert list(df.columns) == LISTING_INPUT_COLUMNS
        assert 'price' not in df.columns


class TestLoader:
    """Test CSV loading and the input checks."""

    def test_round_trip(self, small_listings, tmp_path):
        path = save_table(small_listings, tmp_path / 'nested' / 'listings.csv')
        loaded = load_listings(path)
        assert len(loaded) == len(small_listings)
        assert list(loaded.columns) == list(small_listings.columns)

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputDataError, match='not found'):
            load_listings(tmp_path / 'nope.csv')

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.csv'
        path.write_text('')
        with pytest.raises(InputDataError, match='empty'):
            load_listings(path)

    def test_header_only_file(self, small_listings, tmp_path):
        path = tmp_path / 'header.csv'
        small_listings.head(0).to_csv(path, index=False)
        with pytest.raises(InputDataError, match='no rows'):
            load_listings(path)

    def test_missing_columns(self, small_listings, tmp_path):
        path = save_table(small_listings.drop(columns=['price', 'bedrooms']), tmp_path / 'listings.csv')
        with pytest.raises(InputDataError) as exc_info:
            load_listings(path)
        assert exc_info.value.details['missing_columns'] == ['bedrooms', 'price']

    def test_custom_required_columns(self, small_listings, tmp_path):
        path = save_table(small_listings.drop(columns=['price']), tmp_path / 'new.csv')
        loaded = load_listings(path, required_columns=LISTING_INPUT_COLUMNS)
        assert 'price' not in loaded.columns


class TestValidator:
    """Test the post-processing checks."""

    @pytest.fixture
    def bad_table(self):
        return pd.DataFrame({
            'price': [100.0, -5.0, 80.0],
            'bedrooms': [1, 2, 3],
            'review_scores_rating': [4.5, 4.0, 6.0],
        })

    def test_clean_table_passes(self, cleaned_listings):
        report = validate_listings(cleaned_listings.data)
        assert report.passed
        assert report.failed_checks == []
        assert report.n_rows == len(cleaned_listings.data)

    def test_warn_mode_reports_failures(self, bad_table):
        report = validate_listings(bad_table, mode='warn')
        assert not report.passed
        assert report.failed_checks == ['positive_prices', 'valid_ratings']
        frame = report.to_frame().set_index('check')
        assert frame.loc['positive_prices', 'failed_rows'] == 1
        assert frame.loc['valid_bedrooms', 'status'] == 'PASS'

    def test_fail_mode_raises(self, bad_table):
        with pytest.raises(DataValidationError) as exc_info:
            ListingValidator(mode='fail').validate(bad_table)
        assert exc_info.value.details['failed_checks'] == ['positive_prices', 'valid_ratings']

    def test_nulls_detected(self, bad_table):
        df = bad_table.assign(review_scores_rating=[4.5, np.nan, 4.0], price=[100.0, 50.0, 80.0])
        report = validate_listings(df)
        assert report.failed_checks == ['no_missing']

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            ListingValidator(mode='strict')

    def test_format_lists_every_check(self, bad_table):
        text = validate_listings(bad_table).format()
        assert 'positive_prices : FAIL (1 rows)' in text
        assert 'valid_bedrooms : PASS' in text
