"""
Tests for listing_pricer/recommender - strategies, tips, market comparison.
"""

import pandas as pd
import pytest

from listing_pricer.config import RecommenderConfig
from listing_pricer.exceptions import InputDataError
from listing_pricer.recommender.market import (
    compare_to_market,
    neighborhood_landscape,
    positioning_label,
    price_percentile,
)
from listing_pricer.recommender.price_recommender import (
    classify_strategy,
    optimization_tips,
    predict_prices,
    prepare_new_listings,
    recommend,
)


class TestClassifyStrategy:
    """Test strategy selection."""

    def test_sample_listings(self, new_listings):
        strategies = [classify_strategy(row) for _, row in new_listings.iterrows()]
        assert strategies == [
            'Competitive Pricing',
            'Premium Pricing',
            'Premium Pricing',
            'Market Rate',
            'Premium Pricing',
        ]

    def test_premium_takes_precedence_over_few_reviews(self):
        listing = pd.Series({'review_scores_rating': 4.9, 'host_is_superhost': 'Yes', 'number_of_reviews': 2})
        assert classify_strategy(listing) == 'Premium Pricing'

    def test_premium_needs_superhost(self):
        listing = pd.Series({'review_scores_rating': 4.9, 'host_is_superhost': 'No', 'number_of_reviews': 50})
        assert classify_strategy(listing) == 'Market Rate'

    def test_few_reviews_without_superhost_is_competitive(self):
        listing = pd.Series({'review_scores_rating': 4.0, 'host_is_superhost': 'No', 'number_of_reviews': 3})
        assert classify_strategy(listing) == 'Competitive Pricing'

    def test_rating_threshold_is_inclusive(self):
        listing = pd.Series({'review_scores_rating': 4.7, 'host_is_superhost': 'Yes', 'number_of_reviews': 50})
        assert classify_strategy(listing) == 'Premium Pricing'

    def test_missing_rating_is_not_premium(self):
        listing = pd.Series({'review_scores_rating': float('nan'), 'host_is_superhost': 'Yes', 'number_of_reviews': 0})
        assert classify_strategy(listing) == 'Competitive Pricing'

    def test_custom_thresholds(self):
        listing = pd.Series({'review_scores_rating': 4.5, 'host_is_superhost': 'No', 'number_of_reviews': 15})
        config = RecommenderConfig(new_listing_max_reviews=20)
        assert classify_strategy(listing, config) == 'Competitive Pricing'


class TestOptimizationTips:
    """Test improvement suggestions."""

    def test_sample_listing_tips(self, new_listings):
        tips = {row['listing_id']: optimization_tips(row) for _, row in new_listings.iterrows()}
        assert tips['NEW_001'] == ["Add more amenities to justify higher pricing"]
        assert tips['NEW_002'] == [
            "Enable instant booking to increase visibility",
            "Consider reducing minimum nights for flexibility",
        ]
        assert tips['NEW_003'] == []
        assert tips['NEW_004'] == ["Add more amenities to justify higher pricing"]

    def test_superhost_tip_for_experienced_hosts(self):
        listing = pd.Series({
            'num_amenities': 20,
            'instant_bookable': 'Yes',
            'minimum_nights': 1,
            'host_is_superhost': 'No',
            'host_years_active': 5.0,
        })
        assert optimization_tips(listing) == ["Work towards Superhost status for price premium"]


class TestMarketComparison:
    """Test percentile positioning against comparable listings."""

    def test_percentile_counts_strictly_lower_prices(self):
        assert price_percentile([50, 60, 70, 80], 65) == 50.0
        assert price_percentile([50, 60, 70, 80], 50) == 0.0
        assert price_percentile([50, 60, 70, 80], 100) == 100.0

    @pytest.mark.parametrize('percentile,label', [
        (100.0, 'PREMIUM'),
        (75.1, 'PREMIUM'),
        (75.0, 'ABOVE AVERAGE'),
        (50.0, 'BELOW AVERAGE'),
        (25.0, 'BUDGET'),
        (0.0, 'BUDGET'),
    ])
    def test_positioning_label(self, percentile, label):
        assert positioning_label(percentile) == label

    def test_compare_to_market(self, small_listings):
        listing = pd.Series({'neighborhood': 'Downtown', 'bedrooms': 1})
        market = compare_to_market(small_listings, listing, 80.0)
        assert market.n_comparables == 2
        assert market.median_price == pytest.approx(75.0)
        assert market.min_price == 55.0
        assert market.max_price == 95.0
        assert market.percentile == 50.0
        assert market.positioning == 'BELOW AVERAGE'

    def test_no_comparables_returns_none(self, small_listings):
        listing = pd.Series({'neighborhood': 'Waterfront', 'bedrooms': 3})
        assert compare_to_market(small_listings, listing, 200.0) is None

    def test_neighborhood_landscape(self, small_listings):
        landscape = neighborhood_landscape(small_listings)
        assert landscape['neighborhood'].tolist() == ['Suburbs', 'Downtown', 'Beach Area']
        downtown = landscape.set_index('neighborhood').loc['Downtown']
        assert downtown['avg_price'] == pytest.approx(147.5)
        assert downtown['listings'] == 4
        assert downtown['superhost_pct'] == pytest.approx(75.0)


class TestPredictions:
    """Test feature reconstruction and blended predictions."""

    def test_prepare_uses_training_amenity_range(self, model_bundle, new_listings):
        artifacts = model_bundle.artifacts
        prepared = prepare_new_listings(new_listings, artifacts)
        span = artifacts.amenity_max - artifacts.amenity_min
        expected = (new_listings['num_amenities'] - artifacts.amenity_min) / span
        assert prepared['amenity_score'].tolist() == pytest.approx(expected.tolist())

    def test_prepare_fills_missing_with_training_medians(self, model_bundle, new_listings):
        df = new_listings.copy()
        df.loc[0, 'review_scores_rating'] = float('nan')
        prepared = prepare_new_listings(df, model_bundle.artifacts)
        median = model_bundle.artifacts.imputation_medians['review_scores_rating']
        assert prepared.loc[0, 'review_scores_rating'] == pytest.approx(median)

    def test_unknown_neighborhood_rejected(self, model_bundle, new_listings):
        df = new_listings.copy()
        df.loc[0, 'neighborhood'] = 'Old Town'
        with pytest.raises(InputDataError, match='Old Town'):
            prepare_new_listings(df, model_bundle.artifacts)

    def test_missing_column_rejected(self, model_bundle, new_listings):
        with pytest.raises(InputDataError):
            prepare_new_listings(new_listings.drop(columns=['bedrooms']), model_bundle.artifacts)

    def test_blank_numeric_value_rejected(self, model_bundle, new_listings):
        df = new_listings.copy()
        df.loc[1, 'bathrooms'] = float('nan')
        with pytest.raises(InputDataError, match='bathrooms') as exc_info:
            prepare_new_listings(df, model_bundle.artifacts)
        assert 'bathrooms' in exc_info.value.details['columns']
        assert exc_info.value.details['listing_ids'] == ['NEW_002']

    def test_price_band(self, model_bundle, new_listings):
        priced = predict_prices(model_bundle, new_listings)
        assert len(priced) == len(new_listings)
        avg = (priced['predicted_price_lr'] + priced['predicted_price_dt']) / 2
        assert priced['predicted_price_avg'].tolist() == pytest.approx(avg.tolist(), abs=0.01)
        assert priced['price_low'].tolist() == pytest.approx((priced['predicted_price_avg'] * 0.85).tolist(), abs=0.01)
        assert priced['price_high'].tolist() == pytest.approx((priced['predicted_price_avg'] * 1.15).tolist(), abs=0.01)
        assert (priced['price_low'] <= priced['predicted_price_avg']).all()
        assert (priced['predicted_price_avg'] <= priced['price_high']).all()

    def test_prices_rounded_to_cents(self, model_bundle, new_listings):
        priced = predict_prices(model_bundle, new_listings)
        for col in ['predicted_price_lr', 'predicted_price_dt', 'predicted_price_avg', 'price_low', 'price_high']:
            assert (priced[col] == priced[col].round(2)).all()


class TestRecommend:
    """Test the full recommendation pass."""

    def test_one_recommendation_per_listing(self, model_bundle, new_listings, cleaned_listings):
        recs = recommend(model_bundle, new_listings, cleaned_listings.data)
        assert [r.listing_id for r in recs] == new_listings['listing_id'].tolist()

    def test_recommended_price_follows_strategy(self, model_bundle, new_listings):
        recs = {r.listing_id: r for r in recommend(model_bundle, new_listings)}
        assert recs['NEW_001'].recommended_price == recs['NEW_001'].price_low
        assert recs['NEW_002'].recommended_price == recs['NEW_002'].price_high
        assert recs['NEW_004'].price_low < recs['NEW_004'].recommended_price < recs['NEW_004'].price_high

    def test_market_comparison_attached(self, model_bundle, new_listings, cleaned_listings):
        recs = recommend(model_bundle, new_listings, cleaned_listings.data)
        for rec in recs:
            if rec.market is not None:
                assert 0.0 <= rec.market.percentile <= 100.0
                assert rec.market.n_comparables > 0

    def test_without_history_no_market(self, model_bundle, new_listings):
        recs = recommend(model_bundle, new_listings)
        assert all(r.market is None for r in recs)
        assert recs[0].to_dict()['positioning'] is None
