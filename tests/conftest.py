"""
Shared pytest fixtures for the listing price pipeline tests.
"""

import numpy as np
import pandas as pd
import pytest

from listing_pricer.config import GeneratorConfig, PipelineConfig, TreeParams, TrainingConfig
from listing_pricer.data.generator import generate_listings, sample_new_listings
from listing_pricer.features.preprocessing import preprocess
from listing_pricer.models.trainer import train_models


@pytest.fixture
def small_listings():
    """Ten hand-written raw listings with a few nulls and one price outlier."""
    return pd.DataFrame({
        'listing_id': list(range(1, 11)),
        'neighborhood': ['Downtown', 'Suburbs', 'Downtown', 'Beach Area', 'Suburbs',
                         'Downtown', 'Beach Area', 'Suburbs', 'Downtown', 'Beach Area'],
        'property_type': ['Apartment', 'House', 'Condo', 'Apartment', 'House',
                          'Loft', 'Condo', 'Apartment', 'House', 'Townhouse'],
        'room_type': ['Entire home/apt', 'Private room', 'Entire home/apt', 'Shared room', 'Entire home/apt',
                      'Private room', 'Entire home/apt', 'Private room', 'Entire home/apt', 'Entire home/apt'],
        'bedrooms': [1, 2, 3, 1, 4, 1, 2, 1, 3, 2],
        'bathrooms': [1.0, 1.0, 2.0, 1.0, 2.5, 1.0, 1.5, 1.0, 2.0, 1.5],
        'accommodates': [2, 3, 6, 2, 8, 2, 4, 1, 6, 4],
        'num_amenities': [10, 15, 25, 5, 30, 12, 20, 8, 22, 18],
        'host_is_superhost': ['No', 'Yes', 'Yes', 'No', 'No', 'Yes', 'No', 'No', 'Yes', 'No'],
        'host_listings_count': [1, 2, 3, 1, 5, 1, 2, 1, 4, 2],
        'host_years_active': [1.0, np.nan, 5.0, 2.0, 8.0, 3.0, np.nan, 1.0, 6.0, 4.0],
        'number_of_reviews': [0, 20, 45, 3, 60, 12, 30, 8, 50, 25],
        'review_scores_rating': [np.nan, 4.6, 4.9, 3.8, 4.4, np.nan, 4.7, 4.1, 4.8, 4.5],
        'availability_365': [300, 120, 200, 365, 90, 250, 180, 330, 60, 210],
        'minimum_nights': [1, 2, 3, 1, 7, 2, 3, 1, 2, 30],
        'instant_bookable': ['Yes', 'No', 'Yes', 'Yes', 'No', 'Yes', 'No', 'Yes', 'Yes', 'No'],
        'price': [95.0, 60.0, 210.0, 35.0, 1200.0, 55.0, 150.0, 40.0, 230.0, 140.0],
    })


@pytest.fixture
def new_listings():
    """The built-in demonstration listings."""
    return sample_new_listings()


@pytest.fixture(scope='session')
def generated_listings():
    """1000 generated listings (seed 123)."""
    return generate_listings(GeneratorConfig(n_listings=1000, seed=123))


@pytest.fixture(scope='session')
def cleaned_listings(generated_listings):
    """Preprocessed version of the generated listings."""
    return preprocess(generated_listings)


@pytest.fixture(scope='session')
def training_result(cleaned_listings):
    """Both models trained on the generated listings."""
    return train_models(cleaned_listings.data, TrainingConfig(tree=TreeParams(cv_folds=5)))


@pytest.fixture(scope='session')
def model_bundle(training_result, cleaned_listings):
    """Trained models bundled with their preprocessing state."""
    return training_result.bundle(cleaned_listings.artifacts)


@pytest.fixture
def pipeline_config(tmp_path):
    """Pipeline configuration writing into a temporary directory, without figures."""
    return PipelineConfig(
        data_dir=tmp_path / 'data',
        output_dir=tmp_path / 'outputs',
        viz_dir=tmp_path / 'visualizations',
        generator=GeneratorConfig(n_listings=300, seed=123),
        make_plots=False,
    )
