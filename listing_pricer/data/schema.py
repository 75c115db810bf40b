"""
Column definitions for the listing table.

Feature groups are used for loading checks, modeling and documentation.
"""

from typing import Dict, List

from listing_pricer.config import NEIGHBORHOOD_FACTORS, PROPERTY_FACTORS, ROOM_FACTORS


ID_COLUMN = 'listing_id'
TARGET_COLUMN = 'price'

# Known value sets for the categorical attributes
NEIGHBORHOODS = list(NEIGHBORHOOD_FACTORS.keys())
PROPERTY_TYPES = list(PROPERTY_FACTORS.keys())
ROOM_TYPES = list(ROOM_FACTORS.keys())
YES_NO = ['Yes', 'No']

CATEGORY_VALUES: Dict[str, List[str]] = {
    'neighborhood': NEIGHBORHOODS,
    'property_type': PROPERTY_TYPES,
    'room_type': ROOM_TYPES,
    'host_is_superhost': YES_NO,
    'instant_bookable': YES_NO,
}

CATEGORICAL_FEATURES = list(CATEGORY_VALUES.keys())

NUMERIC_FEATURES = [
    'bedrooms',
    'bathrooms',
    'accommodates',
    'num_amenities',
    'host_listings_count',
    'host_years_active',
    'number_of_reviews',
    'review_scores_rating',
    'availability_365',
    'minimum_nights',
]

# Columns every raw table must carry
RAW_COLUMNS = [ID_COLUMN] + CATEGORICAL_FEATURES + NUMERIC_FEATURES + [TARGET_COLUMN]

# New listings arrive without a price
LISTING_INPUT_COLUMNS = [ID_COLUMN] + CATEGORICAL_FEATURES + NUMERIC_FEATURES

DERIVED_FEATURES = [
    'price_per_bedroom',
    'price_per_guest',
    'amenity_score',
    'high_rated',
    'availability_score',
    'experienced_host',
    'popular_listing',
    'bed_bath_ratio',
    'luxury_score',
]

BOOLEAN_FEATURES = ['high_rated', 'experienced_host', 'popular_listing']

# Features fed to both regression models (price is the target)
MODEL_FEATURES = [
    'neighborhood',
    'property_type',
    'room_type',
    'bedrooms',
    'bathrooms',
    'accommodates',
    'num_amenities',
    'amenity_score',
    'host_is_superhost',
    'host_listings_count',
    'host_years_active',
    'number_of_reviews',
    'review_scores_rating',
    'availability_365',
    'minimum_nights',
    'instant_bookable',
    'bed_bath_ratio',
]

MODEL_CATEGORICAL_FEATURES = [c for c in MODEL_FEATURES if c in CATEGORICAL_FEATURES]
MODEL_NUMERIC_FEATURES = [c for c in MODEL_FEATURES if c not in CATEGORICAL_FEATURES]

# Numeric columns used for the correlation analysis
CORRELATION_FEATURES = [
    'price', 'bedrooms', 'bathrooms', 'accommodates', 'num_amenities',
    'host_listings_count', 'host_years_active', 'number_of_reviews',
    'review_scores_rating', 'availability_365', 'minimum_nights',
    'price_per_bedroom', 'amenity_score', 'bed_bath_ratio',
]


DATA_DICTIONARY = """
LISTING DATA DICTIONARY
=======================

listing_id: Unique identifier for each listing
neighborhood: Geographic area where the property is located
property_type: Type of property (Apartment, House, Condo, Loft, Townhouse)
room_type: Type of room available (Entire home/apt, Private room, Shared room)
bedrooms: Number of bedrooms
bathrooms: Number of bathrooms
accommodates: Maximum number of guests the property can accommodate
num_amenities: Total number of amenities offered
host_is_superhost: Whether the host has superhost status (Yes/No)
host_listings_count: Number of listings the host has
host_years_active: Number of years the host has been active
number_of_reviews: Total number of reviews received
review_scores_rating: Average review rating (1-5 scale)
availability_365: Number of days available for booking in the next 365 days
minimum_nights: Minimum number of nights required for booking
instant_bookable: Whether instant booking is available (Yes/No)
price: Nightly price in USD

Note: This is synthetic data generated for demonstration purposes.
"""
