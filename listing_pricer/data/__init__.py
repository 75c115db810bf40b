"""Data generation, loading and validation utilities."""
from .generator import generate_listings, sample_new_listings
from .loader import load_listings, save_table, save_text, check_columns
from .validator import ListingValidator, ValidationReport, validate_listings
