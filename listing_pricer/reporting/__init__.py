"""Exploratory statistics, figures and text reports."""
from .eda import EdaSummary, correlation_matrix, explore, group_price_stats, price_correlations
from .reports import eda_report, model_report, preprocessing_report, recommendation_report
