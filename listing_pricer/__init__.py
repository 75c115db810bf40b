"""
Listing Price Pipeline.

Modules:
- data: Synthetic generation, loading and validation
- features: Preprocessing and feature engineering
- models: Linear and pruned tree price models, metrics, training
- recommender: Price blending, strategy and market comparison
- reporting: EDA statistics, figures and text reports
"""

__version__ = '1.0.0'
