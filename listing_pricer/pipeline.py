"""
Stage orchestration for the listing price pipeline.

Stages run in order and hand over through files:

    generate   -> data/listings.csv, data/data_dictionary.txt
    preprocess -> data/listings_cleaned.csv, outputs/preprocessing_artifacts.pkl
    explore    -> outputs/eda_insights_report.txt, EDA figures
    train      -> outputs/price_models.pkl, feature importance, test predictions
    predict    -> outputs/new_listing_predictions.csv, recommendations report

A stage that fails raises and stops the run.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Optional

import pandas as pd

from listing_pricer.config import (
    DATA_DICTIONARY_FILENAME,
    EDA_REPORT,
    FEATURE_IMPORTANCE_FILENAME,
    MODEL_REPORT,
    NEW_PREDICTIONS_FILENAME,
    PREPROCESSING_REPORT,
    RECOMMENDATION_REPORT,
    TEST_PREDICTIONS_FILENAME,
    PipelineConfig,
)
from listing_pricer.data.generator import generate_listings, sample_new_listings
from listing_pricer.data.loader import load_listings, save_table, save_text
from listing_pricer.data.schema import (
    DATA_DICTIONARY,
    DERIVED_FEATURES,
    LISTING_INPUT_COLUMNS,
    RAW_COLUMNS,
)
from listing_pricer.features.preprocessing import PreprocessingArtifacts, preprocess
from listing_pricer.models.trainer import ModelBundle, train_models
from listing_pricer.recommender.market import neighborhood_landscape
from listing_pricer.recommender.price_recommender import PREDICTION_COLUMNS, predict_prices, recommend_listing
from listing_pricer.reporting import eda, reports

logger = logging.getLogger(__name__)

CLEAN_COLUMNS = RAW_COLUMNS + DERIVED_FEATURES + ['price_original']


def _load_clean(config: PipelineConfig) -> pd.DataFrame:
    """Cleaned table with categoricals restored to their recorded levels."""
    df = load_listings(config.clean_data_path, required_columns=CLEAN_COLUMNS)
    artifacts = PreprocessingArtifacts.load(config.artifacts_path)
    return artifacts.category_levels.apply(df)


# =============================================================================
# STAGES
# =============================================================================

def run_generate(config: PipelineConfig) -> pd.DataFrame:
    """Generate the synthetic listing table and its data dictionary."""
    df = generate_listings(config.generator)
    save_table(df, config.raw_data_path)
    save_text(DATA_DICTIONARY, Path(config.data_dir) / DATA_DICTIONARY_FILENAME)
    return df


def run_preprocess(config: PipelineConfig) -> pd.DataFrame:
    """Clean the raw table and persist the learned preprocessing state."""
    raw = load_listings(config.raw_data_path)
    result = preprocess(raw, config.preprocess)

    save_table(result.data, config.clean_data_path)
    result.artifacts.save(config.artifacts_path)
    save_text(
        reports.preprocessing_report(raw, result.data, result.artifacts, result.validation),
        Path(config.output_dir) / PREPROCESSING_REPORT
    )
    return result.data


def run_explore(config: PipelineConfig) -> eda.EdaSummary:
    """Compute exploratory statistics, figures and the insights report."""
    df = _load_clean(config)
    summary = eda.explore(df)

    top = summary.top_correlations.head(5)
    logger.info("Top correlations with price:")
    for row in top.itertuples(index=False):
        logger.info(f"  • {row.variable}: {row.correlation:.3f}")

    if config.make_plots:
        from listing_pricer.reporting.plots import create_eda_plots
        create_eda_plots(df, summary, config.viz_dir)

    save_text(reports.eda_report(summary), Path(config.output_dir) / EDA_REPORT)
    return summary


def run_train(config: PipelineConfig) -> ModelBundle:
    """Fit and evaluate both models and save the bundle."""
    df = _load_clean(config)
    artifacts = PreprocessingArtifacts.load(config.artifacts_path)

    result = train_models(df, config.training)
    bundle = result.bundle(artifacts)
    bundle.save(config.model_path)

    output_dir = Path(config.output_dir)
    importance = result.feature_importance()
    save_table(importance, output_dir / FEATURE_IMPORTANCE_FILENAME)
    save_table(result.test_predictions, output_dir / TEST_PREDICTIONS_FILENAME)

    if config.make_plots:
        from listing_pricer.reporting.plots import create_model_plots
        create_model_plots(result.tree, result.metrics_table, result.test_predictions, importance, config.viz_dir)

    save_text(reports.model_report(result), output_dir / MODEL_REPORT)
    logger.info(f"Best model: {result.best_model}")
    return bundle


def run_predict(config: PipelineConfig) -> pd.DataFrame:
    """Price new listings and write recommendations."""
    bundle = ModelBundle.load(config.model_path)

    if config.new_listings_path is not None:
        new_listings = load_listings(config.new_listings_path, required_columns=LISTING_INPUT_COLUMNS)
    else:
        new_listings = sample_new_listings()
    historical = _load_clean(config)

    priced = predict_prices(bundle, new_listings, band_pct=config.recommender.band_pct)
    recommendations = []
    for _, listing in priced.iterrows():
        rec = recommend_listing(listing, historical, config.recommender)
        recommendations.append(rec)
        logger.info(f"  • {rec.listing_id}: {rec.strategy} at ${rec.recommended_price:.2f} ({rec.price_range})")
        if rec.market is None:
            logger.info("    no comparable listings, market comparison skipped")

    landscape = neighborhood_landscape(historical)

    output_dir = Path(config.output_dir)
    save_table(priced[PREDICTION_COLUMNS], output_dir / NEW_PREDICTIONS_FILENAME)

    if config.make_plots:
        from listing_pricer.reporting.plots import create_prediction_plots
        create_prediction_plots(priced, config.viz_dir)

    save_text(
        reports.recommendation_report(priced, recommendations, landscape),
        output_dir / RECOMMENDATION_REPORT
    )
    return priced


STAGES: Dict[str, Callable[[PipelineConfig], object]] = {
    'generate': run_generate,
    'preprocess': run_preprocess,
    'explore': run_explore,
    'train': run_train,
    'predict': run_predict,
}


def run_stage(name: str, config: Optional[PipelineConfig] = None):
    """
    Run a single stage by name.

    Raises:
        ValueError: unknown stage name
    """
    if name not in STAGES:
        raise ValueError(f"Unknown stage: {name}. Choose from: {list(STAGES)}")
    config = config or PipelineConfig()
    logger.info("=" * 70)
    logger.info(f"STAGE: {name.upper()}")
    logger.info("=" * 70)
    return STAGES[name](config)


def run_all(config: Optional[PipelineConfig] = None) -> Dict[str, object]:
    """Run every stage in order; the first failure stops the run."""
    config = config or PipelineConfig()
    return {name: run_stage(name, config) for name in STAGES}
