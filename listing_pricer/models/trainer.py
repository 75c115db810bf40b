"""
Training pipeline for the listing price models.

Splits the preprocessed table, fits the linear and tree models on the
training partition, scores both on the held-out partition and bundles
them with the preprocessing artifacts for the prediction stage.
"""

import logging
import pickle
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from listing_pricer.config import RANDOM_STATE, STRATIFY_BINS, TEST_SIZE, TrainingConfig
from listing_pricer.data.schema import ID_COLUMN, TARGET_COLUMN
from listing_pricer.exceptions import InsufficientDataError
from listing_pricer.features.preprocessing import PreprocessingArtifacts
from listing_pricer.models.linear import LinearPriceModel
from listing_pricer.models.metrics import ModelMetrics, comparison_table, evaluate_predictions
from listing_pricer.models.tree import PrunedTreeModel

logger = logging.getLogger(__name__)

MIN_TRAINING_ROWS = 2


# =============================================================================
# TRAIN/TEST SPLIT
# =============================================================================

def _price_groups(y: pd.Series, n_bins: int) -> Optional[pd.Series]:
    """Quantile groups of the target, or None when stratifying is not possible."""
    if n_bins < 2 or y.nunique() < 2:
        return None
    groups = pd.qcut(y, q=min(n_bins, len(y)), labels=False, duplicates='drop')
    if groups.value_counts().min() < 2:
        return None
    return groups


def split_train_test(
    df: pd.DataFrame,
    test_size: float = TEST_SIZE,
    seed: int = RANDOM_STATE,
    target: str = TARGET_COLUMN,
    n_bins: int = STRATIFY_BINS
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Partitions listings into train and test sets, stratified by price.

    Prices are grouped into up to n_bins quantile groups and each group is
    split in proportion. Falls back to a plain random split when a group
    is too small to divide.

    Args:
        df: Preprocessed listing table
        test_size: Fraction of rows held out
        seed: Random seed
        target: Column used for stratification
        n_bins: Maximum number of quantile groups

    Returns:
        (train, test) DataFrames; every row lands in exactly one of them
    """
    if len(df) < MIN_TRAINING_ROWS:
        raise InsufficientDataError(len(df), MIN_TRAINING_ROWS)

    groups = _price_groups(df[target], n_bins)
    try:
        train, test = train_test_split(df, test_size=test_size, random_state=seed, stratify=groups)
    except ValueError:
        if groups is None:
            raise
        logger.warning("  • Stratified split not possible, using random split")
        train, test = train_test_split(df, test_size=test_size, random_state=seed)

    return train, test


# =============================================================================
# MODEL BUNDLE
# =============================================================================

@dataclass
class ModelBundle:
    """Both fitted models plus the preprocessing state needed at inference."""
    linear: LinearPriceModel
    tree: PrunedTreeModel
    artifacts: PreprocessingArtifacts
    metrics: List[ModelMetrics] = field(default_factory=list)

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            pickle.dump(self, f)
        logger.info(f"Model bundle saved to {path}")
        return path

    @classmethod
    def load(cls, path: Path) -> 'ModelBundle':
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Model not found at {path}. Run the train stage first.")
        with open(path, 'rb') as f:
            bundle = pickle.load(f)
        logger.info(f"Model bundle loaded from {path}")
        return bundle


# =============================================================================
# TRAINING
# =============================================================================

@dataclass
class TrainingResult:
    """Everything produced by train_models()."""
    linear: LinearPriceModel
    tree: PrunedTreeModel
    metrics: List[ModelMetrics]
    test_predictions: pd.DataFrame
    n_train: int
    n_test: int

    @property
    def metrics_table(self) -> pd.DataFrame:
        return comparison_table(self.metrics)

    @property
    def best_model(self) -> str:
        """Name of the model with the lowest test RMSE."""
        return min(self.metrics, key=lambda m: m.rmse).model

    def feature_importance(self) -> pd.DataFrame:
        """Importance from both models in one long table."""
        lr = self.linear.feature_importance().assign(model=self.linear.name)
        dt = self.tree.feature_importance().assign(model=self.tree.name)
        return pd.concat([lr, dt], ignore_index=True)[['model', 'feature', 'importance']]

    def bundle(self, artifacts: PreprocessingArtifacts) -> ModelBundle:
        return ModelBundle(linear=self.linear, tree=self.tree, artifacts=artifacts, metrics=self.metrics)


def train_models(df: pd.DataFrame, config: Optional[TrainingConfig] = None) -> TrainingResult:
    """
    Fits both models and evaluates them on a held-out split.

    Args:
        df: Preprocessed listing table
        config: Split and tree settings

    Returns:
        TrainingResult with fitted models, metrics and test predictions
    """
    config = config or TrainingConfig()

    train, test = split_train_test(
        df, test_size=config.test_size, seed=config.seed, n_bins=config.stratify_bins
    )
    logger.info(f"  • Training set: {len(train)} observations")
    logger.info(f"  • Test set: {len(test)} observations")

    linear = LinearPriceModel().fit(train)
    tree = PrunedTreeModel(params=config.tree, seed=config.seed).fit(train)

    y_test = test[TARGET_COLUMN].to_numpy(dtype=float)
    lr_pred = linear.predict(test)
    dt_pred = tree.predict(test)

    metrics = [
        evaluate_predictions(linear.name, y_test, lr_pred),
        evaluate_predictions(tree.name, y_test, dt_pred),
    ]
    for m in metrics:
        logger.info(f"  • {m.model}: RMSE ${m.rmse:.2f}, MAE ${m.mae:.2f}, R² {m.r2:.3f}, MAPE {m.mape:.1f}%")

    predictions = pd.DataFrame({
        ID_COLUMN: test[ID_COLUMN].to_numpy() if ID_COLUMN in test.columns else np.arange(len(test)),
        'actual_price': y_test,
        'lr_predicted': lr_pred,
        'dt_predicted': dt_pred,
    })
    predictions['lr_error'] = predictions['actual_price'] - predictions['lr_predicted']
    predictions['dt_error'] = predictions['actual_price'] - predictions['dt_predicted']

    return TrainingResult(
        linear=linear,
        tree=tree,
        metrics=metrics,
        test_predictions=predictions,
        n_train=len(train),
        n_test=len(test),
    )
