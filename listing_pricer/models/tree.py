"""
Cost-complexity pruned regression tree.

The tree is grown at the complexity floor (cp relative to the root node
error), then every subtree on the pruning path is scored by K-fold
cross-validation. The subtree with the lowest cross-validated relative
error is kept.

Complexity table columns:
- CP: pruning strength relative to root error
- nsplit: number of splits in the subtree
- rel_error: training error relative to root error
- xerror / xstd: cross-validated relative error and its standard error
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold
from sklearn.tree import DecisionTreeRegressor

from listing_pricer.config import RANDOM_STATE, TreeParams
from listing_pricer.data.schema import MODEL_FEATURES, TARGET_COLUMN
from listing_pricer.models.design import categories_from_frame, encode_features

logger = logging.getLogger(__name__)


def _leaf_error(tree: DecisionTreeRegressor) -> float:
    """Weighted mean squared error over the leaves of a fitted tree."""
    t = tree.tree_
    leaves = t.children_left == -1
    weights = t.weighted_n_node_samples
    return float(np.sum(weights[leaves] * t.impurity[leaves]) / weights[0])


class PrunedTreeModel:
    """
    Regression tree with cross-validated cost-complexity pruning.

    Usage:
        model = PrunedTreeModel(TreeParams(cp=0.001))
        model.fit(train_df)
        model.complexity_table
        prices = model.predict(test_df)
    """

    name = 'Decision Tree'

    def __init__(
        self,
        params: Optional[TreeParams] = None,
        features: Optional[Sequence[str]] = None,
        target: str = TARGET_COLUMN,
        seed: int = RANDOM_STATE
    ):
        self.params = params or TreeParams()
        self.features = list(features) if features is not None else list(MODEL_FEATURES)
        self.target = target
        self.seed = seed
        self.model = None
        self.categories: Dict[str, List[str]] = {}
        self.columns: List[str] = []
        self.sources: Dict[str, str] = {}
        self.complexity_table: Optional[pd.DataFrame] = None
        self.best_cp: Optional[float] = None
        self.root_error: float = 0.0
        self.is_fitted = False

    def _design(self, df: pd.DataFrame) -> pd.DataFrame:
        X, sources = encode_features(df, self.features, self.categories, drop_first=False)
        self.sources = sources
        return X

    def _new_tree(self, alpha: float) -> DecisionTreeRegressor:
        return DecisionTreeRegressor(
            min_samples_split=self.params.min_split,
            min_samples_leaf=self.params.min_leaf,
            max_depth=self.params.max_depth,
            ccp_alpha=alpha,
            random_state=self.seed,
        )

    def _candidate_alphas(self, X: pd.DataFrame, y: np.ndarray) -> np.ndarray:
        """Pruning path alphas above the complexity floor, plus the floor itself, descending."""
        floor = self.params.cp * self.root_error
        path = self._new_tree(0.0).cost_complexity_pruning_path(X, y)
        alphas = np.unique(np.concatenate([[floor], path.ccp_alphas[path.ccp_alphas > floor]]))
        return alphas[::-1]

    def _cross_validated_errors(self, X: pd.DataFrame, y: np.ndarray, alphas: np.ndarray) -> np.ndarray:
        """Squared out-of-fold error per (alpha, row)."""
        n_folds = min(self.params.cv_folds, len(y))
        folds = KFold(n_splits=n_folds, shuffle=True, random_state=self.seed)
        sq_err = np.zeros((len(alphas), len(y)))

        for train_idx, test_idx in folds.split(X):
            X_train, X_test = X.iloc[train_idx], X.iloc[test_idx]
            for i, alpha in enumerate(alphas):
                tree = self._new_tree(alpha).fit(X_train, y[train_idx])
                sq_err[i, test_idx] = (y[test_idx] - tree.predict(X_test)) ** 2

        return sq_err

    def _select(self, table: pd.DataFrame) -> int:
        """Row index of the minimum xerror, resolving ties by tree size."""
        xerror = table['xerror'].to_numpy()
        ties = np.flatnonzero(np.isclose(xerror, xerror.min(), rtol=1e-12, atol=0.0))
        # Table is ordered by CP descending, so the first tie is the smallest tree
        return int(ties[0] if self.params.prefer_simpler else ties[-1])

    def fit(self, df: pd.DataFrame) -> 'PrunedTreeModel':
        """
        Grow, cross-validate and prune the tree.

        Args:
            df: Preprocessed training data including the target

        Returns:
            self
        """
        self.categories = categories_from_frame(df, self.features)
        X = self._design(df)
        self.columns = list(X.columns)
        y = df[self.target].astype(float).to_numpy()
        self.root_error = float(np.var(y))

        if self.root_error == 0 or len(y) < 2:
            # Nothing to split on; keep the root
            self.model = self._new_tree(0.0).fit(X, y)
            self.complexity_table = pd.DataFrame(
                [{'CP': self.params.cp, 'nsplit': 0, 'rel_error': 1.0, 'xerror': 1.0, 'xstd': 0.0}]
            )
            self.best_cp = self.params.cp
            self.is_fitted = True
            return self

        alphas = self._candidate_alphas(X, y)
        sq_err = self._cross_validated_errors(X, y, alphas)

        rows = []
        for i, alpha in enumerate(alphas):
            tree = self._new_tree(alpha).fit(X, y)
            rows.append({
                'CP': alpha / self.root_error,
                'nsplit': tree.get_n_leaves() - 1,
                'rel_error': _leaf_error(tree) / self.root_error,
                'xerror': sq_err[i].mean() / self.root_error,
                'xstd': sq_err[i].std() / np.sqrt(len(y)) / self.root_error,
            })
        self.complexity_table = pd.DataFrame(rows)

        best = self._select(self.complexity_table)
        self.best_cp = float(self.complexity_table.loc[best, 'CP'])
        self.model = self._new_tree(alphas[best]).fit(X, y)

        logger.info(
            f"  • Decision tree: optimal cp {self.best_cp:.6f}, "
            f"{self.model.get_n_leaves() - 1} splits, depth {self.model.get_depth()}"
        )
        self.is_fitted = True
        return self

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """Predict nightly prices."""
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        X, _ = encode_features(df, self.features, self.categories, drop_first=False)
        return self.model.predict(X[self.columns])

    def feature_importance(self) -> pd.DataFrame:
        """
        Impurity importance summed over each source feature's columns.

        Returns:
            DataFrame with feature, importance, sorted descending
        """
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        per_column = pd.Series(self.model.feature_importances_, index=self.columns)
        by_source = per_column.groupby(per_column.index.map(self.sources)).sum()
        importance = by_source.rename_axis('feature').reset_index(name='importance')
        importance = importance[importance['importance'] > 0]
        return importance.sort_values('importance', ascending=False).reset_index(drop=True)
