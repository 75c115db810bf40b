"""
Ordinary least squares price model.

Categorical features enter as indicator columns against their first
(reference) level. Columns that add no rank to the design matrix are
dropped before fitting and reported as aliased, the way R's lm reports
NA coefficients.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.linear_model import LinearRegression

from listing_pricer.data.schema import MODEL_FEATURES, TARGET_COLUMN
from listing_pricer.models.design import categories_from_frame, encode_features

logger = logging.getLogger(__name__)


def find_aliased_columns(X: pd.DataFrame) -> List[str]:
    """
    Returns the columns that are linearly dependent on the intercept and
    the columns before them.

    Constant columns count as aliased because they duplicate the intercept.
    """
    kept = [np.ones(len(X))]
    rank = 1
    aliased = []
    for col in X.columns:
        candidate = np.column_stack(kept + [X[col].to_numpy(dtype=float)])
        new_rank = np.linalg.matrix_rank(candidate)
        if new_rank > rank:
            kept.append(X[col].to_numpy(dtype=float))
            rank = new_rank
        else:
            aliased.append(col)
    return aliased


class LinearPriceModel:
    """
    Linear regression of nightly price on listing attributes.

    Usage:
        model = LinearPriceModel()
        model.fit(train_df)
        prices = model.predict(test_df)
    """

    name = 'Linear Regression'

    def __init__(self, features: Optional[Sequence[str]] = None, target: str = TARGET_COLUMN):
        self.features = list(features) if features is not None else list(MODEL_FEATURES)
        self.target = target
        self.model = None
        self.categories: Dict[str, List[str]] = {}
        self.columns: List[str] = []
        self.aliased_features: List[str] = []
        self.coefficients: Optional[pd.DataFrame] = None
        self.is_fitted = False

    def _design(self, df: pd.DataFrame) -> pd.DataFrame:
        X, _ = encode_features(df, self.features, self.categories, drop_first=True)
        return X

    def fit(self, df: pd.DataFrame) -> 'LinearPriceModel':
        """
        Fit OLS on the training table.

        Args:
            df: Preprocessed training data including the target

        Returns:
            self
        """
        self.categories = categories_from_frame(df, self.features)
        X = self._design(df)
        y = df[self.target].astype(float).to_numpy()

        self.aliased_features = find_aliased_columns(X)
        if self.aliased_features:
            logger.info(
                f"  • Linear model: {len(self.aliased_features)} aliased columns dropped "
                f"({', '.join(self.aliased_features)})"
            )
        self.columns = [c for c in X.columns if c not in self.aliased_features]

        X_fit = X[self.columns]
        self.model = LinearRegression()
        self.model.fit(X_fit, y)
        self.coefficients = self._coefficient_table(X_fit.to_numpy(dtype=float), y)
        self.is_fitted = True
        return self

    def _coefficient_table(self, X: np.ndarray, y: np.ndarray) -> pd.DataFrame:
        """Estimates with standard errors, t values and two-sided p-values."""
        n, p = X.shape
        design = np.column_stack([np.ones(n), X])
        estimates = np.concatenate([[self.model.intercept_], self.model.coef_])
        residuals = y - design @ estimates
        dof = n - p - 1

        if dof > 0:
            sigma2 = float(residuals @ residuals) / dof
            cov = sigma2 * np.linalg.pinv(design.T @ design)
            std_error = np.sqrt(np.clip(np.diag(cov), 0, None))
            with np.errstate(divide='ignore', invalid='ignore'):
                t_value = estimates / std_error
            p_value = 2 * stats.t.sf(np.abs(t_value), dof)
        else:
            std_error = np.full(len(estimates), np.nan)
            t_value = np.full(len(estimates), np.nan)
            p_value = np.full(len(estimates), np.nan)

        return pd.DataFrame({
            'term': ['(Intercept)'] + list(self.columns),
            'estimate': estimates,
            'std_error': std_error,
            't_value': t_value,
            'p_value': p_value,
        })

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """Predict nightly prices."""
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        X = self._design(df)[self.columns]
        return self.model.predict(X)

    def feature_importance(self) -> pd.DataFrame:
        """
        Ranks design columns by absolute coefficient.

        Returns:
            DataFrame with feature, importance, sorted descending
        """
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        importance = pd.DataFrame({
            'feature': self.columns,
            'importance': np.abs(self.model.coef_),
        })
        return importance.sort_values('importance', ascending=False).reset_index(drop=True)
