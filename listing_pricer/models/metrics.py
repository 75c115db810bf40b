"""
Prediction accuracy metrics.

R² here is the squared Pearson correlation between actual and predicted
values, which is what the performance reports quote for both models.
"""

from dataclasses import asdict, dataclass
from typing import Dict

import numpy as np
import pandas as pd

from listing_pricer.exceptions import DegenerateStatisticError


def _as_arrays(y_true, y_pred):
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Length mismatch: {y_true.shape} actual vs {y_pred.shape} predicted")
    if y_true.size == 0:
        raise DegenerateStatisticError('actual', "no observations to score")
    return y_true, y_pred


def rmse(y_true, y_pred) -> float:
    """Root Mean Squared Error."""
    y_true, y_pred = _as_arrays(y_true, y_pred)
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))


def mae(y_true, y_pred) -> float:
    """Mean Absolute Error."""
    y_true, y_pred = _as_arrays(y_true, y_pred)
    return float(np.mean(np.abs(y_true - y_pred)))


def r2(y_true, y_pred) -> float:
    """
    Squared Pearson correlation of actual and predicted values.

    Returns 0.0 when either side is constant, since the correlation
    is undefined there.
    """
    y_true, y_pred = _as_arrays(y_true, y_pred)
    if np.std(y_true) == 0 or np.std(y_pred) == 0:
        return 0.0
    corr = np.corrcoef(y_true, y_pred)[0, 1]
    return float(corr ** 2)


def mape(y_true, y_pred) -> float:
    """
    Mean Absolute Percentage Error.

    MAPE = mean(|y_true - y_pred| / y_true) * 100

    Raises:
        DegenerateStatisticError: any actual value is zero or negative
    """
    y_true, y_pred = _as_arrays(y_true, y_pred)
    if np.any(y_true <= 0):
        raise DegenerateStatisticError('actual', "MAPE undefined for non-positive actual values")
    return float(np.mean(np.abs((y_true - y_pred) / y_true)) * 100)


@dataclass
class ModelMetrics:
    """Test-set accuracy of one model."""
    model: str
    rmse: float
    mae: float
    r2: float
    mape: float

    def to_dict(self) -> Dict:
        return asdict(self)


def evaluate_predictions(model_name: str, y_true, y_pred) -> ModelMetrics:
    """Computes every metric for one set of predictions."""
    return ModelMetrics(
        model=model_name,
        rmse=rmse(y_true, y_pred),
        mae=mae(y_true, y_pred),
        r2=r2(y_true, y_pred),
        mape=mape(y_true, y_pred),
    )


def comparison_table(metrics) -> pd.DataFrame:
    """One row per model with columns Model, RMSE, MAE, R_squared, MAPE."""
    return pd.DataFrame([
        {
            'Model': m.model,
            'RMSE': m.rmse,
            'MAE': m.mae,
            'R_squared': m.r2,
            'MAPE': m.mape,
        }
        for m in metrics
    ])
