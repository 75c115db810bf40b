"""
Design matrix construction shared by both price models.

Categorical columns are expanded into indicator columns over a fixed level
list, so a single listing produces the same columns as the training table.
"""

from typing import Dict, List, Sequence, Tuple

import pandas as pd

from listing_pricer.data.loader import check_columns
from listing_pricer.data.schema import CATEGORICAL_FEATURES
from listing_pricer.exceptions import InputDataError


def categories_from_frame(df: pd.DataFrame, features: Sequence[str]) -> Dict[str, List[str]]:
    """Level list per categorical feature, taken from the Categorical dtype when present."""
    categories = {}
    for col in features:
        if col not in CATEGORICAL_FEATURES:
            continue
        if isinstance(df[col].dtype, pd.CategoricalDtype):
            categories[col] = [str(c) for c in df[col].cat.categories]
        else:
            categories[col] = sorted(df[col].dropna().astype(str).unique())
    return categories


def encode_features(
    df: pd.DataFrame,
    features: Sequence[str],
    categories: Dict[str, List[str]],
    drop_first: bool
) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """
    Builds a numeric design matrix.

    Args:
        df: Listing table
        features: Model features in order
        categories: Level list per categorical feature
        drop_first: Drop the reference (first) level's indicator

    Returns:
        (design matrix, mapping of design column -> source feature)
    """
    check_columns(df, features, source='model input')

    blocks = []
    sources = {}
    for col in features:
        if col in categories:
            levels = categories[col]
            values = df[col].astype(object)
            values = values.where(values.isna(), values.astype(str))
            unknown = sorted(set(values.dropna()) - set(levels))
            if unknown:
                raise InputDataError(
                    f"Unknown levels for '{col}': {unknown}",
                    details={'column': col, 'unknown': unknown}
                )
            cat = pd.Series(pd.Categorical(values, categories=levels), index=df.index)
            dummies = pd.get_dummies(cat, prefix=col, drop_first=drop_first, dtype=float)
            blocks.append(dummies)
            for name in dummies.columns:
                sources[name] = col
        else:
            blocks.append(df[[col]].astype(float))
            sources[col] = col

    return pd.concat(blocks, axis=1), sources
