"""
Data loading utilities for the listing pipeline.

Reads and writes comma-separated tables and rejects inputs that are
missing, empty or lack the expected columns before any stage runs.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from listing_pricer.data.schema import RAW_COLUMNS
from listing_pricer.exceptions import InputDataError

logger = logging.getLogger(__name__)


def check_columns(df: pd.DataFrame, required_columns: Iterable[str], source: str = 'table') -> None:
    """
    Verifies that a table carries every required column and at least one row.

    Raises:
        InputDataError: if columns are missing or the table is empty
    """
    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise InputDataError(
            f"{source} is missing required columns: {missing}",
            details={'missing_columns': missing, 'source': source}
        )
    if df.empty:
        raise InputDataError(f"{source} has no rows", details={'source': source})


def load_listings(
    filepath,
    required_columns: Optional[Iterable[str]] = None
) -> pd.DataFrame:
    """
    Load a listing table from CSV.

    Args:
        filepath: Path to the CSV file (header row expected)
        required_columns: Columns that must be present (defaults to the raw schema)

    Returns:
        pd.DataFrame: Loaded data
    """
    path = Path(filepath)
    if not path.exists():
        raise InputDataError(f"Input table not found: {path}", details={'path': str(path)})

    try:
        df = pd.read_csv(path)
    except pd.errors.EmptyDataError as e:
        raise InputDataError(f"Input table is empty: {path}", details={'path': str(path)}) from e
    except pd.errors.ParserError as e:
        raise InputDataError(f"Malformed CSV in {path}: {e}", details={'path': str(path)}) from e

    check_columns(df, required_columns if required_columns is not None else RAW_COLUMNS, source=str(path))

    logger.info(f"Loaded {len(df):,} rows, {len(df.columns)} columns from {path}")
    return df


def save_table(df: pd.DataFrame, filepath) -> Path:
    """
    Write a table to CSV, creating parent directories.

    Returns:
        Path that was written
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    logger.info(f"Saved {len(df):,} rows to {path}")
    return path


def save_text(text: str, filepath) -> Path:
    """Write a text file, creating parent directories."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    return path
