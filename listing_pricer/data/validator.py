"""
Post-processing validation using a Rule-based check set.

Each rule is a SQL query returning the number of offending rows, run with
DuckDB directly over the listing DataFrame. Results form a pass/fail table;
in 'warn' mode failures are logged, in 'fail' mode they raise.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import duckdb
import pandas as pd

from listing_pricer.config import get_validation_mode
from listing_pricer.data.schema import DERIVED_FEATURES, MODEL_FEATURES, TARGET_COLUMN
from listing_pricer.exceptions import DataValidationError

logger = logging.getLogger(__name__)

TABLE_NAME = 'listings'


# ============================================================================
# 1. RULE DATACLASS
# ============================================================================

@dataclass
class Rule:
    """
    Single data quality check.

    check_query counts the rows that violate the rule; zero means pass.
    """
    name: str
    check_query: str
    description: str = ''
    enabled: bool = True


@dataclass
class CheckResult:
    """Outcome of one rule."""
    name: str
    passed: bool
    failed_rows: int
    description: str = ''


@dataclass
class ValidationReport:
    """Pass/fail table for a validated listing table."""
    results: List[CheckResult] = field(default_factory=list)
    mode: str = 'warn'
    n_rows: int = 0

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failed_checks(self) -> List[str]:
        return [r.name for r in self.results if not r.passed]

    def to_frame(self) -> pd.DataFrame:
        """Convert to a DataFrame with one row per check."""
        return pd.DataFrame([
            {
                'check': r.name,
                'status': 'PASS' if r.passed else 'FAIL',
                'failed_rows': r.failed_rows,
                'description': r.description,
            }
            for r in self.results
        ])

    def format(self) -> str:
        """Render as the plain-text block used in reports."""
        lines = ["Validation checks:"]
        for r in self.results:
            status = 'PASS' if r.passed else f'FAIL ({r.failed_rows} rows)'
            lines.append(f"  - {r.name} : {status}")
        return "\n".join(lines)


def _quote(column: str) -> str:
    return '"' + column.replace('"', '""') + '"'


# ============================================================================
# 2. VALIDATOR
# ============================================================================

class ListingValidator:
    """
    Applies the post-processing checks to a listing table.

    Usage:
        validator = ListingValidator(mode='fail')
        report = validator.validate(cleaned_df)
    """

    def __init__(self, mode: str = 'warn', null_columns: Optional[Sequence[str]] = None):
        self.mode = get_validation_mode(mode)
        self.null_columns = list(null_columns) if null_columns is not None else None

    def _columns_to_check(self, df: pd.DataFrame) -> List[str]:
        if self.null_columns is not None:
            return [c for c in self.null_columns if c in df.columns]
        wanted = MODEL_FEATURES + [TARGET_COLUMN] + DERIVED_FEATURES
        return [c for c in wanted if c in df.columns]

    def _build_rules(self, df: pd.DataFrame) -> List[Rule]:
        """Build the rule list for the columns present in df."""
        rules = []

        null_columns = self._columns_to_check(df)
        if null_columns:
            null_clause = ' OR '.join(f"{_quote(c)} IS NULL" for c in null_columns)
            rules.append(Rule(
                "no_missing",
                f"SELECT COUNT(*) FROM {TABLE_NAME} WHERE {null_clause}",
                "No nulls in modeling or derived columns"
            ))

        if TARGET_COLUMN in df.columns:
            rules.append(Rule(
                "positive_prices",
                f"SELECT COUNT(*) FROM {TABLE_NAME} WHERE {TARGET_COLUMN} <= 0",
                "Every price is strictly positive"
            ))

        if 'bedrooms' in df.columns:
            rules.append(Rule(
                "valid_bedrooms",
                f"SELECT COUNT(*) FROM {TABLE_NAME} WHERE bedrooms <= 0",
                "Every listing has at least one bedroom"
            ))

        if 'review_scores_rating' in df.columns:
            rules.append(Rule(
                "valid_ratings",
                f"SELECT COUNT(*) FROM {TABLE_NAME} "
                f"WHERE review_scores_rating < 1 OR review_scores_rating > 5",
                "Ratings lie within [1, 5]"
            ))

        return [r for r in rules if r.enabled]

    def validate(self, df: pd.DataFrame) -> ValidationReport:
        """
        Run every rule over df.

        Returns:
            ValidationReport with one CheckResult per rule

        Raises:
            DataValidationError: in 'fail' mode when any rule fails
        """
        con = duckdb.connect(':memory:')
        try:
            con.register(TABLE_NAME, df)
            results = []
            for rule in self._build_rules(df):
                failed = int(con.execute(rule.check_query).fetchone()[0])
                results.append(CheckResult(rule.name, failed == 0, failed, rule.description))
        finally:
            con.close()

        report = ValidationReport(results=results, mode=self.mode, n_rows=len(df))

        for r in results:
            status = 'PASS' if r.passed else 'FAIL'
            logger.info(f"  - {r.name} : {status}")

        if not report.passed:
            if self.mode == 'fail':
                raise DataValidationError(report.failed_checks)
            logger.warning(f"Validation failures (continuing): {', '.join(report.failed_checks)}")

        return report


def validate_listings(
    df: pd.DataFrame,
    mode: str = 'warn',
    null_columns: Optional[Sequence[str]] = None
) -> ValidationReport:
    """Convenience wrapper around ListingValidator."""
    return ListingValidator(mode=mode, null_columns=null_columns).validate(df)
