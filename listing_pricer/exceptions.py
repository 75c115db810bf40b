"""
Exception classes for the listing price pipeline.

All errors derive from ValueError so callers that already guard model
and data calls with ``except ValueError`` keep working.
"""

from typing import Any, Dict, Optional


class PipelineError(ValueError):
    """Base class for pipeline errors carrying structured details."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InputDataError(PipelineError):
    """Raised when an input table is missing, empty or has the wrong columns."""
    pass


class DegenerateStatisticError(PipelineError):
    """Raised when a summary statistic is undefined (e.g. median of an all-null column)."""

    def __init__(self, column: str, reason: str):
        super().__init__(
            f"Cannot compute statistic for '{column}': {reason}",
            details={'column': column, 'reason': reason}
        )


class InsufficientDataError(PipelineError):
    """Raised when a table has too few rows to split or train on."""

    def __init__(self, n_rows: int, minimum: int):
        super().__init__(
            f"Need at least {minimum} rows, got {n_rows}",
            details={'n_rows': n_rows, 'minimum': minimum}
        )


class DataValidationError(PipelineError):
    """Raised in fail-fast mode when post-processing checks do not pass."""

    def __init__(self, failed_checks):
        names = ', '.join(failed_checks)
        super().__init__(
            f"Validation failed: {names}",
            details={'failed_checks': list(failed_checks)}
        )
