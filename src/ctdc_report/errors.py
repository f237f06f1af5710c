"""Exceptions raised by the report stages.

Every error carries the name of the stage that raised it so a failed run
says where it stopped.
"""
from __future__ import annotations

from typing import Iterable, Optional


class ReportError(Exception):
    """Base class for fatal report errors."""

    def __init__(self, message: str, stage: str):
        self.stage = stage
        self.message = message
        super().__init__(f"[{stage}] {message}")


class InputError(ReportError):
    """Input file missing, unreadable, or lacking required header columns."""

    def __init__(self, message: str, stage: str = "load", missing: Optional[Iterable[str]] = None):
        self.missing = [] if missing is None else list(missing)
        super().__init__(message, stage)


class SchemaError(ReportError):
    """A requested column is absent from the table."""

    def __init__(self, column: str, stage: str, available: Optional[Iterable[str]] = None):
        self.column = column
        self.available = [] if available is None else list(available)
        super().__init__(f"expected column {column!r} is missing", stage)


class InsufficientDataError(ReportError):
    """Trend fit requested with fewer distinct x-values than it needs."""

    def __init__(self, n_distinct: int, required: int, stage: str = "trend"):
        self.n_distinct = n_distinct
        self.required = required
        super().__init__(
            f"need at least {required} distinct years to fit a trend, got {n_distinct}", stage
        )
