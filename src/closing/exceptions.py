"""Errors raised by the team closing.

Every error carries a stable ``code`` that the REST layer returns to clients.
"""
from __future__ import annotations


class ClosingError(Exception):
    """Base class for team closing errors."""

    code = "closing_error"
    default_message = "The team closing could not be processed."

    def __init__(self, message: str | None = None, *, reference_month=None):
        self.message = message or self.default_message
        self.reference_month = reference_month
        super().__init__(self.message)


class ClosingValidationError(ClosingError, ValueError):
    """Malformed configuration or adjustment input."""

    code = "validation_error"
    default_message = "Invalid closing input."

    def __init__(self, message: str | None = None, *, field: str | None = None, reference_month=None):
        self.field = field
        super().__init__(message, reference_month=reference_month)


class MissingPrerequisiteError(ClosingError):
    """The sales period of the month has not been imported yet."""

    code = "missing_prerequisite"
    default_message = "No sales period exists for this month. Import the sales data first."


class ClosedPeriodError(ClosingError):
    """The sales period of the month is finalized; the closing is read-only."""

    code = "closed_period"
    default_message = "This month is closed and can no longer be changed."


class InProgressError(ClosingError):
    """Another recompute of the same month is running."""

    code = "recompute_in_progress"
    default_message = "A recompute of this month is already running. Try again later."


class StorageConsistencyError(ClosingError):
    """The closing lines could not be replaced atomically."""

    code = "storage_inconsistency"
    default_message = "The closing lines could not be stored consistently."
