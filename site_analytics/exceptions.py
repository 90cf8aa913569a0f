"""
Typed exceptions for the site analytics core.

Every exception carries a machine-readable ``code`` and the structured values
a caller needs to build an actionable message (the boundary quantity that was
violated, the offending date, ...). Only the progress-entry validation path is
user facing; aggregation and correlation never raise on sparse input.

    SiteAnalyticsError (base)
    |
    +-- ProgressValidationError (also a ValueError)
    |   +-- CumulativeBelowPreviousError
    |   +-- PlannedQuantityExceededError
    |   +-- NextCumulativeExceededError
    |   +-- DuplicateProgressEntryError
    |   +-- UnknownActivityError
    |
    +-- SnapshotLoadError
"""

from __future__ import annotations

from typing import Optional

import pandas as pd


class SiteAnalyticsError(Exception):
    """Base exception for all site analytics errors."""

    code: str = "SITE_ANALYTICS_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


# =============================================================================
# Progress validation
# =============================================================================


class ProgressValidationError(SiteAnalyticsError, ValueError):
    """A progress entry was rejected; the record must not be persisted."""

    code: str = "PROGRESS_VALIDATION_ERROR"


class CumulativeBelowPreviousError(ProgressValidationError):
    code: str = "CUMULATIVE_BELOW_PREVIOUS"

    def __init__(self, activity_id: str, qty: float, previous_qty: float):
        self.activity_id = activity_id
        self.qty = qty
        self.previous_qty = previous_qty
        super().__init__(
            f"Cumulative quantity ({qty:g}) cannot be less than the previously "
            f"recorded cumulative of {previous_qty:.2f}"
        )


class PlannedQuantityExceededError(ProgressValidationError):
    code: str = "PLANNED_QUANTITY_EXCEEDED"

    def __init__(self, activity_id: str, qty: float, total_qty: float):
        self.activity_id = activity_id
        self.qty = qty
        self.total_qty = total_qty
        super().__init__(
            f"Cumulative quantity ({qty:g}) exceeds the total planned quantity ({total_qty:g})"
        )


class NextCumulativeExceededError(ProgressValidationError):
    code: str = "NEXT_CUMULATIVE_EXCEEDED"

    def __init__(
        self,
        activity_id: str,
        qty: float,
        next_qty: float,
        next_date: pd.Timestamp,
        next_shift: str,
    ):
        self.activity_id = activity_id
        self.qty = qty
        self.next_qty = next_qty
        self.next_date = next_date
        self.next_shift = next_shift
        super().__init__(
            f"Cumulative quantity ({qty:g}) cannot be greater than the quantity recorded on "
            f"the next entry ({next_date:%Y-%m-%d} {next_shift}), which is {next_qty:.2f}"
        )


class DuplicateProgressEntryError(ProgressValidationError):
    code: str = "DUPLICATE_PROGRESS_ENTRY"

    def __init__(self, activity_id: str, date: pd.Timestamp, shift: str, existing_id: Optional[str]):
        self.activity_id = activity_id
        self.date = date
        self.shift = shift
        self.existing_id = existing_id
        super().__init__(
            f"A record for {date:%Y-%m-%d} ({shift}) already exists. Please edit the existing record."
        )


class UnknownActivityError(ProgressValidationError):
    code: str = "UNKNOWN_ACTIVITY"

    def __init__(self, activity_id: str):
        self.activity_id = activity_id
        super().__init__(f"Activity {activity_id!r} is not a leaf node of the current project hierarchy")


# =============================================================================
# Snapshot loading
# =============================================================================


class SnapshotLoadError(SiteAnalyticsError):
    code: str = "SNAPSHOT_LOAD_ERROR"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not load {path}: {reason}")
