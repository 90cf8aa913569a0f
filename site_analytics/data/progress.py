"""
Cumulative progress helpers.

Progress records store the cumulative quantity of an activity as of a
(date, shift). Entries are ordered by date ascending and, within a date, Day
before Night; a missing shift counts as Day. Daily production is the
difference between consecutive cumulative values.

Negative deltas (a cumulative lower than the one before it) are flagged with
``is_anomaly`` and the entry's own cumulative value is used as its daily
quantity. That policy mirrors how existing data has always been charted and
is pending product confirmation; do not change it without sign-off.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from site_analytics.config import DAY_SHIFT, SHIFT_ORDER
from site_analytics.data.filters import coerce_date
from site_analytics.data.hierarchy import ProjectHierarchy
from site_analytics.exceptions import (
    CumulativeBelowPreviousError,
    DuplicateProgressEntryError,
    NextCumulativeExceededError,
    PlannedQuantityExceededError,
    ProgressValidationError,
    UnknownActivityError,
)
from site_analytics.utils.logger import get_logger

logger = get_logger(__name__)

_RANK = "_shift_rank"


@dataclass(frozen=True)
class ProgressEntryCheck:
    """Outcome of a successful validation: what the entry will contribute."""

    previous_qty: float
    daily_qty: float
    completion_pct: Optional[float]


@dataclass(frozen=True)
class NeighbourEntry:
    record_id: Optional[str]
    date: pd.Timestamp
    shift: str
    qty: float


def shift_rank(shift: Any) -> int:
    if shift is None or (not isinstance(shift, str) and pd.isna(shift)):
        return SHIFT_ORDER[DAY_SHIFT]
    return SHIFT_ORDER.get(shift, SHIFT_ORDER[DAY_SHIFT])


def normalize_shift(shift: Any) -> str:
    if isinstance(shift, str) and shift in SHIFT_ORDER:
        return shift
    return DAY_SHIFT


def order_progress(progress: pd.DataFrame) -> pd.DataFrame:
    """Sort by activity, then date ascending, then Day before Night."""
    working = progress.copy()
    working[_RANK] = working["shift"].map(shift_rank)
    working = working.sort_values(["activity_id", "date", _RANK], kind="mergesort")
    return working.drop(columns=[_RANK]).reset_index(drop=True)


def with_daily_qty(progress: pd.DataFrame) -> pd.DataFrame:
    """
    Return ``progress`` ordered per activity with two extra columns:

    ``daily_qty``
        qty[0] for the first entry of an activity, qty[i] - qty[i-1] after.
    ``is_anomaly``
        True where the cumulative dropped below the previous entry; the
        entry's cumulative value is then used as its daily quantity.
    """
    if progress.empty:
        out = progress.copy()
        out["daily_qty"] = pd.Series(dtype="float64")
        out["is_anomaly"] = pd.Series(dtype="bool")
        return out

    ordered = order_progress(progress)
    qty = ordered["qty"].fillna(0.0)
    grouped = qty.groupby(ordered["activity_id"], sort=False, dropna=False)
    previous = grouped.shift(1)
    is_first = previous.isna()
    delta = qty - previous

    is_anomaly = (~is_first) & (delta < 0)
    ordered["daily_qty"] = np.where(is_first | is_anomaly, qty, delta).astype("float64")
    ordered["is_anomaly"] = is_anomaly.astype(bool)

    anomalies = int(is_anomaly.sum())
    if anomalies:
        logger.warning(
            "%d progress entr%s dropped below the previous cumulative; using the entry value as daily qty",
            anomalies,
            "y" if anomalies == 1 else "ies",
        )
    return ordered


def _activity_rows(
    progress: pd.DataFrame,
    activity_id: str,
    excluding_record_id: Optional[str] = None,
) -> pd.DataFrame:
    rows = progress[progress["activity_id"] == activity_id]
    if excluding_record_id is not None:
        rows = rows[rows["id"] != excluding_record_id]
    rows = rows[rows["date"].notna()].copy()
    rows[_RANK] = rows["shift"].map(shift_rank)
    return rows.sort_values(["date", _RANK], kind="mergesort")


def _to_entry(row: pd.Series) -> NeighbourEntry:
    qty = row["qty"]
    return NeighbourEntry(
        record_id=row["id"],
        date=row["date"],
        shift=normalize_shift(row["shift"]),
        qty=0.0 if pd.isna(qty) else float(qty),
    )


def previous_entry(
    progress: pd.DataFrame,
    activity_id: str,
    date: Any,
    shift: Any,
    excluding_record_id: Optional[str] = None,
) -> Optional[NeighbourEntry]:
    """Latest entry strictly before (date, shift) for the activity."""
    ts = coerce_date(date)
    if ts is None:
        return None
    rank = shift_rank(shift)
    rows = _activity_rows(progress, activity_id, excluding_record_id)
    before = rows[(rows["date"] < ts) | ((rows["date"] == ts) & (rows[_RANK] < rank))]
    if before.empty:
        return None
    return _to_entry(before.iloc[-1])


def next_entry(
    progress: pd.DataFrame,
    activity_id: str,
    date: Any,
    shift: Any,
    excluding_record_id: Optional[str] = None,
) -> Optional[NeighbourEntry]:
    """Earliest entry strictly after (date, shift) for the activity."""
    ts = coerce_date(date)
    if ts is None:
        return None
    rank = shift_rank(shift)
    rows = _activity_rows(progress, activity_id, excluding_record_id)
    after = rows[(rows["date"] > ts) | ((rows["date"] == ts) & (rows[_RANK] > rank))]
    if after.empty:
        return None
    return _to_entry(after.iloc[0])


def previous_cumulative_qty(
    progress: pd.DataFrame,
    activity_id: str,
    date: Any,
    shift: Any,
    excluding_record_id: Optional[str] = None,
) -> float:
    entry = previous_entry(progress, activity_id, date, shift, excluding_record_id)
    return entry.qty if entry else 0.0


def next_cumulative_qty(
    progress: pd.DataFrame,
    activity_id: str,
    date: Any,
    shift: Any,
    excluding_record_id: Optional[str] = None,
) -> Optional[float]:
    entry = next_entry(progress, activity_id, date, shift, excluding_record_id)
    return entry.qty if entry else None


def completion_percent(cumulative_qty: Optional[float], total_qty: Optional[float]) -> Optional[float]:
    if not total_qty or cumulative_qty is None:
        return None
    return cumulative_qty * 100 / total_qty


def validate_progress_entry(
    progress: pd.DataFrame,
    hierarchy: ProjectHierarchy,
    activity_id: str,
    date: Any,
    shift: Any,
    qty: float,
    record_id: Optional[str] = None,
) -> ProgressEntryCheck:
    """
    Check a new (``record_id`` None) or edited cumulative entry before it is
    persisted. Raises a ``ProgressValidationError`` subclass carrying the
    boundary value that was crossed.
    """
    activity = hierarchy.get(activity_id)
    if activity is None or not activity.is_activity:
        raise UnknownActivityError(activity_id)

    ts = coerce_date(date)
    if ts is None:
        raise ProgressValidationError(f"Invalid progress date: {date!r}")
    shift_name = normalize_shift(shift)
    qty = float(qty)

    rows = _activity_rows(progress, activity_id, record_id)
    clash = rows[(rows["date"] == ts) & (rows["shift"].map(normalize_shift) == shift_name)]
    if not clash.empty:
        raise DuplicateProgressEntryError(activity_id, ts, shift_name, clash.iloc[0]["id"])

    previous_qty = previous_cumulative_qty(progress, activity_id, ts, shift_name, record_id)
    if qty < previous_qty:
        raise CumulativeBelowPreviousError(activity_id, qty, previous_qty)

    if activity.total_qty and qty > activity.total_qty:
        raise PlannedQuantityExceededError(activity_id, qty, activity.total_qty)

    upcoming = next_entry(progress, activity_id, ts, shift_name, record_id)
    if upcoming is not None and qty > upcoming.qty:
        raise NextCumulativeExceededError(activity_id, qty, upcoming.qty, upcoming.date, upcoming.shift)

    return ProgressEntryCheck(
        previous_qty=previous_qty,
        daily_qty=qty - previous_qty,
        completion_pct=completion_percent(qty, activity.total_qty),
    )


def activity_progress_log(
    progress: pd.DataFrame,
    hierarchy: ProjectHierarchy,
    activity_id: str,
) -> pd.DataFrame:
    """Per-activity table: date, shift, cumulative, daily and percent complete."""
    columns = ["id", "date", "shift", "cumulative_qty", "daily_qty", "percent_complete", "is_anomaly"]
    rows = progress[progress["activity_id"] == activity_id]
    if rows.empty:
        return pd.DataFrame(columns=columns)

    activity = hierarchy.get(activity_id)
    total_qty = activity.total_qty if activity else None
    log = with_daily_qty(rows)
    log["shift"] = log["shift"].map(normalize_shift)
    log["cumulative_qty"] = log["qty"].fillna(0.0)
    log["percent_complete"] = log["cumulative_qty"].map(lambda q: completion_percent(q, total_qty))
    return log[columns].reset_index(drop=True)
