"""
Filter utilities that apply global dashboard filters (project subtree, date
range, activity groups) to the four record collections.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

import pandas as pd

from site_analytics.data.hierarchy import ProjectHierarchy
from site_analytics.data.schema import RecordSnapshot
from site_analytics.utils.logger import get_logger

logger = get_logger(__name__)

RECORD_KINDS: Tuple[str, ...] = ("manpower", "progress", "equipment", "violations")

# Column holding the project/activity reference for each record kind
PROJECT_COLUMNS: Dict[str, str] = {
    "manpower": "project",
    "progress": "activity_id",
    "equipment": "project",
    "violations": "project",
}

DateRange = Tuple[Optional[pd.Timestamp], Optional[pd.Timestamp]]


@dataclass(frozen=True)
class GlobalFilters:
    selected_projects: Tuple[str, ...] = ()
    date_range: DateRange = (None, None)
    activity_groups: Optional[Tuple[str, ...]] = None
    show_empty_days: bool = True


DEFAULT_FILTERS = GlobalFilters()


@dataclass(frozen=True, eq=False)
class FilteredRecords:
    manpower: pd.DataFrame
    progress: pd.DataFrame
    equipment: pd.DataFrame
    violations: pd.DataFrame

    def get(self, kind: str) -> pd.DataFrame:
        return getattr(self, kind)

    def with_frames(self, **frames: pd.DataFrame) -> "FilteredRecords":
        return replace(self, **frames)

    def counts(self) -> Dict[str, int]:
        return {kind: int(len(self.get(kind))) for kind in RECORD_KINDS}

    def equals(self, other: "FilteredRecords") -> bool:
        return all(self.get(kind).equals(other.get(kind)) for kind in RECORD_KINDS)


def coerce_date(value: Any) -> Optional[pd.Timestamp]:
    if value is None:
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    return pd.Timestamp(ts).normalize()


def coerce_date_range(date_range: Optional[Tuple[Any, Any]]) -> DateRange:
    if not date_range:
        return None, None
    start, end = date_range
    return coerce_date(start), coerce_date(end)


def allowed_activity_ids(
    mappings: pd.DataFrame,
    activity_groups: Optional[Iterable[str]],
) -> Optional[FrozenSet[str]]:
    """Activities mapped to any selected group; None when no group filter is active."""
    if not activity_groups:
        return None
    selected = list(activity_groups)
    if mappings.empty:
        return frozenset()
    mask = mappings["group_id"].isin(selected)
    return frozenset(mappings.loc[mask, "activity_id"].dropna())


def _date_mask(df: pd.DataFrame, date_range: DateRange) -> pd.Series:
    start, end = date_range
    mask = pd.Series(True, index=df.index)
    if start is not None:
        mask &= df["date"] >= start
    if end is not None:
        mask &= df["date"] <= end
    return mask


def empty_like(records: FilteredRecords) -> FilteredRecords:
    return FilteredRecords(**{kind: records.get(kind).iloc[0:0] for kind in RECORD_KINDS})


def apply_global_filters(
    snapshot: RecordSnapshot,
    hierarchy: ProjectHierarchy,
    filters: GlobalFilters,
) -> FilteredRecords:
    """
    Narrow each record collection to the selected project subtree, the
    inclusive date range and (optionally) the selected activity groups.

    An empty project selection yields empty collections, never "all records".
    """
    base = FilteredRecords(**{kind: getattr(snapshot, kind) for kind in RECORD_KINDS})
    scope = hierarchy.expand(filters.selected_projects)
    if not scope:
        return empty_like(base)

    date_range = coerce_date_range(filters.date_range)
    allowed = allowed_activity_ids(snapshot.activity_group_mappings, filters.activity_groups)
    scope_list = list(scope)
    allowed_list = list(allowed) if allowed is not None else None

    frames = {}
    for kind in RECORD_KINDS:
        df = base.get(kind)
        column = PROJECT_COLUMNS[kind]
        mask = df[column].isin(scope_list) & _date_mask(df, date_range)
        if allowed_list is not None:
            mask &= df[column].isin(allowed_list)
        frames[kind] = df[mask].reset_index(drop=True)

    filtered = FilteredRecords(**frames)
    logger.debug(
        "Global filters %s -> %s", serialize_filters(filters), filtered.counts()
    )
    return filtered


def serialize_filters(filters: GlobalFilters) -> Dict[str, Any]:
    """
    Convert the GlobalFilters dataclass to a JSON-serialisable dictionary to be
    stored in session_state or used for logging/debugging.
    """
    return {
        "selected_projects": list(filters.selected_projects),
        "date_range": tuple(
            v.date().isoformat() if isinstance(v, pd.Timestamp) else v for v in filters.date_range
        ),
        "activity_groups": list(filters.activity_groups) if filters.activity_groups else None,
        "show_empty_days": filters.show_empty_days,
    }


def date_range_for_preset(preset: str, today: Optional[Any] = None) -> DateRange:
    """Resolve a named preset ("today", "7d", "30d", "month") to an inclusive range."""
    end = coerce_date(today) if today is not None else pd.Timestamp.today().normalize()
    if preset == "today":
        start = end
    elif preset == "7d":
        start = end - pd.Timedelta(days=6)
    elif preset == "30d":
        start = end - pd.Timedelta(days=29)
    elif preset == "month":
        start = end.replace(day=1)
    else:
        raise ValueError(f"Unknown date preset: {preset!r}")
    return start, end
