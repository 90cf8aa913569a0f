"""
Productivity (units per man-hour) per activity group and date.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from site_analytics.config import ACTIVE_STATUS
from site_analytics.data.filters import DateRange, coerce_date_range
from site_analytics.data.progress import with_daily_qty
from site_analytics.data.series import NO_VALUE, ChartSeries, Dataset, date_axis, iso_date

UNIVERSAL_NORM_LABEL = "Universal Norm"
COMPANY_NORM_LABEL = "Company Norm"


def active_hours(manpower: pd.DataFrame) -> pd.Series:
    """Hours that count as worked: only Active records (or records without a status)."""
    hours = manpower["hours_worked"].fillna(0.0)
    is_active = manpower["status"].isna() | (manpower["status"] == ACTIVE_STATUS)
    return hours.where(is_active, 0.0)


def _group_lookup(mappings: pd.DataFrame) -> Dict[str, str]:
    known = mappings.dropna(subset=["activity_id", "group_id"]).drop_duplicates("activity_id")
    return dict(zip(known["activity_id"], known["group_id"]))


def _groups_in_scope(
    activity_groups: pd.DataFrame,
    group_of: Dict[str, str],
    progress: pd.DataFrame,
    manpower: pd.DataFrame,
    selected_groups: Optional[Iterable[str]],
) -> pd.DataFrame:
    if selected_groups:
        wanted = set(selected_groups)
    else:
        activity_ids = set(progress["activity_id"].dropna()) | set(manpower["project"].dropna())
        wanted = {group_of[a] for a in activity_ids if a in group_of}
    return activity_groups[activity_groups["id"].isin(list(wanted))].drop_duplicates("id")


def _resolve_range(date_range: DateRange, progress: pd.DataFrame, manpower: pd.DataFrame) -> DateRange:
    start, end = coerce_date_range(date_range)
    dates = pd.concat([progress["date"], manpower["date"]]).dropna()
    if start is None and not dates.empty:
        start = dates.min()
    if end is None and not dates.empty:
        end = dates.max()
    return start, end


def _norm_value(group: pd.Series, column: str) -> Optional[float]:
    value = group.get(column)
    if value is None or pd.isna(value):
        return None
    return float(value)


def productivity_series(
    progress: pd.DataFrame,
    manpower: pd.DataFrame,
    activity_groups: pd.DataFrame,
    mappings: pd.DataFrame,
    date_range: DateRange = (None, None),
    selected_groups: Optional[Iterable[str]] = None,
    show_empty_days: bool = True,
    show_universal_norm: bool = True,
    show_company_norm: bool = True,
) -> ChartSeries:
    """
    Units per man-hour for each activity group in scope and each day in range.

    ``progress`` should already carry ``daily_qty`` derived from the full
    activity history; it is derived here from whatever rows are passed
    otherwise. A (group, date) with no active hours yields ``NO_VALUE``.
    With exactly one group in scope, constant norm series are overlaid.
    With ``show_empty_days`` False, days where no group has a value are
    dropped and every series stays aligned to the pruned axis.
    """
    if "daily_qty" not in progress.columns:
        progress = with_daily_qty(progress)

    group_of = _group_lookup(mappings)
    groups = _groups_in_scope(activity_groups, group_of, progress, manpower, selected_groups)
    if groups.empty:
        return ChartSeries.empty()

    start, end = _resolve_range(date_range, progress, manpower)
    axis = date_axis(start, end)
    if not axis:
        return ChartSeries.empty()

    group_ids = list(groups["id"])
    prog = progress.assign(group_id=progress["activity_id"].map(group_of))
    prog = prog[prog["group_id"].isin(group_ids) & prog["date"].between(start, end)]

    qty_by_key = prog.groupby(["group_id", "date"])["daily_qty"].sum().to_dict()

    # man-hours only for the activities that reported progress that day
    active_days = prog[["activity_id", "date", "group_id"]].drop_duplicates()
    crew = manpower.assign(active_hours=active_hours(manpower))[["project", "date", "active_hours"]]
    crew = crew.merge(active_days, left_on=["project", "date"], right_on=["activity_id", "date"], how="inner")
    hours_by_key = crew.groupby(["group_id", "date"])["active_hours"].sum().to_dict()

    values: List[Tuple[str, List[Optional[float]]]] = []
    for _, group in groups.iterrows():
        hours = np.array([hours_by_key.get((group["id"], day), 0.0) for day in axis], dtype="float64")
        qty = np.array([qty_by_key.get((group["id"], day), 0.0) for day in axis], dtype="float64")
        ratio = np.divide(qty, hours, out=np.full(len(axis), np.nan), where=hours > 0)
        data = [NO_VALUE if np.isnan(value) else float(value) for value in ratio]
        uom = group["uom"] if isinstance(group["uom"], str) and group["uom"] else "Unit"
        values.append((f"{group['name'] or group['id']} ({uom} / Man-hour)", data))

    keep = [
        idx for idx in range(len(axis))
        if show_empty_days or any(data[idx] is not NO_VALUE for _, data in values)
    ]
    labels = [iso_date(axis[idx]) for idx in keep]
    datasets = [Dataset(label, tuple(data[idx] for idx in keep)) for label, data in values]

    if len(groups) == 1:
        only = groups.iloc[0]
        for enabled, column, label in (
            (show_universal_norm, "universal_norm", UNIVERSAL_NORM_LABEL),
            (show_company_norm, "company_norm", COMPANY_NORM_LABEL),
        ):
            norm = _norm_value(only, column)
            if enabled and norm is not None:
                datasets.append(Dataset(label, tuple(norm for _ in keep), kind="norm"))

    return ChartSeries(labels=tuple(labels), datasets=tuple(datasets))
