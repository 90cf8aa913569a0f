"""
Dashboard metrics: summary KPIs and the per-chart series for the manpower,
equipment and safety views.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

import pandas as pd

from site_analytics.config import (
    DAY_SHIFT,
    MISSING_REFERENCE_LABEL,
    NIGHT_SHIFT,
    UNKNOWN_LABEL,
)
from site_analytics.data.filters import DateRange, coerce_date, coerce_date_range
from site_analytics.data.hierarchy import ProjectHierarchy
from site_analytics.data.productivity import active_hours
from site_analytics.data.series import ChartSeries, category_counts, date_axis, iso_date


@dataclass(frozen=True)
class ManpowerSummary:
    total_employees: int
    cumulative_headcount: int
    total_hours: float
    todays_headcount: int
    avg_daily_manpower: float


def _data_range(date_range: DateRange, frame: pd.DataFrame) -> DateRange:
    start, end = coerce_date_range(date_range)
    dates = frame["date"].dropna()
    if start is None and not dates.empty:
        start = dates.min()
    if end is None and not dates.empty:
        end = dates.max()
    return start, end


# ---------------------------------------------------------------------------
# Manpower
# ---------------------------------------------------------------------------


def manpower_summary(
    manpower: pd.DataFrame,
    date_range: DateRange = (None, None),
    today: Optional[pd.Timestamp] = None,
) -> ManpowerSummary:
    today_ts = coerce_date(today) if today is not None else pd.Timestamp.today().normalize()
    if manpower.empty:
        return ManpowerSummary(0, 0, 0.0, 0, 0.0)

    start, end = _data_range(date_range, manpower)
    days = len(date_axis(start, end))
    headcount = int(len(manpower))
    return ManpowerSummary(
        total_employees=int(manpower["emp_id"].nunique()),
        cumulative_headcount=headcount,
        total_hours=float(active_hours(manpower).sum()),
        todays_headcount=int((manpower["date"] == today_ts).sum()),
        avg_daily_manpower=headcount / days if days else 0.0,
    )


def manpower_trend_series(
    manpower: pd.DataFrame,
    hierarchy: ProjectHierarchy,
    date_range: DateRange = (None, None),
    show_empty_days: bool = True,
) -> ChartSeries:
    """Daily headcount stacked by top-level project name."""
    if manpower.empty:
        return ChartSeries.empty()
    start, end = _data_range(date_range, manpower)
    axis = date_axis(start, end)
    if not axis:
        return ChartSeries.empty()

    working = manpower[manpower["date"].notna()]
    top_level = working["project"].map(
        lambda project_id: hierarchy.top_level_name(project_id) or MISSING_REFERENCE_LABEL
    )
    counts = working.groupby([working["date"], top_level]).size()
    by_day = counts.groupby(level=0).sum()

    if not show_empty_days:
        axis = [day for day in axis if by_day.get(day, 0) > 0]
        if not axis:
            return ChartSeries.empty()

    names = sorted(set(top_level))
    lookup = counts.to_dict()
    datasets = [(name, [int(lookup.get((day, name), 0)) for day in axis]) for name in names]
    return ChartSeries.build([iso_date(day) for day in axis], datasets)


def manpower_by_subcontractor(manpower: pd.DataFrame) -> ChartSeries:
    return category_counts(manpower, "subcontractor", "Manpower Count")


def manpower_by_shift(manpower: pd.DataFrame) -> ChartSeries:
    return category_counts(manpower, "shift", "Manpower Count", order=[DAY_SHIFT, NIGHT_SHIFT])


def manpower_by_employee_type(manpower: pd.DataFrame, employee_types: Mapping[str, str]) -> ChartSeries:
    if manpower.empty:
        return ChartSeries.empty()
    typed = pd.DataFrame(
        {"employee_type": manpower["emp_id"].map(lambda emp_id: employee_types.get(emp_id, UNKNOWN_LABEL))}
    )
    return category_counts(typed, "employee_type", "Manpower Count", order=["Direct", "Indirect", UNKNOWN_LABEL])


# ---------------------------------------------------------------------------
# Equipment
# ---------------------------------------------------------------------------


def equipment_by_status(equipment: pd.DataFrame) -> ChartSeries:
    return category_counts(equipment, "status", "Records", order=["Working", "Idle", "Breakdown"])


def equipment_hours_by_equipment(
    equipment: pd.DataFrame,
    catalog: Optional[pd.DataFrame] = None,
) -> ChartSeries:
    """Total hours per equipment, largest first; labels use catalog names when known."""
    working = equipment[equipment["equipment_id"].notna()]
    if working.empty:
        return ChartSeries.empty()
    hours = (
        working.assign(hours=working["hours_worked"].fillna(0.0))
        .groupby("equipment_id")["hours"]
        .sum()
        .sort_values(ascending=False, kind="mergesort")
    )
    names = {}
    if catalog is not None and not catalog.empty:
        named = catalog.dropna(subset=["id", "name"])
        names = dict(zip(named["id"], named["name"]))
    labels = [names.get(equipment_id, equipment_id) for equipment_id in hours.index]
    return ChartSeries.build(labels, [("Hours", hours.tolist())], keys=hours.index)


def equipment_hours_by_date(equipment: pd.DataFrame) -> ChartSeries:
    working = equipment[equipment["date"].notna()]
    if working.empty:
        return ChartSeries.empty()
    hours = working.assign(hours=working["hours_worked"].fillna(0.0)).groupby("date")["hours"].sum().sort_index()
    return ChartSeries.build([iso_date(day) for day in hours.index], [("Total Hours", hours.tolist())])


# ---------------------------------------------------------------------------
# Safety
# ---------------------------------------------------------------------------


def violations_by_subcontractor(violations: pd.DataFrame) -> ChartSeries:
    return category_counts(violations, "subcontractor", "Violations")


def violations_by_type(violations: pd.DataFrame) -> ChartSeries:
    return category_counts(violations, "violation_type", "Violations")


def violations_by_date(violations: pd.DataFrame) -> ChartSeries:
    working = violations[violations["date"].notna()]
    if working.empty:
        return ChartSeries.empty()
    counts = working.groupby("date").size().sort_index()
    return ChartSeries.build([iso_date(day) for day in counts.index], [("Violations", counts.tolist())])
