"""
Full recompute of every dashboard view from a record snapshot.

Order: daily quantities over the whole progress history, then global
filters, then cross-filters, then the per-view aggregations.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import pandas as pd

from site_analytics.data.cross_filter import (
    CLEARED_CROSS_FILTERS,
    CrossFilters,
    active_cross_filters,
    apply_cross_filters,
    build_employee_type_lookup,
)
from site_analytics.data.filters import FilteredRecords, GlobalFilters, apply_global_filters, coerce_date_range
from site_analytics.data.hierarchy import ProjectHierarchy
from site_analytics.data.metrics import (
    ManpowerSummary,
    equipment_by_status,
    equipment_hours_by_date,
    equipment_hours_by_equipment,
    manpower_by_employee_type,
    manpower_by_shift,
    manpower_by_subcontractor,
    manpower_summary,
    manpower_trend_series,
    violations_by_date,
    violations_by_subcontractor,
    violations_by_type,
)
from site_analytics.data.productivity import productivity_series
from site_analytics.data.progress import completion_percent, with_daily_qty
from site_analytics.data.schema import RecordSnapshot
from site_analytics.data.series import ChartSeries
from site_analytics.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class DashboardView:
    hierarchy: ProjectHierarchy
    filters: GlobalFilters
    cross_filters: CrossFilters
    base: FilteredRecords
    records: FilteredRecords
    scope_label: str
    summary: ManpowerSummary
    charts: Dict[str, ChartSeries]
    employee_types: Dict[str, str]

    def chart(self, name: str) -> ChartSeries:
        return self.charts.get(name, ChartSeries.empty())


def build_dashboard(
    snapshot: RecordSnapshot,
    filters: GlobalFilters,
    cross_filters: CrossFilters = CLEARED_CROSS_FILTERS,
    hierarchy: Optional[ProjectHierarchy] = None,
    today: Optional[Any] = None,
    show_universal_norm: bool = True,
    show_company_norm: bool = True,
) -> DashboardView:
    """
    Recompute every view for the given filter state.

    ``hierarchy`` may be passed in when the caller already built it for the
    same snapshot; otherwise it is built here.
    """
    if hierarchy is None:
        hierarchy = ProjectHierarchy.from_frame(snapshot.projects)

    # Daily quantities must see the full history, not the filtered window.
    snapshot = replace(snapshot, progress=with_daily_qty(snapshot.progress))

    base = apply_global_filters(snapshot, hierarchy, filters)
    employee_types = build_employee_type_lookup(snapshot.employees)
    records = apply_cross_filters(base, cross_filters, employee_types, hierarchy)

    date_range = coerce_date_range(filters.date_range)
    charts = {
        "manpower_trend": manpower_trend_series(
            records.manpower, hierarchy, date_range, filters.show_empty_days
        ),
        "manpower_by_subcontractor": manpower_by_subcontractor(records.manpower),
        "manpower_by_shift": manpower_by_shift(records.manpower),
        "manpower_by_employee_type": manpower_by_employee_type(records.manpower, employee_types),
        "productivity": productivity_series(
            records.progress,
            records.manpower,
            snapshot.activity_groups,
            snapshot.activity_group_mappings,
            date_range=date_range,
            selected_groups=filters.activity_groups,
            show_empty_days=filters.show_empty_days,
            show_universal_norm=show_universal_norm,
            show_company_norm=show_company_norm,
        ),
        "equipment_by_status": equipment_by_status(records.equipment),
        "equipment_hours_by_equipment": equipment_hours_by_equipment(
            records.equipment, snapshot.equipment_catalog
        ),
        "equipment_hours_by_date": equipment_hours_by_date(records.equipment),
        "violations_by_subcontractor": violations_by_subcontractor(records.violations),
        "violations_by_type": violations_by_type(records.violations),
        "violations_by_date": violations_by_date(records.violations),
    }

    logger.debug(
        "Dashboard rebuilt: base=%s records=%s cross_filters=%s",
        base.counts(),
        records.counts(),
        active_cross_filters(cross_filters),
    )
    return DashboardView(
        hierarchy=hierarchy,
        filters=filters,
        cross_filters=cross_filters,
        base=base,
        records=records,
        scope_label=hierarchy.selection_label(filters.selected_projects),
        summary=manpower_summary(records.manpower, date_range, today),
        charts=charts,
        employee_types=employee_types,
    )


def progress_table(view: DashboardView) -> pd.DataFrame:
    """Filtered progress rows with activity path and percent complete, newest first."""
    progress = view.records.progress
    columns = ["date", "shift", "activity", "path", "qty", "daily_qty", "percent_complete", "is_anomaly"]
    if progress.empty:
        return pd.DataFrame(columns=columns)
    hierarchy = view.hierarchy
    totals = [
        node.total_qty if node is not None else None
        for node in (hierarchy.get(activity_id) for activity_id in progress["activity_id"])
    ]
    table = progress.assign(
        activity=progress["activity_id"].map(hierarchy.node_name),
        path=progress["activity_id"].map(hierarchy.path_label),
        percent_complete=[
            completion_percent(None if pd.isna(qty) else float(qty), total)
            for qty, total in zip(progress["qty"], totals)
        ],
    )
    return table.sort_values("date", ascending=False, kind="mergesort")[columns].reset_index(drop=True)
