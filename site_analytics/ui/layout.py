"""
Layout helpers for the Streamlit application (page setup and sidebar).
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd
import streamlit as st

from site_analytics.config import DATE_PRESETS, get_settings
from site_analytics.data.filters import DateRange, GlobalFilters, date_range_for_preset
from site_analytics.data.hierarchy import ProjectHierarchy
from site_analytics.data.schema import RecordSnapshot


@dataclass(frozen=True)
class SidebarSelection:
    filters: GlobalFilters
    show_universal_norm: bool = True
    show_company_norm: bool = True


def setup_page() -> None:
    """Set Streamlit page configuration."""
    st.set_page_config(
        page_title="Site Analytics",
        layout="wide",
        page_icon=":building_construction:",
    )


def _clear_state_prefixes(prefixes: List[str]) -> None:
    for prefix in prefixes:
        for key in list(st.session_state.keys()):
            if key.startswith(prefix):
                del st.session_state[key]


def _as_date(value, fallback: dt.date) -> dt.date:
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return fallback


def _project_selector(hierarchy: ProjectHierarchy) -> List[str]:
    roots = sorted(hierarchy.roots(), key=lambda node: node.name or node.id)
    options = [node.id for node in roots]
    names = {node.id: node.name or node.id for node in roots}
    if "sa_projects" not in st.session_state:
        st.session_state["sa_projects"] = list(options)
    # Drop ids that disappeared after a data refresh
    st.session_state["sa_projects"] = [pid for pid in st.session_state["sa_projects"] if pid in names]
    return st.multiselect(
        "Projects",
        options=options,
        key="sa_projects",
        format_func=lambda pid: names.get(pid, pid),
        help="Selecting a project includes every sub-level and activity beneath it.",
    )


def _date_range_selector() -> DateRange:
    settings = get_settings()
    preset_keys = list(DATE_PRESETS)
    preset = st.selectbox(
        "Date Range",
        preset_keys,
        index=preset_keys.index(settings.default_date_preset),
        format_func=lambda key: DATE_PRESETS[key],
        key="sa_date_preset",
    )
    today = pd.Timestamp.today().normalize()
    if preset != "custom":
        return date_range_for_preset(preset, today)

    default_start, default_end = date_range_for_preset("30d", today)
    col_start, col_end = st.columns(2)
    with col_start:
        start_input = st.date_input(
            "Start",
            value=_as_date(st.session_state.get("sa_date_start"), default_start.date()),
            key="sa_date_start",
        )
    with col_end:
        end_input = st.date_input(
            "End",
            value=_as_date(st.session_state.get("sa_date_end"), default_end.date()),
            key="sa_date_end",
        )
    start = pd.Timestamp(start_input).normalize()
    end = pd.Timestamp(end_input).normalize()
    if start > end:
        st.warning("Start date must be before or equal to End date. Adjusting range.")
        start, end = end, start
    return start, end


def _activity_group_selector(activity_groups: pd.DataFrame) -> Optional[List[str]]:
    groups = activity_groups.dropna(subset=["id"]).drop_duplicates("id")
    if groups.empty:
        return None
    names = {gid: name or gid for gid, name in zip(groups["id"], groups["name"])}
    selected = st.multiselect(
        "Activity Groups",
        options=sorted(names, key=lambda gid: names[gid]),
        default=[],
        key="sa_activity_groups",
        format_func=lambda gid: names.get(gid, gid),
        help="Leave empty to include every activity.",
    )
    return selected or None


def sidebar_filters_ui(snapshot: RecordSnapshot, hierarchy: ProjectHierarchy) -> SidebarSelection:
    """
    Render the sidebar filter controls and return the selected values.
    """
    st.sidebar.header("Global Filters")

    with st.sidebar.expander("Scope", expanded=True):
        selected_projects = _project_selector(hierarchy)
        date_range = _date_range_selector()
        activity_groups = _activity_group_selector(snapshot.activity_groups)

        if st.button("Reset Filters", key="sa_reset_filters", type="primary"):
            _clear_state_prefixes(["sa_projects", "sa_date_", "sa_activity_groups"])
            st.rerun()

    with st.sidebar.expander("Chart Options", expanded=False):
        show_empty_days = st.checkbox(
            "Show days without data",
            value=True,
            key="sa_show_empty_days",
        )
        show_universal_norm = st.checkbox("Universal norm", value=True, key="sa_show_universal_norm")
        show_company_norm = st.checkbox("Company norm", value=True, key="sa_show_company_norm")

    return SidebarSelection(
        filters=GlobalFilters(
            selected_projects=tuple(selected_projects),
            date_range=date_range,
            activity_groups=tuple(activity_groups) if activity_groups else None,
            show_empty_days=show_empty_days,
        ),
        show_universal_norm=show_universal_norm,
        show_company_norm=show_company_norm,
    )
