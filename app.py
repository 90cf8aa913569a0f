import site_analytics.bootstrap_env  # must be first to set env/secrets
import streamlit as st

from site_analytics.config import TABS
from site_analytics.data.cross_filter import (
    CLEARED_CROSS_FILTERS,
    CrossFilters,
    active_cross_filters,
    update_cross_filters,
)
from site_analytics.data.filters import serialize_filters
from site_analytics.data.hierarchy import ProjectHierarchy
from site_analytics.data.loader import load_data
from site_analytics.data.pipeline import build_dashboard
from site_analytics.exceptions import SnapshotLoadError
from site_analytics.ui.components.formatting import format_date
from site_analytics.ui.layout import setup_page, sidebar_filters_ui
from site_analytics.ui.pages import equipment, manpower, productivity, progress, safety
from site_analytics.ui.pages.context import PageContext
from site_analytics.utils.logger import get_logger

logger = get_logger(__name__)

PAGE_RENDERERS = {
    "manpower": manpower.render,
    "productivity": productivity.render,
    "equipment": equipment.render,
    "safety": safety.render,
    "progress": progress.render,
}

CROSS_FILTER_LABELS = {
    "subcontractor": "Subcontractor",
    "shift": "Shift",
    "employee_type": "Employee Type",
    "violation_type": "Violation Type",
    "equipment_status": "Equipment Status",
    "equipment_id": "Equipment",
    "date": "Date",
    "project_name": "Project",
}


def _cross_filters() -> CrossFilters:
    return st.session_state.get("sa_cross_filters", CLEARED_CROSS_FILTERS)


def _pin(field: str, value) -> None:
    st.session_state["sa_cross_filters"] = update_cross_filters(_cross_filters(), {field: value})
    st.rerun()


def _reset_cross_filters_on_scope_change(filters) -> None:
    """Pinned chart values only make sense for the scope they were picked in."""
    scope = serialize_filters(filters)
    scope_key = (tuple(scope["selected_projects"]), scope["date_range"])
    if st.session_state.get("sa_scope_key") not in (None, scope_key):
        st.session_state["sa_cross_filters"] = CLEARED_CROSS_FILTERS
    st.session_state["sa_scope_key"] = scope_key


def _active_cross_filter_bar(state: CrossFilters) -> None:
    active = active_cross_filters(state)
    if not active:
        return
    cols = st.columns(len(active) + 1)
    for col, (name, value) in zip(cols, active.items()):
        display = format_date(value) if name == "date" else value
        if col.button(f"✕ {CROSS_FILTER_LABELS[name]}: {display}", key=f"sa_clear_{name}"):
            _pin(name, None)
    if cols[-1].button("Clear all", key="sa_clear_cross_filters", type="primary"):
        st.session_state["sa_cross_filters"] = CLEARED_CROSS_FILTERS
        st.rerun()


def main() -> None:
    setup_page()
    st.title("Site Analytics Dashboard")

    if st.sidebar.button("🔄 Refresh Data"):
        load_data.clear()  # type: ignore[attr-defined]

    try:
        snapshot = load_data()
    except SnapshotLoadError as exc:
        logger.error("Could not load data: %s", exc)
        st.error(f"Could not load data: {exc.reason} ({exc.path})")
        return

    hierarchy = ProjectHierarchy.from_frame(snapshot.projects)
    selection = sidebar_filters_ui(snapshot, hierarchy)
    filters = selection.filters
    st.session_state["sa_active_filters"] = serialize_filters(filters)
    _reset_cross_filters_on_scope_change(filters)

    if len(hierarchy) == 0:
        st.warning("No projects found. Check the data directory configuration.")
        return

    cross_filters = _cross_filters()
    view = build_dashboard(
        snapshot,
        filters,
        cross_filters,
        hierarchy=hierarchy,
        show_universal_norm=selection.show_universal_norm,
        show_company_norm=selection.show_company_norm,
    )

    st.markdown(f"**Scope:** {view.scope_label}")
    _active_cross_filter_bar(cross_filters)

    context = PageContext(snapshot=snapshot, view=view, pin=_pin)

    tab_labels = [tab.label for tab in TABS]
    streamlit_tabs = st.tabs(tab_labels)

    for streamlit_tab, tab_config in zip(streamlit_tabs, TABS):
        renderer = PAGE_RENDERERS.get(tab_config.key)
        if renderer is None:
            continue
        with streamlit_tab:
            renderer(context)


if __name__ == "__main__":
    main()
