from __future__ import annotations

import streamlit as st

from site_analytics.data.pipeline import progress_table
from site_analytics.data.progress import activity_progress_log
from site_analytics.ui.components.formatting import format_percent
from site_analytics.ui.pages.context import PageContext


def render(context: PageContext) -> None:
    view = context.view
    table = progress_table(view)
    st.subheader("Progress Entries")
    if table.empty:
        st.info("No progress entries for the current filters.")
        return

    anomalies = int(table["is_anomaly"].sum())
    if anomalies:
        st.warning(
            f"{anomalies} entr{'y' if anomalies == 1 else 'ies'} report a cumulative quantity lower than "
            "the previous entry; their daily quantity is shown as the entry value."
        )
    display = table.assign(
        date=table["date"].dt.date,
        percent_complete=table["percent_complete"].map(format_percent),
    )
    st.dataframe(display, use_container_width=True, hide_index=True)

    st.subheader("Activity History")
    activity_ids = sorted(view.records.progress["activity_id"].dropna().unique(), key=view.hierarchy.path_label)
    activity_id = st.selectbox(
        "Activity",
        activity_ids,
        format_func=view.hierarchy.path_label,
        key="sa_progress_activity",
    )
    if activity_id is None:
        return
    # History comes from the full snapshot so earlier entries outside the range still count
    log = activity_progress_log(context.snapshot.progress, view.hierarchy, activity_id)
    st.dataframe(
        log.assign(date=log["date"].dt.date, percent_complete=log["percent_complete"].map(format_percent)),
        use_container_width=True,
        hide_index=True,
    )
