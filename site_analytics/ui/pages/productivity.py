from __future__ import annotations

import streamlit as st

from site_analytics.ui.components.charts import line_chart, render_empty, render_plotly
from site_analytics.ui.pages.context import PageContext


def render(context: PageContext) -> None:
    series = context.view.chart("productivity")
    st.subheader("Productivity (Units per Man-hour)")
    st.caption(
        "Daily quantity divided by active man-hours booked on the activities that reported progress. "
        "Days without man-hours are left blank."
    )
    if series.is_empty:
        render_empty("No productivity data. Map activities to activity groups to see this chart.")
        return
    render_plotly(line_chart(series, yaxis_title="Units / Man-hour"))
    if not any(dataset.kind == "norm" for dataset in series.datasets) and len(series.datasets) == 1:
        st.caption("No norms are defined for this activity group.")
