from __future__ import annotations

import streamlit as st

from site_analytics.ui.components.charts import bar_chart, line_chart, render_empty, render_plotly
from site_analytics.ui.components.kpi import KpiCard, render_kpi_cards
from site_analytics.ui.pages.context import PageContext

CLICK_FIELDS = {
    "violations_by_subcontractor": "subcontractor",
    "violations_by_type": "violation_type",
}


def render(context: PageContext) -> None:
    view = context.view
    violations = view.records.violations
    render_kpi_cards(
        [
            KpiCard("Violations", len(violations)),
            KpiCard("Subcontractors Involved", violations["subcontractor"].nunique()),
            KpiCard("Violation Types", violations["violation_type"].nunique()),
        ]
    )

    columns = st.columns(2)
    for col, (name, title) in zip(
        columns,
        (("violations_by_subcontractor", "By Subcontractor"), ("violations_by_type", "By Type")),
    ):
        with col:
            st.subheader(title)
            series = view.chart(name)
            if series.is_empty:
                render_empty()
                continue
            picked = render_plotly(bar_chart(series, orientation="h"), key=f"chart_{name}")
            if picked is not None:
                context.pin(CLICK_FIELDS[name], picked)

    st.subheader("Violations Over Time")
    by_date = view.chart("violations_by_date")
    if by_date.is_empty:
        render_empty()
        return
    picked = render_plotly(line_chart(by_date, yaxis_title="Violations"), key="chart_violations_by_date")
    if picked is not None:
        context.pin("date", picked)
