from __future__ import annotations

import streamlit as st

from site_analytics.ui.components.charts import bar_chart, line_chart, pie_chart, render_empty, render_plotly
from site_analytics.ui.components.kpi import KpiCard, render_kpi_cards
from site_analytics.ui.pages.context import PageContext


def render(context: PageContext) -> None:
    view = context.view
    equipment = view.records.equipment
    render_kpi_cards(
        [
            KpiCard("Equipment Units", equipment["equipment_id"].nunique()),
            KpiCard("Usage Records", len(equipment)),
            KpiCard("Total Hours", float(equipment["hours_worked"].fillna(0.0).sum()), unit="hours"),
        ]
    )

    col_left, col_right = st.columns(2)
    with col_left:
        st.subheader("Status")
        status = view.chart("equipment_by_status")
        if status.is_empty:
            render_empty()
        else:
            picked = render_plotly(pie_chart(status), key="chart_eq_status")
            if picked is not None:
                context.pin("equipment_status", picked)
    with col_right:
        st.subheader("Hours by Equipment")
        by_equipment = view.chart("equipment_hours_by_equipment")
        if by_equipment.is_empty:
            render_empty()
        else:
            picked = render_plotly(
                bar_chart(by_equipment, orientation="h", yaxis_title=None), key="chart_eq_hours"
            )
            if picked is not None:
                context.pin("equipment_id", by_equipment.key_for(picked))

    st.subheader("Daily Equipment Hours")
    by_date = view.chart("equipment_hours_by_date")
    if by_date.is_empty:
        render_empty()
    else:
        picked = render_plotly(line_chart(by_date, yaxis_title="Hours"), key="chart_eq_date")
        if picked is not None:
            context.pin("date", picked)
