from __future__ import annotations

import streamlit as st

from site_analytics.data.series import ChartSeries
from site_analytics.ui.components.charts import bar_chart, pie_chart, render_empty, render_plotly
from site_analytics.ui.components.kpi import KpiCard, render_kpi_cards
from site_analytics.ui.pages.context import PageContext


def _kpis(context: PageContext) -> list[KpiCard]:
    summary = context.view.summary
    return [
        KpiCard("Total Employees", summary.total_employees),
        KpiCard("Cumulative Headcount", summary.cumulative_headcount),
        KpiCard("Total Hours", summary.total_hours, unit="hours"),
        KpiCard(
            "Today's Headcount",
            summary.todays_headcount,
            reference=summary.avg_daily_manpower,
            help_text="Difference shown against the average daily manpower.",
        ),
        KpiCard(
            "Avg. Daily Manpower",
            summary.avg_daily_manpower,
            decimals=1,
            help_text="Headcount records divided by the days in the selected range.",
        ),
    ]


def _clickable(context: PageContext, series: ChartSeries, figure, key: str, field: str) -> None:
    if series.is_empty:
        render_empty()
        return
    picked = render_plotly(figure, key=key)
    if picked is not None:
        context.pin(field, series.key_for(picked))


def render(context: PageContext) -> None:
    view = context.view
    render_kpi_cards(_kpis(context), columns=5)

    st.subheader("Daily Manpower by Project")
    trend = view.chart("manpower_trend")
    _clickable(
        context,
        trend,
        bar_chart(trend, yaxis_title="Headcount", barmode="stack", legend_title="Project"),
        key="chart_manpower_trend",
        field="date",
    )

    col_left, col_mid, col_right = st.columns(3)
    with col_left:
        st.subheader("By Subcontractor")
        series = view.chart("manpower_by_subcontractor")
        _clickable(context, series, bar_chart(series, orientation="h"), "chart_mp_sub", "subcontractor")
    with col_mid:
        st.subheader("By Shift")
        series = view.chart("manpower_by_shift")
        _clickable(context, series, pie_chart(series), "chart_mp_shift", "shift")
    with col_right:
        st.subheader("By Employee Type")
        series = view.chart("manpower_by_employee_type")
        _clickable(context, series, pie_chart(series), "chart_mp_type", "employee_type")
