"""
Plotly chart factory functions for ``ChartSeries`` payloads with consistent
styling for the dashboard.
"""

from __future__ import annotations

from typing import Optional

import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from site_analytics.data.series import ChartSeries

DEFAULT_TEMPLATE = "plotly_white"
DEFAULT_COLOR_SEQUENCE = [
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
]
NORM_LINE_COLORS = ["#6b7280", "#111827"]


def _configure_layout(
    fig: go.Figure,
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    legend_title: Optional[str] = None,
    hovermode: str = "x unified",
) -> go.Figure:
    fig.update_layout(
        template=DEFAULT_TEMPLATE,
        colorway=DEFAULT_COLOR_SEQUENCE,
        title=title,
        legend_title=legend_title,
        hovermode=hovermode,
        margin=dict(l=40, r=20, t=60, b=40),
    )
    if yaxis_title:
        fig.update_yaxes(title=yaxis_title)
    fig.update_xaxes(showgrid=False)
    fig.update_yaxes(showgrid=True, zeroline=True)
    return fig


def render_plotly(fig: go.Figure, key: Optional[str] = None) -> Optional[str]:
    """
    Draw the figure. With a ``key`` the chart is clickable and the label of
    the clicked point is returned.
    """
    if key is None:
        st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})
        return None
    event = st.plotly_chart(
        fig,
        use_container_width=True,
        config={"displayModeBar": False},
        key=key,
        on_select="rerun",
        selection_mode="points",
    )
    points = event.selection.points if event else []
    if not points:
        return None
    point = points[0]
    orientation = fig.data[0].orientation if fig.data else None
    for field in ("label", "y" if orientation == "h" else "x"):
        value = point.get(field)
        if value is not None:
            return str(value)
    return None


def render_empty(message: str = "No data for the current filters.") -> None:
    st.info(message)


def bar_chart(
    series: ChartSeries,
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    barmode: str = "group",
    orientation: str = "v",
    legend_title: Optional[str] = None,
) -> go.Figure:
    df = series.to_frame("label")
    x, y = ("label", "value") if orientation == "v" else ("value", "label")
    fig = px.bar(
        df,
        x=x,
        y=y,
        color="series" if len(series.datasets) > 1 else None,
        barmode=barmode,
        orientation=orientation,
        category_orders={"label": list(series.labels)},
    )
    fig = _configure_layout(fig, title, yaxis_title, legend_title)
    if orientation == "h":
        fig.update_yaxes(autorange="reversed", title=None)
    else:
        fig.update_xaxes(title=None)
    return fig


def line_chart(
    series: ChartSeries,
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    markers: bool = True,
) -> go.Figure:
    """One trace per dataset; norm datasets are drawn as dashed reference lines."""
    fig = go.Figure()
    norm_index = 0
    for dataset in series.datasets:
        if dataset.kind == "norm":
            fig.add_trace(
                go.Scatter(
                    x=list(series.labels),
                    y=list(dataset.data),
                    name=dataset.label,
                    mode="lines",
                    line=dict(dash="dash", color=NORM_LINE_COLORS[norm_index % len(NORM_LINE_COLORS)]),
                )
            )
            norm_index += 1
            continue
        fig.add_trace(
            go.Scatter(
                x=list(series.labels),
                y=list(dataset.data),
                name=dataset.label,
                mode="lines+markers" if markers else "lines",
                connectgaps=False,
            )
        )
    return _configure_layout(fig, title, yaxis_title)


def pie_chart(series: ChartSeries, title: Optional[str] = None) -> go.Figure:
    values = series.datasets[0].data if series.datasets else ()
    fig = go.Figure(go.Pie(labels=list(series.labels), values=list(values), hole=0.45, sort=False))
    return _configure_layout(fig, title, hovermode="closest")
