from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import streamlit as st

from site_analytics.ui.components.formatting import format_hours, format_number

UNIT_FORMATTERS = {
    "count": format_number,
    "hours": format_hours,
}


@dataclass
class KpiCard:
    label: str
    value: Optional[float] = None
    unit: str = "count"  # key of UNIT_FORMATTERS
    decimals: int = 0
    # Compared against value to show a signed difference under the metric.
    reference: Optional[float] = None
    help_text: Optional[str] = None

    @property
    def display(self) -> str:
        formatter = UNIT_FORMATTERS.get(self.unit, format_number)
        return formatter(self.value, decimals=self.decimals)

    @property
    def delta(self) -> Optional[str]:
        if self.value is None or self.reference is None:
            return None
        return format_number(self.value - self.reference, decimals=max(self.decimals, 1))


def render_kpi_cards(cards: Sequence[KpiCard], columns: Optional[int] = None) -> None:
    """Lay KPI cards out in rows of bordered columns."""
    cards = list(cards)
    if not cards:
        st.info("No figures for the current selection.")
        return

    per_row = max(columns or len(cards), 1)
    for start in range(0, len(cards), per_row):
        row = cards[start: start + per_row]
        for col, card in zip(st.columns(len(row)), row):
            with col.container(border=True):
                st.metric(card.label, card.display, delta=card.delta, help=card.help_text)
