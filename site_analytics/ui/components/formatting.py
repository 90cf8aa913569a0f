"""
Display formatting for dashboard figures. Missing values render as a dash.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

MISSING = "–"


def _is_missing(value) -> bool:
    return value is None or bool(pd.isna(value))


def format_number(value: Optional[float], decimals: int = 0) -> str:
    if _is_missing(value):
        return MISSING
    try:
        return f"{float(value):,.{decimals}f}"
    except (TypeError, ValueError):
        return MISSING


def format_hours(value: Optional[float], decimals: int = 1) -> str:
    text = format_number(value, decimals)
    return text if text == MISSING else f"{text} h"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    text = format_number(value, decimals)
    return text if text == MISSING else f"{text}%"


def format_date(value) -> str:
    if _is_missing(value):
        return MISSING
    return pd.Timestamp(value).strftime("%d %b %Y")
