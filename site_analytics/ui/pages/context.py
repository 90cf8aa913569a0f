from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from site_analytics.data.pipeline import DashboardView
from site_analytics.data.schema import RecordSnapshot


@dataclass
class PageContext:
    snapshot: RecordSnapshot
    view: DashboardView
    # Pins (or toggles off) a cross-filter value and reruns the app
    pin: Callable[[str, Optional[str]], None]
