"""
Application-wide configuration constants and helper utilities.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class TabConfig:
    key: str
    label: str


# Ordered tab definitions for the dashboard
TABS: List[TabConfig] = [
    TabConfig("manpower", "Manpower"),
    TabConfig("productivity", "Productivity"),
    TabConfig("equipment", "Equipment"),
    TabConfig("safety", "Safety"),
    TabConfig("progress", "Progress Log"),
]

# Hierarchy levels, shallowest first. The last entry is the leaf level.
HIERARCHY: Tuple[str, ...] = (
    "Project",
    "Level1",
    "Level2",
    "Level3",
    "Level4",
    "Level5",
    "Level6",
    "Level7",
    "Level8",
    "Level9",
    "Activity",
)
LEAF_LEVEL = HIERARCHY[-1]
LEVEL_INDEX: Dict[str, int] = {level: idx for idx, level in enumerate(HIERARCHY)}

DEFAULT_HIERARCHY_LABELS: Dict[str, str] = {
    "Project": "Project",
    "Level1": "Level 1",
    "Level2": "Level 2",
    "Level3": "Level 3",
    "Level4": "Level 4",
    "Level5": "Level 5",
    "Level6": "Level 6",
    "Level7": "Level 7",
    "Level8": "Level 8",
    "Level9": "Level 9",
    "Activity": "Activity",
}

DAY_SHIFT = "Day"
NIGHT_SHIFT = "Night"
SHIFT_ORDER: Dict[str, int] = {DAY_SHIFT: 0, NIGHT_SHIFT: 1}

# Manpower status that carries meaningful hours
ACTIVE_STATUS = "Active"
MANPOWER_STATUSES = ["Active", "Idle", "On Leave", "Transferred"]
EQUIPMENT_STATUSES = ["Working", "Idle", "Breakdown"]
EMPLOYEE_TYPES = ["Direct", "Indirect"]

UNKNOWN_LABEL = "Unknown"
MISSING_REFERENCE_LABEL = "N/A"

DATE_PRESETS: Dict[str, str] = {
    "today": "Today",
    "7d": "Last 7 Days",
    "30d": "Last 30 Days",
    "month": "This Month",
    "custom": "Custom",
}

MAX_HOURS_PER_DAY = 24


@dataclass(frozen=True)
class Settings:
    data_dir: str
    log_level: str
    log_file: str
    default_date_preset: str


def get_settings() -> Settings:
    """Read runtime settings from the environment (call ensure_env first)."""
    preset = os.getenv("DEFAULT_DATE_PRESET", "30d")
    if preset not in DATE_PRESETS:
        preset = "30d"
    return Settings(
        data_dir=os.getenv("DATA_DIR", "data"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE", ""),
        default_date_preset=preset,
    )
