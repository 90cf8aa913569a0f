"""
Shared fixtures: a small two-project site with manpower, progress, equipment
and safety records spread over 2025-07-01..2025-07-04.

    P1 "Tower A" (Project, labels override Level1 -> "Building")
    +-- B1 "Block 1" (Level1)
        +-- ACT1 "Concrete Pour" (Activity, 500 m3 planned)
        +-- ACT2 "Rebar" (Activity, no planned total)
    P2 "Tower B" (Project)
    +-- ACT3 "Formwork" (Activity, 200 m2 planned)
"""

import pandas as pd
import pytest

from site_analytics.data.filters import GlobalFilters
from site_analytics.data.hierarchy import ProjectHierarchy
from site_analytics.data.schema import RecordSnapshot

PROJECTS = [
    {"id": "P1", "name": "Tower A", "parentId": None, "type": "Project",
     "hierarchyLabels": {"Level1": "Building"}},
    {"id": "B1", "name": "Block 1", "parentId": "P1", "type": "Level1"},
    {"id": "ACT1", "name": "Concrete Pour", "parentId": "B1", "type": "Activity",
     "uom": "m3", "totalQty": 500},
    {"id": "ACT2", "name": "Rebar", "parentId": "B1", "type": "Activity", "uom": "t"},
    {"id": "P2", "name": "Tower B", "parentId": None, "type": "Project"},
    {"id": "ACT3", "name": "Formwork", "parentId": "P2", "type": "Activity",
     "uom": "m2", "totalQty": 200},
]

MANPOWER = [
    {"id": "m1", "empId": "E1", "date": "2025-07-01", "status": "Active", "subcontractor": "A",
     "shift": "Day", "hoursWorked": 8, "project": "ACT1"},
    {"id": "m2", "empId": "E2", "date": "2025-07-01", "status": "Active", "subcontractor": "A",
     "shift": "Night", "hoursWorked": 8, "project": "ACT1"},
    {"id": "m3", "empId": "E1", "date": "2025-07-02", "status": "Active", "subcontractor": "A",
     "shift": "Day", "hoursWorked": 8, "project": "ACT2"},
    {"id": "m4", "empId": "E3", "date": "2025-07-01", "status": "Active", "subcontractor": "B",
     "shift": "Day", "hoursWorked": 10, "project": "ACT3"},
    {"id": "m5", "empId": "E4", "date": "2025-07-03", "status": "Idle", "subcontractor": "B",
     "shift": "Day", "hoursWorked": 4, "project": "ACT3"},
    {"id": "m6", "empId": "E3", "date": "2025-07-04", "status": "Active", "subcontractor": "B",
     "shift": "Day", "hoursWorked": 6, "project": "ACT1"},
]

PROGRESS = [
    {"id": "p1", "activityId": "ACT1", "date": "2025-07-01", "shift": "Day", "qty": 100},
    {"id": "p2", "activityId": "ACT1", "date": "2025-07-01", "shift": "Night", "qty": 150},
    {"id": "p3", "activityId": "ACT1", "date": "2025-07-02", "shift": "Day", "qty": 130},
    {"id": "p4", "activityId": "ACT3", "date": "2025-07-01", "shift": "Day", "qty": 20},
    {"id": "p5", "activityId": "ACT3", "date": "2025-07-03", "shift": "Day", "qty": 50},
]

EQUIPMENT = [
    {"id": "e1", "equipmentId": "EQ1", "date": "2025-07-01", "project": "P1", "status": "Working",
     "hoursWorked": 5},
    {"id": "e2", "equipmentId": "EQ2", "date": "2025-07-02", "project": "P2", "status": "Idle",
     "hoursWorked": 0},
    {"id": "e3", "equipmentId": "EQ1", "date": "2025-07-03", "project": "P1", "status": "Breakdown",
     "hoursWorked": 2},
    {"id": "e4", "equipmentId": "EQ2", "date": "2025-07-04", "project": "ACT3", "status": "Working",
     "hoursWorked": 9},
]

VIOLATIONS = [
    {"id": "v1", "project": "P1", "date": "2025-07-01", "subcontractor": "A",
     "violationType": "No Helmet", "empId": "E1"},
    {"id": "v2", "project": "P2", "date": "2025-07-02", "subcontractor": "B",
     "violationType": "No Harness", "empId": "E3"},
    {"id": "v3", "project": "P1", "date": "2025-07-03", "subcontractor": "A",
     "violationType": "No Helmet", "empId": "E2"},
    {"id": "v4", "project": "P2", "date": "2025-07-03", "subcontractor": "B",
     "violationType": "No Harness", "empId": "E4"},
]

ACTIVITY_GROUPS = [
    {"id": "G1", "name": "Concrete", "uom": "m3", "universalNorm": 1.5, "companyNorm": 2.0},
    {"id": "G2", "name": "Formwork", "uom": "m2"},
]

MAPPINGS = [
    {"activityId": "ACT1", "groupId": "G1"},
    {"activityId": "ACT3", "groupId": "G2"},
]

EMPLOYEES = [
    {"empId": "E1", "name": "Ana", "type": "Direct", "subcontractor": "A"},
    {"empId": "E2", "name": "Budi", "type": "Indirect", "subcontractor": "A"},
    {"empId": "E3", "name": "Citra", "type": "Direct", "subcontractor": "B"},
    {"empId": "E4", "name": "Dewa", "type": None, "subcontractor": "B"},
]

EQUIPMENT_CATALOG = [
    {"id": "EQ1", "name": "Excavator 01", "type": "Excavator"},
    {"id": "EQ2", "name": "Crane 02", "type": "Crane"},
]


def ts(value: str) -> pd.Timestamp:
    return pd.Timestamp(value)


@pytest.fixture
def snapshot() -> RecordSnapshot:
    return RecordSnapshot.from_records(
        projects=PROJECTS,
        manpower=MANPOWER,
        progress=PROGRESS,
        equipment=EQUIPMENT,
        violations=VIOLATIONS,
        activity_groups=ACTIVITY_GROUPS,
        activity_group_mappings=MAPPINGS,
        employees=EMPLOYEES,
        equipment_catalog=EQUIPMENT_CATALOG,
    )


@pytest.fixture
def hierarchy(snapshot) -> ProjectHierarchy:
    return ProjectHierarchy.from_frame(snapshot.projects)


@pytest.fixture
def all_filters() -> GlobalFilters:
    return GlobalFilters(
        selected_projects=("P1", "P2"),
        date_range=(ts("2025-07-01"), ts("2025-07-04")),
    )
