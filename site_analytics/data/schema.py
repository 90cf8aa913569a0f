"""
Column schemas for the record collections and the normalization step that
turns whatever the fetch layer hands over (DataFrames or lists of dicts) into
frames with predictable columns and dtypes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union

import pandas as pd

SENTINELS: Set[str] = {"", "None", "none", "N/A", "n/a", "NA", "na", "null", "Null", "-", "—"}

# column -> kind ("str" | "date" | "float" | "object")
SCHEMAS: Dict[str, Dict[str, str]] = {
    "projects": {
        "id": "str",
        "name": "str",
        "parent_id": "str",
        "type": "str",
        "uom": "str",
        "total_qty": "float",
        "rate": "float",
        "currency": "str",
        "hierarchy_labels": "object",
    },
    "manpower": {
        "id": "str",
        "emp_id": "str",
        "date": "date",
        "status": "str",
        "subcontractor": "str",
        "shift": "str",
        "hours_worked": "float",
        "project": "str",
    },
    "progress": {
        "id": "str",
        "activity_id": "str",
        "activity_group_id": "str",
        "date": "date",
        "shift": "str",
        "qty": "float",
    },
    "equipment": {
        "id": "str",
        "equipment_id": "str",
        "date": "date",
        "project": "str",
        "status": "str",
        "hours_worked": "float",
        "shift": "str",
        "operator_id": "str",
    },
    "violations": {
        "id": "str",
        "project": "str",
        "date": "date",
        "subcontractor": "str",
        "violation_type": "str",
        "emp_id": "str",
    },
    "activity_groups": {
        "id": "str",
        "name": "str",
        "uom": "str",
        "universal_norm": "float",
        "company_norm": "float",
        "rate": "float",
    },
    "activity_group_mappings": {
        "activity_id": "str",
        "group_id": "str",
    },
    "employees": {
        "emp_id": "str",
        "name": "str",
        "type": "str",
        "subcontractor": "str",
    },
    "equipment_catalog": {
        "id": "str",
        "name": "str",
        "type": "str",
        "plate_no": "str",
    },
}

COLLECTIONS: List[str] = list(SCHEMAS)

# camelCase keys used by the record API
ALIASES: Dict[str, str] = {
    "parentId": "parent_id",
    "totalQty": "total_qty",
    "hierarchyLabels": "hierarchy_labels",
    "empId": "emp_id",
    "hoursWorked": "hours_worked",
    "activityId": "activity_id",
    "activityGroupId": "activity_group_id",
    "equipmentId": "equipment_id",
    "operatorId": "operator_id",
    "violationType": "violation_type",
    "universalNorm": "universal_norm",
    "companyNorm": "company_norm",
    "groupId": "group_id",
    "plateNo": "plate_no",
}

Records = Union[pd.DataFrame, Iterable[Mapping[str, Any]], None]


def _normalize_sentinels(df: pd.DataFrame) -> pd.DataFrame:
    """Replace sentinel string tokens with None and record counts in df.attrs."""
    replacements = {}
    for col in df.columns:
        if df[col].dtype == object:
            mask = df[col].apply(lambda v: isinstance(v, str) and v.strip() in SENTINELS)
            count = int(mask.sum())
            if count:
                replacements[col] = count
                df.loc[mask, col] = None
    if replacements:
        df.attrs["sentinel_replacements"] = replacements
    return df


def _parse_labels(value: Any) -> Optional[Dict[str, str]]:
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items() if v}
    if isinstance(value, str) and value.strip().startswith("{"):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        return {str(k): str(v) for k, v in parsed.items() if v}
    return None


def _as_str(series: pd.Series) -> pd.Series:
    def convert(value: Any) -> Optional[str]:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        # CSV ids come back as floats (1.0) when the column has gaps
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    return series.map(convert).astype(object)


def normalize_records(records: Records, kind: str) -> pd.DataFrame:
    """
    Return a normalized copy of ``records`` for the collection ``kind``.

    Every schema column is present (missing ones filled with None), dates are
    midnight Timestamps, numeric columns are floats and id-like columns are
    strings or None. Unknown extra columns are kept after the schema columns.
    """
    schema = SCHEMAS[kind]
    if records is None:
        df = pd.DataFrame()
    elif isinstance(records, pd.DataFrame):
        df = records.copy()
    else:
        df = pd.DataFrame(list(records))

    df = df.rename(columns={k: v for k, v in ALIASES.items() if k in df.columns})
    df = _normalize_sentinels(df)

    for col, col_kind in schema.items():
        if col not in df.columns:
            df[col] = None
        if col_kind == "date":
            df[col] = pd.to_datetime(df[col], errors="coerce").dt.normalize()
        elif col_kind == "float":
            df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")
        elif col_kind == "str":
            df[col] = _as_str(df[col])
        elif col == "hierarchy_labels":
            df[col] = df[col].map(_parse_labels).astype(object)

    extras = [c for c in df.columns if c not in schema]
    return df[list(schema) + extras].reset_index(drop=True)


@dataclass(frozen=True, eq=False)
class RecordSnapshot:
    """Immutable bundle of every collection the pipeline reads."""

    projects: pd.DataFrame
    manpower: pd.DataFrame
    progress: pd.DataFrame
    equipment: pd.DataFrame
    violations: pd.DataFrame
    activity_groups: pd.DataFrame
    activity_group_mappings: pd.DataFrame
    employees: pd.DataFrame = field(default_factory=lambda: normalize_records(None, "employees"))
    equipment_catalog: pd.DataFrame = field(
        default_factory=lambda: normalize_records(None, "equipment_catalog")
    )

    @classmethod
    def from_records(cls, **collections: Records) -> "RecordSnapshot":
        unknown = set(collections) - set(COLLECTIONS)
        if unknown:
            raise TypeError(f"Unknown collections: {sorted(unknown)}")
        return cls(**{kind: normalize_records(collections.get(kind), kind) for kind in COLLECTIONS})

    def row_counts(self) -> Dict[str, int]:
        return {kind: int(len(getattr(self, kind))) for kind in COLLECTIONS}
