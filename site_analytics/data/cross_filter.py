"""
Cross-filter correlation: "click one chart, filter all others".

Each pinnable dimension is described by a ``FilterRule`` tagged with a
``FilterKind``. Rules run kind by kind (DIRECT, then INDIRECT, then
HIERARCHICAL) through ``_HANDLERS``; each handler narrows the record types
that carry its field and may seed link sets (dates, subcontractors, project
ids) from what remains. A final pass ANDs every non-empty link set into the
record types that carry the linked field, skipping the record types that
seeded it so a collection is never narrowed by a set derived from itself.

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

import pandas as pd

from site_analytics.config import UNKNOWN_LABEL
from site_analytics.data.filters import PROJECT_COLUMNS, RECORD_KINDS, FilteredRecords, coerce_date
from site_analytics.data.hierarchy import ProjectHierarchy
from site_analytics.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CrossFilters:
    subcontractor: Optional[str] = None
    shift: Optional[str] = None
    employee_type: Optional[str] = None
    violation_type: Optional[str] = None
    equipment_status: Optional[str] = None
    equipment_id: Optional[str] = None
    date: Optional[str] = None
    project_name: Optional[str] = None


CLEARED_CROSS_FILTERS = CrossFilters()
CROSS_FILTER_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(CrossFilters))


class FilterKind(Enum):
    DIRECT = "direct"
    INDIRECT = "indirect"
    HIERARCHICAL = "hierarchical"


KIND_ORDER: Tuple[FilterKind, ...] = (FilterKind.DIRECT, FilterKind.INDIRECT, FilterKind.HIERARCHICAL)

DATES = "dates"
SUBCONTRACTORS = "subcontractors"
PROJECT_IDS = "project_ids"

# Link set -> {record kind: column the set constrains}
LINK_COLUMNS: Dict[str, Dict[str, str]] = {
    DATES: {kind: "date" for kind in RECORD_KINDS},
    SUBCONTRACTORS: {"manpower": "subcontractor", "violations": "subcontractor"},
    PROJECT_IDS: dict(PROJECT_COLUMNS),
}

# Link set -> cross-filter field whose direct pin suppresses seeding it
SUPPRESSED_BY: Dict[str, str] = {
    DATES: "date",
    SUBCONTRACTORS: "subcontractor",
}


@dataclass(frozen=True)
class FilterRule:
    field: str
    kind: FilterKind
    columns: Mapping[str, str]
    seeds: Tuple[str, ...] = ()
    seed_sources: Tuple[str, ...] = ()


FILTER_RULES: Tuple[FilterRule, ...] = (
    FilterRule("date", FilterKind.DIRECT, {kind: "date" for kind in RECORD_KINDS}),
    FilterRule(
        "subcontractor",
        FilterKind.DIRECT,
        {"manpower": "subcontractor", "violations": "subcontractor"},
        seeds=(DATES,),
        seed_sources=("manpower",),
    ),
    FilterRule(
        "shift",
        FilterKind.DIRECT,
        {"manpower": "shift", "progress": "shift"},
        seeds=(DATES,),
        seed_sources=("manpower",),
    ),
    FilterRule(
        "employee_type",
        FilterKind.DIRECT,
        {"manpower": "emp_id"},
        seeds=(DATES,),
        seed_sources=("manpower",),
    ),
    FilterRule(
        "equipment_status",
        FilterKind.INDIRECT,
        {"equipment": "status"},
        seeds=(DATES,),
        seed_sources=("equipment",),
    ),
    FilterRule(
        "equipment_id",
        FilterKind.INDIRECT,
        {"equipment": "equipment_id"},
        seeds=(DATES,),
        seed_sources=("equipment",),
    ),
    FilterRule(
        "violation_type",
        FilterKind.INDIRECT,
        {"violations": "violation_type"},
        seeds=(DATES, SUBCONTRACTORS),
        seed_sources=("violations",),
    ),
    FilterRule(
        "project_name",
        FilterKind.HIERARCHICAL,
        {"manpower": "project", "progress": "activity_id"},
        seeds=(DATES, PROJECT_IDS),
        seed_sources=("manpower", "progress"),
    ),
)

RULES_BY_FIELD: Dict[str, FilterRule] = {rule.field: rule for rule in FILTER_RULES}


@dataclass(frozen=True)
class LinkSeed:
    values: FrozenSet[Any]
    sources: FrozenSet[str]


@dataclass(frozen=True, eq=False)
class CrossFilterResult:
    records: FilteredRecords
    seeds: Mapping[str, Tuple[LinkSeed, ...]]

    def link_set(self, name: str) -> Optional[FrozenSet[Any]]:
        """Intersection of every non-empty seed for ``name``; None if never seeded."""
        active = [seed.values for seed in self.seeds.get(name, ()) if seed.values]
        if not active:
            return None
        combined = active[0]
        for values in active[1:]:
            combined = combined & values
        return combined


@dataclass
class _Context:
    frames: Dict[str, pd.DataFrame]
    state: CrossFilters
    employee_types: Mapping[str, str]
    hierarchy: ProjectHierarchy
    seeds: Dict[str, List[LinkSeed]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_employee_type_lookup(employees: pd.DataFrame) -> Dict[str, str]:
    """emp_id -> employee type; built once per employee snapshot."""
    if employees is None or employees.empty:
        return {}
    known = employees.dropna(subset=["emp_id"])
    return {
        emp_id: (emp_type if isinstance(emp_type, str) and emp_type else UNKNOWN_LABEL)
        for emp_id, emp_type in zip(known["emp_id"], known["type"])
    }


def _labelled(series: pd.Series) -> pd.Series:
    """Column values as chart labels: missing values read as "Unknown"."""
    return series.astype(object).where(series.notna(), UNKNOWN_LABEL)


def _match(ctx: _Context, rule: FilterRule, kind: str, value: Any) -> pd.Series:
    df = ctx.frames[kind]
    column = rule.columns[kind]
    if rule.field == "date":
        return df[column] == coerce_date(value)
    if rule.field == "employee_type":
        types = df[column].map(lambda emp_id: ctx.employee_types.get(emp_id, UNKNOWN_LABEL))
        return types == value
    return _labelled(df[column]) == value


def _date_values(frames: List[pd.DataFrame]) -> FrozenSet[pd.Timestamp]:
    values = set()
    for df in frames:
        values.update(pd.Timestamp(d) for d in df["date"].dropna().unique())
    return frozenset(values)


def _subcontractor_values(df: pd.DataFrame) -> FrozenSet[str]:
    return frozenset(_labelled(df["subcontractor"]).unique())


def _seed(ctx: _Context, name: str, values: FrozenSet[Any], sources: Tuple[str, ...]) -> None:
    suppressing_field = SUPPRESSED_BY.get(name)
    if suppressing_field and getattr(ctx.state, suppressing_field) is not None:
        return
    ctx.seeds.setdefault(name, []).append(LinkSeed(frozenset(values), frozenset(sources)))


def _seed_from_sources(ctx: _Context, rule: FilterRule) -> None:
    source_frames = [ctx.frames[kind] for kind in rule.seed_sources]
    for name in rule.seeds:
        if name == DATES:
            _seed(ctx, name, _date_values(source_frames), rule.seed_sources)
        elif name == SUBCONTRACTORS:
            values = frozenset().union(*(_subcontractor_values(df) for df in source_frames))
            _seed(ctx, name, values, rule.seed_sources)


# ---------------------------------------------------------------------------
# Handlers per filter kind
# ---------------------------------------------------------------------------


def _apply_direct(ctx: _Context, rule: FilterRule, value: Any) -> None:
    for kind in rule.columns:
        df = ctx.frames[kind]
        ctx.frames[kind] = df[_match(ctx, rule, kind, value)]
    _seed_from_sources(ctx, rule)


def _apply_indirect(ctx: _Context, rule: FilterRule, value: Any) -> None:
    # Same mechanics as a direct filter; the field simply lives on one record type.
    _apply_direct(ctx, rule, value)


def _apply_hierarchical(ctx: _Context, rule: FilterRule, value: Any) -> None:
    root = ctx.hierarchy.find_root_by_name(value)
    if root is None:
        logger.warning("Cross-filter project %r does not match any root project", value)
        subtree: FrozenSet[str] = frozenset()
    else:
        subtree = ctx.hierarchy.expand([root.id])

    subtree_list = list(subtree)
    for kind, column in rule.columns.items():
        df = ctx.frames[kind]
        ctx.frames[kind] = df[df[column].isin(subtree_list)]

    _seed(ctx, DATES, _date_values([ctx.frames[kind] for kind in rule.seed_sources]), rule.seed_sources)
    _seed(ctx, PROJECT_IDS, subtree, rule.seed_sources)


_HANDLERS: Dict[FilterKind, Callable[[_Context, FilterRule, Any], None]] = {
    FilterKind.DIRECT: _apply_direct,
    FilterKind.INDIRECT: _apply_indirect,
    FilterKind.HIERARCHICAL: _apply_hierarchical,
}


def _apply_link_sets(ctx: _Context) -> None:
    for name, seeds in ctx.seeds.items():
        for kind, column in LINK_COLUMNS[name].items():
            for seed in seeds:
                if not seed.values or kind in seed.sources:
                    continue
                df = ctx.frames[kind]
                ctx.frames[kind] = df[df[column].isin(list(seed.values))]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def correlate(
    base: FilteredRecords,
    state: CrossFilters,
    employee_types: Mapping[str, str],
    hierarchy: ProjectHierarchy,
) -> CrossFilterResult:
    """Apply ``state`` to the globally filtered collections; also report the link sets."""
    ctx = _Context(
        frames={kind: base.get(kind) for kind in RECORD_KINDS},
        state=state,
        employee_types=employee_types,
        hierarchy=hierarchy,
        seeds={},
    )
    for kind in KIND_ORDER:
        for rule in FILTER_RULES:
            if rule.kind is not kind:
                continue
            value = getattr(state, rule.field)
            if value is None:
                continue
            _HANDLERS[kind](ctx, rule, value)

    _apply_link_sets(ctx)

    records = FilteredRecords(**{kind: ctx.frames[kind].reset_index(drop=True) for kind in RECORD_KINDS})
    seeds = {name: tuple(values) for name, values in ctx.seeds.items()}
    return CrossFilterResult(records=records, seeds=seeds)


def apply_cross_filters(
    base: FilteredRecords,
    state: CrossFilters,
    employee_types: Mapping[str, str],
    hierarchy: ProjectHierarchy,
) -> FilteredRecords:
    if not active_cross_filters(state):
        return base
    return correlate(base, state, employee_types, hierarchy).records


def active_cross_filters(state: CrossFilters) -> Dict[str, str]:
    return {name: getattr(state, name) for name in CROSS_FILTER_FIELDS if getattr(state, name) is not None}


def update_cross_filters(state: CrossFilters, update: Mapping[str, Any]) -> CrossFilters:
    """
    Merge a partial update coming from a chart click.

    Pinning the value that is already pinned clears it (toggle); passing None
    clears the field.
    """
    changes = {}
    for name, value in update.items():
        if name not in CROSS_FILTER_FIELDS:
            raise KeyError(f"Unknown cross-filter field: {name!r}")
        if value is not None and name == "date":
            ts = coerce_date(value)
            value = ts.date().isoformat() if ts is not None else None
        current = getattr(state, name)
        changes[name] = None if value is None or value == current else value
    return replace(state, **changes)
