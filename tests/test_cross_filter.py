"""
Tests for cross-filter correlation (``site_analytics.data.cross_filter``).

Each filter kind is exercised in isolation, then in combination: link-set
propagation, date-pin suppression, purity and the no-self-narrowing rule.
"""

import pandas as pd
import pytest

from site_analytics.data.cross_filter import (
    CLEARED_CROSS_FILTERS,
    DATES,
    FILTER_RULES,
    PROJECT_IDS,
    SUBCONTRACTORS,
    CrossFilters,
    FilterKind,
    active_cross_filters,
    apply_cross_filters,
    build_employee_type_lookup,
    correlate,
    update_cross_filters,
)
from site_analytics.data.filters import apply_global_filters

ts = pd.Timestamp


@pytest.fixture
def base(snapshot, hierarchy, all_filters):
    return apply_global_filters(snapshot, hierarchy, all_filters)


@pytest.fixture
def employee_types(snapshot):
    return build_employee_type_lookup(snapshot.employees)


@pytest.fixture
def run(base, employee_types, hierarchy):
    def _run(**state):
        return correlate(base, CrossFilters(**state), employee_types, hierarchy)

    return _run


def _ids(df):
    return sorted(df["id"])


# =========================================================================
# Rule table
# =========================================================================


class TestRuleTable:
    def test_every_field_has_exactly_one_rule(self):
        fields = [rule.field for rule in FILTER_RULES]
        assert sorted(fields) == sorted(set(fields))
        assert len(fields) == 8

    def test_kinds(self):
        kinds = {rule.field: rule.kind for rule in FILTER_RULES}
        assert kinds["subcontractor"] is FilterKind.DIRECT
        assert kinds["violation_type"] is FilterKind.INDIRECT
        assert kinds["project_name"] is FilterKind.HIERARCHICAL


# =========================================================================
# Direct filters
# =========================================================================


class TestDirectFilters:
    def test_subcontractor_links_dates_across_collections(self, run):
        result = run(subcontractor="A")
        records = result.records

        assert _ids(records.manpower) == ["m1", "m2", "m3"]
        assert result.link_set(DATES) == frozenset({ts("2025-07-01"), ts("2025-07-02")})
        # equipment carries no subcontractor; kept on linked dates whatever its project
        assert _ids(records.equipment) == ["e1", "e2"]
        assert _ids(records.progress) == ["p1", "p2", "p3", "p4"]
        # violations are narrowed by the pinned subcontractor and by the linked dates
        assert _ids(records.violations) == ["v1"]

    def test_shift_narrows_manpower_and_progress(self, run):
        records = run(shift="Night").records
        assert _ids(records.manpower) == ["m2"]
        assert _ids(records.progress) == ["p2"]
        assert _ids(records.equipment) == ["e1"]
        assert _ids(records.violations) == ["v1"]

    def test_employee_type_uses_lookup(self, run):
        records = run(employee_type="Direct").records
        assert _ids(records.manpower) == ["m1", "m3", "m4", "m6"]
        assert _ids(records.violations) == ["v1", "v2"]
        assert _ids(records.equipment) == ["e1", "e2", "e4"]

    def test_employee_without_type_reads_as_unknown(self, run):
        assert _ids(run(employee_type="Unknown").records.manpower) == ["m5"]

    def test_date_pin_narrows_everything(self, run):
        records = run(date="2025-07-03").records
        assert _ids(records.manpower) == ["m5"]
        assert _ids(records.progress) == ["p5"]
        assert _ids(records.equipment) == ["e3"]
        assert _ids(records.violations) == ["v3", "v4"]


# =========================================================================
# Indirect and hierarchical filters
# =========================================================================


class TestIndirectFilters:
    def test_violation_type_seeds_dates_and_subcontractors(self, run):
        result = run(violation_type="No Harness")
        records = result.records

        assert _ids(records.violations) == ["v2", "v4"]
        assert result.link_set(DATES) == frozenset({ts("2025-07-02"), ts("2025-07-03")})
        assert result.link_set(SUBCONTRACTORS) == frozenset({"B"})
        assert _ids(records.manpower) == ["m5"]
        assert _ids(records.equipment) == ["e2", "e3"]
        assert _ids(records.progress) == ["p3", "p5"]

    def test_equipment_status(self, run):
        records = run(equipment_status="Working").records
        assert _ids(records.equipment) == ["e1", "e4"]
        assert _ids(records.manpower) == ["m1", "m2", "m4", "m6"]
        assert _ids(records.violations) == ["v1"]

    def test_equipment_id(self, run):
        result = run(equipment_id="EQ2")
        assert _ids(result.records.equipment) == ["e2", "e4"]
        assert result.link_set(DATES) == frozenset({ts("2025-07-02"), ts("2025-07-04")})

    def test_direct_date_pin_suppresses_date_seeding(self, run):
        result = run(date="2025-07-01", violation_type="No Helmet")
        assert result.link_set(DATES) is None
        assert _ids(result.records.violations) == ["v1"]
        assert _ids(result.records.manpower) == ["m1", "m2"]

    def test_direct_subcontractor_pin_suppresses_subcontractor_seeding(self, run):
        result = run(subcontractor="B", violation_type="No Harness")
        assert result.link_set(SUBCONTRACTORS) is None


class TestHierarchicalFilter:
    def test_project_name_narrows_to_root_subtree(self, run):
        result = run(project_name="Tower B")
        records = result.records

        assert _ids(records.manpower) == ["m4", "m5"]
        assert _ids(records.progress) == ["p4", "p5"]
        assert result.link_set(PROJECT_IDS) == frozenset({"P2", "ACT3"})
        assert result.link_set(DATES) == frozenset({ts("2025-07-01"), ts("2025-07-03")})
        assert _ids(records.violations) == ["v4"]
        assert records.equipment.empty

    def test_unknown_project_name_empties_manpower_and_progress(self, run, base):
        records = run(project_name="Tower Z").records
        assert records.manpower.empty
        assert records.progress.empty
        # empty link sets are not applied
        assert _ids(records.equipment) == _ids(base.equipment)


# =========================================================================
# Properties
# =========================================================================


class TestCorrelatorProperties:
    def test_no_active_filter_returns_base(self, base, employee_types, hierarchy):
        assert apply_cross_filters(base, CLEARED_CROSS_FILTERS, employee_types, hierarchy) is base

    @pytest.mark.parametrize(
        "state",
        [
            {"subcontractor": "A"},
            {"violation_type": "No Helmet", "shift": "Day"},
            {"project_name": "Tower A", "equipment_status": "Working"},
        ],
    )
    def test_idempotent(self, run, state):
        assert run(**state).records.equals(run(**state).records)

    def test_seeding_collection_is_not_narrowed_by_its_own_link_set(self, run):
        # dates seeded from violations would drop nothing here, but the
        # subcontractor link set must not touch violations either
        records = run(violation_type="No Helmet").records
        assert _ids(records.violations) == ["v1", "v3"]

    def test_base_is_left_untouched(self, run, base):
        before = base.counts()
        run(subcontractor="A", shift="Day")
        assert base.counts() == before


# =========================================================================
# State updates
# =========================================================================


class TestUpdateCrossFilters:
    def test_pin_and_toggle(self):
        state = update_cross_filters(CLEARED_CROSS_FILTERS, {"subcontractor": "A"})
        assert active_cross_filters(state) == {"subcontractor": "A"}
        assert update_cross_filters(state, {"subcontractor": "A"}) == CLEARED_CROSS_FILTERS

    def test_none_clears(self):
        state = CrossFilters(shift="Day", subcontractor="A")
        assert update_cross_filters(state, {"shift": None}) == CrossFilters(subcontractor="A")

    def test_dates_are_stored_as_iso_strings(self):
        state = update_cross_filters(CLEARED_CROSS_FILTERS, {"date": ts("2025-07-03 08:00")})
        assert state.date == "2025-07-03"

    def test_unknown_field_is_rejected(self):
        with pytest.raises(KeyError):
            update_cross_filters(CLEARED_CROSS_FILTERS, {"colour": "red"})
