"""
Tests for cumulative progress handling (``site_analytics.data.progress``).

Covers daily quantity derivation (including the negative-delta anomaly
policy), neighbour lookups and the entry validation rules with the boundary
values they report.
"""

import pandas as pd
import pytest

from site_analytics.data.progress import (
    activity_progress_log,
    next_cumulative_qty,
    order_progress,
    previous_cumulative_qty,
    validate_progress_entry,
    with_daily_qty,
)
from site_analytics.data.schema import normalize_records
from site_analytics.exceptions import (
    CumulativeBelowPreviousError,
    DuplicateProgressEntryError,
    NextCumulativeExceededError,
    PlannedQuantityExceededError,
    ProgressValidationError,
    UnknownActivityError,
)


def _activity(df, activity_id):
    return df[df["activity_id"] == activity_id]


# =========================================================================
# Daily quantities
# =========================================================================


class TestDailyQuantities:
    def test_day_before_night_and_anomaly_policy(self, snapshot):
        daily = _activity(with_daily_qty(snapshot.progress), "ACT1")

        assert list(daily["id"]) == ["p1", "p2", "p3"]
        assert list(daily["daily_qty"]) == [100.0, 50.0, 130.0]
        assert list(daily["is_anomaly"]) == [False, False, True]

    def test_sum_of_daily_equals_final_cumulative(self, snapshot):
        daily = _activity(with_daily_qty(snapshot.progress), "ACT3")
        assert not daily["is_anomaly"].any()
        assert daily["daily_qty"].sum() == daily["qty"].iloc[-1] == 50.0

    def test_input_order_does_not_matter(self, snapshot):
        shuffled = snapshot.progress.iloc[::-1].reset_index(drop=True)
        expected = with_daily_qty(snapshot.progress)
        assert with_daily_qty(shuffled)[["id", "daily_qty"]].equals(expected[["id", "daily_qty"]])

    def test_missing_shift_sorts_as_day(self):
        progress = normalize_records(
            [
                {"id": "a", "activityId": "X", "date": "2025-07-01", "shift": "Night", "qty": 30},
                {"id": "b", "activityId": "X", "date": "2025-07-01", "shift": None, "qty": 10},
            ],
            "progress",
        )
        assert list(order_progress(progress)["id"]) == ["b", "a"]

    def test_empty_progress(self):
        empty = with_daily_qty(normalize_records(None, "progress"))
        assert empty.empty
        assert {"daily_qty", "is_anomaly"} <= set(empty.columns)

    def test_input_frame_is_not_mutated(self, snapshot):
        before = snapshot.progress.copy()
        with_daily_qty(snapshot.progress)
        assert snapshot.progress.equals(before)


# =========================================================================
# Neighbour lookups
# =========================================================================


class TestNeighbours:
    def test_previous_cumulative(self, snapshot):
        progress = snapshot.progress
        assert previous_cumulative_qty(progress, "ACT1", "2025-07-01", "Day") == 0.0
        assert previous_cumulative_qty(progress, "ACT1", "2025-07-01", "Night") == 100.0
        assert previous_cumulative_qty(progress, "ACT1", "2025-07-05", "Day") == 130.0

    def test_previous_cumulative_excludes_record_being_edited(self, snapshot):
        progress = snapshot.progress
        assert previous_cumulative_qty(progress, "ACT1", "2025-07-02", "Night", "p3") == 150.0

    def test_next_cumulative(self, snapshot):
        progress = snapshot.progress
        assert next_cumulative_qty(progress, "ACT1", "2025-07-01", "Day") == 150.0
        assert next_cumulative_qty(progress, "ACT1", "2025-07-02", "Day") is None

    def test_unknown_activity_has_no_neighbours(self, snapshot):
        assert previous_cumulative_qty(snapshot.progress, "nope", "2025-07-02", "Day") == 0.0
        assert next_cumulative_qty(snapshot.progress, "nope", "2025-07-02", "Day") is None


# =========================================================================
# Validation
# =========================================================================


class TestValidation:
    def test_below_previous_reports_previous_cumulative(self, snapshot, hierarchy):
        with pytest.raises(CumulativeBelowPreviousError) as exc_info:
            validate_progress_entry(snapshot.progress, hierarchy, "ACT3", "2025-07-04", "Day", 40)
        assert exc_info.value.previous_qty == 50.0
        assert exc_info.value.code == "CUMULATIVE_BELOW_PREVIOUS"

    def test_equal_to_previous_is_accepted(self, snapshot, hierarchy):
        check = validate_progress_entry(snapshot.progress, hierarchy, "ACT3", "2025-07-04", "Day", 50)
        assert check.daily_qty == 0.0

    def test_above_planned_total_reports_total(self, snapshot, hierarchy):
        with pytest.raises(PlannedQuantityExceededError) as exc_info:
            validate_progress_entry(snapshot.progress, hierarchy, "ACT3", "2025-07-04", "Day", 250)
        assert exc_info.value.total_qty == 200.0

    def test_planned_total_is_inclusive(self, snapshot, hierarchy):
        check = validate_progress_entry(snapshot.progress, hierarchy, "ACT3", "2025-07-04", "Day", 200)
        assert check.previous_qty == 50.0
        assert check.daily_qty == 150.0
        assert check.completion_pct == 100.0

    def test_activity_without_planned_total_is_unbounded(self, snapshot, hierarchy):
        check = validate_progress_entry(snapshot.progress, hierarchy, "ACT2", "2025-07-04", "Day", 10_000)
        assert check.completion_pct is None

    def test_above_next_cumulative(self, snapshot, hierarchy):
        with pytest.raises(NextCumulativeExceededError) as exc_info:
            validate_progress_entry(snapshot.progress, hierarchy, "ACT3", "2025-07-02", "Day", 60)
        assert exc_info.value.next_qty == 50.0
        assert exc_info.value.next_date == pd.Timestamp("2025-07-03")

    def test_duplicate_slot_is_rejected(self, snapshot, hierarchy):
        with pytest.raises(DuplicateProgressEntryError) as exc_info:
            validate_progress_entry(snapshot.progress, hierarchy, "ACT3", "2025-07-03", "Day", 60)
        assert exc_info.value.existing_id == "p5"

    def test_editing_a_record_ignores_its_own_value(self, snapshot, hierarchy):
        check = validate_progress_entry(
            snapshot.progress, hierarchy, "ACT3", "2025-07-03", "Day", 60, record_id="p5"
        )
        assert check.previous_qty == 20.0

    def test_editing_below_previous(self, snapshot, hierarchy):
        with pytest.raises(CumulativeBelowPreviousError) as exc_info:
            validate_progress_entry(
                snapshot.progress, hierarchy, "ACT1", "2025-07-02", "Day", 140, record_id="p3"
            )
        assert exc_info.value.previous_qty == 150.0

    @pytest.mark.parametrize("activity_id", ["B1", "ghost"])
    def test_non_activity_is_rejected(self, snapshot, hierarchy, activity_id):
        with pytest.raises(UnknownActivityError):
            validate_progress_entry(snapshot.progress, hierarchy, activity_id, "2025-07-04", "Day", 1)

    def test_invalid_date_is_rejected(self, snapshot, hierarchy):
        with pytest.raises(ProgressValidationError):
            validate_progress_entry(snapshot.progress, hierarchy, "ACT3", "someday", "Day", 1)

    def test_validation_errors_are_value_errors(self):
        assert issubclass(ProgressValidationError, ValueError)


# =========================================================================
# Activity log
# =========================================================================


class TestActivityLog:
    def test_log_columns_and_percentages(self, snapshot, hierarchy):
        log = activity_progress_log(snapshot.progress, hierarchy, "ACT1")

        assert list(log["cumulative_qty"]) == [100.0, 150.0, 130.0]
        assert list(log["percent_complete"]) == [20.0, 30.0, 26.0]
        assert list(log["shift"]) == ["Day", "Night", "Day"]
        assert log["is_anomaly"].tolist() == [False, False, True]

    def test_activity_without_entries(self, snapshot, hierarchy):
        assert activity_progress_log(snapshot.progress, hierarchy, "ACT2").empty
