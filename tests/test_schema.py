"""
Tests for record normalization and snapshot loading.
"""

import json

import pandas as pd
import pytest

from site_analytics.data.loader import read_snapshot
from site_analytics.data.schema import SCHEMAS, RecordSnapshot, normalize_records
from site_analytics.exceptions import SnapshotLoadError


# =========================================================================
# Normalization
# =========================================================================


class TestNormalizeRecords:
    def test_aliases_sentinels_and_types(self):
        df = normalize_records(
            [
                {"id": 1.0, "empId": "E1", "date": "2025-07-01 17:30", "hoursWorked": "8.5",
                 "subcontractor": "N/A", "project": "ACT1"},
            ],
            "manpower",
        )
        row = df.iloc[0]

        assert row["id"] == "1"
        assert row["emp_id"] == "E1"
        assert row["date"] == pd.Timestamp("2025-07-01")
        assert row["hours_worked"] == 8.5
        assert row["subcontractor"] is None
        assert row["shift"] is None

    def test_schema_columns_come_first_and_extras_are_kept(self):
        df = normalize_records([{"id": "x", "remarks": "ok"}], "violations")
        assert list(df.columns) == list(SCHEMAS["violations"]) + ["remarks"]

    def test_hierarchy_labels_parsed_from_json(self):
        df = normalize_records(
            [{"id": "P", "name": "P", "type": "Project", "hierarchyLabels": '{"Level1": "Zone", "Level2": ""}'}],
            "projects",
        )
        assert df.iloc[0]["hierarchy_labels"] == {"Level1": "Zone"}

    def test_unparseable_values_become_missing(self):
        df = normalize_records([{"id": "p", "date": "soon", "qty": "lots"}], "progress")
        assert pd.isna(df.iloc[0]["date"])
        assert pd.isna(df.iloc[0]["qty"])

    def test_none_gives_empty_frame_with_schema(self):
        df = normalize_records(None, "equipment")
        assert df.empty
        assert list(df.columns) == list(SCHEMAS["equipment"])


class TestRecordSnapshot:
    def test_missing_collections_are_empty(self):
        snapshot = RecordSnapshot.from_records(projects=[{"id": "P", "name": "P", "type": "Project"}])
        counts = snapshot.row_counts()
        assert counts["projects"] == 1
        assert counts["manpower"] == 0

    def test_unknown_collection_is_rejected(self):
        with pytest.raises(TypeError):
            RecordSnapshot.from_records(invoices=[])


# =========================================================================
# Loading from a data directory
# =========================================================================


class TestReadSnapshot:
    def test_reads_csv_and_json(self, tmp_path):
        (tmp_path / "projects.csv").write_text(
            "id,name,parent_id,type,total_qty\nP1,Tower A,,Project,\nA1,Pour,P1,Activity,120\n"
        )
        (tmp_path / "progress.json").write_text(
            json.dumps([{"id": "p1", "activityId": "A1", "date": "2025-07-01", "shift": "Day", "qty": 40}])
        )

        snapshot = read_snapshot(str(tmp_path))

        assert snapshot.row_counts()["projects"] == 2
        assert snapshot.projects.iloc[0]["parent_id"] is None
        assert snapshot.projects.iloc[1]["total_qty"] == 120.0
        assert snapshot.progress.iloc[0]["activity_id"] == "A1"
        assert snapshot.progress.iloc[0]["date"] == pd.Timestamp("2025-07-01")
        assert snapshot.manpower.empty

    def test_missing_directory(self, tmp_path):
        with pytest.raises(SnapshotLoadError) as exc_info:
            read_snapshot(str(tmp_path / "nowhere"))
        assert exc_info.value.code == "SNAPSHOT_LOAD_ERROR"

    def test_projects_are_required(self, tmp_path):
        (tmp_path / "manpower.csv").write_text("id,emp_id,date\nm1,E1,2025-07-01\n")
        with pytest.raises(SnapshotLoadError, match="required collection"):
            read_snapshot(str(tmp_path))

    def test_malformed_file(self, tmp_path):
        (tmp_path / "projects.json").write_text("{not json")
        with pytest.raises(SnapshotLoadError):
            read_snapshot(str(tmp_path))
