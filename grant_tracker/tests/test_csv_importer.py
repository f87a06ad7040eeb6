"""Tests for importer.csv_importer."""

from datetime import date

import pytest

from grant_tracker.importer import CsvImportError, parse_grant_csv, sanitize_cell
from grant_tracker.importer.csv_importer import MAX_ROWS
from grant_tracker.models import GrantSource, Priority, Stage, TaskStatus
from grant_tracker.store import GrantStore

HEADER = "Grant Name,Agency,Deadline,Opportunity Number,Owner Email,Priority,Stage,Focus Areas,Task 1,Task 1 Due,Task 1 Owner,Task 1 Status"


def _csv(*rows: str, header: str = HEADER) -> str:
    return "\n".join([header, *rows]) + "\n"


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestParseRows:
    def test_full_row(self):
        text = _csv(
            'Youth Arts Fund,City Council,2025-03-01,CC-2025-7,PM@Example.org,high,drafting,"Arts; Youth",'
            "Gather letters,02/15/2025,writer@example.org,completed"
        )
        result = parse_grant_csv(text)

        assert result.issues == []
        entry = result.rows[0]
        assert entry.id == "CC-2025-7"
        assert entry.title == "Youth Arts Fund"
        assert entry.close_date == date(2025, 3, 1)
        assert entry.owner == "pm@example.org"
        assert entry.priority == Priority.HIGH
        assert entry.stage == Stage.DRAFTING
        assert entry.focus_areas == ["Arts", "Youth"]
        assert entry.source == GrantSource.IMPORTED
        task = entry.tasks[0]
        assert task.label == "Gather letters"
        assert task.due_date.date() == date(2025, 2, 15)
        assert task.assignee_email == "writer@example.org"
        assert task.status == TaskStatus.COMPLETED

    def test_id_falls_back_to_title(self):
        result = parse_grant_csv(_csv("Water Grant,EPA,2025-01-10", header="Grant Name,Agency,Deadline"))
        assert result.rows[0].id == "Water Grant"

    def test_unknown_priority_and_stage_use_defaults(self):
        result = parse_grant_csv(_csv(
            "Water Grant,EPA,2025-01-10,,,urgent,someday,,,,,",
        ))
        assert result.rows[0].priority == Priority.MEDIUM
        assert result.rows[0].stage == Stage.RESEARCHING

    def test_control_characters_removed(self):
        assert sanitize_cell("Clean\x00 \tme\x07 up") == "Clean me up"

    def test_long_fields_capped(self):
        result = parse_grant_csv(_csv(f"{'T' * 300},EPA,2025-01-10", header="Grant Name,Agency,Deadline"))
        assert len(result.rows[0].title) == 200


# ---------------------------------------------------------------------------
# Row-level issues
# ---------------------------------------------------------------------------

class TestRowIssues:
    def test_missing_required_value_skips_row(self):
        result = parse_grant_csv(_csv(",EPA,2025-01-10", "Ok,EPA,2025-01-10", header="Grant Name,Agency,Deadline"))
        assert [r.title for r in result.rows] == ["Ok"]
        assert result.issues == ["Row 2: Missing required values."]

    def test_invalid_deadline(self):
        result = parse_grant_csv(_csv("A,B,soon", header="Grant Name,Agency,Deadline"))
        assert result.rows == []
        assert 'Row 2: Invalid deadline date "soon"' in result.issues[0]
        assert result.issues[-1] == "No valid rows found after validation."

    def test_out_of_range_deadline(self):
        result = parse_grant_csv(_csv("A,B,1960-01-01", header="Grant Name,Agency,Deadline"))
        assert result.rows == []
        assert "between 1970 and 2100" in result.issues[0]

    def test_invalid_owner_email_kept_row_without_owner(self):
        result = parse_grant_csv(_csv(
            "A,B,2025-01-10,not-an-email",
            header="Grant Name,Agency,Deadline,Owner Email",
        ))
        assert result.rows[0].owner is None
        assert "not a valid email" in result.issues[0]


# ---------------------------------------------------------------------------
# File-level errors
# ---------------------------------------------------------------------------

class TestFileErrors:
    def test_empty_file(self):
        with pytest.raises(CsvImportError):
            parse_grant_csv("")

    def test_missing_required_columns(self):
        with pytest.raises(CsvImportError, match="Agency, Deadline"):
            parse_grant_csv("Grant Name\nA\n")

    def test_too_many_rows(self):
        rows = ["A,B,2025-01-10"] * (MAX_ROWS + 1)
        with pytest.raises(CsvImportError, match="limit uploads"):
            parse_grant_csv(_csv(*rows, header="Grant Name,Agency,Deadline"))


def test_parsed_rows_import_into_store():
    result = parse_grant_csv(_csv(
        "A,B,2025-01-10,OPP-1",
        "C,D,2025-02-10,OPP-1",
        header="Grant Name,Agency,Deadline,Opportunity Number",
    ))
    store = GrantStore("org-1")
    outcome = store.bulk_import(result.rows)
    assert outcome.imported == ["OPP-1"]
    assert outcome.skipped == ["OPP-1"]
    assert store.get("OPP-1").source == GrantSource.IMPORTED
