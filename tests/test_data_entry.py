"""Tests for manual entry validation and spreadsheet imports."""

from __future__ import annotations

import io
from datetime import date, datetime
from unittest.mock import patch

import pandas as pd
import pytest

from config import TOTAL_COLUMN
from data_entry import (
    DataEntryError,
    build_daily_stat_row,
    normalize_columns,
    parse_sheet_date,
    plan_import,
    read_stats_file,
    resolve_agent_id,
    run_import,
    sheet_dates,
    slugify_agent_id,
    validate_manual_entry,
)

# ---------------------------------------------------------------------------
# agent identity
# ---------------------------------------------------------------------------


def test_slugify_agent_id():
    assert slugify_agent_id("  Jane  Doe ") == "jane-doe"


def test_resolve_agent_id_prefers_directory():
    assert resolve_agent_id("Jane Doe", {"jane doe": "uuid-1"}) == "uuid-1"
    assert resolve_agent_id("Jane Doe", {}) == "jane-doe"


# ---------------------------------------------------------------------------
# row building and manual entry
# ---------------------------------------------------------------------------


def test_build_daily_stat_row_totals_intake_channels():
    row = build_daily_stat_row("Jane", date(2024, 3, 15), {"calls": 3, "live_chat": "2", "sales_tickets": 5})

    assert row["Agent"] == "Jane"
    assert row["agentid"] == "jane"
    assert row["Calls"] == 3
    assert row["Live Chat"] == 2
    assert row["Sales Tickets"] == 5
    assert row["Helpdesk ticketing"] == 0
    # sales tickets are not part of the intake total
    assert row[TOTAL_COLUMN] == 5
    assert row["Email"] is None


class TestValidateManualEntry:
    def _form(self, **overrides):
        form = {"Agent": "Jane", "Date": date(2024, 3, 15), "calls": 4, "walk_ins": "1"}
        form.update(overrides)
        return form

    def test_valid_form(self):
        row = validate_manual_entry(self._form(Email="jane@example.com"), {"jane": "uuid-1"})

        assert row["agentid"] == "uuid-1"
        assert row["Email"] == "jane@example.com"
        assert row["Walk-Ins"] == 1
        assert row[TOTAL_COLUMN] == 5

    def test_datetime_is_reduced_to_date(self):
        row = validate_manual_entry(self._form(Date=datetime(2024, 3, 15, 8, 0)))
        assert row["Date"] == date(2024, 3, 15)

    def test_missing_agent(self):
        with pytest.raises(DataEntryError, match="Agent"):
            validate_manual_entry(self._form(Agent="  "))

    def test_missing_date(self):
        with pytest.raises(DataEntryError, match="Date"):
            validate_manual_entry(self._form(Date=None))

    def test_negative_count(self):
        with pytest.raises(DataEntryError, match="negative"):
            validate_manual_entry(self._form(calls=-1))

    def test_non_numeric_count(self):
        with pytest.raises(DataEntryError, match="whole number"):
            validate_manual_entry(self._form(calls="lots"))

    def test_blank_count_is_zero(self):
        assert validate_manual_entry(self._form(calls=""))["Calls"] == 0


# ---------------------------------------------------------------------------
# spreadsheet parsing
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-03-15", date(2024, 3, 15)),
        ("03/15/2024", date(2024, 3, 15)),
        ("15/03/2024", date(2024, 3, 15)),
        ("March 15, 2024", date(2024, 3, 15)),
        ("2024-03-15T08:00:00", date(2024, 3, 15)),
        (45366, date(2024, 3, 15)),
        (datetime(2024, 3, 15, 8), date(2024, 3, 15)),
        (pd.Timestamp("2024-03-15"), date(2024, 3, 15)),
        ("", None),
        (None, None),
        ("someday", None),
    ],
)
def test_parse_sheet_date(value, expected):
    assert parse_sheet_date(value) == expected


def test_normalize_columns_maps_aliases():
    df = normalize_columns(pd.DataFrame(columns=[" agent name ", "DATE", "calls", "Team Lead", "Notes"]))
    assert list(df.columns) == ["Agent", "Date", "Calls", "Team Lead Group", "Notes"]


def test_normalize_columns_requires_agent_and_date():
    with pytest.raises(DataEntryError, match="Agent"):
        normalize_columns(pd.DataFrame(columns=["Date", "Calls"]))
    with pytest.raises(DataEntryError, match="Date"):
        normalize_columns(pd.DataFrame(columns=["Agent", "Calls"]))


def test_read_stats_file_csv():
    content = io.BytesIO(b"Agent,Date,Calls\nJane,2024-03-15,4\n")
    df = read_stats_file(content, filename="stats.csv")

    assert list(df.columns) == ["Agent", "Date", "Calls"]
    assert df.iloc[0]["Agent"] == "Jane"


def test_read_stats_file_rejects_extension():
    with pytest.raises(DataEntryError, match="Unsupported"):
        read_stats_file(io.BytesIO(b""), filename="stats.txt")


def test_read_stats_file_empty():
    with pytest.raises(DataEntryError, match="No data"):
        read_stats_file(io.BytesIO(b"Agent,Date\n"), filename="stats.csv")


# ---------------------------------------------------------------------------
# import planning
# ---------------------------------------------------------------------------


def _sheet():
    return pd.DataFrame(
        [
            {"Agent": "Jane", "Date": "2024-03-15", "Calls": 4},
            {"Agent": "Jane", "Date": "2024-03-15", "Calls": 9},
            {"Agent": "Omar", "Date": "2024-03-14", "Calls": 2},
            {"Agent": "", "Date": "2024-03-14", "Calls": 1},
            {"Agent": "Lee", "Date": "whenever", "Calls": 1},
        ]
    )


def test_sheet_dates():
    assert sheet_dates(_sheet()) == {date(2024, 3, 15), date(2024, 3, 14)}


def test_plan_import_counts_duplicates_and_skips():
    plan = plan_import(_sheet(), existing_keys={("omar", date(2024, 3, 14))}, agent_map={"jane": "uuid-1"})

    assert [row["Agent"] for row in plan.rows] == ["Jane"]
    assert plan.rows[0]["agentid"] == "uuid-1"
    assert plan.rows[0]["Calls"] == 4
    assert plan.duplicates == 2
    assert plan.skipped == 2
    assert plan.notes == ["Row 6: unreadable date 'whenever' for Lee"]


def test_plan_import_is_case_insensitive_on_agent():
    df = pd.DataFrame([{"Agent": "JANE", "Date": "2024-03-15"}])
    plan = plan_import(df, existing_keys={("jane", date(2024, 3, 15))})
    assert plan.rows == []
    assert plan.duplicates == 1


class TestRunImport:
    def test_inserts_planned_rows(self):
        with patch("data_entry.stats_repository") as repo:
            repo.fetch_existing_keys.return_value = set()
            repo.fetch_agent_map.return_value = {}
            repo.insert_daily_stats.return_value = 2

            result = run_import(_sheet(), source="test")

        assert result.success is True
        assert result.processed == 2
        assert result.duplicates == 1
        assert result.skipped == 2
        inserted = repo.insert_daily_stats.call_args[0][0]
        assert [row["Agent"] for row in inserted] == ["Jane", "Omar"]

    def test_dry_run_writes_nothing(self):
        with patch("data_entry.stats_repository") as repo:
            repo.fetch_existing_keys.return_value = set()
            repo.fetch_agent_map.return_value = {}

            result = run_import(_sheet(), dry_run=True)

        assert result.success is True
        assert result.processed == 2
        repo.insert_daily_stats.assert_not_called()

    def test_insert_failure(self):
        with patch("data_entry.stats_repository") as repo:
            repo.fetch_existing_keys.return_value = set()
            repo.fetch_agent_map.return_value = {}
            repo.insert_daily_stats.return_value = None

            result = run_import(_sheet())

        assert result.success is False
        assert result.errors == 2

    def test_failed_duplicate_check_writes_nothing(self):
        with patch("data_entry.stats_repository") as repo:
            repo.fetch_existing_keys.return_value = None
            repo.fetch_agent_map.return_value = {"jane": "uuid-1"}

            result = run_import(_sheet())

        assert result.success is False
        assert result.processed == 0
        assert result.errors == 5
        repo.insert_daily_stats.assert_not_called()

    def test_failed_directory_read_writes_nothing(self):
        with patch("data_entry.stats_repository") as repo:
            repo.fetch_existing_keys.return_value = set()
            repo.fetch_agent_map.return_value = None

            result = run_import(_sheet(), dry_run=True)

        assert result.success is False
        repo.insert_daily_stats.assert_not_called()

    def test_repository_error_path_aborts_import(self):
        with patch("stats_repository.execute_query", return_value=None), \
                patch("stats_repository.execute_batch") as batch:
            result = run_import(_sheet())

        assert result.success is False
        batch.assert_not_called()
