"""Tests for turning Google Sheet values into importable rows."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

import sync_stats_gsheet as sync
from data_entry import ImportResult


def test_find_header_row_skips_title_rows():
    values = [["Daily Stats"], [""], ["Agent", "Date", "Calls"]]
    assert sync.find_header_row(values) == 2


def test_find_header_row_missing():
    assert sync.find_header_row([["Name", "Day"]]) is None


def test_values_to_frame_pads_and_drops_blank_rows():
    values = [
        ["March report"],
        ["agent", "Date", "Calls", "Live Chat"],
        ["Jane", "2024-03-15", "4"],
        ["", "", "", ""],
        ["Omar", "2024-03-14", "2", "1"],
    ]
    df = sync.values_to_frame(values)

    assert list(df.columns) == ["Agent", "Date", "Calls", "Live Chat"]
    assert df["Agent"].tolist() == ["Jane", "Omar"]
    assert df.iloc[0]["Live Chat"] == ""


def test_values_to_frame_without_header():
    with pytest.raises(ValueError, match="header row"):
        sync.values_to_frame([["Name"], ["Jane"]])


def test_filter_since_keeps_unreadable_dates():
    df = sync.values_to_frame([
        ["Agent", "Date"],
        ["Jane", "2024-03-15"],
        ["Omar", "2024-03-01"],
        ["Lee", "soon"],
    ])
    assert sync.filter_since(df, date(2024, 3, 10))["Agent"].tolist() == ["Jane", "Lee"]
    assert len(sync.filter_since(df, None)) == 3


def test_get_worksheet_name_default(monkeypatch):
    monkeypatch.delenv("STATS_WORKSHEET_NAME", raising=False)
    with patch.object(sync, "get_secret", side_effect=lambda name, default=None: default):
        assert sync.get_worksheet_name() == "Daily Stats"


def test_sync_stats_runs_import_and_records_status(tmp_path, monkeypatch):
    monkeypatch.setattr(sync, "STATUS_FILE", str(tmp_path / "sync_status.json"))
    frame = sync.values_to_frame([["Agent", "Date"], ["Jane", "2024-03-15"]])
    result = ImportResult(success=True, message="ok", processed=1)

    with patch.object(sync, "fetch_sheet_frame", return_value=frame), \
            patch.object(sync, "run_import", return_value=result) as run_import:
        assert sync.sync_stats(sheet_url="https://example.com/sheet") is result

    run_import.assert_called_once()
    assert (tmp_path / "sync_status.json").read_text().count('"processed": 1') == 1


def test_sync_stats_dry_run_skips_status(tmp_path, monkeypatch):
    monkeypatch.setattr(sync, "STATUS_FILE", str(tmp_path / "sync_status.json"))
    frame = sync.values_to_frame([["Agent", "Date"], ["Jane", "2024-03-15"]])

    with patch.object(sync, "fetch_sheet_frame", return_value=frame), \
            patch.object(sync, "run_import", return_value=MagicMock(success=True)):
        sync.sync_stats(dry_run=True)

    assert not (tmp_path / "sync_status.json").exists()
