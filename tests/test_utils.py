"""Tests for formatting and table helpers."""

from __future__ import annotations

from datetime import date, datetime

import pandas as pd

from utils import (
    agent_name_html,
    channel_label,
    format_dataframe_numbers,
    format_date_display,
    format_number,
    format_refresh_time,
    metric_label,
    period_label,
    rank_badge,
    search_records,
    sort_records,
)


def test_format_number():
    assert format_number(1234) == "1,234"
    assert format_number(1234.5) == "1,234.5"
    assert format_number(12.0) == "12"
    assert format_number(None) == "N/A"
    assert format_number(float("nan")) == "N/A"


def test_format_dataframe_numbers_skips_excluded():
    df = pd.DataFrame({"Rank": [1, 2], "Total": [1500, 20]})
    formatted = format_dataframe_numbers(df, exclude_cols=["Rank"])
    assert formatted["Total"].tolist() == ["1,500", "20"]
    assert formatted["Rank"].tolist() == [1, 2]


def test_labels():
    assert period_label("weekly") == "This Week"
    assert metric_label("total") == "Total Issues"
    assert metric_label("support_emails") == "Support/DNS Emails"
    assert channel_label("calls") == "📞 Calls"
    assert channel_label("unknown") == "unknown"


def test_rank_badge():
    assert rank_badge(1) == "👑"
    assert rank_badge(3) == "🥉"
    assert rank_badge(7) == "#7"


def test_agent_name_html_escapes_markup():
    assert agent_name_html("<b>Jane</b>", "champion-name") == (
        "<div class='champion-name'>&lt;b&gt;Jane&lt;/b&gt;</div>"
    )
    assert agent_name_html("O'Neil & Co") == "<div class=''>O&#x27;Neil &amp; Co</div>"
    assert agent_name_html(None) == "<div class=''></div>"


def test_format_dates():
    assert format_date_display(date(2024, 3, 15)) == "2024-03-15 (Fri)"
    assert format_date_display("2024-03-15", include_day=False) == "2024-03-15"
    assert format_date_display(None) == "N/A"
    assert format_refresh_time(datetime(2024, 3, 15, 14, 5, 9)) == "14:05:09"


def _records():
    return pd.DataFrame(
        [
            {"Agent": "Jane", "Team Lead Group": "Lead One", "Date": date(2024, 3, 14)},
            {"Agent": "Omar", "Team Lead Group": None, "Date": None},
            {"Agent": "Lee", "Team Lead Group": "lead two", "Date": date(2024, 3, 15)},
        ]
    )


def test_search_records():
    df = _records()
    assert search_records(df, "LEAD", ["Agent", "Team Lead Group"])["Agent"].tolist() == ["Jane", "Lee"]
    assert search_records(df, "oma", ["Agent", "Missing"])["Agent"].tolist() == ["Omar"]
    assert len(search_records(df, "  ", ["Agent"])) == 3


def test_sort_records_missing_last():
    df = _records()
    assert sort_records(df, "Date")["Agent"].tolist() == ["Lee", "Jane", "Omar"]
    assert sort_records(df, "Date", ascending=True)["Agent"].tolist() == ["Jane", "Lee", "Omar"]
    assert sort_records(df, "Nope") is df
