"""
Utility functions for the Momentum leaderboard
Formatting, labels, and table helpers
"""

import html
import numbers

import pandas as pd
from config import CHANNELS, DISPLAY, PERIOD_LABELS, RANK_BADGES, TOTAL_METRIC


# ============================================
# NUMBER FORMATTING
# ============================================
def format_number(val):
    """
    Format number with comma separator.
    Handles None, NaN, integers, and floats.

    Examples:
        format_number(1234) -> "1,234"
        format_number(1234.5) -> "1,234.5"
        format_number(None) -> "N/A"
    """
    if val is None or pd.isna(val):
        return "N/A"
    if isinstance(val, numbers.Real):
        if val == int(val):
            return f"{int(val):,}"
        return f"{val:,.1f}"
    return str(val)


def format_dataframe_numbers(df, exclude_cols=None):
    """
    Apply comma formatting to all numeric columns in a DataFrame.

    Args:
        df: pandas DataFrame
        exclude_cols: List of column names to skip formatting

    Returns:
        New DataFrame with formatted values (strings)
    """
    if exclude_cols is None:
        exclude_cols = []

    df_formatted = df.copy()
    numeric_dtypes = ['int64', 'float64', 'int32', 'float32', 'Int64', 'Float64']

    for col in df_formatted.columns:
        if col not in exclude_cols and str(df_formatted[col].dtype) in numeric_dtypes:
            df_formatted[col] = df_formatted[col].apply(format_number)

    return df_formatted


# ============================================
# LABELS
# ============================================
def period_label(period):
    """
    Display label for a time window.

    Examples:
        period_label("weekly") -> "This Week"
    """
    return PERIOD_LABELS.get(period, str(period).title())


def metric_label(metric):
    """
    Display label for a ranking metric.

    Examples:
        metric_label("total") -> "Total Issues"
        metric_label("support_emails") -> "Support/DNS Emails"
    """
    if metric == TOTAL_METRIC:
        return "Total Issues"
    channel_def = CHANNELS.get(metric)
    return channel_def["column"] if channel_def else str(metric)


def channel_label(channel):
    """Short name with icon for channel cards, e.g. "📞 Calls"."""
    channel_def = CHANNELS.get(channel)
    if not channel_def:
        return str(channel)
    return f"{channel_def['icon']} {channel_def['label']}"


def rank_badge(rank):
    """Badge for podium ranks, "#N" otherwise."""
    return RANK_BADGES.get(rank, f"#{rank}")


def agent_name_html(name, css_class=""):
    """Agent name as a div for unsafe_allow_html markdown, with the name escaped"""
    return f"<div class='{css_class}'>{html.escape(name or '')}</div>"


# ============================================
# DATE FORMATTING
# ============================================
def format_date_display(date_val, include_day=True):
    """
    Format date for display in tables.

    Args:
        date_val: Date object or string
        include_day: Whether to include day name

    Returns:
        Formatted date string
    """
    if date_val is None or pd.isna(date_val):
        return "N/A"

    if isinstance(date_val, str):
        date_val = pd.to_datetime(date_val).date()

    if include_day:
        return date_val.strftime('%Y-%m-%d (%a)')
    return date_val.strftime(DISPLAY["date_format"])


def format_refresh_time(dt):
    """Clock time of the last refresh, e.g. "14:05:09"."""
    return dt.strftime(DISPLAY["time_format"])


# ============================================
# TABLE HELPERS
# ============================================
def search_records(df, term, columns):
    """
    Keep rows where any of the given columns contains term (case-insensitive).

    Args:
        df: pandas DataFrame
        term: Search text (blank keeps everything)
        columns: Column names to search

    Returns:
        Filtered DataFrame
    """
    term = (term or "").strip().lower()
    if not term or df.empty:
        return df

    mask = pd.Series(False, index=df.index)
    for col in columns:
        if col in df.columns:
            mask |= df[col].fillna("").astype(str).str.lower().str.contains(term, regex=False)
    return df[mask]


def sort_records(df, column, ascending=False):
    """Sort by a column, missing values last."""
    if df.empty or column not in df.columns:
        return df
    return df.sort_values(column, ascending=ascending, na_position="last", kind="stable")


# ============================================
# SIGNED-IN USER
# ============================================
def get_current_user_email():
    """Email of the signed-in Streamlit user, None when auth is not configured."""
    import streamlit as st
    try:
        if not st.user.is_logged_in:
            return None
        return st.user.email
    except (AttributeError, KeyError):
        return None
