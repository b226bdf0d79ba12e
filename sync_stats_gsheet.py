"""
Google Sheets Daily Stats Import
Pulls agent daily stats from a Google Sheet into the daily_stats table

Sheet format:
- Header row within the first 5 rows, containing an "Agent" column
- One row per agent per date: Agent, Email, Date, channel columns, Group, Team Lead Group
"""

import os
import sys
import json
import logging
from datetime import datetime, date
from typing import Optional

import pandas as pd

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

import gspread
from google.oauth2.service_account import Credentials

from data_entry import ImportResult, normalize_columns, parse_sheet_date, run_import
from db_utils import get_secret


# ============================================
# CONFIGURATION
# ============================================
SCOPES = [
    'https://www.googleapis.com/auth/spreadsheets.readonly',
    'https://www.googleapis.com/auth/drive.readonly'
]

DEFAULT_WORKSHEET = 'Daily Stats'
HEADER_SEARCH_ROWS = 5

STATUS_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'sync_status.json')


def get_credentials():
    """Get Google credentials from Streamlit secrets, credentials.json, or environment."""
    # Try Streamlit secrets first
    try:
        import streamlit as st
        if hasattr(st, 'secrets') and 'gcp_service_account' in st.secrets:
            creds_dict = dict(st.secrets['gcp_service_account'])
            credentials = Credentials.from_service_account_info(creds_dict, scopes=SCOPES)
            logger.info("Using credentials from Streamlit secrets")
            return credentials
    except Exception as e:
        logger.debug(f"Streamlit secrets not available: {e}")

    # Try credentials.json file
    creds_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'credentials.json')
    if os.path.exists(creds_file):
        credentials = Credentials.from_service_account_file(creds_file, scopes=SCOPES)
        logger.info(f"Using credentials from {creds_file}")
        return credentials

    # Try environment variable
    creds_json = os.getenv('GOOGLE_CREDENTIALS_JSON')
    if creds_json:
        creds_dict = json.loads(creds_json)
        credentials = Credentials.from_service_account_info(creds_dict, scopes=SCOPES)
        logger.info("Using credentials from GOOGLE_CREDENTIALS_JSON env var")
        return credentials

    raise ValueError(
        "Google credentials not found. Please provide credentials via:\n"
        "  1. Streamlit secrets (gcp_service_account section)\n"
        "  2. credentials.json file in project root\n"
        "  3. GOOGLE_CREDENTIALS_JSON environment variable"
    )


def get_sheet_url() -> str:
    """Get Google Sheet URL from config."""
    url = get_secret('STATS_SHEET_URL')
    if url:
        return url
    raise ValueError("STATS_SHEET_URL not found")


def get_worksheet_name() -> str:
    """Get worksheet name from config."""
    return get_secret('STATS_WORKSHEET_NAME', DEFAULT_WORKSHEET)


# ============================================
# SHEET PARSING
# ============================================
def find_header_row(all_data: list) -> Optional[int]:
    """Index of the first row (within the first few) that has an Agent column."""
    for i, row in enumerate(all_data[:HEADER_SEARCH_ROWS]):
        if 'AGENT' in [str(cell).upper().strip() for cell in row]:
            return i
    return None


def values_to_frame(all_data: list) -> pd.DataFrame:
    """
    Turn raw worksheet values into a normalized stats DataFrame.
    Short rows are padded; fully blank rows are dropped.
    """
    header_row_idx = find_header_row(all_data)
    if header_row_idx is None:
        raise ValueError("Could not find header row with 'Agent' column")

    header = [str(cell).strip() for cell in all_data[header_row_idx]]
    data_rows = []
    for row in all_data[header_row_idx + 1:]:
        row = list(row) + [''] * (len(header) - len(row))
        row = row[:len(header)]
        if any(str(cell).strip() for cell in row):
            data_rows.append(row)

    logger.info(f"Header row: {header_row_idx + 1}, Data rows: {len(data_rows)}")
    return normalize_columns(pd.DataFrame(data_rows, columns=header))


def filter_since(df: pd.DataFrame, since: Optional[date]) -> pd.DataFrame:
    """Keep rows dated on or after since (rows with unreadable dates are kept for reporting)."""
    if since is None or df.empty:
        return df
    dates = [parse_sheet_date(value) for value in df['Date'].tolist()]
    keep = [d is None or d >= since for d in dates]
    return df[keep]


def fetch_sheet_frame(sheet_url: Optional[str] = None, worksheet_name: Optional[str] = None) -> pd.DataFrame:
    """Open the worksheet with gspread and return its rows as a DataFrame."""
    credentials = get_credentials()
    gc = gspread.authorize(credentials)
    logger.info("Successfully authenticated with Google")

    spreadsheet = gc.open_by_url(sheet_url or get_sheet_url())
    worksheet_name = worksheet_name or get_worksheet_name()
    worksheet = spreadsheet.worksheet(worksheet_name)
    logger.info(f"Opened worksheet: {worksheet_name}")

    all_data = worksheet.get_all_values()
    logger.info(f"Found {len(all_data)} rows")
    return values_to_frame(all_data)


# ============================================
# SYNC
# ============================================
def write_sync_status(result: ImportResult):
    """Record the last import outcome next to the script."""
    sync_status = {
        'last_stats_sync': datetime.now().isoformat(),
        'processed': result.processed,
        'duplicates': result.duplicates,
        'skipped': result.skipped,
        'errors': result.errors,
    }

    try:
        with open(STATUS_FILE, 'r') as f:
            existing_status = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        existing_status = {}

    existing_status.update(sync_status)

    with open(STATUS_FILE, 'w') as f:
        json.dump(existing_status, f, indent=2)


def sync_stats(
    sheet_url: Optional[str] = None,
    worksheet_name: Optional[str] = None,
    since: Optional[date] = None,
    dry_run: bool = False
) -> ImportResult:
    """
    Import daily stats from Google Sheets.
    Rows already stored for the same agent and date are skipped.
    """
    logger.info("=" * 50)
    logger.info("Starting Google Sheets Daily Stats Import")
    logger.info("=" * 50)

    df = filter_since(fetch_sheet_frame(sheet_url, worksheet_name), since)
    if since:
        logger.info(f"Rows on or after {since}: {len(df)}")

    if df.empty:
        logger.warning("No rows to import")
        return ImportResult(success=True, message="No rows to import")

    result = run_import(df, source="google-sheet", dry_run=dry_run)

    if not dry_run:
        write_sync_status(result)

    logger.info("=" * 50)
    logger.info("Import Complete!" if result.success else "Import Failed")
    logger.info(f"  Processed: {result.processed}")
    logger.info(f"  Duplicates: {result.duplicates}")
    logger.info(f"  Skipped: {result.skipped}")
    logger.info(f"  Errors: {result.errors}")
    logger.info("=" * 50)
    return result


def main():
    """Main entry point for CLI usage."""
    import argparse

    parser = argparse.ArgumentParser(description='Import daily stats from Google Sheets')
    parser.add_argument('--url', type=str, help='Sheet URL (default: STATS_SHEET_URL)')
    parser.add_argument('--worksheet', type=str, help=f'Worksheet name (default: {DEFAULT_WORKSHEET})')
    parser.add_argument('--since', type=str, help='Only import rows on or after this date (YYYY-MM-DD)')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be imported without writing')

    args = parser.parse_args()

    since = None
    if args.since:
        try:
            since = datetime.strptime(args.since, '%Y-%m-%d').date()
        except ValueError:
            logger.error(f"Invalid date format: {args.since}. Use YYYY-MM-DD")
            sys.exit(1)

    try:
        result = sync_stats(
            sheet_url=args.url,
            worksheet_name=args.worksheet,
            since=since,
            dry_run=args.dry_run
        )
    except Exception as e:
        logger.error(f"Import failed: {e}")
        sys.exit(1)

    if not result.success:
        sys.exit(1)


if __name__ == '__main__':
    main()
