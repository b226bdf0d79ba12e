"""
Data entry for the Momentum admin console
Manual entry validation, spreadsheet parsing, and duplicate-aware imports

Spreadsheet format (first sheet of .xlsx/.xls, or .csv):
- Agent, Email, Date, Group, Team Lead Group
- One column per channel (Calls, Live Chat, Helpdesk ticketing, ...)
"""

import logging
import numbers
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set, Tuple

import pandas as pd

from config import CHANNELS, TOTAL_COLUMN
from stats_engine import DailyRecord, coerce_count, record_total
import stats_repository

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")

# Excel stores dates as days since 1899-12-30
EXCEL_EPOCH = date(1899, 12, 30)
EXCEL_SERIAL_RANGE = (1, 2958465)

DATE_FORMATS = [
    '%Y-%m-%d',      # 2026-01-01
    '%m/%d/%Y',      # 01/31/2026 (MM/DD/YYYY)
    '%d/%m/%Y',      # 31/01/2026 (DD/MM/YYYY)
    '%d-%m-%Y',      # 31-01-2026
    '%B %d, %Y',     # January 1, 2026
    '%b %d, %Y',     # Jan 1, 2026
    '%d %B %Y',      # 1 January 2026
    '%d %b %Y',      # 1 Jan 2026
]

# Lowercased header -> canonical column label
_HEADER_ALIASES = {
    "agent": "Agent",
    "agent name": "Agent",
    "agentid": "agentid",
    "agent id": "agentid",
    "email": "Email",
    "date": "Date",
    "group": "Group",
    "team lead group": "Team Lead Group",
    "team lead": "Team Lead Group",
    "team": "Team Lead Group",
}
for _key, _channel in CHANNELS.items():
    _HEADER_ALIASES[_channel["column"].lower()] = _channel["column"]
    _HEADER_ALIASES[_key] = _channel["column"]


class DataEntryError(ValueError):
    """Raised when a manual entry or an uploaded file cannot be used."""


# ============================================
# AGENT IDENTITY
# ============================================
def slugify_agent_id(agent_name: str) -> str:
    """
    Stable id derived from the agent name.

    Examples:
        slugify_agent_id("Jane  Doe") -> "jane-doe"
    """
    return re.sub(r"\s+", "-", agent_name.strip().lower())


def resolve_agent_id(agent_name: str, agent_map: Optional[Mapping[str, str]] = None) -> str:
    """Directory id for the agent name, falling back to the name slug."""
    agent_map = agent_map or {}
    return agent_map.get(agent_name.strip().lower()) or slugify_agent_id(agent_name)


# ============================================
# ROW BUILDING
# ============================================
def build_daily_stat_row(agent_name: str, stat_date: date, counts: Mapping,
                         email: str = "", group: str = "", team_lead_group: str = "",
                         agent_id: str = "") -> Dict:
    """
    Build a daily_stats row keyed by column label.

    Channel values are coerced to non-negative integers and
    "Total Issues handled" is computed over the intake channels.
    """
    record = DailyRecord(
        agent_name=agent_name.strip(),
        agent_id=agent_id or slugify_agent_id(agent_name),
        date=stat_date,
        counts={key: coerce_count(counts.get(key)) for key in CHANNELS},
    )

    row = {
        "agentid": record.agent_id,
        "Agent": record.agent_name,
        "Email": email.strip() or None,
        "Date": record.date,
        "Group": group.strip() or None,
        "Team Lead Group": team_lead_group.strip() or None,
        TOTAL_COLUMN: record_total(record, "intake"),
    }
    for key, channel_def in CHANNELS.items():
        row[channel_def["column"]] = record.counts[key]
    return row


def validate_manual_entry(form: Mapping, agent_map: Optional[Mapping[str, str]] = None) -> Dict:
    """
    Validate the manual entry form and build the row to insert.

    Args:
        form: Agent, Date, Email, Group, Team Lead Group and channel keys
        agent_map: {lowercased name: agentid} from the directory

    Returns:
        Row dict ready for stats_repository.insert_daily_stats

    Raises:
        DataEntryError: missing agent name or date, negative or non-numeric count
    """
    agent_name = str(form.get("Agent") or "").strip()
    if not agent_name:
        raise DataEntryError("Agent name is required")

    stat_date = form.get("Date")
    if isinstance(stat_date, datetime):
        stat_date = stat_date.date()
    if not isinstance(stat_date, date):
        raise DataEntryError("Date is required")

    counts = {}
    for key, channel_def in CHANNELS.items():
        raw = form.get(key, 0)
        if raw in (None, ""):
            raw = 0
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise DataEntryError(f"{channel_def['column']} must be a whole number")
        if value < 0:
            raise DataEntryError(f"{channel_def['column']} cannot be negative")
        counts[key] = value

    return build_daily_stat_row(
        agent_name,
        stat_date,
        counts,
        email=str(form.get("Email") or ""),
        group=str(form.get("Group") or ""),
        team_lead_group=str(form.get("Team Lead Group") or ""),
        agent_id=resolve_agent_id(agent_name, agent_map),
    )


# ============================================
# SPREADSHEET PARSING
# ============================================
def read_stats_file(uploaded_file, filename: Optional[str] = None) -> pd.DataFrame:
    """
    Read the first sheet of an Excel workbook, or a CSV file.

    Args:
        uploaded_file: Path or file-like object (Streamlit UploadedFile)
        filename: Name used to pick the reader (defaults to uploaded_file.name)

    Raises:
        DataEntryError: unsupported extension, unreadable or empty file
    """
    name = filename or getattr(uploaded_file, "name", None) or str(uploaded_file)
    extension = Path(name).suffix.lower()

    if extension not in SUPPORTED_EXTENSIONS:
        raise DataEntryError(f"Unsupported file type '{extension}'. Use {', '.join(SUPPORTED_EXTENSIONS)}")

    try:
        if extension == ".csv":
            df = pd.read_csv(uploaded_file)
        else:
            df = pd.read_excel(uploaded_file, sheet_name=0)
    except Exception as e:
        raise DataEntryError(f"Failed to read {name}: {e}")

    if df.empty:
        raise DataEntryError("No data found in the uploaded file")

    return normalize_columns(df)


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Strip headers and map known spellings onto the canonical column labels."""
    df = df.copy()
    renamed = {}
    for col in df.columns:
        clean = str(col).strip()
        renamed[col] = _HEADER_ALIASES.get(clean.lower(), clean)
    df = df.rename(columns=renamed)

    if "Agent" not in df.columns:
        raise DataEntryError("The file is missing the required 'Agent' column")
    if "Date" not in df.columns:
        raise DataEntryError("The file is missing the required 'Date' column")
    return df


def parse_sheet_date(value) -> Optional[date]:
    """
    Parse a spreadsheet date cell.
    Handles date/datetime objects, Excel serial numbers, and common text formats.
    """
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        if EXCEL_SERIAL_RANGE[0] <= value <= EXCEL_SERIAL_RANGE[1]:
            return EXCEL_EPOCH + timedelta(days=int(value))
        return None

    date_str = str(value).strip()
    if not date_str:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    # ISO timestamps like 2026-01-01T00:00:00
    try:
        return datetime.fromisoformat(date_str).date()
    except ValueError:
        return None


def _cell_text(value) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


# ============================================
# IMPORT PLANNING
# ============================================
@dataclass
class ImportPlan:
    """Rows to insert plus what was left out and why."""
    rows: List[Dict] = field(default_factory=list)
    duplicates: int = 0
    skipped: int = 0
    notes: List[str] = field(default_factory=list)


@dataclass
class ImportResult:
    success: bool
    message: str
    processed: int = 0
    duplicates: int = 0
    skipped: int = 0
    errors: int = 0


def sheet_dates(df: pd.DataFrame) -> Set[date]:
    """All parseable dates in the Date column."""
    if "Date" not in df.columns:
        return set()
    return {d for d in (parse_sheet_date(v) for v in df["Date"].tolist()) if d is not None}


def plan_import(df: pd.DataFrame, existing_keys: Set[Tuple[str, date]],
                agent_map: Optional[Mapping[str, str]] = None) -> ImportPlan:
    """
    Decide which spreadsheet rows to insert.

    Rows without an agent name or a parseable date are skipped.
    Rows whose (agent, date) is already stored, or repeated earlier
    in the same file, are counted as duplicates.

    Args:
        df: Normalized spreadsheet DataFrame
        existing_keys: (lowercased agent name, date) pairs already stored
        agent_map: {lowercased name: agentid} from the directory

    Returns:
        ImportPlan
    """
    plan = ImportPlan()
    seen = set(existing_keys)

    for row_num, row in enumerate(df.to_dict("records"), start=2):
        agent_name = _cell_text(row.get("Agent"))
        if not agent_name:
            plan.skipped += 1
            continue

        stat_date = parse_sheet_date(row.get("Date"))
        if stat_date is None:
            plan.skipped += 1
            plan.notes.append(f"Row {row_num}: unreadable date '{row.get('Date')}' for {agent_name}")
            continue

        key = (agent_name.lower(), stat_date)
        if key in seen:
            plan.duplicates += 1
            continue
        seen.add(key)

        counts = {
            channel: row.get(channel_def["column"])
            for channel, channel_def in CHANNELS.items()
        }
        agent_id = _cell_text(row.get("agentid")) or resolve_agent_id(agent_name, agent_map)

        plan.rows.append(build_daily_stat_row(
            agent_name,
            stat_date,
            counts,
            email=_cell_text(row.get("Email")),
            group=_cell_text(row.get("Group")),
            team_lead_group=_cell_text(row.get("Team Lead Group")),
            agent_id=agent_id,
        ))

    return plan


def run_import(df: pd.DataFrame, source: str = "upload", dry_run: bool = False) -> ImportResult:
    """
    Import a normalized spreadsheet into daily_stats.

    Args:
        df: DataFrame from read_stats_file or a Google Sheet
        source: Label used in logs
        dry_run: Plan only, write nothing

    Returns:
        ImportResult with processed / duplicates / skipped / errors counts
    """
    logger.info(f"Importing {len(df)} rows from {source}")

    existing_keys = stats_repository.fetch_existing_keys(sheet_dates(df))
    agent_map = stats_repository.fetch_agent_map()

    if existing_keys is None or agent_map is None:
        logger.error(f"Import from {source} aborted: could not read existing records or the agent directory")
        return ImportResult(
            success=False,
            message="Could not check existing records. Nothing was imported.",
            errors=len(df),
        )

    plan = plan_import(df, existing_keys, agent_map)

    for note in plan.notes:
        logger.warning(note)

    if dry_run:
        logger.info(f"DRY RUN - would insert {len(plan.rows)} rows, {plan.duplicates} duplicates, {plan.skipped} skipped")
        return ImportResult(
            success=True,
            message="Dry run completed",
            processed=len(plan.rows),
            duplicates=plan.duplicates,
            skipped=plan.skipped,
        )

    inserted = stats_repository.insert_daily_stats(plan.rows)

    if inserted is None:
        logger.error(f"Import from {source} failed while inserting {len(plan.rows)} rows")
        return ImportResult(
            success=False,
            message="Upload failed while saving records",
            duplicates=plan.duplicates,
            skipped=plan.skipped,
            errors=len(plan.rows),
        )

    logger.info(f"Import from {source}: {inserted} inserted, {plan.duplicates} duplicates, {plan.skipped} skipped")
    return ImportResult(
        success=True,
        message="Upload completed successfully!",
        processed=inserted,
        duplicates=plan.duplicates,
        skipped=plan.skipped,
    )
