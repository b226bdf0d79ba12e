"""
Stats aggregation and ranking for the Momentum leaderboard
Groups daily stats rows per agent, sums channel counters, ranks by a metric.

Pure functions only: no database, no Streamlit. Every refresh rebuilds the
aggregates from the source rows.
"""

import math
import numbers
import re
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from config import (
    AGENT_ID_FIELDS, AGENT_NAME_FIELDS, CHANNELS, CHANNEL_SETS, DATE_FIELDS,
    EMAIL_FIELDS, GROUP_BY, GROUP_FIELDS, MONTHLY_WINDOW_POLICY, TEAM_FIELDS,
    TIME_PERIODS, TOTAL_METRIC, WINDOW_DAYS,
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# ============================================
# COERCION
# ============================================
def coerce_count(value) -> int:
    """
    Coerce a loosely-typed counter to a non-negative integer.

    Examples:
        coerce_count(3) -> 3
        coerce_count("12") -> 12
        coerce_count("7 tickets") -> 7
        coerce_count(4.9) -> 4
        coerce_count(None) -> 0
        coerce_count("n/a") -> 0
        coerce_count(-2) -> 0
        coerce_count("9" * 5000) -> 0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, numbers.Integral):
        return max(int(value), 0)
    if isinstance(value, numbers.Real):
        if not math.isfinite(value):
            return 0
        return max(int(value), 0)

    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    try:
        return max(int(match.group(1)), 0)
    except ValueError:
        # digit strings past the int conversion limit
        return 0


def parse_record_date(value) -> Optional[date]:
    """Parse a record date (date, datetime, Timestamp or ISO-ish string), None if unparseable."""
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
    try:
        parsed = pd.to_datetime(str(value).strip(), errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _first_present(row: Mapping, fields: Sequence[str]):
    for name in fields:
        if name in row and row[name] is not None:
            return row[name]
    return None


def _clean_text(value) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def resolve_channels(channels=None) -> List[str]:
    """
    Resolve a channel set name, a list of channel keys, or None (the "intake" set).
    """
    if channels is None:
        return list(CHANNEL_SETS["intake"])
    if isinstance(channels, str):
        if channels not in CHANNEL_SETS:
            raise ValueError(f"Unknown channel set: {channels}")
        return list(CHANNEL_SETS[channels])
    return list(channels)


def channel_column(key: str) -> str:
    """Database column label for a channel key (custom keys map to themselves)."""
    return CHANNELS.get(key, {}).get("column", key)


# ============================================
# DATA TYPES
# ============================================
@dataclass
class DailyRecord:
    """One agent's counts for one calendar date."""
    agent_name: str
    agent_id: str = ""
    date: Optional[date] = None
    counts: Dict[str, int] = field(default_factory=dict)
    email: str = ""
    group: str = ""
    team_lead_group: str = ""

    @classmethod
    def from_row(cls, row: Mapping, channels=None) -> "DailyRecord":
        """
        Build a record from a database or spreadsheet row.

        Channel values are looked up by column label first ("Live Chat"),
        then by key ("live_chat"). Missing or malformed values become 0.
        """
        keys = resolve_channels(channels)
        counts = {}
        for key in keys:
            label = channel_column(key)
            raw = row[label] if label in row else row.get(key)
            counts[key] = coerce_count(raw)

        return cls(
            agent_name=_clean_text(_first_present(row, AGENT_NAME_FIELDS)),
            agent_id=_clean_text(_first_present(row, AGENT_ID_FIELDS)),
            date=parse_record_date(_first_present(row, DATE_FIELDS)),
            counts=counts,
            email=_clean_text(_first_present(row, EMAIL_FIELDS)),
            group=_clean_text(_first_present(row, GROUP_FIELDS)),
            team_lead_group=_clean_text(_first_present(row, TEAM_FIELDS)),
        )

    def count(self, channel: str) -> int:
        return coerce_count(self.counts.get(channel))


@dataclass
class AggregatedAgent:
    """Accumulated totals for one agent over a time window."""
    key: str
    agent_name: str
    agent_id: str = ""
    counts: Dict[str, int] = field(default_factory=dict)
    total: int = 0
    latest_date: Optional[date] = None
    rank: int = 0
    avatar: Optional[str] = None
    email: str = ""
    group: str = ""
    team_lead_group: str = ""
    record_count: int = 0
    window: Optional[str] = None

    def value(self, metric: str = TOTAL_METRIC) -> int:
        """Value of the ranking metric ("total" or a channel key)."""
        if metric == TOTAL_METRIC:
            return self.total
        return self.counts.get(metric, 0)


@dataclass
class ChannelLeader:
    """Top agent for a single channel."""
    channel: str
    agent_name: str
    agent_id: str
    value: int


# ============================================
# TIME WINDOWS
# ============================================
def window_start(window: str, now: datetime, monthly_policy: str = MONTHLY_WINDOW_POLICY) -> datetime:
    """
    Start boundary of a time window relative to now (end boundary is always now).

    Args:
        window: "daily", "weekly" or "monthly"
        now: Current time (timezone preserved)
        monthly_policy: "calendar_month" or "rolling_30_days"

    Returns:
        datetime of the inclusive lower bound

    Examples:
        window_start("daily", 2024-03-15 14:30) -> 2024-03-15 00:00
        window_start("weekly", 2024-03-15 14:30) -> 2024-03-08 14:30
        window_start("monthly", 2024-03-15 14:30) -> 2024-03-01 00:00
    """
    if window == "daily":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window == "weekly":
        return now - timedelta(days=7)
    if window == "monthly":
        if monthly_policy == "calendar_month":
            return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if monthly_policy == "rolling_30_days":
            return now - timedelta(days=30)
        raise ValueError(f"Unknown monthly window policy: {monthly_policy}")
    raise ValueError(f"Unknown time window: {window}. Expected one of {TIME_PERIODS}")


def window_start_date(window: str, now: Optional[datetime] = None,
                      monthly_policy: str = MONTHLY_WINDOW_POLICY) -> date:
    """Calendar date of the window start, used as the Date lower bound in queries."""
    if now is None:
        now = datetime.now()
    return window_start(window, now, monthly_policy).date()


def window_days(window: str) -> int:
    """Days used for per-day averages (1 / 7 / 30)."""
    return WINDOW_DAYS.get(window, 1)


# ============================================
# AGGREGATION & RANKING
# ============================================
def _group_key(record: DailyRecord, group_by: str) -> str:
    if group_by == "agent_id" and record.agent_id:
        return f"id:{record.agent_id}"
    return f"name:{record.agent_name}"


def _check_metric(metric: str, channels: List[str]):
    if metric != TOTAL_METRIC and metric not in channels:
        raise ValueError(f"Unknown metric: {metric}. Expected 'total' or one of {channels}")


def rank_agents(agents: List[AggregatedAgent], metric: str = TOTAL_METRIC) -> List[AggregatedAgent]:
    """Sort descending by metric (stable on ties) and assign 1-based ranks."""
    ranked = sorted(agents, key=lambda agent: agent.value(metric), reverse=True)
    for index, agent in enumerate(ranked):
        agent.rank = index + 1
    return ranked


def aggregate(records: Iterable, window: Optional[str] = None, metric: str = TOTAL_METRIC,
              channels=None, group_by: str = GROUP_BY) -> List[AggregatedAgent]:
    """
    Aggregate daily records into ranked per-agent totals.

    Records are expected to be already filtered to the window's date range;
    the window is only recorded on the results.

    Args:
        records: DailyRecord objects or raw row mappings
        window: "daily", "weekly", "monthly" or None
        metric: "total" or a channel key to sort by
        channels: Channel set name or list of channel keys (default "intake")
        group_by: "agent_name" (default) or "agent_id" (name fallback)

    Returns:
        List of AggregatedAgent sorted by metric, ranks 1..N
    """
    keys = resolve_channels(channels)
    _check_metric(metric, keys)

    groups: Dict[str, AggregatedAgent] = {}

    for item in records:
        record = item if isinstance(item, DailyRecord) else DailyRecord.from_row(item, keys)
        group_key = _group_key(record, group_by)

        agent = groups.get(group_key)
        if agent is None:
            agent = AggregatedAgent(
                key=group_key,
                agent_name=record.agent_name,
                agent_id=record.agent_id,
                counts={key: 0 for key in keys},
                email=record.email,
                group=record.group,
                team_lead_group=record.team_lead_group,
                window=window,
            )
            groups[group_key] = agent

        for key in keys:
            value = record.count(key)
            agent.counts[key] += value
            agent.total += value

        agent.record_count += 1
        if record.date is not None and (agent.latest_date is None or record.date > agent.latest_date):
            agent.latest_date = record.date
        if not agent.agent_name and record.agent_name:
            agent.agent_name = record.agent_name
        if not agent.team_lead_group and record.team_lead_group:
            agent.team_lead_group = record.team_lead_group

    return rank_agents(list(groups.values()), metric)


def top_n(agents: List[AggregatedAgent], n: int, metric: str = TOTAL_METRIC,
          exclude_zero: bool = False) -> List[AggregatedAgent]:
    """First N agents of a ranked list, optionally dropping zero-value agents first."""
    if exclude_zero:
        agents = [agent for agent in agents if agent.value(metric) > 0]
    return agents[:n]


def bottom_n(agents: List[AggregatedAgent], n: int, metric: str = TOTAL_METRIC) -> List[AggregatedAgent]:
    """
    Lowest N non-zero agents of a ranked (descending) list, worst first.
    """
    if n <= 0:
        return []
    active = [agent for agent in agents if agent.value(metric) > 0]
    return list(reversed(active[-n:]))


def channel_leaders(records: Iterable, channels="channel_leaders",
                    group_by: str = GROUP_BY) -> List[ChannelLeader]:
    """
    Top performer per channel. Channels whose leader has 0 are skipped.
    """
    keys = resolve_channels(channels)
    rows = [item if isinstance(item, DailyRecord) else DailyRecord.from_row(item, keys) for item in records]

    leaders = []
    for key in keys:
        ranked = aggregate(rows, metric=key, channels=[key], group_by=group_by)
        if not ranked:
            continue
        leader = ranked[0]
        if leader.value(key) <= 0:
            continue
        leaders.append(ChannelLeader(
            channel=key,
            agent_name=leader.agent_name,
            agent_id=leader.agent_id,
            value=leader.value(key),
        ))
    return leaders


# ============================================
# DERIVED METRICS
# ============================================
def record_total(record: DailyRecord, channels=None) -> int:
    """Total issues for a single record over a channel set."""
    return sum(record.count(key) for key in resolve_channels(channels))


def average_per_day(agent: AggregatedAgent, window: Optional[str] = None) -> float:
    """Total issues divided by the window length, one decimal."""
    days = window_days(window or agent.window or "daily")
    return round(agent.total / days, 1)


def team_summary(agents: List[AggregatedAgent]) -> Dict:
    """
    Team-level figures for the performance page.

    Returns:
        Dict with total_agents, total_issues, avg_issues_per_agent, top_team
    """
    total_issues = sum(agent.total for agent in agents)
    team_totals: Dict[str, int] = {}
    for agent in agents:
        team_totals[agent.team_lead_group] = team_totals.get(agent.team_lead_group, 0) + agent.total

    top_team = ""
    if team_totals:
        top_team = sorted(team_totals.items(), key=lambda item: item[1], reverse=True)[0][0]

    return {
        "total_agents": len(agents),
        "total_issues": total_issues,
        "avg_issues_per_agent": round(total_issues / len(agents), 1) if agents else 0,
        "top_team": top_team,
    }


def filter_agents(agents: List[AggregatedAgent], search: str) -> List[AggregatedAgent]:
    """Case-insensitive substring match on agent name or team-lead group."""
    term = (search or "").strip().lower()
    if not term:
        return list(agents)
    return [
        agent for agent in agents
        if term in agent.agent_name.lower() or term in agent.team_lead_group.lower()
    ]


def attach_avatars(agents: List[AggregatedAgent], avatar_map: Mapping[str, str]) -> List[AggregatedAgent]:
    """Set avatar references from a {agent_id or agent_name: avatar} mapping."""
    for agent in agents:
        agent.avatar = avatar_map.get(agent.agent_id) or avatar_map.get(agent.agent_name) or agent.avatar
    return agents


def agents_to_frame(agents: List[AggregatedAgent], channels=None) -> pd.DataFrame:
    """
    Flatten aggregated agents into a DataFrame for tables and charts.
    Channel columns use their database labels.
    """
    keys = resolve_channels(channels)
    columns = ["rank", "agent_name", "agent_id", "team_lead_group"] + [channel_column(k) for k in keys] + ["total", "latest_date"]

    rows = []
    for agent in agents:
        row = {
            "rank": agent.rank,
            "agent_name": agent.agent_name,
            "agent_id": agent.agent_id,
            "team_lead_group": agent.team_lead_group,
            "total": agent.total,
            "latest_date": agent.latest_date,
        }
        for key in keys:
            row[channel_column(key)] = agent.counts.get(key, 0)
        rows.append(row)

    return pd.DataFrame(rows, columns=columns)


# ============================================
# REFRESH SEQUENCING
# ============================================
class RefreshSequencer:
    """
    Numbers refresh requests and keeps only the newest completed result.

    A slow fetch that finishes after a newer one is discarded instead of
    overwriting fresher data.

    Usage:
        board = sequencer.run(lambda: build_board(period))
        if board is None:
            return  # a newer refresh owns the screen
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._issued = 0
        self._accepted = 0
        self._latest = None

    def next_ticket(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def offer(self, ticket: int, result) -> bool:
        """Store the result if its ticket is newer than the last accepted one."""
        with self._lock:
            if ticket <= self._accepted:
                return False
            self._accepted = ticket
            self._latest = result
            return True

    def is_stale(self, ticket: int) -> bool:
        with self._lock:
            return ticket < self._issued

    def run(self, compute):
        """
        Take a ticket, run compute() and store its result.

        Returns None when a newer refresh started while compute() was running
        or already stored a result; the caller skips rendering in that case.
        """
        ticket = self.next_ticket()
        result = compute()
        if self.is_stale(ticket) or not self.offer(ticket, result):
            return None
        return result

    @property
    def latest(self):
        with self._lock:
            return self._latest

    @property
    def accepted_ticket(self) -> int:
        with self._lock:
            return self._accepted
