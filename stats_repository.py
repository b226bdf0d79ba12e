"""
Data access for the Momentum leaderboard
Daily stats, agent directory, profiles (avatars, roles, teams)
"""

import logging
import uuid
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

import pandas as pd

from config import CHANNELS, DEFAULT_ROLE, ROLES, TABLES, TOTAL_COLUMN
from db_utils import execute_batch, execute_query, execute_query_df

logger = logging.getLogger(__name__)


# ============================================
# COLUMN DEFINITIONS
# ============================================
CHANNEL_COLUMNS = [channel["column"] for channel in CHANNELS.values()]

DAILY_STATS_COLUMNS = (
    ["agentid", "Agent", "Email", "Date", "Group", "Team Lead Group"]
    + CHANNEL_COLUMNS
    + [TOTAL_COLUMN]
)

AGENT_COLUMNS = ["agentid", "Agent", "Email", "Profile", "role", "avatar", "team_lead_name"]

PROFILE_COLUMNS = [
    "agentid", "name", "email", "avatar", "team_lead_name", "role",
    "Employment_Group", "contract_type", "gender", "post", "department",
]


def _quoted(columns: Iterable[str], prefix: str = "") -> str:
    """Comma-separated double-quoted identifiers (column names contain spaces)."""
    return ", ".join(f'{prefix}"{col}"' for col in columns)


DAILY_STATS_SELECT = _quoted(DAILY_STATS_COLUMNS)


# ============================================
# DAILY STATS READS
# ============================================
def fetch_daily_stats(start_date: date, team: Optional[str] = None) -> pd.DataFrame:
    """
    Get daily stats rows on or after start_date.

    Args:
        start_date: Inclusive Date lower bound
        team: Optional "Team Lead Group" filter

    Returns:
        DataFrame with DAILY_STATS_COLUMNS (empty on error)
    """
    query = f"""
        SELECT {DAILY_STATS_SELECT}
        FROM {TABLES['daily_stats']}
        WHERE "Date" >= %s
    """
    params = [start_date]

    if team:
        query += ' AND "Team Lead Group" = %s'
        params.append(team)

    query += ' ORDER BY "Date"'

    return execute_query_df(query, tuple(params), columns=DAILY_STATS_COLUMNS)


def fetch_team_leads() -> List[str]:
    """Distinct non-empty team lead groups, sorted."""
    rows = execute_query(f"""
        SELECT DISTINCT "Team Lead Group"
        FROM {TABLES['daily_stats']}
        WHERE "Team Lead Group" IS NOT NULL AND "Team Lead Group" <> ''
        ORDER BY "Team Lead Group"
    """)
    if not rows:
        return []
    return [row[0] for row in rows if row[0]]


def fetch_all_records() -> pd.DataFrame:
    """All daily stats rows, newest first (admin overview)."""
    return execute_query_df(f"""
        SELECT {DAILY_STATS_SELECT}
        FROM {TABLES['daily_stats']}
        ORDER BY "Date" DESC
    """, columns=DAILY_STATS_COLUMNS)


def fetch_agent_history(agent_id: str, limit: int = 30) -> pd.DataFrame:
    """Most recent daily stats rows for one agent."""
    return execute_query_df(f"""
        SELECT {DAILY_STATS_SELECT}
        FROM {TABLES['daily_stats']}
        WHERE agentid = %s
        ORDER BY "Date" DESC
        LIMIT %s
    """, (agent_id, limit), columns=DAILY_STATS_COLUMNS)


def fetch_existing_keys(dates: Iterable[date]) -> Optional[Set[Tuple[str, date]]]:
    """
    (lowercased agent name, date) pairs already stored for the given dates.
    Used to skip duplicates on import. None when the query failed.
    """
    date_list = sorted(set(d for d in dates if d is not None))
    if not date_list:
        return set()

    rows = execute_query(f"""
        SELECT "Agent", "Date"
        FROM {TABLES['daily_stats']}
        WHERE "Date" = ANY(%s)
    """, (date_list,))

    if rows is None:
        return None
    return {(str(agent).strip().lower(), stat_date) for agent, stat_date in rows if agent}


def fetch_admin_stats() -> Dict:
    """Header counters for the admin console."""
    agents = execute_query(f"SELECT COUNT(*) FROM {TABLES['agents']}", fetch="one")
    records = execute_query(f"""
        SELECT COUNT(*), MAX("Date") FROM {TABLES['daily_stats']}
    """, fetch="one")

    return {
        "total_agents": agents[0] if agents else 0,
        "total_records": records[0] if records else 0,
        "latest_date": records[1] if records else None,
    }


# ============================================
# DAILY STATS WRITES
# ============================================
def insert_daily_stats(rows: List[Dict]) -> Optional[int]:
    """
    Insert daily stats rows keyed by column label.

    Returns:
        Number of rows inserted, or None on error
    """
    if not rows:
        return 0

    values = [tuple(row.get(col) for col in DAILY_STATS_COLUMNS) for row in rows]
    inserted = execute_batch(f"""
        INSERT INTO {TABLES['daily_stats']} ({DAILY_STATS_SELECT})
        VALUES %s
    """, values)

    if inserted is not None:
        logger.info(f"Inserted {inserted} daily stats rows")
    return inserted


def delete_daily_stat(agent_id: str, agent_name: str, stat_date: date) -> bool:
    """Delete one agent's record for a date. Matches on id when present, else name."""
    if agent_id:
        where, key = "agentid = %s", agent_id
    else:
        where, key = '"Agent" = %s', agent_name

    deleted = execute_query(f"""
        DELETE FROM {TABLES['daily_stats']}
        WHERE {where} AND "Date" = %s
    """, (key, stat_date), fetch="none")

    if deleted:
        logger.info(f"Deleted daily stats for {agent_name} on {stat_date}")
    return bool(deleted)


# ============================================
# AGENT DIRECTORY
# ============================================
def fetch_agents() -> pd.DataFrame:
    """Agent directory with role, avatar and team from the profile table."""
    df = execute_query_df(f"""
        SELECT a.agentid, a."Agent", a."Email", a."Profile",
               p.role, p.avatar, p.team_lead_name
        FROM {TABLES['agents']} a
        LEFT JOIN {TABLES['profile']} p ON p.agentid = a.agentid
        ORDER BY a."Agent"
    """, columns=AGENT_COLUMNS)

    if not df.empty:
        df['role'] = df['role'].where(df['role'].isin(list(ROLES)), DEFAULT_ROLE)
    return df


def fetch_agent_map() -> Optional[Dict[str, str]]:
    """{lowercased agent name: agentid} from the directory, None when the query failed."""
    rows = execute_query(f'SELECT agentid, "Agent" FROM {TABLES["agents"]}')
    if rows is None:
        return None
    return {str(name).strip().lower(): agent_id for agent_id, name in rows if name}


def merge_agent_details(agent_row: Optional[Dict], profile_row: Optional[Dict]) -> Dict:
    """
    Combine directory and profile rows. Directory name/email win,
    profile fills the rest.
    """
    agent_row = agent_row or {}
    profile_row = profile_row or {}

    merged = {**agent_row, **profile_row}
    merged["Agent"] = agent_row.get("Agent") or profile_row.get("name") or ""
    merged["Email"] = agent_row.get("Email") or profile_row.get("email") or ""
    merged["agentid"] = agent_row.get("agentid") or profile_row.get("agentid") or ""
    merged["role"] = profile_row.get("role") if profile_row.get("role") in ROLES else DEFAULT_ROLE
    return merged


def fetch_agent_details(agent_id: str) -> Optional[Dict]:
    """Merged directory + profile details for one agent, None if unknown."""
    agent = execute_query(f"""
        SELECT agentid, "Agent", "Email", "Profile"
        FROM {TABLES['agents']}
        WHERE agentid = %s
    """, (agent_id,), fetch="one")

    if not agent:
        return None

    profile = execute_query(f"""
        SELECT {_quoted(PROFILE_COLUMNS)}
        FROM {TABLES['profile']}
        WHERE agentid = %s
        LIMIT 1
    """, (agent_id,), fetch="one")

    agent_row = dict(zip(["agentid", "Agent", "Email", "Profile"], agent))
    profile_row = dict(zip(PROFILE_COLUMNS, profile)) if profile else None
    return merge_agent_details(agent_row, profile_row)


def _upsert_profile(agent_id: str, **fields) -> bool:
    """Update the agent's profile row, inserting it when missing."""
    columns = list(fields)
    assignments = ", ".join(f'"{col}" = %s' for col in columns)
    values = [fields[col] for col in columns]

    updated = execute_query(f"""
        UPDATE {TABLES['profile']}
        SET {assignments}
        WHERE agentid = %s
    """, tuple(values + [agent_id]), fetch="none")

    if updated is None:
        return False
    if updated > 0:
        return True

    placeholders = ", ".join(["%s"] * (len(columns) + 1))
    inserted = execute_query(f"""
        INSERT INTO {TABLES['profile']} (agentid, {_quoted(columns)})
        VALUES ({placeholders})
    """, tuple([agent_id] + values), fetch="none")
    return bool(inserted)


def _check_role(role: str):
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}. Expected one of {list(ROLES)}")


def create_agent(name: str, email: str, profile: str = "", role: str = DEFAULT_ROLE) -> Optional[str]:
    """
    Add an agent to the directory and create its profile row.

    Returns:
        New agentid, or None on error
    """
    _check_role(role)
    agent_id = str(uuid.uuid4())

    created = execute_query(f"""
        INSERT INTO {TABLES['agents']} (agentid, "Agent", "Email", "Profile")
        VALUES (%s, %s, %s, %s)
    """, (agent_id, name, email or None, profile or None), fetch="none")

    if not created:
        return None

    _upsert_profile(agent_id, name=name, email=email or None, role=role)
    logger.info(f"Created agent {name} ({agent_id}) as {role}")
    return agent_id


def update_agent(agent_id: str, name: str, email: str, profile: str = "", role: Optional[str] = None) -> bool:
    """Update directory fields and, when given, the agent's role."""
    if role is not None:
        _check_role(role)

    updated = execute_query(f"""
        UPDATE {TABLES['agents']}
        SET "Agent" = %s, "Email" = %s, "Profile" = %s
        WHERE agentid = %s
    """, (name, email or None, profile or None, agent_id), fetch="none")

    if not updated:
        return False

    fields = {"name": name, "email": email or None}
    if role is not None:
        fields["role"] = role
    return _upsert_profile(agent_id, **fields)


def delete_agent(agent_id: str) -> bool:
    """Remove an agent's profile and directory rows."""
    execute_query(f"DELETE FROM {TABLES['profile']} WHERE agentid = %s", (agent_id,), fetch="none")
    deleted = execute_query(f"DELETE FROM {TABLES['agents']} WHERE agentid = %s", (agent_id,), fetch="none")
    if deleted:
        logger.info(f"Deleted agent {agent_id}")
    return bool(deleted)


def update_role(agent_id: str, role: str) -> bool:
    """Set an agent's role (admin / manager / agent)."""
    _check_role(role)
    return _upsert_profile(agent_id, role=role)


# ============================================
# PROFILES & AVATARS
# ============================================
def fetch_profiles() -> pd.DataFrame:
    """Profiles for the avatar manager."""
    return execute_query_df(f"""
        SELECT agentid, name, email, avatar
        FROM {TABLES['profile']}
        WHERE agentid IS NOT NULL
        ORDER BY name
    """, columns=["agentid", "name", "email", "avatar"])


def fetch_avatar_map() -> Dict[str, str]:
    """{agentid: avatar} plus {name: avatar} for rows that have an avatar."""
    rows = execute_query(f"""
        SELECT agentid, name, avatar
        FROM {TABLES['profile']}
        WHERE avatar IS NOT NULL AND avatar <> ''
    """)
    avatar_map = {}
    for agent_id, name, avatar in rows or []:
        if agent_id:
            avatar_map[agent_id] = avatar
        if name:
            avatar_map.setdefault(name, avatar)
    return avatar_map


def update_avatar(agent_id: str, data_url: Optional[str]) -> bool:
    """Store (or clear, with None) an agent's avatar data URL."""
    return _upsert_profile(agent_id, avatar=data_url)


def fetch_user_context(email: str) -> Dict:
    """
    Team and role of the signed-in user, looked up by profile email.

    Returns:
        {"team_lead_name": str, "role": str} or {} when unknown
    """
    if not email:
        return {}

    row = execute_query(f"""
        SELECT team_lead_name, role
        FROM {TABLES['profile']}
        WHERE LOWER(email) = LOWER(%s)
        LIMIT 1
    """, (email,), fetch="one")

    if not row:
        return {}
    return {
        "team_lead_name": row[0] or "",
        "role": row[1] if row[1] in ROLES else DEFAULT_ROLE,
    }
