"""
Database utilities for the Momentum leaderboard
Settings lookup, the shared Postgres pool, and the query executors
every repository function goes through
"""

import os
import streamlit as st
import psycopg2
from psycopg2 import pool
from psycopg2.extras import execute_values
from contextlib import contextmanager
from functools import wraps
import pandas as pd
from dotenv import load_dotenv

# .env is optional; deployed apps read st.secrets
load_dotenv()


# ============================================
# SETTINGS RESOLUTION
# ============================================
def get_secret(name: str, default=None):
    """
    Look up a setting: st.secrets, then the environment (.env included), then default.
    """
    try:
        if hasattr(st, 'secrets') and name in st.secrets:
            return st.secrets[name]
    except Exception:
        pass  # no secrets.toml present

    value = os.getenv(name)
    if value:
        return value

    return default


def get_flag(name: str, default: bool = False) -> bool:
    """Read a boolean setting ("1", "true", "yes", "on" are truthy)."""
    value = get_secret(name)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def get_database_url() -> str:
    """DSN of the stats database. Raises ValueError when DATABASE_URL is unset."""
    db_url = get_secret('DATABASE_URL')
    if db_url:
        return db_url

    raise ValueError(
        "DATABASE_URL not found. Set it in .streamlit/secrets.toml, "
        "a local .env file, or the process environment."
    )


# ============================================
# CONNECTION POOL
# ============================================
_connection_pool = None


def get_connection_pool():
    """
    Shared ThreadedConnectionPool for the process.
    Streamlit runs each session's reruns on worker threads, so one pool
    serves the dashboard fragment, the pages and the admin console.
    DB_POOL_MAX caps open connections (default 10).
    """
    global _connection_pool

    if _connection_pool is None:
        try:
            _connection_pool = pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=int(get_secret('DB_POOL_MAX', 10)),
                dsn=get_database_url()
            )
        except Exception as e:
            st.error(f"Failed to create connection pool: {e}")
            raise

    return _connection_pool


@contextmanager
def get_connection():
    """
    Borrow a pooled connection; it is rolled back on psycopg2 errors
    and always handed back to the pool.
    """
    conn_pool = get_connection_pool()
    conn = None
    try:
        conn = conn_pool.getconn()
        yield conn
    except psycopg2.Error as e:
        if conn:
            conn.rollback()
        st.error(f"Database error: {e}")
        raise
    finally:
        if conn:
            conn_pool.putconn(conn)


# ============================================
# ERROR HANDLING DECORATOR
# ============================================
def handle_db_errors(func):
    """
    Error boundary for query helpers: show the error on the page and return None.
    Repository functions treat None as "query failed", never as "no rows".
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except psycopg2.OperationalError as e:
            st.error(f"Database connection error: {e}")
            st.info("Please try refreshing the page.")
            return None
        except psycopg2.ProgrammingError as e:
            st.error(f"Query error: {e}")
            return None
        except Exception as e:
            st.error(f"Unexpected error: {e}")
            return None
    return wrapper


# ============================================
# BASE QUERY EXECUTORS
# ============================================
@handle_db_errors
def execute_query(query: str, params: tuple = None, fetch: str = "all"):
    """
    Run one statement on a pooled connection.

    fetch="all" returns every row, "one" the first row, and "none" commits
    and returns the affected row count (deletes and role updates check it).
    None means the statement failed.
    """
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(query, params)

        if fetch == "all":
            result = cur.fetchall()
        elif fetch == "one":
            result = cur.fetchone()
        else:
            result = cur.rowcount
            conn.commit()

        cur.close()
        return result


@handle_db_errors
def execute_batch(query: str, rows: list, page_size: int = 100):
    """
    Insert many rows in one round trip (psycopg2 execute_values).

    Args:
        query: INSERT statement with a single VALUES %s placeholder
        rows: List of value tuples

    Returns:
        Number of rows sent, or None on error
    """
    if not rows:
        return 0

    with get_connection() as conn:
        cur = conn.cursor()
        execute_values(cur, query, rows, page_size=page_size)
        conn.commit()
        cur.close()
        return len(rows)


def execute_query_df(query: str, params: tuple = None, columns: list = None) -> pd.DataFrame:
    """Rows as a DataFrame; a failed query gives an empty frame with the given columns."""
    result = execute_query(query, params, fetch="all")

    if result is None:
        return pd.DataFrame(columns=columns or [])

    return pd.DataFrame(result, columns=columns)


# ============================================
# HEALTH CHECK
# ============================================
def check_connection() -> bool:
    """True when SELECT 1 succeeds; backs the admin console status badge."""
    try:
        result = execute_query("SELECT 1", fetch="one")
        return result is not None and result[0] == 1
    except Exception:
        return False
