"""
Momentum Dashboard - Agent Performance Leaderboard
Top agents by total issues handled, per-channel leaders, auto-refresh every 5 minutes
"""

import streamlit as st
from datetime import datetime

from config import (
    CACHE_TTL, COLORS, DISPLAY, LEADERBOARD, REFRESH_INTERVAL_SECONDS, TIME_PERIODS,
)
from stats_engine import (
    RefreshSequencer, aggregate, attach_avatars, channel_leaders, resolve_channels,
    top_n, window_start_date,
)
from stats_repository import fetch_avatar_map, fetch_daily_stats
from avatars import avatar_source, decode_data_url, get_initials
from utils import agent_name_html, channel_label, format_date_display, format_number, format_refresh_time, period_label, rank_badge

st.set_page_config(
    page_title="Momentum Leaderboard",
    page_icon="🏆",
    layout="wide"
)

# Custom CSS
st.markdown(f"""
<style>
    .champion-name {{
        color: {COLORS['champion']};
        font-weight: 700;
    }}
    .stMetric > div {{
        background-color: #f0f2f6;
        padding: 10px;
        border-radius: 8px;
    }}
</style>
""", unsafe_allow_html=True)


# ============================================
# DATA FUNCTIONS
# ============================================

@st.cache_data(ttl=CACHE_TTL["default"])
def get_window_records(start_date):
    """Daily stats rows on or after start_date"""
    return fetch_daily_stats(start_date)


@st.cache_data(ttl=CACHE_TTL["static_data"])
def get_avatars():
    """Avatar lookup by agent id and name"""
    return fetch_avatar_map()


def build_board(period):
    """Fetch and rank the current window"""
    df = get_window_records(window_start_date(period))
    rows = df.to_dict("records")

    agents = aggregate(rows, window=period, channels="intake")
    attach_avatars(agents, get_avatars())

    return {
        "period": period,
        "agents": top_n(agents, LEADERBOARD["dashboard_top"]),
        "agent_count": len(agents),
        "leaders": channel_leaders(rows),
        "refreshed_at": datetime.now(),
    }


def load_leaderboard(period):
    """
    Board for the period, or None when a newer refresh of this session
    started while this one was fetching.
    """
    sequencer = st.session_state.setdefault("refresh_sequencer", RefreshSequencer())
    return sequencer.run(lambda: build_board(period))


# ============================================
# DISPLAY FUNCTIONS
# ============================================

def show_avatar(agent, width=96):
    """Stored avatar image, generated fallback, or initials"""
    image_bytes = decode_data_url(agent.avatar) if agent.avatar else None
    if image_bytes:
        st.image(image_bytes, width=width)
    elif agent.agent_name:
        st.image(avatar_source(None, agent.agent_name), width=width)
    else:
        st.markdown(f"### {get_initials(agent.agent_name)}")


def show_agent_card(agent, period):
    """Leaderboard card with a channel breakdown"""
    with st.container(border=True):
        st.markdown(f"**{rank_badge(agent.rank)}**" + (" &nbsp; `CHAMPION`" if agent.rank == 1 else ""))
        show_avatar(agent)

        name_class = "champion-name" if agent.rank == 1 else ""
        st.markdown(agent_name_html(agent.agent_name, name_class), unsafe_allow_html=True)
        st.metric("Total Issues", format_number(agent.total))

        if period == "daily" and agent.latest_date:
            st.caption(f"📅 {format_date_display(agent.latest_date, include_day=False)}")

        with st.expander("Breakdown"):
            for key in resolve_channels("intake"):
                st.markdown(f"{channel_label(key)}: **{format_number(agent.counts.get(key, 0))}**")
            st.markdown(f"**Total: {format_number(agent.total)}**")


def show_podium(agents):
    """Top three positions"""
    cols = st.columns(LEADERBOARD["podium"])
    for col, agent in zip(cols, agents[:LEADERBOARD["podium"]]):
        with col:
            with st.container(border=True):
                st.caption(f"{rank_badge(agent.rank)} #{agent.rank} Position")
                st.subheader(agent.agent_name)
                st.markdown(f"### {format_number(agent.total)} issues")


def show_channel_leaders(leaders):
    """Top issue generator per channel"""
    st.subheader("👑 Top Issue Generators by Channel")

    if not leaders:
        st.info("No data available for the selected time period.")
        return

    cols = st.columns(3)
    for i, leader in enumerate(leaders):
        with cols[i % 3]:
            with st.container(border=True):
                st.caption(channel_label(leader.channel))
                st.markdown(f"**{leader.agent_name}**")
                st.markdown(f"{format_number(leader.value)} issues")


# ============================================
# MAIN APP
# ============================================

st.markdown(
    f"<h1 style='text-align:center;color:{COLORS['primary']}'>📈 {DISPLAY['app_title']}</h1>",
    unsafe_allow_html=True
)

col_period, col_refresh = st.columns([0.7, 0.3])
with col_period:
    period = st.radio(
        "Time Period",
        TIME_PERIODS,
        horizontal=True,
        format_func=str.title,
        label_visibility="collapsed"
    )
with col_refresh:
    if st.button("🔄 Refresh now"):
        get_window_records.clear()

st.caption(f"Agent Performance Leaderboard • {period_label(period)}")


@st.fragment(run_every=REFRESH_INTERVAL_SECONDS)
def leaderboard_fragment(period):
    board = load_leaderboard(period)
    if board is None:
        return
    agents = board["agents"]

    col1, col2 = st.columns(2)
    with col1:
        st.caption(f"🕒 Last refreshed {format_refresh_time(board['refreshed_at'])}")
    with col2:
        st.caption(f"👥 {board['agent_count']} Agents")

    if not agents:
        st.warning(f"No agent stats recorded for {period_label(period).lower()}.")
        return

    show_podium(agents)

    st.markdown("---")
    st.subheader("🏆 Top Performers")

    per_row = 5
    for start in range(0, len(agents), per_row):
        cols = st.columns(per_row)
        for col, agent in zip(cols, agents[start:start + per_row]):
            with col:
                show_agent_card(agent, period)

    st.markdown("---")
    show_channel_leaders(board["leaders"])


leaderboard_fragment(period)

st.caption(f"🕒 Dashboard refreshes automatically every {REFRESH_INTERVAL_SECONDS // 60} minutes")
