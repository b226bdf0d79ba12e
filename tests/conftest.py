from __future__ import annotations

import os
import sys
from datetime import date

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def make_row(agent, day, agent_id="", team="", **channels) -> dict:
    """Daily stats row keyed by database column labels."""
    from config import CHANNELS

    row = {
        "agentid": agent_id,
        "Agent": agent,
        "Date": day,
        "Team Lead Group": team,
    }
    for key, value in channels.items():
        row[CHANNELS[key]["column"]] = value
    return row


@pytest.fixture()
def sample_rows():
    return [
        make_row("A", date(2024, 3, 15), agent_id="a-1", team="Lead One", calls=5, live_chat=3),
        make_row("B", date(2024, 3, 15), agent_id="b-1", team="Lead Two", calls=10),
        make_row("A", date(2024, 3, 14), agent_id="a-1", team="Lead One", calls=4),
    ]
