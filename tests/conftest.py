"""
Shared fixtures for the worldcup_sim tests.
"""

import pytest

from worldcup_sim.models import GroupMatch
from worldcup_sim.standings import create_fresh_group_state
from worldcup_sim.reference import GROUP_IDS


class ScriptedRandom:
    """Random source returning a fixed sequence; fails loudly when exhausted."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def random(self):
        if self.calls >= len(self.values):
            raise AssertionError(f"random() called more than {len(self.values)} times")
        value = self.values[self.calls]
        self.calls += 1
        return value


def play_listing_order(matches):
    """Every fixture won 1-0 by the team listed first, so the table keeps listing order."""
    return [
        GroupMatch(
            id=m.id,
            group_id=m.group_id,
            home_team_id=m.home_team_id,
            away_team_id=m.away_team_id,
            home_goals=1,
            away_goals=0,
        )
        for m in matches
    ]


def group_state_with_played(group_ids):
    state = create_fresh_group_state()
    for gid in group_ids:
        state[gid] = play_listing_order(state[gid])
    return state


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def fresh_state():
    return create_fresh_group_state()


@pytest.fixture
def all_played_state():
    return group_state_with_played(GROUP_IDS)


@pytest.fixture
def favorites_selection():
    return {
        "INTER_1": "COD",
        "INTER_2": "BOL",
        "UEFA_A": "ITA",
        "UEFA_B": "POL",
        "UEFA_C": "TUR",
        "UEFA_D": "DEN",
    }


@pytest.fixture
def played_groups():
    return group_state_with_played
