"""
Tests for playoff placeholder resolution.
"""

import pytest

from worldcup_sim.playoffs import (
    PlayoffResolver,
    empty_playoff_selection,
    normalize_playoff_selection,
    resolve_playoff_team,
)
from worldcup_sim.reference import get_group


@pytest.fixture
def placeholder():
    return next(t for t in get_group("A").teams if t.is_playoff)


@pytest.fixture
def regular():
    return get_group("A").teams[0]


class TestSelection:
    def test_empty(self):
        assert empty_playoff_selection() == {
            "INTER_1": None,
            "INTER_2": None,
            "UEFA_A": None,
            "UEFA_B": None,
            "UEFA_C": None,
            "UEFA_D": None,
        }

    def test_normalize(self):
        selection = normalize_playoff_selection({"UEFA_A": "ITA", "UEFA_B": "", "BOGUS": "X"})
        assert selection["UEFA_A"] == "ITA"
        assert selection["UEFA_B"] is None
        assert "BOGUS" not in selection
        assert len(selection) == 6

    def test_normalize_none(self):
        assert normalize_playoff_selection(None) == empty_playoff_selection()


class TestResolvePlayoffTeam:
    def test_regular_team_unchanged(self, regular):
        assert resolve_playoff_team(regular, {"UEFA_D": "CZE"}) is regular

    def test_unselected_keeps_identity(self, placeholder):
        resolved = resolve_playoff_team(placeholder, empty_playoff_selection())
        assert resolved.id == "UEFA_D_WINNER"
        assert resolved.flag_code is None
        assert resolved.is_unresolved

    def test_candidate_from_other_slot_ignored(self, placeholder):
        resolved = resolve_playoff_team(placeholder, {"UEFA_D": "ITA"})
        assert resolved.id == "UEFA_D_WINNER"
        assert resolved.flag_code is None

    def test_selected(self, placeholder):
        resolved = resolve_playoff_team(placeholder, {"UEFA_D": "CZE"})
        assert resolved.id == "CZE"
        assert resolved.flag_code == "CZ"
        assert resolved.name == placeholder.name
        assert not resolved.is_unresolved

    def test_does_not_mutate(self, placeholder):
        resolve_playoff_team(placeholder, {"UEFA_D": "CZE"})
        assert placeholder.id == "UEFA_D_WINNER"

    @pytest.mark.parametrize("selection", [{}, {"UEFA_D": "CZE"}, {"UEFA_D": "ESP"}])
    def test_idempotent(self, placeholder, selection):
        once = resolve_playoff_team(placeholder, selection)
        assert resolve_playoff_team(once, selection) == once


class TestPlayoffResolver:
    def test_sets_display_name(self, placeholder):
        resolved = PlayoffResolver({"UEFA_D": "DEN"}).resolve(placeholder)
        assert (resolved.id, resolved.name) == ("DEN", "Denmark")

    def test_placeholder_name_kept(self, placeholder):
        resolved = PlayoffResolver().resolve(placeholder)
        assert resolved.name == "UEFA D"
