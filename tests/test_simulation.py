"""
Tests for playoff auto-completion, outcome decision, score synthesis and
the group/knockout auto-predictors.
"""

import numpy as np
import pytest

from worldcup_sim.models import KnockoutScore
from worldcup_sim.bracket import resolve_bracket, scores_from_knockout_state
from worldcup_sim.simulation import (
    SimulationConfig,
    auto_predict_groups_state,
    auto_predict_knockout_state,
    build_crazy_playoff_selection,
    build_fifa_playoff_selection,
    build_playoff_selection_for_mode,
    create_score,
    decide_outcome,
    effective_rank,
)


class TestPlayoffSelection:
    def test_favorites(self, scripted):
        selection = build_fifa_playoff_selection(None, scripted([0.5]))
        assert selection == {
            "INTER_1": "COD",
            "INTER_2": "BOL",
            "UEFA_A": "ITA",
            "UEFA_B": "POL",
            "UEFA_C": "TUR",
            "UEFA_D": "DEN",
        }

    def test_favorites_minority_pick(self, scripted):
        assert build_fifa_playoff_selection(None, scripted([0.85]))["UEFA_B"] == "SWE"

    def test_favorites_keeps_existing(self, scripted):
        rng = scripted([])
        selection = build_fifa_playoff_selection({"UEFA_A": "WAL", "UEFA_B": "ALB"}, rng)
        assert selection["UEFA_A"] == "WAL"
        assert selection["UEFA_B"] == "ALB"
        assert rng.calls == 0

    def test_crazy(self, scripted):
        rng = scripted([0.0, 0.99, 0.0, 0.5, 0.0, 0.0])
        selection = build_crazy_playoff_selection(None, rng)
        assert selection["INTER_1"] == "COD"
        assert selection["INTER_2"] == "SUR"
        assert selection["UEFA_B"] == "POL"
        assert rng.calls == 6

    def test_crazy_keeps_existing(self, scripted):
        selection = build_crazy_playoff_selection(
            {"INTER_1": "JAM", "INTER_2": "IRQ", "UEFA_A": "NIR", "UEFA_B": "UKR", "UEFA_C": "XKX"},
            scripted([0.9]),
        )
        assert selection["INTER_1"] == "JAM"
        assert selection["UEFA_D"] == "MKD"

    def test_basic_is_passthrough(self):
        selection = build_playoff_selection_for_mode("basic", {"UEFA_A": "ITA"})
        assert selection["UEFA_A"] == "ITA"
        assert selection["UEFA_B"] is None

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            build_playoff_selection_for_mode("chaos")


class TestDecideOutcome:
    def test_crazy_thirds(self, scripted):
        assert decide_outcome("ESP", "NZL", "crazy", scripted([0.1])) == "home"
        assert decide_outcome("ESP", "NZL", "crazy", scripted([0.5])) == "away"
        assert decide_outcome("ESP", "NZL", "crazy", scripted([0.9])) == "draw"

    def test_large_gap_always_favorite(self, scripted):
        assert decide_outcome("ESP", "NZL", "favorites", scripted([])) == "home"
        assert decide_outcome("NZL", "ESP", "favorites", scripted([])) == "away"

    def test_clear_gap(self, scripted):
        # ESP 1 v ITA 5
        assert decide_outcome("ESP", "ITA", "favorites", scripted([0.5])) == "home"
        assert decide_outcome("ESP", "ITA", "favorites", scripted([0.05, 0.1])) == "draw"
        assert decide_outcome("ESP", "ITA", "favorites", scripted([0.05, 0.9])) == "home"

    def test_close_match(self, scripted):
        assert decide_outcome("ESP", "ARG", "favorites", scripted([0.2])) == "draw"
        assert decide_outcome("ARG", "ESP", "favorites", scripted([0.3])) == "away"

    def test_equal_rank_favors_away(self, scripted):
        assert decide_outcome("KOR", "SEN", "favorites", scripted([0.5])) == "away"

    def test_placeholder_ranked_through_selection(self, scripted):
        assert effective_rank("UEFA_A_WINNER") == 30
        assert effective_rank("UEFA_A_WINNER", {"UEFA_A": "ITA"}) == 5
        # ITA 5 v NZL 38: decisive once the placeholder is resolved
        outcome = decide_outcome("UEFA_A_WINNER", "NZL", "favorites", scripted([]), {"UEFA_A": "ITA"})
        assert outcome == "home"

    def test_config_thresholds(self, scripted):
        config = SimulationConfig(decisive_gap=3)
        assert decide_outcome("ESP", "FRA", "favorites", scripted([]), config=config) == "home"

    @pytest.mark.parametrize(
        "kwargs",
        [{"close_draw": 1.0}, {"close_draw": -0.1}, {"clear_gap_upset": 1.5}, {"max_winning_goals": 0}],
    )
    def test_config_rejects_unusable_probabilities(self, kwargs):
        with pytest.raises(ValueError):
            SimulationConfig(**kwargs)

    def test_knockout_terminates_with_high_draw_rate(self, all_played_state):
        config = SimulationConfig(close_draw=0.99)
        state = auto_predict_knockout_state(
            "favorites", all_played_state, rng=np.random.default_rng(4), config=config
        )
        assert all(r.winner_team_id for r in state.values())

    def test_close_draw_rate(self):
        rng = np.random.default_rng(7)
        outcomes = [decide_outcome("ESP", "ARG", "favorites", rng) for _ in range(4000)]
        draw_rate = outcomes.count("draw") / len(outcomes)
        assert 0.21 < draw_rate < 0.29
        assert "away" not in outcomes

    def test_crazy_rate(self):
        rng = np.random.default_rng(11)
        outcomes = [decide_outcome("ESP", "NZL", "crazy", rng) for _ in range(6000)]
        for side in ("home", "away", "draw"):
            assert 0.29 < outcomes.count(side) / len(outcomes) < 0.38


class TestCreateScore:
    def test_draw(self, scripted):
        assert create_score("draw", scripted([])) == (1, 1)

    def test_home_win(self, scripted):
        assert create_score("home", scripted([0.99, 0.99])) == (3, 2)

    def test_away_win(self, scripted):
        assert create_score("away", scripted([0.0, 0.5])) == (0, 1)

    def test_winner_always_ahead(self):
        rng = np.random.default_rng(3)
        for _ in range(500):
            home, away = create_score("home", rng)
            assert 1 <= home <= 3
            assert 0 <= away < home


class TestAutoPredictGroups:
    def test_basic_returns_copy(self, fresh_state):
        predicted = auto_predict_groups_state("basic", fresh_state)
        assert predicted == fresh_state
        assert predicted["A"][0] is not fresh_state["A"][0]

    @pytest.mark.parametrize("mode", ["favorites", "crazy"])
    def test_fills_every_fixture(self, fresh_state, mode):
        predicted = auto_predict_groups_state(mode, fresh_state, rng=np.random.default_rng(1))
        assert all(m.is_played for ms in predicted.values() for m in ms)
        assert not any(m.is_played for ms in fresh_state.values() for m in ms)

    def test_ids_kept(self, fresh_state):
        predicted = auto_predict_groups_state("favorites", fresh_state, rng=np.random.default_rng(2))
        assert [m.id for m in predicted["K"]] == [m.id for m in fresh_state["K"]]
        assert predicted["A"][3].away_team_id == "UEFA_D_WINNER"


class TestAutoPredictKnockout:
    @pytest.mark.parametrize("mode", ["favorites", "crazy"])
    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_never_drawn(self, all_played_state, mode, seed):
        state = auto_predict_knockout_state(mode, all_played_state, rng=np.random.default_rng(seed))
        assert len(state) == 32
        for result in state.values():
            assert result.home_team_id and result.away_team_id
            assert result.winner_team_id in (result.home_team_id, result.away_team_id)
            assert result.home_goals != result.away_goals
            winner_home = result.home_goals > result.away_goals
            assert result.winner_team_id == (result.home_team_id if winner_home else result.away_team_id)

    def test_playoff_teams_resolved(self, all_played_state):
        state = auto_predict_knockout_state("favorites", all_played_state, rng=np.random.default_rng(0))
        # 2B is the UEFA A playoff winner, auto-completed to Italy
        assert state[3].away_team_id == "ITA"

    def test_matches_bracket_view(self, all_played_state, favorites_selection):
        state = auto_predict_knockout_state(
            "favorites", all_played_state, favorites_selection, rng=np.random.default_rng(5)
        )
        bracket = resolve_bracket(all_played_state, favorites_selection, scores_from_knockout_state(state))
        for mid, vm in bracket.matches.items():
            assert vm.home.team_id == state[mid].home_team_id
            assert vm.away.team_id == state[mid].away_team_id
            assert vm.winner.team_id == state[mid].winner_team_id

    def test_undetermined_participants(self, played_groups):
        state = auto_predict_knockout_state(
            "favorites", played_groups("ABCDEFG"), rng=np.random.default_rng(0)
        )
        # 1L has no group results yet
        assert state[12].home_team_id is None
        assert state[12].winner_team_id is None
        assert state[12].home_goals is None
        assert state[22].winner_team_id is None

    def test_basic_only_resolves(self, all_played_state):
        state = auto_predict_knockout_state("basic", all_played_state)
        assert state[1].home_team_id == "GER"
        assert state[1].winner_team_id is None
        assert state[17].home_team_id is None

    def test_scores_feed_the_bracket(self, all_played_state):
        state = auto_predict_knockout_state("crazy", all_played_state, rng=np.random.default_rng(9))
        scores = scores_from_knockout_state(state)
        assert all(isinstance(s, KnockoutScore) for s in scores.values())
        assert len(scores) == 32
