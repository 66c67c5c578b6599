from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Protocol, Tuple
import logging

import numpy as np

from worldcup_sim.awards import pick_tournament_awards
from worldcup_sim.bracket import (
    Podium,
    ResolvedBracket,
    build_bracket_resolver,
    resolve_bracket,
    scores_from_knockout_state,
)
from worldcup_sim.models import (
    GroupMatchesState,
    KnockoutMatchResult,
    KnockoutScore,
    KnockoutState,
    PlayoffSelection,
    TeamTournamentStats,
    TournamentAwards,
    placeholder_team_id,
)
from worldcup_sim.playoffs import normalize_playoff_selection
from worldcup_sim.reference import load_groups, load_knockout_matches, load_playoff_slots, team_rank
from worldcup_sim.standings import create_fresh_group_state
from worldcup_sim.stats import build_tournament_stats

logger = logging.getLogger(__name__)

MODES = ("basic", "favorites", "crazy")


class RandomSource(Protocol):
    def random(self) -> float:
        ...


@dataclass
class SimulationConfig:
    """Tuning of the favorites model. Lower rank = stronger team."""

    decisive_gap: int = 7
    clear_gap: int = 4
    clear_gap_upset: float = 0.1
    close_draw: float = 0.25
    max_winning_goals: int = 3
    favorite_picks: Dict[str, str] = field(
        default_factory=lambda: {
            "INTER_1": "COD",
            "INTER_2": "BOL",
            "UEFA_A": "ITA",
            "UEFA_C": "TUR",
            "UEFA_D": "DEN",
        }
    )
    # (slot, preferred, alternative, preferred share)
    split_pick: Tuple[str, str, str, float] = ("UEFA_B", "POL", "SWE", 0.8)

    def __post_init__(self):
        # knockout matches are re-decided until not drawn
        if not 0 <= self.close_draw < 1:
            raise ValueError(f"close_draw must be in [0, 1), got {self.close_draw}")
        if not 0 <= self.clear_gap_upset <= 1:
            raise ValueError(f"clear_gap_upset must be in [0, 1], got {self.clear_gap_upset}")
        if self.max_winning_goals < 1:
            raise ValueError(f"max_winning_goals must be at least 1, got {self.max_winning_goals}")


DEFAULT_CONFIG = SimulationConfig()


def _check_mode(mode: str) -> None:
    if mode not in MODES:
        raise ValueError(f"Unknown prediction mode: {mode!r} (expected one of {MODES})")


def _rng(rng: Optional[RandomSource]) -> RandomSource:
    return rng if rng is not None else np.random.default_rng()


def build_fifa_playoff_selection(
    base: Optional[Mapping[str, Optional[str]]] = None,
    rng: Optional[RandomSource] = None,
    config: Optional[SimulationConfig] = None,
) -> PlayoffSelection:
    config = config or DEFAULT_CONFIG
    rng = _rng(rng)
    selection = normalize_playoff_selection(base)
    for slot_id, team_id in config.favorite_picks.items():
        if slot_id in selection and not selection[slot_id]:
            selection[slot_id] = team_id
    slot_id, preferred, alternative, share = config.split_pick
    if slot_id in selection and not selection[slot_id]:
        selection[slot_id] = preferred if rng.random() < share else alternative
    return selection


def build_crazy_playoff_selection(
    base: Optional[Mapping[str, Optional[str]]] = None,
    rng: Optional[RandomSource] = None,
) -> PlayoffSelection:
    rng = _rng(rng)
    selection = normalize_playoff_selection(base)
    for slot in load_playoff_slots():
        if selection.get(slot.id) or not slot.candidates:
            continue
        idx = min(int(rng.random() * len(slot.candidates)), len(slot.candidates) - 1)
        selection[slot.id] = slot.candidates[idx].id
    return selection


def build_playoff_selection_for_mode(
    mode: str,
    base: Optional[Mapping[str, Optional[str]]] = None,
    rng: Optional[RandomSource] = None,
    config: Optional[SimulationConfig] = None,
) -> PlayoffSelection:
    """Fill unset playoff slots for ``mode``; picks already made are kept."""
    _check_mode(mode)
    if mode == "favorites":
        return build_fifa_playoff_selection(base, rng, config)
    if mode == "crazy":
        return build_crazy_playoff_selection(base, rng)
    return normalize_playoff_selection(base)


def effective_rank(team_id: str, selection: Optional[Mapping[str, Optional[str]]] = None) -> int:
    """Rank of a team, looking through a playoff placeholder to its selected winner."""
    for slot_id, picked in (selection or {}).items():
        if picked and team_id == placeholder_team_id(slot_id):
            return team_rank(picked)
    return team_rank(team_id)


def decide_outcome(
    home_id: str,
    away_id: str,
    mode: str,
    rng: RandomSource,
    selection: Optional[Mapping[str, Optional[str]]] = None,
    config: Optional[SimulationConfig] = None,
) -> str:
    if mode == "crazy":
        r = rng.random()
        return "home" if r < 1 / 3 else ("away" if r < 2 / 3 else "draw")

    config = config or DEFAULT_CONFIG
    rank_home = effective_rank(home_id, selection)
    rank_away = effective_rank(away_id, selection)
    gap = abs(rank_home - rank_away)
    favorite = "home" if rank_home < rank_away else "away"

    if gap >= config.decisive_gap:
        return favorite
    if gap >= config.clear_gap and rng.random() > config.clear_gap_upset:
        return favorite
    return "draw" if rng.random() < config.close_draw else favorite


def create_score(
    outcome: str,
    rng: RandomSource,
    config: Optional[SimulationConfig] = None,
) -> Tuple[int, int]:
    if outcome == "draw":
        return 1, 1
    config = config or DEFAULT_CONFIG
    win = 1 + int(rng.random() * config.max_winning_goals)
    lose = int(rng.random() * win)
    return (win, lose) if outcome == "home" else (lose, win)


def auto_predict_groups_state(
    mode: str,
    current: GroupMatchesState,
    playoff_selection: Optional[Mapping[str, Optional[str]]] = None,
    rng: Optional[RandomSource] = None,
    config: Optional[SimulationConfig] = None,
) -> GroupMatchesState:
    """
    Predicted scores for every group fixture.

    ``basic`` returns a copy of ``current`` untouched. The other modes
    overwrite every fixture; playoff placeholders are ranked through the
    auto-completed selection.
    """
    _check_mode(mode)
    if mode == "basic":
        return {gid: [replace(m) for m in matches] for gid, matches in current.items()}

    rng = _rng(rng)
    selection = build_playoff_selection_for_mode(mode, playoff_selection, rng, config)
    predicted: GroupMatchesState = {}
    for group in load_groups():
        fixtures = []
        for m in current.get(group.id) or []:
            outcome = decide_outcome(m.home_team_id, m.away_team_id, mode, rng, selection, config)
            home_goals, away_goals = create_score(outcome, rng, config)
            fixtures.append(replace(m, home_goals=home_goals, away_goals=away_goals))
        predicted[group.id] = fixtures
    return predicted


def auto_predict_knockout_state(
    mode: str,
    group_state: GroupMatchesState,
    playoff_selection: Optional[Mapping[str, Optional[str]]] = None,
    rng: Optional[RandomSource] = None,
    config: Optional[SimulationConfig] = None,
) -> KnockoutState:
    """
    Simulated result of every knockout match whose participants can be
    determined. A simulated match is never drawn; ``basic`` only fills in
    the participants.
    """
    _check_mode(mode)
    rng = _rng(rng)
    selection = build_playoff_selection_for_mode(mode, playoff_selection, rng, config)
    resolver = build_bracket_resolver(group_state, selection)

    state: KnockoutState = {}
    for match in load_knockout_matches():
        home, away = resolver.resolve_participants(match)
        score = None
        if mode != "basic" and home.team_id and away.team_id:
            outcome = decide_outcome(home.team_id, away.team_id, mode, rng, selection, config)
            while outcome == "draw":
                outcome = decide_outcome(home.team_id, away.team_id, mode, rng, selection, config)
            home_goals, away_goals = create_score(outcome, rng, config)
            if home_goals == away_goals:
                if outcome == "home":
                    home_goals += 1
                else:
                    away_goals += 1
            score = KnockoutScore(home90=home_goals, away90=away_goals)

        vm = resolver.record(match, home, away, score)
        winner = vm.winner
        state[match.id] = KnockoutMatchResult(
            match_id=match.id,
            home_team_id=home.team_id,
            away_team_id=away.team_id,
            home_goals=score.home90 if score else None,
            away_goals=score.away90 if score else None,
            winner_team_id=winner.team_id if winner else None,
        )
    return state


@dataclass
class TournamentRun:
    mode: str
    playoff_selection: PlayoffSelection
    group_state: GroupMatchesState
    knockout_state: KnockoutState
    bracket: ResolvedBracket
    stats: List[TeamTournamentStats]
    awards: TournamentAwards

    @property
    def podium(self) -> Podium:
        return self.bracket.podium()


def simulate_tournament(
    mode: str = "favorites",
    random_state: Optional[int] = None,
    config: Optional[SimulationConfig] = None,
) -> TournamentRun:
    """Playoffs, groups and knockout predicted in one go, then stats and awards."""
    _check_mode(mode)
    rng = np.random.default_rng(random_state)
    selection = build_playoff_selection_for_mode(mode, None, rng, config)
    group_state = auto_predict_groups_state(mode, create_fresh_group_state(), selection, rng, config)
    knockout_state = auto_predict_knockout_state(mode, group_state, selection, rng, config)
    bracket = resolve_bracket(group_state, selection, scores_from_knockout_state(knockout_state))
    stats = build_tournament_stats(group_state, knockout_state, selection)
    awards = pick_tournament_awards(stats)

    champion = bracket.podium().champion
    logger.debug("Simulated %s tournament, champion %s", mode, champion.team_id if champion else None)
    return TournamentRun(
        mode=mode,
        playoff_selection=selection,
        group_state=group_state,
        knockout_state=knockout_state,
        bracket=bracket,
        stats=stats,
        awards=awards,
    )
