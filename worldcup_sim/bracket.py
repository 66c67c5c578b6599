from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Set, Tuple
import re

from worldcup_sim.models import (
    FINAL,
    THIRD_PLACE,
    AdvanceSource,
    GroupMatchesState,
    GroupSource,
    KnockoutMatch,
    KnockoutMatchResult,
    KnockoutScore,
    KnockoutScores,
    KnockoutState,
    ResolvedSlot,
    StandingRow,
    TeamSource,
    WinnerDecision,
    WinnerSide,
)
from worldcup_sim.playoffs import PlayoffResolver
from worldcup_sim.reference import load_groups, load_knockout_matches
from worldcup_sim.standings import build_standings_by_group, has_any_result
from worldcup_sim.third_place import ThirdInfo, ThirdPlaceContext, resolve_third_place

_WINNER_LABEL = re.compile(r"^1([A-L])$")
_RANK_LABEL = re.compile(r"^([123])([A-L])$")


def winner_info(score: Optional[KnockoutScore]) -> Tuple[WinnerSide, WinnerDecision]:
    """
    Side and decision tier of a knockout score.

    90' goals decide first; extra time is compared on 90+ET totals; then
    penalties. Missing 90' goals give ``(None, None)``; a level score with
    nothing further to compare gives ``("draw", None)``.
    """
    if score is None or score.home90 is None or score.away90 is None:
        return None, None
    if score.home90 != score.away90:
        return ("home" if score.home90 > score.away90 else "away"), "90"

    if score.home_et is None or score.away_et is None:
        return "draw", None
    total_home = score.home90 + score.home_et
    total_away = score.away90 + score.away_et
    if total_home != total_away:
        return ("home" if total_home > total_away else "away"), "ET"

    if score.home_pens is None or score.away_pens is None:
        return "draw", None
    if score.home_pens != score.away_pens:
        return ("home" if score.home_pens > score.away_pens else "away"), "PEN"
    return "draw", None


@dataclass
class ResolvedMatch:
    match: KnockoutMatch
    home: ResolvedSlot
    away: ResolvedSlot
    score: KnockoutScore
    winner_side: WinnerSide = None
    winner_decision: WinnerDecision = None
    disabled: bool = True

    @property
    def winner(self) -> Optional[ResolvedSlot]:
        if self.winner_side == "home":
            return self.home
        if self.winner_side == "away":
            return self.away
        return None

    @property
    def loser(self) -> Optional[ResolvedSlot]:
        if self.winner_side == "home":
            return self.away
        if self.winner_side == "away":
            return self.home
        return None


@dataclass
class Podium:
    champion: Optional[ResolvedSlot] = None
    runner_up: Optional[ResolvedSlot] = None
    third_place: Optional[ResolvedSlot] = None


@dataclass
class ResolvedBracket:
    matches: Dict[int, ResolvedMatch] = field(default_factory=dict)
    third_place: ThirdPlaceContext = field(default_factory=ThirdPlaceContext)

    def by_round(self, round_name: str) -> List[ResolvedMatch]:
        return [m for m in self.matches.values() if m.match.round == round_name]

    def podium(self) -> Podium:
        podium = Podium()
        for vm in self.by_round(FINAL):
            podium.champion = vm.winner
            podium.runner_up = vm.loser
        for vm in self.by_round(THIRD_PLACE):
            podium.third_place = vm.winner
        return podium


def _placeholder(name: str) -> ResolvedSlot:
    return ResolvedSlot(name=name, team_id=None, flag_code=None, is_placeholder=True)


def _slot_for(row: StandingRow) -> ResolvedSlot:
    return ResolvedSlot(
        name=row.team.name,
        team_id=row.team.id,
        flag_code=row.team.flag_code,
        is_placeholder=False,
    )


def winner_slot_for_third(match: KnockoutMatch, side: str) -> Optional[str]:
    """The ``1X`` slot a third-place label faces in this match, if any."""
    source = match.home if side == "home" else match.away
    other = match.away if side == "home" else match.home
    if not isinstance(source, GroupSource) or not source.label.startswith("3"):
        return None
    if not isinstance(other, GroupSource):
        return None
    m = _WINNER_LABEL.match(other.label)
    return f"1{m.group(1)}" if m else None


class BracketResolver:
    """
    One pass over the knockout graph in match-id order. Holds the winners,
    losers and consumed third-place groups of the pass.
    """

    def __init__(
        self,
        standings_by_group: Mapping[str, List[StandingRow]],
        started_groups: Set[str],
        third_place: ThirdPlaceContext,
    ):
        self.standings_by_group = standings_by_group
        self.started_groups = started_groups
        self.third_place = third_place
        self.used_third_groups: Set[str] = set()
        self.winners: Dict[int, Optional[ResolvedSlot]] = {}
        self.losers: Dict[int, Optional[ResolvedSlot]] = {}

    def _team_by_rank(self, group_id: str, rank: int) -> Optional[ResolvedSlot]:
        if group_id not in self.started_groups:
            return None
        rows = self.standings_by_group.get(group_id) or []
        if len(rows) < rank:
            return None
        return _slot_for(rows[rank - 1])

    def _take_third(self, info: ThirdInfo) -> ResolvedSlot:
        self.used_third_groups.add(info.group_id)
        return _slot_for(info.standing)

    def _resolve_third(self, label: str, winner_slot: Optional[str]) -> ResolvedSlot:
        allowed = [g.strip() for g in label[1:].split("/")]
        assigned = self.third_place.assignment.get(winner_slot) if winner_slot else None
        if (
            assigned is not None
            and assigned.group_id in allowed
            and assigned.group_id not in self.used_third_groups
        ):
            return self._take_third(assigned)

        for info in sorted(self.third_place.qualified, key=lambda t: t.group_id):
            if info.group_id in allowed and info.group_id not in self.used_third_groups:
                return self._take_third(info)
        return _placeholder(label)

    def resolve_source(self, source: TeamSource, match: KnockoutMatch, side: str) -> ResolvedSlot:
        if isinstance(source, AdvanceSource):
            found = (self.winners if source.outcome == "winner" else self.losers).get(
                source.match_id
            )
            if found is None:
                return _placeholder(f"{source.outcome.capitalize()} Match {source.match_id}")
            return found

        label = source.label.strip()
        if label.startswith("3") and "/" in label:
            return self._resolve_third(label, winner_slot_for_third(match, side))
        m = _RANK_LABEL.match(label)
        if not m:
            return _placeholder(label)
        return self._team_by_rank(m.group(2), int(m.group(1))) or _placeholder(label)

    def resolve_participants(self, match: KnockoutMatch) -> Tuple[ResolvedSlot, ResolvedSlot]:
        return (
            self.resolve_source(match.home, match, "home"),
            self.resolve_source(match.away, match, "away"),
        )

    def resolve_match(self, match: KnockoutMatch, score: Optional[KnockoutScore]) -> ResolvedMatch:
        home, away = self.resolve_participants(match)
        return self.record(match, home, away, score)

    def record(
        self,
        match: KnockoutMatch,
        home: ResolvedSlot,
        away: ResolvedSlot,
        score: Optional[KnockoutScore],
    ) -> ResolvedMatch:
        """Apply ``score`` to already resolved participants and remember the outcome."""
        score = score or KnockoutScore()
        disabled = home.is_placeholder or away.is_placeholder

        side, decision = (None, None) if disabled else winner_info(score)
        vm = ResolvedMatch(
            match=match,
            home=home,
            away=away,
            score=score,
            winner_side=side,
            winner_decision=decision,
            disabled=disabled,
        )
        self.winners[match.id] = vm.winner
        self.losers[match.id] = vm.loser
        return vm


def build_bracket_resolver(
    group_state: GroupMatchesState,
    playoff_selection: Optional[Mapping[str, Optional[str]]] = None,
) -> BracketResolver:
    resolver = PlayoffResolver(playoff_selection)
    standings = build_standings_by_group(group_state, resolver)
    started = {g.id for g in load_groups() if has_any_result(group_state.get(g.id) or [])}
    third_place = resolve_third_place(standings, started)
    return BracketResolver(standings, started, third_place)


def resolve_bracket(
    group_state: GroupMatchesState,
    playoff_selection: Optional[Mapping[str, Optional[str]]] = None,
    ko_scores: Optional[KnockoutScores] = None,
) -> ResolvedBracket:
    """Resolved view of every knockout match from the current tournament state."""
    ko_scores = ko_scores or {}
    resolver = build_bracket_resolver(group_state, playoff_selection)
    bracket = ResolvedBracket(third_place=resolver.third_place)
    for match in load_knockout_matches():
        bracket.matches[match.id] = resolver.resolve_match(match, ko_scores.get(match.id))
    return bracket


def knockout_state_from_bracket(bracket: ResolvedBracket) -> KnockoutState:
    """Team ids, 90'+ET goals and winner of each match, for the stats aggregator."""
    state: KnockoutState = {}
    for match_id, vm in bracket.matches.items():
        score = vm.score
        home_goals = away_goals = None
        if score.home90 is not None and score.away90 is not None:
            home_goals = score.home90 + (score.home_et or 0)
            away_goals = score.away90 + (score.away_et or 0)
        winner = vm.winner
        state[match_id] = KnockoutMatchResult(
            match_id=match_id,
            home_team_id=vm.home.team_id,
            away_team_id=vm.away.team_id,
            home_goals=home_goals,
            away_goals=away_goals,
            winner_team_id=winner.team_id if winner else None,
        )
    return state


def scores_from_knockout_state(state: KnockoutState) -> KnockoutScores:
    scores: KnockoutScores = {}
    for match_id, result in state.items():
        if result.home_goals is None or result.away_goals is None:
            continue
        scores[match_id] = KnockoutScore(home90=result.home_goals, away90=result.away_goals)
    return scores
