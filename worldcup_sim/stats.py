from __future__ import annotations

from typing import Dict, List, Mapping, Optional

import pandas as pd

from worldcup_sim.models import (
    FINAL,
    QUARTERFINAL,
    ROUND_OF_16,
    ROUND_OF_32,
    SEMIFINAL,
    THIRD_PLACE,
    EliminatedBy,
    Elimination,
    GroupMatch,
    GroupMatchesState,
    KnockoutState,
    Scalp,
    Team,
    TeamTournamentStats,
)
from worldcup_sim.playoffs import PlayoffResolver
from worldcup_sim.reference import load_groups, load_knockout_matches, max_stage, team_tier, tier_strength
from worldcup_sim.standings import build_standings_by_group

LOSER_ELIMINATED_IN = {
    ROUND_OF_32: "roundOf32",
    ROUND_OF_16: "roundOf16",
    QUARTERFINAL: "quarters",
    SEMIFINAL: "semis",
    FINAL: "final",
    THIRD_PLACE: "thirdPlace",
}

WINNER_REACHES = {
    ROUND_OF_32: "roundOf16",
    ROUND_OF_16: "quarters",
    QUARTERFINAL: "semis",
    SEMIFINAL: "final",
    FINAL: "champion",
    THIRD_PLACE: "thirdPlace",
}


def _entry(stats: Dict[str, TeamTournamentStats], team: Team, group_id: str) -> TeamTournamentStats:
    if team.id not in stats:
        stats[team.id] = TeamTournamentStats(team=team, group_id=group_id, tier=team_tier(team.id))
    return stats[team.id]


def _add_goals(stat: TeamTournamentStats, scored: int, conceded: int) -> None:
    stat.played += 1
    stat.goals_for += scored
    stat.goals_against += conceded
    stat.goal_diff = stat.goals_for - stat.goals_against


def _apply_group_match(
    stats: Dict[str, TeamTournamentStats],
    teams_by_raw_id: Mapping[str, Team],
    group_id: str,
    match: GroupMatch,
) -> None:
    if not match.is_played:
        return
    home_team = teams_by_raw_id.get(match.home_team_id)
    away_team = teams_by_raw_id.get(match.away_team_id)
    if home_team is None or away_team is None:
        return

    home = _entry(stats, home_team, group_id)
    away = _entry(stats, away_team, group_id)
    hg, ag = int(match.home_goals), int(match.away_goals)
    _add_goals(home, hg, ag)
    _add_goals(away, ag, hg)
    if hg > ag:
        home.won += 1
        home.points += 3
        away.lost += 1
    elif ag > hg:
        away.won += 1
        away.points += 3
        home.lost += 1
    else:
        home.drawn += 1
        away.drawn += 1
        home.points += 1
        away.points += 1


def _apply_knockout(stats: Dict[str, TeamTournamentStats], knockout_state: KnockoutState) -> None:
    for match in load_knockout_matches():
        res = knockout_state.get(match.id)
        if res is None:
            continue
        if (
            not res.home_team_id
            or not res.away_team_id
            or res.home_goals is None
            or res.away_goals is None
            or not res.winner_team_id
        ):
            continue

        loser_id = res.away_team_id if res.winner_team_id == res.home_team_id else res.home_team_id
        home = stats.get(res.home_team_id)
        away = stats.get(res.away_team_id)
        winner = stats.get(res.winner_team_id)
        loser = stats.get(loser_id)
        if home is None or away is None or winner is None or loser is None:
            continue

        _add_goals(home, res.home_goals, res.away_goals)
        _add_goals(away, res.away_goals, res.home_goals)
        winner.won += 1
        loser.lost += 1
        winner.stage_reached = max_stage(winner.stage_reached, WINNER_REACHES[match.round])

        if match.round == THIRD_PLACE:
            loser.stage_reached = max_stage(loser.stage_reached, "thirdPlace")
            continue

        eliminated_in = LOSER_ELIMINATED_IN[match.round]
        loser.elimination = Elimination(
            eliminated=True,
            eliminated_in=eliminated_in,
            eliminated_by=EliminatedBy(
                team_id=winner.team.id,
                tier=winner.tier,
                goal_diff=abs(res.home_goals - res.away_goals),
            ),
        )
        loser.stage_reached = max_stage(loser.stage_reached, eliminated_in)
        winner.scalps.append(Scalp(team_id=loser.team.id, tier=loser.tier, stage=eliminated_in))


def build_tournament_stats(
    group_state: GroupMatchesState,
    knockout_state: Optional[KnockoutState] = None,
    playoff_selection: Optional[Mapping[str, Optional[str]]] = None,
) -> List[TeamTournamentStats]:
    """
    One record per team of the 48, playoff placeholders resolved through
    ``playoff_selection``. Group results, group position and group strength
    come first, then every decided knockout match is replayed.
    """
    resolver = PlayoffResolver(playoff_selection)
    groups = load_groups()
    stats: Dict[str, TeamTournamentStats] = {}
    resolved: Dict[str, Dict[str, Team]] = {}

    for group in groups:
        resolved[group.id] = {t.id: resolver.resolve(t) for t in group.teams}
        for team in resolved[group.id].values():
            _entry(stats, team, group.id)

    for group in groups:
        for match in group_state.get(group.id) or []:
            _apply_group_match(stats, resolved[group.id], group.id, match)

    standings = build_standings_by_group(group_state, resolver, groups)
    for group in groups:
        strength = sum(tier_strength(team_tier(t.id)) for t in resolved[group.id].values())
        for pos, row in enumerate(standings[group.id], start=1):
            stat = stats.get(row.team.id)
            if stat is None:
                continue
            stat.group_position = pos
            stat.group_strength = strength

    _apply_knockout(stats, knockout_state or {})
    return list(stats.values())


def stats_frame(stats: List[TeamTournamentStats]) -> pd.DataFrame:
    rows = []
    for s in stats:
        eliminated_by = s.elimination.eliminated_by
        rows.append(
            {
                "team": s.team.id,
                "name": s.team.name,
                "group": s.group_id,
                "tier": s.tier,
                "stage_reached": s.stage_reached,
                "group_position": s.group_position,
                "group_strength": s.group_strength,
                "played": s.played,
                "won": s.won,
                "drawn": s.drawn,
                "lost": s.lost,
                "goals_for": s.goals_for,
                "goals_against": s.goals_against,
                "goal_diff": s.goal_diff,
                "points": s.points,
                "eliminated_in": s.elimination.eliminated_in,
                "eliminated_by": eliminated_by.team_id if eliminated_by else None,
                "scalps": len(s.scalps),
            }
        )
    return pd.DataFrame(rows)
