from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pandas as pd

from worldcup_sim.models import (
    Group,
    GroupMatch,
    GroupMatchesState,
    IdentityResolver,
    StandingRow,
    Team,
    TeamResolver,
)
from worldcup_sim.reference import load_groups

# (0-1) (2-3) (0-2) (1-3) (0-3) (1-2)
FIXTURE_PAIRS = [(0, 1), (2, 3), (0, 2), (1, 3), (0, 3), (1, 2)]

TABLE_COLUMNS = ["played", "points", "gf", "ga", "gd"]


def generate_initial_matches(group: Group) -> List[GroupMatch]:
    team_ids = [t.id for t in group.teams]
    return [
        GroupMatch(
            id=f"{group.id}-{idx}",
            group_id=group.id,
            home_team_id=team_ids[i],
            away_team_id=team_ids[j],
        )
        for idx, (i, j) in enumerate(FIXTURE_PAIRS, start=1)
    ]


def create_fresh_group_state(groups: Optional[Iterable[Group]] = None) -> GroupMatchesState:
    return {g.id: generate_initial_matches(g) for g in (groups or load_groups())}


def has_any_result(matches: Iterable[GroupMatch]) -> bool:
    return any(m.home_goals is not None or m.away_goals is not None for m in matches)


def compute_standings(
    group: Group,
    matches: Iterable[GroupMatch],
    resolver: Optional[TeamResolver] = None,
) -> List[StandingRow]:
    """
    Group table from the played matches, with every team passed through
    ``resolver`` first (playoff placeholders -> selected team).

    With no played match the group listing order is kept; otherwise rows are
    ordered by points, goal difference, goals for, then name.
    """
    resolver = resolver or IdentityResolver()
    raw_by_id = {t.id: t for t in group.teams}
    resolved: Dict[str, Team] = {}
    for team in group.teams:
        real = resolver.resolve(team)
        resolved.setdefault(real.id, real)
    resolved_by_raw = {t.id: resolver.resolve(t) for t in group.teams}

    table = pd.DataFrame(index=list(resolved.keys()), columns=TABLE_COLUMNS, data=0)
    any_played = False
    for m in matches:
        if not m.is_played:
            continue
        if m.home_team_id not in raw_by_id or m.away_team_id not in raw_by_id:
            continue
        home = resolved_by_raw[m.home_team_id].id
        away = resolved_by_raw[m.away_team_id].id
        hs = int(m.home_goals)
        as_ = int(m.away_goals)
        any_played = True
        table.loc[home, "played"] += 1
        table.loc[away, "played"] += 1
        table.loc[home, "gf"] += hs
        table.loc[home, "ga"] += as_
        table.loc[away, "gf"] += as_
        table.loc[away, "ga"] += hs
        if hs > as_:
            table.loc[home, "points"] += 3
        elif hs < as_:
            table.loc[away, "points"] += 3
        else:
            table.loc[home, "points"] += 1
            table.loc[away, "points"] += 1
    table["gd"] = table["gf"] - table["ga"]

    if any_played:
        table["name"] = [resolved[tid].name for tid in table.index]
        table = table.sort_values(
            by=["points", "gd", "gf", "name"],
            ascending=[False, False, False, True],
            kind="mergesort",
        )

    return [
        StandingRow(
            team=resolved[tid],
            played=int(row.played),
            points=int(row.points),
            gf=int(row.gf),
            ga=int(row.ga),
            gd=int(row.gd),
        )
        for tid, row in zip(table.index, table.itertuples(index=False))
    ]


def build_standings_by_group(
    group_state: GroupMatchesState,
    resolver: Optional[TeamResolver] = None,
    groups: Optional[Iterable[Group]] = None,
) -> Dict[str, List[StandingRow]]:
    return {
        g.id: compute_standings(g, group_state.get(g.id) or [], resolver)
        for g in (groups or load_groups())
    }


def standings_frame(rows: List[StandingRow]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=["team", "name", *TABLE_COLUMNS])
    return pd.DataFrame(
        [
            {
                "position": pos,
                "team": row.team.id,
                "name": row.team.name,
                "played": row.played,
                "points": row.points,
                "gf": row.gf,
                "ga": row.ga,
                "gd": row.gd,
            }
            for pos, row in enumerate(rows, start=1)
        ]
    ).set_index("position")
