from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from worldcup_sim.models import TeamTournamentStats, TournamentAwards
from worldcup_sim.reference import stage_value, team_rank, tier_strength

# Losing margin that makes an exit against another big team count
BLOWOUT_GOAL_DIFF = 3

BIG_TIERS = ("S", "A")
UNDERDOG_TIERS = ("B", "C", "D")

KNOCKOUT_EXIT_ORDER = ("roundOf32", "roundOf16", "quarters")
LATE_EXIT_STAGES = ("semis", "final", "thirdPlace")

# lower = more embarrassing to lose against
RIVAL_TIER_BADNESS = {"D": 0, "C": 1, "B": 2, "A": 3, "S": 4}


def _played(stats: Sequence[TeamTournamentStats]) -> List[TeamTournamentStats]:
    return [t for t in stats if t.played > 0]


def _group_best_first(t: TeamTournamentStats) -> Tuple[int, int, int]:
    return (-t.points, -t.goal_diff, -t.goals_for)


def _group_worst_first(t: TeamTournamentStats) -> Tuple[int, int, int]:
    return (t.points, t.goal_diff, t.goals_for)


def giant_kills(t: TeamTournamentStats) -> int:
    mine = tier_strength(t.tier)
    return sum(1 for s in t.scalps if tier_strength(s.tier) > mine)


def pick_revelation(stats: Sequence[TeamTournamentStats]) -> Optional[TeamTournamentStats]:
    """Underdog (tier B/C/D) that went furthest."""
    candidates = [t for t in _played(stats) if t.tier in UNDERDOG_TIERS]
    if not candidates:
        return None
    best_stage = max(stage_value(t.stage_reached) for t in candidates)
    top = [t for t in candidates if stage_value(t.stage_reached) == best_stage]
    return min(
        top,
        key=lambda t: (team_rank(t.team.id), -giant_kills(t), *_group_best_first(t), t.team.id),
    )


def is_valid_disappointment(t: TeamTournamentStats) -> bool:
    if t.tier not in BIG_TIERS:
        return False
    if t.stage_reached == "groups":
        return True

    elim = t.elimination
    if not elim.eliminated or elim.eliminated_by is None or not elim.eliminated_in:
        return False
    if elim.eliminated_by.tier in UNDERDOG_TIERS:
        return True
    return elim.eliminated_by.goal_diff >= BLOWOUT_GOAL_DIFF


def _same_stage_key(t: TeamTournamentStats):
    by = t.elimination.eliminated_by
    rival_tier = by.tier if by is not None else "S"
    goal_diff = by.goal_diff if by is not None else 0
    return (
        RIVAL_TIER_BADNESS.get(rival_tier, 4),
        -goal_diff,
        *_group_worst_first(t),
        t.team.id,
    )


def pick_disappointment(stats: Sequence[TeamTournamentStats]) -> Optional[TeamTournamentStats]:
    """
    Big team (tier S/A) with the most embarrassing exit.

    Group-stage exits come first, the easiest group being the worst. Then
    the knockout rounds up to the quarterfinals in order, counting only
    losses to a weaker tier or blowouts. Semis, final and third place are
    the last resort under the same rule.
    """
    bigs = [t for t in _played(stats) if t.tier in BIG_TIERS]
    if not bigs:
        return None

    group_fails = [t for t in bigs if t.stage_reached == "groups"]
    if group_fails:
        return min(group_fails, key=lambda t: (t.group_strength, *_group_worst_first(t), t.team.id))

    for stage in KNOCKOUT_EXIT_ORDER:
        valid = [
            t for t in bigs if t.elimination.eliminated_in == stage and is_valid_disappointment(t)
        ]
        if valid:
            return min(valid, key=_same_stage_key)

    late = [
        t
        for t in bigs
        if t.elimination.eliminated_in in LATE_EXIT_STAGES and is_valid_disappointment(t)
    ]
    return min(late, key=_same_stage_key) if late else None


def worst_score(t: TeamTournamentStats) -> int:
    return t.points * 3 + t.goal_diff * 2 - t.goals_against


def pick_worst(stats: Sequence[TeamTournamentStats]) -> Optional[TeamTournamentStats]:
    candidates = _played(stats)
    if not candidates:
        return None
    return min(candidates, key=lambda t: (worst_score(t), t.team.id))


def pick_top_scoring(stats: Sequence[TeamTournamentStats]) -> Optional[TeamTournamentStats]:
    candidates = _played(stats)
    if not candidates:
        return None
    return min(candidates, key=lambda t: (-t.goals_for, -t.goal_diff, t.goals_against, t.team.id))


def pick_tournament_awards(stats: Sequence[TeamTournamentStats]) -> TournamentAwards:
    return TournamentAwards(
        revelation=pick_revelation(stats),
        disappointment=pick_disappointment(stats),
        worst=pick_worst(stats),
        top_scoring=pick_top_scoring(stats),
    )
