from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging

from worldcup_sim.models import StandingRow, Team
from worldcup_sim.reference import ThirdPlaceOption, load_third_place_table, team_rank

logger = logging.getLogger(__name__)

QUALIFIED_THIRDS = 8
PLACEHOLDER_RANK = 9999


@dataclass(frozen=True)
class ThirdInfo:
    group_id: str
    standing: StandingRow


@dataclass
class ThirdPlaceContext:
    """Ranked third-placed teams plus the winner-slot assignment, if any."""

    best_thirds: List[ThirdInfo] = field(default_factory=list)
    assignment: Dict[str, ThirdInfo] = field(default_factory=dict)
    option: Optional[int] = None

    @property
    def qualified(self) -> List[ThirdInfo]:
        return self.best_thirds[:QUALIFIED_THIRDS]

    @property
    def qualified_groups(self) -> List[str]:
        return sorted(t.group_id for t in self.qualified)


def tiebreak_rank(team: Team) -> int:
    if team.is_unresolved:
        return PLACEHOLDER_RANK
    return team_rank(team.id)


def rank_third_placed(
    standings_by_group: Mapping[str, Sequence[StandingRow]],
    started_groups: Iterable[str],
) -> List[ThirdInfo]:
    started = set(started_groups)
    thirds = [
        ThirdInfo(group_id=group_id, standing=rows[2])
        for group_id, rows in standings_by_group.items()
        if group_id in started and len(rows) > 2
    ]
    thirds.sort(
        key=lambda t: (
            -t.standing.points,
            -t.standing.gd,
            -t.standing.gf,
            tiebreak_rank(t.standing.team),
        )
    )
    return thirds


def find_third_place_option(
    letters: Sequence[str],
    table: Optional[Sequence[ThirdPlaceOption]] = None,
) -> Optional[ThirdPlaceOption]:
    """Exact ordered match of the sorted qualified letters against the table."""
    wanted = tuple(sorted(letters))
    for option in table if table is not None else load_third_place_table():
        if option.groups == wanted:
            return option
    return None


def resolve_third_place(
    standings_by_group: Mapping[str, Sequence[StandingRow]],
    started_groups: Iterable[str],
    table: Optional[Sequence[ThirdPlaceOption]] = None,
) -> ThirdPlaceContext:
    """
    Rank the third-placed teams and, once eight groups qualify, assign them
    to the group winners through the cross-table.

    A combination missing from the table leaves the assignment empty; the
    bracket then treats those third-place slots as undetermined.
    """
    best_thirds = rank_third_placed(standings_by_group, started_groups)
    context = ThirdPlaceContext(best_thirds=best_thirds)
    if len(best_thirds) < QUALIFIED_THIRDS:
        return context

    letters = context.qualified_groups
    option = find_third_place_option(letters, table)
    if option is None:
        logger.debug("No round-of-32 combination for third-placed groups %s", "".join(letters))
        return context

    context.option = option.option
    by_group = {t.group_id: t for t in context.qualified}
    for winner_slot, group_id in option.vs.items():
        info = by_group.get(group_id)
        if info is not None:
            context.assignment[winner_slot] = info
    return context
