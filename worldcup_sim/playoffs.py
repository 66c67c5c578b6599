from __future__ import annotations

from dataclasses import replace
from typing import Mapping, Optional

from worldcup_sim.models import PlayoffSelection, Team, with_identity
from worldcup_sim.reference import get_playoff_slot, load_playoff_slots, team_name


def empty_playoff_selection() -> PlayoffSelection:
    return {slot.id: None for slot in load_playoff_slots()}


def normalize_playoff_selection(raw: Optional[Mapping[str, Optional[str]]]) -> PlayoffSelection:
    """Every slot key present, unknown keys dropped, blanks become None."""
    selection = empty_playoff_selection()
    for slot_id, team_id in (raw or {}).items():
        if slot_id in selection:
            selection[slot_id] = team_id or None
    return selection


def resolve_playoff_team(team: Team, selection: Optional[Mapping[str, Optional[str]]]) -> Team:
    """
    Swap a playoff placeholder for the candidate picked in ``selection``.

    Teams without a playoff slot come back unchanged. Without a valid pick
    the placeholder keeps its identity and loses its flag. The display
    name is left alone; callers resolve it by id.
    """
    if not team.playoff_slot_id:
        return team

    selected_id = (selection or {}).get(team.playoff_slot_id)
    slot = get_playoff_slot(team.playoff_slot_id)
    winner = None
    if slot is not None and selected_id:
        winner = next((c for c in slot.candidates if c.id == selected_id), None)

    if winner is None:
        return replace(team, flag_code=None)
    return with_identity(team, winner.id, winner.flag_code)


class PlayoffResolver:
    """TeamResolver backed by a playoff selection; also fills in display names."""

    def __init__(self, selection: Optional[Mapping[str, Optional[str]]] = None):
        self.selection = normalize_playoff_selection(selection)

    def resolve(self, team: Team) -> Team:
        resolved = resolve_playoff_team(team, self.selection)
        if resolved.id == team.id:
            return resolved
        return replace(resolved, name=team_name(resolved.id, resolved.name))
