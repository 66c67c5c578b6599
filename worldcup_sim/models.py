from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Literal, Optional, Protocol, Tuple, Union

Tier = Literal["S", "A", "B", "C", "D"]
Side = Literal["home", "away"]
WinnerSide = Optional[Literal["home", "away", "draw"]]
WinnerDecision = Optional[Literal["90", "ET", "PEN"]]
PredictionMode = Literal["basic", "favorites", "crazy"]

STAGES = (
    "groups",
    "roundOf32",
    "roundOf16",
    "quarters",
    "semis",
    "thirdPlace",
    "final",
    "champion",
)

ROUND_OF_32 = "Round of 32"
ROUND_OF_16 = "Round of 16"
QUARTERFINAL = "Quarterfinal"
SEMIFINAL = "Semifinal"
FINAL = "Final"
THIRD_PLACE = "Third place"
ROUNDS = (ROUND_OF_32, ROUND_OF_16, QUARTERFINAL, SEMIFINAL, FINAL, THIRD_PLACE)


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    group_id: str
    flag_code: Optional[str] = None
    is_playoff: bool = False
    playoff_slot_id: Optional[str] = None

    @property
    def is_unresolved(self) -> bool:
        """True while a playoff placeholder still carries its slot identity."""
        return self.is_playoff and self.id == placeholder_team_id(self.playoff_slot_id)


def placeholder_team_id(slot_id: Optional[str]) -> str:
    return f"{slot_id}_WINNER"


@dataclass(frozen=True)
class Group:
    id: str
    teams: Tuple[Team, ...]


@dataclass(frozen=True)
class PlayoffCandidate:
    id: str
    name: str
    flag_code: str


@dataclass(frozen=True)
class PlayoffSlot:
    id: str
    candidates: Tuple[PlayoffCandidate, ...]


@dataclass
class GroupMatch:
    id: str
    group_id: str
    home_team_id: str
    away_team_id: str
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None

    @property
    def is_played(self) -> bool:
        return self.home_goals is not None and self.away_goals is not None


@dataclass
class StandingRow:
    team: Team
    played: int = 0
    points: int = 0
    gf: int = 0
    ga: int = 0
    gd: int = 0


@dataclass(frozen=True)
class GroupSource:
    label: str


@dataclass(frozen=True)
class AdvanceSource:
    outcome: Literal["winner", "loser"]
    match_id: int


TeamSource = Union[GroupSource, AdvanceSource]


@dataclass(frozen=True)
class KnockoutMatch:
    id: int
    round: str
    home: TeamSource
    away: TeamSource
    fifa_match: Optional[int] = None


@dataclass
class KnockoutScore:
    home90: Optional[int] = None
    away90: Optional[int] = None
    home_et: Optional[int] = None
    away_et: Optional[int] = None
    home_pens: Optional[int] = None
    away_pens: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (
                self.home90,
                self.away90,
                self.home_et,
                self.away_et,
                self.home_pens,
                self.away_pens,
            )
        )


@dataclass(frozen=True)
class ResolvedSlot:
    name: str
    team_id: Optional[str] = None
    flag_code: Optional[str] = None
    is_placeholder: bool = True


@dataclass
class KnockoutMatchResult:
    match_id: int
    home_team_id: Optional[str] = None
    away_team_id: Optional[str] = None
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None
    winner_team_id: Optional[str] = None


GroupMatchesState = Dict[str, List[GroupMatch]]
PlayoffSelection = Dict[str, Optional[str]]
KnockoutState = Dict[int, KnockoutMatchResult]
KnockoutScores = Dict[int, KnockoutScore]


class TeamResolver(Protocol):
    def resolve(self, team: Team) -> Team:
        ...


class IdentityResolver:
    def resolve(self, team: Team) -> Team:
        return team


@dataclass(frozen=True)
class EliminatedBy:
    team_id: str
    tier: Tier
    goal_diff: int


@dataclass
class Elimination:
    eliminated: bool = False
    eliminated_in: Optional[str] = None
    eliminated_by: Optional[EliminatedBy] = None


@dataclass(frozen=True)
class Scalp:
    team_id: str
    tier: Tier
    stage: str


@dataclass
class TeamTournamentStats:
    team: Team
    group_id: str
    tier: Tier
    stage_reached: str = "groups"
    elimination: Elimination = field(default_factory=Elimination)
    scalps: List[Scalp] = field(default_factory=list)
    group_position: Optional[int] = None
    group_strength: int = 0
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_diff: int = 0
    points: int = 0


@dataclass
class TournamentAwards:
    revelation: Optional[TeamTournamentStats] = None
    disappointment: Optional[TeamTournamentStats] = None
    worst: Optional[TeamTournamentStats] = None
    top_scoring: Optional[TeamTournamentStats] = None


def with_identity(team: Team, team_id: str, flag_code: Optional[str]) -> Team:
    return replace(team, id=team_id, flag_code=flag_code)
