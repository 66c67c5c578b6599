from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging
import re

import pandas as pd

from worldcup_sim.models import (
    STAGES,
    ROUNDS,
    ROUND_OF_32,
    AdvanceSource,
    Group,
    GroupSource,
    KnockoutMatch,
    PlayoffCandidate,
    PlayoffSlot,
    Team,
    TeamSource,
    Tier,
)

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
REFERENCE_DATA_DIR = PACKAGE_DIR / "reference_data"
GROUPS_PATH = REFERENCE_DATA_DIR / "groups.csv"
PLAYOFF_CANDIDATES_PATH = REFERENCE_DATA_DIR / "playoff_candidates.csv"
KNOCKOUT_MATCHES_PATH = REFERENCE_DATA_DIR / "knockout_matches.csv"
ROUND_OF_32_COMBINATIONS_PATH = REFERENCE_DATA_DIR / "round_of_32_combinations.csv"
TEAM_LEVELS_PATH = REFERENCE_DATA_DIR / "team_levels.csv"

GROUP_IDS = [chr(ord("A") + i) for i in range(12)]
WINNER_SLOTS = ["1A", "1B", "1D", "1E", "1G", "1I", "1K", "1L"]

DEFAULT_TIER: Tier = "C"
DEFAULT_RANK = 40
TIERS = ("S", "A", "B", "C", "D")

_ADVANCE_LABEL = re.compile(r"^(Winner|Loser) Match (\d+)$")
_GROUP_RANK_LABEL = re.compile(r"^([123])([A-L])$")
_THIRD_LIST_LABEL = re.compile(r"^3[A-L](/[A-L])+$")


@dataclass(frozen=True)
class ThirdPlaceOption:
    """One row of the best-third-placed cross-table."""

    option: int
    groups: Tuple[str, ...]
    vs: Dict[str, str]


def _read_csv(path: Path, required: set, what: str) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Missing {what} file: {path}")
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing = required.difference(df.columns)
    if missing:
        raise ValueError(f"{what.capitalize()} file missing columns: {sorted(missing)}")
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    logger.debug("Loaded %d rows from %s", len(df), path.name)
    return df


@lru_cache(maxsize=None)
def load_groups(path: Path = GROUPS_PATH) -> Tuple[Group, ...]:
    df = _read_csv(path, {"group", "team", "name", "flag_code", "playoff_slot"}, "groups")
    if df["team"].duplicated().any():
        dupes = df.loc[df["team"].duplicated(), "team"].unique().tolist()
        raise ValueError(f"Groups file contains duplicate teams: {sorted(dupes)}")
    groups: List[Group] = []
    for group_id, sub in df.groupby("group", sort=True):
        if group_id not in GROUP_IDS:
            raise ValueError(f"Invalid group name in {path}: {group_id}")
        if len(sub) != 4:
            raise ValueError(f"Group {group_id} must have 4 teams")
        teams = tuple(
            Team(
                id=row.team,
                name=row.name or row.team,
                group_id=group_id,
                flag_code=row.flag_code or None,
                is_playoff=bool(row.playoff_slot),
                playoff_slot_id=row.playoff_slot or None,
            )
            for row in sub.itertuples(index=False)
        )
        groups.append(Group(id=group_id, teams=teams))
    return tuple(groups)


@lru_cache(maxsize=None)
def load_playoff_slots(path: Path = PLAYOFF_CANDIDATES_PATH) -> Tuple[PlayoffSlot, ...]:
    df = _read_csv(path, {"slot", "team", "name", "flag_code"}, "playoff candidates")
    slots: Dict[str, List[PlayoffCandidate]] = {}
    for row in df.itertuples(index=False):
        slots.setdefault(row.slot, []).append(
            PlayoffCandidate(id=row.team, name=row.name or row.team, flag_code=row.flag_code)
        )
    return tuple(PlayoffSlot(id=slot_id, candidates=tuple(c)) for slot_id, c in slots.items())


def parse_team_source(label: str) -> TeamSource:
    label = label.strip()
    m = _ADVANCE_LABEL.match(label)
    if m:
        return AdvanceSource(outcome=m.group(1).lower(), match_id=int(m.group(2)))
    if _GROUP_RANK_LABEL.match(label) or _THIRD_LIST_LABEL.match(label):
        return GroupSource(label=label)
    raise ValueError(f"Unrecognized knockout placeholder: {label}")


@lru_cache(maxsize=None)
def load_knockout_matches(path: Path = KNOCKOUT_MATCHES_PATH) -> Tuple[KnockoutMatch, ...]:
    df = _read_csv(path, {"match_id", "stage", "home", "away"}, "knockout matches")
    df["match_id"] = pd.to_numeric(df["match_id"], errors="raise").astype(int)
    if df["match_id"].duplicated().any():
        dupes = df.loc[df["match_id"].duplicated(), "match_id"].unique().tolist()
        raise ValueError(
            "Knockout matches file contains duplicate match_id values: "
            f"{sorted(dupes)}"
        )
    df = df.sort_values("match_id")

    matches: List[KnockoutMatch] = []
    for row in df.itertuples(index=False):
        if row.stage not in ROUNDS:
            raise ValueError(f"Unknown knockout stage for match {row.match_id}: {row.stage}")
        home = parse_team_source(row.home)
        away = parse_team_source(row.away)
        for src in (home, away):
            if isinstance(src, GroupSource) and row.stage != ROUND_OF_32:
                raise ValueError(f"Match {row.match_id} uses a group source after the round of 32")
            if isinstance(src, AdvanceSource):
                if row.stage == ROUND_OF_32:
                    raise ValueError(f"Round-of-32 match {row.match_id} must be group sourced")
                if src.match_id >= row.match_id:
                    raise ValueError(
                        f"Match {row.match_id} references later match {src.match_id}"
                    )
        fifa_match = getattr(row, "fifa_match", "")
        matches.append(
            KnockoutMatch(
                id=int(row.match_id),
                round=row.stage,
                home=home,
                away=away,
                fifa_match=int(fifa_match) if fifa_match else None,
            )
        )
    return tuple(matches)


@lru_cache(maxsize=None)
def load_third_place_table(
    path: Path = ROUND_OF_32_COMBINATIONS_PATH,
) -> Tuple[ThirdPlaceOption, ...]:
    df = _read_csv(path, {"option", "groups", *WINNER_SLOTS}, "round-of-32 combinations")
    options: List[ThirdPlaceOption] = []
    for row in df.to_dict(orient="records"):
        options.append(
            ThirdPlaceOption(
                option=int(row["option"]),
                groups=tuple(row["groups"]),
                vs={slot: row[slot] for slot in WINNER_SLOTS if row[slot]},
            )
        )
    return tuple(options)


@lru_cache(maxsize=None)
def _team_levels(path: Path = TEAM_LEVELS_PATH) -> Tuple[Dict[str, str], Dict[str, int]]:
    df = _read_csv(path, {"team", "tier", "rank"}, "team levels")
    tiers: Dict[str, str] = {}
    ranks: Dict[str, int] = {}
    for row in df.itertuples(index=False):
        if row.tier:
            if row.tier not in TIERS:
                raise ValueError(f"Invalid tier for {row.team}: {row.tier}")
            tiers[row.team] = row.tier
        if row.rank:
            ranks[row.team] = int(row.rank)
    return tiers, ranks


@lru_cache(maxsize=None)
def _team_names() -> Dict[str, str]:
    names = {team.id: team.name for group in load_groups() for team in group.teams}
    for slot in load_playoff_slots():
        for candidate in slot.candidates:
            names[candidate.id] = candidate.name
    return names


def team_tier(team_id: str) -> Tier:
    return _team_levels()[0].get(team_id, DEFAULT_TIER)


def team_rank(team_id: str) -> int:
    """Lower rank = stronger; unknown teams get DEFAULT_RANK."""
    return _team_levels()[1].get(team_id, DEFAULT_RANK)


def team_name(team_id: str, fallback: Optional[str] = None) -> str:
    return _team_names().get(team_id, fallback if fallback is not None else team_id)


def tier_strength(tier: str) -> int:
    return {"S": 5, "A": 4, "B": 3, "C": 2}.get(tier, 1)


def stage_value(stage: Optional[str]) -> int:
    try:
        return STAGES.index(stage)
    except ValueError:
        return 0


def max_stage(a: str, b: str) -> str:
    return b if stage_value(b) > stage_value(a) else a


def get_group(group_id: str) -> Optional[Group]:
    for group in load_groups():
        if group.id == group_id:
            return group
    return None


def get_playoff_slot(slot_id: Optional[str]) -> Optional[PlayoffSlot]:
    for slot in load_playoff_slots():
        if slot.id == slot_id:
            return slot
    return None
