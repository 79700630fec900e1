# domain/models.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, Optional, Sequence

from domain.enums import BalanceStrategy, BracketFormat, BracketStatus, MatchStatus, RoundStatus


def ensure_numeric_mmr(value: Any) -> int:
    """
    MMR as a non-negative int.
    None / garbage => 0, "4200" => 4200, 4200.9 => 4200.
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        mmr = int(value)
    except (TypeError, ValueError):
        try:
            mmr = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0
    return max(0, mmr)


def total_mmr(players: Sequence["Player"]) -> int:
    return sum(p.mmr for p in players)


def average_mmr(players: Sequence["Player"]) -> int:
    if not players:
        return 0
    return int(round(total_mmr(players) / len(players)))


def match_id(round_no: int, index: int) -> str:
    return f"match_r{int(round_no)}_{int(index)}"


def round_name(round_no: int, num_rounds: int) -> str:
    if round_no == num_rounds:
        return "Final"
    if round_no == num_rounds - 1:
        return "Semi-Final"
    return f"Round {round_no}"


def num_rounds_for(team_count: int) -> int:
    if team_count < 2:
        return 0
    return math.ceil(math.log2(team_count))


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    dota2id: str = ""
    peakmmr: int = 0
    discord_id: Optional[str] = None

    @property
    def mmr(self) -> int:
        return ensure_numeric_mmr(self.peakmmr)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Player":
        discord_id = row.get("discord_id", row.get("discordid"))
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or row["id"]),
            dota2id=str(row.get("dota2id") or ""),
            peakmmr=ensure_numeric_mmr(row.get("peakmmr")),
            discord_id=str(discord_id) if discord_id not in (None, "") else None,
        )


@dataclass(frozen=True)
class Team:
    team_number: int
    players: tuple[Player, ...]
    name: str = ""
    id: str = ""

    def __post_init__(self) -> None:
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "players", tuple(self.players))
        if not self.name:
            object.__setattr__(self, "name", f"Team {self.team_number}")
        if not self.id:
            object.__setattr__(self, "id", f"team_{self.team_number}")

    @property
    def total_mmr(self) -> int:
        return total_mmr(self.players)

    @property
    def average_mmr(self) -> int:
        return average_mmr(self.players)


@dataclass(frozen=True)
class TeamSet:
    """
    One balancing run: the teams, who sat out, and how they were made.
    """

    id: str
    tournament_id: str
    strategy: BalanceStrategy
    teams: tuple[Team, ...]
    reserves: tuple[Player, ...] = ()
    created_at: str = field(default_factory=utcnow_iso)

    @property
    def total_players(self) -> int:
        return sum(len(t.players) for t in self.teams)

    @property
    def average_mmr(self) -> int:
        return average_mmr([p for t in self.teams for p in t.players])


@dataclass
class Match:
    id: str
    round: int
    team1: Optional[Team] = None
    team2: Optional[Team] = None
    winner: Optional[Team] = None
    status: MatchStatus = MatchStatus.WAITING

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    @property
    def is_full(self) -> bool:
        return self.team1 is not None and self.team2 is not None

    def team_by_id(self, team_id: str) -> Optional[Team]:
        for t in (self.team1, self.team2):
            if t is not None and t.id == team_id:
                return t
        return None


@dataclass
class Round:
    round: int
    name: str
    matches: list[Match] = field(default_factory=list)
    status: RoundStatus = RoundStatus.WAITING

    def find_match(self, match_id_: str) -> Optional[Match]:
        return next((m for m in self.matches if m.id == match_id_), None)

    @property
    def all_decided(self) -> bool:
        return bool(self.matches) and all(m.is_decided for m in self.matches)

    @property
    def is_playable(self) -> bool:
        return bool(self.matches) and all(m.is_full or m.status == MatchStatus.BYE for m in self.matches)


@dataclass
class Bracket:
    id: str
    name: str
    teams: list[Team]
    rounds: list[Round] = field(default_factory=list)
    team_set_id: Optional[str] = None
    description: str = ""
    format: BracketFormat = BracketFormat.SINGLE
    current_round: int = 1
    status: BracketStatus = BracketStatus.CREATED
    winner: Optional[Team] = None
    version: int = 0
    created_at: str = field(default_factory=utcnow_iso)

    def get_round(self, round_no: int) -> Optional[Round]:
        return next((r for r in self.rounds if r.round == round_no), None)

    def iter_matches(self) -> Iterator[Match]:
        for r in self.rounds:
            yield from r.matches

    def team_by_id(self, team_id: str) -> Optional[Team]:
        return next((t for t in self.teams if t.id == team_id), None)

    @property
    def has_results(self) -> bool:
        return any(m.status == MatchStatus.COMPLETED for m in self.iter_matches())
