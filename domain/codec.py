# domain/codec.py
from __future__ import annotations

from typing import Any, Mapping, Optional

from domain.enums import BalanceStrategy, BracketFormat, BracketStatus, MatchStatus, RoundStatus
from domain.models import Bracket, Match, Player, Round, Team, TeamSet, num_rounds_for

SCHEMA_VERSION = 1


class CodecError(ValueError):
    pass


# -------------------------
# Encoding
# -------------------------

def player_to_dict(p: Player) -> dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "dota2id": p.dota2id,
        "peakmmr": p.mmr,
        "discord_id": p.discord_id,
    }


def team_to_dict(t: Team) -> dict[str, Any]:
    return {
        "id": t.id,
        "team_number": t.team_number,
        "name": t.name,
        "players": [player_to_dict(p) for p in t.players],
        "total_mmr": t.total_mmr,
        "average_mmr": t.average_mmr,
    }


def _team_ref(t: Optional[Team]) -> Optional[str]:
    return t.id if t is not None else None


def bracket_to_dict(b: Bracket) -> dict[str, Any]:
    """
    Plain JSON-safe dict. Matches hold team ids; full teams live once under "teams".
    """
    return {
        "schema_version": SCHEMA_VERSION,
        "id": b.id,
        "team_set_id": b.team_set_id,
        "name": b.name,
        "description": b.description,
        "format": b.format.value,
        "teams": [team_to_dict(t) for t in b.teams],
        "rounds": [
            {
                "round": r.round,
                "name": r.name,
                "status": r.status.value,
                "matches": [
                    {
                        "id": m.id,
                        "round": m.round,
                        "team1": _team_ref(m.team1),
                        "team2": _team_ref(m.team2),
                        "winner": _team_ref(m.winner),
                        "status": m.status.value,
                    }
                    for m in r.matches
                ],
            }
            for r in b.rounds
        ],
        "current_round": b.current_round,
        "status": b.status.value,
        "winner": _team_ref(b.winner),
        "version": b.version,
        "created_at": b.created_at,
    }


def team_set_to_dict(ts: TeamSet) -> dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "id": ts.id,
        "tournament_id": ts.tournament_id,
        "strategy": ts.strategy.value,
        "teams": [team_to_dict(t) for t in ts.teams],
        "reserves": [player_to_dict(p) for p in ts.reserves],
        "total_players": ts.total_players,
        "average_mmr": ts.average_mmr,
        "created_at": ts.created_at,
    }


# -------------------------
# Decoding (validated)
# -------------------------

def _require(d: Mapping[str, Any], key: str, where: str) -> Any:
    if not isinstance(d, Mapping):
        raise CodecError(f"{where}: expected an object, got {type(d).__name__}")
    if key not in d:
        raise CodecError(f"{where}: missing key {key!r}")
    return d[key]


def _enum(enum_cls, value: Any, where: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise CodecError(f"{where}: invalid {enum_cls.__name__} {value!r}") from e


def _int(value: Any, where: str) -> int:
    if isinstance(value, bool):
        raise CodecError(f"{where}: expected int, got bool")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise CodecError(f"{where}: expected int, got {value!r}") from e


def _check_version(d: Mapping[str, Any], where: str) -> None:
    version = _int(_require(d, "schema_version", where), f"{where}.schema_version")
    if version != SCHEMA_VERSION:
        raise CodecError(f"{where}: unsupported schema_version {version} (expected {SCHEMA_VERSION})")


def player_from_dict(d: Mapping[str, Any]) -> Player:
    _require(d, "id", "player")
    try:
        return Player.from_row(d)
    except KeyError as e:
        raise CodecError(f"player: missing key {e.args[0]!r}") from e


def team_from_dict(d: Mapping[str, Any]) -> Team:
    number = _int(_require(d, "team_number", "team"), "team.team_number")
    players = _require(d, "players", "team")
    if not isinstance(players, list):
        raise CodecError("team.players: expected a list")
    return Team(
        team_number=number,
        players=tuple(player_from_dict(p) for p in players),
        name=str(d.get("name") or ""),
        id=str(d.get("id") or ""),
    )


def team_set_from_dict(d: Mapping[str, Any]) -> TeamSet:
    _check_version(d, "team_set")
    teams = _require(d, "teams", "team_set")
    reserves = d.get("reserves") or []
    if not isinstance(teams, list) or not isinstance(reserves, list):
        raise CodecError("team_set: teams and reserves must be lists")
    return TeamSet(
        id=str(_require(d, "id", "team_set")),
        tournament_id=str(_require(d, "tournament_id", "team_set")),
        strategy=_enum(BalanceStrategy, _require(d, "strategy", "team_set"), "team_set.strategy"),
        teams=tuple(team_from_dict(t) for t in teams),
        reserves=tuple(player_from_dict(p) for p in reserves),
        created_at=str(d.get("created_at") or ""),
    )


def bracket_from_dict(d: Mapping[str, Any]) -> Bracket:
    _check_version(d, "bracket")

    raw_teams = _require(d, "teams", "bracket")
    if not isinstance(raw_teams, list):
        raise CodecError("bracket.teams: expected a list")
    teams = [team_from_dict(t) for t in raw_teams]
    by_id: dict[str, Team] = {}
    for t in teams:
        if t.id in by_id:
            raise CodecError(f"bracket.teams: duplicate team id {t.id!r}")
        by_id[t.id] = t

    def resolve(ref: Any, where: str) -> Optional[Team]:
        if ref is None:
            return None
        # tolerate embedded team objects from older blobs
        key = str(ref.get("id")) if isinstance(ref, Mapping) else str(ref)
        team = by_id.get(key)
        if team is None:
            raise CodecError(f"{where}: unknown team reference {key!r}")
        return team

    raw_rounds = _require(d, "rounds", "bracket")
    if not isinstance(raw_rounds, list):
        raise CodecError("bracket.rounds: expected a list")

    rounds: list[Round] = []
    for expected_no, rd in enumerate(raw_rounds, start=1):
        where = f"bracket.rounds[{expected_no - 1}]"
        round_no = _int(_require(rd, "round", where), f"{where}.round")
        if round_no != expected_no:
            raise CodecError(f"{where}: expected round {expected_no}, got {round_no}")

        matches: list[Match] = []
        for i, md in enumerate(_require(rd, "matches", where) or []):
            mwhere = f"{where}.matches[{i}]"
            m = Match(
                id=str(_require(md, "id", mwhere)),
                round=_int(md.get("round", round_no), f"{mwhere}.round"),
                team1=resolve(md.get("team1"), f"{mwhere}.team1"),
                team2=resolve(md.get("team2"), f"{mwhere}.team2"),
                winner=resolve(md.get("winner"), f"{mwhere}.winner"),
                status=_enum(MatchStatus, _require(md, "status", mwhere), f"{mwhere}.status"),
            )
            if m.round != round_no:
                raise CodecError(f"{mwhere}: match round {m.round} does not match round {round_no}")
            if m.winner is not None and m.winner not in (m.team1, m.team2):
                raise CodecError(f"{mwhere}: winner is not one of the match teams")
            matches.append(m)

        rounds.append(
            Round(
                round=round_no,
                name=str(rd.get("name") or f"Round {round_no}"),
                matches=matches,
                status=_enum(RoundStatus, _require(rd, "status", where), f"{where}.status"),
            )
        )

    expected_rounds = num_rounds_for(len(teams))
    if len(rounds) != expected_rounds:
        raise CodecError(f"bracket.rounds: {len(teams)} teams need {expected_rounds} rounds, got {len(rounds)}")

    return Bracket(
        id=str(_require(d, "id", "bracket")),
        name=str(_require(d, "name", "bracket")),
        teams=teams,
        rounds=rounds,
        team_set_id=str(d["team_set_id"]) if d.get("team_set_id") is not None else None,
        description=str(d.get("description") or ""),
        format=_enum(BracketFormat, d.get("format", BracketFormat.SINGLE.value), "bracket.format"),
        current_round=_int(d.get("current_round", 1), "bracket.current_round"),
        status=_enum(BracketStatus, _require(d, "status", "bracket"), "bracket.status"),
        winner=resolve(d.get("winner"), "bracket.winner"),
        version=_int(d.get("version", 0), "bracket.version"),
        created_at=str(d.get("created_at") or ""),
    )
