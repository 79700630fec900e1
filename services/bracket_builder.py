# services/bracket_builder.py
from __future__ import annotations

import random
import uuid
from typing import Optional, Sequence

from domain.enums import BracketStatus, MatchStatus, RoundStatus
from domain.models import Bracket, Match, Round, Team, match_id, num_rounds_for, round_name


class BracketError(Exception):
    pass


class BracketBuildError(BracketError):
    pass


class InvalidBracketSizeError(BracketBuildError):
    pass


class DuplicateTeamError(BracketBuildError):
    pass


class BracketLockedError(BracketBuildError):
    pass


def place_team(rnd: Round, team: Team) -> Match:
    """
    First match with an empty team1 slot, else first with an empty team2 slot.
    A match that becomes full turns pending; the round turns ready once playable.
    """
    target = next((m for m in rnd.matches if m.team1 is None), None)
    if target is not None:
        target.team1 = team
    else:
        target = next((m for m in rnd.matches if m.team2 is None), None)
        if target is None:
            raise BracketBuildError(f"No open slot in round {rnd.round} for {team.name}.")
        target.team2 = team

    if target.is_full and target.status == MatchStatus.WAITING:
        target.status = MatchStatus.PENDING
    if rnd.status == RoundStatus.WAITING and rnd.is_playable:
        rnd.status = RoundStatus.READY
    return target


def _build_rounds(seeded: Sequence[Team]) -> list[Round]:
    num_rounds = num_rounds_for(len(seeded))

    first: list[Match] = []
    for i in range(0, len(seeded), 2):
        idx = i // 2 + 1
        if i + 1 < len(seeded):
            first.append(Match(id=match_id(1, idx), round=1, team1=seeded[i], team2=seeded[i + 1], status=MatchStatus.PENDING))
        else:
            first.append(Match(id=match_id(1, idx), round=1, team1=seeded[i], winner=seeded[i], status=MatchStatus.BYE))

    rounds = [Round(round=1, name=round_name(1, num_rounds), matches=first, status=RoundStatus.READY)]
    for r in range(2, num_rounds + 1):
        count = 2 ** (num_rounds - r)
        rounds.append(
            Round(
                round=r,
                name=round_name(r, num_rounds),
                matches=[Match(id=match_id(r, i), round=r) for i in range(1, count + 1)],
                status=RoundStatus.WAITING,
            )
        )

    # bye winners are known up front: seat them in round 2 now
    if len(rounds) > 1:
        for m in first:
            if m.status == MatchStatus.BYE and m.winner is not None:
                place_team(rounds[1], m.winner)

    return rounds


def _validate_teams(teams: Sequence[Team]) -> None:
    if len(teams) < 2:
        raise InvalidBracketSizeError(f"A bracket needs at least 2 teams, got {len(teams)}.")
    seen: set[str] = set()
    for t in teams:
        if t.id in seen:
            raise DuplicateTeamError(f"Team id {t.id!r} appears more than once.")
        seen.add(t.id)


def build_bracket(
    teams: Sequence[Team],
    *,
    name: str,
    description: str = "",
    team_set_id: str | None = None,
    bracket_id: str | None = None,
    rng: Optional[random.Random] = None,
) -> Bracket:
    """
    Random seeding, single elimination, byes for odd counts.
    """
    _validate_teams(teams)

    seeded = list(teams)
    (rng or random.Random()).shuffle(seeded)

    return Bracket(
        id=bracket_id or f"tournament_{uuid.uuid4().hex[:12]}",
        name=(name or "Dota 2 Tournament").strip(),
        description=(description or "").strip(),
        team_set_id=team_set_id,
        teams=list(teams),
        rounds=_build_rounds(seeded),
        current_round=1,
        status=BracketStatus.CREATED,
    )


def reshuffle_bracket(bracket: Bracket, *, rng: Optional[random.Random] = None) -> Bracket:
    """
    Re-seed a bracket nobody has played in yet. Keeps id, teams and version.
    """
    if bracket.has_results or bracket.status != BracketStatus.CREATED:
        raise BracketLockedError("Cannot reshuffle once a match result has been recorded.")
    _validate_teams(bracket.teams)

    seeded = list(bracket.teams)
    (rng or random.Random()).shuffle(seeded)

    bracket.rounds = _build_rounds(seeded)
    bracket.current_round = 1
    return bracket
