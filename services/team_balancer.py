# services/team_balancer.py
from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from domain.enums import BalanceStrategy
from domain.models import Player, Team, TeamSet


class TeamBalancerError(Exception):
    pass


class InsufficientPlayersError(TeamBalancerError):
    pass


class InvalidTeamShapeError(TeamBalancerError):
    pass


class UnknownStrategyError(TeamBalancerError):
    pass


Groups = list[list[Player]]
StrategyFn = Callable[[Sequence[Player], int, int, random.Random], tuple[Groups, list[Player]]]


@dataclass(frozen=True)
class BalanceResult:
    strategy: BalanceStrategy
    teams: list[Team]
    reserves: list[Player]


def _sorted_by_mmr(players: Sequence[Player]) -> list[Player]:
    # stable: equal MMR keeps input order
    return sorted(players, key=lambda p: p.mmr, reverse=True)


def _split_pool(players: Sequence[Player], num_teams: int, team_size: int) -> tuple[list[Player], list[Player]]:
    ranked = _sorted_by_mmr(players)
    cap = num_teams * team_size
    return ranked[:cap], ranked[cap:]


def _empty_groups(num_teams: int) -> Groups:
    return [[] for _ in range(num_teams)]


# -------------------------
# Strategies
# -------------------------

def high_ranked(
    players: Sequence[Player], num_teams: int, team_size: int, rng: random.Random
) -> tuple[Groups, list[Player]]:
    """
    One player per skill band per team.

    Tier k holds ranks [k*num_teams, (k+1)*num_teams); each tier is shuffled
    and slot t goes to team t.
    """
    pool, reserves = _split_pool(players, num_teams, team_size)
    teams = _empty_groups(num_teams)

    for k in range(team_size):
        tier = pool[k * num_teams : (k + 1) * num_teams]
        rng.shuffle(tier)
        for t, player in enumerate(tier):
            teams[t].append(player)

    return teams, reserves


def perfect_mmr(
    players: Sequence[Player], num_teams: int, team_size: int, rng: random.Random
) -> tuple[Groups, list[Player]]:
    """
    Greedy: strongest remaining player joins the non-full team with the lowest
    running MMR total. Ties go to the lowest team index. Ignores rng.
    """
    pool, reserves = _split_pool(players, num_teams, team_size)
    teams = _empty_groups(num_teams)
    totals = [0] * num_teams

    for player in pool:
        open_teams = [i for i in range(num_teams) if len(teams[i]) < team_size]
        target = min(open_teams, key=lambda i: totals[i])
        teams[target].append(player)
        totals[target] += player.mmr

    return teams, reserves


def high_low_shuffle(
    players: Sequence[Player], num_teams: int, team_size: int, rng: random.Random
) -> tuple[Groups, list[Player]]:
    """
    Every team gets one high and one low player, a shuffled middle fills the rest.

    The pool is cut into a guaranteed top 40%, a guaranteed bottom 40% and a
    flexible band that takes whatever the floors leave over.
    """
    pool, reserves = _split_pool(players, num_teams, team_size)
    size = len(pool)

    top_count = size * 2 // 5
    bottom_count = size * 2 // 5
    flex_quota = size - top_count - bottom_count

    top = pool[:top_count]
    bottom = pool[size - bottom_count :] if bottom_count else []
    flex = pool[top_count : size - bottom_count]
    rng.shuffle(flex)
    reserves = flex[flex_quota:] + reserves

    assignable = _sorted_by_mmr(top + flex[:flex_quota] + bottom)

    high = assignable[:num_teams]
    if team_size >= 2:
        low = assignable[len(assignable) - num_teams :]
        mid = assignable[num_teams : len(assignable) - num_teams]
    else:
        low, mid = [], []

    rng.shuffle(high)
    rng.shuffle(low)
    rng.shuffle(mid)

    teams = _empty_groups(num_teams)
    for t in range(num_teams):
        if high:
            teams[t].append(high.pop(0))
        if low:
            teams[t].append(low.pop(0))

    # round-robin over teams that still have room
    i = 0
    while i < len(mid):
        progressed = False
        for team in teams:
            if i >= len(mid):
                break
            if len(team) < team_size:
                team.append(mid[i])
                i += 1
                progressed = True
        if not progressed:
            reserves.extend(mid[i:])
            break

    return teams, reserves


def random_teams(
    players: Sequence[Player], num_teams: int, team_size: int, rng: random.Random
) -> tuple[Groups, list[Player]]:
    shuffled = list(players)
    rng.shuffle(shuffled)
    cap = num_teams * team_size

    teams = _empty_groups(num_teams)
    for i, player in enumerate(shuffled[:cap]):
        teams[i % num_teams].append(player)

    return teams, shuffled[cap:]


STRATEGIES: dict[BalanceStrategy, StrategyFn] = {
    BalanceStrategy.HIGH_RANKED: high_ranked,
    BalanceStrategy.PERFECT_MMR: perfect_mmr,
    BalanceStrategy.HIGH_LOW_SHUFFLE: high_low_shuffle,
    BalanceStrategy.RANDOM: random_teams,
}


# -------------------------
# Public API
# -------------------------

def parse_strategy(value: BalanceStrategy | str) -> BalanceStrategy:
    if isinstance(value, BalanceStrategy):
        return value
    try:
        return BalanceStrategy(str(value).strip())
    except ValueError as e:
        valid = ", ".join(s.value for s in BalanceStrategy)
        raise UnknownStrategyError(f"Unknown balance strategy {value!r} (expected one of: {valid})") from e


def validate_shape(player_count: int, num_teams: int, team_size: int) -> None:
    if int(num_teams) < 2:
        raise InvalidTeamShapeError("num_teams must be >= 2")
    if int(team_size) < 1:
        raise InvalidTeamShapeError("team_size must be >= 1")
    needed = int(num_teams) * int(team_size)
    if player_count < needed:
        raise InsufficientPlayersError(
            f"Need {needed} players for {num_teams} teams of {team_size}, only {player_count} present."
        )


def format_teams(groups: Sequence[Sequence[Player]]) -> list[Team]:
    """Number teams from 1 and give them default names/ids."""
    return [Team(team_number=i, players=tuple(g)) for i, g in enumerate(groups, start=1)]


def balance(
    strategy: BalanceStrategy | str,
    players: Sequence[Player],
    num_teams: int,
    team_size: int,
    *,
    rng: Optional[random.Random] = None,
) -> BalanceResult:
    strat = parse_strategy(strategy)
    validate_shape(len(players), num_teams, team_size)

    groups, reserves = STRATEGIES[strat](list(players), int(num_teams), int(team_size), rng or random.Random())
    return BalanceResult(strategy=strat, teams=format_teams(groups), reserves=list(reserves))


def build_team_set(
    result: BalanceResult,
    *,
    tournament_id: str,
    team_set_id: str | None = None,
) -> TeamSet:
    return TeamSet(
        id=team_set_id or f"teams_{uuid.uuid4().hex[:12]}",
        tournament_id=str(tournament_id),
        strategy=result.strategy,
        teams=tuple(result.teams),
        reserves=tuple(result.reserves),
    )
