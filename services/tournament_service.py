# services/tournament_service.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Optional

from domain.enums import BalanceStrategy, BracketStatus, RoundStatus
from domain.models import Bracket, Match, Team, TeamSet
from repositories.bracket_repo import BracketExistsError, BracketRepo, StaleBracketError
from repositories.player_repo import PlayerRepo
from repositories.team_set_repo import TeamSetRepo
from services.bracket_builder import build_bracket, reshuffle_bracket
from services.bracket_state import record_winner
from services.team_balancer import InvalidTeamShapeError, balance, build_team_set, parse_strategy
from services.team_set_cache import TeamSetCache

log = logging.getLogger(__name__)


class TournamentServiceError(Exception):
    pass


class TeamSetNotFoundError(TournamentServiceError):
    pass


class BracketNotFoundError(TournamentServiceError):
    pass


class BracketAlreadyExistsError(TournamentServiceError):
    pass


class BracketConflictError(TournamentServiceError):
    pass


@dataclass(frozen=True)
class ReportOutcome:
    bracket: Bracket
    match: Match
    winner: Team
    round_completed: bool
    next_round_ready: bool
    champion: Optional[Team]


class TournamentService:
    """
    Runs the tournament workflow around the pure core:

      roster -> balance -> team set (cache + repo)
      team set -> build bracket -> repo
      load bracket -> record_winner -> save (version checked, retried on conflict)

    This service does NOT format output; renderers do that.
    """

    def __init__(
        self,
        *,
        player_repo: PlayerRepo,
        team_set_repo: TeamSetRepo,
        bracket_repo: BracketRepo,
        team_cache: TeamSetCache,
        max_report_attempts: int = 3,
        max_teams: int = 20,
        rng: Optional[random.Random] = None,
    ) -> None:
        if max_report_attempts < 1:
            raise ValueError("max_report_attempts must be >= 1")
        if max_teams < 2:
            raise ValueError("max_teams must be >= 2")
        self._players = player_repo
        self._team_sets = team_set_repo
        self._brackets = bracket_repo
        self._cache = team_cache
        self._max_attempts = int(max_report_attempts)
        self._max_teams = int(max_teams)
        self._rng = rng

    # -------------------------
    # Teams
    # -------------------------

    async def generate_teams(
        self,
        *,
        tournament_id: str,
        strategy: BalanceStrategy | str,
        num_teams: int,
        team_size: int,
    ) -> TeamSet:
        strat = parse_strategy(strategy)
        if int(num_teams) > self._max_teams:
            raise InvalidTeamShapeError(f"At most {self._max_teams} teams per tournament, got {num_teams}.")
        players = await self._players.list_present_players(tournament_id=tournament_id)

        result = balance(strat, players, num_teams, team_size, rng=self._rng)
        team_set = build_team_set(result, tournament_id=tournament_id)

        self._cache.put(team_set)
        await self._team_sets.save(team_set)

        log.info(
            "Generated %s teams of %s for tournament %s using %s (%s reserves) -> %s",
            num_teams, team_size, tournament_id, strat.value, len(team_set.reserves), team_set.id,
        )
        return team_set

    async def get_team_set(self, *, team_set_id: str) -> TeamSet:
        cached = self._cache.get(team_set_id)
        if cached is not None:
            return cached

        team_set = await self._team_sets.load(team_set_id=team_set_id)
        if team_set is None:
            raise TeamSetNotFoundError(f"Team set not found: {team_set_id}")
        self._cache.put(team_set)
        return team_set

    async def latest_team_set(self, *, tournament_id: str) -> TeamSet:
        team_set = self._cache.latest_for(tournament_id)
        if team_set is None:
            team_set = await self._team_sets.latest_for(tournament_id=tournament_id)
        if team_set is None:
            raise TeamSetNotFoundError(f"No teams generated yet for tournament {tournament_id}.")
        return team_set

    # -------------------------
    # Brackets
    # -------------------------

    async def create_bracket(
        self,
        *,
        tournament_id: str,
        team_set_id: str | None = None,
        name: str,
        description: str = "",
    ) -> Bracket:
        if team_set_id:
            team_set = await self.get_team_set(team_set_id=team_set_id)
        else:
            team_set = await self.latest_team_set(tournament_id=tournament_id)

        if await self._brackets.load(tournament_id=tournament_id) is not None:
            raise BracketAlreadyExistsError(f"Tournament {tournament_id} already has a bracket.")

        bracket = build_bracket(
            team_set.teams,
            name=name,
            description=description,
            team_set_id=team_set.id,
            rng=self._rng,
        )
        try:
            await self._brackets.create(tournament_id=tournament_id, bracket=bracket)
        except BracketExistsError as e:
            raise BracketAlreadyExistsError(str(e)) from e

        log.info(
            "Created bracket %s for tournament %s: %s teams, %s rounds",
            bracket.id, tournament_id, len(bracket.teams), len(bracket.rounds),
        )
        return bracket

    async def create_tournament(
        self,
        *,
        tournament_id: str,
        strategy: BalanceStrategy | str,
        num_teams: int,
        team_size: int,
        name: str,
        description: str = "",
    ) -> tuple[TeamSet, Bracket]:
        """Generate teams and the bracket in one go."""
        team_set = await self.generate_teams(
            tournament_id=tournament_id,
            strategy=strategy,
            num_teams=num_teams,
            team_size=team_size,
        )
        bracket = await self.create_bracket(
            tournament_id=tournament_id,
            team_set_id=team_set.id,
            name=name,
            description=description,
        )
        return team_set, bracket

    async def get_bracket(self, *, tournament_id: str) -> Bracket:
        bracket = await self._brackets.load(tournament_id=tournament_id)
        if bracket is None:
            raise BracketNotFoundError(f"No bracket for tournament {tournament_id}.")
        return bracket

    async def report_winner(
        self,
        *,
        tournament_id: str,
        round_no: int,
        match_id: str,
        winner_team_id: str,
    ) -> ReportOutcome:
        """
        Load, apply, save. A stale save re-reads and re-applies; bracket errors
        (already decided, wrong team, ...) propagate on the first attempt.
        """
        for attempt in range(1, self._max_attempts + 1):
            bracket = await self.get_bracket(tournament_id=tournament_id)
            next_round = bracket.get_round(int(round_no) + 1)
            next_was_ready = next_round is not None and next_round.status != RoundStatus.WAITING

            record_winner(bracket, round_no, match_id, winner_team_id)

            try:
                await self._brackets.save(tournament_id=tournament_id, bracket=bracket)
            except StaleBracketError:
                log.warning(
                    "Bracket for tournament %s changed underneath report (attempt %s/%s)",
                    tournament_id, attempt, self._max_attempts,
                )
                continue

            rnd = bracket.get_round(int(round_no))
            match = rnd.find_match(str(match_id))
            champion = bracket.winner if bracket.status == BracketStatus.COMPLETED else None
            outcome = ReportOutcome(
                bracket=bracket,
                match=match,
                winner=match.winner,
                round_completed=rnd.status == RoundStatus.COMPLETED,
                next_round_ready=(
                    next_round is not None and not next_was_ready and next_round.status == RoundStatus.READY
                ),
                champion=champion,
            )

            log.info(
                "Tournament %s: %s won %s (round %s)%s",
                tournament_id, match.winner.name, match.id, round_no,
                f", champion {champion.name}" if champion else "",
            )
            return outcome

        raise BracketConflictError(
            f"Bracket for tournament {tournament_id} kept changing; gave up after {self._max_attempts} attempts."
        )

    async def reshuffle(self, *, tournament_id: str) -> Bracket:
        bracket = await self.get_bracket(tournament_id=tournament_id)
        reshuffle_bracket(bracket, rng=self._rng)
        try:
            await self._brackets.save(tournament_id=tournament_id, bracket=bracket)
        except StaleBracketError as e:
            raise BracketConflictError(str(e)) from e
        log.info("Reshuffled bracket %s for tournament %s", bracket.id, tournament_id)
        return bracket
