# services/bracket_state.py
from __future__ import annotations

from domain.enums import BracketStatus, MatchStatus, RoundStatus
from domain.models import Bracket, Match, Round, Team
from services.bracket_builder import BracketError, place_team


class BracketStateError(BracketError):
    pass


class RoundNotFoundError(BracketStateError):
    pass


class MatchNotFoundError(BracketStateError):
    pass


class AlreadyDecidedError(BracketStateError):
    pass


class InvalidWinnerError(BracketStateError):
    pass


class MatchNotReadyError(BracketStateError):
    pass


def _locate(bracket: Bracket, round_no: int, match_id: str) -> tuple[Round, Match]:
    rnd = bracket.get_round(int(round_no))
    if rnd is None:
        raise RoundNotFoundError(f"Round {round_no} does not exist in bracket {bracket.id}.")

    match = rnd.find_match(str(match_id))
    if match is None:
        raise MatchNotFoundError(f"Match {match_id} not found in round {round_no}.")
    return rnd, match


def _resolve_winner(match: Match, winner_team_id: str) -> Team:
    if match.is_decided or match.status in (MatchStatus.COMPLETED, MatchStatus.BYE):
        raise AlreadyDecidedError(f"Match {match.id} already has a winner.")
    if not match.is_full:
        raise MatchNotReadyError(f"Match {match.id} is still waiting for both teams.")

    winner = match.team_by_id(str(winner_team_id))
    if winner is None:
        raise InvalidWinnerError(
            f"Team {winner_team_id} is not playing in match {match.id} "
            f"(expected {match.team1.id} or {match.team2.id})."
        )
    return winner


def _settle_round(bracket: Bracket, rnd: Round) -> None:
    """
    Close a fully decided round and open the next one.

    Matches in the next round left with a single team become byes and their
    team moves on, which can cascade into further rounds.
    """
    while rnd.all_decided and rnd.status != RoundStatus.COMPLETED:
        rnd.status = RoundStatus.COMPLETED

        nxt = bracket.get_round(rnd.round + 1)
        if nxt is None:
            return
        bracket.current_round = nxt.round

        after = bracket.get_round(nxt.round + 1)
        for m in nxt.matches:
            if m.winner is None and (m.team1 is None) != (m.team2 is None):
                team = m.team1 or m.team2
                if m.team1 is None:
                    m.team1, m.team2 = team, None
                m.winner = team
                m.status = MatchStatus.BYE
                if after is not None:
                    place_team(after, team)
                else:
                    _complete(bracket, team)

        if nxt.status == RoundStatus.WAITING and nxt.is_playable:
            nxt.status = RoundStatus.READY
        rnd = nxt


def _complete(bracket: Bracket, champion: Team) -> None:
    bracket.status = BracketStatus.COMPLETED
    bracket.winner = champion


def record_winner(bracket: Bracket, round_no: int, match_id: str, winner_team_id: str) -> Bracket:
    """
    Record a match result and advance the winner.

    Everything is validated before the bracket is touched, so a raised error
    leaves it exactly as it was.
    """
    rnd, match = _locate(bracket, round_no, match_id)
    winner = _resolve_winner(match, winner_team_id)

    nxt = bracket.get_round(rnd.round + 1)
    if nxt is not None and not any(m.team1 is None or m.team2 is None for m in nxt.matches):
        raise BracketStateError(f"Round {nxt.round} has no open slot for the winner of {match.id}.")

    match.winner = winner
    match.status = MatchStatus.COMPLETED
    if bracket.status == BracketStatus.CREATED:
        bracket.status = BracketStatus.IN_PROGRESS

    if nxt is not None:
        place_team(nxt, winner)
    else:
        rnd.status = RoundStatus.COMPLETED
        _complete(bracket, winner)
        return bracket

    _settle_round(bracket, rnd)
    return bracket
