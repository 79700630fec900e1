# repositories/bracket_repo.py
from __future__ import annotations

import logging
from typing import Optional

import aiomysql

from domain.codec import bracket_from_dict, bracket_to_dict
from domain.models import Bracket
from repositories.base_repo import BaseRepo, RepoError, from_json, to_json

log = logging.getLogger(__name__)


class BracketExistsError(RepoError):
    pass


class StaleBracketError(RepoError):
    """Someone else saved this bracket since it was loaded."""


class BracketRepo(BaseRepo):
    """
    One bracket per tournament, stored as a validated JSON blob.

    Writes are guarded by the version column: save() only succeeds when the
    stored version still equals bracket.version, then bumps both.
    """

    async def load(self, *, tournament_id: str) -> Optional[Bracket]:
        row = await self.fetch_one(
            "SELECT bracket_json, version FROM tournament_bracket WHERE tournament_id=%s;",
            (str(tournament_id),),
        )
        if not row:
            return None
        bracket = bracket_from_dict(from_json(row["bracket_json"]))
        # column is the source of truth for the version token
        bracket.version = int(row["version"])
        return bracket

    async def create(self, *, tournament_id: str, bracket: Bracket) -> None:
        try:
            await self.execute(
                """
                INSERT INTO tournament_bracket
                  (tournament_id, bracket_id, team_set_id, status, bracket_json, version)
                VALUES
                  (%s, %s, %s, %s, %s, %s);
                """,
                (
                    str(tournament_id),
                    bracket.id,
                    bracket.team_set_id,
                    bracket.status.value,
                    to_json(bracket_to_dict(bracket)),
                    bracket.version,
                ),
            )
        except aiomysql.IntegrityError as e:
            raise BracketExistsError(f"A bracket already exists for tournament {tournament_id}.") from e

    async def save(self, *, tournament_id: str, bracket: Bracket) -> None:
        expected = bracket.version
        bracket.version = expected + 1
        try:
            changed = await self.execute(
                """
                UPDATE tournament_bracket
                SET status=%s,
                    bracket_json=%s,
                    version=version + 1,
                    updated_at=NOW(6)
                WHERE tournament_id=%s AND version=%s;
                """,
                (bracket.status.value, to_json(bracket_to_dict(bracket)), str(tournament_id), expected),
            )
        except Exception:
            bracket.version = expected
            raise

        if changed == 0:
            bracket.version = expected
            log.warning("Stale bracket write for tournament %s at version %s", tournament_id, expected)
            raise StaleBracketError(f"Bracket for tournament {tournament_id} changed since version {expected}.")

    async def delete(self, *, tournament_id: str) -> int:
        return await self.execute(
            "DELETE FROM tournament_bracket WHERE tournament_id=%s;",
            (str(tournament_id),),
        )
