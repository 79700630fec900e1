# repositories/base_repo.py
from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

from db.pool import DbPool


class RepoError(Exception):
    pass


def to_json(v: Any) -> str | None:
    if v is None:
        return None
    return json.dumps(v, separators=(",", ":"), ensure_ascii=False)


def from_json(v: Any) -> Any:
    """JSON columns come back as str (MySQL) or already decoded (some drivers)."""
    if v is None:
        return None
    if isinstance(v, (bytes, bytearray)):
        v = v.decode("utf-8")
    if isinstance(v, str):
        try:
            return json.loads(v)
        except json.JSONDecodeError as e:
            raise RepoError(f"Corrupt JSON column: {e}") from e
    return v


class BaseRepo:
    """
    Thin SQL helpers so concrete repos stay readable.
    Repos hold no tournament rules and no Discord logic.
    """

    def __init__(self, db: DbPool) -> None:
        self._db = db

    async def fetch_one(self, sql: str, params: Sequence[Any] | None = None) -> Mapping[str, Any] | None:
        async with self._db.cursor() as cur:
            await cur.execute(sql, params or ())
            return await cur.fetchone()

    async def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[Mapping[str, Any]]:
        async with self._db.cursor() as cur:
            await cur.execute(sql, params or ())
            rows = await cur.fetchall()
            return list(rows or [])

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        async with self._db.transaction(dict_rows=False) as cur:
            await cur.execute(sql, params or ())
            return cur.rowcount
