# db/pool.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiomysql

from config import MySqlConfig

log = logging.getLogger(__name__)


class DbPool:
    """
    Owns the aiomysql pool for the bot's lifetime.
    - start() once in setup_hook
    - repositories borrow cursors via cursor() / transaction()
    - close() on shutdown
    """

    def __init__(self) -> None:
        self._pool: Optional[aiomysql.Pool] = None

    @property
    def pool(self) -> aiomysql.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call await DbPool.start() first.")
        return self._pool

    @property
    def started(self) -> bool:
        return self._pool is not None

    async def start(self, cfg: MySqlConfig) -> None:
        if self._pool is not None:
            return

        log.info("Connecting to MySQL %s:%s/%s (pool %s..%s)", cfg.host, cfg.port, cfg.database, cfg.minsize, cfg.maxsize)
        self._pool = await aiomysql.create_pool(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            db=cfg.database,
            minsize=cfg.minsize,
            maxsize=cfg.maxsize,
            connect_timeout=cfg.connect_timeout,
            autocommit=True,
            charset="utf8mb4",
        )
        await self.ping()

    async def ping(self) -> None:
        async with self.cursor(dict_rows=False) as cur:
            await cur.execute("SELECT 1;")
            await cur.fetchone()

    @asynccontextmanager
    async def cursor(self, *, dict_rows: bool = True) -> AsyncIterator[aiomysql.Cursor]:
        """Single autocommit statement(s) on a pooled connection."""
        cursor_cls = aiomysql.DictCursor if dict_rows else aiomysql.Cursor
        async with self.pool.acquire() as conn:
            async with conn.cursor(cursor_cls) as cur:
                yield cur

    @asynccontextmanager
    async def transaction(self, *, dict_rows: bool = True) -> AsyncIterator[aiomysql.Cursor]:
        """
        Explicit BEGIN/COMMIT; rolls back and re-raises on any exception.

            async with db.transaction() as cur:
                await cur.execute(...)
        """
        cursor_cls = aiomysql.DictCursor if dict_rows else aiomysql.Cursor
        async with self.pool.acquire() as conn:
            await conn.begin()
            try:
                async with conn.cursor(cursor_cls) as cur:
                    yield cur
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def close(self) -> None:
        if self._pool is None:
            return
        self._pool.close()
        await self._pool.wait_closed()
        self._pool = None
        log.info("MySQL pool closed")
