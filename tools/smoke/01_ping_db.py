from __future__ import annotations

import os, sys

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from dotenv import load_dotenv
from config import load_mysql_config
from db.pool import DbPool

# tables from db/schema.sql the bot reads and writes
REQUIRED_TABLES = {
    "players": {"id", "peakmmr", "registration_session_id", "present"},
    "team_set": {"team_set_id", "seq", "tournament_id", "team_set_json"},
    "tournament_bracket": {"tournament_id", "bracket_json", "version"},
}

async def main() -> None:
    load_dotenv()
    cfg = load_mysql_config()

    db = DbPool()
    await db.start(cfg)
    try:
        async with db.cursor() as cur:
            await cur.execute(
                """
                SELECT TABLE_NAME AS table_name, COLUMN_NAME AS column_name
                FROM information_schema.COLUMNS
                WHERE TABLE_SCHEMA=%s AND TABLE_NAME IN %s;
                """,
                (cfg.database, tuple(REQUIRED_TABLES)),
            )
            rows = await cur.fetchall()
    finally:
        await db.close()

    found: dict[str, set[str]] = {}
    for r in rows:
        found.setdefault(r["table_name"], set()).add(r["column_name"])

    problems = []
    for table, columns in REQUIRED_TABLES.items():
        if table not in found:
            problems.append(f"missing table {table}")
        elif columns - found[table]:
            problems.append(f"{table} missing columns {sorted(columns - found[table])}")

    if problems:
        raise SystemExit("FAIL: " + "; ".join(problems) + " (apply db/schema.sql)")
    print(f"OK: {cfg.database} on {cfg.host}:{cfg.port} has {', '.join(REQUIRED_TABLES)}.")

if __name__ == "__main__":
    asyncio.run(main())
