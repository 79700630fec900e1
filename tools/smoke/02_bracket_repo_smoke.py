from __future__ import annotations

import os, sys
from uuid import uuid4

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_mysql_config
from db.pool import DbPool
from domain.models import Player, Team
from repositories.bracket_repo import BracketRepo, StaleBracketError
from services.bracket_builder import build_bracket
from services.bracket_state import record_winner

async def main() -> None:
    from dotenv import load_dotenv
    load_dotenv()
    cfg = load_mysql_config()

    run_id = os.getenv("SMOKE_RUN_ID") or f"smk_{uuid4().hex[:10]}"
    tournament_id = f"SMOKE_{run_id}"

    db = DbPool()
    await db.start(cfg)
    repo = BracketRepo(db)

    teams = [
        Team(team_number=n, players=(Player(id=str(n), name=f"SMOKE_P{n}_{run_id}", peakmmr=1000 * n),))
        for n in range(1, 6)
    ]
    bracket = build_bracket(teams, name=f"SMOKE_BRACKET_{run_id}")

    try:
        await repo.create(tournament_id=tournament_id, bracket=bracket)

        first = await repo.load(tournament_id=tournament_id)
        second = await repo.load(tournament_id=tournament_id)
        assert first is not None and second is not None
        assert first.version == 0

        m = next(m for m in first.rounds[0].matches if m.is_full)
        record_winner(first, 1, m.id, m.team1.id)
        await repo.save(tournament_id=tournament_id, bracket=first)
        assert first.version == 1

        record_winner(second, 1, m.id, m.team2.id)
        try:
            await repo.save(tournament_id=tournament_id, bracket=second)
        except StaleBracketError:
            pass
        else:
            raise AssertionError("stale save was accepted")

        stored = await repo.load(tournament_id=tournament_id)
        assert stored is not None
        assert stored.get_round(1).find_match(m.id).winner.id == m.team1.id
    finally:
        await repo.delete(tournament_id=tournament_id)
        await db.close()

    print(f"OK: bracket repo smoke passed. run_id={run_id} match={m.id}")

if __name__ == "__main__":
    asyncio.run(main())
