# repositories/team_set_repo.py
from __future__ import annotations

from typing import Optional

from domain.codec import team_set_from_dict, team_set_to_dict
from domain.models import TeamSet
from repositories.base_repo import BaseRepo, from_json, to_json


class TeamSetRepo(BaseRepo):
    async def save(self, team_set: TeamSet) -> None:
        await self.execute(
            """
            INSERT INTO team_set (team_set_id, tournament_id, strategy, team_set_json)
            VALUES (%s, %s, %s, %s)
            ON DUPLICATE KEY UPDATE
              strategy = VALUES(strategy),
              team_set_json = VALUES(team_set_json);
            """,
            (team_set.id, team_set.tournament_id, team_set.strategy.value, to_json(team_set_to_dict(team_set))),
        )

    async def load(self, *, team_set_id: str) -> Optional[TeamSet]:
        row = await self.fetch_one(
            "SELECT team_set_json FROM team_set WHERE team_set_id=%s;",
            (str(team_set_id),),
        )
        if not row:
            return None
        return team_set_from_dict(from_json(row["team_set_json"]))

    async def latest_for(self, *, tournament_id: str) -> Optional[TeamSet]:
        row = await self.fetch_one(
            """
            SELECT team_set_json
            FROM team_set
            WHERE tournament_id=%s
            ORDER BY created_at DESC, seq DESC
            LIMIT 1;
            """,
            (str(tournament_id),),
        )
        if not row:
            return None
        return team_set_from_dict(from_json(row["team_set_json"]))
