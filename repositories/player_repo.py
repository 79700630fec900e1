# repositories/player_repo.py
from __future__ import annotations

from domain.models import Player
from repositories.base_repo import BaseRepo


class PlayerRepo(BaseRepo):
    """
    Roster side of the bot: who is registered for a tournament and marked present.
    Attendance itself is maintained elsewhere (web panel); this only reads it.
    """

    async def list_present_players(self, *, tournament_id: str) -> list[Player]:
        rows = await self.fetch_all(
            """
            SELECT id, name, dota2id, peakmmr, discordid
            FROM players
            WHERE registration_session_id=%s AND present=1
            ORDER BY registration_date ASC, id ASC;
            """,
            (str(tournament_id),),
        )
        return [Player.from_row(r) for r in rows]
