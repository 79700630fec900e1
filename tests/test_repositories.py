"""
Repository tests against a scripted cursor: the SQL each repo sends and how
it maps rows back into domain objects.
"""
from __future__ import annotations

import asyncio
import random
from contextlib import asynccontextmanager

import pytest

from conftest import make_players, make_teams
from domain.codec import bracket_to_dict, team_set_to_dict
from repositories.base_repo import to_json
from repositories.bracket_repo import BracketRepo, StaleBracketError
from repositories.player_repo import PlayerRepo
from repositories.team_set_repo import TeamSetRepo
from services.bracket_builder import build_bracket
from services.team_balancer import balance, build_team_set


class ScriptedCursor:
    def __init__(self, rows=None, rowcount=1):
        self.rows = list(rows or [])
        self.rowcount = rowcount
        self.executed = []

    async def execute(self, sql, params=()):
        self.executed.append((" ".join(sql.split()), params))

    async def fetchone(self):
        return self.rows[0] if self.rows else None

    async def fetchall(self):
        return list(self.rows)


class ScriptedDb:
    """Hands out the same cursor for reads and transactions."""

    def __init__(self, cursor):
        self.cur = cursor

    @asynccontextmanager
    async def cursor(self, *, dict_rows=True):
        yield self.cur

    @asynccontextmanager
    async def transaction(self, *, dict_rows=True):
        yield self.cur


def run(coro):
    return asyncio.run(coro)


class TestTeamSetRepo:
    def test_latest_for_breaks_created_at_ties_by_insert_order(self):
        team_set = build_team_set(balance("random", make_players([1, 2, 3, 4]), 2, 2), tournament_id="t1")
        cur = ScriptedCursor(rows=[{"team_set_json": to_json(team_set_to_dict(team_set))}])

        loaded = run(TeamSetRepo(ScriptedDb(cur)).latest_for(tournament_id="t1"))

        sql, params = cur.executed[0]
        assert "ORDER BY created_at DESC, seq DESC" in sql
        assert params == ("t1",)
        assert loaded == team_set

    def test_latest_for_none(self):
        cur = ScriptedCursor(rows=[])
        assert run(TeamSetRepo(ScriptedDb(cur)).latest_for(tournament_id="t1")) is None


class TestPlayerRepo:
    def test_present_players_are_mapped(self):
        cur = ScriptedCursor(rows=[
            {"id": 7, "name": "Puppey", "dota2id": "87278757", "peakmmr": "6200", "discordid": 12345},
            {"id": 8, "name": "Newbie", "dota2id": "", "peakmmr": None, "discordid": None},
        ])
        players = run(PlayerRepo(ScriptedDb(cur)).list_present_players(tournament_id="s1"))

        assert [p.id for p in players] == ["7", "8"]
        assert players[0].mmr == 6200 and players[0].discord_id == "12345"
        assert players[1].mmr == 0 and players[1].discord_id is None
        assert "present=1" in cur.executed[0][0]


class TestBracketRepo:
    @pytest.fixture
    def bracket(self):
        return build_bracket(make_teams(4), name="Cup", rng=random.Random(1))

    def test_save_bumps_version(self, bracket):
        cur = ScriptedCursor(rowcount=1)
        run(BracketRepo(ScriptedDb(cur)).save(tournament_id="t1", bracket=bracket))

        sql, params = cur.executed[0]
        assert "WHERE tournament_id=%s AND version=%s" in sql
        assert params[-2:] == ("t1", 0)
        assert bracket.version == 1

    def test_stale_save_keeps_version(self, bracket):
        cur = ScriptedCursor(rowcount=0)
        with pytest.raises(StaleBracketError):
            run(BracketRepo(ScriptedDb(cur)).save(tournament_id="t1", bracket=bracket))
        assert bracket.version == 0

    def test_load_takes_version_from_column(self, bracket):
        cur = ScriptedCursor(rows=[{"bracket_json": to_json(bracket_to_dict(bracket)), "version": 4}])
        loaded = run(BracketRepo(ScriptedDb(cur)).load(tournament_id="t1"))
        assert loaded.version == 4
        assert loaded.id == bracket.id
