# main.py
from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

import discord
from discord.ext import commands

from config import BotConfig, load_config
from db.pool import DbPool

from repositories.player_repo import PlayerRepo
from repositories.team_set_repo import TeamSetRepo
from repositories.bracket_repo import BracketRepo

from services.team_set_cache import TeamSetCache
from services.tournament_service import TournamentService

from renderers.embeds import Embeds
from renderers.bracket_view import BracketView
from renderers.team_view import TeamView

from cogs.tournament_cog import setup as setup_tournament_cog

log = logging.getLogger("d2bot")


def build_tournament_service(db: DbPool, cfg: BotConfig) -> TournamentService:
    """Repos + team cache + service, sized from the balancer settings."""
    balancer = cfg.balancer
    return TournamentService(
        player_repo=PlayerRepo(db),
        team_set_repo=TeamSetRepo(db),
        bracket_repo=BracketRepo(db),
        team_cache=TeamSetCache(
            ttl_seconds=balancer.team_cache_ttl_seconds,
            max_entries=balancer.team_cache_max_entries,
        ),
        max_report_attempts=balancer.report_max_attempts,
        max_teams=balancer.max_teams,
    )


class D2InhouseBot(commands.Bot):
    def __init__(self, cfg: BotConfig) -> None:
        self.cfg = cfg
        super().__init__(
            command_prefix=cfg.command_prefix,
            intents=discord.Intents.default(),
            allowed_mentions=discord.AllowedMentions.none(),
        )
        self.db: Optional[DbPool] = None

    async def setup_hook(self) -> None:
        self.db = DbPool()
        await self.db.start(self.cfg.mysql)

        await setup_tournament_cog(
            self,
            service=build_tournament_service(self.db, self.cfg),
            embeds=Embeds(),
            bracket_view=BracketView(),
            team_view=TeamView(),
            default_team_size=self.cfg.balancer.default_team_size,
            announce_channel_id=self.cfg.default_announce_channel_id,
        )
        await self._sync_commands()
        log.info("Bot ready to register (team size %s)", self.cfg.balancer.default_team_size)

    async def _sync_commands(self) -> None:
        guild_id = self.cfg.dev_guild_id
        if not guild_id:
            synced = await self.tree.sync()
            log.info("Synced %s slash commands globally", len(synced))
            return
        guild = discord.Object(id=guild_id)
        self.tree.copy_global_to(guild=guild)
        synced = await self.tree.sync(guild=guild)
        log.info("Synced %s slash commands to dev guild %s", len(synced), guild_id)

    async def close(self) -> None:
        try:
            await super().close()
        finally:
            if self.db:
                await self.db.close()
                self.db = None


async def _run_bot() -> None:
    cfg = load_config()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # no signal handlers on Windows event loops
            pass

    async with D2InhouseBot(cfg) as bot:
        runner = asyncio.create_task(bot.start(cfg.token))
        stopper = asyncio.create_task(stop_event.wait())
        done, _pending = await asyncio.wait({runner, stopper}, return_when=asyncio.FIRST_COMPLETED)
        if runner in done:
            stopper.cancel()
            runner.result()
            return
        log.info("Shutdown requested")
        await bot.close()
        await runner


def main() -> None:
    asyncio.run(_run_bot())


if __name__ == "__main__":
    main()
