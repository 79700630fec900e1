# cogs/tournament_cog.py
from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from domain.codec import CodecError
from domain.enums import BalanceStrategy
from renderers.bracket_view import BracketView
from renderers.embeds import Embeds
from renderers.team_view import TeamView
from services.bracket_builder import BracketError
from services.bracket_state import AlreadyDecidedError, InvalidWinnerError, MatchNotReadyError
from services.team_balancer import InsufficientPlayersError, TeamBalancerError
from services.tournament_service import (
    BracketConflictError,
    ReportOutcome,
    TournamentService,
    TournamentServiceError,
)

log = logging.getLogger(__name__)

STRATEGY_CHOICES = [app_commands.Choice(name=s.label, value=s.value) for s in BalanceStrategy]

# problems the user can fix by changing their input
USER_ERRORS = (TeamBalancerError, BracketError, TournamentServiceError, CodecError)


class TournamentCog(commands.Cog):
    tournament = app_commands.Group(name="tournament", description="Balance teams and run single-elimination brackets.")

    def __init__(
        self,
        bot: commands.Bot,
        *,
        service: TournamentService,
        embeds: Embeds,
        bracket_view: BracketView,
        team_view: TeamView,
        default_team_size: int = 5,
        announce_channel_id: Optional[int] = None,
    ) -> None:
        self.bot = bot
        self.service = service
        self.embeds = embeds
        self.bracket_view = bracket_view
        self.team_view = team_view
        self.default_team_size = int(default_team_size)
        self.announce_channel_id = announce_channel_id

    # -----------------------------
    # Helpers
    # -----------------------------

    async def _can_manage(self, interaction: discord.Interaction) -> bool:
        if not interaction.guild:
            return False
        if isinstance(interaction.user, discord.Member):
            perms = interaction.user.guild_permissions
            return perms.manage_guild or perms.manage_channels
        return False

    async def _deny(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message("Missing permission to manage tournaments here.", ephemeral=True)

    def _error_embed(self, ex: Exception) -> discord.Embed:
        if isinstance(ex, InsufficientPlayersError):
            return self.embeds.warning(title="Not enough players", description=str(ex))
        if isinstance(ex, AlreadyDecidedError):
            return self.embeds.warning(title="Already decided", description=str(ex))
        if isinstance(ex, (InvalidWinnerError, MatchNotReadyError)):
            return self.embeds.warning(title="Invalid result", description=str(ex))
        if isinstance(ex, BracketConflictError):
            return self.embeds.warning(title="Busy", description=f"{ex}\nPlease try again.")
        return self.embeds.error(title="Tournament error", description=str(ex))

    async def _announce(self, interaction: discord.Interaction, embed: discord.Embed) -> None:
        """Post to the configured announce channel, or the current one."""
        channel = None
        if self.announce_channel_id:
            channel = self.bot.get_channel(self.announce_channel_id)
        if isinstance(channel, discord.abc.Messageable):
            await channel.send(embed=embed)
        else:
            await interaction.followup.send(embed=embed)

    def _outcome_embed(self, outcome: ReportOutcome) -> discord.Embed:
        if outcome.champion is not None:
            return self.embeds.champion(outcome.bracket)
        desc = f"**{outcome.winner.name}** won `{outcome.match.id}` and advances."
        if outcome.round_completed:
            nxt = outcome.bracket.get_round(outcome.match.round + 1)
            if nxt is not None:
                desc += f"\n{nxt.name} is up next."
        elif outcome.next_round_ready:
            desc += "\nNext round is ready."
        return self.embeds.success(title=f"{outcome.bracket.name}: winner advanced", description=desc)

    # -----------------------------
    # Teams
    # -----------------------------

    @tournament.command(name="generate_teams", description="Generate balanced teams from present players.")
    @app_commands.describe(
        tournament_id="Registration session id of the tournament",
        strategy="Balance type",
        num_teams="Number of teams (server limit: MAX_TEAMS)",
        team_size="Players per team (default 5)",
    )
    @app_commands.choices(strategy=STRATEGY_CHOICES)
    async def generate_teams(
        self,
        interaction: discord.Interaction,
        tournament_id: str,
        strategy: app_commands.Choice[str],
        num_teams: app_commands.Range[int, 2, 64],
        team_size: Optional[app_commands.Range[int, 1, 10]] = None,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            team_set = await self.service.generate_teams(
                tournament_id=tournament_id,
                strategy=strategy.value,
                num_teams=int(num_teams),
                team_size=int(team_size or self.default_team_size),
            )
        except USER_ERRORS as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        await interaction.followup.send(embed=self.embeds.team_set(team_set))
        await interaction.followup.send(content=self.team_view.render(team_set))
        await interaction.followup.send(
            embed=self.embeds.info(
                title="Next step",
                description=f"`/tournament create_bracket tournament_id:{tournament_id} team_set_id:{team_set.id}`",
            )
        )

    @tournament.command(name="teams", description="Show a generated team set.")
    async def teams(self, interaction: discord.Interaction, tournament_id: str, team_set_id: Optional[str] = None) -> None:
        await interaction.response.defer(ephemeral=False)
        try:
            if team_set_id:
                team_set = await self.service.get_team_set(team_set_id=team_set_id)
            else:
                team_set = await self.service.latest_team_set(tournament_id=tournament_id)
        except USER_ERRORS as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        await interaction.followup.send(embed=self.embeds.team_set(team_set))
        await interaction.followup.send(content=self.team_view.render(team_set))

    # -----------------------------
    # Brackets
    # -----------------------------

    @tournament.command(name="create_bracket", description="Create a single-elimination bracket from a team set.")
    @app_commands.describe(team_set_id="Team set to use (default: latest for the tournament)")
    async def create_bracket(
        self,
        interaction: discord.Interaction,
        tournament_id: str,
        name: str,
        team_set_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            bracket = await self.service.create_bracket(
                tournament_id=tournament_id,
                team_set_id=team_set_id,
                name=name.strip()[:128],
                description=(description or "").strip(),
            )
        except USER_ERRORS as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        await self._announce(
            interaction,
            self.embeds.success(
                title="Bracket created",
                description=f"**{bracket.name}**: {len(bracket.teams)} teams, {len(bracket.rounds)} rounds.",
            ),
        )
        await interaction.followup.send(content=self.bracket_view.render(bracket))

    @tournament.command(name="create_tournament", description="Generate teams and create the bracket in one step.")
    @app_commands.choices(strategy=STRATEGY_CHOICES)
    async def create_tournament(
        self,
        interaction: discord.Interaction,
        tournament_id: str,
        name: str,
        strategy: app_commands.Choice[str],
        num_teams: app_commands.Range[int, 2, 64],
        team_size: Optional[app_commands.Range[int, 1, 10]] = None,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            team_set, bracket = await self.service.create_tournament(
                tournament_id=tournament_id,
                strategy=strategy.value,
                num_teams=int(num_teams),
                team_size=int(team_size or self.default_team_size),
                name=name.strip()[:128],
            )
        except USER_ERRORS as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        await interaction.followup.send(embed=self.embeds.team_set(team_set))
        await self._announce(
            interaction,
            self.embeds.success(
                title="Tournament created",
                description=f"**{bracket.name}**: {len(bracket.teams)} teams ({strategy.name}).",
            ),
        )
        await interaction.followup.send(content=self.bracket_view.render(bracket))

    @tournament.command(name="bracket", description="Show the current bracket.")
    async def bracket(self, interaction: discord.Interaction, tournament_id: str) -> None:
        await interaction.response.defer(ephemeral=False)
        try:
            bracket = await self.service.get_bracket(tournament_id=tournament_id)
        except USER_ERRORS as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        await interaction.followup.send(content=self.bracket_view.render(bracket))
        open_matches = self.bracket_view.open_matches(bracket)
        if open_matches:
            example = open_matches[0]
            await interaction.followup.send(
                embed=self.embeds.info(
                    title="Reporting results",
                    description=(
                        "Use the round number, match id and winning team id shown in the bracket.\n\n"
                        f"`/tournament report tournament_id:{tournament_id} round_no:{example.round} "
                        f"match_id:{example.id} winner_team_id:{example.team1.id}`"
                    ),
                )
            )

    @tournament.command(name="report", description="Record a match winner and advance the bracket.")
    @app_commands.describe(
        round_no="Round number (1 = first round)",
        match_id="Match id shown in the bracket, e.g. match_r1_2",
        winner_team_id="Winning team id shown in [ ], e.g. team_3",
    )
    async def report(
        self,
        interaction: discord.Interaction,
        tournament_id: str,
        round_no: app_commands.Range[int, 1, 16],
        match_id: str,
        winner_team_id: str,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            outcome = await self.service.report_winner(
                tournament_id=tournament_id,
                round_no=int(round_no),
                match_id=match_id.strip(),
                winner_team_id=winner_team_id.strip(),
            )
        except USER_ERRORS as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        await self._announce(interaction, self._outcome_embed(outcome))
        await interaction.followup.send(content=self.bracket_view.render(outcome.bracket))

    @tournament.command(name="reshuffle", description="Re-seed the bracket (only before any result is recorded).")
    async def reshuffle(self, interaction: discord.Interaction, tournament_id: str) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            bracket = await self.service.reshuffle(tournament_id=tournament_id)
        except USER_ERRORS as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        await interaction.followup.send(embed=self.embeds.success(title="Participants reshuffled", description=bracket.name))
        await interaction.followup.send(content=self.bracket_view.render(bracket))

    async def cog_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        log.exception("Unhandled error in /tournament command", exc_info=error)
        embed = self.embeds.error(title="Something went wrong", description="The error has been logged.")
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)


async def setup(
    bot: commands.Bot,
    *,
    service: TournamentService,
    embeds: Embeds,
    bracket_view: BracketView,
    team_view: TeamView,
    default_team_size: int = 5,
    announce_channel_id: Optional[int] = None,
) -> None:
    await bot.add_cog(
        TournamentCog(
            bot,
            service=service,
            embeds=embeds,
            bracket_view=bracket_view,
            team_view=team_view,
            default_team_size=default_team_size,
            announce_channel_id=announce_channel_id,
        )
    )
