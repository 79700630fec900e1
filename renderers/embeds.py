# renderers/embeds.py
from __future__ import annotations

from dataclasses import dataclass

import discord

from domain.models import Bracket, Team, TeamSet


@dataclass(frozen=True)
class EmbedTheme:
    primary: int = 0xA72714   # dota red
    success: int = 0x2ECC71
    warning: int = 0xF1C40F
    danger: int = 0xE74C3C
    neutral: int = 0x0099FF
    champion: int = 0xD4AF37


class Embeds:
    """
    Centralized embed styling so every command looks consistent.
    """

    def __init__(self, *, theme: EmbedTheme | None = None, footer: str = "Dota 2 Inhouse") -> None:
        self._theme = theme or EmbedTheme()
        self._footer = footer

    def base(
        self,
        *,
        title: str,
        description: str | None = None,
        color: int | None = None,
    ) -> discord.Embed:
        e = discord.Embed(
            title=title,
            description=description,
            color=color if color is not None else self._theme.primary,
        )
        e.set_footer(text=self._footer)
        return e

    def info(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.neutral)

    def success(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.success)

    def warning(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.warning)

    def error(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.danger)

    def team_set(self, team_set: TeamSet, *, max_fields: int = 24) -> discord.Embed:
        e = self.info(
            title="🏆 Tournament Teams",
            description=(
                f"**Team set:** `{team_set.id}`\n"
                f"**Balance:** {team_set.strategy.label}\n"
                f"**Players:** {team_set.total_players} (avg MMR {team_set.average_mmr})\n"
                f"**Reserves:** {len(team_set.reserves)}"
            ),
        )
        # Discord caps embeds at 25 fields
        for team in team_set.teams[:max_fields]:
            e.add_field(name=team.name, value=self.team_summary(team), inline=True)
        e.set_footer(text=f"{self._footer} • Total Teams: {len(team_set.teams)}")
        return e

    def team_summary(self, team: Team) -> str:
        return (
            f"👥 Players: {len(team.players)}\n"
            f"📊 Total MMR: {team.total_mmr}\n"
            f"📈 Avg MMR: {team.average_mmr}"
        )

    def champion(self, bracket: Bracket) -> discord.Embed:
        team = bracket.winner
        if team is None:
            return self.info(title=bracket.name, description="No champion yet.")
        roster = ", ".join(p.name for p in team.players) or "-"
        e = self.base(
            title=f"👑 {bracket.name} champions: {team.name}",
            description=f"**Roster:** {roster}\n**Avg MMR:** {team.average_mmr}",
            color=self._theme.champion,
        )
        return e
