# renderers/team_view.py
from __future__ import annotations

from domain.models import TeamSet


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


class TeamView:
    """
    Monospace roster listing: one block per team, reserves at the end.
    """

    def __init__(self, *, name_width: int = 20) -> None:
        self._name_width = int(name_width)

    def render(self, team_set: TeamSet, *, max_chars: int = 1900) -> str:
        lines: list[str] = []
        for team in team_set.teams:
            lines.append(f"{team.name} ({team.id})  avg {team.average_mmr}  total {team.total_mmr}")
            for p in team.players:
                lines.append(f"  {_pad(p.name, self._name_width)} {p.mmr:>6}")
            lines.append("")

        if team_set.reserves:
            lines.append("Reserves")
            for p in team_set.reserves:
                lines.append(f"  {_pad(p.name, self._name_width)} {p.mmr:>6}")

        body = "\n".join(lines).rstrip()
        # Discord message limit is 2000 chars
        if len(body) > max_chars:
            body = body[: max_chars - 4].rstrip() + "\n..."
        return "```text\n" + body + "\n```"
