# renderers/bracket_view.py
from __future__ import annotations

from typing import Optional

from domain.enums import MatchStatus
from domain.models import Bracket, Match, Team


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _team_label(team: Optional[Team], *, name_width: int, empty: str = "TBD") -> str:
    if team is None:
        return _pad(empty, name_width)
    return _pad(f"[{team.id}] {team.name}", name_width)


def _status_mark(m: Match) -> str:
    if m.status == MatchStatus.COMPLETED and m.winner is not None:
        return f"✅ {m.winner.name}"
    if m.status == MatchStatus.BYE:
        return "BYE"
    if m.status == MatchStatus.PENDING:
        return "⏳"
    return "•"


class BracketView:
    """
    Monospace bracket snapshot for Discord messages.
    """

    def __init__(self, *, name_width: int = 22) -> None:
        self._name_width = int(name_width)

    def render(self, bracket: Bracket, *, max_lines: int = 55, max_chars: int = 1900) -> str:
        lines: list[str] = [f"=== {bracket.name} ({bracket.status.value}) ===", ""]

        for rnd in bracket.rounds:
            lines.append(f"-- {rnd.name} [{rnd.status.value}] --")
            for m in rnd.matches:
                left = _team_label(m.team1, name_width=self._name_width)
                empty = "BYE" if m.status == MatchStatus.BYE else "TBD"
                right = _team_label(m.team2, name_width=self._name_width, empty=empty)
                lines.append(f"  {m.id:<12} {left} vs {right}  {_status_mark(m)}")
            lines.append("")

        if bracket.winner is not None:
            lines.append(f"Champion: {bracket.winner.name}")

        # keep the tail: later rounds matter most
        head, tail = lines[:2], lines[2:]
        if len(lines) > max_lines:
            tail = tail[-(max_lines - 4) :]
        # Discord message limit is 2000 chars, fences included
        budget = max_chars - len("```text\n\n```")
        if len(head) + len(tail) < len(lines) or len("\n".join(lines)) > budget:
            while tail and len("\n".join(head + ["...", ""] + tail)) > budget:
                tail = tail[1:]
            lines = head + ["...", ""] + tail

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"

    def open_matches(self, bracket: Bracket) -> list[Match]:
        return [m for m in bracket.iter_matches() if m.status == MatchStatus.PENDING]
