# domain/enums.py
from __future__ import annotations

from enum import Enum


class BalanceStrategy(str, Enum):
    HIGH_RANKED = "highRanked"
    PERFECT_MMR = "perfectMmr"
    HIGH_LOW_SHUFFLE = "highLowShuffle"
    RANDOM = "random"

    @property
    def label(self) -> str:
        return _STRATEGY_LABELS[self]


_STRATEGY_LABELS = {
    BalanceStrategy.HIGH_RANKED: "High Ranked Balance",
    BalanceStrategy.PERFECT_MMR: "Perfect MMR Balance",
    BalanceStrategy.HIGH_LOW_SHUFFLE: "High/Low Shuffle",
    BalanceStrategy.RANDOM: "Random Teams",
}


class BracketFormat(str, Enum):
    SINGLE = "single_elimination"


class MatchStatus(str, Enum):
    PENDING = "pending"      # both teams known, not played yet
    BYE = "bye"              # single team, auto-advanced
    WAITING = "waiting"      # at least one slot still empty
    COMPLETED = "completed"


class RoundStatus(str, Enum):
    WAITING = "waiting"
    READY = "ready"
    COMPLETED = "completed"


class BracketStatus(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
