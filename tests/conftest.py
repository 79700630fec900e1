"""Shared fixtures: rosters and teams built in memory."""
from __future__ import annotations

import random

import pytest

from domain.models import Player, Team


def make_players(mmrs):
    return [Player(id=f"p{i}", name=f"Player {i}", peakmmr=mmr) for i, mmr in enumerate(mmrs, start=1)]


def make_teams(count):
    return [
        Team(team_number=n, players=(Player(id=f"p{n}", name=f"Player {n}", peakmmr=1000 + n),))
        for n in range(1, count + 1)
    ]


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def ten_players():
    """Distinct MMRs 1000..1900."""
    return make_players(range(1000, 2000, 100))


@pytest.fixture
def roster_23():
    """23 players with uneven, partly duplicated MMRs."""
    mmrs = [5400, 5200, 5200, 4800, 4700, 4500, 4300, 4300, 4100, 3900, 3800, 3600,
            3500, 3300, 3100, 3000, 2800, 2600, 2500, 2300, 2000, 1800, 1200]
    return make_players(mmrs)


@pytest.fixture
def five_teams():
    return make_teams(5)
