"""
Tests for the team balancer: partitioning, the per-strategy invariants,
MMR coercion and input validation.
"""
from __future__ import annotations

import random

import pytest

from conftest import make_players
from domain.enums import BalanceStrategy
from domain.models import Player, ensure_numeric_mmr
from services.team_balancer import (
    InsufficientPlayersError,
    InvalidTeamShapeError,
    UnknownStrategyError,
    balance,
    build_team_set,
    format_teams,
    high_ranked,
    parse_strategy,
    perfect_mmr,
)

SHAPES = [(2, 5), (3, 5), (4, 3), (2, 1), (5, 2)]


def _ids(players):
    return [p.id for p in players]


class TestPartition:
    """Every player ends up in exactly one team or in reserves."""

    @pytest.mark.parametrize("strategy", list(BalanceStrategy))
    @pytest.mark.parametrize("num_teams,team_size", SHAPES)
    def test_partition_property(self, roster_23, strategy, num_teams, team_size):
        for seed in range(5):
            result = balance(strategy, roster_23, num_teams, team_size, rng=random.Random(seed))

            assert len(result.teams) == num_teams
            assert all(len(t.players) == team_size for t in result.teams)

            assigned = [p.id for t in result.teams for p in t.players] + _ids(result.reserves)
            assert sorted(assigned) == sorted(_ids(roster_23))
            assert len(result.reserves) == len(roster_23) - num_teams * team_size

    @pytest.mark.parametrize("strategy", list(BalanceStrategy))
    def test_exact_fit_has_no_reserves(self, ten_players, strategy, rng):
        result = balance(strategy, ten_players, 2, 5, rng=rng)
        assert result.reserves == []

    def test_reserves_are_lowest_for_ranked_strategies(self, roster_23, rng):
        """Outside random, the pool is the top n*s by MMR."""
        for strategy in (BalanceStrategy.HIGH_RANKED, BalanceStrategy.PERFECT_MMR, BalanceStrategy.HIGH_LOW_SHUFFLE):
            result = balance(strategy, roster_23, 4, 5, rng=rng)
            lowest_assigned = min(p.mmr for t in result.teams for p in t.players)
            assert all(p.mmr <= lowest_assigned for p in result.reserves)


class TestScenarioA:
    def test_random_two_teams_of_five(self, ten_players, rng):
        """10 distinct players, 2x5, random: two full teams covering the input."""
        result = balance("random", ten_players, 2, 5, rng=rng)

        assert len(result.teams) == 2
        assert [len(t.players) for t in result.teams] == [5, 5]
        assert result.reserves == []
        union = set(result.teams[0].players) | set(result.teams[1].players)
        assert union == set(ten_players)


class TestPerfectMmr:
    def test_each_pick_goes_to_lowest_open_team(self, roster_23, rng):
        """Replay the greedy: every player joined the min-sum non-full team."""
        num_teams, team_size = 4, 5
        groups, _reserves = perfect_mmr(roster_23, num_teams, team_size, rng)

        owner = {p.id: t for t, g in enumerate(groups) for p in g}
        ranked = sorted(roster_23, key=lambda p: p.mmr, reverse=True)[: num_teams * team_size]

        totals = [0] * num_teams
        sizes = [0] * num_teams
        for player in ranked:
            open_teams = [t for t in range(num_teams) if sizes[t] < team_size]
            lowest = min(totals[t] for t in open_teams)
            t = owner[player.id]
            assert t in open_teams
            assert totals[t] == lowest
            totals[t] += player.mmr
            sizes[t] += 1

    def test_ties_go_to_lowest_team_index(self, rng):
        players = make_players([1000, 1000, 1000, 1000])
        groups, _ = perfect_mmr(players, 2, 2, rng)
        assert _ids(groups[0]) == ["p1", "p3"]
        assert _ids(groups[1]) == ["p2", "p4"]

    def test_deterministic_regardless_of_rng(self, roster_23):
        a = balance("perfectMmr", roster_23, 3, 5, rng=random.Random(1))
        b = balance("perfectMmr", roster_23, 3, 5, rng=random.Random(99))
        assert [_ids(t.players) for t in a.teams] == [_ids(t.players) for t in b.teams]

    def test_totals_stay_close(self, roster_23, rng):
        result = balance("perfectMmr", roster_23, 4, 5, rng=rng)
        totals = [t.total_mmr for t in result.teams]
        assert max(totals) - min(totals) <= max(p.mmr for p in roster_23)


class TestHighRanked:
    def test_tiers_are_spread_one_per_team(self, roster_23):
        num_teams, team_size = 4, 5
        ranked = sorted(roster_23, key=lambda p: p.mmr, reverse=True)

        for seed in range(10):
            groups, _ = high_ranked(roster_23, num_teams, team_size, random.Random(seed))
            for k in range(team_size):
                tier = {p.id for p in ranked[k * num_teams : (k + 1) * num_teams]}
                slot_k = {g[k].id for g in groups}
                assert slot_k == tier

    def test_shuffle_varies_within_tier(self, roster_23):
        seen = set()
        for seed in range(20):
            groups, _ = high_ranked(roster_23, 4, 5, random.Random(seed))
            seen.add(groups[0][0].id)
        assert len(seen) > 1


class TestHighLowShuffle:
    def test_every_team_gets_a_high_and_a_low_player(self, roster_23):
        num_teams, team_size = 4, 5
        pool = sorted(roster_23, key=lambda p: p.mmr, reverse=True)[: num_teams * team_size]
        high = {p.id for p in pool[:num_teams]}
        low = {p.id for p in pool[-num_teams:]}

        for seed in range(10):
            result = balance("highLowShuffle", roster_23, num_teams, team_size, rng=random.Random(seed))
            for team in result.teams:
                ids = set(_ids(team.players))
                assert len(ids & high) == 1
                assert len(ids & low) == 1

    def test_team_size_one_uses_only_the_high_tier(self, roster_23, rng):
        result = balance("highLowShuffle", roster_23, 3, 1, rng=rng)
        top3 = {p.id for p in sorted(roster_23, key=lambda p: p.mmr, reverse=True)[:3]}
        assert {t.players[0].id for t in result.teams} == top3

    @pytest.mark.parametrize("count", [7, 11, 13, 19])
    def test_pool_sizes_not_divisible_by_five(self, count):
        players = make_players(range(1000, 1000 + 50 * count, 50))
        result = balance("highLowShuffle", players, 3, 2, rng=random.Random(3))
        assert all(len(t.players) == 2 for t in result.teams)
        assert len(result.reserves) == count - 6


class TestNumericSemantics:
    @pytest.mark.parametrize(
        "raw,expected",
        [(None, 0), ("", 0), ("abc", 0), ("4200", 4200), ("4200.7", 4200), (4200.9, 4200), (-50, 0), (True, 0)],
    )
    def test_ensure_numeric_mmr(self, raw, expected):
        assert ensure_numeric_mmr(raw) == expected

    def test_garbage_mmr_sorts_last(self, rng):
        players = [
            Player(id="a", name="A", peakmmr="n/a"),
            Player(id="b", name="B", peakmmr="3000"),
            Player(id="c", name="C", peakmmr=2000),
            Player(id="d", name="D", peakmmr=None),
        ]
        result = balance("perfectMmr", players, 2, 1, rng=rng)
        assert sorted(p.id for t in result.teams for p in t.players) == ["b", "c"]
        assert sorted(_ids(result.reserves)) == ["a", "d"]


class TestValidation:
    def test_insufficient_players(self, ten_players):
        with pytest.raises(InsufficientPlayersError):
            balance("random", ten_players, 3, 5)

    @pytest.mark.parametrize("num_teams,team_size", [(1, 5), (0, 5), (2, 0)])
    def test_invalid_shape(self, ten_players, num_teams, team_size):
        with pytest.raises(InvalidTeamShapeError):
            balance("random", ten_players, num_teams, team_size)

    def test_unknown_strategy(self, ten_players):
        with pytest.raises(UnknownStrategyError):
            balance("snake_draft", ten_players, 2, 5)

    def test_parse_strategy_accepts_enum_and_value(self):
        assert parse_strategy(BalanceStrategy.RANDOM) is BalanceStrategy.RANDOM
        assert parse_strategy(" highRanked ") is BalanceStrategy.HIGH_RANKED


class TestFormatting:
    def test_format_teams_numbers_from_one(self, ten_players):
        teams = format_teams([ten_players[:5], ten_players[5:]])
        assert [t.team_number for t in teams] == [1, 2]
        assert [t.name for t in teams] == ["Team 1", "Team 2"]
        assert [t.id for t in teams] == ["team_1", "team_2"]
        assert teams[0].total_mmr == sum(range(1000, 1500, 100))
        assert teams[0].average_mmr == 1200

    def test_build_team_set(self, roster_23, rng):
        result = balance("highRanked", roster_23, 2, 5, rng=rng)
        team_set = build_team_set(result, tournament_id="42")

        assert team_set.id.startswith("teams_")
        assert team_set.tournament_id == "42"
        assert team_set.strategy is BalanceStrategy.HIGH_RANKED
        assert team_set.total_players == 10
        assert len(team_set.reserves) == 13
