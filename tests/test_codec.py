"""
Tests for the JSON codec: shape of the encoded blobs and validation on load.
"""
from __future__ import annotations

import copy
import json
import random

import pytest

from conftest import make_players, make_teams
from domain.codec import (
    SCHEMA_VERSION,
    CodecError,
    bracket_from_dict,
    bracket_to_dict,
    team_set_from_dict,
    team_set_to_dict,
)
from domain.enums import BalanceStrategy, BracketStatus, MatchStatus
from services.bracket_builder import build_bracket
from services.bracket_state import record_winner
from services.team_balancer import balance, build_team_set



@pytest.fixture
def mid_bracket():
    """Five-team bracket with round 1 decided."""
    bracket = build_bracket(make_teams(5), name="Codec Cup", team_set_id="teams_abc", rng=random.Random(7))
    for m in bracket.rounds[0].matches:
        if m.status == MatchStatus.PENDING:
            record_winner(bracket, 1, m.id, m.team1.id)
    bracket.version = 3
    return bracket


class TestBracketEncoding:
    def test_blob_is_json_safe(self, mid_bracket):
        data = bracket_to_dict(mid_bracket)
        assert json.loads(json.dumps(data)) == data
        assert data["schema_version"] == SCHEMA_VERSION

    def test_matches_reference_teams_by_id(self, mid_bracket):
        data = bracket_to_dict(mid_bracket)
        first = data["rounds"][0]["matches"][0]
        assert isinstance(first["team1"], str)
        assert first["team1"] in {t["id"] for t in data["teams"]}

    def test_decoded_bracket_keeps_playing(self, mid_bracket):
        restored = bracket_from_dict(json.loads(json.dumps(bracket_to_dict(mid_bracket))))

        assert restored == mid_bracket
        # decoded matches share team objects with bracket.teams
        m = next(x for x in restored.rounds[1].matches if x.status == MatchStatus.PENDING)
        assert any(m.team1 is t for t in restored.teams)

        record_winner(restored, 2, m.id, m.team1.id)
        fm = restored.rounds[2].matches[0]
        record_winner(restored, 3, fm.id, fm.team2.id)
        assert restored.status == BracketStatus.COMPLETED

    def test_embedded_team_objects_are_accepted(self, mid_bracket):
        data = bracket_to_dict(mid_bracket)
        teams = {t["id"]: t for t in data["teams"]}
        m = data["rounds"][0]["matches"][0]
        m["team1"] = teams[m["team1"]]
        assert bracket_from_dict(data) == mid_bracket


class TestBracketValidation:
    @pytest.fixture
    def data(self, mid_bracket):
        return bracket_to_dict(mid_bracket)

    def test_wrong_schema_version(self, data):
        data["schema_version"] = 99
        with pytest.raises(CodecError, match="schema_version"):
            bracket_from_dict(data)

    def test_missing_key(self, data):
        del data["status"]
        with pytest.raises(CodecError, match="status"):
            bracket_from_dict(data)

    def test_bad_enum(self, data):
        data["rounds"][0]["matches"][0]["status"] = "forfeit"
        with pytest.raises(CodecError, match="MatchStatus"):
            bracket_from_dict(data)

    def test_unknown_team_reference(self, data):
        data["rounds"][0]["matches"][0]["team1"] = "team_404"
        with pytest.raises(CodecError, match="team_404"):
            bracket_from_dict(data)

    def test_duplicate_team_ids(self, data):
        data["teams"].append(copy.deepcopy(data["teams"][0]))
        with pytest.raises(CodecError, match="duplicate"):
            bracket_from_dict(data)

    def test_rounds_out_of_order(self, data):
        data["rounds"][0], data["rounds"][1] = data["rounds"][1], data["rounds"][0]
        with pytest.raises(CodecError, match="expected round 1"):
            bracket_from_dict(data)

    def test_round_count_law(self, data):
        data["rounds"].pop()
        with pytest.raises(CodecError, match="rounds"):
            bracket_from_dict(data)

    def test_winner_must_play_in_match(self, data):
        m = data["rounds"][0]["matches"][0]
        outsider = next(t["id"] for t in data["teams"] if t["id"] not in (m["team1"], m["team2"]))
        m["winner"] = outsider
        with pytest.raises(CodecError, match="winner"):
            bracket_from_dict(data)

    def test_not_an_object(self, data):
        data["rounds"][0]["matches"][0] = "match_r1_1"
        with pytest.raises(CodecError):
            bracket_from_dict(data)

    def test_codec_error_is_a_value_error(self):
        assert issubclass(CodecError, ValueError)


class TestTeamSetCodec:
    def test_team_set_round_trip(self):
        players = make_players([3000, 2500, 0, 1800, 4200, 900, 1500])
        team_set = build_team_set(
            balance("highRanked", players, 2, 3, rng=random.Random(1)),
            tournament_id="7",
        )
        data = json.loads(json.dumps(team_set_to_dict(team_set)))

        assert data["total_players"] == 6
        restored = team_set_from_dict(data)
        assert restored == team_set
        assert restored.strategy is BalanceStrategy.HIGH_RANKED

    def test_unknown_strategy(self):
        team_set = build_team_set(balance("random", make_players([1, 2, 3, 4]), 2, 2), tournament_id="7")
        data = team_set_to_dict(team_set)
        data["strategy"] = "draft"
        with pytest.raises(CodecError, match="BalanceStrategy"):
            team_set_from_dict(data)
