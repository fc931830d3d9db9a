"""Tests for wire parsing and envelopes."""

from __future__ import annotations

import json

import pytest

from beathard.core.models import MaxStats, UnknownFighterError, ViewMessage
from beathard.core.protocol import (
    ProtocolError,
    decode_message,
    encode_message,
    max_stats_message,
    parse_hit_event,
    parse_max_stats,
    round_advance_message,
)


def test_parse_hit_event_full():
    event = parse_hit_event({
        "fighter_id": "fighter_1", "competitor_name": "Ana",
        "force": 350, "velocity": 8.5, "acceleration": 42.0, "timestamp": 1700000000000,
    })
    assert event.fighter_id == "fighter_1"
    assert event.force == 350.0
    assert event.timestamp == 1700000000000
    assert event.metric("velocity") == 8.5


def test_missing_numeric_fields_default_to_zero_but_are_not_metrics():
    event = parse_hit_event({"fighter_id": "fighter_2", "force": 120})
    assert event.velocity == 0.0
    assert event.acceleration == 0.0
    assert event.metric("force") == 120.0
    assert event.metric("velocity") is None
    assert event.timestamp > 0


def test_parse_hit_event_rejects_unknown_fighter_and_bad_numbers():
    with pytest.raises(UnknownFighterError):
        parse_hit_event({"fighter_id": "fighter_9", "force": 1})
    with pytest.raises(ProtocolError):
        parse_hit_event({"fighter_id": "fighter_1", "force": "hard"})
    with pytest.raises(ProtocolError):
        parse_hit_event(["not", "an", "object"])


def test_parse_max_stats_defaults():
    stats = parse_max_stats({"fighter_id": "fighter_1", "max_force": 500})
    assert stats == MaxStats(fighter_id="fighter_1", max_force=500.0)


@pytest.mark.parametrize("raw", [
    "not json",
    "[1, 2]",
    json.dumps({"data": {}}),
    json.dumps({"viewType": 3}),
    json.dumps({"viewType": "stats", "data": [1]}),
])
def test_decode_rejects_malformed(raw):
    with pytest.raises(ProtocolError):
        decode_message(raw)


def test_encode_uses_wire_field_names():
    frame = json.loads(encode_message(ViewMessage(view_type="cover", data={"a": 1})))
    assert frame == {"viewType": "cover", "data": {"a": 1}}

    push = json.loads(encode_message(max_stats_message(MaxStats(fighter_id="fighter_2", max_force=9), ["force"])))
    assert "viewType" not in push
    assert push["type"] == "max_stats_update"
    assert push["data"]["fighter_id"] == "fighter_2"
    assert push["data"]["max_force"] == 9


def test_round_advance_payload():
    message = round_advance_message(2, 3, "time", 60)
    decoded = decode_message(encode_message(message))
    assert decoded.view_type == "round_advance"
    assert decoded.data == {"currentRound": 2, "totalRounds": 3, "battleMode": "time", "roundDuration": 60}


def test_simulated_strikes_parse():
    from tools.simulator.simulate import SimFighter, make_strike

    fighter = SimFighter(fighter_id="fighter_2", name="SIM AZUL", power=1.0)
    for _ in range(50):
        event = parse_hit_event(make_strike(fighter, 1700000000000))
        assert event.fighter_id == "fighter_2"
        assert event.force > 0
        assert "force" in event.present


@pytest.mark.parametrize("field, value", [
    ("force", float("inf")),
    ("velocity", float("nan")),
    ("acceleration", 10 ** 400),
    ("timestamp", float("inf")),
])
def test_non_finite_numbers_rejected(field, value):
    with pytest.raises(ProtocolError):
        parse_hit_event({"fighter_id": "fighter_1", "force": 10, field: value})


def test_non_finite_json_literals_rejected():
    message = decode_message('{"viewType": "stats", "data": {"fighter_id": "fighter_1", "timestamp": 1e400}}')
    with pytest.raises(ProtocolError):
        parse_hit_event(message.data)
    with pytest.raises(ProtocolError):
        parse_max_stats({"fighter_id": "fighter_1", "max_force": float("nan")})


def test_battle_reset_envelope():
    from beathard.core.protocol import battle_reset_message

    frame = json.loads(encode_message(battle_reset_message(1, 3, "rounds", None, clear_history=True)))
    assert "viewType" not in frame
    assert frame["type"] == "battle_reset"
    assert frame["data"]["currentRound"] == 1
    assert frame["data"]["clearHistory"] is True
