"""Tests for the CombatProcessor wiring."""

from __future__ import annotations

import pytest

from beathard.core.aggregator import HitAggregator
from beathard.core.max_stats import MaxStatTracker
from beathard.core.processor import CombatProcessor, UnknownViewError
from beathard.core.protocol import parse_hit_event
from beathard.core.stats import ServerStats


@pytest.fixture
def processor(clock, broadcaster):
    return CombatProcessor(
        aggregator=HitAggregator(clock=clock),
        max_stats=MaxStatTracker(),
        broadcaster=broadcaster,
        stats=ServerStats(),
    )


def test_process_event_broadcasts_stats_and_new_max(processor, broadcaster):
    record = processor.process_event(parse_hit_event(
        {"fighter_id": "fighter_1", "force": 300, "velocity": 6, "acceleration": 25}))

    assert record.total_hits == 1
    [stats] = broadcaster.of_view("stats")
    assert stats.data["force"] == 300
    [update] = broadcaster.of_type("max_stats_update")
    assert update.data["max_force"] == 300
    assert update.data["new_records"] == ["force", "velocity", "acceleration"]


def test_no_max_push_without_new_record(processor, broadcaster):
    processor.process_event(parse_hit_event({"fighter_id": "fighter_1", "force": 300, "velocity": 6, "acceleration": 25}))
    processor.process_event(parse_hit_event({"fighter_id": "fighter_1", "force": 100, "velocity": 1, "acceleration": 5}))

    assert len(broadcaster.of_view("stats")) == 2
    assert len(broadcaster.of_type("max_stats_update")) == 1


def test_missing_field_does_not_become_a_maximum(processor, broadcaster):
    processor.process_event(parse_hit_event({"fighter_id": "fighter_2", "force": 80}))

    [update] = broadcaster.of_type("max_stats_update")
    assert update.data["new_records"] == ["force"]
    assert update.data["max_velocity"] == 0.0


def test_broadcast_view(processor, broadcaster):
    processor.broadcast_view("cover", {"competitor1": {"name": "Ana"}})
    assert broadcaster.messages[-1].view_type == "cover"

    with pytest.raises(UnknownViewError):
        processor.broadcast_view("round_advance", {})
    with pytest.raises(UnknownViewError):
        processor.broadcast_view("scoreboard", {})


def test_reset_max_stats_notifies_displays(processor, broadcaster):
    processor.process_event(parse_hit_event({"fighter_id": "fighter_1", "force": 10}))
    processor.reset_max_stats()
    assert broadcaster.messages[-1].type == "max_stats_reset"
