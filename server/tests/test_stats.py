"""Tests for ServerStats and active sensor tracking."""

from __future__ import annotations

import time

from beathard.core.stats import ServerStats


def test_initial_stats():
    stats = ServerStats()
    snap = stats.snapshot()
    assert snap["hits_received"] == 0
    assert snap["displays"]["connected"] == 0
    assert snap["active_sensors"]["total"] == 0


def test_record_hits_per_fighter():
    stats = ServerStats()
    stats.record_hit("fighter_1")
    stats.record_hit("fighter_1")
    stats.record_hit("fighter_2")

    snap = stats.snapshot()
    assert snap["hits_received"] == 3
    assert snap["active_sensors"]["total"] == 2
    assert snap["active_sensors"]["fighters"] == ["fighter_1", "fighter_2"]


def test_stale_sensors_pruned():
    """Fighters not seen within the active window drop out of the active list."""
    stats = ServerStats(active_window_seconds=0.1)
    stats.record_hit("fighter_1")

    snap = stats.snapshot()
    assert snap["active_sensors"]["total"] == 1

    time.sleep(0.15)

    snap = stats.snapshot()
    assert snap["active_sensors"]["total"] == 0


def test_display_tracking():
    stats = ServerStats()
    stats.record_display_connected(1)
    stats.record_display_connected(2)
    stats.record_display_disconnected(1)

    snap = stats.snapshot()
    assert snap["displays"]["connected"] == 1
    assert snap["displays"]["max_ever"] == 2
    assert snap["displays"]["connections_total"] == 2


def test_broadcast_counters():
    stats = ServerStats()
    stats.record_broadcast(displays=3)
    stats.record_broadcast(displays=3, dropped=1)
    stats.record_rejected(2)
    stats.record_view_change()

    snap = stats.snapshot()
    assert snap["messages_broadcast"] == 2
    assert snap["frames_delivered"] == 5
    assert snap["frames_dropped"] == 1
    assert snap["hits_rejected"] == 2
    assert snap["view_changes"] == 1
