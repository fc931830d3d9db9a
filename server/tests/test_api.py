"""Tests for the HTTP and WebSocket endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

STRIKE = {
    "fighter_id": "fighter_1",
    "competitor_name": "Ana",
    "force": 320.0,
    "velocity": 7.5,
    "acceleration": 38.0,
    "timestamp": 1700000000000,
}


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "uptime_seconds" in data
    assert data["displays_connected"] == 0
    assert data["battle_state"] == "setup"


@pytest.mark.asyncio
async def test_stats_empty(client):
    resp = await client.get("/api/v1/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["hits_received"] == 0
    assert data["active_sensors"]["total"] == 0
    assert data["displays"]["connected"] == 0


@pytest.mark.asyncio
async def test_config_endpoint(client):
    resp = await client.get("/api/v1/config")
    assert resp.status_code == 200
    data = resp.json()
    assert data["hit_ttl_seconds"] == 10.0
    assert data["history_size"] == 3
    assert data["reconnect"] is False


@pytest.mark.asyncio
async def test_submit_single_hit(client):
    resp = await client.post("/api/v1/hits", json=STRIKE)
    assert resp.status_code == 200
    data = resp.json()
    assert data["accepted"] is True
    assert data["hits_processed"] == 1
    assert data["total_hits"] == {"fighter_1": 1}

    resp = await client.get("/api/v1/stats")
    assert resp.json()["active_sensors"]["fighters"] == ["fighter_1"]


@pytest.mark.asyncio
async def test_submit_batch(client):
    events = [
        STRIKE,
        {**STRIKE, "force": 400.0},
        {"fighter_id": "fighter_2", "force": 150.0},
    ]
    resp = await client.post("/api/v1/hits", json={"events": events})
    assert resp.status_code == 200
    assert resp.json()["total_hits"] == {"fighter_1": 2, "fighter_2": 1}

    resp = await client.get("/api/v1/max-stats")
    data = resp.json()
    assert data["fighter_1"]["max_force"] == 400.0
    assert data["fighter_2"]["max_velocity"] == 0.0


@pytest.mark.asyncio
async def test_bad_batch_changes_nothing(client):
    events = [STRIKE, {"fighter_id": "fighter_3", "force": 1}]
    resp = await client.post("/api/v1/hits", json={"events": events})
    assert resp.status_code == 422
    assert resp.json()["accepted"] is False

    resp = await client.get("/api/v1/stats")
    assert resp.json()["hits_received"] == 0
    assert resp.json()["hits_rejected"] == 2


@pytest.mark.asyncio
async def test_invalid_json(client):
    resp = await client.post(
        "/api/v1/hits",
        content=b"not json at all",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid JSON"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    b'{"fighter_id": "fighter_1", "force": 1, "timestamp": Infinity}',
    b'{"fighter_id": "fighter_1", "force": NaN}',
    b'{"fighter_id": "fighter_1", "force": 1e400}',
])
async def test_non_finite_numbers_rejected(client, body):
    resp = await client.post("/api/v1/hits", content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 422
    assert resp.json()["accepted"] is False

    resp = await client.get("/api/v1/stats")
    assert resp.json()["hits_received"] == 0


@pytest.mark.asyncio
async def test_max_stats_per_fighter_and_reset(client):
    resp = await client.get("/api/v1/max-stats/fighter_1")
    assert resp.status_code == 404

    await client.post("/api/v1/hits", json=STRIKE)
    resp = await client.get("/api/v1/max-stats/fighter_1")
    assert resp.status_code == 200
    assert resp.json()["competitor_name"] == "Ana"

    resp = await client.delete("/api/v1/max-stats")
    assert resp.json() == {"ok": True}
    resp = await client.get("/api/v1/max-stats")
    assert resp.json() == {}


@pytest.mark.asyncio
async def test_battle_setup_and_status(client):
    resp = await client.post("/api/v1/battle/setup", json={
        "competitor1": {"name": "Ana", "nationality": "CL"},
        "competitor2": {"name": "Bea"},
        "battleConfig": {"mode": "time", "rounds": 2, "roundDuration": 45},
    })
    assert resp.status_code == 200
    battle = resp.json()["battle"]
    assert battle["state"] == "setup"
    assert battle["time_left"] == 45
    assert battle["mode"] == "time"

    resp = await client.get("/api/v1/battle")
    assert resp.json()["battle"]["competitors"]["1"]["name"] == "Ana"


@pytest.mark.asyncio
async def test_battle_setup_rejects_bad_config(client):
    resp = await client.post("/api/v1/battle/setup", json={"battleConfig": {"mode": "time", "rounds": 2}})
    assert resp.status_code == 422

    resp = await client.post("/api/v1/battle/setup", json={"battleConfig": {"mode": "sudden-death"}})
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("battle_config", [
    {"mode": "time", "rounds": 2, "roundDuration": "60"},
    {"mode": "rounds", "rounds": True},
    {"mode": "rounds", "rounds": "3"},
])
async def test_battle_setup_rejects_badly_typed_config(client, battle_config):
    resp = await client.post("/api/v1/battle/setup", json={"battleConfig": battle_config})
    assert resp.status_code == 422
    assert resp.json()["ok"] is False

    resp = await client.get("/api/v1/battle")
    assert resp.json()["battle"]["total_rounds"] == 3


@pytest.mark.asyncio
async def test_next_round_refused_until_both_scored(client):
    await client.post("/api/v1/battle/start")
    await client.post("/api/v1/hits", json=STRIKE)

    resp = await client.post("/api/v1/battle/next-round")
    assert resp.status_code == 409
    assert resp.json()["outcome"] == "refused"

    await client.post("/api/v1/hits", json={**STRIKE, "fighter_id": "fighter_2"})
    resp = await client.post("/api/v1/battle/next-round")
    assert resp.status_code == 200
    data = resp.json()
    assert data["outcome"] == "advanced"
    assert data["battle"]["current_round"] == 2

    resp = await client.get("/api/v1/battle/totals/1")
    assert resp.json()["totalHits"] == 1
    assert resp.json()["roundsPlayed"] == 2

    resp = await client.get("/api/v1/battle/totals/3")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_pause_requires_running_battle(client):
    resp = await client.post("/api/v1/battle/pause")
    assert resp.status_code == 409

    await client.post("/api/v1/battle/setup", json={"battleConfig": {"mode": "time", "rounds": 2, "roundDuration": 30}})
    await client.post("/api/v1/battle/start")
    resp = await client.post("/api/v1/battle/pause")
    assert resp.json()["battle"]["state"] == "paused"


@pytest.mark.asyncio
async def test_pause_in_rounds_mode_keeps_battle_active(client):
    await client.post("/api/v1/battle/start")
    resp = await client.post("/api/v1/battle/pause")
    assert resp.status_code == 200
    assert resp.json()["battle"]["state"] == "active"


@pytest.mark.asyncio
async def test_finished_battle_rejects_start(client):
    await client.post("/api/v1/battle/finish")
    resp = await client.post("/api/v1/battle/start")
    assert resp.status_code == 409

    resp = await client.post("/api/v1/battle/reset")
    assert resp.json()["battle"]["state"] == "setup"


@pytest.mark.asyncio
async def test_view_broadcast(client):
    resp = await client.post("/api/v1/views/resumen", json={"round": 2})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "viewType": "resumen"}

    resp = await client.post("/api/v1/views/round_advance", json={})
    assert resp.status_code == 404

    resp = await client.get("/api/v1/stats")
    assert resp.json()["view_changes"] == 1


def test_display_channel_receives_broadcasts():
    from beathard.main import app

    client = TestClient(app)
    with client.websocket_connect("/ws") as ws:
        client.post("/api/v1/battle/setup", json={"competitor1": {"name": "Ana"}})
        resp = client.post("/api/v1/views/cover")
        assert resp.status_code == 200

        # Setup resets max stats and the battle before the cover view goes out.
        assert ws.receive_json()["type"] == "max_stats_reset"
        reset = ws.receive_json()
        assert reset["type"] == "battle_reset"
        assert reset["data"]["clearHistory"] is True
        cover = ws.receive_json()
        assert cover["viewType"] == "cover"
        assert cover["data"]["competitor1"]["name"] == "Ana"

        ws.send_text("not a frame")
        client.post("/api/v1/hits", json=STRIKE)

        stats = ws.receive_json()
        assert stats["viewType"] == "stats"
        assert stats["data"]["force"] == 320.0
        update = ws.receive_json()
        assert update["type"] == "max_stats_update"
        assert update["data"]["new_records"] == ["force", "velocity", "acceleration"]

        assert client.get("/api/v1/health").json()["displays_connected"] == 1


def test_late_display_gets_current_view():
    from beathard.main import app

    client = TestClient(app)
    client.post("/api/v1/views/stats-parcial", json={"round": 1})
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {"viewType": "stats-parcial", "data": {"round": 1}}


@pytest.mark.asyncio
async def test_round_replayed_after_stop(client):
    await client.post("/api/v1/battle/start")
    await client.post("/api/v1/hits", json=STRIKE)
    await client.post("/api/v1/hits", json={**STRIKE, "fighter_id": "fighter_2"})
    assert (await client.post("/api/v1/battle/next-round")).status_code == 200

    await client.post("/api/v1/battle/stop")
    await client.post("/api/v1/battle/start")
    await client.post("/api/v1/hits", json=STRIKE)
    await client.post("/api/v1/hits", json={**STRIKE, "fighter_id": "fighter_2"})
    resp = await client.post("/api/v1/battle/next-round")
    assert resp.status_code == 200
    assert resp.json()["battle"]["current_round"] == 2

    resp = await client.get("/api/v1/battle/totals/1")
    assert resp.json()["totalHits"] == 1
    assert resp.json()["roundsPlayed"] == 2


def test_display_resyncs_after_battle_reset():
    from beathard.display.mirror import DisplayMirror
    from beathard.main import app

    client = TestClient(app)
    mirror = DisplayMirror()
    with client.websocket_connect("/ws") as ws:
        client.post("/api/v1/battle/start")
        client.post("/api/v1/hits", json=STRIKE)
        client.post("/api/v1/hits", json={**STRIKE, "fighter_id": "fighter_2"})
        client.post("/api/v1/battle/next-round")
        client.post("/api/v1/hits", json=STRIKE)
        client.post("/api/v1/battle/reset")
        client.post("/api/v1/views/cover", json={})

        while mirror.current_view != "cover":
            assert mirror.apply_raw(ws.receive_text()) is True

    assert mirror.current_round == 1
    assert mirror.rounds_history == {}
    assert mirror.combat_record(1).total_hits == 0
    assert mirror.player_max_stats(1) is None

    # A display joining now only sees the post-reset view.
    with client.websocket_connect("/ws") as late:
        assert late.receive_json() == {"viewType": "cover", "data": {}}
