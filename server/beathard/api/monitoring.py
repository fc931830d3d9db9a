"""Health check and monitoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from beathard.main import get_battle, get_stats

    snapshot = get_stats().snapshot()
    return {
        "status": "ok",
        "version": "0.1.0",
        "uptime_seconds": snapshot["uptime_seconds"],
        "displays_connected": snapshot["displays"]["connected"],
        "battle_state": get_battle().state.value,
    }


@router.get("/stats")
async def stats() -> dict:
    """Detailed server statistics.

    The ``active_sensors`` section lists fighters whose sensors reported a
    strike within the last N seconds (configurable window).
    """
    from beathard.main import get_stats

    return get_stats().snapshot()


@router.get("/config")
async def get_client_config() -> dict:
    """Configuration endpoint for display surfaces and the operator UI."""
    from beathard.main import get_config

    config = get_config()
    return {
        "ws_url": config.display.url,
        "hit_ttl_seconds": config.combat.hit_ttl_seconds,
        "history_size": config.combat.history_size,
        "sweep_interval_seconds": config.display.sweep_interval_seconds,
        "reconnect": config.display.reconnect,
    }
