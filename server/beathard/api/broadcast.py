"""Display WebSocket channel and max-stat endpoints."""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from beathard.core.models import FIGHTER_KEYS
from beathard.core.protocol import ProtocolError, decode_message

router = APIRouter()

log = structlog.get_logger()


@router.websocket("/ws")
async def display_channel(websocket: WebSocket) -> None:
    """One persistent channel per display surface.

    Outbound frames come from the hub; inbound frames are not acted on,
    malformed ones are logged.
    """
    from beathard.main import get_hub

    hub = get_hub()
    await websocket.accept()
    conn = hub.register(websocket)
    writer = asyncio.create_task(conn.run_writer())
    try:
        while True:
            frame = await websocket.receive_text()
            try:
                decode_message(frame)
            except ProtocolError as exc:
                log.warning("display_frame_malformed", display=conn.id, reason=str(exc))
    except WebSocketDisconnect:
        pass
    finally:
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
        except Exception:
            log.warning("display_writer_failed", display=conn.id, exc_info=True)
        hub.unregister(conn)


@router.get("/api/v1/max-stats")
async def all_max_stats() -> dict:
    from beathard.main import get_max_stats

    return {fid: stats.to_dict() for fid, stats in get_max_stats().all().items()}


@router.get("/api/v1/max-stats/{fighter_id}")
async def fighter_max_stats(fighter_id: str) -> JSONResponse:
    from beathard.main import get_max_stats

    stats = get_max_stats().get(fighter_id) if fighter_id in FIGHTER_KEYS else None
    if stats is None:
        return JSONResponse(status_code=404, content={"error": f"no max stats for {fighter_id}"})
    return JSONResponse(content=stats.to_dict())


@router.delete("/api/v1/max-stats")
async def reset_max_stats() -> dict:
    from beathard.main import get_processor

    get_processor().reset_max_stats()
    return {"ok": True}
