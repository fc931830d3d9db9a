"""Sensor strike API endpoints.

This is the thin FastAPI adapter. It parses HTTP requests, converts JSON
to internal models, and calls the processor.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Request, Response

from beathard.core.models import BeatHardError
from beathard.core.protocol import parse_hit_event

router = APIRouter(prefix="/api/v1")


def _json_response(content: dict, status_code: int = 200) -> Response:
    return Response(
        content=json.dumps(content),
        status_code=status_code,
        media_type="application/json",
    )


@router.post("/hits")
async def receive_hits(request: Request) -> Response:
    """Receive strike events from the sensor layer.

    Accepts a single event object or ``{"events": [...]}``.
    """
    from beathard.main import get_processor, get_stats

    processor = get_processor()
    stats = get_stats()
    body_bytes = await request.body()

    try:
        body = json.loads(body_bytes)
    except (json.JSONDecodeError, UnicodeDecodeError):
        stats.record_rejected()
        return _json_response({"accepted": False, "error": "invalid JSON"}, 400)

    raw_events = body.get("events") if isinstance(body, dict) and "events" in body else [body]
    if not isinstance(raw_events, list):
        stats.record_rejected()
        return _json_response({"accepted": False, "error": "events must be a list"}, 422)

    # Parse everything first so a bad batch changes no state.
    try:
        events = [parse_hit_event(raw) for raw in raw_events]
    except BeatHardError as exc:
        stats.record_rejected(len(raw_events))
        return _json_response({"accepted": False, "error": str(exc)}, 422)

    totals = {}
    for event in events:
        record = processor.process_event(event)
        totals[event.fighter_id] = record.total_hits

    return _json_response({"accepted": True, "error": "", "hits_processed": len(events),
                           "total_hits": totals})
