"""Battle control endpoints used by the operator UI."""

from __future__ import annotations

import json

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from beathard.core.models import (
    BattleConfig,
    BattleConfigError,
    BattleMode,
    BattleStateError,
    Competitor,
    UnknownFighterError,
    fighter_key,
)
from beathard.core.processor import UnknownViewError
from beathard.core.rounds import AdvanceOutcome

router = APIRouter(prefix="/api/v1")


def _parse_competitor(cid: int, data: dict | None) -> Competitor | None:
    if not data:
        return None
    if not isinstance(data, dict) or not data.get("name"):
        raise BattleConfigError(f"competitor{cid} needs a name")
    return Competitor(
        id=cid,
        name=str(data["name"]),
        photo_url=data.get("photoUrl"),
        nationality=data.get("nationality"),
        country_flag=data.get("countryFlag"),
    )


def _parse_battle_config(data: dict) -> BattleConfig:
    try:
        mode = BattleMode(data.get("mode", "rounds"))
    except ValueError as exc:
        raise BattleConfigError(f"unknown mode {data.get('mode')!r}") from exc
    return BattleConfig(
        mode=mode,
        rounds=data.get("rounds", 3),
        round_duration=data.get("roundDuration"),
    )


def _conflict(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=409, content={"ok": False, "error": str(exc)})


def _status(extra: dict | None = None) -> dict:
    from beathard.main import get_battle

    result = {"ok": True, "battle": get_battle().status()}
    if extra:
        result.update(extra)
    return result


@router.post("/battle/setup")
async def setup_battle(request: Request) -> JSONResponse:
    """Configure competitors and battle mode.

    Body: {"competitor1": {...}, "competitor2": {...},
           "battleConfig": {"mode": "rounds"|"time", "rounds": 3, "roundDuration": 60}}
    """
    from beathard.main import get_battle

    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse(status_code=400, content={"ok": False, "error": "invalid JSON"})
    if not isinstance(body, dict):
        return JSONResponse(status_code=422, content={"ok": False, "error": "body must be an object"})

    try:
        config = _parse_battle_config(body.get("battleConfig") or {})
        competitors = [c for c in (_parse_competitor(1, body.get("competitor1")),
                                   _parse_competitor(2, body.get("competitor2"))) if c]
        get_battle().configure(config, competitors)
    except BattleConfigError as exc:
        return JSONResponse(status_code=422, content={"ok": False, "error": str(exc)})
    except BattleStateError as exc:
        return _conflict(exc)
    return JSONResponse(content=_status())


@router.get("/battle")
async def battle_status() -> dict:
    return _status()


@router.post("/battle/start")
async def start_battle() -> JSONResponse:
    from beathard.main import get_battle

    try:
        get_battle().start()
    except BattleStateError as exc:
        return _conflict(exc)
    return JSONResponse(content=_status())


@router.post("/battle/pause")
async def pause_battle() -> JSONResponse:
    from beathard.main import get_battle

    try:
        get_battle().pause()
    except BattleStateError as exc:
        return _conflict(exc)
    return JSONResponse(content=_status())


@router.post("/battle/stop")
async def stop_battle() -> dict:
    from beathard.main import get_battle

    get_battle().stop()
    return _status()


@router.post("/battle/finish")
async def finish_battle() -> dict:
    from beathard.main import get_battle

    get_battle().finish()
    return _status()


@router.post("/battle/reset")
async def reset_battle() -> dict:
    from beathard.main import get_battle

    get_battle().reset_battle()
    return _status()


@router.post("/battle/reset-round")
async def reset_round() -> JSONResponse:
    from beathard.main import get_battle

    try:
        get_battle().reset_round()
    except BattleStateError as exc:
        return _conflict(exc)
    return JSONResponse(content=_status())


@router.post("/battle/next-round")
async def next_round() -> JSONResponse:
    """Close the current round. Refused (409) until both fighters have scored in rounds mode."""
    from beathard.main import get_battle

    try:
        outcome = get_battle().advance_round()
    except BattleStateError as exc:
        return _conflict(exc)

    if outcome == AdvanceOutcome.REFUSED:
        return JSONResponse(status_code=409, content={
            "ok": False,
            "outcome": outcome.value,
            "can_advance": False,
            "error": "both competitors need at least one recorded hit",
        })
    return JSONResponse(content=_status({"outcome": outcome.value}))


@router.get("/battle/totals/{competitor_id}")
async def player_totals(competitor_id: int) -> JSONResponse:
    from beathard.main import get_battle

    try:
        key = fighter_key(competitor_id)
    except UnknownFighterError as exc:
        return JSONResponse(status_code=404, content={"error": str(exc)})
    return JSONResponse(content=get_battle().player_totals(key).to_dict())


@router.post("/views/{view_type}")
async def broadcast_view(view_type: str, request: Request) -> JSONResponse:
    """Switch every display to a view. An empty body sends the battle's own data."""
    from beathard.main import get_battle, get_processor

    body_bytes = await request.body()
    data = None
    if body_bytes:
        try:
            data = json.loads(body_bytes)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(status_code=400, content={"ok": False, "error": "invalid JSON"})
        if not isinstance(data, dict):
            return JSONResponse(status_code=422, content={"ok": False, "error": "data must be an object"})

    if data is None:
        battle = get_battle()
        data = {f"competitor{cid}": c.to_dict() for cid, c in battle.competitors.items()}
        data["battleConfig"] = {**battle.config.to_dict(), "currentRound": battle.current_round}

    try:
        get_processor().broadcast_view(view_type, data)
    except UnknownViewError as exc:
        return JSONResponse(status_code=404, content={"ok": False, "error": str(exc)})
    return JSONResponse(content={"ok": True, "viewType": view_type})
