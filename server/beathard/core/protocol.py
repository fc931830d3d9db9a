"""Broadcast wire protocol.

Parses incoming JSON (sensor events, display frames) into internal models
and builds the envelopes sent to display surfaces. Missing numeric fields
are coerced to 0.0 here, once, so downstream code always sees complete
records.
"""

from __future__ import annotations

import json
import math
import time

from beathard.core.models import (
    FIGHTER_KEYS,
    BeatHardError,
    HitEventInput,
    MaxStats,
    UnknownFighterError,
    ViewMessage,
    ViewType,
)

MAX_STATS_UPDATE = "max_stats_update"
MAX_STATS_RESET = "max_stats_reset"
BATTLE_RESET = "battle_reset"

_METRICS = ("force", "velocity", "acceleration")


class ProtocolError(BeatHardError):
    """A message or payload could not be parsed."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _number(value, field_name: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProtocolError(f"{field_name} must be a number")
    try:
        number = float(value)
    except OverflowError as exc:
        raise ProtocolError(f"{field_name} is out of range") from exc
    if not math.isfinite(number):
        raise ProtocolError(f"{field_name} must be finite")
    return number


def parse_hit_event(data: dict) -> HitEventInput:
    """Parse a sensor-originated strike event."""
    if not isinstance(data, dict):
        raise ProtocolError("hit event must be an object")
    fighter_id = data.get("fighter_id")
    if fighter_id not in FIGHTER_KEYS:
        raise UnknownFighterError(f"unknown fighter {fighter_id!r}")

    present = frozenset(m for m in _METRICS if data.get(m) is not None)
    timestamp = data.get("timestamp")
    return HitEventInput(
        fighter_id=fighter_id,
        competitor_name=str(data.get("competitor_name") or ""),
        force=_number(data.get("force"), "force"),
        velocity=_number(data.get("velocity"), "velocity"),
        acceleration=_number(data.get("acceleration"), "acceleration"),
        timestamp=int(_number(timestamp, "timestamp")) if timestamp is not None else _now_ms(),
        event_type=str(data.get("event_type") or ""),
        limb_name=str(data.get("limb_name") or ""),
        present=present,
    )


def parse_max_stats(data: dict) -> MaxStats:
    """Parse a max_stats_update payload, defaulting missing values to 0."""
    if not isinstance(data, dict):
        raise ProtocolError("max stats payload must be an object")
    fighter_id = data.get("fighter_id")
    if fighter_id not in FIGHTER_KEYS:
        raise ProtocolError(f"unknown fighter {fighter_id!r}")
    return MaxStats(
        fighter_id=fighter_id,
        competitor_name=str(data.get("competitor_name") or ""),
        max_force=_number(data.get("max_force"), "max_force"),
        max_velocity=_number(data.get("max_velocity"), "max_velocity"),
        max_acceleration=_number(data.get("max_acceleration"), "max_acceleration"),
    )


def decode_message(raw: str | bytes) -> ViewMessage:
    """Decode one frame received on the broadcast channel."""
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError("invalid JSON") from exc
    if not isinstance(body, dict):
        raise ProtocolError("message must be an object")

    view_type = body.get("viewType")
    msg_type = body.get("type")
    if view_type is None and msg_type is None:
        raise ProtocolError("message has neither viewType nor type")
    if view_type is not None and not isinstance(view_type, str):
        raise ProtocolError("viewType must be a string")

    data = body.get("data", {})
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ProtocolError("data must be an object")

    return ViewMessage(
        view_type=view_type,
        data=data,
        type=msg_type,
        timestamp=body.get("timestamp"),
    )


def encode_message(message: ViewMessage) -> str:
    return json.dumps(message.to_dict(), separators=(",", ":"))


def stats_message(event: HitEventInput) -> ViewMessage:
    return ViewMessage(view_type=ViewType.STATS.value, data=event.to_dict(), timestamp=_now_ms())


def max_stats_message(stats: MaxStats, new_records: list[str]) -> ViewMessage:
    data = stats.to_dict()
    data["new_records"] = list(new_records)
    return ViewMessage(view_type=None, data=data, type=MAX_STATS_UPDATE, timestamp=_now_ms())


def max_stats_reset_message() -> ViewMessage:
    return ViewMessage(view_type=None, type=MAX_STATS_RESET, timestamp=_now_ms())


def round_advance_message(current_round: int, total_rounds: int, battle_mode: str,
                          round_duration: int | None) -> ViewMessage:
    return ViewMessage(
        view_type=ViewType.ROUND_ADVANCE.value,
        data={
            "currentRound": current_round,
            "totalRounds": total_rounds,
            "battleMode": battle_mode,
            "roundDuration": round_duration,
        },
    )


def battle_reset_message(current_round: int, total_rounds: int, battle_mode: str,
                         round_duration: int | None, clear_history: bool) -> ViewMessage:
    """Tell displays the battle went back to its start. The current view is kept."""
    return ViewMessage(
        view_type=None,
        type=BATTLE_RESET,
        data={
            "currentRound": current_round,
            "totalRounds": total_rounds,
            "battleMode": battle_mode,
            "roundDuration": round_duration,
            "clearHistory": clear_history,
        },
        timestamp=_now_ms(),
    )
