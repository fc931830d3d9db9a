"""View resolver: maps the current view identifier to its render data.

Purely a consumer of the display mirror. Every numeric field defaults to
0 so renderers never have to guard against missing values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from beathard.core.models import ViewType

if TYPE_CHECKING:
    from beathard.display.mirror import DisplayMirror

_DEFAULT_NAMES = {1: "JUGADOR 1", 2: "JUGADOR 2"}


def _max_stats(mirror: DisplayMirror, cid: int) -> dict:
    stats = mirror.player_max_stats(cid)
    return {
        "max_force": stats.max_force if stats else 0.0,
        "max_velocity": stats.max_velocity if stats else 0.0,
        "max_acceleration": stats.max_acceleration if stats else 0.0,
    }


def _competitor(mirror: DisplayMirror, cid: int) -> dict:
    competitor = mirror.competitor(cid) or {}
    return {
        "name": competitor.get("name") or _DEFAULT_NAMES[cid],
        "photoUrl": competitor.get("photoUrl"),
        "nationality": competitor.get("nationality"),
        "countryFlag": competitor.get("countryFlag"),
    }


def _battle_config(mirror: DisplayMirror) -> dict:
    config = mirror.view_data.get("battleConfig") or {}
    return {
        "mode": config.get("mode") or mirror.round_info.get("battleMode") or "rounds",
        "rounds": config.get("rounds") or mirror.round_info.get("totalRounds") or 3,
        "roundDuration": config.get("roundDuration") or mirror.round_info.get("roundDuration") or 0,
        "currentRound": mirror.current_round,
    }


def _player_totals(mirror: DisplayMirror, cid: int) -> dict:
    key = f"fighter_{cid}"
    records = [snap.record(key) for snap in mirror.completed_rounds()]
    records.append(mirror.combat_record(cid))
    total_hits = sum(r.total_hits for r in records)
    last_hits = [r.last_hit for r in records if r.last_hit is not None]
    total_force = sum(h.force for h in last_hits)
    return {
        "totalHits": total_hits,
        "averageForce": total_force / total_hits if total_hits else 0.0,
        "maxVelocity": max((h.velocity for h in last_hits), default=0.0),
        "maxAcceleration": max((h.acceleration for h in last_hits), default=0.0),
        "roundsPlayed": len(records),
    }


def resolve_cover(mirror: DisplayMirror) -> dict:
    return {
        "competitor1": _competitor(mirror, 1),
        "competitor2": _competitor(mirror, 2),
        "battleConfig": _battle_config(mirror),
    }


def resolve_stats(mirror: DisplayMirror) -> dict:
    fighters = {}
    for cid in (1, 2):
        record = mirror.combat_record(cid)
        fighters[f"fighter_{cid}"] = {
            "competitor": _competitor(mirror, cid),
            "hitHistory": [h.to_dict() for h in record.hit_history],
            "lastHit": record.last_hit.to_dict() if record.last_hit else None,
            "totalHits": record.total_hits,
            "maxStats": _max_stats(mirror, cid),
        }
    return {
        "round": mirror.current_round,
        "battleConfig": _battle_config(mirror),
        "completedRounds": len(mirror.completed_rounds()),
        "fighters": fighters,
    }


def resolve_stats_parcial(mirror: DisplayMirror) -> dict:
    return {
        "round": mirror.current_round,
        "totalRounds": _battle_config(mirror)["rounds"],
        "completedRounds": len(mirror.completed_rounds()),
        "fighters": {
            f"fighter_{cid}": {
                "competitor": _competitor(mirror, cid),
                "maxStats": _max_stats(mirror, cid),
                "totals": _player_totals(mirror, cid),
            }
            for cid in (1, 2)
        },
    }


def resolve_resumen(mirror: DisplayMirror) -> dict:
    config = _battle_config(mirror)
    return {
        "round": mirror.current_round,
        "rounds": config["rounds"],
        "fighters": {
            f"fighter_{cid}": {
                "competitor": _competitor(mirror, cid),
                "maxStats": _max_stats(mirror, cid),
                "totalHits": mirror.player_total_hits(cid),
            }
            for cid in (1, 2)
        },
    }


class ViewResolver:
    """Resolve the mirror's current view. Unknown views fall back to cover."""

    def __init__(self) -> None:
        self._resolvers: dict[str, Callable[[DisplayMirror], dict]] = {
            ViewType.COVER.value: resolve_cover,
            ViewType.STATS.value: resolve_stats,
            ViewType.STATS_PARCIAL.value: resolve_stats_parcial,
            ViewType.RESUMEN.value: resolve_resumen,
        }

    def resolve(self, mirror: DisplayMirror) -> tuple[str, dict]:
        """Return ``(view_type, render_data)`` for what the display should show."""
        view_type = mirror.current_view
        resolver = self._resolvers.get(view_type)
        if resolver is None:
            view_type = ViewType.COVER.value
            resolver = resolve_cover
        return view_type, resolver(mirror)
