"""Display-side mirror of the battle.

A disposable, eventually-consistent cache built only from received
broadcast messages. It never writes back to the control side; its only
local mutation besides applying messages is TTL-driven hit eviction.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Callable

import structlog

from beathard.core.aggregator import HIT_TTL_SECONDS, HISTORY_SIZE, HitAggregator
from beathard.core.models import (
    FIGHTER_KEYS,
    BeatHardError,
    CombatRecord,
    MaxStats,
    RoundSnapshot,
    ViewMessage,
    ViewType,
    fighter_key,
)
from beathard.core.protocol import (
    BATTLE_RESET,
    MAX_STATS_RESET,
    MAX_STATS_UPDATE,
    ProtocolError,
    decode_message,
    parse_hit_event,
    parse_max_stats,
)

log = structlog.get_logger()

_MAX_STAT_FIELDS = ("competitor_name", "max_force", "max_velocity", "max_acceleration")


class DisplayMirror:
    """Local cache of what a display surface needs to render."""

    def __init__(
        self,
        ttl_seconds: float = HIT_TTL_SECONDS,
        history_size: int = HISTORY_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self.combat = HitAggregator(ttl_seconds=ttl_seconds, history_size=history_size, clock=clock)
        self.current_view: str = ViewType.COVER.value
        self.view_data: dict = {}
        self.current_round = 1
        self.round_info: dict = {}
        self.max_stats: dict[str, MaxStats] = {}
        self.rounds_history: dict[int, RoundSnapshot] = {}
        # Survives battle resets.
        self.competitors: dict[int, dict] = {}
        self.is_connected = False

    # -- message handling ----------------------------------------------------

    def apply_raw(self, raw: str | bytes) -> bool:
        """Decode and apply one frame. Malformed frames are logged and dropped."""
        try:
            message = decode_message(raw)
        except ProtocolError as exc:
            log.warning("display_message_dropped", reason=str(exc))
            return False
        return self.apply(message)

    def apply(self, message: ViewMessage) -> bool:
        """Fold one message into the mirror. Returns False if it was dropped."""
        try:
            if message.view_type == ViewType.ROUND_ADVANCE.value:
                self._advance_round(message.data)
                return True

            if message.type == MAX_STATS_UPDATE:
                self._merge_max_stats(message.data)
            elif message.type == MAX_STATS_RESET:
                self.max_stats.clear()
            elif message.type == BATTLE_RESET:
                self.reset_battle(clear_history=bool(message.data.get("clearHistory", True)))
                self.round_info = dict(message.data)

            if message.view_type is not None:
                if message.view_type == ViewType.STATS.value and "fighter_id" in message.data:
                    event = parse_hit_event(message.data)
                    self.combat.ingest(event.fighter_id, event)
                self.current_view = message.view_type
                self.view_data = message.data
                self._cache_competitors(message.data)
        except (BeatHardError, ValueError) as exc:
            log.warning("display_message_dropped", view_type=message.view_type,
                        type=message.type, reason=str(exc))
            return False
        return True

    def _advance_round(self, data: dict) -> None:
        """Archive the local round and move the round counter on. The view is kept."""
        self.rounds_history[self.current_round] = RoundSnapshot(
            round_number=self.current_round,
            timestamp=self._clock(),
            records=self.combat.snapshot(),
        )
        self.combat.reset()
        next_round = data.get("currentRound")
        if isinstance(next_round, int) and next_round > self.current_round:
            self.current_round = next_round
        else:
            self.current_round += 1
        self.round_info = dict(data)
        log.info("display_round_advanced", round=self.current_round)

    def _merge_max_stats(self, data: dict) -> None:
        """Fold a max_stats_update in. Fields missing from the payload keep their value."""
        incoming = parse_max_stats(data)
        current = self.max_stats.get(incoming.fighter_id)
        if current is not None:
            present = {f: getattr(incoming, f) for f in _MAX_STAT_FIELDS if data.get(f) is not None}
            incoming = replace(current, **present)
        self.max_stats[incoming.fighter_id] = incoming

    def _cache_competitors(self, data: dict) -> None:
        for cid in (1, 2):
            competitor = data.get(f"competitor{cid}")
            if isinstance(competitor, dict):
                self.competitors[cid] = competitor

    # -- local maintenance ---------------------------------------------------

    def sweep(self, now: float | None = None) -> int:
        return self.combat.sweep(now)

    def reset_battle(self, clear_history: bool = True) -> None:
        """Back to round 1. Max stats and cached competitors are left alone."""
        self.combat.reset()
        self.current_round = 1
        if clear_history:
            self.rounds_history = {}
        log.info("display_battle_reset", clear_history=clear_history)

    def set_connected(self, connected: bool) -> None:
        self.is_connected = connected

    # -- queries -------------------------------------------------------------

    def combat_record(self, competitor_id: int) -> CombatRecord:
        return self.combat.get_combat_record(fighter_key(competitor_id))

    def player_max_stats(self, competitor_id: int) -> MaxStats | None:
        return self.max_stats.get(fighter_key(competitor_id))

    def completed_rounds(self) -> list[RoundSnapshot]:
        # After a stop the old snapshots stay until their rounds are replayed.
        return [self.rounds_history[n] for n in sorted(self.rounds_history) if n < self.current_round]

    def player_total_hits(self, competitor_id: int) -> int:
        """Hits across completed rounds plus the current one."""
        key = fighter_key(competitor_id)
        archived = sum(snap.record(key).total_hits for snap in self.completed_rounds())
        return archived + self.combat.get_total_hits(key)

    def competitor(self, competitor_id: int) -> dict | None:
        return self.competitors.get(competitor_id)

    def snapshot(self) -> dict:
        """Render snapshot: current histories and counters per fighter."""
        return {
            "view": self.current_view,
            "round": self.current_round,
            "connected": self.is_connected,
            "fighters": {fid: self.combat.get_combat_record(fid).to_dict() for fid in FIGHTER_KEYS},
        }
