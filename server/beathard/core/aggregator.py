"""Hit aggregator: per-fighter, round-scoped hit history and counters.

Each fighter keeps a short, time-expiring history of recent strikes
(newest first) and an independent total-hit counter for the round.
No framework dependencies.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

import structlog

from beathard.core.models import (
    FIGHTER_KEYS,
    CombatRecord,
    HitEvent,
    HitEventInput,
    check_fighter,
)

log = structlog.get_logger()

# Seconds a hit stays visible in the history.
HIT_TTL_SECONDS = 10.0

# Maximum number of hits kept in the visible history.
HISTORY_SIZE = 3


@dataclass
class _FighterState:
    """Mutable per-fighter record. Only touched while holding ``lock``."""
    lock: threading.Lock = field(default_factory=threading.Lock)
    name: str = ""
    last_hit: HitEvent | None = None
    history: list[HitEvent] = field(default_factory=list)
    total_hits: int = 0

    def freeze(self) -> CombatRecord:
        return CombatRecord(
            name=self.name,
            last_hit=self.last_hit,
            hit_history=tuple(self.history),
            total_hits=self.total_hits,
        )


class HitAggregator:
    """Ingests strike events and maintains a CombatRecord per fighter.

    Writers for the same fighter are serialized by a per-fighter lock, so a
    sweep can run alongside an ingest for the other fighter but never
    interleaves with one for the same fighter.
    """

    def __init__(
        self,
        ttl_seconds: float = HIT_TTL_SECONDS,
        history_size: int = HISTORY_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl_seconds
        self._history_size = history_size
        self._clock = clock
        self._fighters: dict[str, _FighterState] = {fid: _FighterState() for fid in FIGHTER_KEYS}

    def _state(self, fighter_id: str) -> _FighterState:
        return self._fighters[check_fighter(fighter_id)]

    def ingest(self, fighter_id: str, event: HitEventInput) -> CombatRecord:
        """Record one strike and return the fighter's updated record."""
        state = self._state(fighter_id)
        now = self._clock()
        hit = HitEvent(
            force=event.force,
            velocity=event.velocity,
            acceleration=event.acceleration,
            timestamp=event.timestamp,
            id=uuid.uuid4().hex,
            expires_at=now + self._ttl,
        )
        with state.lock:
            if event.competitor_name:
                state.name = event.competitor_name
            valid = [h for h in state.history if not h.is_expired(now)]
            state.history = [hit, *valid][: self._history_size]
            state.total_hits += 1
            state.last_hit = hit
            record = state.freeze()

        log.debug("hit_ingested", fighter=fighter_id, force=hit.force,
                  total_hits=record.total_hits)
        return record

    def sweep(self, now: float | None = None) -> int:
        """Drop expired hits from every history. Returns how many were removed."""
        if now is None:
            now = self._clock()
        removed = 0
        for state in self._fighters.values():
            with state.lock:
                before = len(state.history)
                state.history = [h for h in state.history if not h.is_expired(now)]
                removed += before - len(state.history)
        return removed

    def remove_last_hit(self, fighter_id: str) -> HitEvent | None:
        """Discard the fighter's most recent hit, if any."""
        state = self._state(fighter_id)
        with state.lock:
            if state.last_hit is None:
                return None
            dropped = state.last_hit
            state.history = [h for h in state.history if h.id != dropped.id]
            state.total_hits = max(0, state.total_hits - 1)
            state.last_hit = state.history[0] if state.history else None
        log.info("hit_discarded", fighter=fighter_id, hit_id=dropped.id)
        return dropped

    def reset(self) -> None:
        """Clear every fighter's record for a new round. Names are kept."""
        for state in self._fighters.values():
            with state.lock:
                state.last_hit = None
                state.history = []
                state.total_hits = 0

    def get_combat_record(self, fighter_id: str) -> CombatRecord:
        state = self._state(fighter_id)
        with state.lock:
            return state.freeze()

    def get_total_hits(self, fighter_id: str) -> int:
        return self.get_combat_record(fighter_id).total_hits

    def get_history(self, fighter_id: str) -> tuple[HitEvent, ...]:
        return self.get_combat_record(fighter_id).hit_history

    def has_hits(self, fighter_id: str) -> bool:
        return self.get_total_hits(fighter_id) > 0

    def set_name(self, fighter_id: str, name: str) -> None:
        state = self._state(fighter_id)
        with state.lock:
            state.name = name

    def snapshot(self) -> dict[str, CombatRecord]:
        """Return an immutable copy of every fighter's record."""
        return {fid: self.get_combat_record(fid) for fid in FIGHTER_KEYS}
