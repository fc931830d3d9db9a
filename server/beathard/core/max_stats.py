"""Battle-scoped maximum force / velocity / acceleration per fighter."""

from __future__ import annotations

import threading
from dataclasses import replace

import structlog

from beathard.core.models import MaxStats, check_fighter

log = structlog.get_logger()


class MaxStatTracker:
    """Monotonic accumulator of per-fighter maxima.

    Values only ever grow. A metric passed as ``None`` (not reported by
    the sensor) is ignored rather than treated as a zero reading.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: dict[str, MaxStats] = {}

    def record(
        self,
        fighter_id: str,
        force: float | None,
        velocity: float | None,
        acceleration: float | None,
        competitor_name: str = "",
    ) -> list[str]:
        """Fold one observation in. Returns the metrics that set a new record."""
        check_fighter(fighter_id)
        incoming = {"force": force, "velocity": velocity, "acceleration": acceleration}
        new_records: list[str] = []

        with self._lock:
            current = self._stats.get(fighter_id) or MaxStats(fighter_id=fighter_id)
            changes: dict = {}
            for metric, value in incoming.items():
                if value is None:
                    continue
                attr = f"max_{metric}"
                if value > getattr(current, attr):
                    changes[attr] = value
                    new_records.append(metric)
            if competitor_name and competitor_name != current.competitor_name:
                changes["competitor_name"] = competitor_name
            self._stats[fighter_id] = replace(current, **changes)

        if new_records:
            log.info("max_stats_record", fighter=fighter_id, records=new_records)
        return new_records

    def get(self, fighter_id: str) -> MaxStats | None:
        with self._lock:
            return self._stats.get(fighter_id)

    def all(self) -> dict[str, MaxStats]:
        with self._lock:
            return dict(self._stats)

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()
        log.info("max_stats_reset")
