"""Combat processor: ingests strikes, tracks maxima and broadcasts them.

This is the control-side business logic. It depends on the Broadcaster
protocol, not on a concrete transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from beathard.core.models import BeatHardError, ViewType
from beathard.core.protocol import (
    max_stats_message,
    max_stats_reset_message,
    stats_message,
)

if TYPE_CHECKING:
    from beathard.broadcast.base import Broadcaster
    from beathard.core.aggregator import HitAggregator
    from beathard.core.max_stats import MaxStatTracker
    from beathard.core.models import CombatRecord, HitEventInput
    from beathard.core.stats import ServerStats

log = structlog.get_logger()

# View types an operator may push. round_advance is owned by the state machine.
OPERATOR_VIEWS = frozenset({
    ViewType.COVER.value,
    ViewType.STATS.value,
    ViewType.STATS_PARCIAL.value,
    ViewType.RESUMEN.value,
})


class UnknownViewError(BeatHardError):
    pass


class CombatProcessor:
    """Feeds sensor strikes through the aggregator and max tracker to displays."""

    def __init__(
        self,
        aggregator: HitAggregator,
        max_stats: MaxStatTracker,
        broadcaster: Broadcaster,
        stats: ServerStats,
    ) -> None:
        self._aggregator = aggregator
        self._max_stats = max_stats
        self._broadcaster = broadcaster
        self._stats = stats

    def process_event(self, event: HitEventInput) -> CombatRecord:
        """Handle one strike. Returns the fighter's updated combat record."""
        record = self._aggregator.ingest(event.fighter_id, event)
        self._stats.record_hit(event.fighter_id)

        new_records = self._max_stats.record(
            event.fighter_id,
            event.metric("force"),
            event.metric("velocity"),
            event.metric("acceleration"),
            competitor_name=event.competitor_name,
        )

        self._broadcaster.send_message(stats_message(event))
        if new_records:
            current = self._max_stats.get(event.fighter_id)
            self._broadcaster.send_message(max_stats_message(current, new_records))

        log.info("hit_processed", fighter=event.fighter_id, force=event.force,
                 total_hits=record.total_hits, new_records=new_records)
        return record

    def broadcast_view(self, view_type: str, data: dict) -> None:
        """Switch every display to ``view_type``."""
        if view_type not in OPERATOR_VIEWS:
            raise UnknownViewError(f"unknown view {view_type!r}")
        self._broadcaster.send(view_type, data)
        self._stats.record_view_change()
        log.info("view_broadcast", view_type=view_type)

    def reset_max_stats(self) -> None:
        self._max_stats.reset()
        self._broadcaster.send_message(max_stats_reset_message())
