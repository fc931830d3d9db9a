"""Round / battle state machine.

Owns the battle-level state (current round, active/paused/finished),
archives a RoundSnapshot of the aggregator at each round boundary and
resets the per-round counters. In timed mode a 1 Hz countdown drives
``tick()``; reaching zero closes the round the same way a manual
``advance_round()`` does.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import TYPE_CHECKING, Callable, Protocol

import structlog

from beathard.core.models import (
    FIGHTER_KEYS,
    BattleConfig,
    BattleMode,
    BattleState,
    BattleStateError,
    Competitor,
    PlayerTotals,
    RoundSnapshot,
    check_fighter,
    fighter_key,
)
from beathard.core.protocol import (
    battle_reset_message,
    max_stats_reset_message,
    round_advance_message,
)

if TYPE_CHECKING:
    from beathard.broadcast.base import Broadcaster
    from beathard.core.aggregator import HitAggregator
    from beathard.core.max_stats import MaxStatTracker

log = structlog.get_logger()


class Countdown(Protocol):
    """Timer driving ``RoundStateMachine.tick`` while a timed round runs."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


class AdvanceOutcome(str, Enum):
    ADVANCED = "advanced"
    FINISHED = "finished"
    REFUSED = "refused"


class RoundStateMachine:
    """Battle lifecycle for one two-fighter match."""

    def __init__(
        self,
        aggregator: HitAggregator,
        max_stats: MaxStatTracker,
        broadcaster: Broadcaster | None = None,
        config: BattleConfig | None = None,
        *,
        reset_max_stats_on_battle_reset: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._aggregator = aggregator
        self._max_stats = max_stats
        self._broadcaster = broadcaster
        self._reset_max_stats = reset_max_stats_on_battle_reset
        self._clock = clock
        self._countdown: Countdown | None = None

        self.config = config or BattleConfig()
        self.competitors: dict[int, Competitor] = {}
        self.state = BattleState.SETUP
        self.current_round = 1
        self.time_left = self._round_duration()
        self.rounds_history: dict[int, RoundSnapshot] = {}

    def attach_countdown(self, countdown: Countdown) -> None:
        self._countdown = countdown

    # -- helpers -------------------------------------------------------------

    @property
    def is_timed(self) -> bool:
        return self.config.mode == BattleMode.TIME

    def _round_duration(self) -> int:
        return self.config.round_duration or 0

    def _start_countdown(self) -> None:
        if self.is_timed and self._countdown is not None:
            self._countdown.start()

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()

    def _broadcast_reset(self, clear_history: bool) -> None:
        if self._broadcaster is None:
            return
        self._broadcaster.send_message(battle_reset_message(
            current_round=self.current_round,
            total_rounds=self.config.rounds,
            battle_mode=self.config.mode.value,
            round_duration=self.config.round_duration,
            clear_history=clear_history,
        ))

    def _require_not_finished(self, action: str) -> None:
        if self.state == BattleState.BATTLE_FINISHED:
            raise BattleStateError(f"cannot {action}: battle is finished")

    # -- setup ---------------------------------------------------------------

    def configure(self, config: BattleConfig, competitors: list[Competitor] | None = None) -> None:
        """Set up a new battle. Only allowed before it starts or after it ends."""
        if self.state not in (BattleState.SETUP, BattleState.BATTLE_FINISHED):
            raise BattleStateError(f"cannot configure battle while {self.state.value}")
        self.config = config
        for competitor in competitors or []:
            self.competitors[competitor.id] = competitor
            self._aggregator.set_name(fighter_key(competitor.id), competitor.name)
        self.reset_battle()
        log.info("battle_configured", mode=config.mode.value, rounds=config.rounds,
                 round_duration=config.round_duration)

    # -- transitions ---------------------------------------------------------

    def start(self) -> None:
        self._require_not_finished("start")
        if self.state == BattleState.ACTIVE:
            return
        self.state = BattleState.ACTIVE
        self._start_countdown()
        log.info("battle_started", round=self.current_round)

    def pause(self) -> None:
        """Toggle active/paused. Only timed battles pause; in rounds mode this just logs."""
        if self.state not in (BattleState.ACTIVE, BattleState.PAUSED):
            raise BattleStateError(f"cannot pause while {self.state.value}")
        if not self.is_timed:
            log.info("battle_pause_ignored", state=self.state.value, reason="rounds mode")
            return
        if self.state == BattleState.ACTIVE:
            self.state = BattleState.PAUSED
            self._cancel_countdown()
        else:
            self.state = BattleState.ACTIVE
            self._start_countdown()
        log.info("battle_pause_toggled", state=self.state.value, timed=self.is_timed)

    def stop(self) -> None:
        """Back to setup. Archived rounds and max stats are kept."""
        self._cancel_countdown()
        self.state = BattleState.SETUP
        self.current_round = 1
        self.time_left = self._round_duration()
        self._broadcast_reset(clear_history=False)
        log.info("battle_stopped")

    def finish(self) -> None:
        self._cancel_countdown()
        self.state = BattleState.BATTLE_FINISHED
        log.info("battle_finished", round=self.current_round, manual=True)

    @property
    def can_advance(self) -> bool:
        if self.is_timed:
            return True
        return all(self._aggregator.has_hits(fid) for fid in FIGHTER_KEYS)

    def advance_round(self) -> AdvanceOutcome:
        """Close the current round and move to the next one.

        Refused in rounds mode until both fighters have at least one hit.
        Closing the last round finishes the battle instead.
        """
        self._require_not_finished("advance round")
        if not self.can_advance:
            log.warning("round_advance_refused", round=self.current_round,
                        reason="both fighters need at least one hit")
            return AdvanceOutcome.REFUSED
        return self._close_round()

    def _close_round(self) -> AdvanceOutcome:
        self._archive_round()
        self._aggregator.reset()

        if self.current_round >= self.config.rounds:
            self._cancel_countdown()
            self.state = BattleState.BATTLE_FINISHED
            self.time_left = 0
            log.info("battle_finished", round=self.current_round, manual=False)
            return AdvanceOutcome.FINISHED

        self.current_round += 1
        self.time_left = self._round_duration()
        if self._broadcaster is not None:
            self._broadcaster.send_message(round_advance_message(
                current_round=self.current_round,
                total_rounds=self.config.rounds,
                battle_mode=self.config.mode.value,
                round_duration=self.config.round_duration,
            ))
        log.info("round_advanced", round=self.current_round, total=self.config.rounds)
        return AdvanceOutcome.ADVANCED

    def _archive_round(self) -> RoundSnapshot:
        """Store the current round. A round replayed after ``stop()`` replaces its older snapshot."""
        if self.current_round in self.rounds_history:
            log.info("round_rearchived", round=self.current_round)
        snapshot = RoundSnapshot(
            round_number=self.current_round,
            timestamp=self._clock(),
            records=self._aggregator.snapshot(),
        )
        self.rounds_history[self.current_round] = snapshot
        log.info("round_archived", round=self.current_round,
                 hits={fid: rec.total_hits for fid, rec in snapshot.records.items()})
        return snapshot

    def reset_round(self) -> None:
        """Discard the latest hit of each fighter and restart the countdown."""
        self._require_not_finished("reset round")
        for fid in FIGHTER_KEYS:
            self._aggregator.remove_last_hit(fid)
        if self.is_timed:
            self.time_left = self._round_duration()
        log.info("round_reset", round=self.current_round)

    def reset_battle(self) -> None:
        """Full reset: round 1, empty history and records."""
        self._cancel_countdown()
        self.state = BattleState.SETUP
        self.current_round = 1
        self.time_left = self._round_duration()
        self.rounds_history = {}
        self._aggregator.reset()
        if self._reset_max_stats:
            self._max_stats.reset()
            if self._broadcaster is not None:
                self._broadcaster.send_message(max_stats_reset_message())
        self._broadcast_reset(clear_history=True)
        log.info("battle_reset", max_stats_cleared=self._reset_max_stats)

    def tick(self) -> None:
        """One countdown second. No-op unless a timed round is running."""
        if not self.is_timed or self.state != BattleState.ACTIVE:
            return
        self.time_left = max(0, self.time_left - 1)
        if self.time_left > 0:
            return

        self._cancel_countdown()
        log.info("round_time_up", round=self.current_round)
        if self._close_round() == AdvanceOutcome.ADVANCED:
            self.state = BattleState.ROUND_COMPLETE

    # -- queries -------------------------------------------------------------

    def completed_rounds(self) -> list[RoundSnapshot]:
        return [self.rounds_history[n] for n in sorted(self.rounds_history)]

    def player_totals(self, fighter_id: str) -> PlayerTotals:
        """Aggregate a fighter's stats over archived rounds plus the current one."""
        check_fighter(fighter_id)
        finished = self.state == BattleState.BATTLE_FINISHED
        # Until the battle ends, a snapshot under the current round number
        # predates a stop() and will be replaced when the round closes.
        records = [snap.record(fighter_id) for snap in self.completed_rounds()
                   if finished or snap.round_number != self.current_round]
        # Closing the last round archives it, so the live record is empty.
        if not (finished and self.current_round in self.rounds_history):
            records.append(self._aggregator.get_combat_record(fighter_id))

        total_hits = 0
        total_force = 0.0
        max_velocity = 0.0
        max_acceleration = 0.0
        for rec in records:
            total_hits += rec.total_hits
            if rec.last_hit is not None:
                total_force += rec.last_hit.force
                max_velocity = max(max_velocity, rec.last_hit.velocity)
                max_acceleration = max(max_acceleration, rec.last_hit.acceleration)

        return PlayerTotals(
            total_hits=total_hits,
            average_force=total_force / total_hits if total_hits else 0.0,
            max_velocity=max_velocity,
            max_acceleration=max_acceleration,
            rounds_played=len(records),
        )

    def status(self) -> dict:
        """Return a JSON-serializable snapshot of the battle."""
        return {
            "state": self.state.value,
            "current_round": self.current_round,
            "total_rounds": self.config.rounds,
            "mode": self.config.mode.value,
            "round_duration": self.config.round_duration,
            "time_left": self.time_left if self.is_timed else None,
            "can_advance": self.can_advance,
            "competitors": {cid: c.to_dict() for cid, c in sorted(self.competitors.items())},
            "rounds_history": {n: snap.to_dict() for n, snap in sorted(self.rounds_history.items())},
        }
