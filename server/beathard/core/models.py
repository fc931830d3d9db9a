"""BeatHard: core internal data models.

These are plain dataclasses with no framework dependencies.
Wire JSON is converted to/from these at the boundary (see core.protocol).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

FIGHTER_KEYS = ("fighter_1", "fighter_2")


class BeatHardError(Exception):
    """Base class for all domain errors."""


class UnknownFighterError(BeatHardError):
    pass


class BattleConfigError(BeatHardError):
    pass


class BattleStateError(BeatHardError):
    pass


def fighter_key(competitor_id: int) -> str:
    """Map a competitor id (1 or 2) to its wire key ("fighter_1")."""
    key = f"fighter_{competitor_id}"
    if key not in FIGHTER_KEYS:
        raise UnknownFighterError(f"unknown competitor id {competitor_id!r}")
    return key


def check_fighter(fighter_id: str) -> str:
    if fighter_id not in FIGHTER_KEYS:
        raise UnknownFighterError(f"unknown fighter {fighter_id!r}")
    return fighter_id


class BattleMode(str, Enum):
    ROUNDS = "rounds"
    TIME = "time"


class BattleState(str, Enum):
    SETUP = "setup"
    ACTIVE = "active"
    PAUSED = "paused"
    ROUND_COMPLETE = "round_complete"
    BATTLE_FINISHED = "battle_finished"


class ViewType(str, Enum):
    COVER = "cover"
    STATS = "stats"
    STATS_PARCIAL = "stats-parcial"
    RESUMEN = "resumen"
    ROUND_ADVANCE = "round_advance"


@dataclass(frozen=True)
class Competitor:
    id: int
    name: str
    photo_url: str | None = None
    nationality: str | None = None
    country_flag: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "photoUrl": self.photo_url,
            "nationality": self.nationality,
            "countryFlag": self.country_flag,
        }


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class BattleConfig:
    mode: BattleMode = BattleMode.ROUNDS
    rounds: int = 3
    round_duration: int | None = None  # seconds, time mode only

    def __post_init__(self) -> None:
        if not _is_int(self.rounds) or self.rounds < 1:
            raise BattleConfigError("rounds must be a positive integer")
        if self.round_duration is not None and not _is_int(self.round_duration):
            raise BattleConfigError("round_duration must be an integer number of seconds")
        if self.mode == BattleMode.TIME:
            if self.round_duration is None or self.round_duration < 1:
                raise BattleConfigError("round_duration is required in time mode")

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "rounds": self.rounds,
            "roundDuration": self.round_duration,
        }


@dataclass(frozen=True)
class HitEventInput:
    """A strike as reported by the sensor layer.

    Missing numeric fields are already coerced to 0.0; ``present`` lists
    the metrics that were actually reported.
    """
    fighter_id: str
    competitor_name: str = ""
    force: float = 0.0
    velocity: float = 0.0
    acceleration: float = 0.0
    timestamp: int = 0
    event_type: str = ""
    limb_name: str = ""
    present: frozenset[str] = frozenset({"force", "velocity", "acceleration"})

    def metric(self, name: str) -> float | None:
        """Return a metric for max tracking, or None when it was not reported."""
        if name not in self.present:
            return None
        return getattr(self, name)

    def to_dict(self) -> dict:
        return {
            "fighter_id": self.fighter_id,
            "competitor_name": self.competitor_name,
            "force": self.force,
            "velocity": self.velocity,
            "acceleration": self.acceleration,
            "timestamp": self.timestamp,
            "event_type": self.event_type,
            "limb_name": self.limb_name,
        }


@dataclass(frozen=True)
class HitEvent:
    force: float
    velocity: float
    acceleration: float
    timestamp: int
    id: str
    expires_at: float  # seconds, same clock as the aggregator

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "force": self.force,
            "velocity": self.velocity,
            "acceleration": self.acceleration,
            "timestamp": self.timestamp,
            "expiresAt": int(self.expires_at * 1000),
        }


@dataclass(frozen=True)
class CombatRecord:
    name: str = ""
    last_hit: HitEvent | None = None
    hit_history: tuple[HitEvent, ...] = ()
    total_hits: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "lastHit": self.last_hit.to_dict() if self.last_hit else None,
            "hitHistory": [h.to_dict() for h in self.hit_history],
            "totalHits": self.total_hits,
        }


@dataclass(frozen=True)
class RoundSnapshot:
    round_number: int
    timestamp: float
    records: dict[str, CombatRecord] = field(default_factory=dict)

    def record(self, fighter_id: str) -> CombatRecord:
        return self.records.get(fighter_id, CombatRecord())

    def to_dict(self) -> dict:
        result = {fid: rec.to_dict() for fid, rec in self.records.items()}
        result["roundNumber"] = self.round_number
        result["timestamp"] = int(self.timestamp * 1000)
        return result


@dataclass(frozen=True)
class MaxStats:
    fighter_id: str
    competitor_name: str = ""
    max_force: float = 0.0
    max_velocity: float = 0.0
    max_acceleration: float = 0.0

    def to_dict(self) -> dict:
        return {
            "fighter_id": self.fighter_id,
            "competitor_name": self.competitor_name,
            "max_force": self.max_force,
            "max_velocity": self.max_velocity,
            "max_acceleration": self.max_acceleration,
        }


@dataclass(frozen=True)
class PlayerTotals:
    total_hits: int = 0
    average_force: float = 0.0
    max_velocity: float = 0.0
    max_acceleration: float = 0.0
    rounds_played: int = 1

    def to_dict(self) -> dict:
        return {
            "totalHits": self.total_hits,
            "averageForce": self.average_force,
            "maxVelocity": self.max_velocity,
            "maxAcceleration": self.max_acceleration,
            "roundsPlayed": self.rounds_played,
        }


@dataclass(frozen=True)
class ViewMessage:
    view_type: str | None
    data: dict = field(default_factory=dict)
    type: str | None = None
    timestamp: int | None = None

    def to_dict(self) -> dict:
        result: dict = {"data": self.data}
        if self.view_type is not None:
            result["viewType"] = self.view_type
        if self.type is not None:
            result["type"] = self.type
        if self.timestamp is not None:
            result["timestamp"] = self.timestamp
        return result
