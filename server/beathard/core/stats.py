"""Server statistics and active-sensor tracking.

Tracks in-memory counters, the number of connected displays and a sliding
window of fighters whose sensors are currently reporting.
No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class SensorActivity:
    """Tracks one fighter's recent sensor activity."""
    last_seen: float          # time.monotonic() timestamp
    hits_sent: int = 0


class ServerStats:
    """Thread-safe server statistics.

    A fighter's sensors count as "active" while their last strike was
    within ``active_window_seconds`` (default 120s).
    """

    def __init__(self, active_window_seconds: float = 120.0) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._active_window = active_window_seconds

        # Counters
        self.hits_received: int = 0
        self.hits_rejected: int = 0
        self.messages_broadcast: int = 0
        self.frames_delivered: int = 0
        self.frames_dropped: int = 0
        self.view_changes: int = 0
        self.displays_connected: int = 0
        self.displays_max: int = 0
        self.connections_total: int = 0

        # Sensor tracking: fighter_id → SensorActivity
        self._sensors: dict[str, SensorActivity] = {}

    def record_hit(self, fighter_id: str) -> None:
        """Record that a strike was received for a fighter."""
        now = time.monotonic()
        with self._lock:
            self.hits_received += 1
            if fighter_id in self._sensors:
                sensor = self._sensors[fighter_id]
                sensor.last_seen = now
                sensor.hits_sent += 1
            else:
                self._sensors[fighter_id] = SensorActivity(last_seen=now, hits_sent=1)

    def record_rejected(self, count: int = 1) -> None:
        with self._lock:
            self.hits_rejected += count

    def record_view_change(self) -> None:
        with self._lock:
            self.view_changes += 1

    def record_broadcast(self, displays: int, dropped: int = 0) -> None:
        with self._lock:
            self.messages_broadcast += 1
            self.frames_delivered += displays - dropped
            self.frames_dropped += dropped

    def record_display_connected(self, displays: int) -> None:
        with self._lock:
            self.connections_total += 1
            self.displays_connected = displays
            if displays > self.displays_max:
                self.displays_max = displays

    def record_display_disconnected(self, displays: int) -> None:
        with self._lock:
            self.displays_connected = displays

    def _prune_stale_sensors(self, now: float) -> None:
        """Remove fighters not seen within the active window. Caller holds lock."""
        cutoff = now - self._active_window
        stale = [fid for fid, s in self._sensors.items() if s.last_seen < cutoff]
        for fid in stale:
            del self._sensors[fid]

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        now_mono = time.monotonic()
        with self._lock:
            self._prune_stale_sensors(now_mono)
            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "hits_received": self.hits_received,
                "hits_rejected": self.hits_rejected,
                "messages_broadcast": self.messages_broadcast,
                "frames_delivered": self.frames_delivered,
                "frames_dropped": self.frames_dropped,
                "view_changes": self.view_changes,
                "displays": {
                    "connected": self.displays_connected,
                    "max_ever": self.displays_max,
                    "connections_total": self.connections_total,
                },
                "active_sensors": {
                    "total": len(self._sensors),
                    "fighters": sorted(self._sensors),
                    "window_seconds": self._active_window,
                },
            }
