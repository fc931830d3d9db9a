"""Client-side expiry sweeper.

Evicts expired hits from the display mirror every 100 ms and hands a fresh
render snapshot to the renderer, so hits fade out even when no message
arrives.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from beathard.core.timers import PeriodicTask

if TYPE_CHECKING:
    from beathard.display.mirror import DisplayMirror

SWEEP_INTERVAL_SECONDS = 0.1


class ExpirySweeper(PeriodicTask):
    def __init__(
        self,
        mirror: DisplayMirror,
        on_render: Callable[[dict], object] | None = None,
        interval: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        super().__init__(interval, self.sweep_once, name="expiry-sweeper")
        self._mirror = mirror
        self._on_render = on_render

    def sweep_once(self) -> dict:
        self._mirror.sweep()
        snapshot = self._mirror.snapshot()
        if self._on_render is not None:
            self._on_render(snapshot)
        return snapshot
