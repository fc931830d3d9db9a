"""Periodic asyncio task with deterministic start/stop."""

from __future__ import annotations

import asyncio
from typing import Callable

import structlog

log = structlog.get_logger()


class PeriodicTask:
    """Call ``callback`` every ``interval`` seconds until stopped.

    The callback is synchronous. Exceptions are logged and the loop keeps
    running. Usable as an async context manager.
    """

    def __init__(self, interval: float, callback: Callable[[], object], name: str = "periodic") -> None:
        self._interval = interval
        self._callback = callback
        self._name = name
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)
        log.debug("timer_started", timer=self._name, interval=self._interval)

    def cancel(self) -> None:
        """Request cancellation without waiting. Safe to call from the callback."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            log.debug("timer_cancelled", timer=self._name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.debug("timer_stopped", timer=self._name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._callback()
            except Exception:
                log.error("timer_callback_failed", timer=self._name, exc_info=True)

    async def __aenter__(self) -> PeriodicTask:
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
