"""Display WebSocket client.

Connects a display surface to the broadcast endpoint and feeds every frame
into a DisplayMirror. On a connect error or close the mirror is flagged as
disconnected. Reconnection is opt-in, with exponential backoff.
"""

from __future__ import annotations

import asyncio

import structlog
import websockets
from websockets.exceptions import WebSocketException

from beathard.display.mirror import DisplayMirror

log = structlog.get_logger()

DEFAULT_URL = "ws://127.0.0.1:8080/ws"


class DisplayClient:
    def __init__(
        self,
        mirror: DisplayMirror,
        url: str = DEFAULT_URL,
        *,
        reconnect: bool = False,
        initial_delay: float = 0.5,
        max_delay: float = 10.0,
        backoff_factor: float = 2.0,
    ) -> None:
        self.mirror = mirror
        self.url = url
        self._reconnect = reconnect
        self._initial_delay = initial_delay
        self._max_delay = max_delay
        self._factor = backoff_factor
        self._task: asyncio.Task | None = None

    def next_delay(self, delay: float) -> float:
        return min(delay * self._factor, self._max_delay)

    async def _listen_once(self) -> None:
        async with websockets.connect(self.url) as ws:
            self.mirror.set_connected(True)
            log.info("display_client_connected", url=self.url)
            async for frame in ws:
                self.mirror.apply_raw(frame)

    async def run(self) -> None:
        """Listen until the channel fails (or forever, when reconnecting)."""
        delay = self._initial_delay
        while True:
            try:
                await self._listen_once()
                log.info("display_client_closed", url=self.url)
                delay = self._initial_delay
            except (OSError, WebSocketException) as exc:
                log.warning("display_client_error", url=self.url, error=str(exc))
            finally:
                self.mirror.set_connected(False)

            if not self._reconnect:
                return
            log.info("display_client_reconnecting", url=self.url, delay=delay)
            await asyncio.sleep(delay)
            delay = self.next_delay(delay)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="display-client")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.mirror.set_connected(False)
