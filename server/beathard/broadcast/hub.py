"""In-process broadcast hub.

Every connected display gets its own bounded asyncio queue drained by a
writer loop, so a slow display never blocks the control side. Sending
only enqueues; with no display connected it is a no-op.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import TYPE_CHECKING, Protocol

import structlog

from beathard.core.models import ViewMessage, ViewType
from beathard.core.protocol import BATTLE_RESET, encode_message

if TYPE_CHECKING:
    from beathard.core.stats import ServerStats

log = structlog.get_logger()


class TextSocket(Protocol):
    async def send_text(self, data: str) -> None: ...


class DisplayConnection:
    """Outbound queue for one display. FIFO within the connection."""

    _ids = itertools.count(1)

    def __init__(self, socket: TextSocket, max_size: int = 256) -> None:
        self.id = next(self._ids)
        self._socket = socket
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_size)

    def put(self, frame: str) -> bool:
        """Enqueue a frame. When full, the oldest frame is dropped. Returns False on drop.

        Callers outside the connection's event loop are handed over with
        ``call_soon_threadsafe``; their drops are not reported.
        """
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not self._loop:
            self._loop.call_soon_threadsafe(self._put, frame)
            return True
        return self._put(frame)

    def _put(self, frame: str) -> bool:
        dropped = False
        if self._queue.full():
            self._queue.get_nowait()
            dropped = True
        self._queue.put_nowait(frame)
        return not dropped

    def qsize(self) -> int:
        return self._queue.qsize()

    async def run_writer(self) -> None:
        """Drain the queue into the socket until cancelled or the socket fails."""
        while True:
            frame = await self._queue.get()
            await self._socket.send_text(frame)


class BroadcastHub:
    """Broadcaster backed by per-display asyncio queues."""

    def __init__(
        self,
        stats: ServerStats | None = None,
        queue_max_size: int = 256,
        resend_latest_view: bool = True,
    ) -> None:
        self._stats = stats
        self._queue_max_size = queue_max_size
        self._resend_latest_view = resend_latest_view
        self._connections: dict[int, DisplayConnection] = {}
        self._latest_view: ViewMessage | None = None

    @property
    def display_count(self) -> int:
        return len(self._connections)

    @property
    def latest_view(self) -> ViewMessage | None:
        return self._latest_view

    def register(self, socket: TextSocket) -> DisplayConnection:
        conn = DisplayConnection(socket, max_size=self._queue_max_size)
        self._connections[conn.id] = conn
        if self._stats is not None:
            self._stats.record_display_connected(len(self._connections))
        log.info("display_connected", display=conn.id, displays=len(self._connections))

        if self._resend_latest_view and self._latest_view is not None:
            conn.put(encode_message(self._latest_view))
        return conn

    def unregister(self, conn: DisplayConnection) -> None:
        if self._connections.pop(conn.id, None) is None:
            return
        if self._stats is not None:
            self._stats.record_display_disconnected(len(self._connections))
        log.info("display_disconnected", display=conn.id, displays=len(self._connections))

    def send(self, view_type: str | None, data: dict, type: str | None = None) -> None:
        self.send_message(ViewMessage(view_type=view_type, data=data, type=type))

    def send_message(self, message: ViewMessage) -> None:
        if message.type == BATTLE_RESET:
            # Frames from before the reset must not be replayed to new displays.
            self.clear_latest_view()
        if message.view_type is not None and message.view_type != ViewType.ROUND_ADVANCE.value:
            self._latest_view = message

        if not self._connections:
            log.debug("broadcast_no_displays", view_type=message.view_type, type=message.type)
            return

        frame = encode_message(message)
        dropped = 0
        for conn in list(self._connections.values()):
            if not conn.put(frame):
                dropped += 1
                log.warning("display_queue_overflow", display=conn.id)

        if self._stats is not None:
            self._stats.record_broadcast(len(self._connections), dropped)
        log.debug("broadcast_sent", view_type=message.view_type, type=message.type,
                  displays=len(self._connections))

    def clear_latest_view(self) -> None:
        self._latest_view = None
