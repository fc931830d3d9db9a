"""Broadcast interface (port) for pushing view messages to displays."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from beathard.core.models import ViewMessage


class Broadcaster(Protocol):
    """Port: fire-and-forget delivery of view messages to every display."""

    def send(self, view_type: str | None, data: dict, type: str | None = None) -> None: ...

    def send_message(self, message: ViewMessage) -> None: ...
