"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import beathard.main as main_module
from beathard.config import AppConfig


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingBroadcaster:
    """Broadcaster that keeps every message it was asked to send."""

    def __init__(self) -> None:
        self.messages = []

    def send(self, view_type, data, type=None):
        from beathard.core.models import ViewMessage

        self.send_message(ViewMessage(view_type=view_type, data=data, type=type))

    def send_message(self, message):
        self.messages.append(message)

    def of_view(self, view_type):
        return [m for m in self.messages if m.view_type == view_type]

    def of_type(self, type_):
        return [m for m in self.messages if m.type == type_]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture(autouse=True)
def _init_server():
    """Initialize server singletons for every test."""
    config = AppConfig()
    config.logging.level = "warning"
    main_module.init_components(config)

    yield

    # Cleanup
    main_module.clear_components()


@pytest.fixture
async def client():
    from beathard.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
