"""Headless display surface.

Wires a DisplayClient, an ExpirySweeper and the ViewResolver together and
logs each rendered view. Useful for watching a battle from a terminal and
as a reference for real display front-ends.
"""

from __future__ import annotations

import asyncio

import structlog

from beathard.config import AppConfig, load_config
from beathard.display.client import DisplayClient
from beathard.display.mirror import DisplayMirror
from beathard.display.resolver import ViewResolver
from beathard.display.sweeper import ExpirySweeper

log = structlog.get_logger()


class HeadlessDisplay:
    """Render loop that only logs when the resolved view changes."""

    def __init__(self, config: AppConfig) -> None:
        self.mirror = DisplayMirror(
            ttl_seconds=config.combat.hit_ttl_seconds,
            history_size=config.combat.history_size,
        )
        self.client = DisplayClient(
            self.mirror,
            config.display.url,
            reconnect=config.display.reconnect,
            initial_delay=config.display.reconnect_initial_delay,
            max_delay=config.display.reconnect_max_delay,
        )
        self.sweeper = ExpirySweeper(
            self.mirror,
            on_render=self.render,
            interval=config.display.sweep_interval_seconds,
        )
        self._resolver = ViewResolver()
        self._last: tuple[str, dict] | None = None

    def render(self, _snapshot: dict | None = None) -> tuple[str, dict]:
        view = self._resolver.resolve(self.mirror)
        if view != self._last:
            self._last = view
            log.info("display_render", view_type=view[0], round=self.mirror.current_round,
                     connected=self.mirror.is_connected)
        return view

    async def run(self) -> None:
        async with self.sweeper:
            await self.client.run()


def run() -> None:
    """Console entry point for a headless display."""
    from beathard.main import _setup_logging

    config = load_config()
    _setup_logging(config)
    asyncio.run(HeadlessDisplay(config).run())
