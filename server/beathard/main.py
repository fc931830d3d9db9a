"""BeatHard server: main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, broadcast, and API layers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from beathard.api.battle import router as battle_router
from beathard.api.broadcast import router as broadcast_router
from beathard.api.hits import router as hits_router
from beathard.api.monitoring import router as monitoring_router
from beathard.broadcast.hub import BroadcastHub
from beathard.config import AppConfig, load_config
from beathard.core.aggregator import HitAggregator
from beathard.core.max_stats import MaxStatTracker
from beathard.core.processor import CombatProcessor
from beathard.core.rounds import RoundStateMachine
from beathard.core.stats import ServerStats
from beathard.core.timers import PeriodicTask

log = structlog.get_logger()

# Module-level singletons (set during startup)
_processor: CombatProcessor | None = None
_battle: RoundStateMachine | None = None
_hub: BroadcastHub | None = None
_max_stats: MaxStatTracker | None = None
_stats: ServerStats | None = None
_config: AppConfig | None = None
_countdown: PeriodicTask | None = None


def get_processor() -> CombatProcessor:
    assert _processor is not None, "Server not initialized"
    return _processor


def get_battle() -> RoundStateMachine:
    assert _battle is not None, "Server not initialized"
    return _battle


def get_hub() -> BroadcastHub:
    assert _hub is not None, "Server not initialized"
    return _hub


def get_max_stats() -> MaxStatTracker:
    assert _max_stats is not None, "Server not initialized"
    return _max_stats


def get_stats() -> ServerStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    logger_factory = structlog.PrintLoggerFactory()
    if config.logging.file:
        logger_factory = structlog.WriteLoggerFactory(file=open(config.logging.file, "a"))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
        logger_factory=logger_factory,
    )


def init_components(config: AppConfig) -> None:
    """Create the singletons for one server instance."""
    global _processor, _battle, _hub, _max_stats, _stats, _config, _countdown

    _config = config
    _stats = ServerStats(active_window_seconds=config.combat.active_window_seconds)
    _hub = BroadcastHub(
        stats=_stats,
        queue_max_size=config.broadcast.queue_max_size,
        resend_latest_view=config.broadcast.resend_latest_view,
    )
    aggregator = HitAggregator(
        ttl_seconds=config.combat.hit_ttl_seconds,
        history_size=config.combat.history_size,
    )
    _max_stats = MaxStatTracker()
    _processor = CombatProcessor(aggregator=aggregator, max_stats=_max_stats,
                                 broadcaster=_hub, stats=_stats)
    _battle = RoundStateMachine(
        aggregator=aggregator,
        max_stats=_max_stats,
        broadcaster=_hub,
        reset_max_stats_on_battle_reset=config.combat.reset_max_stats_on_battle_reset,
    )
    _countdown = PeriodicTask(config.combat.tick_interval_seconds, _battle.tick, name="round-countdown")
    _battle.attach_countdown(_countdown)


def clear_components() -> None:
    global _processor, _battle, _hub, _max_stats, _stats, _config, _countdown
    _processor = _battle = _hub = _max_stats = _stats = _config = _countdown = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    config = load_config()
    _setup_logging(config)

    log.info("server_starting",
             env=config.server.env,
             hit_ttl=config.combat.hit_ttl_seconds,
             queue_max_size=config.broadcast.queue_max_size)

    init_components(config)

    log.info("server_started",
             host=config.server.host,
             port=config.server.port)

    yield

    # Shutdown
    if _countdown is not None:
        await _countdown.stop()
    log.info("server_stopped")


app = FastAPI(
    title="BeatHard",
    description="Combat telemetry broadcast server",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(hits_router)
app.include_router(battle_router)
app.include_router(broadcast_router)
app.include_router(monitoring_router)


def run() -> None:
    """Console entry point: serve the app with uvicorn on the configured host/port."""
    import uvicorn

    config = load_config()
    uvicorn.run("beathard.main:app", host=config.server.host, port=config.server.port)
