"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: BEATHARD_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    env: str = "dev"  # "dev" or "prod"


@dataclass
class CombatConfig:
    hit_ttl_seconds: float = 10.0
    history_size: int = 3
    tick_interval_seconds: float = 1.0
    reset_max_stats_on_battle_reset: bool = True
    active_window_seconds: float = 120.0


@dataclass
class BroadcastConfig:
    queue_max_size: int = 256
    resend_latest_view: bool = True


@dataclass
class DisplayConfig:
    url: str = "ws://127.0.0.1:8080/ws"
    sweep_interval_seconds: float = 0.1
    reconnect: bool = False
    reconnect_initial_delay: float = 0.5
    reconnect_max_delay: float = 10.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"
    file: str = ""


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    combat: CombatConfig = field(default_factory=CombatConfig)
    broadcast: BroadcastConfig = field(default_factory=BroadcastConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "BEATHARD_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "BEATHARD_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "BEATHARD_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "BEATHARD_COMBAT_HIT_TTL": lambda v: setattr(config.combat, "hit_ttl_seconds", float(v)),
        "BEATHARD_COMBAT_HISTORY_SIZE": lambda v: setattr(config.combat, "history_size", int(v)),
        "BEATHARD_COMBAT_TICK_INTERVAL": lambda v: setattr(config.combat, "tick_interval_seconds", float(v)),
        "BEATHARD_COMBAT_RESET_MAX_STATS": lambda v: setattr(config.combat, "reset_max_stats_on_battle_reset", _as_bool(v)),
        "BEATHARD_COMBAT_ACTIVE_WINDOW": lambda v: setattr(config.combat, "active_window_seconds", float(v)),
        "BEATHARD_BROADCAST_QUEUE_MAX_SIZE": lambda v: setattr(config.broadcast, "queue_max_size", int(v)),
        "BEATHARD_BROADCAST_RESEND_LATEST_VIEW": lambda v: setattr(config.broadcast, "resend_latest_view", _as_bool(v)),
        "BEATHARD_DISPLAY_URL": lambda v: setattr(config.display, "url", v),
        "BEATHARD_DISPLAY_SWEEP_INTERVAL": lambda v: setattr(config.display, "sweep_interval_seconds", float(v)),
        "BEATHARD_DISPLAY_RECONNECT": lambda v: setattr(config.display, "reconnect", _as_bool(v)),
        "BEATHARD_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "BEATHARD_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
        "BEATHARD_LOG_FILE": lambda v: setattr(config.logging, "file", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path("config.yaml")
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section in ("server", "combat", "broadcast", "display", "logging"):
            target = getattr(config, section)
            for k, v in (raw.get(section) or {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
