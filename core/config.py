"""Application configuration with environment-specific profiles.

Supports dev, staging, test and production environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    database_url: str
    app_env: str = "dev"
    log_level: str = "INFO"
    request_id_header_name: str = "X-Request-ID"
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    # Reactive recomputation
    debounce_ms: int = 300

    # Inference limits
    max_default_players: int = 15

    # Preference learning
    duration_ema_weight: float = 0.3
    intensity_promotion_threshold: int = 3

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "debounce_ms": 300,
    },
    "staging": {
        "log_level": "INFO",
        "debounce_ms": 300,
    },
    "test": {
        "log_level": "WARNING",
        "debounce_ms": 10,
    },
    "production": {
        "log_level": "WARNING",
        "debounce_ms": 400,
    },
}


def get_database_url() -> str:
    """Resolve database URL from env var or local default.

    Resolution order:
    1. DATABASE_URL environment variable
    2. Local SQLite file for dev setups
    """
    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    return "sqlite:///./smart_defaults.db"


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        database_url=get_database_url(),
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        request_id_header_name=os.getenv("REQUEST_ID_HEADER", "X-Request-ID"),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "http://localhost:3000")),
        debounce_ms=int(os.getenv("DEBOUNCE_MS", str(profile.get("debounce_ms", 300)))),
        max_default_players=int(os.getenv("MAX_DEFAULT_PLAYERS", "15")),
        duration_ema_weight=float(os.getenv("DURATION_EMA_WEIGHT", "0.3")),
        intensity_promotion_threshold=int(os.getenv("INTENSITY_PROMOTION_THRESHOLD", "3")),
    )
