"""Application configuration settings."""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Execution environment: "dev" | "test" | "staging" | "prod"
ENV = os.getenv("ALERTS_ENV", "dev").lower()


class Settings(BaseSettings):
    """Environment configuration for the community alerts backend."""

    app_env: str = Field(default=ENV)
    database_url: str = "sqlite:///community_alerts.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = True
    ALLOW_DB_CREATE_ALL: bool = False

    # --- Expiry sweep ----------------------------------------------------
    # Sweep-on-read always runs; the scheduler only adds a periodic pass.
    SCHEDULER_ENABLED: bool = False
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = Field(default=60, ge=1)

    # --- Alert defaults --------------------------------------------------
    ALERT_DEFAULT_TTL_HOURS: int = Field(default=24, ge=1)
    LIST_DEFAULT_RADIUS_M: float = Field(default=50_000, gt=0)
    LIST_DEFAULT_LIMIT: int = Field(default=100, ge=1)
    LIST_MAX_LIMIT: int = Field(default=1_000, ge=1)
    NEARBY_DEFAULT_RADIUS_M: float = Field(default=5_000, gt=0)
    NEARBY_MAX_RESULTS: int = Field(default=50, ge=1)
    ALERT_WRITE_MAX_ATTEMPTS: int = Field(default=10, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("SENTRY_DSN")
    @classmethod
    def _strip_empty_dsn(cls, value: str | None) -> str | None:
        """Normalise an empty DSN to ``None`` so Sentry stays disabled."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class AppInfo(BaseModel):
    name: str = "community-alerts"
    version: str = "0.1.0"


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return settings


__all__ = [
    "ENV",
    "Settings",
    "AppInfo",
    "settings",
    "get_settings",
]
