"""
Application settings for RetroCal.

This module defines the scheduling defaults and logging settings using
Pydantic BaseSettings.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DAY_IN_MILLIS = 24 * 60 * 60 * 1000


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    # Scheduling defaults applied by scheduling_parameters()
    default_intervals: int = Field(default=30, alias="RETROCAL_INTERVALS", gt=0)
    default_interval_duration_ms: int = Field(
        default=DAY_IN_MILLIS, alias="RETROCAL_INTERVAL_MS", gt=0
    )
    default_allow_reruns_after_ms: int = Field(
        default=7 * DAY_IN_MILLIS, alias="RETROCAL_RERUNS_AFTER_MS", ge=0
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("RETROCAL_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)

    # 3) Walk up from this file to find nearest .env
    here = Path(__file__).resolve()
    for parent in here.parents:
        candidate = parent / ".env"
        if candidate.is_file():
            return str(candidate)
    return None


# Global settings instance (load from best-effort .env discovery)
_env_file = _resolve_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
