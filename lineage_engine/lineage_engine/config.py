"""Lineage engine settings loaded from environment variables."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class PlatformEnv(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with PIPEVIZ_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="PIPEVIZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    env: PlatformEnv = PlatformEnv.DEV
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    structured_logging: bool = False

    # Configuration source used when a command is given no explicit path
    config_path: Path | None = None

    # Queries
    default_lineage_depth: int | None = Field(default=None, ge=1)
    hub_limit: int = Field(default=8, ge=1)

    # Snapshot store
    snapshot_retention: int = Field(default=10, ge=1)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = str(v).upper().strip()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level '{v}'.")
        return level


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings for environment: %s", settings.env.value)

    return settings
