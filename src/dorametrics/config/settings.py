"""
Application settings using Pydantic.

Provides environment-based configuration loading with DORAMETRICS_ prefix.
"""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DORAMETRICS_",
        extra="ignore",
    )

    # Logging
    log_level: str = "WARNING"

    # Reporting
    default_window_days: int = 30
    output_format: Literal["table", "json", "csv"] = "table"

    # Default data files (used when --deployments/--incidents are omitted)
    deployments_file: str | None = None
    incidents_file: str | None = None

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level == "WARN":
            level = "WARNING"
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("default_window_days")
    @classmethod
    def _positive_window(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("default_window_days must be positive")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
