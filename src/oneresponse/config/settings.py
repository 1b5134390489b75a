"""Environment-based configuration using pydantic-settings.

Example:
    >>> from oneresponse.config import get_settings
    >>> get_settings().empty_ops
    'ok'

    # Or with environment variables:
    # ONERESPONSE_EMPTY_OPS=error
    # ONERESPONSE_LOG_LEVEL=DEBUG
    # ONERESPONSE_LOG_FORMAT=json
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ONERESPONSE_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class OneResponseSettings(BaseSettings):
    """Root settings, loaded from ONERESPONSE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ONERESPONSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    empty_ops: Literal["ok", "error"] = Field(
        default="ok",
        description="What serial()/parallel() return for an empty operation list: Ok(None) or Err(EmptyOperationsError)",
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("empty_ops", mode="before")
    @classmethod
    def _lower_policy(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def get_settings() -> OneResponseSettings:
    """Get the global settings instance (cached)."""
    return OneResponseSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
