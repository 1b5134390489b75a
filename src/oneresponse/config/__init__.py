"""Configuration: pydantic-settings models loaded from ONERESPONSE_* variables."""

from .settings import LoggingSettings, OneResponseSettings, clear_settings_cache, get_settings

__all__ = ["LoggingSettings", "OneResponseSettings", "clear_settings_cache", "get_settings"]
