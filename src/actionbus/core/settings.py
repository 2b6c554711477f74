"""Centralized settings for the action bus.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    ``BusSettings`` is read once from ``ACTIONBUS_*`` environment variables
    (or a ``.env`` file) and cached; the :class:`~actionbus.orchestration.bus.Bus`
    takes it as its only configuration input.

Fields
──────
service_name           : Service name stamped on every log line
log_level              : Structlog log level
log_format             : ``json`` for aggregation, ``console`` for development

The three logging fields are applied by
:func:`~actionbus.core.logging.configure_from_settings` when a ``Bus`` is
created, unless the application configured logging itself.
validate_on_start      : Run structural validation before every run
validation_cache_path  : File holding the last validated registry fingerprint

Example::

    from actionbus.core.settings import get_settings

    settings = get_settings()
    settings.validate_on_start       # True
    settings.validation_cache_path   # None unless ACTIONBUS_VALIDATION_CACHE_PATH is set

Tags:
    configuration, settings, pydantic, environment, actionbus
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class BusSettings(BaseSettings):
    """Action bus configuration (``ACTIONBUS_*`` environment variables)."""

    model_config = SettingsConfigDict(
        env_prefix="ACTIONBUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────────
    service_name: str = Field(default="actionbus")
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")

    # ── Validation ───────────────────────────────────────────────
    validate_on_start: bool = Field(
        default=True,
        description="Run structural validation before every run",
    )
    validation_cache_path: Path | None = Field(
        default=None,
        description="File storing the fingerprint of the last validated registries",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: BusSettings | None = None


def get_settings(*, _force_reload: bool = False) -> BusSettings:
    """Load, validate, and cache a :class:`BusSettings` instance."""
    global _settings_cache
    if _settings_cache is None or _force_reload:
        _settings_cache = BusSettings()
    return _settings_cache


def clear_settings_cache() -> None:
    """Drop the cached settings (for testing)."""
    global _settings_cache
    _settings_cache = None
