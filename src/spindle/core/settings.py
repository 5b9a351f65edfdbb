"""
Centralized settings for spindle.

Manifesto:
    The minimum callback delay and the silent-cancellation default used to
    be process-wide constants. Here they are validated fields with
    documented defaults, read once from ``SPINDLE_*`` environment variables
    or a ``.env`` file, and overridable per builder.

Tags:
    spindle, configuration, settings, pydantic, caching

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SpindleSettings(BaseSettings):
    """Spindle configuration.

    All fields can be set via ``SPINDLE_*`` environment variables (e.g.
    ``SPINDLE_CORE_POOL_SIZE=4``).
    """

    model_config = SettingsConfigDict(
        env_prefix="SPINDLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Pools ────────────────────────────────────────────────────
    core_pool_size: int = Field(default=1, description="Workers in a builder's primary pool")
    worker_thread_prefix: str = Field(default="spindle-worker")
    guard_thread_prefix: str = Field(default="spindle-guard")
    shutdown_wait_seconds: float = Field(default=5.0)

    # ── Scheduling ───────────────────────────────────────────────
    minimum_callback_delay_ms: int = Field(
        default=1000,
        description="Lower bound on the start delay when completion or failure callbacks are set",
    )
    may_interrupt: bool = Field(default=False)
    silent: bool = Field(default=False)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("core_pool_size")
    @classmethod
    def _positive_pool(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"core_pool_size must be at least 1, got {value}")
        return value

    @field_validator("minimum_callback_delay_ms")
    @classmethod
    def _non_negative_delay(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"minimum_callback_delay_ms must be non-negative, got {value}")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, SpindleSettings] = {}


def get_settings(*, _force_reload: bool = False) -> SpindleSettings:
    """Load, validate, and cache a :class:`SpindleSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = SpindleSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    _settings_cache.clear()
