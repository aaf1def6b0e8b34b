"""
Centralized settings for courier.

:class:`CourierSettings` is the single validated source of truth for the
pipeline's tunables: retry and breaker policy, transport timeout, cache
sizing, scheduler limits and logging. Values come from ``COURIER_*``
environment variables or a ``.env`` file.

Example:
    >>> from courier.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.max_retry_attempts
    3

Tags:
    courier, configuration, settings, pydantic

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from courier.http.resilience import ResilienceOptions


class CourierSettings(BaseSettings):
    """Courier configuration.

    All fields can be set via ``COURIER_*`` environment variables (e.g.
    ``COURIER_MAX_RETRY_ATTEMPTS=5``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="COURIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Resilience ───────────────────────────────────────────────
    max_retry_attempts: int = Field(default=3, ge=0)
    retry_delay_seconds: float = Field(default=1.0, ge=0)
    circuit_breaker_threshold: int = Field(default=5, ge=1)
    circuit_breaker_duration_seconds: float = Field(default=30.0, ge=0)

    # ── Transport ────────────────────────────────────────────────
    request_timeout_seconds: float = Field(default=100.0, gt=0)
    http2: bool = Field(default=False)

    # ── Cache ────────────────────────────────────────────────────
    cache_duration_minutes: int = Field(default=1)
    cache_max_size: int = Field(default=10_000, ge=1)

    # ── Scheduler ────────────────────────────────────────────────
    max_concurrency: int = Field(default=10, ge=1)
    max_task_count: int = Field(default=10, ge=0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", description="json or console")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    def resilience_options(self) -> ResilienceOptions:
        """Build :class:`~courier.http.resilience.ResilienceOptions` from these settings."""
        from courier.http.resilience import ResilienceOptions

        return ResilienceOptions(
            max_retry_attempts=self.max_retry_attempts,
            retry_delay=self.retry_delay_seconds,
            failure_threshold=self.circuit_breaker_threshold,
            open_duration=self.circuit_breaker_duration_seconds,
        )


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, CourierSettings] = {}


def get_settings(*, env_file: str | None = None, _force_reload: bool = False) -> CourierSettings:
    """Load, validate, and cache a :class:`CourierSettings` instance.

    Parameters
    ----------
    env_file:
        Override the ``.env`` file to read.
    _force_reload:
        Bypass cache and reload from the environment.
    """
    cache_key = env_file or ""
    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    if env_file:
        settings = CourierSettings(_env_file=env_file)  # type: ignore[call-arg]
    else:
        settings = CourierSettings()
    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for tests)."""
    _settings_cache.clear()


__all__ = ["CourierSettings", "get_settings", "clear_settings_cache"]
