"""Centralized settings for the food-production worker.

Manifesto:
    One validated, cached settings object. Every knob the worker exposes
    (polling cadence, default job policy, grace period, file locations,
    per-job-type overrides) is read from ``FOODWORKER_*`` environment
    variables or a ``.env`` file and validated at startup, not at the
    moment a job happens to need it.

Examples:
    >>> from foodworker.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.worker_name
    'food-production-worker'

    Per-type overrides from the environment (JSON)::

        FOODWORKER_POLICY_OVERRIDES='{"verificar_alimentos": {"timeout_seconds": 45}}'

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PolicyOverride(BaseModel):
    """Partial handler policy for one job type; unset fields keep the default."""

    timeout_seconds: float | None = Field(default=None, gt=0)
    max_concurrent_jobs: int | None = Field(default=None, ge=1)


class WorkerSettings(BaseSettings):
    """Worker configuration.

    All fields can be set via ``FOODWORKER_*`` environment variables (e.g.
    ``FOODWORKER_GRACE_PERIOD_SECONDS=10``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FOODWORKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ── Identity ─────────────────────────────────────────────────
    worker_name: str = Field(default="food-production-worker")

    # ── Default job policy ───────────────────────────────────────
    default_timeout_seconds: float = Field(default=60.0, gt=0)
    default_max_jobs_active: int = Field(default=5, ge=1)
    policy_overrides: dict[str, PolicyOverride] = Field(default_factory=dict)

    # ── Loop cadence ─────────────────────────────────────────────
    poll_interval_seconds: float = Field(default=0.5, gt=0)
    grace_period_seconds: float = Field(default=30.0, ge=0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_json: bool | None = Field(default=None, description="None = auto (JSON when not a TTY)")

    # ── Paths ────────────────────────────────────────────────────
    stock_file: Path | None = Field(default=None, description="JSON stock table; packaged default if unset")
    output_dir: Path = Field(default=Path("."), description="Root for etiquetas_geradas/ and relatorios/")


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, WorkerSettings] = {}


def get_settings(*, _force_reload: bool = False) -> WorkerSettings:
    """Load, validate, and cache a :class:`WorkerSettings` instance."""
    if _force_reload or "default" not in _settings_cache:
        _settings_cache["default"] = WorkerSettings()
    return _settings_cache["default"]


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    _settings_cache.clear()


__all__ = ["PolicyOverride", "WorkerSettings", "get_settings", "reset_settings"]
