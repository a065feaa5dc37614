"""Tests for WorkerSettings and the cached accessor."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from foodworker.core.settings import WorkerSettings, get_settings, reset_settings


class TestDefaults:
    def test_defaults_match_production_worker(self):
        settings = WorkerSettings()
        assert settings.worker_name == "food-production-worker"
        assert settings.default_timeout_seconds == 60.0
        assert settings.default_max_jobs_active == 5
        assert settings.grace_period_seconds == 30.0
        assert settings.stock_file is None
        assert settings.policy_overrides == {}


class TestEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("FOODWORKER_WORKER_NAME", "kitchen-2")
        monkeypatch.setenv("FOODWORKER_GRACE_PERIOD_SECONDS", "5")
        monkeypatch.setenv("FOODWORKER_STOCK_FILE", "/srv/stock.json")

        settings = WorkerSettings()

        assert settings.worker_name == "kitchen-2"
        assert settings.grace_period_seconds == 5.0
        assert settings.stock_file == Path("/srv/stock.json")

    def test_policy_overrides_from_json(self, monkeypatch):
        monkeypatch.setenv(
            "FOODWORKER_POLICY_OVERRIDES",
            '{"verificar_alimentos": {"timeout_seconds": 45}}',
        )

        override = WorkerSettings().policy_overrides["verificar_alimentos"]

        assert override.timeout_seconds == 45
        assert override.max_concurrent_jobs is None

    def test_invalid_values_rejected(self, monkeypatch):
        monkeypatch.setenv("FOODWORKER_DEFAULT_MAX_JOBS_ACTIVE", "0")
        with pytest.raises(ValidationError):
            WorkerSettings()


class TestCache:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reset_settings(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("FOODWORKER_WORKER_NAME", "other")
        assert get_settings().worker_name == "food-production-worker"

        reset_settings()

        assert get_settings() is not first
        assert get_settings().worker_name == "other"
