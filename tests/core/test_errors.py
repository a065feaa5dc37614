"""Tests for the worker error hierarchy."""

import pytest

from foodworker.core.errors import (
    ConfigError,
    DuplicateRegistrationError,
    ErrorCategory,
    InvalidInputError,
    InvalidPolicyError,
    StaleLeaseError,
    StartupError,
    TransportError,
    WorkerError,
    describe_error,
)


class TestCategories:
    """Each error type carries its category and retry flag."""

    @pytest.mark.parametrize(
        ("error", "category", "retryable"),
        [
            (TransportError("down"), ErrorCategory.NETWORK, True),
            (StaleLeaseError("1"), ErrorCategory.LEASE, False),
            (ConfigError("bad"), ErrorCategory.CONFIG, False),
            (StartupError("a"), ErrorCategory.CONFIG, False),
            (InvalidInputError("x"), ErrorCategory.VALIDATION, False),
            (WorkerError("?"), ErrorCategory.INTERNAL, False),
        ],
    )
    def test_defaults(self, error, category, retryable):
        assert error.category == category
        assert error.retryable is retryable

    def test_overrides(self):
        error = TransportError("down", retryable=False)
        assert error.retryable is False


class TestContext:
    def test_with_context_is_fluent(self):
        error = WorkerError("boom").with_context(job_type="verificar_alimentos")
        assert error.context == {"job_type": "verificar_alimentos"}

    def test_stale_lease_carries_job_key(self):
        error = StaleLeaseError("42")
        assert error.job_key == "42"
        assert error.context["job_key"] == "42"
        assert "42" in str(error)

    def test_duplicate_registration_names_job_type(self):
        error = DuplicateRegistrationError("gerar_etiquetas")
        assert str(error) == "Job type 'gerar_etiquetas' is already registered"
        assert isinstance(error, ConfigError)

    def test_invalid_policy_fields(self):
        error = InvalidPolicyError("timeout_seconds", 0)
        assert error.field == "timeout_seconds"
        assert error.context == {"field": "timeout_seconds", "value": 0}

    def test_invalid_input_variable(self):
        error = InvalidInputError("missing", variable="alimentos")
        assert error.variable == "alimentos"
        assert error.context["variable"] == "alimentos"


class TestChaining:
    def test_startup_error_chains_cause(self):
        cause = OSError("no threads")
        error = StartupError("verificar_alimentos", cause)

        assert error.job_type == "verificar_alimentos"
        assert error.cause is cause
        assert error.__cause__ is cause
        assert "verificar_alimentos" in str(error)
        assert "no threads" in str(error)

    def test_to_dict(self):
        error = ConfigError("bad", context={"path": "x.json"}, cause=ValueError("v"))
        assert error.to_dict() == {
            "error_type": "ConfigError",
            "message": "bad",
            "category": "CONFIG",
            "retryable": False,
            "context": {"path": "x.json"},
            "cause": "v",
        }


class TestDescribeError:
    def test_with_message(self):
        assert describe_error(ValueError("bad lote")) == "ValueError: bad lote"

    def test_without_message(self):
        assert describe_error(KeyError()) == "KeyError"
