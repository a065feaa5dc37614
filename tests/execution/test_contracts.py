"""Tests for job contracts: outcomes, policies, result normalisation."""

import pytest

from foodworker.core.errors import InvalidPolicyError
from foodworker.execution.contracts import (
    ActivatedJob,
    Completed,
    Failed,
    HandlerPolicy,
    to_outcome,
)


class TestActivatedJob:
    """Tests for ActivatedJob."""

    def test_get_returns_variable_or_default(self):
        job = ActivatedJob(key="1", type="verificar_alimentos", variables={"alimentos": "arroz"})
        assert job.get("alimentos") == "arroz"
        assert job.get("quantidades") is None
        assert job.get("quantidades", "0") == "0"

    def test_is_immutable(self):
        job = ActivatedJob(key="1", type="t")
        with pytest.raises(AttributeError):
            job.key = "2"  # type: ignore[misc]


class TestFailed:
    """Tests for the Failed outcome."""

    def test_defaults_to_terminal(self):
        assert Failed("boom").retries == 0

    def test_rejects_empty_message(self):
        with pytest.raises(ValueError):
            Failed("")
        with pytest.raises(ValueError):
            Failed("   ")

    def test_rejects_negative_retries(self):
        with pytest.raises(ValueError):
            Failed("boom", retries=-1)


class TestHandlerPolicy:
    """Tests for HandlerPolicy validation."""

    def test_defaults(self):
        policy = HandlerPolicy()
        assert policy.timeout_seconds == 60.0
        assert policy.max_concurrent_jobs == 5

    @pytest.mark.parametrize("timeout", [0, -1.5])
    def test_non_positive_timeout_rejected(self, timeout):
        with pytest.raises(InvalidPolicyError) as exc_info:
            HandlerPolicy(timeout_seconds=timeout)
        assert exc_info.value.field == "timeout_seconds"

    def test_zero_concurrency_rejected(self):
        with pytest.raises(InvalidPolicyError) as exc_info:
            HandlerPolicy(max_concurrent_jobs=0)
        assert exc_info.value.field == "max_concurrent_jobs"

    def test_to_dict(self):
        assert HandlerPolicy(30, 2).to_dict() == {"timeout_seconds": 30, "max_concurrent_jobs": 2}


class TestToOutcome:
    """Tests for handler result normalisation."""

    def test_outcomes_pass_through(self):
        completed = Completed({"a": 1})
        failed = Failed("no")
        assert to_outcome(completed) is completed
        assert to_outcome(failed) is failed

    def test_dict_becomes_completed(self):
        assert to_outcome({"ok": True}) == Completed({"ok": True})

    def test_other_types_rejected(self):
        with pytest.raises(TypeError, match="NoneType"):
            to_outcome(None)
