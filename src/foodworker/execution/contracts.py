"""Job contracts - what the orchestrator hands out and what handlers return.

Manifesto:
    Business logic signals failure by *returning* a value, not by raising.
    ``Completed`` and ``Failed`` are the only two outcomes a handler can
    produce; transport problems never appear here, they stay inside the
    gateway/polling layer.

ARCHITECTURE
────────────
::

    ActivatedJob ──► handler(job) ──► JobOutcome
                                       ├── Completed(variables)
                                       └── Failed(error_message, retries=0)

    HandlerPolicy        ─ timeout_seconds, max_concurrent_jobs
    HandlerRegistration  ─ job_type + handler + policy

Tags:
    job-worker, contracts, outcome, policy
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from foodworker.core.errors import InvalidPolicyError

JobType: TypeAlias = str


@dataclass(frozen=True)
class ActivatedJob:
    """A leased unit of work.

    Owned by the orchestrator; a handler only borrows it for the duration
    of one invocation.
    """

    key: str
    """Opaque identifier assigned by the orchestrator"""

    type: JobType
    """Job type this job was activated for"""

    variables: dict[str, Any] = field(default_factory=dict)
    """Process-instance variables, in the order the orchestrator sent them"""

    retries: int = 0
    """Remaining retry budget as seen by the orchestrator (informational)"""

    worker: str | None = None
    """Name of the worker that holds the lease"""

    lease: int | None = None
    """Lease epoch; a new value each time the job is activated again"""

    def get(self, name: str, default: Any = None) -> Any:
        """Shortcut for ``job.variables.get(name, default)``."""
        return self.variables.get(name, default)


@dataclass(frozen=True)
class Completed:
    """Successful outcome; ``variables`` are merged back into process state."""

    variables: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Failed:
    """Failed outcome.

    ``retries`` is the remaining retry budget to hand back to the
    orchestrator. ``0`` (the default) is a terminal failure that surfaces to
    process operators instead of silently retrying a deterministic bug.
    """

    error_message: str
    retries: int = 0

    def __post_init__(self) -> None:
        if not self.error_message or not self.error_message.strip():
            raise ValueError("Failed outcome requires a non-empty error_message")
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")


JobOutcome: TypeAlias = Completed | Failed

JobHandler: TypeAlias = Callable[[ActivatedJob], Any]
"""``(ActivatedJob) -> JobOutcome``; a plain mapping is accepted as ``Completed``."""


@dataclass(frozen=True)
class HandlerPolicy:
    """Per-job-type execution policy.

    Attributes:
        timeout_seconds: Lease duration; after it the orchestrator hands the
            job to another worker and any late report is stale.
        max_concurrent_jobs: Upper bound on jobs of this type processed
            simultaneously by this process.
    """

    timeout_seconds: float = 60.0
    max_concurrent_jobs: int = 5

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise InvalidPolicyError("timeout_seconds", self.timeout_seconds, "timeout_seconds must be > 0")
        if self.max_concurrent_jobs < 1:
            raise InvalidPolicyError(
                "max_concurrent_jobs", self.max_concurrent_jobs, "max_concurrent_jobs must be >= 1"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeout_seconds": self.timeout_seconds,
            "max_concurrent_jobs": self.max_concurrent_jobs,
        }


@dataclass(frozen=True)
class HandlerRegistration:
    """Binds a job type to its handler and policy."""

    job_type: JobType
    handler: JobHandler
    policy: HandlerPolicy
    description: str | None = None


def to_outcome(result: Any) -> JobOutcome:
    """Normalise a handler's return value into a :data:`JobOutcome`.

    Raises:
        TypeError: If the handler returned something that is neither an
            outcome nor a mapping.
    """
    if isinstance(result, (Completed, Failed)):
        return result
    if isinstance(result, dict):
        return Completed(dict(result))
    raise TypeError(f"Handler returned unsupported result type {type(result).__name__}")


__all__ = [
    "JobType",
    "ActivatedJob",
    "Completed",
    "Failed",
    "JobOutcome",
    "JobHandler",
    "HandlerPolicy",
    "HandlerRegistration",
    "to_outcome",
]
