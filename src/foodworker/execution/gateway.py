"""Orchestrator Gateway - the worker's only view of the remote engine.

Manifesto:
Whatever engine hands out jobs (a Zeebe cluster, an HTTP broker, a
test fixture), the worker loop needs exactly three operations: lease
jobs, complete a job, fail a job.  ``OrchestratorGateway`` is a
``typing.Protocol`` - any object with the right methods satisfies it,
no base class required.  The real network client is out of scope;
:class:`InMemoryGateway` is the in-process implementation used by the
tests and by the CLI replay mode.

ARCHITECTURE
────────────
::

    OrchestratorGateway (Protocol)
      ├── .activate(job_type, max_jobs, timeout_seconds)  ─ lease ≤ max_jobs
      ├── .complete(job_key, variables)                   ─ success report
      └── .fail(job_key, retries, error_message)          ─ failure report

    Errors:
      TransportError   ─ orchestrator unreachable (retried by the worker)
      StaleLeaseError  ─ report after the lease expired (logged, discarded)

    InMemoryGateway
      available ──activate──► leased ──complete──► completed
                     ▲          │
                     │          ├──fail(retries>0)──► available
                     │          ├──fail(retries=0)──► incidents
                     └──expiry──┘

Related modules:
    worker.py     — WorkerLoop, the only caller of these operations
    contracts.py  — ActivatedJob
"""

from __future__ import annotations

import itertools
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from foodworker.core.errors import StaleLeaseError
from foodworker.core.logging import get_logger
from foodworker.execution.contracts import ActivatedJob, JobType

logger = get_logger(__name__)


@runtime_checkable
class OrchestratorGateway(Protocol):
    """Capability interface against the remote orchestrator.

    Example implementation:
        >>> class MyGateway:
        ...     def activate(self, job_type, max_jobs, timeout_seconds, *, worker_name=None):
        ...         return []   # nothing to do right now
        ...
        ...     def complete(self, job_key, variables, *, lease=None):
        ...         ...
        ...
        ...     def fail(self, job_key, retries, error_message, *, lease=None):
        ...         ...
    """

    def activate(
        self,
        job_type: JobType,
        max_jobs: int,
        timeout_seconds: float,
        *,
        worker_name: str | None = None,
    ) -> Iterable[ActivatedJob]:
        """Lease up to ``max_jobs`` jobs of ``job_type``.

        Returns:
            A finite, possibly empty, sequence of leased jobs. An empty
            sequence means no work is available and is not an error.

        Raises:
            TransportError: If the orchestrator cannot be reached
        """
        ...

    def complete(self, job_key: str, variables: dict[str, Any], *, lease: int | None = None) -> None:
        """Report success for a leased job.

        ``lease`` is the ``ActivatedJob.lease`` the report belongs to; None
        skips the epoch check.

        Raises:
            StaleLeaseError: If the lease has expired or was superseded
            TransportError: If the orchestrator cannot be reached
        """
        ...

    def fail(self, job_key: str, retries: int, error_message: str, *, lease: int | None = None) -> None:
        """Report failure for a leased job with the remaining retry budget.

        Raises:
            StaleLeaseError: If the lease has expired or was superseded
            TransportError: If the orchestrator cannot be reached
        """
        ...


# =============================================================================
# IN-MEMORY IMPLEMENTATION
# =============================================================================


@dataclass
class _JobRecord:
    key: str
    type: JobType
    variables: dict[str, Any]
    retries: int
    lease_deadline: float | None = None
    worker: str | None = None
    lease: int = 0


@dataclass(frozen=True)
class Incident:
    """A job that failed with no retries left; needs operator attention."""

    job_key: str
    job_type: JobType
    error_message: str
    variables: dict[str, Any] = field(default_factory=dict)


class InMemoryGateway:
    """Thread-safe in-process orchestrator.

    Jobs are published with :meth:`publish`, leased in publication order,
    and reclaimed automatically once their lease deadline passes. Every
    activation starts a new lease epoch, so a late report from an earlier
    holder raises ``StaleLeaseError`` even while a newer lease is live.

    Args:
        clock: Monotonic clock used for lease deadlines (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._keys = itertools.count(1)
        self._jobs: OrderedDict[str, _JobRecord] = OrderedDict()
        self.completed: dict[str, dict[str, Any]] = {}
        self.incidents: list[Incident] = []

    # ------------------------------------------------------------------ #
    # Producer side
    # ------------------------------------------------------------------ #

    def publish(self, job_type: JobType, variables: dict[str, Any] | None = None, retries: int = 3) -> str:
        """Make a new job available and return its key."""
        with self._lock:
            key = str(next(self._keys))
            self._jobs[key] = _JobRecord(key=key, type=job_type, variables=dict(variables or {}), retries=retries)
        logger.debug("job_published", job_type=job_type, job_key=key)
        return key

    # ------------------------------------------------------------------ #
    # OrchestratorGateway
    # ------------------------------------------------------------------ #

    def activate(
        self,
        job_type: JobType,
        max_jobs: int,
        timeout_seconds: float,
        *,
        worker_name: str | None = None,
    ) -> list[ActivatedJob]:
        if max_jobs <= 0:
            return []

        now = self._clock()
        activated: list[ActivatedJob] = []
        with self._lock:
            for record in self._jobs.values():
                if len(activated) >= max_jobs:
                    break
                if record.type != job_type or self._is_leased(record, now):
                    continue
                record.lease_deadline = now + timeout_seconds
                record.worker = worker_name
                record.lease += 1
                activated.append(
                    ActivatedJob(
                        key=record.key,
                        type=record.type,
                        variables=dict(record.variables),
                        retries=record.retries,
                        worker=worker_name,
                        lease=record.lease,
                    )
                )
        return activated

    def complete(self, job_key: str, variables: dict[str, Any], *, lease: int | None = None) -> None:
        with self._lock:
            self._take_leased(job_key, lease)
            self.completed[job_key] = dict(variables)
        logger.debug("job_completed_reported", job_key=job_key)

    def fail(self, job_key: str, retries: int, error_message: str, *, lease: int | None = None) -> None:
        with self._lock:
            record = self._take_leased(job_key, lease)
            if retries > 0:
                record.retries = retries
                record.lease_deadline = None
                record.worker = None
                self._jobs[job_key] = record
            else:
                self.incidents.append(
                    Incident(
                        job_key=job_key,
                        job_type=record.type,
                        error_message=error_message,
                        variables=dict(record.variables),
                    )
                )
        logger.debug("job_failed_reported", job_key=job_key, retries=retries)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def pending_count(self, job_type: JobType | None = None) -> int:
        """Jobs that are published and not finished (leased or not)."""
        with self._lock:
            return sum(1 for r in self._jobs.values() if job_type is None or r.type == job_type)

    def leased_count(self, job_type: JobType | None = None) -> int:
        now = self._clock()
        with self._lock:
            return sum(
                1
                for r in self._jobs.values()
                if self._is_leased(r, now) and (job_type is None or r.type == job_type)
            )

    def is_idle(self) -> bool:
        """True when every published job has been completed or escalated."""
        return self.pending_count() == 0

    # ------------------------------------------------------------------ #
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------ #

    @staticmethod
    def _is_leased(record: _JobRecord, now: float) -> bool:
        return record.lease_deadline is not None and now < record.lease_deadline

    def _take_leased(self, job_key: str, lease: int | None) -> _JobRecord:
        record = self._jobs.get(job_key)
        if record is None or not self._is_leased(record, self._clock()):
            raise StaleLeaseError(job_key)
        if lease is not None and lease != record.lease:
            raise StaleLeaseError(job_key)
        del self._jobs[job_key]
        return record


__all__ = ["OrchestratorGateway", "InMemoryGateway", "Incident"]
