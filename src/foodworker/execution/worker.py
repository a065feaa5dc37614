"""Worker loop - leases jobs of one type and runs them through their handler.

One ``WorkerLoop`` exists per registered job type.  It keeps up to the
policy's ``max_concurrent_jobs`` jobs in flight: a single polling thread
asks the gateway for as many jobs as there are free slots, and starts one
daemon job thread per leased job that runs the handler and reports the
outcome. Job threads are daemons so that jobs abandoned at shutdown never
keep the process alive.

Usage (programmatic)::

    from foodworker.execution.worker import WorkerLoop

    loop = WorkerLoop(registration, gateway, worker_name="food-production-worker")
    loop.open()              # starts the polling thread
    ...
    loop.stop()              # stop leasing new jobs
    abandoned = loop.drain(grace_seconds=30)

Normally the :class:`~foodworker.execution.dispatcher.Dispatcher` owns
these calls.
"""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial
from typing import Any

from foodworker.core.errors import StaleLeaseError, TransportError, describe_error
from foodworker.core.logging import LogContext, get_logger
from foodworker.execution.contracts import (
    ActivatedJob,
    Completed,
    Failed,
    HandlerRegistration,
    JobHandler,
    JobOutcome,
    to_outcome,
)
from foodworker.execution.gateway import OrchestratorGateway
from foodworker.execution.retry import ExponentialBackoff, RetryContext, RetryStrategy

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class WorkerInfo:
    """Metadata about a worker loop."""

    job_type: str
    worker_name: str
    timeout_seconds: float
    max_concurrent_jobs: int
    status: str = "created"
    started_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_type": self.job_type,
            "worker_name": self.worker_name,
            "timeout_seconds": self.timeout_seconds,
            "max_concurrent_jobs": self.max_concurrent_jobs,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }


@dataclass
class WorkerStats:
    """Counters for one worker loop."""

    activated: int = 0
    completed: int = 0
    failed: int = 0
    stale: int = 0
    expired: int = 0
    transport_errors: int = 0
    active: int = 0
    last_poll_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "activated": self.activated,
            "completed": self.completed,
            "failed": self.failed,
            "stale": self.stale,
            "expired": self.expired,
            "transport_errors": self.transport_errors,
            "active": self.active,
            "last_poll_at": self.last_poll_at.isoformat() if self.last_poll_at else None,
        }


def invoke_handler(handler: JobHandler, job: ActivatedJob) -> JobOutcome:
    """Run a handler and always return an outcome.

    Anything the handler lets escape becomes ``Failed(retries=0)`` so a
    deterministic bug surfaces to operators instead of being retried.
    """
    try:
        return to_outcome(handler(job))
    except Exception as exc:
        message = describe_error(exc)
        logger.error("handler_raised", error=message, exc_info=True)
        return Failed(error_message=message, retries=0)


class WorkerLoop:
    """Leases jobs of one type and dispatches them to the handler.

    Architecture:
        1. The polling thread waits until a slot is free, then calls
           ``gateway.activate`` for at most the free capacity.
        2. Each leased job is claimed (counted in flight) before it is
           started on a job thread, and released only after its report.
        3. The job thread runs the handler; if the run outlived the
           lease timeout nothing is reported, otherwise the outcome is
           sent with ``complete`` / ``fail``.
        4. ``TransportError`` on polling is absorbed with exponential
           backoff; on reporting it is retried a bounded number of times.
           ``StaleLeaseError`` is logged and discarded.

    Thread-safety:
        The in-flight table is guarded by a condition variable shared by
        the polling thread (claims) and the job threads (releases). The claim
        is what bounds the number of live job threads.
        Handlers for the same job type share no mutable state through the
        loop.
    """

    def __init__(
        self,
        registration: HandlerRegistration,
        gateway: OrchestratorGateway,
        *,
        worker_name: str = "food-production-worker",
        poll_interval: float = 0.5,
        poll_backoff: RetryStrategy | None = None,
        report_retry: RetryStrategy | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            registration: Job type, handler and policy this loop serves.
            gateway: Orchestrator gateway to lease from and report to.
            worker_name: Name sent with every activation request.
            poll_interval: Seconds to wait after an empty activation batch.
            poll_backoff: Delay strategy after failed polls. Defaults to
                exponential backoff starting at ``poll_interval``, capped at 30s.
            report_retry: Retry strategy for complete/fail calls that hit a
                ``TransportError``.
            clock: Monotonic clock used to measure handler duration.
        """
        self._registration = registration
        self._policy = registration.policy
        self._gateway = gateway
        self._worker_name = worker_name
        self._poll_interval = poll_interval
        self._poll_backoff = poll_backoff or ExponentialBackoff(
            max_retries=None, base_delay=poll_interval, max_delay=30.0
        )
        self._report_retry = report_retry or ExponentialBackoff(
            max_retries=3, base_delay=0.2, max_delay=2.0, retryable_errors=(TransportError,)
        )
        self._clock = clock

        self._shutdown = threading.Event()
        self._slots = threading.Condition()
        self._in_flight: dict[int, str] = {}
        self._tokens = itertools.count()
        self._consecutive_poll_errors = 0

        self._stats = WorkerStats()
        self._stats_lock = threading.Lock()

        self._thread: threading.Thread | None = None

        self.info = WorkerInfo(
            job_type=registration.job_type,
            worker_name=worker_name,
            timeout_seconds=self._policy.timeout_seconds,
            max_concurrent_jobs=self._policy.max_concurrent_jobs,
        )

    @property
    def job_type(self) -> str:
        return self._registration.job_type

    @property
    def in_flight(self) -> int:
        with self._slots:
            return len(self._in_flight)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._shutdown.is_set()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def open(self) -> None:
        """Start the polling thread. Errors propagate to the caller."""
        if self._thread is not None:
            raise RuntimeError(f"Worker for '{self.job_type}' is already open")

        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"{self.job_type}-poll",
            daemon=True,
        )
        self.info.status = "running"
        self.info.started_at = _utcnow()
        self._thread.start()

        logger.info(
            "worker_opened",
            job_type=self.job_type,
            worker_name=self._worker_name,
            timeout_seconds=self._policy.timeout_seconds,
            max_concurrent_jobs=self._policy.max_concurrent_jobs,
        )

    def stop(self) -> None:
        """Stop leasing new jobs. In-flight handlers keep running."""
        if self._shutdown.is_set():
            return
        logger.info("worker_stopping", job_type=self.job_type, in_flight=self.in_flight)
        self._shutdown.set()
        if self.info.status == "running":
            self.info.status = "stopping"
        with self._slots:
            self._slots.notify_all()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the polling thread to exit."""
        if self._thread is not None:
            self._thread.join(timeout)

    def drain(self, grace_seconds: float) -> int:
        """Wait for in-flight jobs for up to ``grace_seconds``.

        Calls :meth:`stop` first if needed. Jobs still running when the
        grace period ends are abandoned; their reports are best effort.

        Returns:
            Number of abandoned jobs
        """
        self.stop()
        deadline = time.monotonic() + max(0.0, grace_seconds)

        self.join(timeout=max(0.0, deadline - time.monotonic()))

        with self._slots:
            while self._in_flight:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._slots.wait(remaining)
            abandoned = len(self._in_flight)

        self.info.status = "stopped"
        stats = self.get_stats()
        log = logger.warning if abandoned else logger.info
        log(
            "worker_stopped",
            job_type=self.job_type,
            completed=stats.completed,
            failed=stats.failed,
            abandoned=abandoned,
        )
        return abandoned

    def get_stats(self) -> WorkerStats:
        """Return a snapshot of the loop's counters."""
        with self._stats_lock:
            snapshot = WorkerStats(**vars(self._stats))
        snapshot.active = self.in_flight
        return snapshot

    # ------------------------------------------------------------------ #
    # Polling
    # ------------------------------------------------------------------ #

    def _run_loop(self) -> None:
        while not self._shutdown.is_set():
            capacity = self._wait_for_capacity()
            if capacity <= 0:
                continue

            try:
                dispatched = self._poll(capacity)
            except Exception as exc:
                self._shutdown.wait(self._record_poll_error(exc))
                continue

            self._consecutive_poll_errors = 0
            if dispatched == 0:
                self._shutdown.wait(self._poll_interval)

    def _wait_for_capacity(self) -> int:
        """Block until a slot is free (or shutdown). Returns free slots."""
        limit = self._policy.max_concurrent_jobs
        with self._slots:
            while len(self._in_flight) >= limit and not self._shutdown.is_set():
                self._slots.wait(self._poll_interval)
            if self._shutdown.is_set():
                return 0
            return limit - len(self._in_flight)

    def _poll(self, capacity: int) -> int:
        """Lease up to ``capacity`` jobs and dispatch them. Returns count dispatched."""
        jobs = self._gateway.activate(
            self.job_type,
            capacity,
            self._policy.timeout_seconds,
            worker_name=self._worker_name,
        )
        with self._stats_lock:
            self._stats.last_poll_at = _utcnow()

        dispatched = 0
        for job in jobs:
            if dispatched >= capacity:
                logger.warning(
                    "activation_overflow",
                    job_type=self.job_type,
                    requested=capacity,
                    job_key=job.key,
                )
                break
            if self._shutdown.is_set():
                # Leased after stop(); the lease will lapse.
                logger.warning("job_not_started", job_type=self.job_type, job_key=job.key)
                break
            token = self._claim(job)
            threading.Thread(
                target=self._execute,
                args=(job, token),
                name=f"{self.job_type}-job-{token}",
                daemon=True,
            ).start()
            dispatched += 1

        if dispatched:
            logger.debug("jobs_activated", job_type=self.job_type, count=dispatched)
        return dispatched

    def _record_poll_error(self, exc: Exception) -> float:
        delay = self._poll_backoff.next_delay(self._consecutive_poll_errors)
        self._consecutive_poll_errors += 1

        if isinstance(exc, TransportError):
            with self._stats_lock:
                self._stats.transport_errors += 1
            logger.warning(
                "poll_transport_error",
                job_type=self.job_type,
                error=str(exc),
                attempt=self._consecutive_poll_errors,
                retry_in=round(delay, 3),
            )
        else:
            logger.error(
                "poll_error",
                job_type=self.job_type,
                error=describe_error(exc),
                retry_in=round(delay, 3),
                exc_info=exc,
            )
        return delay

    # ------------------------------------------------------------------ #
    # In-flight bookkeeping
    # ------------------------------------------------------------------ #

    def _claim(self, job: ActivatedJob) -> int:
        token = next(self._tokens)
        with self._slots:
            self._in_flight[token] = job.key
        with self._stats_lock:
            self._stats.activated += 1
        return token

    def _release(self, token: int) -> None:
        with self._slots:
            self._in_flight.pop(token, None)
            self._slots.notify_all()

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def _execute(self, job: ActivatedJob, token: int) -> None:
        """Run one job on its own job thread."""
        try:
            with LogContext(job_type=job.type, job_key=job.key):
                started = self._clock()
                outcome = invoke_handler(self._registration.handler, job)
                elapsed = self._clock() - started

                if elapsed > self._policy.timeout_seconds:
                    with self._stats_lock:
                        self._stats.expired += 1
                    logger.warning(
                        "lease_expired_before_report",
                        elapsed_seconds=round(elapsed, 3),
                        timeout_seconds=self._policy.timeout_seconds,
                    )
                    return

                self._report(job, outcome)
        except Exception as exc:
            logger.error("job_execution_error", job_key=job.key, error=describe_error(exc), exc_info=exc)
        finally:
            self._release(token)

    def _report(self, job: ActivatedJob, outcome: JobOutcome) -> None:
        match outcome:
            case Completed(variables=variables):
                call = partial(self._gateway.complete, job.key, variables, lease=job.lease)
            case Failed(error_message=error_message, retries=retries):
                call = partial(self._gateway.fail, job.key, retries, error_message, lease=job.lease)

        ctx = RetryContext(strategy=self._report_retry, on_retry=self._on_report_retry)
        try:
            ctx.run(call)
        except StaleLeaseError as exc:
            with self._stats_lock:
                self._stats.stale += 1
            logger.warning("stale_lease_discarded", error=str(exc))
            return
        except TransportError as exc:
            with self._stats_lock:
                self._stats.transport_errors += 1
            logger.error("report_abandoned", attempts=ctx.attempt, error=str(exc))
            return

        if isinstance(outcome, Completed):
            with self._stats_lock:
                self._stats.completed += 1
            logger.info("job_completed", variables=sorted(outcome.variables))
        else:
            with self._stats_lock:
                self._stats.failed += 1
            logger.warning("job_failed", retries=outcome.retries, error_message=outcome.error_message)

    def _on_report_retry(self, attempt: int, error: Exception, delay: float) -> None:
        with self._stats_lock:
            self._stats.transport_errors += 1
        logger.warning("report_retry", attempt=attempt, error=str(error), retry_in=round(delay, 3))
