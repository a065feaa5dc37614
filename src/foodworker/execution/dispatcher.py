"""Dispatcher - owns one worker loop per job type and the process lifetime.

Manifesto:
Startup is all-or-nothing: a process where seven job types are being
served and the eighth silently is not is worse than a process that
refuses to start.  Shutdown is cooperative: loops stop leasing at
once, in-flight handlers get a shared grace period, then the process
moves on regardless.

ARCHITECTURE
────────────
::

    Dispatcher(registry, gateway)
      ├── .start()             ─ build + open every WorkerLoop, or StartupError
      ├── .run()               ─ start, wait for SIGINT/SIGTERM or request, shutdown
      ├── .request_shutdown()  ─ thread-safe; unblocks run()
      ├── .shutdown()          ─ stop all loops, drain with one grace deadline
      └── .stats()             ─ per-type info + counters

Usage::

    dispatcher = Dispatcher(registry, gateway, grace_period=30)
    dispatcher.run()   # blocks until SIGINT / SIGTERM

Related modules:
    worker.py   — WorkerLoop
    registry.py — HandlerRegistry (frozen by the dispatcher)
"""

from __future__ import annotations

import signal
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from foodworker.core.errors import ConfigError, DuplicateRegistrationError, StartupError
from foodworker.core.logging import get_logger
from foodworker.execution.contracts import HandlerRegistration
from foodworker.execution.gateway import OrchestratorGateway
from foodworker.execution.registry import HandlerRegistry
from foodworker.execution.worker import WorkerInfo, WorkerLoop

logger = get_logger(__name__)

LoopFactory = Callable[[HandlerRegistration], WorkerLoop]


class Dispatcher:
    """Starts, supervises and stops the worker loops.

    Args:
        registry: A :class:`HandlerRegistry` (frozen on construction) or an
            iterable of registrations.
        gateway: Orchestrator gateway shared by all loops.
        worker_name: Name sent with every activation request.
        poll_interval: Poll interval handed to each loop.
        grace_period: Seconds in-flight jobs get to finish on shutdown.
        loop_factory: Builds a loop for a registration. Defaults to
            :class:`WorkerLoop` with the settings above.
    """

    def __init__(
        self,
        registry: HandlerRegistry | Iterable[HandlerRegistration],
        gateway: OrchestratorGateway,
        *,
        worker_name: str = "food-production-worker",
        poll_interval: float = 0.5,
        grace_period: float = 30.0,
        loop_factory: LoopFactory | None = None,
    ):
        if isinstance(registry, HandlerRegistry):
            registrations = registry.registrations()
        else:
            registrations = tuple(registry)
            seen: set[str] = set()
            for registration in registrations:
                if registration.job_type in seen:
                    raise DuplicateRegistrationError(registration.job_type)
                seen.add(registration.job_type)

        self._registrations = registrations
        self._gateway = gateway
        self._worker_name = worker_name
        self._poll_interval = poll_interval
        self._grace_period = grace_period
        self._loop_factory = loop_factory or self._default_loop

        self._loops: dict[str, WorkerLoop] = {}
        self._shutdown_requested = threading.Event()
        self._shutdown_reason: str | None = None
        self._started = False
        self._stopped = False

    def _default_loop(self, registration: HandlerRegistration) -> WorkerLoop:
        return WorkerLoop(
            registration,
            self._gateway,
            worker_name=self._worker_name,
            poll_interval=self._poll_interval,
        )

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def job_types(self) -> list[str]:
        return sorted(r.job_type for r in self._registrations)

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped

    @property
    def healthy(self) -> bool:
        """True when started and every loop is polling."""
        return self.is_running and all(loop.is_running for loop in self._loops.values())

    @property
    def shutdown_reason(self) -> str | None:
        return self._shutdown_reason

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Build and open one loop per registration.

        Raises:
            ConfigError: If there is nothing to serve
            StartupError: If any loop fails to build or open. Loops already
                opened are stopped before the error propagates.
        """
        if self._started:
            raise RuntimeError("Dispatcher already started")
        if not self._registrations:
            raise ConfigError("No job types registered; nothing to dispatch")

        loops: list[WorkerLoop] = []
        for registration in self._registrations:
            try:
                loops.append(self._loop_factory(registration))
            except Exception as exc:
                logger.error("worker_build_failed", job_type=registration.job_type, error=str(exc))
                raise StartupError(registration.job_type, exc) from exc

        opened: list[WorkerLoop] = []
        for loop in loops:
            try:
                loop.open()
            except Exception as exc:
                logger.error("worker_start_failed", job_type=loop.job_type, error=str(exc))
                for started in opened:
                    started.drain(0)
                raise StartupError(loop.job_type, exc) from exc
            opened.append(loop)

        self._loops = {loop.job_type: loop for loop in loops}
        self._started = True
        logger.info("dispatcher_started", worker_name=self._worker_name, job_types=self.job_types)

    def run(self, until: Callable[[], bool] | None = None, check_interval: float = 0.5) -> int:
        """Start, then block until shutdown is requested.

        Args:
            until: Optional predicate polled every ``check_interval``
                seconds; returning True requests shutdown.
            check_interval: Seconds between wake-ups of the waiting thread.

        Returns:
            Number of jobs abandoned at shutdown
        """
        self.start()
        try:
            with self._signal_handlers():
                while not self._shutdown_requested.wait(check_interval):
                    if until is not None and until():
                        self.request_shutdown("idle")
        finally:
            abandoned = self.shutdown()
        return abandoned

    def request_shutdown(self, reason: str = "requested") -> None:
        """Ask :meth:`run` to return. Safe to call from any thread."""
        if not self._shutdown_requested.is_set():
            self._shutdown_reason = reason
            logger.info("shutdown_requested", reason=reason)
            self._shutdown_requested.set()

    def shutdown(self) -> int:
        """Stop every loop and drain them within one grace period.

        Returns:
            Number of jobs still running when the grace period ended
        """
        if self._stopped or not self._started:
            return 0

        for loop in self._loops.values():
            loop.stop()

        deadline = time.monotonic() + self._grace_period
        abandoned = 0
        for loop in self._loops.values():
            abandoned += loop.drain(max(0.0, deadline - time.monotonic()))

        self._stopped = True
        self._shutdown_requested.set()
        logger.info("dispatcher_stopped", abandoned=abandoned, reason=self._shutdown_reason)
        return abandoned

    def __enter__(self) -> Dispatcher:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def workers(self) -> list[WorkerInfo]:
        return [loop.info for loop in self._loops.values()]

    def get_loop(self, job_type: str) -> WorkerLoop:
        return self._loops[job_type]

    def stats(self) -> list[dict[str, Any]]:
        """Info and counters for every loop, sorted by job type."""
        return [
            {**loop.info.to_dict(), "stats": loop.get_stats().to_dict()}
            for _, loop in sorted(self._loops.items())
        ]

    # ------------------------------------------------------------------ #
    # Signal handling
    # ------------------------------------------------------------------ #

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            self.request_shutdown(name)

        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
        try:
            yield
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)
