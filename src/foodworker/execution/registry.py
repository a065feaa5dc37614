"""Handler Registry - job type → handler + policy lookup.

Manifesto:
The dispatcher needs one entry per job type it subscribes to.  The
registry decouples registration (at startup) from consumption (when the
dispatcher builds its worker loops).  The set of registrations is fixed
once the dispatcher takes its snapshot: no dynamic (de)registration at
runtime.

ARCHITECTURE
────────────
::

    HandlerRegistry
      ├── .register(job_type, handler, policy)  ─ store, reject duplicates
      ├── .job(job_type, ...)                   ─ decorator form
      ├── .get(job_type) / .has(job_type)       ─ lookup
      ├── .list_job_types()                     ─ registered keys
      └── .registrations()                      ─ freeze + immutable snapshot

BEST PRACTICES
──────────────
- Build one registry per process at startup and hand it to the
  :class:`~foodworker.execution.dispatcher.Dispatcher`.
- Pass explicit registries in tests; there is no global default.

Related modules:
    contracts.py  — HandlerRegistration / HandlerPolicy
    dispatcher.py — consumes ``registrations()``
"""

from __future__ import annotations

from collections.abc import Callable

from foodworker.core.errors import DuplicateRegistrationError, RegistryFrozenError
from foodworker.core.logging import get_logger
from foodworker.execution.contracts import HandlerPolicy, HandlerRegistration, JobHandler, JobType

logger = get_logger(__name__)


class HandlerRegistry:
    """Injectable registry of job handlers.

    Example:
        >>> registry = HandlerRegistry()
        >>>
        >>> @registry.job("verificar_alimentos", timeout_seconds=30)
        ... def check(job):
        ...     return Completed({"AlimentosArmazem": "true"})
        >>>
        >>> registry.get("verificar_alimentos").policy.timeout_seconds
        30
    """

    def __init__(self) -> None:
        self._registrations: dict[JobType, HandlerRegistration] = {}
        self._frozen = False

    def register(
        self,
        job_type: JobType,
        handler: JobHandler,
        policy: HandlerPolicy | None = None,
        description: str | None = None,
    ) -> HandlerRegistration:
        """Register a handler for a job type.

        Raises:
            DuplicateRegistrationError: If ``job_type`` is already registered
            RegistryFrozenError: If the registry was already snapshotted
        """
        if self._frozen:
            raise RegistryFrozenError(job_type)
        if job_type in self._registrations:
            raise DuplicateRegistrationError(job_type)

        registration = HandlerRegistration(
            job_type=job_type,
            handler=handler,
            policy=policy or HandlerPolicy(),
            description=description or getattr(handler, "__doc__", None),
        )
        self._registrations[job_type] = registration
        logger.debug(
            "handler_registered",
            job_type=job_type,
            timeout_seconds=registration.policy.timeout_seconds,
            max_concurrent_jobs=registration.policy.max_concurrent_jobs,
        )
        return registration

    def job(
        self,
        job_type: JobType,
        *,
        timeout_seconds: float = 60.0,
        max_concurrent_jobs: int = 5,
        description: str | None = None,
    ) -> Callable[[JobHandler], JobHandler]:
        """Decorator form of :meth:`register`."""
        policy = HandlerPolicy(timeout_seconds=timeout_seconds, max_concurrent_jobs=max_concurrent_jobs)

        def decorator(func: JobHandler) -> JobHandler:
            self.register(job_type, func, policy, description=description)
            return func

        return decorator

    def get(self, job_type: JobType) -> HandlerRegistration:
        """Get the registration for a job type.

        Raises:
            KeyError: If no handler is registered for ``job_type``
        """
        if job_type not in self._registrations:
            available = sorted(self._registrations)
            raise KeyError(f"No handler registered for '{job_type}'. Available: {available or 'none'}")
        return self._registrations[job_type]

    def has(self, job_type: JobType) -> bool:
        return job_type in self._registrations

    def list_job_types(self) -> list[JobType]:
        return sorted(self._registrations)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Reject any further registration."""
        self._frozen = True

    def registrations(self) -> tuple[HandlerRegistration, ...]:
        """Freeze the registry and return an immutable snapshot."""
        self.freeze()
        return tuple(self._registrations.values())

    def __len__(self) -> int:
        return len(self._registrations)

    def __contains__(self, job_type: object) -> bool:
        return job_type in self._registrations
