"""
Structured error types for the job worker.

Every error raised by the worker core carries a category and an explicit
retry flag, so the polling layer, the dispatcher and the CLI can decide
what to do with it without inspecting message strings.

Manifesto:
    - **Typed hierarchy:** transport, lease, configuration and handler
      failures are different things and are handled in different places.
    - **Explicit retry semantics:** each error type knows whether repeating
      the same call can succeed.
    - **Rich context:** errors carry the job type / job key they concern.
    - **Error chaining:** the original exception is kept as ``cause``.

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │                        WorkerError                          │
        │        (category, retryable, context, cause)               │
        ├────────────────────────────────────────────────────────────┤
        │  TransportError     StaleLeaseError     HandlerError       │
        │  (NETWORK, retry)   (LEASE)             (HANDLER)          │
        │                                              │             │
        │                                     InvalidInputError      │
        │                                     (VALIDATION)           │
        │                                                            │
        │  ConfigError                           StartupError        │
        │  (CONFIG)                              (CONFIG)            │
        │     │                                                      │
        │  DuplicateRegistrationError                                │
        │  RegistryFrozenError                                       │
        │  InvalidPolicyError                                        │
        └────────────────────────────────────────────────────────────┘

Where each one is handled:
    - ``TransportError``: inside the worker loop (poll backoff, report retry)
    - ``StaleLeaseError``: logged and discarded by the worker loop
    - ``ConfigError`` / ``StartupError``: fatal, abort process startup
    - ``HandlerError``: converted to a ``Failed`` job outcome

Tags:
    error-handling, exception-hierarchy, retry-logic, job-worker
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for routing and retry decisions."""

    NETWORK = "NETWORK"           # Gateway unreachable, RPC timeout
    LEASE = "LEASE"               # Job lease expired or unknown
    CONFIG = "CONFIG"             # Registration / settings problems
    HANDLER = "HANDLER"           # Business logic failures
    VALIDATION = "VALIDATION"     # Malformed job input
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


class WorkerError(Exception):
    """
    Base exception for all worker errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    can override both per instance.

    Examples:
        >>> error = WorkerError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(job_type="verificar_alimentos").context
        {'job_type': 'verificar_alimentos'}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> WorkerError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# GATEWAY ERRORS
# =============================================================================


class TransportError(WorkerError):
    """The orchestrator could not be reached (network, RPC timeout).

    Retried by the worker loop with backoff; never surfaced to a handler.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class StaleLeaseError(WorkerError):
    """A complete/fail was reported for a job whose lease is no longer held.

    The job has already timed out and belongs to another lease cycle.
    """

    default_category = ErrorCategory.LEASE
    default_retryable = False

    def __init__(self, job_key: str, message: str | None = None, **kwargs: Any):
        self.job_key = job_key
        super().__init__(message or f"Lease for job {job_key} is no longer held", **kwargs)
        self.context.setdefault("job_key", job_key)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(WorkerError):
    """Configuration error. Never retryable - indicates a programming error."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class DuplicateRegistrationError(ConfigError):
    """A job type was registered twice."""

    def __init__(self, job_type: str):
        self.job_type = job_type
        super().__init__(
            f"Job type '{job_type}' is already registered",
            context={"job_type": job_type},
        )


class RegistryFrozenError(ConfigError):
    """Registration attempted after the registry was handed to a dispatcher."""

    def __init__(self, job_type: str):
        self.job_type = job_type
        super().__init__(
            f"Cannot register '{job_type}': registry is frozen after startup",
            context={"job_type": job_type},
        )


class InvalidPolicyError(ConfigError):
    """A handler policy is out of range."""

    def __init__(self, field: str, value: Any, message: str | None = None):
        self.field = field
        self.value = value
        super().__init__(
            message or f"Invalid handler policy: {field}={value!r}",
            context={"field": field, "value": value},
        )


class StartupError(WorkerError):
    """A worker loop failed to start. Aborts the whole process."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False

    def __init__(self, job_type: str, cause: Exception | None = None):
        self.job_type = job_type
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Failed to start worker for job type '{job_type}'{detail}",
            context={"job_type": job_type},
            cause=cause,
        )


# =============================================================================
# HANDLER ERRORS
# =============================================================================


class HandlerError(WorkerError):
    """Business logic failure inside a job handler."""

    default_category = ErrorCategory.HANDLER
    default_retryable = False


class InvalidInputError(HandlerError):
    """Job variables are missing or malformed."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, variable: str | None = None, **kwargs: Any):
        self.variable = variable
        super().__init__(message, **kwargs)
        if variable is not None:
            self.context.setdefault("variable", variable)


def describe_error(error: BaseException) -> str:
    """Render an exception as a non-empty ``"<Type>: <message>"`` string."""
    message = str(error).strip()
    name = type(error).__name__
    return f"{name}: {message}" if message else name


__all__ = [
    "ErrorCategory",
    "WorkerError",
    "TransportError",
    "StaleLeaseError",
    "ConfigError",
    "DuplicateRegistrationError",
    "RegistryFrozenError",
    "InvalidPolicyError",
    "StartupError",
    "HandlerError",
    "InvalidInputError",
    "describe_error",
]
