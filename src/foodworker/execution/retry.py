"""Retry strategies with exponential backoff and jitter.

Used by the worker loop for the two places where transport errors are
absorbed: polling (``activate``) and reporting (``complete`` / ``fail``).

Example:
    >>> from foodworker.execution.retry import ExponentialBackoff
    >>>
    >>> strategy = ExponentialBackoff(max_retries=5, base_delay=0.5, max_delay=30.0)
    >>> for attempt in range(5):
    ...     delay = strategy.next_delay(attempt)
    ...     print(f"Attempt {attempt}: wait {delay:.2f}s")
"""

from __future__ import annotations

import random
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

T = TypeVar("T")


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before next retry attempt.

        Args:
            attempt: Zero-based attempt number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Determine if another retry should be attempted.

        Args:
            attempt: Number of attempts made so far
            error: The exception that caused the failure
        """
        ...


@dataclass
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff with optional jitter.

    Delay = min(base_delay * (multiplier ** attempt), max_delay) ± jitter

    Attributes:
        max_retries: Maximum number of retry attempts (None = unbounded)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
        multiplier: Exponential multiplier (default: 2)
        jitter: Add randomness to prevent thundering herd
        jitter_range: Range of jitter as fraction of delay (0.0-1.0)
        retryable_errors: Exception types that are retryable (None = all)
    """

    max_retries: int | None = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.25
    retryable_errors: tuple[type[BaseException], ...] | None = None

    def next_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        delay = min(
            self.base_delay * (self.multiplier ** attempt),
            self.max_delay,
        )

        if self.jitter:
            jitter_amount = delay * self.jitter_range
            delay += random.uniform(-jitter_amount, jitter_amount)
            delay = max(0.0, delay)

        return delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Check if retry should be attempted."""
        if self.max_retries is not None and attempt >= self.max_retries:
            return False

        if error is not None and self.retryable_errors is not None:
            return isinstance(error, self.retryable_errors)

        return True


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail immediately."""

    def next_delay(self, attempt: int) -> float:
        return 0.0

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        return False


@dataclass
class RetryContext:
    """Runs a callable under a retry strategy.

    Example:
        >>> ctx = RetryContext(ExponentialBackoff(max_retries=3, retryable_errors=(TransportError,)))
        >>> ctx.run(gateway.complete, job_key, variables)
    """

    strategy: RetryStrategy
    on_retry: Callable[[int, Exception, float], None] | None = None
    sleep: Callable[[float], Any] = time.sleep
    attempt: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute function with retry logic.

        Raises:
            The last exception once the strategy gives up
        """
        while True:
            self.attempt += 1
            try:
                return func(*args, **kwargs)
            except Exception as e:
                self.last_error = e

                if not self.strategy.should_retry(self.attempt, e):
                    raise

                delay = self.strategy.next_delay(self.attempt - 1)

                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)

                self.sleep(delay)
