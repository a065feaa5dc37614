"""Foodworker Execution - job leasing, dispatch and outcome reporting.

ARCHITECTURE
────────────
::

    HandlerRegistry (job type → handler + policy)
      │
      ▼
    Dispatcher (all-or-nothing start, cooperative shutdown)
      └── WorkerLoop × N  (one per job type)
            ├── OrchestratorGateway.activate  ─ lease ≤ free slots
            ├── daemon job threads            ─ run handler
            └── complete / fail               ─ report outcome

MODULE MAP
──────────
  1. contracts.py   ─ ActivatedJob, Completed / Failed, HandlerPolicy
  2. registry.py    ─ HandlerRegistry
  3. gateway.py     ─ OrchestratorGateway protocol + InMemoryGateway
  4. retry.py       ─ backoff strategies
  5. worker.py      ─ WorkerLoop
  6. dispatcher.py  ─ Dispatcher
  7. fastapi.py     ─ /health and /workers router (import explicitly)
"""

from foodworker.execution.contracts import (
    ActivatedJob,
    Completed,
    Failed,
    HandlerPolicy,
    HandlerRegistration,
    JobHandler,
    JobOutcome,
    JobType,
)
from foodworker.execution.dispatcher import Dispatcher
from foodworker.execution.gateway import Incident, InMemoryGateway, OrchestratorGateway
from foodworker.execution.registry import HandlerRegistry
from foodworker.execution.retry import ExponentialBackoff, NoRetry, RetryContext, RetryStrategy
from foodworker.execution.worker import WorkerInfo, WorkerLoop, WorkerStats, invoke_handler

__all__ = [
    # Contracts
    "ActivatedJob",
    "Completed",
    "Failed",
    "HandlerPolicy",
    "HandlerRegistration",
    "JobHandler",
    "JobOutcome",
    "JobType",
    # Registry
    "HandlerRegistry",
    # Gateway
    "OrchestratorGateway",
    "InMemoryGateway",
    "Incident",
    # Retry
    "RetryStrategy",
    "ExponentialBackoff",
    "NoRetry",
    "RetryContext",
    # Workers
    "WorkerLoop",
    "WorkerInfo",
    "WorkerStats",
    "invoke_handler",
    "Dispatcher",
]
