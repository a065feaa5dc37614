"""FastAPI Router - health and worker statistics over HTTP.

ARCHITECTURE
────────────
::

    create_workers_router(dispatcher) → APIRouter
      GET  /health              ─ ok | degraded (+ per-type status)
      GET  /workers             ─ info + counters for every job type
      GET  /workers/{job_type}  ─ one job type, 404 if unknown

    create_app(dispatcher) → FastAPI   (what ``worker start --health-port`` serves)

Related modules:
    dispatcher.py — Dispatcher (all data comes from here)
    worker.py     — WorkerInfo / WorkerStats
"""

from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, FastAPI, HTTPException
from pydantic import BaseModel, Field

from .dispatcher import Dispatcher

# === PYDANTIC MODELS FOR API ===


class WorkerStatsResponse(BaseModel):
    """Counters for one worker loop."""

    activated: int = 0
    completed: int = 0
    failed: int = 0
    stale: int = 0
    expired: int = 0
    transport_errors: int = 0
    active: int = 0
    last_poll_at: datetime | None = None


class WorkerResponse(BaseModel):
    """One job type: policy, status and counters."""

    job_type: str
    worker_name: str
    timeout_seconds: float
    max_concurrent_jobs: int
    status: str
    started_at: datetime | None = None
    stats: WorkerStatsResponse = Field(default_factory=WorkerStatsResponse)

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> "WorkerResponse":
        return cls(**entry)


class HealthResponse(BaseModel):
    """Overall worker health."""

    status: Literal["ok", "degraded"]
    running: bool
    workers: dict[str, str] = Field(default_factory=dict)


def create_workers_router(
    dispatcher: Dispatcher,
    prefix: str = "",
    tags: list[str] | None = None,
) -> APIRouter:
    """Create the health / workers router.

    Args:
        dispatcher: The running Dispatcher
        prefix: URL prefix (default: none)
        tags: OpenAPI tags (default: ["workers"])

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> app.include_router(create_workers_router(dispatcher))
    """
    router = APIRouter(prefix=prefix, tags=tags or ["workers"])

    @router.get("/health", response_model=HealthResponse)
    def health():
        """``ok`` when every worker loop is polling, ``degraded`` otherwise."""
        return HealthResponse(
            status="ok" if dispatcher.healthy else "degraded",
            running=dispatcher.is_running,
            workers={info.job_type: info.status for info in dispatcher.workers()},
        )

    @router.get("/workers", response_model=list[WorkerResponse])
    def list_workers():
        """Policy, status and counters for every registered job type."""
        return [WorkerResponse.from_entry(entry) for entry in dispatcher.stats()]

    @router.get("/workers/{job_type}", response_model=WorkerResponse)
    def get_worker(job_type: str):
        for entry in dispatcher.stats():
            if entry["job_type"] == job_type:
                return WorkerResponse.from_entry(entry)
        raise HTTPException(404, f"No worker for job type '{job_type}'")

    return router


def create_app(dispatcher: Dispatcher) -> FastAPI:
    """Minimal app exposing :func:`create_workers_router`."""
    app = FastAPI(title="food-production-worker", docs_url=None, redoc_url=None)
    app.include_router(create_workers_router(dispatcher))
    return app
