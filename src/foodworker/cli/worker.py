"""
CLI: ``foodworker worker`` — run the job workers, list job types.

``worker start`` runs every registered job type against an in-process
orchestrator seeded from a JSON job file (local replay)::

    [
      {"type": "verificar_alimentos", "variables": {"alimentos": "arroz", "quantidades": "2"}},
      {"type": "gerar_etiquetas", "variables": {"lote_embalagem": "L-42"}, "retries": 1}
    ]
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

import typer
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from foodworker.cli.utils import console, fail, load_settings, option_path, print_table
from foodworker.core.errors import ConfigError, StartupError
from foodworker.core.logging import configure_logging, get_logger
from foodworker.execution.dispatcher import Dispatcher
from foodworker.execution.gateway import InMemoryGateway
from foodworker.handlers import JOB_TABLE, build_registry, resolve_policy

logger = get_logger(__name__)

app = typer.Typer(no_args_is_help=True)


class JobSeed(BaseModel):
    """One entry of a ``--jobs`` file."""

    type: str
    variables: dict[str, Any] = Field(default_factory=dict)
    retries: int = Field(default=3, ge=0)


_seed_list = TypeAdapter(list[JobSeed])


def load_jobs(path: Path) -> list[JobSeed]:
    """Parse a job file.

    Raises:
        ConfigError: If the file is missing or not a valid job list
    """
    try:
        return _seed_list.validate_json(path.read_bytes())
    except OSError as e:
        raise ConfigError(f"Cannot read job file {path}: {e}", cause=e) from e
    except ValidationError as e:
        raise ConfigError(f"Invalid job file {path}: {e.error_count()} error(s)\n{e}", cause=e) from e


def seed_gateway(gateway: InMemoryGateway, jobs: list[JobSeed], known: set[str]) -> None:
    """Publish ``jobs``; every job type must have a registered handler.

    Raises:
        ConfigError: If a job names an unregistered type
    """
    unknown = sorted({job.type for job in jobs} - known)
    if unknown:
        raise ConfigError(f"Job file references unregistered job types: {', '.join(unknown)}")
    for job in jobs:
        gateway.publish(job.type, job.variables, retries=job.retries)


def _serve_health(dispatcher: Dispatcher, port: int) -> Any:
    import uvicorn

    from foodworker.execution.fastapi import create_app

    server = uvicorn.Server(uvicorn.Config(create_app(dispatcher), host="0.0.0.0", port=port, log_level="warning"))
    threading.Thread(target=server.run, name="health-server", daemon=True).start()
    logger.info("health_server_started", port=port)
    return server


@app.command("start")
def start(
    jobs: str | None = typer.Option(None, "--jobs", "-j", help="JSON file of jobs to replay"),  # noqa: UP007
    exit_when_idle: bool = typer.Option(False, "--exit-when-idle", help="Stop once every job is finished"),
    health_port: int | None = typer.Option(None, "--health-port", help="Serve /health and /workers on this port"),  # noqa: UP007
    output_dir: str | None = typer.Option(None, "--output-dir", "-o", help="Root for labels and reports"),  # noqa: UP007
    stock_file: str | None = typer.Option(None, "--stock-file", help="JSON stock table"),  # noqa: UP007
    log_level: str | None = typer.Option(None, "--log-level"),  # noqa: UP007
    json_logs: bool | None = typer.Option(None, "--json-logs/--console-logs", help="Force log format"),  # noqa: UP007
) -> None:
    """Start one worker loop per registered job type.

    Runs until SIGINT/SIGTERM, or until every replayed job is finished with
    ``--exit-when-idle``.

    Example::

        foodworker worker start --jobs jobs.json --exit-when-idle
        foodworker worker start --health-port 8080
    """
    settings = load_settings(
        output_dir=option_path(output_dir),
        stock_file=option_path(stock_file),
        log_level=log_level,
        log_json=json_logs,
    )
    configure_logging(level=settings.log_level, json_format=settings.log_json, service=settings.worker_name)

    gateway = InMemoryGateway()
    try:
        registry = build_registry(settings)
        if jobs:
            seed_gateway(gateway, load_jobs(Path(jobs)), set(registry.list_job_types()))
        dispatcher = Dispatcher(
            registry,
            gateway,
            worker_name=settings.worker_name,
            poll_interval=settings.poll_interval_seconds,
            grace_period=settings.grace_period_seconds,
        )
    except ConfigError as exc:
        fail(str(exc))

    console.print(
        f"[bold green]Starting {settings.worker_name}[/bold green] "
        f"({len(registry)} job types, {gateway.pending_count()} queued)"
    )

    server = _serve_health(dispatcher, health_port) if health_port else None
    try:
        abandoned = dispatcher.run(until=gateway.is_idle if exit_when_idle else None)
    except (StartupError, ConfigError) as exc:
        fail(str(exc))
    finally:
        if server is not None:
            server.should_exit = True

    print_table(
        [
            {
                "job type": entry["job_type"],
                "completed": entry["stats"]["completed"],
                "failed": entry["stats"]["failed"],
                "stale": entry["stats"]["stale"],
                "expired": entry["stats"]["expired"],
            }
            for entry in dispatcher.stats()
        ],
        title="Worker summary",
    )
    if gateway.incidents:
        console.print(f"[yellow]{len(gateway.incidents)} incident(s):[/yellow]")
        for incident in gateway.incidents:
            console.print(f"  [bold]{incident.job_type}[/bold] #{incident.job_key}: {incident.error_message}")
    if abandoned:
        console.print(f"[yellow]{abandoned} job(s) abandoned at shutdown[/yellow]")


@app.command("list")
def list_jobs(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List registered job types with their effective policy."""
    settings = load_settings()
    try:
        rows = [
            {
                "job_type": definition.job_type,
                **resolve_policy(definition, settings).to_dict(),
                "description": definition.description,
            }
            for definition in JOB_TABLE
        ]
    except ConfigError as exc:
        fail(str(exc))

    if as_json:
        console.print_json(json.dumps(rows))
        return
    print_table(rows, title="Job types")
