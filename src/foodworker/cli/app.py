"""
Root Typer application for the foodworker CLI.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer
from typer import Typer

from foodworker import __version__

app = Typer(
    name="foodworker",
    help="foodworker — job worker for the food-production workflows.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("foodworker")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"foodworker {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """foodworker CLI — run and inspect the food-production job workers."""


# ── Sub-command registration ─────────────────────────────────────────────

from foodworker.cli.stock import app as stock_app  # noqa: E402
from foodworker.cli.worker import app as worker_app  # noqa: E402

app.add_typer(worker_app, name="worker", help="Job workers.")
app.add_typer(stock_app, name="stock", help="Food stock table.")
