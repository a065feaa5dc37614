"""
CLI utility helpers — output formatting and settings resolution.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from foodworker.core.settings import WorkerSettings, get_settings

console = Console()
err_console = Console(stderr=True)


def load_settings(**overrides: Any) -> WorkerSettings:
    """Cached settings with non-None CLI options applied on top."""
    settings = get_settings()
    update = {key: value for key, value in overrides.items() if value is not None}
    return settings.model_copy(update=update) if update else settings


def fail(message: str, code: int = 1) -> NoReturn:
    """Print an error to stderr and exit."""
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=code)


def print_table(rows: Sequence[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table (columns from the first row)."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)


def option_path(value: str | None) -> Path | None:
    return Path(value) if value else None
