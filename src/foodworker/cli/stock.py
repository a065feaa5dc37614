"""
CLI: ``foodworker stock`` — inspect the stock table and evaluate requests.
"""

from __future__ import annotations

import typer

from foodworker.cli.utils import console, fail, load_settings, option_path, print_table
from foodworker.core.errors import ConfigError, InvalidInputError
from foodworker.stock import StockTable, normalize_item, parse_request

app = typer.Typer(no_args_is_help=True)


def _load(stock_file: str | None) -> StockTable:
    settings = load_settings(stock_file=option_path(stock_file))
    try:
        return StockTable.load(settings.stock_file)
    except ConfigError as exc:
        fail(str(exc))


@app.command("check")
def check(
    alimentos: str = typer.Argument(..., help="Dot-separated items, e.g. arroz.tomate"),
    quantidades: str = typer.Argument(..., help="Dot-separated quantities, e.g. 3.2"),
    stock_file: str | None = typer.Option(None, "--stock-file", help="JSON stock table"),  # noqa: UP007
) -> None:
    """Check whether a request can be served from stock.

    Example::

        foodworker stock check arroz.tomate 3.2
    """
    stock = _load(stock_file)
    try:
        request = parse_request(alimentos, quantidades)
    except InvalidInputError as exc:
        fail(f"Erro na verificação: {exc}")

    missing = stock.shortages(request)
    if not missing:
        console.print("[bold green]Stock suficiente[/bold green]")
        return

    console.print("[bold red]Stock insuficiente[/bold red]")
    print_table(
        [
            {"alimento": item, "pedido": qty, "em stock": stock.available(item) or 0}
            for item, qty in request
            if normalize_item(item) in missing
        ]
    )


@app.command("list")
def list_stock(
    stock_file: str | None = typer.Option(None, "--stock-file", help="JSON stock table"),  # noqa: UP007
) -> None:
    """Show the stock table."""
    stock = _load(stock_file)
    print_table(
        [{"alimento": item, "quantidade": qty} for item, qty in sorted(stock.as_dict().items())],
        title="Stock",
    )
