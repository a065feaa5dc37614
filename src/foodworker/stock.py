"""Stock table - read-only food stock lookup for the stock-check handler.

The table is loaded once at startup from a JSON object mapping item name
to available quantity and injected into the handlers that need it::

    {"arroz": 10, "feijão": 5, "tomate": 12}

Item names are normalised with ``strip().lower()`` both when the table is
loaded and when it is queried.  A copy of the default table ships with the
package (``foodworker/data/stock_alimentos.json``).

Requests arrive from the process engine as two dot-separated strings,
``alimentos="arroz.tomate"`` and ``quantidades="3.2"``; see
:func:`parse_request`.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any

from foodworker.core.errors import ConfigError, InvalidInputError
from foodworker.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_STOCK_RESOURCE = "stock_alimentos.json"


def normalize_item(name: str) -> str:
    return name.strip().lower()


def split_dotted(value: str) -> list[str]:
    """Split a dot-separated list, trimming entries and dropping trailing empties."""
    parts = [part.strip() for part in value.split(".")]
    while parts and not parts[-1]:
        parts.pop()
    return parts


def parse_request(alimentos: Any, quantidades: Any) -> list[tuple[str, int]]:
    """Parse a dot-separated stock request into ``(item, quantity)`` pairs.

    Raises:
        InvalidInputError: If either value is missing or not a string, a
            quantity is not a non-negative integer, an item name is empty,
            or the two lists have different lengths.
    """
    if not isinstance(alimentos, str) or not alimentos.strip():
        raise InvalidInputError("variável 'alimentos' em falta ou vazia", variable="alimentos")
    if not isinstance(quantidades, str) or not quantidades.strip():
        raise InvalidInputError("variável 'quantidades' em falta ou vazia", variable="quantidades")

    items = split_dotted(alimentos)
    raw_quantities = split_dotted(quantidades)

    if any(not item for item in items):
        raise InvalidInputError(f"nome de alimento vazio em '{alimentos}'", variable="alimentos")
    if len(items) != len(raw_quantities):
        raise InvalidInputError(
            f"{len(items)} alimentos para {len(raw_quantities)} quantidades",
            variable="quantidades",
        )

    quantities: list[int] = []
    for raw in raw_quantities:
        try:
            quantity = int(raw)
        except ValueError:
            raise InvalidInputError(f"quantidade inválida: '{raw}'", variable="quantidades") from None
        if quantity < 0:
            raise InvalidInputError(f"quantidade negativa: {quantity}", variable="quantidades")
        quantities.append(quantity)

    return list(zip(items, quantities, strict=True))


class StockTable:
    """Immutable item → quantity table.

    Example:
        >>> stock = StockTable.from_mapping({"Arroz": 10, "tomate": 1})
        >>> stock.has_all(["arroz", "tomate"], [3, 2])
        False
        >>> stock.available(" ARROZ ")
        10
    """

    def __init__(self, quantities: Mapping[str, int]):
        self._quantities = MappingProxyType(dict(quantities))

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source: str = "<mapping>") -> StockTable:
        """Validate and normalise a raw mapping.

        Raises:
            ConfigError: If any quantity is not a non-negative integer
        """
        quantities: dict[str, int] = {}
        for name, qty in data.items():
            if not isinstance(name, str) or not name.strip():
                raise ConfigError(f"Invalid stock item name {name!r} in {source}", context={"source": source})
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
                raise ConfigError(
                    f"Invalid stock quantity for '{name}' in {source}: {qty!r}",
                    context={"source": source, "item": name},
                )
            quantities[normalize_item(name)] = qty
        return cls(quantities)

    @classmethod
    def from_json(cls, path: str | Path) -> StockTable:
        """Load a table from a JSON file.

        Raises:
            ConfigError: If the file is missing, unreadable, not a JSON
                object, or holds invalid quantities
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigError(f"Stock file not found: {path}", cause=e, context={"path": str(path)}) from e
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read stock file {path}: {e}", cause=e, context={"path": str(path)}) from e

        if not isinstance(data, dict):
            raise ConfigError(f"Stock file {path} must contain a JSON object", context={"path": str(path)})

        table = cls.from_mapping(data, source=str(path))
        logger.info("stock_loaded", source=str(path), items=len(table))
        return table

    @classmethod
    def default(cls) -> StockTable:
        """Load the table packaged with foodworker."""
        resource = resources.files("foodworker.data").joinpath(DEFAULT_STOCK_RESOURCE)
        data = json.loads(resource.read_text(encoding="utf-8"))
        table = cls.from_mapping(data, source=DEFAULT_STOCK_RESOURCE)
        logger.info("stock_loaded", source=DEFAULT_STOCK_RESOURCE, items=len(table))
        return table

    @classmethod
    def load(cls, path: str | Path | None = None) -> StockTable:
        """Load from ``path`` when given, otherwise the packaged default."""
        return cls.from_json(path) if path is not None else cls.default()

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def available(self, item: str) -> int | None:
        """Quantity in stock for ``item``, or None if unknown."""
        return self._quantities.get(normalize_item(item))

    def has_all(self, items: Iterable[str], quantities: Iterable[int]) -> bool:
        """True if every item is known with at least the requested quantity."""
        for item, wanted in zip(items, quantities, strict=True):
            in_stock = self.available(item)
            if in_stock is None or in_stock < wanted:
                return False
        return True

    def shortages(self, request: Iterable[tuple[str, int]]) -> dict[str, int]:
        """Missing quantity per item for a parsed request (empty when satisfied)."""
        missing: dict[str, int] = {}
        for item, wanted in request:
            in_stock = self.available(item) or 0
            if in_stock < wanted:
                missing[normalize_item(item)] = wanted - in_stock
        return missing

    def as_dict(self) -> dict[str, int]:
        return dict(self._quantities)

    def __len__(self) -> int:
        return len(self._quantities)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and normalize_item(item) in self._quantities

    def __repr__(self) -> str:
        return f"StockTable({len(self)} items)"
