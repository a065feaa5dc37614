"""Product label generation.

Builds a boxed plain-text label from the packaging variables of a
``gerar_etiquetas`` job and writes it to
``<output_dir>/etiquetas_geradas/ETQ_<lote>_<YYYYmmdd_HHMMSS>.txt``.

Input variables (all optional):

    lote_embalagem           packaging batch (default ``LOTE-<epoch millis>``)
    embalamento              packaging type (default ``Embalamento padrão``)
    responsavel_embalamento  operator (default ``Operador não identificado``)
    data_embalamento         ``dd/mm/YYYY HH:MM:SS`` (default: now)
    validade                 ``dd/mm/YYYY`` (default: packaging date + 7 days)
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from foodworker.core.logging import get_logger
from foodworker.documents.storage import file_stamp, sanitize, write_document

logger = get_logger(__name__)

LABELS_DIR = "etiquetas_geradas"
DATETIME_FORMAT = "%d/%m/%Y %H:%M:%S"
DATE_FORMAT = "%d/%m/%Y"
SHELF_LIFE = timedelta(days=7)

DEFAULT_PACKAGING = "Embalamento padrão"
DEFAULT_OPERATOR = "Operador não identificado"

_INNER = 44
_INSTRUCTIONS = (
    "Conservar em local fresco e seco",
    "Consumir até data de validade",
    "Produto inspecionado e aprovado",
    "Em caso de dúvida, contactar produção",
)


def _text(variables: Mapping[str, Any], name: str) -> str | None:
    value = variables.get(name)
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def _millis(now: datetime) -> int:
    return int(now.timestamp() * 1000)


def expiry_date(packaged_at: str | None, now: datetime) -> str:
    """Packaging date + 7 days, or now + 7 days if the date does not parse."""
    base = now
    if packaged_at:
        try:
            base = datetime.strptime(packaged_at.strip(), DATETIME_FORMAT)
        except ValueError:
            logger.debug("packaging_date_unparsed", data_embalamento=packaged_at)
    return (base + SHELF_LIFE).strftime(DATE_FORMAT)


# =============================================================================
# FORMATTING
# =============================================================================


def _field(label: str, value: str) -> str:
    return f"│ {label:<18}: {value:<22} │"


def _section(title: str, lines: list[str]) -> list[str]:
    return [
        "┌" + "─" * _INNER + "┐",
        "│" + f"    {title}".ljust(_INNER) + "│",
        "├" + "─" * _INNER + "┤",
        *lines,
        "└" + "─" * _INNER + "┘",
        "",
    ]


def _free_line(text: str) -> str:
    return "│" + f" {text}".ljust(_INNER) + "│"


def format_label(
    product_id: str,
    batch: str,
    packaging: str,
    packaged_at: str,
    expires_at: str,
    operator: str,
) -> str:
    """Render the label text."""
    lines = [
        "╔" + "═" * (_INNER + 2) + "╗",
        "║" + "ETIQUETA DO PRODUTO".center(_INNER + 2) + "║",
        "╚" + "═" * (_INNER + 2) + "╝",
        "",
    ]
    lines += _section(
        "INFORMAÇÕES DO PRODUTO",
        [_field("ID", product_id), _field("Lote", batch), _field("Embalamento", packaging)],
    )
    lines += _section(
        "DATAS IMPORTANTES",
        [_field("Embalado em", packaged_at), _field("Válido até", expires_at)],
    )
    lines += _section("RESPONSÁVEL", [_field("Embalado por", operator)])
    lines += _section("CÓDIGO DO PRODUTO", [_free_line(product_id)])
    lines += _section("INFORMAÇÕES", [_free_line(f"• {line}") for line in _INSTRUCTIONS])
    lines += [
        "═" * (_INNER + 2),
        "Etiqueta gerada automaticamente".center(_INNER + 2).rstrip(),
        "═" * (_INNER + 2),
    ]
    return "\n".join(lines) + "\n"


# =============================================================================
# GENERATION
# =============================================================================


def generate_label(
    variables: Mapping[str, Any],
    output_dir: Path,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Generate, persist and describe a product label.

    Args:
        variables: Job variables (see module docstring)
        output_dir: Root directory; the label goes to ``etiquetas_geradas/``
        now: Clock override for tests

    Returns:
        Result variables: ``sucesso``, ``etiquetaGerada``, ``produtoId``,
        ``loteEmbalagem``, ``embalamento``, ``dataEmbalamento``,
        ``dataValidade``, ``responsavelEmbalamento``, ``caminhoEtiqueta``,
        ``timestamp``

    Raises:
        OSError: If the label cannot be written
    """
    now = now or datetime.now()
    millis = _millis(now)

    batch = _text(variables, "lote_embalagem") or f"LOTE-{millis}"
    packaging = _text(variables, "embalamento") or DEFAULT_PACKAGING
    operator = _text(variables, "responsavel_embalamento") or DEFAULT_OPERATOR

    packaged_input = _text(variables, "data_embalamento")
    packaged_at = packaged_input or now.strftime(DATETIME_FORMAT)
    expires_at = _text(variables, "validade") or expiry_date(packaged_input, now)

    product_id = f"PROD-{batch}-{millis}"
    content = format_label(product_id, batch, packaging, packaged_at, expires_at, operator)

    filename = f"ETQ_{sanitize(batch, r'[^a-zA-Z0-9_-]')}_{file_stamp(now)}.txt"
    path = write_document(Path(output_dir) / LABELS_DIR, filename, content)

    logger.info("label_generated", produto_id=product_id, path=str(path))
    return {
        "sucesso": True,
        "etiquetaGerada": True,
        "produtoId": product_id,
        "loteEmbalagem": batch,
        "embalamento": packaging,
        "dataEmbalamento": packaged_at,
        "dataValidade": expires_at,
        "responsavelEmbalamento": operator,
        "caminhoEtiqueta": str(path),
        "timestamp": now.isoformat(),
    }
