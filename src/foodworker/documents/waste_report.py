"""Food-waste report generation.

Writes ``<output_dir>/relatorios/DESP_<lote>_<YYYYmmdd_HHMMSS>.txt``
listing the wasted items of a production batch, the reason, who was
responsible, optional process notes and a signature block.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from foodworker.core.logging import get_logger
from foodworker.documents.storage import file_stamp, sanitize, write_document
from foodworker.stock import split_dotted

logger = get_logger(__name__)

REPORTS_DIR = "relatorios"
NOT_APPLICABLE = "N/A"

_RULE = "─" * 44
_DOUBLE_RULE = "═" * 46


@dataclass(frozen=True)
class WasteReportFields:
    """Everything that goes into one report, with defaults applied."""

    alimentos: str = ""
    quantidades: str = ""
    lote: str = "LOTE-NÃO-INFORMADO"
    responsavel_cozedura: str = "Não informado"
    funcionario: str = "Operador não identificado"
    motivo: str = "qualidade_insuficiente"
    descricao_preparacao: str = NOT_APPLICABLE
    descricao_procedimento: str = NOT_APPLICABLE
    equipamentos: str = NOT_APPLICABLE

    @classmethod
    def from_variables(cls, variables: Mapping[str, Any]) -> WasteReportFields:
        """Build from job variables; ``operador`` is accepted for ``nome_funcionario``."""

        def pick(*names: str, default: str) -> str:
            for name in names:
                value = variables.get(name)
                if value is not None:
                    return str(value)
            return default

        return cls(
            alimentos=pick("alimentos", default=""),
            quantidades=pick("quantidades", default=""),
            lote=pick("lote_produto", default=cls.lote),
            responsavel_cozedura=pick("responsavel_cozedura", default=cls.responsavel_cozedura),
            funcionario=pick("nome_funcionario", "operador", default=cls.funcionario),
            motivo=pick("motivo", default=cls.motivo),
            descricao_preparacao=pick("descricao_preparacao", default=NOT_APPLICABLE),
            descricao_procedimento=pick("descricao_procedimento", default=NOT_APPLICABLE),
            equipamentos=pick("equipamentos", default=NOT_APPLICABLE),
        )

    @property
    def has_process_notes(self) -> bool:
        return any(
            value != NOT_APPLICABLE
            for value in (self.descricao_preparacao, self.descricao_procedimento, self.equipamentos)
        )


def _items_section(fields: WasteReportFields) -> list[str]:
    if not fields.alimentos or not fields.quantidades:
        return ["  Não foram especificados alimentos", ""]

    items = split_dotted(fields.alimentos)
    quantities = split_dotted(fields.quantidades)
    lines = [f"  • {item:<15} : {qty:>4} unidades" for item, qty in zip(items, quantities)]
    return [*lines, "", f"  TOTAL ITENS: {len(items)}", ""]


def _process_section(fields: WasteReportFields) -> list[str]:
    if not fields.has_process_notes:
        return []

    lines = [_RULE, "INFORMAÇÕES DO PROCESSO".center(44).rstrip(), _RULE, ""]
    for title, value in (
        ("DESCRIÇÃO DA PREPARAÇÃO", fields.descricao_preparacao),
        ("PROCEDIMENTO REALIZADO", fields.descricao_procedimento),
        ("EQUIPAMENTOS UTILIZADOS", fields.equipamentos),
    ):
        if value != NOT_APPLICABLE:
            lines += [f"{title}:", f"  {value}", ""]
    return lines


def format_waste_report(fields: WasteReportFields, now: datetime) -> str:
    """Render the report text."""
    lines = [
        "╔" + "═" * 46 + "╗",
        "║" + "RELATÓRIO DE DESPERDÍCIO ALIMENTAR".center(46) + "║",
        "╚" + "═" * 46 + "╝",
        "",
        f"DATA: {now.strftime('%d/%m/%Y %H:%M:%S')}",
        f"LOTE: {fields.lote}",
        f"RESPONSÁVEL COZEDURA: {fields.responsavel_cozedura}",
        f"FUNCIONÁRIO: {fields.funcionario}",
        f"MOTIVO: {fields.motivo}",
        "",
        _RULE,
        "ALIMENTOS DESPERDIÇADOS".center(44).rstrip(),
        _RULE,
        "",
    ]
    lines += _items_section(fields)
    lines += _process_section(fields)
    lines += [
        "",
        _RULE,
        "ASSINATURAS",
        "",
        "Responsável Cozedura: ____________________",
        "Data: ______/______/______",
        "",
        _DOUBLE_RULE,
        "RELATÓRIO GERADO AUTOMATICAMENTE".center(46).rstrip(),
        _DOUBLE_RULE,
    ]
    return "\n".join(lines) + "\n"


def create_waste_report(
    fields: WasteReportFields | Mapping[str, Any],
    output_dir: Path,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Generate and persist a waste report.

    Args:
        fields: Prepared fields, or raw job variables
        output_dir: Root directory; the report goes to ``relatorios/``
        now: Clock override for tests

    Returns:
        ``sucesso``, ``caminhoFicheiro``, ``lote``, ``responsavelCozedura``,
        ``funcionario``, ``timestamp``

    Raises:
        OSError: If the report cannot be written
    """
    if not isinstance(fields, WasteReportFields):
        fields = WasteReportFields.from_variables(fields)
    now = now or datetime.now()

    content = format_waste_report(fields, now)
    filename = f"DESP_{sanitize(fields.lote, r'[^a-zA-Z0-9]', '_')}_{file_stamp(now)}.txt"
    path = write_document(Path(output_dir) / REPORTS_DIR, filename, content)

    logger.info("waste_report_created", lote=fields.lote, path=str(path))
    return {
        "sucesso": True,
        "caminhoFicheiro": str(path),
        "lote": fields.lote,
        "responsavelCozedura": fields.responsavel_cozedura,
        "funcionario": fields.funcionario,
        "timestamp": now.isoformat(),
    }
