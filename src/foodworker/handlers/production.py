"""Production handlers: stock check, product labels, waste registration.

Each handler takes the activated job plus its collaborators as keyword
arguments; :func:`foodworker.handlers.build_registry` binds the
collaborators with :func:`functools.partial` before registration.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from foodworker.core.errors import InvalidInputError
from foodworker.core.logging import get_logger
from foodworker.documents.labels import generate_label
from foodworker.documents.waste_report import WasteReportFields, create_waste_report
from foodworker.execution.contracts import ActivatedJob, Completed, Failed, JobOutcome
from foodworker.stock import StockTable, parse_request

logger = get_logger(__name__)

STOCK_OK = "Stock suficiente"
STOCK_SHORT = "Stock insuficiente"
ANONYMOUS_EMPLOYEE = "Anónimo"


def check_stock(job: ActivatedJob, *, stock: StockTable) -> JobOutcome:
    """Check that every requested food item is in stock.

    ``alimentos="arroz.tomate"`` / ``quantidades="3.2"``. A shortage is a
    normal outcome (``AlimentosArmazem="false"``); malformed input is a
    terminal failure.
    """
    try:
        request = parse_request(job.get("alimentos"), job.get("quantidades"))
    except InvalidInputError as e:
        logger.warning("stock_request_invalid", error=str(e), variable=e.variable)
        return Failed(error_message=f"Erro na verificação: {e}", retries=0)

    items = [item for item, _ in request]
    quantities = [qty for _, qty in request]
    sufficient = stock.has_all(items, quantities)

    logger.info(
        "stock_checked",
        alimentos=items,
        quantidades=quantities,
        sufficient=sufficient,
        missing=None if sufficient else stock.shortages(request),
    )
    return Completed(
        {
            "AlimentosArmazem": "true" if sufficient else "false",
            "mensagem": STOCK_OK if sufficient else STOCK_SHORT,
        }
    )


def generate_labels(job: ActivatedJob, *, output_dir: Path) -> JobOutcome:
    """Generate and store the product label for a packaged batch."""
    result = generate_label(job.variables, output_dir)
    return Completed(result)


def register_waste(job: ActivatedJob, *, output_dir: Path) -> JobOutcome:
    """Record food that was not fit for consumption and file a waste report."""
    logger.debug("waste_variables_received", variables=sorted(job.variables))

    fields = WasteReportFields.from_variables(
        {**job.variables, "nome_funcionario": job.get("nome_funcionario", ANONYMOUS_EMPLOYEE)}
    )
    report = create_waste_report(fields, output_dir)

    return Completed(
        {
            **report,
            "registrado": report["sucesso"],
            "funcionario": fields.funcionario,
            "lote": fields.lote,
            "responsavel_cozedura": fields.responsavel_cozedura,
            "timestamp": datetime.now().isoformat(),
        }
    )
