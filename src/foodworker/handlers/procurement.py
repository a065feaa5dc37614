"""Procurement handlers.

These steps have no side effects of their own yet: each one logs what it
would do and hands the process variables back with its status flags set.
"""

from __future__ import annotations

from typing import Any

from foodworker.core.logging import get_logger
from foodworker.execution.contracts import ActivatedJob, Completed, JobOutcome

logger = get_logger(__name__)

NOT_DEFINED = "N/D"


def _echo(job: ActivatedJob, **flags: Any) -> Completed:
    return Completed({**job.variables, **flags})


def issue_purchase_order(job: ActivatedJob) -> JobOutcome:
    """Emitir_Ordem_Compra: issue a purchase order to the supplier."""
    logger.info(
        "purchase_order_issued",
        fornecedor=job.get("fornecedor", NOT_DEFINED),
        ingrediente=job.get("ingrediente", NOT_DEFINED),
        quantidade=job.get("quantidade", NOT_DEFINED),
    )
    return _echo(job, ordemEmitida=True, estadoOrdem="emitida")


def send_samples(job: ActivatedJob) -> JobOutcome:
    """Enviar_amostras: supplier sends ingredient samples."""
    logger.info(
        "samples_sent",
        ingrediente=job.get("ingrediente", NOT_DEFINED),
        lote_amostra=job.get("lote_amostra", "LOTE-AMOSTRA-ND"),
    )
    return _echo(job, amostrasEnviadas=True)


def prepare_order(job: ActivatedJob) -> JobOutcome:
    """Preparar_Encomenda: prepare the order for a purchase order."""
    logger.info("order_prepared", ordem_id=job.get("ordemId", "ORDEM-ND"))
    return _echo(job, encomendaPreparada=True)


def reject_proposal(job: ActivatedJob) -> JobOutcome:
    """Rejeitar_Proposta: reject a supplier proposal."""
    logger.info(
        "proposal_rejected",
        fornecedor=job.get("fornecedor", NOT_DEFINED),
        motivo=job.get("motivo_rejeicao", "Proposta não cumpre os requisitos."),
    )
    return _echo(job, propostaRejeitada=True, estadoProposta="rejeitada")


def ship_supplier_order(job: ActivatedJob) -> JobOutcome:
    """fornecedor_envia_encomenda: supplier ships the order."""
    logger.info(
        "supplier_order_shipped",
        fornecedor=job.get("fornecedor", NOT_DEFINED),
        ingrediente=job.get("ingrediente", NOT_DEFINED),
        quantidade=job.get("quantidade", NOT_DEFINED),
        ordem_id=job.get("ordemId", "ORDEM-ND"),
    )
    return _echo(job, encomendaEnviada=True, estadoEncomenda="enviada")
