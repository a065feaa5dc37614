"""Food-production job handlers and the startup registration table.

ARCHITECTURE
────────────
::

    JOB_TABLE (job type → handler factory + policy)
      │
      ▼
    build_registry(settings, stock, output_dir) → HandlerRegistry
      ├── binds StockTable / output_dir into handlers (functools.partial)
      ├── applies settings.policy_overrides per job type
      └── unknown override keys → ConfigError

    production.py   ─ verificar_alimentos, gerar_etiquetas, registar_nao_consumiveis
    procurement.py  ─ Emitir_Ordem_Compra, Enviar_amostras, Preparar_Encomenda,
                      Rejeitar_Proposta, fornecedor_envia_encomenda
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from foodworker.core.errors import ConfigError
from foodworker.core.logging import get_logger
from foodworker.core.settings import WorkerSettings
from foodworker.execution.contracts import HandlerPolicy, JobHandler
from foodworker.execution.registry import HandlerRegistry
from foodworker.handlers import procurement, production
from foodworker.stock import StockTable

logger = get_logger(__name__)


@dataclass(frozen=True)
class HandlerContext:
    """Collaborators handed to handler factories."""

    stock: StockTable
    output_dir: Path


@dataclass(frozen=True)
class JobDefinition:
    """One row of the startup table.

    ``timeout_seconds`` / ``max_concurrent_jobs`` of None fall back to the
    settings defaults.
    """

    job_type: str
    factory: Callable[[HandlerContext], JobHandler]
    description: str
    timeout_seconds: float | None = None
    max_concurrent_jobs: int | None = None


def _plain(handler: JobHandler) -> Callable[[HandlerContext], JobHandler]:
    return lambda ctx: handler


JOB_TABLE: tuple[JobDefinition, ...] = (
    JobDefinition(
        "gerar_etiquetas",
        lambda ctx: partial(production.generate_labels, output_dir=ctx.output_dir),
        "Gerar etiqueta do produto embalado",
        timeout_seconds=60,
        max_concurrent_jobs=3,
    ),
    JobDefinition(
        "registar_nao_consumiveis",
        lambda ctx: partial(production.register_waste, output_dir=ctx.output_dir),
        "Registar alimentos não consumíveis e gerar relatório de desperdício",
        timeout_seconds=60,
        max_concurrent_jobs=3,
    ),
    JobDefinition(
        "verificar_alimentos",
        lambda ctx: partial(production.check_stock, stock=ctx.stock),
        "Verificar stock de alimentos no armazém",
        timeout_seconds=30,
    ),
    JobDefinition(
        "Emitir_Ordem_Compra",
        _plain(procurement.issue_purchase_order),
        "Emitir ordem de compra ao fornecedor",
        timeout_seconds=120,
        max_concurrent_jobs=3,
    ),
    JobDefinition(
        "Enviar_amostras",
        _plain(procurement.send_samples),
        "Fornecedor envia amostras",
        timeout_seconds=60,
        max_concurrent_jobs=3,
    ),
    JobDefinition(
        "Preparar_Encomenda",
        _plain(procurement.prepare_order),
        "Preparar encomenda",
        timeout_seconds=120,
        max_concurrent_jobs=3,
    ),
    JobDefinition(
        "Rejeitar_Proposta",
        _plain(procurement.reject_proposal),
        "Rejeitar proposta do fornecedor",
        timeout_seconds=60,
        max_concurrent_jobs=2,
    ),
    JobDefinition(
        "fornecedor_envia_encomenda",
        _plain(procurement.ship_supplier_order),
        "Fornecedor envia encomenda",
        timeout_seconds=120,
        max_concurrent_jobs=3,
    ),
)


def resolve_policy(definition: JobDefinition, settings: WorkerSettings) -> HandlerPolicy:
    """Table policy, then settings defaults, then per-type overrides."""
    timeout = definition.timeout_seconds or settings.default_timeout_seconds
    max_jobs = definition.max_concurrent_jobs or settings.default_max_jobs_active

    override = settings.policy_overrides.get(definition.job_type)
    if override is not None:
        if override.timeout_seconds is not None:
            timeout = override.timeout_seconds
        if override.max_concurrent_jobs is not None:
            max_jobs = override.max_concurrent_jobs

    return HandlerPolicy(timeout_seconds=timeout, max_concurrent_jobs=max_jobs)


def build_registry(
    settings: WorkerSettings | None = None,
    stock: StockTable | None = None,
    output_dir: Path | None = None,
    table: tuple[JobDefinition, ...] = JOB_TABLE,
) -> HandlerRegistry:
    """Register every production job type.

    Args:
        settings: Worker settings (defaults and overrides); fresh
            ``WorkerSettings()`` if omitted
        stock: Stock table; loaded from ``settings.stock_file`` (or the
            packaged default) if omitted
        output_dir: Root for labels and reports; ``settings.output_dir`` if
            omitted
        table: Job definitions to register

    Raises:
        ConfigError: For overrides naming an unknown job type, an
            unloadable stock file, or a duplicate job type in ``table``
    """
    settings = settings or WorkerSettings()

    known = {definition.job_type for definition in table}
    unknown = sorted(set(settings.policy_overrides) - known)
    if unknown:
        raise ConfigError(
            f"Policy overrides for unknown job types: {', '.join(unknown)}",
            context={"unknown": unknown},
        )

    ctx = HandlerContext(
        stock=stock if stock is not None else StockTable.load(settings.stock_file),
        output_dir=Path(output_dir if output_dir is not None else settings.output_dir),
    )

    registry = HandlerRegistry()
    for definition in table:
        registry.register(
            definition.job_type,
            definition.factory(ctx),
            resolve_policy(definition, settings),
            description=definition.description,
        )

    logger.info("handlers_registered", job_types=registry.list_job_types(), output_dir=str(ctx.output_dir))
    return registry


__all__ = ["JOB_TABLE", "JobDefinition", "HandlerContext", "build_registry", "resolve_policy"]
