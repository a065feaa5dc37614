"""Tests for the procurement handlers."""

import pytest

from foodworker.execution.contracts import ActivatedJob, Completed
from foodworker.handlers import procurement


@pytest.mark.parametrize(
    ("handler", "flags"),
    [
        (procurement.issue_purchase_order, {"ordemEmitida": True, "estadoOrdem": "emitida"}),
        (procurement.send_samples, {"amostrasEnviadas": True}),
        (procurement.prepare_order, {"encomendaPreparada": True}),
        (procurement.reject_proposal, {"propostaRejeitada": True, "estadoProposta": "rejeitada"}),
        (procurement.ship_supplier_order, {"encomendaEnviada": True, "estadoEncomenda": "enviada"}),
    ],
)
def test_echoes_variables_and_sets_flags(handler, flags):
    variables = {"fornecedor": "Quinta Verde", "ingrediente": "tomate", "quantidade": "40"}
    job = ActivatedJob(key="5", type="any", variables=variables)

    outcome = handler(job)

    assert isinstance(outcome, Completed)
    assert outcome.variables == {**variables, **flags}
    assert job.variables == variables


def test_missing_variables_are_fine():
    outcome = procurement.ship_supplier_order(ActivatedJob(key="1", type="fornecedor_envia_encomenda"))
    assert outcome.variables == {"encomendaEnviada": True, "estadoEncomenda": "enviada"}
