"""Tests for the /health and /workers router using FastAPI's TestClient."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from foodworker.execution.contracts import Completed, HandlerPolicy
from foodworker.execution.dispatcher import Dispatcher
from foodworker.execution.fastapi import create_app, create_workers_router
from foodworker.execution.registry import HandlerRegistry


@pytest.fixture
def dispatcher(gateway):
    registry = HandlerRegistry()
    registry.register("verificar_alimentos", lambda job: Completed({}), HandlerPolicy(30, 5))
    registry.register("gerar_etiquetas", lambda job: Completed({}), HandlerPolicy(60, 3))
    dispatcher = Dispatcher(registry, gateway, poll_interval=0.01, grace_period=1.0)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def client(dispatcher):
    app = FastAPI()
    app.include_router(create_workers_router(dispatcher))
    return TestClient(app)


class TestHealth:
    def test_degraded_before_start(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["running"] is False

    def test_ok_while_running(self, client, dispatcher):
        dispatcher.start()
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["workers"] == {"verificar_alimentos": "running", "gerar_etiquetas": "running"}

    def test_degraded_after_shutdown(self, client, dispatcher):
        dispatcher.start()
        dispatcher.shutdown()
        assert client.get("/health").json()["status"] == "degraded"


class TestWorkers:
    def test_list_workers(self, client, dispatcher):
        dispatcher.start()
        body = client.get("/workers").json()

        assert [w["job_type"] for w in body] == ["gerar_etiquetas", "verificar_alimentos"]
        labels = body[0]
        assert labels["timeout_seconds"] == 60
        assert labels["max_concurrent_jobs"] == 3
        assert labels["status"] == "running"
        assert labels["stats"]["completed"] == 0

    def test_get_one_worker(self, client, dispatcher):
        dispatcher.start()
        response = client.get("/workers/verificar_alimentos")
        assert response.status_code == 200
        assert response.json()["max_concurrent_jobs"] == 5

    def test_unknown_worker_is_404(self, client, dispatcher):
        dispatcher.start()
        assert client.get("/workers/nope").status_code == 404


def test_create_app_mounts_router(dispatcher):
    client = TestClient(create_app(dispatcher))
    assert client.get("/health").status_code == 200
