"""
Shared pytest fixtures for foodworker tests.

This module provides:
- Settings cache isolation
- A manual clock for lease-expiry tests
- An in-memory gateway and a small stock table
- ``wait_until`` for tests that run real worker threads
"""

import sys
import time
from collections.abc import Callable
from pathlib import Path

import pytest

# Ensure foodworker package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from foodworker.core.settings import reset_settings
from foodworker.execution.gateway import InMemoryGateway
from foodworker.stock import StockTable


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Drop cached settings and FOODWORKER_* env vars around every test."""
    import os

    for key in list(os.environ):
        if key.startswith("FOODWORKER_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def stock() -> StockTable:
    return StockTable.from_mapping({"arroz": 10, "tomate": 1, "Feijão": 5})


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll ``predicate`` until true or ``timeout`` seconds pass."""

    def _wait(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait
