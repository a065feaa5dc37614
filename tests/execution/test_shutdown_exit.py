"""The process exits once the grace period ends, even with a hung handler."""

import os
import subprocess
import sys
import textwrap
import time
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[2] / "src"

SCRIPT = textwrap.dedent(
    """
    import time

    from foodworker.execution.contracts import Completed, HandlerPolicy
    from foodworker.execution.dispatcher import Dispatcher
    from foodworker.execution.gateway import InMemoryGateway
    from foodworker.execution.registry import HandlerRegistry

    def slow(job):
        time.sleep(30)
        return Completed({})

    registry = HandlerRegistry()
    registry.register("slow", slow, HandlerPolicy(timeout_seconds=60, max_concurrent_jobs=1))
    gateway = InMemoryGateway()
    gateway.publish("slow", {})

    dispatcher = Dispatcher(registry, gateway, poll_interval=0.01, grace_period=0.3)
    started = time.monotonic()
    abandoned = dispatcher.run(until=lambda: time.monotonic() - started > 0.5, check_interval=0.01)
    print(f"ABANDONED {abandoned}", flush=True)
    """
)


@pytest.mark.slow
def test_process_exits_after_grace_period():
    started = time.monotonic()
    result = subprocess.run(
        [sys.executable, "-c", SCRIPT],
        capture_output=True,
        text=True,
        timeout=25,
        env={**os.environ, "PYTHONPATH": str(SRC)},
    )
    elapsed = time.monotonic() - started

    assert result.returncode == 0, result.stderr
    assert "ABANDONED 1" in result.stdout.splitlines()
    assert elapsed < 10
