"""Tests for the Dispatcher: all-or-nothing startup and cooperative shutdown."""

from __future__ import annotations

import threading
import time

import pytest

from foodworker.core.errors import ConfigError, DuplicateRegistrationError, StartupError
from foodworker.execution.contracts import Completed, HandlerPolicy, HandlerRegistration
from foodworker.execution.dispatcher import Dispatcher
from foodworker.execution.registry import HandlerRegistry
from foodworker.execution.worker import WorkerLoop


def _ok(job):
    return Completed({"done": job.type})


def _registry(*job_types: str, handler=_ok, k: int = 2) -> HandlerRegistry:
    registry = HandlerRegistry()
    for job_type in job_types:
        registry.register(job_type, handler, HandlerPolicy(timeout_seconds=30, max_concurrent_jobs=k))
    return registry


def _dispatcher(registry, gateway, **kwargs) -> Dispatcher:
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("grace_period", 1.0)
    return Dispatcher(registry, gateway, **kwargs)


class TestStartup:
    """start() is all-or-nothing."""

    def test_starts_one_loop_per_job_type(self, gateway):
        dispatcher = _dispatcher(_registry("a", "b", "c"), gateway)
        with dispatcher:
            assert dispatcher.is_running
            assert dispatcher.healthy
            assert sorted(info.job_type for info in dispatcher.workers()) == ["a", "b", "c"]
            assert all(info.status == "running" for info in dispatcher.workers())
        assert not dispatcher.is_running

    def test_registry_is_frozen(self, gateway):
        registry = _registry("a")
        _dispatcher(registry, gateway)
        assert registry.frozen

    def test_duplicate_registrations_abort_before_any_loop(self, gateway):
        built = []

        def factory(registration):
            built.append(registration.job_type)
            raise AssertionError("no loop should be built")

        registrations = [
            HandlerRegistration("a", _ok, HandlerPolicy()),
            HandlerRegistration("a", _ok, HandlerPolicy()),
        ]

        with pytest.raises(DuplicateRegistrationError):
            Dispatcher(registrations, gateway, loop_factory=factory)
        assert built == []

    def test_empty_registry_is_a_config_error(self, gateway):
        dispatcher = _dispatcher(HandlerRegistry(), gateway)
        with pytest.raises(ConfigError):
            dispatcher.start()

    def test_open_failure_stops_already_opened_loops(self, gateway):
        opened: list[WorkerLoop] = []

        class BrokenLoop(WorkerLoop):
            def open(self):
                raise OSError("no threads left")

        def factory(registration):
            if registration.job_type == "b":
                return BrokenLoop(registration, gateway, poll_interval=0.01)
            loop = WorkerLoop(registration, gateway, poll_interval=0.01)
            opened.append(loop)
            return loop

        registrations = [
            HandlerRegistration("a", _ok, HandlerPolicy()),
            HandlerRegistration("b", _ok, HandlerPolicy()),
            HandlerRegistration("c", _ok, HandlerPolicy()),
        ]
        dispatcher = Dispatcher(registrations, gateway, loop_factory=factory)

        with pytest.raises(StartupError) as exc_info:
            dispatcher.start()

        assert exc_info.value.job_type == "b"
        assert isinstance(exc_info.value.cause, OSError)
        assert not dispatcher.is_running
        loop_a = next(loop for loop in opened if loop.job_type == "a")
        assert loop_a.info.status == "stopped"
        assert not loop_a.is_running
        loop_c = next(loop for loop in opened if loop.job_type == "c")
        assert loop_c.info.status == "created"

    def test_build_failure_raises_startup_error(self, gateway):
        def factory(registration):
            raise ValueError("bad policy")

        dispatcher = Dispatcher([HandlerRegistration("a", _ok, HandlerPolicy())], gateway, loop_factory=factory)

        with pytest.raises(StartupError, match="'a'"):
            dispatcher.start()

    def test_start_twice_rejected(self, gateway):
        with _dispatcher(_registry("a"), gateway) as dispatcher:
            with pytest.raises(RuntimeError):
                dispatcher.start()


class TestRun:
    """run() / request_shutdown()."""

    def test_processes_jobs_of_every_type(self, gateway):
        keys = {job_type: gateway.publish(job_type, {}) for job_type in ("a", "b")}
        dispatcher = _dispatcher(_registry("a", "b"), gateway)

        abandoned = dispatcher.run(until=gateway.is_idle, check_interval=0.01)

        assert abandoned == 0
        assert gateway.completed[keys["a"]] == {"done": "a"}
        assert gateway.completed[keys["b"]] == {"done": "b"}
        assert dispatcher.shutdown_reason == "idle"

    def test_request_shutdown_from_another_thread(self, gateway):
        dispatcher = _dispatcher(_registry("a"), gateway)
        result = {}

        def run():
            result["abandoned"] = dispatcher.run(check_interval=0.01)

        thread = threading.Thread(target=run)
        thread.start()
        time.sleep(0.05)
        dispatcher.request_shutdown("test")
        thread.join(5)

        assert not thread.is_alive()
        assert result["abandoned"] == 0
        assert dispatcher.shutdown_reason == "test"
        assert not dispatcher.is_running


class TestShutdown:
    """shutdown() drains every loop within one grace period."""

    def test_grace_deadline_is_shared(self, gateway, wait_until):
        release = threading.Event()

        def blocked(job):
            release.wait(5)
            return Completed({})

        for job_type in ("a", "b", "c"):
            gateway.publish(job_type, {})
        dispatcher = _dispatcher(_registry("a", "b", "c", handler=blocked), gateway, grace_period=0.2)
        dispatcher.start()
        assert wait_until(lambda: sum(e["stats"]["active"] for e in dispatcher.stats()) == 3)

        started = time.monotonic()
        abandoned = dispatcher.shutdown()
        elapsed = time.monotonic() - started

        assert abandoned == 3
        assert elapsed < 0.6
        release.set()

    def test_shutdown_is_idempotent(self, gateway):
        dispatcher = _dispatcher(_registry("a"), gateway)
        dispatcher.start()
        assert dispatcher.shutdown() == 0
        assert dispatcher.shutdown() == 0

    def test_shutdown_before_start_is_noop(self, gateway):
        assert _dispatcher(_registry("a"), gateway).shutdown() == 0


class TestStats:
    def test_stats_sorted_by_job_type(self, gateway):
        with _dispatcher(_registry("b", "a"), gateway) as dispatcher:
            stats = dispatcher.stats()
        assert [entry["job_type"] for entry in stats] == ["a", "b"]
        assert set(stats[0]["stats"]) >= {"activated", "completed", "failed", "stale", "expired", "active"}
