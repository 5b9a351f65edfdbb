"""Tests for TimeoutGuard."""

import threading
import time
from unittest.mock import MagicMock

from structlog.testing import capture_logs

from spindle.core.errors import CancellationSignal
from spindle.execution.guard import TimeoutGuard
from spindle.execution.handles import TaskHandle
from spindle.execution.interrupt import sleep_unchecked
from spindle.execution.result import ExecutorResult
from spindle.execution.router import CompletionRouter
from spindle.execution.work import ExecutionKind


def _router(handle, pool, **kwargs) -> CompletionRouter:
    return CompletionRouter(ExecutionKind.EFFECT, ExecutorResult(pool), **kwargs).bind(handle)


class TestTimeoutGuard:
    def test_cancels_unfinished_target(self, make_pool):
        on_failure = MagicMock()
        target = TaskHandle(lambda: None, delay=5, name="slow-start")
        guard = TimeoutGuard(target, 0.1, _router(target, make_pool(), on_failure=on_failure), on_failure=on_failure)

        result = guard.arm()
        assert len(result.futures) == 1
        assert result.futures[0].wait(2)
        assert result.pool.await_termination(2)

        assert guard.fired
        assert target.cancelled()
        assert isinstance(on_failure.call_args.args[0], CancellationSignal)
        assert on_failure.call_count == 1

    def test_silent_router_drops_cancellation(self, make_pool):
        on_failure = MagicMock()
        target = TaskHandle(lambda: None, delay=5)
        guard = TimeoutGuard(
            target,
            0.05,
            _router(target, make_pool(), silent=True, on_failure=on_failure),
            silent=True,
            on_failure=on_failure,
        )
        result = guard.arm()
        assert result.pool.await_termination(2)
        assert target.cancelled()
        on_failure.assert_not_called()

    def test_leaves_finished_target_alone(self, make_pool):
        on_failure = MagicMock()
        target = TaskHandle(lambda: "ok")
        target.run()
        guard = TimeoutGuard(target, 0.05, _router(target, make_pool(), on_failure=on_failure))

        result = guard.arm()
        assert result.pool.await_termination(2)
        assert guard.fired
        assert target.result(timeout=0) == "ok"
        on_failure.assert_not_called()

    def test_deadline_measured_from_arming(self, make_pool):
        target = TaskHandle(lambda: None, delay=0.5)
        guard = TimeoutGuard(target, 0.2, _router(target, make_pool(), silent=True))
        start = time.monotonic()
        result = guard.arm()
        result.futures[0].wait(2)
        elapsed = time.monotonic() - start
        assert 0.15 <= elapsed < 0.5
        assert target.cancelled()

    def test_interrupts_running_target(self, make_pool):
        pool = make_pool()
        started = threading.Event()
        completed = []

        def long_sleep():
            started.set()
            sleep_unchecked(5000)
            completed.append(True)

        target = pool.submit(long_sleep, name="sleeper")
        assert started.wait(2)
        guard = TimeoutGuard(target, 0.1, _router(target, pool, silent=True), may_interrupt=True)
        guard.arm()

        deadline = time.monotonic() + 3
        while target.running() or not target.done():
            assert time.monotonic() < deadline
            time.sleep(0.02)
        time.sleep(0.1)
        assert target.cancelled()
        assert completed == []
        assert pool.submit(lambda: "free").result(timeout=2) == "free"

    def test_guard_pool_shuts_itself_down(self, make_pool):
        target = TaskHandle(lambda: None, delay=5)
        guard = TimeoutGuard(target, 0.05, _router(target, make_pool(), silent=True))
        result = guard.arm()
        assert result.pool.await_termination(2)
        assert result.pool.is_shutdown
        assert guard.pool is result.pool

    def test_logs_cancellation(self, make_pool):
        target = TaskHandle(lambda: None, delay=5, name="report")
        guard = TimeoutGuard(target, 0.05, _router(target, make_pool(), silent=True))
        with capture_logs() as logs:
            guard.arm().pool.await_termination(2)
        entry = next(e for e in logs if e["event"] == "guard_cancelled_task")
        assert entry["task"] == "report"
        assert entry["log_level"] == "info"
