"""Task handles: cancellable, completion-observable scheduled work.

A :class:`TaskHandle` is what a pool hands back for one scheduled unit of
work. It mirrors :class:`concurrent.futures.Future` with two differences
that scheduling needs: a handle can be cancelled while it is running (the
run's eventual outcome is discarded), and a periodic handle goes back to
``PENDING`` after every successful firing.

ARCHITECTURE
────────────
::

    TaskHandle (single-shot)
      PENDING ──run()──► RUNNING ──► FINISHED (result | exception)
         │                  │
         └────cancel()──────┴──────► CANCELLED

    PeriodicTaskHandle
      PENDING ──run()──► RUNNING ──ok──► PENDING (next deadline += period)
                            │
                            └─raise──► FINISHED (exception)

Related modules:
    pool.py   — runs handles on worker threads
    router.py — resolves a finished handle's outcome

Tags:
    spindle, execution, future, cancellation
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from spindle.core.errors import CancellationSignal, UserFault, is_cancellation

from .interrupt import interrupt

R = TypeVar("R")


class TaskState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


class TaskHandle(Generic[R]):
    """Single-shot handle for work scheduled to run once.

    Args:
        fn: Zero-argument callable to run
        delay: Seconds from now until the task becomes due
        name: Label used in logs and reprs
    """

    periodic = False

    def __init__(self, fn: Callable[[], R], delay: float = 0.0, name: str | None = None):
        self._fn = fn
        self.name = name or getattr(fn, "__qualname__", repr(fn))
        self._condition = threading.Condition()
        self._state = TaskState.PENDING
        self._result: R | None = None
        self._exception: BaseException | None = None
        self._runner: threading.Thread | None = None
        self._deadline = time.monotonic() + max(delay, 0.0)
        self.run_count = 0

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} state={self._state.value}>"

    # ── Scheduling ───────────────────────────────────────────────

    @property
    def deadline(self) -> float:
        """Monotonic time at which the task is next due."""
        return self._deadline

    def get_delay(self) -> float:
        """Seconds until the task is due; negative when overdue."""
        return self._deadline - time.monotonic()

    @property
    def state(self) -> TaskState:
        return self._state

    # ── Future-like surface ──────────────────────────────────────

    def cancel(self, may_interrupt: bool = False) -> bool:
        """Cancel the task.

        A running task is marked cancelled at once; its thread is only
        interrupted when ``may_interrupt`` is true, and it only stops if the
        work observes the interrupt.

        Returns:
            False if the task had already finished or been cancelled
        """
        with self._condition:
            if self._state in (TaskState.FINISHED, TaskState.CANCELLED):
                return False
            runner = self._runner if self._state is TaskState.RUNNING else None
            self._state = TaskState.CANCELLED
            # under the lock: _finish cannot release the runner before the flag is set
            if may_interrupt and runner is not None:
                interrupt(runner)
            self._condition.notify_all()
        return True

    def cancelled(self) -> bool:
        return self._state is TaskState.CANCELLED

    def running(self) -> bool:
        return self._state is TaskState.RUNNING

    def done(self) -> bool:
        return self._state in (TaskState.FINISHED, TaskState.CANCELLED)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the task is done. Returns ``done()``."""
        with self._condition:
            self._condition.wait_for(self.done, timeout)
            return self.done()

    def result(self, timeout: float | None = None) -> R:
        """Return the produced value, waiting up to ``timeout`` seconds.

        Raises:
            CancellationSignal: If the task was cancelled
            InterruptionSignal: If the work stopped on an interrupt
            UserFault: If the work raised; the original exception is ``cause``
            TimeoutError: If the task is not done within ``timeout``
        """
        if not self.wait(timeout):
            raise TimeoutError(f"Task {self.name!r} not done after {timeout}s")
        if self._state is TaskState.CANCELLED:
            raise CancellationSignal(f"Task {self.name!r} was cancelled")
        error = self._exception
        if error is None:
            return self._result  # type: ignore[return-value]
        if is_cancellation(error):
            raise error
        raise UserFault(f"Task {self.name!r} failed: {error}", cause=error)

    def exception(self, timeout: float | None = None) -> BaseException | None:
        """Return the raw exception raised by the work, if any.

        Raises:
            CancellationSignal: If the task was cancelled
        """
        if not self.wait(timeout):
            raise TimeoutError(f"Task {self.name!r} not done after {timeout}s")
        if self._state is TaskState.CANCELLED:
            raise CancellationSignal(f"Task {self.name!r} was cancelled")
        return self._exception

    # ── Worker side ──────────────────────────────────────────────

    def run(self) -> None:
        """Run the work on the calling thread. Called by pool workers."""
        if not self._begin():
            return
        try:
            value = self._fn()
        except Exception as exc:
            self._finish(exception=exc)
        else:
            self._complete(value)

    def fail(self, exc: BaseException) -> None:
        """Record a fault raised outside the work itself (pool-level)."""
        self._finish(exception=exc)

    def _begin(self) -> bool:
        with self._condition:
            if self._state is not TaskState.PENDING:
                return False
            self._state = TaskState.RUNNING
            self._runner = threading.current_thread()
            self.run_count += 1
            return True

    def _complete(self, value: Any) -> None:
        self._finish(result=value)

    def _finish(self, result: Any = None, exception: BaseException | None = None) -> None:
        with self._condition:
            self._runner = None
            if self._state is not TaskState.RUNNING:
                # cancelled while running; the outcome is discarded
                return
            self._result = result
            self._exception = exception
            self._state = TaskState.FINISHED
            self._condition.notify_all()


class PeriodicTaskHandle(TaskHandle[None]):
    """Handle for work repeated at a fixed rate.

    Successive firings never overlap: the next deadline is only computed
    once the current run has returned. A late firing is delayed, never run
    concurrently with itself. A firing that raises ends the series.
    """

    periodic = True

    def __init__(
        self,
        fn: Callable[[], Any],
        initial_delay: float,
        period: float,
        name: str | None = None,
    ):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        super().__init__(fn, initial_delay, name)
        self.period = period

    def _complete(self, value: Any) -> None:
        with self._condition:
            self._runner = None
            if self._state is not TaskState.RUNNING:
                return
            self._state = TaskState.PENDING
            self._deadline += self.period
            self._condition.notify_all()
