"""Timeout guard — cancels a task that has not finished by its deadline.

Each timeout-bearing episode arms one guard. The guard owns a fresh
single-worker pool, never shared or reused, that runs one cancel-action
``timeout`` seconds after the episode started. The deadline is measured
from that moment, not from the task's delayed start, so a task whose
timeout is shorter than its delay is cancelled before it ever runs.

::

    episode start ─────────────── timeout ──► cancel-action
        │                                        │
        └─ delay ──► primary task runs …         ├─ primary done or cancelled? no-op
                                                 └─ else primary.cancel(may_interrupt)

After the cancel-action has run, the guard routes its own outcome, asks
the primary router to resolve the (now cancelled) primary handle, and
shuts its pool down.
"""

from __future__ import annotations

from typing import Any

from spindle.core.logging import get_logger

from .handles import TaskHandle
from .pool import ScheduledWorkerPool, WorkerFactory
from .result import ExecutorResult
from .router import CompletionRouter, FailureCallback, HandleHooks
from .work import ExecutionKind

logger = get_logger(__name__)


class TimeoutGuard:
    """Watchdog for one primary handle.

    Args:
        target: Primary handle to cancel
        timeout: Seconds from now until the cancel-action runs
        primary_router: Router of the primary handle, or the HandleHooks
            wrapping it; resolved once the cancel-action has run
        may_interrupt: Interrupt the target's worker if it is running
        silent: Drop cancellation/interruption signals from the guard's own routing
        on_failure: Failure callback shared with the primary router
        thread_prefix: Name prefix of the guard's worker
    """

    def __init__(
        self,
        target: TaskHandle[Any],
        timeout: float,
        primary_router: CompletionRouter | HandleHooks,
        *,
        may_interrupt: bool = False,
        silent: bool = False,
        on_failure: FailureCallback | None = None,
        thread_prefix: str = "spindle-guard",
    ):
        self.target = target
        self.timeout = timeout
        self.primary_router = primary_router
        self.may_interrupt = may_interrupt
        self.silent = silent
        self.on_failure = on_failure
        self.thread_prefix = thread_prefix
        self.fired = False
        self.pool: ScheduledWorkerPool | None = None

    def arm(self) -> ExecutorResult[Any]:
        """Schedule the cancel-action and return the guard's own result."""
        pool = self.pool = ScheduledWorkerPool(
            1,
            WorkerFactory(uncaught_handler=self.on_failure, prefix=self.thread_prefix),
            name=f"guard:{self.target.name}",
        )
        result: ExecutorResult[Any] = ExecutorResult(pool)
        router = CompletionRouter(
            ExecutionKind.EFFECT,
            result,
            silent=self.silent,
            on_failure=self.on_failure,
        )
        handle: TaskHandle[None] = TaskHandle(
            self.cancel_target, self.timeout, name=f"cancel:{self.target.name}"
        )
        router.bind(handle)

        pool.add_after_execute_hook(router)
        pool.add_after_execute_hook(self._after_cancel_action)
        pool.execute(handle)
        result.add_future(handle)
        return result

    def cancel_target(self) -> None:
        """Cancel the target unless it already finished or was cancelled."""
        self.fired = True
        target = self.target
        if not target.done() and not target.cancelled():
            target.cancel(self.may_interrupt)
            logger.info(
                "guard_cancelled_task",
                task=target.name,
                timeout_s=self.timeout,
                may_interrupt=self.may_interrupt,
            )

    def _after_cancel_action(self, task: TaskHandle[Any], fault: BaseException | None) -> None:
        self.primary_router.resolve()
        if self.pool is not None:
            self.pool.shutdown(wait=False)
