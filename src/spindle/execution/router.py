"""Completion router — resolves finished handles and routes their faults.

One router is created per handle (the episode's primary handle, or a
guard's cancel-action) and registered as an after-execute hook on the pool
that runs it. When its handle is done, the router reads the outcome
exactly once:

- Producer: the value is stored on the owning ExecutorResult and passed to
  the result callback.
- Effect: the outcome is read only to surface a deferred fault.

The router runs inside a :class:`HandleHooks`, the single pool hook of its
handle, together with the user's ``on_complete``.

Every surfaced fault goes through the silence filter::

    fault ──► silent and (CancellationSignal | InterruptionSignal)? ──yes──► dropped
                         │ no
                         ▼
              on_uncaught_failure(fault)  or  logger.error(...)

Tags:
    spindle, execution, completion, error-routing
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from spindle.core.errors import SpindleError, UserFault, is_cancellation
from spindle.core.logging import get_logger

from .handles import TaskHandle
from .pool import AfterExecuteHook, ScheduledWorkerPool
from .result import ExecutorResult
from .work import ExecutionKind

logger = get_logger(__name__)

FailureCallback = Callable[[BaseException], None]
ResultCallback = Callable[[Any], None]


def should_suppress(fault: BaseException, silent: bool) -> bool:
    """True when silent mode drops ``fault`` instead of delivering it."""
    return silent and is_cancellation(fault)


class CompletionRouter:
    """After-execute hook bound to one handle.

    Args:
        kind: Shape of the execution behind the handle
        result: ExecutorResult that receives produced values
        silent: Drop cancellation/interruption signals
        on_failure: Receives surfaced faults; logged when None
        on_result: Receives produced values (Producer only)
    """

    def __init__(
        self,
        kind: ExecutionKind,
        result: ExecutorResult[Any],
        *,
        silent: bool = False,
        on_failure: FailureCallback | None = None,
        on_result: ResultCallback | None = None,
    ):
        self.kind = kind
        self.result = result
        self.silent = silent
        self.on_failure = on_failure
        self.on_result = on_result
        self._handle: TaskHandle[Any] | None = None
        self._delivered = False
        self._lock = threading.Lock()

    @property
    def handle(self) -> TaskHandle[Any] | None:
        return self._handle

    @property
    def delivered(self) -> bool:
        return self._delivered

    def bind(self, handle: TaskHandle[Any]) -> CompletionRouter:
        """Attach the handle this router watches. Done before it is enqueued."""
        self._handle = handle
        return self

    def __call__(self, task: TaskHandle[Any], fault: BaseException | None) -> None:
        if fault is not None or task is not self._handle:
            return
        self.resolve()

    def resolve(self) -> None:
        """Read the handle's outcome if it is done and not yet routed."""
        handle = self._handle
        if handle is None or not handle.done():
            return
        with self._lock:
            if self._delivered:
                return
            self._delivered = True

        try:
            if self.kind is ExecutionKind.PRODUCER:
                value = handle.result()
                self.result.set_value(value)
                if self.on_result is not None:
                    self.on_result(value)
            else:
                handle.result()
        except SpindleError as fault:
            self.deliver(fault)
        except Exception as exc:
            self.deliver(UserFault(f"Result callback for {handle.name!r} failed: {exc}", cause=exc))

    def deliver(self, fault: BaseException) -> None:
        """Apply the silence filter, then hand ``fault`` to the failure callback."""
        handle_name = self._handle.name if self._handle is not None else None
        if should_suppress(fault, self.silent):
            logger.debug("task_failure_suppressed", task=handle_name, error=type(fault).__name__)
            return
        if self.on_failure is not None:
            self.on_failure(fault)
            return
        details = fault.to_dict() if isinstance(fault, SpindleError) else {}
        logger.error("uncaught_task_failure", task=handle_name, exc_info=fault, **details)


class HandleHooks:
    """The after-execute hooks of one handle, registered on its pool as one.

    Runs the router, then the user's ``on_complete``, for runs of ``handle``
    only. Once the handle is done the hooks remove themselves from the pool.

    Args:
        handle: Handle whose runs are observed
        router: Router bound to ``handle``
        pool: Pool that runs ``handle``
        on_complete: User hook, called after the router
    """

    def __init__(
        self,
        handle: TaskHandle[Any],
        router: CompletionRouter,
        pool: ScheduledWorkerPool,
        on_complete: AfterExecuteHook | None = None,
    ):
        self.handle = handle
        self.router = router
        self.pool = pool
        self.on_complete = on_complete

    def attach(self) -> HandleHooks:
        self.pool.add_after_execute_hook(self)
        return self

    def __call__(self, task: TaskHandle[Any], fault: BaseException | None) -> None:
        if task is not self.handle:
            # cancelled while queued: its own runs will never call us again
            if self.handle.done() and not self.pool.is_running(self.handle):
                self.release()
            return
        try:
            self.router(task, fault)
        finally:
            try:
                if self.on_complete is not None:
                    self.on_complete(task, fault)
            finally:
                if task.done():
                    self.release()

    def resolve(self) -> None:
        """Resolve from outside the pool, e.g. after a guard cancelled the handle.

        Releases the hooks only when no worker still holds the handle, since
        that worker will run them once more.
        """
        self.router.resolve()
        if self.handle.done() and not self.pool.is_running(self.handle):
            self.release()

    def release(self) -> None:
        self.pool.remove_after_execute_hook(self)
