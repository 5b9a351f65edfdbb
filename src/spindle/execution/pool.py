"""Scheduled worker pool — delayed and fixed-rate execution on threads.

Manifesto:
``ThreadPoolExecutor`` runs work as soon as a worker is free and offers no
hook after each run. Builders need both: work that becomes due after a
delay or repeats at a fixed rate, and a place to observe every completed
run. ``ScheduledWorkerPool`` keeps a deadline-ordered queue served by a
fixed number of daemon workers and calls its after-execute hooks, in
registration order, after every run.

ARCHITECTURE
────────────
::

    ScheduledWorkerPool(core_pool_size=2)
      ├── .schedule(fn, delay)                 ─ single-shot TaskHandle
      ├── .schedule_at_fixed_rate(fn, d, p)    ─ PeriodicTaskHandle
      ├── .execute(handle)                     ─ enqueue a prepared handle
      ├── .add_after_execute_hook(hook)        ─ hook(task, fault) after each run
      ├── .shutdown(wait)                      ─ drain delayed work, stop periodic
      └── .shutdown_now()                      ─ cancel queued and running, interrupt

    worker loop:
        wait until heap[0].deadline ≤ now
        pop → clear interrupt → handle.run()
        hooks(handle, fault)
        periodic and not done → push back with next deadline

Related modules:
    handles.py   — TaskHandle / PeriodicTaskHandle
    interrupt.py — cooperative interruption of workers

Tags:
    spindle, execution, thread-pool, scheduling

Doc-Types:
    api-reference
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections.abc import Callable
from typing import Any

from spindle.core.logging import get_logger

from .handles import PeriodicTaskHandle, TaskHandle
from .interrupt import clear_interrupt, interrupt

logger = get_logger(__name__)

AfterExecuteHook = Callable[[TaskHandle[Any], BaseException | None], None]
UncaughtHandler = Callable[[BaseException], None]


class WorkerFactory:
    """Creates the daemon threads a pool runs on.

    Args:
        name: Name given to every worker; defaults to ``{prefix}-{n}``
        priority: Recorded on each worker as ``thread.priority``. Python
            threads have no scheduling priority, so this is informational.
        uncaught_handler: Called with any fault that escapes a task run or
            a hook (pool-level faults), instead of logging it
        prefix: Prefix for generated names
    """

    def __init__(
        self,
        name: str | None = None,
        priority: int | None = None,
        uncaught_handler: UncaughtHandler | None = None,
        prefix: str = "spindle-worker",
    ):
        self.name = name
        self.priority = priority
        self.uncaught_handler = uncaught_handler
        self.prefix = prefix
        self._counter = itertools.count(1)

    def new_thread(self, target: Callable[[], None]) -> threading.Thread:
        thread = threading.Thread(
            target=target,
            name=self.name or f"{self.prefix}-{next(self._counter)}",
            daemon=True,
        )
        thread.priority = self.priority  # type: ignore[attr-defined]
        return thread

    def handle_uncaught(self, fault: BaseException) -> None:
        if self.uncaught_handler is not None:
            self.uncaught_handler(fault)
        else:
            logger.error(
                "uncaught_pool_fault",
                thread=threading.current_thread().name,
                exc_info=fault,
            )


class ScheduledWorkerPool:
    """Deadline-ordered thread pool with after-execute hooks.

    Workers are started lazily, one per enqueued task, up to
    ``core_pool_size``.

    Example:
        >>> pool = ScheduledWorkerPool(core_pool_size=1)
        >>> handle = pool.schedule(lambda: 42, delay=0.1)
        >>> handle.result(timeout=1)
        42
        >>> pool.shutdown()
    """

    def __init__(
        self,
        core_pool_size: int = 1,
        factory: WorkerFactory | None = None,
        name: str = "pool",
    ):
        if core_pool_size < 1:
            raise ValueError(f"core_pool_size must be at least 1, got {core_pool_size}")
        self.core_pool_size = core_pool_size
        self.factory = factory or WorkerFactory()
        self.name = name
        self._queue: list[tuple[float, int, TaskHandle[Any]]] = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()
        self._hooks: list[AfterExecuteHook] = []
        self._workers: list[threading.Thread] = []
        self._running: dict[threading.Thread, TaskHandle[Any]] = {}
        self._shutdown = False

    def __repr__(self) -> str:
        return (
            f"<ScheduledWorkerPool {self.name!r} workers={len(self._workers)}"
            f" queued={len(self._queue)} shutdown={self._shutdown}>"
        )

    # ── Hooks ────────────────────────────────────────────────────

    def add_after_execute_hook(self, hook: AfterExecuteHook) -> None:
        """Register ``hook(task, fault)`` to run after every task run.

        ``fault`` is None unless something escaped the task's own error
        capture. Hooks run on the worker thread in registration order.
        """
        with self._condition:
            self._hooks.append(hook)

    def remove_after_execute_hook(self, hook: AfterExecuteHook) -> bool:
        """Unregister ``hook``. Returns False if it was not registered."""
        with self._condition:
            try:
                self._hooks.remove(hook)
            except ValueError:
                return False
            return True

    @property
    def after_execute_hooks(self) -> tuple[AfterExecuteHook, ...]:
        with self._condition:
            return tuple(self._hooks)

    # ── Submission ───────────────────────────────────────────────

    def submit(self, fn: Callable[[], Any], name: str | None = None) -> TaskHandle[Any]:
        """Run ``fn`` as soon as a worker is free."""
        return self.schedule(fn, 0.0, name=name)

    def schedule(
        self, fn: Callable[[], Any], delay: float, name: str | None = None
    ) -> TaskHandle[Any]:
        """Run ``fn`` once, ``delay`` seconds from now."""
        return self.execute(TaskHandle(fn, delay, name))

    def schedule_at_fixed_rate(
        self,
        fn: Callable[[], Any],
        initial_delay: float,
        period: float,
        name: str | None = None,
    ) -> PeriodicTaskHandle:
        """Run ``fn`` after ``initial_delay`` then every ``period`` seconds."""
        handle = PeriodicTaskHandle(fn, initial_delay, period, name)
        self.execute(handle)
        return handle

    def execute(self, handle: TaskHandle[Any]) -> TaskHandle[Any]:
        """Enqueue a prepared handle.

        Raises:
            RuntimeError: If the pool has been shut down
        """
        with self._condition:
            if self._shutdown:
                raise RuntimeError(f"Pool {self.name!r} is shut down; cannot schedule {handle.name!r}")
            self._push(handle)
            if len(self._workers) < self.core_pool_size:
                worker = self.factory.new_thread(self._work)
                self._workers.append(worker)
                worker.start()
            self._condition.notify()
        return handle

    def _push(self, handle: TaskHandle[Any]) -> None:
        heapq.heappush(self._queue, (handle.deadline, next(self._sequence), handle))

    # ── Worker loop ──────────────────────────────────────────────

    def _next_due(self) -> TaskHandle[Any] | None:
        current = threading.current_thread()
        with self._condition:
            self._running.pop(current, None)
            while True:
                if not self._queue:
                    if self._shutdown:
                        return None
                    self._condition.wait()
                    continue
                deadline, _, handle = self._queue[0]
                if handle.done():
                    heapq.heappop(self._queue)
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    heapq.heappop(self._queue)
                    self._running[current] = handle
                    return handle
                self._condition.wait(remaining)

    def _work(self) -> None:
        current = threading.current_thread()
        while True:
            handle = self._next_due()
            if handle is None:
                return

            clear_interrupt(current)
            fault: BaseException | None = None
            try:
                handle.run()
            except BaseException as exc:
                fault = exc
                handle.fail(exc)

            self._run_hooks(handle, fault)
            if fault is not None:
                self.factory.handle_uncaught(fault)

            if handle.periodic and not handle.done():
                self._reschedule(handle)
            clear_interrupt(current)

    def _run_hooks(self, handle: TaskHandle[Any], fault: BaseException | None) -> None:
        for hook in self.after_execute_hooks:
            try:
                hook(handle, fault)
            except Exception as exc:
                logger.error(
                    "after_execute_hook_failed",
                    pool=self.name,
                    task=handle.name,
                    exc_info=exc,
                )

    def _reschedule(self, handle: TaskHandle[Any]) -> None:
        with self._condition:
            if self._shutdown:
                handle.cancel()
                return
            self._push(handle)
            self._condition.notify()

    # ── Lifecycle ────────────────────────────────────────────────

    def shutdown(self, wait: bool = True, timeout: float | None = None) -> None:
        """Stop accepting work.

        Delayed single-shot tasks already queued still run; periodic tasks
        are cancelled.

        Args:
            wait: Block until workers exit
            timeout: Upper bound on the wait, in seconds
        """
        with self._condition:
            self._shutdown = True
            for _, _, handle in self._queue:
                if handle.periodic:
                    handle.cancel()
            self._condition.notify_all()
        if wait:
            self.await_termination(timeout)

    def shutdown_now(self) -> list[TaskHandle[Any]]:
        """Cancel every queued and running task and interrupt running workers.

        A running task's outcome is discarded. Its worker is interrupted
        while the pool still holds the task as current, so the flag never
        outlives that run.

        Returns:
            Handles that were queued and never started
        """
        current = threading.current_thread()
        with self._condition:
            self._shutdown = True
            pending = [handle for _, _, handle in self._queue if not handle.done()]
            self._queue.clear()
            running = list(self._running.items())
            for worker, handle in running:
                handle.cancel()
                if worker is not current:
                    interrupt(worker)
            self._condition.notify_all()

        for handle in pending:
            handle.cancel()
        logger.debug(
            "pool_shutdown_now",
            pool=self.name,
            cancelled=len(pending),
            interrupted=len(running),
        )
        return pending

    def is_running(self, handle: TaskHandle[Any]) -> bool:
        """True while a worker holds ``handle`` as its current task, hooks included."""
        with self._condition:
            return any(task is handle for task in self._running.values())

    def await_termination(self, timeout: float | None = None) -> bool:
        """Wait for every worker to exit. Returns ``is_terminated``."""
        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in list(self._workers):
            if worker is threading.current_thread():
                continue
            remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
            worker.join(remaining)
        return self.is_terminated

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    @property
    def is_terminated(self) -> bool:
        current = threading.current_thread()
        return self._shutdown and not any(
            w.is_alive() for w in self._workers if w is not current
        )

    @property
    def queued(self) -> int:
        with self._condition:
            return len(self._queue)

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    def __enter__(self) -> ScheduledWorkerPool:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)
