"""ThreadBuilder — fluent configuration and launch of scheduled work.

Manifesto:
    Running something later, repeatedly, or with a deadline usually means
    wiring a pool, a future, a watchdog and some error plumbing by hand,
    and getting the error plumbing subtly wrong. A builder collects the
    timing, the work and the callbacks, then launches one *episode* per
    ``start()``. Failures never reach the caller's thread. They go to the
    failure callback, or to the log.

ARCHITECTURE
────────────
::

    ThreadBuilder
      ├── set_delay / set_timeout / set_interval   → TimingConfig (value object)
      ├── set_execution / set_producer             → Effect | Producer
      ├── set_may_interrupt / set_silent           → cancellation handling
      ├── set_on_complete / set_on_uncaught_failure / set_on_result
      ├── set_thread_name / set_thread_priority    → WorkerFactory suppliers
      │
      ├── start()                  → ExecutorResult
      └── start_and_build_other()  → self (next episode, same result)

    start():
        validate → classify (memoized) → pool (created once)
                 → Dispatcher.dispatch(Episode) → ExecutorResult

    UNCONFIGURED ──set_execution──► READY ──start──► RUNNING-episode
                                      ▲                   │
                                      └─start_and_build_other

Example:
    >>> result = (
    ...     ThreadBuilder.new_builder()
    ...     .set_delay(500)
    ...     .set_timeout(2000)
    ...     .set_may_interrupt(True)
    ...     .set_execution(poll_feed)
    ...     .start()
    ... )
    >>> result.futures[0].wait(5)

Related modules:
    dispatcher.py — episode dispatch per TimingClass
    guard.py      — timeout watchdog
    router.py     — completion and failure routing

Tags:
    spindle, execution, builder, fluent-api, scheduling

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from spindle.core.errors import ConfigurationFault, ExceptionMessage
from spindle.core.logging import get_logger
from spindle.core.settings import SpindleSettings, get_settings

from .dispatcher import Dispatcher, Episode
from .pool import AfterExecuteHook, ScheduledWorkerPool, WorkerFactory
from .result import ExecutorResult
from .router import FailureCallback, ResultCallback
from .timing import TimingClass, TimingConfig, classify
from .work import Execution, ExecutionKind, Producer, as_execution

logger = get_logger(__name__)


class ThreadBuilder:
    """Fluent builder for delayed, periodic and deadline-bound work.

    Defaults not set on the builder come from :class:`SpindleSettings`.
    The builder owns one pool, created on the first ``start()`` and reused
    by every later episode, and one ExecutorResult that accumulates their
    handles.

    Args:
        core_pool_size: Workers in the builder's pool; settings default
        settings: Settings to read defaults from; ``get_settings()`` if None
    """

    def __init__(
        self,
        core_pool_size: int | None = None,
        *,
        settings: SpindleSettings | None = None,
    ):
        self.settings = settings or get_settings()
        size = self.settings.core_pool_size if core_pool_size is None else core_pool_size
        if size < 1:
            raise ConfigurationFault(ExceptionMessage.INVALID_POOL_SIZE.format(size))
        self.core_pool_size = size

        self._timing = TimingConfig()
        self._classification: TimingClass | None = None
        self._execution: Execution | None = None
        self._may_interrupt = self.settings.may_interrupt
        self._silent = self.settings.silent
        self._on_complete: AfterExecuteHook | None = None
        self._on_failure: FailureCallback | None = None
        self._on_result: ResultCallback | None = None
        self._thread_name: Callable[[], str] | None = None
        self._thread_priority: Callable[[], int] | None = None

        self._pool: ScheduledWorkerPool | None = None
        self._result: ExecutorResult[Any] | None = None
        self._dispatcher: Dispatcher | None = None

    @classmethod
    def new_builder(cls, core_pool_size: int | None = None) -> ThreadBuilder:
        return cls(core_pool_size)

    def __repr__(self) -> str:
        execution = self._execution.name if self._execution is not None else None
        return (
            f"<ThreadBuilder execution={execution!r} timing={self.classification.value}"
            f" episodes={len(self._result.futures) if self._result else 0}>"
        )

    # ── Timing ───────────────────────────────────────────────────

    def set_delay(self, milliseconds: int) -> ThreadBuilder:
        """Wait ``milliseconds`` before the first firing."""
        self._timing = self._timing.with_delay(milliseconds)
        self._classification = None
        return self

    def set_timeout(self, milliseconds: int) -> ThreadBuilder:
        """Cancel the task ``milliseconds`` after ``start()`` unless it is done."""
        self._timing = self._timing.with_timeout(milliseconds)
        self._classification = None
        return self

    def set_interval(self, milliseconds: int) -> ThreadBuilder:
        """Repeat the task every ``milliseconds`` (fixed rate)."""
        self._timing = self._timing.with_interval(milliseconds)
        self._classification = None
        return self

    @property
    def timing(self) -> TimingConfig:
        return self._timing

    @property
    def classification(self) -> TimingClass:
        """Timing classification, recomputed only after a timing setter."""
        if self._classification is None:
            self._classification = classify(self._timing)
        return self._classification

    # ── Work ─────────────────────────────────────────────────────

    def set_execution(self, work: Any) -> ThreadBuilder:
        """Set the unit of work.

        A plain callable is an Effect; wrap it in ``Producer`` (or use
        :meth:`set_producer`) to keep its return value.

        Raises:
            ConfigurationFault: If ``work`` is None or not callable
        """
        self._execution = as_execution(work)
        return self

    def set_producer(self, fn: Callable[[], Any]) -> ThreadBuilder:
        return self.set_execution(Producer(fn))

    @property
    def execution(self) -> Execution | None:
        return self._execution

    # ── Cancellation ─────────────────────────────────────────────

    def set_may_interrupt(self, may_interrupt: bool) -> ThreadBuilder:
        """Interrupt a running task when its timeout cancels it."""
        self._may_interrupt = may_interrupt
        return self

    def set_silent(self, silent: bool) -> ThreadBuilder:
        """Drop cancellation and interruption signals instead of reporting them."""
        self._silent = silent
        return self

    # ── Callbacks ────────────────────────────────────────────────

    def set_on_uncaught_failure(self, callback: FailureCallback) -> ThreadBuilder:
        """Receive every fault that is not suppressed.

        Also handles raw faults escaping the builder's workers. Setting it
        raises the effective delay to the minimum callback delay.
        """
        self._on_failure = callback
        return self

    def set_on_complete(self, hook: AfterExecuteHook) -> ThreadBuilder:
        """Run ``hook(task, fault)`` after every run of the episode's task."""
        self._on_complete = hook
        return self

    def set_on_result(self, callback: ResultCallback) -> ThreadBuilder:
        """Receive the produced value. Producer executions only."""
        self._on_result = callback
        return self

    # ── Workers ──────────────────────────────────────────────────

    def set_thread_name(self, supplier: Callable[[], str]) -> ThreadBuilder:
        self._thread_name = supplier
        return self

    def set_thread_priority(self, supplier: Callable[[], int]) -> ThreadBuilder:
        self._thread_priority = supplier
        return self

    # ── Launch ───────────────────────────────────────────────────

    @property
    def pool(self) -> ScheduledWorkerPool | None:
        return self._pool

    @property
    def result(self) -> ExecutorResult[Any] | None:
        return self._result

    def start(self) -> ExecutorResult[Any]:
        """Launch one episode and return the builder's ExecutorResult.

        Raises:
            ConfigurationFault: If no execution is set, a result callback is
                set for an Effect, or a Producer is scheduled periodically
        """
        return self._launch()

    def start_and_build_other(self) -> ThreadBuilder:
        """Launch one episode and return the builder for the next one."""
        self._launch()
        return self

    def _launch(self) -> ExecutorResult[Any]:
        execution = self._validate()
        episode = Episode(
            execution=execution,
            timing=self._timing,
            classification=self.classification,
            may_interrupt=self._may_interrupt,
            silent=self._silent,
            on_failure=self._on_failure,
            on_result=self._on_result,
            on_complete=self._on_complete,
            has_callbacks=self._on_complete is not None or self._on_failure is not None,
            minimum_delay_ms=self.settings.minimum_callback_delay_ms,
            guard_thread_prefix=self.settings.guard_thread_prefix,
        )
        dispatcher = self._ensure_dispatcher()
        dispatcher.dispatch(episode)
        return dispatcher.result

    def _validate(self) -> Execution:
        execution = self._execution
        if execution is None:
            raise ConfigurationFault(ExceptionMessage.EXECUTION_REQUIRED.value)
        if self._on_result is not None and execution.kind is not ExecutionKind.PRODUCER:
            raise ConfigurationFault(
                ExceptionMessage.RESULT_CALLBACK_WITHOUT_PRODUCER.format(execution.name)
            )
        if self.classification.is_periodic and execution.kind is ExecutionKind.PRODUCER:
            raise ConfigurationFault(
                ExceptionMessage.UNSUPPORTED_PERIODIC_PRODUCER.format(self.classification.value)
            )
        return execution

    def _ensure_dispatcher(self) -> Dispatcher:
        if self._dispatcher is None:
            factory = WorkerFactory(
                name=self._thread_name() if self._thread_name else None,
                priority=self._thread_priority() if self._thread_priority else None,
                uncaught_handler=self._on_failure,
                prefix=self.settings.worker_thread_prefix,
            )
            self._pool = ScheduledWorkerPool(self.core_pool_size, factory, name="builder")
            self._result = ExecutorResult(self._pool)
            self._dispatcher = Dispatcher(self._pool, self._result)
            logger.debug(
                "builder_pool_created",
                core_pool_size=self.core_pool_size,
                thread_name=factory.name,
                thread_priority=factory.priority,
            )
        return self._dispatcher
