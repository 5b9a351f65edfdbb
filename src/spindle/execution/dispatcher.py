"""Execution dispatcher — turns one episode into scheduled handles.

ARCHITECTURE
────────────
::

    Episode ──► Dispatcher.dispatch()
                  │
                  ├─ NO_SCHEDULE / DELAY ............ single-shot after effective delay
                  ├─ INTERVAL / DELAY_AND_INTERVAL .. periodic, first firing after effective delay
                  ├─ TIMEOUT / DELAY_AND_TIMEOUT .... single-shot + TimeoutGuard
                  └─ TIMEOUT_AND_INTERVAL / ALL ..... periodic + TimeoutGuard

    For every handle:
      1. HandleHooks (CompletionRouter, then the user on_complete hook)
         bound to the handle and registered on the pool; removed once
         the handle is done
      2. handle enqueued
      3. handle appended to ExecutorResult.futures
      4. guard result (if any) appended to ExecutorResult.timeout_results

The interval-only and timeout-only classes take the same paths as their
delay-bearing counterparts, so they too wait for the effective delay,
which is zero unless a delay or callback is configured.

Related modules:
    timing.py — TimingClass and effective_delay
    guard.py  — TimeoutGuard
    router.py — CompletionRouter

Tags:
    spindle, execution, dispatch, scheduling
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from spindle.core.errors import ConfigurationFault, ExceptionMessage
from spindle.core.logging import get_logger

from .guard import TimeoutGuard
from .handles import PeriodicTaskHandle, TaskHandle
from .pool import AfterExecuteHook, ScheduledWorkerPool
from .result import ExecutorResult
from .router import CompletionRouter, FailureCallback, HandleHooks, ResultCallback
from .timing import TimingClass, TimingConfig, effective_delay
from .work import Execution, ExecutionKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class Episode:
    """Everything the dispatcher needs for one ``start()`` call."""

    execution: Execution
    timing: TimingConfig
    classification: TimingClass
    may_interrupt: bool = False
    silent: bool = False
    on_failure: FailureCallback | None = None
    on_result: ResultCallback | None = None
    on_complete: AfterExecuteHook | None = None
    has_callbacks: bool = False
    minimum_delay_ms: int = 1000
    guard_thread_prefix: str = "spindle-guard"

    @property
    def delay_seconds(self) -> float:
        return effective_delay(
            self.timing,
            has_callbacks=self.has_callbacks,
            minimum_ms=self.minimum_delay_ms,
        )


class Dispatcher:
    """Schedules episodes onto one pool and records them on one result."""

    def __init__(self, pool: ScheduledWorkerPool, result: ExecutorResult[Any]):
        self.pool = pool
        self.result = result

    def dispatch(self, episode: Episode) -> TaskHandle[Any]:
        """Schedule ``episode`` and return its primary handle.

        Raises:
            ConfigurationFault: If the execution shape cannot be scheduled
                with the episode's classification
        """
        classification = episode.classification
        match classification:
            case TimingClass.NO_SCHEDULE | TimingClass.DELAY:
                handle, _ = self._run_once(episode)
            case TimingClass.INTERVAL | TimingClass.DELAY_AND_INTERVAL:
                handle, _ = self._run_at_fixed_rate(episode)
            case TimingClass.TIMEOUT | TimingClass.DELAY_AND_TIMEOUT:
                handle = self._with_guard(episode, self._run_once)
            case TimingClass.TIMEOUT_AND_INTERVAL | TimingClass.ALL:
                handle = self._with_guard(episode, self._run_at_fixed_rate)
            case _:
                raise ConfigurationFault(
                    ExceptionMessage.ILLEGAL_TIMING_CONFIG.format(classification)
                )

        logger.debug(
            "episode_dispatched",
            task=handle.name,
            classification=classification.value,
            delay_s=episode.delay_seconds,
            interval_s=episode.timing.interval_seconds or None,
            timeout_s=episode.timing.timeout_seconds or None,
        )
        return handle

    # ── Paths ────────────────────────────────────────────────────

    def _run_once(self, episode: Episode) -> tuple[TaskHandle[Any], HandleHooks]:
        execution = episode.execution
        handle: TaskHandle[Any] = TaskHandle(execution, episode.delay_seconds, name=execution.name)
        return handle, self._enqueue(episode, handle)

    def _run_at_fixed_rate(self, episode: Episode) -> tuple[TaskHandle[Any], HandleHooks]:
        execution = episode.execution
        if execution.kind is ExecutionKind.PRODUCER:
            raise ConfigurationFault(
                ExceptionMessage.UNSUPPORTED_PERIODIC_PRODUCER.format(episode.classification.value)
            )
        handle = PeriodicTaskHandle(
            execution,
            episode.delay_seconds,
            episode.timing.interval_seconds,
            name=execution.name,
        )
        return handle, self._enqueue(episode, handle)

    def _with_guard(
        self,
        episode: Episode,
        run: Callable[[Episode], tuple[TaskHandle[Any], HandleHooks]],
    ) -> TaskHandle[Any]:
        handle, hooks = run(episode)
        guard = TimeoutGuard(
            handle,
            episode.timing.timeout_seconds,
            hooks,
            may_interrupt=episode.may_interrupt,
            silent=episode.silent,
            on_failure=episode.on_failure,
            thread_prefix=episode.guard_thread_prefix,
        )
        self.result.add_timeout_result(guard.arm())
        return handle

    def _enqueue(self, episode: Episode, handle: TaskHandle[Any]) -> HandleHooks:
        router = CompletionRouter(
            episode.execution.kind,
            self.result,
            silent=episode.silent,
            on_failure=episode.on_failure,
            on_result=episode.on_result,
        ).bind(handle)
        hooks = HandleHooks(handle, router, self.pool, on_complete=episode.on_complete).attach()
        self.pool.execute(handle)
        self.result.add_future(handle)
        return hooks
