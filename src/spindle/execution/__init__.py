"""Execution layer: timing, pools, handles, guards and the builder.

Typical use goes through :class:`ThreadBuilder`; the pieces below it are
public for callers that need a pool or a handle directly.
"""

from .builder import ThreadBuilder
from .dispatcher import Dispatcher, Episode
from .guard import TimeoutGuard
from .handles import PeriodicTaskHandle, TaskHandle, TaskState
from .interrupt import (
    check_interrupted,
    clear_interrupt,
    interrupt,
    is_interrupted,
    sleep_unchecked,
    sleep_until,
    wait_for,
)
from .pool import ScheduledWorkerPool, WorkerFactory
from .result import ExecutorResult
from .router import CompletionRouter, HandleHooks, should_suppress
from .timing import TimingClass, TimingConfig, classify, effective_delay
from .work import Effect, Execution, ExecutionKind, Producer, as_execution

__all__ = [
    # builder
    "ThreadBuilder",
    "Dispatcher",
    "Episode",
    "TimeoutGuard",
    "CompletionRouter",
    "HandleHooks",
    "should_suppress",
    "ExecutorResult",
    # timing
    "TimingClass",
    "TimingConfig",
    "classify",
    "effective_delay",
    # work
    "Effect",
    "Execution",
    "ExecutionKind",
    "Producer",
    "as_execution",
    # pool and handles
    "ScheduledWorkerPool",
    "WorkerFactory",
    "TaskHandle",
    "PeriodicTaskHandle",
    "TaskState",
    # interruption
    "check_interrupted",
    "clear_interrupt",
    "interrupt",
    "is_interrupted",
    "sleep_unchecked",
    "sleep_until",
    "wait_for",
]
