"""Execution shapes: the unit of work a builder runs.

A unit of work is either an :class:`Effect` (called for its side effects,
result discarded) or a :class:`Producer` (its return value is captured on
the :class:`~spindle.execution.result.ExecutorResult`). The shape is decided
once, when the execution is set, and never by inspecting the callable later.

Example:
    >>> as_execution(lambda: print("hi")).kind
    <ExecutionKind.EFFECT: 'EFFECT'>
    >>> as_execution(Producer(lambda: 42)).kind
    <ExecutionKind.PRODUCER: 'PRODUCER'>
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from spindle.core.errors import ConfigurationFault, ExceptionMessage

R = TypeVar("R")


class ExecutionKind(str, Enum):
    EFFECT = "EFFECT"
    PRODUCER = "PRODUCER"


@dataclass(frozen=True)
class Effect:
    """A unit of work with no result.

    ``label`` names the work in logs and handles; defaults to the
    callable's qualified name.
    """

    fn: Callable[[], Any]
    label: str | None = None
    kind: ExecutionKind = field(default=ExecutionKind.EFFECT, init=False)

    def __call__(self) -> None:
        self.fn()

    @property
    def name(self) -> str:
        return self.label or _callable_name(self.fn)


@dataclass(frozen=True)
class Producer(Generic[R]):
    """A unit of work whose return value is kept."""

    fn: Callable[[], R]
    label: str | None = None
    kind: ExecutionKind = field(default=ExecutionKind.PRODUCER, init=False)

    def __call__(self) -> R:
        return self.fn()

    @property
    def name(self) -> str:
        return self.label or _callable_name(self.fn)


Execution = Effect | Producer[Any]


def as_execution(work: Any) -> Execution:
    """Resolve ``work`` into an execution shape.

    Effect and Producer instances are returned as-is; any other callable is
    an Effect.

    Raises:
        ConfigurationFault: If ``work`` is None or not callable
    """
    if work is None:
        raise ConfigurationFault(ExceptionMessage.EXECUTION_REQUIRED.value)
    if isinstance(work, Effect | Producer):
        if not callable(work.fn):
            raise ConfigurationFault(
                ExceptionMessage.ILLEGAL_EXECUTION_TYPE.format(type(work.fn).__name__)
            )
        return work
    if callable(work):
        return Effect(work)
    raise ConfigurationFault(ExceptionMessage.ILLEGAL_EXECUTION_TYPE.format(type(work).__name__))


def _callable_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)
