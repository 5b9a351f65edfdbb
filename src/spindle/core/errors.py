"""
Structured error types for spindle.

Every fault a scheduled task can produce is one of four kinds. Only
configuration faults are raised on the caller's thread; the other three are
captured by the completion router and delivered to the uncaught-failure
callback.

Manifesto:
    - **Typed taxonomy:** The router decides what to silence by type, not
      by string matching.
    - **Error chaining:** A user fault always carries the exception the unit
      of work raised as ``cause``.
    - **Fail fast on configuration:** A builder that cannot dispatch says so
      synchronously.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       SpindleError                          │
        │              (category, cause, to_dict())                   │
        ├─────────────────────────────────────────────────────────────┤
        │  ConfigurationFault   UserFault      CancellationSignal     │
        │  (CONFIG, sync)       (EXECUTION)    (CANCELLATION)         │
        │                                            │                │
        │                                      InterruptionSignal     │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> try:
    ...     raise ValueError("boom")
    ... except ValueError as e:
    ...     fault = UserFault("task failed", cause=e)
    >>> fault.category
    <ErrorCategory.EXECUTION: 'EXECUTION'>
    >>> is_cancellation(CancellationSignal("cancelled"))
    True

Tags:
    error-handling, exception-hierarchy, cancellation, spindle

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Classification used for routing and logging."""

    CONFIG = "CONFIG"  # Builder misconfiguration, raised synchronously
    EXECUTION = "EXECUTION"  # Raised by the unit of work
    CANCELLATION = "CANCELLATION"  # Cancelled or interrupted
    INTERNAL = "INTERNAL"  # Pool or hook failures


class ExceptionMessage(str, Enum):
    """Message templates for configuration faults."""

    EXECUTION_REQUIRED = "The execution parameter is required."
    ILLEGAL_EXECUTION_TYPE = "Illegal execution type '{0}'."
    ILLEGAL_TIMING_CONFIG = "Illegal timing-configuration state '{0}'."
    UNSUPPORTED_PERIODIC_PRODUCER = (
        "Periodic scheduling is not supported for value-producing executions ({0})."
    )
    RESULT_CALLBACK_WITHOUT_PRODUCER = (
        "A result callback requires a value-producing execution, got '{0}'."
    )
    NEGATIVE_DURATION = "Timing value '{0}' must be non-negative, got {1} ms."
    NON_POSITIVE_INTERVAL = "Interval must be positive, got {0} ms."
    INVALID_POOL_SIZE = "Core pool size must be at least 1, got {0}."

    def format(self, *args: Any) -> str:  # type: ignore[override]
        return self.value.format(*args)


class SpindleError(Exception):
    """Base exception for all spindle errors.

    Attributes:
        message: Human readable description
        category: ErrorCategory for routing
        cause: Underlying exception, if any
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ConfigurationFault(SpindleError, ValueError):
    """The builder cannot dispatch with its current configuration.

    Raised synchronously from ``start()`` (or a setter), never routed.
    """

    default_category = ErrorCategory.CONFIG


class UserFault(SpindleError):
    """The unit of work raised. The original exception is ``cause``."""

    default_category = ErrorCategory.EXECUTION


class CancellationSignal(SpindleError):
    """The task was cancelled before or while running."""

    default_category = ErrorCategory.CANCELLATION


class InterruptionSignal(SpindleError):
    """The worker running the task was interrupted mid-run."""

    default_category = ErrorCategory.CANCELLATION


def is_cancellation(error: BaseException) -> bool:
    """True for the signals silent mode is allowed to drop."""
    return isinstance(error, CancellationSignal | InterruptionSignal)
