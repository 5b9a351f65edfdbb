"""ExecutorResult — what a builder hands back from ``start()``.

The result is a small tree. The root holds the builder's pool and one
handle per episode; each timeout-bearing episode adds a child result that
owns a private guard pool and the guard's single cancel-action handle.

::

    ExecutorResult(pool)
      ├── futures:          [episode-1 handle, episode-2 handle, ...]
      ├── timeout_results:  [ExecutorResult(guard pool, [cancel handle]), ...]
      └── value:            produced value (Producer executions)

Callers read it; only the dispatcher and completion router write to it.
"""

from __future__ import annotations

import threading
from typing import Any, Generic, TypeVar

from .handles import TaskHandle
from .pool import ScheduledWorkerPool

R = TypeVar("R")


class ExecutorResult(Generic[R]):
    """Pool reference, task handles, guard results and produced value."""

    def __init__(self, pool: ScheduledWorkerPool):
        self._pool = pool
        self._futures: list[TaskHandle[Any]] = []
        self._timeout_results: list[ExecutorResult[Any]] = []
        self._value: R | None = None
        self._has_value = False
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"<ExecutorResult pool={self._pool.name!r} futures={len(self._futures)}"
            f" timeout_results={len(self._timeout_results)}>"
        )

    @property
    def pool(self) -> ScheduledWorkerPool:
        """The pool the handles run on, for external shutdown."""
        return self._pool

    @property
    def futures(self) -> list[TaskHandle[Any]]:
        with self._lock:
            return list(self._futures)

    @property
    def timeout_results(self) -> list[ExecutorResult[Any]]:
        with self._lock:
            return list(self._timeout_results)

    @property
    def value(self) -> R | None:
        """Produced value, None until a Producer execution resolves."""
        return self._value

    @property
    def has_value(self) -> bool:
        return self._has_value

    def add_future(self, handle: TaskHandle[Any]) -> None:
        with self._lock:
            self._futures.append(handle)

    def add_timeout_result(self, result: ExecutorResult[Any]) -> None:
        with self._lock:
            self._timeout_results.append(result)

    def set_value(self, value: R) -> None:
        with self._lock:
            self._value = value
            self._has_value = True

    def shutdown(self, wait: bool = False, now: bool = False) -> None:
        """Shut down the pool and every guard pool below it."""
        for child in self.timeout_results:
            child.shutdown(wait=wait, now=now)
        if now:
            self._pool.shutdown_now()
            if wait:
                self._pool.await_termination()
        else:
            self._pool.shutdown(wait=wait)

    def to_dict(self) -> dict[str, Any]:
        """Summary for logging and the CLI."""
        return {
            "pool": self._pool.name,
            "futures": [
                {"name": h.name, "state": h.state.value, "periodic": h.periodic, "runs": h.run_count}
                for h in self.futures
            ],
            "timeout_results": [child.to_dict() for child in self.timeout_results],
            "value": self._value if self._has_value else None,
        }
