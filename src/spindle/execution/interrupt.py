"""Cooperative interruption for worker threads.

Python threads cannot be stopped from the outside. A task cancelled with
``may_interrupt=True`` therefore only stops if its own code observes the
interrupt flag of the thread it runs on, either by sleeping through
:func:`sleep_unchecked` or by calling :func:`check_interrupted` between
steps.

Example:
    >>> def poll_feed():
    ...     for page in range(100):
    ...         check_interrupted()
    ...         fetch(page)
    ...         sleep_unchecked(250)

Tags:
    spindle, execution, interruption, cancellation, threading
"""

from __future__ import annotations

import threading
import time
import weakref
from collections.abc import Callable

from spindle.core.errors import InterruptionSignal

_flags: weakref.WeakKeyDictionary[threading.Thread, threading.Event] = weakref.WeakKeyDictionary()
_flags_lock = threading.Lock()


def _flag_for(thread: threading.Thread) -> threading.Event:
    with _flags_lock:
        flag = _flags.get(thread)
        if flag is None:
            flag = threading.Event()
            _flags[thread] = flag
        return flag


def interrupt(thread: threading.Thread) -> None:
    """Request interruption of ``thread``."""
    _flag_for(thread).set()


def is_interrupted(thread: threading.Thread | None = None) -> bool:
    """True if ``thread`` (default: the current thread) has a pending interrupt."""
    return _flag_for(thread or threading.current_thread()).is_set()


def clear_interrupt(thread: threading.Thread | None = None) -> bool:
    """Clear the interrupt flag, returning whether it was set."""
    flag = _flag_for(thread or threading.current_thread())
    was_set = flag.is_set()
    flag.clear()
    return was_set


def check_interrupted() -> None:
    """Raise InterruptionSignal if the current thread has been interrupted.

    The flag stays set so enclosing code can observe it as well.
    """
    if is_interrupted():
        raise InterruptionSignal(f"Thread '{threading.current_thread().name}' was interrupted")


def sleep_unchecked(millis: float) -> None:
    """Sleep for ``millis`` milliseconds unless interrupted first.

    Raises:
        InterruptionSignal: If the current thread is interrupted before or
            during the sleep
    """
    flag = _flag_for(threading.current_thread())
    if flag.wait(max(millis, 0) / 1000.0):
        raise InterruptionSignal(
            f"Thread '{threading.current_thread().name}' was interrupted while sleeping"
        )


def sleep_until(millis: float, condition: Callable[[], bool]) -> None:
    """Sleep in steps of ``millis`` for as long as ``condition()`` holds.

    Raises:
        InterruptionSignal: If the current thread is interrupted while waiting
    """
    while condition():
        sleep_unchecked(millis)


def wait_for(condition: Callable[[], bool], timeout: float, poll: float = 0.01) -> bool:
    """Poll ``condition`` until it is true or ``timeout`` seconds pass.

    Returns:
        The last value of ``condition()``
    """
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(poll)
    return condition()
