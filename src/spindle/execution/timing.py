"""Timing configuration and its classification.

A builder can be given any combination of start delay, timeout and
repeat interval. :func:`classify` maps the presence or absence of each one
onto a :class:`TimingClass`; the dispatcher routes on that class.

ARCHITECTURE
────────────
::

    delay  timeout  interval   →  TimingClass
    ─────  ───────  ────────      ─────────────────────
      -       -        -          NO_SCHEDULE
      x       -        -          DELAY
      -       x        -          TIMEOUT
      -       -        x          INTERVAL
      x       x        -          DELAY_AND_TIMEOUT
      x       -        x          DELAY_AND_INTERVAL
      -       x        x          TIMEOUT_AND_INTERVAL
      x       x        x          ALL

Tags:
    spindle, execution, timing, classification
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum

from spindle.core.errors import ConfigurationFault, ExceptionMessage

_ZERO = timedelta(0)


class TimingClass(str, Enum):
    """The eight shapes a timing configuration can take."""

    NO_SCHEDULE = "NO_SCHEDULE"
    DELAY = "DELAY"
    TIMEOUT = "TIMEOUT"
    INTERVAL = "INTERVAL"
    DELAY_AND_TIMEOUT = "DELAY_AND_TIMEOUT"
    DELAY_AND_INTERVAL = "DELAY_AND_INTERVAL"
    TIMEOUT_AND_INTERVAL = "TIMEOUT_AND_INTERVAL"
    ALL = "ALL"

    @property
    def is_periodic(self) -> bool:
        return self in _PERIODIC

    @property
    def has_timeout(self) -> bool:
        return self in _GUARDED


_PERIODIC = frozenset(
    {
        TimingClass.INTERVAL,
        TimingClass.DELAY_AND_INTERVAL,
        TimingClass.TIMEOUT_AND_INTERVAL,
        TimingClass.ALL,
    }
)

_GUARDED = frozenset(
    {
        TimingClass.TIMEOUT,
        TimingClass.DELAY_AND_TIMEOUT,
        TimingClass.TIMEOUT_AND_INTERVAL,
        TimingClass.ALL,
    }
)

_CLASSES: dict[tuple[bool, bool, bool], TimingClass] = {
    (False, False, False): TimingClass.NO_SCHEDULE,
    (True, False, False): TimingClass.DELAY,
    (False, True, False): TimingClass.TIMEOUT,
    (False, False, True): TimingClass.INTERVAL,
    (True, True, False): TimingClass.DELAY_AND_TIMEOUT,
    (True, False, True): TimingClass.DELAY_AND_INTERVAL,
    (False, True, True): TimingClass.TIMEOUT_AND_INTERVAL,
    (True, True, True): TimingClass.ALL,
}


@dataclass(frozen=True)
class TimingConfig:
    """Optional delay, timeout and interval of one builder.

    Attributes:
        delay: Wait before the first firing
        timeout: Deadline after which the task is cancelled, measured from
            the moment the episode is started
        interval: Period between firings (fixed rate)
    """

    delay: timedelta | None = None
    timeout: timedelta | None = None
    interval: timedelta | None = None

    def with_delay(self, milliseconds: int) -> TimingConfig:
        return replace(self, delay=to_duration("delay", milliseconds))

    def with_timeout(self, milliseconds: int) -> TimingConfig:
        return replace(self, timeout=to_duration("timeout", milliseconds))

    def with_interval(self, milliseconds: int) -> TimingConfig:
        interval = to_duration("interval", milliseconds)
        if interval <= _ZERO:
            raise ConfigurationFault(ExceptionMessage.NON_POSITIVE_INTERVAL.format(milliseconds))
        return replace(self, interval=interval)

    @property
    def delay_seconds(self) -> float:
        """Configured delay, zero when unset."""
        return (self.delay or _ZERO).total_seconds()

    @property
    def timeout_seconds(self) -> float:
        return (self.timeout or _ZERO).total_seconds()

    @property
    def interval_seconds(self) -> float:
        return (self.interval or _ZERO).total_seconds()


def to_duration(name: str, milliseconds: int) -> timedelta:
    if milliseconds < 0:
        raise ConfigurationFault(ExceptionMessage.NEGATIVE_DURATION.format(name, milliseconds))
    return timedelta(milliseconds=milliseconds)


def classify(timing: TimingConfig) -> TimingClass:
    """Map which of delay/timeout/interval are present onto a TimingClass.

    Every combination is valid; this never raises.
    """
    key = (timing.delay is not None, timing.timeout is not None, timing.interval is not None)
    return _CLASSES[key]


def effective_delay(
    timing: TimingConfig,
    *,
    has_callbacks: bool,
    minimum_ms: int,
) -> float:
    """Delay in seconds actually used to schedule the first firing.

    When a completion or failure callback is registered the delay is raised
    to at least ``minimum_ms`` so the hooks are in place before the task can
    finish.
    """
    delay = timing.delay_seconds
    if has_callbacks:
        return max(delay, minimum_ms / 1000.0)
    return delay
