"""Tests for timing classification and effective delay."""

from datetime import timedelta

import pytest

from spindle.core.errors import ConfigurationFault
from spindle.execution.timing import TimingClass, TimingConfig, classify, effective_delay


def _timing(delay=None, timeout=None, interval=None) -> TimingConfig:
    timing = TimingConfig()
    if delay is not None:
        timing = timing.with_delay(delay)
    if timeout is not None:
        timing = timing.with_timeout(timeout)
    if interval is not None:
        timing = timing.with_interval(interval)
    return timing


class TestClassify:
    @pytest.mark.parametrize(
        "delay, timeout, interval, expected",
        [
            (None, None, None, TimingClass.NO_SCHEDULE),
            (100, None, None, TimingClass.DELAY),
            (None, 100, None, TimingClass.TIMEOUT),
            (None, None, 100, TimingClass.INTERVAL),
            (100, 100, None, TimingClass.DELAY_AND_TIMEOUT),
            (100, None, 100, TimingClass.DELAY_AND_INTERVAL),
            (None, 100, 100, TimingClass.TIMEOUT_AND_INTERVAL),
            (100, 100, 100, TimingClass.ALL),
        ],
    )
    def test_every_combination(self, delay, timeout, interval, expected):
        assert classify(_timing(delay, timeout, interval)) is expected

    def test_zero_delay_counts_as_present(self):
        assert classify(_timing(delay=0)) is TimingClass.DELAY

    def test_zero_timeout_counts_as_present(self):
        assert classify(_timing(timeout=0)) is TimingClass.TIMEOUT


class TestTimingClassProperties:
    def test_periodic_classes(self):
        periodic = {c for c in TimingClass if c.is_periodic}
        assert periodic == {
            TimingClass.INTERVAL,
            TimingClass.DELAY_AND_INTERVAL,
            TimingClass.TIMEOUT_AND_INTERVAL,
            TimingClass.ALL,
        }

    def test_guarded_classes(self):
        guarded = {c for c in TimingClass if c.has_timeout}
        assert guarded == {
            TimingClass.TIMEOUT,
            TimingClass.DELAY_AND_TIMEOUT,
            TimingClass.TIMEOUT_AND_INTERVAL,
            TimingClass.ALL,
        }


class TestTimingConfig:
    def test_defaults_unset(self):
        timing = TimingConfig()
        assert timing.delay is None and timing.timeout is None and timing.interval is None
        assert timing.delay_seconds == 0
        assert timing.timeout_seconds == 0
        assert timing.interval_seconds == 0

    def test_with_returns_new_instance(self):
        base = TimingConfig()
        delayed = base.with_delay(1500)
        assert base.delay is None
        assert delayed.delay == timedelta(milliseconds=1500)
        assert delayed.delay_seconds == 1.5

    def test_frozen(self):
        with pytest.raises(AttributeError):
            TimingConfig().delay = timedelta(seconds=1)  # type: ignore[misc]

    def test_negative_values_rejected(self):
        with pytest.raises(ConfigurationFault, match="delay"):
            TimingConfig().with_delay(-1)
        with pytest.raises(ConfigurationFault, match="timeout"):
            TimingConfig().with_timeout(-1)
        with pytest.raises(ConfigurationFault, match="interval"):
            TimingConfig().with_interval(-1)

    def test_zero_interval_rejected(self):
        with pytest.raises(ConfigurationFault, match="Interval must be positive"):
            TimingConfig().with_interval(0)


class TestEffectiveDelay:
    def test_unset_delay_is_zero(self):
        assert effective_delay(TimingConfig(), has_callbacks=False, minimum_ms=1000) == 0

    def test_configured_delay_without_callbacks(self):
        assert effective_delay(_timing(delay=200), has_callbacks=False, minimum_ms=1000) == 0.2

    def test_short_delay_raised_with_callbacks(self):
        assert effective_delay(_timing(delay=200), has_callbacks=True, minimum_ms=1000) == 1.0

    def test_unset_delay_raised_with_callbacks(self):
        assert effective_delay(TimingConfig(), has_callbacks=True, minimum_ms=1000) == 1.0

    def test_long_delay_kept_with_callbacks(self):
        assert effective_delay(_timing(delay=2500), has_callbacks=True, minimum_ms=1000) == 2.5

    def test_custom_minimum(self):
        assert effective_delay(TimingConfig(), has_callbacks=True, minimum_ms=250) == 0.25

    def test_interval_only_uses_zero_delay(self):
        assert effective_delay(_timing(interval=100), has_callbacks=False, minimum_ms=1000) == 0
