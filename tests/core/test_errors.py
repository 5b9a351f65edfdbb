"""Tests for spindle.core.errors module."""

import pytest

from spindle.core.errors import (
    CancellationSignal,
    ConfigurationFault,
    ErrorCategory,
    ExceptionMessage,
    InterruptionSignal,
    SpindleError,
    UserFault,
    is_cancellation,
)


class TestErrorCategory:
    """Test ErrorCategory enum."""

    def test_all_categories_defined(self):
        assert {c.value for c in ErrorCategory} == {"CONFIG", "EXECUTION", "CANCELLATION", "INTERNAL"}

    def test_category_is_string(self):
        assert ErrorCategory.CONFIG == "CONFIG"


class TestDefaultCategories:
    @pytest.mark.parametrize(
        "cls, category",
        [
            (SpindleError, ErrorCategory.INTERNAL),
            (ConfigurationFault, ErrorCategory.CONFIG),
            (UserFault, ErrorCategory.EXECUTION),
            (CancellationSignal, ErrorCategory.CANCELLATION),
            (InterruptionSignal, ErrorCategory.CANCELLATION),
        ],
    )
    def test_default_category(self, cls, category):
        assert cls("x").category is category

    def test_explicit_category_overrides_default(self):
        err = UserFault("x", category=ErrorCategory.INTERNAL)
        assert err.category is ErrorCategory.INTERNAL

    def test_configuration_fault_is_value_error(self):
        with pytest.raises(ValueError):
            raise ConfigurationFault("bad")


class TestCauseChaining:
    def test_cause_is_kept_and_chained(self):
        original = KeyError("missing")
        fault = UserFault("task failed", cause=original)
        assert fault.cause is original
        assert fault.__cause__ is original

    def test_no_cause(self):
        fault = UserFault("task failed")
        assert fault.cause is None
        assert fault.__cause__ is None


class TestToDict:
    def test_includes_type_message_category(self):
        d = CancellationSignal("cancelled").to_dict()
        assert d == {
            "error_type": "CancellationSignal",
            "message": "cancelled",
            "category": "CANCELLATION",
        }

    def test_includes_cause(self):
        d = UserFault("failed", cause=RuntimeError("boom")).to_dict()
        assert d["cause"] == "RuntimeError: boom"

    def test_repr(self):
        assert repr(UserFault("failed")) == "UserFault('failed')"


class TestIsCancellation:
    def test_cancellation_and_interruption(self):
        assert is_cancellation(CancellationSignal("c"))
        assert is_cancellation(InterruptionSignal("i"))

    def test_other_faults(self):
        assert not is_cancellation(UserFault("u"))
        assert not is_cancellation(ConfigurationFault("c"))
        assert not is_cancellation(RuntimeError("r"))


class TestExceptionMessage:
    def test_format_fills_placeholders(self):
        msg = ExceptionMessage.NEGATIVE_DURATION.format("delay", -5)
        assert msg == "Timing value 'delay' must be non-negative, got -5 ms."

    def test_format_without_placeholders(self):
        assert ExceptionMessage.EXECUTION_REQUIRED.format() == "The execution parameter is required."
