"""Core primitives shared by the execution layer: errors, settings, logging."""

from .errors import (
    CancellationSignal,
    ConfigurationFault,
    ErrorCategory,
    ExceptionMessage,
    InterruptionSignal,
    SpindleError,
    UserFault,
    is_cancellation,
)
from .logging import configure_logging, get_logger
from .settings import SpindleSettings, clear_settings_cache, get_settings

__all__ = [
    "CancellationSignal",
    "ConfigurationFault",
    "ErrorCategory",
    "ExceptionMessage",
    "InterruptionSignal",
    "SpindleError",
    "UserFault",
    "is_cancellation",
    "configure_logging",
    "get_logger",
    "SpindleSettings",
    "clear_settings_cache",
    "get_settings",
]
