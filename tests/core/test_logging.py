"""
Tests for spindle.core.logging.

Tests verify:
- configure_logging builds the JSON or console processor chain
- Service metadata is added to every event
- get_logger binds the logger name
- Context binding merges into events
"""

import logging

import pytest
import structlog
from structlog.testing import capture_logs

from spindle.core import logging as spindle_logging
from spindle.core.logging import (
    _add_service_metadata,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    clear_context()
    structlog.reset_defaults()
    spindle_logging._SERVICE_NAME = "spindle"


class TestConfigureLogging:
    def test_json_renderer(self):
        configure_logging(level="INFO", json_format=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert structlog.processors.format_exc_info in processors

    def test_console_renderer(self):
        configure_logging(level="INFO", json_format=False)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_timestamp_first_when_enabled(self):
        configure_logging(json_format=True)
        assert isinstance(structlog.get_config()["processors"][0], structlog.processors.TimeStamper)

    def test_no_timestamp(self):
        configure_logging(json_format=True, add_timestamp=False)
        processors = structlog.get_config()["processors"]
        assert not any(isinstance(p, structlog.processors.TimeStamper) for p in processors)

    def test_service_metadata_processor_installed(self):
        configure_logging(json_format=True, service="worker-a")
        assert _add_service_metadata in structlog.get_config()["processors"]
        assert spindle_logging._SERVICE_NAME == "worker-a"

    def test_level_filters(self):
        configure_logging(level="WARNING", json_format=True)
        wrapper = structlog.get_config()["wrapper_class"]
        assert wrapper is structlog.make_filtering_bound_logger(logging.WARNING)


class TestServiceMetadata:
    def test_adds_service(self):
        event = _add_service_metadata(None, "info", {"event": "x"})
        assert event["service"] == "spindle"

    def test_keeps_existing_service(self):
        event = _add_service_metadata(None, "info", {"event": "x", "service": "other"})
        assert event["service"] == "other"


class TestGetLogger:
    def test_binds_logger_name(self):
        with capture_logs() as logs:
            get_logger("spindle.test").info("episode_dispatched", classification="DELAY")
        assert logs == [
            {
                "event": "episode_dispatched",
                "log_level": "info",
                "logger_name": "spindle.test",
                "classification": "DELAY",
            }
        ]

    def test_unnamed_logger(self):
        with capture_logs() as logs:
            get_logger().warning("plain")
        assert logs[0]["event"] == "plain"
        assert "logger_name" not in logs[0]


class TestContext:
    def test_bound_context_is_merged(self):
        bind_context(episode="e-1")
        event = structlog.contextvars.merge_contextvars(None, "info", {"event": "started"})
        assert event == {"event": "started", "episode": "e-1"}

    def test_clear_context(self):
        bind_context(episode="e-1")
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
