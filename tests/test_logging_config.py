"""Tests for logging configuration and formatters."""

import io
import json
import logging
import sys

import pytest

from cyclerunner.logging import ComponentLoggerAdapter, get_logger
from cyclerunner.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from cyclerunner.logging.context import log_context
from cyclerunner.scheduler import Phase


@pytest.fixture
def logger():
    """Create a test logger with no handlers."""
    test_logger = logging.getLogger("test_logger")
    test_logger.setLevel(logging.DEBUG)
    test_logger.handlers.clear()
    yield test_logger
    test_logger.handlers.clear()


def make_record(logger, message="Test message", extra=None):
    return logger.makeRecord(
        "test", logging.INFO, "test.py", 1, message, (), None, extra=extra
    )


def test_json_formatter_basic(logger):
    log_obj = json.loads(JSONFormatter().format(make_record(logger)))

    assert log_obj["level"] == "INFO"
    assert log_obj["message"] == "Test message"
    assert log_obj["timestamp"].endswith("Z")
    assert len(log_obj["timestamp"]) == 24
    assert "name" not in log_obj


def test_json_formatter_renders_extras(logger):
    record = make_record(
        logger,
        extra={"event": "scheduler.phase.completed", "cycle": 2, "flag": True, "phase": Phase.BACKWARD},
    )

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["event"] == "scheduler.phase.completed"
    assert log_obj["cycle"] == 2
    assert log_obj["flag"] is True
    assert log_obj["phase"] == "backward"


def test_json_formatter_includes_exception(logger):
    try:
        raise RuntimeError("bad frame")
    except RuntimeError:
        record = logger.makeRecord(
            "test", logging.ERROR, "test.py", 1, "Phase failed", (), sys.exc_info()
        )

    log_obj = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: bad frame" in log_obj["exc_info"]


def test_contextual_filter_adds_static_and_context_fields(logger):
    context_filter = ContextualFilter(service="test-service", environment="test")

    with log_context(schedule="hero", cycle=1):
        record = make_record(logger, extra={"cycle": 7})
        context_filter.filter(record)

    assert record.service == "test-service"
    assert record.environment == "test"
    assert record.schedule == "hero"
    # Explicit extras win over context
    assert record.cycle == 7


def test_key_value_formatter(logger):
    formatter = KeyValueFormatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    record = make_record(
        logger,
        extra={
            "event": "scheduler.started",
            "schedule": "hero banner",
            "stopped": False,
            "error": None,
            "service": "hidden",
        },
    )

    output = formatter.format(record)

    assert "[INFO]" in output
    assert "event=scheduler.started" in output
    assert 'schedule="hero banner"' in output
    assert "stopped=false" in output
    assert "error=null" in output
    assert "service=" not in output


def test_get_logger_with_component_merges_extra(caplog):
    adapter = get_logger("cyclerunner.test", component="scheduler")
    assert isinstance(adapter, ComponentLoggerAdapter)

    with caplog.at_level(logging.INFO, logger="cyclerunner.test"):
        adapter.info("hello", extra={"event": "test.event"})

    record = caplog.records[-1]
    assert record.component == "scheduler"
    assert record.event == "test.event"


def test_get_logger_without_component():
    assert isinstance(get_logger("cyclerunner.test"), logging.Logger)


def test_configure_logging_invalid_level():
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(level="INVALID")


def test_configure_logging_invalid_format():
    with pytest.raises(ValueError, match="Invalid log format"):
        configure_logging(format_type="invalid")


@pytest.mark.parametrize("format_type, formatter_cls", [("json", JSONFormatter), ("key-value", KeyValueFormatter)])
def test_configure_logging_installs_formatter(restore_root_logging, format_type, formatter_cls):
    configure_logging(level="DEBUG", format_type=format_type, environment="test", stream=io.StringIO())

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, formatter_cls)


def test_configure_logging_writes_json_lines(restore_root_logging):
    stream = io.StringIO()
    configure_logging(level="INFO", format_type="json", environment="test", stream=stream)

    with log_context(schedule="hero"):
        logging.getLogger("cyclerunner.test").info("Phase completed", extra={"event": "scheduler.phase.completed"})

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert lines[0]["event"] == "logging.configured"
    assert lines[-1]["event"] == "scheduler.phase.completed"
    assert lines[-1]["schedule"] == "hero"
    assert lines[-1]["service"] == "cycle-runner"
    assert lines[-1]["environment"] == "test"
