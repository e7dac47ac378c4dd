"""Shared pytest fixtures."""

import logging

import pytest

from cyclerunner.logging.context import clear_log_context


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment variables that override configuration."""
    for name in ("LOG_LEVEL", "LOG_FORMAT", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def restore_root_logging():
    """Put the root logger back the way it was after configure_logging() runs."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture(autouse=True)
def clean_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def write_config(tmp_path):
    """Write YAML text to a schedules file and return its path."""

    def _write(text: str, name: str = "schedules.yaml"):
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write
