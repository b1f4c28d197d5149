"""Tests for logging configuration."""

import logging

import pytest

from ramproj.logging_setup import DATE_FORMAT, LOG_FORMAT, setup_logging

pytestmark = pytest.mark.unit


def test_console_handler_only(make_options, restore_root_logger):
    """Without a path only a console handler is installed."""
    root = setup_logging(make_options(LOG_LEVEL="warning"))

    assert root is logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)
    assert root.handlers[0].formatter._fmt == LOG_FORMAT
    assert root.handlers[0].formatter.datefmt == DATE_FORMAT


def test_file_handler_creates_directories(make_options, restore_root_logger, tmp_path):
    """A log path gets a file handler; missing parents are created."""
    log_path = tmp_path / "logs" / "nested" / "projection.log"
    root = setup_logging(make_options(LOG_LEVEL="DEBUG"), log_path)

    assert log_path.parent.is_dir()
    assert any(isinstance(h, logging.FileHandler) for h in root.handlers)

    logging.getLogger("ramproj.test").debug("cells selected")
    for handler in root.handlers:
        handler.flush()

    text = log_path.read_text()
    assert "ramproj.test - DEBUG - cells selected" in text


def test_repeated_setup_replaces_handlers(make_options, restore_root_logger):
    setup_logging(make_options())
    root = setup_logging(make_options())

    assert len(root.handlers) == 1
    assert root.level == logging.INFO
