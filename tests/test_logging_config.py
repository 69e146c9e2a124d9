"""Tests for logging configuration."""

import logging
import logging.handlers

import pytest

from djlib_sync.utils.logging_config import (
    ColoredFormatter,
    configure_third_party_loggers,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test root logger setup."""

    def test_console_only(self):
        """Test a single coloured console handler."""
        setup_logging(log_level="WARNING")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)

    def test_log_file(self, tmp_path):
        """Test the rotating file handler writes plain records."""
        log_file = tmp_path / "logs" / "sync.log"
        setup_logging(log_level="DEBUG", log_file=log_file, console_output=False)

        logging.getLogger("djlib_sync.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        root = logging.getLogger()
        assert isinstance(root.handlers[0], logging.handlers.RotatingFileHandler)
        content = log_file.read_text(encoding="utf-8")
        assert "hello" in content
        assert "test_logging_config.py:" in content
        assert "\033[" not in content

    def test_unknown_level_falls_back_to_info(self):
        """Test an unknown level name."""
        setup_logging(log_level="chatty", console_output=False)
        assert logging.getLogger().level == logging.INFO


def test_colored_formatter_restores_levelname():
    """Test colouring does not leak into other handlers."""
    formatter = ColoredFormatter(fmt="%(levelname)s %(location)s %(message)s")
    record = logging.LogRecord("x", logging.ERROR, "/a/b.py", 3, "boom", None, None)

    output = formatter.format(record)

    assert "\033[31m" in output
    assert "b.py:3" in output
    assert record.levelname == "ERROR"


def test_third_party_loggers_quietened():
    """Test noisy libraries are capped at WARNING."""
    configure_third_party_loggers()
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger("mutagen").level == logging.WARNING
