# tests/test_utils_logger.py
"""Unit tests for the logger utility."""

import logging
import pytest
from pathlib import Path

from model_selector.utils.exceptions import ConfigurationError
from model_selector.utils.logger import (
    get_logger,
    configure_logging,
    set_log_level,
    temporary_log_level,
    PerformanceLoggerAdapter,
    ModelSelectorFormatter,
    ModelSelectorLogger,
)


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before and after each test."""
    logging.getLogger("model_selector").handlers.clear()
    logging.getLogger("model_selector").filters.clear()
    logging.getLogger("model_selector").setLevel(logging.NOTSET)
    ModelSelectorLogger._configured = False
    ModelSelectorLogger._loggers = {}
    yield
    logging.getLogger("model_selector").handlers.clear()
    logging.getLogger("model_selector").filters.clear()
    logging.getLogger("model_selector").setLevel(logging.NOTSET)
    ModelSelectorLogger._configured = False
    ModelSelectorLogger._loggers = {}


class TestLogger:
    """Test cases for the logger utility."""

    def test_get_logger(self):
        """Test that get_logger returns a logger under the package namespace."""
        logger = get_logger(__name__)
        assert isinstance(logger, logging.Logger)
        assert logger.name == f"model_selector.{__name__}"

    def test_get_logger_keeps_package_names(self):
        logger = get_logger("model_selector.models.selector")
        assert logger.name == "model_selector.models.selector"

    def test_get_logger_main(self):
        assert get_logger("__main__").name == "model_selector.main"

    def test_get_logger_with_performance(self):
        """Test that get_logger with with_performance=True returns a PerformanceLoggerAdapter."""
        perf_logger = get_logger(__name__, with_performance=True)
        assert isinstance(perf_logger, PerformanceLoggerAdapter)

    def test_configure_logging_level(self):
        """Test that configure_logging sets the logging level."""
        configure_logging(level="DEBUG")
        assert logging.getLogger("model_selector").level == logging.DEBUG

    def test_configure_logging_is_idempotent(self):
        configure_logging(level="DEBUG")
        configure_logging(level="ERROR")
        assert logging.getLogger("model_selector").level == logging.DEBUG

    def test_configure_logging_invalid_level(self):
        with pytest.raises(ConfigurationError) as e:
            configure_logging(level="LOUD")
        assert e.value.error_code == "LOG_LEVEL_INVALID"

    def test_configure_logging_file(self, tmp_path: Path):
        """Test that configure_logging sets up a file handler."""
        log_file = tmp_path / "logs" / "test.log"
        configure_logging(log_file=log_file)

        logger = get_logger(__name__)
        logger.warning("This is a test.")

        assert log_file.exists()
        with open(log_file, "r") as f:
            content = f.read()
            assert "This is a test." in content
            assert "WARNING" in content

    def test_temporary_log_level(self):
        """Test the temporary_log_level context manager."""
        configure_logging(level="INFO")
        assert logging.getLogger("model_selector").level == logging.INFO

        with temporary_log_level("DEBUG"):
            assert logging.getLogger("model_selector").level == logging.DEBUG

        assert logging.getLogger("model_selector").level == logging.INFO

    def test_set_log_level(self):
        """Test that set_log_level changes the logging level."""
        configure_logging(level="INFO")
        assert logging.getLogger("model_selector").level == logging.INFO

        set_log_level("WARNING")
        assert logging.getLogger("model_selector").level == logging.WARNING

    def test_log_format(self, caplog):
        """Test that records carry the package logger name."""
        configure_logging(level="INFO")
        logger = get_logger(__name__)
        with caplog.at_level(logging.INFO):
            logger.info("Test message")

        records = [r for r in caplog.records if r.name == f"model_selector.{__name__}"]
        assert len(records) == 1
        record = records[0]
        assert record.levelname == "INFO"
        assert record.getMessage() == "Test message"

    def test_formatter_renders_context_and_duration(self):
        formatter = ModelSelectorFormatter(include_context=True)
        record = logging.LogRecord("model_selector.test", logging.INFO, __file__, 1, "done", None, None)
        record.context = {"stage": "search"}
        record.duration = 1.5

        formatted = formatter.format(record)

        assert "done" in formatted
        assert 'Context: {"stage": "search"}' in formatted
        assert "Duration: 1.500s" in formatted

    def test_formatter_without_context(self):
        formatter = ModelSelectorFormatter(include_context=False)
        record = logging.LogRecord("model_selector.test", logging.INFO, __file__, 1, "done", None, None)
        record.context = {"stage": "search"}

        assert "Context" not in formatter.format(record)

    def test_performance_logger_adapter(self, caplog):
        """Test the PerformanceLoggerAdapter timers."""
        configure_logging(level="DEBUG")
        perf_logger = get_logger(__name__, with_performance=True)

        with caplog.at_level(logging.DEBUG):
            perf_logger.start_timer("my_timer")
            duration = perf_logger.stop_timer("my_timer")

        records = [r for r in caplog.records if r.name == f"model_selector.{__name__}"]
        assert len(records) == 2
        start_record, stop_record = records
        assert "Timer 'my_timer' started" in start_record.getMessage()
        assert "Timer 'my_timer' completed" in stop_record.getMessage()
        assert stop_record.duration == duration
        assert stop_record.context["timer_name"] == "my_timer"

    def test_stop_unknown_timer(self):
        perf_logger = get_logger(__name__, with_performance=True)
        with pytest.raises(ValueError):
            perf_logger.stop_timer("missing")


if __name__ == "__main__":
    pytest.main([__file__])
