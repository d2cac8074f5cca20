# model_selector/utils/logger.py
"""Logging utilities for model_selector package.

This module provides centralized logging configuration with support for
console and rotating-file output, structured context and timing fields.
"""

import logging
import logging.handlers
import sys
import json
import time
from pathlib import Path
from typing import Optional, Dict, Any, Union
from datetime import datetime
import threading

from .exceptions import ConfigurationError

PACKAGE_LOGGER = 'model_selector'


class ModelSelectorFormatter(logging.Formatter):
    """Custom formatter for model_selector package logs.

    Renders timestamp, level, logger name and message, followed by the
    optional ``context`` and ``duration`` record attributes.
    """

    def __init__(self, include_context: bool = True) -> None:
        """Initialize formatter.

        Args:
            include_context: Whether to include context fields in output
        """
        self.include_context = include_context
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with model_selector structure.

        Args:
            record: Log record to format

        Returns:
            Formatted log string
        """
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level = record.levelname
        module = record.name
        message = record.getMessage()

        context_str = ""
        if self.include_context and getattr(record, 'context', None):
            context_str = f" | Context: {json.dumps(record.context, default=str)}"

        perf_str = ""
        if hasattr(record, 'duration'):
            perf_str = f" | Duration: {record.duration:.3f}s"

        formatted = f"[{timestamp}] {level:8s} | {module:20s} | {message}{context_str}{perf_str}"
        if record.exc_info:
            formatted = f"{formatted}\n{self.formatException(record.exc_info)}"
        return formatted


class PerformanceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds named timers and structured context."""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None) -> None:
        """Initialize performance adapter.

        Args:
            logger: Base logger instance
            extra: Additional context to include in all log messages
        """
        super().__init__(logger, extra or {})
        self._timers: Dict[str, float] = {}

    def process(self, msg, kwargs):
        # Keep per-call extra fields instead of replacing them with the adapter's
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def start_timer(self, name: str) -> None:
        """Start a named timer.

        Args:
            name: Timer name for later reference
        """
        self._timers[name] = time.perf_counter()
        self.debug(f"Timer '{name}' started", extra={'context': {'timer_action': 'start', 'timer_name': name}})

    def stop_timer(self, name: str) -> float:
        """Stop a named timer and return duration.

        Args:
            name: Timer name to stop

        Returns:
            Duration in seconds

        Raises:
            ValueError: If timer was not started
        """
        if name not in self._timers:
            raise ValueError(f"Timer '{name}' was not started")

        duration = time.perf_counter() - self._timers.pop(name)

        self.info(f"Timer '{name}' completed", extra={
            'context': {'timer_action': 'stop', 'timer_name': name},
            'duration': duration
        })

        return duration

    def log_with_context(self, level: int, message: str, **context: Any) -> None:
        """Log message with additional context.

        Args:
            level: Log level
            message: Log message
            **context: Additional context fields
        """
        self.log(level, message, extra={'context': context})


class ModelSelectorLogger:
    """Centralized logger management for model_selector package."""

    _loggers: Dict[str, logging.Logger] = {}
    _configured: bool = False
    _lock = threading.Lock()

    @classmethod
    def configure(
        cls,
        level: Union[str, int] = logging.INFO,
        log_file: Optional[Union[str, Path]] = None,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        format_style: str = "detailed",
        include_console: bool = True
    ) -> None:
        """Configure package-wide logging settings.

        Calling this again after the first configuration is a no-op.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional log file path
            max_file_size: Maximum log file size before rotation
            backup_count: Number of backup files to keep
            format_style: Formatting style ('simple' or 'detailed')
            include_console: Whether to include console output

        Raises:
            ConfigurationError: If the log file handler cannot be created
        """
        with cls._lock:
            if cls._configured:
                return

            level = _resolve_level(level)

            root_logger = logging.getLogger(PACKAGE_LOGGER)
            root_logger.setLevel(level)
            root_logger.handlers.clear()

            formatter = ModelSelectorFormatter(include_context=format_style == "detailed")

            if include_console:
                console_handler = logging.StreamHandler(sys.stdout)
                console_handler.setLevel(level)
                console_handler.setFormatter(formatter)
                root_logger.addHandler(console_handler)

            if log_file:
                try:
                    log_path = Path(log_file)
                    log_path.parent.mkdir(parents=True, exist_ok=True)

                    file_handler = logging.handlers.RotatingFileHandler(
                        log_path,
                        maxBytes=max_file_size,
                        backupCount=backup_count,
                        encoding='utf-8'
                    )
                    file_handler.setLevel(level)
                    file_handler.setFormatter(formatter)
                    root_logger.addHandler(file_handler)

                except OSError as e:
                    raise ConfigurationError(
                        f"Failed to create log file handler: {log_file}",
                        error_code="LOG_FILE_SETUP_FAILED",
                        context={'log_file': str(log_file), 'error': str(e)}
                    ) from e

            cls._configured = True

    @classmethod
    def get_logger(
        cls,
        name: str,
        with_performance: bool = False
    ) -> Union[logging.Logger, PerformanceLoggerAdapter]:
        """Get a logger instance for the specified module.

        Args:
            name: Logger name (typically __name__)
            with_performance: Whether to return performance-enhanced logger

        Returns:
            Logger instance, optionally with performance tracking
        """
        if not cls._configured:
            cls.configure()

        if not name.startswith(PACKAGE_LOGGER):
            if name == '__main__':
                name = f'{PACKAGE_LOGGER}.main'
            else:
                name = f'{PACKAGE_LOGGER}.{name}'

        logger = cls._loggers.get(name)
        if logger is None:
            logger = logging.getLogger(name)
            cls._loggers[name] = logger

        if with_performance:
            return PerformanceLoggerAdapter(logger)

        return logger

    @classmethod
    def set_level(cls, level: Union[str, int]) -> None:
        """Change logging level for all package loggers.

        Args:
            level: New logging level
        """
        level = _resolve_level(level)

        root_logger = logging.getLogger(PACKAGE_LOGGER)
        root_logger.setLevel(level)

        for handler in root_logger.handlers:
            handler.setLevel(level)


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ConfigurationError(
                f"Unknown log level: {level}",
                error_code="LOG_LEVEL_INVALID",
                context={'level': level}
            )
        return resolved
    return level


# Convenience functions
def get_logger(name: str, with_performance: bool = False) -> Union[logging.Logger, PerformanceLoggerAdapter]:
    """Get a logger instance for the specified module.

    Example:
        >>> from model_selector.utils.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Model selection started")

        >>> perf_logger = get_logger(__name__, with_performance=True)
        >>> perf_logger.start_timer("search")
        >>> duration = perf_logger.stop_timer("search")
    """
    return ModelSelectorLogger.get_logger(name, with_performance)


def configure_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    **kwargs: Any
) -> None:
    """Configure package-wide logging settings.

    Example:
        >>> from model_selector.utils.logger import configure_logging
        >>> configure_logging(level="DEBUG", log_file="logs/model_selector.log")
    """
    ModelSelectorLogger.configure(level=level, log_file=log_file, **kwargs)


def set_log_level(level: Union[str, int]) -> None:
    """Change logging level for all package loggers."""
    ModelSelectorLogger.set_level(level)


class temporary_log_level:
    """Context manager for temporary log level changes.

    Example:
        >>> with temporary_log_level("DEBUG"):
        ...     logger.debug("Detailed debugging info")
    """

    def __init__(self, level: Union[str, int]) -> None:
        self.temp_level = _resolve_level(level)
        self.original_level: Optional[int] = None

    def __enter__(self) -> None:
        root_logger = logging.getLogger(PACKAGE_LOGGER)
        self.original_level = root_logger.level
        ModelSelectorLogger.set_level(self.temp_level)

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_level is not None:
            ModelSelectorLogger.set_level(self.original_level)
