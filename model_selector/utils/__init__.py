"""Model Selector - Utility Components.

Shared utilities used throughout the package.

Key Components:
- Logger: Structured logging with configurable formats
- Timer: Performance timing utilities
- Exceptions: Custom exception hierarchy with context

Example:
    >>> from model_selector.utils import get_logger, timed_operation
    >>> logger = get_logger(__name__)
    >>> with timed_operation('search'):
    ...     pass
"""

from .logger import (
    get_logger,
    configure_logging,
    set_log_level,
    temporary_log_level
)
from .timer import (
    timer,
    timed_operation,
    get_performance_tracker
)
from .exceptions import (
    ModelSelectorError,
    ConfigurationError,
    DataError,
    TrainingError,
    EvaluationError,
    MetadataError,
    handle_and_reraise,
    validate_parameter,
    validate_fraction
)

__all__ = [
    # Logging utilities
    'get_logger',
    'configure_logging',
    'set_log_level',
    'temporary_log_level',

    # Timing utilities
    'timer',
    'timed_operation',
    'get_performance_tracker',

    # Exception hierarchy
    'ModelSelectorError',
    'ConfigurationError',
    'DataError',
    'TrainingError',
    'EvaluationError',
    'MetadataError',
    'handle_and_reraise',
    'validate_parameter',
    'validate_fraction',
]
