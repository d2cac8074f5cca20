# model_selector/utils/exceptions.py
"""Custom exception hierarchy for model_selector package.

This module defines the exception types raised by the selection engine.
Configuration and data problems are detected before any model is trained;
training and evaluation problems abort the whole ``fit`` call.
"""

import numbers
from typing import Any, Optional, Dict, List


class ModelSelectorError(Exception):
    """Base exception for all model_selector package errors.

    Carries an optional error code and a context dictionary that are
    rendered into the string form for debugging.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Initialize ModelSelectorError.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        """Return string representation of error."""
        base_msg = self.message
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg = f"{base_msg} (Context: {context_str})"
        return base_msg


class ConfigurationError(ModelSelectorError):
    """Raised when selector configuration is invalid or incomplete.

    This exception is raised for issues with:
    - Empty candidate lists or empty hyperparameter value lists
    - Split fractions or train ratios outside (0, 1)
    - Invalid fold counts
    - Response features found in the feature vector
    """
    pass


class DataError(ModelSelectorError):
    """Raised when the input dataset does not match the declared features.

    This exception is raised for issues with:
    - Missing label or feature columns
    - Non-numeric or null label values
    - Non-numeric or non-finite feature values
    """
    pass


class TrainingError(ModelSelectorError):
    """Raised when a model family fails to fit a configuration."""
    pass


class EvaluationError(ModelSelectorError):
    """Raised when a metric function fails while scoring predictions."""
    pass


class MetadataError(ModelSelectorError):
    """Raised when provenance metadata cannot be decoded.

    This exception is raised for issues with:
    - Missing required metadata keys
    - Unsupported provenance schema versions
    - Malformed metric maps
    """
    pass


# Utility functions for error handling
def handle_and_reraise(
    exception: Exception,
    error_class: type,
    message: str,
    error_code: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """Handle an exception and re-raise as a model_selector exception.

    Converts external exceptions into the package hierarchy while keeping
    the original exception chained as ``__cause__``.

    Args:
        exception: Original exception that was caught
        error_class: ModelSelectorError subclass to raise
        message: Custom error message
        error_code: Optional error code
        context: Optional error context

    Raises:
        error_class: The specified model_selector exception
    """
    if context is None:
        context = {}

    context["original_error"] = str(exception)
    context["original_error_type"] = type(exception).__name__

    raise error_class(message, error_code, context) from exception


def validate_parameter(
    param_name: str,
    param_value: Any,
    valid_values: Optional[List[Any]] = None,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    required: bool = False,
    exclusive: bool = False
) -> None:
    """Validate a parameter value and raise ConfigurationError if invalid.

    Args:
        param_name: Name of the parameter being validated
        param_value: Value to validate
        valid_values: List of valid values (if applicable)
        min_value: Minimum allowed value (for numeric parameters)
        max_value: Maximum allowed value (for numeric parameters)
        required: Whether the parameter is required (cannot be None)
        exclusive: Whether min_value and max_value are themselves invalid

    Raises:
        ConfigurationError: If validation fails
    """
    if required and param_value is None:
        raise ConfigurationError(
            f"Parameter '{param_name}' is required but was not provided",
            error_code="PARAM_REQUIRED",
            context={"parameter": param_name}
        )

    if param_value is None:
        return  # Optional parameter not provided

    if valid_values is not None and param_value not in valid_values:
        raise ConfigurationError(
            f"Parameter '{param_name}' must be one of {valid_values}, got {param_value}",
            error_code="PARAM_INVALID_VALUE",
            context={"parameter": param_name, "value": param_value, "valid_values": valid_values}
        )

    if min_value is not None:
        too_small = param_value <= min_value if exclusive else param_value < min_value
        if too_small:
            bound = ">" if exclusive else ">="
            raise ConfigurationError(
                f"Parameter '{param_name}' must be {bound} {min_value}, got {param_value}",
                error_code="PARAM_TOO_SMALL",
                context={"parameter": param_name, "value": param_value, "min_value": min_value}
            )

    if max_value is not None:
        too_large = param_value >= max_value if exclusive else param_value > max_value
        if too_large:
            bound = "<" if exclusive else "<="
            raise ConfigurationError(
                f"Parameter '{param_name}' must be {bound} {max_value}, got {param_value}",
                error_code="PARAM_TOO_LARGE",
                context={"parameter": param_name, "value": param_value, "max_value": max_value}
            )


def validate_fraction(param_name: str, param_value: float) -> None:
    """Require a number strictly inside the open interval (0, 1)."""
    if (isinstance(param_value, bool) or not isinstance(param_value, numbers.Real)
            or param_value != param_value):
        raise ConfigurationError(
            f"Parameter '{param_name}' must be a number in (0, 1), got {param_value!r}",
            error_code="PARAM_INVALID_TYPE",
            context={"parameter": param_name}
        )
    validate_parameter(param_name, param_value, min_value=0.0, max_value=1.0, exclusive=True)

