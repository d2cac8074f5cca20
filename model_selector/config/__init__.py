"""Model Selector - Configuration Components.

Immutable grid, candidate and selector configuration values. File based
configuration lives in ``model_selector.config.loader``.
"""

from .selector_config import (
    ProblemType,
    ParamGrid,
    Candidate,
    Configuration,
    SelectorConfig,
    enumerate_configurations
)

__all__ = [
    'ProblemType',
    'ParamGrid',
    'Candidate',
    'Configuration',
    'SelectorConfig',
    'enumerate_configurations',
]
