# model_selector/config/loader.py
"""Configuration loading utilities with YAML support.

Loads a selector description from YAML or JSON, applies environment
overrides and builds a configured selector from it.

Example configuration:

    task: regression
    models: [LinearRegression, RandomForestRegression]
    params:
      RandomForestRegression:
        max_depth: [2, 10]
    validation:
      type: cross_validation
      num_folds: 3
      metric: RootMeanSquaredError
      seed: 42
    splitter:
      type: data_splitter
      reserve_test_fraction: 0.1
    evaluators: [MeanAbsoluteError]
    log_level: INFO
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..data.splitter import DataBalancer, DataCutter, DataSplitter, Splitter
from ..models.chain import MultiClassificationModelSelector
from ..models.evaluators import BUILTIN_METRICS, Evaluator
from ..models.selector import BinaryClassificationModelSelector, ModelSelector, RegressionModelSelector
from ..utils.exceptions import ConfigurationError, handle_and_reraise
from ..utils.logger import get_logger, set_log_level
from .selector_config import ProblemType

logger = get_logger(__name__)

ENV_PREFIX = "MODEL_SELECTOR_"

SELECTOR_CLASSES = {
    ProblemType.REGRESSION: RegressionModelSelector,
    ProblemType.BINARY_CLASSIFICATION: BinaryClassificationModelSelector,
    ProblemType.MULTI_CLASSIFICATION: MultiClassificationModelSelector,
}

SPLITTER_CLASSES = {
    "data_splitter": DataSplitter,
    "data_balancer": DataBalancer,
    "data_cutter": DataCutter,
}

VALIDATION_TYPES = ("cross_validation", "train_validation_split")


def get_env_var(key: str, default: Any = None) -> Any:
    """Get a ``MODEL_SELECTOR_`` environment variable with type conversion."""
    value = os.getenv(ENV_PREFIX + key, default)

    if isinstance(value, str):
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        try:
            if '.' not in value:
                return int(value)
            return float(value)
        except ValueError:
            pass

    return value


def environment_overrides() -> Dict[str, Any]:
    """Overrides taken from ``MODEL_SELECTOR_*`` environment variables."""
    overrides: Dict[str, Any] = {"validation": {}, "splitter": {}}

    seed = get_env_var('SEED')
    if seed is not None:
        overrides["validation"]["seed"] = seed
        overrides["splitter"]["seed"] = seed
    num_folds = get_env_var('NUM_FOLDS')
    if num_folds is not None:
        overrides["validation"]["num_folds"] = num_folds
    train_ratio = get_env_var('TRAIN_RATIO')
    if train_ratio is not None:
        overrides["validation"]["train_ratio"] = train_ratio
    reserve = get_env_var('RESERVE_TEST_FRACTION')
    if reserve is not None:
        overrides["splitter"]["reserve_test_fraction"] = reserve

    return {key: value for key, value in overrides.items() if value}


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two configuration dictionaries."""
    merged = dict(base_config)

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def load_selector_config(
    file_path: Union[str, Path],
    allow_environment_override: bool = True
) -> Dict[str, Any]:
    """Load a selector configuration file.

    Args:
        file_path: Path to a ``.yaml``/``.yml`` or ``.json`` file
        allow_environment_override: Whether ``MODEL_SELECTOR_*`` variables override the file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file is missing or cannot be parsed
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {file_path}",
            error_code="CONFIG_FILE_NOT_FOUND"
        )

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            if file_path.suffix.lower() == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        handle_and_reraise(
            e, ConfigurationError,
            f"Error parsing configuration file {file_path}",
            error_code="CONFIG_PARSE_FAILED"
        )

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration file {file_path} must contain a mapping",
            error_code="CONFIG_NOT_MAPPING"
        )

    if allow_environment_override:
        overrides = environment_overrides()
        # Shorthand splitter types already follow the validation seed
        if not isinstance(config.get("splitter", {}), dict):
            overrides.pop("splitter", None)
        if overrides:
            logger.info(f"Applying environment overrides: {overrides}")
            config = merge_configs(config, overrides)

    logger.debug(f"Loaded selector configuration from {file_path}")
    return config


def _problem_type(task: Any) -> ProblemType:
    try:
        return ProblemType(str(task).lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown task '{task}'",
            error_code="CONFIG_TASK_INVALID",
            context={"valid_tasks": [problem_type.value for problem_type in ProblemType]}
        ) from None


def _evaluator(problem_type: ProblemType, metric_name: Optional[str]) -> Optional[Evaluator]:
    if metric_name is None:
        return None
    metrics = BUILTIN_METRICS[problem_type]
    if metric_name not in metrics:
        raise ConfigurationError(
            f"Unknown metric '{metric_name}' for {problem_type.value} problems",
            error_code="METRIC_UNKNOWN",
            context={"available": list(metrics)}
        )
    metric = metrics[metric_name]
    return Evaluator(name=metric.name, problem_type=problem_type, metrics=(metric,), primary=metric.name)


def _splitter(selector_class: type, settings: Optional[Dict[str, Any]], seed: int) -> Optional[Splitter]:
    if settings is None:
        return selector_class.default_splitter(seed=seed)
    settings = {"type": settings} if isinstance(settings, str) else dict(settings)
    splitter_type = str(settings.pop("type", "default")).lower()
    if splitter_type == "none":
        return None
    settings.setdefault("seed", seed)
    if splitter_type == "default":
        splitter_class = type(selector_class.default_splitter())
    elif splitter_type in SPLITTER_CLASSES:
        splitter_class = SPLITTER_CLASSES[splitter_type]
    else:
        raise ConfigurationError(
            f"Unknown splitter type '{splitter_type}'",
            error_code="CONFIG_SPLITTER_INVALID",
            context={"valid_types": ["default", "none", *SPLITTER_CLASSES]}
        )
    try:
        return splitter_class(**settings)
    except TypeError as e:
        handle_and_reraise(
            e, ConfigurationError,
            f"Invalid settings for splitter '{splitter_type}'",
            error_code="CONFIG_SPLITTER_INVALID"
        )


def build_selector(config: Dict[str, Any]) -> ModelSelector:
    """Build a configured selector from a configuration dictionary.

    Recognised keys are ``task``, ``models``, ``params``, ``validation``,
    ``splitter``, ``evaluators``, ``output_name`` and ``log_level``. Inputs
    still have to be set with ``set_input`` before fitting. A ``log_level``
    changes the level of every package logger.

    Raises:
        ConfigurationError: If any section is invalid
    """
    problem_type = _problem_type(config.get("task", ProblemType.REGRESSION.value))
    selector_class = SELECTOR_CLASSES[problem_type]

    validation = dict(config.get("validation") or {})
    validation_type = str(validation.pop("type", "cross_validation")).lower()
    if validation_type not in VALIDATION_TYPES:
        raise ConfigurationError(
            f"Unknown validation type '{validation_type}'",
            error_code="CONFIG_VALIDATION_INVALID",
            context={"valid_types": list(VALIDATION_TYPES)}
        )
    seed = validation.get("seed", 42)
    metric = _evaluator(problem_type, validation.get("metric"))
    executor = validation.get("n_jobs")
    extra_evaluators = [_evaluator(problem_type, name) for name in config.get("evaluators") or []]
    splitter = _splitter(selector_class, config.get("splitter"), seed)

    if validation_type == "cross_validation":
        selector = selector_class.with_cross_validation(
            num_folds=validation.get("num_folds", 3),
            validation_metric=metric,
            train_test_evaluators=extra_evaluators,
            seed=seed,
            splitter=splitter,
            stratify=validation.get("stratify", False),
            executor=executor,
        )
    else:
        selector = selector_class.with_train_validation_split(
            train_ratio=validation.get("train_ratio", 0.75),
            validation_metric=metric,
            train_test_evaluators=extra_evaluators,
            seed=seed,
            splitter=splitter,
            executor=executor,
        )

    # Families first, grid setters need them selected
    models = config.get("models")
    if models:
        selector = selector.set_models_to_try(*models)
    for family_name, grid in (config.get("params") or {}).items():
        selector = selector.set_model_grid(family_name, grid)

    if config.get("output_name"):
        selector = selector.set_output_name(config["output_name"])

    if config.get("log_level"):
        set_log_level(config["log_level"])

    logger.info(f"Built {selector!r}")
    return selector


def load_selector(file_path: Union[str, Path]) -> ModelSelector:
    """Load a configuration file and build its selector."""
    return build_selector(load_selector_config(file_path))
