# model_selector/__init__.py
"""Model Selector - Automatic Model Selection for Labeled Feature Vectors.

Trains a grid of candidate model families under cross-validation or a
train/validation split, refits the best configuration and records how it
was chosen in the metadata of the prediction column.

Key Features:
- 🔍 Grid search over scikit-learn and XGBoost model families
- ✅ Deterministic, row-order independent holdout and validation splits
- 📊 Training and holdout metrics for every configured evaluator
- 🧾 Typed provenance record stored in the output column metadata
- 🔗 Multi-stage chains for multiclass predictions, raw scores and probabilities

Quick Start:
    >>> import model_selector as ms
    >>> label = ms.Feature.response("y")
    >>> features = ms.FeatureVector.from_features("features", [ms.Feature.predictor("x1")])
    >>> selector = (
    ...     ms.RegressionModelSelector
    ...     .with_cross_validation(num_folds=3, validation_metric=ms.Evaluators.Regression.mse())
    ...     .set_models_to_try(ms.RegressionModelsToTry.LINEAR_REGRESSION)
    ...     .set_input(label, features)
    ... )
    >>> model = selector.fit(frame)
    >>> model.get_metadata().get_nested_map("TrainingEval")

Configuration files:
    >>> selector = ms.load_selector("config/selector.yaml").set_input(label, features)
"""

# Package metadata
__version__ = "1.0.0"
__author__ = "Model Selector Development Team"
__license__ = "MIT"
__description__ = "Automatic model selection with validation and provenance metadata"

# Configure package-level logging
from .utils.logger import configure_logging, get_logger

configure_logging(
    level="INFO",
    format_style="detailed",
    include_console=True
)

logger = get_logger(__name__)
logger.debug(f"Model Selector v{__version__} initialized")

# Data declarations and splitters
from .data import (
    FeatureType,
    Feature,
    FeatureVector,
    VectorColumnMetadata,
    VectorMetadata,
    ColumnMetadata,
    DataSplitter,
    DataBalancer,
    DataCutter
)

# Search, selection and evaluation
from .models import (
    RegressionModelsToTry,
    BinaryClassificationModelsToTry,
    MultiClassificationModelsToTry,
    ModelFamily,
    register_family,
    Evaluators,
    EvaluatorRegistry,
    EvaluationMetric,
    CrossValidation,
    TrainValidationSplit,
    SequentialExecutor,
    ThreadExecutor,
    JoblibExecutor,
    ProvenanceRecord,
    decode_provenance,
    SelectorState,
    SelectedModel,
    RegressionModelSelector,
    BinaryClassificationModelSelector,
    MultiClassificationModelSelector,
    StageChain
)

# Configuration
from .config import ProblemType, ParamGrid, SelectorConfig
from .config.loader import load_selector_config, build_selector, load_selector

# Exceptions
from .utils.exceptions import (
    ModelSelectorError,
    ConfigurationError,
    DataError,
    TrainingError,
    EvaluationError,
    MetadataError
)

__all__ = [
    # Package metadata
    '__version__',

    # Data
    'FeatureType',
    'Feature',
    'FeatureVector',
    'VectorColumnMetadata',
    'VectorMetadata',
    'ColumnMetadata',
    'DataSplitter',
    'DataBalancer',
    'DataCutter',

    # Models
    'RegressionModelsToTry',
    'BinaryClassificationModelsToTry',
    'MultiClassificationModelsToTry',
    'ModelFamily',
    'register_family',
    'Evaluators',
    'EvaluatorRegistry',
    'EvaluationMetric',
    'CrossValidation',
    'TrainValidationSplit',
    'SequentialExecutor',
    'ThreadExecutor',
    'JoblibExecutor',
    'ProvenanceRecord',
    'decode_provenance',
    'SelectorState',
    'SelectedModel',
    'RegressionModelSelector',
    'BinaryClassificationModelSelector',
    'MultiClassificationModelSelector',
    'StageChain',

    # Configuration
    'ProblemType',
    'ParamGrid',
    'SelectorConfig',
    'load_selector_config',
    'build_selector',
    'load_selector',

    # Exceptions
    'ModelSelectorError',
    'ConfigurationError',
    'DataError',
    'TrainingError',
    'EvaluationError',
    'MetadataError',

    # Logging
    'configure_logging',
    'get_logger',
]
