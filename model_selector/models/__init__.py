"""Model Selector - Search, Selection and Evaluation Components.

Key Components:
- Model families and the ModelsToTry enums of each task
- Evaluators: built-in and custom metrics with a primary selection metric
- Validators: k-fold cross-validation and train/validation split
- ModelSelector: immutable builder running search, refit and evaluation
- StageChain: ordered multi-stage composition used for multiclass outputs

Example:
    >>> from model_selector.models import RegressionModelSelector, Evaluators
    >>> selector = RegressionModelSelector.with_cross_validation(
    ...     num_folds=3, validation_metric=Evaluators.Regression.rmse()
    ... ).set_input(label, features)
    >>> model = selector.fit(frame)
"""

from .families import (
    ModelFamily,
    FamilyRegistry,
    RegressionModelsToTry,
    BinaryClassificationModelsToTry,
    MultiClassificationModelsToTry,
    register_family,
    get_family
)
from .evaluators import (
    Prediction,
    EvaluationMetric,
    Evaluator,
    EvaluatorRegistry,
    Evaluators
)
from .execution import (
    Executor,
    SequentialExecutor,
    ThreadExecutor,
    JoblibExecutor
)
from .validator import (
    Fold,
    SelectionResult,
    BaseValidator,
    CrossValidation,
    TrainValidationSplit,
    select_best
)
from .provenance import (
    CandidateScore,
    ProvenanceRecord,
    encode_provenance,
    decode_provenance
)
from .stages import Stage, FittedStage, column_metadata
from .selector import (
    SelectorState,
    SelectionRun,
    SelectedModel,
    ModelSelector,
    RegressionModelSelector,
    BinaryClassificationModelSelector,
    MultiClassModelSelector
)
from .chain import (
    StageChain,
    FittedChain,
    SelectionStage,
    RawScoreStage,
    ProbabilityStage,
    MultiClassificationModelSelector
)

__all__ = [
    # Model families
    'ModelFamily',
    'FamilyRegistry',
    'RegressionModelsToTry',
    'BinaryClassificationModelsToTry',
    'MultiClassificationModelsToTry',
    'register_family',
    'get_family',

    # Evaluation
    'Prediction',
    'EvaluationMetric',
    'Evaluator',
    'EvaluatorRegistry',
    'Evaluators',

    # Execution strategies
    'Executor',
    'SequentialExecutor',
    'ThreadExecutor',
    'JoblibExecutor',

    # Validation
    'Fold',
    'SelectionResult',
    'BaseValidator',
    'CrossValidation',
    'TrainValidationSplit',
    'select_best',

    # Provenance
    'CandidateScore',
    'ProvenanceRecord',
    'encode_provenance',
    'decode_provenance',

    # Selectors and stages
    'Stage',
    'FittedStage',
    'column_metadata',
    'SelectorState',
    'SelectionRun',
    'SelectedModel',
    'ModelSelector',
    'RegressionModelSelector',
    'BinaryClassificationModelSelector',
    'MultiClassModelSelector',
    'StageChain',
    'FittedChain',
    'SelectionStage',
    'RawScoreStage',
    'ProbabilityStage',
    'MultiClassificationModelSelector',
]
