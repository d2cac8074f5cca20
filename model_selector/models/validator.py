# model_selector/models/validator.py
"""Validation strategies for hyperparameter search.

Both strategies evaluate every configuration of every candidate on one or
more folds of the training partition, average the fold scores and pick the
best configuration with ``select_best``. Fold evaluations are independent
tasks dispatched through an ``Executor``; the winner only depends on the
scores and the enumeration order, never on completion order.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold

from ..config.selector_config import Candidate, Configuration, ProblemType, enumerate_configurations
from ..data.splitter import DEFAULT_SEED, TRAIN_VALIDATION_SALT, seeded_uniform
from ..utils.exceptions import (
    ConfigurationError,
    DataError,
    EvaluationError,
    ModelSelectorError,
    TrainingError,
    handle_and_reraise,
    validate_fraction,
    validate_parameter,
)
from ..utils.logger import get_logger
from ..utils.timer import timed_operation
from .evaluators import Evaluator, Prediction
from .execution import Executor, resolve_executor
from .provenance import CandidateScore

logger = get_logger(__name__)


@dataclass(frozen=True)
class Fold:
    """Positional train and validation rows of one validation round."""

    train_indices: np.ndarray
    validation_indices: np.ndarray


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of a search.

    Attributes:
        best: Winning configuration
        best_score: Its mean validation score
        scores: Every configuration's score, in enumeration order
        validation_type: Name of the strategy used
        validation_params: Parameters of the strategy
    """

    best: Configuration
    best_score: float
    scores: Tuple[CandidateScore, ...]
    validation_type: str
    validation_params: Dict[str, Any]


def fit_estimator(configuration: Configuration, X: np.ndarray, y: np.ndarray, seed: int) -> Any:
    """Build and fit the estimator of ``configuration``.

    Raises:
        TrainingError: If the model family fails to build or fit
    """
    try:
        estimator = configuration.family.build(configuration.params, seed)
        estimator.fit(X, y)
    except ModelSelectorError:
        raise
    except Exception as e:
        handle_and_reraise(
            e, TrainingError,
            f"Training failed for {configuration.describe()}",
            error_code="TRAINING_FAILED",
            context={"family": configuration.family_name, "params": configuration.params}
        )
    return estimator


def predict(estimator: Any, X: np.ndarray, classes: Optional[np.ndarray] = None) -> Prediction:
    """Predict with a fitted estimator.

    For classifiers the probability columns are aligned with ``classes``,
    the labels of the whole training partition, so folds that lack a class
    still produce comparable outputs.

    Raises:
        EvaluationError: If the estimator fails to predict
    """
    try:
        values = np.asarray(estimator.predict(X))
        if classes is None:
            return Prediction(values=values.astype(float))
        probabilities = align_columns(
            np.asarray(estimator.predict_proba(X)), np.asarray(estimator.classes_), classes
        )
    except Exception as e:
        handle_and_reraise(
            e, EvaluationError,
            f"Prediction failed for {type(estimator).__name__}",
            error_code="PREDICTION_FAILED"
        )
    return Prediction(values=values.astype(float), probabilities=probabilities, classes=classes)


def align_columns(values: np.ndarray, source_classes: np.ndarray, target_classes: np.ndarray) -> np.ndarray:
    """Reorder per-class columns to ``target_classes``, zero-filling missing classes."""
    aligned = np.zeros((values.shape[0], len(target_classes)), dtype=float)
    positions = {label: position for position, label in enumerate(target_classes.tolist())}
    for column, label in enumerate(source_classes.tolist()):
        aligned[:, positions[label]] = values[:, column]
    return aligned


def select_best(scores: Sequence[CandidateScore], evaluator: Evaluator) -> CandidateScore:
    """Best score under the evaluator's direction.

    Scores are visited in enumeration order and replaced only on a strict
    improvement, so exact ties go to the earliest configuration. NaN scores
    never win over a number.
    """
    if not scores:
        raise ConfigurationError("No configurations were evaluated", error_code="NO_CONFIGURATIONS")
    ordered = sorted(scores, key=lambda score: score.index)
    best = ordered[0]
    for candidate in ordered[1:]:
        if evaluator.is_better(candidate.score, best.score):
            best = candidate
    if np.isnan(best.score):
        logger.warning(f"Every configuration scored NaN on {evaluator.metric_name}, keeping the first")
    return best


class BaseValidator(ABC):
    """Common search loop of the validation strategies.

    Args:
        evaluator: Evaluator whose primary metric ranks configurations
        seed: Seed for fold construction and model training
        executor: Execution strategy for fold evaluations, sequential by default
    """

    validation_type: str = "Validation"

    def __init__(self, evaluator: Evaluator, seed: int = DEFAULT_SEED, executor: Any = None) -> None:
        if not isinstance(evaluator, Evaluator):
            raise ConfigurationError(
                f"Validation metric must be an Evaluator, got {type(evaluator).__name__}",
                error_code="VALIDATOR_METRIC_INVALID"
            )
        self.evaluator = evaluator
        self.seed = int(seed)
        self.executor: Executor = resolve_executor(executor)

    @abstractmethod
    def make_folds(self, X: pd.DataFrame, y: np.ndarray, problem_type: ProblemType) -> List[Fold]:
        """Split the training rows into validation rounds."""

    @property
    @abstractmethod
    def validation_params(self) -> Dict[str, Any]:
        """Parameters recorded in the provenance metadata."""

    def with_executor(self, executor: Any) -> "BaseValidator":
        """Copy of this validator using another execution strategy."""
        clone = copy.copy(self)
        clone.executor = resolve_executor(executor)
        return clone

    def validate(
        self,
        candidates: Sequence[Candidate],
        X: pd.DataFrame,
        y: np.ndarray,
        problem_type: ProblemType
    ) -> SelectionResult:
        """Evaluate every configuration and select the best one.

        Args:
            candidates: Candidates in declaration order
            X: Training features, index identifies rows
            y: Training labels aligned with ``X``
            problem_type: Task being solved

        Returns:
            SelectionResult with the winner and every configuration's score

        Raises:
            TrainingError: If any configuration fails to fit
            EvaluationError: If any metric fails
        """
        configurations = enumerate_configurations(candidates)
        if not configurations:
            raise ConfigurationError("No configurations to evaluate", error_code="NO_CONFIGURATIONS")

        folds = self.make_folds(X, y, problem_type)
        features = X.to_numpy(dtype=float)
        labels = np.asarray(y, dtype=float)
        classes = np.unique(labels) if problem_type.is_classification else None
        tasks = [(configuration, fold) for configuration in configurations for fold in folds]

        logger.info(
            f"🔍 {self.validation_type}: {len(configurations)} configurations x {len(folds)} folds "
            f"on {len(labels)} rows, metric {self.evaluator.metric_name}"
        )

        def evaluate(task: Tuple[Configuration, Fold]) -> float:
            configuration, fold = task
            estimator = fit_estimator(
                configuration, features[fold.train_indices], labels[fold.train_indices], self.seed
            )
            prediction = predict(estimator, features[fold.validation_indices], classes)
            return self.evaluator.score(labels[fold.validation_indices], prediction)

        with timed_operation(f"{self.validation_type}.search", log_result=False):
            fold_scores = self.executor.map(evaluate, tasks)

        scores = []
        for position, configuration in enumerate(configurations):
            per_fold = tuple(float(s) for s in fold_scores[position * len(folds):(position + 1) * len(folds)])
            mean_score = float(np.mean(per_fold))
            scores.append(CandidateScore(
                model_type=configuration.family_name,
                params=dict(configuration.params),
                index=configuration.index,
                metric_name=self.evaluator.metric_name,
                score=mean_score,
                fold_scores=per_fold,
            ))
            logger.debug(f"{configuration.describe()}: {self.evaluator.metric_name}={mean_score:.6f}")

        best_score = select_best(scores, self.evaluator)
        best = configurations[best_score.index]
        logger.info(
            f"✅ Best configuration: {best.describe()} with {self.evaluator.metric_name}={best_score.score:.6f}"
        )
        return SelectionResult(
            best=best,
            best_score=best_score.score,
            scores=tuple(scores),
            validation_type=self.validation_type,
            validation_params=self.validation_params,
        )


class CrossValidation(BaseValidator):
    """k-fold cross-validation.

    Every configuration is trained on ``num_folds - 1`` folds and scored on
    the remaining one, for every rotation; fold scores are averaged.
    """

    validation_type = "CrossValidation"

    def __init__(
        self,
        evaluator: Evaluator,
        num_folds: int = 3,
        seed: int = DEFAULT_SEED,
        stratify: bool = False,
        executor: Any = None
    ) -> None:
        if isinstance(num_folds, bool) or not isinstance(num_folds, int):
            raise ConfigurationError(
                f"Number of folds must be an integer, got {num_folds!r}",
                error_code="PARAM_INVALID_TYPE",
                context={"parameter": "num_folds"}
            )
        validate_parameter("num_folds", num_folds, min_value=2)
        super().__init__(evaluator, seed, executor)
        self.num_folds = num_folds
        self.stratify = stratify

    def make_folds(self, X, y, problem_type):
        n_rows = len(y)
        if n_rows < self.num_folds:
            raise DataError(
                f"Cannot build {self.num_folds} folds from {n_rows} training rows",
                error_code="TOO_FEW_ROWS_FOR_FOLDS",
                context={"rows": n_rows, "num_folds": self.num_folds}
            )
        if self.stratify and problem_type.is_classification:
            splitter = StratifiedKFold(n_splits=self.num_folds, shuffle=True, random_state=self.seed)
        else:
            splitter = KFold(n_splits=self.num_folds, shuffle=True, random_state=self.seed)
        try:
            return [Fold(train, validation) for train, validation in splitter.split(np.zeros(n_rows), y)]
        except ValueError as e:
            handle_and_reraise(
                e, DataError,
                "Could not build cross-validation folds",
                error_code="FOLD_CONSTRUCTION_FAILED",
                context={"num_folds": self.num_folds, "stratify": self.stratify}
            )

    @property
    def validation_params(self):
        return {"metric": self.evaluator.metric_name, "numFolds": self.num_folds, "seed": self.seed}

    def __repr__(self) -> str:
        return (f"CrossValidation(metric={self.evaluator.metric_name}, num_folds={self.num_folds}, "
                f"seed={self.seed}, stratify={self.stratify})")


class TrainValidationSplit(BaseValidator):
    """Single split of the training rows into inner-train and validation.

    Row membership uses the same seeded per-row draw as the holdout splitter.
    """

    validation_type = "TrainValidationSplit"

    def __init__(
        self,
        evaluator: Evaluator,
        train_ratio: float = 0.75,
        seed: int = DEFAULT_SEED,
        executor: Any = None
    ) -> None:
        validate_fraction("train_ratio", train_ratio)
        super().__init__(evaluator, seed, executor)
        self.train_ratio = float(train_ratio)

    def make_folds(self, X, y, problem_type):
        in_train = seeded_uniform(X.index, self.seed, TRAIN_VALIDATION_SALT) < self.train_ratio
        train_indices = np.flatnonzero(in_train)
        validation_indices = np.flatnonzero(~in_train)
        if train_indices.size == 0 or validation_indices.size == 0:
            raise DataError(
                f"Train/validation split of {len(y)} rows left one side empty",
                error_code="EMPTY_VALIDATION_SPLIT",
                context={"train_ratio": self.train_ratio, "rows": len(y)}
            )
        return [Fold(train_indices, validation_indices)]

    @property
    def validation_params(self):
        return {"metric": self.evaluator.metric_name, "trainRatio": self.train_ratio, "seed": self.seed}

    def __repr__(self) -> str:
        return (f"TrainValidationSplit(metric={self.evaluator.metric_name}, "
                f"train_ratio={self.train_ratio}, seed={self.seed})")
