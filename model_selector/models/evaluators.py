# model_selector/models/evaluators.py
"""Evaluation metrics and evaluators.

An ``EvaluationMetric`` is a pure scoring function with a direction. An
``Evaluator`` groups metrics under a name and designates the primary one
used for model selection. Evaluated scores are reported under the key
``"(<evaluator name>)_<metric name>"``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    average_precision_score,
    f1_score,
    log_loss,
    mean_absolute_error,
    mean_squared_error,
    precision_score,
    r2_score,
    recall_score,
    roc_auc_score,
)

from ..config.selector_config import ProblemType
from ..utils.exceptions import ConfigurationError, EvaluationError, handle_and_reraise
from ..utils.logger import get_logger

logger = get_logger(__name__)

REGRESSION_EVALUATOR_NAME = "regEval"
BINARY_EVALUATOR_NAME = "binEval"
MULTI_EVALUATOR_NAME = "multiEval"


@dataclass(frozen=True)
class Prediction:
    """Model output on a set of rows.

    Attributes:
        values: Predicted regression values or predicted labels
        probabilities: Per-class probabilities, columns ordered as ``classes``
        classes: Class labels of the probability columns
    """

    values: np.ndarray
    probabilities: Optional[np.ndarray] = None
    classes: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", np.asarray(self.values))
        if self.probabilities is not None:
            object.__setattr__(self, "probabilities", np.asarray(self.probabilities, dtype=float))
        if self.classes is not None:
            object.__setattr__(self, "classes", np.asarray(self.classes))

    def positive_scores(self) -> np.ndarray:
        """Probability of the positive class (label 1) for binary problems."""
        if self.probabilities is None or self.classes is None:
            raise EvaluationError("Metric needs class probabilities", error_code="NO_PROBABILITIES")
        matches = np.flatnonzero(self.classes == 1)
        if matches.size == 0:
            return np.zeros(len(self.values))
        return self.probabilities[:, matches[0]]


@dataclass(frozen=True)
class EvaluationMetric:
    """Named scoring function with a direction.

    ``fn`` receives ``(labels, prediction)`` where ``prediction`` is a
    ``Prediction``; it must not keep state between calls.
    """

    name: str
    fn: Callable[[np.ndarray, Prediction], float] = field(compare=False)
    higher_is_better: bool = True

    def score(self, labels: Any, prediction: Union[Prediction, Any]) -> float:
        """Apply the metric.

        Raises:
            EvaluationError: If the metric function raises
        """
        if not isinstance(prediction, Prediction):
            prediction = Prediction(values=prediction)
        try:
            return float(self.fn(np.asarray(labels), prediction))
        except EvaluationError:
            raise
        except Exception as e:
            handle_and_reraise(
                e, EvaluationError,
                f"Metric '{self.name}' failed while scoring predictions",
                error_code="METRIC_FAILED",
                context={"metric": self.name}
            )

    def is_better(self, candidate: float, incumbent: float) -> bool:
        """Strict comparison in the metric's direction; NaN never beats a number."""
        if np.isnan(candidate):
            return False
        if np.isnan(incumbent):
            return True
        return candidate > incumbent if self.higher_is_better else candidate < incumbent


def _rmse(y, p):
    return float(np.sqrt(mean_squared_error(y, p.values)))


def _auroc(y, p):
    if np.unique(y).size < 2:
        logger.warning("AuROC is undefined when only one class is present, reporting NaN")
        return float("nan")
    return roc_auc_score(y, p.positive_scores())


def _one_vs_rest_auroc(y, p):
    """Macro average of the per-class AuROC over classes with both outcomes present."""
    if p.probabilities is None or p.classes is None:
        raise EvaluationError("AuROC needs class probabilities", error_code="NO_PROBABILITIES")
    y = np.asarray(y, dtype=float)
    scores = []
    for column, label in enumerate(p.classes.tolist()):
        positives = y == label
        if 0 < positives.sum() < len(y):
            scores.append(roc_auc_score(positives, p.probabilities[:, column]))
    if not scores:
        logger.warning("AuROC is undefined when only one class is present, reporting NaN")
        return float("nan")
    return float(np.mean(scores))


def _aupr(y, p):
    if not np.any(y == 1):
        logger.warning("AuPR is undefined without positive labels, reporting NaN")
        return float("nan")
    return average_precision_score(y, p.positive_scores())


def _cross_entropy(y, p):
    if p.probabilities is None:
        raise EvaluationError("CrossEntropy needs class probabilities", error_code="NO_PROBABILITIES")
    return log_loss(y, p.probabilities, labels=p.classes)


REGRESSION_METRICS: Dict[str, EvaluationMetric] = {
    metric.name: metric for metric in (
        EvaluationMetric("RootMeanSquaredError", _rmse, higher_is_better=False),
        EvaluationMetric("MeanSquaredError", lambda y, p: mean_squared_error(y, p.values), higher_is_better=False),
        EvaluationMetric("R2", lambda y, p: r2_score(y, p.values), higher_is_better=True),
        EvaluationMetric("MeanAbsoluteError", lambda y, p: mean_absolute_error(y, p.values), higher_is_better=False),
    )
}

BINARY_METRICS: Dict[str, EvaluationMetric] = {
    metric.name: metric for metric in (
        EvaluationMetric("Precision", lambda y, p: precision_score(y, p.values, pos_label=1, zero_division=0)),
        EvaluationMetric("Recall", lambda y, p: recall_score(y, p.values, pos_label=1, zero_division=0)),
        EvaluationMetric("F1", lambda y, p: f1_score(y, p.values, pos_label=1, zero_division=0)),
        EvaluationMetric("AuROC", _auroc),
        EvaluationMetric("AuPR", _aupr),
        EvaluationMetric("Error", lambda y, p: 1.0 - accuracy_score(y, p.values), higher_is_better=False),
        EvaluationMetric("Accuracy", lambda y, p: accuracy_score(y, p.values)),
        EvaluationMetric("CrossEntropy", _cross_entropy, higher_is_better=False),
    )
}

MULTICLASS_METRICS: Dict[str, EvaluationMetric] = {
    metric.name: metric for metric in (
        EvaluationMetric("Precision",
                         lambda y, p: precision_score(y, p.values, average="weighted", zero_division=0)),
        EvaluationMetric("Recall", lambda y, p: recall_score(y, p.values, average="weighted", zero_division=0)),
        EvaluationMetric("F1", lambda y, p: f1_score(y, p.values, average="weighted", zero_division=0)),
        EvaluationMetric("Error", lambda y, p: 1.0 - accuracy_score(y, p.values), higher_is_better=False),
        EvaluationMetric("Accuracy", lambda y, p: accuracy_score(y, p.values)),
        EvaluationMetric("AuROC", _one_vs_rest_auroc),
        EvaluationMetric("CrossEntropy", _cross_entropy, higher_is_better=False),
    )
}

BUILTIN_METRICS = {
    ProblemType.REGRESSION: REGRESSION_METRICS,
    ProblemType.BINARY_CLASSIFICATION: BINARY_METRICS,
    ProblemType.MULTI_CLASSIFICATION: MULTICLASS_METRICS,
}


@dataclass(frozen=True)
class Evaluator:
    """Named group of metrics with a primary metric used for selection.

    Attributes:
        name: Evaluator name, used in reported metric keys
        problem_type: Task the metrics apply to
        metrics: Metrics reported by this evaluator
        primary: Name of the metric that ranks configurations
    """

    name: str
    problem_type: ProblemType
    metrics: Tuple[EvaluationMetric, ...]
    primary: str

    def __post_init__(self) -> None:
        if not self.metrics:
            raise ConfigurationError(f"Evaluator '{self.name}' has no metrics", error_code="EVALUATOR_EMPTY")
        if self.primary not in self.metric_names():
            raise ConfigurationError(
                f"Primary metric '{self.primary}' is not part of evaluator '{self.name}'",
                error_code="EVALUATOR_PRIMARY_UNKNOWN",
                context={"metrics": self.metric_names()}
            )

    def metric_names(self) -> List[str]:
        return [metric.name for metric in self.metrics]

    @property
    def primary_metric(self) -> EvaluationMetric:
        for metric in self.metrics:
            if metric.name == self.primary:
                return metric
        raise ConfigurationError(f"Primary metric '{self.primary}' missing", error_code="EVALUATOR_PRIMARY_UNKNOWN")

    @property
    def higher_is_better(self) -> bool:
        return self.primary_metric.higher_is_better

    @property
    def metric_name(self) -> str:
        """Name recorded for the selection metric."""
        return self.primary

    def metric_key(self, metric_name: str) -> str:
        return f"({self.name})_{metric_name}"

    def score(self, labels: Any, prediction: Prediction) -> float:
        """Primary metric on ``prediction``."""
        return self.primary_metric.score(labels, prediction)

    def evaluate_all(self, labels: Any, prediction: Prediction) -> Dict[str, float]:
        """Every metric keyed as ``"(<evaluator>)_<metric>"``."""
        return {self.metric_key(metric.name): metric.score(labels, prediction) for metric in self.metrics}

    def is_better(self, candidate: float, incumbent: float) -> bool:
        return self.primary_metric.is_better(candidate, incumbent)


class EvaluatorRegistry:
    """Metric lookup by name for one problem type.

    Built-in metrics are always present; custom metrics are added with
    ``register``. Evaluation is a pure function of its inputs.

    Example:
        >>> registry = EvaluatorRegistry(ProblemType.REGRESSION)
        >>> registry.evaluate("MeanSquaredError", [1.0, 2.0], [1.0, 3.0])
        0.5
    """

    def __init__(self, problem_type: ProblemType) -> None:
        self.problem_type = problem_type
        self._metrics: Dict[str, EvaluationMetric] = dict(BUILTIN_METRICS[problem_type])

    def register(self, metric: EvaluationMetric) -> "EvaluatorRegistry":
        """Add a custom metric.

        Raises:
            ConfigurationError: If a metric with the same name exists
        """
        if metric.name in self._metrics:
            raise ConfigurationError(
                f"Metric '{metric.name}' is already registered",
                error_code="METRIC_DUPLICATE",
                context={"problem_type": self.problem_type.value}
            )
        self._metrics[metric.name] = metric
        logger.debug(f"Registered custom metric: {metric.name}")
        return self

    def get(self, metric_name: str) -> EvaluationMetric:
        if metric_name not in self._metrics:
            raise ConfigurationError(
                f"Unknown metric '{metric_name}' for {self.problem_type.value} problems",
                error_code="METRIC_UNKNOWN",
                context={"available": self.names()}
            )
        return self._metrics[metric_name]

    def names(self) -> List[str]:
        return list(self._metrics)

    def evaluate(self, metric_name: str, predictions: Union[Prediction, Any], labels: Any) -> float:
        return self.get(metric_name).score(labels, predictions)


def _single(problem_type: ProblemType, metric_name: str) -> Evaluator:
    metric = BUILTIN_METRICS[problem_type][metric_name]
    return Evaluator(name=metric_name, problem_type=problem_type, metrics=(metric,), primary=metric_name)


def _custom(
    problem_type: ProblemType,
    metric_name: str,
    higher_is_better: bool,
    evaluate_fn: Callable[[np.ndarray, np.ndarray], float],
    uses_probabilities: bool = False
) -> Evaluator:
    if uses_probabilities:
        def fn(labels, prediction):
            return evaluate_fn(labels, prediction.probabilities)
    else:
        def fn(labels, prediction):
            return evaluate_fn(labels, prediction.values)
    metric = EvaluationMetric(metric_name, fn, higher_is_better=higher_is_better)
    return Evaluator(name=metric_name, problem_type=problem_type, metrics=(metric,), primary=metric_name)


class _EvaluatorFactory:
    problem_type: ProblemType
    evaluator_name: str
    default_primary: str

    def __new__(cls, primary: Optional[str] = None) -> Evaluator:
        """Full evaluator with every built-in metric of the task."""
        metrics = tuple(BUILTIN_METRICS[cls.problem_type].values())
        return Evaluator(
            name=cls.evaluator_name,
            problem_type=cls.problem_type,
            metrics=metrics,
            primary=primary or cls.default_primary,
        )

    @classmethod
    def custom(
        cls,
        metric_name: str,
        higher_is_better: bool,
        evaluate_fn: Callable[[np.ndarray, np.ndarray], float],
        uses_probabilities: bool = False
    ) -> Evaluator:
        """Single-metric evaluator from ``evaluate_fn(labels, predictions)``.

        With ``uses_probabilities`` the function receives the class
        probability matrix instead of predicted values.
        """
        return _custom(cls.problem_type, metric_name, higher_is_better, evaluate_fn, uses_probabilities)


class Evaluators:
    """Factories for built-in and custom evaluators.

    Example:
        >>> full = Evaluators.Regression()
        >>> mse = Evaluators.Regression.mse()
        >>> mae_only = Evaluators.Regression.custom("median absolute error", False, my_fn)
    """

    class Regression(_EvaluatorFactory):
        problem_type = ProblemType.REGRESSION
        evaluator_name = REGRESSION_EVALUATOR_NAME
        default_primary = "RootMeanSquaredError"

        @staticmethod
        def rmse() -> Evaluator:
            return _single(ProblemType.REGRESSION, "RootMeanSquaredError")

        @staticmethod
        def mse() -> Evaluator:
            return _single(ProblemType.REGRESSION, "MeanSquaredError")

        @staticmethod
        def mae() -> Evaluator:
            return _single(ProblemType.REGRESSION, "MeanAbsoluteError")

        @staticmethod
        def r2() -> Evaluator:
            return _single(ProblemType.REGRESSION, "R2")

    class BinaryClassification(_EvaluatorFactory):
        problem_type = ProblemType.BINARY_CLASSIFICATION
        evaluator_name = BINARY_EVALUATOR_NAME
        default_primary = "AuROC"

        @staticmethod
        def auroc() -> Evaluator:
            return _single(ProblemType.BINARY_CLASSIFICATION, "AuROC")

        @staticmethod
        def aupr() -> Evaluator:
            return _single(ProblemType.BINARY_CLASSIFICATION, "AuPR")

        @staticmethod
        def precision() -> Evaluator:
            return _single(ProblemType.BINARY_CLASSIFICATION, "Precision")

        @staticmethod
        def recall() -> Evaluator:
            return _single(ProblemType.BINARY_CLASSIFICATION, "Recall")

        @staticmethod
        def f1() -> Evaluator:
            return _single(ProblemType.BINARY_CLASSIFICATION, "F1")

        @staticmethod
        def error() -> Evaluator:
            return _single(ProblemType.BINARY_CLASSIFICATION, "Error")

        @staticmethod
        def accuracy() -> Evaluator:
            return _single(ProblemType.BINARY_CLASSIFICATION, "Accuracy")

        @staticmethod
        def cross_entropy() -> Evaluator:
            return _single(ProblemType.BINARY_CLASSIFICATION, "CrossEntropy")

    class MultiClassification(_EvaluatorFactory):
        problem_type = ProblemType.MULTI_CLASSIFICATION
        evaluator_name = MULTI_EVALUATOR_NAME
        default_primary = "F1"

        @staticmethod
        def precision() -> Evaluator:
            return _single(ProblemType.MULTI_CLASSIFICATION, "Precision")

        @staticmethod
        def recall() -> Evaluator:
            return _single(ProblemType.MULTI_CLASSIFICATION, "Recall")

        @staticmethod
        def f1() -> Evaluator:
            return _single(ProblemType.MULTI_CLASSIFICATION, "F1")

        @staticmethod
        def error() -> Evaluator:
            return _single(ProblemType.MULTI_CLASSIFICATION, "Error")

        @staticmethod
        def accuracy() -> Evaluator:
            return _single(ProblemType.MULTI_CLASSIFICATION, "Accuracy")

        @staticmethod
        def auroc() -> Evaluator:
            return _single(ProblemType.MULTI_CLASSIFICATION, "AuROC")

        @staticmethod
        def cross_entropy() -> Evaluator:
            return _single(ProblemType.MULTI_CLASSIFICATION, "CrossEntropy")

    @staticmethod
    def default(problem_type: ProblemType) -> Evaluator:
        """Full evaluator of a task."""
        return {
            ProblemType.REGRESSION: Evaluators.Regression,
            ProblemType.BINARY_CLASSIFICATION: Evaluators.BinaryClassification,
            ProblemType.MULTI_CLASSIFICATION: Evaluators.MultiClassification,
        }[problem_type]()


def merge_evaluators(evaluators: Iterable[Evaluator]) -> List[Evaluator]:
    """Drop evaluators whose name was already seen, keeping the first."""
    merged: List[Evaluator] = []
    seen = set()
    for evaluator in evaluators:
        if evaluator.name not in seen:
            seen.add(evaluator.name)
            merged.append(evaluator)
    return merged


def check_problem_type(evaluator: Evaluator, problem_type: ProblemType) -> Evaluator:
    """Raise ConfigurationError when an evaluator belongs to another task."""
    if evaluator.problem_type is not problem_type:
        raise ConfigurationError(
            f"Evaluator '{evaluator.name}' is for {evaluator.problem_type.value} problems, "
            f"not {problem_type.value}",
            error_code="EVALUATOR_PROBLEM_MISMATCH"
        )
    return evaluator
