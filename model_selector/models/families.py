# model_selector/models/families.py
"""Model families the selector can try.

A ``ModelFamily`` is an opaque factory: given hyperparameters and a seed it
returns an unfitted estimator with ``fit``/``predict`` (and ``predict_proba``
for classifiers). Families are held in a thread-safe registry so custom
families can be added next to the built-in scikit-learn and XGBoost ones.
"""

from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

import numpy as np
from sklearn.ensemble import (
    GradientBoostingClassifier,
    GradientBoostingRegressor,
    RandomForestClassifier,
    RandomForestRegressor,
)
from sklearn.linear_model import ElasticNet, LinearRegression, LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.preprocessing import LabelEncoder
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from ..config.selector_config import ProblemType
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Optional model imports with fallbacks
try:
    import xgboost as xgb
    XGBOOST_AVAILABLE = True
except ImportError:
    XGBOOST_AVAILABLE = False
    logger.warning("XGBoost not available")

REGRESSION = frozenset({ProblemType.REGRESSION})
BINARY = frozenset({ProblemType.BINARY_CLASSIFICATION})
CLASSIFICATION = frozenset({ProblemType.BINARY_CLASSIFICATION, ProblemType.MULTI_CLASSIFICATION})


@dataclass(frozen=True)
class ModelFamily:
    """Factory for one kind of estimator.

    Attributes:
        name: Unique family name, recorded in provenance metadata
        problem_types: Tasks this family can be used for
        builder: Callable ``(params, seed) -> estimator``
        param_names: Hyperparameters accepted in grids
        default_params: Values used when a grid does not set a parameter
    """

    name: str
    problem_types: FrozenSet[ProblemType]
    builder: Callable[[Dict[str, Any], int], Any] = field(compare=False)
    param_names: Tuple[str, ...] = ()
    default_params: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def supports(self, problem_type: ProblemType) -> bool:
        return problem_type in self.problem_types

    def check_param(self, param_name: str) -> None:
        """Raise ConfigurationError if ``param_name`` cannot be tuned for this family."""
        if param_name not in self.param_names:
            raise ConfigurationError(
                f"Model family '{self.name}' has no hyperparameter '{param_name}'",
                error_code="UNKNOWN_HYPERPARAMETER",
                context={"family": self.name, "valid_params": list(self.param_names)}
            )

    def build(self, params: Dict[str, Any], seed: int) -> Any:
        """Create an unfitted estimator for ``params`` on top of the defaults."""
        merged = {**self.default_params, **params}
        return self.builder(merged, seed)


class LabelEncodedClassifier:
    """Wraps a classifier that needs labels encoded as ``0..k-1``.

    Predictions and ``classes_`` are reported in the original label space.
    """

    def __init__(self, estimator: Any) -> None:
        self.estimator = estimator
        self._encoder = LabelEncoder()

    def fit(self, X, y):
        encoded = self._encoder.fit_transform(np.asarray(y))
        self.estimator.fit(X, encoded)
        return self

    @property
    def classes_(self) -> np.ndarray:
        return self._encoder.classes_

    def predict(self, X) -> np.ndarray:
        return self._encoder.inverse_transform(np.asarray(self.estimator.predict(X)).astype(int))

    def predict_proba(self, X) -> np.ndarray:
        return self.estimator.predict_proba(X)

    def __repr__(self) -> str:
        return f"LabelEncodedClassifier({self.estimator!r})"


def _linear_regression(params: Dict[str, Any], seed: int) -> Any:
    # Unregularized fits use the closed form solver
    if params["alpha"] == 0:
        return LinearRegression(fit_intercept=params["fit_intercept"])
    return ElasticNet(
        alpha=params["alpha"],
        l1_ratio=params["l1_ratio"],
        max_iter=params["max_iter"],
        tol=params["tol"],
        fit_intercept=params["fit_intercept"],
        random_state=seed,
    )


def _sklearn(estimator_class: type, seeded: bool = True) -> Callable[[Dict[str, Any], int], Any]:
    def build(params: Dict[str, Any], seed: int) -> Any:
        if seeded:
            return estimator_class(random_state=seed, **params)
        return estimator_class(**params)
    build.__name__ = f"build_{estimator_class.__name__}"
    return build


def _require_xgboost(family_name: str) -> None:
    if not XGBOOST_AVAILABLE:
        raise ConfigurationError(
            f"Model family '{family_name}' requires the xgboost package",
            error_code="XGBOOST_NOT_AVAILABLE"
        )


def _xgboost_regression(params: Dict[str, Any], seed: int) -> Any:
    _require_xgboost("XGBoostRegression")
    return xgb.XGBRegressor(random_state=seed, verbosity=0, n_jobs=1, **params)


def _xgboost_classification(params: Dict[str, Any], seed: int) -> Any:
    _require_xgboost("XGBoost")
    return LabelEncodedClassifier(xgb.XGBClassifier(random_state=seed, verbosity=0, n_jobs=1, **params))


_TREE_PARAMS = ("max_depth", "min_samples_split", "min_samples_leaf", "max_features", "min_impurity_decrease")
_FOREST_PARAMS = _TREE_PARAMS + ("n_estimators", "bootstrap", "max_samples")
_GBT_PARAMS = _TREE_PARAMS + ("n_estimators", "learning_rate", "subsample")
_XGB_PARAMS = ("n_estimators", "max_depth", "learning_rate", "subsample", "colsample_bytree",
               "min_child_weight", "gamma", "reg_alpha", "reg_lambda")

BUILTIN_FAMILIES: Tuple[ModelFamily, ...] = (
    ModelFamily(
        name="LinearRegression",
        problem_types=REGRESSION,
        builder=_linear_regression,
        param_names=("alpha", "l1_ratio", "max_iter", "tol", "fit_intercept"),
        default_params={"alpha": 0.0, "l1_ratio": 0.0, "max_iter": 100, "tol": 1e-6, "fit_intercept": True},
    ),
    ModelFamily(
        name="RandomForestRegression",
        problem_types=REGRESSION,
        builder=_sklearn(RandomForestRegressor),
        param_names=_FOREST_PARAMS,
        default_params={"n_estimators": 20, "max_depth": 5},
    ),
    ModelFamily(
        name="DecisionTreeRegression",
        problem_types=REGRESSION,
        builder=_sklearn(DecisionTreeRegressor),
        param_names=_TREE_PARAMS,
        default_params={"max_depth": 5},
    ),
    ModelFamily(
        name="GBTRegression",
        problem_types=REGRESSION,
        builder=_sklearn(GradientBoostingRegressor),
        param_names=_GBT_PARAMS,
        default_params={"n_estimators": 20, "max_depth": 5},
    ),
    ModelFamily(
        name="XGBoostRegression",
        problem_types=REGRESSION,
        builder=_xgboost_regression,
        param_names=_XGB_PARAMS,
        default_params={"n_estimators": 20, "max_depth": 5},
    ),
    ModelFamily(
        name="LogisticRegression",
        problem_types=CLASSIFICATION,
        builder=_sklearn(LogisticRegression),
        param_names=("C", "max_iter", "tol", "fit_intercept", "class_weight"),
        default_params={"max_iter": 200},
    ),
    ModelFamily(
        name="RandomForest",
        problem_types=CLASSIFICATION,
        builder=_sklearn(RandomForestClassifier),
        param_names=_FOREST_PARAMS + ("class_weight",),
        default_params={"n_estimators": 20, "max_depth": 5},
    ),
    ModelFamily(
        name="DecisionTree",
        problem_types=CLASSIFICATION,
        builder=_sklearn(DecisionTreeClassifier),
        param_names=_TREE_PARAMS + ("class_weight",),
        default_params={"max_depth": 5},
    ),
    ModelFamily(
        name="NaiveBayes",
        problem_types=CLASSIFICATION,
        builder=_sklearn(GaussianNB, seeded=False),
        param_names=("var_smoothing",),
    ),
    ModelFamily(
        name="GBT",
        problem_types=BINARY,
        builder=_sklearn(GradientBoostingClassifier),
        param_names=_GBT_PARAMS,
        default_params={"n_estimators": 20, "max_depth": 5},
    ),
    ModelFamily(
        name="XGBoost",
        problem_types=CLASSIFICATION,
        builder=_xgboost_classification,
        param_names=_XGB_PARAMS,
        default_params={"n_estimators": 20, "max_depth": 5},
    ),
)


class FamilyRegistry:
    """Thread-safe singleton registry of model families."""

    _instance = None
    _lock = Lock()

    def __new__(cls) -> "FamilyRegistry":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._families = {family.name: family for family in BUILTIN_FAMILIES}
                    cls._instance = instance
        return cls._instance

    def register(self, family: ModelFamily) -> None:
        """Register a custom family, replacing any family with the same name."""
        if not isinstance(family, ModelFamily):
            raise ConfigurationError(
                f"Expected a ModelFamily, got {type(family).__name__}",
                error_code="INVALID_FAMILY"
            )
        with self._lock:
            if family.name in self._families:
                logger.warning(f"Overriding existing model family: {family.name}")
            self._families[family.name] = family
        logger.info(f"Registered model family: {family.name}")

    def get(self, name: str) -> ModelFamily:
        with self._lock:
            family = self._families.get(name)
        if family is None:
            raise ConfigurationError(
                f"Unknown model family: {name}",
                error_code="UNKNOWN_FAMILY",
                context={"available": self.names()}
            )
        return family

    def names(self, problem_type: Optional[ProblemType] = None) -> List[str]:
        with self._lock:
            families = list(self._families.values())
        return [f.name for f in families if problem_type is None or f.supports(problem_type)]


def register_family(family: ModelFamily) -> None:
    FamilyRegistry().register(family)


def get_family(name: str) -> ModelFamily:
    return FamilyRegistry().get(name)


class RegressionModelsToTry(Enum):
    """Built-in regression families."""

    LINEAR_REGRESSION = "LinearRegression"
    RANDOM_FOREST_REGRESSION = "RandomForestRegression"
    DECISION_TREE_REGRESSION = "DecisionTreeRegression"
    GBT_REGRESSION = "GBTRegression"
    XGBOOST_REGRESSION = "XGBoostRegression"


class BinaryClassificationModelsToTry(Enum):
    """Built-in binary classification families."""

    LOGISTIC_REGRESSION = "LogisticRegression"
    RANDOM_FOREST = "RandomForest"
    DECISION_TREE = "DecisionTree"
    NAIVE_BAYES = "NaiveBayes"
    GBT = "GBT"
    XGBOOST = "XGBoost"


class MultiClassificationModelsToTry(Enum):
    """Built-in multiclass classification families."""

    LOGISTIC_REGRESSION = "LogisticRegression"
    RANDOM_FOREST = "RandomForest"
    DECISION_TREE = "DecisionTree"
    NAIVE_BAYES = "NaiveBayes"
    XGBOOST = "XGBoost"


DEFAULT_MODELS = {
    ProblemType.REGRESSION: ("LinearRegression", "RandomForestRegression", "GBTRegression"),
    ProblemType.BINARY_CLASSIFICATION: ("LogisticRegression", "RandomForest", "GBT"),
    ProblemType.MULTI_CLASSIFICATION: ("LogisticRegression", "RandomForest", "DecisionTree", "NaiveBayes"),
}


def resolve_family(model: Any, problem_type: ProblemType) -> ModelFamily:
    """Turn a ModelsToTry member, family name or ModelFamily into a family for ``problem_type``.

    Raises:
        ConfigurationError: If the family is unknown or does not support the task
    """
    if isinstance(model, ModelFamily):
        family = model
    elif isinstance(model, Enum):
        family = get_family(model.value)
    elif isinstance(model, str):
        family = get_family(model)
    else:
        raise ConfigurationError(
            f"Cannot interpret {model!r} as a model family",
            error_code="INVALID_FAMILY"
        )
    if not family.supports(problem_type):
        raise ConfigurationError(
            f"Model family '{family.name}' does not support {problem_type.value} problems",
            error_code="FAMILY_PROBLEM_MISMATCH",
            context={"family": family.name, "problem_type": problem_type.value}
        )
    return family
