# model_selector/models/selector.py
"""Automatic model selection.

A ``ModelSelector`` is an immutable description of a search: candidate
families with hyperparameter grids, a validation strategy, an optional
holdout splitter and the evaluators to report. Every builder method returns
a new selector. ``fit`` runs the search, refits the winner on the whole
train partition, scores it on train and holdout and returns a
``SelectedModel`` whose output column carries the provenance metadata.

Example:
    >>> selector = (
    ...     RegressionModelSelector
    ...     .with_cross_validation(num_folds=4, validation_metric=Evaluators.Regression.mse(), seed=10)
    ...     .set_models_to_try(RegressionModelsToTry.LINEAR_REGRESSION,
    ...                        RegressionModelsToTry.RANDOM_FOREST_REGRESSION)
    ...     .set_linear_regression_elastic_net_param(0, 0.5, 1)
    ...     .set_random_forest_max_depth(2, 10)
    ...     .set_input(label, features)
    ... )
    >>> model = selector.fit(frame)
    >>> model.get_metadata().get_nested_map("HoldOutEval")
"""

import copy
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config.selector_config import Candidate, ParamGrid, ProblemType, SelectorConfig
from ..data.features import Feature, FeatureType, response_sub_features
from ..data.metadata import ColumnMetadata
from ..data.splitter import (
    DEFAULT_RESERVE_TEST_FRACTION,
    DEFAULT_SEED,
    DataBalancer,
    DataCutter,
    DataSplitter,
    Splitter,
)
from ..utils.exceptions import ConfigurationError, DataError, ModelSelectorError
from ..utils.logger import get_logger
from ..utils.timer import timed_operation, timer
from .evaluators import Evaluator, Evaluators, Prediction, check_problem_type, merge_evaluators
from .families import DEFAULT_MODELS, LabelEncodedClassifier, get_family, resolve_family
from .provenance import ProvenanceRecord, decode_provenance, encode_provenance
from .stages import FittedStage, attach_metadata
from .validator import (
    BaseValidator,
    CrossValidation,
    SelectionResult,
    TrainValidationSplit,
    fit_estimator,
    predict,
)

logger = get_logger(__name__)

RESPONSE_IN_FEATURES_MESSAGE = "The feature vector should not contain any response features."

_UNSET = object()


class SelectorState(Enum):
    """Lifecycle of one ``fit`` call."""

    UNCONFIGURED = "Unconfigured"
    CONFIGURED = "Configured"
    SEARCHING = "Searching"
    SELECTED = "Selected"
    REFITTING = "Refitting"
    FITTED = "Fitted"
    FAILED = "Failed"


_TRANSITIONS = {
    SelectorState.UNCONFIGURED: {SelectorState.CONFIGURED},
    SelectorState.CONFIGURED: {SelectorState.SEARCHING},
    SelectorState.SEARCHING: {SelectorState.SELECTED},
    SelectorState.SELECTED: {SelectorState.REFITTING},
    SelectorState.REFITTING: {SelectorState.FITTED},
    SelectorState.FITTED: set(),
    SelectorState.FAILED: set(),
}


class SelectionRun:
    """State machine of a single ``fit`` call.

    ``FAILED`` is reachable from every non-terminal state; other transitions
    follow the selection lifecycle strictly. Time spent in every state is
    kept in ``durations``.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.state = SelectorState.UNCONFIGURED
        self.history: List[SelectorState] = [self.state]
        self.error: Optional[BaseException] = None
        self.durations: Dict[str, float] = {}
        self._perf_logger = get_logger(__name__, with_performance=True)
        self._perf_logger.start_timer(self._timer_name(self.state))

    def _timer_name(self, state: SelectorState) -> str:
        return f"{self.name}.{state.value}"

    @property
    def is_terminal(self) -> bool:
        return self.state in (SelectorState.FITTED, SelectorState.FAILED)

    def advance(self, new_state: SelectorState) -> None:
        """Move to ``new_state``.

        Raises:
            ModelSelectorError: If the transition is not allowed
        """
        if new_state is SelectorState.FAILED:
            if self.is_terminal:
                raise ModelSelectorError(
                    f"Cannot fail a run that is already {self.state.value}",
                    error_code="ILLEGAL_TRANSITION"
                )
        elif new_state not in _TRANSITIONS[self.state]:
            raise ModelSelectorError(
                f"Illegal selector transition {self.state.value} -> {new_state.value}",
                error_code="ILLEGAL_TRANSITION"
            )
        logger.debug(f"{self.name}: {self.state.value} -> {new_state.value}")
        self.durations[self.state.value] = self._perf_logger.stop_timer(self._timer_name(self.state))
        self.state = new_state
        self.history.append(new_state)
        if not self.is_terminal:
            self._perf_logger.start_timer(self._timer_name(new_state))

    def fail(self, error: BaseException) -> None:
        self.error = error
        self._perf_logger.log_with_context(
            logging.ERROR,
            f"❌ {self.name} failed while {self.state.value}: {error}",
            run=self.name, state=self.state.value, error_type=type(error).__name__
        )
        self.advance(SelectorState.FAILED)


class SelectedModel(FittedStage):
    """Fitted model returned by ``ModelSelector.fit``.

    Attributes:
        estimator: Refit estimator of the winning configuration
        selection: Search outcome with every configuration's score
        output_name: Name of the appended prediction column
        run: State machine of the fit that produced this model
    """

    def __init__(
        self,
        estimator: Any,
        features: Feature,
        label: Feature,
        output_name: str,
        problem_type: ProblemType,
        classes: Optional[np.ndarray],
        selection: SelectionResult,
        metadata: ColumnMetadata,
        run: SelectionRun
    ) -> None:
        self.estimator = estimator
        self.features = features
        self.label = label
        self.output_name = output_name
        self.problem_type = problem_type
        self.classes = classes
        self.selection = selection
        self.run = run
        self._metadata = metadata

    @property
    def best_model_type(self) -> str:
        return self.selection.best.family_name

    @property
    def best_params(self) -> Dict[str, Any]:
        return dict(self.selection.best.params)

    def predict(self, frame: pd.DataFrame) -> Prediction:
        """Model output on the feature columns of ``frame``."""
        X = feature_matrix(frame, self.features)
        return predict(self.estimator, X.to_numpy(dtype=float), self.classes)

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Return a copy of ``frame`` with the prediction column and its metadata."""
        prediction = self.predict(frame)
        result = frame.copy()
        result[self.output_name] = prediction.values
        attach_metadata(result, self.output_name, self._metadata)
        return result

    def get_metadata(self) -> ColumnMetadata:
        return ColumnMetadata.from_dict(self._metadata.to_dict())

    def provenance(self) -> ProvenanceRecord:
        """Provenance record decoded from the output column metadata."""
        return decode_provenance(self._metadata)

    def __repr__(self) -> str:
        return f"SelectedModel({self.selection.best.describe()}, output={self.output_name!r})"


def feature_matrix(frame: pd.DataFrame, features: Feature) -> pd.DataFrame:
    """Numeric feature columns of ``frame`` in vector order.

    Raises:
        DataError: If the vector has no metadata, columns are missing or values
            are not finite numbers
    """
    if features.vector_metadata is None or features.vector_metadata.size == 0:
        raise DataError(
            f"Feature vector '{features.name}' has no column metadata",
            error_code="VECTOR_MALFORMED"
        )
    columns = features.vector_metadata.column_names()
    missing = [column for column in columns if column not in frame.columns]
    if missing:
        raise DataError(
            f"Feature columns missing from dataset: {missing}",
            error_code="FEATURE_COLUMNS_MISSING",
            context={"vector": features.name, "missing": missing}
        )
    X = frame[columns]
    non_numeric = [column for column in columns if not pd.api.types.is_numeric_dtype(X[column])]
    if non_numeric:
        raise DataError(
            f"Feature columns must be numeric: {non_numeric}",
            error_code="FEATURE_COLUMNS_NOT_NUMERIC",
            context={"vector": features.name}
        )
    if not np.isfinite(X.to_numpy(dtype=float)).all():
        raise DataError(
            f"Feature vector '{features.name}' contains null or infinite values",
            error_code="FEATURE_VALUES_NOT_FINITE"
        )
    return X


def label_values(frame: pd.DataFrame, label: Feature, problem_type: ProblemType) -> pd.Series:
    """Label column as floats.

    Raises:
        DataError: If the column is missing, not numeric, has nulls or does
            not hold class indices for classification
    """
    if label.name not in frame.columns:
        raise DataError(
            f"Label column '{label.name}' missing from dataset",
            error_code="LABEL_MISSING"
        )
    column = frame[label.name]
    if not pd.api.types.is_numeric_dtype(column):
        raise DataError(
            f"Label column '{label.name}' must be numeric, got {column.dtype}",
            error_code="LABEL_NOT_NUMERIC"
        )
    if column.isna().any():
        raise DataError(
            f"Label column '{label.name}' contains null values",
            error_code="LABEL_HAS_NULLS",
            context={"null_count": int(column.isna().sum())}
        )
    values = column.astype(float)
    if problem_type.is_classification:
        if not (np.isfinite(values) & (values >= 0) & (values == np.round(values))).all():
            raise DataError(
                f"Classification label '{label.name}' must hold non-negative integer class indices",
                error_code="LABEL_NOT_CLASS_INDEX"
            )
        if problem_type is ProblemType.BINARY_CLASSIFICATION and not values.isin([0.0, 1.0]).all():
            raise DataError(
                f"Binary label '{label.name}' must only contain 0 and 1",
                error_code="LABEL_NOT_BINARY",
                context={"labels": sorted(values.unique().tolist())[:10]}
            )
    elif not np.isfinite(values).all():
        raise DataError(f"Label column '{label.name}' contains infinite values", error_code="LABEL_NOT_FINITE")
    return values


def check_input(label: Optional[Feature], features: Optional[Feature]) -> Tuple[Feature, Feature]:
    """Validate selector inputs.

    Raises:
        ConfigurationError: If inputs are unset, the label is not a numeric
            response, the features are not a vector or contain a response
    """
    if label is None or features is None:
        raise ConfigurationError(
            "Label and features must be set with set_input before fitting",
            error_code="INPUT_NOT_SET"
        )
    if not isinstance(label, Feature) or not isinstance(features, Feature):
        raise ConfigurationError("Label and features must be Feature instances", error_code="INPUT_INVALID")
    if not label.is_response:
        raise ConfigurationError(
            f"Label feature '{label.name}' must be a response feature",
            error_code="LABEL_NOT_RESPONSE"
        )
    if not label.feature_type.is_numeric:
        raise ConfigurationError(
            f"Label feature '{label.name}' must be numeric, got {label.feature_type.value}",
            error_code="LABEL_TYPE_INVALID"
        )
    if features.feature_type is not FeatureType.VECTOR:
        raise ConfigurationError(
            f"Features '{features.name}' must be a feature vector, got {features.feature_type.value}",
            error_code="FEATURES_NOT_VECTOR"
        )
    responses = response_sub_features(features)
    if responses:
        raise ConfigurationError(RESPONSE_IN_FEATURES_MESSAGE, context={"response_features": responses})
    return label, features


class ModelSelector:
    """Immutable model selector shared by all problem types.

    Subclasses set ``problem_type`` and the family names used by the
    per-family grid setters.
    """

    problem_type: ProblemType = ProblemType.REGRESSION
    random_forest_family = "RandomForestRegression"
    decision_tree_family = "DecisionTreeRegression"
    gbt_family = "GBTRegression"
    xgboost_family = "XGBoostRegression"

    def __init__(
        self,
        config: Optional[SelectorConfig] = None,
        label: Optional[Feature] = None,
        features: Optional[Feature] = None
    ) -> None:
        self._config = config if config is not None else self.default_config()
        if self._config.problem_type is not self.problem_type:
            raise ConfigurationError(
                f"{type(self).__name__} cannot use a {self._config.problem_type.value} configuration",
                error_code="PROBLEM_TYPE_MISMATCH"
            )
        self._label = label
        self._features = features

    # Construction

    @classmethod
    def default_splitter(cls, reserve_test_fraction: float = DEFAULT_RESERVE_TEST_FRACTION,
                         seed: int = DEFAULT_SEED) -> Splitter:
        return DataSplitter(reserve_test_fraction=reserve_test_fraction, seed=seed)

    @classmethod
    def default_evaluator(cls) -> Evaluator:
        return Evaluators.default(cls.problem_type)

    @classmethod
    def default_config(cls) -> SelectorConfig:
        return SelectorConfig(
            problem_type=cls.problem_type,
            candidates=tuple(Candidate(get_family(name)) for name in DEFAULT_MODELS[cls.problem_type]),
            validator=CrossValidation(cls.default_evaluator(), num_folds=3, seed=DEFAULT_SEED),
            splitter=cls.default_splitter(),
        )

    @classmethod
    def _with_validator(
        cls,
        validator: BaseValidator,
        splitter: Any,
        train_test_evaluators: Sequence[Evaluator],
        models: Optional[Sequence[Any]]
    ) -> "ModelSelector":
        check_problem_type(validator.evaluator, cls.problem_type)
        for evaluator in train_test_evaluators:
            check_problem_type(evaluator, cls.problem_type)
        config = cls.default_config().evolve(
            validator=validator,
            splitter=cls.default_splitter(seed=validator.seed) if splitter is _UNSET else splitter,
            train_test_evaluators=tuple(train_test_evaluators),
        )
        selector = cls(config)
        if models is not None:
            selector = selector.set_models_to_try(*models)
        return selector

    @classmethod
    def with_cross_validation(
        cls,
        num_folds: int = 3,
        validation_metric: Optional[Evaluator] = None,
        train_test_evaluators: Sequence[Evaluator] = (),
        seed: int = DEFAULT_SEED,
        splitter: Any = _UNSET,
        stratify: bool = False,
        models: Optional[Sequence[Any]] = None,
        executor: Any = None
    ) -> "ModelSelector":
        """Selector validating with k-fold cross-validation.

        Args:
            num_folds: Number of folds, at least 2
            validation_metric: Evaluator whose primary metric ranks configurations
            train_test_evaluators: Extra evaluators reported on train and holdout
            seed: Seed of folds, models and the default splitter
            splitter: Holdout splitter, ``None`` for no holdout
            stratify: Stratify folds by label for classification
            models: Families to try, defaults of the problem type if omitted
            executor: Execution strategy for fold evaluations

        Raises:
            ConfigurationError: If ``num_folds`` < 2 or evaluators belong to another task
        """
        validator = CrossValidation(
            validation_metric or cls.default_evaluator(),
            num_folds=num_folds,
            seed=seed,
            stratify=stratify,
            executor=executor,
        )
        return cls._with_validator(validator, splitter, train_test_evaluators, models)

    @classmethod
    def with_train_validation_split(
        cls,
        train_ratio: float = 0.75,
        validation_metric: Optional[Evaluator] = None,
        train_test_evaluators: Sequence[Evaluator] = (),
        seed: int = DEFAULT_SEED,
        splitter: Any = _UNSET,
        models: Optional[Sequence[Any]] = None,
        executor: Any = None
    ) -> "ModelSelector":
        """Selector validating with a single train/validation split.

        Raises:
            ConfigurationError: If ``train_ratio`` is outside (0, 1)
        """
        validator = TrainValidationSplit(
            validation_metric or cls.default_evaluator(),
            train_ratio=train_ratio,
            seed=seed,
            executor=executor,
        )
        return cls._with_validator(validator, splitter, train_test_evaluators, models)

    def _evolve(self, **changes: Any) -> "ModelSelector":
        return type(self)(self._config.evolve(**changes), self._label, self._features)

    # Builder

    @property
    def config(self) -> SelectorConfig:
        return self._config

    @property
    def label(self) -> Optional[Feature]:
        return self._label

    @property
    def features(self) -> Optional[Feature]:
        return self._features

    @property
    def validator(self) -> BaseValidator:
        return self._config.validator

    @property
    def splitter(self) -> Optional[Splitter]:
        return self._config.splitter

    @property
    def train_test_evaluators(self) -> List[Evaluator]:
        """Full default evaluator followed by the extra evaluators, unique by name."""
        return merge_evaluators([self.default_evaluator(), *self._config.train_test_evaluators])

    def set_input(self, label: Feature, features: Feature) -> "ModelSelector":
        """Selector reading ``label`` and ``features``.

        Raises:
            ConfigurationError: If the label is not a numeric response or the
                vector contains response features
        """
        check_input(label, features)
        return type(self)(self._config, label, features)

    def set_models_to_try(self, *models: Any) -> "ModelSelector":
        """Selector trying exactly ``models``, keeping grids already set for them.

        Raises:
            ConfigurationError: If no model is given or a family does not fit the task
        """
        if not models:
            raise ConfigurationError(
                "At least one model family must be selected to try",
                error_code="NO_CANDIDATES",
                context={"problem_type": self.problem_type.value}
            )
        candidates: List[Candidate] = []
        for model in models:
            family = resolve_family(model, self.problem_type)
            if any(candidate.name == family.name for candidate in candidates):
                continue
            existing = self._config.candidate(family.name)
            candidates.append(existing if existing is not None else Candidate(family))
        return self._evolve(candidates=tuple(candidates))

    def set_model_params(self, model: Any, param_name: str, *values: Any) -> "ModelSelector":
        """Selector whose grid for ``model`` tries ``values`` for ``param_name``.

        Raises:
            ConfigurationError: If the family is not selected, the parameter is
                unknown or no values are given
        """
        family = resolve_family(model, self.problem_type)
        family.check_param(param_name)
        existing = self._config.candidate(family.name)
        if existing is None:
            raise ConfigurationError(
                f"Model family '{family.name}' is not among the models to try",
                error_code="FAMILY_NOT_SELECTED",
                context={"selected": [candidate.name for candidate in self._config.candidates]}
            )
        updated = Candidate(existing.family, existing.grid.with_values(param_name, *values))
        candidates = tuple(updated if c.name == family.name else c for c in self._config.candidates)
        return self._evolve(candidates=candidates)

    def set_model_grid(self, model: Any, grid: Dict[str, Sequence[Any]]) -> "ModelSelector":
        selector = self
        for param_name, values in ParamGrid.from_dict(grid).entries:
            selector = selector.set_model_params(model, param_name, *values)
        return selector

    def set_validator(self, validator: BaseValidator) -> "ModelSelector":
        check_problem_type(validator.evaluator, self.problem_type)
        return self._evolve(validator=validator)

    def set_splitter(self, splitter: Optional[Splitter]) -> "ModelSelector":
        """Selector reserving a holdout with ``splitter``, or none when ``None``."""
        if splitter is not None and not isinstance(splitter, Splitter):
            raise ConfigurationError(
                f"Expected a Splitter, got {type(splitter).__name__}",
                error_code="SPLITTER_INVALID"
            )
        return self._evolve(splitter=splitter)

    def set_train_test_evaluators(self, *evaluators: Evaluator) -> "ModelSelector":
        for evaluator in evaluators:
            check_problem_type(evaluator, self.problem_type)
        return self._evolve(train_test_evaluators=tuple(evaluators))

    def set_executor(self, executor: Any) -> "ModelSelector":
        return self._evolve(validator=self._config.validator.with_executor(executor))

    def set_output_name(self, name: str) -> "ModelSelector":
        if not name:
            raise ConfigurationError("Output name must be a non-empty string", error_code="OUTPUT_NAME_EMPTY")
        return self._evolve(output_name=name)

    def get_output_name(self) -> str:
        """Prediction column name, ``<label>_prediction`` unless overridden."""
        if self._config.output_name:
            return self._config.output_name
        if self._label is None:
            raise ConfigurationError(
                "Output name depends on the label, call set_input first",
                error_code="INPUT_NOT_SET"
            )
        return f"{self._label.name}_prediction"

    # Per-family grid setters shared by every problem type

    def set_random_forest_max_depth(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.random_forest_family, "max_depth", *values)

    def set_random_forest_num_trees(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.random_forest_family, "n_estimators", *values)

    def set_random_forest_min_instances_per_node(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.random_forest_family, "min_samples_leaf", *values)

    def set_random_forest_max_features(self, *values: Any) -> "ModelSelector":
        return self.set_model_params(self.random_forest_family, "max_features", *values)

    def set_decision_tree_max_depth(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.decision_tree_family, "max_depth", *values)

    def set_decision_tree_min_instances_per_node(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.decision_tree_family, "min_samples_leaf", *values)

    def set_gradient_boosted_tree_max_depth(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.gbt_family, "max_depth", *values)

    def set_gradient_boosted_tree_num_trees(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.gbt_family, "n_estimators", *values)

    def set_gradient_boosted_tree_step_size(self, *values: float) -> "ModelSelector":
        return self.set_model_params(self.gbt_family, "learning_rate", *values)

    def set_xgboost_max_depth(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.xgboost_family, "max_depth", *values)

    def set_xgboost_num_round(self, *values: int) -> "ModelSelector":
        return self.set_model_params(self.xgboost_family, "n_estimators", *values)

    def set_xgboost_eta(self, *values: float) -> "ModelSelector":
        return self.set_model_params(self.xgboost_family, "learning_rate", *values)

    # Fitting

    @timer(name="ModelSelector.fit")
    def fit(self, frame: pd.DataFrame) -> SelectedModel:
        """Search, refit and evaluate on ``frame``.

        Returns:
            SelectedModel whose output column metadata holds the provenance record

        Raises:
            ConfigurationError: If the selector is incomplete or its inputs are invalid
            DataError: If ``frame`` does not match the declared features
            TrainingError: If any configuration fails to fit
            EvaluationError: If any metric fails
        """
        run = SelectionRun(type(self).__name__)
        try:
            return self._fit(frame, run)
        except Exception as e:
            if not run.is_terminal:
                run.fail(e)
            raise

    def _fit(self, frame: pd.DataFrame, run: SelectionRun) -> SelectedModel:
        config = self._config
        config.validate()
        run.advance(SelectorState.CONFIGURED)

        label, features = check_input(self._label, self._features)
        output_name = self.get_output_name()

        if len(frame) == 0:
            raise DataError("Cannot fit a model selector on an empty dataset", error_code="EMPTY_DATASET")
        feature_matrix(frame, features)
        labels = label_values(frame, label, self.problem_type)
        data = frame.assign(**{label.name: labels})

        splitter = copy.deepcopy(config.splitter)
        if splitter is not None:
            train, holdout = splitter.split(data, label.name)
            data_prep_params = splitter.summary()
        else:
            train, holdout = data, data.iloc[0:0]
            data_prep_params = {}
        if len(train) == 0:
            raise DataError("Training partition is empty after splitting", error_code="EMPTY_TRAIN_PARTITION")
        logger.info(
            f"{type(self).__name__}: {len(train)} training rows, {len(holdout)} holdout rows, "
            f"{config.configuration_count()} configurations"
        )

        X_train = feature_matrix(train, features)
        y_train = train[label.name].to_numpy(dtype=float)
        classes = None
        if self.problem_type.is_classification:
            # Holdout-only labels get zero-probability columns
            classes = np.unique(np.concatenate([y_train, holdout[label.name].to_numpy(dtype=float)]))
            unseen = np.setdiff1d(classes, y_train)
            if unseen.size:
                logger.warning(f"Labels {unseen.tolist()} only occur in the holdout partition")

        run.advance(SelectorState.SEARCHING)
        selection = config.validator.validate(config.candidates, X_train, y_train, self.problem_type)
        run.advance(SelectorState.SELECTED)

        run.advance(SelectorState.REFITTING)
        with timed_operation(f"{type(self).__name__}.refit"):
            estimator = fit_estimator(
                selection.best, X_train.to_numpy(dtype=float), y_train, config.validator.seed
            )

        evaluators = self.train_test_evaluators
        train_prediction = predict(estimator, X_train.to_numpy(dtype=float), classes)
        training_eval = _evaluate(evaluators, y_train, train_prediction)

        holdout_eval = None
        if len(holdout) > 0:
            X_holdout = feature_matrix(holdout, features)
            holdout_prediction = predict(estimator, X_holdout.to_numpy(dtype=float), classes)
            holdout_eval = _evaluate(evaluators, holdout[label.name].to_numpy(dtype=float), holdout_prediction)
        elif splitter is not None:
            logger.warning("Holdout partition is empty, holdout metrics are not reported")

        record = ProvenanceRecord(
            problem_type=self.problem_type.value,
            best_model_type=selection.best.family_name,
            best_model_name=_estimator_name(estimator),
            best_model_params=dict(selection.best.params),
            validation_type=selection.validation_type,
            validation_params=dict(selection.validation_params),
            validation_results=selection.scores,
            data_prep_params=data_prep_params,
            training_eval=training_eval,
            holdout_eval=holdout_eval,
        )
        metadata = encode_provenance(record)
        run.advance(SelectorState.FITTED)
        logger.info(f"🎯 Selected {selection.best.describe()} for '{output_name}'")

        return SelectedModel(
            estimator=estimator,
            features=features,
            label=label,
            output_name=output_name,
            problem_type=self.problem_type,
            classes=classes,
            selection=selection,
            metadata=metadata,
            run=run,
        )

    def __repr__(self) -> str:
        families = [candidate.name for candidate in self._config.candidates]
        return f"{type(self).__name__}(models={families}, validator={self._config.validator!r})"


def _evaluate(evaluators: Sequence[Evaluator], labels: np.ndarray, prediction: Prediction) -> Dict[str, float]:
    scores: Dict[str, float] = {}
    for evaluator in evaluators:
        scores.update(evaluator.evaluate_all(labels, prediction))
    return scores


def _estimator_name(estimator: Any) -> str:
    if isinstance(estimator, LabelEncodedClassifier):
        estimator = estimator.estimator
    return type(estimator).__name__


class RegressionModelSelector(ModelSelector):
    """Model selector for regression problems."""

    problem_type = ProblemType.REGRESSION

    def set_linear_regression_reg_param(self, *values: float) -> "RegressionModelSelector":
        return self.set_model_params("LinearRegression", "alpha", *values)

    def set_linear_regression_elastic_net_param(self, *values: float) -> "RegressionModelSelector":
        return self.set_model_params("LinearRegression", "l1_ratio", *values)

    def set_linear_regression_max_iter(self, *values: int) -> "RegressionModelSelector":
        return self.set_model_params("LinearRegression", "max_iter", *values)

    def set_linear_regression_fit_intercept(self, *values: bool) -> "RegressionModelSelector":
        return self.set_model_params("LinearRegression", "fit_intercept", *values)

    def set_linear_regression_tol(self, *values: float) -> "RegressionModelSelector":
        return self.set_model_params("LinearRegression", "tol", *values)


class _ClassificationModelSelector(ModelSelector):
    random_forest_family = "RandomForest"
    decision_tree_family = "DecisionTree"
    gbt_family = "GBT"
    xgboost_family = "XGBoost"

    def set_logistic_regression_c(self, *values: float) -> "ModelSelector":
        """Inverse regularization strength of logistic regression."""
        return self.set_model_params("LogisticRegression", "C", *values)

    def set_logistic_regression_max_iter(self, *values: int) -> "ModelSelector":
        return self.set_model_params("LogisticRegression", "max_iter", *values)

    def set_logistic_regression_fit_intercept(self, *values: bool) -> "ModelSelector":
        return self.set_model_params("LogisticRegression", "fit_intercept", *values)

    def set_naive_bayes_var_smoothing(self, *values: float) -> "ModelSelector":
        return self.set_model_params("NaiveBayes", "var_smoothing", *values)


class BinaryClassificationModelSelector(_ClassificationModelSelector):
    """Model selector for binary classification; labels must be 0 or 1.

    The default splitter is a ``DataBalancer``.
    """

    problem_type = ProblemType.BINARY_CLASSIFICATION

    @classmethod
    def default_splitter(cls, reserve_test_fraction: float = DEFAULT_RESERVE_TEST_FRACTION,
                         seed: int = DEFAULT_SEED) -> Splitter:
        return DataBalancer(reserve_test_fraction=reserve_test_fraction, seed=seed)


class MultiClassModelSelector(_ClassificationModelSelector):
    """Single-stage model selector for multiclass problems.

    The default splitter is a ``DataCutter``. See
    ``MultiClassificationModelSelector`` for the chained variant that also
    emits raw scores and probabilities.
    """

    problem_type = ProblemType.MULTI_CLASSIFICATION

    @classmethod
    def default_splitter(cls, reserve_test_fraction: float = DEFAULT_RESERVE_TEST_FRACTION,
                         seed: int = DEFAULT_SEED) -> Splitter:
        return DataCutter(reserve_test_fraction=reserve_test_fraction, seed=seed)
