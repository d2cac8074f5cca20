# model_selector/models/chain.py
"""Multi-stage chaining.

A ``StageChain`` fits its stages in declaration order. Stage ``i`` reads the
label, the feature vector and the outputs of stages ``1..i-1``; output names
are fixed when the chain is built so later stages can reference earlier
outputs by name. Fitting runs on a private copy of the data and either every
stage is fitted or the whole chain fails.

``MultiClassificationModelSelector`` uses a three stage chain: model
selection, raw per-class scores and per-class probabilities.
"""

import copy
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..data.features import Feature
from ..data.metadata import ColumnMetadata
from ..utils.exceptions import ConfigurationError, ModelSelectorError, TrainingError, handle_and_reraise
from ..utils.logger import get_logger
from ..utils.timer import timed_operation
from .selector import MultiClassModelSelector, ModelSelector, SelectedModel, check_input, feature_matrix
from .stages import FittedStage, Stage, attach_metadata
from .validator import align_columns

logger = get_logger(__name__)

RAW_PREDICTION = "RawPrediction"
PROBABILITY = "Probability"


class FittedChain(FittedStage):
    """Fitted stages applied in order.

    Attributes:
        stages: Fitted stages in declaration order
        metadata_stage: Position of the stage whose metadata the chain exposes
    """

    def __init__(self, stages: Sequence[FittedStage], metadata_stage: int = 0) -> None:
        self.stages = list(stages)
        self.metadata_stage = metadata_stage
        self.output_name = self.stages[-1].output_name

    @property
    def output_names(self) -> List[str]:
        return [stage.output_name for stage in self.stages]

    def stage(self, output_name: str) -> FittedStage:
        for fitted in self.stages:
            if fitted.output_name == output_name:
                return fitted
        raise KeyError(output_name)

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Append every stage output to a copy of ``frame``."""
        result = frame.copy()
        for fitted in self.stages:
            result = fitted.transform(result)
        return result

    def get_metadata(self) -> ColumnMetadata:
        return self.stages[self.metadata_stage].get_metadata()

    def __repr__(self) -> str:
        return f"FittedChain(outputs={self.output_names})"


class StageChain:
    """Ordered composition of stages.

    Args:
        label: Response feature every stage can read
        features: Feature vector every stage can read
        stages: Stages in fit order, output names must be unique
        metadata_stage: Position of the stage whose metadata the fitted chain exposes

    Raises:
        ConfigurationError: If there are no stages, or output names collide
            with each other or with the inputs
    """

    def __init__(
        self,
        label: Feature,
        features: Feature,
        stages: Sequence[Stage],
        metadata_stage: int = 0
    ) -> None:
        if not stages:
            raise ConfigurationError("A stage chain needs at least one stage", error_code="CHAIN_EMPTY")
        if not 0 <= metadata_stage < len(stages):
            raise ConfigurationError(
                f"Metadata stage {metadata_stage} is outside the chain",
                error_code="CHAIN_METADATA_STAGE_INVALID",
                context={"stages": len(stages)}
            )
        self.label = label
        self.features = features
        self.metadata_stage = metadata_stage

        self.stages: List[Stage] = []
        available = [label.name, features.name]
        for stage in stages:
            if stage.output_name in available:
                raise ConfigurationError(
                    f"Stage '{stage.name}' output '{stage.output_name}' is already defined in the chain",
                    error_code="CHAIN_OUTPUT_DUPLICATE",
                    context={"defined": list(available)}
                )
            declared = copy.copy(stage)
            declared.inputs = tuple(available)
            self.stages.append(declared)
            available.append(stage.output_name)

    @property
    def output_names(self) -> List[str]:
        return [stage.output_name for stage in self.stages]

    def fit(self, frame: pd.DataFrame) -> FittedChain:
        """Fit every stage in order.

        Raises:
            ModelSelectorError: Raised by a stage, unchanged
            TrainingError: If a stage fails with any other exception
        """
        data = frame.copy()
        fitted: Dict[str, FittedStage] = {}
        with timed_operation(f"StageChain[{', '.join(self.output_names)}].fit"):
            for position, stage in enumerate(self.stages, start=1):
                logger.info(f"🔗 Fitting stage {position}/{len(self.stages)}: {stage.name} -> {stage.output_name}")
                try:
                    fitted_stage = stage.fit(data, dict(fitted))
                    data = fitted_stage.transform(data)
                except ModelSelectorError as e:
                    logger.error(f"Stage '{stage.name}' failed, chain is not fitted: {e}")
                    raise
                except Exception as e:
                    handle_and_reraise(
                        e, TrainingError,
                        f"Stage '{stage.name}' failed while fitting",
                        error_code="STAGE_FAILED",
                        context={"stage": stage.name, "position": position}
                    )
                fitted[stage.output_name] = fitted_stage
        return FittedChain([fitted[name] for name in self.output_names], self.metadata_stage)

    def __repr__(self) -> str:
        return f"StageChain(label={self.label.name!r}, outputs={self.output_names})"


class SelectionStage(Stage):
    """Runs a configured ``ModelSelector`` as a chain stage."""

    def __init__(self, selector: ModelSelector, output_name: str, name: str = "selection") -> None:
        super().__init__(name, output_name)
        self.selector = selector

    def fit(self, frame, upstream):
        return self.selector.set_output_name(self.output_name).fit(frame)


class _SourceStage(Stage):
    """Stage reading the output of an earlier stage named ``source``."""

    def __init__(self, name: str, output_name: str, source: str) -> None:
        super().__init__(name, output_name)
        self.source = source

    def _upstream(self, upstream: Dict[str, FittedStage]) -> FittedStage:
        if self.source not in self.inputs or self.source not in upstream:
            raise ConfigurationError(
                f"Stage '{self.name}' reads '{self.source}', which is not produced by an earlier stage",
                error_code="CHAIN_INPUT_UNKNOWN",
                context={"inputs": list(self.inputs)}
            )
        return upstream[self.source]


def _object_column(rows: np.ndarray, index: pd.Index) -> pd.Series:
    values = np.empty(len(rows), dtype=object)
    for position, row in enumerate(rows):
        values[position] = row
    return pd.Series(values, index=index, dtype=object)


class FittedRawScore(FittedStage):
    """Per-class raw scores of a selected classifier."""

    def __init__(self, model: SelectedModel, output_name: str) -> None:
        self.model = model
        self.output_name = output_name
        self.kind = "decision_function" if hasattr(model.estimator, "decision_function") else "probability"

    def scores(self, frame: pd.DataFrame) -> np.ndarray:
        estimator = self.model.estimator
        X = feature_matrix(frame, self.model.features).to_numpy(dtype=float)
        if self.kind == "decision_function":
            raw = np.asarray(estimator.decision_function(X), dtype=float)
            if raw.ndim == 1:
                # Two classes: margin of the second class over the first
                raw = np.column_stack([np.zeros_like(raw), raw])
        else:
            raw = np.asarray(estimator.predict_proba(X), dtype=float)
        return align_columns(raw, np.asarray(estimator.classes_), self.model.classes)

    def transform(self, frame):
        result = frame.copy()
        result[self.output_name] = _object_column(self.scores(frame), frame.index)
        attach_metadata(result, self.output_name, self.get_metadata())
        return result

    def get_metadata(self):
        metadata = ColumnMetadata()
        metadata.set_nested_map(RAW_PREDICTION, {
            "kind": self.kind,
            "classes": [float(c) for c in self.model.classes],
            "source": self.model.output_name,
        })
        return metadata


class RawScoreStage(_SourceStage):
    """Raw per-class scores: ``decision_function`` when the model has one, else ``predict_proba``."""

    def fit(self, frame, upstream):
        model = self._upstream(upstream)
        if not isinstance(model, SelectedModel) or model.classes is None:
            raise ConfigurationError(
                f"Stage '{self.name}' needs a fitted classifier as input",
                error_code="CHAIN_INPUT_INVALID"
            )
        return FittedRawScore(model, self.output_name)


class FittedProbability(FittedStage):
    """Per-class probabilities computed from a raw score column."""

    def __init__(self, source: FittedRawScore, output_name: str) -> None:
        self.source = source
        self.output_name = output_name
        self.method = "softmax" if source.kind == "decision_function" else "normalize"

    def probabilities(self, raw: np.ndarray) -> np.ndarray:
        if self.method == "softmax":
            shifted = np.exp(raw - raw.max(axis=1, keepdims=True))
            return shifted / shifted.sum(axis=1, keepdims=True)
        totals = raw.sum(axis=1, keepdims=True)
        uniform = np.full_like(raw, 1.0 / raw.shape[1])
        return np.where(totals > 0, raw / np.where(totals > 0, totals, 1.0), uniform)

    def transform(self, frame):
        if self.source.output_name in frame.columns:
            raw = np.vstack(frame[self.source.output_name].to_numpy())
        else:
            raw = self.source.scores(frame)
        result = frame.copy()
        result[self.output_name] = _object_column(self.probabilities(raw), frame.index)
        attach_metadata(result, self.output_name, self.get_metadata())
        return result

    def get_metadata(self):
        metadata = ColumnMetadata()
        metadata.set_nested_map(PROBABILITY, {
            "method": self.method,
            "classes": [float(c) for c in self.source.model.classes],
            "source": self.source.output_name,
        })
        return metadata


class ProbabilityStage(_SourceStage):
    """Probabilities from raw scores: softmax of margins or normalized probabilities."""

    def fit(self, frame, upstream):
        raw = self._upstream(upstream)
        if not isinstance(raw, FittedRawScore):
            raise ConfigurationError(
                f"Stage '{self.name}' needs a raw score stage as input",
                error_code="CHAIN_INPUT_INVALID"
            )
        return FittedProbability(raw, self.output_name)


class MultiClassificationModelSelector(MultiClassModelSelector):
    """Multiclass model selector producing prediction, raw score and probability columns.

    ``fit`` returns a ``FittedChain`` whose metadata is the selection stage's
    provenance record.

    Example:
        >>> chain = (
        ...     MultiClassificationModelSelector
        ...     .with_cross_validation(num_folds=3, seed=7)
        ...     .set_input(label, features)
        ...     .fit(frame)
        ... )
        >>> chain.transform(frame)[["y_prediction", "y_rawPrediction", "y_probability"]]
    """

    def raw_prediction_name(self) -> str:
        label, _ = check_input(self._label, self._features)
        return f"{label.name}_rawPrediction"

    def probability_name(self) -> str:
        label, _ = check_input(self._label, self._features)
        return f"{label.name}_probability"

    def chain(self) -> StageChain:
        """Three stage chain for the current configuration."""
        label, features = check_input(self._label, self._features)
        selection = SelectionStage(MultiClassModelSelector(self._config, label, features), self.get_output_name())
        raw = RawScoreStage("rawPrediction", self.raw_prediction_name(), selection.output_name)
        probability = ProbabilityStage("probability", self.probability_name(), raw.output_name)
        return StageChain(label, features, [selection, raw, probability], metadata_stage=0)

    def fit(self, frame: pd.DataFrame) -> FittedChain:  # type: ignore[override]
        return self.chain().fit(frame)


def predicted_probabilities(frame: pd.DataFrame, column: str) -> Optional[np.ndarray]:
    """Stack an array column produced by a chain stage into a matrix."""
    if column not in frame.columns:
        return None
    return np.vstack(frame[column].to_numpy())
