# model_selector/models/provenance.py
"""Typed provenance record of a model selection run.

A ``ProvenanceRecord`` is created once per successful fit and never
modified. ``encode_provenance`` writes it into the untyped
``ColumnMetadata`` of the prediction column; ``decode_provenance`` reads it
back, so the record can be rebuilt from the metadata alone.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from ..data.metadata import ColumnMetadata
from ..utils.exceptions import MetadataError, handle_and_reraise

SCHEMA_VERSION = 1
SUPPORTED_SCHEMA_VERSIONS = (1,)

SUMMARY = "Summary"
TRAINING_EVAL = "TrainingEval"
HOLDOUT_EVAL = "HoldOutEval"
BEST_MODEL_PARAMS = "BestModelParams"
VALIDATION_PARAMETERS = "ValidationParameters"
VALIDATION_RESULTS = "ValidationResults"
DATA_PREP_PARAMETERS = "DataPrepParameters"


@dataclass(frozen=True)
class CandidateScore:
    """Validation outcome of one configuration.

    Attributes:
        model_type: Model family name
        params: Hyperparameters of the configuration
        index: Position in the enumeration order
        metric_name: Selection metric
        score: Mean of the fold scores
        fold_scores: Score on each fold, in fold order
    """

    model_type: str
    params: Dict[str, Any] = field(hash=False)
    index: int
    metric_name: str
    score: float
    fold_scores: Tuple[float, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modelType": self.model_type,
            "params": dict(self.params),
            "index": self.index,
            "metricName": self.metric_name,
            "score": self.score,
            "foldScores": list(self.fold_scores),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CandidateScore":
        return cls(
            model_type=data["modelType"],
            params=dict(data["params"]),
            index=int(data["index"]),
            metric_name=data["metricName"],
            score=float(data["score"]),
            fold_scores=tuple(float(score) for score in data.get("foldScores", ())),
        )


@dataclass(frozen=True)
class ProvenanceRecord:
    """Selection, validation and evaluation summary of a fitted selector.

    Attributes:
        problem_type: Task of the selector
        best_model_type: Family of the selected configuration
        best_model_name: Class name of the refit estimator
        best_model_params: Hyperparameters of the selected configuration
        validation_type: ``CrossValidation`` or ``TrainValidationSplit``
        validation_params: Metric, fold count or train ratio, and seed
        validation_results: Scores of every configuration tried
        data_prep_params: Splitter parameters and statistics, empty without a splitter
        training_eval: Metrics on the full train partition
        holdout_eval: Metrics on the holdout, ``None`` without a holdout
        schema_version: Version of this layout
    """

    problem_type: str
    best_model_type: str
    best_model_name: str
    best_model_params: Dict[str, Any] = field(hash=False)
    validation_type: str
    validation_params: Dict[str, Any] = field(hash=False)
    validation_results: Tuple[CandidateScore, ...]
    data_prep_params: Dict[str, Any] = field(hash=False)
    training_eval: Dict[str, float] = field(hash=False)
    holdout_eval: Optional[Dict[str, float]] = field(default=None, hash=False)
    schema_version: int = SCHEMA_VERSION

    @property
    def has_holdout(self) -> bool:
        return self.holdout_eval is not None

    def best_score(self) -> Optional[CandidateScore]:
        for result in self.validation_results:
            if result.model_type == self.best_model_type and result.params == self.best_model_params:
                return result
        return None


def encode_provenance(record: ProvenanceRecord, metadata: Optional[ColumnMetadata] = None) -> ColumnMetadata:
    """Write ``record`` into ``metadata`` (a new store if omitted) and return the store."""
    metadata = metadata if metadata is not None else ColumnMetadata()
    metadata.set_nested_map(SUMMARY, {
        "SchemaVersion": record.schema_version,
        "ProblemType": record.problem_type,
        "BestModelType": record.best_model_type,
        "BestModelName": record.best_model_name,
        "ValidationType": record.validation_type,
    })
    metadata.set_nested_map(BEST_MODEL_PARAMS, record.best_model_params)
    metadata.set_nested_map(VALIDATION_PARAMETERS, record.validation_params)
    metadata.set_nested_map(VALIDATION_RESULTS, {
        str(result.index): result.to_dict() for result in record.validation_results
    })
    metadata.set_nested_map(DATA_PREP_PARAMETERS, record.data_prep_params)
    metadata.set_nested_map(TRAINING_EVAL, record.training_eval)
    if record.holdout_eval is not None:
        metadata.set_nested_map(HOLDOUT_EVAL, record.holdout_eval)
    return metadata


def decode_provenance(metadata: ColumnMetadata) -> ProvenanceRecord:
    """Rebuild a ``ProvenanceRecord`` from column metadata.

    Raises:
        MetadataError: If keys are missing, the schema version is unsupported
            or values have the wrong shape
    """
    summary = metadata.get_nested_map(SUMMARY)
    version = summary.get("SchemaVersion")
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        raise MetadataError(
            f"Unsupported provenance schema version: {version}",
            error_code="SCHEMA_VERSION_UNSUPPORTED",
            context={"supported": list(SUPPORTED_SCHEMA_VERSIONS)}
        )

    try:
        results = metadata.get_nested_map(VALIDATION_RESULTS)
        validation_results = tuple(
            CandidateScore.from_dict(results[key]) for key in sorted(results, key=int)
        )
        holdout_eval = None
        if metadata.contains(HOLDOUT_EVAL):
            holdout_eval = _metric_map(metadata.get_nested_map(HOLDOUT_EVAL))
        return ProvenanceRecord(
            problem_type=summary["ProblemType"],
            best_model_type=summary["BestModelType"],
            best_model_name=summary["BestModelName"],
            best_model_params=metadata.get_nested_map(BEST_MODEL_PARAMS),
            validation_type=summary["ValidationType"],
            validation_params=metadata.get_nested_map(VALIDATION_PARAMETERS),
            validation_results=validation_results,
            data_prep_params=metadata.get_nested_map(DATA_PREP_PARAMETERS),
            training_eval=_metric_map(metadata.get_nested_map(TRAINING_EVAL)),
            holdout_eval=holdout_eval,
            schema_version=version,
        )
    except (KeyError, TypeError, ValueError) as e:
        handle_and_reraise(
            e, MetadataError,
            "Provenance metadata is malformed",
            error_code="PROVENANCE_MALFORMED"
        )


def _metric_map(values: Mapping[str, Any]) -> Dict[str, float]:
    return {key: float(value) for key, value in values.items()}
