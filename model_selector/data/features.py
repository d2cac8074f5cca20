# model_selector/data/features.py
"""Feature declarations and feature-vector lineage metadata.

A ``Feature`` names a column of the input frame and carries a closed
``FeatureType`` tag plus a response flag. A feature vector is a ``Feature``
of type ``VECTOR`` whose ``VectorMetadata`` describes every column of the
vector: which parent features it came from, how it was grouped and which
stages produced it. The selector only reads this metadata; it never builds
vectors itself.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..utils.exceptions import ConfigurationError, DataError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class FeatureType(Enum):
    """Closed set of feature types understood by the selector."""

    REAL = "Real"
    REAL_NN = "RealNN"
    INTEGRAL = "Integral"
    BINARY = "Binary"
    PERCENT = "Percent"
    CURRENCY = "Currency"
    DATE = "Date"
    PICK_LIST = "PickList"
    CATEGORICAL = "Categorical"
    TEXT = "Text"
    VECTOR = "OPVector"

    @property
    def is_numeric(self) -> bool:
        return self in _NUMERIC_TYPES

    @classmethod
    def from_name(cls, name: str) -> "FeatureType":
        """Resolve a type from its value (``"RealNN"``) or member name (``"REAL_NN"``)."""
        for member in cls:
            if name in (member.value, member.name):
                return member
        raise ConfigurationError(
            f"Unknown feature type: {name}",
            error_code="FEATURE_TYPE_UNKNOWN",
            context={"feature_type": name, "valid_types": [m.value for m in cls]}
        )


_NUMERIC_TYPES = frozenset({
    FeatureType.REAL,
    FeatureType.REAL_NN,
    FeatureType.INTEGRAL,
    FeatureType.BINARY,
    FeatureType.PERCENT,
    FeatureType.CURRENCY,
})


@dataclass(frozen=True)
class FeatureHistory:
    """Raw features and stage names a derived feature was built from."""

    origin_features: Tuple[str, ...] = ()
    stages: Tuple[str, ...] = ()

    def merge(self, other: "FeatureHistory") -> "FeatureHistory":
        """Union of two histories, keeping first-seen order."""
        return FeatureHistory(
            origin_features=_ordered_union(self.origin_features, other.origin_features),
            stages=_ordered_union(self.stages, other.stages),
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {"originFeatures": list(self.origin_features), "stages": list(self.stages)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureHistory":
        return cls(
            origin_features=tuple(data.get("originFeatures", ())),
            stages=tuple(data.get("stages", ())),
        )


@dataclass(frozen=True)
class Feature:
    """A named, typed column of the input dataset.

    Attributes:
        name: Column name in the input frame
        feature_type: Closed feature type tag
        is_raw_response: Whether this feature itself was declared as a response
        parents: Features this one was derived from
        origin_stage: Name of the stage that produced this feature, if any
        vector_metadata: Column lineage, only for ``VECTOR`` features
    """

    name: str
    feature_type: FeatureType
    is_raw_response: bool = False
    parents: Tuple["Feature", ...] = ()
    origin_stage: Optional[str] = None
    vector_metadata: Optional["VectorMetadata"] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Feature name must be a non-empty string", error_code="FEATURE_NAME_EMPTY")
        if not isinstance(self.feature_type, FeatureType):
            raise ConfigurationError(
                f"Feature '{self.name}' must have a FeatureType, got {self.feature_type!r}",
                error_code="FEATURE_TYPE_INVALID"
            )

    @classmethod
    def response(cls, name: str, feature_type: FeatureType = FeatureType.REAL_NN) -> "Feature":
        """Declare a raw response (label) feature."""
        return cls(name=name, feature_type=feature_type, is_raw_response=True)

    @classmethod
    def predictor(cls, name: str, feature_type: FeatureType = FeatureType.REAL) -> "Feature":
        """Declare a raw predictor feature."""
        return cls(name=name, feature_type=feature_type)

    @property
    def is_response(self) -> bool:
        """A feature is a response if it, or anything it derives from, is one."""
        return self.is_raw_response or any(parent.is_response for parent in self.parents)

    @property
    def is_raw(self) -> bool:
        return not self.parents

    def raw_features(self) -> Tuple["Feature", ...]:
        """Raw ancestors in depth-first order, without duplicates."""
        if self.is_raw:
            return (self,)
        seen: Dict[str, Feature] = {}
        for parent in self.parents:
            for raw in parent.raw_features():
                seen.setdefault(raw.name, raw)
        return tuple(seen.values())

    def history(self) -> FeatureHistory:
        stages: Tuple[str, ...] = ()
        for parent in self.parents:
            stages = _ordered_union(stages, parent.history().stages)
        if self.origin_stage:
            stages = _ordered_union(stages, (self.origin_stage,))
        return FeatureHistory(
            origin_features=tuple(raw.name for raw in self.raw_features()),
            stages=stages,
        )


@dataclass(frozen=True)
class VectorColumnMetadata:
    """Lineage of a single column inside a feature vector.

    Attributes:
        parent_feature_name: Names of the features this column was computed from
        parent_feature_type: Type names of those parent features
        grouping: Optional grouping key (e.g. the map key or pivoted feature)
        indicator_value: Optional category value for indicator columns
        descriptor_value: Optional description for derived numeric columns
        index: Position of the column inside the vector
        is_response: Whether any parent of this column is a response
    """

    parent_feature_name: Tuple[str, ...]
    parent_feature_type: Tuple[str, ...]
    grouping: Optional[str] = None
    indicator_value: Optional[str] = None
    descriptor_value: Optional[str] = None
    index: int = 0
    is_response: bool = False

    def __post_init__(self) -> None:
        if not self.parent_feature_name:
            raise DataError(
                "Vector column metadata must have at least one parent feature",
                error_code="VECTOR_COLUMN_NO_PARENTS",
                context={"index": self.index}
            )
        if len(self.parent_feature_name) != len(self.parent_feature_type):
            raise DataError(
                "Parent feature names and types must have the same length",
                error_code="VECTOR_COLUMN_PARENT_MISMATCH",
                context={
                    "index": self.index,
                    "names": list(self.parent_feature_name),
                    "types": list(self.parent_feature_type),
                }
            )

    def make_col_name(self) -> str:
        """Column name derived from parents, grouping, value and index."""
        parts = ["_".join(self.parent_feature_name)]
        for extra in (self.grouping, self.indicator_value, self.descriptor_value):
            if extra is not None:
                parts.append(str(extra))
        parts.append(str(self.index))
        return "_".join(parts)

    def with_index(self, index: int) -> "VectorColumnMetadata":
        return VectorColumnMetadata(
            parent_feature_name=self.parent_feature_name,
            parent_feature_type=self.parent_feature_type,
            grouping=self.grouping,
            indicator_value=self.indicator_value,
            descriptor_value=self.descriptor_value,
            index=index,
            is_response=self.is_response,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "parentFeatureName": list(self.parent_feature_name),
            "parentFeatureType": list(self.parent_feature_type),
            "index": self.index,
            "isResponse": self.is_response,
        }
        if self.grouping is not None:
            data["grouping"] = self.grouping
        if self.indicator_value is not None:
            data["indicatorValue"] = self.indicator_value
        if self.descriptor_value is not None:
            data["descriptorValue"] = self.descriptor_value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VectorColumnMetadata":
        try:
            return cls(
                parent_feature_name=tuple(data["parentFeatureName"]),
                parent_feature_type=tuple(data["parentFeatureType"]),
                grouping=data.get("grouping"),
                indicator_value=data.get("indicatorValue"),
                descriptor_value=data.get("descriptorValue"),
                index=int(data["index"]),
                is_response=bool(data.get("isResponse", False)),
            )
        except KeyError as e:
            raise DataError(
                f"Vector column metadata is missing key {e}",
                error_code="VECTOR_COLUMN_MALFORMED",
                context={"data": data}
            ) from e


@dataclass(frozen=True)
class VectorMetadata:
    """Lineage metadata for every column of a feature vector."""

    name: str
    columns: Tuple[VectorColumnMetadata, ...]
    history: Dict[str, FeatureHistory] = field(default_factory=dict, compare=True, hash=False)

    def __post_init__(self) -> None:
        for position, column in enumerate(self.columns):
            if column.index != position:
                raise DataError(
                    f"Vector '{self.name}' column at position {position} has index {column.index}",
                    error_code="VECTOR_INDEX_MISMATCH",
                    context={"vector": self.name}
                )

    @property
    def size(self) -> int:
        return len(self.columns)

    def column_names(self) -> List[str]:
        return [column.make_col_name() for column in self.columns]

    def index_of(self, column_name: str) -> int:
        """Position of a named column.

        Raises:
            DataError: If no column has that name
        """
        for column in self.columns:
            if column.make_col_name() == column_name:
                return column.index
        raise DataError(
            f"Column '{column_name}' not found in vector '{self.name}'",
            error_code="VECTOR_COLUMN_NOT_FOUND",
            context={"vector": self.name}
        )

    def response_columns(self) -> List[VectorColumnMetadata]:
        return [column for column in self.columns if column.is_response]

    def column_history(self) -> List[Dict[str, Any]]:
        """Per-column lineage with the merged history of its parent features."""
        result = []
        for column in self.columns:
            merged = FeatureHistory()
            for parent in column.parent_feature_name:
                merged = merged.merge(self.history.get(parent, FeatureHistory()))
            entry = column.to_dict()
            entry["columnName"] = column.make_col_name()
            entry.update(merged.to_dict())
            result.append(entry)
        return result

    @classmethod
    def flatten(cls, name: str, parts: Sequence["VectorMetadata"]) -> "VectorMetadata":
        """Concatenate several vectors into one, re-indexing the columns."""
        columns: List[VectorColumnMetadata] = []
        history: Dict[str, FeatureHistory] = {}
        for part in parts:
            for column in part.columns:
                columns.append(column.with_index(len(columns)))
            for key, value in part.history.items():
                history[key] = history[key].merge(value) if key in history else value
        return cls(name=name, columns=tuple(columns), history=history)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": [column.to_dict() for column in self.columns],
            "history": {key: value.to_dict() for key, value in self.history.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VectorMetadata":
        return cls(
            name=data["name"],
            columns=tuple(VectorColumnMetadata.from_dict(column) for column in data.get("columns", ())),
            history={key: FeatureHistory.from_dict(value) for key, value in data.get("history", {}).items()},
        )


class FeatureVector:
    """Factory for ``VECTOR`` features with attached lineage metadata."""

    @staticmethod
    def from_features(
        name: str,
        parents: Iterable[Feature],
        origin_stage: str = "vectorizer"
    ) -> Feature:
        """Build a vector with one column per numeric parent feature.

        Args:
            name: Name of the vector feature
            parents: Parent features, one vector column each
            origin_stage: Name recorded as the stage that built the vector

        Returns:
            Feature of type ``VECTOR`` with ``vector_metadata`` set
        """
        parents = tuple(parents)
        if not parents:
            raise ConfigurationError(
                f"Feature vector '{name}' needs at least one parent feature",
                error_code="VECTOR_NO_PARENTS"
            )
        columns = tuple(
            VectorColumnMetadata(
                parent_feature_name=(parent.name,),
                parent_feature_type=(parent.feature_type.value,),
                index=position,
                is_response=parent.is_response,
            )
            for position, parent in enumerate(parents)
        )
        history = {parent.name: parent.history() for parent in parents}
        metadata = VectorMetadata(name=name, columns=columns, history=history)
        return Feature(
            name=name,
            feature_type=FeatureType.VECTOR,
            parents=parents,
            origin_stage=origin_stage,
            vector_metadata=metadata,
        )

    @staticmethod
    def from_metadata(name: str, metadata: VectorMetadata) -> Feature:
        """Wrap externally produced vector metadata as a ``VECTOR`` feature."""
        return Feature(name=name, feature_type=FeatureType.VECTOR, vector_metadata=metadata)


def response_sub_features(vector: Feature) -> List[str]:
    """Names of the response features found anywhere in a vector's lineage."""
    names: List[str] = []
    pending = [vector]
    while pending:
        feature = pending.pop(0)
        if feature.is_raw_response and feature.name not in names:
            names.append(feature.name)
        pending.extend(feature.parents)
    if vector.vector_metadata is not None:
        for column in vector.vector_metadata.response_columns():
            for parent in column.parent_feature_name:
                if parent not in names:
                    names.append(parent)
    return names


def _ordered_union(first: Sequence[str], second: Sequence[str]) -> Tuple[str, ...]:
    result = list(first)
    for item in second:
        if item not in result:
            result.append(item)
    return tuple(result)
