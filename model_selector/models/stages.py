# model_selector/models/stages.py
"""Base classes for fittable pipeline stages.

A ``Stage`` reads named input columns and, once fitted, appends one named
output column. Stages can be composed with ``StageChain``.
"""

from abc import ABC, abstractmethod
from typing import Dict, Tuple

import pandas as pd

from ..data.metadata import ColumnMetadata

COLUMN_METADATA_ATTR = "column_metadata"


class FittedStage(ABC):
    """Fitted stage that appends ``output_name`` to a frame."""

    output_name: str

    @abstractmethod
    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Return a copy of ``frame`` with the output column appended."""

    def get_metadata(self) -> ColumnMetadata:
        """Metadata attached to the output column."""
        return ColumnMetadata()


class Stage(ABC):
    """Unfitted stage.

    Attributes:
        name: Stage name used in logs and errors
        output_name: Column appended by the fitted stage
        inputs: Columns the stage reads, set by the chain it belongs to
    """

    def __init__(self, name: str, output_name: str) -> None:
        self.name = name
        self.output_name = output_name
        self.inputs: Tuple[str, ...] = ()

    @abstractmethod
    def fit(self, frame: pd.DataFrame, upstream: Dict[str, FittedStage]) -> FittedStage:
        """Fit on ``frame``; ``upstream`` maps earlier output names to their fitted stages."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, output_name={self.output_name!r})"


def attach_metadata(frame: pd.DataFrame, column: str, metadata: ColumnMetadata) -> None:
    """Store column metadata in ``frame.attrs`` under the column name."""
    store = dict(frame.attrs.get(COLUMN_METADATA_ATTR, {}))
    store[column] = metadata.to_dict()
    frame.attrs[COLUMN_METADATA_ATTR] = store


def column_metadata(frame: pd.DataFrame, column: str) -> ColumnMetadata:
    """Metadata stored for ``column`` by a fitted stage, empty if none."""
    return ColumnMetadata.from_dict(frame.attrs.get(COLUMN_METADATA_ATTR, {}).get(column, {}))
