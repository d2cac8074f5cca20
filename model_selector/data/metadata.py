# model_selector/data/metadata.py
"""Untyped nested key/value metadata attached to an output column.

``ColumnMetadata`` is the literal storage boundary: it only knows about
string keys mapped to JSON-compatible nested maps. Typed provenance is
encoded into and decoded out of it by ``model_selector.models.provenance``.
"""

import copy
import json
from typing import Any, Dict, Iterator, List, Mapping, Optional

import numpy as np

from ..utils.exceptions import MetadataError


class ColumnMetadata:
    """Nested-map metadata store for a single column.

    Example:
        >>> meta = ColumnMetadata()
        >>> meta.set_nested_map("TrainingEval", {"(regEval)_R2": 0.93})
        >>> meta.get_nested_map("TrainingEval")["(regEval)_R2"]
        0.93
    """

    def __init__(self, data: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        for key, value in (data or {}).items():
            self.set_nested_map(key, value)

    def set_nested_map(self, key: str, value: Mapping[str, Any]) -> None:
        """Store a copy of a nested map under ``key``, replacing any previous value.

        Raises:
            MetadataError: If the key is not a string, the value is not a mapping
                or it holds values that cannot be serialized
        """
        if not isinstance(key, str) or not key:
            raise MetadataError(f"Metadata key must be a non-empty string, got {key!r}",
                                error_code="METADATA_KEY_INVALID")
        if not isinstance(value, Mapping):
            raise MetadataError(
                f"Metadata value for '{key}' must be a mapping, got {type(value).__name__}",
                error_code="METADATA_VALUE_INVALID"
            )
        self._data[key] = _to_plain(value, path=key)

    def get_nested_map(self, key: str) -> Dict[str, Any]:
        """Return a copy of the nested map stored under ``key``.

        Raises:
            MetadataError: If nothing is stored under ``key``
        """
        if key not in self._data:
            raise MetadataError(
                f"No metadata stored under key '{key}'",
                error_code="METADATA_KEY_MISSING",
                context={"key": key, "available": sorted(self._data)}
            )
        return copy.deepcopy(self._data[key])

    def contains(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColumnMetadata):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"ColumnMetadata(keys={self.keys()})"

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._data)

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, Any]]) -> "ColumnMetadata":
        return cls(data)

    def to_json(self) -> str:
        return json.dumps(self._data, sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> "ColumnMetadata":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MetadataError(
                "Column metadata is not valid JSON",
                error_code="METADATA_JSON_INVALID",
                context={"error": str(e)}
            ) from e
        if not isinstance(data, dict):
            raise MetadataError("Column metadata JSON must be an object", error_code="METADATA_JSON_INVALID")
        return cls(data)


def _to_plain(value: Any, path: str) -> Any:
    """Copy a value into JSON-compatible builtins, unwrapping numpy scalars."""
    if isinstance(value, Mapping):
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise MetadataError(
                    f"Nested metadata keys must be strings, got {key!r} at '{path}'",
                    error_code="METADATA_KEY_INVALID"
                )
            result[key] = _to_plain(item, f"{path}.{key}")
        return result
    if isinstance(value, (list, tuple, np.ndarray)):
        return [_to_plain(item, path) for item in value]
    if isinstance(value, np.generic):
        return value.item()
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    raise MetadataError(
        f"Unsupported metadata value of type {type(value).__name__} at '{path}'",
        error_code="METADATA_VALUE_INVALID"
    )
