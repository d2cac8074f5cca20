"""Tests for column metadata storage."""
import numpy as np
import pytest

from model_selector.data.metadata import ColumnMetadata
from model_selector.utils.exceptions import MetadataError


class TestColumnMetadata:
    """Test the nested-map store."""

    @pytest.mark.unit
    def test_set_and_get(self):
        meta = ColumnMetadata()
        meta.set_nested_map("TrainingEval", {"(regEval)_R2": 0.93})

        assert meta.get_nested_map("TrainingEval") == {"(regEval)_R2": 0.93}
        assert "TrainingEval" in meta
        assert meta.contains("TrainingEval")
        assert meta.keys() == ["TrainingEval"]
        assert len(meta) == 1

    @pytest.mark.unit
    def test_stored_values_are_copies(self):
        source = {"params": {"max_depth": 3}}
        meta = ColumnMetadata()
        meta.set_nested_map("BestModelParams", source)
        source["params"]["max_depth"] = 10

        fetched = meta.get_nested_map("BestModelParams")
        fetched["params"]["max_depth"] = 20

        assert meta.get_nested_map("BestModelParams") == {"params": {"max_depth": 3}}

    @pytest.mark.unit
    def test_replace_existing_key(self):
        meta = ColumnMetadata({"Summary": {"a": 1}})
        meta.set_nested_map("Summary", {"b": 2})
        assert meta.get_nested_map("Summary") == {"b": 2}

    @pytest.mark.unit
    def test_missing_key(self):
        with pytest.raises(MetadataError) as e:
            ColumnMetadata().get_nested_map("HoldOutEval")
        assert e.value.error_code == "METADATA_KEY_MISSING"

    @pytest.mark.unit
    def test_numpy_values_are_unwrapped(self):
        meta = ColumnMetadata()
        meta.set_nested_map("Scores", {"score": np.float64(0.5), "folds": np.array([1.0, 2.0]), "n": np.int64(3)})

        stored = meta.get_nested_map("Scores")
        assert stored == {"score": 0.5, "folds": [1.0, 2.0], "n": 3}
        assert type(stored["n"]) is int

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["", 5, None])
    def test_invalid_keys(self, key):
        with pytest.raises(MetadataError):
            ColumnMetadata().set_nested_map(key, {"a": 1})

    @pytest.mark.unit
    def test_non_mapping_value(self):
        with pytest.raises(MetadataError) as e:
            ColumnMetadata().set_nested_map("Summary", [1, 2])
        assert e.value.error_code == "METADATA_VALUE_INVALID"

    @pytest.mark.unit
    def test_unserializable_value(self):
        with pytest.raises(MetadataError):
            ColumnMetadata().set_nested_map("Summary", {"estimator": object()})

    @pytest.mark.unit
    def test_nested_keys_must_be_strings(self):
        with pytest.raises(MetadataError):
            ColumnMetadata().set_nested_map("ValidationResults", {0: {"score": 1.0}})

    @pytest.mark.unit
    def test_json_round_trip(self):
        meta = ColumnMetadata({
            "Summary": {"BestModelType": "LinearRegression", "SchemaVersion": 1},
            "ValidationResults": {"0": {"score": 1.5, "foldScores": [1.0, 2.0]}},
        })

        restored = ColumnMetadata.from_json(meta.to_json())

        assert restored == meta
        assert ColumnMetadata.from_dict(meta.to_dict()) == meta

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["not json", "[1, 2]"])
    def test_invalid_json(self, text):
        with pytest.raises(MetadataError) as e:
            ColumnMetadata.from_json(text)
        assert e.value.error_code == "METADATA_JSON_INVALID"


if __name__ == "__main__":
    pytest.main([__file__])
