"""Tests for feature declarations and vector lineage metadata."""
import pytest

from model_selector.data.features import (
    Feature,
    FeatureHistory,
    FeatureType,
    FeatureVector,
    VectorColumnMetadata,
    VectorMetadata,
    response_sub_features,
)
from model_selector.utils.exceptions import ConfigurationError, DataError


def column(parent: str, index: int, **kwargs) -> VectorColumnMetadata:
    return VectorColumnMetadata(
        parent_feature_name=(parent,),
        parent_feature_type=("Real",),
        index=index,
        **kwargs
    )


class TestFeatureType:
    """Test the closed feature type set."""

    @pytest.mark.unit
    def test_numeric_types(self):
        assert FeatureType.REAL_NN.is_numeric
        assert FeatureType.BINARY.is_numeric
        assert not FeatureType.TEXT.is_numeric
        assert not FeatureType.VECTOR.is_numeric

    @pytest.mark.unit
    def test_from_name(self):
        assert FeatureType.from_name("RealNN") is FeatureType.REAL_NN
        assert FeatureType.from_name("PICK_LIST") is FeatureType.PICK_LIST
        with pytest.raises(ConfigurationError) as e:
            FeatureType.from_name("Complex")
        assert e.value.error_code == "FEATURE_TYPE_UNKNOWN"


class TestFeature:
    """Test features and their response lineage."""

    @pytest.mark.unit
    def test_response_and_predictor(self):
        label = Feature.response("label")
        age = Feature.predictor("age")

        assert label.is_response and label.is_raw
        assert label.feature_type is FeatureType.REAL_NN
        assert not age.is_response

    @pytest.mark.unit
    def test_response_flag_follows_parents(self):
        label = Feature.response("label")
        derived = Feature("label_scaled", FeatureType.REAL, parents=(label,), origin_stage="scaler")

        assert derived.is_response
        assert not derived.is_raw_response

    @pytest.mark.unit
    def test_empty_name_rejected(self):
        with pytest.raises(ConfigurationError):
            Feature("", FeatureType.REAL)

    @pytest.mark.unit
    def test_type_must_be_feature_type(self):
        with pytest.raises(ConfigurationError):
            Feature("age", "Real")

    @pytest.mark.unit
    def test_history_collects_raw_features_and_stages(self):
        a, b = Feature.predictor("a"), Feature.predictor("b")
        ab = Feature("ab", FeatureType.REAL, parents=(a, b), origin_stage="combine")
        top = Feature("top", FeatureType.REAL, parents=(ab, a), origin_stage="scale")

        history = top.history()
        assert history.origin_features == ("a", "b")
        assert history.stages == ("combine", "scale")


class TestVectorMetadata:
    """Test vector column lineage."""

    @pytest.mark.unit
    def test_column_names(self):
        assert column("x1", 0).make_col_name() == "x1_0"
        assert column("color", 3, indicator_value="red").make_col_name() == "color_red_3"
        grouped = VectorColumnMetadata(
            parent_feature_name=("a", "b"),
            parent_feature_type=("Real", "Real"),
            grouping="g",
            descriptor_value="ratio",
            index=1,
        )
        assert grouped.make_col_name() == "a_b_g_ratio_1"

    @pytest.mark.unit
    def test_column_needs_parents(self):
        with pytest.raises(DataError) as e:
            VectorColumnMetadata(parent_feature_name=(), parent_feature_type=())
        assert e.value.error_code == "VECTOR_COLUMN_NO_PARENTS"

    @pytest.mark.unit
    def test_parent_lengths_must_match(self):
        with pytest.raises(DataError) as e:
            VectorColumnMetadata(parent_feature_name=("a", "b"), parent_feature_type=("Real",))
        assert e.value.error_code == "VECTOR_COLUMN_PARENT_MISMATCH"

    @pytest.mark.unit
    def test_indices_must_match_positions(self):
        with pytest.raises(DataError) as e:
            VectorMetadata(name="v", columns=(column("a", 0), column("b", 2)))
        assert e.value.error_code == "VECTOR_INDEX_MISMATCH"

    @pytest.mark.unit
    def test_index_of(self):
        metadata = VectorMetadata(name="v", columns=(column("a", 0), column("b", 1)))

        assert metadata.size == 2
        assert metadata.index_of("b_1") == 1
        with pytest.raises(DataError):
            metadata.index_of("c_2")

    @pytest.mark.unit
    def test_flatten_reindexes(self):
        first = VectorMetadata(
            name="v1", columns=(column("a", 0),), history={"a": FeatureHistory(("a",), ("s1",))}
        )
        second = VectorMetadata(
            name="v2",
            columns=(column("b", 0), column("c", 1)),
            history={"a": FeatureHistory(("a",), ("s2",))}
        )

        flat = VectorMetadata.flatten("all", [first, second])

        assert flat.column_names() == ["a_0", "b_1", "c_2"]
        assert flat.history["a"].stages == ("s1", "s2")

    @pytest.mark.unit
    def test_dict_round_trip(self):
        metadata = VectorMetadata(
            name="v",
            columns=(column("a", 0, grouping="g"), column("label", 1, is_response=True)),
            history={"a": FeatureHistory(("a",), ("vectorizer",))},
        )
        assert VectorMetadata.from_dict(metadata.to_dict()) == metadata

    @pytest.mark.unit
    def test_malformed_column_dict(self):
        with pytest.raises(DataError) as e:
            VectorColumnMetadata.from_dict({"parentFeatureName": ["a"]})
        assert e.value.error_code == "VECTOR_COLUMN_MALFORMED"

    @pytest.mark.unit
    def test_column_history(self):
        vector = FeatureVector.from_features("features", [Feature.predictor("x1"), Feature.predictor("x2")])
        history = vector.vector_metadata.column_history()

        assert [entry["columnName"] for entry in history] == ["x1_0", "x2_1"]
        assert history[0]["originFeatures"] == ["x1"]


class TestFeatureVector:
    """Test building vectors from features."""

    @pytest.mark.unit
    def test_from_features(self):
        vector = FeatureVector.from_features("features", [Feature.predictor("x1"), Feature.predictor("x2")])

        assert vector.feature_type is FeatureType.VECTOR
        assert vector.vector_metadata.column_names() == ["x1_0", "x2_1"]
        assert not vector.is_response
        assert vector.history().stages == ("vectorizer",)

    @pytest.mark.unit
    def test_needs_parents(self):
        with pytest.raises(ConfigurationError):
            FeatureVector.from_features("features", [])

    @pytest.mark.unit
    def test_response_sub_features_from_parents(self):
        label = Feature.response("label")
        vector = FeatureVector.from_features("features", [Feature.predictor("x1"), label])

        assert vector.is_response
        assert response_sub_features(vector) == ["label"]
        assert [c.index for c in vector.vector_metadata.response_columns()] == [1]

    @pytest.mark.unit
    def test_response_sub_features_from_metadata_only(self):
        metadata = VectorMetadata(name="v", columns=(column("x1", 0), column("target", 1, is_response=True)))
        vector = FeatureVector.from_metadata("v", metadata)

        assert response_sub_features(vector) == ["target"]

    @pytest.mark.unit
    def test_no_response_sub_features(self):
        vector = FeatureVector.from_features("features", [Feature.predictor("x1")])
        assert response_sub_features(vector) == []


if __name__ == "__main__":
    pytest.main([__file__])
