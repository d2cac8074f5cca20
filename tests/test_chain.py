"""Tests for stage chaining and the multiclass three stage selector."""
import numpy as np
import pandas as pd
import pytest

from model_selector.models.chain import (
    PROBABILITY,
    RAW_PREDICTION,
    FittedChain,
    FittedProbability,
    MultiClassificationModelSelector,
    ProbabilityStage,
    RawScoreStage,
    SelectionStage,
    StageChain,
    predicted_probabilities,
)
from model_selector.models.families import MultiClassificationModelsToTry
from model_selector.models.provenance import SUMMARY, VALIDATION_RESULTS
from model_selector.models.selector import MultiClassModelSelector, RegressionModelSelector
from model_selector.models.stages import FittedStage, Stage, column_metadata
from model_selector.utils.exceptions import ConfigurationError, TrainingError


class BrokenStage(Stage):
    """Stage whose fit always fails with a non-package exception."""

    def fit(self, frame, upstream):
        raise KeyError("missing lookup table")


class ConstantStage(Stage):
    def fit(self, frame, upstream):
        return FittedConstant(self.output_name)


class FittedConstant(FittedStage):
    def __init__(self, output_name):
        self.output_name = output_name

    def transform(self, frame):
        result = frame.copy()
        result[self.output_name] = 1.0
        return result


@pytest.fixture
def multiclass_selector(multiclass_data):
    _, label, features = multiclass_data
    return (
        MultiClassificationModelSelector
        .with_cross_validation(num_folds=3, stratify=True, seed=7)
        .set_models_to_try(MultiClassificationModelsToTry.LOGISTIC_REGRESSION,
                           MultiClassificationModelsToTry.DECISION_TREE)
        .set_input(label, features)
    )


class TestMultiClassificationModelSelector:
    """Test the chained multiclass selector."""

    @pytest.mark.integration
    def test_three_output_columns(self, multiclass_data, multiclass_selector):
        frame, _, _ = multiclass_data
        chain = multiclass_selector.fit(frame)

        assert isinstance(chain, FittedChain)
        assert chain.output_names == ["y_prediction", "y_rawPrediction", "y_probability"]
        assert chain.output_name == "y_probability"

        scored = chain.transform(frame)
        assert set(scored["y_prediction"].unique()) <= {0.0, 1.0, 2.0}
        raw = predicted_probabilities(scored, "y_rawPrediction")
        probabilities = predicted_probabilities(scored, "y_probability")
        assert raw.shape == (len(frame), 3)
        assert np.allclose(probabilities.sum(axis=1), 1.0)
        assert (probabilities >= 0).all()
        assert np.array_equal(
            probabilities.argmax(axis=1).astype(float), scored["y_prediction"].to_numpy()
        )

    @pytest.mark.integration
    def test_metadata_comes_from_selection_stage(self, multiclass_data, multiclass_selector):
        frame, _, _ = multiclass_data
        chain = multiclass_selector.fit(frame)
        metadata = chain.get_metadata()

        assert metadata == chain.stage("y_prediction").get_metadata()
        assert metadata.get_nested_map(SUMMARY)["ProblemType"] == "multiclass"
        assert len(metadata.get_nested_map(VALIDATION_RESULTS)) == 2

        scored = chain.transform(frame)
        raw_metadata = column_metadata(scored, "y_rawPrediction").get_nested_map(RAW_PREDICTION)
        probability_metadata = column_metadata(scored, "y_probability").get_nested_map(PROBABILITY)
        assert raw_metadata["source"] == "y_prediction"
        assert raw_metadata["classes"] == [0.0, 1.0, 2.0]
        assert probability_metadata["source"] == "y_rawPrediction"
        assert column_metadata(scored, "y_prediction") == metadata

    @pytest.mark.integration
    def test_probability_method_follows_raw_score_kind(self, multiclass_data, multiclass_selector):
        frame, _, _ = multiclass_data
        chain = multiclass_selector.fit(frame)
        raw = chain.stage("y_rawPrediction")
        probability = chain.stage("y_probability")

        if raw.kind == "decision_function":
            assert probability.method == "softmax"
        else:
            assert raw.kind == "probability"
            assert probability.method == "normalize"

    @pytest.mark.integration
    def test_probabilities_without_raw_column(self, multiclass_data, multiclass_selector):
        frame, _, _ = multiclass_data
        chain = multiclass_selector.fit(frame)

        direct = chain.stage("y_probability").transform(frame)
        via_chain = chain.transform(frame)

        assert np.allclose(
            predicted_probabilities(direct, "y_probability"),
            predicted_probabilities(via_chain, "y_probability"),
        )

    @pytest.mark.unit
    def test_column_names(self, multiclass_selector):
        assert multiclass_selector.get_output_name() == "y_prediction"
        assert multiclass_selector.raw_prediction_name() == "y_rawPrediction"
        assert multiclass_selector.probability_name() == "y_probability"

    @pytest.mark.unit
    def test_chain_needs_input(self):
        with pytest.raises(ConfigurationError) as e:
            MultiClassificationModelSelector.with_cross_validation().chain()
        assert e.value.error_code == "INPUT_NOT_SET"

    @pytest.mark.unit
    def test_builders_keep_chained_type(self, multiclass_selector):
        assert isinstance(multiclass_selector.set_decision_tree_max_depth(3), MultiClassificationModelSelector)

    @pytest.mark.unit
    def test_normalize_handles_zero_rows(self):
        class Source:
            kind = "probability"
            output_name = "raw"

        stage = FittedProbability(Source(), "probability")
        probabilities = stage.probabilities(np.array([[0.0, 0.0], [1.0, 3.0]]))

        assert probabilities.tolist() == [[0.5, 0.5], [0.25, 0.75]]


class TestStageChain:
    """Test chain construction and fitting."""

    @pytest.mark.unit
    def test_duplicate_output_names(self, multiclass_data):
        _, label, features = multiclass_data
        selector = MultiClassModelSelector.with_cross_validation().set_input(label, features)

        with pytest.raises(ConfigurationError) as e:
            StageChain(label, features, [SelectionStage(selector, "out"), ConstantStage("constant", "out")])
        assert e.value.error_code == "CHAIN_OUTPUT_DUPLICATE"

        with pytest.raises(ConfigurationError):
            StageChain(label, features, [SelectionStage(selector, "y")])

    @pytest.mark.unit
    def test_empty_chain(self, multiclass_data):
        _, label, features = multiclass_data
        with pytest.raises(ConfigurationError) as e:
            StageChain(label, features, [])
        assert e.value.error_code == "CHAIN_EMPTY"

    @pytest.mark.unit
    def test_metadata_stage_out_of_range(self, multiclass_data):
        _, label, features = multiclass_data
        with pytest.raises(ConfigurationError) as e:
            StageChain(label, features, [ConstantStage("constant", "c")], metadata_stage=1)
        assert e.value.error_code == "CHAIN_METADATA_STAGE_INVALID"

    @pytest.mark.unit
    def test_stage_inputs(self, multiclass_data):
        _, label, features = multiclass_data
        chain = StageChain(label, features, [ConstantStage("first", "a"), ConstantStage("second", "b")])

        assert chain.stages[0].inputs == ("y", "features")
        assert chain.stages[1].inputs == ("y", "features", "a")

    @pytest.mark.unit
    def test_stage_failure_leaves_input_untouched(self, multiclass_data):
        frame, label, features = multiclass_data
        columns = list(frame.columns)
        chain = StageChain(label, features, [ConstantStage("first", "a"), BrokenStage("broken", "b")])

        with pytest.raises(TrainingError) as e:
            chain.fit(frame)

        assert e.value.error_code == "STAGE_FAILED"
        assert e.value.context["stage"] == "broken"
        assert e.value.context["position"] == 2
        assert list(frame.columns) == columns

    @pytest.mark.unit
    def test_package_errors_propagate_unchanged(self, multiclass_data):
        frame, label, features = multiclass_data
        chain = StageChain(label, features, [RawScoreStage("raw", "scores", "not_a_column")])

        with pytest.raises(ConfigurationError) as e:
            chain.fit(frame)
        assert e.value.error_code == "CHAIN_INPUT_UNKNOWN"

    @pytest.mark.integration
    def test_raw_scores_need_a_classifier(self, regression_data):
        frame, label, features = regression_data
        selector = (
            RegressionModelSelector.with_cross_validation()
            .set_models_to_try("LinearRegression")
            .set_input(label, features)
        )
        chain = StageChain(label, features, [
            SelectionStage(selector, "y_prediction"),
            RawScoreStage("raw", "y_raw", "y_prediction"),
        ])

        with pytest.raises(ConfigurationError) as e:
            chain.fit(frame)
        assert e.value.error_code == "CHAIN_INPUT_INVALID"

    @pytest.mark.unit
    def test_probability_needs_raw_scores(self, multiclass_data):
        frame, label, features = multiclass_data
        chain = StageChain(label, features, [
            ConstantStage("constant", "c"),
            ProbabilityStage("probability", "p", "c"),
        ])

        with pytest.raises(ConfigurationError) as e:
            chain.fit(frame)
        assert e.value.error_code == "CHAIN_INPUT_INVALID"

    @pytest.mark.unit
    def test_fitted_chain_lookup(self):
        fitted = FittedChain([FittedConstant("a"), FittedConstant("b")])

        assert fitted.stage("b").output_name == "b"
        with pytest.raises(KeyError):
            fitted.stage("c")
        assert predicted_probabilities(fitted.transform(pd.DataFrame({"x": [1.0]})), "z") is None


if __name__ == "__main__":
    pytest.main([__file__])
