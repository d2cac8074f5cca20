"""Tests for evaluation metrics, evaluators and the metric registry."""
import numpy as np
import pytest

from model_selector.config.selector_config import ProblemType
from model_selector.models.evaluators import (
    EvaluationMetric,
    Evaluator,
    EvaluatorRegistry,
    Evaluators,
    Prediction,
    check_problem_type,
    merge_evaluators,
)
from model_selector.utils.exceptions import ConfigurationError, EvaluationError


class TestEvaluationMetric:
    """Test single metrics."""

    @pytest.mark.unit
    def test_is_better_respects_direction(self):
        lower = EvaluationMetric("loss", lambda y, p: 0.0, higher_is_better=False)
        higher = EvaluationMetric("gain", lambda y, p: 0.0, higher_is_better=True)

        assert lower.is_better(1.0, 2.0)
        assert not lower.is_better(2.0, 2.0)
        assert higher.is_better(2.0, 1.0)
        assert not higher.is_better(1.0, 1.0)

    @pytest.mark.unit
    def test_nan_never_beats_a_number(self):
        metric = EvaluationMetric("loss", lambda y, p: 0.0, higher_is_better=False)

        assert not metric.is_better(float("nan"), 10.0)
        assert metric.is_better(10.0, float("nan"))
        assert not metric.is_better(float("nan"), float("nan"))

    @pytest.mark.unit
    def test_failing_metric_raises_evaluation_error(self):
        def broken(y, p):
            raise ZeroDivisionError("division by zero")

        with pytest.raises(EvaluationError) as e:
            EvaluationMetric("broken", broken).score([1.0], [1.0])

        assert e.value.error_code == "METRIC_FAILED"
        assert isinstance(e.value.__cause__, ZeroDivisionError)

    @pytest.mark.unit
    def test_raw_values_are_wrapped(self):
        metric = EvaluationMetric("sum", lambda y, p: float(np.sum(p.values)))
        assert metric.score([0.0, 0.0], [1.0, 2.0]) == 3.0


class TestEvaluatorRegistry:
    """Test metric lookup by name."""

    @pytest.mark.unit
    def test_evaluate_builtin(self):
        registry = EvaluatorRegistry(ProblemType.REGRESSION)

        assert registry.evaluate("MeanSquaredError", [1.0, 3.0], [1.0, 2.0]) == pytest.approx(0.5)
        assert registry.evaluate("MeanAbsoluteError", [1.0, 3.0], [1.0, 2.0]) == pytest.approx(0.5)
        assert registry.evaluate("R2", [1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    @pytest.mark.unit
    def test_register_custom(self):
        registry = EvaluatorRegistry(ProblemType.REGRESSION)
        registry.register(EvaluationMetric(
            "MaxError", lambda y, p: float(np.max(np.abs(y - p.values))), higher_is_better=False
        ))

        assert "MaxError" in registry.names()
        assert registry.evaluate("MaxError", [1.0, 5.0], [1.0, 2.0]) == 3.0

    @pytest.mark.unit
    def test_register_duplicate(self):
        registry = EvaluatorRegistry(ProblemType.BINARY_CLASSIFICATION)
        with pytest.raises(ConfigurationError) as e:
            registry.register(EvaluationMetric("F1", lambda y, p: 0.0))
        assert e.value.error_code == "METRIC_DUPLICATE"

    @pytest.mark.unit
    def test_unknown_metric(self):
        with pytest.raises(ConfigurationError) as e:
            EvaluatorRegistry(ProblemType.REGRESSION).get("AuROC")
        assert e.value.error_code == "METRIC_UNKNOWN"

    @pytest.mark.unit
    def test_registries_are_independent(self):
        first = EvaluatorRegistry(ProblemType.REGRESSION)
        first.register(EvaluationMetric("Zero", lambda y, p: 0.0))

        assert "Zero" not in EvaluatorRegistry(ProblemType.REGRESSION).names()


class TestEvaluators:
    """Test the evaluator factories."""

    @pytest.mark.unit
    def test_full_evaluators(self):
        regression = Evaluators.Regression()
        binary = Evaluators.BinaryClassification()
        multi = Evaluators.MultiClassification()

        assert (regression.name, regression.primary) == ("regEval", "RootMeanSquaredError")
        assert (binary.name, binary.primary) == ("binEval", "AuROC")
        assert (multi.name, multi.primary) == ("multiEval", "F1")
        assert not regression.higher_is_better
        assert binary.higher_is_better

    @pytest.mark.unit
    def test_full_evaluator_with_other_primary(self):
        evaluator = Evaluators.Regression(primary="R2")
        assert evaluator.metric_name == "R2"
        assert evaluator.higher_is_better

    @pytest.mark.unit
    def test_single_metric_evaluator(self):
        evaluator = Evaluators.Regression.mse()

        assert evaluator.name == "MeanSquaredError"
        assert evaluator.metric_names() == ["MeanSquaredError"]
        assert evaluator.score([1.0, 2.0], Prediction(values=[1.0, 4.0])) == pytest.approx(2.0)

    @pytest.mark.unit
    def test_evaluate_all_keys(self):
        scores = Evaluators.Regression().evaluate_all([1.0, 2.0, 3.0], Prediction(values=[1.0, 2.0, 4.0]))

        assert set(scores) == {
            "(regEval)_RootMeanSquaredError",
            "(regEval)_MeanSquaredError",
            "(regEval)_R2",
            "(regEval)_MeanAbsoluteError",
        }
        assert scores["(regEval)_MeanSquaredError"] == pytest.approx(1.0 / 3.0)

    @pytest.mark.unit
    def test_custom_evaluator_key(self):
        def median_absolute_error(labels, predictions):
            return float(np.median(np.abs(labels - predictions)))

        evaluator = Evaluators.Regression.custom("median absolute error", False, median_absolute_error)
        scores = evaluator.evaluate_all(np.array([1.0, 2.0, 3.0]), Prediction(values=[1.0, 3.0, 5.0]))

        assert scores == {"(median absolute error)_median absolute error": 1.0}
        assert not evaluator.higher_is_better

    @pytest.mark.unit
    def test_custom_evaluator_with_probabilities(self):
        def mean_top_probability(labels, probabilities):
            return float(np.mean(np.max(probabilities, axis=1)))

        evaluator = Evaluators.MultiClassification.custom("confidence", True, mean_top_probability, True)
        prediction = Prediction(
            values=[0.0, 1.0], probabilities=[[0.9, 0.1], [0.3, 0.7]], classes=[0.0, 1.0]
        )

        assert evaluator.score([0.0, 1.0], prediction) == pytest.approx(0.8)

    @pytest.mark.unit
    def test_binary_metrics(self):
        labels = np.array([0.0, 0.0, 1.0, 1.0])
        prediction = Prediction(
            values=[0.0, 1.0, 1.0, 1.0],
            probabilities=[[0.9, 0.1], [0.4, 0.6], [0.2, 0.8], [0.1, 0.9]],
            classes=[0.0, 1.0],
        )
        scores = Evaluators.BinaryClassification().evaluate_all(labels, prediction)

        assert scores["(binEval)_AuROC"] == pytest.approx(1.0)
        assert scores["(binEval)_Precision"] == pytest.approx(2.0 / 3.0)
        assert scores["(binEval)_Recall"] == pytest.approx(1.0)
        assert scores["(binEval)_Error"] == pytest.approx(0.25)
        assert scores["(binEval)_Accuracy"] == pytest.approx(0.75)

    @pytest.mark.unit
    def test_auroc_with_one_class_is_nan(self):
        prediction = Prediction(values=[1.0, 1.0], probabilities=[[0.2, 0.8], [0.3, 0.7]], classes=[0.0, 1.0])
        assert np.isnan(Evaluators.BinaryClassification.auroc().score([1.0, 1.0], prediction))

    @pytest.mark.unit
    def test_auroc_needs_probabilities(self):
        with pytest.raises(EvaluationError) as e:
            Evaluators.BinaryClassification.auroc().score([0.0, 1.0], Prediction(values=[0.0, 1.0]))
        assert e.value.error_code == "NO_PROBABILITIES"

    @pytest.mark.unit
    def test_multiclass_cross_entropy(self):
        prediction = Prediction(
            values=[0.0, 1.0, 2.0],
            probabilities=np.full((3, 3), 0.01) + np.eye(3) * 0.97,
            classes=[0.0, 1.0, 2.0],
        )
        loss = Evaluators.MultiClassification.cross_entropy().score([0.0, 1.0, 2.0], prediction)
        assert 0.0 < loss < 0.1

    @pytest.mark.unit
    def test_multiclass_auroc_one_vs_rest(self):
        probabilities = np.array([
            [0.8, 0.1, 0.1],
            [0.6, 0.3, 0.1],
            [0.1, 0.7, 0.2],
            [0.3, 0.4, 0.3],
        ])
        prediction = Prediction(values=[0.0, 0.0, 1.0, 1.0], probabilities=probabilities, classes=[0.0, 1.0, 2.0])
        auroc = Evaluators.MultiClassification.auroc()

        # Class 2 never occurs and is left out of the average
        assert auroc.score([0.0, 0.0, 1.0, 1.0], prediction) == pytest.approx(1.0)
        assert auroc.higher_is_better
        assert np.isnan(auroc.score([1.0, 1.0, 1.0, 1.0], prediction))

    @pytest.mark.unit
    def test_multiclass_auroc_needs_probabilities(self):
        with pytest.raises(EvaluationError) as e:
            Evaluators.MultiClassification.auroc().score([0.0, 1.0], Prediction(values=[0.0, 1.0]))
        assert e.value.error_code == "NO_PROBABILITIES"

    @pytest.mark.unit
    def test_primary_must_be_a_metric(self):
        metric = EvaluationMetric("a", lambda y, p: 0.0)
        with pytest.raises(ConfigurationError) as e:
            Evaluator("custom", ProblemType.REGRESSION, (metric,), primary="b")
        assert e.value.error_code == "EVALUATOR_PRIMARY_UNKNOWN"

    @pytest.mark.unit
    def test_evaluator_needs_metrics(self):
        with pytest.raises(ConfigurationError):
            Evaluator("empty", ProblemType.REGRESSION, (), primary="a")

    @pytest.mark.unit
    def test_default(self):
        assert Evaluators.default(ProblemType.BINARY_CLASSIFICATION).name == "binEval"

    @pytest.mark.unit
    def test_merge_evaluators_keeps_first_by_name(self):
        full = Evaluators.Regression()
        duplicate = Evaluators.Regression(primary="R2")
        mae = Evaluators.Regression.mae()

        merged = merge_evaluators([full, mae, duplicate, Evaluators.Regression.mae()])

        assert merged == [full, mae]

    @pytest.mark.unit
    def test_check_problem_type(self):
        evaluator = Evaluators.Regression.mse()
        assert check_problem_type(evaluator, ProblemType.REGRESSION) is evaluator
        with pytest.raises(ConfigurationError) as e:
            check_problem_type(evaluator, ProblemType.BINARY_CLASSIFICATION)
        assert e.value.error_code == "EVALUATOR_PROBLEM_MISMATCH"


if __name__ == "__main__":
    pytest.main([__file__])
