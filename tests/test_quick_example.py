import importlib.util
import logging
from pathlib import Path

import pytest

# Dynamically load the example module by file path to avoid import issues
repo_root = Path(__file__).resolve().parents[1]
example_path = repo_root / "examples" / "run_quick_example.py"
spec = importlib.util.spec_from_file_location("examples.run_quick_example", str(example_path))
quick_example = importlib.util.module_from_spec(spec)
spec.loader.exec_module(quick_example)


@pytest.mark.integration
def test_run_quick_example(capsys):
    model = quick_example.main(n_rows=120)

    assert model is not None
    assert model.provenance().best_model_type in ("LinearRegression", "RandomForestRegression")
    assert "Model selection completed" in capsys.readouterr().out


def test_run_quick_example_missing_config(tmp_path, capsys):
    assert quick_example.main(config_path=tmp_path / "missing.yaml") is None
    assert "not found" in capsys.readouterr().out


def test_make_dataset_columns():
    frame, label, features = quick_example.make_dataset(n_rows=10)

    assert list(frame.columns) == ["x1_0", "x2_1", "y"]
    assert label.name == "y"
    assert features.vector_metadata.size == 2


@pytest.mark.integration
def test_run_quick_example_restores_log_level():
    original = logging.getLogger("model_selector").level
    assert quick_example.main(n_rows=80, log_level="ERROR") is not None
    assert logging.getLogger("model_selector").level == original
