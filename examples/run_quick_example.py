"""Quick runnable example of model selection on a synthetic dataset.

This script builds a small regression dataset, loads the selector described
in ``config/selector.yaml``, fits it and prints the provenance metadata of
the prediction column.

Run:
    python -m examples.run_quick_example
"""

import json
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from model_selector import Feature, FeatureVector, load_selector
from model_selector.utils import temporary_log_level


def make_dataset(n_rows: int = 200, seed: int = 42):
    """Linear target with two informative columns plus noise."""
    rng = np.random.default_rng(seed)
    label = Feature.response("y")
    features = FeatureVector.from_features("features", [Feature.predictor("x1"), Feature.predictor("x2")])
    x1 = rng.normal(size=n_rows)
    x2 = rng.normal(size=n_rows)
    columns = features.vector_metadata.column_names()
    frame = pd.DataFrame({
        columns[0]: x1,
        columns[1]: x2,
        "y": 3.0 * x1 - 2.0 * x2 + 0.1 * rng.normal(size=n_rows),
    })
    return frame, label, features


def main(config_path: Optional[Path] = None, n_rows: int = 200, log_level: str = "WARNING"):
    repo_root = Path(__file__).resolve().parents[1]
    config_path = config_path or repo_root / "config" / "selector.yaml"

    if not config_path.exists():
        print(f"Selector configuration not found at {config_path}.")
        return None

    frame, label, features = make_dataset(n_rows)
    print(f"Built synthetic dataset: {len(frame)} rows, {features.vector_metadata.size} features")

    # Keep the search quiet, only the summary below is printed
    with temporary_log_level(log_level):
        selector = load_selector(config_path).set_input(label, features)
        model = selector.fit(frame)

    record = model.provenance()
    print("Model selection completed:")
    print(f"  Best model: {record.best_model_type} {record.best_model_params}")
    print(f"  Validation: {record.validation_type} {record.validation_params}")
    print(f"  Train metrics: {record.training_eval}")
    print(f"  Holdout metrics: {record.holdout_eval}")

    scored = model.transform(frame)
    print(scored[[label.name, model.output_name]].head())
    print(json.dumps(model.get_metadata().to_dict()["Summary"], indent=2))
    return model


if __name__ == "__main__":
    main()
