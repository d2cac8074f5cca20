"""Test configuration for pytest."""
import os
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest
import pandas as pd
import numpy as np

from model_selector.data.features import Feature, FeatureVector


def make_vector(name: str, predictor_names: List[str]) -> Feature:
    """Feature vector with one real column per predictor."""
    return FeatureVector.from_features(name, [Feature.predictor(p) for p in predictor_names])


def vector_frame(features: Feature, values: np.ndarray, label_name: str, labels: np.ndarray) -> pd.DataFrame:
    """Frame with the vector columns named as the vector metadata names them."""
    frame = pd.DataFrame(values, columns=features.vector_metadata.column_names())
    frame[label_name] = labels
    return frame


@pytest.fixture
def regression_data() -> Tuple[pd.DataFrame, Feature, Feature]:
    """Noise-free linear regression data: y = 2 * x1 - 3 * x2 + 1."""
    np.random.seed(42)

    n_samples = 120
    X = np.random.randn(n_samples, 2)
    y = 2.0 * X[:, 0] - 3.0 * X[:, 1] + 1.0

    label = Feature.response("y")
    features = make_vector("features", ["x1", "x2"])
    return vector_frame(features, X, "y", y), label, features


@pytest.fixture
def binary_data() -> Tuple[pd.DataFrame, Feature, Feature]:
    """Linearly separable binary classification data with labels 0 and 1."""
    np.random.seed(42)

    n_samples = 200
    X = np.random.randn(n_samples, 3)
    y = (X[:, 0] + 0.5 * X[:, 1] > 0).astype(float)

    label = Feature.response("label")
    features = make_vector("features", ["a", "b", "c"])
    return vector_frame(features, X, "label", y), label, features


@pytest.fixture
def multiclass_data() -> Tuple[pd.DataFrame, Feature, Feature]:
    """Three well separated clusters labelled 0, 1 and 2."""
    np.random.seed(42)

    n_per_class = 60
    centers = np.array([[0.0, 0.0], [5.0, 5.0], [-5.0, 5.0]])
    X = np.vstack([center + 0.5 * np.random.randn(n_per_class, 2) for center in centers])
    y = np.repeat([0.0, 1.0, 2.0], n_per_class)

    label = Feature.response("y")
    features = make_vector("features", ["x1", "x2"])
    return vector_frame(features, X, "y", y), label, features


@pytest.fixture
def sample_config_dict() -> Dict[str, Any]:
    """Sample selector configuration dictionary for testing."""
    return {
        'task': 'regression',
        'models': ['LinearRegression', 'DecisionTreeRegression'],
        'params': {
            'LinearRegression': {'alpha': [0.0, 0.1]},
            'DecisionTreeRegression': {'max_depth': [2, 4]},
        },
        'validation': {
            'type': 'cross_validation',
            'num_folds': 3,
            'metric': 'MeanSquaredError',
            'seed': 7,
        },
        'splitter': {
            'type': 'data_splitter',
            'reserve_test_fraction': 0.2,
        },
        'evaluators': ['MeanAbsoluteError'],
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, sample_config_dict: Dict[str, Any]) -> Path:
    """Create temporary YAML config file for testing."""
    import yaml

    config_file = tmp_path / "selector.yaml"
    with open(config_file, 'w') as f:
        yaml.dump(sample_config_dict, f)

    return config_file


@pytest.fixture(autouse=True)
def cleanup_environment():
    """Clean up environment variables after each test."""
    # Store original environment
    original_env = dict(os.environ)

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "config: mark test as configuration-related"
    )
    config.addinivalue_line(
        "markers", "models: mark test as model-related"
    )
    config.addinivalue_line(
        "markers", "data: mark test as data-related"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their paths."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        if "config" in str(item.fspath):
            item.add_marker(pytest.mark.config)
        elif "selector" in str(item.fspath) or "chain" in str(item.fspath) or "validator" in str(item.fspath):
            item.add_marker(pytest.mark.models)
        elif "splitter" in str(item.fspath) or "features" in str(item.fspath):
            item.add_marker(pytest.mark.data)
