"""Test configuration for pytest."""
import os
import sys
from typing import Tuple

import pytest
import pandas as pd
import numpy as np

# Add package root to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tree_ensemble.data.dataset import Dataset
from tree_ensemble.models.trainer import train


class IncreasingEval:
    """Evaluation function whose score grows by one on every call."""

    metric_name = "inc"

    def __init__(self) -> None:
        self.value = 0.0

    def eval(self, predictions, dataset) -> float:
        self.value += 1.0
        return self.value


@pytest.fixture(scope="session")
def regression_arrays() -> Tuple[np.ndarray, np.ndarray]:
    """Regression features with a few missing values, and targets."""
    rng = np.random.default_rng(42)

    n_samples = 300
    n_features = 5

    X = rng.normal(size=(n_samples, n_features)).astype(np.float32)
    y = 2.0 * X[:, 0] + X[:, 1] - 0.5 * X[:, 2] + 0.1 * rng.normal(size=n_samples)

    missing_mask = rng.random(X.shape) < 0.05
    X[missing_mask] = np.nan

    return X, y.astype(np.float32)


@pytest.fixture(scope="session")
def binary_frame() -> pd.DataFrame:
    """Binary classification DataFrame with named features."""
    rng = np.random.default_rng(7)

    n_samples = 400
    X = rng.normal(size=(n_samples, 4))
    linear_combination = 1.5 * X[:, 0] - X[:, 1] + 0.5 * X[:, 2] * X[:, 3]
    probabilities = 1 / (1 + np.exp(-linear_combination))

    df = pd.DataFrame(X, columns=['age', 'income', 'tenure', 'balance'])
    df['target'] = rng.binomial(1, probabilities)
    return df


@pytest.fixture(scope="session")
def multiclass_arrays() -> Tuple[np.ndarray, np.ndarray]:
    """Three-class problem without missing values."""
    rng = np.random.default_rng(3)
    X = rng.normal(size=(240, 3)).astype(np.float32)
    y = np.digitize(X[:, 0] + 0.3 * X[:, 1], [-0.5, 0.5]).astype(np.float32)
    return X, y


@pytest.fixture
def dtrain(regression_arrays) -> Dataset:
    X, y = regression_arrays
    return Dataset(X[:200], label=y[:200])


@pytest.fixture
def dvalid(regression_arrays) -> Dataset:
    X, y = regression_arrays
    return Dataset(X[200:], label=y[200:])


@pytest.fixture
def binary_datasets(binary_frame) -> Tuple[Dataset, Dataset]:
    features = binary_frame.drop('target', axis=1)
    target = binary_frame['target']
    dtr = Dataset(features.iloc[:300], label=target.iloc[:300])
    dva = Dataset(features.iloc[300:], label=target.iloc[300:])
    return dtr, dva


@pytest.fixture
def regression_params():
    return {'objective': 'reg:squarederror', 'eta': 0.3, 'max_depth': 3, 'seed': 0}


@pytest.fixture
def trained_booster(dtrain, regression_params):
    """Regression booster trained for five rounds."""
    return train(regression_params, dtrain, num_boost_round=5, verbose_eval=False)


@pytest.fixture
def increasing_eval() -> IncreasingEval:
    return IncreasingEval()


@pytest.fixture(autouse=True)
def cleanup_environment():
    """Clean up environment variables after each test."""
    # Store original environment
    original_env = dict(os.environ)

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


# Marks for test categorization
pytest_plugins = []

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as exercising concurrent access"
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
        if "config" in str(item.fspath):
            item.add_marker(pytest.mark.config)
        elif "dataset" in str(item.fspath):
            item.add_marker(pytest.mark.data)
        else:
            item.add_marker(pytest.mark.models)
