"""
Pytest configuration and fixtures for clear_backprop tests
"""

import numpy as np
import pytest

from clear_backprop import Dense, Model


def pytest_addoption(parser):
    parser.addoption(
        "--runslow", action="store_true", default=False, help="run long training scenarios"
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks long-running training scenarios (run with '--runslow')"
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--runslow"):
        return
    skip_slow = pytest.mark.skip(reason="needs --runslow")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def rng():
    """Seeded generator so every test sees the same numbers."""
    return np.random.default_rng(1234)


@pytest.fixture
def linear_layer():
    """Single-unit Linear layer with two inputs and fixed parameters."""
    return Dense(2, 1, 'linear', weights=[[0.5], [-0.5]], biases=[0.1])


@pytest.fixture
def sigmoid_model():
    """2-3-1 sigmoid network with fixed, non-trivial parameters."""
    return Model([
        Dense(2, 3, 'sigmoid',
              weights=[[0.2, -0.4, 0.7], [-0.3, 0.5, 0.1]],
              biases=[0.05, -0.1, 0.2]),
        Dense(3, 1, 'sigmoid',
              weights=[[0.6], [-0.8], [0.3]],
              biases=[-0.2]),
    ], rng=7)
