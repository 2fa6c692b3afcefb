"""
Pytest configuration and fixtures for reproducible testing.

This file provides centralized test configuration including:
- Random seed management for reproducibility
- Shared fixtures (random generators, small event-time datasets)
- Registration of the 'slow' marker for long statistical checks
"""
import pytest
import numpy as np


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: long-running statistical tests")


@pytest.fixture(scope="session", autouse=True)
def set_random_seeds():
    """Set the legacy NumPy global seed once per session.

    The package itself only draws from explicit Generators; this keeps any
    incidental use of np.random in tests deterministic.
    """
    np.random.seed(42)

    yield


@pytest.fixture(scope="function")
def rng():
    """Fresh seeded Generator for each test function."""
    return np.random.default_rng(42)


@pytest.fixture
def small_observations():
    """Five events on [0, 3]; three unit bins hold [1, 2, 2] events."""
    return np.array([0.5, 1.2, 1.9, 2.3, 2.8])


@pytest.fixture
def constant_rate_observations():
    """About 100 events of a rate-10 process on [0, 10]."""
    gen = np.random.default_rng(7)
    count = gen.poisson(10.0 * 10.0)
    return np.sort(gen.uniform(0.0, 10.0, size=count))
