"""
Pytest configuration and shared fixtures for clustkit tests.

This module provides:
- Small hand-checkable datasets
- Generated data with and without cluster structure
- Bundled example datasets
- Settings fixtures
"""

import numpy as np
import pytest

from clustkit.config.settings_loader import ConfigManager, Settings
from clustkit.datasets import load_usarrests


# =============================================================================
# Test Data Generators
# =============================================================================

@pytest.fixture
def four_points():
    """Two tight pairs far apart: {(0,0),(0,1)} and {(10,0),(10,1)}."""
    return np.array([[0.0, 0.0], [0.0, 1.0], [10.0, 0.0], [10.0, 1.0]])


@pytest.fixture
def clustered_data():
    """
    Generate data with clear cluster structure.

    Creates 3 well separated Gaussian blobs of 30 points in 2-D,
    centred at (0, 0), (10, 0) and (0, 10).
    """
    rng = np.random.default_rng(42)
    centers = np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 10.0]])
    n_per_cluster = 30

    data = np.vstack([c + rng.normal(scale=0.5, size=(n_per_cluster, 2)) for c in centers])
    labels = np.repeat(np.arange(3), n_per_cluster)
    return data, labels


@pytest.fixture
def uniform_data():
    """Generate structureless data: 200 points uniform on the unit square."""
    rng = np.random.default_rng(7)
    return rng.uniform(size=(200, 2))


@pytest.fixture
def small_data():
    """Generate a small random dataset for quick tests."""
    rng = np.random.default_rng(0)
    return rng.normal(size=(12, 3))


@pytest.fixture
def mixed_records():
    """Mixed-type records for Gower dissimilarity."""
    return [
        [1.0, "red", "low", 1],
        [2.0, "blue", "high", 0],
        [3.0, "red", "medium", 1],
        [1.5, "green", "low", 0],
    ]


@pytest.fixture
def usarrests():
    """USArrests, z-scored as usual before clustering."""
    dataset = load_usarrests()
    values = dataset.values
    return (values - values.mean(axis=0)) / values.std(axis=0, ddof=1)


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Fresh default settings."""
    return Settings()


@pytest.fixture
def reset_config_manager():
    """Clear cached settings before and after a test."""
    ConfigManager._settings = None
    yield
    ConfigManager._settings = None


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: Slow-running tests"
    )
