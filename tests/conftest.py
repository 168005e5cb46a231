"""Pytest fixtures for recipeflow tests."""

import numpy as np
import pandas as pd
import pytest

from recipeflow.config import get_settings
from recipeflow.data import Table


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; tests that patch the environment need a clean read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def regression_table() -> Table:
    """Numeric outcome with two numeric and one nominal predictor."""
    rng = np.random.default_rng(42)
    n_samples = 120
    x1 = rng.normal(0, 1, n_samples)
    x2 = rng.normal(2, 1, n_samples)
    group = rng.choice(["a", "b", "c"], n_samples)
    y = 3 * x1 - 2 * x2 + (group == "b") * 1.5 + rng.normal(0, 0.1, n_samples)
    return Table.from_pandas(pd.DataFrame({"x1": x1, "x2": x2, "group": group, "y": y}))


@pytest.fixture
def classification_table() -> Table:
    """Binary outcome that depends on x1."""
    rng = np.random.default_rng(7)
    n_samples = 150
    x1 = rng.normal(0, 1, n_samples)
    x2 = rng.normal(0, 1, n_samples)
    label = np.where(x1 + rng.normal(0, 0.5, n_samples) > 0, "yes", "no")
    return Table.from_pandas(pd.DataFrame({"x1": x1, "x2": x2, "label": label}))


@pytest.fixture
def categorical_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "Color": ["Red", "Blue", "Green", "Red", "Blue", "Red"],
            "Size": ["S", "M", "L", "S", "M", "S"],
            "Target": [1.0, 0.0, 1.0, 1.0, 0.0, 1.0],
        }
    )
