"""
Pytest configuration file providing shared fixtures and helper functions.
"""
import numpy as np
import pytest

from stratcontam.scenario import Scenario, StratumSpec, THREE_STRATA


@pytest.fixture
def rng():
    """Fresh seeded generator so each test sees the same draws."""
    return np.random.default_rng(12345)


@pytest.fixture
def small_strata():
    """Three small strata with distinct means and spreads."""
    return (
        StratumSpec(size=300, mean=1.0, sd=2.0),
        StratumSpec(size=200, mean=1.5, sd=3.0),
        StratumSpec(size=500, mean=2.0, sd=4.0),
    )


@pytest.fixture
def small_scenario(small_strata):
    """5% contamination over the small strata, few replications."""
    return Scenario(outlier_proportion=0.05, strata=small_strata, replications=20)


@pytest.fixture
def reference_scenario():
    """The 3-strata reference scenario at 5% contamination."""
    return Scenario(outlier_proportion=0.05, strata=THREE_STRATA, replications=100)
