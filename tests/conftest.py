import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest
from prefect.testing.utilities import prefect_test_harness

from conjpipe.core.distributions import EmpiricalDistribution
from conjpipe.presets import get_example


@pytest.fixture(autouse=True, scope="session")
def prefect_backend():
    # Run functions are Prefect tasks; give them a throwaway API database.
    with prefect_test_harness():
        yield


@pytest.fixture
def rng():
    return np.random.default_rng(42)

@pytest.fixture
def simple_samples():
    return np.array([[1.0], [2.0], [3.0]])

@pytest.fixture
def empirical(simple_samples, rng):
    return EmpiricalDistribution(simple_samples, rng=rng)

@pytest.fixture
def simple_weights():
    return np.array([0.2, 0.3, 0.5])

@pytest.fixture
def normal_description():
    return get_example("normal_normal")

@pytest.fixture
def beta_description():
    return get_example("beta_binomial")

@pytest.fixture
def poisson_description():
    return get_example("poisson_gamma")
