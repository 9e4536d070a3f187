import numpy as np
import pytest

from conjpipe.core.distributions import EmpiricalDistribution
from conjpipe.core.univariate import Normal1D, Beta


@pytest.mark.parametrize(
    "weights",
    [[0.2, 0.8], [0.5, -0.2, 0.7], [0.0, 0.0, 0.0]],
    ids=["wrong-length", "negative", "zero-total"],
)
def test_invalid_weights(weights):
    with pytest.raises(ValueError):
        EmpiricalDistribution(np.arange(3.0), weights=np.array(weights))


def test_init_rejects_empty():
    with pytest.raises(ValueError):
        EmpiricalDistribution(np.array([]))


def test_weighted_population_moments(simple_weights):
    draws = np.array([1.0, 3.0, 5.0])
    emp = EmpiricalDistribution(draws, weights=simple_weights, rng=np.random.default_rng(0))

    assert (emp.n, emp.d) == (3, 1)
    assert emp.samples.shape == (3, 1)

    centre = simple_weights @ draws
    spread = simple_weights @ (draws - centre) ** 2
    np.testing.assert_allclose(emp.mean(), [centre], atol=1e-12)
    np.testing.assert_allclose(emp.cov(), [[spread]], atol=1e-12)
    np.testing.assert_allclose(emp.var(), [spread], atol=1e-12)
    np.testing.assert_allclose(emp.std(), [np.sqrt(spread)], atol=1e-12)


def test_weights_are_normalised():
    emp = EmpiricalDistribution(np.array([0.0, 1.0]), weights=np.array([2.0, 6.0]))
    np.testing.assert_allclose(emp.weights, [0.25, 0.75])


# Quantiles

def test_quantile_matches_numpy_inverted_cdf():
    x = np.random.default_rng(3).normal(size=501)
    emp = EmpiricalDistribution(x)
    qs = np.array([0.025, 0.25, 0.5, 0.75, 0.975])
    np.testing.assert_allclose(emp.quantile(qs), np.quantile(x, qs, method="inverted_cdf"))


def test_weighted_quantile_and_median(simple_samples, simple_weights):
    emp = EmpiricalDistribution(simple_samples, weights=simple_weights)
    # cumulative weights 0.2, 0.5, 1.0
    assert emp.quantile(0.1) == 1.0
    assert emp.quantile(0.5) == 2.0
    assert emp.quantile(0.51) == 3.0
    assert emp.median() == 2.0


def test_quantile_rejects_out_of_range(empirical):
    with pytest.raises(ValueError):
        empirical.quantile(1.5)


# Modes

def test_mode_discrete_uses_heaviest_value():
    emp = EmpiricalDistribution(np.array([2.0, 3.0, 3.0, 4.0, 3.0, 2.0]))
    assert emp.is_discrete
    assert emp.mode() == 3.0


def test_mode_continuous_is_near_peak():
    x = np.random.default_rng(4).normal(5.0, 1.0, size=5000)
    emp = EmpiricalDistribution(x)
    assert not emp.is_discrete
    assert abs(emp.mode() - 5.0) < 0.25


def test_mode_single_value():
    assert EmpiricalDistribution(np.array([1.25])).mode() == 1.25


def test_resampling_follows_weights():
    emp = EmpiricalDistribution(np.array([-1.0, 1.0]), weights=np.array([0.9, 0.1]),
                                rng=np.random.default_rng(42))
    draws = emp.sample(4000)
    assert draws.shape == (4000, 1)
    assert set(np.unique(draws)) <= {-1.0, 1.0}
    assert 0.87 < np.mean(draws < 0) < 0.93


def test_sample_without_replacement_limits(empirical):
    assert empirical.sample(3, replace=False).shape == (3, 1)
    with pytest.raises(ValueError):
        empirical.sample(4, replace=False)


def test_density_not_available(empirical):
    with pytest.raises(NotImplementedError):
        empirical.density(np.array([1.0]))
    with pytest.raises(NotImplementedError):
        empirical.log_density(np.array([1.0]))


# Expectations

def test_expectation_returns_normal_summary():
    x = np.random.default_rng(5).normal(2.0, 1.0, size=4000)
    est = EmpiricalDistribution(x).expectation(lambda s: s[:, 0] ** 2)
    assert isinstance(est, Normal1D)
    np.testing.assert_allclose(est.mu, np.mean(x ** 2))
    assert est.sigma > 0


def test_expectation_rejects_bad_shape(empirical):
    with pytest.raises(ValueError):
        empirical.expectation(lambda s: np.ones((s.shape[0], 2)))


# Conversions

def test_from_distribution_samples_parametric():
    emp = EmpiricalDistribution.from_distribution(Beta(2.0, 3.0, rng=np.random.default_rng(6)), num_samples=300)
    assert emp.n == 300
    assert np.all((emp.samples > 0) & (emp.samples < 1))


def test_from_distribution_copies_empirical(empirical):
    copy = EmpiricalDistribution.from_distribution(empirical)
    np.testing.assert_array_equal(copy.samples, empirical.samples)
    np.testing.assert_array_equal(copy.weights, empirical.weights)
