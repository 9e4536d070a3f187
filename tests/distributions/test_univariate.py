import unittest

import numpy as np
import pytest
from scipy import stats

from conjpipe.core.distributions import EmpiricalDistribution
from conjpipe.core.univariate import (
    Normal1D,
    Beta,
    Gamma,
    Binomial,
    Poisson,
    BetaBinomial,
    NegativeBinomial,
)


class TestNormal1D(unittest.TestCase):

    def setUp(self):
        self.mu = 1.5
        self.sigma = 2.5
        self.dist = Normal1D(mu=self.mu, sigma=self.sigma, rng=np.random.default_rng(123))

    def test_sample_shape(self):
        self.assertEqual(self.dist.sample(1).shape, (1, 1))
        self.assertEqual(self.dist.sample(10).shape, (10, 1))

    def test_mean_cov(self):
        m = self.dist.mean()
        C = self.dist.cov()
        self.assertEqual(m.shape, (1,))
        self.assertEqual(C.shape, (1, 1))
        np.testing.assert_allclose(m[0], self.mu)
        np.testing.assert_allclose(C[0, 0], self.sigma ** 2)
        self.assertAlmostEqual(self.dist.std(), self.sigma)

    def test_density_log_density_cdf_shapes(self):
        arr1d = np.linspace(-1, 1, 5)
        for fn in (self.dist.density, self.dist.log_density, self.dist.cdf):
            self.assertEqual(fn(0.0).shape, (1, 1))
            self.assertEqual(fn(arr1d).shape, (5, 1))
            self.assertEqual(fn(arr1d.reshape(5, 1)).shape, (5, 1))

    def test_log_density_consistency(self):
        x = np.array([-2.0, 0.0, 2.0])
        np.testing.assert_allclose(self.dist.log_density(x).ravel(), np.log(self.dist.density(x).ravel()))

    def test_inv_cdf_shape_and_errors(self):
        self.assertEqual(self.dist.inv_cdf(0.5).shape, (1, 1))
        self.assertEqual(self.dist.inv_cdf(np.array([0.1, 0.5, 0.9])).shape, (3, 1))
        np.testing.assert_allclose(self.dist.inv_cdf(0.5)[0, 0], self.mu)
        with self.assertRaises(ValueError):
            self.dist.inv_cdf(np.ones((2, 2)) * 0.5)

    def test_point_summaries(self):
        self.assertEqual(self.dist.mode(), self.mu)
        self.assertAlmostEqual(self.dist.median(), self.mu)

    def test_invalid_parameters(self):
        with self.assertRaises(ValueError):
            Normal1D(0.0, 0.0)
        with self.assertRaises(ValueError):
            Normal1D(np.nan, 1.0)

    def test_from_distribution_moment_match(self):
        draws = np.random.default_rng(0).normal(3.0, 0.5, size=20_000)
        fitted = Normal1D.from_distribution(EmpiricalDistribution(draws))
        self.assertAlmostEqual(fitted.mu, 3.0, delta=0.02)
        self.assertAlmostEqual(fitted.sigma, 0.5, delta=0.02)

    def test_expectation(self):
        est = self.dist.expectation(lambda x: x, n_mc=8000)
        self.assertIsInstance(est, Normal1D)
        self.assertAlmostEqual(est.mu, self.mu, delta=5 * est.sigma + 1e-9)


class TestBeta(unittest.TestCase):

    def test_moments_match_scipy(self):
        d = Beta(9.0, 5.0)
        np.testing.assert_allclose(d.mean()[0], 9.0 / 14.0)
        np.testing.assert_allclose(d.var(), stats.beta(9, 5).var())
        np.testing.assert_allclose(d.median(), stats.beta(9, 5).median())

    def test_mode_interior_and_boundaries(self):
        self.assertAlmostEqual(Beta(9.0, 5.0).mode(), 8.0 / 12.0)
        self.assertEqual(Beta(0.5, 2.0).mode(), 0.0)
        self.assertEqual(Beta(2.0, 0.5).mode(), 1.0)
        self.assertEqual(Beta(1.0, 1.0).mode(), 0.5)

    def test_log_density_outside_support(self):
        lp = Beta(2.0, 2.0).log_density(np.array([-0.1, 0.5, 1.1]))[:, 0]
        self.assertEqual(lp[0], -np.inf)
        self.assertTrue(np.isfinite(lp[1]))
        self.assertEqual(lp[2], -np.inf)

    def test_support(self):
        self.assertEqual(Beta(2.0, 3.0).support, (0.0, 1.0))

    def test_invalid_parameters(self):
        for a, b in [(0.0, 1.0), (1.0, -2.0), (np.inf, 1.0)]:
            with self.assertRaises(ValueError):
                Beta(a, b)

    def test_from_distribution(self):
        draws = np.random.default_rng(1).beta(9.0, 5.0, size=50_000)
        fitted = Beta.from_distribution(EmpiricalDistribution(draws))
        self.assertAlmostEqual(fitted.alpha, 9.0, delta=0.4)
        self.assertAlmostEqual(fitted.beta, 5.0, delta=0.25)

    def test_from_distribution_rejects_incompatible_moments(self):
        with self.assertRaises(ValueError):
            Beta.from_distribution(EmpiricalDistribution(np.array([2.0, 3.0, 4.0])))


class TestGamma(unittest.TestCase):

    def test_shape_rate_parameterisation(self):
        d = Gamma(shape=32.0, rate=11.0)
        np.testing.assert_allclose(d.mean()[0], 32.0 / 11.0)
        np.testing.assert_allclose(d.var(), 32.0 / 11.0 ** 2)
        self.assertAlmostEqual(d.mode(), 31.0 / 11.0)
        self.assertEqual(d.support, (0.0, np.inf))

    def test_mode_at_zero_for_small_shape(self):
        self.assertEqual(Gamma(0.5, 2.0).mode(), 0.0)

    def test_from_distribution(self):
        draws = np.random.default_rng(2).gamma(4.0, 1.0 / 2.0, size=50_000)
        fitted = Gamma.from_distribution(EmpiricalDistribution(draws))
        self.assertAlmostEqual(fitted.shape, 4.0, delta=0.15)
        self.assertAlmostEqual(fitted.rate, 2.0, delta=0.1)

    def test_repr(self):
        self.assertEqual(repr(Gamma(2.0, 1.0)), "Gamma(shape=2, rate=1)")


# ---------------------------- discrete families ----------------------------

@pytest.mark.parametrize("dist", [
    Binomial(10, 0.3),
    Poisson(4.2),
    BetaBinomial(10, 9.0, 5.0),
    NegativeBinomial(32.0, 12.0 / 13.0),
])
def test_discrete_pmf_sums_to_one(dist):
    ks = np.arange(0, 200)
    assert dist.discrete
    np.testing.assert_allclose(dist.density(ks).sum(), 1.0, atol=1e-8)


@pytest.mark.parametrize("dist, expected", [
    (Binomial(10, 0.5), 5.0),
    (Binomial(9, 0.5), 4.0),      # tie between 4 and 5
    (Poisson(3.5), 3.0),
    (Poisson(3.0), 2.0),          # tie between 2 and 3
    (Poisson(0.0), 0.0),
    (NegativeBinomial(0.5, 0.5), 0.0),
])
def test_discrete_modes(dist, expected):
    assert dist.mode() == expected


def test_discrete_modes_are_pmf_maximisers():
    for dist in (Binomial(12, 0.37), Poisson(6.4), BetaBinomial(10, 9.0, 5.0), NegativeBinomial(7.3, 0.4)):
        ks = np.arange(0, 100)
        pmf = dist.density(ks)[:, 0]
        assert np.isclose(pmf[int(dist.mode())], pmf.max())


def test_beta_binomial_moments():
    d = BetaBinomial(10, 9.0, 5.0)
    ref = stats.betabinom(10, 9.0, 5.0)
    np.testing.assert_allclose(d.mean()[0], ref.mean())
    np.testing.assert_allclose(d.var(), ref.var())


def test_negative_binomial_moments():
    d = NegativeBinomial(32.0, 11.0 / 12.0)
    np.testing.assert_allclose(d.mean()[0], 32.0 * (1.0 / 12.0) / (11.0 / 12.0))


def test_discrete_samples_are_integers():
    xs = Poisson(3.0, rng=np.random.default_rng(0)).sample(100)
    assert xs.shape == (100, 1)
    assert np.all(xs == np.round(xs))


@pytest.mark.parametrize("ctor", [
    lambda: Binomial(-1, 0.5),
    lambda: Binomial(5, 1.5),
    lambda: Poisson(-1.0),
    lambda: BetaBinomial(5, 0.0, 1.0),
    lambda: NegativeBinomial(2.0, 0.0),
])
def test_discrete_invalid_parameters(ctor):
    with pytest.raises(ValueError):
        ctor()


if __name__ == "__main__":
    unittest.main()
