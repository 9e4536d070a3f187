import numpy as np
import pytest

from conjpipe.core.conjugate import NormalNormal, BetaBinomialModel, PoissonGamma
from conjpipe.core.distributions import EmpiricalDistribution
from conjpipe.core.univariate import Normal1D, Beta, Gamma, BetaBinomial, NegativeBinomial


HEIGHTS = np.array([172.1, 168.4, 181.0, 175.3, 169.9, 177.6, 171.2, 183.4, 174.8, 166.5])
COUNTS = np.array([3, 5, 2, 4, 6, 3, 4, 2, 5, 3])


# ------------------------------ Normal-Normal -----------------------------

@pytest.fixture
def normal_model():
    return NormalNormal(mu0=170.0, tau0=20.0, sigma=10.0, seed=0)


def test_normal_posterior_closed_form(normal_model):
    post = normal_model.update_posterior(data=HEIGHTS)
    precision = 1 / 20.0 ** 2 + HEIGHTS.size / 10.0 ** 2
    assert isinstance(post, Normal1D)
    np.testing.assert_allclose(post.sigma, precision ** -0.5)
    np.testing.assert_allclose(post.mu, (170.0 / 400.0 + HEIGHTS.sum() / 100.0) / precision)


def test_normal_posterior_shrinks_towards_data(normal_model):
    post = normal_model.update_posterior(data=HEIGHTS)
    assert 170.0 < post.mu < HEIGHTS.mean()
    assert post.sigma < 10.0 / np.sqrt(HEIGHTS.size)


def test_normal_predictive_adds_observation_noise(normal_model):
    post = normal_model.update_posterior(data=HEIGHTS)
    pred = normal_model.posterior_predictive(data=HEIGHTS)
    assert isinstance(pred, Normal1D)
    assert pred.mu == post.mu
    np.testing.assert_allclose(pred.sigma ** 2, post.sigma ** 2 + 10.0 ** 2)


def test_normal_sequential_updates_agree_with_batch():
    batch = NormalNormal(0.0, 1.0, 2.0).update_posterior(data=HEIGHTS[:6] - 170.0)
    first = NormalNormal(0.0, 1.0, 2.0).update_posterior(data=HEIGHTS[:3] - 170.0)
    second = NormalNormal(first.mu, first.sigma, 2.0).update_posterior(data=HEIGHTS[3:6] - 170.0)
    np.testing.assert_allclose([second.mu, second.sigma], [batch.mu, batch.sigma])


def test_normal_rejects_bad_inputs():
    with pytest.raises(ValueError):
        NormalNormal(0.0, -1.0, 1.0)
    with pytest.raises(ValueError):
        NormalNormal(0.0, 1.0, 0.0)
    with pytest.raises(ValueError):
        NormalNormal(0.0, 1.0, 1.0).update_posterior(data=[1.0, np.inf])


# ------------------------------ Beta-Binomial -----------------------------

@pytest.fixture
def beta_model():
    return BetaBinomialModel(alpha=2.0, beta=2.0, n_trials=10, seed=1)


def test_beta_posterior_counts(beta_model):
    post = beta_model.update_posterior(data=[7])
    assert isinstance(post, Beta)
    assert (post.alpha, post.beta) == (9.0, 5.0)


def test_beta_posterior_multiple_batches(beta_model):
    post = beta_model.update_posterior(data=[7, 4, 10])
    assert (post.alpha, post.beta) == (2.0 + 21, 2.0 + 9)


def test_beta_predictive_is_beta_binomial(beta_model):
    pred = beta_model.posterior_predictive(data=[7])
    assert isinstance(pred, BetaBinomial)
    assert (pred.n_trials, pred.alpha, pred.beta) == (10, 9.0, 5.0)
    np.testing.assert_allclose(pred.mean()[0], 10 * 9.0 / 14.0)


@pytest.mark.parametrize("bad", [[11], [-1], [2.5]])
def test_beta_rejects_invalid_counts(beta_model, bad):
    with pytest.raises(ValueError):
        beta_model.update_posterior(data=bad)


def test_beta_rejects_bad_trials():
    with pytest.raises(ValueError):
        BetaBinomialModel(1.0, 1.0, n_trials=0)
    with pytest.raises(ValueError):
        BetaBinomialModel(1.0, 1.0, n_trials=2.5)


# ------------------------------ Poisson-Gamma -----------------------------

@pytest.fixture
def poisson_model():
    return PoissonGamma(shape=2.0, rate=1.0, seed=2)


def test_gamma_posterior(poisson_model):
    post = poisson_model.update_posterior(data=COUNTS)
    assert isinstance(post, Gamma)
    assert (post.shape, post.rate) == (2.0 + COUNTS.sum(), 1.0 + COUNTS.size)


def test_poisson_predictive_is_negative_binomial(poisson_model):
    pred = poisson_model.posterior_predictive(data=COUNTS)
    assert isinstance(pred, NegativeBinomial)
    a, b = 2.0 + COUNTS.sum(), 1.0 + COUNTS.size
    np.testing.assert_allclose(pred.prob, b / (b + 1))
    np.testing.assert_allclose(pred.mean()[0], a / b)
    np.testing.assert_allclose(pred.var(), a / b + a / b ** 2)


def test_poisson_rejects_negative_counts(poisson_model):
    with pytest.raises(ValueError):
        poisson_model.update_posterior(data=[1, -2])


# ------------------------------- Shared API --------------------------------

@pytest.mark.parametrize("model", [
    NormalNormal(170.0, 20.0, 10.0),
    BetaBinomialModel(2.0, 2.0, 10),
    PoissonGamma(2.0, 1.0),
])
def test_empty_data_returns_prior(model):
    for data in (None, []):
        post = model.update_posterior(data=data)
        np.testing.assert_allclose(post.mean(), model.prior.mean())
        np.testing.assert_allclose(post.var(), model.prior.var())


def test_prior_predictive_matches_empty_posterior_predictive(beta_model):
    prior_pred = beta_model.prior_predictive()
    assert (prior_pred.alpha, prior_pred.beta) == (2.0, 2.0)
    np.testing.assert_allclose(prior_pred.mean(), beta_model.posterior_predictive(data=None).mean())


def test_sample_posterior_agrees_with_closed_form(poisson_model):
    draws = poisson_model.sample_posterior(data=COUNTS, num_samples=20_000)
    post = poisson_model.update_posterior(data=COUNTS)
    assert isinstance(draws, EmpiricalDistribution)
    assert draws.n == 20_000
    np.testing.assert_allclose(draws.mean()[0], post.mean()[0], rtol=0.01)
    np.testing.assert_allclose(draws.std()[0], post.std(), rtol=0.03)


@pytest.mark.parametrize("model, data", [
    (NormalNormal(170.0, 20.0, 10.0, seed=3), HEIGHTS),
    (BetaBinomialModel(2.0, 2.0, 10, seed=4), [7]),
    (PoissonGamma(2.0, 1.0, seed=5), COUNTS),
])
def test_composition_sampling_matches_analytic_predictive(model, data):
    draws = model.sample_posterior_predictive(data=data, num_samples=40_000)
    pred = model.posterior_predictive(data=data)
    sd = pred.std()
    assert abs(draws.mean()[0] - pred.mean()[0]) < 0.03 * sd + 4 * sd / np.sqrt(40_000)
    np.testing.assert_allclose(draws.std()[0], sd, rtol=0.03)


def test_discrete_predictive_draws_are_counts(beta_model):
    draws = beta_model.sample_posterior_predictive(data=[7], num_samples=500)
    assert draws.is_discrete
    assert draws.samples.min() >= 0 and draws.samples.max() <= 10


def test_likelihood_factory(beta_model):
    lik = beta_model.likelihood_factory(0.3)
    np.testing.assert_allclose(lik.mean()[0], 3.0)


def test_run_functions_registered(normal_model):
    assert set(normal_model._run_funcs) == {
        "update_posterior",
        "posterior_predictive",
        "sample_posterior",
        "sample_posterior_predictive",
        "prior_predictive",
    }
    assert normal_model.parameter_name == "mu"
