"""Closed-form conjugate updates.

Each model pairs a likelihood with its conjugate prior, so the posterior
stays in the prior's family and the posterior predictive has a known form:

==================  ===================  ==================  ========================
model               prior                likelihood          posterior predictive
==================  ===================  ==================  ========================
NormalNormal        N(mu0, tau0^2)       N(mu, sigma^2)      N(mu_n, tau_n^2 + sigma^2)
BetaBinomial        Beta(a, b)           Bin(n_trials, p)    BetaBinom(n_trials, a', b')
PoissonGamma        Gamma(a, b) (rate)   Poisson(lambda)     NegBinom(a', b' / (b' + 1))
==================  ===================  ==================  ========================
"""
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray
from prefect.logging import get_logger

from ._utils import _to_1d_vector, _check_positive, _as_counts
from .distributions import EmpiricalDistribution
from .module import Module
from .univariate import (
    Univariate,
    Normal1D,
    Beta,
    Gamma,
    Binomial,
    Poisson,
    BetaBinomial,
    NegativeBinomial,
)

__all__ = [
    "ConjugateModel",
    "NormalNormal",
    "BetaBinomialModel",
    "PoissonGamma",
]

logger = get_logger("conjpipe.conjugate")


class ConjugateModel(Module, ABC):
    """Base class for conjugate prior/likelihood pairs.

    Subclasses implement the closed-form update (:meth:`_posterior`), the
    predictive for a given parameter distribution (:meth:`_predictive`)
    and vectorised likelihood draws (:meth:`_draw_observations`). This class
    registers the public run functions:

        - ``update_posterior(data)``
        - ``posterior_predictive(data)``
        - ``sample_posterior(data, num_samples)``
        - ``sample_posterior_predictive(data, num_samples)``
        - ``prior_predictive()``

    ``data=None`` or an empty array leaves the prior unchanged.
    """

    #: Name of the unknown parameter, used in reports and plots.
    parameter_name: str = "theta"

    def __init__(self, *, seed: Optional[int] = None, **kwargs):
        super().__init__(**kwargs)
        self._rng = np.random.default_rng(seed)

        self.run_func(self._update_posterior, name="update_posterior")
        self.run_func(self._posterior_predictive, name="posterior_predictive")
        self.run_func(self._sample_posterior, name="sample_posterior")
        self.run_func(self._sample_posterior_predictive, name="sample_posterior_predictive")
        self.run_func(self._prior_predictive, name="prior_predictive")

    # ---- family specific ----

    @property
    @abstractmethod
    def prior(self) -> Univariate:
        """The prior distribution of the parameter."""

    @abstractmethod
    def validate_data(self, data) -> NDArray:
        """Returns ``data`` as a 1-D array, raising ``ValueError`` if invalid."""

    @abstractmethod
    def _posterior(self, data: NDArray) -> Univariate:
        ...

    @abstractmethod
    def _predictive(self, param_dist: Univariate) -> Univariate:
        ...

    @abstractmethod
    def _draw_observations(self, params: NDArray) -> NDArray:
        """Draws one observation per parameter value in ``params`` (shape (n,))."""

    @abstractmethod
    def likelihood(self, param: float) -> Univariate:
        """Sampling distribution of a single observation given the parameter."""

    @property
    def likelihood_factory(self) -> Callable[[float], Univariate]:
        return self.likelihood

    # ---- run functions ----

    def _clean(self, data) -> NDArray:
        if data is None:
            return np.empty(0, dtype=float)
        return self.validate_data(data)

    def _update_posterior(self, data=None) -> Univariate:
        """Closed-form posterior of the parameter given ``data``."""
        post = self._update(data)
        logger.info("%s posterior: %r", type(self).__name__, post)
        return post

    def _posterior_predictive(self, data=None) -> Univariate:
        """Closed-form distribution of one new observation given ``data``."""
        return self._predictive(self._update(data))

    def _prior_predictive(self) -> Univariate:
        return self._predictive(self.prior)

    def _sample_posterior(self, data=None, num_samples: int = 10_000) -> EmpiricalDistribution:
        """Draws ``num_samples`` parameter values from the analytic posterior."""
        post = self._update(data)
        return EmpiricalDistribution(post.sample(num_samples), rng=self._rng)

    def _sample_posterior_predictive(self, data=None, num_samples: int = 10_000) -> EmpiricalDistribution:
        """Composition sampling: theta ~ posterior, then y ~ likelihood(theta)."""
        post = self._update(data)
        thetas = post.sample(num_samples)[:, 0]
        return EmpiricalDistribution(self._draw_observations(thetas), rng=self._rng)

    def _update(self, data) -> Univariate:
        y = self._clean(data)
        return self.prior if y.size == 0 else self._posterior(y)


class NormalNormal(ConjugateModel):
    """Normal likelihood with known standard deviation and a normal prior on the mean.

    Posterior after n observations with sum s::

        precision_n = 1 / tau0^2 + n / sigma^2
        mu_n        = (mu0 / tau0^2 + s / sigma^2) / precision_n
        tau_n       = precision_n ** -0.5

    Args:
        mu0: Prior mean.
        tau0: Prior standard deviation of the mean.
        sigma: Known observation standard deviation.
    """

    parameter_name = "mu"

    def __init__(self, mu0: float, tau0: float, sigma: float, **kwargs):
        if not np.isfinite(float(mu0)):
            raise ValueError("mu0 must be finite")
        self.mu0 = float(mu0)
        self.tau0 = _check_positive("tau0", tau0)
        self.sigma = _check_positive("sigma", sigma)
        super().__init__(**kwargs)

    @property
    def prior(self) -> Normal1D:
        return Normal1D(self.mu0, self.tau0, rng=self._rng)

    def likelihood(self, param: float) -> Normal1D:
        return Normal1D(param, self.sigma, rng=self._rng)

    def validate_data(self, data) -> NDArray:
        y = _to_1d_vector(data)
        if not np.all(np.isfinite(y)):
            raise ValueError("normal observations must be finite.")
        return y

    def _posterior(self, data: NDArray) -> Normal1D:
        precision = 1.0 / self.tau0 ** 2 + data.size / self.sigma ** 2
        mu_n = (self.mu0 / self.tau0 ** 2 + data.sum() / self.sigma ** 2) / precision
        return Normal1D(mu_n, precision ** -0.5, rng=self._rng)

    def _predictive(self, param_dist: Normal1D) -> Normal1D:
        return Normal1D(param_dist.mu, np.hypot(param_dist.sigma, self.sigma), rng=self._rng)

    def _draw_observations(self, params: NDArray) -> NDArray:
        return self._rng.normal(params, self.sigma)


class BetaBinomialModel(ConjugateModel):
    """Binomial likelihood with known trial count and a Beta prior on the success probability.

    Each observation is a number of successes out of ``n_trials``. The
    posterior is Beta(alpha + sum k, beta + sum(n_trials - k)) and the
    predictive for a new batch of ``n_trials`` is beta-binomial.
    """

    parameter_name = "p"

    def __init__(self, alpha: float, beta: float, n_trials: int, **kwargs):
        self.alpha = _check_positive("alpha", alpha)
        self.beta = _check_positive("beta", beta)
        if int(n_trials) != n_trials or int(n_trials) < 1:
            raise ValueError("n_trials must be a positive integer.")
        self.n_trials = int(n_trials)
        super().__init__(**kwargs)

    @property
    def prior(self) -> Beta:
        return Beta(self.alpha, self.beta, rng=self._rng)

    def likelihood(self, param: float) -> Binomial:
        return Binomial(self.n_trials, param, rng=self._rng)

    def validate_data(self, data) -> NDArray:
        return _as_counts(data, upper=self.n_trials)

    def _posterior(self, data: NDArray) -> Beta:
        successes = int(data.sum())
        failures = int(data.size * self.n_trials - successes)
        return Beta(self.alpha + successes, self.beta + failures, rng=self._rng)

    def _predictive(self, param_dist: Beta) -> BetaBinomial:
        return BetaBinomial(self.n_trials, param_dist.alpha, param_dist.beta, rng=self._rng)

    def _draw_observations(self, params: NDArray) -> NDArray:
        return self._rng.binomial(self.n_trials, params).astype(float)


class PoissonGamma(ConjugateModel):
    """Poisson likelihood with a Gamma(shape, rate) prior on the rate.

    The posterior is Gamma(shape + sum y, rate + n); the predictive is
    negative binomial with ``n_successes = shape'`` and ``prob = rate' / (rate' + 1)``.
    """

    parameter_name = "lambda"

    def __init__(self, shape: float, rate: float, **kwargs):
        self.shape = _check_positive("shape", shape)
        self.rate = _check_positive("rate", rate)
        super().__init__(**kwargs)

    @property
    def prior(self) -> Gamma:
        return Gamma(self.shape, self.rate, rng=self._rng)

    def likelihood(self, param: float) -> Poisson:
        return Poisson(param, rng=self._rng)

    def validate_data(self, data) -> NDArray:
        return _as_counts(data)

    def _posterior(self, data: NDArray) -> Gamma:
        return Gamma(self.shape + float(data.sum()), self.rate + data.size, rng=self._rng)

    def _predictive(self, param_dist: Gamma) -> NegativeBinomial:
        return NegativeBinomial(param_dist.shape, param_dist.rate / (param_dist.rate + 1.0), rng=self._rng)

    def _draw_observations(self, params: NDArray) -> NDArray:
        return self._rng.poisson(params).astype(float)
