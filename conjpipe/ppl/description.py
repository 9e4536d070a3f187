"""Declarative model descriptions and their compiled log densities.

A :class:`ModelDescription` names a prior family, a likelihood family and the
observed data, for example::

    ModelDescription(
        prior=PriorSpec("beta", {"alpha": 2, "beta": 2}),
        likelihood=LikelihoodSpec("binomial", {"n_trials": 10}),
        data=[6, 7, 5],
    )

:func:`compile_model` validates the description and resolves it into the
distribution objects a sampler needs.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from ..custom_types import ArrayLike, Bounds

from ..core._utils import _to_1d_vector, _as_counts
from ..core.univariate import Univariate, Normal1D, Beta, Gamma, Binomial, Poisson
from ..core.conjugate import ConjugateModel, NormalNormal, BetaBinomialModel, PoissonGamma

__all__ = [
    "UnsupportedModelError",
    "PriorSpec",
    "LikelihoodSpec",
    "ModelDescription",
    "CompiledModel",
    "compile_model",
    "PRIOR_FAMILIES",
    "LIKELIHOOD_FAMILIES",
]


class UnsupportedModelError(ValueError):
    """Raised for unknown families, bad parameters or incompatible prior/likelihood pairs."""


# family -> (required parameter names, constructor)
PRIOR_FAMILIES: Dict[str, Tuple[Tuple[str, ...], Callable[..., Univariate]]] = {
    "normal": (("mu", "sigma"), lambda mu, sigma: Normal1D(mu, sigma)),
    "beta": (("alpha", "beta"), lambda alpha, beta: Beta(alpha, beta)),
    "gamma": (("shape", "rate"), lambda shape, rate: Gamma(shape, rate)),
}

# family -> (required parameter names, support of the unknown parameter)
LIKELIHOOD_FAMILIES: Dict[str, Tuple[Tuple[str, ...], Bounds]] = {
    "normal": (("sigma",), (-np.inf, np.inf)),
    "binomial": (("n_trials",), (0.0, 1.0)),
    "poisson": ((), (0.0, np.inf)),
}

# (prior family, likelihood family) -> closed-form model
_CONJUGATE_PAIRS = {
    ("normal", "normal"): lambda p, l, seed: NormalNormal(p["mu"], p["sigma"], l["sigma"], seed=seed),
    ("beta", "binomial"): lambda p, l, seed: BetaBinomialModel(p["alpha"], p["beta"], l["n_trials"], seed=seed),
    ("gamma", "poisson"): lambda p, l, seed: PoissonGamma(p["shape"], p["rate"], seed=seed),
}


def _check_params(kind: str, family: str, required: Sequence[str], params: Mapping[str, Any]) -> None:
    missing = [k for k in required if k not in params]
    extra = [k for k in params if k not in required]
    if missing or extra:
        raise UnsupportedModelError(
            f"{kind} family '{family}' takes parameters {list(required)}; "
            f"missing={missing}, unexpected={extra}"
        )


@dataclass
class PriorSpec:
    """Prior family name and hyperparameters."""

    family: str
    params: Dict[str, float] = field(default_factory=dict)


@dataclass
class LikelihoodSpec:
    """Likelihood family name and its fixed (known) parameters."""

    family: str
    params: Dict[str, float] = field(default_factory=dict)


@dataclass
class ModelDescription:
    """A one-parameter Bayesian model: prior, likelihood and observed data.

    Attributes:
        prior: Prior over the unknown parameter.
        likelihood: Sampling distribution of each observation given the parameter.
        data: Observations (i.i.d. given the parameter).
        parameter_name: Name used for the parameter in traces and plots.
    """

    prior: PriorSpec
    likelihood: LikelihoodSpec
    data: Optional[ArrayLike] = None
    parameter_name: str = "theta"

    def with_data(self, data: ArrayLike) -> "ModelDescription":
        return ModelDescription(self.prior, self.likelihood, data, self.parameter_name)


class CompiledModel:
    """A validated :class:`ModelDescription` resolved into distributions.

    Attributes:
        description: The source description.
        data: Validated observations as a 1-D float array.
        prior_distribution: Prior as a :class:`Univariate`.
        support: (lower, upper) bounds of the parameter.
    """

    def __init__(self, description: ModelDescription, data: NDArray, prior_distribution: Univariate,
                 support: Bounds):
        self.description = description
        self.data = data
        self.prior_distribution = prior_distribution
        self.support = support
        # one generator for every likelihood object the samplers build
        self._rng = np.random.default_rng()

    @property
    def parameter_name(self) -> str:
        return self.description.parameter_name

    @property
    def prior_family(self) -> str:
        return self.description.prior.family

    @property
    def likelihood_family(self) -> str:
        return self.description.likelihood.family

    def likelihood_factory(self, param: float) -> Univariate:
        """Distribution of one observation given the parameter value."""
        fam = self.likelihood_family
        lp = self.description.likelihood.params
        if fam == "normal":
            return Normal1D(param, lp["sigma"], rng=self._rng)
        if fam == "binomial":
            return Binomial(int(lp["n_trials"]), param, rng=self._rng)
        return Poisson(param, rng=self._rng)

    def log_prior(self, param: float) -> float:
        return float(self.prior_distribution.log_density(param)[0, 0])

    def log_likelihood(self, param: float) -> float:
        lo, hi = self.support
        if not lo <= param <= hi:
            return -np.inf
        if self.data.size == 0:
            return 0.0
        return float(np.sum(self.likelihood_factory(param).log_density(self.data)))

    def log_posterior(self, param: float) -> float:
        """Unnormalized log posterior; ``-inf`` outside the support."""
        lp = self.log_prior(param)
        if not np.isfinite(lp):
            return -np.inf
        return lp + self.log_likelihood(param)

    def initial_value(self) -> float:
        """A starting point with finite log posterior: the prior median, nudged off the boundary."""
        x = self.prior_distribution.median()
        lo, hi = self.support
        if np.isfinite(lo):
            x = max(x, lo + 1e-6)
        if np.isfinite(hi):
            x = min(x, hi - 1e-6)
        return float(x)

    def proposal_scale(self) -> float:
        """Random-walk step size: 2.4 times a normal approximation of the posterior sd."""
        sd = self.prior_distribution.std()
        n = self.data.size
        if n:
            fam = self.likelihood_family
            if fam == "normal":
                sd = 1.0 / np.sqrt(1.0 / sd ** 2 + n / self.description.likelihood.params["sigma"] ** 2)
            elif fam == "binomial":
                trials = n * self.description.likelihood.params["n_trials"]
                p = np.clip((self.data.sum() + 1.0) / (trials + 2.0), 1e-3, 1 - 1e-3)
                sd = min(sd, np.sqrt(p * (1 - p) / trials))
            else:
                lam = max(self.data.mean(), 1.0 / n)
                sd = min(sd, np.sqrt(lam / n))
        return float(2.4 * sd)

    def conjugate(self, seed: Optional[int] = None) -> ConjugateModel:
        """The closed-form model for this prior/likelihood pair.

        Raises:
            UnsupportedModelError: If the pair is not conjugate.
        """
        key = (self.prior_family, self.likelihood_family)
        if key not in _CONJUGATE_PAIRS:
            raise UnsupportedModelError(f"No closed-form update for prior '{key[0]}' with likelihood '{key[1]}'.")
        model = _CONJUGATE_PAIRS[key](self.description.prior.params, self.description.likelihood.params, seed)
        model.parameter_name = self.parameter_name
        return model

    def __repr__(self) -> str:
        return (f"CompiledModel({self.parameter_name} ~ {self.prior_distribution!r}, "
                f"y ~ {self.likelihood_family}, n={self.data.size})")


def compile_model(description: ModelDescription) -> CompiledModel:
    """Validates ``description`` and resolves it into a :class:`CompiledModel`.

    Raises:
        UnsupportedModelError: For unknown families, missing or unexpected
            parameters, invalid hyperparameters, or data outside the
            likelihood's sample space.
    """
    prior, lik = description.prior, description.likelihood
    if prior.family not in PRIOR_FAMILIES:
        raise UnsupportedModelError(f"Unknown prior family '{prior.family}'. Known: {sorted(PRIOR_FAMILIES)}")
    if lik.family not in LIKELIHOOD_FAMILIES:
        raise UnsupportedModelError(f"Unknown likelihood family '{lik.family}'. Known: {sorted(LIKELIHOOD_FAMILIES)}")

    names, ctor = PRIOR_FAMILIES[prior.family]
    _check_params("prior", prior.family, names, prior.params)
    lik_names, support = LIKELIHOOD_FAMILIES[lik.family]
    _check_params("likelihood", lik.family, lik_names, lik.params)

    try:
        prior_dist = ctor(**prior.params)
    except ValueError as exc:
        raise UnsupportedModelError(f"Invalid {prior.family} prior: {exc}") from exc

    p_lo, p_hi = prior_dist.support
    lo, hi = max(p_lo, support[0]), min(p_hi, support[1])
    if lo >= hi:
        raise UnsupportedModelError(
            f"Prior '{prior.family}' puts no mass on the {lik.family} parameter space {support}."
        )

    raw = description.data if description.data is not None else []
    try:
        if lik.family == "normal":
            if float(lik.params["sigma"]) <= 0:
                raise ValueError("sigma must be > 0")
            data = _to_1d_vector(raw)
            if not np.all(np.isfinite(data)):
                raise ValueError("observations must be finite")
        elif lik.family == "binomial":
            n_trials = lik.params["n_trials"]
            if int(n_trials) != n_trials or int(n_trials) < 1:
                raise ValueError("n_trials must be a positive integer")
            data = _as_counts(raw, upper=int(n_trials)).astype(float)
        else:
            data = _as_counts(raw).astype(float)
    except ValueError as exc:
        raise UnsupportedModelError(f"Invalid {lik.family} model: {exc}") from exc

    return CompiledModel(description, data, prior_dist, (lo, hi))
