"""Drive a compiled model through a generic MCMC engine.

Two engines are available:

``"metropolis"``
    The in-house :class:`~conjpipe.core.mcmc.MCMC` module with a random-walk
    :class:`~conjpipe.core.mcmc.MetropolisHastings` sampler.
``"pymc"``
    PyMC's own compiler and NUTS sampler (requires the ``ppl`` extra).
"""
from typing import Optional, Union

import numpy as np
from prefect.logging import get_logger

from ..config import SamplerSettings
from ..custom_types import Seed
from ..core.distributions import EmpiricalDistribution
from ..core.mcmc import MCMC, MCMCTrace, Likelihood, MetropolisHastings, DistributionModule
from .description import CompiledModel, ModelDescription, compile_model

__all__ = [
    "BACKENDS",
    "build_mcmc",
    "sample",
    "sample_posterior_predictive",
]

logger = get_logger("conjpipe.ppl")

BACKENDS = ("metropolis", "pymc")


def _compiled(model: Union[ModelDescription, CompiledModel]) -> CompiledModel:
    return model if isinstance(model, CompiledModel) else compile_model(model)


def build_mcmc(compiled: CompiledModel) -> MCMC:
    """Wires the compiled prior and likelihood into an :class:`MCMC` module."""
    return MCMC(
        parameter_name=compiled.parameter_name,
        likelihood=Likelihood(compiled.likelihood_factory),
        distribution=DistributionModule(_BoundedPrior(compiled)),
        sampler=MetropolisHastings(),
    )


class _BoundedPrior:
    """Prior restricted to the likelihood's parameter space (log density ``-inf`` outside)."""

    def __init__(self, compiled: CompiledModel):
        self._compiled = compiled

    def log_density(self, x):
        lo, hi = self._compiled.support
        x = float(np.asarray(x).reshape(-1)[0])
        if not lo <= x <= hi:
            return np.array([[-np.inf]])
        return self._compiled.prior_distribution.log_density(x)

    def sample(self, n_samples: int):
        return self._compiled.prior_distribution.sample(n_samples)


def sample(
    model: Union[ModelDescription, CompiledModel],
    backend: str = "metropolis",
    settings: Optional[SamplerSettings] = None,
) -> MCMCTrace:
    """Samples the posterior of ``model`` with the chosen engine.

    Args:
        model: A description (compiled on the fly) or a compiled model.
        backend: ``"metropolis"`` or ``"pymc"``.
        settings: Draws, burn-in, chains, proposal scale and seed.
            Defaults to :class:`SamplerSettings()`.

    Returns:
        MCMCTrace of shape (num_chains, num_samples).

    Raises:
        ValueError: If ``backend`` is unknown.
    """
    compiled = _compiled(model)
    settings = settings or SamplerSettings()

    if backend == "metropolis":
        mcmc = build_mcmc(compiled)
        proposal_std = settings.proposal_std or compiled.proposal_scale()
        logger.info("Sampling %r with Metropolis-Hastings (proposal_std=%.4g)", compiled, proposal_std)
        return mcmc.sample_chains(
            data=compiled.data,
            num_samples=settings.num_samples,
            initial_param=compiled.initial_value(),
            proposal_std=proposal_std,
            burn_in=settings.burn_in,
            num_chains=settings.num_chains,
            thin=settings.thin,
            seed=settings.seed,
        )
    if backend == "pymc":
        from .pymc_backend import sample_pymc
        return sample_pymc(compiled, settings)
    raise ValueError(f"Unknown backend '{backend}'. Choose from {BACKENDS}.")


def sample_posterior_predictive(
    model: Union[ModelDescription, CompiledModel],
    trace: MCMCTrace,
    num_samples: Optional[int] = None,
    seed: Seed = None,
) -> EmpiricalDistribution:
    """Draws one new observation per posterior draw (or ``num_samples`` resampled draws)."""
    compiled = _compiled(model)
    rng = np.random.default_rng(seed)
    thetas = trace.pooled()
    if num_samples is not None:
        thetas = rng.choice(thetas, size=int(num_samples), replace=True)

    fam = compiled.likelihood_family
    params = compiled.description.likelihood.params
    if fam == "normal":
        ys = rng.normal(thetas, params["sigma"])
    elif fam == "binomial":
        ys = rng.binomial(int(params["n_trials"]), np.clip(thetas, 0.0, 1.0)).astype(float)
    else:
        ys = rng.poisson(np.maximum(thetas, 0.0)).astype(float)
    return EmpiricalDistribution(ys, rng=rng)
