"""PyMC engine: build a ``pymc.Model`` from a compiled description and sample it with NUTS."""
import numpy as np
import pymc as pm
from prefect.logging import get_logger

from ..config import SamplerSettings
from ..core.mcmc import MCMCTrace
from .description import CompiledModel

__all__ = ["build_pymc_model", "sample_pymc"]

logger = get_logger("conjpipe.ppl.pymc")


def _prior(compiled: CompiledModel):
    """Prior random variable, truncated to the likelihood's parameter space when that is narrower."""
    name = compiled.parameter_name
    p = compiled.description.prior.params
    fam = compiled.prior_family
    if fam == "normal":
        family, kwargs = pm.Normal, dict(mu=p["mu"], sigma=p["sigma"])
    elif fam == "beta":
        family, kwargs = pm.Beta, dict(alpha=p["alpha"], beta=p["beta"])
    else:
        family, kwargs = pm.Gamma, dict(alpha=p["shape"], beta=p["rate"])

    lo, hi = compiled.support
    own_lo, own_hi = compiled.prior_distribution.support
    if lo <= own_lo and hi >= own_hi:
        return family(name, **kwargs)
    return pm.Truncated(name, family.dist(**kwargs),
                        lower=lo if np.isfinite(lo) else None,
                        upper=hi if np.isfinite(hi) else None)


def build_pymc_model(compiled: CompiledModel) -> pm.Model:
    """Translates ``compiled`` into a PyMC model with observed variable ``y``."""
    lik = compiled.description.likelihood
    with pm.Model() as model:
        theta = _prior(compiled)
        if compiled.data.size:
            if lik.family == "normal":
                pm.Normal("y", mu=theta, sigma=lik.params["sigma"], observed=compiled.data)
            elif lik.family == "binomial":
                pm.Binomial("y", n=int(lik.params["n_trials"]), p=theta, observed=compiled.data.astype(int))
            else:
                pm.Poisson("y", mu=theta, observed=compiled.data.astype(int))
    return model


def sample_pymc(compiled: CompiledModel, settings: SamplerSettings) -> MCMCTrace:
    """Runs ``pymc.sample`` and converts the posterior draws to an :class:`MCMCTrace`.

    Each chain keeps ``settings.num_samples`` draws after thinning by
    ``settings.thin``, the same as the Metropolis-Hastings engine.

    Args:
        compiled: The model to sample.
        settings: Draws, warm-up (PyMC ``tune``), chains, thinning and seed.

    Returns:
        MCMCTrace of shape (num_chains, num_samples).
    """
    model = build_pymc_model(compiled)
    logger.info("Sampling %r with PyMC (%d chains x %d draws)", compiled, settings.num_chains, settings.num_samples)
    with model:
        idata = pm.sample(
            draws=settings.num_samples * settings.thin,
            tune=settings.burn_in,
            chains=settings.num_chains,
            cores=1,
            random_seed=settings.seed,
            progressbar=False,
            compute_convergence_checks=False,
        )
    draws = np.asarray(idata.posterior[compiled.parameter_name].values, dtype=float)
    draws = draws[:, ::settings.thin]
    rates = np.full(draws.shape[0], np.nan)
    stats = idata.sample_stats
    if "acceptance_rate" in stats:
        rates = np.asarray(stats["acceptance_rate"].mean(dim="draw").values, dtype=float)
    return MCMCTrace(chains=draws, acceptance_rates=rates, parameter_name=compiled.parameter_name)
