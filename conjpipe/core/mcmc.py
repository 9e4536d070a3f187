from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, Optional, Type, Any
from types import MappingProxyType

import arviz as az
import numpy as np
from numpy.typing import NDArray
from prefect.logging import get_logger

from ._utils import _to_1d_vector, _as_rng
from .module import Module
from .distributions import Distribution, EmpiricalDistribution


__all__ = [
    "Chain",
    "MCMCTrace",
    "Likelihood",
    "MetropolisHastings",
    "MCMC",
    "DistributionModule",
    "gelman_rubin",
    "effective_sample_size",
]

logger = get_logger("conjpipe.mcmc")


# --------------------------------------------------------------------------- #
# Diagnostics
# --------------------------------------------------------------------------- #

# fewest draws per chain for split-chain diagnostics
MIN_DIAGNOSTIC_DRAWS = 4


def _as_dataset(chains: NDArray):
    """Wraps (num_chains, num_draws) draws as an arviz dataset, or ``None`` when too short or constant."""
    chains = np.atleast_2d(np.asarray(chains, dtype=float))
    if chains.shape[1] < MIN_DIAGNOSTIC_DRAWS or np.ptp(chains) == 0.0:
        return None
    return az.convert_to_dataset({"theta": chains})


def gelman_rubin(chains: NDArray) -> float:
    """Rank-normalized split R-hat, computed with :func:`arviz.rhat`.

    Values close to 1 indicate the chains agree.

    Args:
        chains: Draws of shape (num_chains, num_draws).

    Returns:
        float: R-hat; ``nan`` for a single chain, fewer than four draws per
        chain, or draws that are all identical.
    """
    chains = np.atleast_2d(np.asarray(chains, dtype=float))
    ds = _as_dataset(chains)
    if ds is None or chains.shape[0] < 2:
        return float("nan")
    return float(az.rhat(ds)["theta"])


def effective_sample_size(chains: NDArray) -> float:
    """Bulk effective sample size, computed with :func:`arviz.ess`.

    Args:
        chains: Draws of shape (num_chains, num_draws).

    Returns:
        float: Estimated number of independent draws; ``nan`` for fewer
        than four draws per chain or draws that are all identical.
    """
    ds = _as_dataset(chains)
    if ds is None:
        return float("nan")
    return float(az.ess(ds, method="bulk")["theta"])


@dataclass
class Chain:
    """Draws from one Metropolis-Hastings run."""

    draws: NDArray
    acceptance_rate: float

    def __len__(self) -> int:
        return self.draws.shape[0]


@dataclass
class MCMCTrace:
    """Draws from several chains of a sampler, shape (num_chains, num_draws).

    Attributes:
        chains: Post-burn-in draws of the scalar parameter.
        acceptance_rates: Per-chain acceptance rates (``nan`` when the
            engine does not report them).
        parameter_name: Name of the sampled parameter.
    """

    chains: NDArray
    acceptance_rates: NDArray
    parameter_name: str = "theta"

    @property
    def num_chains(self) -> int:
        return self.chains.shape[0]

    @property
    def num_draws(self) -> int:
        return self.chains.shape[1]

    def pooled(self) -> NDArray:
        return self.chains.reshape(-1)

    def r_hat(self) -> float:
        return gelman_rubin(self.chains)

    def ess(self) -> float:
        return effective_sample_size(self.chains)

    def to_distribution(self, rng: Optional[np.random.Generator] = None) -> EmpiricalDistribution:
        return EmpiricalDistribution(self.pooled(), rng=rng)


# --------------------------------------------------------------------------- #
# Modules
# --------------------------------------------------------------------------- #


class DistributionModule(Module):
    """Wraps a distribution instance so it can be injected as a Module dependency (e.g. a prior)."""

    DEPENDENCIES = MappingProxyType({})

    def __init__(self, distribution: Distribution):
        super().__init__()
        self._distribution = distribution

    @property
    def distribution(self) -> Distribution:
        return self._distribution

    def log_density(self, x) -> float:
        return float(np.sum(self._distribution.log_density(x)))

    def sample(self, n_samples: int):
        return self._distribution.sample(n_samples)

    def __getattr__(self, name):
        # Only reached when normal lookup fails
        if name == "_distribution":
            raise AttributeError(name)
        return getattr(self._distribution, name)


class Likelihood(Module):
    """Log-likelihood of i.i.d. data under ``factory(param)``.

    Args:
        factory: Callable mapping a parameter value to the sampling
            distribution of one observation.
    """

    DEPENDENCIES = MappingProxyType({})

    def __init__(self, factory: Callable[[float], Distribution]):
        super().__init__()
        self._factory = factory
        self.run_func(self._log_likelihood_task, name="log_likelihood")

    @property
    def factory(self) -> Callable[[float], Distribution]:
        return self._factory

    def log_likelihood_value(self, data, param) -> float:
        """Plain-Python log-likelihood, used inside sampler loops."""
        dist = self._factory(float(param))
        return float(np.sum(dist.log_density(_to_1d_vector(data))))

    def _log_likelihood_task(self, data, param: float) -> float:
        return self.log_likelihood_value(data, param)

# Sampler loops call log_likelihood_value / DistributionModule.log_density
# directly. Wrapping each of thousands of evaluations in a Prefect task
# would dominate the run time; only the chain itself is a task.


class MetropolisHastings(Module):
    """Random-walk Metropolis-Hastings sampler for a scalar parameter.

    Proposals are Normal(current, proposal_std^2); a proposal is accepted
    with probability ``min(1, exp(log_target(proposal) - log_target(current)))``.
    Proposals whose log-target is not finite (outside the support) are
    always rejected.

    Notes:
        - Expects a callable ``log_target`` returning the unnormalized
          log-density of a state.
        - ``initial_state`` must have a finite log-target.
    """

    DEPENDENCIES = MappingProxyType({})

    def __init__(self):
        super().__init__()
        self.run_func(self._sample_posterior, name="sample_posterior")

    def _sample_posterior(
        self,
        log_target: Callable,
        num_samples: int,
        initial_state: float,
        proposal_std: float = 1.0,
        burn_in: int = 0,
        thin: int = 1,
        seed: Optional[int] = None,
    ) -> Chain:
        """Runs one chain.

        Args:
            log_target: Unnormalized log posterior of a scalar state.
            num_samples: Number of draws kept after burn-in and thinning.
            initial_state: Starting value of the chain.
            proposal_std: Proposal standard deviation. Defaults to 1.0.
            burn_in: Iterations discarded before keeping draws.
            thin: Keep every ``thin``-th iteration after burn-in.
            seed: Seed (or Generator) for the chain's random numbers.

        Returns:
            Chain with ``num_samples`` draws and the acceptance rate over
            all iterations.

        Raises:
            ValueError: For non-positive ``num_samples``/``proposal_std``/``thin``,
                negative ``burn_in``, or an initial state with non-finite log-target.
        """
        if num_samples < 1:
            raise ValueError("num_samples must be >= 1.")
        if proposal_std <= 0:
            raise ValueError("proposal_std must be > 0.")
        if thin < 1 or burn_in < 0:
            raise ValueError("thin must be >= 1 and burn_in >= 0.")

        rng = _as_rng(seed)
        current = float(initial_state)
        current_log_prob = float(log_target(current))
        if not np.isfinite(current_log_prob):
            raise ValueError(f"initial_state={current!r} has non-finite log target.")

        total = burn_in + num_samples * thin
        samples = np.empty(num_samples, dtype=float)
        accepted = 0
        kept = 0

        for it in range(total):
            proposal = current + proposal_std * rng.standard_normal()
            prop_log_prob = float(log_target(proposal))

            if np.isfinite(prop_log_prob) and np.log(rng.uniform()) < prop_log_prob - current_log_prob:
                current = proposal
                current_log_prob = prop_log_prob
                accepted += 1

            if it >= burn_in and (it - burn_in) % thin == 0:
                samples[kept] = current
                kept += 1

        rate = accepted / total
        logger.info("Metropolis-Hastings: %d iterations, acceptance rate %.3f", total, rate)
        if rate < 0.1 or rate > 0.9:
            logger.warning("Acceptance rate %.3f is far from the 0.2-0.5 range; consider tuning proposal_std.", rate)
        return Chain(draws=samples, acceptance_rate=rate)


class MCMC(Module):
    """Generic MCMC posterior estimation for a scalar parameter.

    Combines a prior (:class:`DistributionModule`), a :class:`Likelihood`
    and a sampler (:class:`MetropolisHastings`) to draw from
    p(theta | data) proportional to p(data | theta) p(theta).

    Run functions:
        - ``sample_chains(...)`` -> :class:`MCMCTrace`
        - ``calculate_posterior(...)`` -> :class:`EmpiricalDistribution` of pooled draws
    """

    DEPENDENCIES: ClassVar[Dict[str, Type[Module]]] = MappingProxyType({
        'likelihood': Likelihood,
        'distribution': DistributionModule,
        'sampler': MetropolisHastings,
    })

    def __init__(self, parameter_name: str = "theta", **dependencies: Any):
        super().__init__(**dependencies)
        self.parameter_name = parameter_name
        self.run_func(self._sample_chains, name="sample_chains")
        self.run_func(self._calculate_posterior, name="calculate_posterior")

    def log_target(self, data) -> Callable[[float], float]:
        """Unnormalized log posterior for ``data``; the likelihood is skipped where the prior is zero."""
        likelihood: Likelihood = self.dependencies['likelihood']
        prior: DistributionModule = self.dependencies['distribution']
        y = _to_1d_vector(data)

        def _log_target(param):
            lp = prior.log_density(param)
            if not np.isfinite(lp):
                return -np.inf
            return lp + likelihood.log_likelihood_value(y, param)

        return _log_target

    def _sample_chains(
        self,
        data,
        num_samples: int,
        initial_param: float,
        proposal_std: float = 1.0,
        burn_in: int = 1000,
        num_chains: int = 4,
        thin: int = 1,
        seed: Optional[int] = None,
    ) -> MCMCTrace:
        """Runs ``num_chains`` independent chains from the same starting point."""
        if num_chains < 1:
            raise ValueError("num_chains must be >= 1.")
        sampler: MetropolisHastings = self.dependencies['sampler']
        log_target = self.log_target(data)
        seeds = np.random.SeedSequence(seed).spawn(num_chains)

        chains = [
            sampler.sample_posterior(
                log_target=log_target,
                num_samples=num_samples,
                initial_state=initial_param,
                proposal_std=proposal_std,
                burn_in=burn_in,
                thin=thin,
                seed=np.random.default_rng(s),
            )
            for s in seeds
        ]
        trace = MCMCTrace(
            chains=np.stack([c.draws for c in chains]),
            acceptance_rates=np.array([c.acceptance_rate for c in chains]),
            parameter_name=self.parameter_name,
        )
        r_hat = trace.r_hat()
        if np.isfinite(r_hat) and r_hat > 1.05:
            logger.warning("R-hat for %s is %.3f (> 1.05); chains have not mixed.", self.parameter_name, r_hat)
        return trace

    def _calculate_posterior(
        self,
        data,
        num_samples: int,
        initial_param: float,
        proposal_std: float = 1.0,
        burn_in: int = 1000,
        num_chains: int = 1,
        seed: Optional[int] = None,
    ) -> EmpiricalDistribution:
        """Estimates the posterior as an empirical distribution of pooled draws."""
        trace = self._sample_chains(
            data, num_samples, initial_param,
            proposal_std=proposal_std, burn_in=burn_in, num_chains=num_chains, seed=seed,
        )
        return trace.to_distribution(rng=np.random.default_rng(seed))
