"""End-to-end analysis of one model: closed form versus MCMC.

:func:`run_analysis` is a Prefect flow. For a conjugate description it
computes the analytic posterior, credible interval, point estimates and
posterior predictive; it then samples the same model with an MCMC engine
and summarises the draws the same way, so the two routes can be compared
side by side.
"""
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from prefect import flow
from prefect.logging import get_logger

from .config import AnalysisSettings
from .core.distributions import EmpiricalDistribution
from .core.mcmc import MIN_DIAGNOSTIC_DRAWS, MCMCTrace
from .core.summaries import CredibleInterval, PointEstimates, credible_interval, point_estimates
from .core.univariate import Univariate
from .ppl.description import CompiledModel, ModelDescription, UnsupportedModelError, compile_model
from .ppl.sampling import sample, sample_posterior_predictive

__all__ = ["RouteSummary", "AnalysisReport", "run_analysis"]

logger = get_logger("conjpipe.analysis")


@dataclass
class RouteSummary:
    """Posterior summaries from one route (analytic or sampled)."""

    posterior: Union[Univariate, EmpiricalDistribution]
    interval: CredibleInterval
    estimates: PointEstimates
    predictive: Union[Univariate, EmpiricalDistribution]
    predictive_interval: CredibleInterval


@dataclass
class AnalysisReport:
    """Everything :func:`run_analysis` computed for one model."""

    model: CompiledModel
    analytic: Optional[RouteSummary]
    sampled: RouteSummary
    trace: MCMCTrace
    r_hat: float
    ess: float

    def summary(self) -> str:
        """Plain-text table comparing the analytic and sampled routes."""
        name = self.model.parameter_name
        rows = [("", "analytic", "mcmc")]

        def cell(route, getter):
            return "-" if route is None else f"{getter(route):.4f}"

        for label, getter in [
            ("mean", lambda r: r.estimates.mean),
            ("median", lambda r: r.estimates.median),
            ("mode", lambda r: r.estimates.mode),
            ("ci lower", lambda r: r.interval.lower),
            ("ci upper", lambda r: r.interval.upper),
            ("pred mean", lambda r: float(np.asarray(r.predictive.mean()).reshape(-1)[0])),
            ("pred lower", lambda r: r.predictive_interval.lower),
            ("pred upper", lambda r: r.predictive_interval.upper),
        ]:
            rows.append((label, cell(self.analytic, getter), cell(self.sampled, getter)))

        width = max(len(r[0]) for r in rows) + 2
        lines = [f"{self.model!r}", f"{100 * self.sampled.interval.level:g}% intervals for {name}"]
        lines += [f"{a:<{width}}{b:>12}{c:>12}" for a, b, c in rows]
        lines.append(f"r_hat={self.r_hat:.4f}  ess={self.ess:.0f}  "
                     f"acceptance={np.nanmean(self.trace.acceptance_rates):.3f}")
        return "\n".join(lines)


def _summarise(posterior, predictive, settings: AnalysisSettings) -> RouteSummary:
    return RouteSummary(
        posterior=posterior,
        interval=credible_interval(posterior, settings.level, settings.interval_method),
        estimates=point_estimates(posterior),
        predictive=predictive,
        predictive_interval=credible_interval(predictive, settings.level, "equal_tailed"),
    )


@flow(name="conjugate-analysis", validate_parameters=False)
def run_analysis(
    description: Union[ModelDescription, CompiledModel],
    settings: Optional[AnalysisSettings] = None,
) -> AnalysisReport:
    """Runs the closed-form and MCMC routes for ``description``.

    Non-conjugate descriptions skip the analytic route (``report.analytic``
    is ``None``).

    Args:
        description: Model to analyse.
        settings: Interval level/method, engine and sampler settings.

    Returns:
        AnalysisReport.
    """
    settings = settings or AnalysisSettings()
    compiled = description if isinstance(description, CompiledModel) else compile_model(description)
    seed = settings.sampler.seed

    analytic = None
    try:
        conj = compiled.conjugate(seed=seed)
    except UnsupportedModelError:
        logger.info("No closed form for %r; sampling only.", compiled)
    else:
        posterior = conj.update_posterior(data=compiled.data)
        predictive = conj.posterior_predictive(data=compiled.data)
        analytic = _summarise(posterior, predictive, settings)

    trace = sample(compiled, backend=settings.backend, settings=settings.sampler)
    sampled_post = trace.to_distribution(rng=np.random.default_rng(seed))
    sampled_pred = sample_posterior_predictive(compiled, trace, settings.num_predictive, seed=seed)
    sampled = _summarise(sampled_post, sampled_pred, settings)

    # nan when chains are too short to split; r_hat also for a single chain
    r_hat, ess = trace.r_hat(), trace.ess()
    if trace.num_draws < MIN_DIAGNOSTIC_DRAWS:
        logger.warning("Chains of %d draws are too short for R-hat and ESS.", trace.num_draws)
    elif np.isfinite(r_hat) and r_hat > 1.05:
        logger.warning("R-hat %.3f > 1.05 for %s", r_hat, compiled.parameter_name)

    report = AnalysisReport(model=compiled, analytic=analytic, sampled=sampled, trace=trace, r_hat=r_hat, ess=ess)
    logger.info("Analysis finished:\n%s", report.summary())
    return report
