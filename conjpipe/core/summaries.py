"""Credible intervals and point estimates for posterior distributions.

Both helpers accept either a parametric :class:`Univariate` (closed-form
posterior) or an :class:`EmpiricalDistribution` (sampled posterior), so the
analytic and MCMC routes of an analysis are summarised the same way.
"""
from dataclasses import dataclass, asdict
from typing import Union

import numpy as np
from scipy.optimize import minimize_scalar

from .distributions import EmpiricalDistribution
from .univariate import Univariate

__all__ = [
    "CredibleInterval",
    "PointEstimates",
    "credible_interval",
    "point_estimates",
]

SummarizableDistribution = Union[Univariate, EmpiricalDistribution]


@dataclass(frozen=True)
class CredibleInterval:
    """A central or highest-density credible interval."""

    lower: float
    upper: float
    level: float
    method: str = "equal_tailed"

    @property
    def width(self) -> float:
        return self.upper - self.lower

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper

    def __str__(self) -> str:
        return f"{100 * self.level:g}% {self.method} CI [{self.lower:.4f}, {self.upper:.4f}]"


@dataclass(frozen=True)
class PointEstimates:
    """Posterior mean, median and mode (MAP)."""

    mean: float
    median: float
    mode: float

    def as_dict(self) -> dict:
        return asdict(self)


def _check_level(level: float) -> float:
    level = float(level)
    if not 0.0 < level < 1.0:
        raise ValueError(f"level must lie in (0, 1); got {level!r}")
    return level


def _quantile(dist: SummarizableDistribution, q: float) -> float:
    if isinstance(dist, EmpiricalDistribution):
        return float(dist.quantile(q))
    return float(dist.inv_cdf(q)[0, 0])


def _hpd_parametric(dist: Univariate, level: float) -> tuple:
    # Width of [F^-1(p), F^-1(p + level)] is minimised over the lower tail mass p.
    def width(p):
        return _quantile(dist, p + level) - _quantile(dist, p)

    res = minimize_scalar(width, bounds=(0.0, 1.0 - level), method="bounded",
                          options={"xatol": 1e-8})
    p = float(res.x)
    # bounded search never evaluates the end points, so compare against them
    candidates = [0.0, p, 1.0 - level]
    best = min(candidates, key=width)
    return _quantile(dist, best), _quantile(dist, best + level)


def _hpd_empirical(dist: EmpiricalDistribution, level: float) -> tuple:
    x = dist.samples[:, 0]
    order = np.argsort(x, kind="stable")
    xs = x[order]
    cw = np.concatenate([[0.0], np.cumsum(dist.weights[order])])
    best = (xs[0], xs[-1])
    # For each start index, the shortest window whose weight reaches ``level``.
    ends = np.searchsorted(cw, cw[:-1] + level - 1e-12, side="left") - 1
    valid = ends < xs.size
    if np.any(valid):
        starts = np.flatnonzero(valid)
        widths = xs[ends[valid]] - xs[starts]
        i = int(np.argmin(widths))
        best = (xs[starts[i]], xs[ends[valid][i]])
    return float(best[0]), float(best[1])


def credible_interval(
    dist: SummarizableDistribution,
    level: float = 0.95,
    method: str = "equal_tailed",
) -> CredibleInterval:
    """Computes a credible interval holding ``level`` posterior mass.

    Args:
        dist: Parametric posterior or empirical draws.
        level: Probability mass in (0, 1). Defaults to 0.95.
        method: ``"equal_tailed"`` (quantiles (1-level)/2 and (1+level)/2) or
            ``"hpd"`` (shortest interval).

    Returns:
        CredibleInterval with ``lower <= upper``.

    Raises:
        ValueError: If ``level`` is outside (0, 1) or ``method`` is unknown.
    """
    level = _check_level(level)
    if method == "equal_tailed":
        tail = (1.0 - level) / 2.0
        lo, hi = _quantile(dist, tail), _quantile(dist, 1.0 - tail)
    elif method == "hpd":
        if isinstance(dist, EmpiricalDistribution):
            lo, hi = _hpd_empirical(dist, level)
        else:
            lo, hi = _hpd_parametric(dist, level)
    else:
        raise ValueError("method must be 'equal_tailed' or 'hpd'.")
    return CredibleInterval(lower=lo, upper=hi, level=level, method=method)


def point_estimates(dist: SummarizableDistribution) -> PointEstimates:
    """Posterior mean, median and mode of ``dist``."""
    return PointEstimates(
        mean=float(np.asarray(dist.mean()).reshape(-1)[0]),
        median=float(dist.median()),
        mode=float(dist.mode()),
    )
