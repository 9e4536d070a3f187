import matplotlib.pyplot as plt
import numpy as np

from .core.distributions import EmpiricalDistribution
from .core.univariate import Univariate

__all__ = ["plot_posterior", "plot_predictive", "plot_trace"]


def _draws(samples):
    if isinstance(samples, EmpiricalDistribution):
        return samples.samples[:, 0]
    return np.asarray(samples, dtype=float).reshape(-1)


def plot_posterior(samples=None, distribution=None, interval=None, bins=50, ax=None, label="theta"):
    """Histogram of posterior draws with an optional analytic density and credible interval.

    Args:
        samples: Draws (array or :class:`EmpiricalDistribution`), or ``None``.
        distribution: A :class:`Univariate` whose density is overlaid.
        interval: A :class:`CredibleInterval` to shade.
        bins: Histogram bins.
        ax: Axes to draw on; a new figure is created when ``None``.
        label: Parameter name for the x axis.

    Returns:
        The matplotlib axes.

    Raises:
        ValueError: When both ``samples`` and ``distribution`` are ``None``.
    """
    if samples is None and distribution is None:
        raise ValueError("plot_posterior needs samples, a distribution, or both.")
    if ax is None:
        _, ax = plt.subplots()

    lo = hi = None
    if samples is not None:
        x = _draws(samples)
        ax.hist(x, bins=bins, density=True, alpha=0.5, color="tab:blue", label="draws")
        lo, hi = x.min(), x.max()

    if distribution is not None:
        if lo is None:
            q = distribution.inv_cdf(np.array([0.001, 0.999]))[:, 0]
            lo, hi = q[0], q[1]
        grid = np.linspace(lo, hi, 400)
        ax.plot(grid, distribution.density(grid)[:, 0], color="tab:orange", linewidth=2, label="analytic")

    if interval is not None:
        ax.axvspan(interval.lower, interval.upper, color="grey", alpha=0.2,
                   label=f"{100 * interval.level:g}% CI")

    ax.set_xlabel(label)
    ax.set_ylabel("density")
    ax.legend(loc="upper right")
    return ax


def plot_predictive(samples=None, distribution=None, data=None, ax=None, bins=None):
    """Posterior predictive histogram, optionally against the analytic pmf/pdf and observed data.

    Integer-valued predictives use one bar per count and the analytic pmf
    is drawn as points.

    Args:
        samples: Predictive draws (array or :class:`EmpiricalDistribution`), or ``None``.
        distribution: Analytic predictive to overlay.
        data: Observations, marked along the x axis.
        ax: Axes to draw on; a new figure is created when ``None``.
        bins: Histogram bins for continuous draws (50 by default).

    Returns:
        The matplotlib axes.

    Raises:
        ValueError: When both ``samples`` and ``distribution`` are ``None``.
    """
    if samples is None and distribution is None:
        raise ValueError("plot_predictive needs samples, a distribution, or both.")
    if ax is None:
        _, ax = plt.subplots()

    discrete = distribution.discrete if isinstance(distribution, Univariate) else False
    x = None
    if samples is not None:
        x = _draws(samples)
        discrete = discrete or bool(np.all(x == np.round(x)))
        if discrete:
            edges = np.arange(x.min() - 0.5, x.max() + 1.5)
            ax.hist(x, bins=edges, density=True, alpha=0.5, color="tab:green", label="predictive draws")
        else:
            ax.hist(x, bins=bins or 50, density=True, alpha=0.5, color="tab:green", label="predictive draws")

    if distribution is not None:
        q = distribution.inv_cdf(np.array([0.001, 0.999]))[:, 0]
        lo, hi = (q[0], q[1]) if x is None else (min(q[0], x.min()), max(q[1], x.max()))
        if discrete:
            ks = np.arange(np.floor(lo), np.ceil(hi) + 1)
            ax.plot(ks, distribution.density(ks)[:, 0], "o", color="tab:orange", label="analytic")
        else:
            grid = np.linspace(lo, hi, 400)
            ax.plot(grid, distribution.density(grid)[:, 0], color="tab:orange", linewidth=2, label="analytic")

    if data is not None:
        obs = np.asarray(data, dtype=float).reshape(-1)
        ax.plot(obs, np.zeros_like(obs), "|", color="black", markersize=15, label="observed")

    ax.set_xlabel("y")
    ax.set_ylabel("probability" if discrete else "density")
    ax.legend(loc="upper right")
    return ax


def plot_trace(trace, ax=None):
    """Trace plot, one line per chain.

    Args:
        trace: An :class:`MCMCTrace`.
        ax: Axes to draw on; a new figure is created when ``None``.

    Returns:
        The matplotlib axes.
    """
    if ax is None:
        _, ax = plt.subplots()
    for i, chain in enumerate(trace.chains):
        ax.plot(chain, alpha=0.7, linewidth=0.8, label=f"Chain {i + 1}")
    ax.set_xlabel("draw")
    ax.set_ylabel(trace.parameter_name)
    ax.legend(loc="upper right")
    return ax
