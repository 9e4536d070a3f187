from typing import TypeVar, Callable, Any, Optional
from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray

from scipy.stats import norm as _norm
from scipy.stats import beta as _sps_beta
from scipy.stats import gamma as _sps_gamma
from scipy.stats import binom as _sbinom
from scipy.stats import poisson as _spoisson
from scipy.stats import betabinom as _sbetabinom
from scipy.stats import nbinom as _snbinom

from ._utils import _as_2d, _to_1d_vector, _clip_unit_interval, _check_positive, _normalise_weights
from .distributions import Distribution

__all__ = [
    "Univariate",
    "Normal1D",
    "Beta",
    "Gamma",
    "Binomial",
    "Poisson",
    "BetaBinomial",
    "NegativeBinomial",
    "GaussianKDE",
]

Float_T = TypeVar("Float_T", bound=np.floating)


def _fit_sample_moments(convert_from: Distribution, num_samples: int):
    """Draws from ``convert_from`` and returns the sample mean and variance.

    Draws stored by an empirical distribution are used directly.
    """
    if hasattr(convert_from, "samples") and hasattr(convert_from, "weights"):
        xs = np.asarray(convert_from.samples, dtype=float)[:, 0]
        w = np.asarray(convert_from.weights, dtype=float)
        m = float((w * xs).sum())
        return m, float((w * (xs - m) ** 2).sum())

    draws = np.asarray(convert_from.sample(num_samples), dtype=float).reshape(-1)
    return float(draws.mean()), float(draws.var(ddof=1))


class Univariate(Distribution[Float_T], ABC):
    """Abstract base class for scalar distributions backed by a frozen SciPy object.

    Every concrete family stores its frozen ``scipy.stats`` distribution in
    ``self._dist`` and gets sampling, (log-)density, CDF and quantile
    evaluation with a common shape policy.

    Shape policy:
        - ``sample(n)`` -> (n, 1)
        - ``density`` / ``log_density`` / ``cdf(values)`` -> (n, 1)
        - ``inv_cdf(u)`` -> (n, 1)
    """

    _dist: Any
    _rng: np.random.Generator
    discrete: bool = False

    # ---- SciPy-backed core ----

    def sample(self, n_samples: int) -> NDArray[np.floating]:
        """Draws random samples.

        Args:
            n_samples: Number of draws.

        Returns:
            NDArray[np.floating]: Shape (n_samples, 1).
        """
        xs = self._dist.rvs(size=int(n_samples), random_state=self._rng)
        return np.asarray(xs, dtype=float).reshape(-1, 1)

    def density(self, values: NDArray) -> NDArray[np.floating]:
        """Evaluates the PDF (continuous) or PMF (discrete).

        Args:
            values: Scalar, (n,) or (n, 1) evaluation points.

        Returns:
            NDArray[np.floating]: Shape (n, 1); zero outside the support.
        """
        v = _to_1d_vector(values)
        p = self._dist.pmf(v) if self.discrete else self._dist.pdf(v)
        return np.asarray(p, dtype=float).reshape(-1, 1)

    def log_density(self, values: NDArray) -> NDArray[np.floating]:
        """Evaluates the log-PDF or log-PMF.

        Args:
            values: Scalar, (n,) or (n, 1) evaluation points.

        Returns:
            NDArray[np.floating]: Shape (n, 1); ``-inf`` outside the support.
        """
        v = _to_1d_vector(values)
        lp = self._dist.logpmf(v) if self.discrete else self._dist.logpdf(v)
        return np.asarray(lp, dtype=float).reshape(-1, 1)

    def cdf(self, values: NDArray) -> NDArray[np.floating]:
        """Evaluates the cumulative distribution function P(X <= x).

        Args:
            values: Scalar, (n,) or (n, 1) evaluation points.

        Returns:
            NDArray[np.floating]: Shape (n, 1).
        """
        v = _to_1d_vector(values)
        return np.asarray(self._dist.cdf(v), dtype=float).reshape(-1, 1)

    def inv_cdf(self, u: NDArray) -> NDArray[np.floating]:
        """Quantile function.

        Args:
            u: Probabilities as a scalar, (n,) or (n, 1) array. Values
                outside [0, 1] are clipped.

        Returns:
            NDArray[np.floating]: Shape (n, 1). Discrete families return
            the smallest k with P(X <= k) >= u.

        Raises:
            ValueError: For any other shape of ``u``.
        """
        probs = np.asarray(u, dtype=float)
        if probs.ndim > 2 or (probs.ndim == 2 and probs.shape[1] != 1):
            raise ValueError(f"u must be a scalar, (n,) or (n, 1) array; got shape {probs.shape}")
        probs = _clip_unit_interval(probs.reshape(-1))
        return np.asarray(self._dist.ppf(probs), dtype=float).reshape(-1, 1)

    # ---- moments & point summaries ----

    def mean(self) -> NDArray[np.floating]:
        """Mean vector, shape (1,)."""
        return np.array([float(self._dist.mean())], dtype=float)

    def cov(self) -> NDArray[np.floating]:
        """Covariance matrix, shape (1, 1)."""
        return np.array([[float(self._dist.var())]], dtype=float)

    def var(self) -> float:
        """Variance.

        Returns:
            float: The scalar variance; :meth:`cov` holds it as a (1, 1) matrix.
        """
        return float(self._dist.var())

    def std(self) -> float:
        """Standard deviation, the square root of :meth:`var`."""
        return float(self._dist.std())

    def median(self) -> float:
        """Median; for discrete families the smallest k with P(X <= k) >= 0.5."""
        return float(self._dist.median())

    @abstractmethod
    def mode(self) -> float:
        """Returns a mode of the distribution (the smaller one when there are two)."""
        raise NotImplementedError

    @property
    def dimension(self) -> int:
        return 1

    @property
    def support(self) -> tuple:
        """(lower, upper) bounds of the support."""
        lo, hi = self._dist.support()
        return float(lo), float(hi)

    def expectation(self, func: Callable[[NDArray[np.floating]], NDArray], n_mc: int = 2048) -> 'Normal1D':
        """Monte Carlo estimate of E[func(X)].

        Args:
            func: Maps the (n_mc, 1) draws to (n_mc,) or (n_mc, 1) values.
            n_mc: Number of draws.

        Returns:
            Normal1D: Normal(sample mean, standard error).

        Raises:
            ValueError: If ``func`` returns any other shape.
        """
        vals = np.asarray(func(self.sample(n_mc)), dtype=float)
        if vals.ndim == 2 and vals.shape[1] == 1:
            vals = vals[:, 0]
        if vals.ndim != 1:
            raise ValueError(f"func must return shape (n,) or (n, 1); got {vals.shape}")
        se = float(vals.std(ddof=1)) / np.sqrt(n_mc)
        return Normal1D(float(vals.mean()), max(se, 1e-12), rng=self._rng)

    @classmethod
    def from_distribution(cls, convert_from: 'Distribution', num_samples: int = 1024, *, conversion_by_KDE: bool = False, **fit_kwargs: Any) -> 'Univariate':
        """Fits this family to ``convert_from``.

        Discrete families have no conversion.

        Raises:
            NotImplementedError: Unless a subclass overrides it.
        """
        raise NotImplementedError(f"{cls.__name__} cannot be fitted from another distribution.")


class Normal1D(Univariate[np.floating]):
    """Normal distribution N(mu, sigma^2) on the real line.

    Args:
        mu: Mean.
        sigma: Standard deviation.
        rng: Generator used by :meth:`sample`.

    Raises:
        ValueError: If ``mu`` is not finite or ``sigma`` is not positive.
    """

    def __init__(self, mu: float, sigma: float, *, rng: Optional[np.random.Generator] = None):
        if not np.isfinite(float(mu)):
            raise ValueError("mu must be finite")
        self.mu = float(mu)
        self.sigma = _check_positive("sigma", sigma)
        self._rng = rng or np.random.default_rng()
        self._dist = _norm(loc=self.mu, scale=self.sigma)

    def mode(self) -> float:
        return self.mu

    @classmethod
    def from_distribution(cls, convert_from: 'Distribution', num_samples: int = 1024, *, conversion_by_KDE: bool = False, **fit_kwargs: Any) -> 'Normal1D':
        """Normal with the mean and standard deviation of ``convert_from``'s draws.

        Args:
            convert_from: Source distribution; stored empirical draws are
                used with their weights.
            num_samples: Draws taken from any other distribution.
            conversion_by_KDE: Accepted for a uniform conversion API and ignored.
            **fit_kwargs: Optional ``rng`` for the new instance.

        Returns:
            Normal1D: The moment-matched normal.
        """
        mu, var = _fit_sample_moments(convert_from, num_samples)
        return cls(mu, max(np.sqrt(var), 1e-12), rng=fit_kwargs.get("rng"))

    def __repr__(self) -> str:
        return f"Normal1D(mu={self.mu:.6g}, sigma={self.sigma:.6g})"


class Beta(Univariate[np.floating]):
    """Beta(alpha, beta) distribution of a probability; both shapes must be positive."""

    def __init__(self, alpha: float, beta: float, *, rng: Optional[np.random.Generator] = None):
        self.alpha = _check_positive("alpha", alpha)
        self.beta = _check_positive("beta", beta)
        self._rng = rng or np.random.default_rng()
        self._dist = _sps_beta(a=self.alpha, b=self.beta)

    def mode(self) -> float:
        """Mode of the Beta density.

        For alpha, beta > 1 this is (alpha - 1) / (alpha + beta - 2). When a
        shape parameter is <= 1 the density peaks at a boundary; for the
        U-shaped case (both < 1) the left boundary is returned, and for the
        uniform case the midpoint.
        """
        a, b = self.alpha, self.beta
        if a > 1.0 and b > 1.0:
            return (a - 1.0) / (a + b - 2.0)
        if a == 1.0 and b == 1.0:
            return 0.5
        if a <= 1.0 and b >= 1.0:
            return 0.0
        if a >= 1.0 and b <= 1.0:
            return 1.0
        return 0.0

    @classmethod
    def from_distribution(cls, convert_from: 'Distribution', num_samples: int = 1024, *, conversion_by_KDE: bool = False, **fit_kwargs: Any) -> 'Beta':
        """Moment-matches a Beta to draws from ``convert_from``.

        Args:
            convert_from: Source distribution, typically MCMC draws of a probability.
            num_samples: Draws taken when ``convert_from`` stores none.
            conversion_by_KDE: Ignored.
            **fit_kwargs: Optional ``rng``.

        Returns:
            Beta: alpha = m c, beta = (1 - m) c with c = m (1 - m) / v - 1.

        Raises:
            ValueError: If the sample moments are incompatible with a Beta
                (mean outside (0, 1) or variance too large).
        """
        m, v = _fit_sample_moments(convert_from, num_samples)
        if not (0.0 < m < 1.0) or v <= 0.0 or v >= m * (1.0 - m):
            raise ValueError(f"Cannot moment-match a Beta to mean={m:.4g}, var={v:.4g}.")
        common = m * (1.0 - m) / v - 1.0
        return cls(m * common, (1.0 - m) * common, rng=fit_kwargs.get("rng"))

    def __repr__(self) -> str:
        return f"Beta(alpha={self.alpha:.6g}, beta={self.beta:.6g})"


class Gamma(Univariate[np.floating]):
    """Gamma distribution with shape/rate parameterisation.

    The density is ``rate^shape x^(shape-1) exp(-rate x) / Gamma(shape)``;
    SciPy's ``scale`` is ``1 / rate``.

    Args:
        shape: Shape a > 0.
        rate: Rate b > 0.
        rng: Generator used by :meth:`sample`.
    """

    def __init__(self, shape: float, rate: float, *, rng: Optional[np.random.Generator] = None):
        self.shape = _check_positive("shape", shape)
        self.rate = _check_positive("rate", rate)
        self._rng = rng or np.random.default_rng()
        self._dist = _sps_gamma(a=self.shape, scale=1.0 / self.rate)

    def mode(self) -> float:
        """(shape - 1) / rate, or 0 when shape <= 1."""
        return max(self.shape - 1.0, 0.0) / self.rate

    @classmethod
    def from_distribution(cls, convert_from: 'Distribution', num_samples: int = 1024, *, conversion_by_KDE: bool = False, **fit_kwargs: Any) -> 'Gamma':
        """Moment-matches a Gamma: shape = m^2 / v, rate = m / v."""
        m, v = _fit_sample_moments(convert_from, num_samples)
        if m <= 0.0 or v <= 0.0:
            raise ValueError(f"Cannot moment-match a Gamma to mean={m:.4g}, var={v:.4g}.")
        return cls(m * m / v, m / v, rng=fit_kwargs.get("rng"))

    def __repr__(self) -> str:
        return f"Gamma(shape={self.shape:.6g}, rate={self.rate:.6g})"


class Binomial(Univariate[np.floating]):
    """Number of successes in ``n_trials`` independent trials with success probability ``prob``."""

    discrete = True

    def __init__(self, n_trials: int, prob: float, *, rng: Optional[np.random.Generator] = None):
        n = int(n_trials)
        p = float(prob)
        if n < 0:
            raise ValueError(f"n_trials cannot be negative; got {n_trials!r}")
        if not 0.0 <= p <= 1.0:
            raise ValueError(f"prob must lie in [0, 1]; got {prob!r}")
        self.n_trials = n
        self.prob = p
        self._rng = rng or np.random.default_rng()
        self._dist = _sbinom(n=self.n_trials, p=self.prob)

    def mode(self) -> float:
        """floor((n_trials + 1) prob), one lower when that is a whole number."""
        m = (self.n_trials + 1) * self.prob
        if m == np.floor(m) and m > 0:
            m -= 1.0
        return float(min(np.floor(m), self.n_trials))

    def __repr__(self) -> str:
        return f"Binomial(n_trials={self.n_trials}, prob={self.prob:.6g})"


class Poisson(Univariate[np.floating]):
    """Poisson(rate) distribution of counts."""

    discrete = True

    def __init__(self, rate: float, *, rng: Optional[np.random.Generator] = None):
        r = float(rate)
        if not np.isfinite(r) or r < 0.0:
            raise ValueError("rate must be a nonnegative finite number.")
        self.rate = r
        self._rng = rng or np.random.default_rng()
        self._dist = _spoisson(mu=self.rate)

    def mode(self) -> float:
        m = np.floor(self.rate)
        if m == self.rate and m > 0:
            m -= 1.0
        return float(m)

    def __repr__(self) -> str:
        return f"Poisson(rate={self.rate:.6g})"


class BetaBinomial(Univariate[np.floating]):
    """Beta-binomial(n_trials, alpha, beta) distribution.

    The marginal of Binomial(n_trials, p) with p ~ Beta(alpha, beta); this is
    the posterior predictive of the Beta-Binomial model.
    """

    discrete = True

    def __init__(self, n_trials: int, alpha: float, beta: float, *, rng: Optional[np.random.Generator] = None):
        n = int(n_trials)
        if n < 0:
            raise ValueError(f"n_trials cannot be negative; got {n_trials!r}")
        self.n_trials = n
        self.alpha = _check_positive("alpha", alpha)
        self.beta = _check_positive("beta", beta)
        self._rng = rng or np.random.default_rng()
        self._dist = _sbetabinom(n=self.n_trials, a=self.alpha, b=self.beta)

    def mode(self) -> float:
        """Smallest maximiser of the pmf over 0..n_trials."""
        ks = np.arange(self.n_trials + 1)
        return float(ks[int(np.argmax(self._dist.pmf(ks)))])

    def __repr__(self) -> str:
        return f"BetaBinomial(n_trials={self.n_trials}, alpha={self.alpha:.6g}, beta={self.beta:.6g})"


class NegativeBinomial(Univariate[np.floating]):
    """Negative binomial distribution of failures before ``n_successes`` successes.

    ``n_successes`` may be any positive real, which makes this the
    Gamma-Poisson mixture (the posterior predictive of the Poisson-Gamma model).

    Args:
        n_successes: Number of successes r > 0.
        prob: Success probability in (0, 1].
        rng: Generator used by :meth:`sample`.
    """

    discrete = True

    def __init__(self, n_successes: float, prob: float, *, rng: Optional[np.random.Generator] = None):
        self.n_successes = _check_positive("n_successes", n_successes)
        p = float(prob)
        if not (0.0 < p <= 1.0):
            raise ValueError("prob must be in (0, 1].")
        self.prob = p
        self._rng = rng or np.random.default_rng()
        self._dist = _snbinom(n=self.n_successes, p=self.prob)

    def mode(self) -> float:
        r, p = self.n_successes, self.prob
        if r <= 1.0:
            return 0.0
        m = (r - 1.0) * (1.0 - p) / p
        if m == np.floor(m) and m > 0:
            m -= 1.0
        return float(np.floor(m))

    def __repr__(self) -> str:
        return f"NegativeBinomial(n_successes={self.n_successes:.6g}, prob={self.prob:.6g})"


class GaussianKDE(Univariate[np.floating]):
    """Weighted Gaussian kernel density estimate of scalar draws.

    The density is the mixture ``sum_i w_i N(x | x_i, h^2)`` over the draws
    ``x_i``. It smooths MCMC output for plotting and mode estimation.

    Args:
        samples: Draws, shape (n,) or (n, 1).
        weights: Nonnegative weights; uniform when ``None``.
        bandwidth: Kernel standard deviation ``h``; chosen by ``rule`` when ``None``.
        rule: ``"scott"`` or ``"silverman"``, applied to the Kish effective sample size.
        rng: Generator used by :meth:`sample`.
    """

    def __init__(
        self,
        samples: NDArray[np.floating],
        weights: Optional[NDArray[np.floating]] = None,
        *,
        bandwidth: Optional[float] = None,
        rule: str = "scott",
        rng: Optional[np.random.Generator] = None,
    ):
        X = _to_1d_vector(samples)
        n = X.shape[0]
        if n == 0:
            raise ValueError("GaussianKDE needs at least one draw.")
        w = _normalise_weights(weights, n)

        self._X = X
        self._w = w
        self._n = n
        self._rng = rng or np.random.default_rng()

        self._mean = float((w * X).sum())
        self._var_x = float((w * (X - self._mean) ** 2).sum())
        self.bandwidth = self._build_bandwidth(bandwidth, rule)

    def _build_bandwidth(self, bandwidth: Optional[float], rule: str) -> float:
        if bandwidth is not None:
            return _check_positive("bandwidth", bandwidth)

        # same factors as scipy.stats.gaussian_kde in one dimension
        n_eff = 1.0 / float(self._w @ self._w)
        factors = {"scott": n_eff ** -0.2, "silverman": (0.75 * n_eff) ** -0.2}
        if rule.lower() not in factors:
            raise ValueError(f"unknown bandwidth rule {rule!r}; use 'scott' or 'silverman'.")
        return max(factors[rule.lower()] * np.sqrt(self._var_x), 1e-12)

    def sample(self, n_samples: int) -> NDArray[np.floating]:
        """Picks a draw by weight, then adds N(0, h^2) noise.

        Args:
            n_samples: Number of draws.

        Returns:
            NDArray[np.floating]: Shape (n_samples, 1).
        """
        k = int(n_samples)
        centres = self._X[self._rng.choice(self._n, size=k, replace=True, p=self._w)]
        return (centres + self._rng.normal(0.0, self.bandwidth, size=k)).reshape(-1, 1)

    # query points per block, keeps the (block, n) kernel matrix small
    _BLOCK = 128

    def density(self, values: NDArray) -> NDArray[np.floating]:
        return np.exp(self.log_density(values))

    def log_density(self, values: NDArray) -> NDArray[np.floating]:
        """Log of the mixture density via a stable log-sum-exp, shape (m, 1)."""
        v = _to_1d_vector(values)
        log_w = np.log(self._w + 1e-300)[None, :]
        out = np.empty(v.shape[0], dtype=float)
        for start in range(0, v.shape[0], self._BLOCK):
            q = v[start:start + self._BLOCK, None]
            logs = _norm.logpdf(q, loc=self._X[None, :], scale=self.bandwidth) + log_w
            mx = logs.max(axis=1, keepdims=True)
            out[start:start + self._BLOCK] = (mx + np.log(np.exp(logs - mx).sum(axis=1, keepdims=True)))[:, 0]
        return out.reshape(-1, 1)

    def cdf(self, values: NDArray) -> NDArray[np.floating]:
        """Weighted sum of the kernel CDFs.

        Args:
            values: Scalar, (m,) or (m, 1) evaluation points.

        Returns:
            NDArray[np.floating]: Shape (m, 1).
        """
        v = _to_1d_vector(values)
        out = np.empty(v.shape[0], dtype=float)
        for start in range(0, v.shape[0], self._BLOCK):
            q = v[start:start + self._BLOCK, None]
            out[start:start + self._BLOCK] = _norm.cdf(q, loc=self._X[None, :], scale=self.bandwidth) @ self._w
        return out.reshape(-1, 1)

    def inv_cdf(self, u: NDArray) -> NDArray[np.floating]:
        raise NotImplementedError("GaussianKDE.inv_cdf is not available for kernel mixtures.")

    def mean(self) -> NDArray[np.floating]:
        return np.array([self._mean], dtype=float)

    def cov(self) -> NDArray[np.floating]:
        return np.array([[self.var()]], dtype=float)

    def var(self) -> float:
        """Variance of the mixture: the weighted draw variance plus h^2."""
        return self._var_x + self.bandwidth ** 2

    def std(self) -> float:
        return float(np.sqrt(self.var()))

    def median(self) -> float:
        raise NotImplementedError("GaussianKDE.median is not available for kernel mixtures.")

    def mode(self) -> float:
        """Grid maximiser of the density over the sample range padded by 3 bandwidths."""
        grid = np.linspace(self._X.min() - 3 * self.bandwidth, self._X.max() + 3 * self.bandwidth, 1024)
        return float(grid[int(np.argmax(self.log_density(grid)[:, 0]))])

    @property
    def support(self) -> tuple:
        return -np.inf, np.inf

    @classmethod
    def from_distribution(cls, convert_from: 'Distribution', num_samples: int = 1024, *, conversion_by_KDE: bool = False, **fit_kwargs: Any) -> 'GaussianKDE':
        """Smooths ``convert_from`` with a Gaussian kernel.

        Weighted draws are reused as they are; other distributions are
        sampled ``num_samples`` times.

        Args:
            convert_from: Source distribution.
            num_samples: Draws taken when ``convert_from`` stores none.
            conversion_by_KDE: Ignored; the result is always a KDE.
            **fit_kwargs: Optional ``bandwidth``, ``rule`` and ``rng``.

        Returns:
            GaussianKDE: The smoothed density.
        """
        options = {key: fit_kwargs[key] for key in ("bandwidth", "rule", "rng") if key in fit_kwargs}
        if isinstance(convert_from, Distribution) and hasattr(convert_from, "weights"):
            return cls(_as_2d(convert_from.samples)[:, 0], convert_from.weights, **options)
        return cls(np.asarray(convert_from.sample(num_samples), dtype=float), **options)

    def __repr__(self) -> str:
        return f"GaussianKDE(n={self._n}, bandwidth={self.bandwidth:.4g})"
