from typing import Generic, TypeVar, Callable, Any, Optional
from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray

from ._utils import _as_2d, _normalise_weights

__all__ = [
    "Distribution",
    "EmpiricalDistribution",
]

NumT = TypeVar("NumT", bound=np.number)


class Distribution(Generic[NumT], ABC):
    """Interface shared by priors, posteriors, predictives and sample sets.

    Only :meth:`from_distribution` is mandatory. Families that cannot
    evaluate a density (raw draws) or cannot draw samples leave the
    corresponding method raising ``NotImplementedError``.

    Type Variables:
        NumT: Numeric dtype of the values the distribution produces.
    """

    def sample(self, n_samples: int) -> NDArray[NumT]:
        """Draws values from the distribution.

        Args:
            n_samples: Number of draws.

        Returns:
            NDArray[NumT]: One draw per row, shape (n_samples, d).

        Raises:
            NotImplementedError: When the family cannot be sampled.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support sampling")

    def density(self, data: NDArray) -> NDArray[np.floating]:
        """Evaluates the PDF (continuous) or PMF (discrete).

        Args:
            data: Points to evaluate, one per row.

        Returns:
            NDArray[np.floating]: Density at each point, shape (n, 1).

        Raises:
            NotImplementedError: When the family has no density.
        """
        raise NotImplementedError(f"{type(self).__name__} has no density")

    def log_density(self, data: NDArray) -> NDArray[np.floating]:
        """Evaluates the log of :meth:`density`.

        Args:
            data: Points to evaluate, one per row.

        Returns:
            NDArray[np.floating]: Log density at each point, ``-inf`` where
            the density is zero.

        Raises:
            NotImplementedError: When the family has no density.
        """
        raise NotImplementedError(f"{type(self).__name__} has no density")

    def expectation(self, func: Callable[[NDArray[NumT]], NDArray]) -> 'Distribution':
        """Estimates E[func(X)].

        Args:
            func: Maps an (n, d) array of values to (n,) or (n, 1) outputs.

        Returns:
            Distribution: The estimate and its uncertainty, as a normal
            distribution over the expected value.

        Raises:
            NotImplementedError: When the family does not support it.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support expectations")

    @classmethod
    @abstractmethod
    def from_distribution(
        cls,
        convert_from: 'Distribution',
        **fit_kwargs: Any,
    ) -> 'Distribution[NumT]':
        """Builds an instance of ``cls`` that approximates ``convert_from``.

        Used to turn MCMC draws into a moment-matched Beta or Gamma, or a
        parametric posterior into a sample set.

        Args:
            convert_from: Source distribution.
            **fit_kwargs: Family-specific fitting options.

        Returns:
            Distribution[NumT]: The approximation.
        """
        raise NotImplementedError


from .univariate import Normal1D, GaussianKDE  # noqa: E402


class EmpiricalDistribution(Distribution):
    """Weighted draws of a posterior or predictive quantity.

    MCMC output and composition samples from a conjugate model are both
    stored this way, so the summaries in :mod:`conjpipe.core.summaries`
    treat them exactly like a closed-form distribution.

    Args:
        samples: Draws, shape (n,) or (n, d).
        weights: Nonnegative weights of shape (n,); uniform when ``None``.
            They are normalised to sum to one.
        rng: Generator used by :meth:`sample`.

    Raises:
        ValueError: For an empty sample, weights of the wrong length,
            negative weights, or weights with a zero total.
    """

    def __init__(
        self,
        samples: NDArray,
        weights: Optional[NDArray] = None,
        *,
        rng: Optional[np.random.Generator] = None,
    ):
        X = _as_2d(samples).astype(float)
        n, d = X.shape
        if n == 0:
            raise ValueError("EmpiricalDistribution needs at least one draw.")

        self._X = X
        self._w = _normalise_weights(weights, n)
        self._n = int(n)
        self._d = int(d)
        self._rng = rng if rng is not None else np.random.default_rng()

        # population moments, no ddof correction
        self._mean = self._w @ self._X
        centred = self._X - self._mean
        self._cov = (centred * self._w[:, None]).T @ centred

    @property
    def n(self) -> int:
        return self._n

    @property
    def d(self) -> int:
        return self._d

    @property
    def samples(self) -> NDArray:
        """Stored draws, shape (n, d)."""
        return self._X

    @property
    def weights(self) -> NDArray:
        """Normalised weights, shape (n,)."""
        return self._w

    @property
    def is_discrete(self) -> bool:
        """True when every draw is a whole number (e.g. predictive counts)."""
        return bool(np.all(self._X == np.round(self._X)))

    def mean(self) -> NDArray:
        """Weighted mean.

        Returns:
            NDArray: Shape (d,).
        """
        return self._mean

    def cov(self) -> NDArray:
        """Weighted population covariance (no ddof correction).

        Returns:
            NDArray: Shape (d, d).
        """
        return self._cov

    def var(self) -> NDArray:
        """Weighted population variance of each coordinate.

        Returns:
            NDArray: The diagonal of :meth:`cov`, shape (d,).
        """
        return np.diag(self._cov)

    def std(self) -> NDArray:
        """Square root of :meth:`var`, shape (d,)."""
        return np.sqrt(np.clip(self.var(), 0.0, None))

    def quantile(self, q) -> NDArray:
        """Computes weighted quantiles of the first coordinate.

        Uses the inverse of the weighted empirical CDF (the smallest draw
        whose cumulative weight reaches ``q``), which coincides with
        ``np.quantile(..., method="inverted_cdf")`` for uniform weights.

        Args:
            q: Probability or array of probabilities in [0, 1].

        Returns:
            NDArray: Quantiles with the same shape as ``q``.

        Raises:
            ValueError: If any probability lies outside [0, 1].
        """
        qs = np.asarray(q, dtype=float)
        if np.any((qs < 0.0) | (qs > 1.0)):
            raise ValueError("quantile probabilities must lie in [0, 1].")
        x = self._X[:, 0]
        order = np.argsort(x, kind="stable")
        xs = x[order]
        cw = np.cumsum(self._w[order])
        cw[-1] = 1.0
        idx = np.searchsorted(cw, qs - 1e-12, side="left")
        idx = np.clip(idx, 0, self._n - 1)
        return xs[idx]

    def median(self) -> float:
        """Weighted median of the first coordinate."""
        return float(self.quantile(0.5))

    def mode(self) -> float:
        """Estimates the mode of the first coordinate.

        Integer-valued draws use the value with the largest total weight.
        Continuous draws use the maximiser of a Gaussian KDE evaluated on a
        grid spanning the sample range.

        Returns:
            float: The estimated mode.
        """
        x = self._X[:, 0]
        if self.is_discrete:
            values, inverse = np.unique(x, return_inverse=True)
            mass = np.bincount(inverse, weights=self._w)
            return float(values[int(np.argmax(mass))])
        if self._n < 2 or np.ptp(x) == 0.0:
            return float(x[0])
        kde = GaussianKDE(x, self._w)
        grid = np.linspace(x.min(), x.max(), 512)
        return float(grid[int(np.argmax(kde.density(grid)[:, 0]))])

    def sample(self, n_samples: int, *, replace: bool = True) -> NDArray:
        """Draws rows of :attr:`samples` in proportion to their weights.

        Args:
            n_samples: Number of rows to draw.
            replace: Draw with replacement.

        Returns:
            NDArray: Shape (n_samples, d).

        Raises:
            ValueError: If ``replace=False`` asks for more rows than are stored.
        """
        k = int(n_samples)
        if k > self._n and not replace:
            raise ValueError(f"cannot draw {k} of {self._n} stored samples without replacement.")
        rows = self._rng.choice(self._n, size=k, replace=replace, p=self._w)
        return self._X[rows]

    rvs = sample

    def density(self, data: NDArray) -> NDArray:
        raise NotImplementedError("raw draws have no density; smooth them with GaussianKDE.from_distribution.")

    def log_density(self, data: NDArray) -> NDArray:
        raise NotImplementedError("raw draws have no density; smooth them with GaussianKDE.from_distribution.")

    def expectation(self, func: Callable[[NDArray], NDArray]) -> "Normal1D":
        """Weighted average of ``func`` over the draws.

        The standard error uses the Kish effective sample size ``1 / sum(w^2)``.

        Args:
            func: Maps the (n, d) sample array to (n,) or (n, 1) values.

        Returns:
            Normal1D: Normal(estimate, standard error).

        Raises:
            ValueError: If ``func`` returns any other shape.
        """
        vals = np.asarray(func(self._X), dtype=float)
        if vals.ndim == 2 and vals.shape[1] == 1:
            vals = vals[:, 0]
        if vals.ndim != 1:
            raise ValueError(f"func must return shape (n,) or (n, 1); got {vals.shape}")

        est = float(self._w @ vals)
        spread = float(self._w @ (vals - est) ** 2)
        kish = 1.0 / float(self._w @ self._w)
        return Normal1D(est, max(np.sqrt(spread / kish), 1e-12), rng=self._rng)

    @classmethod
    def from_distribution(
        cls,
        convert_from: Distribution,
        num_samples: int = 2048,
        **fit_kwargs: Any,
    ) -> 'EmpiricalDistribution':
        """Wraps draws of ``convert_from`` as an empirical distribution.

        Args:
            convert_from: Source distribution. Stored draws of another
                empirical distribution are reused as they are.
            num_samples: Draws taken from any other distribution.
            **fit_kwargs: Optional ``rng`` for the new instance.

        Returns:
            EmpiricalDistribution: The wrapped draws.
        """
        if isinstance(convert_from, EmpiricalDistribution):
            return cls(convert_from.samples, convert_from.weights, rng=fit_kwargs.get("rng"))
        return cls(convert_from.sample(num_samples), rng=fit_kwargs.get("rng"))

    def __repr__(self) -> str:
        return f"EmpiricalDistribution(n={self._n}, d={self._d}, mean={self._mean.round(4).tolist()})"
