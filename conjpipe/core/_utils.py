from typing import Optional

from numpy.typing import NDArray

import numpy as np

from ..custom_types import Seed, PRNG


def _as_2d(x: NDArray) -> NDArray:
    """Float array with one row per draw: scalars become (1, 1), vectors (n, 1)."""
    x = np.asarray(x, dtype=float)
    if x.ndim == 0:
        return x.reshape(1, 1)
    return x.reshape(-1, 1) if x.ndim == 1 else x


def _to_1d_vector(values: NDArray) -> NDArray[np.floating]:
    """Flattens a scalar, (n,) or (n, 1) input to a float vector of shape (n,).

    Raises:
        ValueError: For any other shape.
    """
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        return arr.reshape(1)
    if arr.ndim == 1:
        return arr
    if arr.ndim == 2 and arr.shape[1] == 1:
        return arr[:, 0]
    raise ValueError(f"expected a scalar, (n,) or (n, 1) array; got shape {arr.shape}")


def _clip_unit_interval(x: NDArray[np.floating], eps: float = 0.0) -> NDArray[np.floating]:
    """Clips probabilities to [0, 1], or to [eps, 1 - eps] (exclusive) when ``eps > 0``."""
    if eps <= 0.0:
        return np.clip(x, 0.0, 1.0)
    return np.clip(x, np.nextafter(eps, 1.0), np.nextafter(1.0 - eps, 0.0))


def _check_positive(name: str, value: float) -> float:
    """Returns ``value`` as float, raising if it is not a positive finite number."""
    v = float(value)
    if not np.isfinite(v) or v <= 0.0:
        raise ValueError(f"{name} must be a positive finite number; got {value!r}")
    return v


def _as_counts(values: NDArray, upper: Optional[int] = None) -> NDArray[np.int64]:
    """Validates observations as non-negative integer counts.

    Args:
        values: Scalar, (n,), or (n, 1) array of counts.
        upper: Optional inclusive upper bound (e.g. number of trials).

    Returns:
        1-D integer array of counts.

    Raises:
        ValueError: If any value is non-integer, negative, or above ``upper``.
    """
    v = _to_1d_vector(values)
    if not np.all(np.isfinite(v)):
        raise ValueError("counts must be finite.")
    rounded = np.round(v)
    if np.any(np.abs(v - rounded) > 1e-8):
        raise ValueError("counts must be whole numbers.")
    if np.any(rounded < 0):
        raise ValueError("counts cannot be negative.")
    if upper is not None and np.any(rounded > upper):
        raise ValueError(f"counts must lie in [0, {upper}].")
    return rounded.astype(np.int64)


def _as_rng(seed: Seed) -> PRNG:
    """Returns a numpy Generator from a seed, a Generator, or ``None``."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def _normalise_weights(weights: Optional[NDArray], n: int) -> NDArray[np.floating]:
    """Weights of ``n`` draws scaled to sum to one; uniform when ``weights`` is ``None``.

    Raises:
        ValueError: For the wrong length, negative entries, or a zero total.
    """
    if weights is None:
        return np.ones(n) / n
    w = np.asarray(weights, dtype=float).ravel()
    if w.size != n:
        raise ValueError(f"expected {n} weights, got {w.size}.")
    if (w < 0).any():
        raise ValueError("weights cannot be negative.")
    total = w.sum()
    if total <= 0:
        raise ValueError("weights must have a positive total.")
    return w / total
