# custom_types.py
"""
Type aliases shared across conjpipe.

We generally follow the conventions:
- Annotate function input with `ArrayLike`
- Annotate function output with `Array`
"""
from __future__ import annotations
from typing import Tuple, TypeAlias, Union
from numpy.random import Generator as NumpyRNG

from numpy.typing import (
    NDArray as NumpyArray,
    ArrayLike as NumpyArrayLike
)

Array = NumpyArray
ArrayLike: TypeAlias = NumpyArrayLike
PRNG: TypeAlias = NumpyRNG
Seed: TypeAlias = Union[int, NumpyRNG, None]
Bounds: TypeAlias = Tuple[float, float]
