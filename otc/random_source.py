# -*- coding: utf-8 -*-
"""
otc/random_source.py
Injectable randomness for the price generator.

The generator never calls a global RNG; it draws everything from a
RandomSource so that a seeded source reproduces a tick sequence exactly.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class RandomSource(Protocol):
    """Strategy interface for random draws."""

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def uniform(self, low: float, high: float) -> float:
        """Uniform float in [low, high)."""
        ...

    def integers(self, low: int, high: int) -> int:
        """Uniform integer in [low, high] (inclusive)."""
        ...

    def normal(self) -> float:
        """Standard normal draw."""
        ...


class NumpyRandomSource:
    """
    RandomSource backed by numpy's PCG64 Generator.

    Args:
        seed: Random seed for reproducibility (None = OS entropy)
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def random(self) -> float:
        return float(self._rng.random())

    def uniform(self, low: float, high: float) -> float:
        return float(self._rng.uniform(low, high))

    def integers(self, low: int, high: int) -> int:
        return int(self._rng.integers(low, high, endpoint=True))

    def normal(self) -> float:
        return float(self._rng.standard_normal())

    def spawn(self) -> "NumpyRandomSource":
        """Independent child source (deterministic when seeded)."""
        child = NumpyRandomSource.__new__(NumpyRandomSource)
        child.seed = self.seed
        child._rng = self._rng.spawn(1)[0]
        return child

    def __repr__(self) -> str:
        return f"NumpyRandomSource(seed={self.seed!r})"


def create_random_source(seed: Optional[int] = None) -> RandomSource:
    """Create the default random source."""
    return NumpyRandomSource(seed)


__all__ = ["RandomSource", "NumpyRandomSource", "create_random_source"]
