"""Seedable stochastic primitives shared by every model.

All randomness in a run flows through one RandomSource. Each run owns its own
instance; instances are never shared across concurrently executing runs.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from culturesim.errors import ConfigurationError, DegenerateDistribution


class RandomSource:
    """Deterministic random stream backed by a numpy Generator."""

    def __init__(self, seed: int | Sequence[int] | np.random.SeedSequence | None = None):
        if isinstance(seed, np.random.SeedSequence):
            self._seed_sequence = seed
        else:
            self._seed_sequence = np.random.SeedSequence(seed)
        self._rng = np.random.default_rng(self._seed_sequence)

    @classmethod
    def for_task(cls, seed: int, cell_index: int, replicate: int) -> RandomSource:
        """Stable per-task stream keyed by (base seed, grid cell, replicate)."""
        for name, value in (("seed", seed), ("cell_index", cell_index), ("replicate", replicate)):
            if not isinstance(value, (int, np.integer)) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative int, got {value!r}")
        return cls(np.random.SeedSequence([int(seed), int(cell_index), int(replicate)]))

    @property
    def entropy(self) -> Any:
        return self._seed_sequence.entropy

    # --- uniform draws ---

    def uniform(self, size: int | None = None) -> float | np.ndarray:
        """Uniform(0, 1) draw(s)."""
        if size is None:
            return float(self._rng.random())
        return self._rng.random(size)

    def bernoulli(self, p: float | np.ndarray, size: int | None = None) -> bool | np.ndarray:
        """Independent Bernoulli events; ``p`` may be a scalar or per-item array."""
        if size is None:
            if np.ndim(p) == 0:
                return bool(self._rng.random() < p)
            size = len(p)
        return self._rng.random(size) < p

    def integers(self, low: int, high: int, size: int | None = None) -> int | np.ndarray:
        """Integers in [low, high)."""
        if size is None:
            return int(self._rng.integers(low, high))
        return self._rng.integers(low, high, size=size)

    # --- sampling from populations ---

    def sample_indices(self, n: int, k: int, replace: bool = True) -> np.ndarray:
        """Sample k indices from range(n)."""
        if n < 1:
            raise DegenerateDistribution(0, "empty population")
        if not replace and k > n:
            raise ConfigurationError(f"Cannot sample {k} of {n} items without replacement")
        if replace:
            return self._rng.integers(0, n, size=k)
        return self._rng.choice(n, size=k, replace=False)

    def sample(self, items: Sequence[Any] | np.ndarray, k: int, replace: bool = True) -> np.ndarray:
        """Sample k items from a population, with or without replacement."""
        values = np.asarray(items)
        return values[self.sample_indices(len(values), k, replace=replace)]

    def weighted_indices(
        self,
        weights: Sequence[float] | np.ndarray,
        k: int,
        replace: bool = True,
        context: str = "",
    ) -> np.ndarray:
        """Sample k indices with probability proportional to ``weights``.

        Zero-weight items are never selected.

        Raises:
            ConfigurationError: If a weight is negative or not finite
            DegenerateDistribution: If every weight is zero
        """
        w = np.asarray(weights, dtype=float)
        if w.ndim != 1:
            raise ConfigurationError("weights must be one-dimensional")
        if not np.all(np.isfinite(w)) or np.any(w < 0):
            raise ConfigurationError("weights must be finite and non-negative")
        total = w.sum()
        if total <= 0:
            raise DegenerateDistribution(len(w), context)
        if not replace and k > np.count_nonzero(w):
            raise ConfigurationError(
                f"Cannot sample {k} items without replacement from "
                f"{np.count_nonzero(w)} non-zero weights"
            )
        return self._rng.choice(len(w), size=k, replace=replace, p=w / total)

    def categorical(
        self,
        labels: Sequence[Any],
        probabilities: Sequence[float] | np.ndarray,
        size: int,
        context: str = "",
    ) -> np.ndarray:
        """Draw ``size`` labels with the given (unnormalised) probabilities."""
        if len(labels) != len(probabilities):
            raise ConfigurationError(
                f"{len(labels)} labels but {len(probabilities)} probabilities"
            )
        return np.asarray(labels)[self.weighted_indices(probabilities, size, context=context)]

    # --- continuous distributions ---

    def gumbel(self, loc: float, scale: float, size: int | None = None) -> float | np.ndarray:
        """Gumbel draws, z = loc - scale * ln(-ln(U)) for U ~ Uniform(0, 1)."""
        if scale <= 0:
            raise ConfigurationError(f"Gumbel scale must be positive, got {scale}")
        if size is None:
            return float(self._rng.gumbel(loc, scale))
        return self._rng.gumbel(loc, scale, size)
