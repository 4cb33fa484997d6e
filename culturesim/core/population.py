"""Fixed-size agent population stored as one numpy array per attribute field.

A Population holds N agents. Each field (``trait``, ``P``, ``status``,
``cluster``, ``fitness``, ``skill`` ...) is an array of length N. Run-level
scalars that must survive from one generation to the next (the running
maximum innovation label, the environment optimum) live in ``meta``.

Update rules never write to the population they read: they receive a frozen
``snapshot()`` of the previous generation and build the next one with
``derive()``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any

import numpy as np

from culturesim.core.random_source import RandomSource
from culturesim.errors import ConfigurationError, PopulationStateError


class Population:
    """Container of N agent records with masked bulk read/write."""

    def __init__(
        self,
        size: int,
        fields: Mapping[str, np.ndarray] | None = None,
        meta: Mapping[str, Any] | None = None,
    ):
        if not isinstance(size, (int, np.integer)) or size < 1:
            raise ConfigurationError(f"Population size must be a positive int, got {size!r}")
        self._size = int(size)
        self._fields: dict[str, np.ndarray] = {}
        self._meta: dict[str, Any] = dict(meta or {})
        self._frozen = False
        for name, values in (fields or {}).items():
            self.set_field(name, values)

    # --- introspection ---

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def field_names(self) -> list[str]:
        return list(self._fields)

    @property
    def meta(self) -> Mapping[str, Any]:
        """Run-level scalars carried across generations."""
        if self._frozen:
            return MappingProxyType(self._meta)
        return self._meta

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __getitem__(self, name: str) -> np.ndarray:
        return self.read(name)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "mutable"
        return f"Population(size={self._size}, fields={self.field_names}, {state})"

    # --- bulk read ---

    def read(self, name: str, mask: np.ndarray | None = None) -> np.ndarray:
        """Return a field, optionally restricted to the agents selected by ``mask``."""
        if name not in self._fields:
            raise KeyError(f"Population has no field '{name}'")
        values = self._fields[name]
        if mask is None:
            return values
        return values[self._check_mask(mask)]

    def select(self, name: str, predicate: Callable[[np.ndarray], np.ndarray]) -> np.ndarray:
        """Boolean mask of agents whose ``name`` field satisfies ``predicate``."""
        mask = np.asarray(predicate(self.read(name)), dtype=bool)
        return self._check_mask(mask)

    def count(self, name: str, value: Any) -> int:
        return int(np.count_nonzero(self.read(name) == value))

    # --- bulk write ---

    def set_field(self, name: str, values: Any) -> Population:
        """Create or replace a whole field. Scalars are broadcast to N agents."""
        self._require_mutable()
        array = np.asarray(values)
        if array.ndim == 0:
            array = np.full(self._size, array.item(), dtype=array.dtype)
        if array.shape != (self._size,):
            raise ConfigurationError(
                f"Field '{name}' has shape {array.shape}, expected ({self._size},)"
            )
        self._fields[name] = array.copy()
        return self

    def write(self, name: str, values: Any, mask: np.ndarray | None = None) -> Population:
        """Assign new values to the agents selected by ``mask`` (all agents if None)."""
        self._require_mutable()
        if name not in self._fields:
            raise KeyError(f"Population has no field '{name}'")
        target = self._fields[name]
        if mask is None:
            target[:] = values
            return self
        selector = self._check_mask(mask)
        if selector.size == 0 or (selector.dtype == bool and not selector.any()):
            return self
        target[selector] = values
        return self

    def set_meta(self, key: str, value: Any) -> Population:
        self._require_mutable()
        self._meta[key] = value
        return self

    # --- initialisation from distributions ---

    def fill_uniform(self, name: str, labels: Sequence[Any], rng: RandomSource) -> Population:
        """Assign each agent a label drawn uniformly from ``labels``."""
        if len(labels) == 0:
            raise ConfigurationError(f"No labels given for field '{name}'")
        return self.set_field(name, rng.sample(labels, self._size))

    def fill_weighted(
        self,
        name: str,
        labels: Sequence[Any],
        weights: Sequence[float],
        rng: RandomSource,
    ) -> Population:
        """Assign labels with the given initial frequencies (e.g. ``[p0, 1 - p0]``)."""
        return self.set_field(
            name, rng.categorical(labels, weights, self._size, context=f"initial {name}")
        )

    def fill_uniform_real(
        self, name: str, rng: RandomSource, low: float = 0.0, high: float = 1.0
    ) -> Population:
        """Assign each agent a real value drawn uniformly from [low, high)."""
        if high < low:
            raise ConfigurationError(f"Empty interval [{low}, {high}) for field '{name}'")
        return self.set_field(name, low + (high - low) * rng.uniform(self._size))

    def fill_constant(self, name: str, value: Any) -> Population:
        return self.set_field(name, value)

    # --- generations ---

    def snapshot(self) -> Population:
        """Immutable copy used as the "previous generation" during a transition."""
        clone = Population(self._size, meta=self._meta)
        for name, values in self._fields.items():
            array = values.copy()
            array.flags.writeable = False
            clone._fields[name] = array
        clone._frozen = True
        return clone

    def derive(self, **fields: Any) -> Population:
        """Fresh mutable population: copies of every field, with ``fields`` replaced.

        The result never shares a buffer with ``self``.
        """
        child = Population(self._size, meta=self._meta)
        for name, values in self._fields.items():
            if name not in fields:
                child._fields[name] = values.copy()
        for name, values in fields.items():
            child.set_field(name, values)
        return child

    def _require_mutable(self) -> None:
        if self._frozen:
            raise PopulationStateError("Cannot write to a population snapshot")

    def _check_mask(self, mask: np.ndarray) -> np.ndarray:
        """Validate a boolean mask or an integer index set."""
        mask = np.asarray(mask)
        if mask.dtype == bool:
            if mask.shape != (self._size,):
                raise ConfigurationError(
                    f"Mask has shape {mask.shape}, expected ({self._size},)"
                )
            return mask
        if mask.size and (mask.min() < 0 or mask.max() >= self._size):
            raise ConfigurationError(f"Index set out of range for population of {self._size}")
        return mask.astype(int)
