"""Per-generation summaries of a population.

Every aggregator is a pure function of a population snapshot: no randomness,
no side effects. Each returns one of a small set of tagged summary records so
consumers can dispatch on ``kind``:

- FrequencySummary: label -> proportion of agents
- ScalarSummary: named scalar statistics (mean skill, mean P ...)
- StrategySummary: learning-strategy proportions plus mean fitness
- ClusterSummary: per-cluster frequency of one trait plus cross-cluster variance

All of them flatten to ``{run_id, generation, category, value}`` rows.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar

import numpy as np

from culturesim.core.population import Population
from culturesim.errors import ConfigurationError, InvariantViolation

FREQUENCY_TOLERANCE = 1e-9


@dataclass(frozen=True)
class Summary(ABC):
    """Base summary record for one generation."""

    kind: ClassVar[str] = "summary"

    generation: int

    @abstractmethod
    def values(self) -> dict[str, float]:
        """Category label -> value."""

    def records(self, run_id: str) -> list[dict[str, Any]]:
        return [
            {
                "run_id": run_id,
                "generation": self.generation,
                "category": category,
                "value": value,
            }
            for category, value in self.values().items()
        ]

    def validate(self) -> None:
        """Raise InvariantViolation if the record is internally inconsistent."""


def _check_proportions(name: str, proportions: dict[str, float], must_sum: bool) -> None:
    for label, value in proportions.items():
        if not -FREQUENCY_TOLERANCE <= value <= 1.0 + FREQUENCY_TOLERANCE:
            raise InvariantViolation(f"{name} for '{label}' is {value}, outside [0, 1]")
    if must_sum and proportions:
        total = sum(proportions.values())
        if abs(total - 1.0) > 1e-6:
            raise InvariantViolation(f"{name} values sum to {total}, not 1")


@dataclass(frozen=True)
class FrequencySummary(Summary):
    kind: ClassVar[str] = "frequency"

    frequencies: dict[str, float] = field(default_factory=dict)

    def values(self) -> dict[str, float]:
        return dict(self.frequencies)

    def validate(self) -> None:
        _check_proportions("Frequency", self.frequencies, must_sum=True)


@dataclass(frozen=True)
class ScalarSummary(Summary):
    kind: ClassVar[str] = "scalar"

    statistics: dict[str, float] = field(default_factory=dict)

    def values(self) -> dict[str, float]:
        return dict(self.statistics)


@dataclass(frozen=True)
class StrategySummary(Summary):
    kind: ClassVar[str] = "strategy"

    proportions: dict[str, float] = field(default_factory=dict)
    mean_fitness: float = 0.0

    def values(self) -> dict[str, float]:
        return {**self.proportions, "mean_fitness": self.mean_fitness}

    def validate(self) -> None:
        _check_proportions("Strategy proportion", self.proportions, must_sum=True)


@dataclass(frozen=True)
class ClusterSummary(Summary):
    kind: ClassVar[str] = "cluster"

    trait: str = ""
    frequencies: dict[int, float] = field(default_factory=dict)  # cluster id -> freq of trait
    overall: float = 0.0
    variance: float = 0.0

    def values(self) -> dict[str, float]:
        out = {f"cluster_{cluster}": freq for cluster, freq in self.frequencies.items()}
        out["overall"] = self.overall
        out["variance"] = self.variance
        return out

    def validate(self) -> None:
        _check_proportions(
            "Cluster frequency",
            {str(k): v for k, v in self.frequencies.items()} | {"overall": self.overall},
            must_sum=False,
        )


class Aggregator(ABC):
    """Reduces a population to one summary record."""

    name: ClassVar[str] = ""

    @abstractmethod
    def __call__(self, population: Population, generation: int) -> Summary:
        """Summarise ``population`` as generation ``generation``."""


def _label(value: Any) -> str:
    if isinstance(value, np.generic):
        value = value.item()
    return str(value)


class TraitFrequency(Aggregator):
    """Proportion of agents holding each label of a categorical field.

    With ``labels`` given, those labels are always reported (zero when absent);
    any other label present is reported too, so frequencies always sum to 1.
    """

    name = "trait_frequency"

    def __init__(self, field: str = "trait", labels: Sequence[Any] | None = None):
        self.field = field
        self.labels = list(labels) if labels is not None else None

    def __call__(self, population: Population, generation: int) -> FrequencySummary:
        values = population.read(self.field)
        present, counts = np.unique(values, return_counts=True)
        n = len(population)
        frequencies: dict[str, float] = {}
        if self.labels is not None:
            frequencies = {_label(label): 0.0 for label in self.labels}
        for label, count in zip(present, counts):
            frequencies[_label(label)] = float(count / n)
        return FrequencySummary(generation=generation, frequencies=frequencies)


class TraitDiversity(Aggregator):
    """Richness and dominance of an open-ended trait alphabet."""

    name = "trait_diversity"

    def __init__(self, field: str = "trait"):
        self.field = field

    def __call__(self, population: Population, generation: int) -> ScalarSummary:
        _, counts = np.unique(population.read(self.field), return_counts=True)
        p = counts / len(population)
        return ScalarSummary(
            generation=generation,
            statistics={
                "distinct_traits": float(len(counts)),
                "max_frequency": float(p.max()),
                "simpson_diversity": float(1.0 - np.sum(p**2)),
            },
        )


class MeanAttribute(Aggregator):
    """Simple statistics of one or more continuous fields."""

    name = "mean_attribute"

    _STATS = {
        "mean": np.mean,
        "min": np.min,
        "max": np.max,
        "std": np.std,
    }

    def __init__(self, fields: Sequence[str] = ("P",), stats: Sequence[str] = ("mean",)):
        unknown = [s for s in stats if s not in self._STATS]
        if unknown:
            raise ConfigurationError(f"Unknown statistics {unknown}; use {list(self._STATS)}")
        self.fields = list(fields)
        self.stats = list(stats)

    def __call__(self, population: Population, generation: int) -> ScalarSummary:
        statistics = {}
        for name in self.fields:
            values = population.read(name)
            for stat in self.stats:
                statistics[f"{stat}_{name}"] = float(self._STATS[stat](values))
        return ScalarSummary(generation=generation, statistics=statistics)


class SkillSummary(Aggregator):
    """Mean skill and its change since the previous generation."""

    name = "skill"

    def __init__(self, field: str = "skill"):
        self.field = field

    def __call__(self, population: Population, generation: int) -> ScalarSummary:
        mean = float(np.mean(population.read(self.field)))
        previous = population.meta.get("previous_mean_skill", mean)
        return ScalarSummary(
            generation=generation,
            statistics={"mean_skill": mean, "delta_mean_skill": mean - previous},
        )


class StrategyComposition(Aggregator):
    """Learning-strategy proportions and mean fitness."""

    name = "strategy_composition"

    def __init__(
        self,
        strategies: Sequence[str] = ("individual", "social", "critical"),
        field: str = "learning",
        fitness_field: str = "fitness",
    ):
        self.strategies = list(strategies)
        self.field = field
        self.fitness_field = fitness_field

    def __call__(self, population: Population, generation: int) -> StrategySummary:
        learning = population.read(self.field)
        n = len(population)
        return StrategySummary(
            generation=generation,
            proportions={s: float(np.count_nonzero(learning == s) / n) for s in self.strategies},
            mean_fitness=float(np.mean(population.read(self.fitness_field))),
        )


class ClusterFrequency(Aggregator):
    """Frequency of ``trait`` inside each cluster, and its spread across clusters.

    Empty clusters are left out of both the per-cluster table and the variance.
    """

    name = "cluster_frequency"

    def __init__(
        self,
        clusters: int,
        trait: str = "A",
        field: str = "trait",
        cluster_field: str = "cluster",
    ):
        self.clusters = clusters
        self.trait = trait
        self.field = field
        self.cluster_field = cluster_field

    def __call__(self, population: Population, generation: int) -> ClusterSummary:
        holds = population.read(self.field) == self.trait
        cluster = population.read(self.cluster_field)
        sizes = np.bincount(cluster, minlength=self.clusters + 1)[1:]
        hits = np.bincount(cluster, weights=holds.astype(float), minlength=self.clusters + 1)[1:]
        frequencies = {
            c + 1: float(hits[c] / sizes[c]) for c in range(self.clusters) if sizes[c] > 0
        }
        per_cluster = list(frequencies.values())
        variance = float(np.var(per_cluster)) if per_cluster else math.nan
        return ClusterSummary(
            generation=generation,
            trait=self.trait,
            frequencies=frequencies,
            overall=float(np.mean(holds)),
            variance=variance,
        )


AGGREGATORS: dict[str, type[Aggregator]] = {
    cls.name: cls
    for cls in (
        TraitFrequency,
        TraitDiversity,
        MeanAttribute,
        SkillSummary,
        StrategyComposition,
        ClusterFrequency,
    )
}


def create_aggregator(name: str, **params: Any) -> Aggregator:
    """Instantiate an aggregator by registry name."""
    if name not in AGGREGATORS:
        raise ConfigurationError(
            f"Unknown aggregator '{name}'. Known aggregators: {sorted(AGGREGATORS)}"
        )
    try:
        return AGGREGATORS[name](**params)
    except TypeError as err:
        raise ConfigurationError(f"Bad parameters for aggregator '{name}': {err}") from err
