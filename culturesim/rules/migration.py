"""Cultural transmission in a population split into clusters, with migration."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.errors import ConfigurationError, DegenerateDistribution
from culturesim.rules.base import (
    TRAIT_A,
    TRAIT_B,
    RuleRegistry,
    UpdateRule,
    check_positive_int,
    check_probability,
)
from culturesim.rules.transmission import note_degenerate
from culturesim.simulation.aggregators import Aggregator, ClusterFrequency


@RuleRegistry.register("group_migration")
class GroupStructuredMigration(UpdateRule):
    """One observer per generation copies a demonstrator, then may migrate.

    Agents are dealt round-robin into ``clusters`` clusters numbered 1..C.
    Each generation a single observer is chosen uniformly. Every other agent
    is a candidate demonstrator with weight ``(same_cluster + p_c) / (1 + p_c)``,
    so ``p_c`` is the relative chance of contact across clusters. The observer
    adopts the chosen demonstrator's trait. Independently, with probability
    ``p_m`` the observer moves to a uniformly chosen different cluster.

    If no demonstrator has positive weight (``p_c == 0`` and the observer is
    alone in its cluster) the copy is skipped for that generation and counted
    in ``meta["skipped_transitions"]``; migration still applies.

    Args:
        clusters: Number of clusters C
        p_c: Cross-cluster contact parameter in [0, 1]
        p_m: Migration probability in [0, 1]; needs C >= 2 when positive
        p0: Initial frequency of A in every cluster
        p0_by_cluster: Per-cluster initial frequency of A, overriding ``p0``
    """

    def __init__(
        self,
        clusters: int,
        p_c: float,
        p_m: float,
        p0: float = 0.5,
        p0_by_cluster: Sequence[float] | None = None,
    ):
        self.clusters = check_positive_int("clusters", clusters)
        self.p_c = check_probability("p_c", p_c)
        self.p_m = check_probability("p_m", p_m)
        if self.p_m > 0 and self.clusters < 2:
            raise ConfigurationError("Migration needs at least two clusters")
        self.p0 = check_probability("p0", p0)
        if p0_by_cluster is not None:
            if len(p0_by_cluster) != self.clusters:
                raise ConfigurationError(
                    f"p0_by_cluster has {len(p0_by_cluster)} entries, expected {self.clusters}"
                )
            p0_by_cluster = [
                check_probability(f"p0_by_cluster[{i}]", p) for i, p in enumerate(p0_by_cluster)
            ]
        self.p0_by_cluster = p0_by_cluster

    def initial_population(self, n: int, rng: RandomSource) -> Population:
        cluster = np.arange(n) % self.clusters + 1
        p_a = np.full(n, self.p0)
        if self.p0_by_cluster is not None:
            p_a = np.asarray(self.p0_by_cluster)[cluster - 1]
        trait = np.where(rng.bernoulli(p_a), TRAIT_A, TRAIT_B)
        return Population(n, fields={"cluster": cluster, "trait": trait})

    def contact_weights(self, previous: Population, observer: int) -> np.ndarray:
        """Demonstrator weights for ``observer``; the observer never copies itself."""
        cluster = previous["cluster"]
        same = (cluster == cluster[observer]).astype(float)
        weights = (same + self.p_c) / (1 + self.p_c)
        weights[observer] = 0.0
        return weights

    def step(self, previous: Population, rng: RandomSource) -> Population:
        n = len(previous)
        observer = rng.integers(0, n)
        nxt = previous.derive()
        try:
            demonstrator = rng.weighted_indices(
                self.contact_weights(previous, observer), 1, context="cluster contact"
            )[0]
        except DegenerateDistribution:
            note_degenerate(nxt, "observer has no reachable demonstrator")
        else:
            nxt.write("trait", previous["trait"][demonstrator], mask=np.array([observer]))

        if self.p_m > 0 and rng.uniform() < self.p_m:
            current = int(previous["cluster"][observer])
            shift = rng.integers(1, self.clusters)
            destination = (current - 1 + shift) % self.clusters + 1
            nxt.write("cluster", destination, mask=np.array([observer]))
        return nxt

    def default_aggregator(self) -> Aggregator:
        return ClusterFrequency(self.clusters, trait=TRAIT_A)
