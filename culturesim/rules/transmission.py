"""Two-variant (A/B) transmission models: drift, mutation, and biased copying.

Each new generation is built from a frozen snapshot of the previous one.
Agents that are not touched by a copy or mutation event keep the trait they
held in the previous generation.
"""

from __future__ import annotations

import logging

import numpy as np

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.errors import DegenerateDistribution
from culturesim.rules.base import (
    BINARY_TRAITS,
    TRAIT_A,
    TRAIT_B,
    RuleRegistry,
    UpdateRule,
    check_probability,
)
from culturesim.simulation.aggregators import Aggregator, TraitFrequency

logger = logging.getLogger(__name__)

# Demonstrators per agent under conformist transmission
CONFORMIST_SAMPLE = 3


def copy_uniformly(previous: Population, rng: RandomSource) -> np.ndarray:
    """Every agent copies the trait of one uniformly chosen previous agent."""
    n = len(previous)
    return previous["trait"][rng.sample_indices(n, n)]


def note_degenerate(population: Population, reason: str) -> None:
    """Record a transition skipped because no demonstrator could be chosen."""
    skipped = population.meta.get("skipped_transitions", 0) + 1
    population.set_meta("skipped_transitions", skipped)
    if skipped == 1:
        logger.warning(f"No valid demonstrators ({reason}); copying skipped for this generation")
    else:
        logger.debug(f"Copying skipped again ({reason}), {skipped} generations so far")


class BinaryTraitRule(UpdateRule):
    """Shared initialisation for the A/B models: trait A with probability ``p0``."""

    def __init__(self, p0: float = 0.5):
        self.p0 = check_probability("p0", p0)

    def initial_population(self, n: int, rng: RandomSource) -> Population:
        return Population(n).fill_weighted("trait", BINARY_TRAITS, [self.p0, 1 - self.p0], rng)

    def default_aggregator(self) -> Aggregator:
        return TraitFrequency(labels=BINARY_TRAITS)


@RuleRegistry.register("unbiased")
class UnbiasedCopy(BinaryTraitRule):
    """Unbiased transmission: copy a random member of the previous generation."""

    def step(self, previous: Population, rng: RandomSource) -> Population:
        return previous.derive(trait=copy_uniformly(previous, rng))


@RuleRegistry.register("unbiased_mutation")
class UnbiasedMutation(BinaryTraitRule):
    """Unbiased mutation: each agent flips its own trait with probability ``mu``."""

    def __init__(self, mu: float, p0: float = 0.5):
        super().__init__(p0)
        self.mu = check_probability("mu", mu)

    def step(self, previous: Population, rng: RandomSource) -> Population:
        old = previous["trait"]
        mutate = rng.bernoulli(self.mu, len(previous))
        new = old.copy()
        new[mutate & (old == TRAIT_A)] = TRAIT_B
        new[mutate & (old == TRAIT_B)] = TRAIT_A
        return previous.derive(trait=new)


@RuleRegistry.register("biased_mutation")
class BiasedMutation(BinaryTraitRule):
    """Biased mutation: B agents switch to A with probability ``mu_b``."""

    def __init__(self, mu_b: float, p0: float = 0.0):
        super().__init__(p0)
        self.mu_b = check_probability("mu_b", mu_b)

    def step(self, previous: Population, rng: RandomSource) -> Population:
        old = previous["trait"]
        mutate = rng.bernoulli(self.mu_b, len(previous))
        new = old.copy()
        new[mutate & (old == TRAIT_B)] = TRAIT_A
        return previous.derive(trait=new)


@RuleRegistry.register("direct_bias")
class DirectBias(BinaryTraitRule):
    """Direct bias: copy A demonstrators with probability ``s_a``, B ones with ``s_b``.

    Only ``s_a - s_b`` sets the direction of change. With ``s_a == s_b`` there is
    no bias at all and the rule is exactly unbiased transmission.
    """

    def __init__(self, s_a: float, s_b: float, p0: float = 0.5):
        super().__init__(p0)
        self.s_a = check_probability("s_a", s_a)
        self.s_b = check_probability("s_b", s_b)

    def step(self, previous: Population, rng: RandomSource) -> Population:
        if self.s_a == self.s_b:
            return previous.derive(trait=copy_uniformly(previous, rng))

        n = len(previous)
        demonstrator = copy_uniformly(previous, rng)
        copy_a = rng.bernoulli(self.s_a, n)
        copy_b = rng.bernoulli(self.s_b, n)
        new = previous["trait"].copy()
        new[copy_a & (demonstrator == TRAIT_A)] = TRAIT_A
        new[copy_b & (demonstrator == TRAIT_B)] = TRAIT_B
        return previous.derive(trait=new)


@RuleRegistry.register("conformist_bias")
class ConformistBias(BinaryTraitRule):
    """Conformist transmission among three demonstrators with strength ``D``.

    P(adopt A) given the number of A demonstrators:
    3 -> 1, 2 -> 2/3 + D/3, 1 -> 1/3 - D/3, 0 -> 0.
    """

    def __init__(self, D: float, p0: float = 0.5):
        super().__init__(p0)
        self.D = check_probability("D", D)

    def adoption_probability(self, num_a: np.ndarray) -> np.ndarray:
        return np.select(
            [num_a == 3, num_a == 2, num_a == 1],
            [1.0, 2 / 3 + self.D / 3, 1 / 3 - self.D / 3],
            default=0.0,
        )

    def step(self, previous: Population, rng: RandomSource) -> Population:
        n = len(previous)
        demonstrators = previous["trait"][rng.sample_indices(n, CONFORMIST_SAMPLE * n)]
        num_a = (demonstrators.reshape(n, CONFORMIST_SAMPLE) == TRAIT_A).sum(axis=1)
        adopt_a = rng.uniform(n) < self.adoption_probability(num_a)
        return previous.derive(trait=np.where(adopt_a, TRAIT_A, TRAIT_B))


@RuleRegistry.register("demonstrator_bias")
class DemonstratorBias(BinaryTraitRule):
    """Demonstrator (prestige) bias: copy high-status agents preferentially.

    A fixed fraction ``p_s`` of agents (on average) has high status. A
    high-status agent is chosen as demonstrator with weight 1, a low-status
    one with weight ``p_low``.

    If every weight is zero (no high-status agent and ``p_low == 0``) there is
    nobody to copy: the generation is carried over unchanged and the skip is
    counted in ``meta["skipped_transitions"]``.
    """

    def __init__(self, p_s: float, p_low: float, p0: float = 0.5):
        super().__init__(p0)
        self.p_s = check_probability("p_s", p_s)
        self.p_low = check_probability("p_low", p_low)

    def initial_population(self, n: int, rng: RandomSource) -> Population:
        population = super().initial_population(n, rng)
        return population.fill_weighted("status", ("high", "low"), [self.p_s, 1 - self.p_s], rng)

    def step(self, previous: Population, rng: RandomSource) -> Population:
        n = len(previous)
        weights = np.where(previous["status"] == "high", 1.0, self.p_low)
        try:
            chosen = rng.weighted_indices(weights, n, context="demonstrator status")
        except DegenerateDistribution:
            nxt = previous.derive()
            note_degenerate(nxt, "all demonstrator weights are zero")
            return nxt
        return previous.derive(trait=previous["trait"][chosen])
