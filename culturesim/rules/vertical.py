"""Vertical (parent to offspring) and horizontal (peer) transmission."""

from __future__ import annotations

import numpy as np

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.rules.base import (
    TRAIT_A,
    TRAIT_B,
    RuleRegistry,
    check_positive_int,
    check_probability,
)
from culturesim.rules.transmission import BinaryTraitRule


def inherit_from_parents(
    previous: Population, rng: RandomSource, b: float, a: float = 0.0
) -> np.ndarray:
    """Offspring traits from two parents sampled from the previous generation.

    Matching parents pass on their shared trait; mixed parents pass on A with
    probability ``b``. With probability ``a`` mating is assortative: the second
    parent carries the first parent's trait.
    """
    n = len(previous)
    traits = previous["trait"]
    first = traits[rng.sample_indices(n, n)]
    second = traits[rng.sample_indices(n, n)]
    if a > 0:
        second = np.where(rng.bernoulli(a, n), first, second)
    mixed_to_a = rng.uniform(n) < b
    return np.where(first == second, first, np.where(mixed_to_a, TRAIT_A, TRAIT_B))


@RuleRegistry.register("vertical")
class VerticalTransmission(BinaryTraitRule):
    """Vertical transmission from two parents with bias ``b`` towards A."""

    def __init__(self, b: float, a: float = 0.0, p0: float = 0.5):
        super().__init__(p0)
        self.b = check_probability("b", b)
        self.a = check_probability("a", a)

    def step(self, previous: Population, rng: RandomSource) -> Population:
        return previous.derive(trait=inherit_from_parents(previous, rng, self.b, self.a))


@RuleRegistry.register("vertical_horizontal")
class VerticalPlusHorizontal(BinaryTraitRule):
    """Vertical transmission followed by horizontal conversion of B agents.

    After the vertical step, each B agent meets ``n_demonstrators`` agents of
    the post-vertical generation and switches to A if at least one of them
    holds A and that meeting succeeds (probability ``g``).
    """

    def __init__(
        self,
        b: float,
        g: float,
        n_demonstrators: int,
        a: float = 0.0,
        p0: float = 0.5,
    ):
        super().__init__(p0)
        self.b = check_probability("b", b)
        self.g = check_probability("g", g)
        self.n_demonstrators = check_positive_int("n_demonstrators", n_demonstrators, minimum=0)
        self.a = check_probability("a", a)

    def step(self, previous: Population, rng: RandomSource) -> Population:
        traits = inherit_from_parents(previous, rng, self.b, self.a)
        learners = np.flatnonzero(traits == TRAIT_B)
        k = len(learners)
        if k > 0 and self.n_demonstrators > 0:
            n = len(previous)
            meetings = (k, self.n_demonstrators)
            seen = traits[rng.sample_indices(n, k * self.n_demonstrators)].reshape(meetings)
            success = rng.bernoulli(self.g, k * self.n_demonstrators).reshape(meetings)
            converts = np.any((seen == TRAIT_A) & success, axis=1)
            traits[learners[converts]] = TRAIT_A
        return previous.derive(trait=traits)
