"""Open-ended trait alphabets and continuous copy propensities."""

from __future__ import annotations

import logging

import numpy as np

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.errors import ConfigurationError, LabelExhaustion
from culturesim.rules.base import (
    RuleRegistry,
    UpdateRule,
    check_positive_int,
    check_probability,
)
from culturesim.simulation.aggregators import Aggregator, MeanAttribute, TraitDiversity

logger = logging.getLogger(__name__)

CAPACITY_POLICIES = ("suppress", "raise")


@RuleRegistry.register("multi_trait")
class MultiTraitInnovation(UpdateRule):
    """Unbiased copying over integer traits with innovation rate ``mu``.

    Generation 1 draws traits uniformly from 1..m. Each generation every agent
    copies a random previous agent; then each agent innovates with probability
    ``mu``, taking a label never issued before in this run. Labels are issued
    in increasing order from ``meta["max_label"] + 1``.

    ``capacity`` bounds the largest label that may be issued. When a
    generation's innovations would exceed it, ``policy`` decides:

    - "raise": LabelExhaustion is raised and the run fails.
    - "suppress": that generation's innovations and all later ones are
      dropped; ``meta["innovation_suppressed"]`` is set and a warning logged.
    """

    settings_defaults = {"capacity": "innovation_capacity", "policy": "innovation_policy"}

    def __init__(
        self,
        m: int = 2,
        mu: float = 0.0,
        capacity: int | None = None,
        policy: str = "suppress",
    ):
        self.m = check_positive_int("m", m)
        self.mu = check_probability("mu", mu)
        if capacity is not None:
            capacity = check_positive_int("capacity", capacity, minimum=self.m)
        self.capacity = capacity
        if policy not in CAPACITY_POLICIES:
            raise ConfigurationError(f"policy must be one of {CAPACITY_POLICIES}, got {policy!r}")
        self.policy = policy

    def initial_population(self, n: int, rng: RandomSource) -> Population:
        population = Population(n, meta={"max_label": self.m, "innovation_suppressed": False})
        return population.set_field("trait", rng.integers(1, self.m + 1, size=n))

    def step(self, previous: Population, rng: RandomSource) -> Population:
        n = len(previous)
        traits = previous["trait"][rng.sample_indices(n, n)]
        nxt = previous.derive(trait=traits)
        innovators = np.flatnonzero(rng.bernoulli(self.mu, n))
        if len(innovators) == 0 or previous.meta["innovation_suppressed"]:
            return nxt

        first = previous.meta["max_label"] + 1
        last = previous.meta["max_label"] + len(innovators)
        if self.capacity is not None and last > self.capacity:
            if self.policy == "raise":
                raise LabelExhaustion(self.capacity, last)
            logger.warning(
                f"Innovation suppressed for the rest of the run: label {last} "
                f"exceeds capacity {self.capacity}"
            )
            nxt.set_meta("innovation_suppressed", True)
            return nxt

        nxt.write("trait", np.arange(first, last + 1), mask=innovators)
        nxt.set_meta("max_label", last)
        return nxt

    def default_aggregator(self) -> Aggregator:
        return TraitDiversity()


@RuleRegistry.register("openness")
class OpennessConservatism(UpdateRule):
    """Openness versus conservatism: the copy propensity P is itself transmitted.

    Each agent copies the P of a random demonstrator with probability equal to
    its own current P. With mutation rate ``mu`` an agent redraws P uniformly.
    Without mutation the population drifts towards its least open members.
    """

    def __init__(self, mu: float = 0.0):
        self.mu = check_probability("mu", mu)

    def initial_population(self, n: int, rng: RandomSource) -> Population:
        return Population(n).fill_uniform_real("P", rng)

    def step(self, previous: Population, rng: RandomSource) -> Population:
        n = len(previous)
        own = previous["P"]
        copies = rng.uniform(n) < own
        demonstrators = rng.sample_indices(n, n)
        new = np.where(copies, own[demonstrators], own)
        if self.mu > 0:
            mutate = rng.bernoulli(self.mu, n)
            new[mutate] = rng.uniform(int(mutate.sum()))
        return previous.derive(P=new)

    def default_aggregator(self) -> Aggregator:
        return MeanAttribute(fields=("P",), stats=("mean", "min", "max"))
