"""Demography and cumulative skill (Henrich's Tasmania model)."""

from __future__ import annotations

import numpy as np

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.rules.base import RuleRegistry, UpdateRule, check_real
from culturesim.simulation.aggregators import Aggregator, SkillSummary


@RuleRegistry.register("demography_skill")
class DemographySkill(UpdateRule):
    """Every agent learns from the most skilled member of the previous generation.

    Each new skill is a Gumbel draw located ``alpha`` below the previous
    maximum with scale ``beta``. Larger populations sample more of the upper
    tail, so mean skill grows once N passes a critical size and decays below
    it.

    Args:
        alpha: Average copying loss relative to the best model
        beta: Spread of copying errors (Gumbel scale, > 0)
        z0: Skill of every agent in generation 1
    """

    def __init__(self, alpha: float, beta: float, z0: float = 0.0):
        self.alpha = check_real("alpha", alpha)
        self.beta = check_real("beta", beta, positive=True)
        self.z0 = check_real("z0", z0)

    def initial_population(self, n: int, rng: RandomSource) -> Population:
        population = Population(n, meta={"previous_mean_skill": self.z0})
        return population.fill_constant("skill", np.full(n, self.z0))

    def step(self, previous: Population, rng: RandomSource) -> Population:
        skill = previous["skill"]
        location = float(skill.max()) - self.alpha
        nxt = previous.derive(skill=rng.gumbel(location, self.beta, len(previous)))
        nxt.set_meta("previous_mean_skill", float(skill.mean()))
        return nxt

    def default_aggregator(self) -> Aggregator:
        return SkillSummary()
