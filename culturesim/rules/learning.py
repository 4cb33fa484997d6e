"""Evolution of learning strategies in a changing environment (Rogers' paradox).

Agents carry a learning strategy, a behaviour, and a fitness. Behaviours are
integers; the environment optimum ``E`` starts at 0 and ratchets upward by one
with probability ``u`` per generation. A behaviour is correct when it equals
the current ``E``.

Per generation:

1. Strategies are inherited in proportion to each strategy's share of total
   fitness in the previous generation, then mutate with probability ``mu`` to
   one of the other strategies.
2. The environment may change.
3. Individual learners find ``E`` with probability ``p`` (else ``E - 1``) and
   pay ``b * c``. Social learners copy a random previous behaviour and pay
   ``b * s``. Critical learners copy socially, and if the copied behaviour is
   wrong they also learn individually and pay ``b * c``.
4. Correct behaviour earns ``+b``, incorrect ``-b``, on a baseline of 1.
"""

from __future__ import annotations

import numpy as np

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.errors import ConfigurationError, InvariantViolation
from culturesim.rules.base import RuleRegistry, UpdateRule, check_probability, check_real
from culturesim.simulation.aggregators import Aggregator, StrategyComposition

INDIVIDUAL = "individual"
SOCIAL = "social"
CRITICAL = "critical"

BASELINE_FITNESS = 1.0


@RuleRegistry.register("critical_learner")
class CriticalLearner(UpdateRule):
    """Individual, social, and critical learners competing on fitness."""

    def __init__(
        self,
        b: float = 0.5,
        c: float = 0.9,
        s: float = 0.0,
        p: float = 1.0,
        u: float = 0.2,
        mu: float = 0.001,
        allow_critical: bool = True,
        shared_learning_draw: bool = True,
    ):
        self.b = check_real("b", b, positive=True)
        self.c = check_real("c", c)
        self.s = check_real("s", s)
        if self.c < 0 or self.s < 0:
            raise ConfigurationError(f"Learning costs must be non-negative, got c={c}, s={s}")
        # Lowest reachable fitness is 1 - b(1 + c + s); it has to stay positive
        if self.b * (1 + self.c + self.s) >= BASELINE_FITNESS:
            raise ConfigurationError(
                f"b * (1 + c + s) must be < 1 so fitness stays positive, "
                f"got {self.b * (1 + self.c + self.s)}"
            )
        self.p = check_probability("p", p)
        self.u = check_probability("u", u)
        self.mu = check_probability("mu", mu)
        self.allow_critical = bool(allow_critical)
        self.shared_learning_draw = bool(shared_learning_draw)

    @property
    def strategies(self) -> tuple[str, ...]:
        if self.allow_critical:
            return (INDIVIDUAL, SOCIAL, CRITICAL)
        return (INDIVIDUAL, SOCIAL)

    def initial_population(self, n: int, rng: RandomSource) -> Population:
        population = Population(n, meta={"environment": 0})
        population.fill_constant("learning", np.full(n, INDIVIDUAL, dtype="<U10"))
        population.fill_constant("behaviour", np.zeros(n, dtype=np.int64))
        population.fill_constant("fitness", np.zeros(n))
        self._learn(population, None, rng)
        return population

    def step(self, previous: Population, rng: RandomSource) -> Population:
        n = len(previous)
        learning = self._reproduce(previous, rng)
        learning = self._mutate(learning, rng)
        nxt = previous.derive(learning=learning)
        if rng.uniform() < self.u:
            nxt.set_meta("environment", previous.meta["environment"] + 1)
        self._learn(nxt, previous["behaviour"], rng)
        if len(nxt) != n:
            raise InvariantViolation("Population size changed during learning")
        return nxt

    def default_aggregator(self) -> Aggregator:
        return StrategyComposition(strategies=self.strategies)

    def fitness_shares(self, previous: Population) -> list[float]:
        """Probability that an offspring takes each strategy.

        Individual and social learners get their share of total fitness; the
        last strategy takes whatever remains.
        """
        fitness = previous["fitness"]
        learning = previous["learning"]
        total = fitness.sum()
        share_il = fitness[learning == INDIVIDUAL].sum() / total
        share_sl = fitness[learning == SOCIAL].sum() / total
        if self.allow_critical:
            return [share_il, share_sl, max(0.0, 1.0 - (share_il + share_sl))]
        return [share_il, max(0.0, 1.0 - share_il)]

    def _reproduce(self, previous: Population, rng: RandomSource) -> np.ndarray:
        shares = self.fitness_shares(previous)
        return rng.categorical(self.strategies, shares, len(previous), context="strategy shares")

    def _mutate(self, learning: np.ndarray, rng: RandomSource) -> np.ndarray:
        n = len(learning)
        mutate = rng.bernoulli(self.mu, n)
        if not mutate.any():
            return learning
        k = len(self.strategies)
        current = np.zeros(n, dtype=np.int64)
        for index, strategy in enumerate(self.strategies):
            current[learning == strategy] = index
        # Shift by 1..k-1 places: always lands on one of the other strategies
        shifted = (current + rng.integers(1, k, size=n)) % k
        mutated = np.array(self.strategies, dtype="<U10")[shifted]
        return np.where(mutate, mutated, learning)

    def _learn(
        self,
        population: Population,
        previous_behaviour: np.ndarray | None,
        rng: RandomSource,
    ) -> None:
        n = len(population)
        environment = population.meta["environment"]
        learning = population["learning"]
        individual = learning == INDIVIDUAL
        social = learning == SOCIAL
        critical = learning == CRITICAL
        if previous_behaviour is None and (social.any() or critical.any()):
            raise InvariantViolation("Social learners need a previous generation to copy")

        behaviour = np.empty(n, dtype=np.int64)
        fitness = np.full(n, BASELINE_FITNESS)
        learn_correct = rng.bernoulli(self.p, n)
        # Drawn every generation so both fallback variants consume the same stream
        fresh_correct = rng.bernoulli(self.p, n)

        behaviour[individual] = np.where(learn_correct[individual], environment, environment - 1)
        fitness[individual] -= self.b * self.c

        copiers = social | critical
        if copiers.any():
            copied = rng.sample_indices(len(previous_behaviour), int(copiers.sum()))
            behaviour[copiers] = previous_behaviour[copied]
            fitness[copiers] -= self.b * self.s

            wrong = critical & (behaviour != environment)
            if wrong.any():
                fallback_correct = learn_correct if self.shared_learning_draw else fresh_correct
                behaviour[wrong] = np.where(
                    fallback_correct[wrong], environment, environment - 1
                )
                fitness[wrong] -= self.b * self.c

        correct = behaviour == environment
        fitness[correct] += self.b
        fitness[~correct] -= self.b

        population.write("behaviour", behaviour)
        population.write("fitness", fitness)
