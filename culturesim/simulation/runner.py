"""Generation loop: drive one update rule over one population for T generations."""

from __future__ import annotations

import logging

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.errors import InvariantViolation
from culturesim.rules.base import UpdateRule, check_positive_int
from culturesim.simulation.aggregators import Aggregator, Summary

logger = logging.getLogger(__name__)


class SimulationRunner:
    """Runs one stochastic simulation and collects one summary per generation.

    Generation 1 is the initial population, summarised before any update.
    Every later generation is built by the rule from a frozen snapshot of the
    one before it. Nothing is retried or skipped: any error raised by the
    rule or the aggregator ends the run and propagates to the caller.
    """

    def run(
        self,
        initial: Population,
        rule: UpdateRule,
        t_max: int,
        aggregator: Aggregator,
        rng: RandomSource,
    ) -> list[Summary]:
        """Simulate generations 1..t_max.

        Args:
            initial: Generation 1
            rule: Transition applied to every generation after the first
            t_max: Number of generations, including the initial one
            aggregator: Reduces each generation to a summary record
            rng: Random stream owned by this run

        Returns:
            Summaries for generations 1..t_max, in order
        """
        t_max = check_positive_int("t_max", t_max)
        n = len(initial)
        current = initial.snapshot()
        summaries = [self._summarize(aggregator, current, 1)]

        for generation in range(2, t_max + 1):
            nxt = rule.step(current, rng)
            if nxt is current:
                raise InvariantViolation(
                    f"{rule!r} returned its input instead of a new generation"
                )
            if len(nxt) != n:
                raise InvariantViolation(
                    f"{rule!r} changed the population size from {n} to {len(nxt)} "
                    f"at generation {generation}"
                )
            current = nxt.snapshot()
            summaries.append(self._summarize(aggregator, current, generation))

        logger.debug(f"Simulated {t_max} generations of {rule.name} with N={n}")
        return summaries

    @staticmethod
    def _summarize(aggregator: Aggregator, population: Population, generation: int) -> Summary:
        summary = aggregator(population, generation)
        summary.validate()
        return summary


def simulate(
    rule: UpdateRule,
    n: int,
    t_max: int,
    rng: RandomSource,
    aggregator: Aggregator | None = None,
) -> list[Summary]:
    """Build the rule's initial population of ``n`` agents and run it.

    Uses the rule's default aggregator unless one is given.
    """
    n = check_positive_int("n", n)
    t_max = check_positive_int("t_max", t_max)
    initial = rule.initial_population(n, rng)
    return SimulationRunner().run(
        initial, rule, t_max, aggregator or rule.default_aggregator(), rng
    )
