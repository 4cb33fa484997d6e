"""Tests for multi-trait innovation and openness/conservatism."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from culturesim.core.random_source import RandomSource
from culturesim.errors import ConfigurationError, LabelExhaustion
from culturesim.rules import MultiTraitInnovation, OpennessConservatism
from culturesim.simulation.runner import simulate
from tests.helpers import run_replicates, trajectory


def run_generations(rule, n, generations, seed=0):
    """Yield (previous snapshot, next population) for consecutive generations."""
    rng = RandomSource(seed)
    current = rule.initial_population(n, rng)
    for _ in range(generations):
        previous = current.snapshot()
        current = rule.step(previous, rng)
        yield previous, current


class TestMultiTraitInnovation:
    """Open alphabet with a running label counter."""

    def test_initial_labels(self, rng):
        population = MultiTraitInnovation(m=5).initial_population(1000, rng)

        assert set(population["trait"].tolist()) == {1, 2, 3, 4, 5}
        assert population.meta["max_label"] == 5

    def test_new_labels_are_fresh_and_consecutive(self):
        """Innovations take the next unused labels; nothing collides."""
        rule = MultiTraitInnovation(m=3, mu=0.1)
        for previous, current in run_generations(rule, 200, 30, seed=1):
            old_max = previous.meta["max_label"]
            new_max = current.meta["max_label"]
            traits = current["trait"]
            fresh = np.sort(traits[traits > old_max])

            assert np.array_equal(fresh, np.arange(old_max + 1, new_max + 1))
            assert traits.max() <= new_max
            assert new_max >= old_max

    def test_without_innovation_diversity_never_grows(self):
        """Unbiased copying can only lose traits."""
        summaries = simulate(MultiTraitInnovation(m=10), 100, 200, RandomSource(2))
        distinct = trajectory(summaries, "distinct_traits")

        assert np.all(np.diff(distinct) <= 0)
        assert distinct[-1] < 10

    def test_innovation_maintains_diversity(self):
        runs = run_replicates(MultiTraitInnovation(m=2, mu=0.05), 100, 200, 3, seed=3)

        for run in runs:
            assert run[-1].statistics["distinct_traits"] > 2

    def test_suppress_policy_caps_labels(self, caplog):
        """Past capacity, innovation stops for the rest of the run and is logged."""
        rule = MultiTraitInnovation(m=2, mu=0.5, capacity=20, policy="suppress")

        with caplog.at_level(logging.WARNING):
            generations = list(run_generations(rule, 50, 10, seed=4))

        for _, current in generations:
            assert current["trait"].max() <= 20
        assert generations[-1][1].meta["innovation_suppressed"] is True
        assert "Innovation suppressed" in caplog.text
        assert caplog.text.count("Innovation suppressed") == 1

    def test_raise_policy_fails_run(self):
        rule = MultiTraitInnovation(m=2, mu=0.5, capacity=20, policy="raise")

        with pytest.raises(LabelExhaustion) as exc:
            simulate(rule, 50, 10, RandomSource(5))

        assert exc.value.capacity == 20
        assert exc.value.requested > 20

    def test_capacity_never_reached_runs_normally(self):
        rule = MultiTraitInnovation(m=2, mu=0.01, capacity=10_000, policy="raise")

        summaries = simulate(rule, 50, 20, RandomSource(6))

        assert len(summaries) == 20

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"m": 0},
            {"m": 2, "mu": 1.5},
            {"m": 5, "capacity": 3},
            {"m": 2, "policy": "ignore"},
        ],
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ConfigurationError):
            MultiTraitInnovation(**kwargs)


class TestOpennessConservatism:
    """Copy propensity P as its own transmitted trait."""

    def test_bounds_never_widen_without_mutation(self):
        """New P values are old P values: max never rises, min never falls."""
        summaries = simulate(OpennessConservatism(), 500, 60, RandomSource(7))
        highest = trajectory(summaries, "max_P")
        lowest = trajectory(summaries, "min_P")

        assert np.all(np.diff(highest) <= 0)
        assert np.all(np.diff(lowest) >= 0)

    def test_population_becomes_conservative(self):
        runs = run_replicates(OpennessConservatism(), 1000, 100, 3, seed=8)

        for run in runs:
            assert run[0].statistics["mean_P"] == pytest.approx(0.5, abs=0.05)
            assert run[-1].statistics["mean_P"] < 0.25

    def test_mutation_keeps_values_in_unit_interval(self):
        summaries = simulate(OpennessConservatism(mu=0.2), 300, 50, RandomSource(9))

        for summary in summaries:
            assert 0.0 <= summary.statistics["min_P"] <= summary.statistics["max_P"] < 1.0

    def test_mutation_keeps_population_open(self):
        """Fresh uniform draws hold mean P well above the no-mutation level."""
        closed = run_replicates(OpennessConservatism(mu=0.0), 1000, 100, 3, seed=10)
        open_ = run_replicates(OpennessConservatism(mu=0.2), 1000, 100, 3, seed=10)

        closed_mean = np.mean([run[-1].statistics["mean_P"] for run in closed])
        open_mean = np.mean([run[-1].statistics["mean_P"] for run in open_])
        assert open_mean > closed_mean
