"""Tests for the two-variant transmission models."""

from __future__ import annotations

import numpy as np
import pytest

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.errors import ConfigurationError
from culturesim.rules import (
    BiasedMutation,
    ConformistBias,
    DemonstratorBias,
    DirectBias,
    UnbiasedCopy,
    UnbiasedMutation,
)
from culturesim.simulation.runner import simulate
from tests.helpers import final_values, fixation_generation, run_replicates, trajectory


class TestParameterValidation:
    """Probabilities outside [0, 1] are configuration errors, never clamped."""

    @pytest.mark.parametrize(
        "factory",
        [
            lambda: UnbiasedCopy(p0=1.1),
            lambda: UnbiasedMutation(mu=-0.1),
            lambda: BiasedMutation(mu_b=2.0),
            lambda: DirectBias(s_a=0.1, s_b=1.5),
            lambda: ConformistBias(D=-0.5),
            lambda: DemonstratorBias(p_s=0.5, p_low=1.2),
            lambda: UnbiasedCopy(p0=float("nan")),
            lambda: UnbiasedCopy(p0=True),
        ],
    )
    def test_out_of_range_rejected(self, factory):
        with pytest.raises(ConfigurationError):
            factory()


class TestUnbiasedCopy:
    """Drift: fixation for small N, martingale for large N."""

    def test_conserves_population_size(self, rng):
        rule = UnbiasedCopy(p0=0.5)
        previous = rule.initial_population(50, rng).snapshot()

        nxt = rule.step(previous, rng)

        assert len(nxt) == 50
        assert nxt is not previous
        assert set(nxt["trait"].tolist()) <= {"A", "B"}

    def test_only_copies_existing_traits(self, rng):
        rule = UnbiasedCopy()
        previous = Population(20, fields={"trait": ["A"] * 20}).snapshot()

        assert rule.step(previous, rng).count("trait", "A") == 20

    @pytest.mark.slow
    def test_fixation_under_drift(self):
        """Small populations almost always end monomorphic."""
        runs = run_replicates(UnbiasedCopy(p0=0.5), n=100, t_max=1000, replicates=50, seed=1)
        finals = final_values(runs, "A")

        assert np.mean((finals == 0.0) | (finals == 1.0)) > 0.8

    @pytest.mark.slow
    def test_martingale_and_variance_shrinks_with_n(self):
        """Expected frequency stays at p0; spread across runs shrinks as N grows."""
        large = final_values(run_replicates(UnbiasedCopy(p0=0.5), 10000, 50, 20, seed=2), "A")
        small = final_values(run_replicates(UnbiasedCopy(p0=0.5), 100, 50, 20, seed=3), "A")

        assert abs(large.mean() - 0.5) < 0.05
        assert small.var() > 5 * large.var()


class TestMutation:
    """Unbiased and biased mutation without copying."""

    def test_unbiased_mutation_tends_to_half(self):
        runs = run_replicates(UnbiasedMutation(mu=0.05, p0=0.0), 1000, 200, 3, seed=4)

        assert abs(final_values(runs, "A").mean() - 0.5) < 0.05

    def test_biased_mutation_only_moves_towards_a(self):
        runs = run_replicates(BiasedMutation(mu_b=0.02, p0=0.0), 500, 100, 3, seed=5)

        for run in runs:
            freq = trajectory(run, "A")
            assert freq[0] == 0.0
            assert np.all(np.diff(freq) >= 0)
        assert final_values(runs, "A").mean() > 0.8

    def test_zero_rate_changes_nothing(self, binary_population, rng):
        previous = binary_population.snapshot()

        nxt = UnbiasedMutation(mu=0.0).step(previous, rng)

        assert np.array_equal(nxt["trait"], previous["trait"])


class TestDirectBias:
    """Direct bias towards A."""

    def test_equal_strengths_reproduce_unbiased_copy(self):
        """s_a == s_b is exactly unbiased transmission under the same seed."""
        biased = simulate(DirectBias(s_a=0.3, s_b=0.3, p0=0.4), 200, 100, RandomSource(8))
        unbiased = simulate(UnbiasedCopy(p0=0.4), 200, 100, RandomSource(8))

        assert biased == unbiased

    def test_rare_advantageous_trait_spreads(self):
        """N=1000, p0=0.01, s_a=0.1, s_b=0: A rises monotonically towards fixation."""
        runs = run_replicates(DirectBias(s_a=0.1, s_b=0.0, p0=0.01), 1000, 150, 5, seed=9)
        mean_trajectory = np.mean([trajectory(run, "A") for run in runs], axis=0)

        assert np.all(np.diff(mean_trajectory) >= 0)
        assert mean_trajectory[-1] > 0.95
        # Sigmoid: slow start, fast middle
        assert mean_trajectory[10] - mean_trajectory[0] < mean_trajectory[60] - mean_trajectory[50]

    def test_bias_against_a(self):
        runs = run_replicates(DirectBias(s_a=0.0, s_b=0.2, p0=0.5), 500, 100, 3, seed=10)

        assert final_values(runs, "A").mean() < 0.05


class TestConformistBias:
    """Conformist transmission among three demonstrators."""

    def test_adoption_probabilities(self):
        rule = ConformistBias(D=0.6)
        probs = rule.adoption_probability(np.array([0, 1, 2, 3]))

        assert probs == pytest.approx([0.0, 1 / 3 - 0.2, 2 / 3 + 0.2, 1.0])

    def test_no_conformity_is_linear(self):
        """D=0: P(adopt A) equals the share of A demonstrators."""
        probs = ConformistBias(D=0.0).adoption_probability(np.array([0, 1, 2, 3]))

        assert probs == pytest.approx([0.0, 1 / 3, 2 / 3, 1.0])

    def test_unanimous_triples_are_deterministic(self, rng):
        previous = Population(30, fields={"trait": ["B"] * 30}).snapshot()

        assert ConformistBias(D=0.0).step(previous, rng).count("trait", "B") == 30

    @pytest.mark.slow
    def test_majority_goes_to_fixation(self):
        """p0=0.55, D=1, N=1000, t=50: at least 90% of runs end at 1."""
        runs = run_replicates(ConformistBias(D=1.0, p0=0.55), 1000, 50, 20, seed=11)
        finals = final_values(runs, "A")

        assert np.mean(finals > 0.99) >= 0.9
        assert np.mean(finals > 0.99) > np.mean(finals < 0.01)


class TestDemonstratorBias:
    """Prestige-biased copying."""

    def test_status_assigned(self, rng):
        population = DemonstratorBias(p_s=0.2, p_low=0.0).initial_population(5000, rng)

        assert abs(population.count("status", "high") / 5000 - 0.2) < 0.03

    def test_only_high_status_copied_when_p_low_zero(self, rng):
        previous = Population(
            6,
            fields={
                "trait": ["A", "B", "B", "B", "B", "B"],
                "status": ["high", "low", "low", "low", "low", "low"],
            },
        ).snapshot()

        nxt = DemonstratorBias(p_s=0.2, p_low=0.0).step(previous, rng)

        assert nxt.count("trait", "A") == 6

    def test_no_valid_demonstrators_skips_copying(self, rng, caplog):
        """All weights zero: the generation carries over and the skip is recorded."""
        previous = Population(
            4, fields={"trait": ["A", "B", "A", "B"], "status": ["low"] * 4}
        ).snapshot()
        rule = DemonstratorBias(p_s=0.0, p_low=0.0)

        nxt = rule.step(previous, rng)
        again = rule.step(nxt.snapshot(), rng)

        assert nxt["trait"].tolist() == ["A", "B", "A", "B"]
        assert nxt.meta["skipped_transitions"] == 1
        assert again.meta["skipped_transitions"] == 2
        assert "No valid demonstrators" in caplog.text

    @pytest.mark.slow
    def test_more_high_status_agents_delay_fixation(self):
        """Fewer prestigious models means a smaller effective population."""
        few = run_replicates(DemonstratorBias(p_s=0.1, p_low=0.0), 100, 400, 20, seed=12)
        many = run_replicates(DemonstratorBias(p_s=0.5, p_low=0.0), 100, 400, 20, seed=13)

        few_times = [fixation_generation(run) for run in few]
        many_times = [fixation_generation(run) for run in many]

        assert np.nanmedian(few_times) < np.nanmedian(many_times)
