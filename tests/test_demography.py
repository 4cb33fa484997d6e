"""Tests for the demography and cumulative skill model."""

from __future__ import annotations

import numpy as np
import pytest

from culturesim.core.random_source import RandomSource
from culturesim.errors import ConfigurationError
from culturesim.rules import DemographySkill
from culturesim.simulation.runner import simulate
from tests.helpers import run_replicates, trajectory


class TestDemographySkill:
    """Skill redrawn each generation from a Gumbel below the previous best."""

    def test_initial_skill(self, rng):
        population = DemographySkill(alpha=2.0, beta=1.0, z0=3.5).initial_population(10, rng)

        assert population["skill"].tolist() == [3.5] * 10
        assert population.meta["previous_mean_skill"] == 3.5

    def test_first_generation_has_no_change(self):
        summaries = simulate(DemographySkill(alpha=2.0, beta=1.0), 50, 5, RandomSource(1))

        assert summaries[0].statistics == {"mean_skill": 0.0, "delta_mean_skill": 0.0}

    def test_delta_tracks_previous_mean(self):
        summaries = simulate(DemographySkill(alpha=2.0, beta=1.0), 50, 10, RandomSource(2))
        means = trajectory(summaries, "mean_skill")
        deltas = trajectory(summaries, "delta_mean_skill")

        assert deltas[1:] == pytest.approx(np.diff(means))

    def test_large_populations_accumulate_skill(self):
        """Max of N Gumbel draws gains about beta*ln(N): above the loss alpha for large N."""
        small = run_replicates(DemographySkill(alpha=7.0, beta=1.0), 100, 30, 3, seed=3)
        large = run_replicates(DemographySkill(alpha=7.0, beta=1.0), 5000, 30, 3, seed=4)

        small_delta = np.mean([trajectory(run, "delta_mean_skill")[5:].mean() for run in small])
        large_delta = np.mean([trajectory(run, "delta_mean_skill")[5:].mean() for run in large])

        assert small_delta < 0
        assert large_delta > 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"alpha": 1.0, "beta": 0.0},
            {"alpha": 1.0, "beta": -2.0},
            {"alpha": "high", "beta": 1.0},
            {"alpha": 1.0, "beta": 1.0, "z0": float("nan")},
        ],
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ConfigurationError):
            DemographySkill(**kwargs)
