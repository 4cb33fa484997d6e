"""Tests for vertical and vertical-plus-horizontal transmission."""

from __future__ import annotations

import numpy as np
import pytest

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.errors import ConfigurationError
from culturesim.rules import VerticalPlusHorizontal, VerticalTransmission
from culturesim.rules.vertical import inherit_from_parents
from culturesim.simulation.runner import simulate
from tests.helpers import final_values, run_replicates


class TestInheritFromParents:
    """Two-parent inheritance."""

    def test_matching_parents_pass_on_their_trait(self, rng):
        previous = Population(10, fields={"trait": ["B"] * 10}).snapshot()

        offspring = inherit_from_parents(previous, rng, b=1.0)

        assert offspring.tolist() == ["B"] * 10

    def test_bias_one_favours_a(self):
        """b=1: p' = 1 - (1 - p)^2, so A sweeps quickly."""
        runs = run_replicates(VerticalTransmission(b=1.0, p0=0.1), 2000, 30, 3, seed=1)

        assert final_values(runs, "A").min() > 0.95

    def test_full_assortment_removes_bias(self):
        """a=1: both parents always agree, so b has no effect."""
        runs = run_replicates(VerticalTransmission(b=1.0, a=1.0, p0=0.3), 5000, 10, 3, seed=2)

        assert abs(final_values(runs, "A").mean() - 0.3) < 0.05


class TestVerticalPlusHorizontal:
    """Horizontal conversion after the vertical step."""

    def test_without_demonstrators_equals_vertical(self):
        """n_demonstrators=0 leaves only the vertical step, draw for draw."""
        combined = simulate(
            VerticalPlusHorizontal(b=0.6, g=0.5, n_demonstrators=0, p0=0.3),
            300,
            40,
            RandomSource(5),
        )
        vertical = simulate(VerticalTransmission(b=0.6, p0=0.3), 300, 40, RandomSource(5))

        assert combined == vertical

    def test_certain_conversion_sweeps(self):
        runs = run_replicates(
            VerticalPlusHorizontal(b=0.5, g=1.0, n_demonstrators=5, p0=0.2), 1000, 20, 3, seed=3
        )

        assert final_values(runs, "A").min() > 0.99

    def test_horizontal_step_only_converts_b_agents(self, rng):
        """No A agent ever becomes B during the horizontal step."""
        rule = VerticalPlusHorizontal(b=1.0, g=1.0, n_demonstrators=3)
        previous = Population(200, fields={"trait": ["A"] * 100 + ["B"] * 100}).snapshot()

        nxt = rule.step(previous, rng)

        # b=1 means the vertical step alone gives at least the A share of parents
        assert nxt.count("trait", "A") >= 100

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"b": 0.5, "g": 1.5, "n_demonstrators": 2},
            {"b": 0.5, "g": 0.5, "n_demonstrators": -1},
            {"b": 0.5, "g": 0.5, "n_demonstrators": 2.5},
            {"b": 0.5, "g": 0.5, "n_demonstrators": 2, "a": 1.1},
        ],
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ConfigurationError):
            VerticalPlusHorizontal(**kwargs)

    def test_conservation(self):
        summaries = simulate(
            VerticalPlusHorizontal(b=0.5, g=0.3, n_demonstrators=2), 77, 25, RandomSource(6)
        )

        for summary in summaries:
            assert sum(summary.frequencies.values()) == pytest.approx(1.0)
            assert all(0.0 <= v <= 1.0 for v in summary.frequencies.values())
        assert np.all([s.generation for s in summaries] == np.arange(1, 26))
