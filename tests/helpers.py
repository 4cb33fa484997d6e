"""Shared helpers for running many replicates in statistical tests."""

from __future__ import annotations

import numpy as np

from culturesim.core.random_source import RandomSource
from culturesim.rules.base import UpdateRule
from culturesim.simulation.aggregators import Aggregator, Summary
from culturesim.simulation.runner import simulate


def run_replicates(
    rule: UpdateRule,
    n: int,
    t_max: int,
    replicates: int,
    seed: int = 0,
    aggregator: Aggregator | None = None,
) -> list[list[Summary]]:
    """Run ``replicates`` independent simulations with per-replicate streams."""
    return [
        simulate(rule, n, t_max, RandomSource.for_task(seed, 0, r), aggregator)
        for r in range(replicates)
    ]


def trajectory(summaries: list[Summary], category: str) -> np.ndarray:
    """Values of one category across generations."""
    return np.array([s.values()[category] for s in summaries])


def final_values(runs: list[list[Summary]], category: str) -> np.ndarray:
    """Last-generation value of ``category`` in each run."""
    return np.array([run[-1].values()[category] for run in runs])


def fixation_generation(summaries: list[Summary], category: str = "A") -> float:
    """First generation at which the category hit 0 or 1, NaN if it never did."""
    for summary in summaries:
        value = summary.values()[category]
        if value in (0.0, 1.0):
            return float(summary.generation)
    return float("nan")
