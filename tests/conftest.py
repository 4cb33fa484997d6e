"""Shared test fixtures for the culturesim test suite."""

from __future__ import annotations

import pytest

from culturesim.config import SimulationConfig
from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource
from culturesim.rules.base import BINARY_TRAITS


@pytest.fixture
def rng() -> RandomSource:
    """Random stream with a fixed seed."""
    return RandomSource(42)


@pytest.fixture
def settings(monkeypatch) -> SimulationConfig:
    """Default settings, isolated from CULTURESIM_* variables in the environment."""
    for name in ("SEED", "WORKERS", "FAIL_FAST", "LOG_LEVEL", "INNOVATION_CAPACITY",
                 "INNOVATION_POLICY"):
        monkeypatch.delenv(f"CULTURESIM_{name}", raising=False)
    return SimulationConfig()


@pytest.fixture
def binary_population(rng: RandomSource) -> Population:
    """100 agents, roughly half A and half B."""
    return Population(100).fill_uniform("trait", BINARY_TRAITS, rng)


@pytest.fixture
def mixed_population() -> Population:
    """Ten agents with every kind of field, laid out deterministically."""
    return Population(
        10,
        fields={
            "trait": ["A", "A", "A", "B", "B", "B", "B", "B", "B", "B"],
            "P": [0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9],
            "status": ["high"] * 2 + ["low"] * 8,
            "cluster": [1, 1, 1, 1, 1, 2, 2, 2, 2, 2],
        },
    )
