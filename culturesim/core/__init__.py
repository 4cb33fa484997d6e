"""Stochastic primitives and the agent population container."""

from __future__ import annotations

from culturesim.core.population import Population
from culturesim.core.random_source import RandomSource

__all__ = ["Population", "RandomSource"]
