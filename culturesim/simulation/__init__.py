"""Generation loop and per-generation summaries."""

from __future__ import annotations

from culturesim.simulation.aggregators import (
    AGGREGATORS,
    Aggregator,
    ClusterSummary,
    FrequencySummary,
    ScalarSummary,
    StrategySummary,
    Summary,
    create_aggregator,
)
from culturesim.simulation.runner import SimulationRunner, simulate

__all__ = [
    "AGGREGATORS",
    "Aggregator",
    "Summary",
    "FrequencySummary",
    "ScalarSummary",
    "StrategySummary",
    "ClusterSummary",
    "create_aggregator",
    "SimulationRunner",
    "simulate",
]
