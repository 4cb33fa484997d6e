"""Experiment driver for replicated simulation studies.

Provides configuration, grid expansion, parallel execution, provenance, and
analysis tools for running one model over many parameter combinations with
replicates.
"""

from __future__ import annotations

from culturesim.experiments.analysis import ConditionSummary, ResultAnalyzer
from culturesim.experiments.config import ExperimentCell, ExperimentConfig
from culturesim.experiments.provenance import ExperimentProvenance, capture_provenance
from culturesim.experiments.runner import (
    ExperimentDriver,
    ExperimentResult,
    RunResult,
    RunTask,
    execute_task,
)

__all__ = [
    "ExperimentConfig",
    "ExperimentCell",
    "ExperimentDriver",
    "ExperimentResult",
    "RunResult",
    "RunTask",
    "execute_task",
    "ResultAnalyzer",
    "ConditionSummary",
    "ExperimentProvenance",
    "capture_provenance",
]
