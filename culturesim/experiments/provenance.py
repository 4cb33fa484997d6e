"""Experiment provenance tracking for reproducible research."""

from __future__ import annotations

import hashlib
import json
import platform
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from importlib import metadata

import culturesim

TRACKED_DEPENDENCIES = ("numpy", "pandas", "pydantic", "pydantic-settings", "PyYAML")


@dataclass
class ExperimentProvenance:
    """Everything needed to reproduce this experiment."""

    experiment_id: str  # UUID
    timestamp: str  # ISO 8601
    python_version: str  # e.g., "3.12.1"
    platform_info: str  # e.g., "Linux-6.1-x86_64"
    culturesim_version: str
    config_hash: str  # SHA256 of the resolved config
    config_resolved: dict  # Full resolved config (after settings defaults)
    base_seed: int  # Per-task streams derive from (base_seed, cell, replicate)
    task_count: int
    duration_seconds: float  # Total wall time
    dependencies: dict  # Installed versions of key deps

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ExperimentProvenance:
        """Create from dictionary."""
        return cls(**data)


def capture_provenance(
    experiment_id: str,
    config_resolved: dict,
    base_seed: int,
    task_count: int,
    duration_seconds: float = 0.0,
) -> ExperimentProvenance:
    """Capture full provenance for current experiment.

    Args:
        experiment_id: Unique identifier for this experiment
        config_resolved: Full resolved configuration dictionary
        base_seed: Seed every task stream was derived from
        task_count: Number of (cell, replicate) tasks scheduled
        duration_seconds: Total wall time for experiment

    Returns:
        ExperimentProvenance object with all captured metadata
    """
    return ExperimentProvenance(
        experiment_id=experiment_id,
        timestamp=datetime.now(UTC).isoformat(),
        python_version=platform.python_version(),
        platform_info=platform.platform(),
        culturesim_version=culturesim.__version__,
        config_hash=hash_config(config_resolved),
        config_resolved=config_resolved,
        base_seed=base_seed,
        task_count=task_count,
        duration_seconds=duration_seconds,
        dependencies=_get_dependency_versions(),
    )


def hash_config(config: dict) -> str:
    """SHA256 of a config dict, independent of key order."""
    canonical = json.dumps(config, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _get_dependency_versions() -> dict:
    """Get installed versions of key dependencies.

    Returns:
        Dictionary mapping distribution name to version string
    """
    deps = {}
    for dist in TRACKED_DEPENDENCIES:
        try:
            deps[dist] = metadata.version(dist)
        except metadata.PackageNotFoundError:
            deps[dist] = "not_installed"
    return deps
