"""Global settings for culturesim experiments.

Uses Pydantic Settings for validation and environment variable support.
All settings can be overridden via CULTURESIM_* environment variables.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from culturesim.errors import ConfigurationError


class SimulationConfig(BaseSettings):
    """Process-wide defaults used when an experiment does not override them."""

    # Base seed; per-task seeds derive from (seed, cell, replicate)
    seed: int = Field(default=42, ge=0)

    # Worker pool
    workers: int = Field(default=1, ge=1)  # 1 = run tasks in-process
    fail_fast: bool = True

    # Logging
    log_level: str = "INFO"

    # Multi-trait innovation label space
    innovation_capacity: int | None = Field(default=None, ge=1)  # None = unbounded
    innovation_policy: Literal["suppress", "raise"] = "suppress"

    model_config = {"env_prefix": "CULTURESIM_"}


def load_settings(**overrides) -> SimulationConfig:
    """Build settings, reporting validation failures as ConfigurationError."""
    try:
        return SimulationConfig(**overrides)
    except ValidationError as err:
        raise ConfigurationError(f"Invalid settings: {err}") from err
