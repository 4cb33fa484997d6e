"""Experiment configuration with YAML support and parameter-grid expansion."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import yaml

from culturesim.errors import ConfigurationError

# Grid keys that set the run shape rather than a rule parameter
RUN_SHAPE_KEYS = ("n",)


@dataclass(frozen=True)
class ExperimentCell:
    """One point of the parameter grid: a fully resolved model configuration."""

    index: int
    name: str
    n: int
    parameters: dict[str, Any]
    swept: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExperimentConfig:
    """Configuration for replicated runs of one model over a parameter grid.

    ``parameters`` holds the model's keyword arguments shared by every cell;
    ``grid`` maps parameter names to lists of values whose cartesian product
    defines the cells. ``n`` may be swept like any other parameter.
    """

    name: str
    model: str
    n: int
    t_max: int
    description: str = ""
    replicates: int = 1
    seed: int | None = None
    parameters: dict[str, Any] = field(default_factory=dict)
    grid: dict[str, list[Any]] = field(default_factory=dict)
    aggregator: str | None = None
    aggregator_params: dict[str, Any] = field(default_factory=dict)
    workers: int | None = None
    fail_fast: bool | None = None

    def __post_init__(self):
        for name in ("n", "t_max", "replicates"):
            setattr(self, name, _check_int(name, getattr(self, name), minimum=1))
        if self.seed is not None:
            self.seed = _check_int("seed", self.seed, minimum=0)
        if self.workers is not None:
            self.workers = _check_int("workers", self.workers, minimum=1)
        for name in ("parameters", "grid", "aggregator_params"):
            value = getattr(self, name)
            if not isinstance(value, dict):
                raise ConfigurationError(f"{name} must be a mapping, got {value!r}")
        for key, values in self.grid.items():
            if not isinstance(values, list) or not values:
                raise ConfigurationError(f"Grid entry '{key}' must be a non-empty list")
            if key in self.parameters:
                raise ConfigurationError(f"'{key}' is set both in parameters and in grid")

    @classmethod
    def from_yaml(cls, path: str) -> ExperimentConfig:
        """Load experiment config from YAML file.

        Args:
            path: Path to YAML file

        Returns:
            ExperimentConfig instance

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If the file is not a valid experiment description
        """
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as err:
                raise ConfigurationError(f"Invalid YAML in {path}: {err}") from err

        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping at the top level")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> ExperimentConfig:
        """Build ExperimentConfig from dictionary.

        Args:
            data: Dict with experiment configuration

        Returns:
            ExperimentConfig instance
        """
        missing = [key for key in ("name", "model", "n", "t_max") if key not in data]
        if missing:
            raise ConfigurationError(f"Experiment config is missing {missing}")
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown experiment config keys: {unknown}")

        parameters = _mapping(data, "parameters")
        grid = _mapping(data, "grid")
        for key, values in grid.items():
            if not isinstance(values, list):
                raise ConfigurationError(
                    f"Grid entry '{key}' must be a list of values, got {values!r}"
                )

        return cls(
            name=data["name"],
            description=data.get("description", ""),
            model=data["model"],
            n=data["n"],
            t_max=data["t_max"],
            replicates=data.get("replicates", 1),
            seed=data.get("seed"),
            parameters=dict(parameters),
            grid={key: list(values) for key, values in grid.items()},
            aggregator=data.get("aggregator"),
            aggregator_params=dict(_mapping(data, "aggregator_params")),
            workers=data.get("workers"),
            fail_fast=data.get("fail_fast"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "model": self.model,
            "n": self.n,
            "t_max": self.t_max,
            "replicates": self.replicates,
            "seed": self.seed,
            "parameters": dict(self.parameters),
            "grid": {key: list(values) for key, values in self.grid.items()},
            "aggregator": self.aggregator,
            "aggregator_params": dict(self.aggregator_params),
            "workers": self.workers,
            "fail_fast": self.fail_fast,
        }

    def expand_cells(self) -> list[ExperimentCell]:
        """Expand the grid into its cartesian product of cells.

        Without a grid there is exactly one cell, named after the model.
        Cell indices follow the grid's key order with the last key varying
        fastest.

        Returns:
            One ExperimentCell per grid combination
        """
        if not self.grid:
            return [ExperimentCell(0, self.model, self.n, dict(self.parameters))]

        keys = list(self.grid)
        cells = []
        for index, values in enumerate(itertools.product(*(self.grid[k] for k in keys))):
            swept = dict(zip(keys, values))
            parameters = dict(self.parameters)
            n = self.n
            for key, value in swept.items():
                if key in RUN_SHAPE_KEYS:
                    n = value
                else:
                    parameters[key] = value
            n = _check_int("Grid value n", n, minimum=1)
            name = ",".join(f"{key}={value}" for key, value in swept.items())
            cells.append(ExperimentCell(index, name, n, parameters, swept))
        return cells


def _check_int(name: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < minimum:
        raise ConfigurationError(f"{name} must be an integer >= {minimum}, got {value!r}")
    return int(value)


def _mapping(data: dict, key: str) -> dict:
    """Optional mapping section of an experiment file; absent or null means empty."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be a mapping, got {value!r}")
    return value
