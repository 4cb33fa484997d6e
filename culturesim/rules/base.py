"""Update rule interface, parameter validation, and the rule registry.

An update rule is one model of cultural change. It builds the initial
population for a run and maps the previous generation (a frozen snapshot)
to a freshly constructed next generation. Rules hold only their parameters;
anything that has to persist across generations is stored in the
population's ``meta`` mapping.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np

from culturesim.errors import ConfigurationError

if TYPE_CHECKING:
    from culturesim.core.population import Population
    from culturesim.core.random_source import RandomSource
    from culturesim.simulation.aggregators import Aggregator

logger = logging.getLogger(__name__)

# Binary trait alphabet used by the two-variant models
TRAIT_A = "A"
TRAIT_B = "B"
BINARY_TRAITS = (TRAIT_A, TRAIT_B)

REAL_TYPES = (int, float, np.integer, np.floating)


def check_probability(name: str, value: Any) -> float:
    """Return ``value`` as a float in [0, 1] or raise ConfigurationError."""
    if isinstance(value, bool) or not isinstance(value, REAL_TYPES):
        raise ConfigurationError(f"{name} must be a number in [0, 1], got {value!r}")
    value = float(value)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
    return value


def check_positive_int(name: str, value: Any, minimum: int = 1) -> int:
    """Return ``value`` as an int >= ``minimum`` or raise ConfigurationError."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{name} must be an integer >= {minimum}, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def check_real(name: str, value: Any, positive: bool = False) -> float:
    if isinstance(value, bool) or not isinstance(value, REAL_TYPES) or math.isnan(value):
        raise ConfigurationError(f"{name} must be a real number, got {value!r}")
    if positive and value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return float(value)


class UpdateRule(ABC):
    """One generation-to-generation transition model."""

    name: ClassVar[str] = ""

    # Rule kwarg -> SimulationConfig attribute supplying its default
    settings_defaults: ClassVar[dict[str, str]] = {}

    @abstractmethod
    def initial_population(self, n: int, rng: RandomSource) -> Population:
        """Build generation 1."""

    @abstractmethod
    def step(self, previous: Population, rng: RandomSource) -> Population:
        """Build the next generation from a frozen snapshot of the previous one."""

    @abstractmethod
    def default_aggregator(self) -> Aggregator:
        """Summary used when an experiment does not name one."""

    def parameters(self) -> dict[str, Any]:
        """The rule's validated parameters."""
        return {key.lstrip("_"): value for key, value in vars(self).items()}

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.parameters().items())
        return f"{type(self).__name__}({params})"


class RuleRegistry:
    """Name -> UpdateRule class lookup used by the experiment driver.

    Class-level registry; rule modules register themselves on import.
    """

    _rules: dict[str, type[UpdateRule]] = {}

    @classmethod
    def register(cls, name: str):
        """Decorator to register an UpdateRule subclass under ``name``.

        Usage:
            @RuleRegistry.register("my_rule")
            class MyRule(UpdateRule): ...
        """

        def decorator(rule_cls: type[UpdateRule]) -> type[UpdateRule]:
            if name in cls._rules:
                logger.warning(f"Rule '{name}' already registered, overriding")
            rule_cls.name = name
            cls._rules[name] = rule_cls
            logger.debug(f"Registered rule: {name}")
            return rule_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> type[UpdateRule]:
        if name not in cls._rules:
            known = ", ".join(sorted(cls._rules))
            raise ConfigurationError(f"Unknown model '{name}'. Known models: {known}")
        return cls._rules[name]

    @classmethod
    def create(cls, name: str, **params: Any) -> UpdateRule:
        """Instantiate a registered rule, reporting bad kwargs as ConfigurationError."""
        rule_cls = cls.get(name)
        try:
            return rule_cls(**params)
        except TypeError as err:
            raise ConfigurationError(f"Bad parameters for model '{name}': {err}") from err

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._rules)

    @classmethod
    def describe(cls) -> dict[str, str]:
        """Model name -> first line of its docstring."""
        return {
            name: (rule_cls.__doc__ or "").strip().splitlines()[0] if rule_cls.__doc__ else ""
            for name, rule_cls in sorted(cls._rules.items())
        }
