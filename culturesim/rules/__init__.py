"""Update rules: one model of cultural change per module.

Importing this package registers every built-in rule with RuleRegistry:
- transmission: unbiased copying, mutation, direct/conformist/demonstrator bias
- vertical: parent-to-offspring transmission, optionally followed by peers
- innovation: open trait alphabets and the openness/conservatism model
- learning: individual, social, and critical learning strategies
- demography: population size and cumulative skill
- migration: cluster-structured transmission with migration
"""

from __future__ import annotations

from culturesim.rules.base import RuleRegistry, UpdateRule
from culturesim.rules.demography import DemographySkill
from culturesim.rules.innovation import MultiTraitInnovation, OpennessConservatism
from culturesim.rules.learning import CriticalLearner
from culturesim.rules.migration import GroupStructuredMigration
from culturesim.rules.transmission import (
    BiasedMutation,
    ConformistBias,
    DemonstratorBias,
    DirectBias,
    UnbiasedCopy,
    UnbiasedMutation,
)
from culturesim.rules.vertical import VerticalPlusHorizontal, VerticalTransmission

__all__ = [
    "RuleRegistry",
    "UpdateRule",
    "UnbiasedCopy",
    "UnbiasedMutation",
    "BiasedMutation",
    "DirectBias",
    "ConformistBias",
    "DemonstratorBias",
    "VerticalTransmission",
    "VerticalPlusHorizontal",
    "MultiTraitInnovation",
    "OpennessConservatism",
    "CriticalLearner",
    "DemographySkill",
    "GroupStructuredMigration",
]
