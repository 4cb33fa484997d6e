"""Tests for global settings."""

from __future__ import annotations

import pytest

from culturesim.config import SimulationConfig, load_settings
from culturesim.errors import ConfigurationError


class TestSimulationConfig:
    """Tests for SimulationConfig defaults and environment overrides."""

    def test_defaults(self, settings):
        """Defaults run in-process, fail fast, with unbounded innovation."""
        assert settings.seed == 42
        assert settings.workers == 1
        assert settings.fail_fast is True
        assert settings.log_level == "INFO"
        assert settings.innovation_capacity is None
        assert settings.innovation_policy == "suppress"

    def test_environment_overrides(self, settings, monkeypatch):
        """CULTURESIM_* variables override the defaults."""
        monkeypatch.setenv("CULTURESIM_SEED", "7")
        monkeypatch.setenv("CULTURESIM_WORKERS", "3")
        monkeypatch.setenv("CULTURESIM_INNOVATION_POLICY", "raise")

        loaded = load_settings()

        assert loaded.seed == 7
        assert loaded.workers == 3
        assert loaded.innovation_policy == "raise"

    def test_keyword_overrides(self, settings):
        loaded = load_settings(seed=3, innovation_capacity=50)

        assert loaded.seed == 3
        assert loaded.innovation_capacity == 50


class TestLoadSettingsValidation:
    """Invalid settings surface as ConfigurationError."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"seed": -1},
            {"workers": 0},
            {"innovation_capacity": 0},
            {"innovation_policy": "ignore"},
        ],
    )
    def test_invalid_values_rejected(self, settings, overrides):
        with pytest.raises(ConfigurationError):
            load_settings(**overrides)
