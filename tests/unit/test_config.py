"""
Unit tests for algorithm settings.
"""

import pytest

from practice_engine.config import AlgorithmSettings, get_settings
from practice_engine.errors import ConfigurationError


class TestDefaults:
    def test_selection_weights(self):
        weights = AlgorithmSettings().get_selection_weights()
        assert weights == {
            "due": 0.25,
            "skill_match": 0.25,
            "difficulty": 0.15,
            "freshness": 0.20,
            "explore": 0.15,
        }
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_calibration_sequence(self):
        assert AlgorithmSettings().calibration_sequence == ["E", "M", "E", "M", "H"]

    def test_difficulty_elos(self):
        assert AlgorithmSettings().get_difficulty_elos() == {"E": 900, "M": 1100, "H": 1300}

    def test_cached(self):
        assert get_settings() is get_settings()


class TestValidation:
    def test_weights_must_sum_to_one(self):
        with pytest.raises(ConfigurationError):
            AlgorithmSettings(weight_due=0.5)

    def test_rebalanced_weights_accepted(self):
        settings = AlgorithmSettings(weight_due=0.35, weight_explore=0.05)
        assert settings.weight_due == pytest.approx(0.35)

    def test_ease_range(self):
        with pytest.raises(ConfigurationError):
            AlgorithmSettings(min_ease_factor=2.6)


class TestEnvironment:
    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PRACTICE_USER_K", "24")
        monkeypatch.setenv("PRACTICE_BUFFER_TARGET", "5")
        settings = AlgorithmSettings()
        assert settings.user_k == pytest.approx(24)
        assert settings.buffer_target == 5

    def test_env_list_override(self, monkeypatch):
        monkeypatch.setenv("PRACTICE_CALIBRATION_SEQUENCE", '["M", "M", "H"]')
        assert get_settings().calibration_sequence == ["M", "M", "H"]
