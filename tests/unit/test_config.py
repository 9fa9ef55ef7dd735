"""
Unit Tests for Engine Configuration
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "socratic_flow_engine", "src"))

from socratic_flow_engine.config import EngineConfig, ScoringConfig, ScoringWeights
from socratic_flow_engine.engine import DialogueEngine
from socratic_flow_engine.errors import ConfigurationError, ErrorType
from socratic_flow_engine.models import FlowPhase, PatternType


class TestEngineConfig:
    """Test suite for EngineConfig."""

    def test_defaults_are_valid(self):
        config = EngineConfig()
        config.validate()

        assert config.learning_rate == 0.2
        assert config.recent_pattern_limit == 10
        assert config.allow_back_transitions is True
        assert config.max_turns_in_phase[FlowPhase.EXPLORING] == 12
        assert config.selection.weights.effectiveness == 0.15
        assert config.selection.weights.strategic_value == 0.0
        assert config.selection.freshness_decay == 0.3

    def test_default_weights_sum_to_one(self):
        assert sum(ScoringWeights().as_dict().values()) == pytest.approx(1.0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EFFECTIVENESS_LEARNING_RATE", "0.5")
        monkeypatch.setenv("EXPERTISE_TOLERANCE", "2")
        monkeypatch.setenv("MAX_TURNS_DEEPENING", "4")
        monkeypatch.setenv("ALLOW_BACK_TRANSITIONS", "false")
        monkeypatch.setenv("STRATEGIC_PATTERN_BONUSES", "definition_seeking:0.1, impact_analysis:0.05")

        config = EngineConfig.from_env()

        assert config.learning_rate == 0.5
        assert config.scoring.expertise_tolerance == 2
        assert config.selection.expertise_tolerance == 2
        assert config.max_turns_in_phase[FlowPhase.DEEPENING] == 4
        assert config.max_turns_in_phase[FlowPhase.EXPLORING] == 12
        assert config.allow_back_transitions is False
        assert config.scoring.strategic_bonuses[PatternType.DEFINITION_SEEKING] == 0.1
        assert config.selection.strategic_bonuses[PatternType.IMPACT_ANALYSIS] == 0.05

    def test_novelty_importance_reaches_selection(self, monkeypatch):
        monkeypatch.setenv("NOVELTY_IMPORTANCE", "0.0")
        config = EngineConfig.from_env()

        assert config.scoring.novelty_importance == 0.0
        assert config.selection.novelty_importance == 0.0

        engine = DialogueEngine(config)
        used = [PatternType.DEFINITION_SEEKING] * 2
        # Zero importance blends freshness fully toward neutral
        assert engine.selector.scorer.calculate_freshness(PatternType.DEFINITION_SEEKING, used) == pytest.approx(0.5)

    def test_empty_env_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("RECENT_PATTERN_LIMIT", "")
        assert EngineConfig.from_env().recent_pattern_limit == 10

    def test_non_numeric_env_value(self, monkeypatch):
        monkeypatch.setenv("NOVELTY_IMPORTANCE", "high")
        with pytest.raises(ConfigurationError) as exc_info:
            EngineConfig.from_env()
        assert "NOVELTY_IMPORTANCE" in str(exc_info.value)

    def test_unknown_strategic_pattern(self, monkeypatch):
        monkeypatch.setenv("STRATEGIC_PATTERN_BONUSES", "made_up_pattern:0.1")
        with pytest.raises(ConfigurationError):
            EngineConfig.from_env()

    def test_validate_collects_every_error(self):
        config = EngineConfig(
            scoring=ScoringConfig(weights=ScoringWeights(context_relevance=-1.0), novelty_importance=2.0),
            learning_rate=0.0,
            recent_pattern_limit=0,
            max_turns_in_phase={phase: 0 for phase in FlowPhase},
        )
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()

        error = exc_info.value
        assert error.error_type == ErrorType.VALIDATION_ERROR
        assert any("CONTEXT_RELEVANCE" in message for message in error.errors)
        assert any("NOVELTY_IMPORTANCE" in message for message in error.errors)
        assert any("LEARNING_RATE" in message for message in error.errors)
        assert any("RECENT_PATTERN_LIMIT" in message for message in error.errors)
        assert sum("MAX_TURNS_" in message for message in error.errors) == len(FlowPhase)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
