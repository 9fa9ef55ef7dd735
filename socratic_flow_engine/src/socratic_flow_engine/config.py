"""
Engine Configuration

Scoring weights, learning rate, per-phase turn limits and transition policy.
Values come from the environment (a .env file is honoured) and fall back to
the defaults below.
"""

import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from socratic_flow_engine.errors import ConfigurationError
from socratic_flow_engine.models import FlowPhase, PatternType
from socratic_flow_engine.tables import DEFAULT_MAX_TURNS

load_dotenv()


@dataclass(frozen=True)
class ScoringWeights:
    """Weight per scoring factor. A zero weight disables the factor."""
    context_relevance: float = 0.30
    expertise_match: float = 0.20
    flow_appropriateness: float = 0.25
    freshness: float = 0.10
    effectiveness: float = 0.10
    strategic_value: float = 0.05

    def as_dict(self):
        return {
            "context_relevance": self.context_relevance,
            "expertise_match": self.expertise_match,
            "flow_appropriateness": self.flow_appropriateness,
            "freshness": self.freshness,
            "effectiveness": self.effectiveness,
            "strategic_value": self.strategic_value,
        }


# Selection-time weighting: effectiveness counts more, strategic value is dropped
SELECTION_WEIGHTS = ScoringWeights(
    context_relevance=0.30,
    expertise_match=0.20,
    flow_appropriateness=0.25,
    freshness=0.10,
    effectiveness=0.15,
    strategic_value=0.0,
)


@dataclass(frozen=True)
class ScoringConfig:
    """
    Parameters of the multi-factor scoring function.

    Attributes:
        weights: Factor weights for the total score
        expertise_tolerance: Tier distance still considered a good match
        novelty_importance: 0-1, blend between raw freshness and neutral 0.5
        freshness_decay: Freshness lost per recent use of the pattern
        strategic_bonuses: Extra strategic value per pattern
        preference_bonus: Added to the total when the caller prefers the pattern
    """
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    expertise_tolerance: int = 1
    novelty_importance: float = 1.0
    freshness_decay: float = 0.2
    strategic_bonuses: Mapping[PatternType, float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    preference_bonus: float = 0.0

    @classmethod
    def for_selection(cls) -> "ScoringConfig":
        """Profile used by the selection engine."""
        return cls(weights=SELECTION_WEIGHTS, freshness_decay=0.3, preference_bonus=0.2)


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration."""
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    selection: ScoringConfig = field(default_factory=ScoringConfig.for_selection)
    learning_rate: float = 0.2
    recent_pattern_limit: int = 10
    require_fresh_window: int = 3
    max_turns_in_phase: Mapping[FlowPhase, int] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_MAX_TURNS))
    )
    allow_back_transitions: bool = True
    max_session_turns: int = 50

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables."""
        scoring_weights = _weights_from_env("SCORING_WEIGHT", ScoringWeights())
        selection_weights = _weights_from_env("SELECTION_WEIGHT", SELECTION_WEIGHTS)
        tolerance = _env_int("EXPERTISE_TOLERANCE", 1)
        novelty_importance = _env_float("NOVELTY_IMPORTANCE", 1.0)
        strategic_bonuses = _parse_strategic_bonuses(os.getenv("STRATEGIC_PATTERN_BONUSES", ""))

        scoring = ScoringConfig(
            weights=scoring_weights,
            expertise_tolerance=tolerance,
            novelty_importance=novelty_importance,
            freshness_decay=_env_float("NOVELTY_DECAY", 0.2),
            strategic_bonuses=strategic_bonuses,
        )
        selection = replace(
            ScoringConfig.for_selection(),
            weights=selection_weights,
            expertise_tolerance=tolerance,
            novelty_importance=novelty_importance,
            freshness_decay=_env_float("FRESHNESS_DECAY", 0.3),
            preference_bonus=_env_float("PREFERENCE_BONUS", 0.2),
            strategic_bonuses=strategic_bonuses,
        )

        max_turns = MappingProxyType({
            phase: _env_int(f"MAX_TURNS_{phase.name}", DEFAULT_MAX_TURNS[phase])
            for phase in FlowPhase
        })

        config = cls(
            scoring=scoring,
            selection=selection,
            learning_rate=_env_float("EFFECTIVENESS_LEARNING_RATE", 0.2),
            recent_pattern_limit=_env_int("RECENT_PATTERN_LIMIT", 10),
            require_fresh_window=_env_int("REQUIRE_FRESH_WINDOW", 3),
            max_turns_in_phase=max_turns,
            allow_back_transitions=os.getenv("ALLOW_BACK_TRANSITIONS", "true").lower() == "true",
            max_session_turns=_env_int("SESSION_MAX_TURNS", 50),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigurationError listing every invalid value."""
        errors: List[str] = []

        for label, profile in (("SCORING", self.scoring), ("SELECTION", self.selection)):
            for name, weight in profile.weights.as_dict().items():
                if weight < 0:
                    errors.append(f"{label}_WEIGHT_{name.upper()} must not be negative")
            if profile.expertise_tolerance < 0:
                errors.append("EXPERTISE_TOLERANCE must not be negative")
            if not 0.0 <= profile.novelty_importance <= 1.0:
                errors.append("NOVELTY_IMPORTANCE must be between 0 and 1")
            if profile.freshness_decay < 0:
                errors.append(f"{label} freshness decay must not be negative")

        if not 0.0 < self.learning_rate <= 1.0:
            errors.append("EFFECTIVENESS_LEARNING_RATE must be in (0, 1]")
        if self.recent_pattern_limit < 1:
            errors.append("RECENT_PATTERN_LIMIT must be at least 1")
        if self.require_fresh_window < 0:
            errors.append("REQUIRE_FRESH_WINDOW must not be negative")
        if self.max_session_turns < 1 or self.max_session_turns > 1000:
            errors.append("SESSION_MAX_TURNS must be between 1 and 1000")

        for phase in FlowPhase:
            turns = self.max_turns_in_phase.get(phase)
            if turns is None or turns < 1 or turns > 50:
                errors.append(f"MAX_TURNS_{phase.name} must be between 1 and 50")

        if errors:
            raise ConfigurationError(errors)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError([f"{name} must be a number (got {raw!r})"])


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError([f"{name} must be an integer (got {raw!r})"])


def _weights_from_env(prefix: str, defaults: ScoringWeights) -> ScoringWeights:
    return ScoringWeights(**{
        name: _env_float(f"{prefix}_{name.upper()}", value)
        for name, value in defaults.as_dict().items()
    })


def _parse_strategic_bonuses(raw: Optional[str]) -> Mapping[PatternType, float]:
    """Parse "definition_seeking:0.1,impact_analysis:0.05"."""
    bonuses = {}
    for item in (raw or "").split(","):
        item = item.strip()
        if not item:
            continue
        name, _, value = item.partition(":")
        try:
            bonuses[PatternType(name.strip())] = float(value)
        except ValueError:
            raise ConfigurationError([f"STRATEGIC_PATTERN_BONUSES has an invalid entry: {item!r}"])
    return MappingProxyType(bonuses)
