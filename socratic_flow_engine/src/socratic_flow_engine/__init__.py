"""Adaptive question-pattern selection and dialogue flow orchestration."""

from socratic_flow_engine.config import EngineConfig, ScoringConfig, ScoringWeights
from socratic_flow_engine.effectiveness_learner import EffectivenessLearner, EffectivenessRecord
from socratic_flow_engine.engine import DialogueEngine
from socratic_flow_engine.errors import (
    ConfigurationError,
    DialogueEngineError,
    ErrorType,
    NoEligiblePatternsError,
    UnknownPatternError,
)
from socratic_flow_engine.flow_manager import DialogueFlowManager
from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    FlowPhase,
    PatternOutcome,
    PatternType,
    ProjectPhase,
    SelectionConstraints,
    SelectionContext,
)
from socratic_flow_engine.pattern_catalog import PatternCatalog, QuestionPattern
from socratic_flow_engine.question_selector import QuestionSelector
from socratic_flow_engine.session_manager import SessionManager
from socratic_flow_engine.session_state import DialogueSessionState, DialogueTurn, RecentPatternLog

__all__ = [
    "ConfigurationError",
    "ContextCategory",
    "DialogueEngine",
    "DialogueEngineError",
    "DialogueFlowManager",
    "DialogueSessionState",
    "DialogueTurn",
    "EffectivenessLearner",
    "EffectivenessRecord",
    "EngineConfig",
    "ErrorType",
    "ExpertiseLevel",
    "FlowPhase",
    "NoEligiblePatternsError",
    "PatternCatalog",
    "PatternOutcome",
    "PatternType",
    "ProjectPhase",
    "QuestionPattern",
    "QuestionSelector",
    "RecentPatternLog",
    "ScoringConfig",
    "ScoringWeights",
    "SelectionConstraints",
    "SelectionContext",
    "SessionManager",
    "UnknownPatternError",
]
