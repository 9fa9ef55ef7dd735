"""
Dialogue Engine Data Model

Enumerations and the transient value objects exchanged between the
selection engine, the effectiveness learner and the flow manager.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class PatternType(Enum):
    """The ten question patterns."""
    DEFINITION_SEEKING = "definition_seeking"
    ASSUMPTION_EXCAVATION = "assumption_excavation"
    CONSISTENCY_TESTING = "consistency_testing"
    CONCRETE_INSTANTIATION = "concrete_instantiation"
    NECESSITY_TESTING = "necessity_testing"
    CONCEPTUAL_CLARITY = "conceptual_clarity"
    EPISTEMIC_HUMILITY = "epistemic_humility"
    SOLUTION_SPACE_MAPPING = "solution_space_mapping"
    IMPACT_ANALYSIS = "impact_analysis"
    VALUE_CLARIFICATION = "value_clarification"


class ContextCategory(Enum):
    """Problem domain the dialogue is about."""
    PROJECT_INCEPTION = "project_inception"
    ARCHITECTURE_REVIEW = "architecture_review"
    REQUIREMENTS_REFINEMENT = "requirements_refinement"
    IMPLEMENTATION_PLANNING = "implementation_planning"
    CODE_REVIEW = "code_review"
    GENERAL = "general"


class ExpertiseLevel(Enum):
    """User expertise tier, ordered beginner < intermediate < advanced < expert."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class ProjectPhase(Enum):
    """Phase of the project being discussed."""
    PLANNING = "planning"
    DESIGN = "design"
    IMPLEMENTATION = "implementation"
    TESTING = "testing"
    REVIEW = "review"
    MAINTENANCE = "maintenance"


class FlowPhase(Enum):
    """Conversational phase of the dialogue."""
    EXPLORING = "exploring"
    DEEPENING = "deepening"
    CLARIFYING = "clarifying"
    SYNTHESIZING = "synthesizing"
    CONCLUDING = "concluding"


EXPERTISE_ORDER: Tuple[ExpertiseLevel, ...] = (
    ExpertiseLevel.BEGINNER,
    ExpertiseLevel.INTERMEDIATE,
    ExpertiseLevel.ADVANCED,
    ExpertiseLevel.EXPERT,
)

PHASE_ORDER: Tuple[FlowPhase, ...] = (
    FlowPhase.EXPLORING,
    FlowPhase.DEEPENING,
    FlowPhase.CLARIFYING,
    FlowPhase.SYNTHESIZING,
    FlowPhase.CONCLUDING,
)


def expertise_rank(level: ExpertiseLevel) -> int:
    """Ordinal position of an expertise tier (beginner = 0)."""
    return EXPERTISE_ORDER.index(level)


def phase_rank(phase: FlowPhase) -> int:
    """Ordinal position of a phase in the canonical progression."""
    return PHASE_ORDER.index(phase)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a score into [low, high]."""
    return max(low, min(high, value))


@dataclass(frozen=True)
class SelectionContext:
    """
    Snapshot of the dialogue used to pick the next question.

    Rebuilt from session state on every turn and never mutated.
    """
    session_id: str
    category: ContextCategory = ContextCategory.GENERAL
    user_expertise: ExpertiseLevel = ExpertiseLevel.INTERMEDIATE
    current_depth: int = 0
    turn_count: int = 0
    conversation_flow: FlowPhase = FlowPhase.EXPLORING
    extracted_concepts: Tuple[str, ...] = ()
    detected_assumptions: Tuple[str, ...] = ()
    known_definitions: Tuple[str, ...] = ()
    current_focus: str = ""
    project_phase: Optional[ProjectPhase] = None


@dataclass(frozen=True)
class SelectionConstraints:
    """Optional caller constraints for a selection call."""
    exclude_patterns: Tuple[PatternType, ...] = ()
    prefer_patterns: Tuple[PatternType, ...] = ()
    max_depth: Optional[int] = None
    require_fresh: bool = False


@dataclass
class ScoredPattern:
    """A candidate pattern with its sub-scores and total."""
    pattern: PatternType
    context_relevance: float
    expertise_match: float
    flow_appropriateness: float
    freshness: float
    effectiveness: float
    strategic_value: float
    total_score: float
    reasoning: List[str] = field(default_factory=list)

    def factors(self) -> Dict[str, float]:
        return {
            "context_relevance": self.context_relevance,
            "expertise_match": self.expertise_match,
            "flow_appropriateness": self.flow_appropriateness,
            "freshness": self.freshness,
            "effectiveness": self.effectiveness,
            "strategic_value": self.strategic_value,
        }


@dataclass
class SelectionResult:
    """Outcome of a selection call."""
    selected_pattern: PatternType
    confidence: float
    alternatives: List[ScoredPattern]
    reasoning: List[str]
    suggested_follow_ups: List[PatternType]


@dataclass(frozen=True)
class PatternOutcome:
    """What happened after a pattern was asked; fed to the effectiveness learner."""
    pattern: PatternType
    context: SelectionContext
    insights_generated: int = 0
    user_satisfaction: Optional[float] = None  # 1-5 rating
    follow_up_used: bool = False
    led_to_contradiction: bool = False
    clarified_definition: bool = False
    uncovered_assumption: bool = False


@dataclass
class FlowPhaseMetrics:
    """Metrics for the phase the dialogue is currently in."""
    turns_in_phase: int
    patterns_used: Dict[PatternType, int]
    insights_generated: int
    average_depth: float
    variety_score: float
    effectiveness: float


@dataclass
class ProgressAssessment:
    """Progress sub-scores plus the overall figure."""
    overall_progress: float
    objective_alignment: float
    insight_quality: float
    participant_engagement: float
    readiness_for_transition: float
    completion_likelihood: float


@dataclass
class FlowAnalysisResult:
    """Full flow analysis for a session."""
    current_phase: FlowPhase
    phase_confidence: float
    phase_metrics: FlowPhaseMetrics
    progress: ProgressAssessment
    recommendations: List[str]
    suggested_phase: Optional[FlowPhase] = None
    transition_confidence: Optional[float] = None


@dataclass
class FlowSnapshot:
    """Quick flow read computed from pattern history alone."""
    current_phase: FlowPhase
    phase_confidence: float
    patterns_used_in_phase: List[PatternType]
    average_depth: float
    variety_score: float
    progress_score: float
    suggested_phase: Optional[FlowPhase] = None


@dataclass
class TransitionResult:
    """Result of a requested phase transition."""
    success: bool
    new_context: SelectionContext
    warnings: List[str] = field(default_factory=list)


@dataclass
class TransitionCheck:
    """Result of the shorthand should-transition check."""
    should_transition: bool
    reason: str
    suggested_phase: Optional[FlowPhase] = None
