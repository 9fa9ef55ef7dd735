"""
Static Lookup Tables

Read-only data shared by the scorer, the selector and the flow manager:
context bonuses, phase/pattern mappings, follow-up progressions and the
phase transition rules. Loaded once at import; components receive them
through their constructors.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from socratic_flow_engine.models import (
    ContextCategory,
    FlowPhase,
    PatternType,
    ProjectPhase,
)

P = PatternType


def _freeze(table: Dict) -> Mapping:
    return MappingProxyType({
        key: MappingProxyType(value) if isinstance(value, dict) else value
        for key, value in table.items()
    })


# Additive context-relevance bonus per category and pattern
CONTEXT_PATTERN_BONUSES: Mapping[ContextCategory, Mapping[PatternType, float]] = _freeze({
    ContextCategory.PROJECT_INCEPTION: {
        P.DEFINITION_SEEKING: 0.2,
        P.ASSUMPTION_EXCAVATION: 0.15,
        P.VALUE_CLARIFICATION: 0.1,
        P.SOLUTION_SPACE_MAPPING: 0.08,
    },
    ContextCategory.ARCHITECTURE_REVIEW: {
        P.CONSISTENCY_TESTING: 0.2,
        P.NECESSITY_TESTING: 0.15,
        P.IMPACT_ANALYSIS: 0.1,
        P.SOLUTION_SPACE_MAPPING: 0.1,
        P.CONCEPTUAL_CLARITY: 0.08,
    },
    ContextCategory.REQUIREMENTS_REFINEMENT: {
        P.CONCRETE_INSTANTIATION: 0.2,
        P.DEFINITION_SEEKING: 0.15,
        P.CONSISTENCY_TESTING: 0.1,
    },
    ContextCategory.IMPLEMENTATION_PLANNING: {
        P.IMPACT_ANALYSIS: 0.2,
        P.NECESSITY_TESTING: 0.15,
        P.EPISTEMIC_HUMILITY: 0.1,
    },
    ContextCategory.CODE_REVIEW: {
        P.NECESSITY_TESTING: 0.2,
        P.CONCEPTUAL_CLARITY: 0.15,
        P.CONSISTENCY_TESTING: 0.1,
    },
    ContextCategory.GENERAL: {
        P.DEFINITION_SEEKING: 0.05,
        P.ASSUMPTION_EXCAVATION: 0.05,
    },
})

PROJECT_PHASE_BONUSES: Mapping[ProjectPhase, Mapping[PatternType, float]] = _freeze({
    ProjectPhase.PLANNING: {
        P.DEFINITION_SEEKING: 0.1,
        P.ASSUMPTION_EXCAVATION: 0.08,
        P.VALUE_CLARIFICATION: 0.06,
    },
    ProjectPhase.DESIGN: {
        P.CONSISTENCY_TESTING: 0.1,
        P.CONCEPTUAL_CLARITY: 0.08,
        P.SOLUTION_SPACE_MAPPING: 0.06,
    },
    ProjectPhase.IMPLEMENTATION: {
        P.NECESSITY_TESTING: 0.1,
        P.CONCRETE_INSTANTIATION: 0.08,
    },
    ProjectPhase.TESTING: {
        P.CONSISTENCY_TESTING: 0.1,
        P.IMPACT_ANALYSIS: 0.08,
    },
    ProjectPhase.REVIEW: {
        P.IMPACT_ANALYSIS: 0.1,
        P.VALUE_CLARIFICATION: 0.08,
        P.EPISTEMIC_HUMILITY: 0.06,
    },
    ProjectPhase.MAINTENANCE: {},
})

# Keywords matched against the current focus string
PATTERN_KEYWORDS: Mapping[PatternType, Tuple[str, ...]] = MappingProxyType({
    P.DEFINITION_SEEKING: ("define", "meaning", "concept", "term"),
    P.ASSUMPTION_EXCAVATION: ("assume", "believe", "given", "obvious"),
    P.CONSISTENCY_TESTING: ("conflict", "align", "consistent", "contradict"),
    P.CONCRETE_INSTANTIATION: ("example", "specific", "instance", "concrete"),
    P.NECESSITY_TESTING: ("necessary", "required", "essential", "remove"),
    P.CONCEPTUAL_CLARITY: ("difference", "similar", "distinguish", "compare"),
    P.EPISTEMIC_HUMILITY: ("unknown", "uncertain", "unclear", "knowledge"),
    P.SOLUTION_SPACE_MAPPING: ("alternative", "option", "approach", "solution"),
    P.IMPACT_ANALYSIS: ("consequence", "effect", "impact", "result"),
    P.VALUE_CLARIFICATION: ("important", "priority", "value", "goal"),
})

# Expected patterns per phase; drives flow appropriateness and phase confidence
PHASE_PREFERRED_PATTERNS: Mapping[FlowPhase, Tuple[PatternType, ...]] = MappingProxyType({
    FlowPhase.EXPLORING: (
        P.DEFINITION_SEEKING,
        P.ASSUMPTION_EXCAVATION,
        P.SOLUTION_SPACE_MAPPING,
        P.EPISTEMIC_HUMILITY,
    ),
    FlowPhase.DEEPENING: (
        P.CONSISTENCY_TESTING,
        P.NECESSITY_TESTING,
        P.ASSUMPTION_EXCAVATION,
        P.IMPACT_ANALYSIS,
    ),
    FlowPhase.CLARIFYING: (
        P.CONCRETE_INSTANTIATION,
        P.CONCEPTUAL_CLARITY,
        P.DEFINITION_SEEKING,
    ),
    FlowPhase.SYNTHESIZING: (
        P.IMPACT_ANALYSIS,
        P.VALUE_CLARIFICATION,
        P.CONSISTENCY_TESTING,
    ),
    FlowPhase.CONCLUDING: (
        P.VALUE_CLARIFICATION,
        P.IMPACT_ANALYSIS,
    ),
})

# Single phase each pattern votes for when classifying recent history.
# No pattern votes for concluding; that phase is only reached by heuristics.
PHASE_AFFINITY: Mapping[PatternType, FlowPhase] = MappingProxyType({
    P.DEFINITION_SEEKING: FlowPhase.EXPLORING,
    P.ASSUMPTION_EXCAVATION: FlowPhase.EXPLORING,
    P.SOLUTION_SPACE_MAPPING: FlowPhase.EXPLORING,
    P.CONSISTENCY_TESTING: FlowPhase.DEEPENING,
    P.NECESSITY_TESTING: FlowPhase.DEEPENING,
    P.EPISTEMIC_HUMILITY: FlowPhase.DEEPENING,
    P.CONCRETE_INSTANTIATION: FlowPhase.CLARIFYING,
    P.CONCEPTUAL_CLARITY: FlowPhase.CLARIFYING,
    P.IMPACT_ANALYSIS: FlowPhase.SYNTHESIZING,
    P.VALUE_CLARIFICATION: FlowPhase.SYNTHESIZING,
})

EXPLORATION_PATTERNS: FrozenSet[PatternType] = frozenset({
    P.DEFINITION_SEEKING,
    P.ASSUMPTION_EXCAVATION,
    P.SOLUTION_SPACE_MAPPING,
})

SYNTHESIS_PATTERNS: FrozenSet[PatternType] = frozenset({
    P.VALUE_CLARIFICATION,
    P.IMPACT_ANALYSIS,
    P.CONSISTENCY_TESTING,
})

CONCLUDING_PATTERNS: FrozenSet[PatternType] = frozenset({
    P.VALUE_CLARIFICATION,
    P.IMPACT_ANALYSIS,
})

# Natural next questions after a given pattern
FOLLOW_UP_PROGRESSIONS: Mapping[PatternType, Tuple[PatternType, ...]] = MappingProxyType({
    P.DEFINITION_SEEKING: (P.CONCRETE_INSTANTIATION, P.ASSUMPTION_EXCAVATION),
    P.ASSUMPTION_EXCAVATION: (P.CONSISTENCY_TESTING, P.NECESSITY_TESTING),
    P.CONSISTENCY_TESTING: (P.VALUE_CLARIFICATION, P.IMPACT_ANALYSIS),
    P.CONCRETE_INSTANTIATION: (P.CONCEPTUAL_CLARITY, P.ASSUMPTION_EXCAVATION),
    P.NECESSITY_TESTING: (P.SOLUTION_SPACE_MAPPING, P.IMPACT_ANALYSIS),
})

PATTERN_REASONS: Mapping[PatternType, str] = MappingProxyType({
    P.DEFINITION_SEEKING: "Clarifies ambiguous terminology and establishes common understanding",
    P.ASSUMPTION_EXCAVATION: "Uncovers hidden beliefs that may impact decision-making",
    P.CONSISTENCY_TESTING: "Identifies potential contradictions in requirements or design",
    P.CONCRETE_INSTANTIATION: "Transforms abstract concepts into testable, specific examples",
    P.NECESSITY_TESTING: "Questions complexity and identifies truly essential requirements",
    P.CONCEPTUAL_CLARITY: "Distinguishes between similar concepts to prevent confusion",
    P.EPISTEMIC_HUMILITY: "Acknowledges knowledge gaps and identifies areas needing research",
    P.SOLUTION_SPACE_MAPPING: "Explores alternative approaches to avoid premature optimization",
    P.IMPACT_ANALYSIS: "Evaluates consequences and ripple effects of decisions",
    P.VALUE_CLARIFICATION: "Prioritizes competing objectives and clarifies trade-offs",
})


@dataclass(frozen=True)
class FlowPhaseConfig:
    """Per-phase settings. Success criteria are descriptive only."""
    preferred_patterns: Tuple[PatternType, ...]
    max_turns: int
    min_insights_required: int
    transition_triggers: Tuple[str, ...] = ()
    success_criteria: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FlowTransitionRule:
    """An allowed cross-phase move."""
    from_phase: FlowPhase
    to_phase: FlowPhase
    min_turns: int
    base_confidence: float
    triggered_by: Tuple[PatternType, ...] = ()
    condition: str = ""
    max_turns: Optional[int] = None


DEFAULT_MAX_TURNS: Mapping[FlowPhase, int] = MappingProxyType({
    FlowPhase.EXPLORING: 12,
    FlowPhase.DEEPENING: 10,
    FlowPhase.CLARIFYING: 8,
    FlowPhase.SYNTHESIZING: 8,
    FlowPhase.CONCLUDING: 6,
})

_MIN_INSIGHTS = {
    FlowPhase.EXPLORING: 2,
    FlowPhase.DEEPENING: 3,
    FlowPhase.CLARIFYING: 2,
    FlowPhase.SYNTHESIZING: 2,
    FlowPhase.CONCLUDING: 1,
}

_TRIGGERS = {
    FlowPhase.EXPLORING: ("multiple_concepts_identified", "assumptions_surfaced"),
    FlowPhase.DEEPENING: ("contradictions_found", "deep_insights_generated"),
    FlowPhase.CLARIFYING: ("definitions_clarified", "examples_provided"),
    FlowPhase.SYNTHESIZING: ("insights_connected", "values_clarified"),
    FlowPhase.CONCLUDING: ("conclusions_reached",),
}

_SUCCESS_CRITERIA = {
    FlowPhase.EXPLORING: ("domain_mapped", "key_concepts_defined"),
    FlowPhase.DEEPENING: ("assumptions_tested", "consistency_validated"),
    FlowPhase.CLARIFYING: ("concepts_clarified", "examples_concrete"),
    FlowPhase.SYNTHESIZING: ("insights_synthesized", "priorities_clear"),
    FlowPhase.CONCLUDING: ("objectives_met", "decisions_informed"),
}


def build_phase_configs(
    max_turns: Optional[Mapping[FlowPhase, int]] = None
) -> Mapping[FlowPhase, FlowPhaseConfig]:
    """Build the per-phase configuration, optionally overriding max turns."""
    limits = dict(DEFAULT_MAX_TURNS)
    if max_turns:
        limits.update(max_turns)

    return MappingProxyType({
        phase: FlowPhaseConfig(
            preferred_patterns=PHASE_PREFERRED_PATTERNS[phase],
            max_turns=limits[phase],
            min_insights_required=_MIN_INSIGHTS[phase],
            transition_triggers=_TRIGGERS[phase],
            success_criteria=_SUCCESS_CRITERIA[phase],
        )
        for phase in FlowPhase
    })


DEFAULT_PHASE_CONFIGS = build_phase_configs()

DEFAULT_TRANSITION_RULES: Tuple[FlowTransitionRule, ...] = (
    FlowTransitionRule(
        FlowPhase.EXPLORING, FlowPhase.DEEPENING, min_turns=3, base_confidence=0.8,
        triggered_by=(P.ASSUMPTION_EXCAVATION,), condition="sufficient_exploration",
    ),
    FlowTransitionRule(
        FlowPhase.DEEPENING, FlowPhase.CLARIFYING, min_turns=2, base_confidence=0.8,
        triggered_by=(P.CONSISTENCY_TESTING,), condition="insights_generated",
    ),
    FlowTransitionRule(
        FlowPhase.CLARIFYING, FlowPhase.SYNTHESIZING, min_turns=2, base_confidence=0.8,
        triggered_by=(P.CONCRETE_INSTANTIATION,), condition="concepts_clear",
    ),
    FlowTransitionRule(
        FlowPhase.SYNTHESIZING, FlowPhase.CONCLUDING, min_turns=2, base_confidence=0.8,
        triggered_by=(P.VALUE_CLARIFICATION,), condition="ready_to_conclude",
    ),
    # Recovery moves
    FlowTransitionRule(
        FlowPhase.DEEPENING, FlowPhase.EXPLORING, min_turns=1, base_confidence=0.6,
        triggered_by=(P.EPISTEMIC_HUMILITY,), condition="need_more_exploration",
    ),
    FlowTransitionRule(
        FlowPhase.CLARIFYING, FlowPhase.DEEPENING, min_turns=1, base_confidence=0.6,
        triggered_by=(P.NECESSITY_TESTING,), condition="need_deeper_analysis",
    ),
    FlowTransitionRule(
        FlowPhase.SYNTHESIZING, FlowPhase.CLARIFYING, min_turns=1, base_confidence=0.6,
        triggered_by=(P.CONCEPTUAL_CLARITY,), condition="concepts_unclear",
    ),
)
