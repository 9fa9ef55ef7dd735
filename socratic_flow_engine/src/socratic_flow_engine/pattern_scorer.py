"""
Pattern Scorer

Multi-factor scoring for candidate question patterns:
1. Context relevance (category match + context/phase/focus bonuses)
2. Expertise match (ordinal distance with tolerance)
3. Flow appropriateness (phase preference + depth/turn heuristics)
4. Freshness (penalty for recent repeats, blended by novelty importance)
5. Effectiveness (learned estimate, supplied by the caller)
6. Strategic value (configured bonuses + context gaps)

Every factor and the weighted total are clamped to [0, 1].
"""

import logging
from typing import Mapping, Optional, Sequence, Tuple

from socratic_flow_engine.config import ScoringConfig
from socratic_flow_engine.models import (
    ContextCategory,
    FlowPhase,
    PatternType,
    ProjectPhase,
    ScoredPattern,
    SelectionContext,
    clamp,
    expertise_rank,
)
from socratic_flow_engine.pattern_catalog import PatternCatalog
from socratic_flow_engine.tables import (
    CONCLUDING_PATTERNS,
    CONTEXT_PATTERN_BONUSES,
    EXPLORATION_PATTERNS,
    PATTERN_KEYWORDS,
    PATTERN_REASONS,
    PHASE_PREFERRED_PATTERNS,
    PROJECT_PHASE_BONUSES,
    SYNTHESIS_PATTERNS,
)

logger = logging.getLogger(__name__)

RECENT_WINDOW = 10


class PatternScorer:
    """
    Scores patterns against a selection context.

    The scorer holds no per-session state: recent usage and the learned
    effectiveness are passed in on every call.
    """

    def __init__(
        self,
        catalog: PatternCatalog,
        config: Optional[ScoringConfig] = None,
        context_bonuses: Mapping[ContextCategory, Mapping[PatternType, float]] = CONTEXT_PATTERN_BONUSES,
        phase_bonuses: Mapping[ProjectPhase, Mapping[PatternType, float]] = PROJECT_PHASE_BONUSES,
        preferred_patterns: Mapping[FlowPhase, Tuple[PatternType, ...]] = PHASE_PREFERRED_PATTERNS,
        keywords: Mapping[PatternType, Tuple[str, ...]] = PATTERN_KEYWORDS,
    ):
        self.catalog = catalog
        self.config = config or ScoringConfig()
        self.context_bonuses = context_bonuses
        self.phase_bonuses = phase_bonuses
        self.preferred_patterns = preferred_patterns
        self.keywords = keywords

    def score_pattern(
        self,
        pattern: PatternType,
        context: SelectionContext,
        recent_patterns: Sequence[PatternType],
        effectiveness: float,
        preferred: bool = False
    ) -> ScoredPattern:
        """
        Score one pattern.

        Args:
            pattern: Candidate pattern
            context: Current selection context
            recent_patterns: The session's recently used patterns, oldest first
            effectiveness: Learned effectiveness estimate (0-1)
            preferred: Whether the caller listed this pattern as preferred

        Returns:
            ScoredPattern with all six factors, the total and reasoning
        """
        weights = self.config.weights

        context_relevance = self.calculate_context_relevance(pattern, context)
        expertise_match = self.calculate_expertise_match(pattern, context)
        flow_appropriateness = self.calculate_flow_appropriateness(pattern, context)
        freshness = self.calculate_freshness(pattern, recent_patterns)
        effectiveness = clamp(effectiveness)
        strategic_value = self.calculate_strategic_value(pattern, context)

        total = (
            context_relevance * weights.context_relevance
            + expertise_match * weights.expertise_match
            + flow_appropriateness * weights.flow_appropriateness
            + freshness * weights.freshness
            + effectiveness * weights.effectiveness
            + strategic_value * weights.strategic_value
        )
        if preferred:
            total += self.config.preference_bonus

        return ScoredPattern(
            pattern=pattern,
            context_relevance=context_relevance,
            expertise_match=expertise_match,
            flow_appropriateness=flow_appropriateness,
            freshness=freshness,
            effectiveness=effectiveness,
            strategic_value=strategic_value,
            total_score=clamp(total),
            reasoning=self.generate_reasoning(
                pattern,
                context_relevance,
                expertise_match,
                flow_appropriateness,
                effectiveness,
                freshness,
            ),
        )

    def calculate_context_relevance(self, pattern: PatternType, context: SelectionContext) -> float:
        """Category match base plus context, project-phase and focus bonuses."""
        info = self.catalog.get_pattern(pattern)
        if info is None:
            return 0.0

        score = 0.8 if info.applies_to(context.category) else 0.2
        score += self.context_bonuses.get(context.category, {}).get(pattern, 0.0)

        if context.project_phase is not None:
            score += self.phase_bonuses.get(context.project_phase, {}).get(pattern, 0.0)

        if context.current_focus:
            score += self.calculate_focus_alignment(pattern, context.current_focus)

        return clamp(score)

    def calculate_focus_alignment(self, pattern: PatternType, focus: str) -> float:
        """Small keyword-overlap bonus, at most 0.1."""
        keywords = self.keywords.get(pattern, ())
        overlap = sum(
            1 for word in focus.lower().split()
            if any(keyword in word or word in keyword for keyword in keywords)
        )
        return min(overlap * 0.02, 0.1)

    def calculate_expertise_match(self, pattern: PatternType, context: SelectionContext) -> float:
        info = self.catalog.get_pattern(pattern)
        if info is None:
            return 0.0

        tolerance = self.config.expertise_tolerance
        distance = abs(expertise_rank(info.min_expertise) - expertise_rank(context.user_expertise))

        if distance == 0:
            return 1.0
        if distance <= tolerance:
            return max(1.0 - distance * 0.2, 0.2)
        return max(0.3 - (distance - tolerance) * 0.1, 0.1)

    def calculate_flow_appropriateness(self, pattern: PatternType, context: SelectionContext) -> float:
        preferred = self.preferred_patterns.get(context.conversation_flow, ())
        score = 0.9 if pattern in preferred else 0.4
        score += self._depth_adjustment(pattern, context.current_depth)
        score += self._turn_adjustment(pattern, context.turn_count)
        return clamp(score)

    def _depth_adjustment(self, pattern: PatternType, depth: int) -> float:
        # Shallow favours exploration, deep favours synthesis
        if depth <= 2:
            return 0.05 if pattern in EXPLORATION_PATTERNS else -0.05
        if depth >= 6:
            return 0.05 if pattern in SYNTHESIS_PATTERNS else -0.05
        return 0.0

    def _turn_adjustment(self, pattern: PatternType, turn_count: int) -> float:
        if turn_count > 20:
            return 0.1 if pattern in CONCLUDING_PATTERNS else -0.05
        return 0.0

    def calculate_freshness(self, pattern: PatternType, recent_patterns: Sequence[PatternType]) -> float:
        """1.0 when unused recently, minus the configured decay per use, floored at 0.1."""
        recent_usage = list(recent_patterns)[-RECENT_WINDOW:].count(pattern)
        freshness = max(1.0 - recent_usage * self.config.freshness_decay, 0.1)

        importance = self.config.novelty_importance
        return clamp(freshness * importance + (1 - importance) * 0.5)

    def calculate_strategic_value(self, pattern: PatternType, context: SelectionContext) -> float:
        score = 0.5
        score += self.config.strategic_bonuses.get(pattern, 0.0)

        # Patterns that fill an obvious gap in what has been discovered so far
        if not context.extracted_concepts and pattern == PatternType.DEFINITION_SEEKING:
            score += 0.1
        elif not context.detected_assumptions and pattern == PatternType.ASSUMPTION_EXCAVATION:
            score += 0.1

        return clamp(score)

    def generate_reasoning(
        self,
        pattern: PatternType,
        context_relevance: float,
        expertise_match: float,
        flow_appropriateness: float,
        effectiveness: float,
        freshness: float
    ):
        """Human-readable reasons behind a score."""
        reasons = []

        pattern_reason = PATTERN_REASONS.get(pattern)
        if pattern_reason:
            reasons.append(pattern_reason)

        if context_relevance > 0.7:
            reasons.append("Highly relevant to current context")
        elif context_relevance < 0.4:
            reasons.append("Limited relevance to current context")

        if expertise_match > 0.8:
            reasons.append("Perfect match for user expertise level")
        elif expertise_match < 0.5:
            reasons.append("May be too complex/simple for user level")

        if flow_appropriateness > 0.8:
            reasons.append("Excellent fit for current dialogue flow")

        if effectiveness > 0.7:
            reasons.append("Has proven effective in similar contexts")
        elif effectiveness < 0.4:
            reasons.append("Lower effectiveness in similar situations")

        if freshness < 0.5:
            reasons.append("Recently used - may benefit from variety")

        return reasons
