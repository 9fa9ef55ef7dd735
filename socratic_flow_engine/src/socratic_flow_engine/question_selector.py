"""
Question Selector

Picks the next question pattern for a dialogue turn:
filter eligible patterns -> score -> rank -> pick best (+ alternatives)
-> suggest follow-ups.

Per-session state (the recent-pattern log) is passed in by the caller;
the only shared structure is the effectiveness learner.
"""

import logging
from typing import List, Optional, Sequence

from socratic_flow_engine.config import EngineConfig
from socratic_flow_engine.effectiveness_learner import EffectivenessLearner
from socratic_flow_engine.eligibility import EligibilityFilter
from socratic_flow_engine.errors import NoEligiblePatternsError
from socratic_flow_engine.models import (
    ContextCategory,
    FlowPhase,
    FlowSnapshot,
    PatternType,
    ScoredPattern,
    SelectionConstraints,
    SelectionContext,
    SelectionResult,
    clamp,
)
from socratic_flow_engine.pattern_catalog import PatternCatalog
from socratic_flow_engine.pattern_scorer import PatternScorer
from socratic_flow_engine.phase_classifier import (
    CLASSIFICATION_WINDOW,
    classify_phase,
    phase_confidence,
    variety_score,
)
from socratic_flow_engine.session_state import RecentPatternLog
from socratic_flow_engine.tables import FOLLOW_UP_PROGRESSIONS, PHASE_PREFERRED_PATTERNS

logger = logging.getLogger(__name__)

P = PatternType


class QuestionSelector:
    """
    Selection engine for question patterns.

    Uses the selection-time scoring profile (effectiveness weighted higher,
    +0.2 bonus for caller-preferred patterns).
    """

    MAX_ALTERNATIVES = 3
    MAX_FOLLOW_UPS = 3
    FOLLOW_UP_PRIORITY_THRESHOLD = 0.6

    def __init__(
        self,
        catalog: PatternCatalog,
        learner: EffectivenessLearner,
        config: Optional[EngineConfig] = None
    ):
        """
        Initialize the selector.

        Args:
            catalog: Pattern registry
            learner: Shared effectiveness learner
            config: Engine configuration (defaults if omitted)
        """
        self.catalog = catalog
        self.learner = learner
        self.config = config or EngineConfig()
        self.eligibility = EligibilityFilter(catalog)
        self.scorer = PatternScorer(catalog, self.config.selection)

    def select_best(
        self,
        context: SelectionContext,
        recent_log: RecentPatternLog,
        constraints: Optional[SelectionConstraints] = None
    ) -> SelectionResult:
        """
        Select the best pattern for the context and record it in the session log.

        Raises:
            NoEligiblePatternsError: If no pattern passes the eligibility filter
        """
        ranked = self._rank(context, recent_log, constraints)
        if not ranked:
            logger.warning(
                f"⚠️ [QuestionSelector] No eligible patterns for session {context.session_id} "
                f"({context.category.value}, {context.user_expertise.value})"
            )
            raise NoEligiblePatternsError(
                context.session_id,
                {
                    "category": context.category.value,
                    "expertise": context.user_expertise.value,
                    "excluded": [p.value for p in (constraints.exclude_patterns if constraints else ())],
                },
            )

        best = ranked[0]
        recent_log.record(best.pattern)
        follow_ups = self.suggest_follow_ups(best.pattern, context)

        logger.debug(
            f"🎯 [QuestionSelector] Session {context.session_id}: selected {best.pattern.value} "
            f"(score={best.total_score:.2f}) from {len(ranked)} candidates"
        )

        return SelectionResult(
            selected_pattern=best.pattern,
            confidence=best.total_score,
            alternatives=ranked[1:1 + self.MAX_ALTERNATIVES],
            reasoning=list(best.reasoning),
            suggested_follow_ups=follow_ups,
        )

    def select_multiple(
        self,
        context: SelectionContext,
        recent_log: RecentPatternLog,
        count: int,
        constraints: Optional[SelectionConstraints] = None
    ) -> List[ScoredPattern]:
        """Top-N distinct patterns by score. Does not touch the recent log."""
        if count <= 0:
            return []
        return self._rank(context, recent_log, constraints)[:count]

    def suggest_follow_ups(self, selected: PatternType, context: SelectionContext) -> List[PatternType]:
        """
        Up to three follow-up patterns for the selected one.

        Merges the catalog's high-priority follow-ups with context-driven ones,
        then ranks by logical progression and context relevance.
        """
        info = self.catalog.get_pattern(selected)
        if info is None:
            return []

        candidates = [
            follow_up.next_pattern
            for follow_up in info.follow_ups
            if follow_up.priority > self.FOLLOW_UP_PRIORITY_THRESHOLD
        ]
        candidates.extend(self._context_follow_ups(selected, context))

        unique: List[PatternType] = []
        for candidate in candidates:
            if candidate not in unique:
                unique.append(candidate)

        scored = sorted(
            unique,
            key=lambda candidate: self._follow_up_score(candidate, selected, context),
            reverse=True,
        )
        return scored[:self.MAX_FOLLOW_UPS]

    def analyze_dialogue_flow(
        self,
        context: SelectionContext,
        pattern_history: Sequence[PatternType]
    ) -> FlowSnapshot:
        """Quick flow read from the pattern history and context alone."""
        history = list(pattern_history)
        phase = classify_phase(history, context.current_depth, context.turn_count)
        phase_patterns = PHASE_PREFERRED_PATTERNS.get(phase, ())

        used_in_phase: List[PatternType] = []
        for pattern in history[-CLASSIFICATION_WINDOW:]:
            if pattern in phase_patterns and pattern not in used_in_phase:
                used_in_phase.append(pattern)

        return FlowSnapshot(
            current_phase=phase,
            phase_confidence=phase_confidence(phase, history),
            patterns_used_in_phase=used_in_phase,
            average_depth=float(context.current_depth),
            variety_score=variety_score(history),
            progress_score=self._progress_score(context),
            suggested_phase=self._suggest_phase(phase, context, history),
        )

    def _rank(
        self,
        context: SelectionContext,
        recent_log: RecentPatternLog,
        constraints: Optional[SelectionConstraints]
    ) -> List[ScoredPattern]:
        candidates = self._candidates(context, recent_log, constraints)
        preferred = set(constraints.prefer_patterns) if constraints else set()
        recent = recent_log.patterns()

        scored = [
            self.scorer.score_pattern(
                pattern,
                context,
                recent,
                self.learner.get_effectiveness(pattern, context),
                preferred=pattern in preferred,
            )
            for pattern in candidates
        ]
        # Stable sort keeps catalog order on ties
        scored.sort(key=lambda item: item.total_score, reverse=True)
        return scored

    def _candidates(
        self,
        context: SelectionContext,
        recent_log: RecentPatternLog,
        constraints: Optional[SelectionConstraints]
    ) -> List[PatternType]:
        eligible = self.eligibility.filter(context, constraints)

        if eligible and constraints is not None and constraints.require_fresh:
            recently_used = set(recent_log.last(self.config.require_fresh_window))
            fresh = [pattern for pattern in eligible if pattern not in recently_used]
            if fresh:
                return fresh
            logger.info(
                f"🔁 [QuestionSelector] Session {context.session_id}: every eligible pattern "
                f"was used recently, relaxing require_fresh"
            )

        return eligible

    def _context_follow_ups(self, selected: PatternType, context: SelectionContext) -> List[PatternType]:
        follow_ups: List[PatternType] = []

        if selected == P.DEFINITION_SEEKING:
            if context.known_definitions:
                follow_ups += [P.CONSISTENCY_TESTING, P.CONCRETE_INSTANTIATION]
        elif selected == P.ASSUMPTION_EXCAVATION:
            if context.detected_assumptions:
                follow_ups += [P.NECESSITY_TESTING, P.CONSISTENCY_TESTING]
        elif selected == P.CONCRETE_INSTANTIATION:
            follow_ups += [P.CONCEPTUAL_CLARITY, P.ASSUMPTION_EXCAVATION]
        elif selected == P.CONSISTENCY_TESTING:
            follow_ups += [P.VALUE_CLARIFICATION, P.IMPACT_ANALYSIS]
        elif selected == P.NECESSITY_TESTING:
            follow_ups += [P.SOLUTION_SPACE_MAPPING, P.IMPACT_ANALYSIS]

        if context.category == ContextCategory.ARCHITECTURE_REVIEW:
            follow_ups += [P.IMPACT_ANALYSIS, P.CONSISTENCY_TESTING]
        elif context.category == ContextCategory.REQUIREMENTS_REFINEMENT:
            follow_ups += [P.CONCRETE_INSTANTIATION, P.DEFINITION_SEEKING]

        return follow_ups

    def _follow_up_score(self, candidate: PatternType, selected: PatternType, context: SelectionContext) -> float:
        score = 0.5
        if candidate in FOLLOW_UP_PROGRESSIONS.get(selected, ()):
            score += 0.3
        score += self.scorer.calculate_context_relevance(candidate, context) * 0.2
        return clamp(score)

    def _suggest_phase(
        self,
        phase: FlowPhase,
        context: SelectionContext,
        history: List[PatternType]
    ) -> Optional[FlowPhase]:
        recent = history[-CLASSIFICATION_WINDOW:]
        phase_patterns = PHASE_PREFERRED_PATTERNS.get(phase, ())
        saturation = (
            sum(1 for pattern in recent if pattern in phase_patterns) / len(recent)
            if recent else 0.0
        )

        if not (saturation > 0.6 or context.current_depth > 4 or len(context.extracted_concepts) > 3):
            return None

        concepts = len(context.extracted_concepts)
        if phase == FlowPhase.EXPLORING:
            if concepts > 5 and len(context.detected_assumptions) > 3:
                return FlowPhase.SYNTHESIZING
            return FlowPhase.DEEPENING
        if phase == FlowPhase.DEEPENING:
            if concepts > 0 and len(context.known_definitions) < concepts / 2:
                return FlowPhase.CLARIFYING
            return FlowPhase.SYNTHESIZING
        if phase == FlowPhase.CLARIFYING:
            return FlowPhase.SYNTHESIZING
        if phase == FlowPhase.SYNTHESIZING:
            synthesis_uses = sum(1 for p in history if p in (P.VALUE_CLARIFICATION, P.IMPACT_ANALYSIS))
            if context.turn_count > 15 and concepts > 4 and synthesis_uses > 2:
                return FlowPhase.CONCLUDING
        return None

    @staticmethod
    def _progress_score(context: SelectionContext) -> float:
        return clamp(context.current_depth / 8 + len(context.extracted_concepts) * 0.1)
