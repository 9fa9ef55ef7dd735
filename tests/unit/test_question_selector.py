"""
Unit Tests for Question Selector

Tests ranking, recent-usage tracking, constraints, follow-up suggestions
and the quick flow snapshot.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "socratic_flow_engine", "src"))

from socratic_flow_engine.effectiveness_learner import EffectivenessLearner
from socratic_flow_engine.errors import NoEligiblePatternsError
from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    FlowPhase,
    PatternType,
    SelectionConstraints,
    SelectionContext,
)
from socratic_flow_engine.pattern_catalog import PatternCatalog
from socratic_flow_engine.question_selector import QuestionSelector
from socratic_flow_engine.session_state import RecentPatternLog


P = PatternType


class TestQuestionSelector:
    """Test suite for QuestionSelector."""

    @pytest.fixture
    def selector(self):
        return QuestionSelector(PatternCatalog(), EffectivenessLearner())

    @pytest.fixture
    def context(self):
        return SelectionContext(session_id="s1")

    @pytest.fixture
    def log(self):
        return RecentPatternLog()

    def test_select_best_ranks_and_records(self, selector, context, log):
        result = selector.select_best(context, log)

        assert log.patterns() == [result.selected_pattern]
        assert len(result.alternatives) == 3
        assert all(result.confidence >= alt.total_score for alt in result.alternatives)
        assert result.selected_pattern not in [alt.pattern for alt in result.alternatives]
        assert len(result.suggested_follow_ups) <= 3
        assert result.reasoning

    def test_excluding_every_pattern_raises(self, selector, context, log):
        constraints = SelectionConstraints(exclude_patterns=tuple(P))
        with pytest.raises(NoEligiblePatternsError) as exc_info:
            selector.select_best(context, log, constraints)
        assert exc_info.value.session_id == "s1"
        assert len(log) == 0

    def test_selection_lowers_freshness(self, selector, context, log):
        selected = selector.select_best(context, log).selected_pattern
        ranked = selector.select_multiple(context, log, count=10)
        scored = next(item for item in ranked if item.pattern == selected)
        assert scored.freshness == pytest.approx(0.7)

    def test_recent_log_is_bounded(self, selector, context, log):
        for _ in range(15):
            selector.select_best(context, log)
        assert len(log) == 10

    def test_preference_bonus(self, selector, context, log):
        plain = {item.pattern: item.total_score for item in selector.select_multiple(context, log, 10)}
        preferred = {
            item.pattern: item.total_score
            for item in selector.select_multiple(
                context, log, 10, SelectionConstraints(prefer_patterns=(P.CONSISTENCY_TESTING,))
            )
        }
        assert preferred[P.CONSISTENCY_TESTING] == pytest.approx(plain[P.CONSISTENCY_TESTING] + 0.2)
        assert preferred[P.IMPACT_ANALYSIS] == pytest.approx(plain[P.IMPACT_ANALYSIS])

    def test_select_multiple_distinct(self, selector, context, log):
        ranked = selector.select_multiple(context, log, count=3)
        assert len(ranked) == 3
        assert len({item.pattern for item in ranked}) == 3
        assert ranked[0].total_score >= ranked[1].total_score >= ranked[2].total_score
        assert len(log) == 0

    def test_require_fresh_skips_recent_patterns(self, selector, log):
        context = SelectionContext(session_id="s1", user_expertise=ExpertiseLevel.BEGINNER)
        for pattern in (P.DEFINITION_SEEKING, P.ASSUMPTION_EXCAVATION,
                        P.CONCRETE_INSTANTIATION, P.VALUE_CLARIFICATION):
            log.record(pattern)

        result = selector.select_best(context, log, SelectionConstraints(require_fresh=True))
        assert result.selected_pattern == P.DEFINITION_SEEKING

    def test_require_fresh_relaxed_when_nothing_fresh(self, selector, context, log):
        log.record(P.IMPACT_ANALYSIS)
        others = tuple(p for p in P if p != P.IMPACT_ANALYSIS)
        constraints = SelectionConstraints(exclude_patterns=others, require_fresh=True)

        result = selector.select_best(context, log, constraints)
        assert result.selected_pattern == P.IMPACT_ANALYSIS

    def test_follow_ups_after_consistency_testing(self, selector, context):
        assert selector.suggest_follow_ups(P.CONSISTENCY_TESTING, context) == [
            P.VALUE_CLARIFICATION,
            P.IMPACT_ANALYSIS,
        ]

    def test_follow_ups_for_requirements(self, selector):
        context = SelectionContext(session_id="s1", category=ContextCategory.REQUIREMENTS_REFINEMENT)
        assert set(selector.suggest_follow_ups(P.DEFINITION_SEEKING, context)) == {
            P.CONCRETE_INSTANTIATION,
            P.DEFINITION_SEEKING,
        }

    def test_follow_ups_capped_and_unique(self, selector):
        context = SelectionContext(
            session_id="s1",
            category=ContextCategory.ARCHITECTURE_REVIEW,
            detected_assumptions=("users are always online",),
        )
        for pattern in P:
            follow_ups = selector.suggest_follow_ups(pattern, context)
            assert len(follow_ups) <= 3
            assert len(set(follow_ups)) == len(follow_ups)


class TestDialogueFlowSnapshot:
    """Test suite for QuestionSelector.analyze_dialogue_flow."""

    @pytest.fixture
    def selector(self):
        return QuestionSelector(PatternCatalog(), EffectivenessLearner())

    def test_empty_history_defaults_to_exploring(self, selector):
        context = SelectionContext(session_id="s1", current_depth=1)
        snapshot = selector.analyze_dialogue_flow(context, [])

        assert snapshot.current_phase == FlowPhase.EXPLORING
        assert snapshot.phase_confidence == 0.5
        assert snapshot.suggested_phase is None
        assert snapshot.patterns_used_in_phase == []

    def test_single_repeated_pattern_variety(self, selector):
        context = SelectionContext(session_id="s1")
        snapshot = selector.analyze_dialogue_flow(context, [P.IMPACT_ANALYSIS] * 10)

        assert snapshot.variety_score == pytest.approx(0.1)
        assert snapshot.current_phase == FlowPhase.SYNTHESIZING

    def test_deepening_history(self, selector):
        context = SelectionContext(session_id="s1", current_depth=4, extracted_concepts=("cache", "queue"))
        history = [P.CONSISTENCY_TESTING, P.NECESSITY_TESTING, P.CONSISTENCY_TESTING]
        snapshot = selector.analyze_dialogue_flow(context, history)

        assert snapshot.current_phase == FlowPhase.DEEPENING
        assert snapshot.phase_confidence == pytest.approx(1.0)
        assert snapshot.patterns_used_in_phase == [P.CONSISTENCY_TESTING, P.NECESSITY_TESTING]
        assert snapshot.progress_score == pytest.approx(0.7)
        # Concepts outnumber definitions, so clarify next
        assert snapshot.suggested_phase == FlowPhase.CLARIFYING

    def test_saturated_exploring_suggests_deepening(self, selector):
        context = SelectionContext(session_id="s1", current_depth=1)
        history = [P.DEFINITION_SEEKING, P.DEFINITION_SEEKING, P.ASSUMPTION_EXCAVATION]
        snapshot = selector.analyze_dialogue_flow(context, history)

        assert snapshot.current_phase == FlowPhase.EXPLORING
        assert snapshot.suggested_phase == FlowPhase.DEEPENING

    def test_depth_fallback_without_dominant_phase(self, selector):
        context = SelectionContext(session_id="s1", current_depth=8, turn_count=20)
        history = [P.DEFINITION_SEEKING, P.CONSISTENCY_TESTING, P.CONCRETE_INSTANTIATION]
        assert selector.analyze_dialogue_flow(context, history).current_phase == FlowPhase.CONCLUDING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
