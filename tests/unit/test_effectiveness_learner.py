"""
Unit Tests for Effectiveness Learner

Tests the running means, exponential smoothing, clamping and
thread-safety of the shared record map.
"""

import random
import threading
import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "socratic_flow_engine", "src"))

from socratic_flow_engine.effectiveness_learner import EffectivenessLearner
from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    PatternOutcome,
    PatternType,
    SelectionContext,
)


P = PatternType


class TestEffectivenessLearner:
    """Test suite for EffectivenessLearner."""

    @pytest.fixture
    def learner(self):
        return EffectivenessLearner(learning_rate=0.2)

    @pytest.fixture
    def context(self):
        return SelectionContext(session_id="s1", category=ContextCategory.ARCHITECTURE_REVIEW)

    def make_outcome(self, context, pattern=P.IMPACT_ANALYSIS, **kwargs):
        return PatternOutcome(pattern=pattern, context=context, **kwargs)

    def test_unknown_key_is_neutral(self, learner, context):
        assert learner.get_effectiveness(P.IMPACT_ANALYSIS, context) == 0.5

    def test_get_effectiveness_has_no_side_effects(self, learner, context):
        learner.get_effectiveness(P.IMPACT_ANALYSIS, context)
        assert len(learner) == 0
        assert learner.get_record(P.IMPACT_ANALYSIS, context) is None

    def test_first_outcome_updates_record(self, learner, context):
        record = learner.record_outcome(self.make_outcome(context, insights_generated=3))

        assert record.times_used == 1
        assert record.average_insight_quality == pytest.approx(1.0)
        # default satisfaction 3 of 5
        assert record.average_user_satisfaction == pytest.approx(0.6)
        # 0.5 * 0.8 + 1.0 * 0.2
        assert record.context_success[ContextCategory.ARCHITECTURE_REVIEW] == pytest.approx(0.6)
        assert record.expertise_success[ExpertiseLevel.INTERMEDIATE] == pytest.approx(0.6)

    def test_effectiveness_blends_three_signals(self, learner, context):
        learner.record_outcome(self.make_outcome(context, insights_generated=3))
        # (0.6 + 0.6 + 1.0) / 3
        assert learner.get_effectiveness(P.IMPACT_ANALYSIS, context) == pytest.approx(2.2 / 3)

    def test_running_mean_over_uses(self, learner, context):
        learner.record_outcome(self.make_outcome(context, insights_generated=3))
        record = learner.record_outcome(self.make_outcome(context, insights_generated=0))
        assert record.times_used == 2
        assert record.average_insight_quality == pytest.approx(0.5)
        # 0.6 * 0.8 + 0.0 * 0.2
        assert record.context_success[ContextCategory.ARCHITECTURE_REVIEW] == pytest.approx(0.48)

    def test_records_keyed_by_pattern_category_and_expertise(self, learner, context):
        learner.record_outcome(self.make_outcome(context, insights_generated=3))

        other_category = SelectionContext(session_id="s1", category=ContextCategory.CODE_REVIEW)
        other_expertise = SelectionContext(
            session_id="s1",
            category=ContextCategory.ARCHITECTURE_REVIEW,
            user_expertise=ExpertiseLevel.EXPERT,
        )
        assert learner.get_effectiveness(P.VALUE_CLARIFICATION, context) == 0.5
        assert learner.get_effectiveness(P.IMPACT_ANALYSIS, other_category) == 0.5
        assert learner.get_effectiveness(P.IMPACT_ANALYSIS, other_expertise) == 0.5

    def test_follow_ups_counted(self, learner, context):
        learner.record_outcome(self.make_outcome(context, follow_up_used=True))
        record = learner.record_outcome(self.make_outcome(context, follow_up_used=False))
        assert record.successful_follow_ups == 1

    def test_out_of_range_input_is_clamped(self, learner, context):
        record = learner.record_outcome(
            self.make_outcome(context, insights_generated=-4, user_satisfaction=12)
        )
        assert record.average_insight_quality == 0.0
        assert record.average_user_satisfaction == pytest.approx(1.0)

    def test_learning_stays_bounded(self, learner, context):
        """All averages stay in [0, 1] after arbitrary outcome sequences."""
        rng = random.Random(42)
        for _ in range(500):
            learner.record_outcome(self.make_outcome(
                context,
                pattern=rng.choice(list(P)),
                insights_generated=rng.randint(-2, 10),
                user_satisfaction=rng.choice([None, 0, 1, 3, 5, 9]),
                follow_up_used=rng.random() < 0.5,
            ))

        for data in learner.export_records():
            assert 0.0 <= data["average_insight_quality"] <= 1.0
            assert 0.0 <= data["average_user_satisfaction"] <= 1.0
            for value in list(data["context_success"].values()) + list(data["expertise_success"].values()):
                assert 0.0 <= value <= 1.0
        for pattern in P:
            assert 0.0 <= learner.get_effectiveness(pattern, context) <= 1.0

    def test_concurrent_updates_do_not_lose_increments(self, learner, context):
        def worker():
            for _ in range(50):
                learner.record_outcome(self.make_outcome(context, insights_generated=1))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert learner.get_record(P.IMPACT_ANALYSIS, context).times_used == 400

    def test_export_and_load_records(self, learner, context):
        learner.record_outcome(self.make_outcome(context, insights_generated=2, user_satisfaction=4))
        exported = learner.export_records()

        restored = EffectivenessLearner()
        assert restored.load_records(exported) == 1
        assert restored.get_effectiveness(P.IMPACT_ANALYSIS, context) == pytest.approx(
            learner.get_effectiveness(P.IMPACT_ANALYSIS, context)
        )

    def test_reset_clears_records(self, learner, context):
        learner.record_outcome(self.make_outcome(context))
        learner.reset()
        assert len(learner) == 0
        assert learner.get_effectiveness(P.IMPACT_ANALYSIS, context) == 0.5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
