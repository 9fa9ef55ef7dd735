"""
Effectiveness Learner

Online, bounded learning of how well each question pattern works for a
given (context category, expertise tier) pair.

Algorithm:
- insight score = min(insights / 3, 1)
- running means of insight quality and satisfaction over times used
- per-category and per-expertise success tracked by exponential smoothing:
  new = old * (1 - alpha) + insight_score * alpha

The record map is shared by every session; each update is a single
read-modify-write under one lock so concurrent outcomes never lose
increments.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    PatternOutcome,
    PatternType,
    SelectionContext,
    clamp,
)

logger = logging.getLogger(__name__)

RecordKey = Tuple[PatternType, ContextCategory, ExpertiseLevel]


@dataclass(frozen=True)
class EffectivenessRecord:
    """Outcome statistics for one (pattern, category, expertise) key."""
    pattern: PatternType
    category: ContextCategory
    expertise: ExpertiseLevel
    times_used: int = 0
    average_insight_quality: float = 0.5
    average_user_satisfaction: float = 0.5  # normalized to 0-1 (rating / 5)
    successful_follow_ups: int = 0
    context_success: Mapping[ContextCategory, float] = field(default_factory=dict)
    expertise_success: Mapping[ExpertiseLevel, float] = field(default_factory=dict)

    @property
    def key(self) -> RecordKey:
        return (self.pattern, self.category, self.expertise)


class EffectivenessLearner:
    """
    Maintains effectiveness records for all patterns.

    Records are created lazily with neutral defaults and live for the
    lifetime of the learner.
    """

    # Thresholds
    NEUTRAL_SCORE = 0.5
    DEFAULT_SATISFACTION = 3.0
    MIN_SATISFACTION = 1.0
    MAX_SATISFACTION = 5.0
    INSIGHTS_FOR_FULL_SCORE = 3

    def __init__(self, learning_rate: float = 0.2):
        """
        Initialize the learner.

        Args:
            learning_rate: Smoothing factor alpha for the moving averages (0-1]
        """
        self.learning_rate = learning_rate
        self._records: Dict[RecordKey, EffectivenessRecord] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(pattern: PatternType, context: SelectionContext) -> RecordKey:
        return (pattern, context.category, context.user_expertise)

    def record_outcome(self, outcome: PatternOutcome) -> EffectivenessRecord:
        """
        Fold one turn outcome into the matching record.

        Args:
            outcome: What happened after the pattern was asked

        Returns:
            The updated record
        """
        insight_score = self._insight_score(outcome.insights_generated)
        satisfaction = self._normalized_satisfaction(outcome.user_satisfaction)
        key = self.make_key(outcome.pattern, outcome.context)
        alpha = self.learning_rate

        with self._lock:
            current = self._records.get(key) or EffectivenessRecord(
                pattern=outcome.pattern,
                category=outcome.context.category,
                expertise=outcome.context.user_expertise,
            )
            times_used = current.times_used + 1

            context_success = dict(current.context_success)
            old = context_success.get(current.category, self.NEUTRAL_SCORE)
            context_success[current.category] = clamp(old * (1 - alpha) + insight_score * alpha)

            expertise_success = dict(current.expertise_success)
            old = expertise_success.get(current.expertise, self.NEUTRAL_SCORE)
            expertise_success[current.expertise] = clamp(old * (1 - alpha) + insight_score * alpha)

            updated = replace(
                current,
                times_used=times_used,
                average_insight_quality=self._running_mean(
                    current.average_insight_quality, insight_score, times_used
                ),
                average_user_satisfaction=self._running_mean(
                    current.average_user_satisfaction, satisfaction, times_used
                ),
                successful_follow_ups=current.successful_follow_ups + (1 if outcome.follow_up_used else 0),
                context_success=context_success,
                expertise_success=expertise_success,
            )
            self._records[key] = updated

        logger.debug(
            f"📈 [EffectivenessLearner] {outcome.pattern.value} "
            f"({outcome.context.category.value}/{outcome.context.user_expertise.value}): "
            f"uses={updated.times_used}, insight={updated.average_insight_quality:.2f}"
        )
        return updated

    def get_effectiveness(self, pattern: PatternType, context: SelectionContext) -> float:
        """
        Blended effectiveness estimate (pure read).

        Returns:
            Mean of category success, expertise success and insight quality,
            or 0.5 when the key has never been seen
        """
        record = self.get_record(pattern, context)
        if record is None:
            return self.NEUTRAL_SCORE

        category_score = record.context_success.get(context.category, self.NEUTRAL_SCORE)
        expertise_score = record.expertise_success.get(context.user_expertise, self.NEUTRAL_SCORE)
        return clamp((category_score + expertise_score + record.average_insight_quality) / 3)

    def get_record(self, pattern: PatternType, context: SelectionContext) -> Optional[EffectivenessRecord]:
        with self._lock:
            return self._records.get(self.make_key(pattern, context))

    def export_records(self) -> List[Dict[str, Any]]:
        """Snapshot all records as plain dicts (JSON friendly)."""
        with self._lock:
            records = list(self._records.values())
        return [record_to_dict(record) for record in records]

    def load_records(self, data: Iterable[Dict[str, Any]]) -> int:
        """
        Replace matching records with previously exported ones.

        Returns:
            Number of records loaded
        """
        parsed = [record_from_dict(item) for item in data]
        with self._lock:
            for record in parsed:
                self._records[record.key] = record
        logger.info(f"📥 [EffectivenessLearner] Loaded {len(parsed)} effectiveness records")
        return len(parsed)

    def reset(self):
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _insight_score(self, insights: int) -> float:
        if insights < 0:
            logger.warning(f"⚠️ [EffectivenessLearner] Negative insight count {insights}, using 0")
            insights = 0
        return min(insights / self.INSIGHTS_FOR_FULL_SCORE, 1.0)

    def clamp_satisfaction(self, satisfaction: float) -> float:
        """Bring a rating into the 1-5 scale, warning when it was outside."""
        if not self.MIN_SATISFACTION <= satisfaction <= self.MAX_SATISFACTION:
            logger.warning(
                f"⚠️ [EffectivenessLearner] Satisfaction {satisfaction} outside "
                f"{self.MIN_SATISFACTION:.0f}-{self.MAX_SATISFACTION:.0f}, clamping"
            )
            satisfaction = clamp(satisfaction, self.MIN_SATISFACTION, self.MAX_SATISFACTION)
        return satisfaction

    def _normalized_satisfaction(self, satisfaction: Optional[float]) -> float:
        if satisfaction is None:
            satisfaction = self.DEFAULT_SATISFACTION
        return self.clamp_satisfaction(satisfaction) / self.MAX_SATISFACTION

    @staticmethod
    def _running_mean(old: float, sample: float, count: int) -> float:
        return clamp((old * (count - 1) + sample) / count)


def record_to_dict(record: EffectivenessRecord) -> Dict[str, Any]:
    return {
        "pattern": record.pattern.value,
        "category": record.category.value,
        "expertise": record.expertise.value,
        "times_used": record.times_used,
        "average_insight_quality": record.average_insight_quality,
        "average_user_satisfaction": record.average_user_satisfaction,
        "successful_follow_ups": record.successful_follow_ups,
        "context_success": {k.value: v for k, v in record.context_success.items()},
        "expertise_success": {k.value: v for k, v in record.expertise_success.items()},
    }


def record_from_dict(data: Dict[str, Any]) -> EffectivenessRecord:
    return EffectivenessRecord(
        pattern=PatternType(data["pattern"]),
        category=ContextCategory(data["category"]),
        expertise=ExpertiseLevel(data["expertise"]),
        times_used=int(data.get("times_used", 0)),
        average_insight_quality=clamp(float(data.get("average_insight_quality", 0.5))),
        average_user_satisfaction=clamp(float(data.get("average_user_satisfaction", 0.5))),
        successful_follow_ups=int(data.get("successful_follow_ups", 0)),
        context_success={
            ContextCategory(k): clamp(float(v))
            for k, v in (data.get("context_success") or {}).items()
        },
        expertise_success={
            ExpertiseLevel(k): clamp(float(v))
            for k, v in (data.get("expertise_success") or {}).items()
        },
    )
