"""
Phase classification helpers shared by the selector and the flow manager.
"""

from typing import Dict, Mapping, Sequence, Tuple

from socratic_flow_engine.models import PHASE_ORDER, FlowPhase, PatternType, clamp
from socratic_flow_engine.tables import PHASE_AFFINITY, PHASE_PREFERRED_PATTERNS

CLASSIFICATION_WINDOW = 5
VARIETY_WINDOW = 10


def classify_phase(
    pattern_history: Sequence[PatternType],
    current_depth: int,
    turn_count: int,
    affinity: Mapping[PatternType, FlowPhase] = PHASE_AFFINITY
) -> FlowPhase:
    """
    Classify the conversational phase from the last five patterns.

    A phase needs at least two votes to win; ties go to the earlier phase.
    Without a clear winner the depth/turn heuristics decide.
    """
    counts: Dict[FlowPhase, int] = {phase: 0 for phase in PHASE_ORDER}
    for pattern in list(pattern_history)[-CLASSIFICATION_WINDOW:]:
        phase = affinity.get(pattern)
        if phase is not None:
            counts[phase] += 1

    max_count = max(counts.values())
    if max_count >= 2:
        return next(phase for phase in PHASE_ORDER if counts[phase] == max_count)

    if current_depth <= 2:
        return FlowPhase.EXPLORING
    if current_depth <= 4:
        return FlowPhase.DEEPENING
    if current_depth <= 6:
        return FlowPhase.CLARIFYING
    if turn_count > 15:
        return FlowPhase.CONCLUDING
    return FlowPhase.SYNTHESIZING


def phase_confidence(
    phase: FlowPhase,
    pattern_history: Sequence[PatternType],
    expected: Mapping[FlowPhase, Tuple[PatternType, ...]] = PHASE_PREFERRED_PATTERNS
) -> float:
    """Alignment of the last five patterns with the phase, scaled to 0.2-1.0 plus a data bonus."""
    recent = list(pattern_history)[-CLASSIFICATION_WINDOW:]
    if not recent:
        return 0.5

    expected_patterns = expected.get(phase, ())
    alignment = sum(1 for pattern in recent if pattern in expected_patterns) / len(recent)
    data_bonus = min(len(recent) / CLASSIFICATION_WINDOW, 1.0) * 0.1
    return clamp(alignment * 0.8 + 0.2 + data_bonus)


def variety_score(pattern_history: Sequence[PatternType]) -> float:
    """Unique patterns over the count of the last ten; 0.5 with no history."""
    recent = list(pattern_history)[-VARIETY_WINDOW:]
    if not recent:
        return 0.5
    return len(set(recent)) / len(recent)
