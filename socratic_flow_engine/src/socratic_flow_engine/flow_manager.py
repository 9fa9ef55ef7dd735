"""
Dialogue Flow Manager

Finite-state tracking of the conversational phase:
exploring -> deepening -> clarifying -> synthesizing -> concluding

Computes phase metrics and progress, suggests (never applies) transitions,
and validates/applies requested transitions against a static rule table.
"concluding" is absorbing: the only move out of it is to itself.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence

from socratic_flow_engine.config import EngineConfig
from socratic_flow_engine.models import (
    FlowAnalysisResult,
    FlowPhase,
    FlowPhaseMetrics,
    PatternType,
    ProgressAssessment,
    SelectionContext,
    TransitionCheck,
    TransitionResult,
    clamp,
    phase_rank,
)
from socratic_flow_engine.phase_classifier import phase_confidence, variety_score
from socratic_flow_engine.session_state import DialogueSessionState, DialogueTurn
from socratic_flow_engine.tables import (
    DEFAULT_TRANSITION_RULES,
    FlowPhaseConfig,
    FlowTransitionRule,
    build_phase_configs,
)

logger = logging.getLogger(__name__)

_NEXT_PHASE: Dict[FlowPhase, FlowPhase] = {
    FlowPhase.EXPLORING: FlowPhase.DEEPENING,
    FlowPhase.DEEPENING: FlowPhase.CLARIFYING,
    FlowPhase.CLARIFYING: FlowPhase.SYNTHESIZING,
    FlowPhase.SYNTHESIZING: FlowPhase.CONCLUDING,
    FlowPhase.CONCLUDING: FlowPhase.CONCLUDING,
}

# One step back to re-establish foundation; exploring and concluding stay put
# (concluding is absorbing, which overrides the one-step-back rule)
_RECOVERY_PHASE: Dict[FlowPhase, FlowPhase] = {
    FlowPhase.EXPLORING: FlowPhase.EXPLORING,
    FlowPhase.DEEPENING: FlowPhase.EXPLORING,
    FlowPhase.CLARIFYING: FlowPhase.DEEPENING,
    FlowPhase.SYNTHESIZING: FlowPhase.CLARIFYING,
    FlowPhase.CONCLUDING: FlowPhase.CONCLUDING,
}


class DialogueFlowManager:
    """
    Tracks and transitions the conversational phase of a session.

    Holds only immutable configuration; the phase history lives on the
    session state passed into each call.
    """

    # Thresholds
    TURNS_IN_PHASE_CAP = 20
    HIGH_EFFECTIVENESS = 0.7
    LOW_EFFECTIVENESS = 0.4
    READY_TO_TRANSITION = 0.7
    LOW_EFFECTIVENESS_MIN_TURNS = 5

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        transition_rules: Sequence[FlowTransitionRule] = DEFAULT_TRANSITION_RULES,
        phase_configs: Optional[Mapping[FlowPhase, FlowPhaseConfig]] = None
    ):
        self.config = config or EngineConfig()
        self.transition_rules = tuple(transition_rules)
        self.phase_configs = phase_configs or build_phase_configs(self.config.max_turns_in_phase)

    def analyze_flow(
        self,
        session: DialogueSessionState,
        recent_turns: Optional[Sequence[DialogueTurn]] = None,
        pattern_history: Optional[Sequence[PatternType]] = None
    ) -> FlowAnalysisResult:
        """
        Full flow analysis for a session.

        Args:
            session: Session state
            recent_turns: Turns to analyze (defaults to the session's kept turns)
            pattern_history: Patterns used (defaults to the patterns of those turns)

        Returns:
            FlowAnalysisResult with metrics, progress, recommendations and an
            optional suggested phase
        """
        turns = list(session.turns if recent_turns is None else recent_turns)
        history = list(session.pattern_history() if pattern_history is None else pattern_history)
        phase = session.current_phase

        metrics = self.calculate_phase_metrics(turns, history)
        progress = self.assess_progress(session, turns, metrics)
        suggested = self.suggest_transition(phase, metrics, progress)
        transition_confidence = (
            self.calculate_transition_confidence(phase, suggested, metrics)
            if suggested is not None else None
        )

        return FlowAnalysisResult(
            current_phase=phase,
            phase_confidence=phase_confidence(phase, history),
            phase_metrics=metrics,
            progress=progress,
            recommendations=self.generate_recommendations(phase, metrics, progress, suggested),
            suggested_phase=suggested,
            transition_confidence=transition_confidence,
        )

    def calculate_phase_metrics(
        self,
        recent_turns: Sequence[DialogueTurn],
        pattern_history: Sequence[PatternType]
    ) -> FlowPhaseMetrics:
        # Approximation: every recent turn counts as a turn in the current phase
        turns_in_phase = min(len(recent_turns), self.TURNS_IN_PHASE_CAP)

        patterns_used = {pattern: 0 for pattern in PatternType}
        for pattern in pattern_history:
            patterns_used[pattern] += 1

        insights = sum(len(turn.insights) for turn in recent_turns)
        average_depth = (
            sum(turn.depth for turn in recent_turns) / len(recent_turns)
            if recent_turns else 0.0
        )

        rated = [
            clamp(turn.user_satisfaction, 1.0, 5.0)
            for turn in recent_turns if turn.user_satisfaction is not None
        ]
        effectiveness = clamp(sum(rated) / len(rated) / 5) if rated else 0.5

        return FlowPhaseMetrics(
            turns_in_phase=turns_in_phase,
            patterns_used=patterns_used,
            insights_generated=insights,
            average_depth=average_depth,
            variety_score=variety_score(pattern_history),
            effectiveness=effectiveness,
        )

    def assess_progress(
        self,
        session: DialogueSessionState,
        recent_turns: Sequence[DialogueTurn],
        metrics: FlowPhaseMetrics
    ) -> ProgressAssessment:
        total_objectives = len(session.objectives)
        objective_alignment = (
            session.completed_objectives() / total_objectives if total_objectives else 0.5
        )

        recent_insights = sum(len(turn.insights) for turn in recent_turns)
        insight_quality = min(recent_insights / len(recent_turns), 1.0) if recent_turns else 0.0

        engagement = metrics.effectiveness
        readiness = self.calculate_transition_readiness(session.current_phase, metrics)

        overall = clamp(
            objective_alignment * 0.3
            + insight_quality * 0.25
            + engagement * 0.25
            + metrics.variety_score * 0.2
        )

        return ProgressAssessment(
            overall_progress=overall,
            objective_alignment=objective_alignment,
            insight_quality=insight_quality,
            participant_engagement=engagement,
            readiness_for_transition=readiness,
            completion_likelihood=min(overall * 1.2, 1.0),
        )

    def calculate_transition_readiness(self, phase: FlowPhase, metrics: FlowPhaseMetrics) -> float:
        required = self.phase_configs[phase].min_insights_required
        insight_ratio = min(metrics.insights_generated / required, 1.0) if required > 0 else 1.0
        return clamp(insight_ratio * 0.4 + metrics.variety_score * 0.3 + metrics.effectiveness * 0.3)

    def suggest_transition(
        self,
        phase: FlowPhase,
        metrics: FlowPhaseMetrics,
        progress: ProgressAssessment
    ) -> Optional[FlowPhase]:
        """Proposed next phase, or None to stay put."""
        if metrics.effectiveness > self.HIGH_EFFECTIVENESS and progress.readiness_for_transition < 0.6:
            return None

        if phase == FlowPhase.EXPLORING:
            if metrics.variety_score > 0.6 or metrics.turns_in_phase > 8:
                return FlowPhase.DEEPENING
        elif phase == FlowPhase.DEEPENING:
            if metrics.insights_generated > 3 or progress.insight_quality > 0.7:
                return FlowPhase.CLARIFYING
        elif phase == FlowPhase.CLARIFYING:
            if progress.objective_alignment > 0.6:
                return FlowPhase.SYNTHESIZING
        elif phase == FlowPhase.SYNTHESIZING:
            if progress.overall_progress > 0.8:
                return FlowPhase.CONCLUDING

        return None

    def calculate_transition_confidence(
        self,
        from_phase: FlowPhase,
        to_phase: FlowPhase,
        metrics: FlowPhaseMetrics
    ) -> float:
        rule = self.find_rule(from_phase, to_phase)
        if rule is None:
            return 0.1

        effectiveness_bonus = 0.1 if metrics.effectiveness > 0.5 else -0.1
        variety_bonus = 0.1 if metrics.variety_score > 0.6 else 0.0
        return clamp(rule.base_confidence + effectiveness_bonus + variety_bonus)

    def generate_recommendations(
        self,
        phase: FlowPhase,
        metrics: FlowPhaseMetrics,
        progress: ProgressAssessment,
        suggested: Optional[FlowPhase] = None
    ) -> List[str]:
        recommendations = []

        if metrics.effectiveness < self.LOW_EFFECTIVENESS:
            recommendations.append(
                f"Consider different patterns - current effectiveness is low in {phase.value} phase"
            )
        if metrics.variety_score < 0.3:
            recommendations.append("Increase pattern variety to explore different perspectives")
        if progress.participant_engagement < 0.5:
            recommendations.append("Focus on improving participant engagement through more relevant questions")
        if suggested is not None:
            recommendations.append(f"Consider transitioning to {suggested.value} phase for better progress")
        if progress.objective_alignment < 0.3:
            recommendations.append("Realign dialogue with session objectives")
        if progress.insight_quality < 0.4:
            recommendations.append("Focus on generating higher quality insights through deeper questioning")

        return recommendations

    def transition_to_phase(
        self,
        session: DialogueSessionState,
        from_phase: FlowPhase,
        to_phase: FlowPhase,
        context: Optional[SelectionContext] = None
    ) -> TransitionResult:
        """
        Validate and apply a phase transition.

        Invalid moves return success=False with the context unchanged.
        Timing, rapid and back transitions produce warnings only, unless
        back transitions are disabled in the configuration.
        """
        context = context or session.to_selection_context()

        if from_phase == to_phase:
            session.phase_history.append(to_phase)
            session.current_phase = to_phase
            return TransitionResult(
                success=True,
                new_context=replace(context, conversation_flow=to_phase),
            )

        rule = self.find_rule(from_phase, to_phase)
        if rule is None:
            logger.warning(
                f"⚠️ [FlowManager] Session {session.session_id}: no valid transition "
                f"from {from_phase.value} to {to_phase.value}"
            )
            return TransitionResult(
                success=False,
                new_context=context,
                warnings=[f"No valid transition from {from_phase.value} to {to_phase.value}"],
            )

        warnings = []
        if context.turn_count < rule.min_turns:
            warnings.append(f"Transition may be premature - minimum {rule.min_turns} turns recommended")
        if rule.max_turns is not None and context.turn_count > rule.max_turns:
            warnings.append(f"Transition is overdue - maximum {rule.max_turns} turns exceeded")

        back = self.is_back_transition(from_phase, to_phase)
        if back and not self.config.allow_back_transitions:
            logger.warning(
                f"⚠️ [FlowManager] Session {session.session_id}: back transition "
                f"{from_phase.value} -> {to_phase.value} blocked by configuration"
            )
            warnings.append("Back transition blocked - back transitions are disabled")
            return TransitionResult(success=False, new_context=context, warnings=warnings)

        session.phase_history.append(to_phase)
        if self.is_rapid_transition(session.phase_history):
            warnings.append("Rapid phase transitions detected - consider slowing down")
        if back:
            warnings.append("Back transition detected - consider if more exploration is needed")

        session.current_phase = to_phase
        logger.info(
            f"🔀 [FlowManager] Session {session.session_id}: {from_phase.value} -> {to_phase.value}"
            + (f" ({len(warnings)} warnings)" if warnings else "")
        )

        return TransitionResult(
            success=True,
            new_context=replace(context, conversation_flow=to_phase),
            warnings=warnings,
        )

    def should_transition(
        self,
        session: DialogueSessionState,
        metrics: Optional[FlowPhaseMetrics] = None
    ) -> TransitionCheck:
        """Shorthand check used independently of the full analysis."""
        phase = session.current_phase
        phase_config = self.phase_configs[phase]
        if metrics is None:
            metrics = self.calculate_phase_metrics(session.turns, session.pattern_history())

        if metrics.turns_in_phase >= phase_config.max_turns:
            return TransitionCheck(
                should_transition=True,
                reason="Maximum turns in current phase reached",
                suggested_phase=self.next_phase(phase),
            )

        if metrics.insights_generated >= phase_config.min_insights_required:
            if self.calculate_transition_readiness(phase, metrics) > self.READY_TO_TRANSITION:
                return TransitionCheck(
                    should_transition=True,
                    reason="Sufficient insights generated and high readiness score",
                    suggested_phase=self.next_phase(phase),
                )

        if (metrics.effectiveness < self.LOW_EFFECTIVENESS
                and metrics.turns_in_phase > self.LOW_EFFECTIVENESS_MIN_TURNS):
            return TransitionCheck(
                should_transition=True,
                reason="Low effectiveness in current phase",
                suggested_phase=self.recovery_phase(phase),
            )

        return TransitionCheck(should_transition=False, reason="Current phase is productive")

    def get_preferred_patterns(self, phase: FlowPhase) -> List[PatternType]:
        phase_config = self.phase_configs.get(phase)
        return list(phase_config.preferred_patterns) if phase_config else []

    def find_rule(self, from_phase: FlowPhase, to_phase: FlowPhase) -> Optional[FlowTransitionRule]:
        for rule in self.transition_rules:
            if rule.from_phase == from_phase and rule.to_phase == to_phase:
                return rule
        return None

    @staticmethod
    def next_phase(phase: FlowPhase) -> FlowPhase:
        return _NEXT_PHASE[phase]

    @staticmethod
    def recovery_phase(phase: FlowPhase) -> FlowPhase:
        return _RECOVERY_PHASE[phase]

    @staticmethod
    def is_back_transition(from_phase: FlowPhase, to_phase: FlowPhase) -> bool:
        return phase_rank(to_phase) < phase_rank(from_phase)

    @staticmethod
    def is_rapid_transition(phase_history: Sequence[FlowPhase]) -> bool:
        """Last three logged phases all different."""
        if len(phase_history) < 3:
            return False
        return len(set(phase_history[-3:])) == 3
