"""
Dialogue Engine

Facade over the catalog, effectiveness learner, question selector and flow
manager, exposing the per-turn host operations. Sessions are plain state
objects owned by the host; the engine itself keeps only the shared
effectiveness records.
"""

import logging
import uuid
from typing import Iterable, List, Optional

from socratic_flow_engine.config import EngineConfig
from socratic_flow_engine.effectiveness_learner import EffectivenessLearner, EffectivenessRecord
from socratic_flow_engine.errors import UnknownPatternError
from socratic_flow_engine.flow_manager import DialogueFlowManager
from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    FlowAnalysisResult,
    FlowPhase,
    FlowSnapshot,
    PatternOutcome,
    PatternType,
    ProjectPhase,
    SelectionConstraints,
    SelectionResult,
    TransitionCheck,
    TransitionResult,
)
from socratic_flow_engine.pattern_catalog import PatternCatalog
from socratic_flow_engine.question_selector import QuestionSelector
from socratic_flow_engine.session_state import (
    DialogueSessionState,
    DialogueTurn,
    RecentPatternLog,
    SessionObjective,
)

logger = logging.getLogger(__name__)


class DialogueEngine:
    """
    Adaptive pattern selection and flow orchestration.

    Typical turn:
        result = engine.select(session)
        ... ask the question, collect the answer ...
        engine.record_outcome(session, result.selected_pattern, insights=[...], user_satisfaction=4)
        analysis = engine.analyze_flow(session)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        catalog: Optional[PatternCatalog] = None,
        learner: Optional[EffectivenessLearner] = None
    ):
        self.config = config or EngineConfig()
        self.catalog = catalog or PatternCatalog()
        self.learner = learner or EffectivenessLearner(self.config.learning_rate)
        self.selector = QuestionSelector(self.catalog, self.learner, self.config)
        self.flow_manager = DialogueFlowManager(self.config)

    def start_session(
        self,
        session_id: Optional[str] = None,
        category: ContextCategory = ContextCategory.GENERAL,
        user_expertise: ExpertiseLevel = ExpertiseLevel.INTERMEDIATE,
        project_phase: Optional[ProjectPhase] = None,
        current_focus: str = "",
        objectives: Iterable[str] = ()
    ) -> DialogueSessionState:
        """Create a fresh session in the exploring phase."""
        session = DialogueSessionState(
            session_id=session_id or str(uuid.uuid4()),
            category=category,
            user_expertise=user_expertise,
            project_phase=project_phase,
            current_focus=current_focus,
            objectives=[SessionObjective(description) for description in objectives],
            recent_patterns=RecentPatternLog(self.config.recent_pattern_limit),
            phase_history=[FlowPhase.EXPLORING],
        )
        logger.info(
            f"🆕 [DialogueEngine] Started session {session.session_id} "
            f"({category.value}, {user_expertise.value})"
        )
        return session

    def select(
        self,
        session: DialogueSessionState,
        constraints: Optional[SelectionConstraints] = None
    ) -> SelectionResult:
        """
        Pick the next pattern for the session.

        Raises:
            NoEligiblePatternsError: If nothing is eligible
        """
        return self.selector.select_best(session.to_selection_context(), session.recent_patterns, constraints)

    def record_outcome(
        self,
        session: DialogueSessionState,
        pattern: PatternType,
        insights: Iterable[str] = (),
        user_satisfaction: Optional[float] = None,
        follow_up_used: bool = False,
        question: str = "",
        response: str = "",
        depth: Optional[int] = None,
        concepts: Iterable[str] = (),
        assumptions: Iterable[str] = (),
        definitions: Iterable[str] = (),
        led_to_contradiction: bool = False
    ) -> EffectivenessRecord:
        """
        Record what happened after a pattern was asked.

        Updates the shared effectiveness records, then appends the turn to
        the session and merges any new discoveries.

        Raises:
            UnknownPatternError: If the pattern is not in the catalog
        """
        if pattern not in self.catalog:
            raise UnknownPatternError(getattr(pattern, "value", str(pattern)))

        insights = list(insights)
        definitions = list(definitions)
        assumptions = list(assumptions)
        context = session.to_selection_context()
        if user_satisfaction is not None:
            user_satisfaction = self.learner.clamp_satisfaction(user_satisfaction)

        record = self.learner.record_outcome(PatternOutcome(
            pattern=pattern,
            context=context,
            insights_generated=len(insights),
            user_satisfaction=user_satisfaction,
            follow_up_used=follow_up_used,
            led_to_contradiction=led_to_contradiction,
            clarified_definition=bool(definitions),
            uncovered_assumption=bool(assumptions),
        ))

        session.record_turn(DialogueTurn(
            pattern=pattern,
            turn_number=session.turn_count + 1,
            question=question,
            response=response,
            depth=session.current_depth + 1 if depth is None else depth,
            insights=insights,
            user_satisfaction=user_satisfaction,
            follow_up_generated=follow_up_used,
        ))
        session.add_discoveries(concepts, assumptions, definitions)
        return record

    def analyze_flow(self, session: DialogueSessionState) -> FlowAnalysisResult:
        return self.flow_manager.analyze_flow(session)

    def flow_snapshot(self, session: DialogueSessionState) -> FlowSnapshot:
        """Quick classification from the pattern history alone."""
        return self.selector.analyze_dialogue_flow(session.to_selection_context(), session.pattern_history())

    def transition(self, session: DialogueSessionState, to_phase: FlowPhase) -> TransitionResult:
        return self.flow_manager.transition_to_phase(session, session.current_phase, to_phase)

    def should_transition(self, session: DialogueSessionState) -> TransitionCheck:
        return self.flow_manager.should_transition(session)

    def list_patterns(self) -> List[PatternType]:
        return [pattern.type for pattern in self.catalog.get_all_patterns()]
