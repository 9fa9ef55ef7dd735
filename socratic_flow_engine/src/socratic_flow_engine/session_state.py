"""
Session State Data Model

Defines the host-owned per-session state passed into every engine call:
turn history, objectives, the recent-pattern log and the phase history.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Iterable, List, Optional

from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    FlowPhase,
    PatternType,
    ProjectPhase,
    SelectionContext,
)

MAX_KEPT_TURNS = 50


class RecentPatternLog:
    """Bounded FIFO of the patterns most recently selected in a session."""

    def __init__(self, limit: int = 10, patterns: Optional[Iterable[PatternType]] = None):
        self.limit = limit
        self._patterns: Deque[PatternType] = deque(patterns or (), maxlen=limit)

    def record(self, pattern: PatternType):
        self._patterns.append(pattern)

    def count(self, pattern: PatternType) -> int:
        return self._patterns.count(pattern)

    def patterns(self) -> List[PatternType]:
        """Patterns oldest first."""
        return list(self._patterns)

    def last(self, n: int) -> List[PatternType]:
        if n <= 0:
            return []
        return list(self._patterns)[-n:]

    def __len__(self) -> int:
        return len(self._patterns)


@dataclass
class DialogueTurn:
    """One question/answer exchange."""
    pattern: PatternType
    turn_number: int
    question: str = ""
    response: str = ""
    depth: int = 0
    insights: List[str] = field(default_factory=list)
    user_satisfaction: Optional[float] = None  # 1-5
    follow_up_generated: bool = False
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class SessionObjective:
    description: str
    completed: bool = False


@dataclass
class DialogueSessionState:
    """Mutable state of one dialogue session, owned by the host."""
    session_id: str
    category: ContextCategory = ContextCategory.GENERAL
    user_expertise: ExpertiseLevel = ExpertiseLevel.INTERMEDIATE
    project_phase: Optional[ProjectPhase] = None
    current_phase: FlowPhase = FlowPhase.EXPLORING
    current_depth: int = 0
    turn_count: int = 0
    current_focus: str = ""
    extracted_concepts: List[str] = field(default_factory=list)
    detected_assumptions: List[str] = field(default_factory=list)
    known_definitions: List[str] = field(default_factory=list)
    turns: List[DialogueTurn] = field(default_factory=list)
    objectives: List[SessionObjective] = field(default_factory=list)
    recent_patterns: RecentPatternLog = field(default_factory=RecentPatternLog)
    phase_history: List[FlowPhase] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_updated: datetime = field(default_factory=datetime.now)
    # Database ID for persistence
    session_db_id: Optional[str] = None

    def to_selection_context(self) -> SelectionContext:
        """Fresh immutable snapshot for the selection engine."""
        return SelectionContext(
            session_id=self.session_id,
            category=self.category,
            user_expertise=self.user_expertise,
            current_depth=self.current_depth,
            turn_count=self.turn_count,
            conversation_flow=self.current_phase,
            extracted_concepts=tuple(self.extracted_concepts),
            detected_assumptions=tuple(self.detected_assumptions),
            known_definitions=tuple(self.known_definitions),
            current_focus=self.current_focus,
            project_phase=self.project_phase,
        )

    def record_turn(self, turn: DialogueTurn):
        """Append a turn, keeping only the most recent ones."""
        self.turns.append(turn)
        if len(self.turns) > MAX_KEPT_TURNS:
            self.turns = self.turns[-MAX_KEPT_TURNS:]
        self.turn_count += 1
        self.current_depth = turn.depth
        self.last_updated = datetime.now()

    def add_discoveries(
        self,
        concepts: Iterable[str] = (),
        assumptions: Iterable[str] = (),
        definitions: Iterable[str] = ()
    ):
        """Merge newly extracted concepts, assumptions and definitions (deduplicated)."""
        for target, items in (
            (self.extracted_concepts, concepts),
            (self.detected_assumptions, assumptions),
            (self.known_definitions, definitions),
        ):
            for item in items:
                if item and item not in target:
                    target.append(item)

    def pattern_history(self) -> List[PatternType]:
        """Patterns of the kept turns, oldest first."""
        return [turn.pattern for turn in self.turns]

    def completed_objectives(self) -> int:
        return sum(1 for objective in self.objectives if objective.completed)
