"""
Session Manager for State Persistence

Manages DialogueSessionState persistence using Supabase, with an
in-memory store when no client is configured or the database fails.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    FlowPhase,
    PatternType,
    ProjectPhase,
)
from socratic_flow_engine.session_state import (
    DialogueSessionState,
    DialogueTurn,
    RecentPatternLog,
    SessionObjective,
)

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "dialogue_sessions"


class SessionManager:
    """
    Manages dialogue session persistence in Supabase.

    Each row stores the session id plus the whole state as a JSON column.
    """

    def __init__(self, supabase_client=None, recent_pattern_limit: int = 10):
        """
        Initialize SessionManager.

        Args:
            supabase_client: Supabase client instance (optional)
            recent_pattern_limit: Size of the recent-pattern log on loaded sessions
        """
        self.supabase = supabase_client
        self.use_supabase = supabase_client is not None
        self.recent_pattern_limit = recent_pattern_limit

        # Always initialize in-memory fallback (used in error cases)
        self._in_memory_sessions: Dict[str, DialogueSessionState] = {}

    def session_to_dict(self, session: DialogueSessionState) -> Dict[str, Any]:
        """
        Convert DialogueSessionState to dictionary for storage.

        Args:
            session: DialogueSessionState object

        Returns:
            Dictionary representation (row with a JSON "state" column)
        """
        state = {
            "category": session.category.value,
            "user_expertise": session.user_expertise.value,
            "project_phase": session.project_phase.value if session.project_phase else None,
            "current_phase": session.current_phase.value,
            "current_depth": session.current_depth,
            "turn_count": session.turn_count,
            "current_focus": session.current_focus,
            "extracted_concepts": session.extracted_concepts,
            "detected_assumptions": session.detected_assumptions,
            "known_definitions": session.known_definitions,
            "turns": [
                {
                    "pattern": turn.pattern.value,
                    "turn_number": turn.turn_number,
                    "question": turn.question,
                    "response": turn.response,
                    "depth": turn.depth,
                    "insights": turn.insights,
                    "user_satisfaction": turn.user_satisfaction,
                    "follow_up_generated": turn.follow_up_generated,
                    "timestamp": turn.timestamp.isoformat(),
                }
                for turn in session.turns
            ],
            "objectives": [
                {"description": objective.description, "completed": objective.completed}
                for objective in session.objectives
            ],
            "recent_patterns": [pattern.value for pattern in session.recent_patterns.patterns()],
            "phase_history": [phase.value for phase in session.phase_history],
        }
        return {
            "session_id": session.session_id,
            "state": json.dumps(state),
            "created_at": session.created_at.isoformat() if session.created_at else None,
            "last_updated": session.last_updated.isoformat() if session.last_updated else None,
        }

    def dict_to_session(self, data: Dict[str, Any]) -> DialogueSessionState:
        """
        Convert dictionary to DialogueSessionState object.

        Args:
            data: Dictionary from database

        Returns:
            DialogueSessionState object
        """
        state = data.get("state") or "{}"
        if isinstance(state, str):
            state = json.loads(state)

        created_at = datetime.fromisoformat(data["created_at"]) if data.get("created_at") else datetime.now()
        last_updated = datetime.fromisoformat(data["last_updated"]) if data.get("last_updated") else datetime.now()

        turns = [
            DialogueTurn(
                pattern=PatternType(turn["pattern"]),
                turn_number=turn.get("turn_number", 0),
                question=turn.get("question", ""),
                response=turn.get("response", ""),
                depth=turn.get("depth", 0),
                insights=list(turn.get("insights") or []),
                user_satisfaction=turn.get("user_satisfaction"),
                follow_up_generated=turn.get("follow_up_generated", False),
                timestamp=datetime.fromisoformat(turn["timestamp"]) if turn.get("timestamp") else datetime.now(),
            )
            for turn in state.get("turns", [])
        ]

        project_phase = state.get("project_phase")

        return DialogueSessionState(
            session_id=data["session_id"],
            category=ContextCategory(state.get("category", ContextCategory.GENERAL.value)),
            user_expertise=ExpertiseLevel(state.get("user_expertise", ExpertiseLevel.INTERMEDIATE.value)),
            project_phase=ProjectPhase(project_phase) if project_phase else None,
            current_phase=FlowPhase(state.get("current_phase", FlowPhase.EXPLORING.value)),
            current_depth=state.get("current_depth", 0),
            turn_count=state.get("turn_count", 0),
            current_focus=state.get("current_focus", ""),
            extracted_concepts=list(state.get("extracted_concepts", [])),
            detected_assumptions=list(state.get("detected_assumptions", [])),
            known_definitions=list(state.get("known_definitions", [])),
            turns=turns,
            objectives=[
                SessionObjective(objective["description"], objective.get("completed", False))
                for objective in state.get("objectives", [])
            ],
            recent_patterns=RecentPatternLog(
                self.recent_pattern_limit,
                [PatternType(p) for p in state.get("recent_patterns", [])],
            ),
            phase_history=[FlowPhase(p) for p in state.get("phase_history", [])],
            created_at=created_at,
            last_updated=last_updated,
            session_db_id=data.get("id"),
        )

    async def get_session(self, session_id: str) -> Optional[DialogueSessionState]:
        """
        Load session state from database.

        Args:
            session_id: Session identifier

        Returns:
            DialogueSessionState object or None if not found
        """
        if not self.use_supabase:
            return self._in_memory_sessions.get(session_id)

        try:
            result = self.supabase.table(SESSIONS_TABLE).select('*').eq('session_id', session_id).execute()

            if result.data and len(result.data) > 0:
                return self.dict_to_session(result.data[0])

            return None

        except Exception as e:
            logger.warning(f"⚠️ [SessionManager] Error loading session {session_id} from database: {e}")
            # Fallback to in-memory
            return self._in_memory_sessions.get(session_id)

    async def save_session(self, session: DialogueSessionState) -> bool:
        """
        Save session state to database.

        Args:
            session: DialogueSessionState object to save

        Returns:
            True if saved successfully, False otherwise
        """
        session.last_updated = datetime.now()

        if not self.use_supabase:
            self._in_memory_sessions[session.session_id] = session
            return True

        try:
            session_dict = self.session_to_dict(session)

            if session.session_db_id:
                update_data = {
                    "state": session_dict["state"],
                    "last_updated": session_dict["last_updated"],
                }
                self.supabase.table(SESSIONS_TABLE).update(update_data).eq('id', session.session_db_id).execute()
            else:
                insert_data = {k: v for k, v in session_dict.items() if v is not None}
                result = self.supabase.table(SESSIONS_TABLE).insert(insert_data).execute()

                if result.data and len(result.data) > 0:
                    session.session_db_id = result.data[0].get("id")

            return True

        except Exception as e:
            logger.warning(f"⚠️ [SessionManager] Error saving session {session.session_id} to database: {e}")
            # Fallback to in-memory
            self._in_memory_sessions[session.session_id] = session
            return False

    async def delete_session(self, session_id: str) -> bool:
        """
        Delete session.

        Args:
            session_id: Session identifier

        Returns:
            True if deleted, False otherwise
        """
        removed = self._in_memory_sessions.pop(session_id, None) is not None
        if not self.use_supabase:
            return removed

        try:
            result = self.supabase.table(SESSIONS_TABLE).delete().eq('session_id', session_id).execute()
            return bool(result.data) or removed

        except Exception as e:
            logger.warning(f"⚠️ [SessionManager] Error deleting session {session_id}: {e}")
            return removed
