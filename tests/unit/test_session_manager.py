"""
Unit Tests for Session Manager

Tests in-memory persistence, row conversion and the Supabase code path
against a small fake client.
"""

import json
import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "socratic_flow_engine", "src"))

from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    FlowPhase,
    PatternType,
    ProjectPhase,
)
from socratic_flow_engine.session_manager import SESSIONS_TABLE, SessionManager
from socratic_flow_engine.session_state import (
    DialogueSessionState,
    DialogueTurn,
    SessionObjective,
)


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records the chained calls of a supabase table query."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.operation = None
        self.payload = None
        self.filters = []

    def select(self, columns):
        self.operation = "select"
        return self

    def insert(self, payload):
        self.operation, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.operation, self.payload = "update", payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def execute(self):
        if self.client.fail:
            raise ConnectionError("database unavailable")
        self.client.calls.append(self)
        rows = self.client.rows
        if self.operation == "insert":
            row = dict(self.payload, id="row-1")
            rows.append(row)
            return FakeResult([row])
        matching = [
            row for row in rows
            if all(row.get(column) == value for column, value in self.filters)
        ]
        if self.operation == "delete":
            for row in matching:
                rows.remove(row)
        elif self.operation == "update":
            for row in matching:
                row.update(self.payload)
        return FakeResult(matching)


class FakeSupabase:
    def __init__(self, fail=False):
        self.fail = fail
        self.rows = []
        self.calls = []

    def table(self, name):
        return FakeQuery(self, name)


def make_session(session_id="session-1"):
    session = DialogueSessionState(
        session_id=session_id,
        category=ContextCategory.ARCHITECTURE_REVIEW,
        user_expertise=ExpertiseLevel.ADVANCED,
        project_phase=ProjectPhase.DESIGN,
        current_phase=FlowPhase.DEEPENING,
        current_focus="event sourcing",
        objectives=[SessionObjective("agree on boundaries", completed=True)],
        phase_history=[FlowPhase.EXPLORING, FlowPhase.DEEPENING],
    )
    session.record_turn(DialogueTurn(
        pattern=PatternType.CONSISTENCY_TESTING,
        turn_number=1,
        question="Does this hold under replay?",
        depth=2,
        insights=["replay must be idempotent"],
        user_satisfaction=4,
    ))
    session.recent_patterns.record(PatternType.CONSISTENCY_TESTING)
    session.add_discoveries(concepts=["event store"], assumptions=["events are ordered"])
    return session


class TestSessionManager:
    """Test suite for SessionManager."""

    @pytest.mark.asyncio
    async def test_in_memory_save_get_delete(self):
        manager = SessionManager()
        session = make_session()

        assert await manager.get_session(session.session_id) is None
        assert await manager.save_session(session)
        assert await manager.get_session(session.session_id) is session

        assert await manager.delete_session(session.session_id)
        assert await manager.get_session(session.session_id) is None
        assert not await manager.delete_session(session.session_id)

    def test_row_conversion_keeps_state(self):
        manager = SessionManager()
        session = make_session()

        row = manager.session_to_dict(session)
        assert isinstance(row["state"], str)
        assert json.loads(row["state"])["current_phase"] == "deepening"

        restored = manager.dict_to_session(dict(row, id="db-7"))
        assert restored.session_id == session.session_id
        assert restored.session_db_id == "db-7"
        assert restored.category == ContextCategory.ARCHITECTURE_REVIEW
        assert restored.project_phase == ProjectPhase.DESIGN
        assert restored.turn_count == 1
        assert restored.current_depth == 2
        assert restored.turns[0].pattern == PatternType.CONSISTENCY_TESTING
        assert restored.turns[0].insights == ["replay must be idempotent"]
        assert restored.objectives[0].completed
        assert restored.recent_patterns.patterns() == [PatternType.CONSISTENCY_TESTING]
        assert restored.phase_history == [FlowPhase.EXPLORING, FlowPhase.DEEPENING]
        assert restored.detected_assumptions == ["events are ordered"]

    def test_state_column_may_be_decoded_json(self):
        manager = SessionManager()
        restored = manager.dict_to_session({"session_id": "s2", "state": {"current_phase": "clarifying"}})
        assert restored.current_phase == FlowPhase.CLARIFYING
        assert restored.category == ContextCategory.GENERAL

    @pytest.mark.asyncio
    async def test_supabase_insert_then_update(self):
        client = FakeSupabase()
        manager = SessionManager(client)
        session = make_session()

        assert await manager.save_session(session)
        assert session.session_db_id == "row-1"
        assert client.calls[-1].table == SESSIONS_TABLE
        assert client.calls[-1].operation == "insert"

        session.current_phase = FlowPhase.CLARIFYING
        assert await manager.save_session(session)
        assert client.calls[-1].operation == "update"
        assert client.calls[-1].filters == [("id", "row-1")]

        loaded = await manager.get_session(session.session_id)
        assert loaded is not session
        assert loaded.current_phase == FlowPhase.CLARIFYING

        assert await manager.delete_session(session.session_id)
        assert await manager.get_session(session.session_id) is None

    @pytest.mark.asyncio
    async def test_database_failure_falls_back_to_memory(self):
        manager = SessionManager(FakeSupabase(fail=True))
        session = make_session()

        assert not await manager.save_session(session)
        assert await manager.get_session(session.session_id) is session
        assert await manager.delete_session(session.session_id)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
