"""
End-to-End Tests for the REST API

Runs the FastAPI app in-process with in-memory session storage.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "socratic_flow_engine", "src"))
sys.path.insert(0, os.path.join(project_root, "backend"))

from fastapi.testclient import TestClient

import main


@pytest.fixture
def client(monkeypatch):
    """Fresh engine and in-memory session store for every test."""
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)
    monkeypatch.setattr(main, "_engine", None)
    monkeypatch.setattr(main, "_session_manager", None)
    monkeypatch.setattr(main, "_session_locks", {})
    return TestClient(main.app)


def start(client, **payload):
    response = client.post("/api/sessions", json=payload)
    assert response.status_code == 201
    return response.json()["session_id"]


class TestSessionEndpoints:
    """Session lifecycle over HTTP."""

    def test_health(self, client):
        data = client.get("/").json()
        assert data["status"] == "ok"
        assert data["patterns"] == 10
        assert data["supabase_connected"] is False

    def test_list_patterns(self, client):
        patterns = client.get("/api/patterns").json()["patterns"]
        assert len(patterns) == 10
        assert {p["type"] for p in patterns} >= {"definition_seeking", "impact_analysis"}

    def test_create_and_fetch_session(self, client):
        session_id = start(
            client,
            session_id="api-1",
            category="architecture_review",
            user_expertise="advanced",
            objectives=["choose a messaging approach"],
        )
        assert session_id == "api-1"

        data = client.get("/api/sessions/api-1").json()
        assert data["current_phase"] == "exploring"
        assert data["phase_history"] == ["exploring"]
        assert data["objectives"] == [{"description": "choose a messaging approach", "completed": False}]

    def test_duplicate_session_conflicts(self, client):
        start(client, session_id="dup")
        assert client.post("/api/sessions", json={"session_id": "dup"}).status_code == 409

    def test_invalid_category_rejected(self, client):
        assert client.post("/api/sessions", json={"category": "astrology"}).status_code == 422

    def test_missing_session(self, client):
        assert client.get("/api/sessions/nope").status_code == 404
        assert client.post("/api/sessions/nope/select").status_code == 404
        assert client.delete("/api/sessions/nope").status_code == 404

    def test_unknown_sessions_leave_no_locks(self, client):
        for session_id in ("ghost-1", "ghost-2"):
            assert client.post(f"/api/sessions/{session_id}/select").status_code == 404
            assert client.post(f"/api/sessions/{session_id}/transition",
                               json={"to_phase": "deepening"}).status_code == 404
        assert main._session_locks == {}

        session_id = start(client)
        client.post(f"/api/sessions/{session_id}/select")
        assert set(main._session_locks) == {session_id}

        client.delete(f"/api/sessions/{session_id}")
        assert main._session_locks == {}

    def test_delete_session(self, client):
        session_id = start(client)
        assert client.delete(f"/api/sessions/{session_id}").status_code == 200
        assert client.get(f"/api/sessions/{session_id}").status_code == 404


class TestTurnEndpoints:
    """Select, record, analyze and transition over HTTP."""

    def test_select_and_record(self, client):
        session_id = start(client, category="general", user_expertise="intermediate")

        selection = client.post(f"/api/sessions/{session_id}/select").json()
        assert selection["selected_pattern"]
        assert selection["template"]
        assert len(selection["alternatives"]) == 3
        assert set(selection["alternatives"][0]["factors"]) == {
            "context_relevance",
            "expertise_match",
            "flow_appropriateness",
            "freshness",
            "effectiveness",
            "strategic_value",
        }

        outcome = client.post(f"/api/sessions/{session_id}/outcome", json={
            "pattern": selection["selected_pattern"],
            "insights": ["the queue is the bottleneck"],
            "user_satisfaction": 4,
            "concepts": ["queue"],
        }).json()
        assert outcome["times_used"] == 1
        assert outcome["turn_count"] == 1
        assert 0.0 <= outcome["effectiveness"] <= 1.0

        session = client.get(f"/api/sessions/{session_id}").json()
        assert session["turn_count"] == 1
        assert session["recent_patterns"] == [selection["selected_pattern"]]
        assert session["extracted_concepts"] == ["queue"]

    def test_select_with_constraints(self, client):
        session_id = start(client)
        response = client.post(f"/api/sessions/{session_id}/select", json={
            "prefer_patterns": ["impact_analysis"],
            "exclude_patterns": ["definition_seeking"],
        })
        assert response.status_code == 200
        selection = response.json()
        assert selection["selected_pattern"] != "definition_seeking"
        assert "definition_seeking" not in [alt["pattern"] for alt in selection["alternatives"]]

    def test_no_eligible_patterns(self, client):
        session_id = start(client)
        patterns = [p["type"] for p in client.get("/api/patterns").json()["patterns"]]

        response = client.post(f"/api/sessions/{session_id}/select", json={"exclude_patterns": patterns})
        assert response.status_code == 422
        assert response.json()["error_type"] == "conflict"

    def test_unknown_pattern_outcome(self, client):
        session_id = start(client)
        response = client.post(f"/api/sessions/{session_id}/outcome", json={"pattern": "guessing"})
        assert response.status_code == 404
        assert response.json()["details"] == {"pattern": "guessing"}

    def test_flow_and_transition(self, client):
        session_id = start(client)

        flow = client.get(f"/api/sessions/{session_id}/flow").json()
        assert flow["current_phase"] == "exploring"
        assert flow["phase_confidence"] == 0.5
        assert flow["suggested_phase"] is None
        assert flow["recommendations"]

        check = client.get(f"/api/sessions/{session_id}/should-transition").json()
        assert check["should_transition"] is False

        rejected = client.post(f"/api/sessions/{session_id}/transition", json={"to_phase": "synthesizing"}).json()
        assert rejected["success"] is False
        assert rejected["current_phase"] == "exploring"

        moved = client.post(f"/api/sessions/{session_id}/transition", json={"to_phase": "deepening"}).json()
        assert moved["success"] is True
        assert moved["current_phase"] == "deepening"
        assert any("premature" in warning for warning in moved["warnings"])

        session = client.get(f"/api/sessions/{session_id}").json()
        assert session["current_phase"] == "deepening"
        assert session["phase_history"] == ["exploring", "deepening"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
