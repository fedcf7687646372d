from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.database import get_db
from app.main import app
from app.services.session_service import add_turn, archive_session, find_or_create_session

HEADERS = {"X-Admin-Token": "secret"}


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    with patch("app.routers.sessions.settings.admin_token", "secret"):
        yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def session(db, make_integration):
    session = find_or_create_session(db, make_integration(), "15550001", {"sender_name": "Dana"})
    add_turn(db, session, "What are your hours?", "Open 9-5")
    db.commit()
    return session


class TestSessionsRouter:
    def test_requires_admin_token(self, client, session):
        assert client.get(f"/sessions/{session.id}").status_code == 401
        assert client.get(f"/sessions/{session.id}", headers={"X-Admin-Token": "wrong"}).status_code == 401

    def test_read_summary(self, client, session):
        response = client.get(f"/sessions/{session.id}", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "active"
        assert body["sender_name"] == "Dana"
        assert body["total_messages"] == 1
        assert body["recent_turns"][0]["response"] == "Open 9-5"

    def test_escalate_then_resolve(self, client, session):
        response = client.post(
            f"/sessions/{session.id}/escalate", json={"agent_id": "agent-7", "note": "refund"}, headers=HEADERS
        )
        assert response.status_code == 200
        assert response.json()["status"] == "escalated"
        assert response.json()["agent_id"] == "agent-7"
        assert response.json()["recent_turns"][-1]["message"] == "[System] Chat escalated to agent - refund"

        response = client.post(f"/sessions/{session.id}/resolve", headers=HEADERS)
        assert response.json()["status"] == "resolved"
        assert response.json()["agent_id"] is None

    def test_archived_session_rejects_actions(self, client, db, session):
        archive_session(db, session)
        db.commit()

        response = client.post(f"/sessions/{session.id}/reopen", headers=HEADERS)

        assert response.status_code == 400

    def test_unknown_session(self, client):
        response = client.post("/sessions/00000000-0000-0000-0000-000000000000/archive", headers=HEADERS)
        assert response.status_code == 404
