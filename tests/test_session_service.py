import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from app.models import ChatTurn, ConversationSession, Integration
from app.services.session_service import (
    SYSTEM_SENDER,
    SessionActionError,
    add_turn,
    apply_session_action,
    archive_session,
    escalate_session,
    find_or_create_session,
    get_recent_turns,
    get_session_summary,
    reopen_session,
    resolve_session,
)
from app.services.session_service import _find_session as real_find_session
from app.services.state_machine import InvalidTransitionError


class TestFindOrCreateSession:
    def test_creates_active_session(self, db, make_integration):
        integration = make_integration()

        session = find_or_create_session(db, integration, "15550001", {"sender_name": "Dana", "platform": "whatsapp"})

        assert session.status == "active"
        assert session.message_count == 0
        assert session.last_message_at is not None
        assert session.sender_name == "Dana"
        assert session.session_metadata["platform"] == "whatsapp"

    def test_repeated_calls_return_same_session(self, db, make_integration):
        integration = make_integration()

        first = find_or_create_session(db, integration, "15550001")
        second = find_or_create_session(db, integration, "15550001")

        assert first.id == second.id
        assert db.query(ConversationSession).count() == 1

    def test_sender_ids_are_scoped_per_integration(self, db, make_integration):
        one = make_integration(whatsapp_phone_number_id="PN1")
        two = make_integration(whatsapp_phone_number_id="PN2")

        assert find_or_create_session(db, one, "42").id != find_or_create_session(db, two, "42").id

    def test_concurrent_calls_create_one_row(self, file_engine):
        """Eight threads, one row.

        SQLite's BEGIN IMMEDIATE serializes the writers, so later threads find the
        committed row on lookup and never hit the unique constraint. The
        IntegrityError re-fetch path is covered by the lost-race tests below.
        """
        factory = sessionmaker(bind=file_engine, autoflush=False)
        with factory() as setup:
            integration = Integration(team_id=uuid.uuid4(), name="wa", type="whatsapp_business")
            setup.add(integration)
            setup.commit()
            integration_ref = SimpleNamespace(id=integration.id)

        workers = 8
        barrier = threading.Barrier(workers)

        def deliver(_):
            with factory() as db:
                barrier.wait()
                session = find_or_create_session(db, integration_ref, "15550001")
                session_id = session.id
                db.commit()
                return session_id

        with ThreadPoolExecutor(max_workers=workers) as pool:
            ids = list(pool.map(deliver, range(workers)))

        assert len(set(ids)) == 1
        with factory() as check:
            assert check.query(ConversationSession).count() == 1

    def test_lost_race_recovers_through_unique_constraint(self, db, make_integration):
        integration = make_integration()
        winner = find_or_create_session(db, integration, "42")
        lookups = []

        def stale_first_lookup(db_, integration_id, sender_id):
            lookups.append(sender_id)
            if len(lookups) == 1:
                return None
            return real_find_session(db_, integration_id, sender_id)

        with patch("app.services.session_service._find_session", side_effect=stale_first_lookup):
            session = find_or_create_session(db, integration, "42")

        assert session.id == winner.id
        assert len(lookups) == 2
        assert db.query(ConversationSession).count() == 1

    def test_duplicate_key_is_recovered_by_refetch(self):
        existing = ConversationSession(id=uuid.uuid4(), sender_id="42", status="active")
        db = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = [None, existing]
        db.flush.side_effect = IntegrityError("INSERT INTO chat_sessions", {}, Exception("UNIQUE constraint failed"))

        session = find_or_create_session(db, SimpleNamespace(id=uuid.uuid4()), "42")

        assert session is existing

    def test_duplicate_key_without_row_is_raised(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = [None, None]
        db.flush.side_effect = IntegrityError("INSERT INTO chat_sessions", {}, Exception("NOT NULL constraint failed"))

        with pytest.raises(IntegrityError):
            find_or_create_session(db, SimpleNamespace(id=uuid.uuid4()), "42")


class TestAddTurn:
    def test_appends_turn_and_bumps_statistics(self, db, make_integration):
        integration = make_integration()
        session = find_or_create_session(db, integration, "42")
        before = session.last_message_at

        turn = add_turn(db, session, "What are your hours?", "Open 9-5", external_message_id="wamid.1")

        assert turn.sender == "42"
        assert turn.external_message_id == "wamid.1"
        assert turn.integration_id == integration.id
        assert session.message_count == 1
        assert session.last_message_at >= before

        add_turn(db, session, "Thanks", "You're welcome")
        assert session.message_count == 2

    def test_same_external_id_twice_gives_two_turns(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")

        add_turn(db, session, "hi", "hello", external_message_id="dup")
        add_turn(db, session, "hi", "hello", external_message_id="dup")

        assert db.query(ChatTurn).filter(ChatTurn.external_message_id == "dup").count() == 2

    def test_archived_session_still_records_turns(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")
        archive_session(db, session)

        add_turn(db, session, "anyone there?", "Yes")

        assert session.status == "archived"
        assert session.message_count == 1


class TestRecentTurns:
    def test_returns_last_turns_in_order_without_system_turns(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")
        for i in range(7):
            add_turn(db, session, f"q{i}", f"a{i}")
        escalate_session(db, session, "agent-1")

        recent = get_recent_turns(db, session, limit=5)

        assert [turn.message for turn in recent] == ["q2", "q3", "q4", "q5", "q6"]
        assert all(turn.sender != SYSTEM_SENDER for turn in recent)


class TestOperatorActions:
    def test_escalate_assigns_agent_and_records_system_turn(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")

        escalate_session(db, session, "agent-7", note="VIP customer")

        assert session.status == "escalated"
        assert session.agent_id == "agent-7"
        turn = db.query(ChatTurn).filter(ChatTurn.session_id == session.id).one()
        assert turn.sender == SYSTEM_SENDER
        assert turn.message == "[System] Chat escalated to agent - VIP customer"
        assert turn.response == ""

    def test_re_escalation_reassigns(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")
        escalate_session(db, session, "agent-1")
        escalate_session(db, session, "agent-2")

        assert session.agent_id == "agent-2"
        assert session.status == "escalated"

    def test_resolve_and_reopen_clear_agent(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")
        escalate_session(db, session, "agent-1")

        resolve_session(db, session)
        assert session.status == "resolved"
        assert session.agent_id is None

        reopen_session(db, session)
        assert session.status == "active"

    def test_archived_session_cannot_be_escalated(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")
        archive_session(db, session)

        with pytest.raises(InvalidTransitionError):
            escalate_session(db, session, "agent-1")
        assert session.status == "archived"

    def test_apply_action_unknown_session(self, db):
        with pytest.raises(SessionActionError) as exc_info:
            apply_session_action(db, uuid.uuid4(), "resolve")
        assert exc_info.value.status_code == 404

    def test_apply_action_illegal_transition(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")
        archive_session(db, session)

        with pytest.raises(SessionActionError) as exc_info:
            apply_session_action(db, session.id, "reopen")
        assert exc_info.value.status_code == 400

    def test_apply_escalate_requires_agent(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42")
        with pytest.raises(SessionActionError):
            apply_session_action(db, session.id, "escalate")


class TestSessionSummary:
    def test_summary(self, db, make_integration):
        session = find_or_create_session(db, make_integration(), "42", {"sender_name": "Dana"})
        for i in range(12):
            add_turn(db, session, f"q{i}", f"a{i}")

        summary = get_session_summary(db, session)

        assert summary["total_messages"] == 12
        assert summary["platform"] == "whatsapp_business"
        assert summary["sender_name"] == "Dana"
        assert len(summary["recent_turns"]) == 10
        assert summary["recent_turns"][-1]["message"] == "q11"
