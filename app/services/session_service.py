from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import ChatTurn, ConversationSession, Integration
from app.services.state_machine import InvalidTransitionError, SessionStatus, archive, escalate, reopen, resolve

logger = get_logger("session_service")

SYSTEM_SENDER = "system"
SUMMARY_TURNS = 10


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _find_session(db: Session, integration_id: UUID, sender_id: str) -> Optional[ConversationSession]:
    return (
        db.query(ConversationSession)
        .filter(ConversationSession.integration_id == integration_id, ConversationSession.sender_id == sender_id)
        .first()
    )


def get_session(db: Session, session_id: UUID) -> Optional[ConversationSession]:
    return db.query(ConversationSession).filter(ConversationSession.id == session_id).first()


def find_or_create_session(
    db: Session,
    integration: Integration,
    sender_id: str,
    metadata: Optional[dict] = None,
) -> ConversationSession:
    """Return the session for (integration, sender), creating it on first contact.

    Creation is insert-or-fetch: the unique constraint on (integration_id, sender_id)
    decides the race between concurrent deliveries, and the loser re-reads the row.
    """
    sender_id = str(sender_id)
    session = _find_session(db, integration.id, sender_id)
    if session:
        return session

    metadata = dict(metadata or {})
    now = _now()
    candidate = ConversationSession(
        integration_id=integration.id,
        sender_id=sender_id,
        sender_name=metadata.get("sender_name"),
        sender_type=metadata.get("sender_type") or "user",
        status=SessionStatus.ACTIVE.value,
        last_message_at=now,
        message_count=0,
        session_metadata=metadata,
        created_at=now,
        updated_at=now,
    )

    try:
        with db.begin_nested():
            db.add(candidate)
            db.flush()
    except IntegrityError:
        session = _find_session(db, integration.id, sender_id)
        if session is None:
            raise
        logger.info(
            "Session created by a concurrent delivery, re-fetched",
            extra={"context": {"integration_id": str(integration.id), "sender_id": sender_id}},
        )
        return session

    logger.info(
        "Session created",
        extra={"context": {"integration_id": str(integration.id), "session_id": str(candidate.id)}},
    )
    return candidate


def add_turn(
    db: Session,
    session: ConversationSession,
    message: str,
    response: str,
    sender: Optional[str] = None,
    external_message_id: Optional[str] = None,
) -> ChatTurn:
    """Append one message/response pair and bump the session statistics."""
    now = _now()
    turn = ChatTurn(
        session_id=session.id,
        integration_id=session.integration_id,
        sender=sender or session.sender_id,
        message=message,
        response=response or "",
        external_message_id=external_message_id,
        created_at=now,
    )
    db.add(turn)

    # SQL-side increment so concurrent turns on one session do not lose counts
    session.message_count = ConversationSession.message_count + 1
    session.last_message_at = now
    session.updated_at = now
    db.flush()
    return turn


def get_recent_turns(db: Session, session: ConversationSession, limit: int = 5) -> List[ChatTurn]:
    """Last `limit` conversational turns in chronological order. System turns are skipped."""
    turns = (
        db.query(ChatTurn)
        .filter(ChatTurn.session_id == session.id, ChatTurn.sender != SYSTEM_SENDER)
        .order_by(ChatTurn.created_at.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(turns))


def escalate_session(
    db: Session,
    session: ConversationSession,
    agent_id: str,
    note: Optional[str] = None,
) -> ConversationSession:
    """Hand the session to a human agent and record it in the transcript."""
    new_status = escalate(SessionStatus(session.status))
    session.status = new_status.value
    session.agent_id = str(agent_id)

    text = "[System] Chat escalated to agent"
    if note:
        text += f" - {note}"
    add_turn(db, session, text, "", sender=SYSTEM_SENDER)
    return session


def resolve_session(db: Session, session: ConversationSession) -> ConversationSession:
    session.status = resolve(SessionStatus(session.status)).value
    session.agent_id = None
    session.updated_at = _now()
    db.flush()
    return session


def reopen_session(db: Session, session: ConversationSession) -> ConversationSession:
    session.status = reopen(SessionStatus(session.status)).value
    session.agent_id = None
    session.updated_at = _now()
    db.flush()
    return session


def archive_session(db: Session, session: ConversationSession) -> ConversationSession:
    session.status = archive(SessionStatus(session.status)).value
    session.updated_at = _now()
    db.flush()
    return session


def get_session_summary(db: Session, session: ConversationSession) -> dict:
    recent = (
        db.query(ChatTurn)
        .filter(ChatTurn.session_id == session.id)
        .order_by(ChatTurn.created_at.desc())
        .limit(SUMMARY_TURNS)
        .all()
    )
    integration = session.integration
    return {
        "session_id": session.id,
        "status": session.status,
        "platform": integration.type if integration else None,
        "sender_id": session.sender_id,
        "sender_name": session.sender_name,
        "agent_id": session.agent_id,
        "total_messages": session.message_count,
        "started_at": session.created_at,
        "last_message_at": session.last_message_at,
        "recent_turns": [
            {
                "sender": turn.sender,
                "message": turn.message,
                "response": turn.response,
                "created_at": turn.created_at,
            }
            for turn in reversed(recent)
        ],
    }


class SessionActionError(Exception):
    """Operator action rejected; `status_code` is the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 400):
        self.status_code = status_code
        super().__init__(message)


SESSION_ACTIONS = ("escalate", "resolve", "reopen", "archive")


def apply_session_action(
    db: Session,
    session_id: UUID,
    action: str,
    agent_id: Optional[str] = None,
    note: Optional[str] = None,
) -> ConversationSession:
    """Run an operator action on a session by id."""
    if action not in SESSION_ACTIONS:
        raise SessionActionError(f"Unknown action: {action}", status_code=400)

    session = get_session(db, session_id)
    if session is None:
        raise SessionActionError(f"Session {session_id} not found", status_code=404)

    try:
        if action == "escalate":
            if not agent_id:
                raise SessionActionError("agent_id is required to escalate", status_code=400)
            escalate_session(db, session, agent_id, note)
        elif action == "resolve":
            resolve_session(db, session)
        elif action == "reopen":
            reopen_session(db, session)
        else:
            archive_session(db, session)
    except InvalidTransitionError as e:
        raise SessionActionError(str(e), status_code=400) from e

    logger.info(
        f"Session {action}",
        extra={"context": {"session_id": str(session.id), "status": session.status, "agent_id": session.agent_id}},
    )
    return session
