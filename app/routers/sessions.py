from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.schemas.session import EscalateRequest, SessionSummary
from app.services.session_service import (
    SessionActionError,
    apply_session_action,
    get_session,
    get_session_summary,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _require_admin_token(provided: Optional[str]) -> None:
    expected = settings.admin_token
    if not expected:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")
    if not provided or provided != expected:
        raise HTTPException(status_code=401, detail="Invalid admin token")


def _run_action(db: Session, session_id: UUID, action: str, **kwargs) -> dict:
    try:
        session = apply_session_action(db, session_id, action, **kwargs)
    except SessionActionError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    db.commit()
    return get_session_summary(db, session)


@router.get("/{session_id}", response_model=SessionSummary)
def read_session(
    session_id: UUID,
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    session = get_session(db, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return get_session_summary(db, session)


@router.post("/{session_id}/escalate", response_model=SessionSummary)
def escalate(
    session_id: UUID,
    body: EscalateRequest,
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    return _run_action(db, session_id, "escalate", agent_id=body.agent_id, note=body.note)


@router.post("/{session_id}/resolve", response_model=SessionSummary)
def resolve(
    session_id: UUID,
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    return _run_action(db, session_id, "resolve")


@router.post("/{session_id}/reopen", response_model=SessionSummary)
def reopen(
    session_id: UUID,
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    return _run_action(db, session_id, "reopen")


@router.post("/{session_id}/archive", response_model=SessionSummary)
def archive(
    session_id: UUID,
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    return _run_action(db, session_id, "archive")
