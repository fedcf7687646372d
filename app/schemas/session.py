from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class EscalateRequest(BaseModel):
    agent_id: str = Field(min_length=1)
    note: Optional[str] = None


class TurnSummary(BaseModel):
    sender: str
    message: str
    response: str
    created_at: Optional[datetime] = None


class SessionSummary(BaseModel):
    session_id: UUID
    status: str
    platform: Optional[str] = None
    sender_id: str
    sender_name: Optional[str] = None
    agent_id: Optional[str] = None
    total_messages: int
    started_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    recent_turns: List[TurnSummary] = []
