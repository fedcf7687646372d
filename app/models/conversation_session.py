import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


class ConversationSession(Base):
    __tablename__ = "chat_sessions"
    __table_args__ = (
        UniqueConstraint("integration_id", "sender_id", name="uq_chat_sessions_integration_sender"),
        Index("ix_chat_sessions_status_last_message_at", "status", "last_message_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    integration_id = Column(Uuid, ForeignKey("integrations.id"), nullable=False)
    sender_id = Column(Text, nullable=False)  # phone number, telegram chat id, page-scoped id
    sender_name = Column(Text)
    sender_type = Column(Text, nullable=False, default="user")  # user, group, channel
    status = Column(Text, nullable=False, default="active")  # active, escalated, resolved, archived
    agent_id = Column(Text)
    last_message_at = Column(DateTime(timezone=True))
    message_count = Column(Integer, nullable=False, default=0)
    session_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True))

    integration = relationship("Integration", back_populates="sessions")
    turns = relationship("ChatTurn", back_populates="session", order_by="ChatTurn.created_at")
