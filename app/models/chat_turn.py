import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


class ChatTurn(Base):
    __tablename__ = "chat_turns"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("chat_sessions.id"), nullable=False, index=True)
    integration_id = Column(Uuid, ForeignKey("integrations.id"), nullable=False)
    sender = Column(Text, nullable=False)  # sender id, or "system" for synthetic turns
    message = Column(Text, nullable=False)
    response = Column(Text, nullable=False, default="")
    external_message_id = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    session = relationship("ConversationSession", back_populates="turns")
