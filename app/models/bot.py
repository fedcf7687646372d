import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from app.database import Base

DEFAULT_PROMPT = (
    "You are a helpful customer support assistant. "
    "Answer briefly and politely, using the provided knowledge when it is relevant."
)


class Bot(Base):
    __tablename__ = "bots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    prompt = Column(Text, nullable=False, default=DEFAULT_PROMPT)
    # unique: an integration answers with exactly one bot
    integration_id = Column(Uuid, ForeignKey("integrations.id"), unique=True)
    created_at = Column(DateTime(timezone=True))

    integration = relationship("Integration", back_populates="bot")
    knowledge = relationship("Knowledge", back_populates="bot")
