import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from app.database import Base

KNOWLEDGE_COMPLETED = "completed"


class Knowledge(Base):
    __tablename__ = "knowledge"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    bot_id = Column(Uuid, ForeignKey("bots.id"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")  # pending, processing, completed, failed
    created_at = Column(DateTime(timezone=True))

    bot = relationship("Bot", back_populates="knowledge")
    vectors = relationship("KnowledgeVector", back_populates="knowledge", order_by="KnowledgeVector.chunk_index")


class KnowledgeVector(Base):
    __tablename__ = "knowledge_vectors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    knowledge_id = Column(Uuid, ForeignKey("knowledge.id"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False, default=0)
    text = Column(Text, nullable=False)
    vector = Column(JSON, nullable=False)  # list[float]

    knowledge = relationship("Knowledge", back_populates="vectors")
