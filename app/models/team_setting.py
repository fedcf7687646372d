import uuid

from sqlalchemy import Column, Text, UniqueConstraint, Uuid

from app.database import Base


class TeamSetting(Base):
    __tablename__ = "team_settings"
    __table_args__ = (UniqueConstraint("team_id", "key", name="uq_team_settings_team_key"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, nullable=False)
    key = Column(Text, nullable=False)  # ai_provider, ai_base_url, ai_api_key, ai_model, embedding_*
    value = Column(Text)
