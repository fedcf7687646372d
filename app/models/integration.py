import enum
import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Text, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


class PlatformType(str, enum.Enum):
    WHATSAPP = "whatsapp"
    WHATSAPP_BUSINESS = "whatsapp_business"
    TELEGRAM = "telegram"
    INSTAGRAM = "instagram"
    MESSENGER = "messenger"


class Integration(Base):
    __tablename__ = "integrations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, nullable=False, index=True)
    name = Column(Text, nullable=False, default="")
    type = Column(Text, nullable=False, index=True)  # PlatformType value
    is_connected = Column(Boolean, nullable=False, default=False)

    access_token = Column(Text)
    verify_token = Column(Text)

    # Routing keys, one per platform family
    whatsapp_phone_number_id = Column(Text, index=True)
    whatsapp_business_account_id = Column(Text)
    messenger_page_id = Column(Text, index=True)
    instagram_page_id = Column(Text, index=True)
    telegram_bot_token = Column(Text, index=True)
    telegram_username = Column(Text)
    webhook_url = Column(Text)

    settings = Column(JSON)
    created_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True))

    bot = relationship("Bot", back_populates="integration", uselist=False)
    sessions = relationship("ConversationSession", back_populates="integration")

    @property
    def platform(self) -> PlatformType:
        return PlatformType(self.type)
