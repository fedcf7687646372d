from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username


class TelegramChat(BaseModel):
    id: int
    type: str  # private, group, supergroup, channel
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None


class TelegramFile(BaseModel):
    file_id: str
    file_unique_id: Optional[str] = None
    file_size: Optional[int] = None


class TelegramDocument(TelegramFile):
    file_name: Optional[str] = None
    mime_type: Optional[str] = None


class TelegramLocation(BaseModel):
    latitude: float
    longitude: float


class TelegramContact(BaseModel):
    phone_number: str
    first_name: str = ""
    last_name: Optional[str] = None


class TelegramMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    date: int = 0
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    sender_chat: Optional[TelegramChat] = None
    text: Optional[str] = None
    caption: Optional[str] = None
    photo: Optional[list[TelegramFile]] = None
    document: Optional[TelegramDocument] = None
    audio: Optional[TelegramDocument] = None
    voice: Optional[TelegramFile] = None
    video: Optional[TelegramFile] = None
    video_note: Optional[TelegramFile] = None
    sticker: Optional[dict[str, Any]] = None
    location: Optional[TelegramLocation] = None
    contact: Optional[TelegramContact] = None


class TelegramCallbackQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_user: TelegramUser = Field(alias="from")
    message: Optional[TelegramMessage] = None
    data: Optional[str] = None  # callback_data from button


class TelegramUpdate(BaseModel):
    update_id: int = 0
    message: Optional[TelegramMessage] = None
    edited_message: Optional[TelegramMessage] = None
    channel_post: Optional[TelegramMessage] = None
    callback_query: Optional[TelegramCallbackQuery] = None
