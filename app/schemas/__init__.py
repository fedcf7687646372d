from app.schemas.session import EscalateRequest, SessionSummary, TurnSummary
from app.schemas.telegram import TelegramCallbackQuery, TelegramMessage, TelegramUpdate
from app.schemas.webhook import ErrorResponse, MetaWebhookAck, TelegramWebhookAck

__all__ = [
    "EscalateRequest",
    "ErrorResponse",
    "MetaWebhookAck",
    "SessionSummary",
    "TelegramCallbackQuery",
    "TelegramMessage",
    "TelegramUpdate",
    "TelegramWebhookAck",
    "TurnSummary",
]
