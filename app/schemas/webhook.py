from pydantic import BaseModel


class MetaWebhookAck(BaseModel):
    status: str = "success"


class TelegramWebhookAck(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str
