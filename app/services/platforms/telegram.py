from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from app.logging_config import get_logger
from app.models import Integration, PlatformType
from app.schemas.telegram import TelegramCallbackQuery, TelegramMessage, TelegramUpdate
from app.services.markup import to_telegram
from app.services.platforms.base import InboundMessage, PlatformAdapter, placeholder
from app.services.verification import WebhookVerificationError

logger = get_logger("platforms.telegram")

PARSE_MODE = "Markdown"
ALLOWED_UPDATES = ["message", "callback_query"]

SENDER_TYPES = {
    "private": "user",
    "group": "group",
    "supergroup": "group",
    "channel": "channel",
}


def extract_telegram_content(message: TelegramMessage) -> Optional[str]:
    """Text of a Telegram message, a placeholder for media, None for service messages."""
    if message.text:
        return message.text
    if message.photo:
        return placeholder("Photo", caption=message.caption)
    if message.document:
        return placeholder("Document", message.document.file_name or "Unknown", caption=message.caption)
    if message.audio:
        return placeholder("Audio message", caption=message.caption)
    if message.video:
        return placeholder("Video", caption=message.caption)
    if message.voice:
        return placeholder("Voice message")
    if message.video_note:
        return placeholder("Video message")
    if message.sticker is not None:
        return placeholder("Sticker", message.sticker.get("emoji"))
    if message.location:
        return placeholder("Location", f"{message.location.latitude}, {message.location.longitude}")
    if message.contact:
        contact = message.contact
        name = " ".join(part for part in (contact.first_name, contact.last_name) if part)
        return placeholder("Contact", f"{name} {contact.phone_number}".strip())
    return None


class TelegramAdapter(PlatformAdapter):
    """Telegram Bot API. The bot token is both credential and routing key."""

    platform = PlatformType.TELEGRAM
    routing_field = "telegram_bot_token"
    max_message_length = 4096
    supports_handshake = False

    def _method_url(self, bot_token: str, method: str) -> str:
        return f"{self.config.telegram_api_base_url.rstrip('/')}/bot{bot_token}/{method}"

    def call(self, bot_token: str, method: str, data: Optional[dict] = None) -> dict:
        """Call a Bot API method. Never raises; failures come back as {"ok": False}."""
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self._method_url(bot_token, method), json=data or {})
        except httpx.HTTPError as e:
            logger.error(f"Telegram API transport error on {method}: {e}")
            return {"ok": False, "description": str(e)}

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {"ok": False, "description": response.text[:300]}

        if not body.get("ok"):
            logger.warning(
                f"Telegram API error on {method}: {body.get('description')}",
                extra={"context": {"status_code": response.status_code}},
            )
        return body

    # Inbound

    def decode_inbound(self, payload: Any, routing_key: Optional[str] = None) -> List[InboundMessage]:
        if not isinstance(payload, dict) or not routing_key:
            return []

        try:
            update = TelegramUpdate.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Skipping malformed Telegram update: {e.error_count()} errors")
            return []

        if update.callback_query:
            inbound = self._decode_callback(update.callback_query, routing_key)
            return [inbound] if inbound else []

        message = update.message or update.channel_post
        if message is None:
            logger.info("Ignoring Telegram update without message", extra={"context": {"update_id": update.update_id}})
            return []

        text = extract_telegram_content(message)
        if text is None:
            logger.info(
                "Ignoring Telegram service message",
                extra={"context": {"update_id": update.update_id, "chat_id": message.chat.id}},
            )
            return []

        return [
            InboundMessage(
                sender_id=str(message.chat.id),
                message_id=str(message.message_id),
                text=text,
                routing_key=routing_key,
                sender_name=self._sender_name(message),
                sender_type=SENDER_TYPES.get(message.chat.type, "user"),
                metadata={"chat_type": message.chat.type, "update_id": update.update_id},
            )
        ]

    def _decode_callback(self, query: TelegramCallbackQuery, routing_key: str) -> Optional[InboundMessage]:
        if not query.data:
            return None
        chat = query.message.chat if query.message else None
        return InboundMessage(
            sender_id=str(chat.id if chat else query.from_user.id),
            message_id=query.id,
            text=query.data,
            routing_key=routing_key,
            sender_name=query.from_user.display_name,
            sender_type=SENDER_TYPES.get(chat.type, "user") if chat else "user",
            kind="callback",
            metadata={"callback_query_id": query.id},
        )

    @staticmethod
    def _sender_name(message: TelegramMessage) -> Optional[str]:
        if message.from_user:
            return message.from_user.display_name
        return message.chat.title or message.chat.username

    # Outbound

    def format_reply(self, text: str) -> str:
        return to_telegram(text)

    def _send_text(self, integration: Integration, recipient_id: str, text: str, options: dict) -> bool:
        token = integration.telegram_bot_token
        if not token:
            logger.error("Telegram integration has no bot token", extra={"context": {"integration_id": str(integration.id)}})
            return False

        data = {"chat_id": recipient_id, "text": text, "parse_mode": options.get("parse_mode", PARSE_MODE)}
        if options.get("reply_markup"):
            data["reply_markup"] = options["reply_markup"]

        result = self.call(token, "sendMessage", data)
        if result.get("ok"):
            return True

        if "can't parse entities" in str(result.get("description", "")).lower():
            logger.info("Telegram rejected markup, resending as plain text")
            data.pop("parse_mode")
            return bool(self.call(token, "sendMessage", data).get("ok"))
        return False

    def acknowledge(self, integration: Integration, message: InboundMessage) -> None:
        if message.kind != "callback" or not integration.telegram_bot_token:
            return
        self.call(
            integration.telegram_bot_token,
            "answerCallbackQuery",
            {"callback_query_id": message.metadata.get("callback_query_id") or message.message_id},
        )

    def verify(self, mode, token, challenge, expected) -> str:
        # the bot token in the path is the credential; there is no handshake
        raise WebhookVerificationError("Telegram has no subscription handshake")

    # Webhook management

    def get_me(self, bot_token: str) -> dict:
        return self.call(bot_token, "getMe")

    def set_webhook(self, bot_token: str, url: str) -> dict:
        return self.call(
            bot_token,
            "setWebhook",
            {"url": url, "allowed_updates": ALLOWED_UPDATES, "drop_pending_updates": True},
        )

    def delete_webhook(self, bot_token: str) -> dict:
        return self.call(bot_token, "deleteWebhook", {"drop_pending_updates": True})
