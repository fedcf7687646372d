from typing import Any, List, Optional

from app.logging_config import get_logger
from app.models import Integration, PlatformType
from app.services.markup import to_whatsapp
from app.services.platforms.base import InboundMessage, as_list, placeholder
from app.services.platforms.graph import GraphAPIAdapter

logger = get_logger("platforms.whatsapp")


def extract_whatsapp_content(message: dict) -> str:
    """Text of a Cloud API message, or a placeholder for anything else."""
    kind = message.get("type") or "text"

    if kind == "text":
        return (message.get("text") or {}).get("body") or ""
    if kind == "image":
        return placeholder("Image", caption=(message.get("image") or {}).get("caption"))
    if kind == "document":
        document = message.get("document") or {}
        return placeholder("Document", document.get("filename") or "Unknown", caption=document.get("caption"))
    if kind == "audio":
        audio = message.get("audio") or {}
        return placeholder("Voice message" if audio.get("voice") else "Audio message")
    if kind == "video":
        return placeholder("Video", caption=(message.get("video") or {}).get("caption"))
    if kind == "sticker":
        return placeholder("Sticker")
    if kind == "location":
        location = message.get("location") or {}
        return placeholder("Location", f"{location.get('latitude')}, {location.get('longitude')}")
    if kind == "contacts":
        contacts = message.get("contacts") or [{}]
        contact = contacts[0]
        name = (contact.get("name") or {}).get("formatted_name") or "Unknown"
        phones = contact.get("phones") or []
        phone = phones[0].get("phone") if phones else ""
        return placeholder("Contact", f"{name} {phone}".strip())
    if kind == "interactive":
        interactive = message.get("interactive") or {}
        for reply_key in ("button_reply", "list_reply"):
            if interactive.get(reply_key):
                return interactive[reply_key].get("title") or ""
        return placeholder("Interactive message")
    if kind == "button":
        return (message.get("button") or {}).get("text") or placeholder("Button")
    if kind == "reaction":
        return placeholder("Reaction", (message.get("reaction") or {}).get("emoji"))

    return placeholder("Unsupported message", kind)


class WhatsAppAdapter(GraphAPIAdapter):
    """WhatsApp Business Cloud API."""

    platform = PlatformType.WHATSAPP_BUSINESS
    routing_field = "whatsapp_phone_number_id"
    integration_types = (PlatformType.WHATSAPP_BUSINESS.value, PlatformType.WHATSAPP.value)
    max_message_length = 4096

    def decode_inbound(self, payload: Any, routing_key: Optional[str] = None) -> List[InboundMessage]:
        if not isinstance(payload, dict):
            return []

        messages: List[InboundMessage] = []
        for entry in as_list(payload.get("entry")):
            if not isinstance(entry, dict):
                continue
            for change in as_list(entry.get("changes")):
                if not isinstance(change, dict) or change.get("field") != "messages":
                    continue
                value = change.get("value")
                if not isinstance(value, dict):
                    logger.warning("Skipping WhatsApp change without a value object")
                    continue
                metadata = value.get("metadata")
                phone_number_id = metadata.get("phone_number_id") if isinstance(metadata, dict) else None

                for status in as_list(value.get("statuses")):
                    if not isinstance(status, dict):
                        logger.warning("Skipping malformed WhatsApp status")
                        continue
                    logger.info(
                        "WhatsApp status update",
                        extra={
                            "context": {
                                "message_id": status.get("id"),
                                "status": status.get("status"),
                                "phone_number_id": phone_number_id,
                            }
                        },
                    )

                names = {}
                for contact in as_list(value.get("contacts")):
                    if not isinstance(contact, dict) or not contact.get("wa_id"):
                        continue
                    profile = contact.get("profile")
                    names[str(contact["wa_id"])] = profile.get("name") if isinstance(profile, dict) else None

                for raw in as_list(value.get("messages")):
                    try:
                        inbound = self._decode_message(raw, phone_number_id, names)
                    except (AttributeError, KeyError, TypeError, IndexError) as e:
                        logger.warning(f"Skipping malformed WhatsApp message: {e}")
                        continue
                    if inbound:
                        messages.append(inbound)
        return messages

    def _decode_message(self, raw: dict, phone_number_id: Optional[str], names: dict) -> Optional[InboundMessage]:
        sender = raw.get("from")
        message_id = raw.get("id")
        if not sender or not message_id or not phone_number_id:
            logger.warning("Skipping WhatsApp message without sender, id or phone number id")
            return None

        kind = "callback" if raw.get("type") in ("interactive", "button") else "message"
        return InboundMessage(
            sender_id=str(sender),
            message_id=str(message_id),
            text=extract_whatsapp_content(raw),
            routing_key=str(phone_number_id),
            sender_name=names.get(sender),
            kind=kind,
            metadata={"timestamp": raw.get("timestamp"), "message_type": raw.get("type") or "text"},
        )

    def format_reply(self, text: str) -> str:
        return to_whatsapp(text)

    def _messages_path(self, integration: Integration) -> str:
        return f"{integration.whatsapp_phone_number_id}/messages"

    def _send_text(self, integration: Integration, recipient_id: str, text: str, options: dict) -> bool:
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient_id,
            "type": "text",
            "text": {"preview_url": bool(options.get("preview_url", False)), "body": text},
        }
        return self._graph_post(integration, self._messages_path(integration), payload) is not None

    def send_payload(self, integration: Integration, recipient_id: str, options: dict) -> bool:
        kind = options.get("type")
        if kind not in ("template", "interactive"):
            logger.warning(f"Unsupported WhatsApp payload type: {kind}")
            return False
        payload = {
            "messaging_product": "whatsapp",
            "to": recipient_id,
            "type": kind,
            kind: options.get("payload") or {},
        }
        return self._graph_post(integration, self._messages_path(integration), payload) is not None

    def acknowledge(self, integration: Integration, message: InboundMessage) -> None:
        if not message.message_id:
            return
        result = self._graph_post(
            integration,
            self._messages_path(integration),
            {"messaging_product": "whatsapp", "status": "read", "message_id": message.message_id},
        )
        if result is None:
            logger.warning(f"Failed to mark WhatsApp message {message.message_id} as read")
