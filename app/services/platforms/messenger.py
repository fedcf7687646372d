from typing import Any, List, Optional

from app.logging_config import get_logger
from app.models import Integration, PlatformType
from app.services.markup import to_plain
from app.services.platforms.base import InboundMessage, as_list, placeholder
from app.services.platforms.graph import GraphAPIAdapter

logger = get_logger("platforms.messenger")

ATTACHMENT_KINDS = {
    "image": "Photo",
    "video": "Video",
    "audio": "Audio message",
    "file": "Document",
    "location": "Location",
    "fallback": "Link",
}


def extract_attachment(attachment: dict) -> str:
    kind = attachment.get("type") or "unknown"
    label = ATTACHMENT_KINDS.get(kind)
    if label is None:
        return placeholder("Unsupported message", kind)

    payload = attachment.get("payload") or {}
    if kind == "location":
        coordinates = payload.get("coordinates") or {}
        if coordinates:
            return placeholder(label, f"{coordinates.get('lat')}, {coordinates.get('long')}")
    if kind == "fallback":
        return placeholder(label, attachment.get("title") or payload.get("url"))
    return placeholder(label)


class PageMessagingAdapter(GraphAPIAdapter):
    """Send/Receive API shared by Messenger pages and Instagram professional accounts."""

    max_message_length = 2000

    def decode_inbound(self, payload: Any, routing_key: Optional[str] = None) -> List[InboundMessage]:
        if not isinstance(payload, dict):
            return []

        messages: List[InboundMessage] = []
        for entry in as_list(payload.get("entry")):
            if not isinstance(entry, dict):
                continue
            for event in as_list(entry.get("messaging")):
                try:
                    inbound = self._decode_event(event, entry.get("id"))
                except (AttributeError, KeyError, TypeError) as e:
                    logger.warning(f"Skipping malformed {self.platform.value} event: {e}")
                    continue
                if inbound:
                    messages.append(inbound)
        return messages

    def _decode_event(self, event: dict, entry_id: Optional[str]) -> Optional[InboundMessage]:
        sender_id = (event.get("sender") or {}).get("id")
        routing_key = (event.get("recipient") or {}).get("id") or entry_id
        if not sender_id or not routing_key:
            return None

        message = event.get("message")
        postback = event.get("postback")

        if message:
            if message.get("is_echo"):
                return None
            text = message.get("text")
            if not text:
                attachments = message.get("attachments") or []
                if attachments:
                    text = " ".join(extract_attachment(a) for a in attachments)
                elif message.get("quick_reply"):
                    text = message["quick_reply"].get("payload") or ""
            if not text:
                return None
            return InboundMessage(
                sender_id=str(sender_id),
                message_id=message.get("mid"),
                text=text,
                routing_key=str(routing_key),
                metadata={"timestamp": event.get("timestamp")},
            )

        if postback:
            text = postback.get("title") or postback.get("payload")
            if not text:
                return None
            return InboundMessage(
                sender_id=str(sender_id),
                message_id=postback.get("mid"),
                text=text,
                routing_key=str(routing_key),
                kind="postback",
                metadata={"timestamp": event.get("timestamp"), "payload": postback.get("payload")},
            )

        # deliveries, reads, reactions
        return None

    def format_reply(self, text: str) -> str:
        return to_plain(text)

    def _send_text(self, integration: Integration, recipient_id: str, text: str, options: dict) -> bool:
        payload = {
            "recipient": {"id": recipient_id},
            "messaging_type": options.get("messaging_type", "RESPONSE"),
            "message": {"text": text},
        }
        return self._graph_post(integration, "me/messages", payload) is not None


class MessengerAdapter(PageMessagingAdapter):
    platform = PlatformType.MESSENGER
    routing_field = "messenger_page_id"


class InstagramAdapter(PageMessagingAdapter):
    platform = PlatformType.INSTAGRAM
    routing_field = "instagram_page_id"
