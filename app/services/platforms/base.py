from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from app.config import Settings, settings as default_settings
from app.logging_config import get_logger
from app.models import Integration, PlatformType
from app.services.markup import split_message
from app.services.verification import verify_subscription

logger = get_logger("platforms")


@dataclass
class InboundMessage:
    """One inbound event, normalized across platforms."""

    sender_id: str
    message_id: Optional[str]
    text: str
    routing_key: str
    sender_name: Optional[str] = None
    sender_type: str = "user"  # user, group, channel
    kind: str = "message"  # message, callback, postback
    metadata: dict = field(default_factory=dict)

    def session_metadata(self, platform: str) -> dict:
        data = {"platform": platform, "sender_type": self.sender_type}
        if self.sender_name:
            data["sender_name"] = self.sender_name
        data.update(self.metadata)
        return data


def as_list(value: Any) -> list:
    """`value` when the payload holds a JSON array there, else an empty list."""
    return value if isinstance(value, list) else []


def placeholder(kind: str, detail: Optional[str] = None, caption: Optional[str] = None) -> str:
    """Text stand-in for non-text content, e.g. "[Photo received] Caption: hi"."""
    text = f"[{kind} received: {detail}]" if detail else f"[{kind} received]"
    if caption:
        text += f" Caption: {caption}"
    return text


class PlatformAdapter(ABC):
    """Decode, encode and deliver messages for one chat platform."""

    platform: PlatformType
    routing_field: str
    max_message_length: int = 4096
    supports_handshake: bool = True
    # integration types served by this adapter, defaults to (platform,)
    integration_types: tuple = ()

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.timeout = self.config.platform_timeout_seconds

    @abstractmethod
    def decode_inbound(self, payload: Any, routing_key: Optional[str] = None) -> List[InboundMessage]:
        """Extract every processable event. Malformed entries are skipped, never fatal.

        `routing_key` is only used by platforms that carry it outside the payload.
        """

    @abstractmethod
    def format_reply(self, text: str) -> str:
        """Convert canonical markup into this platform's dialect."""

    @abstractmethod
    def _send_text(self, integration: Integration, recipient_id: str, text: str, options: dict) -> bool:
        pass

    def send_payload(self, integration: Integration, recipient_id: str, options: dict) -> bool:
        logger.warning(f"{self.platform.value} adapter has no structured payloads, ignoring {options.get('type')}")
        return False

    def send(self, integration: Integration, recipient_id: str, text: str, options: Optional[dict] = None) -> bool:
        """Deliver a reply. Returns False on any transport failure instead of raising."""
        options = dict(options or {})
        if options.get("type") not in (None, "text"):
            return self.send_payload(integration, recipient_id, options)

        parts = split_message(text, self.max_message_length)
        if not parts:
            logger.warning(f"Refusing to send empty message to {recipient_id}")
            return False

        delivered = True
        for part in parts:
            if not self._send_text(integration, recipient_id, part, options):
                delivered = False
                break
        return delivered

    def acknowledge(self, integration: Integration, message: InboundMessage) -> None:
        """Receipt side effect before processing (read receipt, callback answer)."""

    def served_types(self) -> tuple:
        return self.integration_types or (self.platform.value,)

    def resolve_integration(self, db: Session, routing_key: Optional[str]) -> Optional[Integration]:
        if not routing_key:
            return None
        column = getattr(Integration, self.routing_field)
        return (
            db.query(Integration)
            .filter(Integration.type.in_(self.served_types()), column == str(routing_key))
            .first()
        )

    def find_integration_by_verify_token(self, db: Session, token: Optional[str]) -> Optional[Integration]:
        if not token:
            return None
        return (
            db.query(Integration)
            .filter(Integration.type.in_(self.served_types()), Integration.verify_token == token)
            .first()
        )

    def verify(self, mode: Optional[str], token: Optional[str], challenge: Optional[str], expected: Optional[str]) -> str:
        return verify_subscription(mode, token, challenge, expected)
