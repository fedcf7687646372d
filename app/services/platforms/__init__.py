from typing import Dict, Optional

from app.config import Settings
from app.models import PlatformType
from app.services.platforms.base import InboundMessage, PlatformAdapter, placeholder
from app.services.platforms.messenger import InstagramAdapter, MessengerAdapter
from app.services.platforms.telegram import TelegramAdapter
from app.services.platforms.whatsapp import WhatsAppAdapter

# webhook path segment -> adapter class
ADAPTER_CLASSES = {
    "whatsapp": WhatsAppAdapter,
    "messenger": MessengerAdapter,
    "instagram": InstagramAdapter,
    "telegram": TelegramAdapter,
}


def build_adapters(config: Optional[Settings] = None) -> Dict[str, PlatformAdapter]:
    return {name: adapter_class(config) for name, adapter_class in ADAPTER_CLASSES.items()}


def adapter_for_integration(adapters: Dict[str, PlatformAdapter], integration_type: str) -> Optional[PlatformAdapter]:
    """Adapter serving an integration type (both WhatsApp types share one adapter)."""
    for adapter in adapters.values():
        if integration_type in adapter.served_types():
            return adapter
    return None


__all__ = [
    "ADAPTER_CLASSES",
    "InboundMessage",
    "InstagramAdapter",
    "MessengerAdapter",
    "PlatformAdapter",
    "PlatformType",
    "TelegramAdapter",
    "WhatsAppAdapter",
    "adapter_for_integration",
    "build_adapters",
    "placeholder",
]
