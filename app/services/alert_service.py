"""Operator alerts delivered to a Telegram chat."""

from typing import Optional

import httpx

from app.config import settings
from app.logging_config import get_logger

logger = get_logger("alert_service")

LEVEL_MARKERS = {"INFO": "[i]", "WARNING": "[!]", "ERROR": "[x]", "CRITICAL": "[!!]"}


def send_alert(level: str, message: str, context: Optional[dict] = None) -> bool:
    """Post an alert to the operator chat.

    Returns True only when Telegram accepted the message. Never raises.
    """
    if not settings.alert_bot_token or not settings.alert_chat_id:
        logger.warning(f"Alert not configured: {level} - {message}", extra={"context": context or {}})
        return False

    text = f"{LEVEL_MARKERS.get(level, '[-]')} {settings.app_name} {level}\n\n{message}"
    if context:
        details = "\n".join(f"{key}: {value}" for key, value in context.items())
        text += f"\n\n{details}"

    url = f"{settings.telegram_api_base_url}/bot{settings.alert_bot_token}/sendMessage"
    try:
        with httpx.Client(timeout=settings.platform_timeout_seconds) as client:
            response = client.post(url, json={"chat_id": settings.alert_chat_id, "text": text})
            return response.status_code == 200
    except httpx.HTTPError as e:
        logger.error(f"Failed to send alert: {e}")
        return False


def alert_warning(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("WARNING", message, context)


def alert_error(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("ERROR", message, context)


def alert_critical(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("CRITICAL", message, context)
