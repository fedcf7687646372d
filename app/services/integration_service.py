from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import Bot, Integration, PlatformType
from app.services.platforms.telegram import TelegramAdapter

logger = get_logger("integration_service")


class IntegrationConfigError(Exception):
    """Integration cannot be configured as requested."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def bind_bot(db: Session, integration: Integration, bot: Bot) -> Bot:
    """Make `bot` the single bot answering on `integration`."""
    if bot.team_id != integration.team_id:
        raise IntegrationConfigError("Bot and integration belong to different teams")

    current = db.query(Bot).filter(Bot.integration_id == integration.id).first()
    if current is not None and current.id != bot.id:
        current.integration_id = None
        # release the unique slot before taking it
        db.flush()
        logger.info(
            "Previous bot detached",
            extra={"context": {"integration_id": str(integration.id), "bot_id": str(current.id)}},
        )

    bot.integration_id = integration.id
    db.flush()
    db.refresh(integration)
    return bot


def unbind_bot(db: Session, integration: Integration) -> Optional[Bot]:
    current = db.query(Bot).filter(Bot.integration_id == integration.id).first()
    if current is None:
        return None
    current.integration_id = None
    db.flush()
    db.refresh(integration)
    return current


def connect_telegram(
    db: Session,
    integration: Integration,
    bot_token: str,
    webhook_url: str,
    adapter: Optional[TelegramAdapter] = None,
) -> Integration:
    """Validate a bot token, register its webhook and store the credentials."""
    if integration.type != PlatformType.TELEGRAM.value:
        raise IntegrationConfigError(f"Integration {integration.id} is not a Telegram integration")

    adapter = adapter or TelegramAdapter()
    me = adapter.get_me(bot_token)
    if not me.get("ok"):
        raise IntegrationConfigError(f"Invalid bot token: {me.get('description', 'getMe failed')}")

    registered = adapter.set_webhook(bot_token, webhook_url)
    if not registered.get("ok"):
        raise IntegrationConfigError(f"Failed to set webhook: {registered.get('description', 'setWebhook failed')}")

    bot_info = me.get("result") or {}
    integration.telegram_bot_token = bot_token
    integration.telegram_username = bot_info.get("username")
    integration.webhook_url = webhook_url
    integration.settings = {
        "bot_id": bot_info.get("id"),
        "bot_username": bot_info.get("username"),
        "bot_name": bot_info.get("first_name"),
        "connected_at": _now().isoformat(),
    }
    integration.is_connected = True
    integration.updated_at = _now()
    db.flush()

    logger.info(
        "Telegram integration connected",
        extra={"context": {"integration_id": str(integration.id), "username": integration.telegram_username}},
    )
    return integration


def disconnect_integration(
    db: Session,
    integration: Integration,
    telegram: Optional[TelegramAdapter] = None,
) -> Integration:
    """Drop the platform credentials and mark the integration disconnected."""
    if integration.type == PlatformType.TELEGRAM.value and integration.telegram_bot_token:
        telegram = telegram or TelegramAdapter()
        result = telegram.delete_webhook(integration.telegram_bot_token)
        if not result.get("ok"):
            logger.warning(
                "deleteWebhook failed, clearing credentials anyway",
                extra={"context": {"integration_id": str(integration.id)}},
            )

    integration.access_token = None
    integration.verify_token = None
    integration.telegram_bot_token = None
    integration.telegram_username = None
    integration.webhook_url = None
    integration.settings = None
    integration.is_connected = False
    integration.updated_at = _now()
    db.flush()

    logger.info("Integration disconnected", extra={"context": {"integration_id": str(integration.id)}})
    return integration
