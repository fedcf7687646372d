import uuid
from unittest.mock import Mock

import pytest

from app.models import Bot, PlatformType
from app.services.integration_service import (
    IntegrationConfigError,
    bind_bot,
    connect_telegram,
    disconnect_integration,
    unbind_bot,
)


def telegram_adapter(get_me=None, set_webhook=None, delete_webhook=None):
    adapter = Mock()
    adapter.get_me.return_value = get_me or {"ok": True, "result": {"id": 42, "username": "bakery_bot", "first_name": "Bakery"}}
    adapter.set_webhook.return_value = set_webhook or {"ok": True, "result": True}
    adapter.delete_webhook.return_value = delete_webhook or {"ok": True, "result": True}
    return adapter


class TestBindBot:
    def test_binding_replaces_previous_bot(self, db, make_integration, make_bot):
        integration = make_integration()
        first = make_bot(integration, name="First")
        second = make_bot(name="Second")

        bind_bot(db, integration, second)

        assert integration.bot.id == second.id
        assert db.get(Bot, first.id).integration_id is None

    def test_rejects_bot_from_another_team(self, db, make_integration, make_bot):
        integration = make_integration()
        foreign = make_bot(team_id=uuid.uuid4())

        with pytest.raises(IntegrationConfigError):
            bind_bot(db, integration, foreign)

    def test_unbind(self, db, make_integration, make_bot):
        integration = make_integration()
        bot = make_bot(integration)

        assert unbind_bot(db, integration).id == bot.id
        assert integration.bot is None
        assert unbind_bot(db, integration) is None


class TestConnectTelegram:
    def test_stores_credentials(self, db, make_integration):
        integration = make_integration(PlatformType.TELEGRAM, access_token=None)
        adapter = telegram_adapter()

        connect_telegram(db, integration, "1:T", "https://bots.example.com/webhooks/telegram/1:T", adapter=adapter)

        adapter.set_webhook.assert_called_once_with("1:T", "https://bots.example.com/webhooks/telegram/1:T")
        assert integration.telegram_bot_token == "1:T"
        assert integration.telegram_username == "bakery_bot"
        assert integration.is_connected is True
        assert integration.settings["bot_id"] == 42

    def test_invalid_token_leaves_integration_untouched(self, db, make_integration):
        integration = make_integration(PlatformType.TELEGRAM, access_token=None, is_connected=False)
        adapter = telegram_adapter(get_me={"ok": False, "description": "Unauthorized"})

        with pytest.raises(IntegrationConfigError):
            connect_telegram(db, integration, "bad", "https://x", adapter=adapter)

        adapter.set_webhook.assert_not_called()
        assert integration.telegram_bot_token is None

    def test_rejects_non_telegram_integration(self, db, make_integration):
        with pytest.raises(IntegrationConfigError):
            connect_telegram(db, make_integration(), "1:T", "https://x", adapter=telegram_adapter())


class TestDisconnect:
    def test_telegram_deletes_webhook_and_clears_credentials(self, db, make_integration):
        integration = make_integration(
            PlatformType.TELEGRAM, telegram_bot_token="1:T", telegram_username="bakery_bot", verify_token="v"
        )
        adapter = telegram_adapter()

        disconnect_integration(db, integration, telegram=adapter)

        adapter.delete_webhook.assert_called_once_with("1:T")
        assert integration.telegram_bot_token is None
        assert integration.access_token is None
        assert integration.verify_token is None
        assert integration.is_connected is False

    def test_meta_integration_clears_tokens(self, db, make_integration):
        integration = make_integration(PlatformType.MESSENGER, messenger_page_id="P1", verify_token="v")

        disconnect_integration(db, integration)

        assert integration.access_token is None
        assert integration.messenger_page_id == "P1"
