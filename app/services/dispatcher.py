"""Orchestration of one inbound message: session, knowledge, reply, persist, send."""

from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.config import Settings, settings as default_settings
from app.logging_config import bind_logger
from app.models import ChatTurn, Integration
from app.services.ai_service import generate_response
from app.services.knowledge_service import retrieve_knowledge
from app.services.platforms import InboundMessage, PlatformAdapter, adapter_for_integration
from app.services.session_service import add_turn, find_or_create_session, get_recent_turns
from app.services.team_settings_service import (
    build_embedding_provider,
    build_llm_provider,
    load_ai_configuration,
)

NOT_CONFIGURED_MESSAGE = "Bot not configured. Please contact support."


class MessageDispatcher:
    """Runs the reply pipeline against injected adapters and backend factories."""

    def __init__(
        self,
        adapters: Dict[str, PlatformAdapter],
        config: Optional[Settings] = None,
        ai_config_loader: Callable = load_ai_configuration,
        llm_factory: Callable = build_llm_provider,
        embedder_factory: Callable = build_embedding_provider,
    ):
        self.adapters = adapters
        self.config = config or default_settings
        self.ai_config_loader = ai_config_loader
        self.llm_factory = llm_factory
        self.embedder_factory = embedder_factory

    def adapter_for(self, integration: Integration) -> Optional[PlatformAdapter]:
        return adapter_for_integration(self.adapters, integration.type)

    def handle(self, db: Session, integration: Integration, inbound: InboundMessage) -> Optional[ChatTurn]:
        """Answer one inbound message. Returns the persisted turn, or None when nothing was stored."""
        log = bind_logger(
            "dispatcher",
            integration_id=str(integration.id),
            platform=integration.type,
            sender_id=inbound.sender_id,
        )

        adapter = self.adapter_for(integration)
        if adapter is None:
            log.error(f"No adapter for integration type {integration.type}")
            return None

        adapter.acknowledge(integration, inbound)

        bot = integration.bot
        if bot is None:
            log.warning("Integration has no bot bound, sending not-configured notice")
            adapter.send(integration, inbound.sender_id, NOT_CONFIGURED_MESSAGE)
            return None

        session = find_or_create_session(
            db, integration, inbound.sender_id, inbound.session_metadata(adapter.platform.value)
        )
        history = get_recent_turns(db, session, limit=self.config.history_turns)

        ai_config = self.ai_config_loader(db, bot.team_id, self.config)
        llm = self.llm_factory(ai_config, self.config)
        embedder = self.embedder_factory(ai_config, self.config)

        knowledge = retrieve_knowledge(db, bot, inbound.text, embedder, limit=self.config.knowledge_top_k)
        reply = generate_response(
            llm,
            bot,
            inbound.text,
            history=history,
            knowledge=knowledge,
            max_tokens=self.config.llm_max_tokens,
        )

        turn = add_turn(db, session, inbound.text, reply, external_message_id=inbound.message_id)

        delivered = adapter.send(integration, inbound.sender_id, adapter.format_reply(reply))
        log.info(
            "Message handled",
            extra={
                "context": {
                    "session_id": str(session.id),
                    "session_status": session.status,
                    "knowledge_hits": len(knowledge),
                    "delivered": delivered,
                }
            },
        )
        return turn
