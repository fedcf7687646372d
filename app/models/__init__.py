from app.models.bot import DEFAULT_PROMPT, Bot
from app.models.chat_turn import ChatTurn
from app.models.conversation_session import ConversationSession
from app.models.integration import Integration, PlatformType
from app.models.knowledge import KNOWLEDGE_COMPLETED, Knowledge, KnowledgeVector
from app.models.team_setting import TeamSetting

__all__ = [
    "Integration",
    "PlatformType",
    "Bot",
    "DEFAULT_PROMPT",
    "TeamSetting",
    "Knowledge",
    "KnowledgeVector",
    "KNOWLEDGE_COMPLETED",
    "ConversationSession",
    "ChatTurn",
]
