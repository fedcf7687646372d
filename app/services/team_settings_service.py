from dataclasses import dataclass
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import Settings, settings as default_settings
from app.logging_config import get_logger
from app.models import TeamSetting
from app.services.embeddings import EmbeddingProvider, GeminiEmbeddingProvider, OpenAIEmbeddingProvider
from app.services.llm import LLMProvider, OpenAIProvider

logger = get_logger("team_settings")

GEMINI_DEFAULT_EMBEDDING_MODEL = "text-embedding-004"

AI_SETTING_KEYS = (
    "ai_provider",
    "ai_base_url",
    "ai_api_key",
    "ai_model",
    "embedding_provider",
    "embedding_api_key",
    "embedding_model",
)


@dataclass(frozen=True)
class AIConfiguration:
    provider: str
    base_url: str
    api_key: Optional[str]
    model: str
    embedding_provider: str
    embedding_api_key: Optional[str]
    embedding_model: str


def get_team_settings(db: Session, team_id: UUID) -> Dict[str, Optional[str]]:
    rows = (
        db.query(TeamSetting)
        .filter(TeamSetting.team_id == team_id, TeamSetting.key.in_(AI_SETTING_KEYS))
        .all()
    )
    return {row.key: row.value for row in rows}


def load_ai_configuration(db: Session, team_id: UUID, config: Optional[Settings] = None) -> AIConfiguration:
    """Per-team model and embedding configuration, falling back to global defaults."""
    config = config or default_settings
    values = get_team_settings(db, team_id)

    embedding_provider = (values.get("embedding_provider") or config.default_embedding_provider).lower()
    embedding_model = values.get("embedding_model")
    if not embedding_model:
        embedding_model = (
            GEMINI_DEFAULT_EMBEDDING_MODEL if embedding_provider == "gemini" else config.default_embedding_model
        )

    return AIConfiguration(
        provider=(values.get("ai_provider") or config.default_ai_provider).lower(),
        base_url=values.get("ai_base_url") or config.default_ai_base_url,
        api_key=values.get("ai_api_key"),
        model=values.get("ai_model") or config.default_ai_model,
        embedding_provider=embedding_provider,
        embedding_api_key=values.get("embedding_api_key") or values.get("ai_api_key"),
        embedding_model=embedding_model,
    )


def build_llm_provider(ai_config: AIConfiguration, config: Optional[Settings] = None) -> Optional[LLMProvider]:
    config = config or default_settings
    if not ai_config.api_key:
        logger.warning("No AI API key configured for team")
        return None

    headers = {}
    if ai_config.provider == "openrouter":
        # OpenRouter attribution headers
        headers = {"HTTP-Referer": config.app_url, "X-Title": config.app_name}

    return OpenAIProvider(
        api_key=ai_config.api_key,
        base_url=ai_config.base_url,
        default_model=ai_config.model,
        extra_headers=headers,
        timeout_seconds=config.llm_timeout_seconds,
    )


def build_embedding_provider(
    ai_config: AIConfiguration, config: Optional[Settings] = None
) -> Optional[EmbeddingProvider]:
    config = config or default_settings
    if not ai_config.embedding_api_key:
        logger.warning("No embedding API key configured for team")
        return None

    if ai_config.embedding_provider == "gemini":
        return GeminiEmbeddingProvider(
            api_key=ai_config.embedding_api_key,
            model=ai_config.embedding_model,
            timeout_seconds=config.embedding_timeout_seconds,
        )
    if ai_config.embedding_provider != "openai":
        logger.warning(f"Unknown embedding provider {ai_config.embedding_provider}, using openai")
    return OpenAIEmbeddingProvider(
        api_key=ai_config.embedding_api_key,
        model=ai_config.embedding_model,
        timeout_seconds=config.embedding_timeout_seconds,
    )
