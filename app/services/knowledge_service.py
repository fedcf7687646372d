import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import KNOWLEDGE_COMPLETED, Bot, Knowledge, KnowledgeVector
from app.services.alert_service import alert_warning
from app.services.embeddings import EmbeddingProvider

logger = get_logger("knowledge_service")


@dataclass(frozen=True)
class KnowledgeMatch:
    text: str
    similarity: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 when either has zero norm."""
    if len(a) != len(b):
        raise ValueError(f"Dimension mismatch: {len(a)} != {len(b)}")

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def get_completed_vectors(db: Session, bot: Bot) -> List[KnowledgeVector]:
    """Vectors of the bot's completed knowledge, in insertion order."""
    return (
        db.query(KnowledgeVector)
        .join(Knowledge, KnowledgeVector.knowledge_id == Knowledge.id)
        .filter(Knowledge.bot_id == bot.id, Knowledge.status == KNOWLEDGE_COMPLETED)
        .order_by(Knowledge.created_at, Knowledge.id, KnowledgeVector.chunk_index)
        .all()
    )


def rank_vectors(query_vector: Sequence[float], vectors: Sequence[KnowledgeVector], limit: int) -> List[KnowledgeMatch]:
    """Top `limit` chunks by similarity. Ties keep insertion order (stable sort)."""
    scored = []
    for vector in vectors:
        try:
            similarity = cosine_similarity(query_vector, vector.vector or [])
        except (ValueError, TypeError):
            logger.warning(
                "Skipping malformed knowledge vector",
                extra={"context": {"vector_id": str(vector.id), "knowledge_id": str(vector.knowledge_id)}},
            )
            continue
        scored.append(KnowledgeMatch(text=vector.text, similarity=similarity))

    scored.sort(key=lambda match: match.similarity, reverse=True)
    return scored[: max(limit, 0)]


def retrieve_knowledge(
    db: Session,
    bot: Bot,
    query: str,
    embedder: Optional[EmbeddingProvider],
    limit: int = 3,
) -> List[KnowledgeMatch]:
    """Most relevant knowledge chunks for `query`.

    Returns an empty list when the bot has no completed knowledge, when no
    embedding backend is configured, or when embedding fails.
    """
    if not query or not query.strip() or limit <= 0:
        return []

    vectors = get_completed_vectors(db, bot)
    if not vectors:
        return []

    if embedder is None:
        logger.info("No embedding provider, answering without knowledge", extra={"context": {"bot_id": str(bot.id)}})
        return []

    try:
        query_vector = embedder.embed(query)
        matches = rank_vectors(query_vector, vectors, limit)
    except Exception as e:
        logger.warning(f"Knowledge search failed: {e}", extra={"context": {"bot_id": str(bot.id)}})
        alert_warning("Knowledge search failed", {"bot_id": str(bot.id), "error": str(e)[:200]})
        return []
    logger.info(
        f"Knowledge search: {len(matches)} of {len(vectors)} chunks",
        extra={
            "context": {
                "bot_id": str(bot.id),
                "top_similarity": round(matches[0].similarity, 4) if matches else None,
            }
        },
    )
    return matches


def format_knowledge_context(matches: List[KnowledgeMatch]) -> str:
    """Knowledge block appended to the system prompt, one paragraph per chunk."""
    parts = [match.text.strip() for match in matches if match.text and match.text.strip()]
    if not parts:
        return ""
    return "Relevant knowledge:\n\n" + "\n\n".join(parts)
