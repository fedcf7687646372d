from app.services.embeddings.base import EmbeddingError, EmbeddingProvider
from app.services.embeddings.gemini_provider import GeminiEmbeddingProvider
from app.services.embeddings.openai_provider import OpenAIEmbeddingProvider

__all__ = ["EmbeddingError", "EmbeddingProvider", "GeminiEmbeddingProvider", "OpenAIEmbeddingProvider"]
