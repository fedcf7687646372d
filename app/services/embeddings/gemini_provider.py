from typing import List

import httpx

from app.logging_config import get_logger
from app.services.embeddings.base import EmbeddingError, EmbeddingProvider

logger = get_logger("embeddings.gemini")

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiEmbeddingProvider(EmbeddingProvider):
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-004",
        base_url: str = GEMINI_BASE_URL,
        timeout_seconds: float = 10.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def embed(self, text: str) -> List[float]:
        with httpx.Client(timeout=self.timeout_seconds) as client:
            response = client.post(
                f"{self.base_url}/{self.model}:embedContent",
                params={"key": self.api_key},
                json={"model": f"models/{self.model}", "content": {"parts": [{"text": text}]}},
            )
        if response.status_code != 200:
            logger.error(f"Gemini embeddings error: {response.status_code} - {response.text[:300]}")
            raise EmbeddingError(f"Gemini embeddings error: {response.status_code}")

        body = response.json()
        embedding = body.get("embedding") if isinstance(body, dict) else None
        values = embedding.get("values") if isinstance(embedding, dict) else None
        if not isinstance(values, list) or not values:
            raise EmbeddingError("Gemini embeddings returned no values")
        return values

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        # one request per text, so order follows the input
        return [self.embed(text) for text in texts]
