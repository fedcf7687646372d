from typing import List

import httpx

from app.logging_config import get_logger
from app.services.embeddings.base import EmbeddingError, EmbeddingProvider

logger = get_logger("embeddings.openai")


class OpenAIEmbeddingProvider(EmbeddingProvider):
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 10.0,
    ):
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/embeddings"
        self.timeout_seconds = timeout_seconds

    def _request(self, inputs) -> List[dict]:
        with httpx.Client(timeout=self.timeout_seconds) as client:
            response = client.post(
                self.url,
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                json={"model": self.model, "input": inputs},
            )
        if response.status_code != 200:
            logger.error(f"OpenAI embeddings error: {response.status_code} - {response.text[:300]}")
            raise EmbeddingError(f"OpenAI embeddings error: {response.status_code}")

        body = response.json()
        if not isinstance(body, dict):
            raise EmbeddingError("OpenAI embeddings returned an unexpected body")
        data = body.get("data") or []
        if not isinstance(data, list) or not data:
            raise EmbeddingError("OpenAI embeddings returned no data")
        if not all(isinstance(item, dict) and isinstance(item.get("embedding"), list) for item in data):
            raise EmbeddingError("OpenAI embeddings returned malformed items")
        return data

    def embed(self, text: str) -> List[float]:
        return self._request(text)[0]["embedding"]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        data = self._request(list(texts))
        if len(data) != len(texts):
            raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(data)}")
        # the API may answer out of order; each item carries its input index
        ordered = sorted(data, key=lambda item: item.get("index", 0))
        return [item["embedding"] for item in ordered]
