from abc import ABC, abstractmethod
from typing import List


class EmbeddingError(Exception):
    """Embedding backend returned an error or an unusable body."""


class EmbeddingProvider(ABC):
    """Turns text into vectors. Batch output keeps input order."""

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        pass

    @abstractmethod
    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        pass
