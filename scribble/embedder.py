from abc import ABC, abstractmethod
from dataclasses import dataclass

import litellm
import numpy as np

from scribble.constants import EMBEDDING_DIM, EMBEDDING_TEXT_LIMIT
from scribble.logging import get_logger

_logger = get_logger(__name__)


@dataclass
class EmbeddingConfig:
    model: str | None
    dim: int = EMBEDDING_DIM


def is_null_vector(vector: np.ndarray | None) -> bool:
    """A zero-norm vector means vector search is unavailable for this query."""
    if vector is None or vector.size == 0:
        return True
    return not np.any(vector)


class EmbeddingProvider(ABC):
    dim: int

    @abstractmethod
    async def embed(self, texts: list[str]) -> np.ndarray:
        """Embed texts into an (n, dim) array. Must not raise on backend failure."""

    async def embed_one(self, text: str) -> np.ndarray:
        return (await self.embed([text]))[0]

    def zeros(self, n: int) -> np.ndarray:
        return np.zeros((n, self.dim), dtype=np.float32)


class ZeroEmbedder(EmbeddingProvider):
    """Fallback when no embedding backend is configured: every text maps to the zero vector."""

    def __init__(self, dim: int = EMBEDDING_DIM):
        self.dim = dim

    async def embed(self, texts: list[str]) -> np.ndarray:
        return self.zeros(len(texts))


class Embedder(EmbeddingProvider):
    def __init__(self, config: EmbeddingConfig):
        if not config.model:
            raise ValueError("Embedder requires an embedding model")
        self.config = config
        self.dim = config.dim

    def _normalize(self, embeddings: np.ndarray) -> np.ndarray:
        norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
        return embeddings / np.where(norms == 0, 1, norms)

    def _parse_response(self, response) -> np.ndarray:
        sorted_data = sorted(response.data, key=lambda x: x["index"])
        embeddings = np.array([item["embedding"] for item in sorted_data], dtype=np.float32)
        if embeddings.shape[1] != self.dim:
            raise ValueError(f"Expected {self.dim}-dim embeddings, got {embeddings.shape[1]}")
        return self._normalize(embeddings)

    async def embed(self, texts: list[str]) -> np.ndarray:
        if not texts:
            return self.zeros(0)
        truncated = [t[:EMBEDDING_TEXT_LIMIT] for t in texts]
        try:
            response = await litellm.aembedding(
                model=self.config.model,
                input=truncated,
                dimensions=self.dim,
            )
            return self._parse_response(response)
        except Exception as e:
            _logger.warning(
                "Embedding failed, using zero vectors: %s",
                e,
                model=self.config.model,
                error_kind=type(e).__name__,
            )
            return self.zeros(len(texts))


def create_embedder(config: EmbeddingConfig) -> EmbeddingProvider:
    if not config.model:
        _logger.warning("Embedding model not configured, vector search disabled")
        return ZeroEmbedder(config.dim)
    return Embedder(config)
