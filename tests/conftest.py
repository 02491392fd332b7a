import asyncio
import hashlib
from collections.abc import AsyncGenerator
from pathlib import Path

import numpy as np
import pytest
import pytest_asyncio

from scribble.embedder import EmbeddingProvider
from scribble.search.base import SearchBackend
from scribble.search.memory import InMemorySearchBackend
from scribble.search.store import SqliteSearchBackend
from scribble.search.types import Hit, IndexedDocument

TEST_EMBEDDING_DIM = 768


def mock_embedding(text: str) -> np.ndarray:
    h = hashlib.md5(text.encode()).hexdigest()
    # MD5 is 32 chars, repeat to get TEST_EMBEDDING_DIM
    arr = np.array([int(c, 16) / 15.0 for c in h] * (TEST_EMBEDDING_DIM // 32))
    norm = np.linalg.norm(arr)
    return arr / norm if norm > 0 else arr


class MockEmbedder(EmbeddingProvider):
    def __init__(self, dim: int = TEST_EMBEDDING_DIM):
        self.dim = dim
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> np.ndarray:
        self.calls.extend(texts)
        if not texts:
            return self.zeros(0)
        return np.stack([mock_embedding(t) for t in texts])


class StubBackend(SearchBackend):
    """Returns preset hit lists, or raises, regardless of the query."""

    def __init__(
        self,
        lexical: list[Hit] | None = None,
        vector: list[Hit] | None = None,
        lexical_error: Exception | None = None,
        vector_error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.lexical = lexical or []
        self.vector = vector or []
        self.lexical_error = lexical_error
        self.vector_error = vector_error
        self.delay = delay
        self.lexical_calls: list[dict] = []
        self.vector_calls: list[dict] = []

    async def upsert(self, doc: IndexedDocument) -> None:
        raise NotImplementedError

    async def delete(self, owner_id: str, document_id: str) -> bool:
        return False

    async def get(self, owner_id: str, document_id: str) -> IndexedDocument | None:
        return None

    async def count(self, owner_id: str | None = None) -> int:
        return 0

    async def search_lexical(self, owner_id, query, field_weights, max_results, sources=None):
        self.lexical_calls.append(
            {"owner_id": owner_id, "query": query, "field_weights": field_weights,
             "max_results": max_results, "sources": sources}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.lexical_error:
            raise self.lexical_error
        return list(self.lexical)

    async def search_vector(self, owner_id, query_vector, max_results, sources=None):
        self.vector_calls.append({"owner_id": owner_id, "max_results": max_results, "sources": sources})
        if self.vector_error:
            raise self.vector_error
        return list(self.vector)


def make_doc(
    doc_id: str,
    owner_id: str = "alice",
    title: str = "",
    content: str = "",
    tags: set[str] | None = None,
    embedding: np.ndarray | None = None,
    source: str = "notes",
) -> IndexedDocument:
    return IndexedDocument(
        id=doc_id,
        owner_id=owner_id,
        title=title,
        content=content,
        tags=frozenset(tags or ()),
        embedding=embedding,
        source=source,
    )


def make_hits(*doc_ids: str, owner_id: str = "alice") -> list[Hit]:
    return [
        Hit(id=doc_id, score=float(len(doc_ids) - i), source=make_doc(doc_id, owner_id, title=doc_id.upper()))
        for i, doc_id in enumerate(doc_ids)
    ]


def make_completion(content: str):
    """Minimal stand-in for a litellm completion response."""
    message = type("Message", (), {"content": content})()
    return type("Response", (), {"choices": [type("Choice", (), {"message": message})()]})()


@pytest.fixture
def embedder() -> MockEmbedder:
    return MockEmbedder()


@pytest.fixture
def memory_backend() -> InMemorySearchBackend:
    return InMemorySearchBackend()


@pytest_asyncio.fixture
async def sqlite_backend(tmp_path: Path) -> AsyncGenerator[SqliteSearchBackend]:
    backend = SqliteSearchBackend(tmp_path / "search.db", TEST_EMBEDDING_DIM)
    await backend.connect()
    yield backend
    await backend.close()
