from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import numpy as np

from scribble.constants import DEFAULT_SOURCE


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False)
class IndexedDocument:
    """A document as stored in the search index. Every document has exactly one owner."""

    id: str
    owner_id: str
    title: str
    content: str
    tags: frozenset[str] = frozenset()
    embedding: np.ndarray | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    source: str = DEFAULT_SOURCE

    def __post_init__(self):
        self.tags = frozenset(self.tags)

    @property
    def embedding_text(self) -> str:
        return f"{self.title}\n\n{self.content}"


@dataclass
class Hit:
    """One entry of a retrieval list, in the backend's native score order."""

    id: str
    score: float
    source: IndexedDocument


@dataclass
class RankedHit:
    """A hit tagged with its 0-based position in the list it came from."""

    document_id: str
    source: IndexedDocument
    rank: int


@dataclass
class SearchResult:
    document_id: str
    title: str
    content: str
    excerpt: str
    # Fused RRF score, only comparable within one response
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "title": self.title,
            "content": self.content,
            "excerpt": self.excerpt,
            "score": self.score,
        }
