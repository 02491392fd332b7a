from abc import ABC, abstractmethod

import numpy as np

from scribble.search.types import Hit, IndexedDocument


class SearchBackend(ABC):
    """Text and vector index over owner-scoped documents.

    Both search methods must only ever return documents of `owner_id`, ordered
    by score descending.
    """

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def upsert(self, doc: IndexedDocument) -> None: ...

    @abstractmethod
    async def delete(self, owner_id: str, document_id: str) -> bool: ...

    @abstractmethod
    async def get(self, owner_id: str, document_id: str) -> IndexedDocument | None: ...

    @abstractmethod
    async def count(self, owner_id: str | None = None) -> int: ...

    @abstractmethod
    async def search_lexical(
        self,
        owner_id: str,
        query: str,
        field_weights: dict[str, float],
        max_results: int,
        sources: set[str] | None = None,
    ) -> list[Hit]:
        """Fuzzy multi-field keyword search, each field's match scaled by its weight."""

    @abstractmethod
    async def search_vector(
        self,
        owner_id: str,
        query_vector: np.ndarray,
        max_results: int,
        sources: set[str] | None = None,
    ) -> list[Hit]:
        """Nearest neighbours by cosine similarity, shifted by +1 into [0, 2]."""
