from collections.abc import Callable
from dataclasses import replace

from scribble.embedder import EmbeddingProvider
from scribble.logging import get_logger
from scribble.search.base import SearchBackend
from scribble.search.types import IndexedDocument

_logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class DocumentIndexer:
    """Embeds documents and writes them to the search backend.

    Indexing is best-effort: a failed write is logged and reported as False so
    the caller's own save can still succeed.
    """

    def __init__(self, backend: SearchBackend, embedder: EmbeddingProvider):
        self.backend = backend
        self.embedder = embedder

    async def index_document(self, doc: IndexedDocument) -> bool:
        try:
            embedding = await self.embedder.embed_one(doc.embedding_text)
            await self.backend.upsert(replace(doc, embedding=embedding))
        except Exception as e:
            _logger.error("Failed to index document %s: %s", doc.id, e, owner_id=doc.owner_id)
            return False
        _logger.debug("Indexed document %s", doc.id, owner_id=doc.owner_id)
        return True

    async def bulk_index(
        self,
        docs: list[IndexedDocument],
        progress_callback: ProgressCallback | None = None,
    ) -> int:
        total = len(docs)
        _logger.info("Starting bulk index of %d documents", total)

        indexed = 0
        for i, doc in enumerate(docs):
            if await self.index_document(doc):
                indexed += 1
            if progress_callback:
                progress_callback(i + 1, total)

        _logger.info("Bulk indexed %d of %d documents", indexed, total)
        return indexed

    async def delete_document(self, owner_id: str, document_id: str) -> bool:
        try:
            deleted = await self.backend.delete(owner_id, document_id)
        except Exception as e:
            _logger.error("Failed to delete document %s from index: %s", document_id, e, owner_id=owner_id)
            return False
        if deleted:
            _logger.debug("Deleted document %s from index", document_id, owner_id=owner_id)
        return deleted
