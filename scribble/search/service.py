from collections.abc import Iterable

from scribble.config import Config
from scribble.constants import DEFAULT_SEARCH_LIMIT
from scribble.embedder import EmbeddingProvider, ZeroEmbedder, create_embedder
from scribble.search.base import SearchBackend
from scribble.search.conversational import ConversationalAnswer, ConversationalSearch
from scribble.search.indexing import DocumentIndexer, ProgressCallback
from scribble.search.retrieval import HybridRanker
from scribble.search.store import SqliteSearchBackend
from scribble.search.types import IndexedDocument, SearchResult


class SearchService:
    """Owns the backend, embedder, ranker and indexer for the process lifetime."""

    def __init__(
        self,
        config: Config,
        backend: SearchBackend | None = None,
        embedder: EmbeddingProvider | None = None,
    ):
        self.config = config
        self.backend = backend or SqliteSearchBackend(config.search_db_path, config.embedding_dim)
        self.embedder = embedder or create_embedder(config.embedding)
        self.ranker = HybridRanker(
            backend=self.backend,
            embedder=self.embedder,
            rrf_k=config.rrf_k,
            lexical_weight=config.lexical_weight,
            vector_weight=config.vector_weight,
            candidate_limit=config.candidate_limit,
            timeout=config.retrieval_timeout,
        )
        self.indexer = DocumentIndexer(self.backend, self.embedder)
        self.conversations = ConversationalSearch(self.ranker, config.chat_model)

    async def connect(self) -> None:
        await self.backend.connect()

    async def close(self) -> None:
        await self.backend.close()

    async def hybrid_search(
        self,
        query: str,
        owner_id: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        source_filter: Iterable[str] | None = None,
    ) -> list[SearchResult]:
        return await self.ranker.hybrid_search(query, owner_id, limit, source_filter)

    async def converse(
        self,
        query: str,
        owner_id: str,
        conversation_id: str | None = None,
    ) -> ConversationalAnswer:
        return await self.conversations.handle_query(query, owner_id, conversation_id)

    async def index_document(self, doc: IndexedDocument) -> bool:
        return await self.indexer.index_document(doc)

    async def bulk_index(
        self,
        docs: list[IndexedDocument],
        progress_callback: ProgressCallback | None = None,
    ) -> int:
        return await self.indexer.bulk_index(docs, progress_callback)

    async def delete_document(self, owner_id: str, document_id: str) -> bool:
        return await self.indexer.delete_document(owner_id, document_id)

    async def get_stats(self, owner_id: str | None = None) -> dict[str, int | bool]:
        return {
            "documents": await self.backend.count(owner_id),
            "vector_search": not isinstance(self.embedder, ZeroEmbedder),
        }
