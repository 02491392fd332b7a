import asyncio
import time
from collections import defaultdict
from collections.abc import Iterable

from scribble.constants import (
    CANDIDATE_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    LEXICAL_FIELD_WEIGHTS,
    LEXICAL_WEIGHT,
    RETRIEVAL_TIMEOUT,
    RRF_K,
    VECTOR_WEIGHT,
)
from scribble.embedder import EmbeddingProvider, is_null_vector
from scribble.logging import get_logger
from scribble.search.base import SearchBackend
from scribble.search.excerpt import make_excerpt
from scribble.search.types import Hit, IndexedDocument, RankedHit, SearchResult

_logger = get_logger(__name__)


def rrf_merge(
    rankings: list[list[RankedHit]],
    weights: list[float] | None = None,
    k: int = RRF_K,
) -> dict[str, float]:
    """Weighted Reciprocal Rank Fusion over several ranked lists.

    Each hit contributes weight / (k + rank + 1), rank being 0-based, and
    contributions of the same document are summed. Keys keep the order in
    which documents were first seen, so a stable sort on the scores breaks
    ties by first appearance.
    """
    if weights is None:
        weights = [1.0] * len(rankings)
    if len(weights) != len(rankings):
        raise ValueError(f"Got {len(weights)} weights for {len(rankings)} rankings")

    scores: dict[str, float] = defaultdict(float)
    for ranking, weight in zip(rankings, weights):
        for hit in ranking:
            scores[hit.document_id] += weight / (k + hit.rank + 1)
    return dict(scores)


def to_ranked(hits: Iterable[Hit]) -> list[RankedHit]:
    return [RankedHit(document_id=h.id, source=h.source, rank=i) for i, h in enumerate(hits)]


def _error_kind(e: BaseException) -> str:
    if isinstance(e, BaseExceptionGroup) and e.exceptions:
        return _error_kind(e.exceptions[0])
    return type(e).__name__


def validate_search_args(query: str, limit: int) -> None:
    if query is None or not isinstance(query, str):
        raise ValueError("query must be a string")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be an integer >= 1, got {limit!r}")


class HybridRanker:
    def __init__(
        self,
        backend: SearchBackend,
        embedder: EmbeddingProvider,
        rrf_k: int = RRF_K,
        lexical_weight: float = LEXICAL_WEIGHT,
        vector_weight: float = VECTOR_WEIGHT,
        candidate_limit: int = CANDIDATE_LIMIT,
        field_weights: dict[str, float] | None = None,
        timeout: float | None = RETRIEVAL_TIMEOUT,
    ):
        self.backend = backend
        self.embedder = embedder
        self.rrf_k = rrf_k
        self.lexical_weight = lexical_weight
        self.vector_weight = vector_weight
        self.candidate_limit = candidate_limit
        self.field_weights = dict(field_weights or LEXICAL_FIELD_WEIGHTS)
        self.timeout = timeout

    async def _lexical_search(
        self,
        query: str,
        owner_id: str,
        sources: set[str] | None,
    ) -> list[RankedHit]:
        hits = await self.backend.search_lexical(owner_id, query, self.field_weights, self.candidate_limit, sources)
        return to_ranked(hits[: self.candidate_limit])

    async def _vector_search(
        self,
        query: str,
        owner_id: str,
        sources: set[str] | None,
    ) -> list[RankedHit]:
        query_vector = await self.embedder.embed_one(query)
        if is_null_vector(query_vector):
            _logger.debug("Query embedding unavailable, skipping vector search", owner_id=owner_id)
            return []
        hits = await self.backend.search_vector(owner_id, query_vector, self.candidate_limit, sources)
        return to_ranked(hits[: self.candidate_limit])

    def fuse(self, lexical: list[RankedHit], vector: list[RankedHit]) -> list[tuple[IndexedDocument, float]]:
        """Merge both lists into (document, fused score), best first."""
        documents: dict[str, IndexedDocument] = {}
        for hit in (*lexical, *vector):
            documents.setdefault(hit.document_id, hit.source)

        scores = rrf_merge([lexical, vector], [self.lexical_weight, self.vector_weight], self.rrf_k)
        # sorted() is stable: equal scores keep first-seen order, lexical before vector
        ordered = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        return [(documents[doc_id], score) for doc_id, score in ordered]

    async def _search(
        self,
        query: str,
        owner_id: str,
        limit: int,
        sources: set[str] | None,
    ) -> list[SearchResult]:
        async with asyncio.TaskGroup() as tg:
            lexical_task = tg.create_task(self._lexical_search(query, owner_id, sources))
            vector_task = tg.create_task(self._vector_search(query, owner_id, sources))

        fused = self.fuse(lexical_task.result(), vector_task.result())
        return [
            SearchResult(
                document_id=doc.id,
                title=doc.title,
                content=doc.content,
                excerpt=make_excerpt(doc.content, query),
                score=score,
            )
            for doc, score in fused[:limit]
        ]

    async def hybrid_search(
        self,
        query: str,
        owner_id: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        source_filter: Iterable[str] | None = None,
    ) -> list[SearchResult]:
        """Rank the owner's documents for query by fusing keyword and semantic retrieval.

        Raises ValueError for malformed arguments. Retrieval failures and timeouts
        are logged and produce an empty list.
        """
        validate_search_args(query, limit)
        if isinstance(source_filter, str):
            source_filter = [source_filter]
        sources = set(source_filter) if source_filter else None

        start = time.monotonic()
        try:
            results = await asyncio.wait_for(self._search(query, owner_id, limit, sources), timeout=self.timeout)
        except Exception as e:
            _logger.warning(
                "Hybrid search failed: %s",
                e,
                owner_id=owner_id,
                query_length=len(query),
                query_terms=len(query.split()),
                error_kind=_error_kind(e),
            )
            return []

        _logger.debug(
            "Hybrid search completed in %dms",
            (time.monotonic() - start) * 1000,
            owner_id=owner_id,
            results=len(results),
        )
        return results
