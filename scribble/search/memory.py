import numpy as np

from scribble.constants import VECTOR_SCORE_SHIFT
from scribble.search.base import SearchBackend
from scribble.search.fuzzy import term_matches, tokenize
from scribble.search.types import Hit, IndexedDocument


def _field_tokens(doc: IndexedDocument) -> dict[str, set[str]]:
    tag_tokens: set[str] = set()
    for tag in doc.tags:
        tag_tokens.update(tokenize(tag))
    return {
        "title": set(tokenize(doc.title)),
        "content": set(tokenize(doc.content)),
        "tags": tag_tokens,
    }


def lexical_score(terms: list[str], doc: IndexedDocument, field_weights: dict[str, float]) -> float:
    fields = _field_tokens(doc)
    score = 0.0
    for name, weight in field_weights.items():
        tokens = fields.get(name)
        if not tokens:
            continue
        matched = sum(1 for term in terms if any(term_matches(term, token) for token in tokens))
        score += weight * matched
    return score


def cosine_score(query_vector: np.ndarray, embedding: np.ndarray) -> float | None:
    q_norm = np.linalg.norm(query_vector)
    d_norm = np.linalg.norm(embedding)
    if q_norm == 0 or d_norm == 0:
        return None
    return float(np.dot(query_vector, embedding) / (q_norm * d_norm)) + VECTOR_SCORE_SHIFT


class InMemorySearchBackend(SearchBackend):
    """Dict-backed index. Scans every document of the owner on each query."""

    def __init__(self):
        self._docs: dict[tuple[str, str], IndexedDocument] = {}

    def _owned(self, owner_id: str, sources: set[str] | None) -> list[IndexedDocument]:
        return [
            doc
            for (doc_owner, _), doc in self._docs.items()
            if doc_owner == owner_id and (not sources or doc.source in sources)
        ]

    async def upsert(self, doc: IndexedDocument) -> None:
        self._docs[(doc.owner_id, doc.id)] = doc

    async def delete(self, owner_id: str, document_id: str) -> bool:
        return self._docs.pop((owner_id, document_id), None) is not None

    async def get(self, owner_id: str, document_id: str) -> IndexedDocument | None:
        return self._docs.get((owner_id, document_id))

    async def count(self, owner_id: str | None = None) -> int:
        if owner_id is None:
            return len(self._docs)
        return sum(1 for doc_owner, _ in self._docs if doc_owner == owner_id)

    async def search_lexical(
        self,
        owner_id: str,
        query: str,
        field_weights: dict[str, float],
        max_results: int,
        sources: set[str] | None = None,
    ) -> list[Hit]:
        terms = tokenize(query)
        if not terms:
            return []

        hits = []
        for doc in self._owned(owner_id, sources):
            score = lexical_score(terms, doc, field_weights)
            if score > 0:
                hits.append(Hit(id=doc.id, score=score, source=doc))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:max_results]

    async def search_vector(
        self,
        owner_id: str,
        query_vector: np.ndarray,
        max_results: int,
        sources: set[str] | None = None,
    ) -> list[Hit]:
        hits = []
        for doc in self._owned(owner_id, sources):
            if doc.embedding is None:
                continue
            score = cosine_score(query_vector, doc.embedding)
            if score is not None:
                hits.append(Hit(id=doc.id, score=score, source=doc))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:max_results]
