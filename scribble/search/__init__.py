from scribble.search.base import SearchBackend
from scribble.search.conversational import ConversationalSearch
from scribble.search.excerpt import make_excerpt
from scribble.search.indexing import DocumentIndexer
from scribble.search.memory import InMemorySearchBackend
from scribble.search.retrieval import HybridRanker, rrf_merge
from scribble.search.service import SearchService
from scribble.search.store import SqliteSearchBackend
from scribble.search.types import Hit, IndexedDocument, RankedHit, SearchResult

__all__ = [
    "ConversationalSearch",
    "DocumentIndexer",
    "Hit",
    "HybridRanker",
    "InMemorySearchBackend",
    "IndexedDocument",
    "RankedHit",
    "SearchBackend",
    "SearchResult",
    "SearchService",
    "SqliteSearchBackend",
    "make_excerpt",
    "rrf_merge",
]
