# --- Hybrid Ranking ---
# Weighted Reciprocal Rank Fusion: score = weight / (RRF_K + rank + 1), rank 0-based

RRF_K = 60
LEXICAL_WEIGHT = 0.4
VECTOR_WEIGHT = 0.6

CANDIDATE_LIMIT = 50  # per retrieval list, before fusion
DEFAULT_SEARCH_LIMIT = 10
RETRIEVAL_TIMEOUT = 10.0  # seconds, covers both retrievals of one search

# Field boosts for lexical matching (title^3, tags^2, body^1)
LEXICAL_FIELD_WEIGHTS: dict[str, float] = {
    "title": 3.0,
    "content": 1.0,
    "tags": 2.0,
}

# Cosine similarity lives in [-1, 1]; shifted into [0, 2] so vector scores are non-negative
VECTOR_SCORE_SHIFT = 1.0


# --- Fuzzy Matching ---

FUZZY_MIN_RATIO = 0.8
FUZZY_MIN_PREFIX = 3


# --- Embeddings ---

EMBEDDING_DIM = 768
EMBEDDING_TEXT_LIMIT = 8000


# --- Excerpts ---

EXCERPT_LENGTH = 200
EXCERPT_LEADING_CHARS = 50
EXCERPT_TRAILING_CHARS = 150
EXCERPT_ELLIPSIS = "..."


# --- Sources ---

DEFAULT_SOURCE = "notes"


# --- Conversational Search ---

CONVERSATION_SEARCH_LIMIT = 10  # notes retrieved as context per question
CONVERSATION_SOURCE_LIMIT = 5  # notes returned to the caller as sources
CONVERSATION_HISTORY_LIMIT = 10  # earlier messages replayed to the model
CONVERSATION_TITLE_LENGTH = 50
CHAT_TEMPERATURE = 0.3
