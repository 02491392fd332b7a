from datetime import datetime

from pydantic import BaseModel, Field

from scribble.constants import DEFAULT_SEARCH_LIMIT, DEFAULT_SOURCE


# --- Search ---


class HybridSearchRequest(BaseModel):
    query: str
    owner_id: str = Field(..., min_length=1)
    limit: int = Field(default=DEFAULT_SEARCH_LIMIT, ge=1)
    sources: list[str] | None = None


class SearchResultResponse(BaseModel):
    document_id: str
    title: str
    content: str
    excerpt: str
    score: float


class HybridSearchResponse(BaseModel):
    results: list[SearchResultResponse]


class ConversationalSearchRequest(BaseModel):
    query: str
    owner_id: str = Field(..., min_length=1)
    conversation_id: str | None = None


class ConversationalSearchResponse(BaseModel):
    response: str
    sources: list[SearchResultResponse]
    conversation_id: str


# --- Documents ---


class IndexDocumentRequest(BaseModel):
    id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    title: str = ""
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    source: str = DEFAULT_SOURCE
    created_at: datetime | None = None
    updated_at: datetime | None = None
