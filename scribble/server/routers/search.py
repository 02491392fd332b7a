from fastapi import APIRouter, Depends, HTTPException, Request
from structlog.contextvars import bound_contextvars

from scribble.search.conversational import ChatUnavailableError, ConversationNotFoundError
from scribble.search.service import SearchService
from scribble.search.types import IndexedDocument
from scribble.server.schemas import (
    ConversationalSearchRequest,
    ConversationalSearchResponse,
    HybridSearchRequest,
    HybridSearchResponse,
    IndexDocumentRequest,
)

router = APIRouter(tags=["search"])


def get_search(request: Request) -> SearchService:
    service = getattr(request.app.state, "search", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Search service not initialized")
    return service


@router.post("/search/hybrid", response_model=HybridSearchResponse)
async def hybrid_search(body: HybridSearchRequest, search: SearchService = Depends(get_search)):
    with bound_contextvars(owner_id=body.owner_id):
        try:
            results = await search.hybrid_search(body.query, body.owner_id, body.limit, body.sources)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
    return {"results": [r.to_dict() for r in results]}


@router.post("/search/conversational", response_model=ConversationalSearchResponse)
async def conversational_search(body: ConversationalSearchRequest, search: SearchService = Depends(get_search)):
    with bound_contextvars(owner_id=body.owner_id):
        try:
            answer = await search.converse(body.query, body.owner_id, body.conversation_id)
        except ConversationNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ChatUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=502, detail=f"Chat model failed: {type(e).__name__}")
    return answer.to_dict()


@router.get("/search/suggestions")
async def get_suggestions(q: str = "", owner_id: str = ""):
    return {"suggestions": []}


@router.post("/documents", status_code=201)
async def index_document(body: IndexDocumentRequest, search: SearchService = Depends(get_search)):
    fields = body.model_dump(exclude_none=True)
    fields["tags"] = frozenset(body.tags)
    doc = IndexedDocument(**fields)
    with bound_contextvars(owner_id=doc.owner_id, document_id=doc.id):
        indexed = await search.index_document(doc)
    if not indexed:
        raise HTTPException(status_code=502, detail="Indexing failed")
    return {"status": "indexed", "id": doc.id}


@router.delete("/documents/{owner_id}/{document_id}")
async def delete_document(owner_id: str, document_id: str, search: SearchService = Depends(get_search)):
    with bound_contextvars(owner_id=owner_id, document_id=document_id):
        deleted = await search.delete_document(owner_id, document_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Document not found")
    return {"status": "deleted", "id": document_id}


@router.get("/index/stats")
async def index_stats(owner_id: str | None = None, search: SearchService = Depends(get_search)):
    return await search.get_stats(owner_id)
