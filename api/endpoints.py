# api/endpoints.py
"""
HTTP surface for the HR knowledge assistant.

Tenant scoping is by the caller-supplied organization_id; authentication
and role checks happen in front of this service.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile

from api.schemas import (
    DocumentResponse, QueryRequest, QueryResponse, RelatedDocumentItem, SuggestionsResponse
)
from core.domain import DocumentMetadata, QueryOptions, Result
from core.enums import ErrorCode, Language
from services.rag_service import RAGService
from utils.common import validate_document_id

router = APIRouter()

_STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_FAILED: 422,
    ErrorCode.DOCUMENT_NOT_FOUND: 404,
    ErrorCode.UNSUPPORTED_FORMAT: 415,
    ErrorCode.EMBEDDING_FAILED: 503,
    ErrorCode.SEARCH_FAILED: 503,
}


def get_rag_service(request: Request) -> RAGService:
    """The service is built once in the app lifespan and kept on app.state."""
    return request.app.state.rag_service


def _unwrap(result: Result):
    """Return the value or raise the HTTP error matching the result's error code."""
    if result.ok:
        return result.value
    error = result.error
    raise HTTPException(
        status_code=_STATUS_BY_CODE.get(error.error_code, 500),
        detail={"error": error.message, "error_code": error.error_code.value},
    )


def _check_document_id(document_id: str) -> None:
    if not validate_document_id(document_id):
        raise HTTPException(status_code=422, detail="Invalid document ID format")


# ---------- Documents ----------
@router.post("/documents", response_model=DocumentResponse, status_code=202)
async def upload_document(
    file: UploadFile = File(...),
    organization_id: str = Form(...),
    title: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    rag_service: RAGService = Depends(get_rag_service),
) -> DocumentResponse:
    content = await file.read()
    metadata = DocumentMetadata(
        organization_id=organization_id,
        filename=file.filename or "",
        # Browsers often send octet-stream; let the extension decide then
        mime_type=file.content_type if file.content_type != "application/octet-stream" else None,
        title=title,
        tags=[t.strip() for t in (tags or "").split(",") if t.strip()],
    )
    document = _unwrap(await rag_service.ingest_document(content, metadata))
    return DocumentResponse.from_domain(document)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    organization_id: str = Query(...),
    rag_service: RAGService = Depends(get_rag_service),
) -> DocumentResponse:
    _check_document_id(document_id)
    document = _unwrap(await rag_service.get_document(document_id, organization_id))
    return DocumentResponse.from_domain(document)


@router.post("/documents/{document_id}/reprocess", response_model=DocumentResponse, status_code=202)
async def reprocess_document(
    document_id: str,
    organization_id: str = Query(...),
    rag_service: RAGService = Depends(get_rag_service),
) -> DocumentResponse:
    _check_document_id(document_id)
    document = _unwrap(await rag_service.reprocess_document(document_id, organization_id))
    return DocumentResponse.from_domain(document)


@router.get("/documents/{document_id}/related", response_model=List[RelatedDocumentItem])
async def related_documents(
    document_id: str,
    organization_id: str = Query(...),
    limit: int = Query(5, ge=1, le=20),
    rag_service: RAGService = Depends(get_rag_service),
) -> List[RelatedDocumentItem]:
    _check_document_id(document_id)
    related = _unwrap(await rag_service.related_documents(document_id, organization_id, limit))
    return [RelatedDocumentItem.from_domain(r) for r in related]


# ---------- Query ----------
@router.post("/query", response_model=QueryResponse)
async def query(
    request: QueryRequest,
    rag_service: RAGService = Depends(get_rag_service),
) -> QueryResponse:
    options = QueryOptions(
        organization_id=request.organization_id,
        language=request.language,
        conversation_id=request.conversation_id,
        max_sources=request.max_sources,
        organization_name=request.organization_name,
        include_regulations=request.include_regulations,
    )
    response = _unwrap(await rag_service.query(request.question, options))
    return QueryResponse.from_domain(response)


@router.get("/suggestions", response_model=SuggestionsResponse)
async def suggestions(
    organization_id: str = Query(...),
    language: Language = Query(Language.ARABIC),
    prefix: Optional[str] = Query(None, max_length=200),
    limit: int = Query(5, ge=1, le=20),
    rag_service: RAGService = Depends(get_rag_service),
) -> SuggestionsResponse:
    items = _unwrap(await rag_service.suggest_queries(organization_id, language, prefix, limit))
    return SuggestionsResponse(suggestions=items, language=language)


# ---------- Health ----------
@router.get("/health")
async def health(rag_service: RAGService = Depends(get_rag_service)) -> Dict:
    status = await rag_service.get_status()
    return {"status": "ok", **status}
