# api/schemas.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.domain import Document, RAGResponse, RelatedDocument, SourceAttribution
from core.enums import DocumentStatus, ErrorCode, Language, SourceType


class QueryRequest(BaseModel):
    question: str
    organization_id: str
    language: Optional[Language] = None
    conversation_id: Optional[str] = None
    max_sources: int = Field(default=10, ge=1, le=20)
    organization_name: Optional[str] = None
    include_regulations: bool = True


class DocumentResponse(BaseModel):
    id: str
    organization_id: str
    title: str
    filename: str
    mime_type: str
    status: DocumentStatus
    language: Optional[Language] = None
    chunk_count: int = 0
    tags: List[str] = []
    processing_metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, document: Document) -> 'DocumentResponse':
        return cls(
            id=document.id,
            organization_id=document.organization_id,
            title=document.title,
            filename=document.filename,
            mime_type=document.mime_type,
            status=document.status,
            language=document.language,
            chunk_count=document.chunk_count,
            tags=document.tags,
            processing_metadata=document.processing_metadata,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class SourceItem(BaseModel):
    id: str
    type: SourceType
    title: str
    excerpt: str
    relevance_score: float
    page_number: Optional[int] = None
    article_number: Optional[str] = None
    section_title: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_domain(cls, source: SourceAttribution) -> 'SourceItem':
        return cls(
            id=source.id,
            type=source.source_type,
            title=source.title,
            excerpt=source.excerpt,
            relevance_score=round(source.relevance_score, 4),
            page_number=source.page_number,
            article_number=source.article_number,
            section_title=source.section_title,
            category=source.category,
        )


class SearchSummaryItem(BaseModel):
    document_count: int
    regulation_count: int
    combined_relevance: float
    used_keyword_fallback: bool


class QueryResponse(BaseModel):
    answer: str
    sources: List[SourceItem]
    confidence: float
    language: Language
    conversation_id: Optional[str] = None
    tokens_used: int
    response_time_ms: int
    search_results: SearchSummaryItem

    @classmethod
    def from_domain(cls, response: RAGResponse) -> 'QueryResponse':
        summary = response.search_results
        return cls(
            answer=response.answer,
            sources=[SourceItem.from_domain(s) for s in response.sources],
            confidence=round(response.confidence, 4),
            language=response.language,
            conversation_id=response.conversation_id,
            tokens_used=response.tokens_used,
            response_time_ms=response.response_time_ms,
            search_results=SearchSummaryItem(
                document_count=summary.document_count,
                regulation_count=summary.regulation_count,
                combined_relevance=round(summary.combined_relevance, 4),
                used_keyword_fallback=summary.used_keyword_fallback,
            ),
        )


class RelatedDocumentItem(BaseModel):
    document_id: str
    title: str
    filename: str
    relevance_score: float

    @classmethod
    def from_domain(cls, related: RelatedDocument) -> 'RelatedDocumentItem':
        return cls(
            document_id=related.document_id,
            title=related.title,
            filename=related.filename,
            relevance_score=round(related.relevance_score, 4),
        )


class SuggestionsResponse(BaseModel):
    suggestions: List[str]
    language: Language


class ErrorResponse(BaseModel):
    error: str
    error_code: ErrorCode
