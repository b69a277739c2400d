# core/domain.py
"""Domain models for the HR knowledge assistant."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from core.enums import (
    ChunkType, ConversationRole, DocumentStatus, ErrorCode, Language, SourceType
)
from core.errors import RAGError

T = TypeVar("T")


# ============= Result =============

@dataclass
class Result(Generic[T]):
    """Outcome of a core operation: either a value or a typed error."""
    value: Optional[T] = None
    error: Optional[RAGError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.error_code if self.error else None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: RAGError) -> 'Result[T]':
        return cls(error=error)


# ============= Documents & Chunks =============

@dataclass
class DocumentMetadata:
    """Caller-supplied attributes for an upload."""
    organization_id: str
    filename: str
    mime_type: Optional[str] = None
    title: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class Document:
    """Tenant-scoped uploaded document"""
    id: str
    organization_id: str
    title: str
    filename: str
    mime_type: str
    file_hash: str
    stored_filename: str
    status: DocumentStatus = DocumentStatus.PROCESSING
    language: Optional[Language] = None
    chunk_count: int = 0
    tags: List[str] = field(default_factory=list)
    content: Optional[str] = None
    processing_metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ChunkDraft:
    """Chunker output, before it is attached to a document."""
    text: str
    chunk_type: ChunkType
    page_number: int
    section_title: str
    chunk_index: int = 0


@dataclass
class DocumentChunk:
    """Indexed fragment of a document"""
    id: str
    document_id: str
    organization_id: str
    chunk_index: int
    text: str
    chunk_type: ChunkType
    language: Language
    page_number: Optional[int] = None
    section_title: Optional[str] = None
    document_title: str = ""
    filename: str = ""
    embedding: Optional[List[float]] = None  # Vector of float numbers

    @staticmethod
    def make_id(document_id: str, chunk_index: int) -> str:
        return f"{document_id}_{chunk_index}"


@dataclass
class RegulatoryArticle:
    """Pre-indexed regulatory (labor law) article, tenant independent."""
    id: str
    article_number: str
    title_ar: str = ""
    title_en: str = ""
    content_ar: str = ""
    content_en: str = ""
    summary_ar: Optional[str] = None
    summary_en: Optional[str] = None
    category_ar: str = ""
    category_en: str = ""
    embedding: Optional[List[float]] = None

    def title(self, language: Language) -> str:
        return self.title_ar if language == Language.ARABIC else self.title_en

    def content(self, language: Language) -> str:
        return self.content_ar if language == Language.ARABIC else self.content_en

    def summary(self, language: Language) -> Optional[str]:
        return self.summary_ar if language == Language.ARABIC else self.summary_en

    def category(self, language: Language) -> str:
        return self.category_ar if language == Language.ARABIC else self.category_en


# ============= Search =============

@dataclass
class SearchResult:
    """A single hit from either corpus"""
    source_type: SourceType
    relevance_score: float
    language: Language
    chunk: Optional[DocumentChunk] = None
    article: Optional[RegulatoryArticle] = None

    @property
    def id(self) -> str:
        if self.chunk is not None:
            return self.chunk.id
        return self.article.id if self.article else ""

    @property
    def title(self) -> str:
        if self.chunk is not None:
            return self.chunk.document_title or self.chunk.filename
        return self.article.title(self.language) if self.article else ""

    @property
    def text(self) -> str:
        if self.chunk is not None:
            return self.chunk.text
        return self.article.content(self.language) if self.article else ""


@dataclass
class RelatedDocument:
    document_id: str
    title: str
    filename: str
    relevance_score: float


@dataclass
class HybridSearchResult:
    document_results: List[SearchResult] = field(default_factory=list)
    regulation_results: List[SearchResult] = field(default_factory=list)
    combined_relevance: float = 0.0
    used_keyword_fallback: bool = False

    @property
    def total_sources(self) -> int:
        return len(self.document_results) + len(self.regulation_results)


# ============= Generation & Response =============

@dataclass
class LanguageDetection:
    language: Language
    confidence: float
    method: str = "combined"

@dataclass
class ConversationTurn:
    role: ConversationRole
    content: str
    timestamp: Optional[datetime] = None


@dataclass
class LLMCompletion:
    text: str
    tokens_used: int


@dataclass
class SynthesizedAnswer:
    text: str
    tokens_used: int
    is_fallback: bool = False


@dataclass
class SourceAttribution:
    id: str
    source_type: SourceType
    title: str
    excerpt: str
    relevance_score: float
    page_number: Optional[int] = None
    article_number: Optional[str] = None
    section_title: Optional[str] = None
    category: Optional[str] = None


@dataclass
class SearchSummary:
    document_count: int
    regulation_count: int
    combined_relevance: float
    used_keyword_fallback: bool = False


@dataclass
class QueryOptions:
    organization_id: str
    language: Optional[Language] = None
    conversation_id: Optional[str] = None
    max_sources: int = 10
    organization_name: Optional[str] = None
    include_regulations: bool = True


@dataclass
class RAGResponse:
    answer: str
    sources: List[SourceAttribution]
    confidence: float
    language: Language
    tokens_used: int
    response_time_ms: int
    search_results: SearchSummary
    conversation_id: Optional[str] = None
