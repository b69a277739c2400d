# core/interfaces.py
"""Core interfaces for the HR RAG system"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from core.domain import (
    ConversationTurn, Document, DocumentChunk, LLMCompletion, RegulatoryArticle, SearchResult
)
from core.enums import DocumentStatus, Language


# ============= Text Extraction Interface =============
class ITextExtractor(ABC):
    """Turns raw upload bytes into plain text."""

    @abstractmethod
    async def extract(self, file_bytes: bytes, mime_type: str) -> str:
        """
        Extract text from a supported file.

        Raises:
            UnsupportedFormatError: mime type has no extractor
            ExtractionError: file could not be parsed
        """
        pass


# ============= Embedding Service Interface =============
class IEmbeddingService(ABC):
    """Interface for embedding generation"""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed a single passage"""
        pass

    @abstractmethod
    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Embed passages in one batch, order preserved"""
        pass

    @abstractmethod
    async def embed_query(self, query: str, language: Language) -> List[float]:
        """Embed a search query with the per-language domain prefix"""
        pass


# ============= Language Model Interface =============
class ILanguageModel(ABC):
    """Chat completion backend"""

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: int = 1000
    ) -> LLMCompletion:
        """Raises GenerationError on any failure"""
        pass


# ============= Vector Index Interfaces =============
class IChunkIndex(ABC):
    """
    Tenant-scoped similarity index over organisation document chunks.

    Tenant and language are hard filters on every read.
    """

    @abstractmethod
    async def add_chunks(self, chunks: List[DocumentChunk]) -> None:
        pass

    @abstractmethod
    async def search(
        self,
        query_embedding: List[float],
        organization_id: str,
        language: Language,
        threshold: float,
        limit: int
    ) -> List[SearchResult]:
        """Rows whose similarity exceeds threshold, most similar first"""
        pass

    @abstractmethod
    async def keyword_search(
        self,
        terms: List[str],
        organization_id: str,
        language: Language,
        limit: int
    ) -> List[SearchResult]:
        """OR-combined text match; every hit gets the fixed keyword score"""
        pass

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> None:
        pass

    @abstractmethod
    async def count_by_document(self, document_id: str) -> int:
        pass

    @abstractmethod
    async def get_chunk_embedding(self, document_id: str, chunk_index: int = 0) -> Optional[List[float]]:
        pass


class IRegulationIndex(ABC):
    """Shared regulatory knowledge base (not tenant-scoped)."""

    @abstractmethod
    async def add_articles(self, articles: List[RegulatoryArticle], language: Language) -> None:
        """Index one language version; each article.embedding belongs to that language"""
        pass

    @abstractmethod
    async def search(
        self,
        query_embedding: List[float],
        language: Language,
        threshold: float,
        limit: int
    ) -> List[SearchResult]:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass


# ============= Repository Interfaces =============
class IDocumentRepository(ABC):
    """
    Interface for document record persistence.

    Does NOT handle: physical files (see IFileStorage) or vectors (see IChunkIndex).
    """

    @abstractmethod
    async def create(self, document: Document) -> Document:
        pass

    @abstractmethod
    async def get_by_id(self, document_id: str, organization_id: Optional[str] = None) -> Optional[Document]:
        """Returns None when missing or owned by another tenant"""
        pass

    @abstractmethod
    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        chunk_count: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[Document]:
        """Set status; metadata, when given, replaces processing_metadata"""
        pass

    @abstractmethod
    async def update_content(self, document_id: str, content: str, language: Language) -> None:
        pass

    @abstractmethod
    async def list_by_organization(self, organization_id: str) -> List[Document]:
        pass


class IConversationRepository(ABC):
    """Read-only access to externally persisted conversation history"""

    @abstractmethod
    async def get_recent_turns(self, conversation_id: str, limit: int) -> List[ConversationTurn]:
        """Most recent turns, oldest first"""
        pass


# ============= File Storage Interface =============
class IFileStorage(ABC):
    """Interface for physical file storage operations"""

    @abstractmethod
    async def save(self, content: bytes, filename: str) -> str:
        """Write bytes under the given (already unique) name; returns the full path"""
        pass

    @abstractmethod
    async def read(self, filename: str) -> bytes:
        pass

    @abstractmethod
    async def delete(self, filename: str) -> bool:
        pass
