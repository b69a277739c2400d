# core/enums.py
"""Shared enumerations used across the application."""
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes carried by every core error."""
    VALIDATION_FAILED = "VALIDATION_FAILED"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    NO_TEXT_FOUND = "NO_TEXT_FOUND"
    EMBEDDING_FAILED = "EMBEDDING_FAILED"
    SEARCH_FAILED = "SEARCH_FAILED"
    GENERATION_FAILED = "GENERATION_FAILED"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    PROCESSING_FAILED = "PROCESSING_FAILED"


class DocumentStatus(str, Enum):
    """Document processing lifecycle."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    ARCHIVED = "archived"

    @staticmethod
    def from_string(status: str) -> 'DocumentStatus':
        """Convert string to DocumentStatus enum."""
        try:
            return DocumentStatus(status)
        except ValueError:
            return DocumentStatus.FAILED


class Language(str, Enum):
    ARABIC = "ar"
    ENGLISH = "en"


class ChunkType(str, Enum):
    TITLE = "title"
    PARAGRAPH = "paragraph"
    TABLE = "table"
    LIST = "list"


class SourceType(str, Enum):
    """Which corpus a search hit came from."""
    DOCUMENT = "document"
    LABOR_LAW = "labor_law"


class ConversationRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
