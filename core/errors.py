# core/errors.py
"""Typed error taxonomy for the retrieval and generation core."""
from typing import Optional

from core.enums import ErrorCode


class RAGError(Exception):
    """Base error: every failure in the core carries an error code and a message."""

    error_code: ErrorCode = ErrorCode.PROCESSING_FAILED

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging and the document error payload
        return f"[{self.error_code.value}] {self.message}"


class ValidationError(RAGError):
    """Malformed input, rejected before any external call is made."""
    error_code = ErrorCode.VALIDATION_FAILED


class ExtractionError(RAGError):
    """File could not be turned into text."""
    error_code = ErrorCode.EXTRACTION_FAILED


class UnsupportedFormatError(ExtractionError):
    error_code = ErrorCode.UNSUPPORTED_FORMAT


class EmbeddingError(RAGError):
    error_code = ErrorCode.EMBEDDING_FAILED


class SearchError(RAGError):
    """Index or store unreachable."""
    error_code = ErrorCode.SEARCH_FAILED


class GenerationError(RAGError):
    error_code = ErrorCode.GENERATION_FAILED


class DocumentNotFoundError(RAGError):
    error_code = ErrorCode.DOCUMENT_NOT_FOUND


# Failures worth another ingestion attempt
TRANSIENT_ERRORS = (EmbeddingError, SearchError)
