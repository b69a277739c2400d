# services/ingestion.py
"""Document ingestion pipeline: extract -> detect language -> chunk -> embed -> index"""
import logging
from datetime import datetime, timezone
from typing import List

from config import settings
from core.domain import Document, DocumentChunk
from core.enums import DocumentStatus, ErrorCode, Language
from core.errors import DocumentNotFoundError, ExtractionError, RAGError
from core.interfaces import (
    IChunkIndex, IDocumentRepository, IEmbeddingService, IFileStorage, ITextExtractor
)
from services.chunker import TextChunker
from utils.language_detection import detect_language

logger = logging.getLogger(settings.LOGGER_NAME)

_ERROR_KEYS = ("error", "error_code", "failed_at")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentIngestionPipeline:
    """
    One ingestion job for one document. Safe to re-run: every run starts by
    deleting the document's chunks, so retries and reprocessing rebuild the
    chunk set from scratch.
    """

    def __init__(
        self,
        document_repo: IDocumentRepository,
        file_storage: IFileStorage,
        text_extractor: ITextExtractor,
        chunker: TextChunker,
        embedding_service: IEmbeddingService,
        chunk_index: IChunkIndex,
        batch_size: int = settings.CHUNK_INSERT_BATCH_SIZE
    ):
        self.document_repo = document_repo
        self.file_storage = file_storage
        self.text_extractor = text_extractor
        self.chunker = chunker
        self.embedding_service = embedding_service
        self.chunk_index = chunk_index
        self.batch_size = batch_size

    async def process(self, document_id: str) -> None:
        document = await self.document_repo.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        logger.info(f"[INGEST] Processing '{document.filename}' ({document_id})")
        await self.chunk_index.delete_by_document(document_id)

        text, language = await self._load_text(document)

        drafts = self.chunker.chunk(text, language)
        if not drafts:
            raise ExtractionError("No content extracted from document", ErrorCode.NO_TEXT_FOUND)

        embeddings = await self.embedding_service.embed_many([d.text for d in drafts])

        chunks: List[DocumentChunk] = [
            DocumentChunk(
                id=DocumentChunk.make_id(document.id, draft.chunk_index),
                document_id=document.id,
                organization_id=document.organization_id,
                chunk_index=draft.chunk_index,
                text=draft.text,
                chunk_type=draft.chunk_type,
                language=language,
                page_number=draft.page_number,
                section_title=draft.section_title or None,
                document_title=document.title,
                filename=document.filename,
                embedding=embedding,
            )
            for draft, embedding in zip(drafts, embeddings)
        ]

        for start in range(0, len(chunks), self.batch_size):
            await self.chunk_index.add_chunks(chunks[start:start + self.batch_size])

        metadata = {k: v for k, v in document.processing_metadata.items() if k not in _ERROR_KEYS}
        metadata.update({"chunks_created": len(chunks), "processed_at": _now_iso()})
        await self.document_repo.update_status(
            document_id, DocumentStatus.COMPLETED, chunk_count=len(chunks), metadata=metadata
        )
        logger.info(f"[INGEST] Completed '{document.filename}': {len(chunks)} chunks ({language.value})")

    async def _load_text(self, document: Document):
        """Reuse stored text when present (reprocess); otherwise extract from the original upload."""
        if document.content and document.language:
            return document.content, document.language

        try:
            file_bytes = await self.file_storage.read(document.stored_filename)
        except OSError as e:
            raise ExtractionError(f"Original upload is missing: {e}") from e

        text = await self.text_extractor.extract(file_bytes, document.mime_type)
        language: Language = detect_language(text).language
        await self.document_repo.update_content(document.id, text, language)
        return text, language

    async def mark_failed(self, document_id: str, error: Exception) -> None:
        """Record the final failure on the document."""
        document = await self.document_repo.get_by_id(document_id)
        if document is None:
            logger.warning(f"[INGEST] Cannot mark missing document {document_id} as failed")
            return

        # A failed document must not leave a partial chunk set searchable
        try:
            await self.chunk_index.delete_by_document(document_id)
        except RAGError as e:
            logger.warning(f"[INGEST] Chunk cleanup failed for {document_id}: {e}")

        code = error.error_code if isinstance(error, RAGError) else ErrorCode.PROCESSING_FAILED
        message = error.message if isinstance(error, RAGError) else str(error)
        metadata = dict(document.processing_metadata)
        metadata.update({"error": message, "error_code": code.value, "failed_at": _now_iso()})

        await self.document_repo.update_status(document_id, DocumentStatus.FAILED, metadata=metadata)
        logger.error(f"[INGEST] '{document.filename}' failed: [{code.value}] {message}")
