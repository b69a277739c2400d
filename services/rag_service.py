# services/rag_service.py
"""Core facade: ingestion, reprocessing, question answering and suggestions"""
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional
from uuid import uuid4

from config import settings
from core.domain import (
    Document, DocumentMetadata, QueryOptions, RAGResponse, RelatedDocument, Result, SearchSummary
)
from core.enums import DocumentStatus, Language
from core.errors import (
    DocumentNotFoundError, RAGError, UnsupportedFormatError, ValidationError
)
from core.interfaces import (
    IChunkIndex, IDocumentRepository, IFileStorage, IRegulationIndex
)
from services.answer_synthesizer import AnswerSynthesizer
from services.attribution import ConfidenceWeights, confidence_score, format_sources
from services.context_enhancer import ConversationContextEnhancer
from services.hybrid_search import HybridSearchService
from services.ingestion_queue import IngestionQueue
from services.prompt_builder import PromptBuilder
from services.suggestions import QuerySuggestionService
from utils.common import get_file_hash, guess_mime_type, sanitize_filename, strip_extension
from utils.language_detection import detect_language

logger = logging.getLogger(settings.LOGGER_NAME)


class RAGService:
    """
    Every public operation returns a Result. Core errors travel as typed
    RAGError values; anything unexpected is logged and wrapped as
    PROCESSING_FAILED so a single request never takes the process down.
    """

    def __init__(
        self,
        document_repo: IDocumentRepository,
        file_storage: IFileStorage,
        chunk_index: IChunkIndex,
        regulation_index: IRegulationIndex,
        ingestion_queue: IngestionQueue,
        hybrid_search: HybridSearchService,
        context_enhancer: ConversationContextEnhancer,
        prompt_builder: PromptBuilder,
        answer_synthesizer: AnswerSynthesizer,
        suggestion_service: QuerySuggestionService,
        allowed_mime_types: Optional[List[str]] = None,
        max_file_size: int = settings.MAX_FILE_SIZE,
        max_query_length: int = settings.MAX_QUERY_LENGTH,
        max_sources_limit: int = settings.MAX_SOURCES_LIMIT,
        snippet_length: int = settings.SNIPPET_LENGTH,
        related_threshold: float = settings.RELATED_DOCUMENT_THRESHOLD,
        confidence_weights: ConfidenceWeights = ConfidenceWeights()
    ):
        self.document_repo = document_repo
        self.file_storage = file_storage
        self.chunk_index = chunk_index
        self.regulation_index = regulation_index
        self.ingestion_queue = ingestion_queue
        self.hybrid_search = hybrid_search
        self.context_enhancer = context_enhancer
        self.prompt_builder = prompt_builder
        self.answer_synthesizer = answer_synthesizer
        self.suggestion_service = suggestion_service
        self.allowed_mime_types = allowed_mime_types or list(settings.ALLOWED_MIME_TYPES)
        self.max_file_size = max_file_size
        self.max_query_length = max_query_length
        self.max_sources_limit = max_sources_limit
        self.snippet_length = snippet_length
        self.related_threshold = related_threshold
        self.confidence_weights = confidence_weights

    # ============ LIFECYCLE ============

    async def start(self) -> None:
        await self.ingestion_queue.start()

    async def stop(self) -> None:
        await self.ingestion_queue.stop()

    async def _guard(self, operation: str, work: Awaitable[Any]) -> Result:
        try:
            return Result.success(await work)
        except RAGError as e:
            logger.warning(f"{operation} failed: {e}")
            return Result.failure(e)
        except Exception as e:
            logger.exception(f"Unexpected error in {operation}")
            return Result.failure(RAGError(f"Unexpected error: {str(e)[:200]}"))

    # ============ INGESTION ============

    async def ingest_document(self, file_bytes: bytes, metadata: DocumentMetadata) -> Result[Document]:
        """Validate and store the upload, create a `processing` document and queue its ingestion."""
        return await self._guard("ingest_document", self._ingest(file_bytes, metadata))

    def _validate_upload(self, file_bytes: bytes, metadata: DocumentMetadata) -> str:
        if not metadata.organization_id or not metadata.organization_id.strip():
            raise ValidationError("organization_id is required")
        if not metadata.filename:
            raise ValidationError("No filename provided")
        if not file_bytes:
            raise ValidationError("Uploaded file is empty")
        if len(file_bytes) > self.max_file_size:
            max_mb = self.max_file_size // 1024 // 1024
            raise ValidationError(f"File too large. Max size: {max_mb}MB")

        mime_type = metadata.mime_type or guess_mime_type(metadata.filename)
        if not mime_type or mime_type not in self.allowed_mime_types:
            raise UnsupportedFormatError(
                f"Unsupported file type. Allowed: {', '.join(self.allowed_mime_types)}"
            )
        return mime_type

    async def _ingest(self, file_bytes: bytes, metadata: DocumentMetadata) -> Document:
        mime_type = self._validate_upload(file_bytes, metadata)

        doc_id = str(uuid4())
        safe_suffix = sanitize_filename(Path(metadata.filename).suffix)
        stored_name = f"{doc_id}{safe_suffix}"
        await self.file_storage.save(file_bytes, stored_name)

        document = await self.document_repo.create(Document(
            id=doc_id,
            organization_id=metadata.organization_id,
            title=metadata.title or strip_extension(metadata.filename),
            filename=metadata.filename,
            mime_type=mime_type,
            file_hash=get_file_hash(file_bytes),
            stored_filename=stored_name,
            status=DocumentStatus.PROCESSING,
            tags=list(metadata.tags),
        ))

        await self.ingestion_queue.submit(doc_id)
        logger.info(f"[INGEST] Accepted '{metadata.filename}' as {doc_id} for org {metadata.organization_id}")
        return document

    async def reprocess_document(self, document_id: str, organization_id: str) -> Result[Document]:
        """Clear and rebuild a document's chunks. Repeated calls while queued are no-ops."""
        return await self._guard("reprocess_document", self._reprocess(document_id, organization_id))

    async def _reprocess(self, document_id: str, organization_id: str) -> Document:
        document = await self._require_document(document_id, organization_id)

        if self.ingestion_queue.is_pending(document_id):
            logger.info(f"[INGEST] Reprocess of {document_id} already queued")
            return document

        metadata = dict(document.processing_metadata)
        metadata["reprocessed_at"] = datetime.now(timezone.utc).isoformat()
        updated = await self.document_repo.update_status(
            document_id, DocumentStatus.PROCESSING, chunk_count=0, metadata=metadata
        )
        # Chunk deletion happens inside the queued job, under the document lock
        await self.ingestion_queue.submit(document_id)
        return updated or document

    async def get_document(self, document_id: str, organization_id: str) -> Result[Document]:
        return await self._guard("get_document", self._require_document(document_id, organization_id))

    async def _require_document(self, document_id: str, organization_id: str) -> Document:
        document = await self.document_repo.get_by_id(document_id, organization_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    # ============ QUERY ============

    def _validate_query(self, text: str, options: QueryOptions) -> str:
        query = (text or "").strip()
        if not query:
            raise ValidationError("Query must not be empty")
        if len(query) > self.max_query_length:
            raise ValidationError(f"Query exceeds {self.max_query_length} characters")
        if not options.organization_id or not options.organization_id.strip():
            raise ValidationError("organization_id is required")
        if options.language is not None and not isinstance(options.language, Language):
            raise ValidationError(f"Unsupported language: {options.language}")
        if not 1 <= options.max_sources <= self.max_sources_limit:
            raise ValidationError(f"max_sources must be between 1 and {self.max_sources_limit}")
        return query

    async def query(self, text: str, options: QueryOptions) -> Result[RAGResponse]:
        """Answer a question from the tenant's documents and the regulatory corpus."""
        return await self._guard("query", self._answer(text, options))

    async def _answer(self, text: str, options: QueryOptions) -> RAGResponse:
        started = time.perf_counter()
        query = self._validate_query(text, options)
        language = options.language or detect_language(query).language

        enhanced = await self.context_enhancer.enhance(query, options.conversation_id)

        search = await self.hybrid_search.search(
            enhanced,
            options.organization_id,
            language,
            options.max_sources,
            include_regulations=options.include_regulations,
        )

        prompt = self.prompt_builder.build(
            enhanced,
            language,
            search.document_results,
            search.regulation_results,
            options.organization_name or options.organization_id,
        )
        answer = await self.answer_synthesizer.synthesize(prompt, language)

        response = RAGResponse(
            answer=answer.text,
            sources=format_sources(search, self.snippet_length),
            confidence=confidence_score(search, answer.text, self.confidence_weights),
            language=language,
            tokens_used=answer.tokens_used,
            response_time_ms=int((time.perf_counter() - started) * 1000),
            search_results=SearchSummary(
                document_count=len(search.document_results),
                regulation_count=len(search.regulation_results),
                combined_relevance=search.combined_relevance,
                used_keyword_fallback=search.used_keyword_fallback,
            ),
            conversation_id=options.conversation_id,
        )
        logger.info(
            f"[QUERY] org={options.organization_id} lang={language.value} sources={len(response.sources)} "
            f"confidence={response.confidence:.2f} tokens={response.tokens_used} "
            f"time={response.response_time_ms}ms"
        )
        return response

    # ============ SUGGESTIONS & RELATED ============

    async def suggest_queries(
        self,
        organization_id: str,
        language: Language = Language.ARABIC,
        prefix: Optional[str] = None,
        limit: int = 5
    ) -> Result[List[str]]:
        async def work() -> List[str]:
            if not organization_id:
                raise ValidationError("organization_id is required")
            if limit < 1:
                raise ValidationError("limit must be positive")
            return await self.suggestion_service.suggest(organization_id, language, prefix, limit)

        return await self._guard("suggest_queries", work())

    async def related_documents(
        self,
        document_id: str,
        organization_id: str,
        limit: int = 5
    ) -> Result[List[RelatedDocument]]:
        """Other documents of the same tenant whose content resembles this one's opening chunk."""
        return await self._guard("related_documents", self._related(document_id, organization_id, limit))

    async def _related(self, document_id: str, organization_id: str, limit: int) -> List[RelatedDocument]:
        document = await self._require_document(document_id, organization_id)
        if document.status != DocumentStatus.COMPLETED or document.language is None:
            return []

        embedding = await self.chunk_index.get_chunk_embedding(document_id, 0)
        if embedding is None:
            return []

        # Over-fetch: several hits may belong to one document
        hits = await self.chunk_index.search(
            embedding, organization_id, document.language, self.related_threshold, (limit + 1) * 5
        )

        related: Dict[str, RelatedDocument] = {}
        for hit in hits:
            chunk = hit.chunk
            if chunk is None or chunk.document_id == document_id or chunk.document_id in related:
                continue
            related[chunk.document_id] = RelatedDocument(
                document_id=chunk.document_id,
                title=chunk.document_title,
                filename=chunk.filename,
                relevance_score=hit.relevance_score,
            )
            if len(related) >= limit:
                break
        return list(related.values())

    # ============ STATUS ============

    async def get_status(self) -> Dict[str, Any]:
        try:
            regulation_count = await self.regulation_index.count()
        except RAGError as e:
            logger.warning(f"Regulation index unavailable: {e}")
            regulation_count = None
        return {
            "ingestion_workers_running": self.ingestion_queue.running,
            "regulatory_articles": regulation_count,
        }
