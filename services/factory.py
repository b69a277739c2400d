# services/factory.py
"""Wires concrete adapters into the RAG service (no module-level singletons)"""
from typing import Any, Optional

import chromadb
from sqlalchemy.ext.asyncio import async_sessionmaker

from config import Settings, settings as default_settings
from core.enums import Language
from core.interfaces import (
    IChunkIndex, IConversationRepository, IDocumentRepository, IEmbeddingService,
    IFileStorage, ILanguageModel, IRegulationIndex, ITextExtractor
)
from infrastructure.embedding_services import SentenceTransformerEmbedding
from infrastructure.file_storage import LocalFileStorage
from infrastructure.repositories import SQLConversationRepository, SQLDocumentRepository
from infrastructure.suggestion_cache import SuggestionCache
from infrastructure.text_extractors import DocumentTextExtractor
from infrastructure.vector_stores import ChromaChunkIndex, ChromaRegulationIndex
from services.answer_synthesizer import AnswerSynthesizer
from services.chunker import TextChunker
from services.context_enhancer import ConversationContextEnhancer
from services.hybrid_search import HybridSearchService
from services.ingestion import DocumentIngestionPipeline
from services.ingestion_queue import IngestionQueue
from services.llm_service import OllamaLanguageModel
from services.prompt_builder import PromptBuilder
from services.rag_service import RAGService
from services.suggestions import QuerySuggestionService


# Provider functions for each component
def get_chroma_client(settings: Settings) -> Any:
    return chromadb.PersistentClient(path=settings.VECTOR_DB_PATH)


def get_embedding_service(settings: Settings) -> IEmbeddingService:
    return SentenceTransformerEmbedding(
        settings.EMBEDDING_MODEL_NAME,
        max_chars=settings.EMBEDDING_MAX_CHARS,
        query_prefixes={
            Language.ENGLISH: settings.QUERY_CONTEXT_PREFIX_EN,
            Language.ARABIC: settings.QUERY_CONTEXT_PREFIX_AR,
        },
    )


def get_language_model(settings: Settings) -> ILanguageModel:
    return OllamaLanguageModel(settings.LLM_BASE_URL, settings.LLM_MODEL_NAME, settings.REQUEST_TIMEOUT)


def get_file_storage(settings: Settings) -> IFileStorage:
    return LocalFileStorage(base_path=settings.UPLOADS_DIR)


def build_rag_service(
    session_factory: async_sessionmaker,
    settings: Settings = default_settings,
    *,
    chroma_client: Optional[Any] = None,
    embedding_service: Optional[IEmbeddingService] = None,
    language_model: Optional[ILanguageModel] = None,
    file_storage: Optional[IFileStorage] = None,
    text_extractor: Optional[ITextExtractor] = None,
    document_repo: Optional[IDocumentRepository] = None,
    conversation_repo: Optional[IConversationRepository] = None,
    chunk_index: Optional[IChunkIndex] = None,
    regulation_index: Optional[IRegulationIndex] = None
) -> RAGService:
    """
    Create the RAG service with full dependency injection.

    Any collaborator can be passed in (tests swap in fakes); the rest are
    built from settings.
    """
    client = chroma_client
    if chunk_index is None or regulation_index is None:
        client = client or get_chroma_client(settings)

    chunk_index = chunk_index or ChromaChunkIndex(
        client, settings.CHUNK_COLLECTION_NAME, settings.KEYWORD_MATCH_SCORE
    )
    regulation_index = regulation_index or ChromaRegulationIndex(client, settings.REGULATION_COLLECTION_NAME)
    embedding_service = embedding_service or get_embedding_service(settings)
    language_model = language_model or get_language_model(settings)
    file_storage = file_storage or get_file_storage(settings)
    text_extractor = text_extractor or DocumentTextExtractor()
    document_repo = document_repo or SQLDocumentRepository(session_factory)
    conversation_repo = conversation_repo or SQLConversationRepository(session_factory)

    pipeline = DocumentIngestionPipeline(
        document_repo=document_repo,
        file_storage=file_storage,
        text_extractor=text_extractor,
        chunker=TextChunker(settings.CHUNK_MAX_CHARS, settings.CHUNK_PAGE_INTERVAL),
        embedding_service=embedding_service,
        chunk_index=chunk_index,
        batch_size=settings.CHUNK_INSERT_BATCH_SIZE,
    )
    queue = IngestionQueue(
        handler=pipeline.process,
        on_failure=pipeline.mark_failed,
        workers=settings.INGESTION_WORKERS,
        max_retries=settings.INGESTION_MAX_RETRIES,
        backoff_seconds=settings.INGESTION_RETRY_BACKOFF_SECONDS,
    )

    return RAGService(
        document_repo=document_repo,
        file_storage=file_storage,
        chunk_index=chunk_index,
        regulation_index=regulation_index,
        ingestion_queue=queue,
        hybrid_search=HybridSearchService(
            embedding_service,
            chunk_index,
            regulation_index,
            threshold=settings.SEARCH_SCORE_THRESHOLD,
            document_share=settings.DOCUMENT_SHARE,
            keyword_max_terms=settings.KEYWORD_MAX_TERMS,
        ),
        context_enhancer=ConversationContextEnhancer(
            conversation_repo, settings.CHAT_CONTEXT_LIMIT, settings.CHAT_CONTEXT_TURN_CHARS
        ),
        prompt_builder=PromptBuilder(),
        answer_synthesizer=AnswerSynthesizer(
            language_model,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            min_answer_chars=settings.LLM_MIN_ANSWER_CHARS,
        ),
        suggestion_service=QuerySuggestionService(
            document_repo,
            SuggestionCache(
                ttl_seconds=settings.SUGGESTION_CACHE_TTL_SECONDS,
                max_entries=settings.SUGGESTION_CACHE_MAX_ENTRIES,
                max_bytes=settings.SUGGESTION_CACHE_MAX_BYTES,
            ),
        ),
        allowed_mime_types=list(settings.ALLOWED_MIME_TYPES),
        max_file_size=settings.MAX_FILE_SIZE,
        max_query_length=settings.MAX_QUERY_LENGTH,
        max_sources_limit=settings.MAX_SOURCES_LIMIT,
        snippet_length=settings.SNIPPET_LENGTH,
        related_threshold=settings.RELATED_DOCUMENT_THRESHOLD,
    )
