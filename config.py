# config.py
"""Application configuration"""
from typing import List
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path, get_project_root

class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOG_FILE_PATH: str = get_log_file_path()
    LOGGER_NAME: str = "hr_rag"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./hr_rag.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # Vector store
    VECTOR_DB_PATH: str = "./vector_db"
    CHUNK_COLLECTION_NAME: str = "organization_chunks"
    REGULATION_COLLECTION_NAME: str = "regulatory_articles"

    # Embedding model
    EMBEDDING_MODEL_NAME: str = "paraphrase-multilingual-mpnet-base-v2"
    EMBEDDING_MAX_CHARS: int = 8000
    QUERY_CONTEXT_PREFIX_EN: str = "HR and Saudi Labor Law query: "
    QUERY_CONTEXT_PREFIX_AR: str = "استفسار في الموارد البشرية وقانون العمل السعودي: "

    # LLM (Ollama-compatible chat endpoint)
    LLM_MODEL_NAME: str = "llama3.1:8b"
    LLM_BASE_URL: str = "http://localhost:11434"
    LLM_TEMPERATURE: float = 0.1
    LLM_MAX_TOKENS: int = 1000
    LLM_MIN_ANSWER_CHARS: int = 50
    REQUEST_TIMEOUT: int = 60

    # Document processing
    CHUNK_MAX_CHARS: int = 500
    CHUNK_PAGE_INTERVAL: int = 10
    CHUNK_INSERT_BATCH_SIZE: int = 100
    MAX_FILE_SIZE: int = 50 * 1024 * 1024
    UPLOADS_DIR: str = f"{get_project_root()}/uploads"
    ALLOWED_MIME_TYPES: List[str] = [
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "text/markdown",
    ]

    # Ingestion queue
    INGESTION_WORKERS: int = 3
    INGESTION_MAX_RETRIES: int = 3
    INGESTION_RETRY_BACKOFF_SECONDS: float = 1.0

    # Search
    SEARCH_SCORE_THRESHOLD: float = 0.75
    KEYWORD_MATCH_SCORE: float = 0.5
    KEYWORD_MAX_TERMS: int = 5
    DOCUMENT_SHARE: float = 0.7
    DEFAULT_MAX_SOURCES: int = 10
    MAX_SOURCES_LIMIT: int = 20
    MAX_QUERY_LENGTH: int = 2000
    RELATED_DOCUMENT_THRESHOLD: float = 0.7

    # Conversation context
    CHAT_CONTEXT_LIMIT: int = 4
    CHAT_CONTEXT_TURN_CHARS: int = 100

    # Attribution
    SNIPPET_LENGTH: int = 200

    # Suggestions cache
    SUGGESTION_CACHE_TTL_SECONDS: int = 300
    SUGGESTION_CACHE_MAX_ENTRIES: int = 500
    SUGGESTION_CACHE_MAX_BYTES: int = 2 * 1024 * 1024

    # App metadata
    APP_TITLE: str = "HR Knowledge Assistant"
    APP_VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
