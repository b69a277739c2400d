# database/session.py

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- SQLAlchemy Models ---

class DocumentEntity(Base):
    __tablename__ = "documents"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    filename = Column(String, nullable=False)  # The original filename
    mime_type = Column(String, nullable=False)
    file_hash = Column(String, index=True, nullable=False)
    stored_filename = Column(String, nullable=False, unique=True)  # Secure name on disk
    language = Column(String, nullable=True)  # 'ar' / 'en', set once detected
    status = Column(String, nullable=False, default="processing", index=True)
    chunk_count = Column(Integer, nullable=False, default=0)
    tags = Column(JSON, nullable=False, default=list)
    content = Column(Text, nullable=True)
    meta = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ConversationTurnEntity(Base):
    """Chat history written by the conversation service; read-only here."""
    __tablename__ = "conversation_turns"
    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String, nullable=False, index=True)
    organization_id = Column(String, nullable=True)
    role = Column(String, nullable=False)  # 'user' or 'assistant'
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow)


# ============= Engine & Session Factory =============

def create_engine(database_url: str = settings.DATABASE_URL) -> AsyncEngine:
    """Async engine; pool options only apply to server databases."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)
    return create_async_engine(
        database_url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True  # Check connection health before using
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
