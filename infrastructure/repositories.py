# infrastructure/repositories.py
"""Database repository implementations"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from config import settings
from core.domain import ConversationTurn, Document
from core.enums import ConversationRole, DocumentStatus, Language
from core.interfaces import IConversationRepository, IDocumentRepository
from database.session import ConversationTurnEntity, DocumentEntity

logger = logging.getLogger(settings.LOGGER_NAME)


class SQLDocumentRepository(IDocumentRepository):
    """One short-lived session per operation, so background workers can share it."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    def _to_domain(self, db_doc: Optional[DocumentEntity]) -> Optional[Document]:
        """Converts an SQLAlchemy entity to a domain model."""
        if db_doc is None:
            return None

        return Document(
            id=db_doc.id,  # type: ignore
            organization_id=db_doc.organization_id,  # type: ignore
            title=db_doc.title,  # type: ignore
            filename=db_doc.filename,  # type: ignore
            mime_type=db_doc.mime_type,  # type: ignore
            file_hash=db_doc.file_hash,  # type: ignore
            stored_filename=db_doc.stored_filename,  # type: ignore
            status=DocumentStatus.from_string(db_doc.status),  # type: ignore
            language=Language(db_doc.language) if db_doc.language else None,
            chunk_count=db_doc.chunk_count or 0,  # type: ignore
            tags=list(db_doc.tags or []),
            content=db_doc.content,  # type: ignore
            # Prevent accidental mutation of DB entity metadata
            processing_metadata=dict(db_doc.meta or {}),
            created_at=db_doc.created_at,  # type: ignore
            updated_at=db_doc.updated_at,  # type: ignore
        )

    async def create(self, document: Document) -> Document:
        async with self.session_factory() as session:
            db_doc = DocumentEntity(
                id=document.id,
                organization_id=document.organization_id,
                title=document.title,
                filename=document.filename,
                mime_type=document.mime_type,
                file_hash=document.file_hash,
                stored_filename=document.stored_filename,
                language=document.language.value if document.language else None,
                status=document.status.value,
                chunk_count=document.chunk_count,
                tags=list(document.tags),
                content=document.content,
                meta=dict(document.processing_metadata),
            )
            session.add(db_doc)
            await session.commit()
            await session.refresh(db_doc)
            logger.info(f"Created document {document.id} in database")

            result = self._to_domain(db_doc)
            assert result is not None, "Created document should never be None"
            return result

    async def get_by_id(self, document_id: str, organization_id: Optional[str] = None) -> Optional[Document]:
        async with self.session_factory() as session:
            db_doc = await session.get(DocumentEntity, document_id)
            if db_doc is not None and organization_id is not None and db_doc.organization_id != organization_id:
                return None
            return self._to_domain(db_doc)

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        chunk_count: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[Document]:
        async with self.session_factory() as session:
            db_doc = await session.get(DocumentEntity, document_id)
            if not db_doc:
                return None
            db_doc.status = status.value  # type: ignore
            if chunk_count is not None:
                db_doc.chunk_count = chunk_count  # type: ignore
            if metadata is not None:
                # Reassign a fresh dict so the JSON column is flagged dirty
                db_doc.meta = dict(metadata)  # type: ignore
            await session.commit()
            await session.refresh(db_doc)
            return self._to_domain(db_doc)

    async def update_content(self, document_id: str, content: str, language: Language) -> None:
        async with self.session_factory() as session:
            db_doc = await session.get(DocumentEntity, document_id)
            if not db_doc:
                return
            db_doc.content = content  # type: ignore
            db_doc.language = language.value  # type: ignore
            await session.commit()

    async def list_by_organization(self, organization_id: str) -> List[Document]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DocumentEntity)
                .where(DocumentEntity.organization_id == organization_id)
                .order_by(DocumentEntity.created_at.desc())
            )
            docs = [self._to_domain(doc) for doc in result.scalars().all()]
            return [d for d in docs if d is not None]


class SQLConversationRepository(IConversationRepository):
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_domain(entity: ConversationTurnEntity) -> ConversationTurn:
        try:
            role = ConversationRole(entity.role)
        except ValueError:
            role = ConversationRole.ASSISTANT
        return ConversationTurn(role=role, content=entity.content, timestamp=entity.timestamp)  # type: ignore

    async def get_recent_turns(self, conversation_id: str, limit: int) -> List[ConversationTurn]:
        """Latest `limit` turns, returned oldest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(ConversationTurnEntity)
                .where(ConversationTurnEntity.conversation_id == conversation_id)
                .order_by(ConversationTurnEntity.timestamp.desc(), ConversationTurnEntity.id.desc())
                .limit(limit)
            )
            turns = [self._to_domain(row) for row in result.scalars().all()]
        turns.reverse()
        return turns

    async def add_turn(self, conversation_id: str, role: ConversationRole, content: str,
                       organization_id: Optional[str] = None) -> None:
        """Used by tests and seeding scripts; the core never writes history."""
        async with self.session_factory() as session:
            session.add(ConversationTurnEntity(
                conversation_id=conversation_id,
                organization_id=organization_id,
                role=role.value,
                content=content,
            ))
            await session.commit()
