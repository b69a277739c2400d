"""Shared fakes: in-memory adapters for every port the core depends on."""
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from config import Settings
from core.domain import (
    ConversationTurn, Document, DocumentChunk, LLMCompletion, RegulatoryArticle, SearchResult
)
from core.enums import Language, SourceType
from core.errors import EmbeddingError, GenerationError, SearchError
from core.interfaces import (
    IChunkIndex, IConversationRepository, IDocumentRepository, IEmbeddingService,
    IFileStorage, ILanguageModel, IRegulationIndex
)
from services.factory import build_rag_service

# Each topic word owns one dimension, so texts sharing a topic land close together
TOPICS = ("leave", "salary", "overtime", "termination", "إجازة", "أجر")


def topic_vector(text: str) -> List[float]:
    lowered = (text or "").lower()
    raw = [1.0 if topic in lowered else 0.0 for topic in TOPICS] + [0.1]
    norm = math.sqrt(sum(x * x for x in raw))
    return [x / norm for x in raw]


def _dot(a: List[float], b: List[float]) -> float:
    return sum(x * y for x, y in zip(a, b))


class FakeEmbedding(IEmbeddingService):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    def _check(self):
        self.calls += 1
        if self.fail:
            raise EmbeddingError("embedding backend down")

    async def embed(self, text: str) -> List[float]:
        self._check()
        return topic_vector(text)

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        self._check()
        return [topic_vector(t) for t in texts]

    async def embed_query(self, query: str, language: Language) -> List[float]:
        self._check()
        return topic_vector(query)


class FakeLLM(ILanguageModel):
    def __init__(self, answer: str = "", fail: bool = False, tokens: int = 42):
        self.answer = answer or (
            "According to the company policy and the labor law, employees are entitled "
            "to paid annual leave as described in the cited sources."
        )
        self.fail = fail
        self.tokens = tokens
        self.calls: List[List[Dict[str, str]]] = []

    async def complete(self, messages, temperature=0.1, max_tokens=1000) -> LLMCompletion:
        self.calls.append(messages)
        if self.fail:
            raise GenerationError("model unavailable")
        return LLMCompletion(text=self.answer, tokens_used=self.tokens)


class InMemoryChunkIndex(IChunkIndex):
    def __init__(self, keyword_score: float = 0.5):
        self.keyword_score = keyword_score
        self.chunks: Dict[str, DocumentChunk] = {}
        self.fail_search = False
        self.fail_keyword = False
        self.fail_writes = 0  # number of add_chunks calls that should fail
        self.keyword_calls: List[List[str]] = []

    async def add_chunks(self, chunks: List[DocumentChunk]) -> None:
        if self.fail_writes:
            self.fail_writes -= 1
            raise SearchError("index write failed")
        for chunk in chunks:
            self.chunks[chunk.id] = chunk

    def _scoped(self, organization_id: str, language: Language) -> List[DocumentChunk]:
        return [
            c for c in self.chunks.values()
            if c.organization_id == organization_id and c.language == language
        ]

    async def search(self, query_embedding, organization_id, language, threshold, limit):
        if self.fail_search:
            raise SearchError("index unreachable")
        hits = []
        for chunk in self._scoped(organization_id, language):
            score = _dot(query_embedding, chunk.embedding or [])
            if score > threshold:
                hits.append(SearchResult(SourceType.DOCUMENT, score, language, chunk=chunk))
        hits.sort(key=lambda r: r.relevance_score, reverse=True)
        return hits[:limit]

    async def keyword_search(self, terms, organization_id, language, limit):
        self.keyword_calls.append(list(terms))
        if self.fail_keyword:
            raise SearchError("keyword search unavailable")
        hits = [
            SearchResult(SourceType.DOCUMENT, self.keyword_score, language, chunk=c)
            for c in self._scoped(organization_id, language)
            if any(t in c.text.lower() for t in terms)
        ]
        return hits[:limit]

    async def delete_by_document(self, document_id: str) -> None:
        for key in [k for k, c in self.chunks.items() if c.document_id == document_id]:
            del self.chunks[key]

    async def count_by_document(self, document_id: str) -> int:
        return sum(1 for c in self.chunks.values() if c.document_id == document_id)

    async def get_chunk_embedding(self, document_id: str, chunk_index: int = 0) -> Optional[List[float]]:
        chunk = self.chunks.get(DocumentChunk.make_id(document_id, chunk_index))
        return list(chunk.embedding) if chunk and chunk.embedding else None

    def for_document(self, document_id: str) -> List[DocumentChunk]:
        return sorted(
            (c for c in self.chunks.values() if c.document_id == document_id),
            key=lambda c: c.chunk_index,
        )


class InMemoryRegulationIndex(IRegulationIndex):
    def __init__(self):
        self.entries: Dict[Tuple[str, Language], RegulatoryArticle] = {}
        self.fail = False

    async def add_articles(self, articles: List[RegulatoryArticle], language: Language) -> None:
        for article in articles:
            self.entries[(article.id, language)] = article

    async def search(self, query_embedding, language, threshold, limit):
        if self.fail:
            raise SearchError("regulation index unreachable")
        hits = []
        for (_, lang), article in self.entries.items():
            if lang != language:
                continue
            score = _dot(query_embedding, article.embedding or [])
            if score > threshold:
                hits.append(SearchResult(SourceType.LABOR_LAW, score, language, article=article))
        hits.sort(key=lambda r: r.relevance_score, reverse=True)
        return hits[:limit]

    async def count(self) -> int:
        if self.fail:
            raise SearchError("regulation index unreachable")
        return len(self.entries)

    def index(self, article: RegulatoryArticle, language: Language) -> None:
        """Store an article with its topic embedding for one language."""
        text = f"{article.title(language)}\n{article.content(language)}"
        self.entries[(article.id, language)] = replace(article, embedding=topic_vector(text))


class InMemoryDocumentRepository(IDocumentRepository):
    def __init__(self):
        self.documents: Dict[str, Document] = {}

    async def create(self, document: Document) -> Document:
        now = datetime.now(timezone.utc)
        stored = replace(document, created_at=now, updated_at=now)
        self.documents[document.id] = stored
        return replace(stored)

    async def get_by_id(self, document_id: str, organization_id: Optional[str] = None) -> Optional[Document]:
        document = self.documents.get(document_id)
        if document is None or (organization_id is not None and document.organization_id != organization_id):
            return None
        return replace(document, processing_metadata=dict(document.processing_metadata))

    async def update_status(self, document_id, status, chunk_count=None, metadata=None):
        document = self.documents.get(document_id)
        if document is None:
            return None
        document.status = status
        if chunk_count is not None:
            document.chunk_count = chunk_count
        if metadata is not None:
            document.processing_metadata = dict(metadata)
        document.updated_at = datetime.now(timezone.utc)
        return replace(document, processing_metadata=dict(document.processing_metadata))

    async def update_content(self, document_id: str, content: str, language: Language) -> None:
        document = self.documents.get(document_id)
        if document is not None:
            document.content = content
            document.language = language

    async def list_by_organization(self, organization_id: str) -> List[Document]:
        return [replace(d) for d in self.documents.values() if d.organization_id == organization_id]


class InMemoryConversationRepository(IConversationRepository):
    def __init__(self, turns: Optional[Dict[str, List[ConversationTurn]]] = None, fail: bool = False):
        self.turns = turns or {}
        self.fail = fail

    async def get_recent_turns(self, conversation_id: str, limit: int) -> List[ConversationTurn]:
        if self.fail:
            raise RuntimeError("conversation store offline")
        return self.turns.get(conversation_id, [])[-limit:]


class InMemoryFileStorage(IFileStorage):
    def __init__(self):
        self.files: Dict[str, bytes] = {}

    async def save(self, content: bytes, filename: str) -> str:
        self.files[filename] = content
        return filename

    async def read(self, filename: str) -> bytes:
        if filename not in self.files:
            raise FileNotFoundError(filename)
        return self.files[filename]

    async def delete(self, filename: str) -> bool:
        return self.files.pop(filename, None) is not None


def make_document(doc_id: str = "11111111-2222-3333-4444-555555555555", **overrides: Any) -> Document:
    values = dict(
        id=doc_id,
        organization_id="org-1",
        title="Leave Policy",
        filename="leave_policy.txt",
        mime_type="text/plain",
        file_hash="hash",
        stored_filename=f"{doc_id}.txt",
    )
    values.update(overrides)
    return Document(**values)


ANNUAL_LEAVE_ARTICLE = RegulatoryArticle(
    id="saudi-labor-109",
    article_number="المادة 109",
    title_ar="الإجازة السنوية",
    title_en="Annual Leave",
    content_ar="يستحق العامل عن كل عام إجازة سنوية لا تقل مدتها عن واحد وعشرين يوماً تدفع مقدماً.",
    content_en="The worker is entitled to annual leave of no less than twenty-one days, paid in advance.",
    summary_ar="إجازة سنوية لا تقل عن 21 يوماً",
    summary_en="At least 21 days of paid annual leave",
    category_ar="الإجازات",
    category_en="Leave",
)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        INGESTION_WORKERS=2,
        INGESTION_MAX_RETRIES=2,
        INGESTION_RETRY_BACKOFF_SECONDS=0.0,
        UPLOADS_DIR=str(tmp_path / "uploads"),
    )


@pytest.fixture
def fakes() -> Dict[str, Any]:
    return {
        "embedding_service": FakeEmbedding(),
        "language_model": FakeLLM(),
        "file_storage": InMemoryFileStorage(),
        "document_repo": InMemoryDocumentRepository(),
        "conversation_repo": InMemoryConversationRepository(),
        "chunk_index": InMemoryChunkIndex(),
        "regulation_index": InMemoryRegulationIndex(),
    }


@pytest.fixture
async def rag_service(fakes, test_settings):
    service = build_rag_service(None, test_settings, **fakes)
    await service.start()
    yield service
    await service.stop()
