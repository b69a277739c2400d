# infrastructure/vector_stores.py
"""ChromaDB-backed similarity indexes for document chunks and regulatory articles"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from config import settings
from core.domain import DocumentChunk, RegulatoryArticle, SearchResult
from core.enums import ChunkType, Language, SourceType
from core.errors import SearchError
from core.interfaces import IChunkIndex, IRegulationIndex

logger = logging.getLogger(settings.LOGGER_NAME)

# Chroma metadata values cannot be None
_NO_PAGE = -1


def _similarity(distance: float) -> float:
    """Cosine distance -> similarity in [0, 1]"""
    return max(0.0, min(1.0, 1.0 - float(distance)))


def _where_all(**conditions: Any) -> Dict[str, Any]:
    clauses = [{key: value} for key, value in conditions.items()]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class _ChromaCollection:
    """Lazy collection handle shared by both indexes."""

    def __init__(self, client: Any, collection_name: str):
        self._client = client
        self._collection_name = collection_name
        self._collection: Any = None

    async def _ensure_collection(self):
        """Lazy initialization of collection (cosine space)"""
        if not self._collection:
            self._collection = await asyncio.to_thread(
                self._client.get_or_create_collection,
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"}
            )
        return self._collection

    async def _query(self, embedding: List[float], where: Dict[str, Any], n_results: int) -> Dict[str, Any]:
        collection = await self._ensure_collection()
        if await asyncio.to_thread(collection.count) == 0:
            return {"ids": [[]], "documents": [[]], "metadatas": [[]], "distances": [[]]}
        return await asyncio.to_thread(
            collection.query,
            query_embeddings=[embedding],
            n_results=n_results,
            where=where,
            include=['metadatas', 'documents', 'distances']
        )


class ChromaChunkIndex(_ChromaCollection, IChunkIndex):
    """Organisation chunks; every read is filtered by tenant and language."""

    def __init__(self, client: Any, collection_name: str = settings.CHUNK_COLLECTION_NAME,
                 keyword_score: float = settings.KEYWORD_MATCH_SCORE):
        super().__init__(client, collection_name)
        self.keyword_score = keyword_score

    @staticmethod
    def _chunk_to_row(chunk: DocumentChunk) -> Dict[str, Any]:
        return {
            "document_id": chunk.document_id,
            "organization_id": chunk.organization_id,
            "chunk_index": chunk.chunk_index,
            "chunk_type": chunk.chunk_type.value,
            "language": chunk.language.value,
            "page_number": chunk.page_number if chunk.page_number is not None else _NO_PAGE,
            "section_title": chunk.section_title or "",
            "document_title": chunk.document_title or "",
            "filename": chunk.filename or "",
        }

    @staticmethod
    def _row_to_chunk(chunk_id: str, text: str, meta: Dict[str, Any]) -> DocumentChunk:
        page = meta.get("page_number", _NO_PAGE)
        return DocumentChunk(
            id=chunk_id,
            document_id=meta.get("document_id", ""),
            organization_id=meta.get("organization_id", ""),
            chunk_index=int(meta.get("chunk_index", 0)),
            text=text or "",
            chunk_type=ChunkType(meta.get("chunk_type", ChunkType.PARAGRAPH.value)),
            language=Language(meta.get("language", Language.ENGLISH.value)),
            page_number=None if page == _NO_PAGE else int(page),
            section_title=meta.get("section_title") or None,
            document_title=meta.get("document_title", ""),
            filename=meta.get("filename", ""),
        )

    async def add_chunks(self, chunks: List[DocumentChunk]) -> None:
        if not chunks:
            return
        try:
            collection = await self._ensure_collection()
            await asyncio.to_thread(
                collection.upsert,
                ids=[chunk.id for chunk in chunks],
                documents=[chunk.text for chunk in chunks],
                metadatas=[self._chunk_to_row(chunk) for chunk in chunks],
                embeddings=[chunk.embedding for chunk in chunks]
            )
        except Exception as e:
            logger.error(f"Failed to add chunks to ChromaDB: {e}")
            raise SearchError(f"Chunk index write failed: {e}") from e

    async def search(
        self,
        query_embedding: List[float],
        organization_id: str,
        language: Language,
        threshold: float,
        limit: int
    ) -> List[SearchResult]:
        try:
            results = await self._query(
                query_embedding,
                _where_all(organization_id=organization_id, language=language.value),
                limit
            )
        except Exception as e:
            logger.error(f"[SEARCH] Chunk similarity search failed: {e}")
            raise SearchError(f"Chunk similarity search failed: {e}") from e

        hits: List[SearchResult] = []
        if results['ids'] and results['ids'][0]:
            for i, chunk_id in enumerate(results['ids'][0]):
                similarity = _similarity(results['distances'][0][i])
                if similarity <= threshold:
                    continue
                chunk = self._row_to_chunk(chunk_id, results['documents'][0][i], results['metadatas'][0][i])
                hits.append(SearchResult(SourceType.DOCUMENT, similarity, language, chunk=chunk))

        hits.sort(key=lambda r: r.relevance_score, reverse=True)
        return hits[:limit]

    async def keyword_search(
        self,
        terms: List[str],
        organization_id: str,
        language: Language,
        limit: int
    ) -> List[SearchResult]:
        if not terms:
            return []

        # $contains is case sensitive: also try the capitalised form of Latin terms
        variants: List[str] = []
        for term in terms:
            for variant in (term, term.capitalize()):
                if variant not in variants:
                    variants.append(variant)
        matchers = [{"$contains": v} for v in variants]
        where_document = matchers[0] if len(matchers) == 1 else {"$or": matchers}

        try:
            collection = await self._ensure_collection()
            rows = await asyncio.to_thread(
                collection.get,
                where=_where_all(organization_id=organization_id, language=language.value),
                where_document=where_document,
                limit=limit,
                include=['metadatas', 'documents']
            )
        except Exception as e:
            logger.error(f"[SEARCH] Keyword search failed: {e}")
            raise SearchError(f"Keyword search failed: {e}") from e

        return [
            SearchResult(
                SourceType.DOCUMENT,
                self.keyword_score,
                language,
                chunk=self._row_to_chunk(chunk_id, rows['documents'][i], rows['metadatas'][i])
            )
            for i, chunk_id in enumerate(rows['ids'] or [])
        ]

    async def delete_by_document(self, document_id: str) -> None:
        try:
            collection = await self._ensure_collection()
            await asyncio.to_thread(collection.delete, where={"document_id": document_id})
        except Exception as e:
            logger.error(f"Failed to delete document chunks: {e}")
            raise SearchError(f"Chunk delete failed: {e}") from e

    async def count_by_document(self, document_id: str) -> int:
        try:
            collection = await self._ensure_collection()
            rows = await asyncio.to_thread(collection.get, where={"document_id": document_id}, include=['metadatas'])
        except Exception as e:
            logger.error(f"Failed to count document chunks: {e}")
            raise SearchError(f"Chunk count failed: {e}") from e
        return len(rows['ids'] or [])

    async def get_chunk_embedding(self, document_id: str, chunk_index: int = 0) -> Optional[List[float]]:
        try:
            collection = await self._ensure_collection()
            rows = await asyncio.to_thread(
                collection.get,
                ids=[DocumentChunk.make_id(document_id, chunk_index)],
                include=['embeddings']
            )
        except Exception as e:
            logger.error(f"Failed to read chunk embedding: {e}")
            raise SearchError(f"Chunk read failed: {e}") from e

        embeddings = rows.get('embeddings')
        if embeddings is None or len(embeddings) == 0:
            return None
        return [float(x) for x in embeddings[0]]


class ChromaRegulationIndex(_ChromaCollection, IRegulationIndex):
    """Regulatory articles, one entry per (article, language)."""

    def __init__(self, client: Any, collection_name: str = settings.REGULATION_COLLECTION_NAME):
        super().__init__(client, collection_name)

    @staticmethod
    def _article_to_row(article: RegulatoryArticle, language: Language) -> Dict[str, Any]:
        return {
            "article_id": article.id,
            "article_number": article.article_number,
            "language": language.value,
            "title_ar": article.title_ar,
            "title_en": article.title_en,
            "summary_ar": article.summary_ar or "",
            "summary_en": article.summary_en or "",
            "category_ar": article.category_ar,
            "category_en": article.category_en,
        }

    @staticmethod
    def _row_to_article(text: str, meta: Dict[str, Any]) -> RegulatoryArticle:
        language = Language(meta.get("language", Language.ENGLISH.value))
        article = RegulatoryArticle(
            id=meta.get("article_id", ""),
            article_number=str(meta.get("article_number", "")),
            title_ar=meta.get("title_ar", ""),
            title_en=meta.get("title_en", ""),
            summary_ar=meta.get("summary_ar") or None,
            summary_en=meta.get("summary_en") or None,
            category_ar=meta.get("category_ar", ""),
            category_en=meta.get("category_en", ""),
        )
        # Only the matched language's content is stored with the row
        if language == Language.ARABIC:
            article.content_ar = text or ""
        else:
            article.content_en = text or ""
        return article

    async def add_articles(self, articles: List[RegulatoryArticle], language: Language) -> None:
        if not articles:
            return
        try:
            collection = await self._ensure_collection()
            await asyncio.to_thread(
                collection.upsert,
                ids=[f"{a.id}_{language.value}" for a in articles],
                documents=[a.content(language) for a in articles],
                metadatas=[self._article_to_row(a, language) for a in articles],
                embeddings=[a.embedding for a in articles]
            )
        except Exception as e:
            logger.error(f"Failed to add articles to ChromaDB: {e}")
            raise SearchError(f"Regulation index write failed: {e}") from e

    async def search(
        self,
        query_embedding: List[float],
        language: Language,
        threshold: float,
        limit: int
    ) -> List[SearchResult]:
        try:
            results = await self._query(query_embedding, {"language": language.value}, limit)
        except Exception as e:
            logger.error(f"[SEARCH] Regulation similarity search failed: {e}")
            raise SearchError(f"Regulation similarity search failed: {e}") from e

        hits: List[SearchResult] = []
        if results['ids'] and results['ids'][0]:
            for i in range(len(results['ids'][0])):
                similarity = _similarity(results['distances'][0][i])
                if similarity <= threshold:
                    continue
                article = self._row_to_article(results['documents'][0][i], results['metadatas'][0][i])
                hits.append(SearchResult(SourceType.LABOR_LAW, similarity, language, article=article))

        hits.sort(key=lambda r: r.relevance_score, reverse=True)
        return hits[:limit]

    async def count(self) -> int:
        try:
            collection = await self._ensure_collection()
            return await asyncio.to_thread(collection.count)
        except Exception as e:
            logger.error(f"Failed to get count: {e}")
            raise SearchError(f"Regulation count failed: {e}") from e
