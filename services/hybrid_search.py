# services/hybrid_search.py
"""Hybrid search across organisation documents and the regulatory knowledge base"""
import asyncio
import logging
import math
from typing import List, Optional, Tuple

from config import settings
from core.domain import HybridSearchResult, SearchResult
from core.enums import Language
from core.errors import SearchError
from core.interfaces import IChunkIndex, IEmbeddingService, IRegulationIndex
from utils.arabic_text import extract_search_terms

logger = logging.getLogger(settings.LOGGER_NAME)


def split_limit(limit: int, document_share: float) -> Tuple[int, int]:
    """(document_limit, regulation_limit); both sides rounded up."""
    # Round first so 10 * (1 - 0.7) counts as 3, not 3.0000000000000004
    return (
        math.ceil(round(limit * document_share, 6)),
        math.ceil(round(limit * (1 - document_share), 6)),
    )


def combined_relevance(document_results: List[SearchResult], regulation_results: List[SearchResult]) -> float:
    """Mean of the per-corpus means; an empty corpus does not drag the score down."""
    means = [
        sum(r.relevance_score for r in results) / len(results)
        for results in (document_results, regulation_results)
        if results
    ]
    if not means:
        return 0.0
    return sum(means) / len(means)


class HybridSearchService:
    """
    Embeds the query once, then searches both corpora concurrently.

    Document corpus: similarity search, with a keyword fallback when the
    index fails or nothing clears the threshold. Regulatory corpus:
    similarity only; a failure there contributes zero results.
    """

    def __init__(
        self,
        embedding_service: IEmbeddingService,
        chunk_index: IChunkIndex,
        regulation_index: IRegulationIndex,
        threshold: float = settings.SEARCH_SCORE_THRESHOLD,
        document_share: float = settings.DOCUMENT_SHARE,
        keyword_max_terms: int = settings.KEYWORD_MAX_TERMS
    ):
        self.embedding_service = embedding_service
        self.chunk_index = chunk_index
        self.regulation_index = regulation_index
        self.threshold = threshold
        self.document_share = document_share
        self.keyword_max_terms = keyword_max_terms

    async def search(
        self,
        query: str,
        organization_id: str,
        language: Language,
        limit: int,
        include_regulations: bool = True
    ) -> HybridSearchResult:
        # EmbeddingError propagates: an unembeddable query is not "no results"
        query_embedding = await self.embedding_service.embed_query(query, language)

        document_limit, regulation_limit = split_limit(limit, self.document_share)

        documents_task = self._search_documents(
            query, query_embedding, organization_id, language, document_limit
        )
        if include_regulations:
            (document_results, used_fallback), regulation_results = await asyncio.gather(
                documents_task,
                self._search_regulations(query_embedding, language, regulation_limit),
            )
        else:
            document_results, used_fallback = await documents_task
            regulation_results = []

        result = HybridSearchResult(
            document_results=document_results,
            regulation_results=regulation_results,
            combined_relevance=combined_relevance(document_results, regulation_results),
            used_keyword_fallback=used_fallback,
        )
        logger.info(
            f"[SEARCH] org={organization_id} lang={language.value} "
            f"documents={len(document_results)} regulations={len(regulation_results)} "
            f"fallback={used_fallback} relevance={result.combined_relevance:.3f}"
        )
        return result

    async def _search_documents(
        self,
        query: str,
        query_embedding: List[float],
        organization_id: str,
        language: Language,
        limit: int
    ) -> Tuple[List[SearchResult], bool]:
        failure: Optional[SearchError] = None
        try:
            hits = await self.chunk_index.search(
                query_embedding, organization_id, language, self.threshold, limit
            )
            if hits:
                return hits, False
        except SearchError as e:
            failure = e

        if failure:
            logger.warning(f"[SEARCH] Document similarity search failed, using keyword fallback: {failure}")
        else:
            logger.info("[SEARCH] No document chunk above threshold, using keyword fallback")

        terms = extract_search_terms(query, language, self.keyword_max_terms)
        try:
            return await self.chunk_index.keyword_search(terms, organization_id, language, limit), True
        except SearchError as e:
            logger.error(f"[SEARCH] Keyword fallback failed, document corpus contributes nothing: {e}")
            return [], True

    async def _search_regulations(
        self,
        query_embedding: List[float],
        language: Language,
        limit: int
    ) -> List[SearchResult]:
        try:
            return await self.regulation_index.search(query_embedding, language, self.threshold, limit)
        except SearchError as e:
            logger.error(f"[SEARCH] Regulation search failed, continuing without regulations: {e}")
            return []
