import pytest

from core.domain import DocumentChunk, SearchResult
from core.enums import ChunkType, Language, SourceType
from core.errors import EmbeddingError
from services.hybrid_search import HybridSearchService, combined_relevance, split_limit
from tests.conftest import (
    ANNUAL_LEAVE_ARTICLE, FakeEmbedding, InMemoryChunkIndex, InMemoryRegulationIndex, topic_vector
)


def _chunk(index: int, text: str, organization_id: str = "org-1",
           language: Language = Language.ENGLISH) -> DocumentChunk:
    return DocumentChunk(
        id=DocumentChunk.make_id("doc-1", index),
        document_id="doc-1",
        organization_id=organization_id,
        chunk_index=index,
        text=text,
        chunk_type=ChunkType.PARAGRAPH,
        language=language,
        page_number=1,
        document_title="Leave Policy",
        filename="leave.txt",
        embedding=topic_vector(text),
    )


def _result(score: float, source_type: SourceType = SourceType.DOCUMENT) -> SearchResult:
    return SearchResult(source_type, score, Language.ENGLISH)


@pytest.fixture
def chunk_index():
    return InMemoryChunkIndex()


@pytest.fixture
def regulation_index():
    index = InMemoryRegulationIndex()
    index.index(ANNUAL_LEAVE_ARTICLE, Language.ENGLISH)
    index.index(ANNUAL_LEAVE_ARTICLE, Language.ARABIC)
    return index


def _service(chunk_index, regulation_index, embedding=None) -> HybridSearchService:
    return HybridSearchService(
        embedding or FakeEmbedding(), chunk_index, regulation_index, threshold=0.75, document_share=0.7
    )


def test_split_limit_rounds_both_sides_up():
    assert split_limit(10, 0.7) == (7, 3)
    assert split_limit(5, 0.7) == (4, 2)
    assert split_limit(1, 0.7) == (1, 1)


def test_combined_relevance_averages_non_empty_corpora():
    docs = [_result(0.8), _result(0.6)]
    regs = [_result(0.9, SourceType.LABOR_LAW)]

    assert combined_relevance(docs, regs) == pytest.approx((0.7 + 0.9) / 2)
    assert combined_relevance(docs, []) == pytest.approx(0.7)
    assert combined_relevance([], []) == 0.0


async def test_similarity_hits_from_both_corpora(chunk_index, regulation_index):
    await chunk_index.add_chunks([_chunk(0, "Annual leave is 21 days."), _chunk(1, "Salary is paid monthly.")])

    result = await _service(chunk_index, regulation_index).search(
        "annual leave entitlement", "org-1", Language.ENGLISH, 10
    )

    assert [r.chunk.chunk_index for r in result.document_results] == [0]
    assert [r.article.id for r in result.regulation_results] == [ANNUAL_LEAVE_ARTICLE.id]
    assert not result.used_keyword_fallback
    assert 0.0 < result.combined_relevance <= 1.0


async def test_other_tenants_chunks_are_never_returned(chunk_index, regulation_index):
    await chunk_index.add_chunks([_chunk(0, "Annual leave is 30 days.", organization_id="org-2")])

    result = await _service(chunk_index, regulation_index).search(
        "annual leave", "org-1", Language.ENGLISH, 10, include_regulations=False
    )

    assert result.document_results == []
    assert result.regulation_results == []


async def test_keyword_fallback_when_nothing_clears_threshold(chunk_index, regulation_index):
    # The chunk shares no topic with the query, so similarity stays far below the threshold
    await chunk_index.add_chunks([_chunk(0, "The dress code requires formal attire.")])

    result = await _service(chunk_index, regulation_index).search(
        "What is the dress code during leave?", "org-1", Language.ENGLISH, 10
    )

    assert result.used_keyword_fallback
    assert [r.relevance_score for r in result.document_results] == [0.5]
    assert chunk_index.keyword_calls == [["dress", "code", "during", "leave"]]


async def test_keyword_fallback_when_similarity_search_fails(chunk_index, regulation_index):
    await chunk_index.add_chunks([_chunk(0, "Overtime is paid at 150 percent.")])
    chunk_index.fail_search = True

    result = await _service(chunk_index, regulation_index).search(
        "overtime rate", "org-1", Language.ENGLISH, 10
    )

    assert result.used_keyword_fallback
    assert len(result.document_results) == 1


async def test_failed_fallback_contributes_nothing(chunk_index, regulation_index):
    chunk_index.fail_search = True
    chunk_index.fail_keyword = True

    result = await _service(chunk_index, regulation_index).search(
        "annual leave", "org-1", Language.ENGLISH, 10
    )

    assert result.document_results == []
    assert len(result.regulation_results) == 1


async def test_regulation_failure_is_isolated(chunk_index, regulation_index):
    await chunk_index.add_chunks([_chunk(0, "Annual leave is 21 days.")])
    regulation_index.fail = True

    result = await _service(chunk_index, regulation_index).search(
        "annual leave", "org-1", Language.ENGLISH, 10
    )

    assert len(result.document_results) == 1
    assert result.regulation_results == []


async def test_regulations_are_matched_in_query_language(chunk_index, regulation_index):
    result = await _service(chunk_index, regulation_index).search(
        "ما هي أحكام الإجازة السنوية؟", "org-1", Language.ARABIC, 10
    )

    assert len(result.regulation_results) == 1
    assert result.regulation_results[0].language == Language.ARABIC
    assert result.regulation_results[0].text == ANNUAL_LEAVE_ARTICLE.content_ar


async def test_embedding_failure_propagates(chunk_index, regulation_index):
    service = _service(chunk_index, regulation_index, embedding=FakeEmbedding(fail=True))

    with pytest.raises(EmbeddingError):
        await service.search("annual leave", "org-1", Language.ENGLISH, 10)
