import pytest

from core.domain import DocumentChunk, HybridSearchResult, SearchResult
from core.enums import ChunkType, Language, SourceType
from services.attribution import ConfidenceWeights, confidence_score, format_sources, make_excerpt
from tests.conftest import ANNUAL_LEAVE_ARTICLE


def _doc(score: float, index: int = 0, text: str = "Annual leave is 21 days.") -> SearchResult:
    chunk = DocumentChunk(
        id=f"doc-1_{index}", document_id="doc-1", organization_id="org-1", chunk_index=index,
        text=text, chunk_type=ChunkType.PARAGRAPH, language=Language.ENGLISH,
        page_number=2, section_title="Leave", document_title="Handbook", filename="handbook.pdf",
    )
    return SearchResult(SourceType.DOCUMENT, score, Language.ENGLISH, chunk=chunk)


def _reg(score: float, language: Language = Language.ENGLISH) -> SearchResult:
    return SearchResult(SourceType.LABOR_LAW, score, language, article=ANNUAL_LEAVE_ARTICLE)


def test_excerpt_is_capped_at_200_characters():
    excerpt = make_excerpt("x" * 500)

    assert len(excerpt) == 200
    assert excerpt.endswith("...")
    assert make_excerpt("short text") == "short text"


def test_sources_are_sorted_by_relevance_across_corpora():
    search = HybridSearchResult(
        document_results=[_doc(0.8, 0), _doc(0.6, 1)],
        regulation_results=[_reg(0.9)],
    )

    sources = format_sources(search)

    assert [s.relevance_score for s in sources] == [0.9, 0.8, 0.6]
    assert sources[0].source_type == SourceType.LABOR_LAW


def test_document_source_carries_page_and_section():
    source = format_sources(HybridSearchResult(document_results=[_doc(0.8)]))[0]

    assert source.title == "Handbook"
    assert source.page_number == 2
    assert source.section_title == "Leave"
    assert source.article_number is None


def test_regulation_source_uses_summary_and_article_number():
    source = format_sources(HybridSearchResult(regulation_results=[_reg(0.9, Language.ARABIC)]))[0]

    assert source.title == ANNUAL_LEAVE_ARTICLE.title_ar
    assert source.excerpt == ANNUAL_LEAVE_ARTICLE.summary_ar
    assert source.article_number == ANNUAL_LEAVE_ARTICLE.article_number
    assert source.category == "الإجازات"


def test_confidence_combines_relevance_sources_length_and_regulation_bonus():
    search = HybridSearchResult(
        document_results=[_doc(0.8)],
        regulation_results=[_reg(0.6)],
        combined_relevance=0.7,
    )
    answer = "a" * 250

    expected = 0.7 * 0.4 + (2 / 5) * 0.3 + (250 / 500) * 0.2 + 0.1
    assert confidence_score(search, answer) == pytest.approx(expected)


def test_confidence_is_clamped_to_one():
    search = HybridSearchResult(
        document_results=[_doc(1.0, i) for i in range(10)],
        regulation_results=[_reg(1.0)],
        combined_relevance=1.0,
    )

    score = confidence_score(search, "a" * 1000)
    assert score <= 1.0
    assert score == pytest.approx(1.0)


def test_confidence_without_evidence_depends_only_on_length():
    score = confidence_score(HybridSearchResult(), "a" * 500, ConfidenceWeights())

    assert score == pytest.approx(0.2)
