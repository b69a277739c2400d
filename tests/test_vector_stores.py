import uuid
from dataclasses import replace

import chromadb
import pytest

from core.domain import DocumentChunk
from core.enums import ChunkType, Language, SourceType
from infrastructure.vector_stores import ChromaChunkIndex, ChromaRegulationIndex
from tests.conftest import ANNUAL_LEAVE_ARTICLE, topic_vector


@pytest.fixture(scope="module")
def client():
    return chromadb.EphemeralClient()


def _name() -> str:
    # The in-memory client is shared per process; keep each test's data apart
    return f"test_{uuid.uuid4().hex[:12]}"


def _chunk(document_id: str, index: int, text: str, organization_id: str = "org-1",
           language: Language = Language.ENGLISH, page_number=1) -> DocumentChunk:
    return DocumentChunk(
        id=DocumentChunk.make_id(document_id, index),
        document_id=document_id,
        organization_id=organization_id,
        chunk_index=index,
        text=text,
        chunk_type=ChunkType.PARAGRAPH,
        language=language,
        page_number=page_number,
        section_title="Leave" if index else None,
        document_title="Handbook",
        filename="handbook.pdf",
        embedding=topic_vector(text),
    )


async def test_search_is_scoped_by_tenant_and_language(client):
    index = ChromaChunkIndex(client, _name())
    await index.add_chunks([
        _chunk("doc-1", 0, "Annual leave is 21 days."),
        _chunk("doc-2", 0, "Annual leave is 30 days.", organization_id="org-2"),
        _chunk("doc-3", 0, "الإجازة السنوية leave", language=Language.ARABIC),
    ])

    hits = await index.search(topic_vector("leave"), "org-1", Language.ENGLISH, 0.75, 5)

    assert [h.chunk.document_id for h in hits] == ["doc-1"]
    assert hits[0].source_type == SourceType.DOCUMENT
    assert hits[0].relevance_score == pytest.approx(1.0, abs=1e-4)
    assert hits[0].chunk.document_title == "Handbook"


async def test_search_applies_threshold(client):
    index = ChromaChunkIndex(client, _name())
    await index.add_chunks([_chunk("doc-1", 0, "Overtime is paid at 150 percent.")])

    assert await index.search(topic_vector("leave"), "org-1", Language.ENGLISH, 0.75, 5) == []


async def test_search_on_empty_collection(client):
    index = ChromaChunkIndex(client, _name())

    assert await index.search(topic_vector("leave"), "org-1", Language.ENGLISH, 0.75, 5) == []


async def test_keyword_search_matches_capitalised_terms(client):
    index = ChromaChunkIndex(client, _name(), keyword_score=0.5)
    await index.add_chunks([
        _chunk("doc-1", 0, "Leave requests go to the line manager."),
        _chunk("doc-1", 1, "Salary is paid monthly."),
    ])

    hits = await index.keyword_search(["leave"], "org-1", Language.ENGLISH, 5)

    assert [h.chunk.chunk_index for h in hits] == [0]
    assert hits[0].relevance_score == 0.5


async def test_keyword_search_without_terms(client):
    index = ChromaChunkIndex(client, _name())

    assert await index.keyword_search([], "org-1", Language.ENGLISH, 5) == []


async def test_page_number_and_section_round_trip(client):
    index = ChromaChunkIndex(client, _name())
    await index.add_chunks([
        _chunk("doc-1", 0, "Annual leave.", page_number=None),
        _chunk("doc-1", 1, "More leave rules.", page_number=3),
    ])

    hits = await index.search(topic_vector("leave"), "org-1", Language.ENGLISH, 0.5, 5)
    by_index = {h.chunk.chunk_index: h.chunk for h in hits}

    assert by_index[0].page_number is None
    assert by_index[0].section_title is None
    assert by_index[1].page_number == 3
    assert by_index[1].section_title == "Leave"


async def test_delete_count_and_embedding_lookup(client):
    index = ChromaChunkIndex(client, _name())
    await index.add_chunks([_chunk("doc-1", i, f"leave rule {i}.") for i in range(3)])
    await index.add_chunks([_chunk("doc-2", 0, "Overtime rule.")])

    assert await index.count_by_document("doc-1") == 3
    embedding = await index.get_chunk_embedding("doc-1", 0)
    assert embedding == pytest.approx(topic_vector("leave rule 0."), abs=1e-5)

    await index.delete_by_document("doc-1")

    assert await index.count_by_document("doc-1") == 0
    assert await index.count_by_document("doc-2") == 1
    assert await index.get_chunk_embedding("doc-1", 0) is None


async def test_regulations_are_stored_per_language(client):
    index = ChromaRegulationIndex(client, _name())
    english = ANNUAL_LEAVE_ARTICLE.content_en
    arabic = ANNUAL_LEAVE_ARTICLE.content_ar
    article_en = _with_embedding(english)
    article_ar = _with_embedding(arabic)

    await index.add_articles([article_en], Language.ENGLISH)
    await index.add_articles([article_ar], Language.ARABIC)

    assert await index.count() == 2

    hits = await index.search(topic_vector(arabic), Language.ARABIC, 0.75, 5)

    assert len(hits) == 1
    hit = hits[0]
    assert hit.source_type == SourceType.LABOR_LAW
    assert hit.article.id == ANNUAL_LEAVE_ARTICLE.id
    assert hit.article.article_number == ANNUAL_LEAVE_ARTICLE.article_number
    assert hit.text == arabic
    assert hit.article.content_en == ""
    assert hit.article.summary(Language.ARABIC) == ANNUAL_LEAVE_ARTICLE.summary_ar


def _with_embedding(text: str):
    return replace(ANNUAL_LEAVE_ARTICLE, embedding=topic_vector(text))
