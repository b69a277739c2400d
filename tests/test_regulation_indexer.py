import json
from pathlib import Path

import pytest

from core.enums import Language
from core.errors import ValidationError
from services.regulation_indexer import RegulationIndexer, load_articles
from tests.conftest import FakeEmbedding, InMemoryRegulationIndex

SAMPLE_FILE = Path(__file__).resolve().parent.parent / "data" / "labor_law_articles.json"


def test_bundled_sample_loads():
    articles = load_articles(SAMPLE_FILE)

    assert len(articles) == 4
    assert all(a.content_ar and a.content_en for a in articles)


def test_missing_required_fields_are_rejected(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"title_en": "No id"}]), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_articles(path)


def test_file_must_hold_an_array(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"id": "x"}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_articles(path)


async def test_articles_are_indexed_once_per_language(tmp_path):
    path = tmp_path / "articles.json"
    path.write_text(json.dumps([
        {"id": "a1", "article_number": "1", "content_en": "Annual leave.", "content_ar": "إجازة سنوية."},
        {"id": "a2", "article_number": "2", "content_en": "Overtime pay."},
    ]), encoding="utf-8")
    index = InMemoryRegulationIndex()

    written = await RegulationIndexer(FakeEmbedding(), index, batch_size=1).index(load_articles(path))

    assert written == {Language.ARABIC: 1, Language.ENGLISH: 2}
    assert set(index.entries) == {("a1", Language.ARABIC), ("a1", Language.ENGLISH), ("a2", Language.ENGLISH)}
    assert all(article.embedding for article in index.entries.values())
