# services/regulation_indexer.py
"""Loads regulatory articles from a JSON export and indexes them per language"""
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Union

from config import settings
from core.domain import RegulatoryArticle
from core.enums import Language
from core.errors import ValidationError
from core.interfaces import IEmbeddingService, IRegulationIndex

logger = logging.getLogger(settings.LOGGER_NAME)

_REQUIRED_FIELDS = ("id", "article_number")


def article_from_dict(row: Dict[str, Any]) -> RegulatoryArticle:
    missing = [f for f in _REQUIRED_FIELDS if not row.get(f)]
    if missing:
        raise ValidationError(f"Article is missing {', '.join(missing)}: {row!r:.120}")
    return RegulatoryArticle(
        id=str(row["id"]),
        article_number=str(row["article_number"]),
        title_ar=row.get("title_ar", ""),
        title_en=row.get("title_en", ""),
        content_ar=row.get("content_ar", ""),
        content_en=row.get("content_en", ""),
        summary_ar=row.get("summary_ar"),
        summary_en=row.get("summary_en"),
        category_ar=row.get("category_ar", ""),
        category_en=row.get("category_en", ""),
    )


def load_articles(path: Union[str, Path]) -> List[RegulatoryArticle]:
    """Read a JSON array of article objects (bilingual fields as in the labor law export)."""
    with open(path, encoding="utf-8") as f:
        rows = json.load(f)
    if not isinstance(rows, list):
        raise ValidationError("Article file must contain a JSON array")
    return [article_from_dict(row) for row in rows]


class RegulationIndexer:
    def __init__(self, embedding_service: IEmbeddingService, regulation_index: IRegulationIndex,
                 batch_size: int = 32):
        self.embedding_service = embedding_service
        self.regulation_index = regulation_index
        self.batch_size = batch_size

    @staticmethod
    def _embedding_text(article: RegulatoryArticle, language: Language) -> str:
        title = article.title(language)
        content = article.content(language)
        return f"{title}\n{content}" if title else content

    async def index(self, articles: List[RegulatoryArticle]) -> Dict[Language, int]:
        """
        Embed and upsert every article once per language it has content in.

        Returns the number of entries written per language. Re-running with the
        same article ids overwrites the previous entries.
        """
        written: Dict[Language, int] = {}
        for language in Language:
            candidates = [a for a in articles if a.content(language).strip()]
            for start in range(0, len(candidates), self.batch_size):
                batch = candidates[start:start + self.batch_size]
                vectors = await self.embedding_service.embed_many(
                    [self._embedding_text(a, language) for a in batch]
                )
                await self.regulation_index.add_articles(
                    [replace(a, embedding=v) for a, v in zip(batch, vectors)], language
                )
            written[language] = len(candidates)
            logger.info(f"[REGULATIONS] Indexed {len(candidates)} article(s) in '{language.value}'")
        return written
