# services/attribution.py
"""Confidence scoring and source attribution for generated answers"""
from dataclasses import dataclass
from typing import List

from core.domain import HybridSearchResult, SearchResult, SourceAttribution
from core.enums import SourceType


@dataclass(frozen=True)
class ConfidenceWeights:
    relevance: float = 0.4
    sources: float = 0.3
    length: float = 0.2
    regulation_bonus: float = 0.1
    sources_norm: int = 5        # this many sources counts as full coverage
    length_norm: int = 500       # answer length (chars) counted as complete


def confidence_score(search: HybridSearchResult, answer: str,
                     weights: ConfidenceWeights = ConfidenceWeights()) -> float:
    score = search.combined_relevance * weights.relevance
    score += min(search.total_sources / weights.sources_norm, 1.0) * weights.sources
    score += min(len(answer) / weights.length_norm, 1.0) * weights.length
    if search.regulation_results:
        score += weights.regulation_bonus
    return max(0.0, min(1.0, score))


def make_excerpt(text: str, max_chars: int = 200) -> str:
    text = (text or "").strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars - 3].rstrip() + "..."


def to_attribution(result: SearchResult, max_chars: int = 200) -> SourceAttribution:
    if result.source_type == SourceType.LABOR_LAW and result.article is not None:
        article = result.article
        summary = article.summary(result.language)
        return SourceAttribution(
            id=article.id,
            source_type=SourceType.LABOR_LAW,
            title=article.title(result.language),
            excerpt=make_excerpt(summary or article.content(result.language), max_chars),
            relevance_score=result.relevance_score,
            article_number=article.article_number,
            category=article.category(result.language) or None,
        )

    chunk = result.chunk
    return SourceAttribution(
        id=result.id,
        source_type=SourceType.DOCUMENT,
        title=result.title,
        excerpt=make_excerpt(result.text, max_chars),
        relevance_score=result.relevance_score,
        page_number=chunk.page_number if chunk else None,
        section_title=chunk.section_title if chunk else None,
    )


def format_sources(search: HybridSearchResult, max_chars: int = 200) -> List[SourceAttribution]:
    """Both corpora merged, most relevant first; ties keep document-before-regulation order."""
    sources = [to_attribution(r, max_chars) for r in search.document_results]
    sources += [to_attribution(r, max_chars) for r in search.regulation_results]
    return sorted(sources, key=lambda s: s.relevance_score, reverse=True)
