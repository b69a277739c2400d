# services/chunker.py
"""
Paragraph-first text chunker.

Text is split on blank lines. Short unpunctuated paragraphs become
`title` chunks and open a new section; everything else is a `paragraph`
chunk, split further on sentence boundaries when longer than the size
threshold. Page numbers are synthetic: the counter advances after a
paragraph whenever the running chunk count lands on a multiple of the
page interval.
"""
import re
from typing import List

from core.domain import ChunkDraft
from core.enums import ChunkType, Language

_PARAGRAPH_BREAK = re.compile(r'\n\s*\n')
# A terminator only ends a sentence when whitespace or end of text follows,
# so "1.5" and "109.2" stay intact
_SENTENCE = re.compile(r'.+?(?:[.!?؟]+(?=\s|$)|$)', re.S)
_TERMINATORS = ('.', '!', '?', '؟')

TITLE_MAX_CHARS = 100


class TextChunker:
    """Splits extracted document text into ordered chunk drafts."""

    def __init__(self, max_chars: int = 500, page_interval: int = 10):
        self.max_chars = max_chars
        self.page_interval = page_interval

    def chunk(self, text: str, language: Language = Language.ENGLISH) -> List[ChunkDraft]:
        drafts: List[ChunkDraft] = []
        if not text:
            return drafts

        section = ""
        page = 1

        for paragraph in _PARAGRAPH_BREAK.split(text):
            if not paragraph.strip():
                continue

            if self._is_title(paragraph):
                section = paragraph
                drafts.append(ChunkDraft(paragraph, ChunkType.TITLE, page, section))
            elif len(paragraph.strip()) > self.max_chars:
                for piece in self._split_sentences(paragraph.strip()):
                    drafts.append(ChunkDraft(piece, ChunkType.PARAGRAPH, page, section))
            else:
                drafts.append(ChunkDraft(paragraph.strip(), ChunkType.PARAGRAPH, page, section))

            if drafts and len(drafts) % self.page_interval == 0:
                page += 1

        for index, draft in enumerate(drafts):
            draft.chunk_index = index

        return drafts

    @staticmethod
    def _is_title(paragraph: str) -> bool:
        return (
            len(paragraph) < TITLE_MAX_CHARS
            and not any(t in paragraph for t in _TERMINATORS)
            and paragraph == paragraph.strip()
        )

    def _split_sentences(self, paragraph: str) -> List[str]:
        """Accumulate whole sentences up to max_chars; an oversized sentence stands alone."""
        pieces: List[str] = []
        current = ""

        for match in _SENTENCE.finditer(paragraph):
            sentence = match.group(0).strip()
            if not sentence:
                continue
            candidate = f"{current} {sentence}" if current else sentence
            if current and len(candidate) > self.max_chars:
                pieces.append(current)
                current = sentence
            else:
                current = candidate

        if current:
            pieces.append(current)

        return pieces
