# infrastructure/text_extractors.py
"""Text extraction for uploaded documents (PDF, DOCX, plain text, markdown)."""
import asyncio
import io
import logging
from typing import Callable, Dict

import docx
import fitz  # PyMuPDF

from config import settings
from core.errors import ExtractionError, UnsupportedFormatError
from core.enums import ErrorCode
from core.interfaces import ITextExtractor

logger = logging.getLogger(settings.LOGGER_NAME)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIMES = ("text/plain", "text/markdown")


def _pdf_to_text(content: bytes) -> str:
    with fitz.open(stream=content, filetype="pdf") as doc:
        pages = [page.get_text("text") for page in doc]
    # Page boundaries double as paragraph boundaries for the chunker
    return "\n\n".join(p.strip() for p in pages if p and p.strip())


def _docx_to_text(content: bytes) -> str:
    document = docx.Document(io.BytesIO(content))
    parts = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n\n".join(parts)


def _plain_to_text(content: bytes) -> str:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as e:
        text = content.decode("utf-8", errors="ignore")
        dropped = len(content) - len(text.encode("utf-8"))
        logger.warning(
            f"[INGEST] Text upload is not valid UTF-8 (first bad byte at {e.start}); "
            f"dropped {dropped} undecodable bytes"
        )
        return text


class DocumentTextExtractor(ITextExtractor):
    """
    Dispatches on MIME type. Parsing runs in a worker thread since
    PyMuPDF and python-docx are blocking.
    """

    def __init__(self):
        self._handlers: Dict[str, Callable[[bytes], str]] = {
            PDF_MIME: _pdf_to_text,
            DOCX_MIME: _docx_to_text,
        }
        for mime in TEXT_MIMES:
            self._handlers[mime] = _plain_to_text

    def supports(self, mime_type: str) -> bool:
        return mime_type in self._handlers

    async def extract(self, file_bytes: bytes, mime_type: str) -> str:
        handler = self._handlers.get(mime_type)
        if handler is None:
            raise UnsupportedFormatError(f"Unsupported file type: {mime_type}")

        try:
            text = await asyncio.to_thread(handler, file_bytes)
        except Exception as e:
            logger.error(f"[INGEST] Text extraction failed for {mime_type}: {e}")
            raise ExtractionError(f"Could not read {mime_type} file: {e}") from e

        if not text or not text.strip():
            raise ExtractionError("No text content found in file", ErrorCode.NO_TEXT_FOUND)

        logger.debug(f"[INGEST] Extracted {len(text)} characters from {mime_type}")
        return text
