import io
import logging

import docx
import fitz
import pytest

from config import settings
from core.enums import ErrorCode
from core.errors import ExtractionError, UnsupportedFormatError
from infrastructure.text_extractors import DOCX_MIME, PDF_MIME, DocumentTextExtractor


def _pdf_bytes(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def _docx_bytes() -> bytes:
    document = docx.Document()
    document.add_paragraph("Leave Policy")
    document.add_paragraph("Employees are entitled to 21 days of annual leave.")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Grade A"
    table.rows[0].cells[1].text = "30 days"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


async def test_plain_text_is_decoded():
    text = await DocumentTextExtractor().extract("نص عربي\n\nEnglish".encode("utf-8"), "text/plain")

    assert text == "نص عربي\n\nEnglish"


async def test_invalid_utf8_bytes_are_dropped_with_a_warning(caplog):
    content = "Annual leave".encode("utf-8") + b"\xff\xfe" + " is 21 days".encode("utf-8")

    with caplog.at_level(logging.WARNING, logger=settings.LOGGER_NAME):
        text = await DocumentTextExtractor().extract(content, "text/plain")

    assert text == "Annual leave is 21 days"
    assert "dropped 2 undecodable bytes" in caplog.text


async def test_pdf_pages_become_paragraphs():
    text = await DocumentTextExtractor().extract(_pdf_bytes("First page", "Second page"), PDF_MIME)

    assert text.split("\n\n") == ["First page", "Second page"]


async def test_docx_paragraphs_and_table_rows():
    text = await DocumentTextExtractor().extract(_docx_bytes(), DOCX_MIME)

    assert text.split("\n\n") == [
        "Leave Policy",
        "Employees are entitled to 21 days of annual leave.",
        "Grade A | 30 days",
    ]


async def test_unsupported_mime_type():
    with pytest.raises(UnsupportedFormatError):
        await DocumentTextExtractor().extract(b"data", "image/png")


async def test_corrupt_pdf_raises_extraction_error():
    with pytest.raises(ExtractionError) as exc:
        await DocumentTextExtractor().extract(b"not a pdf", PDF_MIME)

    assert exc.value.error_code == ErrorCode.EXTRACTION_FAILED


async def test_blank_file_has_no_text():
    with pytest.raises(ExtractionError) as exc:
        await DocumentTextExtractor().extract(b"  \n ", "text/markdown")

    assert exc.value.error_code == ErrorCode.NO_TEXT_FOUND


def test_supports():
    extractor = DocumentTextExtractor()

    assert extractor.supports(PDF_MIME)
    assert extractor.supports("text/markdown")
    assert not extractor.supports("application/msword")
