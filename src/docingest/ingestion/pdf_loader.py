"""Paged extraction for PDF documents.

Uses PyMuPDF (fitz) for fast PDF text extraction.
"""

from __future__ import annotations

import logging
from typing import Iterator

import fitz  # PyMuPDF

from docingest.errors import DocumentParseError
from docingest.models import LabeledSpan, Page
from docingest.utils.text import normalize_whitespace

LOGGER = logging.getLogger(__name__)


def iter_page_texts(data: bytes, filename: str) -> Iterator[tuple[int, str]]:
    """Yield ``(page_number, text)`` for every page of a PDF held in memory."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise DocumentParseError(filename, exc) from exc

    try:
        for index in range(len(doc)):
            page = doc[index]
            try:
                text = page.get_text() or ""
            except Exception as exc:
                LOGGER.warning("Failed to read page %s in %s: %s", index + 1, filename, exc)
                text = _raw_page_text(page)
            yield index + 1, text
    finally:
        doc.close()


def _raw_page_text(page) -> str:
    """Concatenate raw glyph characters when layout-aware extraction fails."""
    raw = page.get_text("rawdict")
    chars: list[str] = []
    for block in raw.get("blocks", []):
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                chars.extend(char.get("c", "") for char in span.get("chars", []))
            chars.append("\n")
    return "".join(chars)


def extract_pages(data: bytes, filename: str) -> list[LabeledSpan]:
    """Return one span per page that carries text."""
    spans: list[LabeledSpan] = []
    for number, text in iter_page_texts(data, filename):
        normalized = normalize_whitespace(text.splitlines())
        if not normalized:
            continue
        spans.append(LabeledSpan(text=normalized, coordinate=Page(number), order=len(spans)))
    LOGGER.debug("Extracted %s non-empty pages from %s", len(spans), filename)
    return spans
