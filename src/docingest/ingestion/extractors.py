"""Dispatch from document kind to its structural extractor."""

from __future__ import annotations

from typing import Callable

from docingest.errors import DocumentParseError
from docingest.ingestion.formats import DocumentFormat, DocumentKind
from docingest.ingestion.pdf_loader import extract_pages
from docingest.ingestion.sheet_loader import extract_cells
from docingest.ingestion.word_loader import extract_doc, extract_docx, extract_text
from docingest.models import ChunkingConfig, LabeledSpan

Extractor = Callable[[bytes, str, DocumentFormat], "list[LabeledSpan]"]


def extract_paged(data: bytes, filename: str, fmt: DocumentFormat) -> list[LabeledSpan]:
    return extract_pages(data, filename)


def extract_paragraphs(data: bytes, filename: str, fmt: DocumentFormat) -> list[LabeledSpan]:
    if fmt is DocumentFormat.DOCX:
        return extract_docx(data, filename)
    if fmt is DocumentFormat.DOC:
        return extract_doc(data, filename)
    if fmt is DocumentFormat.TXT:
        return extract_text(data, filename)
    raise DocumentParseError(filename, f"not a paragraph-based format: {fmt.value}")


EXTRACTORS: dict[DocumentKind, Extractor] = {
    DocumentKind.PAGED: extract_paged,
    DocumentKind.PARAGRAPH: extract_paragraphs,
    DocumentKind.CELL: extract_cells,
}

DEFAULT_CHUNKING: dict[DocumentKind, ChunkingConfig] = {
    DocumentKind.PAGED: ChunkingConfig(max_chunk_size=800, overlap=200),
    DocumentKind.PARAGRAPH: ChunkingConfig(max_chunk_size=700, overlap=200),
    DocumentKind.CELL: ChunkingConfig(max_chunk_size=700, overlap=200),
}


def extract(data: bytes, filename: str, fmt: DocumentFormat) -> list[LabeledSpan]:
    """Run the extractor registered for the format's kind."""
    return EXTRACTORS[fmt.kind](data, filename, fmt)
