"""Supported document formats and content-type resolution."""

from __future__ import annotations

import mimetypes
from enum import Enum
from pathlib import Path

from docingest.errors import UnsupportedFormatError


class DocumentKind(str, Enum):
    """Structural family of a document; selects the extractor."""

    PAGED = "paged"
    PARAGRAPH = "paragraph"
    CELL = "cell"


class DocumentFormat(str, Enum):
    PDF = "pdf"
    DOC = "doc"
    DOCX = "docx"
    TXT = "txt"
    XLS = "xls"
    XLSX = "xlsx"
    XLSM = "xlsm"
    XLSB = "xlsb"

    @property
    def kind(self) -> DocumentKind:
        return _KINDS[self]


_KINDS = {
    DocumentFormat.PDF: DocumentKind.PAGED,
    DocumentFormat.DOC: DocumentKind.PARAGRAPH,
    DocumentFormat.DOCX: DocumentKind.PARAGRAPH,
    DocumentFormat.TXT: DocumentKind.PARAGRAPH,
    DocumentFormat.XLS: DocumentKind.CELL,
    DocumentFormat.XLSX: DocumentKind.CELL,
    DocumentFormat.XLSM: DocumentKind.CELL,
    DocumentFormat.XLSB: DocumentKind.CELL,
}

MIME_TYPES: dict[str, DocumentFormat] = {
    "application/pdf": DocumentFormat.PDF,
    "application/msword": DocumentFormat.DOC,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
    "application/vnd.ms-excel": DocumentFormat.XLS,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": DocumentFormat.XLSX,
    "application/vnd.ms-excel.sheet.macroEnabled.12": DocumentFormat.XLSM,
    "application/vnd.ms-excel.sheet.binary.macroEnabled.12": DocumentFormat.XLSB,
    "text/plain": DocumentFormat.TXT,
}

def resolve_format(content_type: str | None, filename: str = "") -> DocumentFormat:
    """Return the document format for a declared content type.

    The content type decides the family. The filename suffix only picks the
    sub-format inside it, e.g. a ``.xlsx`` upload declared as
    ``application/vnd.ms-excel`` is still read as a modern workbook.
    """
    declared = (content_type or "").split(";", 1)[0].strip().lower()
    fmt = MIME_TYPES.get(declared)
    if fmt is None:
        raise UnsupportedFormatError(content_type, filename or None)

    suffix = Path(filename).suffix.lower().lstrip(".")
    try:
        by_suffix = DocumentFormat(suffix)
    except ValueError:
        return fmt
    if fmt is DocumentFormat.TXT or by_suffix is DocumentFormat.TXT:
        return fmt
    return by_suffix if by_suffix.kind is fmt.kind else fmt


def guess_content_type(filename: str) -> str | None:
    """Guess a supported MIME type from a filename."""
    suffix = Path(filename).suffix.lower().lstrip(".")
    for mime, fmt in MIME_TYPES.items():
        if fmt.value == suffix:
            return mime
    guessed, _ = mimetypes.guess_type(filename)
    return guessed
