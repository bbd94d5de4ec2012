"""Paragraph-based extraction for Word documents and plain text."""

from __future__ import annotations

import io
import logging
import subprocess
import tempfile
from typing import Iterable, Iterator

from docx import Document as DocxDocument

from docingest.errors import DocumentParseError
from docingest.models import LabeledSpan, Paragraph, TableCell
from docingest.utils.text import split_lines

LOGGER = logging.getLogger(__name__)

ANTIWORD_COMMAND = "antiword"


def _collect(units: Iterable[tuple[str, object]]) -> list[LabeledSpan]:
    spans: list[LabeledSpan] = []
    for text, coordinate in units:
        stripped = text.strip()
        if stripped:
            spans.append(LabeledSpan(text=stripped, coordinate=coordinate, order=len(spans)))
    return spans


def _iter_table_cells(document) -> Iterator[str]:
    """Yield cell text row-major across all tables.

    python-docx repeats a merged cell once per grid column it spans; those
    repeats are emitted only once per row.
    """
    for table in document.tables:
        for row in table.rows:
            seen: set[int] = set()
            for cell in row.cells:
                key = id(cell._tc)
                if key in seen:
                    continue
                seen.add(key)
                yield cell.text


def extract_docx(data: bytes, filename: str) -> list[LabeledSpan]:
    try:
        document = DocxDocument(io.BytesIO(data))
    except Exception as exc:
        raise DocumentParseError(filename, exc) from exc

    units: list[tuple[str, object]] = [
        (paragraph.text, Paragraph(index))
        for index, paragraph in enumerate(document.paragraphs, start=1)
    ]
    units.extend((text, TableCell()) for text in _iter_table_cells(document))
    spans = _collect(units)
    LOGGER.debug("Extracted %s spans from %s", len(spans), filename)
    return spans


def _run_antiword(data: bytes, filename: str) -> str:
    with tempfile.NamedTemporaryFile(suffix=".doc") as src:
        src.write(data)
        src.flush()
        cmd = [ANTIWORD_COMMAND, "-w", "0", src.name]
        LOGGER.debug("Running conversion command: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except FileNotFoundError as exc:
            raise DocumentParseError(filename, f"{ANTIWORD_COMMAND} is not installed") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode(errors="ignore").strip()
            raise DocumentParseError(filename, f"{ANTIWORD_COMMAND} failed: {stderr}") from exc
    return result.stdout.decode("utf-8", errors="replace")


def _line_spans(text: str) -> list[LabeledSpan]:
    return _collect(
        (line, Paragraph(index)) for index, line in enumerate(split_lines(text), start=1)
    )


def extract_doc(data: bytes, filename: str) -> list[LabeledSpan]:
    """Legacy single-stream Word documents; each line is one paragraph."""
    return _line_spans(_run_antiword(data, filename))


def decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def extract_text(data: bytes, filename: str) -> list[LabeledSpan]:
    return _line_spans(decode_text(data))
