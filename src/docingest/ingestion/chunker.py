"""Sliding-window chunking of labeled spans with provenance labels."""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from typing import Iterator, Sequence

from docingest.models import (
    Cell,
    Chunk,
    ChunkingConfig,
    Coordinate,
    LabeledSpan,
    Page,
    Paragraph,
    TableCell,
)
from docingest.utils.text import iter_windows

LOGGER = logging.getLogger(__name__)

SPAN_SEPARATOR = "\n\n"
NO_LABEL = "N/A"


def build_buffer(spans: Sequence[LabeledSpan]) -> tuple[str, list[int]]:
    """Join span texts and return the buffer with each span's start offset."""
    offsets: list[int] = []
    parts: list[str] = []
    position = 0
    for index, span in enumerate(spans):
        if index:
            parts.append(SPAN_SEPARATOR)
            position += len(SPAN_SEPARATOR)
        offsets.append(position)
        parts.append(span.text)
        position += len(span.text)
    return "".join(parts), offsets


def _paragraph_part(coordinate: Paragraph | TableCell) -> str:
    if isinstance(coordinate, TableCell):
        return "Table"
    return f"P{coordinate.index}"


def _single(coordinate: Coordinate) -> str:
    if isinstance(coordinate, Page):
        return str(coordinate.number)
    if isinstance(coordinate, (Paragraph, TableCell)):
        return _paragraph_part(coordinate)
    return f"{coordinate.sheet}[R{coordinate.row}C{coordinate.column}]"


def render_label(first: Coordinate, last: Coordinate) -> str:
    """Summarize the first and last coordinate a chunk touches."""
    if first == last:
        return _single(first)

    if isinstance(first, Page) and isinstance(last, Page):
        return f"{first.number}-{last.number}"

    if isinstance(first, Paragraph) and isinstance(last, Paragraph):
        return f"P{first.index}-{last.index}"

    if isinstance(first, (Paragraph, TableCell)) and isinstance(last, (Paragraph, TableCell)):
        return f"{_paragraph_part(first)}-{_paragraph_part(last)}"

    if isinstance(first, Cell) and isinstance(last, Cell):
        if first.sheet != last.sheet:
            return f"{first.sheet}-{last.sheet}[Multi-sheet]"
        return f"{first.sheet}[R{first.row}C{first.column}-R{last.row}C{last.column}]"

    return f"{_single(first)}-{_single(last)}"


def label_for_range(
    offsets: Sequence[int], coordinates: Sequence[Coordinate], start: int, end: int
) -> str:
    """Label for the window ``[start, end)``.

    Span ``i`` owns ``[offsets[i], offsets[i + 1])``; the last span is open-ended.
    """
    if not offsets or end <= start:
        return NO_LABEL
    first = max(bisect_right(offsets, start) - 1, 0)
    last = bisect_left(offsets, end) - 1
    if last < first:
        return NO_LABEL
    return render_label(coordinates[first], coordinates[last])


def iter_chunks(spans: Sequence[LabeledSpan], config: ChunkingConfig) -> Iterator[Chunk]:
    buffer, offsets = build_buffer(spans)
    if not buffer:
        return
    coordinates = [span.coordinate for span in spans]
    for start, end in iter_windows(buffer, max_chars=config.max_chunk_size, overlap=config.overlap):
        content = buffer[start:end].strip()
        if not content:
            continue
        yield Chunk(
            content=content,
            label=label_for_range(offsets, coordinates, start, end),
            start=start,
            end=end,
        )


def chunk_spans(spans: Sequence[LabeledSpan], config: ChunkingConfig | None = None) -> list[Chunk]:
    """Split ordered spans into overlapping, labeled chunks."""
    chunks = list(iter_chunks(spans, config or ChunkingConfig()))
    LOGGER.debug("Built %s chunks from %s spans", len(chunks), len(spans))
    return chunks
