"""Text helpers including the word-aware sliding window."""

from __future__ import annotations

from typing import Iterable, Iterator


def iter_windows(text: str, *, max_chars: int = 700, overlap: int = 200) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` offsets of overlapping windows over ``text``.

    A window that stops short of the end of the text is pulled back to the
    last space after its start, so words are not cut in half. The next window
    starts ``max_chars - overlap`` characters later, but never beyond the end
    of the previous window.
    """
    if max_chars <= overlap or overlap < 0:
        raise ValueError("max_chars must be greater than overlap and overlap must be >= 0")

    length = len(text)
    step = max_chars - overlap
    start = 0
    while start < length:
        end = min(start + max_chars, length)
        if end < length:
            last_space = text.rfind(" ", start + 1, end + 1)
            if last_space != -1:
                end = last_space
        yield start, end
        if end >= length:
            break
        start = min(start + step, end)


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())


def split_lines(text: str) -> list[str]:
    """Split on ``\\r?\\n`` keeping positions, so line ``i`` stays line ``i``."""
    return text.replace("\r\n", "\n").split("\n")
