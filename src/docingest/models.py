"""Core docingest data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np


@dataclass(frozen=True, slots=True)
class Page:
    """1-based page number of a paged document."""

    number: int


@dataclass(frozen=True, slots=True)
class Paragraph:
    """1-based body paragraph ordinal of a word-processing document."""

    index: int


@dataclass(frozen=True, slots=True)
class TableCell:
    """Text taken from a table; it carries no paragraph ordinal."""


@dataclass(frozen=True, slots=True)
class Cell:
    """Spreadsheet cell location with 1-based row and column."""

    sheet: str
    row: int
    column: int


Coordinate = Union[Page, Paragraph, TableCell, Cell]


@dataclass(frozen=True, slots=True)
class LabeledSpan:
    """Trimmed, non-empty text of one structural unit in reading order."""

    text: str
    coordinate: Coordinate
    order: int


@dataclass(frozen=True, slots=True)
class ChunkingConfig:
    max_chunk_size: int = 700
    overlap: int = 200

    def __post_init__(self) -> None:
        if self.overlap < 0:
            raise ValueError("overlap must be >= 0")
        if self.max_chunk_size <= self.overlap:
            raise ValueError("max_chunk_size must be greater than overlap")

    @property
    def step(self) -> int:
        return self.max_chunk_size - self.overlap


@dataclass(frozen=True, slots=True)
class Chunk:
    """Passage sent for embedding, with its provenance label.

    ``start`` and ``end`` are the untrimmed window offsets in the concatenated
    document text.
    """

    content: str
    label: str
    start: int
    end: int


@dataclass(slots=True)
class IndexRow:
    """Row written to the vector index for one chunk."""

    document_id: str
    chunk_text: str
    document_name: str
    structural_label: str
    embedding: np.ndarray
