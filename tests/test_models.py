"""Tests for data models."""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from docingest.models import Cell, ChunkingConfig, IndexRow, LabeledSpan, Page, Paragraph, TableCell


class TestChunkingConfig:
    """Test ChunkingConfig validation."""

    def test_defaults(self) -> None:
        config = ChunkingConfig()

        assert config.max_chunk_size == 700
        assert config.overlap == 200
        assert config.step == 500

    def test_zero_overlap_allowed(self) -> None:
        assert ChunkingConfig(max_chunk_size=10, overlap=0).step == 10

    @pytest.mark.parametrize("size,overlap", [(200, 200), (100, 300), (100, -1)])
    def test_invalid(self, size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            ChunkingConfig(max_chunk_size=size, overlap=overlap)

    def test_frozen(self) -> None:
        config = ChunkingConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.overlap = 10  # type: ignore[misc]


class TestCoordinates:
    """Coordinates compare by value."""

    def test_equality(self) -> None:
        assert Page(3) == Page(3)
        assert Paragraph(1) != Paragraph(2)
        assert TableCell() == TableCell()
        assert Cell("Data", 2, 3) == Cell("Data", 2, 3)
        assert Cell("Data", 2, 3) != Cell("Summary", 2, 3)

    def test_span_is_immutable(self) -> None:
        span = LabeledSpan(text="hello", coordinate=Page(1), order=0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            span.text = "other"  # type: ignore[misc]


class TestIndexRow:
    def test_fields(self) -> None:
        row = IndexRow(
            document_id="doc-1",
            chunk_text="text",
            document_name="report.pdf",
            structural_label="1-2",
            embedding=np.zeros(4, dtype="float32"),
        )

        assert row.document_id == "doc-1"
        assert row.structural_label == "1-2"
        assert row.embedding.dtype == np.float32
