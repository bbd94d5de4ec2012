"""Tests for paged PDF extraction."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import fitz
import pytest

from docingest.errors import DocumentParseError
from docingest.ingestion.pdf_loader import extract_pages, iter_page_texts
from docingest.models import Page


def _make_pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class TestExtractPages:
    """Test extract_pages on real PDFs."""

    def test_one_span_per_page(self) -> None:
        spans = extract_pages(_make_pdf("First page", "Second page"), "two.pdf")

        assert [span.text for span in spans] == ["First page", "Second page"]
        assert [span.coordinate for span in spans] == [Page(1), Page(2)]
        assert [span.order for span in spans] == [0, 1]

    def test_blank_page_is_dropped_but_numbers_are_kept(self) -> None:
        spans = extract_pages(_make_pdf("Intro", "", "Outro"), "gap.pdf")

        assert [span.coordinate for span in spans] == [Page(1), Page(3)]

    def test_empty_document(self) -> None:
        assert extract_pages(_make_pdf(""), "blank.pdf") == []

    def test_invalid_bytes(self) -> None:
        with pytest.raises(DocumentParseError) as exc_info:
            extract_pages(b"not a pdf at all", "broken.pdf")

        assert exc_info.value.filename == "broken.pdf"
        assert "broken.pdf" in str(exc_info.value)


class TestIterPageTexts:
    """Test page iteration with a mocked PyMuPDF."""

    @patch("docingest.ingestion.pdf_loader.fitz")
    def test_closes_document(self, mock_fitz: MagicMock) -> None:
        mock_page = MagicMock()
        mock_page.get_text.return_value = "Page text"
        mock_doc = MagicMock()
        mock_doc.__len__ = MagicMock(return_value=1)
        mock_doc.__getitem__ = MagicMock(return_value=mock_page)
        mock_fitz.open.return_value = mock_doc

        assert list(iter_page_texts(b"%PDF", "a.pdf")) == [(1, "Page text")]
        mock_fitz.open.assert_called_once_with(stream=b"%PDF", filetype="pdf")
        mock_doc.close.assert_called_once()

    @patch("docingest.ingestion.pdf_loader.fitz")
    def test_unreadable_page_falls_back_to_raw_glyphs(self, mock_fitz: MagicMock) -> None:
        raw = {"blocks": [{"lines": [{"spans": [{"chars": [{"c": "h"}, {"c": "i"}]}]}]}]}

        def get_text(mode: str = "text"):
            if mode == "rawdict":
                return raw
            raise RuntimeError("bad content stream")

        mock_page = MagicMock()
        mock_page.get_text.side_effect = get_text
        mock_doc = MagicMock()
        mock_doc.__len__ = MagicMock(return_value=1)
        mock_doc.__getitem__ = MagicMock(return_value=mock_page)
        mock_fitz.open.return_value = mock_doc

        assert list(iter_page_texts(b"%PDF", "a.pdf")) == [(1, "hi\n")]

    @patch("docingest.ingestion.pdf_loader.fitz")
    def test_open_failure(self, mock_fitz: MagicMock) -> None:
        mock_fitz.open.side_effect = RuntimeError("cannot open")

        with pytest.raises(DocumentParseError):
            list(iter_page_texts(b"junk", "junk.pdf"))
