"""Tests for CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console
from typer.testing import CliRunner

from conftest import FakeEmbedder
from docingest.cli import _setup_logging, app
from docingest.index.storage import SQLiteVectorStore
from docingest.ingestion.pipeline import DEFAULT_COLLECTION

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console():
    """Keep rich tables on one line so assertions can match cell values."""
    with patch("docingest.cli.console", Console(width=200)):
        yield


@pytest.fixture
def fake_embedder():
    embedder = FakeEmbedder()
    with patch("docingest.cli.create_embedder", return_value=embedder):
        yield embedder


@pytest.fixture
def notes(tmp_path: Path) -> Path:
    path = tmp_path / "notes.txt"
    path.write_text("Quarterly report\nRevenue grew in every region\n", encoding="utf-8")
    return path


def _ingest(notes: Path, db: Path, *extra: str):
    return runner.invoke(app, ["ingest", str(notes), "--db", str(db), "--document-id", "doc-1", *extra])


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("docingest.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        """Normal mode sets INFO level."""
        with patch("docingest.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestIngestCommand:
    """Tests for the ingest command."""

    def test_no_documents_found(self, tmp_path: Path) -> None:
        """Shows warning when nothing supported is found."""
        empty_dir = tmp_path / "empty"
        empty_dir.mkdir()

        result = runner.invoke(app, ["ingest", str(empty_dir), "--db", str(tmp_path / "test.db")])

        assert result.exit_code == 0
        assert "No supported documents found" in result.stdout

    def test_ingest_text_file(self, fake_embedder, notes: Path, tmp_path: Path) -> None:
        """Ingests a document and stores its chunks."""
        db = tmp_path / "test.db"

        result = _ingest(notes, db)

        assert result.exit_code == 0, result.stdout
        assert "Ingested: 1, failed: 0" in result.stdout
        assert fake_embedder.calls
        assert fake_embedder.closed
        store = SQLiteVectorStore(db)
        try:
            assert store.count(DEFAULT_COLLECTION, "doc-1") == len(fake_embedder.calls)
        finally:
            store.close()

    def test_unsupported_content_type(self, fake_embedder, notes: Path, tmp_path: Path) -> None:
        """Counts rejected files as failures."""
        result = _ingest(notes, tmp_path / "test.db", "--content-type", "image/png")

        assert result.exit_code == 1
        assert "Ingested: 0, failed: 1" in result.stdout
        assert fake_embedder.calls == []

    def test_document_id_needs_single_input(self, tmp_path: Path) -> None:
        for name in ["a.txt", "b.txt"]:
            (tmp_path / name).write_text("text", encoding="utf-8")

        result = runner.invoke(
            app, ["ingest", str(tmp_path), "--db", str(tmp_path / "t.db"), "--document-id", "x"]
        )

        assert result.exit_code == 2

    def test_embedding_failure_reports_error(self, notes: Path, tmp_path: Path) -> None:
        with patch("docingest.cli.create_embedder", return_value=FakeEmbedder(fail_on=1)):
            result = _ingest(notes, tmp_path / "test.db")

        assert result.exit_code == 1
        assert "embedding service unavailable" in result.stdout


class TestDocumentsAndDelete:
    def test_documents_without_database(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["documents", "--db", str(tmp_path / "missing.db")])

        assert result.exit_code == 0
        assert "nothing indexed yet" in result.stdout

    def test_documents_lists_ingested(self, fake_embedder, notes: Path, tmp_path: Path) -> None:
        db = tmp_path / "test.db"
        _ingest(notes, db)

        result = runner.invoke(app, ["documents", "--db", str(db)])

        assert result.exit_code == 0
        assert "doc-1" in result.stdout
        assert "notes.txt" in result.stdout

    def test_delete(self, fake_embedder, notes: Path, tmp_path: Path) -> None:
        db = tmp_path / "test.db"
        _ingest(notes, db)
        chunks = len(fake_embedder.calls)

        result = runner.invoke(app, ["delete", "doc-1", "--db", str(db)])

        assert result.exit_code == 0
        assert f"Removed {chunks} chunks of doc-1." in result.stdout

        again = runner.invoke(app, ["delete", "doc-1", "--db", str(db)])
        assert again.exit_code == 1
        assert "No chunks found" in again.stdout


class TestSearchCommand:
    def test_database_missing(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["search", "query", "--db", str(tmp_path / "missing.db")])

        assert result.exit_code == 2

    def test_search_prints_matches(self, fake_embedder, notes: Path, tmp_path: Path) -> None:
        db = tmp_path / "test.db"
        _ingest(notes, db)
        fake_embedder.closed = False

        result = runner.invoke(app, ["search", "revenue", "--db", str(db)])

        assert result.exit_code == 0
        assert "notes.txt" in result.stdout
        assert "P1-2" in result.stdout
        assert fake_embedder.closed

    def test_search_empty_collection(self, fake_embedder, tmp_path: Path) -> None:
        db = tmp_path / "test.db"
        SQLiteVectorStore(db).close()

        result = runner.invoke(app, ["search", "revenue", "--db", str(db)])

        assert result.exit_code == 0
        assert "No matches found" in result.stdout
