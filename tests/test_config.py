"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from docingest.config import DEFAULT_DB_PATH, AppConfig
from docingest.ingestion.formats import DocumentKind
from docingest.models import ChunkingConfig


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()

        assert config.db_path == DEFAULT_DB_PATH
        assert config.embedding_url is None
        assert config.replace_existing is False
        assert config.top_k == 7
        assert config.chunking() == {
            DocumentKind.PAGED: ChunkingConfig(800, 200),
            DocumentKind.PARAGRAPH: ChunkingConfig(700, 200),
            DocumentKind.CELL: ChunkingConfig(700, 200),
        }

    def test_db_path_coerced(self) -> None:
        assert AppConfig(db_path="x/y.db").db_path == Path("x/y.db")

    def test_resolve_db_path(self, tmp_path) -> None:
        relative = AppConfig(db_path=Path("data/index.db"))
        absolute = AppConfig(db_path=tmp_path / "index.db")

        assert relative.resolve_db_path(tmp_path) == tmp_path / "data" / "index.db"
        assert relative.resolve_db_path() == Path("data/index.db")
        assert absolute.resolve_db_path(Path("/elsewhere")) == tmp_path / "index.db"

    def test_overlap_must_fit(self) -> None:
        with pytest.raises(ValueError):
            AppConfig(overlap=900)


class TestFromEnv:
    def test_reads_prefixed_variables(self) -> None:
        config = AppConfig.from_env(
            {
                "DOCINGEST_DB_PATH": "/tmp/custom.db",
                "DOCINGEST_EMBEDDING_URL": "http://embed:8080",
                "DOCINGEST_EMBEDDING_TIMEOUT": "2.5",
                "DOCINGEST_WORKERS": "8",
                "DOCINGEST_REPLACE_EXISTING": "yes",
                "UNRELATED": "ignored",
            }
        )

        assert config.db_path == Path("/tmp/custom.db")
        assert config.embedding_url == "http://embed:8080"
        assert config.embedding_timeout == 2.5
        assert config.workers == 8
        assert config.replace_existing is True

    def test_overrides_win_and_none_is_ignored(self) -> None:
        config = AppConfig.from_env({"DOCINGEST_TOP_K": "3"}, top_k=None, model_name="other/model")

        assert config.top_k == 3
        assert config.model_name == "other/model"

    def test_empty_value_ignored(self) -> None:
        assert AppConfig.from_env({"DOCINGEST_WORKERS": ""}).workers == 4

    def test_invalid_value(self) -> None:
        with pytest.raises(ValueError, match="DOCINGEST_WORKERS"):
            AppConfig.from_env({"DOCINGEST_WORKERS": "many"})
