"""Application configuration defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping

from docingest.embedding.encoder import DEFAULT_MODEL
from docingest.ingestion.formats import DocumentKind
from docingest.ingestion.pipeline import DEFAULT_COLLECTION
from docingest.models import ChunkingConfig

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "DOCINGEST_"
DEFAULT_DB_PATH = Path("data/docingest.db")

_TRUE = {"1", "true", "yes", "on"}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE


@dataclass(slots=True)
class AppConfig:
    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    collection: str = DEFAULT_COLLECTION
    model_name: str = DEFAULT_MODEL
    embedding_url: str | None = None
    embedding_dimension: int = 384
    embedding_timeout: float = 30.0
    paged_chunk_chars: int = 800
    paragraph_chunk_chars: int = 700
    cell_chunk_chars: int = 700
    overlap: int = 200
    workers: int = 4
    replace_existing: bool = False
    top_k: int = 7

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        # validates every size against the overlap
        self.chunking()

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path.is_absolute() or base_dir is None:
            return self.db_path
        return base_dir / self.db_path

    def chunking(self) -> dict[DocumentKind, ChunkingConfig]:
        return {
            DocumentKind.PAGED: ChunkingConfig(self.paged_chunk_chars, self.overlap),
            DocumentKind.PARAGRAPH: ChunkingConfig(self.paragraph_chunk_chars, self.overlap),
            DocumentKind.CELL: ChunkingConfig(self.cell_chunk_chars, self.overlap),
        }

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "AppConfig":
        """Build a config from ``DOCINGEST_*`` variables; explicit overrides win.

        ``None`` overrides are ignored so CLI options can be passed straight through.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for item in fields(cls):
            raw = environ.get(ENV_PREFIX + item.name.upper())
            if raw is None or raw == "":
                continue
            kind = item.type if isinstance(item.type, str) else getattr(item.type, "__name__", "")
            try:
                if kind.startswith("bool"):
                    values[item.name] = _parse_bool(raw)
                elif kind.startswith("int"):
                    values[item.name] = int(raw)
                elif kind.startswith("float"):
                    values[item.name] = float(raw)
                elif kind.startswith("Path"):
                    values[item.name] = Path(raw)
                else:
                    values[item.name] = raw
            except ValueError as exc:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{item.name.upper()}: {raw!r}") from exc
        values.update({key: value for key, value in overrides.items() if value is not None})
        LOGGER.debug("Configuration overrides: %s", sorted(values))
        return cls(**values)
