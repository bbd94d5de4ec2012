"""SQLite vector store keyed by collection and document identifier."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

import numpy as np

from docingest.errors import IndexInsertError
from docingest.models import IndexRow

LOGGER = logging.getLogger(__name__)

DEFAULT_TOP_K = 7
OUTPUT_FIELDS = ("document_id", "chunk_text", "document_name", "structural_label")


class SQLiteVectorStore:
    """Persistence layer for chunk embeddings with cosine search.

    One connection is shared between threads; every statement runs under a
    lock so concurrent pipelines can use the same store.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    name TEXT PRIMARY KEY,
                    dimension INTEGER NOT NULL,
                    metric TEXT NOT NULL DEFAULT 'cosine',
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY,
                    collection TEXT NOT NULL,
                    document_id TEXT NOT NULL,
                    document_name TEXT NOT NULL,
                    chunk_text TEXT NOT NULL,
                    structural_label TEXT NOT NULL,
                    embedding BLOB NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(collection) REFERENCES collections(name) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_chunks_collection_document
                    ON chunks(collection, document_id)
                """
            )

    def _dimension(self, collection: str) -> int | None:
        row = self._conn.execute(
            "SELECT dimension FROM collections WHERE name = ?", (collection,)
        ).fetchone()
        return None if row is None else int(row["dimension"])

    def has_collection(self, name: str) -> bool:
        with self._lock:
            return self._dimension(name) is not None

    def ensure_collection(self, name: str, dimension: int) -> None:
        """Create the collection if absent; safe to call from many threads."""
        with self.transaction() as conn:
            created = conn.execute(
                "INSERT OR IGNORE INTO collections(name, dimension) VALUES (?, ?)",
                (name, int(dimension)),
            ).rowcount
            existing = self._dimension(name)
        if created:
            LOGGER.info("Created collection %s (dimension %s)", name, dimension)
        if existing != int(dimension):
            raise ValueError(
                f"Collection {name} has dimension {existing}, requested {dimension}"
            )

    def insert(self, collection: str, rows: Iterable[IndexRow]) -> int:
        """Insert rows and return how many were written."""
        rows = list(rows)
        try:
            with self.transaction() as conn:
                dimension = self._dimension(collection)
                if dimension is None:
                    raise IndexInsertError(f"Unknown collection: {collection}")
                for row in rows:
                    vector = np.asarray(row.embedding, dtype="float32").reshape(-1)
                    if vector.shape[0] != dimension:
                        raise ValueError(
                            f"Embedding dimension {vector.shape[0]} does not match {dimension}"
                        )
                    conn.execute(
                        """
                        INSERT INTO chunks(
                            collection, document_id, document_name,
                            chunk_text, structural_label, embedding
                        )
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            collection,
                            row.document_id,
                            row.document_name,
                            row.chunk_text,
                            row.structural_label,
                            sqlite3.Binary(vector.tobytes()),
                        ),
                    )
        except sqlite3.Error as exc:
            raise IndexInsertError(f"Failed to insert into {collection}: {exc}") from exc
        return len(rows)

    def search(
        self,
        collection: str,
        embedding: np.ndarray,
        *,
        top_k: int = DEFAULT_TOP_K,
        output_fields: Sequence[str] | None = None,
    ) -> List[dict]:
        """Return the ``top_k`` rows ranked by cosine similarity."""
        fields = tuple(output_fields or OUTPUT_FIELDS)
        unknown = set(fields) - set(OUTPUT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown output fields: {sorted(unknown)}")

        query = np.asarray(embedding, dtype="float32").reshape(-1)
        with self._lock:
            dimension = self._dimension(collection)
            if dimension is None:
                return []
            if query.shape[0] != dimension:
                raise ValueError(f"Query dimension {query.shape[0]} does not match {dimension}")
            rows = self._conn.execute(
                f"SELECT id, {', '.join(fields)}, embedding FROM chunks WHERE collection = ?",
                (collection,),
            ).fetchall()

        if not rows or top_k <= 0:
            return []

        embeddings = np.vstack([np.frombuffer(row["embedding"], dtype="float32") for row in rows])
        norms = np.linalg.norm(embeddings, axis=1) * max(float(np.linalg.norm(query)), 1e-12)
        scores = (embeddings @ query) / np.maximum(norms, 1e-12)

        if top_k < len(scores):
            top_indices = np.argpartition(scores, -top_k)[-top_k:]
            top_indices = top_indices[np.argsort(scores[top_indices])[::-1]]
        else:
            top_indices = np.argsort(scores)[::-1]

        results: List[dict] = []
        for idx in top_indices:
            row = rows[idx]
            result = {field: row[field] for field in fields}
            result["id"] = row["id"]
            result["score"] = float(scores[idx])
            results.append(result)
        return results

    def delete_where(self, collection: str, document_id: str) -> int:
        """Delete every row of ``document_id`` and return the number removed."""
        with self.transaction() as conn:
            deleted = conn.execute(
                "DELETE FROM chunks WHERE collection = ? AND document_id = ?",
                (collection, document_id),
            ).rowcount
        LOGGER.debug("Deleted %s rows of %s from %s", deleted, document_id, collection)
        return deleted

    def count(self, collection: str, document_id: str | None = None) -> int:
        with self._lock:
            if document_id is None:
                row = self._conn.execute(
                    "SELECT COUNT(*) AS n FROM chunks WHERE collection = ?", (collection,)
                ).fetchone()
            else:
                row = self._conn.execute(
                    "SELECT COUNT(*) AS n FROM chunks WHERE collection = ? AND document_id = ?",
                    (collection, document_id),
                ).fetchone()
        return int(row["n"])

    def list_documents(self, collection: str) -> List[dict]:
        """Indexed documents with their chunk counts, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT
                    document_id,
                    MIN(document_name) AS document_name,
                    COUNT(*) AS chunks,
                    MIN(created_at) AS created_at
                FROM chunks
                WHERE collection = ?
                GROUP BY document_id
                ORDER BY MIN(id)
                """,
                (collection,),
            ).fetchall()
        return [dict(row) for row in rows]
