"""Shared fixtures for docingest tests."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from docingest.index.storage import SQLiteVectorStore

DIMENSION = 4


class FakeEmbedder:
    """Deterministic embedder: vectors depend only on letter counts."""

    dimension = DIMENSION

    def __init__(self, fail_on: int | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def embed_query(self, text: str) -> np.ndarray:
        with self._lock:
            self.calls.append(text)
            call = len(self.calls)
        if self.fail_on is not None and call == self.fail_on:
            raise RuntimeError("embedding service unavailable")
        lowered = text.lower()
        vector = np.array(
            [lowered.count("a") + 1, lowered.count("e") + 1, lowered.count("o") + 1, len(text)],
            dtype="float32",
        )
        return vector / np.linalg.norm(vector)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store(tmp_path):
    """Temporary vector store."""
    store = SQLiteVectorStore(tmp_path / "index.db")
    yield store
    store.close()
