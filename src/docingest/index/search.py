"""Semantic search interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from docingest.embedding.encoder import Embedder
from docingest.index.storage import DEFAULT_TOP_K, SQLiteVectorStore


@dataclass(slots=True)
class SearchResult:
    document_id: str
    document_name: str
    label: str
    score: float
    text: str
    chunk_id: int


class Searcher:
    """High-level API to query one collection of the vector store."""

    def __init__(self, embedder: Embedder, store: SQLiteVectorStore, *, collection: str) -> None:
        self.embedder = embedder
        self.store = store
        self.collection = collection

    def search(self, query: str, *, top_k: int = DEFAULT_TOP_K) -> List[SearchResult]:
        embedding = self.embedder.embed_query(query)
        rows = self.store.search(self.collection, embedding, top_k=top_k)
        return [
            SearchResult(
                document_id=row["document_id"],
                document_name=row["document_name"],
                label=row["structural_label"],
                score=float(row["score"]),
                text=row["chunk_text"],
                chunk_id=int(row["id"]),
            )
            for row in rows
        ]
