"""Embedding backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docingest.embedding.client import HttpEmbeddingClient
from docingest.embedding.encoder import Embedder, EmbeddingConfig, EmbeddingModel

if TYPE_CHECKING:
    from docingest.config import AppConfig


def create_embedder(config: "AppConfig") -> Embedder:
    """Remote client when ``embedding_url`` is set, local model otherwise."""
    if config.embedding_url:
        return HttpEmbeddingClient(
            config.embedding_url,
            dimension=config.embedding_dimension,
            timeout_sec=config.embedding_timeout,
        )
    return EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
