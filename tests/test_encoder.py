"""Tests for the local embedding model wrapper."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np

from docingest.config import AppConfig
from docingest.embedding import create_embedder
from docingest.embedding.client import HttpEmbeddingClient
from docingest.embedding.encoder import DEFAULT_MODEL, EmbeddingConfig, EmbeddingModel


def _fake_model(dimension: int = 3) -> MagicMock:
    model = MagicMock()
    model.get_sentence_embedding_dimension.return_value = dimension
    model.encode.side_effect = lambda sentences, **kwargs: np.ones((len(sentences), dimension), dtype="float64")
    return model


class TestEmbeddingModel:
    """Test the SentenceTransformer wrapper without loading weights."""

    @patch("docingest.embedding.encoder.SentenceTransformer")
    def test_loads_configured_model(self, mock_st) -> None:
        mock_st.return_value = _fake_model()

        model = EmbeddingModel(EmbeddingConfig(model_name="some/model", device="cpu"))

        mock_st.assert_called_once_with("some/model", device="cpu")
        assert model.dimension == 3

    @patch("docingest.embedding.encoder.SentenceTransformer")
    def test_embed_returns_float32(self, mock_st) -> None:
        fake = mock_st.return_value = _fake_model()

        embeddings = EmbeddingModel().embed(["a", "b"])

        assert embeddings.shape == (2, 3)
        assert embeddings.dtype == np.float32
        kwargs = fake.encode.call_args.kwargs
        assert kwargs["batch_size"] == 16
        assert kwargs["normalize_embeddings"] is True

    @patch("docingest.embedding.encoder.SentenceTransformer")
    def test_embed_query(self, mock_st) -> None:
        mock_st.return_value = _fake_model(dimension=5)

        vector = EmbeddingModel().embed_query("passage")

        assert vector.shape == (5,)

    @patch("docingest.embedding.encoder.SentenceTransformer")
    def test_close_releases_model(self, mock_st) -> None:
        mock_st.return_value = _fake_model()
        model = EmbeddingModel()

        model.close()

        assert model._model is None


class TestCreateEmbedder:
    @patch("docingest.embedding.encoder.SentenceTransformer")
    def test_local_by_default(self, mock_st) -> None:
        mock_st.return_value = _fake_model()

        embedder = create_embedder(AppConfig())

        assert isinstance(embedder, EmbeddingModel)
        assert mock_st.call_args.args[0] == DEFAULT_MODEL

    def test_remote_when_url_set(self) -> None:
        embedder = create_embedder(
            AppConfig(embedding_url="http://localhost:8080", embedding_dimension=768)
        )

        assert isinstance(embedder, HttpEmbeddingClient)
        assert embedder.dimension == 768
        embedder.close()
