"""Remote embedding client for a text-embeddings server."""

from __future__ import annotations

import logging

import httpx
import numpy as np

from docingest.errors import EmbeddingRequestError

LOGGER = logging.getLogger(__name__)

DEFAULT_DIMENSION = 384


class HttpEmbeddingClient:
    """Sync client posting ``{"inputs": text}`` to ``<base_url>/embed``.

    The server answers with a list holding one vector per input.
    """

    def __init__(
        self,
        base_url: str,
        *,
        dimension: int = DEFAULT_DIMENSION,
        timeout_sec: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("embedding base URL is not configured")
        self._dimension = int(dimension)
        self._client = httpx.Client(timeout=timeout_sec, transport=transport)

    @property
    def dimension(self) -> int:
        return self._dimension

    def close(self) -> None:
        self._client.close()

    def embed_query(self, text: str) -> np.ndarray:
        url = f"{self.base_url}/embed"
        try:
            resp = self._client.post(url, json={"inputs": text})
        except httpx.HTTPError as exc:
            raise EmbeddingRequestError(f"Embedding request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise EmbeddingRequestError(
                f"Embedding service returned status={resp.status_code}, body={resp.text[:500]}"
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise EmbeddingRequestError("Embedding response is not valid JSON") from exc

        if not isinstance(body, list) or not body or not isinstance(body[0], list):
            raise EmbeddingRequestError("Embedding response is not a list of vectors")

        vector = np.asarray(body[0], dtype="float32")
        if vector.shape != (self._dimension,):
            raise EmbeddingRequestError(
                f"Embedding dimension mismatch: expected={self._dimension}, got={vector.shape[0]}"
            )
        LOGGER.debug("Received embedding of size %s for %s characters", vector.shape[0], len(text))
        return vector
