"""Error taxonomy for extraction, embedding and indexing."""

from __future__ import annotations


class IngestionError(RuntimeError):
    """Base class for failures raised while ingesting a document."""


class UnsupportedFormatError(IngestionError):
    """Raised when a content type has no matching extractor."""

    def __init__(self, content_type: str | None, filename: str | None = None) -> None:
        self.content_type = content_type
        self.filename = filename
        target = f" ({filename})" if filename else ""
        super().__init__(f"Unsupported content type: {content_type!r}{target}")


class DocumentParseError(IngestionError):
    """Raised when a document container cannot be opened or parsed."""

    def __init__(self, filename: str, cause: BaseException | str) -> None:
        self.filename = filename
        self.cause = cause
        super().__init__(f"Failed to parse {filename}: {cause}")


class EmbeddingRequestError(IngestionError):
    """Raised when the embedding collaborator fails for a chunk."""


class IndexInsertError(IngestionError):
    """Raised when a row cannot be written to the vector index."""


class CompensatingDeleteError(IngestionError):
    """Raised when rows of a failed document cannot be removed."""
