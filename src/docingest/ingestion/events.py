"""Progress events emitted while a document is ingested."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import ClassVar, Union

COMPLETED_MESSAGE = "Document processing complete."


class _Event:
    __slots__ = ()

    type: ClassVar[str]
    sse_event: ClassVar[str | None] = None

    def to_dict(self) -> dict:
        raise NotImplementedError

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def to_sse(self) -> str:
        """Render one server-sent-event frame."""
        prefix = f"event: {self.sse_event}\n" if self.sse_event else ""
        return f"{prefix}data: {self.to_json()}\n\n"


@dataclass(frozen=True, slots=True)
class TotalChunks(_Event):
    type: ClassVar[str] = "TOTAL_CHUNKS"

    count: int
    document_name: str

    def to_dict(self) -> dict:
        return {"type": self.type, "totalChunks": self.count, "documentName": self.document_name}


@dataclass(frozen=True, slots=True)
class Progress(_Event):
    type: ClassVar[str] = "PROGRESS"

    chunk_index: int
    total_chunks: int
    document_name: str

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "chunk": self.chunk_index,
            "totalChunks": self.total_chunks,
            "documentName": self.document_name,
        }


@dataclass(frozen=True, slots=True)
class Completed(_Event):
    type: ClassVar[str] = "COMPLETED"

    document_name: str

    def to_dict(self) -> dict:
        return {"type": self.type, "documentName": self.document_name, "message": COMPLETED_MESSAGE}


@dataclass(frozen=True, slots=True)
class Error(_Event):
    type: ClassVar[str] = "ERROR"
    sse_event: ClassVar[str | None] = "error"

    message: str

    def to_dict(self) -> dict:
        return {"type": self.type, "message": self.message}


IngestionEvent = Union[TotalChunks, Progress, Completed, Error]
