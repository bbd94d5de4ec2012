"""Streaming ingestion pipeline: extract, chunk, embed and index one document."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from contextlib import closing
from enum import Enum
from typing import AsyncIterator, BinaryIO, Callable, Mapping, TypeVar

from docingest.embedding.encoder import Embedder
from docingest.errors import (
    CompensatingDeleteError,
    EmbeddingRequestError,
    IndexInsertError,
    UnsupportedFormatError,
)
from docingest.index.storage import SQLiteVectorStore
from docingest.ingestion.chunker import chunk_spans
from docingest.ingestion.events import (
    Completed,
    Error,
    IngestionEvent,
    Progress,
    TotalChunks,
)
from docingest.ingestion.extractors import DEFAULT_CHUNKING, extract
from docingest.ingestion.formats import DocumentFormat, DocumentKind, resolve_format
from docingest.models import Chunk, ChunkingConfig, IndexRow

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_COLLECTION = "docingest_chunks"


class PipelineState(str, Enum):
    INITIALIZED = "initialized"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    INDEXING = "indexing"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.INITIALIZED: frozenset({PipelineState.EXTRACTING}),
    PipelineState.EXTRACTING: frozenset({PipelineState.CHUNKING}),
    PipelineState.CHUNKING: frozenset({PipelineState.EMBEDDING, PipelineState.COMPLETED}),
    PipelineState.EMBEDDING: frozenset({PipelineState.INDEXING}),
    PipelineState.INDEXING: frozenset({PipelineState.EMBEDDING, PipelineState.COMPLETED}),
    PipelineState.COMPLETED: frozenset(),
    PipelineState.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({PipelineState.COMPLETED, PipelineState.FAILED})


class IngestionRun:
    """One document travelling through the pipeline.

    Iterate it asynchronously to drive the work: nothing advances until the
    next event is requested. Closing or cancelling the run before it finishes
    releases the input stream and, once the step already handed to a worker
    has settled, removes any rows written for the document.
    """

    def __init__(
        self,
        pipeline: "IngestionPipeline",
        stream: BinaryIO,
        fmt: DocumentFormat,
        document_id: str,
        document_name: str,
    ) -> None:
        self.pipeline = pipeline
        self.stream = stream
        self.format = fmt
        self.document_id = document_id
        self.document_name = document_name
        self.state = PipelineState.INITIALIZED
        self.total_chunks: int | None = None
        self.indexed = 0
        self._pending: Future | None = None
        self._events = self._generate()

    def __aiter__(self) -> AsyncIterator[IngestionEvent]:
        return self._events

    async def aclose(self) -> None:
        await self._events.aclose()
        if self._pending is None:
            # closed before the stream was handed to a worker
            self.stream.close()

    def _transition(self, state: PipelineState) -> None:
        if state is PipelineState.FAILED:
            if self.state in TERMINAL_STATES:
                raise RuntimeError(f"Cannot fail a run in state {self.state.value}")
        elif state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid transition {self.state.value} -> {state.value}")
        LOGGER.debug("%s: %s -> %s", self.document_name, self.state.value, state.value)
        self.state = state

    async def _run_step(self, fn: Callable[..., T], *args) -> T:
        """Run a blocking step on the pipeline's pool and remember it until it settles."""
        future = self.pipeline.executor.submit(fn, *args)
        self._pending = future
        return await asyncio.wrap_future(future)

    def _read_and_chunk_sync(self) -> list[Chunk]:
        with closing(self.stream) as stream:
            data = stream.read()
        spans = extract(data, self.document_name, self.format)
        if self.state is PipelineState.FAILED:
            LOGGER.debug("Skipping chunking of abandoned document %s", self.document_name)
            return []
        self._transition(PipelineState.CHUNKING)
        return chunk_spans(spans, self.pipeline.chunking_for(self.format.kind))

    def _embed_sync(self, chunk: Chunk, index: int):
        LOGGER.debug(
            "Sending chunk %s (size: %s characters) for embedding from %s",
            index,
            len(chunk.content),
            self.document_name,
        )
        try:
            return self.pipeline.embedder.embed_query(chunk.content)
        except EmbeddingRequestError:
            raise
        except Exception as exc:
            raise EmbeddingRequestError(f"Embedding failed for chunk {index}: {exc}") from exc

    def _insert_sync(self, chunk: Chunk, index: int, vector) -> None:
        row = IndexRow(
            document_id=self.document_id,
            chunk_text=chunk.content,
            document_name=self.document_name,
            structural_label=chunk.label,
            embedding=vector,
        )
        try:
            self.pipeline.store.insert(self.pipeline.collection, [row])
        except IndexInsertError:
            raise
        except Exception as exc:
            raise IndexInsertError(f"Index insert failed for chunk {index}: {exc}") from exc

    def _compensate(self) -> None:
        """Remove every row of this document; failures are logged only."""
        try:
            deleted = self.pipeline.store.delete_where(self.pipeline.collection, self.document_id)
        except Exception as exc:
            error = CompensatingDeleteError(
                f"Failed to remove rows of {self.document_id}: {exc}"
            )
            LOGGER.error("%s", error, exc_info=exc)
            return
        LOGGER.info("Removed %s rows of %s after failure", deleted, self.document_name)

    def _compensate_when_settled(self) -> Future:
        """Schedule the compensating delete after the in-flight step finishes.

        The returned future resolves once the delete has run. Both the wait
        and the delete happen on worker threads.
        """
        settled: Future = Future()

        def _run(_: Future | None = None) -> None:
            try:
                self._compensate()
            finally:
                settled.set_result(None)

        pending = self._pending
        if pending is not None:
            pending.cancel()
        if pending is not None and not pending.done():
            pending.add_done_callback(_run)
        else:
            self.pipeline.executor.submit(_run)
        return settled

    async def _generate(self) -> AsyncIterator[IngestionEvent]:
        pipeline = self.pipeline
        try:
            try:
                self._transition(PipelineState.EXTRACTING)
                await asyncio.to_thread(
                    pipeline.store.ensure_collection, pipeline.collection, pipeline.embedder.dimension
                )
                if pipeline.replace_existing:
                    removed = await asyncio.to_thread(
                        pipeline.store.delete_where, pipeline.collection, self.document_id
                    )
                    LOGGER.info("Replaced %s existing rows of %s", removed, self.document_id)
                chunks = await self._run_step(self._read_and_chunk_sync)
            except asyncio.CancelledError:
                self._transition(PipelineState.FAILED)
                LOGGER.warning("Ingestion of %s cancelled during extraction", self.document_name)
                raise
            except Exception as exc:
                self._transition(PipelineState.FAILED)
                LOGGER.error("Failed to process document '%s': %s", self.document_name, exc, exc_info=exc)
                yield Error(str(exc))
                return

            total = self.total_chunks = len(chunks)
            LOGGER.info("Extracted and split into %s chunks from document: %s", total, self.document_name)

            try:
                yield TotalChunks(total, self.document_name)
                for index, chunk in enumerate(chunks, start=1):
                    self._transition(PipelineState.EMBEDDING)
                    vector = await self._run_step(self._embed_sync, chunk, index)
                    self._transition(PipelineState.INDEXING)
                    await self._run_step(self._insert_sync, chunk, index, vector)
                    self.indexed += 1
                    LOGGER.debug("Inserted chunk %s of %s for %s", index, total, self.document_name)
                    yield Progress(index, total, self.document_name)
            except (GeneratorExit, asyncio.CancelledError):
                if self.state not in TERMINAL_STATES:
                    self._transition(PipelineState.FAILED)
                    LOGGER.warning("Ingestion of %s abandoned after %s chunks", self.document_name, self.indexed)
                    settled = self._compensate_when_settled()
                    await asyncio.shield(asyncio.wrap_future(settled))
                raise
            except Exception as exc:
                self._transition(PipelineState.FAILED)
                LOGGER.error("Failed to process document '%s': %s", self.document_name, exc, exc_info=exc)
                await self._run_step(self._compensate)
                yield Error(str(exc))
                return

            self._transition(PipelineState.COMPLETED)
            yield Completed(self.document_name)
        finally:
            pending = self._pending
            # a worker still reading owns the stream and closes it itself
            if pending is None or pending.cancel() or pending.done():
                self.stream.close()


class IngestionPipeline:
    """Drives documents through extraction, chunking, embedding and indexing.

    Extraction, embedding and indexing run on a dedicated thread pool so that
    parsing large files never blocks the event loop serving other uploads.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: SQLiteVectorStore,
        *,
        collection: str = DEFAULT_COLLECTION,
        chunking: Mapping[DocumentKind, ChunkingConfig] | None = None,
        executor: Executor | None = None,
        workers: int = 4,
        replace_existing: bool = False,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.collection = collection
        self.chunking = {**DEFAULT_CHUNKING, **(chunking or {})}
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="docingest-worker"
        )
        self.replace_existing = replace_existing

    def chunking_for(self, kind: DocumentKind) -> ChunkingConfig:
        return self.chunking[kind]

    def ingest(
        self,
        stream: BinaryIO,
        document_id: str,
        document_name: str,
        content_type: str | None,
    ) -> IngestionRun:
        """Start ingesting ``stream``.

        Raises ``UnsupportedFormatError`` right away, after closing the stream,
        when the content type has no extractor.
        """
        try:
            fmt = resolve_format(content_type, document_name)
        except UnsupportedFormatError:
            stream.close()
            LOGGER.warning("Rejected %s with content type %s", document_name, content_type)
            raise
        return IngestionRun(self, stream, fmt, document_id, document_name)

    def close(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=False)
