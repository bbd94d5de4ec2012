"""FastAPI application exposing upload, search and document management."""

from __future__ import annotations

import asyncio
import io
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, AsyncIterator, List

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from docingest.config import AppConfig
from docingest.embedding import Embedder, create_embedder
from docingest.errors import UnsupportedFormatError
from docingest.index.search import Searcher, SearchResult
from docingest.index.storage import SQLiteVectorStore
from docingest.ingestion.pipeline import IngestionPipeline, IngestionRun

LOGGER = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


class SearchPayload(BaseModel):
    query: str
    top_k: int | None = None


class Services:
    """Lazily built store, embedder and pipeline shared by all requests."""

    def __init__(self, config: AppConfig, *, embedder: Embedder | None = None) -> None:
        self.config = config
        self._lock = threading.Lock()
        self._store: SQLiteVectorStore | None = None
        self._embedder: Embedder | None = embedder
        self._owns_embedder = embedder is None
        self._pipeline: IngestionPipeline | None = None

    @property
    def store(self) -> SQLiteVectorStore:
        with self._lock:
            if self._store is None:
                self._store = SQLiteVectorStore(self.config.resolve_db_path(Path.cwd()))
            return self._store

    @property
    def embedder(self) -> Embedder:
        with self._lock:
            if self._embedder is None:
                self._embedder = create_embedder(self.config)
            return self._embedder

    @property
    def pipeline(self) -> IngestionPipeline:
        store, embedder = self.store, self.embedder
        with self._lock:
            if self._pipeline is None:
                self._pipeline = IngestionPipeline(
                    embedder,
                    store,
                    collection=self.config.collection,
                    chunking=self.config.chunking(),
                    workers=self.config.workers,
                    replace_existing=self.config.replace_existing,
                )
            return self._pipeline

    def close(self) -> None:
        with self._lock:
            if self._pipeline is not None:
                self._pipeline.close()
            if self._store is not None:
                self._store.close()
            if self._owns_embedder and self._embedder is not None:
                self._embedder.close()
                self._embedder = None
            self._pipeline = self._store = None


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_config(services: Services = Depends(get_services)) -> AppConfig:
    return services.config


def get_store(services: Services = Depends(get_services)) -> SQLiteVectorStore:
    return services.store


def get_pipeline(services: Services = Depends(get_services)) -> IngestionPipeline:
    return services.pipeline


def get_searcher(services: Services = Depends(get_services)) -> Searcher:
    return Searcher(services.embedder, services.store, collection=services.config.collection)


async def _event_stream(run: IngestionRun) -> AsyncIterator[str]:
    try:
        async for event in run:
            yield event.to_sse()
    finally:
        await run.aclose()


def create_app(config: AppConfig | None = None, *, embedder: Embedder | None = None) -> FastAPI:
    app = FastAPI(title="docingest", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.services = Services(config or AppConfig.from_env(), embedder=embedder)

    @app.on_event("startup")
    async def startup_event() -> None:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        app.state.services.close()

    @app.post("/files/upload-sse")
    async def upload_sse(
        file: UploadFile = File(...),
        pipeline: IngestionPipeline = Depends(get_pipeline),
    ) -> StreamingResponse:
        if not file.filename:
            raise HTTPException(status_code=400, detail="Cannot upload empty file or file without a name.")

        data = await file.read()
        document_id = str(uuid.uuid4())
        try:
            run = pipeline.ingest(io.BytesIO(data), document_id, file.filename, file.content_type)
        except UnsupportedFormatError as exc:
            LOGGER.warning("Unsupported upload %s: %s", file.filename, exc)
            raise HTTPException(
                status_code=415,
                detail="Unsupported file type. Only PDF, Word, Excel, and .txt files are allowed.",
            ) from exc

        LOGGER.info("Accepted upload %s as %s", file.filename, document_id)
        return StreamingResponse(
            _event_stream(run),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, "X-Document-Id": document_id},
        )

    @app.post("/search")
    async def search_documents(
        payload: SearchPayload,
        searcher: Searcher = Depends(get_searcher),
        config: AppConfig = Depends(get_config),
    ) -> dict[str, List[SearchResult]]:
        query = payload.query.strip()
        if not query:
            raise HTTPException(status_code=400, detail="Empty query")

        top_k = max(1, min(payload.top_k or config.top_k, 50))
        results = await asyncio.to_thread(searcher.search, query, top_k=top_k)
        return {"results": results}

    @app.get("/documents")
    async def list_documents(
        store: SQLiteVectorStore = Depends(get_store),
        config: AppConfig = Depends(get_config),
    ) -> dict[str, Any]:
        """List all indexed documents."""
        documents = await asyncio.to_thread(store.list_documents, config.collection)
        return {"documents": documents}

    @app.delete("/documents/{document_id}")
    async def delete_document(
        document_id: str,
        store: SQLiteVectorStore = Depends(get_store),
        config: AppConfig = Depends(get_config),
    ) -> dict[str, Any]:
        """Delete every chunk of a document."""
        deleted = await asyncio.to_thread(store.delete_where, config.collection, document_id)
        if not deleted:
            raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
        return {"status": "ok", "document_id": document_id, "deleted_chunks": deleted}

    return app


app = create_app()
