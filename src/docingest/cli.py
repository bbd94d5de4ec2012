"""Command line interface for docingest."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from docingest.config import AppConfig
from docingest.embedding import create_embedder
from docingest.errors import UnsupportedFormatError
from docingest.index.search import Searcher
from docingest.index.storage import SQLiteVectorStore
from docingest.ingestion import events
from docingest.ingestion.formats import guess_content_type
from docingest.ingestion.pipeline import IngestionPipeline
from docingest.utils.files import iter_document_paths


console = Console()
app = typer.Typer(help="docingest - structure-aware document ingestion for retrieval")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _open_store(config: AppConfig) -> SQLiteVectorStore:
    return SQLiteVectorStore(config.resolve_db_path(Path.cwd()))


async def _ingest_one(
    pipeline: IngestionPipeline,
    path: Path,
    document_id: str,
    content_type: str | None,
    progress: Progress,
) -> bool:
    task = progress.add_task(path.name, total=None)
    run = pipeline.ingest(path.open("rb"), document_id, path.name, content_type)
    ok = False
    async for event in run:
        if isinstance(event, events.TotalChunks):
            progress.update(task, total=event.count)
        elif isinstance(event, events.Progress):
            progress.update(task, completed=event.chunk_index)
        elif isinstance(event, events.Completed):
            progress.update(task, completed=run.total_chunks or 0, total=run.total_chunks or 0)
            ok = True
        elif isinstance(event, events.Error):
            progress.console.print(f"[red]{path.name}: {event.message}[/red]")
    return ok


@app.command()
def ingest(
    inputs: List[Path] = typer.Argument(
        ..., help="Documents or directories to ingest.", resolve_path=True
    ),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="Content type for every input (guessed from the suffix otherwise)"
    ),
    document_id: Optional[str] = typer.Option(
        None, "--document-id", help="Document identifier (single input only)"
    ),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(None, help="Sentence-transformer model name"),
    embedding_url: str = typer.Option(None, "--embedding-url", help="Remote embedding server URL"),
    replace: Optional[bool] = typer.Option(
        None, "--replace/--no-replace", help="Remove existing rows of the identifier first"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Extract, chunk, embed and index documents."""
    _setup_logging(verbose)
    paths = list(iter_document_paths(inputs))
    if not paths:
        console.print("[yellow]No supported documents found.[/yellow]")
        return
    if document_id is not None and len(paths) > 1:
        raise typer.BadParameter("--document-id needs exactly one input document")

    config = AppConfig.from_env(
        db_path=db, model_name=model, embedding_url=embedding_url, replace_existing=replace
    )
    store = _open_store(config)
    embedder = create_embedder(config)
    pipeline = IngestionPipeline(
        embedder,
        store,
        collection=config.collection,
        chunking=config.chunking(),
        workers=config.workers,
        replace_existing=config.replace_existing,
    )

    async def _run_all() -> int:
        failed = 0
        with Progress(
            TextColumn("{task.description}"), BarColumn(), MofNCompleteColumn(), console=console
        ) as progress:
            for path in paths:
                try:
                    ok = await _ingest_one(
                        pipeline,
                        path,
                        document_id or str(uuid.uuid4()),
                        content_type or guess_content_type(path.name),
                        progress,
                    )
                except UnsupportedFormatError as exc:
                    progress.console.print(f"[yellow]{exc}[/yellow]")
                    ok = False
                failed += 0 if ok else 1
        return failed

    try:
        failed = asyncio.run(_run_all())
    finally:
        pipeline.close()
        embedder.close()
        store.close()

    console.print(f"Ingested: {len(paths) - failed}, failed: {failed}")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(None, help="Sentence-transformer model name"),
    embedding_url: str = typer.Option(None, "--embedding-url", help="Remote embedding server URL"),
    top_k: int = typer.Option(None, help="Number of results to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Execute a semantic search."""
    _setup_logging(verbose)
    config = AppConfig.from_env(db_path=db, model_name=model, embedding_url=embedding_url, top_k=top_k)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    store = SQLiteVectorStore(resolved_db)
    embedder = create_embedder(config)
    try:
        searcher = Searcher(embedder, store, collection=config.collection)
        results = searcher.search(query, top_k=config.top_k)
    finally:
        embedder.close()
        store.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Location")
    table.add_column("Snippet")

    for result in results:
        snippet = result.text.replace("\n", " ")
        table.add_row(f"{result.score:.4f}", result.document_name, result.label, snippet[:180])

    console.print(table)


@app.command()
def documents(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """List indexed documents."""
    config = AppConfig.from_env(db_path=db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing indexed yet.[/yellow]")
        return

    store = SQLiteVectorStore(resolved_db)
    try:
        rows = store.list_documents(config.collection)
    finally:
        store.close()

    if not rows:
        console.print("[yellow]No documents indexed.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Document")
    table.add_column("Chunks")
    for row in rows:
        table.add_row(row["document_id"], row["document_name"], str(row["chunks"]))
    console.print(table)


@app.command()
def delete(
    document_id: str = typer.Argument(..., help="Identifier of the document to remove"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Remove every indexed chunk of a document."""
    config = AppConfig.from_env(db_path=db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing to delete.[/yellow]")
        return

    store = SQLiteVectorStore(resolved_db)
    try:
        removed = store.delete_where(config.collection, document_id)
    finally:
        store.close()

    if not removed:
        console.print(f"[yellow]No chunks found for {document_id}.[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"Removed {removed} chunks of {document_id}.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Start the HTTP upload and search API."""
    import uvicorn

    from docingest.web.app import create_app

    config = AppConfig.from_env(db_path=db)

    console.print(
        f"Starting web API on http://{host}:{port} (database: {config.resolve_db_path(Path.cwd())})"
    )
    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
