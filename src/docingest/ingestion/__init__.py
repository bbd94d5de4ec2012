"""Document extraction, chunking and the ingestion pipeline."""
