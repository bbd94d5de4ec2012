"""Structure-aware document chunking and streaming ingestion."""

__version__ = "0.1.0"
