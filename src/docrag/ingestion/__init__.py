"""
Ingestion — document reading, chunking, embedding, and reconciliation.

This module converts the documents of a source (a directory of PDFs, …)
into embedded chunks stored in a vector database, and keeps that store in
sync as documents are added, edited, or removed.

Public surface
--------------
- :class:`DataIngestor` — reconcile a store with a :class:`SourceProvider`.
- :class:`DirectorySource` — the default file-system source.
- :class:`Chunker`, :class:`ChunkingPolicy` — passage splitting.
- :class:`EmbeddingClient` — embedding backend interface.
- :func:`read_pages` — lazy ``(page_number, text)`` document reader.
"""

from docrag.ingestion.chunker import Chunker, ChunkingPolicy
from docrag.ingestion.embedder import EmbeddingClient, HuggingFaceEmbeddingClient
from docrag.ingestion.ingestor import DataIngestor, DocumentOutcome, DocumentStatus, IngestionReport
from docrag.ingestion.loader import read_pages
from docrag.ingestion.source import DirectorySource, SourceDocumentRef, SourceProvider

__all__ = [
    "Chunker",
    "ChunkingPolicy",
    "DataIngestor",
    "DirectorySource",
    "DocumentOutcome",
    "DocumentStatus",
    "EmbeddingClient",
    "HuggingFaceEmbeddingClient",
    "IngestionReport",
    "SourceDocumentRef",
    "SourceProvider",
    "read_pages",
]
