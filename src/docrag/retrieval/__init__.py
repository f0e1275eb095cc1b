"""
Retrieval — vector storage and semantic search.

This module wraps the vector store behind a clean interface so that
callers never need to know which DB is backing retrieval.

Public surface
--------------
- :class:`SemanticSearch` — main entry point for retrieval with citations.
- :class:`VectorStoreBase` — abstract backend (subclass for Qdrant, etc.).
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`InMemoryVectorStore` — exact-search backend for tests and small corpora.
- :class:`IngestedDocument`, :class:`IngestedChunk`, :class:`Citation`,
  :class:`RetrievalResult`, :class:`MetadataFilter` — data models.
"""

from docrag.retrieval.base import VectorStoreBase
from docrag.retrieval.memory_store import InMemoryVectorStore
from docrag.retrieval.models import (
    Citation,
    IngestedChunk,
    IngestedDocument,
    MetadataFilter,
    RetrievalResult,
)
from docrag.retrieval.retriever import SemanticSearch

__all__ = [
    "ChromaVectorStore",
    "Citation",
    "InMemoryVectorStore",
    "IngestedChunk",
    "IngestedDocument",
    "MetadataFilter",
    "RetrievalResult",
    "SemanticSearch",
    "VectorStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from docrag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
