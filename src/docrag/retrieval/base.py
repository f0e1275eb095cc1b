"""Abstract base class for vector-store backends.

A backend keeps two logical collections: documents (one record per source
file, carrying its version) and chunks (text + embedding + back-reference).
Adding a new backend only requires subclassing :class:`VectorStoreBase`.

Backends translate their own failures into
:class:`~docrag.errors.StoreReadError` and
:class:`~docrag.errors.StoreWriteError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from docrag.retrieval.models import IngestedChunk, IngestedDocument, MetadataFilter


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface."""

    # -- documents ------------------------------------------------------------

    @abstractmethod
    def list_documents(self, source_id: str) -> list[IngestedDocument]:
        """Return every stored document belonging to *source_id*."""

    @abstractmethod
    def get_document(self, document_id: str) -> IngestedDocument | None:
        """Return the document record, or ``None`` when unknown."""

    @abstractmethod
    def upsert_document(self, document: IngestedDocument) -> None:
        """Insert or replace a document record."""

    @abstractmethod
    def delete_document(self, document_id: str) -> None:
        """Delete a document record and every chunk it owns."""

    # -- chunks ---------------------------------------------------------------

    @abstractmethod
    def upsert_chunks(self, chunks: Sequence[IngestedChunk]) -> None:
        """Insert or replace chunks by id."""

    @abstractmethod
    def delete_chunks_for_document(self, document_id: str) -> None:
        """Delete every chunk owned by *document_id*."""

    @abstractmethod
    def get_chunks(self, document_id: str) -> list[IngestedChunk]:
        """Return the chunks owned by *document_id*, ordered by id."""

    @abstractmethod
    def chunk_document_ids(self, source_id: str) -> set[str]:
        """Return the ids of every document owning chunks from *source_id*.

        Unlike :meth:`list_documents` this reads the chunk collection, so it
        also sees chunks whose document record was never written.
        """

    @abstractmethod
    def count_chunks(self) -> int:
        """Total number of stored chunks."""

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* chunks nearest to *query_embedding*.

        Each result dict **must** contain:

        * ``"id"`` – chunk identifier
        * ``"content"`` – the chunk text
        * ``"score"`` – cosine similarity (higher = more similar)
        * ``"metadata"`` – the chunk's :meth:`IngestedChunk.metadata`

        Results are ordered by descending score.  An empty store yields ``[]``.
        """

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""

    # -- optional overrides ---------------------------------------------------

    def chunk_ids_for_document(self, document_id: str) -> list[str]:
        return [chunk.id for chunk in self.get_chunks(document_id)]
