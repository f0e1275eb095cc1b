"""In-process vector store with exact cosine search.

Useful for tests, notebooks and small corpora that do not warrant a Chroma
instance.  All operations are guarded by one lock, so concurrent ingestion
workers can share an instance.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Sequence
from typing import Any

from docrag.errors import StoreReadError
from docrag.retrieval.base import VectorStoreBase
from docrag.retrieval.models import IngestedChunk, IngestedDocument, MetadataFilter


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"Embedding dimension mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorStore(VectorStoreBase):
    """Dict-backed :class:`VectorStoreBase` implementation."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._documents: dict[str, IngestedDocument] = {}
        self._chunks: dict[str, IngestedChunk] = {}

    def list_documents(self, source_id: str) -> list[IngestedDocument]:
        with self._lock:
            return sorted(
                (d for d in self._documents.values() if d.source_id == source_id),
                key=lambda d: d.id,
            )

    def get_document(self, document_id: str) -> IngestedDocument | None:
        with self._lock:
            return self._documents.get(document_id)

    def upsert_document(self, document: IngestedDocument) -> None:
        with self._lock:
            self._documents[document.id] = document.model_copy()

    def delete_document(self, document_id: str) -> None:
        with self._lock:
            self.delete_chunks_for_document(document_id)
            self._documents.pop(document_id, None)

    def upsert_chunks(self, chunks: Sequence[IngestedChunk]) -> None:
        with self._lock:
            for chunk in chunks:
                self._chunks[chunk.id] = chunk.model_copy(deep=True)

    def delete_chunks_for_document(self, document_id: str) -> None:
        with self._lock:
            for chunk_id in [c.id for c in self._chunks.values() if c.document_id == document_id]:
                del self._chunks[chunk_id]

    def get_chunks(self, document_id: str) -> list[IngestedChunk]:
        with self._lock:
            return sorted(
                (c.model_copy(deep=True) for c in self._chunks.values() if c.document_id == document_id),
                key=lambda c: c.id,
            )

    def chunk_document_ids(self, source_id: str) -> set[str]:
        with self._lock:
            return {c.document_id for c in self._chunks.values() if c.source_id == source_id}

    def count_chunks(self) -> int:
        with self._lock:
            return len(self._chunks)

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            candidates = list(self._chunks.values())

        hits: list[dict[str, Any]] = []
        for chunk in candidates:
            meta = chunk.metadata()
            if filters and not all(f.matches(meta) for f in filters):
                continue
            try:
                score = cosine_similarity(query_embedding, chunk.embedding)
            except ValueError as exc:
                raise StoreReadError(f"Similarity search failed: {exc}") from exc
            hits.append(
                {
                    "id": chunk.id,
                    "content": chunk.text,
                    "score": score,
                    "metadata": meta,
                }
            )
        # ties broken by id so results are stable
        hits.sort(key=lambda hit: (-hit["score"], hit["id"]))
        return hits[: max(0, k)]

    def health_check(self) -> bool:
        return True
