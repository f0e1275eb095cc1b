"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import chromadb
from chromadb.config import Settings as ChromaSettings

from docrag.config import settings
from docrag.errors import StoreReadError, StoreWriteError
from docrag.retrieval.base import VectorStoreBase
from docrag.retrieval.models import IngestedChunk, IngestedDocument, MetadataFilter

logger = logging.getLogger(__name__)

# Document records carry no meaningful vector; Chroma still wants one.
_DOCUMENT_PLACEHOLDER_VECTOR = [1.0]
_UPSERT_BATCH_SIZE = 5000


def _build_chroma_where(filters: list[MetadataFilter]) -> dict[str, Any] | None:
    """Convert a list of :class:`MetadataFilter` to Chroma ``where`` syntax."""
    if not filters:
        return None

    _OP_MAP = {
        "eq": "$eq",
        "ne": "$ne",
        "in": "$in",
        "nin": "$nin",
    }

    clauses: list[dict[str, Any]] = []
    for f in filters:
        chroma_op = _OP_MAP.get(f.operator)
        if chroma_op is None:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
        clauses.append({f.field: {chroma_op: f.value}})

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def build_client(
    *,
    mode: str = settings.chroma_mode,
    host: str = settings.chroma_host,
    port: int = settings.chroma_port,
    persist_dir: Path = settings.resolved_persist_dir,
) -> Any:
    """Create a Chroma client for *mode* (``persistent`` or ``http``)."""
    if mode == "http":
        return chromadb.HttpClient(host=host, port=port)
    persist_dir.mkdir(parents=True, exist_ok=True)
    return chromadb.PersistentClient(
        path=str(persist_dir),
        settings=ChromaSettings(anonymized_telemetry=False),
    )


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store using two collections.

    Embeddings are always computed by the caller; the collections are
    created without an embedding function so Chroma never loads a model.

    Parameters
    ----------
    documents_collection:
        Name of the collection holding one record per source document.
    chunks_collection:
        Name of the collection holding embedded chunks.
    client:
        A ready Chroma client.  When *None*, one is built from settings.
    """

    def __init__(
        self,
        documents_collection: str = settings.documents_collection,
        chunks_collection: str = settings.chunks_collection,
        *,
        client: Any | None = None,
    ) -> None:
        self._client = client if client is not None else build_client()
        self._documents = self._client.get_or_create_collection(
            documents_collection,
            metadata={"hnsw:space": "cosine"},
            embedding_function=None,
        )
        self._chunks = self._client.get_or_create_collection(
            chunks_collection,
            metadata={"hnsw:space": "cosine"},
            embedding_function=None,
        )

    # -- documents ------------------------------------------------------------

    def list_documents(self, source_id: str) -> list[IngestedDocument]:
        try:
            results = self._documents.get(where={"source_id": source_id}, include=["metadatas"])
        except Exception as exc:
            raise StoreReadError(f"Cannot list documents for {source_id}: {exc}") from exc
        docs = [
            self._to_document(doc_id, meta)
            for doc_id, meta in zip(results.get("ids", []), results.get("metadatas") or [])
        ]
        return sorted(docs, key=lambda d: d.id)

    def get_document(self, document_id: str) -> IngestedDocument | None:
        try:
            results = self._documents.get(ids=[document_id], include=["metadatas"])
        except Exception as exc:
            raise StoreReadError(f"Cannot read document: {exc}", document_id=document_id) from exc
        ids = results.get("ids", [])
        if not ids:
            return None
        return self._to_document(ids[0], (results.get("metadatas") or [{}])[0])

    def upsert_document(self, document: IngestedDocument) -> None:
        try:
            self._documents.upsert(
                ids=[document.id],
                embeddings=[_DOCUMENT_PLACEHOLDER_VECTOR],
                metadatas=[
                    {
                        "source_id": document.source_id,
                        "source": document.source_path,
                        "version": document.version,
                    }
                ],
            )
        except Exception as exc:
            raise StoreWriteError(f"Cannot write document: {exc}", document_id=document.id) from exc

    def delete_document(self, document_id: str) -> None:
        self.delete_chunks_for_document(document_id)
        try:
            self._documents.delete(ids=[document_id])
        except Exception as exc:
            raise StoreWriteError(f"Cannot delete document: {exc}", document_id=document_id) from exc

    # -- chunks ---------------------------------------------------------------

    def upsert_chunks(self, chunks: Sequence[IngestedChunk]) -> None:
        for start in range(0, len(chunks), _UPSERT_BATCH_SIZE):
            batch = chunks[start : start + _UPSERT_BATCH_SIZE]
            try:
                self._chunks.upsert(
                    ids=[c.id for c in batch],
                    embeddings=[c.embedding for c in batch],
                    documents=[c.text for c in batch],
                    metadatas=[c.metadata() for c in batch],
                )
            except Exception as exc:
                raise StoreWriteError(
                    f"Cannot write {len(batch)} chunk(s): {exc}",
                    document_id=batch[0].document_id,
                ) from exc

    def delete_chunks_for_document(self, document_id: str) -> None:
        try:
            self._chunks.delete(where={"document_id": document_id})
        except Exception as exc:
            raise StoreWriteError(f"Cannot delete chunks: {exc}", document_id=document_id) from exc

    def get_chunks(self, document_id: str) -> list[IngestedChunk]:
        try:
            results = self._chunks.get(
                where={"document_id": document_id},
                include=["documents", "metadatas", "embeddings"],
            )
        except Exception as exc:
            raise StoreReadError(f"Cannot read chunks: {exc}", document_id=document_id) from exc

        ids = results.get("ids", [])
        texts = results.get("documents") or [""] * len(ids)
        metas = results.get("metadatas") or [{}] * len(ids)
        embeddings = results.get("embeddings")
        if embeddings is None:
            embeddings = [[]] * len(ids)

        chunks = [
            IngestedChunk(
                id=chunk_id,
                document_id=meta.get("document_id", document_id),
                source_id=meta.get("source_id", ""),
                source_path=meta.get("source", ""),
                page_number=int(meta.get("page", 0)),
                chunk_index=int(meta.get("chunk_index", 0)),
                text=text or "",
                embedding=[float(v) for v in embedding],
            )
            for chunk_id, text, meta, embedding in zip(ids, texts, metas, embeddings)
        ]
        return sorted(chunks, key=lambda c: c.id)

    def chunk_document_ids(self, source_id: str) -> set[str]:
        try:
            results = self._chunks.get(where={"source_id": source_id}, include=["metadatas"])
        except Exception as exc:
            raise StoreReadError(f"Cannot list chunk owners for {source_id}: {exc}") from exc
        return {
            str(meta["document_id"])
            for meta in results.get("metadatas") or []
            if meta and "document_id" in meta
        }

    def count_chunks(self) -> int:
        try:
            return self._chunks.count()
        except Exception as exc:
            raise StoreReadError(f"Cannot count chunks: {exc}") from exc

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        where = _build_chroma_where(filters) if filters else None

        total = self.count_chunks()
        if total == 0 or k <= 0:
            return []

        try:
            results = self._chunks.query(
                query_embeddings=[query_embedding],
                n_results=min(k, total),
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise StoreReadError(f"Similarity search failed: {exc}") from exc

        hits: list[dict[str, Any]] = []
        ids = results.get("ids", [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        for chunk_id, content, meta, dist in zip(ids, docs, metas, distances):
            # cosine space: distance = 1 - cosine similarity
            hits.append(
                {
                    "id": chunk_id,
                    "content": content or "",
                    "score": 1.0 - float(dist),
                    "metadata": meta or {},
                }
            )
        hits.sort(key=lambda hit: hit["score"], reverse=True)
        return hits

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _to_document(doc_id: str, meta: dict[str, Any] | None) -> IngestedDocument:
        meta = meta or {}
        return IngestedDocument(
            id=doc_id,
            source_id=str(meta.get("source_id", "")),
            source_path=str(meta.get("source", "")),
            version=str(meta.get("version", "")),
        )
