"""Semantic search — embed a query and return the nearest stored passages.

This module is the **primary public interface** for retrieval.  Its result
list is the only thing handed to a chat layer as generation context.

Usage::

    from docrag.retrieval.retriever import SemanticSearch

    search = SemanticSearch(store=store, embedder=embedder)
    for r in search.search("What is the notice period?", max_results=5):
        print(r.citation.short_ref(), r.content[:80])
"""

from __future__ import annotations

import logging
from typing import Any

from docrag.config import settings
from docrag.ingestion.embedder import EmbeddingClient
from docrag.retrieval.base import VectorStoreBase
from docrag.retrieval.models import Citation, MetadataFilter, RetrievalResult

logger = logging.getLogger(__name__)


class SemanticSearch:
    """High-level search over any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.
    embedder:
        Client used to embed queries; must be the model the corpus was
        ingested with.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score; results below this are discarded.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: EmbeddingClient,
        *,
        default_k: int = settings.search_default_k,
        score_threshold: float | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self.default_k = default_k
        self.score_threshold = score_threshold

    # -- public API -----------------------------------------------------------

    def search(
        self,
        query: str,
        *,
        source_filter: str | None = None,
        document_id: str | None = None,
        max_results: int | None = None,
    ) -> list[RetrievalResult]:
        """Run a semantic search and return results with citations.

        Parameters
        ----------
        query:
            Natural-language query string.
        source_filter:
            Restrict results to chunks ingested from this ``source_id``.
        document_id:
            Restrict results to chunks of this document.
        max_results:
            Number of results (defaults to ``self.default_k``).

        Returns
        -------
        list[RetrievalResult]
            At most *max_results* results, best match first.

        Raises
        ------
        EmbeddingUnavailableError
            When the query cannot be embedded.
        """
        if not query or not query.strip():
            raise ValueError("query must not be empty")
        k = self.default_k if max_results is None else max_results
        if k <= 0:
            return []

        # embedding errors propagate: an empty result here would be a lie
        embedding = self._embedder.embed(query.strip())
        return self.search_by_embedding(
            embedding, source_filter=source_filter, document_id=document_id, max_results=k
        )

    def search_by_embedding(
        self,
        embedding: list[float],
        *,
        source_filter: str | None = None,
        document_id: str | None = None,
        max_results: int | None = None,
    ) -> list[RetrievalResult]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        k = self.default_k if max_results is None else max_results
        filters: list[MetadataFilter] = []
        if source_filter:
            filters.append(MetadataFilter.equals("source_id", source_filter))
        if document_id:
            filters.append(MetadataFilter.equals("document_id", document_id))

        raw_hits = self._store.similarity_search(embedding, k=k, filters=filters or None)
        results = self._to_results(raw_hits)[:k]
        logger.debug("Search returned %d result(s) (k=%d, filters=%s)", len(results), k, filters)
        return results

    # -- LangChain compat ------------------------------------------------------

    def as_langchain_retriever(self, k: int = 5) -> Any:
        """Return a thin LangChain-compatible retriever wrapper.

        LangChain is imported only here so the rest of the retrieval
        package does not depend on ``langchain_core``.
        """
        from langchain_core.documents import Document
        from langchain_core.retrievers import BaseRetriever

        outer = self

        class _LCRetriever(BaseRetriever):
            """Adapter that satisfies LangChain's retriever protocol."""

            def _get_relevant_documents(self_inner, query: str, **kwargs: Any) -> list[Document]:  # type: ignore[override]  # noqa: N805
                results = outer.search(query, max_results=k)
                return [
                    Document(page_content=r.content, metadata=r.citation.model_dump())
                    for r in results
                ]

        return _LCRetriever()

    # -- internals ------------------------------------------------------------

    def _to_results(self, raw_hits: list[dict[str, Any]]) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in raw_hits:
            score = hit.get("score")
            if self.score_threshold is not None and score is not None and score < self.score_threshold:
                continue

            meta = hit.get("metadata", {})
            citation = Citation(
                chunk_id=hit.get("id"),
                document_id=meta.get("document_id"),
                source=meta.get("source", "unknown"),
                source_id=meta.get("source_id"),
                page=meta.get("page"),
                chunk_index=meta.get("chunk_index"),
                score=score,
            )
            results.append(RetrievalResult(content=hit.get("content", ""), citation=citation))
        results.sort(key=lambda r: r.score if r.score is not None else float("-inf"), reverse=True)
        return results
