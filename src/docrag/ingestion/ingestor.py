"""Ingestion — reconcile the vector store with the contents of a source.

One run compares the documents a :class:`SourceProvider` currently holds
with the :class:`IngestedDocument` records stored for that source:

* new or re-versioned documents are read, chunked, embedded and committed;
* documents that disappeared are deleted together with their chunks;
* unchanged documents are not touched at all, so a run costs
  O(changed documents);
* chunks whose document record was never written are swept first.

Per-document commit order is delete-old-chunks → write-new-chunks →
write-document-version.  The version is written last, so an interrupted
commit leaves a stale version behind and the next run retries the
document from scratch.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from functools import partial
from pathlib import Path

from pydantic import BaseModel, Field

from docrag.config import settings
from docrag.errors import (
    EmbeddingUnavailableError,
    StoreReadError,
    StoreWriteError,
    UnreadableSourceError,
)
from docrag.ingestion.chunker import Chunker, ChunkingPolicy
from docrag.ingestion.embedder import EmbeddingClient
from docrag.ingestion.ids import chunk_id, document_id
from docrag.ingestion.loader import read_pages
from docrag.ingestion.source import SourceDocumentRef, SourceProvider
from docrag.retrieval.base import VectorStoreBase
from docrag.retrieval.models import IngestedChunk, IngestedDocument

logger = logging.getLogger(__name__)

PageReader = Callable[[Path], Iterator[tuple[int, str]]]


class DocumentStatus(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    FAILED = "failed"
    SKIPPED = "skipped"


class DocumentOutcome(BaseModel):
    """What happened to one document during a run."""

    document_id: str
    path: str
    status: DocumentStatus
    chunks_written: int = 0
    error: str | None = None


class IngestionReport(BaseModel):
    """Summary of one ingestion run."""

    source_id: str
    outcomes: list[DocumentOutcome] = Field(default_factory=list)
    elapsed_seconds: float = 0.0

    def with_status(self, status: DocumentStatus) -> list[DocumentOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def failed(self) -> list[DocumentOutcome]:
        return self.with_status(DocumentStatus.FAILED)

    @property
    def chunks_written(self) -> int:
        return sum(o.chunks_written for o in self.outcomes)

    @property
    def changed_count(self) -> int:
        """Documents whose stored state was modified by the run."""
        return sum(
            1
            for o in self.outcomes
            if o.status in (DocumentStatus.ADDED, DocumentStatus.UPDATED, DocumentStatus.DELETED)
        )

    def counts(self) -> dict[str, int]:
        return {status.value: len(self.with_status(status)) for status in DocumentStatus}

    def summary(self) -> str:
        parts = ", ".join(f"{n} {name}" for name, n in self.counts().items() if n)
        return (
            f"Ingested {self.source_id}: {parts or 'nothing to do'}; "
            f"{self.chunks_written} chunk(s) written in {self.elapsed_seconds:.1f}s"
        )


@dataclass(frozen=True)
class _WorkItem:
    document_id: str
    path: str
    run: Callable[[], DocumentOutcome]


class DataIngestor:
    """Keep a vector store in sync with one or more sources.

    Parameters
    ----------
    store:
        Destination for documents and chunks.  It must be reachable before
        :meth:`ingest` is called.
    embedder:
        Embedding client used for every chunk.
    chunker:
        Passage splitter; defaults to the configured chunk size / overlap.
    max_workers:
        Number of documents processed concurrently.  Keep it within what
        the embedding service tolerates.
    reader:
        Function yielding ``(page_number, text)`` pairs for a file path.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: EmbeddingClient,
        chunker: Chunker | None = None,
        *,
        max_workers: int = settings.ingest_max_workers,
        reader: PageReader = read_pages,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._store = store
        self._embedder = embedder
        self._chunker = chunker or Chunker(
            ChunkingPolicy(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap)
        )
        self._max_workers = max_workers
        self._reader = reader
        self._cancelled = threading.Event()
        self._locks_guard = threading.Lock()
        self._document_locks: dict[str, threading.Lock] = {}
        self._cancelled_documents: set[str] = set()

    # -- public API -----------------------------------------------------------

    def cancel(self) -> None:
        """Stop starting new documents; in-flight commits still finish.

        Cancellation is meant for shutdown and is permanent for this instance.
        """
        logger.info("Ingestion cancellation requested")
        self._cancelled.set()

    def cancel_document(self, doc_id: str) -> None:
        """Abort the next attempt to ingest or delete one document.

        The document is reported as ``skipped`` if it has not started yet, or
        if its chunks are prepared but not yet committed.  Its stored state is
        left as it was.  The request is consumed once honoured.
        """
        logger.info("Cancellation requested for document %s", doc_id)
        with self._locks_guard:
            self._cancelled_documents.add(doc_id)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def ingest(self, source: SourceProvider) -> IngestionReport:
        """Reconcile the store with *source* and report per-document outcomes.

        Raises
        ------
        StoreReadError
            When stored documents cannot be enumerated; the changed set
            cannot be determined safely, so nothing is written.
        SourceEnumerationError
            When the source cannot be listed.
        """
        t0 = time.monotonic()
        source_id = source.source_id

        try:
            known = {doc.id: doc for doc in self._store.list_documents(source_id)}
            orphans = self._store.chunk_document_ids(source_id) - known.keys()
        except StoreReadError:
            logger.error("Cannot enumerate stored documents for %s; aborting run", source_id)
            raise
        self._sweep_orphan_chunks(orphans)
        current = source.list_documents()
        logger.info(
            "Reconciling %s: %d document(s) in source, %d in store",
            source_id,
            len(current),
            len(known),
        )

        report = IngestionReport(source_id=source_id)
        work: list[_WorkItem] = []

        present: set[str] = set()
        for ref in current:
            doc_id = document_id(source_id, ref.path)
            present.add(doc_id)
            previous = known.get(doc_id)
            if previous is not None and previous.version == ref.version:
                report.outcomes.append(
                    DocumentOutcome(document_id=doc_id, path=ref.path, status=DocumentStatus.UNCHANGED)
                )
                continue
            work.append(
                _WorkItem(doc_id, ref.path, partial(self._ingest_document, source, ref, doc_id, previous))
            )

        for doc_id, previous in known.items():
            if doc_id not in present:
                work.append(
                    _WorkItem(doc_id, previous.source_path, partial(self._delete_document, previous))
                )

        if work:
            with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="ingest") as pool:
                futures = [pool.submit(self._run_unless_cancelled, item) for item in work]
                report.outcomes.extend(f.result() for f in futures)

        report.elapsed_seconds = round(time.monotonic() - t0, 3)
        logger.info("%s", report.summary())
        return report

    # -- per-document work ----------------------------------------------------

    def _run_unless_cancelled(self, item: _WorkItem) -> DocumentOutcome:
        if self._cancelled.is_set():
            logger.info("Skipping %s: ingestion cancelled", item.path)
            return _skipped(item.document_id, item.path)
        if self._take_document_cancellation(item.document_id):
            logger.info("Skipping %s: document cancelled", item.path)
            return _skipped(item.document_id, item.path)
        return item.run()

    def _ingest_document(
        self,
        source: SourceProvider,
        ref: SourceDocumentRef,
        doc_id: str,
        previous: IngestedDocument | None,
    ) -> DocumentOutcome:
        logger.info("Processing %s", ref.path)
        try:
            chunks = self._prepare_chunks(source, ref, doc_id)
        except (UnreadableSourceError, EmbeddingUnavailableError) as exc:
            # prior good state stays in place; the next run retries
            logger.warning("Skipping %s: %s", ref.path, exc)
            return DocumentOutcome(
                document_id=doc_id, path=ref.path, status=DocumentStatus.FAILED, error=str(exc)
            )

        if self._take_document_cancellation(doc_id):
            logger.info("Discarding prepared chunks for %s: document cancelled", ref.path)
            return _skipped(doc_id, ref.path)

        document = IngestedDocument(
            id=doc_id,
            source_id=source.source_id,
            source_path=ref.path,
            version=ref.version,
        )
        with self._document_lock(doc_id):
            try:
                self._store.delete_chunks_for_document(doc_id)
                if chunks:
                    self._store.upsert_chunks(chunks)
                self._store.upsert_document(document)
            except StoreWriteError as exc:
                logger.error("Failed to commit %s: %s", ref.path, exc)
                if previous is None:
                    # no document record owns these chunks
                    self._discard_chunks(doc_id)
                return DocumentOutcome(
                    document_id=doc_id, path=ref.path, status=DocumentStatus.FAILED, error=str(exc)
                )

        status = DocumentStatus.ADDED if previous is None else DocumentStatus.UPDATED
        logger.info("%s %s (%d chunk(s))", status.value.capitalize(), ref.path, len(chunks))
        return DocumentOutcome(
            document_id=doc_id, path=ref.path, status=status, chunks_written=len(chunks)
        )

    def _prepare_chunks(
        self,
        source: SourceProvider,
        ref: SourceDocumentRef,
        doc_id: str,
    ) -> list[IngestedChunk]:
        """Read, chunk and embed a document without touching the store."""
        pending: list[tuple[int, int, str]] = []
        for page_number, text in self._reader(source.local_path(ref.path)):
            for index, piece in enumerate(self._chunker.split(text)):
                pending.append((page_number, index, piece))

        if not pending:
            logger.warning("%s produced no text chunks", ref.path)
            return []

        embeddings = self._embedder.embed_batch([piece for _, _, piece in pending])
        return [
            IngestedChunk(
                id=chunk_id(doc_id, page_number, index),
                document_id=doc_id,
                source_id=source.source_id,
                source_path=ref.path,
                page_number=page_number,
                chunk_index=index,
                text=piece,
                embedding=embedding,
            )
            for (page_number, index, piece), embedding in zip(pending, embeddings)
        ]

    def _delete_document(self, document: IngestedDocument) -> DocumentOutcome:
        logger.info("Removing ingested data for %s", document.source_path)
        with self._document_lock(document.id):
            try:
                self._store.delete_document(document.id)
            except StoreWriteError as exc:
                logger.error("Failed to remove %s: %s", document.source_path, exc)
                return DocumentOutcome(
                    document_id=document.id,
                    path=document.source_path,
                    status=DocumentStatus.FAILED,
                    error=str(exc),
                )
        return DocumentOutcome(
            document_id=document.id, path=document.source_path, status=DocumentStatus.DELETED
        )

    # -- internals ------------------------------------------------------------

    def _sweep_orphan_chunks(self, orphans: set[str]) -> None:
        """Remove chunks left behind by a commit that never wrote its document."""
        for doc_id in sorted(orphans):
            logger.warning("Removing orphan chunks of unrecorded document %s", doc_id)
            with self._document_lock(doc_id):
                self._discard_chunks(doc_id)

    def _discard_chunks(self, doc_id: str) -> None:
        """Delete a document's chunks; the caller holds its document lock."""
        try:
            self._store.delete_chunks_for_document(doc_id)
        except StoreWriteError as exc:
            # retried by the orphan sweep of the next run
            logger.error("Cannot remove chunks of %s: %s", doc_id, exc)

    def _take_document_cancellation(self, doc_id: str) -> bool:
        with self._locks_guard:
            if doc_id in self._cancelled_documents:
                self._cancelled_documents.discard(doc_id)
                return True
            return False

    def _document_lock(self, doc_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._document_locks.setdefault(doc_id, threading.Lock())


def _skipped(doc_id: str, path: str) -> DocumentOutcome:
    return DocumentOutcome(document_id=doc_id, path=path, status=DocumentStatus.SKIPPED)
