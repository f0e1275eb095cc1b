"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import hashlib
import re
import threading
from collections.abc import Iterator, Sequence
from pathlib import Path

import pytest

from docrag.errors import StoreReadError, StoreWriteError
from docrag.ingestion.embedder import EmbeddingClient
from docrag.retrieval.memory_store import InMemoryVectorStore
from docrag.retrieval.models import IngestedChunk, IngestedDocument


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ───────────────────────────────────────────────────────────────


class FakeEmbeddingClient(EmbeddingClient):
    """Deterministic hashed bag-of-words embeddings.

    ``overrides`` pins exact vectors for given texts; ``available = False``
    simulates an unreachable service; texts containing any of
    ``fail_markers`` make their batch fail.
    """

    def __init__(self, dim: int = 64, *, batch_size: int = 16) -> None:
        super().__init__(batch_size=batch_size)
        self.dim = dim
        self.available = True
        self.fail_markers: set[str] = set()
        self.overrides: dict[str, list[float]] = {}
        self.embedded_texts: list[str] = []
        self.query_count = 0
        self._lock = threading.Lock()

    def vector_for(self, text: str) -> list[float]:
        if text in self.overrides:
            return list(self.overrides[text])
        vector = [0.0] * self.dim
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % self.dim
            vector[bucket] += 1.0
        if not any(vector):
            vector[0] = 1.0
        return vector

    def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not self.available:
            raise ConnectionError("embedding service unreachable")
        if any(marker in text for text in texts for marker in self.fail_markers):
            raise ConnectionError("embedding request rejected")
        with self._lock:
            self.embedded_texts.extend(texts)
        return [self.vector_for(t) for t in texts]

    def _embed_query(self, text: str) -> list[float]:
        if not self.available:
            raise ConnectionError("embedding service unreachable")
        with self._lock:
            self.query_count += 1
        return self.vector_for(text)


class CountingStore(InMemoryVectorStore):
    """In-memory store that counts every mutating call."""

    def __init__(self) -> None:
        super().__init__()
        self.writes = 0
        self.fail_writes_for: set[str] = set()
        self.fail_document_writes_for: set[str] = set()
        self.fail_reads = False

    def _record(self, document_id: str) -> None:
        if document_id in self.fail_writes_for:
            raise StoreWriteError("disk full", document_id=document_id)
        self.writes += 1

    def list_documents(self, source_id: str) -> list[IngestedDocument]:
        if self.fail_reads:
            raise StoreReadError("store offline")
        return super().list_documents(source_id)

    def upsert_document(self, document: IngestedDocument) -> None:
        if document.id in self.fail_document_writes_for:
            raise StoreWriteError("document collection unavailable", document_id=document.id)
        self._record(document.id)
        super().upsert_document(document)

    def upsert_chunks(self, chunks: Sequence[IngestedChunk]) -> None:
        if chunks:
            self._record(chunks[0].document_id)
        super().upsert_chunks(chunks)

    def delete_chunks_for_document(self, document_id: str) -> None:
        self._record(document_id)
        super().delete_chunks_for_document(document_id)

    def delete_document(self, document_id: str) -> None:
        with self._lock:
            self._record(document_id)
            super().delete_chunks_for_document(document_id)
            self._documents.pop(document_id, None)


def formfeed_reader(path: Path) -> Iterator[tuple[int, str]]:
    """Page reader for plain-text fixtures: pages are separated by ``\\f``."""
    for number, text in enumerate(path.read_text(encoding="utf-8").split("\f"), 1):
        yield number, text


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def embedder() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture()
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture()
def page_reader():
    return formfeed_reader
