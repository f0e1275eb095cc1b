"""Exception hierarchy for docrag.

    DocRagError                 (base)
    +-- ConfigurationError      (invalid settings / wiring)
    +-- UnreadableSourceError   (document cannot be parsed; skipped per document)
    +-- SourceEnumerationError  (source cannot be listed; aborts the run)
    +-- EmbeddingUnavailableError
    +-- StoreError
        +-- StoreReadError      (aborts an ingestion run)
        +-- StoreWriteError     (fatal for one document only)

Per-document errors carry the ``document_id`` they relate to so that the
ingestion report can attribute them.
"""

from __future__ import annotations


class DocRagError(Exception):
    """Base exception for all docrag errors."""

    default_message = "docrag operation failed"

    def __init__(self, message: str | None = None, *, document_id: str | None = None) -> None:
        self.message = message or self.default_message
        self.document_id = document_id
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.document_id:
            return f"[{self.document_id}] {self.message}"
        return self.message


class ConfigurationError(DocRagError):
    default_message = "Invalid or missing configuration"


class UnreadableSourceError(DocRagError):
    """Raised when a document is corrupt, encrypted, or of an unsupported type."""

    default_message = "Source document could not be read"


class SourceEnumerationError(DocRagError):
    default_message = "Source documents could not be enumerated"


class EmbeddingUnavailableError(DocRagError):
    """Raised when the embedding service cannot produce vectors."""

    default_message = "Embedding service is unavailable"


class StoreError(DocRagError):
    default_message = "Vector store operation failed"


class StoreReadError(StoreError):
    default_message = "Vector store read failed"


class StoreWriteError(StoreError):
    default_message = "Vector store write failed"
