"""Domain models for stored records, retrieval results and citations."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class IngestedDocument(BaseModel):
    """One source file as known to the vector store.

    Attributes
    ----------
    id:
        Deterministic id derived from ``(source_id, source_path)``.
    source_id:
        The source the document was ingested from.
    source_path:
        Path of the document relative to its source.
    version:
        Fingerprint of the content the stored chunks represent.
    """

    id: str
    source_id: str
    source_path: str
    version: str


class IngestedChunk(BaseModel):
    """One embedded passage, exclusively owned by a document."""

    id: str
    document_id: str
    source_id: str
    source_path: str
    page_number: int
    chunk_index: int
    text: str
    embedding: list[float] = Field(default_factory=list)

    def metadata(self) -> dict[str, Any]:
        """Flat metadata stored next to the vector (used for filtering)."""
        return {
            "document_id": self.document_id,
            "source_id": self.source_id,
            "source": self.source_path,
            "page": self.page_number,
            "chunk_index": self.chunk_index,
        }


class MetadataFilter(BaseModel):
    """Declarative metadata filter for vector-store queries.

    Attributes
    ----------
    field:
        The metadata key to filter on (``"document_id"``, ``"source_id"``,
        ``"source"``, ``"page"``).
    operator:
        Comparison operator — one of ``eq``, ``ne``, ``in``, ``nin``.
    value:
        The value (or list of values for ``in`` / ``nin``) to compare against.
    """

    field: str
    operator: str = "eq"
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)

    @classmethod
    def one_of(cls, field: str, values: list[Any]) -> MetadataFilter:
        return cls(field=field, operator="in", value=values)

    def matches(self, metadata: dict[str, Any]) -> bool:
        """Evaluate this filter against a metadata dict in Python."""
        actual = metadata.get(self.field)
        if self.operator == "eq":
            return actual == self.value
        if self.operator == "ne":
            return actual != self.value
        if self.operator == "in":
            return actual in self.value
        if self.operator == "nin":
            return actual not in self.value
        raise ValueError(f"Unsupported filter operator: {self.operator!r}")


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its source document.

    Attributes
    ----------
    chunk_id:
        Store id of the retrieved chunk.
    document_id:
        Id of the owning :class:`IngestedDocument`.
    source:
        Document path relative to its source.
    source_id:
        The source the document came from.
    page:
        1-based page number.
    chunk_index:
        Ordinal position of the chunk within its page.
    score:
        Cosine similarity between query and chunk (higher = more similar).
    """

    chunk_id: str | None = None
    document_id: str | None = None
    source: str = "unknown"
    source_id: str | None = None
    page: int | None = None
    chunk_index: int | None = None
    score: float | None = None

    def short_ref(self) -> str:
        """Return a compact ``[source p.page§chunk]`` reference string."""
        page = self.page if self.page is not None else "?"
        chunk = self.chunk_index if self.chunk_index is not None else "?"
        return f"[{self.source} p.{page}§{chunk}]"


class RetrievalResult(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation

    @property
    def score(self) -> float | None:
        return self.citation.score

    def __str__(self) -> str:  # noqa: D105
        return f"{self.citation.short_ref()} {self.content[:120]}…"
