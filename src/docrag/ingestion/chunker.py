"""Text chunking strategies."""

from __future__ import annotations

from langchain_text_splitters import RecursiveCharacterTextSplitter
from pydantic import BaseModel, Field, model_validator

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")


class ChunkingPolicy(BaseModel):
    """Size and overlap bounds for passages.

    Attributes
    ----------
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of overlapping characters between consecutive chunks.
    separators:
        Split boundaries in priority order: paragraphs, lines, sentences,
        words, and finally single characters.
    """

    model_config = {"frozen": True}

    chunk_size: int = Field(default=512, gt=0)
    chunk_overlap: int = Field(default=64, ge=0)
    separators: tuple[str, ...] = DEFAULT_SEPARATORS

    @model_validator(mode="after")
    def _overlap_below_size(self) -> ChunkingPolicy:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be < chunk_size ({self.chunk_size})"
            )
        return self


class Chunker:
    """Split page text into passages for embedding.

    The same text and policy always produce the same passages, which is
    what keeps chunk ids stable between ingestion runs.
    """

    def __init__(self, policy: ChunkingPolicy | None = None) -> None:
        self.policy = policy or ChunkingPolicy()
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=self.policy.chunk_size,
            chunk_overlap=self.policy.chunk_overlap,
            length_function=len,
            separators=list(self.policy.separators),
        )

    def split(self, text: str) -> list[str]:
        """Return the ordered passages of *text*; blank text yields none."""
        if not text or not text.strip():
            return []
        return [piece for piece in self._splitter.split_text(text) if piece.strip()]
