"""Unit tests for the chunker module."""

import pytest
from pydantic import ValidationError

from docrag.ingestion.chunker import Chunker, ChunkingPolicy


def test_split_long_text_into_several_chunks() -> None:
    """A page longer than chunk_size should be split."""
    long_text = "word " * 500  # ~2500 chars
    chunks = Chunker(ChunkingPolicy(chunk_size=256, chunk_overlap=32)).split(long_text)
    assert len(chunks) > 1


def test_chunks_respect_max_length() -> None:
    text = " ".join(f"token{i}" for i in range(400))
    chunker = Chunker(ChunkingPolicy(chunk_size=100, chunk_overlap=20))
    assert all(len(c) <= 100 for c in chunker.split(text))


def test_consecutive_chunks_overlap() -> None:
    text = " ".join(f"w{i:03d}" for i in range(200))
    chunks = Chunker(ChunkingPolicy(chunk_size=60, chunk_overlap=20)).split(text)
    assert len(chunks) > 2
    for left, right in zip(chunks, chunks[1:]):
        assert left.split()[-1] in right.split()


def test_no_overlap_when_disabled() -> None:
    text = " ".join(f"w{i:03d}" for i in range(200))
    chunks = Chunker(ChunkingPolicy(chunk_size=60, chunk_overlap=0)).split(text)
    words = [w for c in chunks for w in c.split()]
    assert words == text.split()


def test_prefers_paragraph_boundaries() -> None:
    first = "The first paragraph talks about apples and pears."
    second = "The second paragraph is all about trains and buses."
    chunks = Chunker(ChunkingPolicy(chunk_size=60, chunk_overlap=0)).split(f"{first}\n\n{second}")
    assert chunks == [first, second]


def test_does_not_cut_words_when_avoidable() -> None:
    text = "alpha beta gamma delta epsilon zeta eta theta iota kappa lambda mu"
    vocabulary = set(text.split())
    for chunk in Chunker(ChunkingPolicy(chunk_size=20, chunk_overlap=0)).split(text):
        assert set(chunk.split()) <= vocabulary


@pytest.mark.parametrize("blank", ["", "   ", "\n\n\t \n"])
def test_blank_page_yields_no_chunks(blank: str) -> None:
    assert Chunker().split(blank) == []


def test_short_text_is_single_chunk() -> None:
    assert Chunker().split("Short text.") == ["Short text."]


def test_split_is_deterministic() -> None:
    text = ("Sentence number one. Another sentence follows here.\n" * 40).strip()
    policy = ChunkingPolicy(chunk_size=120, chunk_overlap=30)
    assert Chunker(policy).split(text) == Chunker(policy).split(text)


def test_policy_rejects_overlap_not_smaller_than_size() -> None:
    with pytest.raises(ValidationError, match="chunk_overlap"):
        ChunkingPolicy(chunk_size=100, chunk_overlap=100)


def test_policy_rejects_non_positive_size() -> None:
    with pytest.raises(ValidationError):
        ChunkingPolicy(chunk_size=0, chunk_overlap=0)
