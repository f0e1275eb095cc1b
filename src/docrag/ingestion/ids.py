"""Deterministic identifiers for ingested documents and chunks.

Ids are pure functions of *where* content lives, never of the content
itself, so re-ingesting a document overwrites its previous records in place
and an unchanged document maps to exactly the ids it had before.
"""

from __future__ import annotations

import hashlib


def document_id(source_id: str, path: str) -> str:
    """Return the id of the document at *path* within *source_id*."""
    digest = hashlib.sha256(f"{source_id}\x00{path}".encode("utf-8")).hexdigest()
    return digest[:16]


def chunk_id(doc_id: str, page_number: int, chunk_index: int) -> str:
    """Return the id of chunk *chunk_index* on page *page_number* of *doc_id*."""
    if page_number < 0 or chunk_index < 0:
        raise ValueError("page_number and chunk_index must be >= 0")
    return f"{doc_id}_p{page_number:04d}_c{chunk_index:04d}"
