"""Document reader — thin wrappers around LangChain document loaders.

Every reader yields ``(page_number, text)`` pairs lazily, one per page,
with 1-based page numbers.  A generator is single-pass: call
:func:`read_pages` again to re-read a document.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from langchain_community.document_loaders import PyPDFLoader, TextLoader
from pypdf.errors import PyPdfError

from docrag.errors import UnreadableSourceError

logger = logging.getLogger(__name__)

PDF_SUFFIXES = frozenset({".pdf"})
TEXT_SUFFIXES = frozenset({".txt", ".md"})
SUPPORTED_SUFFIXES = PDF_SUFFIXES | TEXT_SUFFIXES


def read_pages(path: str | Path) -> Iterator[tuple[int, str]]:
    """Return a lazy sequence of ``(page_number, text)`` for *path*.

    Raises
    ------
    UnreadableSourceError
        For unsupported file types immediately, and for corrupt,
        password-protected or unreadable files while iterating.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in PDF_SUFFIXES:
        return _read_pdf(path)
    if suffix in TEXT_SUFFIXES:
        return _read_text(path)
    raise UnreadableSourceError(f"Unsupported document type {suffix or '<none>'!r}: {path.name}")


def _read_pdf(path: Path) -> Iterator[tuple[int, str]]:
    try:
        loader = PyPDFLoader(str(path))
        for index, page in enumerate(loader.lazy_load()):
            yield int(page.metadata.get("page", index)) + 1, page.page_content
    except PyPdfError as exc:
        raise UnreadableSourceError(f"Cannot parse PDF {path.name}: {exc}") from exc
    except Exception as exc:
        # pypdf surfaces some malformed structures as KeyError / TypeError
        raise UnreadableSourceError(f"Cannot read PDF {path.name}: {exc}") from exc


def _read_text(path: Path) -> Iterator[tuple[int, str]]:
    """Plain-text and Markdown files are a single page."""
    try:
        documents = TextLoader(str(path), encoding="utf-8").load()
    except (RuntimeError, OSError) as exc:
        raise UnreadableSourceError(f"Cannot read {path.name}: {exc}") from exc
    for document in documents:
        yield 1, document.page_content
