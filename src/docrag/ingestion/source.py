"""Source providers — enumerate the documents an ingestion run reconciles."""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel

from docrag.errors import SourceEnumerationError, UnreadableSourceError

logger = logging.getLogger(__name__)


class SourceDocumentRef(BaseModel):
    """A document currently present in a source.

    Attributes
    ----------
    path:
        Location of the document relative to its source, POSIX-style.
    version:
        Fingerprint compared with the stored version to detect changes.
    """

    path: str
    version: str


class SourceProvider(ABC):
    """Anything that can list documents and hand out their bytes."""

    @property
    @abstractmethod
    def source_id(self) -> str:
        """Stable name of this source; namespaces the documents it yields."""

    @abstractmethod
    def list_documents(self) -> list[SourceDocumentRef]:
        """Enumerate every document currently in the source."""

    @abstractmethod
    def open_bytes(self, path: str) -> bytes:
        """Return the raw bytes of the document at *path*."""

    @abstractmethod
    def local_path(self, path: str) -> Path:
        """Return a filesystem path the document reader can open."""


class DirectorySource(SourceProvider):
    """A directory of files, matched recursively by glob patterns.

    Parameters
    ----------
    root:
        Directory to scan.
    patterns:
        Glob patterns applied recursively below *root*.
    version_strategy:
        ``"mtime"`` uses the last-modified UTC timestamp as fingerprint,
        ``"sha256"`` hashes the file contents.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        patterns: tuple[str, ...] | list[str] = ("*.pdf",),
        version_strategy: str = "mtime",
    ) -> None:
        if version_strategy not in ("mtime", "sha256"):
            raise ValueError(f"Unsupported version_strategy: {version_strategy!r}")
        self.root = Path(root).resolve()
        self.patterns = tuple(patterns)
        self.version_strategy = version_strategy

    @property
    def source_id(self) -> str:
        return f"DirectorySource:{self.root.as_posix()}"

    def list_documents(self) -> list[SourceDocumentRef]:
        if not self.root.is_dir():
            raise SourceEnumerationError(f"Source directory not found: {self.root}")

        files: set[Path] = set()
        try:
            for pattern in self.patterns:
                files.update(p for p in self.root.rglob(pattern) if p.is_file())
            refs = [
                SourceDocumentRef(
                    path=p.relative_to(self.root).as_posix(),
                    version=self._version(p),
                )
                for p in sorted(files)
            ]
        except OSError as exc:
            raise SourceEnumerationError(f"Cannot enumerate {self.root}: {exc}") from exc

        logger.debug("Found %d document(s) in %s", len(refs), self.root)
        return refs

    def open_bytes(self, path: str) -> bytes:
        try:
            return self.local_path(path).read_bytes()
        except OSError as exc:
            raise UnreadableSourceError(f"Cannot read {path}: {exc}") from exc

    def local_path(self, path: str) -> Path:
        return self.root / path

    def _version(self, path: Path) -> str:
        if self.version_strategy == "sha256":
            return hashlib.sha256(path.read_bytes()).hexdigest()
        mtime = path.stat().st_mtime
        return datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()
