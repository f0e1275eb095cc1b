"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from docrag.errors import ConfigurationError


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Storage locations
    data_dir: Path = Field(
        default=Path("./data/docrag"),
        description="Writable, persistent directory for the vector store and dropped content",
    )
    packaged_content_dir: Path = Field(
        default=Path("./content"),
        description="Read-only folder of documents shipped with the application",
    )

    # Vector store
    chroma_mode: str = Field(default="persistent", pattern="^(persistent|http)$")
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_persist_dir: Path | None = Field(
        default=None,
        description="Chroma persistence directory; defaults to <data_dir>/vector-store",
    )
    documents_collection: str = "docrag-documents"
    chunks_collection: str = "docrag-chunks"

    # Embedding
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_batch_size: int = Field(default=64, gt=0)
    embedding_max_retries: int = Field(default=3, ge=1)

    # Chunking
    chunk_size: int = Field(default=512, gt=0)
    chunk_overlap: int = Field(default=64, ge=0)

    # Ingestion
    ingest_max_workers: int = Field(default=4, ge=1)
    source_patterns: list[str] = Field(default_factory=lambda: ["*.pdf"])
    version_strategy: str = Field(default="mtime", pattern="^(mtime|sha256)$")

    # Search
    search_default_k: int = Field(default=5, gt=0)

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def content_dir(self) -> Path:
        """Writable drop folder for documents added at runtime."""
        return self.data_dir / "Content"

    @property
    def resolved_persist_dir(self) -> Path:
        return self.chroma_persist_dir or self.data_dir / "vector-store"


def resolve_source_dir(config: Settings) -> Path:
    """Pick the folder to ingest from.

    The writable runtime folder wins as soon as it holds at least one file
    matching ``config.source_patterns``; otherwise the packaged folder is used.

    Raises
    ------
    ConfigurationError
        When the drop folder holds no documents and the packaged folder
        does not exist.
    """
    writable = config.content_dir
    if writable.is_dir():
        for pattern in config.source_patterns:
            if any(p.is_file() for p in writable.rglob(pattern)):
                return writable
    if not config.packaged_content_dir.is_dir():
        raise ConfigurationError(
            f"No documents in {writable} and packaged folder "
            f"{config.packaged_content_dir} does not exist"
        )
    return config.packaged_content_dir


# Singleton: import `settings` wherever needed.
settings = Settings()
