"""Command-line entry point.

Usage::

    docrag ingest                      # resolve the source folder from settings
    docrag ingest --source ./pdfs      # ingest an explicit folder
    docrag search "termination notice" -k 3
    docrag stats
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from docrag.config import Settings, resolve_source_dir, settings
from docrag.errors import DocRagError, StoreReadError
from docrag.ingestion.chunker import Chunker, ChunkingPolicy
from docrag.ingestion.embedder import HuggingFaceEmbeddingClient
from docrag.ingestion.ingestor import DataIngestor
from docrag.ingestion.source import DirectorySource
from docrag.logging_setup import configure_logging
from docrag.retrieval.base import VectorStoreBase
from docrag.retrieval.retriever import SemanticSearch

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docrag",
        description="Ingest documents into a vector store and search them",
    )
    parser.add_argument("--log-level", default=settings.log_level)
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Reconcile the store with a source folder")
    ingest.add_argument("--source", type=Path, default=None, help="Folder to ingest")
    ingest.add_argument("--workers", type=int, default=settings.ingest_max_workers)
    ingest.add_argument(
        "--pattern",
        action="append",
        dest="patterns",
        default=None,
        help="Glob pattern (repeatable); defaults to SOURCE_PATTERNS",
    )

    search = sub.add_parser("search", help="Semantic search over ingested chunks")
    search.add_argument("query")
    search.add_argument("-k", "--max-results", type=int, default=settings.search_default_k)
    search.add_argument("--source-id", default=None, help="Restrict to one source")
    search.add_argument("--document-id", default=None, help="Restrict to one document")

    sub.add_parser("stats", help="Show store contents")
    return parser


def _prepare_environment(config: Settings) -> None:
    """Create the writable data folders the store and drop folder live in."""
    config.data_dir.mkdir(parents=True, exist_ok=True)
    config.content_dir.mkdir(parents=True, exist_ok=True)


def _build_store() -> VectorStoreBase:
    from docrag.retrieval.chroma_store import ChromaVectorStore

    store = ChromaVectorStore()
    if not store.health_check():
        raise StoreReadError("Vector store is not reachable")
    return store


def _cmd_ingest(args: argparse.Namespace) -> int:
    source_dir = args.source or resolve_source_dir(settings)
    source = DirectorySource(
        source_dir,
        patterns=args.patterns or settings.source_patterns,
        version_strategy=settings.version_strategy,
    )
    ingestor = DataIngestor(
        _build_store(),
        HuggingFaceEmbeddingClient(),
        Chunker(ChunkingPolicy(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap)),
        max_workers=args.workers,
    )

    def _shutdown(signum: int, _frame: object) -> None:
        logger.warning("Received signal %d, finishing in-flight documents", signum)
        ingestor.cancel()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    logger.info("Ingesting from %s", source_dir)
    report = ingestor.ingest(source)
    print(report.summary())
    for outcome in report.failed:
        print(f"  FAILED {outcome.path}: {outcome.error}", file=sys.stderr)
    return 1 if report.failed else 0


def _cmd_search(args: argparse.Namespace) -> int:
    search = SemanticSearch(_build_store(), HuggingFaceEmbeddingClient())
    results = search.search(
        args.query,
        source_filter=args.source_id,
        document_id=args.document_id,
        max_results=args.max_results,
    )
    if not results:
        print("No results.")
    for rank, result in enumerate(results, 1):
        print(f"{rank}. {result.citation.short_ref()} score={result.score:.3f}")
        print(f"   {result.content[:200]}")
    return 0


def _cmd_stats(_args: argparse.Namespace) -> int:
    store = _build_store()
    print(f"chunks: {store.count_chunks()}")
    return 0


_COMMANDS = {
    "ingest": _cmd_ingest,
    "search": _cmd_search,
    "stats": _cmd_stats,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    _prepare_environment(settings)

    try:
        return _COMMANDS[args.command](args)
    except DocRagError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"[docrag] {args.command} failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
