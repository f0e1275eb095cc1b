"""Process-wide logging configuration for command-line entry points."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once.

    Library modules only ever call ``logging.getLogger(__name__)``; handlers
    are attached here by whoever owns the process.
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # sentence-transformers / chromadb are chatty at INFO
    for noisy in ("chromadb", "sentence_transformers", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
