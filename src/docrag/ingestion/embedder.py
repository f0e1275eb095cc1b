"""Embedding clients — text → fixed-length vectors.

The rest of the package only sees :class:`EmbeddingClient`; the model
behind it is an external collaborator.  Any failure to produce vectors is
reported as :class:`~docrag.errors.EmbeddingUnavailableError`.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

from tenacity import Retrying, stop_after_attempt, wait_exponential

from docrag.config import settings
from docrag.errors import EmbeddingUnavailableError

if TYPE_CHECKING:
    from langchain_huggingface import HuggingFaceEmbeddings

logger = logging.getLogger(__name__)


class EmbeddingClient(ABC):
    """Backend-agnostic embedding interface.

    Parameters
    ----------
    batch_size:
        Maximum number of texts sent to the backend per call.
    """

    def __init__(self, *, batch_size: int = 64) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self.batch_size = batch_size
        self._dimension: int | None = None

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed one batch of at most ``batch_size`` texts."""

    @abstractmethod
    def _embed_query(self, text: str) -> list[float]:
        """Embed a single search query."""

    # -- public API -----------------------------------------------------------

    def embed(self, text: str) -> list[float]:
        """Return the vector for a single (query) string."""
        try:
            vector = [float(v) for v in self._embed_query(text)]
        except EmbeddingUnavailableError:
            raise
        except Exception as exc:
            raise EmbeddingUnavailableError(f"Query embedding failed: {exc}") from exc
        self._check_dimension([vector])
        return vector

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per text, in order."""
        texts = list(texts)
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            try:
                result = self._embed_documents(batch)
            except EmbeddingUnavailableError:
                raise
            except Exception as exc:
                raise EmbeddingUnavailableError(f"Batch embedding failed: {exc}") from exc
            if len(result) != len(batch):
                raise EmbeddingUnavailableError(
                    f"Expected {len(batch)} vectors, got {len(result)}"
                )
            vectors.extend([float(v) for v in vector] for vector in result)
        self._check_dimension(vectors)
        return vectors

    @property
    def dimension(self) -> int:
        """Vector length, probed with a one-word embedding on first access."""
        if self._dimension is None:
            self.embed("dimension probe")
        assert self._dimension is not None
        return self._dimension

    def _check_dimension(self, vectors: list[list[float]]) -> None:
        for vector in vectors:
            if not vector:
                raise EmbeddingUnavailableError("Embedding backend returned an empty vector")
            if self._dimension is None:
                self._dimension = len(vector)
            elif len(vector) != self._dimension:
                raise EmbeddingUnavailableError(
                    f"Embedding dimension changed from {self._dimension} to {len(vector)}"
                )


class HuggingFaceEmbeddingClient(EmbeddingClient):
    """Sentence-transformer embeddings via ``langchain_huggingface``.

    The model is loaded on first use.  Transient backend failures are
    retried with exponential backoff before surfacing.

    Parameters
    ----------
    model_name:
        HuggingFace model identifier.
    batch_size:
        Number of texts to embed per forward pass.
    max_retries:
        Attempts per batch, including the first one.
    normalize_embeddings:
        Whether to L2-normalise vectors (recommended for cosine similarity).
    """

    def __init__(
        self,
        model_name: str = settings.embedding_model,
        *,
        batch_size: int = settings.embedding_batch_size,
        max_retries: int = settings.embedding_max_retries,
        normalize_embeddings: bool = True,
    ) -> None:
        super().__init__(batch_size=batch_size)
        self.model_name = model_name
        self.max_retries = max_retries
        self.normalize_embeddings = normalize_embeddings
        self._model: HuggingFaceEmbeddings | None = None
        self._model_lock = threading.Lock()

    def _get_model(self) -> HuggingFaceEmbeddings:
        if self._model is not None:
            return self._model
        # ingestion workers share one client; load the model once
        with self._model_lock:
            if self._model is None:
                from langchain_huggingface import HuggingFaceEmbeddings

                logger.info("Loading embedding model %s", self.model_name)
                try:
                    self._model = HuggingFaceEmbeddings(
                        model_name=self.model_name,
                        encode_kwargs={"normalize_embeddings": self.normalize_embeddings},
                    )
                except Exception as exc:
                    raise EmbeddingUnavailableError(
                        f"Cannot load embedding model {self.model_name!r}: {exc}"
                    ) from exc
        return self._model

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
            reraise=True,
        )

    def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        model = self._get_model()
        for attempt in self._retrying():
            with attempt:
                return model.embed_documents(texts)
        raise EmbeddingUnavailableError("Embedding retries exhausted")  # pragma: no cover

    def _embed_query(self, text: str) -> list[float]:
        model = self._get_model()
        for attempt in self._retrying():
            with attempt:
                return model.embed_query(text)
        raise EmbeddingUnavailableError("Embedding retries exhausted")  # pragma: no cover
