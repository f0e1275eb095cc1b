"""Unit tests for embedding clients."""

from __future__ import annotations

import threading
import time

import pytest

from docrag.errors import EmbeddingUnavailableError
from docrag.ingestion.embedder import EmbeddingClient, HuggingFaceEmbeddingClient


class _FixedClient(EmbeddingClient):
    """Returns whatever the test configures, recording batch sizes."""

    def __init__(self, *, batch_size: int = 2) -> None:
        super().__init__(batch_size=batch_size)
        self.batches: list[int] = []
        self.vectors_per_batch: int | None = None
        self.dim = 3

    def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.batches.append(len(texts))
        count = len(texts) if self.vectors_per_batch is None else self.vectors_per_batch
        return [[1.0] * self.dim for _ in range(count)]

    def _embed_query(self, text: str) -> list[float]:
        return [0.5] * self.dim


class _FlakyModel:
    """Fails ``failures`` times before answering."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    def _maybe_fail(self) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("model server busy")

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self._maybe_fail()
        return [[0.1, 0.2] for _ in texts]

    def embed_query(self, text: str) -> list[float]:
        self._maybe_fail()
        return [0.3, 0.4]


class TestEmbeddingClient:
    def test_batches_respect_batch_size(self) -> None:
        client = _FixedClient(batch_size=2)
        vectors = client.embed_batch(["a", "b", "c", "d", "e"])
        assert len(vectors) == 5
        assert client.batches == [2, 2, 1]

    def test_empty_batch(self) -> None:
        client = _FixedClient()
        assert client.embed_batch([]) == []
        assert client.batches == []

    def test_count_mismatch_is_an_error(self) -> None:
        client = _FixedClient()
        client.vectors_per_batch = 1
        with pytest.raises(EmbeddingUnavailableError, match="Expected 2 vectors"):
            client.embed_batch(["a", "b"])

    def test_dimension_change_is_an_error(self) -> None:
        client = _FixedClient()
        client.embed("q")
        client.dim = 4
        with pytest.raises(EmbeddingUnavailableError, match="dimension changed"):
            client.embed_batch(["a"])

    def test_dimension_probed_lazily(self) -> None:
        client = _FixedClient()
        assert client.dimension == 3

    def test_backend_errors_are_wrapped(self, embedder: EmbeddingClient) -> None:
        embedder.available = False
        with pytest.raises(EmbeddingUnavailableError):
            embedder.embed("query")
        with pytest.raises(EmbeddingUnavailableError):
            embedder.embed_batch(["text"])

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            _FixedClient(batch_size=0)

    def test_same_text_same_vector(self, embedder: EmbeddingClient) -> None:
        assert embedder.embed("contract notice") == embedder.embed_batch(["contract notice"])[0]


class TestHuggingFaceEmbeddingClient:
    def _client(self, model: _FlakyModel, max_retries: int = 3) -> HuggingFaceEmbeddingClient:
        client = HuggingFaceEmbeddingClient("test-model", batch_size=8, max_retries=max_retries)
        client._model = model  # skip loading sentence-transformers
        return client

    def test_transient_failures_are_retried(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("time.sleep", lambda _s: None)
        model = _FlakyModel(failures=2)
        vectors = self._client(model).embed_batch(["a", "b"])
        assert vectors == [[0.1, 0.2], [0.1, 0.2]]
        assert model.calls == 3

    def test_gives_up_after_max_retries(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("time.sleep", lambda _s: None)
        model = _FlakyModel(failures=10)
        with pytest.raises(EmbeddingUnavailableError, match="model server busy"):
            self._client(model, max_retries=2).embed("query")
        assert model.calls == 2

    def test_query_embedding(self) -> None:
        assert self._client(_FlakyModel(failures=0)).embed("q") == [0.3, 0.4]

    def test_model_loaded_once_across_threads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import langchain_huggingface

        loads: list[str] = []

        class _SlowModel(_FlakyModel):
            def __init__(self, model_name: str, **kwargs) -> None:
                time.sleep(0.05)
                loads.append(model_name)
                super().__init__(failures=0)

        monkeypatch.setattr(langchain_huggingface, "HuggingFaceEmbeddings", _SlowModel)
        client = HuggingFaceEmbeddingClient("test-model", batch_size=8)
        barrier = threading.Barrier(4)

        def worker() -> None:
            barrier.wait()
            client.embed_batch(["text"])

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert loads == ["test-model"]
