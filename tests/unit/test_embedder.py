"""Unit tests for batched embedding generation."""

from __future__ import annotations

import math
import threading
from unittest.mock import MagicMock, patch

import pytest

from drive_sync.config import Settings
from drive_sync.errors import SyncCancelled
from drive_sync.ingestion.embedder import Embedder, get_embedding_function
from drive_sync.models import TextChunk


def _chunks(n: int, text: str = "chunk text") -> list[TextChunk]:
    return [
        TextChunk(document_id=f"d{i // 3}", document_name="doc", ordinal=i % 3, text=f"{text} {i}")
        for i in range(n)
    ]


class TestEmbedder:
    @pytest.mark.parametrize(("n", "batch_size"), [(1, 200), (200, 200), (201, 200), (450, 200), (7, 3)])
    def test_issues_ceil_n_over_b_calls(self, embeddings_factory, n: int, batch_size: int) -> None:
        embeddings = embeddings_factory()
        outcome = Embedder(embeddings, batch_size=batch_size).embed(_chunks(n))
        assert len(embeddings.calls) == math.ceil(n / batch_size)
        assert all(len(call) <= batch_size for call in embeddings.calls)
        assert len(outcome.embedded) == n
        assert outcome.failures == []

    def test_vectors_are_aligned_with_chunks(self, embeddings_factory) -> None:
        chunks = _chunks(5)
        outcome = Embedder(embeddings_factory(size=4), batch_size=2).embed(chunks)
        assert [e.chunk_id for e in outcome.embedded] == [c.chunk_id for c in chunks]
        assert [e.text for e in outcome.embedded] == [c.text for c in chunks]
        assert all(len(e.vector) == 4 for e in outcome.embedded)

    def test_same_text_gives_same_vector(self, embeddings_factory) -> None:
        chunk = _chunks(1)
        first = Embedder(embeddings_factory()).embed(chunk).embedded[0].vector
        second = Embedder(embeddings_factory()).embed(chunk).embedded[0].vector
        assert first == second

    def test_empty_input_issues_no_calls(self, embeddings_factory) -> None:
        embeddings = embeddings_factory()
        outcome = Embedder(embeddings).embed([])
        assert embeddings.calls == []
        assert outcome.embedded == [] and outcome.batches == []

    def test_byte_cap_splits_batches(self, embeddings_factory) -> None:
        embeddings = embeddings_factory()
        chunks = _chunks(4, text="x" * 95)  # ~100 bytes each
        Embedder(embeddings, batch_size=200, max_batch_bytes=250).embed(chunks)
        assert [len(c) for c in embeddings.calls] == [2, 2]

    def test_failed_batch_is_isolated(self, embeddings_factory) -> None:
        embeddings = embeddings_factory(fail_on_calls={1})
        chunks = _chunks(6)
        outcome = Embedder(embeddings, batch_size=2).embed(chunks)

        assert len(embeddings.calls) == 3
        assert [e.chunk_id for e in outcome.embedded] == [c.chunk_id for c in chunks[:2] + chunks[4:]]
        (failure,) = outcome.failures
        assert failure.batch_index == 1
        assert failure.error_kind == "embedding"
        assert failure.item_ids == [c.chunk_id for c in chunks[2:4]]
        assert "embedding service unavailable" in failure.error

    def test_misaligned_response_fails_the_batch(self) -> None:
        embeddings = MagicMock()
        embeddings.embed_documents.return_value = [[0.1, 0.2]]
        outcome = Embedder(embeddings).embed(_chunks(3))
        assert outcome.embedded == []
        (failure,) = outcome.failures
        assert "Mismatch between number of texts (3) and embeddings returned (1)" in failure.error

    def test_non_numeric_values_fail_the_batch(self) -> None:
        embeddings = MagicMock()
        embeddings.embed_documents.side_effect = [[[None, None]], [[0.1, 0.2]]]
        outcome = Embedder(embeddings, batch_size=1).embed(_chunks(2))

        assert [e.chunk_id for e in outcome.embedded] == ["d0_chunk_1"]
        (failure,) = outcome.failures
        assert failure.batch_index == 0
        assert failure.error_kind == "embedding"
        assert "Malformed embedding values" in failure.error

    def test_declared_dimension_is_enforced(self, embeddings_factory) -> None:
        outcome = Embedder(embeddings_factory(size=8), dimension=16).embed(_chunks(2))
        assert outcome.embedded == []
        assert outcome.failures[0].error_kind == "dimension"

    def test_dimension_fixed_by_first_vector(self) -> None:
        embeddings = MagicMock()
        embeddings.embed_documents.side_effect = [[[0.0] * 3], [[0.0] * 4]]
        outcome = Embedder(embeddings, batch_size=1).embed(_chunks(2))
        assert len(outcome.embedded) == 1
        assert outcome.failures[0].batch_index == 1
        assert outcome.failures[0].error_kind == "dimension"

    def test_dimension_resets_between_runs(self) -> None:
        embeddings = MagicMock()
        embedder = Embedder(embeddings)
        embeddings.embed_documents.return_value = [[0.0] * 3]
        assert len(embedder.embed(_chunks(1)).embedded) == 1
        embeddings.embed_documents.return_value = [[0.0] * 5]
        assert len(embedder.embed(_chunks(1)).embedded) == 1

    def test_concurrent_batches_keep_order(self, embeddings_factory) -> None:
        chunks = _chunks(20)
        outcome = Embedder(embeddings_factory(), batch_size=3, max_concurrency=4).embed(chunks)
        assert [e.chunk_id for e in outcome.embedded] == [c.chunk_id for c in chunks]
        assert [b.batch_index for b in outcome.batches] == list(range(7))

    def test_rate_limiter_acquired_per_call(self, embeddings_factory) -> None:
        limiter = MagicMock()
        Embedder(embeddings_factory(), batch_size=2, rate_limiter=limiter).embed(_chunks(5))
        assert limiter.acquire.call_count == 3

    def test_cancelled_before_first_batch(self, embeddings_factory) -> None:
        embeddings = embeddings_factory()
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(SyncCancelled):
            Embedder(embeddings).embed(_chunks(2), cancel)
        assert embeddings.calls == []


class TestGetEmbeddingFunction:
    def test_vertexai(self) -> None:
        fake_module = MagicMock()
        settings = Settings(gcp_project_id="proj", embedding_model="text-embedding-004")
        with patch.dict("sys.modules", {"langchain_google_vertexai": fake_module}):
            result = get_embedding_function(settings)
        fake_module.VertexAIEmbeddings.assert_called_once_with(
            model_name="text-embedding-004", project="proj", location="us-central1"
        )
        assert result is fake_module.VertexAIEmbeddings.return_value

    def test_huggingface(self) -> None:
        fake_module = MagicMock()
        settings = Settings(embedding_provider="huggingface", embedding_model="all-MiniLM-L6-v2")
        with patch.dict("sys.modules", {"langchain_huggingface": fake_module}):
            get_embedding_function(settings)
        fake_module.HuggingFaceEmbeddings.assert_called_once_with(model_name="all-MiniLM-L6-v2")
