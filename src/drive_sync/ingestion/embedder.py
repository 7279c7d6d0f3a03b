"""Embedding generation in provider-sized batches."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from functools import partial
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from drive_sync.batching import DimensionGuard, dispatch, partition
from drive_sync.config import Settings
from drive_sync.errors import DimensionMismatchError, EmbeddingBatchError
from drive_sync.models import BatchResult, EmbeddedChunk, TextChunk
from drive_sync.throttle import RateLimiter, unlimited

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function(settings: Settings) -> Embeddings:
    """Return the configured LangChain embedding client."""
    if settings.embedding_provider == "vertexai":
        from langchain_google_vertexai import VertexAIEmbeddings

        return VertexAIEmbeddings(
            model_name=settings.embedding_model,
            project=settings.gcp_project_id,
            location=settings.gcp_region,
        )
    if settings.embedding_provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(model_name=settings.embedding_model)
    raise ValueError(f"Unsupported embedding_provider={settings.embedding_provider!r}")


class EmbeddingOutcome(BaseModel):
    """Vectors for every chunk of every successful batch, plus one result per batch."""

    embedded: list[EmbeddedChunk] = Field(default_factory=list)
    batches: list[BatchResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[BatchResult]:
        return [b for b in self.batches if not b.ok]


class Embedder:
    """Embed :class:`TextChunk` objects through any LangChain ``Embeddings``.

    One provider call is issued per batch.  A failed batch drops all of its
    chunks from the outcome and is recorded; the remaining batches still run.

    Parameters
    ----------
    embeddings:
        Client exposing ``embed_documents(texts) -> list[list[float]]``.
    batch_size:
        Maximum texts per call.
    max_batch_bytes:
        Optional cap on the UTF-8 size of one call's texts.
    dimension:
        Declared model output dimension.  When *None*, the first vector seen
        fixes the dimension for the rest of the run.
    rate_limiter:
        Applied before every call.
    max_concurrency:
        Number of batch calls allowed in flight at once.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        *,
        batch_size: int = 200,
        max_batch_bytes: int | None = None,
        dimension: int | None = None,
        rate_limiter: RateLimiter | None = None,
        max_concurrency: int = 1,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._embeddings = embeddings
        self.batch_size = batch_size
        self.max_batch_bytes = max_batch_bytes
        self.dimension = dimension
        self._limiter = rate_limiter or unlimited()
        self.max_concurrency = max_concurrency

    def partition(self, chunks: Sequence[TextChunk]) -> list[list[TextChunk]]:
        return partition(
            chunks,
            self.batch_size,
            max_bytes=self.max_batch_bytes,
            size_of=lambda c: len(c.text.encode("utf-8")),
        )

    def embed(
        self,
        chunks: Sequence[TextChunk],
        cancel_event: threading.Event | None = None,
    ) -> EmbeddingOutcome:
        """Embed *chunks* batch by batch; see :class:`EmbeddingOutcome`."""
        if not chunks:
            return EmbeddingOutcome()

        batches = self.partition(chunks)
        guard = DimensionGuard(self.dimension)
        logger.info(
            "Generating embeddings for %d chunks in %d batches", len(chunks), len(batches)
        )
        results = dispatch(
            batches,
            partial(self._embed_batch, guard=guard),
            max_concurrency=self.max_concurrency,
            cancel_event=cancel_event,
            stage="embedding",
        )

        outcome = EmbeddingOutcome()
        for result, embedded in results:
            outcome.batches.append(result)
            outcome.embedded.extend(embedded)
        logger.info(
            "Generated embeddings for %d out of %d chunks", len(outcome.embedded), len(chunks)
        )
        return outcome

    # -- internals ------------------------------------------------------------

    def _embed_batch(
        self, index: int, batch: list[TextChunk], *, guard: DimensionGuard
    ) -> tuple[BatchResult, list[EmbeddedChunk]]:
        ids = [chunk.chunk_id for chunk in batch]
        try:
            self._limiter.acquire()
            logger.info("Embedding batch %d (%d chunks)", index + 1, len(batch))
            vectors = self._embeddings.embed_documents([chunk.text for chunk in batch])
            vectors = self._validate(index, batch, vectors, guard)
        except (EmbeddingBatchError, DimensionMismatchError) as exc:
            return self._failed(index, ids, exc), []
        except Exception as exc:
            error = EmbeddingBatchError(f"Embedding call failed: {exc}", batch_index=index)
            error.__cause__ = exc
            return self._failed(index, ids, error), []

        embedded = [
            EmbeddedChunk.from_chunk(chunk, vector)
            for chunk, vector in zip(batch, vectors, strict=True)
        ]
        return (
            BatchResult(stage="embedding", batch_index=index, size=len(batch), ok=True, item_ids=ids),
            embedded,
        )

    def _failed(
        self, index: int, ids: list[str], error: EmbeddingBatchError | DimensionMismatchError
    ) -> BatchResult:
        logger.warning("Skipping embedding batch %d: %s", index + 1, error, exc_info=error)
        return BatchResult(
            stage="embedding",
            batch_index=index,
            size=len(ids),
            ok=False,
            item_ids=ids,
            error=str(error),
            error_kind=error.kind,
        )

    def _validate(
        self, index: int, batch: list[TextChunk], vectors: object, guard: DimensionGuard
    ) -> list[list[float]]:
        if not isinstance(vectors, list) or len(vectors) != len(batch):
            got = len(vectors) if isinstance(vectors, list) else type(vectors).__name__
            raise EmbeddingBatchError(
                f"Mismatch between number of texts ({len(batch)}) and embeddings returned ({got})",
                batch_index=index,
            )
        try:
            converted = [[float(x) for x in vector] for vector in vectors]
        except (TypeError, ValueError) as exc:
            raise EmbeddingBatchError(
                f"Malformed embedding values returned: {exc}", batch_index=index
            ) from exc
        guard.check(index, converted)
        return converted
