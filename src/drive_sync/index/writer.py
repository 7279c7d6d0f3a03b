"""Index writer — batched, retried upserts into a :class:`VectorIndex`."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from functools import partial

from pydantic import BaseModel, Field
from tenacity import (
    RetryCallState,
    Retrying,
    stop_after_attempt,
    wait_exponential,
)

from drive_sync.batching import DimensionGuard, dispatch, partition
from drive_sync.errors import DimensionMismatchError, UpsertBatchError
from drive_sync.index.base import VectorIndex
from drive_sync.models import BatchResult, EmbeddedChunk, IndexRecord
from drive_sync.throttle import RateLimiter, unlimited

logger = logging.getLogger(__name__)


class UpsertOutcome(BaseModel):
    """Number of records written plus one result per batch."""

    succeeded: int = 0
    batches: list[BatchResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[BatchResult]:
        return [b for b in self.batches if not b.ok]


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Index write attempt %d failed, retrying: %s", retry_state.attempt_number, exc
    )


class IndexWriter:
    """Write embedded chunks to a vector index in size-bounded batches.

    Each batch is one upsert call.  A failing call is retried with
    exponential backoff up to *max_attempts* times, then recorded as a
    permanent failure; later batches still run.

    Parameters
    ----------
    index:
        Target backend.
    batch_size:
        Maximum records per upsert request.
    max_attempts:
        Total attempts per batch, including the first.
    backoff_initial / backoff_max:
        Exponential backoff bounds in seconds.
    dimension:
        Required vector dimension.  Defaults to ``index.dimension``; when
        neither is set, the first record of each upsert call fixes it.
    rate_limiter:
        Applied before every attempt.
    max_concurrency:
        Number of batch calls in flight at once.
    """

    def __init__(
        self,
        index: VectorIndex,
        *,
        batch_size: int = 100,
        max_attempts: int = 3,
        backoff_initial: float = 1.0,
        backoff_max: float = 30.0,
        dimension: int | None = None,
        rate_limiter: RateLimiter | None = None,
        max_concurrency: int = 1,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.index = index
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.dimension = dimension if dimension is not None else index.dimension
        self._limiter = rate_limiter or unlimited()
        self.max_concurrency = max_concurrency

    # -- public API -----------------------------------------------------------

    def upsert(
        self,
        embedded: Sequence[EmbeddedChunk],
        cancel_event: threading.Event | None = None,
    ) -> UpsertOutcome:
        """Upsert *embedded* and report per-batch outcomes."""
        if not embedded:
            return UpsertOutcome()

        records = [IndexRecord.from_embedded(e) for e in embedded]
        batches = partition(records, self.batch_size)
        expected = self.dimension
        if expected is None:
            expected = len(records[0].feature_vector)
        guard = DimensionGuard(expected)
        logger.info(
            "Upserting %d vectors into %s in %d batches", len(records), self.index.name, len(batches)
        )
        results = dispatch(
            batches,
            partial(self._upsert_batch, guard=guard),
            max_concurrency=self.max_concurrency,
            cancel_event=cancel_event,
            stage="upsert",
        )
        outcome = UpsertOutcome(
            succeeded=sum(r.size for r in results if r.ok),
            batches=results,
        )
        logger.info("Successfully upserted %d out of %d vectors", outcome.succeeded, len(records))
        return outcome

    def delete(self, ids: Sequence[str], *, batch_index: int = 0) -> BatchResult:
        """Delete *ids* with the same retry policy as upserts."""
        if not ids:
            return BatchResult(stage="delete", batch_index=batch_index, size=0, ok=True)
        return self._call_with_retry(
            "delete", batch_index, list(ids), lambda: self.index.delete(list(ids))
        )

    # -- internals ------------------------------------------------------------

    def _upsert_batch(
        self, index: int, batch: list[IndexRecord], *, guard: DimensionGuard
    ) -> BatchResult:
        ids = [r.datapoint_id for r in batch]
        try:
            guard.check(index, [r.feature_vector for r in batch])
        except DimensionMismatchError as error:
            logger.error("Rejecting upsert batch %d: %s", index + 1, error)
            return BatchResult(
                stage="upsert",
                batch_index=index,
                size=len(batch),
                ok=False,
                attempts=0,
                item_ids=ids,
                error=str(error),
                error_kind=error.kind,
            )
        logger.info("Upserting batch %d (%d vectors)", index + 1, len(batch))
        return self._call_with_retry("upsert", index, ids, lambda: self.index.upsert(batch))

    def _call_with_retry(
        self, stage: str, index: int, ids: list[str], call: Callable[[], None]
    ) -> BatchResult:
        attempts = 0
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_initial, max=self.backoff_max),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    self._limiter.acquire()
                    call()
        except Exception as exc:
            error = UpsertBatchError(
                f"{stage.capitalize()} batch {index + 1} failed after {attempts} attempt(s): {exc}",
                batch_index=index,
            )
            logger.error("%s", error, exc_info=exc)
            return BatchResult(
                stage=stage,
                batch_index=index,
                size=len(ids),
                ok=False,
                attempts=attempts,
                item_ids=ids,
                error=str(error),
                error_kind=error.kind,
            )
        logger.debug("%s batch %d succeeded after %d attempt(s)", stage, index + 1, attempts)
        return BatchResult(
            stage=stage, batch_index=index, size=len(ids), ok=True, attempts=attempts, item_ids=ids
        )
