"""Batch partitioning and bounded-concurrency dispatch shared by the network stages."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from drive_sync.errors import DimensionMismatchError, SyncCancelled

T = TypeVar("T")
R = TypeVar("R")


def partition(
    items: Sequence[T],
    max_items: int,
    *,
    max_bytes: int | None = None,
    size_of: Callable[[T], int] | None = None,
) -> list[list[T]]:
    """Split *items* into consecutive batches, preserving order.

    A batch holds at most *max_items* items and, when *max_bytes* is given,
    at most that many bytes as measured by *size_of*.  An item that alone
    exceeds *max_bytes* is placed in a batch of its own.
    """
    if max_items < 1:
        raise ValueError(f"max_items must be >= 1, got {max_items}")
    if max_bytes is not None and size_of is None:
        raise ValueError("size_of is required when max_bytes is set")

    batches: list[list[T]] = []
    current: list[T] = []
    current_bytes = 0
    for item in items:
        item_bytes = size_of(item) if max_bytes is not None else 0
        full = len(current) >= max_items
        too_big = max_bytes is not None and current and current_bytes + item_bytes > max_bytes
        if full or too_big:
            batches.append(current)
            current, current_bytes = [], 0
        current.append(item)
        current_bytes += item_bytes
    if current:
        batches.append(current)
    return batches


def dispatch(
    batches: Sequence[T],
    call: Callable[[int, T], R],
    *,
    max_concurrency: int = 1,
    cancel_event: threading.Event | None = None,
    stage: str = "batch",
) -> list[R]:
    """Run ``call(index, batch)`` for every batch; results keep batch order.

    At most *max_concurrency* calls are in flight.  Cancellation is checked
    before each window of calls is issued.  *call* is expected to capture
    its own failures in its return value.
    """
    results: list[R] = []
    window = max(1, max_concurrency)
    executor = ThreadPoolExecutor(max_workers=window) if window > 1 else None
    try:
        for start in range(0, len(batches), window):
            if cancel_event is not None and cancel_event.is_set():
                raise SyncCancelled(f"Cancelled before {stage} batch {start}")
            chunk = list(enumerate(batches[start : start + window], start))
            if executor is None:
                results.extend(call(index, batch) for index, batch in chunk)
            else:
                futures = [executor.submit(call, index, batch) for index, batch in chunk]
                results.extend(f.result() for f in futures)
    finally:
        if executor is not None:
            executor.shutdown(wait=True)
    return results


class DimensionGuard:
    """Per-run vector dimension check shared by the batches of one stage.

    When *expected* is ``None`` the first vector checked fixes it.  A new
    guard is created for every run, so nothing carries over between runs.
    """

    def __init__(self, expected: int | None = None) -> None:
        self.expected = expected
        self._lock = threading.Lock()

    def check(self, batch_index: int, vectors: Sequence[Sequence[float]]) -> None:
        """Raise :class:`DimensionMismatchError` on the first vector of the wrong length."""
        with self._lock:
            for vector in vectors:
                if self.expected is None:
                    self.expected = len(vector)
                if len(vector) != self.expected:
                    raise DimensionMismatchError(
                        self.expected, len(vector), batch_index=batch_index
                    )
