"""In-process vector index, for dry runs and local development."""

from __future__ import annotations

import threading
from collections.abc import Sequence

from drive_sync.index.base import VectorIndex
from drive_sync.models import IndexRecord


class InMemoryIndex(VectorIndex):
    """Dict-backed index keyed by ``datapoint_id``."""

    def __init__(self, name: str = "memory", dimension: int | None = None) -> None:
        super().__init__(name, dimension)
        self._records: dict[str, IndexRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, records: Sequence[IndexRecord]) -> None:
        with self._lock:
            for record in records:
                self._records[record.datapoint_id] = record

    def delete(self, ids: Sequence[str]) -> None:
        with self._lock:
            for datapoint_id in ids:
                self._records.pop(datapoint_id, None)

    def count(self) -> int:
        return len(self._records)

    def get(self, datapoint_id: str) -> IndexRecord | None:
        return self._records.get(datapoint_id)

    def ids(self) -> set[str]:
        return set(self._records)
