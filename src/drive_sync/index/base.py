"""Abstract base class for vector-index backends.

Adding a new backend only requires subclassing :class:`VectorIndex` and
implementing :meth:`upsert` and :meth:`delete`.  Every backend **must**
overwrite by id: writing the same ``(datapoint_id, feature_vector)`` twice
leaves the index exactly as writing it once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from drive_sync.models import IndexRecord


class VectorIndex(ABC):
    """Backend-agnostic write interface to a vector index.

    Parameters
    ----------
    name:
        Logical name of the index / collection.
    dimension:
        Declared vector dimension, when the backend fixes one.
    """

    def __init__(self, name: str, dimension: int | None = None) -> None:
        self.name = name
        self.dimension = dimension

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def upsert(self, records: Sequence[IndexRecord]) -> None:
        """Insert or overwrite *records* by ``datapoint_id`` in one call."""
        ...

    @abstractmethod
    def delete(self, ids: Sequence[str]) -> None:
        """Remove datapoints by id.  Unknown ids are ignored."""
        ...

    # -- optional overrides ---------------------------------------------------

    def count(self) -> int:
        """Number of datapoints currently stored.  Optional — raises by default."""
        raise NotImplementedError(f"{type(self).__name__} does not support count")
