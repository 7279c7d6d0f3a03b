"""Chroma implementation of the vector-index abstraction."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from drive_sync.index.base import VectorIndex
from drive_sync.models import IndexRecord

logger = logging.getLogger(__name__)


def _flat_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    # Chroma metadata values must be flat str/int/float/bool
    return {k: v for k, v in metadata.items() if isinstance(v, (str, int, float, bool))}


class ChromaIndex(VectorIndex):
    """Chroma-backed index; ``collection.upsert`` overwrites by id.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host / port:
        Chroma server location.
    distance_metric:
        ``cosine`` | ``l2`` | ``ip``, applied when the collection is created.
    """

    def __init__(
        self,
        collection_name: str,
        *,
        host: str = "localhost",
        port: int = 8000,
        distance_metric: str = "cosine",
        dimension: int | None = None,
    ) -> None:
        import chromadb

        super().__init__(collection_name, dimension)
        self._client = chromadb.HttpClient(host=host, port=port)
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": distance_metric},
        )

    def upsert(self, records: Sequence[IndexRecord]) -> None:
        if not records:
            return
        kwargs: dict[str, Any] = {
            "ids": [r.datapoint_id for r in records],
            "embeddings": [r.feature_vector for r in records],
            "documents": [r.text or "" for r in records],
        }
        metadatas = [_flat_metadata(r.metadata) for r in records]
        if all(metadatas):
            kwargs["metadatas"] = metadatas
        self._collection.upsert(**kwargs)

    def delete(self, ids: Sequence[str]) -> None:
        if ids:
            self._collection.delete(ids=list(ids))

    def count(self) -> int:
        return self._collection.count()
