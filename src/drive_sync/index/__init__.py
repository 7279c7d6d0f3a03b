"""
Index — writes to the external vector index.

Public surface
--------------
- :class:`VectorIndex` — abstract backend (subclass for other stores).
- :class:`InMemoryIndex` — dict-backed backend for dry runs and tests.
- :class:`IndexWriter` — batched, retried upserts and deletes.
- :class:`ChunkManifest` — per-document chunk counts for stale-id pruning.
- :func:`get_vector_index` — backend factory driven by settings.

``ChromaIndex`` and ``VertexAIIndex`` are imported lazily so their client
libraries are only required when selected.
"""

from drive_sync.index.base import VectorIndex
from drive_sync.index.factory import get_vector_index
from drive_sync.index.manifest import ChunkManifest
from drive_sync.index.memory import InMemoryIndex
from drive_sync.index.writer import IndexWriter, UpsertOutcome

__all__ = [
    "ChromaIndex",
    "ChunkManifest",
    "InMemoryIndex",
    "IndexWriter",
    "UpsertOutcome",
    "VectorIndex",
    "VertexAIIndex",
    "get_vector_index",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import optional backends to avoid pulling in their SDKs at import time."""
    if name == "ChromaIndex":
        from drive_sync.index.chroma_store import ChromaIndex

        return ChromaIndex
    if name == "VertexAIIndex":
        from drive_sync.index.vertex import VertexAIIndex

        return VertexAIIndex
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
