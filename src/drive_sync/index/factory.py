"""Build the configured :class:`VectorIndex` backend."""

from __future__ import annotations

from drive_sync.config import Settings
from drive_sync.index.base import VectorIndex


def get_vector_index(settings: Settings) -> VectorIndex:
    """Return the backend selected by ``settings.index_backend``."""
    backend = settings.index_backend
    if backend == "vertexai":
        from drive_sync.index.vertex import VertexAIIndex

        return VertexAIIndex(
            settings.gcp_project_id,
            settings.gcp_region,
            settings.vertex_ai_index_id,
            dimension=settings.embedding_dimension,
        )
    if backend == "chroma":
        from drive_sync.index.chroma_store import ChromaIndex

        return ChromaIndex(
            settings.chroma_collection,
            host=settings.chroma_host,
            port=settings.chroma_port,
            dimension=settings.embedding_dimension,
        )
    if backend == "memory":
        from drive_sync.index.memory import InMemoryIndex

        return InMemoryIndex(dimension=settings.embedding_dimension)
    raise ValueError(
        f"Unsupported index_backend={backend!r}. Choose from: vertexai, chroma, memory."
    )
