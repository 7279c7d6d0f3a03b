"""Exception hierarchy for a synchronisation run.

Fatal errors (:class:`DiscoveryError`, :class:`SyncCancelled`) stop the run.
Everything else is scoped to one document or one batch and ends up as a
:class:`~drive_sync.models.RunError` in the run summary.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every error raised by the sync pipeline."""

    kind = "sync"


class ConfigurationError(SyncError):
    """Raised when required settings are missing or inconsistent."""

    kind = "configuration"

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class DiscoveryError(SyncError):
    """The corpus listing could not be completed.  Fatal for the run."""

    kind = "discovery"


class SyncCancelled(SyncError):
    """The run was cancelled cooperatively at a stage boundary."""

    kind = "cancelled"


class DocumentError(SyncError):
    """Failure scoped to a single source document."""

    def __init__(
        self,
        message: str,
        *,
        document_id: str | None = None,
        document_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.document_id = document_id
        self.document_name = document_name


class ExtractionError(DocumentError):
    """Download, export, decode or parse failure for one document."""

    kind = "extraction"


class UnsupportedContentTypeError(DocumentError):
    """No extraction strategy is registered for the document's content type."""

    kind = "unsupported"

    def __init__(self, content_type: str, **kwargs: str | None) -> None:
        super().__init__(f"Unsupported content type: {content_type}", **kwargs)
        self.content_type = content_type


class ChunkingError(DocumentError):
    """The splitter failed on a document's text."""

    kind = "chunking"


class BatchError(SyncError):
    """Failure scoped to one batch of an embedding or upsert stage."""

    def __init__(self, message: str, *, batch_index: int | None = None) -> None:
        super().__init__(message)
        self.batch_index = batch_index


class EmbeddingBatchError(BatchError):
    """An embedding call failed or returned a misaligned response."""

    kind = "embedding"


class UpsertBatchError(BatchError):
    """An index write failed permanently (after retries)."""

    kind = "upsert"


class DimensionMismatchError(BatchError):
    """A vector's length differs from the index's declared dimension."""

    kind = "dimension"

    def __init__(self, expected: int, actual: int, *, batch_index: int | None = None) -> None:
        super().__init__(
            f"Vector dimension {actual} does not match expected dimension {expected}",
            batch_index=batch_index,
        )
        self.expected = expected
        self.actual = actual
