"""Domain models flowing between the pipeline stages."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CHUNK_ID_SEPARATOR = "_chunk_"


def make_chunk_id(document_id: str, ordinal: int) -> str:
    """Return the stable datapoint id for chunk *ordinal* of *document_id*.

    The id depends on nothing else, so re-syncing an unchanged document
    overwrites its previous records instead of duplicating them.
    """
    return f"{document_id}{CHUNK_ID_SEPARATOR}{ordinal}"


class SourceDocument(BaseModel):
    """Reference to one item of the external corpus."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    content_type: str


class TextChunk(BaseModel):
    """A window of a document's normalised text."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    document_name: str = ""
    ordinal: int = Field(ge=0)
    text: str

    @property
    def chunk_id(self) -> str:
        return make_chunk_id(self.document_id, self.ordinal)


class EmbeddedChunk(BaseModel):
    """A chunk id paired with the vector produced for its text."""

    chunk_id: str
    vector: list[float]
    text: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_chunk(cls, chunk: TextChunk, vector: list[float]) -> EmbeddedChunk:
        return cls(
            chunk_id=chunk.chunk_id,
            vector=vector,
            text=chunk.text,
            metadata={
                "document_id": chunk.document_id,
                "document_name": chunk.document_name,
                "ordinal": chunk.ordinal,
            },
        )


class IndexRecord(BaseModel):
    """The unit of persistence in the vector index, keyed by ``datapoint_id``."""

    datapoint_id: str
    feature_vector: list[float]
    text: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_embedded(cls, embedded: EmbeddedChunk) -> IndexRecord:
        return cls(
            datapoint_id=embedded.chunk_id,
            feature_vector=embedded.vector,
            text=embedded.text or None,
            metadata=embedded.metadata,
        )


class BatchResult(BaseModel):
    """Outcome of one batched call: success with its ids, or failure with a cause."""

    stage: str
    batch_index: int
    size: int
    ok: bool
    attempts: int = 1
    item_ids: list[str] = Field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None


# ── run summary ──────────────────────────────────────────────────────


class RunStatus(str, Enum):
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class RunState(str, Enum):
    STARTED = "started"
    LISTING = "listing"
    PER_DOCUMENT_PROCESSING = "per_document_processing"
    EMBEDDING = "embedding"
    UPSERTING = "upserting"
    COMPLETED = "completed"
    FAILED = "failed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SkippedDocument(_CamelModel):
    id: str
    name: str = ""
    reason: str


class RunError(_CamelModel):
    """One non-fatal (or the single fatal) error recorded during a run."""

    kind: str
    message: str
    document_id: str | None = None
    document_name: str | None = None
    batch_index: int | None = None


class RunSummary(_CamelModel):
    """Structured result of one synchronisation run.

    Serialised with camelCase keys (``model_dump(by_alias=True)``) for the
    trigger response.
    """

    status: RunStatus = RunStatus.COMPLETED
    documents_discovered: int = 0
    documents_processed: int = 0
    documents_skipped: list[SkippedDocument] = Field(default_factory=list)
    chunks_generated: int = 0
    chunks_embedded: int = 0
    records_upserted: int = 0
    records_deleted: int = 0
    errors: list[RunError] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    duration_seconds: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is not RunStatus.FAILED

    def to_response(self) -> dict[str, Any]:
        """Return the JSON-ready camelCase payload for trigger callers."""
        return self.model_dump(mode="json", by_alias=True)
