"""Sync orchestrator — one run of corpus → chunks → vectors → index.

Usage::

    from drive_sync.config import settings
    from drive_sync.pipeline import build_pipeline

    summary = build_pipeline(settings).run()
    print(summary.status, summary.records_upserted)

The run moves through ``started → listing → per_document_processing →
embedding → upserting → completed | failed``.  Only a listing failure, a
cancellation or an unexpected error ends in ``failed``; per-document and
per-batch failures are recorded in the summary and the run carries on.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from drive_sync.config import Settings
from drive_sync.errors import (
    ConfigurationError,
    DiscoveryError,
    DocumentError,
    SyncCancelled,
    SyncError,
    UnsupportedContentTypeError,
)
from drive_sync.index.base import VectorIndex
from drive_sync.index.factory import get_vector_index
from drive_sync.index.manifest import ChunkManifest
from drive_sync.index.writer import IndexWriter
from drive_sync.ingestion.chunker import TextChunker
from drive_sync.ingestion.embedder import Embedder, get_embedding_function
from drive_sync.ingestion.extractor import ContentExtractor
from drive_sync.ingestion.lister import DocumentListing
from drive_sync.models import (
    BatchResult,
    RunError,
    RunState,
    RunStatus,
    RunSummary,
    SkippedDocument,
    SourceDocument,
    TextChunk,
)
from drive_sync.sources.base import CorpusClient
from drive_sync.throttle import RateLimiter

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)

UNSUPPORTED_REASON = "unsupported type"


@dataclass
class DocumentResult:
    """What per-document processing produced for one document."""

    document: SourceDocument
    chunks: list[TextChunk] = field(default_factory=list)
    skip_reason: str | None = None
    error: DocumentError | None = None

    @property
    def processed(self) -> bool:
        return self.skip_reason is None


class SyncPipeline:
    """Sequence the stages of one synchronisation run.

    Every collaborator is constructed by the caller (see
    :func:`build_pipeline`) and passed in, so tests can substitute fakes.

    Parameters
    ----------
    listing:
        Restartable document listing for the corpus root.
    extractor / chunker / embedder / writer:
        The per-stage workers.
    extract_workers:
        Size of the per-document worker pool.
    manifest_path:
        When set, stale trailing chunk ids are pruned using the chunk-count
        manifest stored at this path.
    """

    def __init__(
        self,
        *,
        listing: DocumentListing,
        extractor: ContentExtractor,
        chunker: TextChunker,
        embedder: Embedder,
        writer: IndexWriter,
        extract_workers: int = 4,
        manifest_path: str | Path | None = None,
    ) -> None:
        self.listing = listing
        self.extractor = extractor
        self.chunker = chunker
        self.embedder = embedder
        self.writer = writer
        self.extract_workers = max(1, extract_workers)
        self.manifest_path = Path(manifest_path) if manifest_path else None

    # -- public API -----------------------------------------------------------

    def run(self, cancel_event: threading.Event | None = None) -> RunSummary:
        """Execute one run and return its summary.

        Never raises: a listing failure, a cancellation or an unexpected error
        ends the run in ``failed`` with the cause recorded in the summary.
        All per-run state lives in this call, so one pipeline may serve
        successive runs.
        """
        t0 = time.monotonic()
        summary = RunSummary()
        state = RunState.STARTED
        logger.info("Starting sync run")

        try:
            state = _transition(state, RunState.LISTING)
            documents = self.listing.collect()
            summary.documents_discovered = len(documents)

            state = _transition(state, RunState.PER_DOCUMENT_PROCESSING)
            results = self._process_documents(documents, cancel_event)
            chunks = self._collect(results, summary)

            state = _transition(state, RunState.EMBEDDING)
            embedding = self.embedder.embed(chunks, cancel_event)
            summary.chunks_embedded = len(embedding.embedded)
            self._record_batches(embedding.failures, summary)

            state = _transition(state, RunState.UPSERTING)
            upserted = self.writer.upsert(embedding.embedded, cancel_event)
            summary.records_upserted = upserted.succeeded
            self._record_batches(upserted.failures, summary)

            if self.manifest_path is not None:
                self._prune_stale_chunks(results, summary)
        except (DiscoveryError, SyncCancelled) as exc:
            logger.error("Sync run failed: %s", exc, exc_info=exc)
            summary.errors.append(RunError(kind=exc.kind, message=str(exc)))
            summary.status = RunStatus.FAILED
            state = _transition(state, RunState.FAILED)
        except Exception as exc:
            logger.error(
                "Sync run aborted by unexpected error in %s: %s", state.value, exc, exc_info=exc
            )
            summary.errors.append(
                RunError(kind="internal", message=f"Unexpected error during {state.value}: {exc}")
            )
            summary.status = RunStatus.FAILED
            state = _transition(state, RunState.FAILED)
        else:
            summary.status = (
                RunStatus.COMPLETED_WITH_ERRORS if summary.errors else RunStatus.COMPLETED
            )
            state = _transition(state, RunState.COMPLETED)

        summary.finished_at = datetime.now(timezone.utc)
        summary.duration_seconds = round(time.monotonic() - t0, 3)
        logger.info(
            "Sync %s: %d discovered, %d processed, %d skipped, %d chunks, "
            "%d embedded, %d upserted, %d errors in %.1fs",
            summary.status.value,
            summary.documents_discovered,
            summary.documents_processed,
            len(summary.documents_skipped),
            summary.chunks_generated,
            summary.chunks_embedded,
            summary.records_upserted,
            len(summary.errors),
            summary.duration_seconds,
        )
        return summary

    # -- stages ---------------------------------------------------------------

    def _process_documents(
        self,
        documents: list[SourceDocument],
        cancel_event: threading.Event | None,
    ) -> list[DocumentResult]:
        def work(document: SourceDocument) -> DocumentResult | None:
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self._process_one(document)

        if self.extract_workers == 1 or len(documents) <= 1:
            results = [work(d) for d in documents]
        else:
            with ThreadPoolExecutor(
                max_workers=self.extract_workers, thread_name_prefix="extract"
            ) as pool:
                results = list(pool.map(work, documents))

        if cancel_event is not None and cancel_event.is_set():
            done = sum(r is not None for r in results)
            raise SyncCancelled(f"Cancelled after processing {done} of {len(documents)} documents")
        return [r for r in results if r is not None]

    def _process_one(self, document: SourceDocument) -> DocumentResult:
        if not self.extractor.supports(document.content_type):
            logger.warning(
                "Skipping unsupported file type: %s for %s", document.content_type, document.name
            )
            return DocumentResult(document, skip_reason=UNSUPPORTED_REASON)
        try:
            text = self.extractor.extract(document)
            chunks = self.chunker.chunk(document, text)
        except UnsupportedContentTypeError:
            return DocumentResult(document, skip_reason=UNSUPPORTED_REASON)
        except DocumentError as exc:
            logger.warning("Skipped processing %s: %s", document.name, exc, exc_info=exc)
            return DocumentResult(document, skip_reason=str(exc), error=exc)
        return DocumentResult(document, chunks=chunks)

    def _collect(self, results: list[DocumentResult], summary: RunSummary) -> list[TextChunk]:
        chunks: list[TextChunk] = []
        for result in results:
            doc = result.document
            if result.processed:
                summary.documents_processed += 1
                chunks.extend(result.chunks)
                continue
            summary.documents_skipped.append(
                SkippedDocument(id=doc.id, name=doc.name, reason=result.skip_reason or "")
            )
            if result.error is not None:
                summary.errors.append(
                    RunError(
                        kind=result.error.kind,
                        message=str(result.error),
                        document_id=doc.id,
                        document_name=doc.name,
                    )
                )
        summary.chunks_generated = len(chunks)
        logger.info(
            "Processed %d documents, generated %d chunks", summary.documents_processed, len(chunks)
        )
        return chunks

    def _record_batches(self, failures: list[BatchResult], summary: RunSummary) -> None:
        for failure in failures:
            summary.errors.append(
                RunError(
                    kind=failure.error_kind or failure.stage,
                    message=failure.error or f"{failure.stage} batch failed",
                    batch_index=failure.batch_index,
                )
            )

    def _prune_stale_chunks(self, results: list[DocumentResult], summary: RunSummary) -> None:
        try:
            manifest = ChunkManifest.load(self.manifest_path)
        except (OSError, ValueError) as exc:
            logger.error("Cannot read chunk manifest %s: %s", self.manifest_path, exc)
            summary.errors.append(RunError(kind="manifest", message=f"Cannot read manifest: {exc}"))
            return

        for batch_index, result in enumerate(r for r in results if r.processed):
            doc_id = result.document.id
            count = len(result.chunks)
            stale = manifest.stale_ids(doc_id, count)
            if not stale:
                manifest.record(doc_id, count)
                continue
            outcome = self.writer.delete(stale, batch_index=batch_index)
            if outcome.ok:
                summary.records_deleted += len(stale)
                manifest.record(doc_id, count)
                logger.info("Pruned %d stale chunks of %s", len(stale), result.document.name)
            else:
                summary.errors.append(
                    RunError(
                        kind="prune",
                        message=outcome.error or "delete failed",
                        document_id=doc_id,
                        document_name=result.document.name,
                    )
                )

        try:
            manifest.save()
        except OSError as exc:
            logger.error("Cannot write chunk manifest %s: %s", self.manifest_path, exc)
            summary.errors.append(RunError(kind="manifest", message=f"Cannot write manifest: {exc}"))


def _transition(current: RunState, new: RunState) -> RunState:
    logger.info("Sync state: %s → %s", current.value, new.value)
    return new


def build_pipeline(
    settings: Settings,
    *,
    corpus: CorpusClient | None = None,
    embeddings: Embeddings | None = None,
    index: VectorIndex | None = None,
) -> SyncPipeline:
    """Construct every client once from *settings* and wire them into a pipeline.

    Any of *corpus*, *embeddings* or *index* may be supplied to replace the
    configured backend.

    Raises
    ------
    ConfigurationError
        When settings required by the selected backends are missing.
    """
    missing = settings.missing_for_sync()
    if index is not None:
        missing = [name for name in missing if name != "vertex_ai_index_id"]
    if embeddings is not None and index is not None:
        missing = [name for name in missing if name not in ("gcp_project_id", "gcp_region")]
    if missing:
        raise ConfigurationError(
            f"Missing required configuration keys: {', '.join(missing)}", missing=missing
        )

    try:
        if corpus is None:
            from drive_sync.sources.drive import DriveCorpus

            corpus = DriveCorpus.from_settings(
                settings, rate_limiter=RateLimiter(settings.drive_requests_per_second)
            )
        if embeddings is None:
            embeddings = get_embedding_function(settings)
        if index is None:
            index = get_vector_index(settings)
    except SyncError:
        raise
    except Exception as exc:
        raise ConfigurationError(f"Failed to initialise clients: {exc}") from exc

    extractor = ContentExtractor(corpus)
    listing = DocumentListing(
        corpus,
        settings.google_drive_folder_id,
        mime_types=None if settings.record_unsupported else extractor.supported_types,
        page_size=settings.listing_page_size,
    )
    return SyncPipeline(
        listing=listing,
        extractor=extractor,
        chunker=TextChunker(settings.chunk_size, settings.chunk_overlap),
        embedder=Embedder(
            embeddings,
            batch_size=settings.embed_batch_size,
            max_batch_bytes=settings.embed_max_batch_bytes,
            dimension=settings.embedding_dimension,
            rate_limiter=RateLimiter(settings.embed_requests_per_second),
            max_concurrency=settings.batch_concurrency,
        ),
        writer=IndexWriter(
            index,
            batch_size=settings.upsert_batch_size,
            max_attempts=settings.upsert_max_attempts,
            backoff_initial=settings.upsert_backoff_seconds,
            backoff_max=settings.upsert_backoff_max_seconds,
            dimension=settings.embedding_dimension,
            rate_limiter=RateLimiter(settings.upsert_requests_per_second),
            max_concurrency=settings.batch_concurrency,
        ),
        extract_workers=settings.extract_workers,
        manifest_path=settings.manifest_path if settings.prune_stale_chunks else None,
    )
