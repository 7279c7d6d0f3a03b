"""Source lister — enumerate the documents of the corpus."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterator

from drive_sync.errors import DiscoveryError
from drive_sync.models import SourceDocument
from drive_sync.sources.base import CorpusClient

logger = logging.getLogger(__name__)


class DocumentListing:
    """Lazy, finite, restartable listing of the documents under one root.

    Every call to :func:`iter` starts a fresh paginated listing, so the same
    object can be iterated again to re-discover the corpus.

    Parameters
    ----------
    corpus:
        Backend used for the paginated listing calls.
    root_id:
        Corpus root reference (Drive folder id).
    mime_types:
        Content types pushed down into the listing query.  ``None`` lists
        every non-trashed file.
    predicate:
        Optional client-side filter over the content type.
    page_size:
        Items requested per page.

    Raises
    ------
    DiscoveryError
        From iteration, when any page cannot be fetched or is malformed.
    """

    def __init__(
        self,
        corpus: CorpusClient,
        root_id: str,
        *,
        mime_types: Collection[str] | None = None,
        predicate: Callable[[str], bool] | None = None,
        page_size: int = 100,
    ) -> None:
        if not root_id:
            raise ValueError("root_id cannot be empty")
        self._corpus = corpus
        self.root_id = root_id
        self.mime_types = frozenset(mime_types) if mime_types else None
        self.predicate = predicate
        self.page_size = page_size

    def __iter__(self) -> Iterator[SourceDocument]:
        page_token: str | None = None
        page_number = 0
        while True:
            page_number += 1
            try:
                page = self._corpus.list_page(
                    self.root_id,
                    mime_types=self.mime_types,
                    page_token=page_token,
                    page_size=self.page_size,
                )
            except Exception as exc:
                raise DiscoveryError(
                    f"Failed to list documents under {self.root_id!r} (page {page_number}): {exc}"
                ) from exc

            for document in self._parse_page(page, page_number):
                yield document

            page_token = page.get("nextPageToken")
            if not page_token:
                break

    def _parse_page(self, page: object, page_number: int) -> list[SourceDocument]:
        if not isinstance(page, dict):
            raise DiscoveryError(f"Malformed listing response on page {page_number}: {page!r}")
        documents: list[SourceDocument] = []
        for item in page.get("files") or []:
            try:
                document = SourceDocument(
                    id=item["id"], name=item["name"], content_type=item["mimeType"]
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise DiscoveryError(
                    f"Malformed listing entry on page {page_number}: {item!r}"
                ) from exc
            if item.get("trashed"):
                continue
            if self.predicate is not None and not self.predicate(document.content_type):
                continue
            documents.append(document)
        logger.debug("Listing page %d: %d documents", page_number, len(documents))
        return documents

    def collect(self) -> list[SourceDocument]:
        """Materialise the full listing (fails as a whole on any error)."""
        documents = list(self)
        logger.info("Found %d documents under %s", len(documents), self.root_id)
        return documents
