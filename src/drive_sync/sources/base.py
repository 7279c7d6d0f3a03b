"""Abstract base class for corpus back-ends.

The lister and the extraction strategies only talk to this interface, so a
different document store (a local folder, another cloud drive) only needs
to subclass :class:`CorpusClient` and implement the three methods below.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection
from typing import Any


class CorpusClient(ABC):
    """Backend-agnostic access to a paginated, mutable document corpus."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def list_page(
        self,
        root_id: str,
        *,
        mime_types: Collection[str] | None = None,
        page_token: str | None = None,
        page_size: int = 100,
    ) -> dict[str, Any]:
        """Return one page of the listing under *root_id*.

        The result **must** have the shape::

            {"files": [{"id": ..., "name": ..., "mimeType": ..., "trashed": False}, ...],
             "nextPageToken": "<token>" | None}

        Parameters
        ----------
        root_id:
            Corpus root (folder id).
        mime_types:
            When given, only items of these content types are returned.
        page_token:
            Continuation token from the previous page.
        page_size:
            Maximum number of items per page.
        """
        ...

    @abstractmethod
    def export(self, file_id: str, mime_type: str) -> bytes:
        """Export a native document (e.g. a Google Doc) as *mime_type*."""
        ...

    @abstractmethod
    def download(self, file_id: str) -> bytes:
        """Return the raw bytes of a stored file."""
        ...
