"""Unit tests for the document listing."""

from __future__ import annotations

from typing import Any

import pytest

from drive_sync.errors import DiscoveryError
from drive_sync.ingestion.lister import DocumentListing
from drive_sync.models import SourceDocument


def _files(n: int, mime: str = "text/plain") -> list[dict[str, Any]]:
    return [{"id": f"f{i}", "name": f"file{i}.txt", "mimeType": mime} for i in range(n)]


class TestDocumentListing:
    def test_follows_pagination(self, corpus_factory) -> None:
        corpus = corpus_factory(_files(7))
        docs = DocumentListing(corpus, "root", page_size=3).collect()
        assert [d.id for d in docs] == [f"f{i}" for i in range(7)]
        assert [c["page_token"] for c in corpus.list_calls] == [None, "3", "6"]

    def test_yields_source_documents(self, corpus_factory) -> None:
        corpus = corpus_factory(_files(1, mime="application/pdf"))
        (doc,) = list(DocumentListing(corpus, "root"))
        assert doc == SourceDocument(id="f0", name="file0.txt", content_type="application/pdf")

    def test_is_restartable(self, corpus_factory) -> None:
        corpus = corpus_factory(_files(4))
        listing = DocumentListing(corpus, "root", page_size=2)
        first = listing.collect()
        corpus.files.append({"id": "new", "name": "new.txt", "mimeType": "text/plain"})
        second = listing.collect()
        assert len(first) == 4
        assert [d.id for d in second][-1] == "new"

    def test_skips_trashed_items(self, corpus_factory) -> None:
        files = _files(3)
        files[1]["trashed"] = True
        docs = DocumentListing(corpus_factory(files), "root").collect()
        assert [d.id for d in docs] == ["f0", "f2"]

    def test_mime_types_are_pushed_down(self, corpus_factory) -> None:
        corpus = corpus_factory(_files(2) + _files(1, mime="image/png"))
        listing = DocumentListing(corpus, "root", mime_types=["text/plain"])
        assert len(listing.collect()) == 2
        assert corpus.list_calls[0]["mime_types"] == frozenset({"text/plain"})

    def test_predicate_filters_client_side(self, corpus_factory) -> None:
        corpus = corpus_factory(_files(2) + _files(1, mime="image/png"))
        listing = DocumentListing(corpus, "root", predicate=lambda ct: ct.startswith("image/"))
        assert [d.content_type for d in listing] == ["image/png"]

    def test_empty_folder(self, corpus_factory) -> None:
        assert DocumentListing(corpus_factory(), "root").collect() == []

    def test_empty_root_rejected(self, corpus_factory) -> None:
        with pytest.raises(ValueError):
            DocumentListing(corpus_factory(), "")

    def test_listing_failure_raises_discovery_error(self, corpus_factory) -> None:
        corpus = corpus_factory(_files(2))
        corpus.list_error = PermissionError("403 forbidden")
        with pytest.raises(DiscoveryError, match="403 forbidden") as excinfo:
            DocumentListing(corpus, "root").collect()
        assert isinstance(excinfo.value.__cause__, PermissionError)

    def test_malformed_entry_raises_discovery_error(self, corpus_factory) -> None:
        corpus = corpus_factory([{"id": "f0", "mimeType": "text/plain"}])
        with pytest.raises(DiscoveryError, match="Malformed listing entry"):
            DocumentListing(corpus, "root").collect()

    def test_malformed_page_raises_discovery_error(self, corpus_factory) -> None:
        corpus = corpus_factory()
        corpus.list_page = lambda *a, **kw: ["not", "a", "page"]  # type: ignore[method-assign]
        with pytest.raises(DiscoveryError, match="Malformed listing response"):
            DocumentListing(corpus, "root").collect()
