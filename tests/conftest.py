"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Collection
from typing import Any

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding, Embeddings

from drive_sync.sources.base import CorpusClient


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ───────────────────────────────────────────────────────────────


class FakeCorpus(CorpusClient):
    """In-memory corpus.

    Each file is a dict with ``id``, ``name``, ``mimeType`` and ``content``
    (bytes, or an exception instance to raise on download/export).  Pages
    honour *page_size* and use the offset as the continuation token.
    """

    def __init__(self, files: list[dict[str, Any]] | None = None) -> None:
        self.files: list[dict[str, Any]] = list(files or [])
        self.list_calls: list[dict[str, Any]] = []
        self.export_calls: list[tuple[str, str]] = []
        self.download_calls: list[str] = []
        self.list_error: Exception | None = None

    def list_page(
        self,
        root_id: str,
        *,
        mime_types: Collection[str] | None = None,
        page_token: str | None = None,
        page_size: int = 100,
    ) -> dict[str, Any]:
        self.list_calls.append(
            {"root_id": root_id, "mime_types": mime_types, "page_token": page_token}
        )
        if self.list_error is not None:
            raise self.list_error
        items = [f for f in self.files if not mime_types or f["mimeType"] in mime_types]
        start = int(page_token or 0)
        page = items[start : start + page_size]
        end = start + page_size
        return {
            "files": [{k: v for k, v in f.items() if k != "content"} for f in page],
            "nextPageToken": str(end) if end < len(items) else None,
        }

    def _content(self, file_id: str) -> bytes:
        for f in self.files:
            if f["id"] == file_id:
                content = f.get("content", b"")
                if isinstance(content, Exception):
                    raise content
                return content
        raise FileNotFoundError(file_id)

    def export(self, file_id: str, mime_type: str) -> bytes:
        self.export_calls.append((file_id, mime_type))
        return self._content(file_id)

    def download(self, file_id: str) -> bytes:
        self.download_calls.append(file_id)
        return self._content(file_id)


class RecordingEmbeddings(Embeddings):
    """Deterministic embeddings that record every call and can fail on demand."""

    def __init__(self, size: int = 8, fail_on_calls: Collection[int] = ()) -> None:
        self._inner = DeterministicFakeEmbedding(size=size)
        self.fail_on_calls = set(fail_on_calls)
        self.calls: list[list[str]] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if len(self.calls) - 1 in self.fail_on_calls:
            raise RuntimeError("embedding service unavailable")
        return self._inner.embed_documents(texts)

    def embed_query(self, text: str) -> list[float]:
        return self._inner.embed_query(text)


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def corpus_factory() -> type[FakeCorpus]:
    return FakeCorpus


@pytest.fixture()
def embeddings_factory() -> type[RecordingEmbeddings]:
    return RecordingEmbeddings
