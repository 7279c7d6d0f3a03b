"""Content extraction — turn one corpus document into normalised text.

Extraction is a dispatch table keyed by content type.  Each entry is an
:class:`ExtractionStrategy`; supporting a new format means registering one
more strategy, nothing else changes.

=======================================  ======================
Content type                              Strategy
=======================================  ======================
``application/vnd.google-apps.document``  :class:`ExportStrategy`
``text/plain``, ``text/markdown``         :class:`PlainTextStrategy`
``application/pdf``                       :class:`PdfStrategy`
=======================================  ======================
"""

from __future__ import annotations

import io
import logging
import re
import unicodedata
from abc import ABC, abstractmethod

from drive_sync.errors import ExtractionError, UnsupportedContentTypeError
from drive_sync.models import SourceDocument
from drive_sync.sources.base import CorpusClient

logger = logging.getLogger(__name__)

GOOGLE_DOC = "application/vnd.google-apps.document"
PLAIN_TEXT = "text/plain"
MARKDOWN = "text/markdown"
PDF = "application/pdf"


def normalise_text(text: str) -> str:
    """Unicode NFC, LF line endings, collapsed whitespace, no control chars."""
    text = unicodedata.normalize("NFC", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    text = re.sub(r"[^\S\n]+", " ", text)  # collapse spaces (keep \n)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def decode_utf8(payload: bytes) -> str:
    """Strict UTF-8 decode that drops a leading byte-order mark."""
    return payload.decode("utf-8-sig")


class ExtractionStrategy(ABC):
    """Turns one document of a given content type into raw text."""

    @abstractmethod
    def extract(self, corpus: CorpusClient, document: SourceDocument) -> str:
        ...


class ExportStrategy(ExtractionStrategy):
    """Native documents exported by the corpus as plain text."""

    def __init__(self, export_mime_type: str = PLAIN_TEXT) -> None:
        self.export_mime_type = export_mime_type

    def extract(self, corpus: CorpusClient, document: SourceDocument) -> str:
        return decode_utf8(corpus.export(document.id, self.export_mime_type))


class PlainTextStrategy(ExtractionStrategy):
    """Plain text and Markdown files, downloaded as-is."""

    def extract(self, corpus: CorpusClient, document: SourceDocument) -> str:
        return decode_utf8(corpus.download(document.id))


class PdfStrategy(ExtractionStrategy):
    """Binary PDFs, parsed page by page with ``pypdf``."""

    def extract(self, corpus: CorpusClient, document: SourceDocument) -> str:
        from pypdf import PdfReader

        reader = PdfReader(io.BytesIO(corpus.download(document.id)))
        pages = [(page.extract_text() or "").strip() for page in reader.pages]
        return "\n\n".join(page for page in pages if page)


def default_strategies() -> dict[str, ExtractionStrategy]:
    text = PlainTextStrategy()
    return {
        GOOGLE_DOC: ExportStrategy(PLAIN_TEXT),
        PLAIN_TEXT: text,
        MARKDOWN: text,
        PDF: PdfStrategy(),
    }


class ContentExtractor:
    """Dispatch a :class:`SourceDocument` to the strategy for its content type.

    Parameters
    ----------
    corpus:
        Backend the strategies download from.
    strategies:
        ``content_type -> strategy`` table.  Defaults to
        :func:`default_strategies`.
    """

    def __init__(
        self,
        corpus: CorpusClient,
        strategies: dict[str, ExtractionStrategy] | None = None,
    ) -> None:
        self._corpus = corpus
        self._strategies = dict(strategies if strategies is not None else default_strategies())

    @property
    def supported_types(self) -> frozenset[str]:
        return frozenset(self._strategies)

    def supports(self, content_type: str) -> bool:
        return content_type in self._strategies

    def register(self, content_type: str, strategy: ExtractionStrategy) -> None:
        self._strategies[content_type] = strategy

    def extract(self, document: SourceDocument) -> str:
        """Return the normalised text of *document*.

        An empty-but-valid document yields ``""``.

        Raises
        ------
        UnsupportedContentTypeError
            When no strategy is registered for the content type.
        ExtractionError
            On download, decode or parse failure.
        """
        strategy = self._strategies.get(document.content_type)
        if strategy is None:
            raise UnsupportedContentTypeError(
                document.content_type, document_id=document.id, document_name=document.name
            )

        logger.info("Extracting %s (%s)", document.name, document.content_type)
        try:
            raw = strategy.extract(self._corpus, document)
        except Exception as exc:
            raise ExtractionError(
                f"Failed to extract {document.name!r} ({document.id}): {exc}",
                document_id=document.id,
                document_name=document.name,
            ) from exc
        return normalise_text(raw)
