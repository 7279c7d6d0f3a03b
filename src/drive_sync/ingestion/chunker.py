"""Text chunking strategies."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from langchain_text_splitters import RecursiveCharacterTextSplitter

from drive_sync.errors import ChunkingError
from drive_sync.models import SourceDocument, TextChunk

logger = logging.getLogger(__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")


class TextChunker:
    """Split normalised text into overlapping, deterministically-numbered chunks.

    Splitting is recursive: paragraphs first, then lines, sentences and
    words, with a hard character cut as the last resort.

    Parameters
    ----------
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of overlapping characters between consecutive chunks.
    separators:
        Split boundaries, in priority order.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 150,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be >= 0 and < chunk_size ({chunk_size})"
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
            separators=list(separators),
        )

    def split(self, text: str) -> list[str]:
        """Return the chunk texts for *text* (``[]`` for empty text)."""
        if not text:
            return []
        return self._splitter.split_text(text)

    def chunk(self, document: SourceDocument, text: str) -> list[TextChunk]:
        """Split *text* and stamp every piece with the document id and its ordinal.

        Raises
        ------
        ChunkingError
            When the splitter fails on this document.
        """
        try:
            pieces = self.split(text)
        except Exception as exc:
            raise ChunkingError(
                f"Failed to chunk {document.name!r} ({document.id}): {exc}",
                document_id=document.id,
                document_name=document.name,
            ) from exc

        chunks = [
            TextChunk(
                document_id=document.id,
                document_name=document.name,
                ordinal=ordinal,
                text=piece,
            )
            for ordinal, piece in enumerate(pieces)
        ]
        logger.info("Created %d chunks for %s", len(chunks), document.name)
        return chunks
