"""
Ingestion — listing, extraction, chunking and embedding.

This module turns the documents of the corpus into embedded chunks ready
for the index writer:

    DocumentListing → ContentExtractor → TextChunker → Embedder
"""

from drive_sync.ingestion.chunker import TextChunker
from drive_sync.ingestion.embedder import Embedder, EmbeddingOutcome, get_embedding_function
from drive_sync.ingestion.extractor import ContentExtractor, ExtractionStrategy, normalise_text
from drive_sync.ingestion.lister import DocumentListing

__all__ = [
    "ContentExtractor",
    "DocumentListing",
    "Embedder",
    "EmbeddingOutcome",
    "ExtractionStrategy",
    "TextChunker",
    "get_embedding_function",
    "normalise_text",
]
