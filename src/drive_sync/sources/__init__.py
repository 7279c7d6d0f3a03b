"""
Sources — access to the external document corpus.

- :class:`CorpusClient` — abstract backend (list / export / download).
- :class:`DriveCorpus` — Google Drive v3 backend.
"""

from drive_sync.sources.base import CorpusClient
from drive_sync.sources.drive import DriveCorpus

__all__ = ["CorpusClient", "DriveCorpus"]
