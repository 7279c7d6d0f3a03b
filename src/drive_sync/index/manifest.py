"""Per-document chunk-count manifest used to prune stale trailing chunks.

Chunk ids are ``<document_id>_chunk_<ordinal>``, so when a document shrinks
from *n* to *m* chunks the records for ordinals ``m..n-1`` are no longer
overwritten by a re-sync.  The manifest remembers *n* from the previous
run so those ids can be deleted explicitly.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from drive_sync.models import make_chunk_id

logger = logging.getLogger(__name__)


class ChunkManifest:
    """JSON file mapping ``document_id -> chunk count`` from the last run."""

    def __init__(self, path: str | Path, counts: dict[str, int] | None = None) -> None:
        self.path = Path(path)
        self.counts: dict[str, int] = dict(counts or {})

    @classmethod
    def load(cls, path: str | Path) -> ChunkManifest:
        """Read the manifest at *path*; a missing file yields an empty manifest.

        Raises
        ------
        ValueError
            When the file is not a ``{"documents": {id: count}}`` object.
        """
        path = Path(path)
        if not path.exists():
            logger.info("No chunk manifest at %s; starting empty", path)
            return cls(path)
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        counts = data.get("documents", {}) if isinstance(data, dict) else None
        if not isinstance(counts, dict):
            raise ValueError(f"Malformed chunk manifest {path}: expected a \"documents\" object")
        for document_id, count in counts.items():
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise ValueError(
                    f"Malformed chunk manifest {path}: bad count {count!r} for {document_id!r}"
                )
        return cls(path, dict(counts))

    def stale_ids(self, document_id: str, new_count: int) -> list[str]:
        """Ids written by the previous run beyond the document's new chunk count."""
        previous = self.counts.get(document_id, 0)
        return [make_chunk_id(document_id, ordinal) for ordinal in range(new_count, previous)]

    def record(self, document_id: str, count: int) -> None:
        self.counts[document_id] = count

    def save(self) -> None:
        """Write atomically (temp file + rename) so a crash never truncates it."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".manifest-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump({"documents": self.counts}, fh, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
