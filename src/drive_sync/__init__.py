"""
drive_sync — keep a vector search index in sync with a Google Drive folder.

One run lists the folder, extracts and chunks every supported document,
embeds the chunks in batches and upserts them into the index under stable
``<document_id>_chunk_<n>`` ids, so re-running is idempotent.

    from drive_sync.config import settings
    from drive_sync.pipeline import build_pipeline

    summary = build_pipeline(settings).run()
"""

__version__ = "0.1.0"
