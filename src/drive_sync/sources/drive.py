"""Google Drive v3 implementation of the corpus abstraction."""

from __future__ import annotations

import json
import logging
from collections.abc import Collection
from typing import Any

from drive_sync.config import Settings
from drive_sync.errors import ConfigurationError
from drive_sync.sources.base import CorpusClient
from drive_sync.throttle import RateLimiter, unlimited

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.readonly"]
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
LIST_FIELDS = "nextPageToken, files(id, name, mimeType, trashed)"


def build_query(root_id: str, mime_types: Collection[str] | None = None) -> str:
    """Build the Drive ``q`` expression for non-trashed children of *root_id*."""
    clauses = [f"'{root_id}' in parents", "trashed = false", f"mimeType != '{FOLDER_MIME_TYPE}'"]
    if mime_types:
        type_query = " or ".join(f"mimeType='{mt}'" for mt in sorted(mime_types))
        clauses.append(f"({type_query})")
    return " and ".join(clauses)


def load_credentials(settings: Settings) -> Any:
    """Return Drive credentials from the configured key, or ADC when none is set."""
    import google.auth
    from google.oauth2 import service_account

    if settings.drive_service_account_key:
        try:
            info = json.loads(settings.drive_service_account_key)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                "drive_service_account_key does not contain valid JSON"
            ) from exc
        return service_account.Credentials.from_service_account_info(info, scopes=DRIVE_SCOPES)
    if settings.drive_service_account_key_path:
        return service_account.Credentials.from_service_account_file(
            settings.drive_service_account_key_path, scopes=DRIVE_SCOPES
        )
    logger.warning("No Drive service-account key configured; using application default credentials")
    credentials, _ = google.auth.default(scopes=DRIVE_SCOPES)
    return credentials


class DriveCorpus(CorpusClient):
    """Corpus backed by a Google Drive folder.

    Parameters
    ----------
    service:
        A ``googleapiclient`` Drive v3 resource.  Use :meth:`from_settings`
        to build an authenticated one.
    rate_limiter:
        Shared limiter applied to every Drive request.
    """

    def __init__(self, service: Any, *, rate_limiter: RateLimiter | None = None) -> None:
        self._service = service
        self._limiter = rate_limiter or unlimited()

    @classmethod
    def from_settings(cls, settings: Settings, *, rate_limiter: RateLimiter | None = None) -> DriveCorpus:
        from googleapiclient.discovery import build

        credentials = load_credentials(settings)
        service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        logger.info("Google Drive client initialised")
        return cls(service, rate_limiter=rate_limiter)

    # -- CorpusClient overrides -----------------------------------------------

    def list_page(
        self,
        root_id: str,
        *,
        mime_types: Collection[str] | None = None,
        page_token: str | None = None,
        page_size: int = 100,
    ) -> dict[str, Any]:
        self._limiter.acquire()
        return (
            self._service.files()
            .list(
                q=build_query(root_id, mime_types),
                fields=LIST_FIELDS,
                pageSize=page_size,
                pageToken=page_token,
                supportsAllDrives=True,
                includeItemsFromAllDrives=True,
            )
            .execute()
        )

    def export(self, file_id: str, mime_type: str) -> bytes:
        self._limiter.acquire()
        return _as_bytes(self._service.files().export(fileId=file_id, mimeType=mime_type).execute())

    def download(self, file_id: str) -> bytes:
        self._limiter.acquire()
        return _as_bytes(
            self._service.files().get_media(fileId=file_id, supportsAllDrives=True).execute()
        )


def _as_bytes(payload: bytes | str) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return payload
