"""Unit tests for the Google Drive corpus adapter (Drive service mocked)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from drive_sync.config import Settings
from drive_sync.errors import ConfigurationError
from drive_sync.sources.drive import (
    DRIVE_SCOPES,
    FOLDER_MIME_TYPE,
    LIST_FIELDS,
    DriveCorpus,
    build_query,
    load_credentials,
)
from drive_sync.throttle import RateLimiter


class TestBuildQuery:
    def test_without_types(self) -> None:
        q = build_query("abc")
        assert q == f"'abc' in parents and trashed = false and mimeType != '{FOLDER_MIME_TYPE}'"

    def test_with_types_is_sorted(self) -> None:
        q = build_query("abc", {"text/plain", "application/pdf"})
        assert q.endswith("(mimeType='application/pdf' or mimeType='text/plain')")


class TestDriveCorpus:
    def test_list_page_calls_files_list(self) -> None:
        service = MagicMock()
        service.files.return_value.list.return_value.execute.return_value = {
            "files": [],
            "nextPageToken": None,
        }
        page = DriveCorpus(service).list_page("abc", page_token="tok", page_size=50)

        assert page == {"files": [], "nextPageToken": None}
        kwargs = service.files.return_value.list.call_args.kwargs
        assert kwargs["q"] == build_query("abc")
        assert kwargs["fields"] == LIST_FIELDS
        assert kwargs["pageSize"] == 50
        assert kwargs["pageToken"] == "tok"

    def test_export_returns_bytes(self) -> None:
        service = MagicMock()
        service.files.return_value.export.return_value.execute.return_value = "text body"
        data = DriveCorpus(service).export("f1", "text/plain")
        assert data == b"text body"
        service.files.return_value.export.assert_called_once_with(fileId="f1", mimeType="text/plain")

    def test_download_uses_get_media(self) -> None:
        service = MagicMock()
        service.files.return_value.get_media.return_value.execute.return_value = b"%PDF"
        assert DriveCorpus(service).download("f1") == b"%PDF"

    def test_every_request_passes_the_rate_limiter(self) -> None:
        limiter = MagicMock(spec=RateLimiter)
        service = MagicMock()
        service.files.return_value.list.return_value.execute.return_value = {"files": []}
        corpus = DriveCorpus(service, rate_limiter=limiter)
        corpus.list_page("abc")
        corpus.download("f1")
        corpus.export("f2", "text/plain")
        assert limiter.acquire.call_count == 3


class TestLoadCredentials:
    def test_inline_key_takes_precedence(self) -> None:
        key = {"type": "service_account", "client_email": "x@y"}
        settings = Settings(drive_service_account_key=json.dumps(key), drive_service_account_key_path="/k.json")
        with patch(
            "google.oauth2.service_account.Credentials.from_service_account_info"
        ) as from_info:
            creds = load_credentials(settings)
        from_info.assert_called_once_with(key, scopes=DRIVE_SCOPES)
        assert creds is from_info.return_value

    def test_invalid_inline_key(self) -> None:
        settings = Settings(drive_service_account_key="{not json")
        with pytest.raises(ConfigurationError):
            load_credentials(settings)

    def test_key_path(self) -> None:
        settings = Settings(drive_service_account_key_path="/secrets/key.json")
        with patch(
            "google.oauth2.service_account.Credentials.from_service_account_file"
        ) as from_file:
            load_credentials(settings)
        from_file.assert_called_once_with("/secrets/key.json", scopes=DRIVE_SCOPES)

    def test_falls_back_to_default_credentials(self) -> None:
        settings = Settings()
        sentinel = object()
        with patch("google.auth.default", return_value=(sentinel, "proj")) as default:
            assert load_credentials(settings) is sentinel
        default.assert_called_once_with(scopes=DRIVE_SCOPES)
