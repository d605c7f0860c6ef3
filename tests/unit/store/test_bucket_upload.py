"""Unit tests for HTTPS bucket uploads."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
import requests

from core.cancellation import CancellationToken
from core.errors import SnapshotCancelledError, SnapshotPublishError
from store.bucket_upload import build_upload_headers, upload_file_to_bucket


class _FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class _PutRecorder:
    def __init__(self, response: _FakeResponse) -> None:
        self.response = response
        self.calls: list[dict[str, Any]] = []

    def __call__(
        self, url: str, data: Any, headers: dict[str, str], timeout: float
    ) -> _FakeResponse:
        self.calls.append(
            {"url": url, "body": data.read(), "headers": headers, "timeout": timeout}
        )
        return self.response


def test_build_upload_headers_uses_iso_date() -> None:
    """Headers should include host, ISO date, content type, and ACL."""
    moment = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)

    headers = build_upload_headers("bucket.example.com", "application/json", now=moment)

    assert headers == {
        "Host": "bucket.example.com",
        "Date": "2024-01-02T03:04:05.678Z",
        "Content-Type": "application/json",
        "x-amz-acl": "bucket-owner-full-control",
    }


def test_upload_puts_file_to_host_url(tmp_path: Path, monkeypatch) -> None:
    """Upload should PUT the file bytes to https://<host>/<name>."""
    file_path = tmp_path / "snap.tar.gz"
    file_path.write_bytes(b"archive-bytes")
    recorder = _PutRecorder(_FakeResponse(200))
    monkeypatch.setattr("store.bucket_upload.requests.put", recorder)

    result = upload_file_to_bucket(
        file_path, "bucket.example.com", "application/x-compressed-tar", 30
    )

    call = recorder.calls[0]
    assert result.status_code == 200 and call["url"] == "https://bucket.example.com/snap.tar.gz"
    assert call["body"] == b"archive-bytes"
    assert call["headers"]["Content-Type"] == "application/x-compressed-tar"


def test_upload_raises_on_http_error_status(tmp_path: Path, monkeypatch) -> None:
    """Non-2xx responses should fail and name the status code."""
    file_path = tmp_path / "snap.tar.gz"
    file_path.write_bytes(b"x")
    monkeypatch.setattr(
        "store.bucket_upload.requests.put", _PutRecorder(_FakeResponse(403, "AccessDenied"))
    )

    with pytest.raises(SnapshotPublishError, match="403"):
        upload_file_to_bucket(file_path, "bucket.example.com", "application/json", 30)


def test_upload_wraps_transport_errors(tmp_path: Path, monkeypatch) -> None:
    """Connection errors should become publish errors."""
    file_path = tmp_path / "snap.tar.gz"
    file_path.write_bytes(b"x")

    def _raise(*args: Any, **kwargs: Any) -> None:
        raise requests.ConnectionError("dns failure")

    monkeypatch.setattr("store.bucket_upload.requests.put", _raise)

    with pytest.raises(SnapshotPublishError):
        upload_file_to_bucket(file_path, "bucket.example.com", "application/json", 30)


def test_upload_aborts_in_flight_when_cancelled(tmp_path: Path, monkeypatch) -> None:
    """Body reads during the PUT should stop once the token is cancelled."""
    file_path = tmp_path / "snap.tar.gz"
    file_path.write_bytes(b"archive-bytes")
    monkeypatch.setattr("store.bucket_upload.requests.put", _PutRecorder(_FakeResponse(200)))
    token = CancellationToken()
    token.cancel("operator stop")

    with pytest.raises(SnapshotCancelledError):
        upload_file_to_bucket(
            file_path, "bucket.example.com", "application/json", 30, cancel_token=token
        )


def test_upload_body_reports_file_length(tmp_path: Path, monkeypatch) -> None:
    """The request body should expose the file size for Content-Length."""
    file_path = tmp_path / "snap.tar.gz"
    file_path.write_bytes(b"archive-bytes")
    lengths: list[int] = []

    def _put(url: str, data: Any, headers: dict[str, str], timeout: float) -> _FakeResponse:
        lengths.append(len(data))
        return _FakeResponse(200)

    monkeypatch.setattr("store.bucket_upload.requests.put", _put)

    upload_file_to_bucket(file_path, "bucket.example.com", "application/json", 30)

    assert lengths == [len(b"archive-bytes")]
