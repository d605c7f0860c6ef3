"""HTTPS PUT uploads to a bucket host.

This module streams a local file to ``https://<host>/<file name>`` with
the headers bucket endpoints expect and surfaces the HTTP status code.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

import requests

from core.cancellation import CancellationToken
from core.constants import BUCKET_ACL
from core.errors import SnapshotPublishError
from core.logging_config import get_logger
from core.s3_uri import validate_bucket_host
from core.types import UploadResult

_LOGGER = get_logger(__name__)


def build_upload_url(host: str, file_path: Path) -> str:
    return f"https://{host}/{file_path.name}"


def build_upload_headers(
    host: str,
    content_type: str,
    now: datetime | None = None,
) -> dict[str, str]:
    """Build PUT headers for a bucket upload.

    Args:
        host: Bucket host name.
        content_type: MIME type of the uploaded file.
        now: Optional clock override.

    Returns:
        Header mapping with Host, Date, Content-Type, and ACL entries.
    """
    moment = now or datetime.now(timezone.utc)
    return {
        "Host": host,
        "Date": _format_iso_date(moment),
        "Content-Type": content_type,
        "x-amz-acl": BUCKET_ACL,
    }


def upload_file_to_bucket(
    file_path: Path,
    host: str,
    content_type: str,
    timeout_seconds: float,
    cancel_token: CancellationToken | None = None,
) -> UploadResult:
    """Upload one file with an HTTP PUT request.

    Args:
        file_path: Local file to upload.
        host: Bucket host name.
        content_type: MIME type of the file.
        timeout_seconds: Connect and read timeout.
        cancel_token: Optional token checked before each body read.

    Returns:
        Upload result carrying the response status code.

    Raises:
        SnapshotPublishError: On transport errors or non-2xx responses.
    """
    validate_bucket_host(host)
    url = build_upload_url(host, file_path)
    headers = build_upload_headers(host, content_type)
    _LOGGER.info("bucket_upload_started", url=url, content_type=content_type)
    try:
        with file_path.open("rb") as handle:
            body = CancellableUploadBody(handle, file_path.stat().st_size, cancel_token)
            response = requests.put(url, data=body, headers=headers, timeout=timeout_seconds)
    except OSError as error:
        raise SnapshotPublishError(f"Failed to read {file_path} for upload: {error}.") from error
    except requests.RequestException as error:
        raise SnapshotPublishError(
            f"Upload of {file_path.name} to {url} failed: {error}. "
            "Check network access to the bucket host."
        ) from error
    if not 200 <= response.status_code < 300:
        raise SnapshotPublishError(
            f"Upload of {file_path.name} to {url} returned HTTP {response.status_code}: "
            f"{response.text[:200]}"
        )
    _LOGGER.info("bucket_upload_completed", url=url, status_code=response.status_code)
    return UploadResult(destination=url, status_code=response.status_code)


class CancellableUploadBody:
    """File reader that aborts an in-flight upload once cancellation is requested.

    Exposes ``read`` and ``__len__`` so requests sends a Content-Length body
    and the HTTP connection pulls the file in blocks through ``read``.
    """

    def __init__(
        self,
        handle: BinaryIO,
        size: int,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self._handle = handle
        self._size = size
        self._cancel_token = cancel_token

    def __len__(self) -> int:
        return self._size

    def read(self, size: int = -1) -> bytes:
        if self._cancel_token is not None:
            self._cancel_token.raise_if_cancelled("Bucket upload")
        return self._handle.read(size)


def _format_iso_date(moment: datetime) -> str:
    """Format a UTC timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    utc_moment = moment.astimezone(timezone.utc)
    return utc_moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
