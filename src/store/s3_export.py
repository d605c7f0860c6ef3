"""S3 upload helpers for s3:// snapshot destinations.

This module encapsulates boto3 client creation and single-file upload.
It is used by the publisher when the bucket is given as an s3:// URI.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from core.cancellation import CancellationToken
from core.config import SnapshotConfig
from core.constants import BUCKET_ACL
from core.errors import (
    SnapshotCancelledError,
    SnapshotDependencyError,
    SnapshotPublishError,
)
from core.logging_config import get_logger
from core.s3_uri import S3Location
from core.types import UploadResult

_LOGGER = get_logger(__name__)


def create_s3_client(config: SnapshotConfig) -> Any:
    """Create boto3 S3 client for uploads.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.

    Raises:
        SnapshotDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise SnapshotDependencyError(
            "S3 upload requires boto3, but it is not installed. "
            "Install boto3 to publish snapshots to s3:// destinations."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def upload_file_to_s3(
    s3_client: Any,
    file_path: Path,
    location: S3Location,
    content_type: str,
    cancel_token: CancellationToken | None = None,
) -> UploadResult:
    """Upload one file to S3 with bucket-owner ACL.

    Args:
        s3_client: Boto3 S3 client.
        file_path: Local file.
        location: Destination bucket and prefix.
        content_type: MIME type stored on the object.
        cancel_token: Optional token checked from the transfer progress callback.

    Returns:
        Upload result with the object URI.

    Raises:
        SnapshotPublishError: If upload fails.
    """
    object_key = location.object_key(file_path.name)
    destination = f"s3://{location.bucket}/{object_key}"
    try:
        s3_client.upload_file(
            str(file_path),
            location.bucket,
            object_key,
            ExtraArgs={"ContentType": content_type, "ACL": BUCKET_ACL},
            Callback=_cancel_callback(cancel_token),
        )
    except SnapshotCancelledError:
        raise
    except Exception as error:
        raise SnapshotPublishError(
            f"Failed to upload {file_path} to {destination}: {error}. "
            "Check AWS credentials and retry the export."
        ) from error
    _LOGGER.info("s3_upload_completed", destination=destination, content_type=content_type)
    return UploadResult(destination=destination, status_code=None)


def _cancel_callback(cancel_token: CancellationToken | None) -> Callable[[int], None] | None:
    """Build a boto3 progress callback that aborts the transfer on cancellation."""
    if cancel_token is None:
        return None

    def _check(bytes_transferred: int) -> None:
        cancel_token.raise_if_cancelled("S3 upload")

    return _check
