"""Destination-aware upload dispatch for snapshot artifacts."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from core.cancellation import CancellationToken
from core.config import SnapshotConfig
from core.s3_uri import is_s3_uri, parse_s3_uri, validate_bucket_host
from core.types import UploadResult
from store.bucket_upload import upload_file_to_bucket
from store.s3_export import create_s3_client, upload_file_to_s3


class SnapshotPublisher:
    """Upload files to one bucket destination.

    A bare host is published with HTTPS PUT requests; an ``s3://`` URI
    is published through boto3.
    """

    def __init__(self, bucket: str, config: SnapshotConfig) -> None:
        """Validate the destination up front.

        Args:
            bucket: Bucket host or s3:// URI.
            config: Runtime configuration.

        Raises:
            SnapshotConfigError: If the destination is malformed.
        """
        self._bucket = bucket
        self._config = config
        self._s3_location = parse_s3_uri(bucket) if is_s3_uri(bucket) else None
        if self._s3_location is None:
            validate_bucket_host(bucket)
        self._s3_client: Any = None

    @property
    def bucket(self) -> str:
        return self._bucket

    def upload(
        self,
        file_path: Path,
        content_type: str,
        cancel_token: CancellationToken | None = None,
    ) -> UploadResult:
        """Upload one file to the destination.

        The optional token aborts the transfer between body reads.

        Raises:
            SnapshotPublishError: If the upload fails.
            SnapshotDependencyError: If boto3 is needed but missing.
        """
        if self._s3_location is None:
            return upload_file_to_bucket(
                file_path,
                self._bucket,
                content_type,
                self._config.upload_timeout_seconds,
                cancel_token=cancel_token,
            )
        if self._s3_client is None:
            self._s3_client = create_s3_client(self._config)
        return upload_file_to_s3(
            self._s3_client,
            file_path,
            self._s3_location,
            content_type,
            cancel_token=cancel_token,
        )
