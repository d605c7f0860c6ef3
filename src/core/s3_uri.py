"""Bucket destination parsing helpers.

This module centralizes destination parsing for the publish layer.
A destination is either a bare bucket host or an s3:// URI.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import SnapshotConfigError

S3_SCHEME = "s3://"


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 location model."""

    bucket: str
    prefix: str

    def object_key(self, file_name: str) -> str:
        """Build the object key for a file stored under this location."""
        if not self.prefix:
            return file_name
        return f"{self.prefix.rstrip('/')}/{file_name}"


def is_s3_uri(destination: str) -> bool:
    return destination.startswith(S3_SCHEME)


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 URI.

    Args:
        uri: URI in format ``s3://bucket`` or ``s3://bucket/prefix``.

    Returns:
        Parsed bucket and prefix pair.

    Raises:
        SnapshotConfigError: If the URI has no bucket name.
    """
    stripped_uri = uri.removeprefix(S3_SCHEME)
    bucket, _, prefix = stripped_uri.partition("/")
    if not bucket:
        raise SnapshotConfigError(
            f"Invalid S3 URI '{uri}': expected s3://bucket[/prefix]. "
            "Provide a bucket name."
        )
    return S3Location(bucket=bucket, prefix=prefix.strip("/"))


def validate_bucket_host(host: str) -> str:
    """Validate a bare bucket host used for HTTPS uploads.

    Raises:
        SnapshotConfigError: If the host contains a scheme, path, or whitespace.
    """
    if "://" in host or "/" in host or any(char.isspace() for char in host):
        raise SnapshotConfigError(
            f"Invalid bucket host '{host}': expected a host name such as "
            "'snapshots.example.com', or an s3://bucket URI."
        )
    return host
