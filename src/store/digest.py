"""Streaming content digest for archive files."""

from __future__ import annotations

import hashlib
from pathlib import Path

from core.cancellation import CancellationToken
from core.constants import DIGEST_CHUNK_SIZE, HASH_ALGORITHM
from core.errors import SnapshotDigestError
from core.types import FileDigest


def compute_file_digest(
    path: Path,
    chunk_size: int = DIGEST_CHUNK_SIZE,
    cancel_token: CancellationToken | None = None,
) -> FileDigest:
    """Hash a file chunk by chunk and read its size from file metadata.

    Args:
        path: File to hash.
        chunk_size: Bytes read per iteration.
        cancel_token: Optional token checked between chunks.

    Returns:
        Lowercase hex SHA-256 digest and byte size.

    Raises:
        SnapshotDigestError: If the file cannot be read.
    """
    hash_builder = hashlib.new(HASH_ALGORITHM)
    try:
        with path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(chunk_size), b""):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled("Archive hashing")
                hash_builder.update(chunk)
        file_size = path.stat().st_size
    except OSError as error:
        raise SnapshotDigestError(
            f"Failed to read archive {path} for hashing: {error}. "
            "Rerun the export to rebuild the archive."
        ) from error
    return FileDigest(checksum=hash_builder.hexdigest(), file_size=file_size)
