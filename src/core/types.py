"""Shared typed models.

This module defines the data models passed between the stream,
archive, digest, and publish stages of a snapshot job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from core.constants import STAGE_INIT


@dataclass(frozen=True)
class BlockRange:
    """Inclusive sequence bounds announced by the node.

    Attributes:
        start: First block sequence in the snapshot.
        stop: Last block sequence in the snapshot.
    """

    start: int
    stop: int

    @property
    def total_blocks(self) -> int:
        """Number of sequences covered by the range."""
        return self.stop - self.start + 1

    def contains(self, sequence: int) -> bool:
        return self.start <= sequence <= self.stop


@dataclass(frozen=True)
class BlockRecord:
    """One data message from the snapshot stream.

    Attributes:
        sequence: Block sequence, missing for padding messages.
        payload: Raw serialized block bytes, missing for padding messages.
    """

    sequence: int | None
    payload: bytes | None

    def is_writable(self, block_range: BlockRange) -> bool:
        """Return true when the record should be persisted as a block file."""
        if not self.payload or not self.sequence:
            return False
        return block_range.contains(self.sequence)


@dataclass(frozen=True)
class BlockDownloadSummary:
    """Result of one stream consumption pass."""

    block_range: BlockRange
    blocks_written: int
    last_sequence: int | None


@dataclass(frozen=True)
class FileDigest:
    """Content integrity information for one file.

    Attributes:
        checksum: Lowercase hex SHA-256 digest.
        file_size: Exact file size in bytes.
    """

    checksum: str
    file_size: int


@dataclass(frozen=True)
class SnapshotManifest:
    """Descriptive manifest published next to a snapshot archive.

    Attributes:
        block_height: Last block sequence contained in the snapshot.
        checksum: SHA-256 hex digest of the archive.
        file_name: Archive base name.
        file_size: Archive size in bytes.
        timestamp: Snapshot creation time in epoch milliseconds.
    """

    block_height: int
    checksum: str
    file_name: str
    file_size: int
    timestamp: int

    def to_json_dict(self) -> dict[str, Any]:
        """Return manifest fields in published key order."""
        return {
            "block_height": self.block_height,
            "checksum": self.checksum,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class UploadResult:
    """Outcome of one successful upload.

    Attributes:
        destination: Remote URL or s3:// URI written.
        status_code: HTTP status returned by the endpoint, None for boto3 uploads.
    """

    destination: str
    status_code: int | None


@dataclass
class SnapshotJob:
    """Mutable state of one snapshot job, owned by the pipeline runner."""

    max_blocks_per_chunk: int
    bucket: str | None
    working_dir: Path | None = None
    blocks_dir: Path | None = None
    ephemeral: bool = False
    block_range: BlockRange | None = None
    blocks_written: int = 0
    timestamp: int | None = None
    archive_path: Path | None = None
    digest: FileDigest | None = None
    manifest: SnapshotManifest | None = None
    manifest_path: Path | None = None
    uploads: list[UploadResult] = field(default_factory=list)
    stage: str = STAGE_INIT
    failed_stage: str | None = None


@dataclass(frozen=True)
class SnapshotResult:
    """Summary of a successful snapshot job.

    Attributes:
        working_dir: Directory holding the blocks and archive.
        archive_path: Local archive file.
        block_range: Sequence bounds of the snapshot.
        blocks_written: Number of block files written.
        digest: Archive checksum and size.
        manifest: Published manifest, None when publishing was disabled.
        manifest_path: Local manifest file, None when publishing was disabled.
        uploads: Upload results in publish order.
    """

    working_dir: Path
    archive_path: Path
    block_range: BlockRange
    blocks_written: int
    digest: FileDigest
    manifest: SnapshotManifest | None
    manifest_path: Path | None
    uploads: tuple[UploadResult, ...]
