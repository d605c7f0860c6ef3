"""Snapshot manifest construction and persistence."""

from __future__ import annotations

import json
from pathlib import Path

from core.constants import MANIFEST_FILE_NAME
from core.errors import SnapshotPublishError
from core.types import BlockRange, FileDigest, SnapshotManifest


def build_manifest(
    block_range: BlockRange,
    archive_path: Path,
    digest: FileDigest,
    timestamp: int,
) -> SnapshotManifest:
    """Describe a snapshot archive for publication."""
    return SnapshotManifest(
        block_height=block_range.stop,
        checksum=digest.checksum,
        file_name=archive_path.name,
        file_size=digest.file_size,
        timestamp=timestamp,
    )


def write_manifest_file(working_dir: Path, manifest: SnapshotManifest) -> Path:
    """Write the manifest as compact JSON next to the archive.

    Args:
        working_dir: Job working directory.
        manifest: Manifest to persist.

    Returns:
        Path of the written manifest file.

    Raises:
        SnapshotPublishError: If the manifest cannot be written.
    """
    manifest_path = working_dir / MANIFEST_FILE_NAME
    payload = json.dumps(manifest.to_json_dict(), separators=(",", ":"))
    try:
        manifest_path.write_text(payload, encoding="utf-8")
    except OSError as error:
        raise SnapshotPublishError(
            f"Failed to write manifest {manifest_path}: {error}."
        ) from error
    return manifest_path
