"""Unit tests for manifest construction."""

from __future__ import annotations

import json
from pathlib import Path

from core.types import BlockRange, FileDigest
from store.manifest import build_manifest, write_manifest_file


def test_manifest_file_has_published_fields(tmp_path: Path) -> None:
    """Manifest JSON should carry height, checksum, name, size, and timestamp."""
    archive_path = tmp_path / "ironfish_snapshot_1700000000000.tar.gz"
    manifest = build_manifest(
        BlockRange(10, 12),
        archive_path,
        FileDigest(checksum="ab" * 32, file_size=321),
        timestamp=1700000000000,
    )

    manifest_path = write_manifest_file(tmp_path, manifest)
    raw_text = manifest_path.read_text(encoding="utf-8")

    assert json.loads(raw_text) == {
        "block_height": 12,
        "checksum": "ab" * 32,
        "file_name": "ironfish_snapshot_1700000000000.tar.gz",
        "file_size": 321,
        "timestamp": 1700000000000,
    }
    assert raw_text.startswith('{"block_height":12,"checksum":')
