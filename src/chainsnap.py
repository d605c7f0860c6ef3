"""Public SDK surface for chainsnap.

This module provides a stable import path for library users.
It re-exports the pipeline entry points and typed models.
"""

from __future__ import annotations

from core.cancellation import CancellationToken
from core.config import SnapshotConfig
from core.errors import ChainSnapError
from core.types import BlockRange, BlockRecord, FileDigest, SnapshotManifest, SnapshotResult
from ingest.chain_stream import SnapshotChainStream
from ingest.pipeline import SnapshotPipelineRunner, export_snapshot
from store.archive_builder import create_archive
from store.digest import compute_file_digest

__all__ = [
    "BlockRange",
    "BlockRecord",
    "CancellationToken",
    "ChainSnapError",
    "FileDigest",
    "SnapshotChainStream",
    "SnapshotConfig",
    "SnapshotManifest",
    "SnapshotPipelineRunner",
    "SnapshotResult",
    "compute_file_digest",
    "create_archive",
    "export_snapshot",
]
