"""Block stream consumption into per-sequence files.

This module reads the snapshot bounds, then writes every valid block
record to ``blocks_dir/<sequence>`` while reporting progress.
"""

from __future__ import annotations

from pathlib import Path

from core.cancellation import CancellationToken
from core.errors import SnapshotStreamError
from core.logging_config import get_logger
from core.types import BlockDownloadSummary, BlockRecord
from ingest.chain_stream import BlockStreamSource
from ingest.progress import BlockProgressTracker, ProgressSink

_LOGGER = get_logger(__name__)


def download_blocks(
    source: BlockStreamSource,
    blocks_dir: Path,
    progress_sink: ProgressSink | None = None,
    cancel_token: CancellationToken | None = None,
) -> BlockDownloadSummary:
    """Consume a snapshot stream and persist each block payload.

    Args:
        source: Stream source; bounds are read once before any record.
        blocks_dir: Existing empty directory receiving block files.
        progress_sink: Optional advisory progress callback.
        cancel_token: Optional token checked between records.

    Returns:
        Download summary with the announced range and written count.

    Raises:
        SnapshotStreamError: If the stream fails, ends before the last
            sequence is written, or a block file cannot be written.
    """
    block_range = source.read_bounds()
    tracker = BlockProgressTracker(block_range=block_range, sink=progress_sink)
    tracker.log_started()
    stop_written = False
    for record in source.records():
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("Block download")
        if not record.is_writable(block_range):
            _log_skipped(record)
            continue
        _write_block_file(blocks_dir, record)
        tracker.record_written(record.sequence)
        stop_written = stop_written or record.sequence == block_range.stop
    if not stop_written:
        raise SnapshotStreamError(
            f"Snapshot stream ended before block {block_range.stop} was received "
            f"(last written: {tracker.last_sequence}). Partial snapshots are not archived."
        )
    tracker.log_completed()
    return BlockDownloadSummary(
        block_range=block_range,
        blocks_written=tracker.blocks_written,
        last_sequence=tracker.last_sequence,
    )


def block_file_path(blocks_dir: Path, sequence: int) -> Path:
    return blocks_dir / str(sequence)


def _write_block_file(blocks_dir: Path, record: BlockRecord) -> None:
    """Overwrite the block file for one record.

    Raises:
        SnapshotStreamError: If the file cannot be written.
    """
    target_path = block_file_path(blocks_dir, record.sequence)
    try:
        target_path.write_bytes(record.payload)
    except OSError as error:
        raise SnapshotStreamError(
            f"Failed to write block {record.sequence} to {target_path}: {error}. "
            "Check free disk space and directory permissions."
        ) from error


def _log_skipped(record: BlockRecord) -> None:
    _LOGGER.debug(
        "snapshot_record_skipped",
        sequence=record.sequence,
        payload_size=len(record.payload) if record.payload else 0,
    )
