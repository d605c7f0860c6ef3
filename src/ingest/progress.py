"""Structured block download progress reporting.

This module emits periodic progress events while block files are written
and forwards each written sequence to an optional external sink.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from core.constants import PROGRESS_LOG_INTERVAL_BLOCKS
from core.logging_config import get_logger
from core.types import BlockRange

_LOGGER = get_logger(__name__)

ProgressSink = Callable[[int, int], None]


@dataclass
class BlockProgressTracker:
    """Track written blocks against the announced snapshot range.

    The sink receives ``(latest_sequence, total_blocks)`` after every write.
    It is advisory: sink failures are logged and never stop the download.
    """

    block_range: BlockRange
    sink: ProgressSink | None = None
    log_interval_blocks: int = PROGRESS_LOG_INTERVAL_BLOCKS
    blocks_written: int = 0
    last_sequence: int | None = None
    started_at: float = field(default_factory=time.monotonic)
    _sink_failed: bool = False

    def log_started(self) -> None:
        """Log one event when block retrieval starts."""
        _LOGGER.info(
            "snapshot_blocks_started",
            start=self.block_range.start,
            stop=self.block_range.stop,
            total_blocks=self.block_range.total_blocks,
        )

    def record_written(self, sequence: int) -> None:
        """Register one completed block write."""
        self.blocks_written += 1
        self.last_sequence = sequence
        self._notify_sink(sequence)
        if self.blocks_written % self.log_interval_blocks == 0:
            _LOGGER.info(
                "snapshot_blocks_progress",
                sequence=sequence,
                blocks_written=self.blocks_written,
                total_blocks=self.block_range.total_blocks,
                progress=round(_progress_fraction(sequence, self.block_range), 3),
            )

    def log_completed(self) -> None:
        """Log retrieval summary with elapsed time."""
        _LOGGER.info(
            "snapshot_blocks_completed",
            blocks_written=self.blocks_written,
            last_sequence=self.last_sequence,
            total_blocks=self.block_range.total_blocks,
            elapsed_seconds=round(time.monotonic() - self.started_at, 3),
        )

    def _notify_sink(self, sequence: int) -> None:
        if self.sink is None:
            return
        try:
            self.sink(sequence, self.block_range.total_blocks)
        except Exception as error:
            if not self._sink_failed:
                _LOGGER.warning("snapshot_progress_sink_failed", error=str(error))
            self._sink_failed = True


def _progress_fraction(sequence: int, block_range: BlockRange) -> float:
    """Compute bounded progress of a sequence through the range."""
    done = sequence - block_range.start + 1
    return min(1.0, max(0.0, done / block_range.total_blocks))
