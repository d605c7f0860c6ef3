"""Snapshot export orchestration.

This module owns the working directory of one snapshot job and runs
its stages in order: prepare the directory, stream blocks, archive,
digest, and optionally publish the archive followed by its manifest.
Any stage failure ends the job; artifacts are left for inspection.
"""

from __future__ import annotations

import shutil
import tempfile
import time
from pathlib import Path
from typing import Callable, ContextManager

from core.cancellation import CancellationToken
from core.config import SnapshotConfig
from core.constants import (
    ARCHIVE_CONTENT_TYPE,
    ARCHIVE_FILE_PREFIX,
    ARCHIVE_FILE_SUFFIX,
    BLOCKS_DIR_NAME,
    MANIFEST_CONTENT_TYPE,
    STAGE_ARCHIVE,
    STAGE_DIGEST,
    STAGE_DONE,
    STAGE_FAILED,
    STAGE_PREPARE_DIR,
    STAGE_STREAM_BLOCKS,
    STAGE_UPLOAD_ARCHIVE,
    STAGE_UPLOAD_MANIFEST,
    STAGE_WRITE_MANIFEST,
    TEMP_DIR_PREFIX,
)
from core.errors import ChainSnapError, SnapshotCancelledError, SnapshotSetupError
from core.logging_config import get_logger
from core.types import SnapshotJob, SnapshotResult
from ingest.block_download import download_blocks
from ingest.chain_stream import BlockStreamSource
from ingest.progress import ProgressSink
from ingest.rpc_client import open_chain_stream
from store.archive_builder import create_archive
from store.digest import compute_file_digest
from store.manifest import build_manifest, write_manifest_file
from store.publisher import SnapshotPublisher

_LOGGER = get_logger(__name__)

StreamOpener = Callable[
    [SnapshotConfig, CancellationToken], ContextManager[BlockStreamSource]
]
PublisherFactory = Callable[[str, SnapshotConfig], SnapshotPublisher]


class SnapshotPipelineRunner:
    """Stateful runner for one snapshot export job."""

    def __init__(
        self,
        config: SnapshotConfig,
        stream_opener: StreamOpener = open_chain_stream,
        publisher_factory: PublisherFactory = SnapshotPublisher,
        progress_sink: ProgressSink | None = None,
        cancel_token: CancellationToken | None = None,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self._config = config
        self._stream_opener = stream_opener
        self._publisher_factory = publisher_factory
        self._progress_sink = progress_sink
        self._cancel_token = cancel_token or CancellationToken()
        self._clock_ms = clock_ms or _now_millis
        self.job = SnapshotJob(
            max_blocks_per_chunk=config.max_blocks_per_chunk,
            bucket=config.bucket,
        )

    @property
    def cancel_token(self) -> CancellationToken:
        return self._cancel_token

    def run(self) -> SnapshotResult:
        """Execute every stage and return the job summary.

        Raises:
            ChainSnapError: The failing stage's error; ``job.failed_stage``
                names the stage.
        """
        try:
            publisher = self._build_publisher()
            self._prepare_dir()
            self._stream_blocks()
            self._archive()
            self._digest()
            if publisher is not None:
                self._publish(publisher)
        except ChainSnapError as error:
            self._fail(error)
            raise
        except KeyboardInterrupt as error:
            cancelled = SnapshotCancelledError(f"Snapshot interrupted during {self.job.stage}.")
            self._fail(cancelled)
            raise cancelled from error
        self._enter(STAGE_DONE)
        self._cleanup_blocks()
        _log_job_completion(self.job)
        return _build_result(self.job)

    def _build_publisher(self) -> SnapshotPublisher | None:
        if not self.job.bucket:
            _LOGGER.info("snapshot_publish_disabled")
            return None
        return self._publisher_factory(self.job.bucket, self._config)

    def _prepare_dir(self) -> None:
        self._enter(STAGE_PREPARE_DIR)
        working_dir, ephemeral = _resolve_working_dir(self._config.working_dir)
        blocks_dir = working_dir / BLOCKS_DIR_NAME
        if blocks_dir.exists() and not blocks_dir.is_dir():
            raise SnapshotSetupError(
                f"Block directory path {blocks_dir} exists and is not a directory. "
                "Use a fresh --path for each snapshot job."
            )
        try:
            has_entries = blocks_dir.is_dir() and any(blocks_dir.iterdir())
            if not has_entries:
                blocks_dir.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise SnapshotSetupError(
                f"Could not prepare block directory {blocks_dir}: {error}."
            ) from error
        if has_entries:
            raise SnapshotSetupError(
                f"Block directory {blocks_dir} is not empty. "
                "Use a fresh --path for each snapshot job."
            )
        self.job.working_dir = working_dir
        self.job.blocks_dir = blocks_dir
        self.job.ephemeral = ephemeral

    def _stream_blocks(self) -> None:
        self._enter(STAGE_STREAM_BLOCKS)
        with self._stream_opener(self._config, self._cancel_token) as source:
            summary = download_blocks(
                source,
                self.job.blocks_dir,
                progress_sink=self._progress_sink,
                cancel_token=self._cancel_token,
            )
        self.job.block_range = summary.block_range
        self.job.blocks_written = summary.blocks_written

    def _archive(self) -> None:
        self._enter(STAGE_ARCHIVE)
        self.job.timestamp = self._clock_ms()
        archive_name = f"{ARCHIVE_FILE_PREFIX}{self.job.timestamp}{ARCHIVE_FILE_SUFFIX}"
        archive_path = self.job.working_dir / archive_name
        create_archive(self.job.blocks_dir, archive_path, cancel_token=self._cancel_token)
        self.job.archive_path = archive_path

    def _digest(self) -> None:
        self._enter(STAGE_DIGEST)
        self.job.digest = compute_file_digest(
            self.job.archive_path, cancel_token=self._cancel_token
        )
        _LOGGER.info(
            "snapshot_digest_computed",
            archive=str(self.job.archive_path),
            checksum=self.job.digest.checksum,
            file_size=self.job.digest.file_size,
        )

    def _publish(self, publisher: SnapshotPublisher) -> None:
        self._enter(STAGE_UPLOAD_ARCHIVE)
        self._cancel_token.raise_if_cancelled("Archive upload")
        self.job.uploads.append(
            publisher.upload(
                self.job.archive_path, ARCHIVE_CONTENT_TYPE, cancel_token=self._cancel_token
            )
        )

        self._enter(STAGE_WRITE_MANIFEST)
        self.job.manifest = build_manifest(
            self.job.block_range,
            self.job.archive_path,
            self.job.digest,
            self.job.timestamp,
        )
        self.job.manifest_path = write_manifest_file(self.job.working_dir, self.job.manifest)

        self._enter(STAGE_UPLOAD_MANIFEST)
        self._cancel_token.raise_if_cancelled("Manifest upload")
        self.job.uploads.append(
            publisher.upload(
                self.job.manifest_path, MANIFEST_CONTENT_TYPE, cancel_token=self._cancel_token
            )
        )

    def _enter(self, stage: str) -> None:
        self.job.stage = stage
        _LOGGER.info("snapshot_stage_started", stage=stage)

    def _fail(self, error: ChainSnapError) -> None:
        self.job.failed_stage = self.job.stage
        self.job.stage = STAGE_FAILED
        _LOGGER.error(
            "snapshot_failed",
            stage=self.job.failed_stage,
            error_type=type(error).__name__,
            error=str(error),
            working_dir=str(self.job.working_dir) if self.job.working_dir else None,
        )

    def _cleanup_blocks(self) -> None:
        if not self._config.cleanup_blocks or self.job.blocks_dir is None:
            return
        shutil.rmtree(self.job.blocks_dir)
        _LOGGER.info("snapshot_blocks_removed", blocks_dir=str(self.job.blocks_dir))


def export_snapshot(
    config: SnapshotConfig,
    progress_sink: ProgressSink | None = None,
    cancel_token: CancellationToken | None = None,
) -> SnapshotResult:
    """Run a snapshot export job against the configured node.

    Args:
        config: Runtime configuration.
        progress_sink: Optional advisory progress callback.
        cancel_token: Optional token to abort the running stage.

    Returns:
        Summary of the produced artifacts.

    Raises:
        ChainSnapError: If any stage fails.
    """
    runner = SnapshotPipelineRunner(
        config,
        progress_sink=progress_sink,
        cancel_token=cancel_token,
    )
    return runner.run()


def _resolve_working_dir(override: Path | None) -> tuple[Path, bool]:
    """Return the job directory and whether it was freshly allocated.

    Raises:
        SnapshotSetupError: If the directory cannot be created.
    """
    if override is not None:
        try:
            override.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise SnapshotSetupError(
                f"Could not create snapshot directory {override}: {error}."
            ) from error
        return override, False
    try:
        return Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX)), True
    except OSError as error:
        raise SnapshotSetupError(
            f"Could not create temp folder for snapshot generation: {error}."
        ) from error


def _build_result(job: SnapshotJob) -> SnapshotResult:
    return SnapshotResult(
        working_dir=job.working_dir,
        archive_path=job.archive_path,
        block_range=job.block_range,
        blocks_written=job.blocks_written,
        digest=job.digest,
        manifest=job.manifest,
        manifest_path=job.manifest_path,
        uploads=tuple(job.uploads),
    )


def _now_millis() -> int:
    return int(time.time() * 1000)


def _log_job_completion(job: SnapshotJob) -> None:
    """Log job completion with artifact metadata."""
    _LOGGER.info(
        "snapshot_completed",
        working_dir=str(job.working_dir),
        archive=str(job.archive_path),
        block_height=job.block_range.stop,
        blocks_written=job.blocks_written,
        checksum=job.digest.checksum,
        file_size=job.digest.file_size,
        bucket=job.bucket,
        uploads=len(job.uploads),
    )
