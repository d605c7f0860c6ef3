"""Compressed archive creation through the system tar binary.

The archive is rooted at the parent of the source directory so that it
contains a single top-level entry named after the source directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from core.cancellation import CancellationToken
from core.constants import ARCHIVER_BINARY
from core.errors import SnapshotArchiveError
from core.logging_config import get_logger
from core.process_runner import run_process

_LOGGER = get_logger(__name__)


def build_tar_args(source_dir: Path, dest_path: Path, excludes: Sequence[str] = ()) -> list[str]:
    """Build tar arguments for a gzip archive of ``source_dir``.

    Args:
        source_dir: Directory to pack.
        dest_path: Archive file to create.
        excludes: Optional exclude patterns, placed before positional args.

    Returns:
        Argument list without the program name.
    """
    args = ["-zcf", str(dest_path), "-C", str(source_dir.parent), source_dir.name]
    for pattern in reversed(excludes):
        args[0:0] = ["--exclude", pattern]
    return args


def create_archive(
    source_dir: Path,
    dest_path: Path,
    excludes: Sequence[str] = (),
    cancel_token: CancellationToken | None = None,
    archiver: str = ARCHIVER_BINARY,
) -> Path:
    """Pack a directory into a gzip-compressed tar archive.

    Args:
        source_dir: Directory to pack.
        dest_path: Archive file to create.
        excludes: Optional exclude patterns.
        cancel_token: Optional token that terminates the archiver.
        archiver: Archiver program name.

    Returns:
        The archive path.

    Raises:
        SnapshotArchiveError: If the archiver cannot start or exits nonzero.
    """
    args = [archiver, *build_tar_args(source_dir, dest_path, excludes)]
    _LOGGER.info("snapshot_archive_started", source=str(source_dir), destination=str(dest_path))
    try:
        return_code = run_process(args, cancel_token)
    except OSError as error:
        raise SnapshotArchiveError(
            f"Could not start {archiver} to archive {source_dir}: {error}. "
            f"Install {archiver} and make sure it is on PATH."
        ) from error
    if return_code != 0:
        raise SnapshotArchiveError(
            f"{archiver} exited with status {return_code} while creating {dest_path}. "
            "The partial archive was left in place for inspection."
        )
    _LOGGER.info("snapshot_archive_created", destination=str(dest_path))
    return dest_path
