"""External process execution with cancellation support.

This module runs archiver and similar helper binaries to completion,
terminating them when the job is cancelled or interrupted.
"""

from __future__ import annotations

import subprocess
import time
from typing import Sequence

from core.cancellation import CancellationToken
from core.constants import PROCESS_POLL_INTERVAL_SECONDS, PROCESS_TERMINATE_GRACE_SECONDS
from core.errors import SnapshotCancelledError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


def run_process(
    args: Sequence[str],
    cancel_token: CancellationToken | None = None,
    poll_interval: float = PROCESS_POLL_INTERVAL_SECONDS,
) -> int:
    """Run a process and block until it exits.

    Args:
        args: Program and arguments.
        cancel_token: Optional token polled while the process runs.
        poll_interval: Seconds between exit status polls.

    Returns:
        Process exit code.

    Raises:
        OSError: If the process cannot be spawned.
        SnapshotCancelledError: If cancellation was requested while waiting.
    """
    process = subprocess.Popen(list(args))
    _LOGGER.debug("process_started", program=args[0], pid=process.pid)
    try:
        while True:
            try:
                return_code = process.wait(timeout=poll_interval)
            except subprocess.TimeoutExpired:
                if cancel_token is not None and cancel_token.cancelled:
                    _terminate(process)
                    cancel_token.raise_if_cancelled(f"Process {args[0]}")
                continue
            _LOGGER.debug("process_exited", program=args[0], return_code=return_code)
            return return_code
    except KeyboardInterrupt as error:
        _terminate(process)
        raise SnapshotCancelledError(f"Process {args[0]} interrupted.") from error


def _terminate(process: subprocess.Popen) -> None:
    """Stop a running child, escalating to kill after a grace period."""
    if process.poll() is not None:
        return
    _LOGGER.warning("process_terminating", pid=process.pid)
    process.terminate()
    deadline = time.monotonic() + PROCESS_TERMINATE_GRACE_SECONDS
    while process.poll() is None and time.monotonic() < deadline:
        time.sleep(0.05)
    if process.poll() is None:
        process.kill()
        process.wait()
