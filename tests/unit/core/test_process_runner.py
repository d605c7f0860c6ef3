"""Unit tests for external process execution."""

from __future__ import annotations

import sys
import threading

import pytest

from core.cancellation import CancellationToken
from core.errors import SnapshotCancelledError
from core.process_runner import run_process


def test_run_process_returns_exit_code() -> None:
    """Runner should surface the child's exit status."""
    return_code = run_process([sys.executable, "-c", "raise SystemExit(3)"])

    assert return_code == 3


def test_run_process_raises_for_missing_binary() -> None:
    """Spawn failures should propagate as OSError."""
    with pytest.raises(OSError):
        run_process(["chainsnap-definitely-missing-binary"])


def test_run_process_terminates_child_on_cancel() -> None:
    """Cancellation should stop a long-running child and raise."""
    token = CancellationToken()
    timer = threading.Timer(0.3, token.cancel, kwargs={"reason": "test shutdown"})
    timer.start()

    with pytest.raises(SnapshotCancelledError):
        run_process(
            [sys.executable, "-c", "import time; time.sleep(30)"],
            cancel_token=token,
            poll_interval=0.05,
        )

    timer.cancel()
    assert token.cancelled
