"""Cooperative cancellation for blocking pipeline stages."""

from __future__ import annotations

import threading

from core.errors import SnapshotCancelledError


class CancellationToken:
    """Thread-safe flag checked by stream reads, process waits, and file reads."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "cancelled"

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation of the current stage."""
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str) -> None:
        """Raise when cancellation was requested.

        Args:
            operation: Operation name included in the error message.

        Raises:
            SnapshotCancelledError: If the token was cancelled.
        """
        if self._event.is_set():
            raise SnapshotCancelledError(f"{operation} aborted: {self._reason}.")
