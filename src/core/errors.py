"""Chainsnap exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline stage raises a specific error type for debuggability.
"""

from __future__ import annotations


class ChainSnapError(Exception):
    """Base exception for all chainsnap failures."""


class SnapshotConfigError(ChainSnapError):
    """Raised for invalid runtime configuration."""


class SnapshotSetupError(ChainSnapError):
    """Raised when the working directory cannot be prepared."""


class SnapshotStreamError(ChainSnapError):
    """Raised for node connection, stream, and block write failures."""


class SnapshotArchiveError(ChainSnapError):
    """Raised when the external archiver fails or cannot start."""


class SnapshotDigestError(ChainSnapError):
    """Raised when the archive cannot be read for hashing."""


class SnapshotPublishError(ChainSnapError):
    """Raised for archive and manifest upload failures."""


class SnapshotDependencyError(ChainSnapError):
    """Raised when an optional runtime dependency is missing."""


class SnapshotCancelledError(ChainSnapError):
    """Raised when a running stage is cancelled externally."""
