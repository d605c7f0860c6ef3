"""Runtime configuration model for chainsnap.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any

from core.constants import (
    DEFAULT_MAX_BLOCKS_PER_CHUNK,
    DEFAULT_RPC_IPC_PATH,
    DEFAULT_RPC_READ_TIMEOUT_SECONDS,
    DEFAULT_RPC_TCP_PORT,
    DEFAULT_UPLOAD_TIMEOUT_SECONDS,
)
from core.errors import SnapshotConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SnapshotConfig:
    """Validated runtime configuration.

    Attributes:
        bucket: Upload destination host or s3:// URI; None disables publishing.
        working_dir: Optional working directory override.
        max_blocks_per_chunk: Chunk size hint passed to the node.
        rpc_ipc_path: Unix socket path of the node RPC server.
        rpc_tcp_host: TCP host of the node RPC server; IPC is used when unset.
        rpc_tcp_port: TCP port of the node RPC server.
        rpc_auth_token: Optional RPC auth token sent with TCP requests.
        rpc_read_timeout_seconds: Max idle time while waiting for stream data.
        upload_timeout_seconds: HTTP upload timeout.
        s3_region: Optional AWS region for s3:// destinations.
        s3_profile: Optional AWS profile for s3:// destinations.
        cleanup_blocks: Remove block files after a successful job.
    """

    bucket: str | None = None
    working_dir: Path | None = None
    max_blocks_per_chunk: int = DEFAULT_MAX_BLOCKS_PER_CHUNK
    rpc_ipc_path: Path = DEFAULT_RPC_IPC_PATH.expanduser()
    rpc_tcp_host: str | None = None
    rpc_tcp_port: int = DEFAULT_RPC_TCP_PORT
    rpc_auth_token: str | None = None
    rpc_read_timeout_seconds: float = DEFAULT_RPC_READ_TIMEOUT_SECONDS
    upload_timeout_seconds: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS
    s3_region: str | None = None
    s3_profile: str | None = None
    cleanup_blocks: bool = False

    def __post_init__(self) -> None:
        if self.max_blocks_per_chunk <= 0:
            raise SnapshotConfigError(
                "Invalid max blocks per chunk: "
                f"expected a positive integer, got {self.max_blocks_per_chunk}. "
                "Set MAX_BLOCKS_PER_SNAPSHOT_CHUNK or --max-blocks-per-chunk above zero."
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> "SnapshotConfig":
        """Build config from process environment variables.

        Overrides replace environment values before validation runs, so a
        command-line value wins over an invalid environment value.

        Args:
            **overrides: Field values taking precedence over the environment.

        Returns:
            A validated config object.

        Raises:
            SnapshotConfigError: If environment values are invalid.
        """
        working_dir_value = os.getenv("CHAINSNAP_WORKING_DIR")
        ipc_path_value = os.getenv("IRONFISH_RPC_IPC_PATH")
        values: dict[str, Any] = dict(
            bucket=normalize_bucket(os.getenv("IRONFISH_SNAPSHOT_BUCKET")),
            working_dir=resolve_path(working_dir_value) if working_dir_value else None,
            max_blocks_per_chunk=_parse_chunk_hint(os.getenv("MAX_BLOCKS_PER_SNAPSHOT_CHUNK")),
            rpc_ipc_path=(
                resolve_path(ipc_path_value)
                if ipc_path_value
                else DEFAULT_RPC_IPC_PATH.expanduser()
            ),
            rpc_tcp_host=os.getenv("IRONFISH_RPC_TCP_HOST") or None,
            rpc_tcp_port=_parse_int(
                "IRONFISH_RPC_TCP_PORT", os.getenv("IRONFISH_RPC_TCP_PORT"), DEFAULT_RPC_TCP_PORT
            ),
            rpc_auth_token=os.getenv("IRONFISH_RPC_AUTH_TOKEN") or None,
            rpc_read_timeout_seconds=_parse_seconds(
                "CHAINSNAP_RPC_READ_TIMEOUT",
                os.getenv("CHAINSNAP_RPC_READ_TIMEOUT"),
                DEFAULT_RPC_READ_TIMEOUT_SECONDS,
            ),
            upload_timeout_seconds=_parse_seconds(
                "CHAINSNAP_UPLOAD_TIMEOUT",
                os.getenv("CHAINSNAP_UPLOAD_TIMEOUT"),
                DEFAULT_UPLOAD_TIMEOUT_SECONDS,
            ),
            s3_region=os.getenv("CHAINSNAP_S3_REGION") or None,
            s3_profile=os.getenv("CHAINSNAP_S3_PROFILE") or None,
            cleanup_blocks=_parse_flag(os.getenv("CHAINSNAP_CLEANUP_BLOCKS")),
        )
        values.update(overrides)
        return cls(**values)


def normalize_bucket(raw_value: str | None) -> str | None:
    """Trim a bucket value and map blank input to None."""
    if raw_value is None:
        return None
    return raw_value.strip() or None


def resolve_path(raw_value: str) -> Path:
    """Expand and resolve a user supplied path."""
    return Path(raw_value.strip()).expanduser().resolve()


def _parse_chunk_hint(raw_value: str | None) -> int:
    """Parse the chunk hint, falling back to the default for non-numeric input.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed chunk hint.
    """
    if raw_value is None:
        return DEFAULT_MAX_BLOCKS_PER_CHUNK
    try:
        return int(raw_value)
    except ValueError:
        return DEFAULT_MAX_BLOCKS_PER_CHUNK


def _parse_int(name: str, raw_value: str | None, default: int) -> int:
    """Parse an integer environment value.

    Args:
        name: Environment variable name for error messages.
        raw_value: Raw string from environment.
        default: Value used when the variable is unset.

    Returns:
        Parsed integer.

    Raises:
        SnapshotConfigError: If value cannot be parsed into int.
    """
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return int(raw_value)
    except ValueError as error:
        raise SnapshotConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error


def _parse_seconds(name: str, raw_value: str | None, default: float) -> float:
    """Parse a positive duration in seconds.

    Raises:
        SnapshotConfigError: If value is not a positive number.
    """
    if raw_value is None or not raw_value.strip():
        return default
    try:
        seconds = float(raw_value)
    except ValueError as error:
        raise SnapshotConfigError(
            f"Invalid {name} value: expected seconds, got '{raw_value}'. "
            f"Set {name} to a positive number."
        ) from error
    if seconds <= 0:
        raise SnapshotConfigError(
            f"Invalid {name} value: expected seconds above zero, got '{raw_value}'."
        )
    return seconds


def _parse_flag(raw_value: str | None) -> bool:
    if raw_value is None:
        return False
    return raw_value.strip().lower() in _TRUE_VALUES
