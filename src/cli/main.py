"""Chainsnap CLI entry points.
This module exposes the snapshot export and digest commands.
It maps argparse commands onto pipeline calls.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Sequence

from core.config import SnapshotConfig, normalize_bucket, resolve_path
from core.errors import ChainSnapError
from ingest.pipeline import SnapshotPipelineRunner
from store.digest import compute_file_digest


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="chainsnap", description="Chain snapshot export CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_snapshot_command(subparsers)
    _add_digest_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the chainsnap CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "snapshot":
        return _run_snapshot_command(args)
    if args.command == "digest":
        return _run_digest_command(args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(args: argparse.Namespace) -> SnapshotConfig:
    """Build config from environment with CLI overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured runtime settings.
    """
    overrides: dict[str, Any] = {}
    bucket = normalize_bucket(args.bucket)
    if bucket:
        overrides["bucket"] = bucket
    if args.path:
        overrides["working_dir"] = resolve_path(args.path)
    if args.max_blocks_per_chunk is not None:
        overrides["max_blocks_per_chunk"] = args.max_blocks_per_chunk
    if args.rpc_tcp_host:
        overrides["rpc_tcp_host"] = args.rpc_tcp_host
    if args.rpc_tcp_port is not None:
        overrides["rpc_tcp_port"] = args.rpc_tcp_port
    if args.rpc_ipc_path:
        overrides["rpc_ipc_path"] = resolve_path(args.rpc_ipc_path)
    if args.rpc_auth_token:
        overrides["rpc_auth_token"] = args.rpc_auth_token
    if args.cleanup_blocks:
        overrides["cleanup_blocks"] = True
    return SnapshotConfig.from_env(**overrides)


def _run_snapshot_command(args: argparse.Namespace) -> int:
    """Handle snapshot command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    try:
        config = _build_config(args)
    except ChainSnapError as error:
        print(f"Invalid configuration: {error}", file=sys.stderr)
        return 1
    runner = SnapshotPipelineRunner(config)
    try:
        result = runner.run()
    except ChainSnapError as error:
        print(f"Snapshot failed during {runner.job.failed_stage}: {error}", file=sys.stderr)
        return 1
    print(f"archive_path={result.archive_path}")
    print(f"block_height={result.block_range.stop}")
    print(f"checksum={result.digest.checksum}")
    print(f"file_size={result.digest.file_size}")
    print(f"manifest_path={result.manifest_path or '-'}")
    return 0


def _run_digest_command(args: argparse.Namespace) -> int:
    """Handle digest command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    try:
        digest = compute_file_digest(resolve_path(args.file))
    except ChainSnapError as error:
        print(str(error), file=sys.stderr)
        return 1
    print(f"{digest.checksum}  {digest.file_size}")
    return 0


def _add_snapshot_command(subparsers: Any) -> None:
    """Register snapshot subcommand."""
    parser = subparsers.add_parser(
        "snapshot",
        help="Export a chain snapshot and optionally upload it to a bucket",
    )
    parser.add_argument(
        "-e",
        "--bucket",
        help="Bucket host or s3://bucket URI; overrides IRONFISH_SNAPSHOT_BUCKET",
    )
    parser.add_argument("-p", "--path", help="Directory where the snapshot should be saved")
    parser.add_argument(
        "-m",
        "--max-blocks-per-chunk",
        type=int,
        help="Max number of blocks per chunk requested from the node",
    )
    parser.add_argument("--rpc-tcp-host", help="Connect to the node over TCP at this host")
    parser.add_argument("--rpc-tcp-port", type=int, help="Node RPC TCP port")
    parser.add_argument("--rpc-ipc-path", help="Node RPC unix socket path")
    parser.add_argument("--rpc-auth-token", help="Node RPC auth token")
    parser.add_argument(
        "--cleanup-blocks",
        action="store_true",
        help="Remove downloaded block files after a successful export",
    )


def _add_digest_command(subparsers: Any) -> None:
    """Register digest subcommand."""
    parser = subparsers.add_parser("digest", help="Print sha256 checksum and size of a file")
    parser.add_argument("file", help="Archive file to hash")
