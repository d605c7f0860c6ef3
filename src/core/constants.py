"""Core constants used across chainsnap modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_MAX_BLOCKS_PER_CHUNK = 1000
DEFAULT_RPC_IPC_PATH = Path("~/.ironfish/ironfish.ipc")
DEFAULT_RPC_TCP_PORT = 8020
DEFAULT_RPC_READ_TIMEOUT_SECONDS = 600.0
DEFAULT_UPLOAD_TIMEOUT_SECONDS = 600.0
RPC_MESSAGE_DELIMITER = b"\f"
RPC_POLL_INTERVAL_SECONDS = 0.5
RPC_RECV_SIZE = 64 * 1024
SNAPSHOT_CHAIN_STREAM_ROUTE = "chain/snapshotChainStream"
BLOCKS_DIR_NAME = "blocks"
MANIFEST_FILE_NAME = "manifest.json"
ARCHIVE_FILE_PREFIX = "ironfish_snapshot_"
ARCHIVE_FILE_SUFFIX = ".tar.gz"
TEMP_DIR_PREFIX = "chainsnap-"
ARCHIVER_BINARY = "tar"
ARCHIVE_CONTENT_TYPE = "application/x-compressed-tar"
MANIFEST_CONTENT_TYPE = "application/json"
BUCKET_ACL = "bucket-owner-full-control"
HASH_ALGORITHM = "sha256"
DIGEST_CHUNK_SIZE = 1024 * 1024
PROCESS_POLL_INTERVAL_SECONDS = 0.2
PROCESS_TERMINATE_GRACE_SECONDS = 5.0
PROGRESS_LOG_INTERVAL_BLOCKS = 1000

STAGE_INIT = "init"
STAGE_PREPARE_DIR = "prepare_dir"
STAGE_STREAM_BLOCKS = "stream_blocks"
STAGE_ARCHIVE = "archive"
STAGE_DIGEST = "digest"
STAGE_UPLOAD_ARCHIVE = "upload_archive"
STAGE_WRITE_MANIFEST = "write_manifest"
STAGE_UPLOAD_MANIFEST = "upload_manifest"
STAGE_DONE = "done"
STAGE_FAILED = "failed"
