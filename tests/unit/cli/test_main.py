"""Unit tests for CLI command handling."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

import pytest

from cli.main import main
from core.errors import SnapshotStreamError
from core.types import BlockRange, FileDigest, SnapshotResult


def test_cli_digest_prints_checksum_and_size(tmp_path: Path, capsys) -> None:
    """Digest command should print sha256 and byte size."""
    archive_path = tmp_path / "snap.tar.gz"
    archive_path.write_bytes(b"snapshot-bytes")

    exit_code = main(["digest", str(archive_path)])
    output = capsys.readouterr().out.strip()

    assert exit_code == 0 and output == f"{hashlib.sha256(b'snapshot-bytes').hexdigest()}  14"


def test_cli_digest_reports_missing_file(tmp_path: Path, capsys) -> None:
    """Digest command should fail cleanly for a missing file."""
    exit_code = main(["digest", str(tmp_path / "missing")])

    assert exit_code == 1 and "missing" in capsys.readouterr().err


def test_cli_snapshot_applies_overrides(tmp_path: Path, monkeypatch, capsys) -> None:
    """Snapshot command should pass flag overrides into the runner config."""
    captured: dict[str, Any] = {}

    class _FakeRunner:
        def __init__(self, config: Any) -> None:
            captured["config"] = config

        def run(self) -> SnapshotResult:
            return SnapshotResult(
                working_dir=tmp_path,
                archive_path=tmp_path / "ironfish_snapshot_1.tar.gz",
                block_range=BlockRange(1, 9),
                blocks_written=9,
                digest=FileDigest(checksum="00" * 32, file_size=10),
                manifest=None,
                manifest_path=None,
                uploads=(),
            )

    monkeypatch.delenv("IRONFISH_SNAPSHOT_BUCKET", raising=False)
    monkeypatch.setattr("cli.main.SnapshotPipelineRunner", _FakeRunner)

    exit_code = main(
        ["snapshot", "-e", " bucket.example.com ", "-p", str(tmp_path / "out"), "-m", "50"]
    )
    output = capsys.readouterr().out

    config = captured["config"]
    assert exit_code == 0 and "block_height=9" in output
    assert config.bucket == "bucket.example.com" and config.max_blocks_per_chunk == 50
    assert config.working_dir == (tmp_path / "out").resolve()


def test_cli_snapshot_reports_failed_stage(monkeypatch, capsys) -> None:
    """Snapshot failures should name the failed stage on stderr."""

    class _Job:
        failed_stage = "stream_blocks"

    class _FailingRunner:
        def __init__(self, config: Any) -> None:
            self.job = _Job()

        def run(self) -> SnapshotResult:
            raise SnapshotStreamError("connection closed")

    monkeypatch.setattr("cli.main.SnapshotPipelineRunner", _FailingRunner)

    exit_code = main(["snapshot"])
    error_output = capsys.readouterr().err

    assert exit_code == 1 and "Snapshot failed during stream_blocks" in error_output


def test_cli_snapshot_rejects_zero_chunk_hint(capsys) -> None:
    """A non-positive chunk hint should be reported as invalid configuration."""
    exit_code = main(["snapshot", "-m", "0"])

    assert exit_code == 1 and "Invalid configuration" in capsys.readouterr().err


def test_cli_requires_command() -> None:
    """Parser should exit when no command is given."""
    with pytest.raises(SystemExit):
        main([])


def _capturing_runner(captured: dict[str, Any], tmp_path: Path) -> type:
    class _CapturingRunner:
        def __init__(self, config: Any) -> None:
            captured["config"] = config

        def run(self) -> SnapshotResult:
            return SnapshotResult(
                working_dir=tmp_path,
                archive_path=tmp_path / "ironfish_snapshot_1.tar.gz",
                block_range=BlockRange(1, 1),
                blocks_written=1,
                digest=FileDigest(checksum="00" * 32, file_size=1),
                manifest=None,
                manifest_path=None,
                uploads=(),
            )

    return _CapturingRunner


def test_cli_chunk_flag_wins_over_invalid_env(tmp_path: Path, monkeypatch) -> None:
    """A valid -m flag should be used even when the env chunk hint is zero."""
    captured: dict[str, Any] = {}
    monkeypatch.setenv("MAX_BLOCKS_PER_SNAPSHOT_CHUNK", "0")
    monkeypatch.setattr("cli.main.SnapshotPipelineRunner", _capturing_runner(captured, tmp_path))

    exit_code = main(["snapshot", "-m", "5"])

    assert exit_code == 0 and captured["config"].max_blocks_per_chunk == 5


def test_cli_blank_bucket_flag_falls_back_to_env(tmp_path: Path, monkeypatch) -> None:
    """A blank -e value should keep the bucket from the environment."""
    captured: dict[str, Any] = {}
    monkeypatch.setenv("IRONFISH_SNAPSHOT_BUCKET", "env-bucket.example.com")
    monkeypatch.setattr("cli.main.SnapshotPipelineRunner", _capturing_runner(captured, tmp_path))

    exit_code = main(["snapshot", "-e", "  "])

    assert exit_code == 0 and captured["config"].bucket == "env-bucket.example.com"
