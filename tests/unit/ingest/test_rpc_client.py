"""Unit tests for the node RPC socket client."""

from __future__ import annotations

import json
import socket
from typing import Any

import pytest

from core.config import SnapshotConfig
from core.errors import SnapshotStreamError
from ingest.rpc_client import NodeRpcClient, describe_endpoint


class _FakeSocket:
    """Socket double replaying scripted chunks, then EOF."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.sent = bytearray()
        self.closed = False

    def settimeout(self, timeout: float) -> None:
        self.timeout = timeout

    def sendall(self, data: bytes) -> None:
        self.sent.extend(data)

    def recv(self, size: int) -> bytes:
        if not self._chunks:
            return b""
        chunk = self._chunks.pop(0)
        if chunk == b"<timeout>":
            raise socket.timeout("timed out")
        return chunk

    def close(self) -> None:
        self.closed = True


def _frame(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8") + b"\f"


def _stream(message_id: int, data: Any) -> bytes:
    return _frame({"type": "stream", "data": {"id": message_id, "data": data}})


def _final(message_id: int, status: int, data: Any = None) -> bytes:
    return _frame({"type": "message", "data": {"id": message_id, "status": status, "data": data}})


def _client(fake_socket: _FakeSocket, config: SnapshotConfig | None = None) -> NodeRpcClient:
    client = NodeRpcClient(config or SnapshotConfig(), socket_factory=lambda: fake_socket)
    client.connect()
    return client


def test_stream_request_yields_items_until_final_message() -> None:
    """Client should yield streamed items and stop at the final status."""
    wire = _stream(1, {"start": 1, "stop": 2}) + _stream(1, {"seq": 1}) + _final(1, 200)
    fake_socket = _FakeSocket([wire[:7], wire[7:30], wire[30:]])
    client = _client(fake_socket)

    items = list(client.stream_request("chain/snapshotChainStream", {"maxBlocksPerChunk": 5}))

    assert items == [{"start": 1, "stop": 2}, {"seq": 1}]


def test_stream_request_sends_delimited_request_with_auth() -> None:
    """Request frames should carry route, payload, id, and auth token."""
    fake_socket = _FakeSocket([_final(1, 200)])
    client = _client(fake_socket, SnapshotConfig(rpc_auth_token="secret"))

    list(client.stream_request("chain/snapshotChainStream", {"maxBlocksPerChunk": 7}))
    request = json.loads(bytes(fake_socket.sent).rstrip(b"\f"))

    assert request == {
        "type": "message",
        "data": {
            "mid": 1,
            "type": "chain/snapshotChainStream",
            "data": {"maxBlocksPerChunk": 7},
            "auth": "secret",
        },
    }


def test_stream_request_ignores_other_message_ids() -> None:
    """Frames for other requests should be skipped."""
    wire = _stream(99, {"seq": 5}) + _stream(1, {"seq": 1}) + _final(1, 200)
    client = _client(_FakeSocket([wire]))

    items = list(client.stream_request("chain/snapshotChainStream", {}))

    assert items == [{"seq": 1}]


def test_stream_request_raises_on_error_status() -> None:
    """A final status >= 400 should raise with the node's message."""
    wire = _final(1, 500, {"code": "error", "message": "chain not synced"})
    client = _client(_FakeSocket([wire]))

    with pytest.raises(SnapshotStreamError, match="chain not synced"):
        list(client.stream_request("chain/snapshotChainStream", {}))


def test_stream_request_raises_on_premature_close() -> None:
    """EOF before the final message should be a stream failure."""
    client = _client(_FakeSocket([_stream(1, {"start": 1, "stop": 3})]))
    items = client.stream_request("chain/snapshotChainStream", {})

    assert next(items) == {"start": 1, "stop": 3}
    with pytest.raises(SnapshotStreamError):
        next(items)


def test_stream_request_raises_on_idle_timeout() -> None:
    """Silence beyond the read timeout should fail the stream."""
    config = SnapshotConfig(rpc_read_timeout_seconds=1e-9)
    client = _client(_FakeSocket([b"<timeout>"]), config)

    with pytest.raises(SnapshotStreamError):
        list(client.stream_request("chain/snapshotChainStream", {}))


def test_connect_wraps_socket_errors() -> None:
    """Connection failures should surface as stream errors."""

    def _refuse() -> socket.socket:
        raise ConnectionRefusedError("refused")

    client = NodeRpcClient(SnapshotConfig(rpc_tcp_host="127.0.0.1"), socket_factory=_refuse)

    with pytest.raises(SnapshotStreamError):
        client.connect()

    assert describe_endpoint(SnapshotConfig(rpc_tcp_host="127.0.0.1")) == "tcp://127.0.0.1:8020"


def test_close_closes_socket() -> None:
    """Closing the client should close the underlying socket."""
    fake_socket = _FakeSocket([])
    client = _client(fake_socket)

    client.close()

    assert fake_socket.closed
