"""Node RPC socket client.

This module speaks the node's socket RPC protocol: JSON frames separated
by a form-feed delimiter, streamed items tagged with the request id, and
one final status message that closes the request.
"""

from __future__ import annotations

import itertools
import json
import socket
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping

from core.cancellation import CancellationToken
from core.config import SnapshotConfig
from core.constants import (
    RPC_MESSAGE_DELIMITER,
    RPC_POLL_INTERVAL_SECONDS,
    RPC_RECV_SIZE,
    SNAPSHOT_CHAIN_STREAM_ROUTE,
)
from core.errors import SnapshotStreamError
from core.logging_config import get_logger
from ingest.chain_stream import SnapshotChainStream

_LOGGER = get_logger(__name__)

SocketFactory = Callable[[], socket.socket]


class NodeRpcClient:
    """Blocking RPC client bound to one node connection."""

    def __init__(
        self,
        config: SnapshotConfig,
        cancel_token: CancellationToken | None = None,
        socket_factory: SocketFactory | None = None,
    ) -> None:
        self._config = config
        self._cancel_token = cancel_token or CancellationToken()
        self._socket_factory = socket_factory or (lambda: _open_socket(config))
        self._socket: socket.socket | None = None
        self._buffer = bytearray()
        self._message_ids = itertools.count(1)

    def connect(self) -> None:
        """Open the underlying connection.

        Raises:
            SnapshotStreamError: If the node cannot be reached.
        """
        try:
            self._socket = self._socket_factory()
        except OSError as error:
            raise SnapshotStreamError(
                f"Could not connect to node at {describe_endpoint(self._config)}: {error}. "
                "Check that the node is running and its RPC server is enabled."
            ) from error
        self._socket.settimeout(RPC_POLL_INTERVAL_SECONDS)
        _LOGGER.info("rpc_connected", endpoint=describe_endpoint(self._config))

    def close(self) -> None:
        if self._socket is None:
            return
        try:
            self._socket.close()
        finally:
            self._socket = None

    def __enter__(self) -> "NodeRpcClient":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def stream_request(self, route: str, payload: Mapping[str, Any]) -> Iterator[Any]:
        """Send one request and yield its streamed items in arrival order.

        Args:
            route: RPC route, for example ``chain/snapshotChainStream``.
            payload: Request body.

        Yields:
            The ``data`` field of each stream message.

        Raises:
            SnapshotStreamError: On node errors or premature connection close.
        """
        message_id = next(self._message_ids)
        self._send(_build_request(message_id, route, payload, self._config.rpc_auth_token))
        for frame in self._read_frames():
            frame_type = frame.get("type")
            body = frame.get("data") or {}
            if frame_type == "malformedRequest":
                raise SnapshotStreamError(
                    f"Node rejected {route} request: {_error_message(body)}."
                )
            if not isinstance(body, Mapping) or body.get("id") != message_id:
                continue
            if frame_type == "stream":
                yield body.get("data")
            elif frame_type == "message":
                _check_final_status(route, body)
                return
        raise SnapshotStreamError(
            f"Connection to node closed before {route} completed. "
            "The snapshot is incomplete; rerun the export."
        )

    def _send(self, message: Mapping[str, Any]) -> None:
        if self._socket is None:
            raise SnapshotStreamError("RPC client is not connected. Call connect() first.")
        encoded = json.dumps(message).encode("utf-8") + RPC_MESSAGE_DELIMITER
        try:
            self._socket.sendall(encoded)
        except OSError as error:
            raise SnapshotStreamError(f"Failed to send RPC request: {error}.") from error

    def _read_frames(self) -> Iterator[dict[str, Any]]:
        """Yield decoded frames until the peer closes the connection."""
        while True:
            delimiter_index = self._buffer.find(RPC_MESSAGE_DELIMITER)
            if delimiter_index >= 0:
                raw_frame = bytes(self._buffer[:delimiter_index])
                del self._buffer[: delimiter_index + len(RPC_MESSAGE_DELIMITER)]
                if raw_frame.strip():
                    yield _decode_frame(raw_frame)
                continue
            chunk = self._receive()
            if not chunk:
                return
            self._buffer.extend(chunk)

    def _receive(self) -> bytes:
        """Receive the next chunk, polling cancellation and idle timeout."""
        if self._socket is None:
            raise SnapshotStreamError("RPC client is not connected. Call connect() first.")
        idle_since = time.monotonic()
        while True:
            self._cancel_token.raise_if_cancelled("Block stream read")
            try:
                return self._socket.recv(RPC_RECV_SIZE)
            except socket.timeout:
                idle_seconds = time.monotonic() - idle_since
                if idle_seconds >= self._config.rpc_read_timeout_seconds:
                    raise SnapshotStreamError(
                        f"No data received from node for {idle_seconds:.0f}s. "
                        "Increase CHAINSNAP_RPC_READ_TIMEOUT or check node health."
                    ) from None
            except OSError as error:
                raise SnapshotStreamError(f"Node connection failed: {error}.") from error


@contextmanager
def open_chain_stream(
    config: SnapshotConfig,
    cancel_token: CancellationToken | None = None,
) -> Iterator[SnapshotChainStream]:
    """Open a snapshot chain stream on a fresh node connection.

    Args:
        config: Runtime configuration with RPC endpoint and chunk hint.
        cancel_token: Optional token polled during reads.

    Yields:
        A two-phase stream reader; the connection closes on exit.
    """
    client = NodeRpcClient(config, cancel_token)
    client.connect()
    try:
        messages = client.stream_request(
            SNAPSHOT_CHAIN_STREAM_ROUTE,
            {"maxBlocksPerChunk": config.max_blocks_per_chunk},
        )
        yield SnapshotChainStream(messages)
    finally:
        client.close()


def describe_endpoint(config: SnapshotConfig) -> str:
    if config.rpc_tcp_host:
        return f"tcp://{config.rpc_tcp_host}:{config.rpc_tcp_port}"
    return f"ipc://{config.rpc_ipc_path}"


def _open_socket(config: SnapshotConfig) -> socket.socket:
    if config.rpc_tcp_host:
        return socket.create_connection((config.rpc_tcp_host, config.rpc_tcp_port))
    ipc_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        ipc_socket.connect(str(config.rpc_ipc_path))
    except OSError:
        ipc_socket.close()
        raise
    return ipc_socket


def _build_request(
    message_id: int,
    route: str,
    payload: Mapping[str, Any],
    auth_token: str | None,
) -> dict[str, Any]:
    data: dict[str, Any] = {"mid": message_id, "type": route, "data": dict(payload)}
    if auth_token:
        data["auth"] = auth_token
    return {"type": "message", "data": data}


def _decode_frame(raw_frame: bytes) -> dict[str, Any]:
    try:
        frame = json.loads(raw_frame.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise SnapshotStreamError(f"Received malformed RPC frame from node: {error}.") from error
    if not isinstance(frame, dict):
        raise SnapshotStreamError("Received malformed RPC frame from node: expected an object.")
    return frame


def _check_final_status(route: str, body: Mapping[str, Any]) -> None:
    status = body.get("status")
    if isinstance(status, int) and status >= 400:
        raise SnapshotStreamError(
            f"Node returned status {status} for {route}: {_error_message(body.get('data'))}."
        )


def _error_message(payload: Any) -> str:
    if isinstance(payload, Mapping):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)
    return str(payload)
