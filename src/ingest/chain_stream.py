"""Two-phase reader for the snapshot chain stream.

The node announces the snapshot bounds in the first message and then
sends block chunks on the same ordered channel. This module splits that
single iterator into a typed bounds read followed by lazy record reads.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping, Protocol

from core.errors import SnapshotStreamError
from core.types import BlockRange, BlockRecord


class BlockStreamSource(Protocol):
    """Source of snapshot bounds and block records."""

    def read_bounds(self) -> BlockRange:
        ...

    def records(self) -> Iterator[BlockRecord]:
        ...


class SnapshotChainStream:
    """Adapter over one non-replayable iterator of decoded stream messages."""

    def __init__(self, messages: Iterator[Any]) -> None:
        self._messages = iter(messages)
        self._block_range: BlockRange | None = None

    def read_bounds(self) -> BlockRange:
        """Consume exactly the first message and return snapshot bounds.

        Raises:
            SnapshotStreamError: If the stream ends early or bounds are invalid.
        """
        if self._block_range is not None:
            return self._block_range
        try:
            first_message = next(self._messages)
        except StopIteration:
            raise SnapshotStreamError(
                "Snapshot stream ended before the node announced block bounds."
            ) from None
        self._block_range = decode_bounds(first_message)
        return self._block_range

    def records(self) -> Iterator[BlockRecord]:
        """Yield block records from the remainder of the stream.

        Raises:
            SnapshotStreamError: If called before ``read_bounds``.
        """
        if self._block_range is None:
            raise SnapshotStreamError(
                "Snapshot bounds must be read before block records. Call read_bounds() first."
            )
        for message in self._messages:
            yield decode_record(message)


def decode_bounds(message: Any) -> BlockRange:
    """Decode the ``{start, stop}`` bounds message.

    Raises:
        SnapshotStreamError: For missing, non-integer, or inverted bounds.
    """
    if not isinstance(message, Mapping):
        raise SnapshotStreamError(f"Expected snapshot bounds message, got {message!r}.")
    start = message.get("start")
    stop = message.get("stop")
    if not _is_int(start) or not _is_int(stop):
        raise SnapshotStreamError(
            f"Snapshot bounds must be integers, got start={start!r} stop={stop!r}."
        )
    if stop < start:
        raise SnapshotStreamError(f"Snapshot bounds are inverted: start={start} stop={stop}.")
    return BlockRange(start=start, stop=stop)


def decode_record(message: Any) -> BlockRecord:
    """Decode one data message; missing fields yield a skippable record."""
    if not isinstance(message, Mapping):
        return BlockRecord(sequence=None, payload=None)
    sequence = message.get("seq")
    return BlockRecord(
        sequence=sequence if _is_int(sequence) else None,
        payload=decode_buffer(message.get("buffer")),
    )


def decode_buffer(raw_buffer: Any) -> bytes | None:
    """Decode a serialized buffer into bytes.

    Accepts Node's ``{"type": "Buffer", "data": [...]}`` JSON form, a list
    of byte values, raw bytes, or a hex string.

    Raises:
        SnapshotStreamError: If the buffer encoding is not recognized.
    """
    if raw_buffer is None:
        return None
    if isinstance(raw_buffer, (bytes, bytearray)):
        return bytes(raw_buffer)
    if isinstance(raw_buffer, Mapping) and raw_buffer.get("type") == "Buffer":
        raw_buffer = raw_buffer.get("data")
    try:
        if isinstance(raw_buffer, list):
            return bytes(raw_buffer)
        if isinstance(raw_buffer, str):
            return bytes.fromhex(raw_buffer)
    except (TypeError, ValueError) as error:
        raise SnapshotStreamError(f"Malformed block buffer in snapshot stream: {error}.") from error
    raise SnapshotStreamError(
        f"Unsupported block buffer encoding in snapshot stream: {type(raw_buffer).__name__}."
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
