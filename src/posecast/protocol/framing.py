"""Length-prefixed framing for a byte stream.

Each frame on the wire is ``uint32_be(len(payload)) || payload``. A
receiver reads exactly four bytes, interprets them as the length, then
reads exactly that many bytes as one encoded record.
"""

from __future__ import annotations

import struct

from posecast.errors import FrameDecodeError, FrameTooLargeError

_LENGTH = struct.Struct(">I")

HEADER_SIZE = _LENGTH.size
MAX_PAYLOAD_SIZE = (1 << 32) - 1


def encode_frame(payload: bytes) -> bytes:
    """Prefix *payload* with its big-endian 4-byte length.

    Raises:
        FrameTooLargeError: If the payload exceeds ``MAX_PAYLOAD_SIZE``.
            Nothing is produced in that case.
    """
    size = len(payload)
    if size > MAX_PAYLOAD_SIZE:
        raise FrameTooLargeError(size, MAX_PAYLOAD_SIZE)
    return _LENGTH.pack(size) + bytes(payload)


def decode_frame(data: bytes) -> bytes:
    """Return the payload of *data*, which must be exactly one frame."""
    if len(data) < HEADER_SIZE:
        raise FrameDecodeError(f"Frame truncated: {len(data)} bytes, need {HEADER_SIZE}")
    (size,) = _LENGTH.unpack_from(data, 0)
    end = HEADER_SIZE + size
    if len(data) < end:
        got = len(data) - HEADER_SIZE
        raise FrameDecodeError(f"Frame truncated: declared {size} bytes, got {got}")
    if len(data) > end:
        raise FrameDecodeError(f"{len(data) - end} trailing bytes after frame")
    return bytes(data[HEADER_SIZE:end])


class FrameReader:
    """Incremental frame splitter for a stream with no message boundaries.

    Feed arbitrary chunks; complete payloads come back in order and any
    partial frame stays buffered until the rest arrives.
    """

    def __init__(self) -> None:
        self._buf = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet returned as a payload."""
        return len(self._buf)

    def feed(self, data: bytes) -> list[bytes]:
        self._buf += data
        payloads: list[bytes] = []
        while len(self._buf) >= HEADER_SIZE:
            (size,) = _LENGTH.unpack_from(self._buf, 0)
            end = HEADER_SIZE + size
            if len(self._buf) < end:
                break
            payloads.append(bytes(self._buf[HEADER_SIZE:end]))
            del self._buf[:end]
        return payloads
