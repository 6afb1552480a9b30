"""Minimal protobuf wire-format writer.

Implements only the encoding half of the protobuf wire format, enough to
serialize :class:`~posecast.telemetry.snapshot.TelemetrySnapshot` without
vendoring ``.proto`` files or depending on the ``protobuf`` runtime.

Wire format recap:
  key          = varint((field_number << 3) | wire_type)
  VARINT   (0) = unsigned LEB128, least-significant 7-bit group first
  FIXED64  (1) = 8 bytes little-endian (IEEE-754 for doubles)
  LEN      (2) = varint(byte_count) followed by the raw bytes

Repeated doubles are always written packed; repeated strings are always
written one entry per element.
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterable, Sequence
from enum import IntEnum

_UINT64_MASK = (1 << 64) - 1

_DOUBLE = struct.Struct("<d")


class WireType(IntEnum):
    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    FIXED32 = 5


def encode_varint(value: int) -> bytes:
    """Encode *value* as an unsigned varint.

    Negative values are written as their 64-bit two's-complement form,
    which is how protobuf encodes ``int64`` (always 10 bytes).
    """
    raw = value & _UINT64_MASK
    out = bytearray()
    while True:
        byte = raw & 0x7F
        raw >>= 7
        if raw == 0:
            out.append(byte)
            return bytes(out)
        out.append(byte | 0x80)


def encode_double(value: float) -> bytes:
    """Return the 8 little-endian IEEE-754 bytes of *value*."""
    return _DOUBLE.pack(value)


class ProtoWriter:
    """Append-only buffer of protobuf fields.

    Every ``write_*`` method silently skips field numbers ``<= 0``.
    """

    def __init__(self) -> None:
        self._buf = bytearray()

    @property
    def data(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    # -- Scalars ---------------------------------------------------------------

    def write_varint(self, field_number: int, value: int) -> None:
        if field_number <= 0:
            return
        self._write_key(field_number, WireType.VARINT)
        self._buf += encode_varint(value)

    def write_bool(self, field_number: int, value: bool) -> None:
        self.write_varint(field_number, 1 if value else 0)

    def write_double(self, field_number: int, value: float) -> None:
        if field_number <= 0:
            return
        self._write_key(field_number, WireType.FIXED64)
        self._buf += encode_double(value)

    def write_string(self, field_number: int, value: str) -> None:
        self.write_bytes(field_number, value.encode("utf-8"))

    def write_strings(self, field_number: int, values: Iterable[str]) -> None:
        """Write each string as its own entry, in order (strings are never packed)."""
        for value in values:
            self.write_string(field_number, value)

    def write_bytes(self, field_number: int, value: bytes) -> None:
        if field_number <= 0:
            return
        self._write_key(field_number, WireType.LENGTH_DELIMITED)
        self._buf += encode_varint(len(value))
        self._buf += value

    # -- Composites ------------------------------------------------------------

    def write_packed_doubles(self, field_number: int, values: Sequence[float]) -> None:
        """Write *values* as one packed entry of concatenated fixed64 doubles.

        An empty sequence writes nothing.
        """
        if not values:
            return
        packed = b"".join(encode_double(v) for v in values)
        self.write_bytes(field_number, packed)

    def write_message(self, field_number: int, build: Callable[[ProtoWriter], None]) -> None:
        """Encode a nested message with *build* and write it length-delimited."""
        nested = ProtoWriter()
        build(nested)
        self.write_bytes(field_number, nested.data)

    def _write_key(self, field_number: int, wire_type: WireType) -> None:
        self._buf += encode_varint((field_number << 3) | wire_type)
