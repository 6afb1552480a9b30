"""Minimal protobuf reader used to check encoder output in tests."""

from __future__ import annotations

import struct
from collections import defaultdict
from typing import Any


def read_varint(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Return ``(value, next_pos)`` for the varint starting at *pos*."""
    result = 0
    shift = 0
    while True:
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7


def parse(data: bytes) -> list[tuple[int, int, Any]]:
    """Split *data* into ``(field_number, wire_type, value)`` triples.

    VARINT values are ints; FIXED64 and LEN values are the raw bytes.
    """
    fields: list[tuple[int, int, Any]] = []
    pos = 0
    while pos < len(data):
        key, pos = read_varint(data, pos)
        number, wire_type = key >> 3, key & 0x07
        if wire_type == 0:
            value, pos = read_varint(data, pos)
        elif wire_type == 1:
            value = data[pos : pos + 8]
            pos += 8
        elif wire_type == 2:
            length, pos = read_varint(data, pos)
            value = data[pos : pos + length]
            pos += length
        else:
            raise ValueError(f"unexpected wire type {wire_type}")
        fields.append((number, wire_type, value))
    return fields


def by_number(data: bytes) -> dict[int, list[Any]]:
    """Group parsed values by field number, preserving order."""
    grouped: dict[int, list[Any]] = defaultdict(list)
    for number, _wire_type, value in parse(data):
        grouped[number].append(value)
    return dict(grouped)


def as_double(raw: bytes) -> float:
    return struct.unpack("<d", raw)[0]


def as_doubles(raw: bytes) -> list[float]:
    return [v for (v,) in struct.iter_unpack("<d", raw)]


def as_signed(value: int) -> int:
    """Reinterpret a decoded uint64 as int64."""
    return value - (1 << 64) if value >= 1 << 63 else value
