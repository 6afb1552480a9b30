from __future__ import annotations

import math
import struct

import pytest

from posecast.protocol.protobuf.writer import (
    ProtoWriter,
    WireType,
    encode_double,
    encode_varint,
)
from tests.protocol._decoder import as_double, as_doubles, parse, read_varint


class TestEncodeVarint:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, "00"),
            (1, "01"),
            (127, "7f"),
            (128, "8001"),
            (300, "ac02"),
            (16_383, "ff7f"),
            (16_384, "808001"),
        ],
    )
    def test_known_encodings(self, value: int, expected: str) -> None:
        assert encode_varint(value).hex() == expected

    def test_max_uint64_is_ten_bytes(self) -> None:
        encoded = encode_varint((1 << 64) - 1)
        assert encoded == b"\xff" * 9 + b"\x01"

    def test_negative_uses_twos_complement(self) -> None:
        """int64 -1 is written as ten bytes, same as uint64 max."""
        assert encode_varint(-1) == encode_varint((1 << 64) - 1)
        assert len(encode_varint(-2)) == 10

    def test_round_trip_and_length(self) -> None:
        for value in (0, 1, 2**7 - 1, 2**7, 2**14, 2**21 + 5, 2**35, 2**63, 2**64 - 1):
            encoded = encode_varint(value)
            decoded, end = read_varint(encoded)
            assert decoded == value
            assert end == len(encoded)
            assert len(encoded) == max(1, math.ceil(value.bit_length() / 7))


class TestEncodeDouble:
    @pytest.mark.parametrize("value", [0.0, -0.0, 1.5, -123.456, 1e-300, 1e300, math.inf])
    def test_bit_exact(self, value: float) -> None:
        encoded = encode_double(value)
        assert len(encoded) == 8
        assert encoded == struct.pack("<d", value)
        assert math.copysign(1.0, as_double(encoded)) == math.copysign(1.0, value)

    def test_nan_survives(self) -> None:
        assert math.isnan(as_double(encode_double(math.nan)))


class TestProtoWriter:
    def test_varint_field_key(self) -> None:
        w = ProtoWriter()
        w.write_varint(3, 150)
        assert w.data.hex() == "189601"

    def test_bool_written_as_varint(self) -> None:
        w = ProtoWriter()
        w.write_bool(4, True)
        w.write_bool(5, False)
        assert parse(w.data) == [(4, WireType.VARINT, 1), (5, WireType.VARINT, 0)]

    def test_double_field(self) -> None:
        w = ProtoWriter()
        w.write_double(2, 0.92)
        assert w.data[0] == (2 << 3) | WireType.FIXED64
        assert as_double(w.data[1:]) == 0.92

    def test_string_field(self) -> None:
        w = ProtoWriter()
        w.write_string(1, "hi")
        assert w.data == b"\x0a\x02hi"

    def test_empty_string_still_written(self) -> None:
        w = ProtoWriter()
        w.write_string(1, "")
        assert w.data == b"\x0a\x00"

    def test_utf8_length_counts_bytes(self) -> None:
        w = ProtoWriter()
        w.write_string(1, "é")
        assert w.data == b"\x0a\x02\xc3\xa9"

    def test_repeated_strings_unpacked(self) -> None:
        w = ProtoWriter()
        w.write_strings(5, ["NO_JUMP", "NO_RELOCALIZE"])
        assert parse(w.data) == [
            (5, WireType.LENGTH_DELIMITED, b"NO_JUMP"),
            (5, WireType.LENGTH_DELIMITED, b"NO_RELOCALIZE"),
        ]

    def test_packed_doubles_size(self) -> None:
        w = ProtoWriter()
        w.write_packed_doubles(1, [0.01, 0.01, 0.02])
        # key + length byte + 3 * 8
        assert len(w) == 1 + 1 + 24
        [(number, wire_type, raw)] = parse(w.data)
        assert (number, wire_type) == (1, WireType.LENGTH_DELIMITED)
        assert as_doubles(raw) == [0.01, 0.01, 0.02]

    def test_empty_packed_writes_nothing(self) -> None:
        w = ProtoWriter()
        w.write_packed_doubles(3, [])
        assert w.data == b""

    @pytest.mark.parametrize("field_number", [0, -1])
    def test_non_positive_field_numbers_skipped(self, field_number: int) -> None:
        w = ProtoWriter()
        w.write_varint(field_number, 1)
        w.write_double(field_number, 1.0)
        w.write_string(field_number, "x")
        w.write_packed_doubles(field_number, [1.0])
        w.write_message(field_number, lambda m: m.write_varint(1, 1))
        assert len(w) == 0

    def test_nested_message(self) -> None:
        w = ProtoWriter()
        w.write_message(2, lambda m: m.write_varint(3, 7))
        assert w.data == b"\x12\x02\x18\x07"

    def test_empty_nested_message_has_zero_length(self) -> None:
        w = ProtoWriter()
        w.write_message(9, lambda m: None)
        assert w.data == b"\x4a\x00"
