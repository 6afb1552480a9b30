"""Hand-written protobuf wire-format primitives (encode only)."""

from __future__ import annotations

from posecast.protocol.protobuf.writer import ProtoWriter, WireType, encode_double, encode_varint

__all__ = ["ProtoWriter", "WireType", "encode_double", "encode_varint"]
