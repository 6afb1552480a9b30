"""Wire protocol: protobuf record encoding and stream framing."""

from __future__ import annotations

from posecast.protocol.encoder import encode_snapshot
from posecast.protocol.framing import FrameReader, decode_frame, encode_frame

__all__ = ["FrameReader", "decode_frame", "encode_frame", "encode_snapshot"]
