"""Exception types raised by posecast."""

from __future__ import annotations


class PosecastError(Exception):
    """Base class for all posecast errors."""


class ConfigError(PosecastError):
    """Invalid or missing configuration."""


class FrameTooLargeError(PosecastError):
    """Encoded payload does not fit in the 4-byte frame length prefix."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Payload of {size} bytes exceeds frame limit of {limit} bytes")
        self.size = size
        self.limit = limit


class FrameDecodeError(PosecastError):
    """A byte sequence is not exactly one well-formed frame."""


class ReceiverUnavailableError(PosecastError):
    """The connection retry budget was exhausted without reaching the receiver."""
