"""Stream connection lifecycle, periodic sending, and a frame receiver."""

from __future__ import annotations

from posecast.stream.connection import (
    ConnectionEvent,
    ConnectionEventKind,
    ConnectionManager,
    ConnectionState,
)
from posecast.stream.receiver import FrameReceiver
from posecast.stream.scheduler import SendScheduler
from posecast.stream.transport import FailureKind, FailureReason, TCPTransport, Transport

__all__ = [
    "ConnectionEvent",
    "ConnectionEventKind",
    "ConnectionManager",
    "ConnectionState",
    "FailureKind",
    "FailureReason",
    "FrameReceiver",
    "SendScheduler",
    "TCPTransport",
    "Transport",
]
