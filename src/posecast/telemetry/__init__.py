"""Telemetry records, the shared snapshot slot, and session orchestration."""

from __future__ import annotations

from posecast.telemetry.producer import MotionUpdate, PoseUpdate, Producer, ProducerSink
from posecast.telemetry.session import TelemetrySession
from posecast.telemetry.simulator import SimulatedProducer
from posecast.telemetry.slot import SnapshotSlot
from posecast.telemetry.snapshot import TelemetrySnapshot, TrackingState
from posecast.telemetry.status import StatusBoard, StatusChannel
from posecast.telemetry.tracking import TrackingReport, tracking_report

__all__ = [
    "MotionUpdate",
    "PoseUpdate",
    "Producer",
    "ProducerSink",
    "SimulatedProducer",
    "SnapshotSlot",
    "StatusBoard",
    "StatusChannel",
    "TelemetrySession",
    "TelemetrySnapshot",
    "TrackingReport",
    "TrackingState",
    "tracking_report",
]
