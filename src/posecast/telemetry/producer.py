"""Interface between a sensing pipeline and the telemetry session.

A producer pushes :class:`PoseUpdate` and :class:`MotionUpdate` values
into a :class:`ProducerSink` from whatever thread it runs on. The sink
never blocks the producer for longer than a slot swap.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from posecast.telemetry.tracking import NORMAL, TrackingReport

_IDENTITY_3X3 = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)


@dataclass(frozen=True, slots=True)
class PoseUpdate:
    """One camera pose sample in the world frame."""

    timestamp_s: float
    position: tuple[float, float, float]
    orientation: tuple[float, float, float, float]  # x, y, z, w
    tracking: TrackingReport = NORMAL
    num_features: int = 0


@dataclass(frozen=True, slots=True)
class MotionUpdate:
    """One inertial sample.

    ``rotation_row_major`` is the device attitude as a 3x3 row-major matrix
    used to rotate body-frame acceleration into the world frame.
    """

    user_acceleration: tuple[float, float, float]
    rotation_rate: tuple[float, float, float]
    rotation_row_major: tuple[float, ...] = _IDENTITY_3X3


class ProducerSink(Protocol):
    def publish_pose(self, update: PoseUpdate) -> None: ...
    def publish_motion(self, update: MotionUpdate) -> None: ...
    def report_error(self, message: str) -> None: ...


class Producer(Protocol):
    """A source of pose and motion updates."""

    @property
    def pose_supported(self) -> bool: ...

    @property
    def motion_supported(self) -> bool: ...

    def start(self, sink: ProducerSink) -> None: ...
    def stop(self) -> None: ...
