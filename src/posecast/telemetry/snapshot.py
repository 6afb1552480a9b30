"""Frozen pydantic models for one telemetry record.

A :class:`TelemetrySnapshot` is never mutated after it is published.
Producers build the next record with ``model_copy(update=...)`` and
replace the shared slot as a whole value.
"""

from __future__ import annotations

import json
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

_FROZEN = ConfigDict(frozen=True)

SCHEMA_VERSION = "1.2.0"

DEFAULT_FLAGS: tuple[str, ...] = ("NO_JUMP", "NO_RELOCALIZE")

_INT64_MIN = -(1 << 63)
_INT64_LIMIT = 1 << 63
_UINT64_LIMIT = 1 << 64


class TrackingState(StrEnum):
    OK = "OK"
    LIMITED = "LIMITED"
    LOST = "LOST"


class Vector3(BaseModel):
    model_config = _FROZEN

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Quaternion(BaseModel):
    """Orientation quaternion in (x, y, z, w) order. Not renormalized."""

    model_config = _FROZEN

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


class Header(BaseModel):
    model_config = _FROZEN

    stamp_ns: int = Field(default=0, ge=_INT64_MIN, lt=_INT64_LIMIT)
    dt_ns: int = Field(default=0, ge=_INT64_MIN, lt=_INT64_LIMIT)
    seq: int = Field(default=0, ge=0, lt=_UINT64_LIMIT)
    session_id: str = ""
    clock_domain: str = "device_monotonic"
    frame_id: str = "world"
    child_frame_id: str = "phone"


class Status(BaseModel):
    model_config = _FROZEN

    tracking: TrackingState = TrackingState.LOST
    tracking_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    num_features: int = Field(default=0, ge=0, lt=1 << 32)
    status_reason: str = ""
    flags: tuple[str, ...] = ()


class PoseCovariance(BaseModel):
    model_config = _FROZEN

    pos: tuple[float, ...] = (0.01, 0.01, 0.02)
    ori: tuple[float, ...] = (0.001, 0.001, 0.001)


class Pose(BaseModel):
    model_config = _FROZEN

    position: Vector3 = Field(default_factory=Vector3)
    orientation: Quaternion = Field(default_factory=Quaternion)
    covariance: PoseCovariance = Field(default_factory=PoseCovariance)
    valid: bool = False


class Velocity(BaseModel):
    model_config = _FROZEN

    world: Vector3 = Field(default_factory=Vector3)
    source: str = ""
    covariance: tuple[float, ...] = ()
    valid: bool = False


class Acceleration(BaseModel):
    model_config = _FROZEN

    body_no_gravity: Vector3 = Field(default_factory=Vector3)
    world: Vector3 = Field(default_factory=Vector3)
    source: str = ""
    covariance: tuple[float, ...] = ()
    valid: bool = False


class Gyro(BaseModel):
    model_config = _FROZEN

    body: Vector3 = Field(default_factory=Vector3)
    source: str = ""
    bias: Vector3 = Field(default_factory=Vector3)
    covariance: tuple[float, ...] = ()
    valid: bool = False


class Transform(BaseModel):
    model_config = _FROZEN

    rotation_row_major: tuple[float, ...] = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)
    translation: tuple[float, ...] = (0.0, 0.0, 0.0)


class AlignmentDetail(BaseModel):
    model_config = _FROZEN

    y_up: bool = True
    z_forward: bool = True


class Calibration(BaseModel):
    model_config = _FROZEN

    transform_phone_to_car: Transform = Field(default_factory=Transform)
    world_alignment: str = "gravity"
    alignment_detail: AlignmentDetail = Field(default_factory=AlignmentDetail)


class OriginReset(BaseModel):
    """Marks a redefinition of the coordinate origin.

    ``origin_id`` increments on every reset; ``nonce`` is fresh per reset so
    consumers can de-duplicate reset events.
    """

    model_config = _FROZEN

    origin_id: int = Field(default=0, ge=_INT64_MIN, lt=_INT64_LIMIT)
    apply_at_stamp_ns: int = Field(default=0, ge=_INT64_MIN, lt=_INT64_LIMIT)
    nonce: str = ""
    reason: str = ""


class Integrity(BaseModel):
    """Reserved checksum slot. Nothing computes ``crc32``; it is passed through."""

    model_config = _FROZEN

    crc32: str = ""


class TelemetrySnapshot(BaseModel):
    """The unit of transmission: one complete telemetry record."""

    model_config = _FROZEN

    schema_version: str = SCHEMA_VERSION
    header: Header = Field(default_factory=Header)
    status: Status = Field(default_factory=Status)
    pose_world_phone: Pose = Field(default_factory=Pose)
    velocity: Velocity = Field(default_factory=Velocity)
    acceleration: Acceleration = Field(default_factory=Acceleration)
    gyro: Gyro = Field(default_factory=Gyro)
    calibration: Calibration = Field(default_factory=Calibration)
    origin_reset: OriginReset = Field(default_factory=OriginReset)
    integrity: Integrity = Field(default_factory=Integrity)

    @classmethod
    def sample(cls) -> TelemetrySnapshot:
        """Return the record published before any sensor data arrives."""
        return cls(
            header=Header(dt_ns=16_666_666, session_id="2025-10-23-rc01"),
            status=Status(
                tracking=TrackingState.OK,
                tracking_confidence=0.92,
                num_features=310,
                status_reason="none",
                flags=DEFAULT_FLAGS,
            ),
            pose_world_phone=Pose(valid=True),
            velocity=Velocity(source="pose_diff", covariance=(0.02, 0.02, 0.04), valid=True),
            acceleration=Acceleration(
                source="motion", covariance=(0.05, 0.05, 0.05), valid=True
            ),
            gyro=Gyro(source="motion", covariance=(0.002, 0.002, 0.002), valid=True),
            origin_reset=OriginReset(origin_id=1, nonce="f3c9...", reason="startup"),
            integrity=Integrity(crc32="AB12EF34"),
        )

    def to_json(self, *, pretty: bool = True) -> str:
        """Render the record as JSON (sorted keys when *pretty*)."""
        if not pretty:
            return self.model_dump_json()
        return json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True)
