"""Encode :class:`TelemetrySnapshot` records as protobuf bytes.

Schema (any change here is a breaking change and requires a
``schema_version`` bump):

  message Telemetry {
    string schema_version = 1;
    Header header = 2;
    Status status = 3;
    Pose pose_world_phone = 4;
    Velocity velocity = 5;
    Acceleration acceleration = 6;
    Gyro gyro = 7;
    Calibration calib = 8;
    OriginReset origin_reset = 9;
    Integrity integrity = 10;
  }

  message Header {
    uint64 stamp_ns = 1; uint64 dt_ns = 2; uint64 seq = 3;
    string session_id = 4; string clock_domain = 5;
    string frame_id = 6; string child_frame_id = 7;
  }
  message Status {
    string tracking = 1; double tracking_confidence = 2;
    uint32 num_features = 3; string status_reason = 4;
    repeated string flags = 5;
  }
  message Vector3 { double x = 1; double y = 2; double z = 3; }
  message Quaternion { double x = 1; double y = 2; double z = 3; double w = 4; }
  message Covariance { repeated double pos = 1 [packed]; repeated double ori = 2 [packed]; }
  message Pose { Vector3 position = 1; Quaternion orientation_quat = 2; Covariance cov = 3; bool valid = 4; }
  message Velocity { Vector3 world = 1; string source = 2; repeated double cov = 3 [packed]; bool valid = 4; }
  message Acceleration {
    Vector3 body_no_gravity = 1; Vector3 world = 2; string source = 3;
    repeated double cov = 4 [packed]; bool valid = 5;
  }
  message Gyro {
    Vector3 body = 1; string source = 2; Vector3 bias = 3;
    repeated double cov = 4 [packed]; bool valid = 5;
  }
  message Transform { repeated double R_rowmajor = 1 [packed]; repeated double t = 2 [packed]; }
  message AlignmentDetail { bool y_up = 1; bool z_forward = 2; }
  message Calibration { Transform T_phone_car = 1; string world_alignment = 2; AlignmentDetail world_alignment_detail = 3; }
  message OriginReset { uint64 origin_id = 1; uint64 apply_at_stamp_ns = 2; string nonce = 3; string reason = 4; }
  message Integrity { string crc32 = 1; }
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from posecast.protocol.protobuf.writer import ProtoWriter

if TYPE_CHECKING:
    from posecast.telemetry.snapshot import (
        Acceleration,
        Calibration,
        Gyro,
        Header,
        Integrity,
        OriginReset,
        Pose,
        Quaternion,
        Status,
        TelemetrySnapshot,
        Vector3,
        Velocity,
    )

FIELD_SCHEMA_VERSION = 1
FIELD_HEADER = 2
FIELD_STATUS = 3
FIELD_POSE = 4
FIELD_VELOCITY = 5
FIELD_ACCELERATION = 6
FIELD_GYRO = 7
FIELD_CALIBRATION = 8
FIELD_ORIGIN_RESET = 9
FIELD_INTEGRITY = 10


def encode_snapshot(snapshot: TelemetrySnapshot) -> bytes:
    """Serialize *snapshot* into protobuf bytes.

    Pure and deterministic: identical input always yields identical bytes,
    and a fresh buffer is built on every call.
    """
    w = ProtoWriter()
    w.write_string(FIELD_SCHEMA_VERSION, snapshot.schema_version)
    w.write_message(FIELD_HEADER, lambda m: _header(m, snapshot.header))
    w.write_message(FIELD_STATUS, lambda m: _status(m, snapshot.status))
    w.write_message(FIELD_POSE, lambda m: _pose(m, snapshot.pose_world_phone))
    w.write_message(FIELD_VELOCITY, lambda m: _velocity(m, snapshot.velocity))
    w.write_message(FIELD_ACCELERATION, lambda m: _acceleration(m, snapshot.acceleration))
    w.write_message(FIELD_GYRO, lambda m: _gyro(m, snapshot.gyro))
    w.write_message(FIELD_CALIBRATION, lambda m: _calibration(m, snapshot.calibration))
    w.write_message(FIELD_ORIGIN_RESET, lambda m: _origin_reset(m, snapshot.origin_reset))
    w.write_message(FIELD_INTEGRITY, lambda m: _integrity(m, snapshot.integrity))
    return w.data


# -- Sub-messages --------------------------------------------------------------


def _vector3(w: ProtoWriter, v: Vector3) -> None:
    w.write_double(1, v.x)
    w.write_double(2, v.y)
    w.write_double(3, v.z)


def _quaternion(w: ProtoWriter, q: Quaternion) -> None:
    w.write_double(1, q.x)
    w.write_double(2, q.y)
    w.write_double(3, q.z)
    w.write_double(4, q.w)


def _header(w: ProtoWriter, h: Header) -> None:
    w.write_varint(1, h.stamp_ns)
    w.write_varint(2, h.dt_ns)
    w.write_varint(3, h.seq)
    w.write_string(4, h.session_id)
    w.write_string(5, h.clock_domain)
    w.write_string(6, h.frame_id)
    w.write_string(7, h.child_frame_id)


def _status(w: ProtoWriter, s: Status) -> None:
    w.write_string(1, s.tracking.value)
    w.write_double(2, s.tracking_confidence)
    w.write_varint(3, s.num_features)
    w.write_string(4, s.status_reason)
    w.write_strings(5, s.flags)


def _pose(w: ProtoWriter, p: Pose) -> None:
    w.write_message(1, lambda m: _vector3(m, p.position))
    w.write_message(2, lambda m: _quaternion(m, p.orientation))

    def _cov(m: ProtoWriter) -> None:
        m.write_packed_doubles(1, p.covariance.pos)
        m.write_packed_doubles(2, p.covariance.ori)

    w.write_message(3, _cov)
    w.write_bool(4, p.valid)


def _velocity(w: ProtoWriter, v: Velocity) -> None:
    w.write_message(1, lambda m: _vector3(m, v.world))
    w.write_string(2, v.source)
    w.write_packed_doubles(3, v.covariance)
    w.write_bool(4, v.valid)


def _acceleration(w: ProtoWriter, a: Acceleration) -> None:
    w.write_message(1, lambda m: _vector3(m, a.body_no_gravity))
    w.write_message(2, lambda m: _vector3(m, a.world))
    w.write_string(3, a.source)
    w.write_packed_doubles(4, a.covariance)
    w.write_bool(5, a.valid)


def _gyro(w: ProtoWriter, g: Gyro) -> None:
    w.write_message(1, lambda m: _vector3(m, g.body))
    w.write_string(2, g.source)
    w.write_message(3, lambda m: _vector3(m, g.bias))
    w.write_packed_doubles(4, g.covariance)
    w.write_bool(5, g.valid)


def _calibration(w: ProtoWriter, c: Calibration) -> None:
    def _transform(m: ProtoWriter) -> None:
        m.write_packed_doubles(1, c.transform_phone_to_car.rotation_row_major)
        m.write_packed_doubles(2, c.transform_phone_to_car.translation)

    def _detail(m: ProtoWriter) -> None:
        m.write_bool(1, c.alignment_detail.y_up)
        m.write_bool(2, c.alignment_detail.z_forward)

    w.write_message(1, _transform)
    w.write_string(2, c.world_alignment)
    w.write_message(3, _detail)


def _origin_reset(w: ProtoWriter, o: OriginReset) -> None:
    w.write_varint(1, o.origin_id)
    w.write_varint(2, o.apply_at_stamp_ns)
    w.write_string(3, o.nonce)
    w.write_string(4, o.reason)


def _integrity(w: ProtoWriter, i: Integrity) -> None:
    w.write_string(1, i.crc32)
