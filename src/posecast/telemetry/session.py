"""Telemetry session: ties a producer, the snapshot slot and the stream together.

A *run* starts when collection begins (on connect, on :meth:`reset`, or
immediately in local-only mode). Every run gets a fresh session id and
nonce, restarts ``seq`` at zero and bumps ``origin_reset.origin_id``.

Producers call the :class:`~posecast.telemetry.producer.ProducerSink`
methods from their own threads. The session lock is always taken before
the slot lock.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from posecast.stream.connection import ConnectionEventKind, ConnectionManager
from posecast.stream.scheduler import SendScheduler
from posecast.telemetry.slot import SnapshotSlot
from posecast.telemetry.snapshot import DEFAULT_FLAGS, TelemetrySnapshot, Vector3
from posecast.telemetry.status import StatusBoard
from posecast.telemetry.tracking import UNSUPPORTED

if TYPE_CHECKING:
    from collections.abc import Callable

    from posecast.models.config import StreamSettings
    from posecast.stream.connection import ConnectionEvent
    from posecast.stream.transport import TransportFactory
    from posecast.telemetry.producer import MotionUpdate, PoseUpdate, Producer

logger = logging.getLogger(__name__)

MIN_POSE_DT_S = 1e-5

STOPPED_MESSAGE = "Sensor collection stopped."
UNSUPPORTED_MESSAGE = "World tracking is not supported on this device."
MOTION_UNAVAILABLE_MESSAGE = "Device motion sensors are unavailable."
CONNECTION_CLOSED_MESSAGE = "Connection closed."
LOCAL_ONLY_CONNECTION_MESSAGE = "Local-only mode: no connection"

_Vec = tuple[float, float, float]


def make_session_id(now: datetime | None = None) -> str:
    """Return a session id such as ``2025-10-23-141502`` (UTC)."""
    return (now or datetime.now(UTC)).strftime("%Y-%m-%d-%H%M%S")


def make_nonce() -> str:
    """Return a short per-reset nonce: 8 uppercase hex chars and ``...``."""
    return f"{uuid.uuid4().hex[:8].upper()}..."


class TelemetrySession:
    """Runs sensor collection and streams the latest snapshot to a receiver."""

    def __init__(
        self,
        settings: StreamSettings,
        producer: Producer,
        *,
        transport_factory: TransportFactory | None = None,
        slot: SnapshotSlot | None = None,
        status: StatusBoard | None = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self._settings = settings
        self._producer = producer
        self._slot = slot if slot is not None else SnapshotSlot(TelemetrySnapshot.sample())
        self._status = status if status is not None else StatusBoard()
        self._clock = clock

        self._lock = threading.Lock()
        self._collecting = False
        self._connecting = False
        self._local_only = settings.local_only

        self._seq = 0
        self._origin_id = 0
        self._last_stamp_ns: int | None = None
        self._last_position: _Vec | None = None
        self._last_pose_time: float | None = None
        self._velocity: _Vec = (0.0, 0.0, 0.0)

        self._manager = ConnectionManager(
            settings,
            transport_factory=transport_factory,
            on_status=self._on_connection_event,
            on_ready=self._on_connection_ready,
            on_down=self._on_connection_down,
        )
        self._scheduler = SendScheduler(self._slot, self._manager.transmit)

    # -- Properties ------------------------------------------------------------

    @property
    def slot(self) -> SnapshotSlot:
        return self._slot

    @property
    def status(self) -> StatusBoard:
        return self._status

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    @property
    def scheduler(self) -> SendScheduler:
        return self._scheduler

    @property
    def is_collecting(self) -> bool:
        with self._lock:
            return self._collecting

    @property
    def is_connecting(self) -> bool:
        with self._lock:
            return self._connecting

    @property
    def local_only(self) -> bool:
        return self._local_only

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Start collecting (local-only) or start connecting to the receiver.

        Must be called from the running event loop.
        """
        if self._local_only:
            if self.is_collecting:
                return
            self._begin_collection("startup", send=False)
            return

        with self._lock:
            if self._collecting or self._connecting:
                return
            self._connecting = True
        self._status.set_connection("Connecting to receiver...")
        self._manager.start()

    def stop(self, message: str | None = STOPPED_MESSAGE) -> None:
        """Stop collection and drop the connection. Safe from any thread."""
        self._end_collection(message)
        with self._lock:
            self._connecting = False
        self._manager.stop()
        self._status.set_connection(CONNECTION_CLOSED_MESSAGE)

    def reset(self) -> None:
        """Begin a new run in place. Ignored unless collecting."""
        if not self.is_collecting:
            return
        self._begin_collection("manual", send=not self._local_only)
        self._status.set_collection("Session was reset.")

    def toggle_local_only(self) -> bool:
        """Flip local-only mode, stopping the current run. Returns the new mode."""
        target = not self._local_only
        self.stop(message=None)
        self._local_only = target
        if target:
            self._status.set_collection("Local-only mode enabled: collecting without sending.")
            self._status.set_connection("Local-only mode: no connection attempts")
        else:
            self._status.set_collection("Local-only mode disabled.")
            self._status.set_connection("Local-only mode disabled")
        logger.info("Local-only mode %s", "enabled" if target else "disabled")
        return target

    async def close(self) -> None:
        """Stop everything and wait for network tasks to unwind."""
        self.stop(message=None)
        await self._manager.close()

    # -- Connection hooks ------------------------------------------------------

    def _on_connection_event(self, event: ConnectionEvent) -> None:
        kind = event.kind
        if kind in (ConnectionEventKind.ATTEMPT, ConnectionEventKind.BACKOFF):
            with self._lock:
                self._connecting = True
            self._status.set_connection(event.message)
        elif kind is ConnectionEventKind.READY:
            with self._lock:
                self._connecting = False
            self._status.set_connection(event.message)
        elif kind is ConnectionEventKind.STOPPED:
            with self._lock:
                self._connecting = False
            self._end_collection(event.message)
            self._status.set_connection(event.message)

    def _on_connection_ready(self) -> None:
        self._begin_collection("startup", send=True)

    def _on_connection_down(self) -> None:
        self._end_collection()

    # -- Runs ------------------------------------------------------------------

    def _begin_collection(self, reason: str, *, send: bool) -> None:
        self._producer.stop()
        pose_supported = self._producer.pose_supported
        motion_supported = self._producer.motion_supported

        with self._lock:
            self._seq = 0
            self._last_stamp_ns = None
            self._last_position = None
            self._last_pose_time = None
            self._velocity = (0.0, 0.0, 0.0)
            self._origin_id += 1
            origin_id = self._origin_id
            session_id = make_session_id()
            nonce = make_nonce()
            self._slot.update(
                lambda current: _configure_run(
                    current or TelemetrySnapshot.sample(),
                    session_id=session_id,
                    origin_id=origin_id,
                    nonce=nonce,
                    reason=reason,
                    pose_supported=pose_supported,
                    motion_supported=motion_supported,
                )
            )
            self._collecting = True

        self._producer.start(self)
        if send:
            self._scheduler.start(self._settings.send_frequency)
        else:
            self._scheduler.stop()

        if not pose_supported:
            logger.warning("Pose tracking unsupported; publishing LOST/unsupported")
            message = UNSUPPORTED_MESSAGE
        elif not motion_supported:
            logger.warning("Motion sensors unavailable; acceleration and gyro invalid")
            message = MOTION_UNAVAILABLE_MESSAGE
        elif send:
            message = f"Collecting and sending ({self._settings.send_frequency:g}Hz)"
        else:
            message = "Local-only mode - collecting without sending"
        self._status.set_collection(message)
        if not send:
            self._status.set_connection(LOCAL_ONLY_CONNECTION_MESSAGE)
        logger.info(
            "Run started: session=%s origin_id=%d reason=%s send=%s",
            session_id,
            origin_id,
            reason,
            send,
        )

    def _end_collection(self, message: str | None = None) -> None:
        with self._lock:
            self._collecting = False
        self._producer.stop()
        self._scheduler.stop()
        if message is not None:
            self._status.set_collection(message)

    # -- ProducerSink ------------------------------------------------------------

    def publish_pose(self, update: PoseUpdate) -> None:
        with self._lock:
            if not self._collecting:
                return
            velocity = self._velocity
            if self._last_position is not None and self._last_pose_time is not None:
                dt = max(update.timestamp_s - self._last_pose_time, MIN_POSE_DT_S)
                velocity = _scale(_sub(update.position, self._last_position), 1.0 / dt)
                self._velocity = velocity
            self._last_position = update.position
            self._last_pose_time = update.timestamp_s
            timing = self._advance_header()
            self._slot.update(
                lambda current: _apply_pose(_require(current), update, velocity, timing)
            )

    def publish_motion(self, update: MotionUpdate) -> None:
        with self._lock:
            if not self._collecting:
                return
            world = _rotate(update.rotation_row_major, update.user_acceleration)
            timing = self._advance_header()
            self._slot.update(
                lambda current: _apply_motion(_require(current), update, world, timing)
            )

    def report_error(self, message: str) -> None:
        logger.warning("Producer error: %s", message)
        self._status.set_collection(f"Sensor error: {message}")

    def _advance_header(self) -> tuple[int, int, int]:
        # Caller holds self._lock.
        now = self._clock()
        dt_ns = max(now - self._last_stamp_ns, 0) if self._last_stamp_ns is not None else 0
        self._last_stamp_ns = now
        self._seq += 1
        return self._seq, now, dt_ns


# -- Snapshot transforms ---------------------------------------------------------


def _require(snapshot: TelemetrySnapshot | None) -> TelemetrySnapshot:
    return snapshot if snapshot is not None else TelemetrySnapshot.sample()


def _configure_run(
    snapshot: TelemetrySnapshot,
    *,
    session_id: str,
    origin_id: int,
    nonce: str,
    reason: str,
    pose_supported: bool,
    motion_supported: bool,
) -> TelemetrySnapshot:
    status_update: dict[str, object] = {"flags": DEFAULT_FLAGS}
    if not pose_supported:
        status_update.update(
            tracking=UNSUPPORTED.state,
            status_reason=UNSUPPORTED.reason,
            tracking_confidence=UNSUPPORTED.confidence,
        )
    update: dict[str, object] = {
        "header": snapshot.header.model_copy(update={"session_id": session_id, "seq": 0}),
        "status": snapshot.status.model_copy(update=status_update),
        "pose_world_phone": snapshot.pose_world_phone.model_copy(update={"valid": False}),
        "velocity": snapshot.velocity.model_copy(update={"valid": False}),
        "origin_reset": snapshot.origin_reset.model_copy(
            update={
                "origin_id": origin_id,
                "apply_at_stamp_ns": 0,
                "nonce": nonce,
                "reason": reason,
            }
        ),
    }
    if not motion_supported:
        update["acceleration"] = snapshot.acceleration.model_copy(update={"valid": False})
        update["gyro"] = snapshot.gyro.model_copy(update={"valid": False})
    return snapshot.model_copy(update=update)


def _with_header(snapshot: TelemetrySnapshot, timing: tuple[int, int, int]) -> dict[str, object]:
    seq, stamp_ns, dt_ns = timing
    return {
        "header": snapshot.header.model_copy(
            update={"seq": seq, "stamp_ns": stamp_ns, "dt_ns": dt_ns}
        )
    }


def _apply_pose(
    snapshot: TelemetrySnapshot,
    update: PoseUpdate,
    velocity: _Vec,
    timing: tuple[int, int, int],
) -> TelemetrySnapshot:
    x, y, z, w = update.orientation
    report = update.tracking
    changes = _with_header(snapshot, timing)
    changes["status"] = snapshot.status.model_copy(
        update={
            "tracking": report.state,
            "status_reason": report.reason,
            "tracking_confidence": report.confidence,
            "num_features": update.num_features,
        }
    )
    changes["pose_world_phone"] = snapshot.pose_world_phone.model_copy(
        update={
            "position": _vector(update.position),
            "orientation": snapshot.pose_world_phone.orientation.model_copy(
                update={"x": x, "y": y, "z": z, "w": w}
            ),
            "valid": True,
        }
    )
    changes["velocity"] = snapshot.velocity.model_copy(
        update={"world": _vector(velocity), "source": "pose_diff", "valid": True}
    )
    return snapshot.model_copy(update=changes)


def _apply_motion(
    snapshot: TelemetrySnapshot,
    update: MotionUpdate,
    world: _Vec,
    timing: tuple[int, int, int],
) -> TelemetrySnapshot:
    changes = _with_header(snapshot, timing)
    changes["acceleration"] = snapshot.acceleration.model_copy(
        update={
            "body_no_gravity": _vector(update.user_acceleration),
            "world": _vector(world),
            "source": "motion",
            "valid": True,
        }
    )
    changes["gyro"] = snapshot.gyro.model_copy(
        update={
            "body": _vector(update.rotation_rate),
            "bias": Vector3(),
            "source": "motion",
            "valid": True,
        }
    )
    return snapshot.model_copy(update=changes)


def _vector(v: _Vec) -> Vector3:
    return Vector3(x=v[0], y=v[1], z=v[2])


def _sub(a: _Vec, b: _Vec) -> _Vec:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def _scale(v: _Vec, k: float) -> _Vec:
    return (v[0] * k, v[1] * k, v[2] * k)


def _rotate(r: tuple[float, ...], v: _Vec) -> _Vec:
    """Multiply a row-major 3x3 matrix by *v*."""
    return (
        r[0] * v[0] + r[1] * v[1] + r[2] * v[2],
        r[3] * v[0] + r[4] * v[1] + r[5] * v[2],
        r[6] * v[0] + r[7] * v[1] + r[8] * v[2],
    )
