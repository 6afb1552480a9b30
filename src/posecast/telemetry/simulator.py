"""Deterministic pose/motion source for development without sensor hardware.

The simulated device moves on a horizontal circle (y up) at constant
speed, always facing along its direction of travel, so position, velocity,
acceleration and angular rate are mutually consistent.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import TYPE_CHECKING

from posecast.telemetry.producer import MotionUpdate, PoseUpdate
from posecast.telemetry.tracking import NORMAL, tracking_report

if TYPE_CHECKING:
    from collections.abc import Callable

    from posecast.telemetry.producer import ProducerSink

logger = logging.getLogger(__name__)

DEFAULT_RATE_HZ = 60.0


class SimulatedProducer:
    """Background-thread producer following a circular path.

    Tracking reports ``initializing`` for the first ``warmup_s`` seconds of
    every run and ``normal`` afterwards. Set ``pose_supported`` or
    ``motion_supported`` to ``False`` to exercise the degraded paths.
    """

    def __init__(
        self,
        *,
        rate_hz: float = DEFAULT_RATE_HZ,
        radius_m: float = 1.0,
        period_s: float = 10.0,
        warmup_s: float = 0.5,
        num_features: int = 300,
        pose_supported: bool = True,
        motion_supported: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate_hz <= 0:
            raise ValueError(f"rate_hz must be positive, got {rate_hz}")
        self._interval = 1.0 / rate_hz
        self._radius = radius_m
        self._omega = 2.0 * math.pi / period_s
        self._warmup = warmup_s
        self._num_features = num_features
        self._pose_supported = pose_supported
        self._motion_supported = motion_supported
        self._clock = clock
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def pose_supported(self) -> bool:
        return self._pose_supported

    @property
    def motion_supported(self) -> bool:
        return self._motion_supported

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, sink: ProducerSink) -> None:
        """Start emitting updates into *sink*. Restarts a running producer."""
        self.stop()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(sink, self._stop_event),
            name="posecast-simulator",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Simulator started (%.0f Hz)", 1.0 / self._interval)

    def stop(self) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
            logger.debug("Simulator stopped")

    # -- Samples ---------------------------------------------------------------

    def pose_at(self, t: float, timestamp_s: float) -> PoseUpdate:
        """Return the pose *t* seconds into a run."""
        angle = self._omega * t
        position = (self._radius * math.cos(angle), 0.0, self._radius * math.sin(angle))
        half = -angle / 2.0
        orientation = (0.0, math.sin(half), 0.0, math.cos(half))
        if t < self._warmup:
            return PoseUpdate(
                timestamp_s=timestamp_s,
                position=position,
                orientation=orientation,
                tracking=tracking_report("initializing"),
                num_features=self._num_features // 4,
            )
        return PoseUpdate(
            timestamp_s=timestamp_s,
            position=position,
            orientation=orientation,
            tracking=NORMAL,
            num_features=self._num_features,
        )

    def motion_at(self, t: float) -> MotionUpdate:
        """Return the inertial sample *t* seconds into a run."""
        angle = self._omega * t
        c, s = math.cos(-angle), math.sin(-angle)
        rotation = (c, 0.0, s, 0.0, 1.0, 0.0, -s, 0.0, c)
        centripetal = self._omega * self._omega * self._radius
        world = (-centripetal * math.cos(angle), 0.0, -centripetal * math.sin(angle))
        # Body frame = transpose(rotation) applied to the world vector.
        body = (
            rotation[0] * world[0] + rotation[3] * world[1] + rotation[6] * world[2],
            rotation[1] * world[0] + rotation[4] * world[1] + rotation[7] * world[2],
            rotation[2] * world[0] + rotation[5] * world[1] + rotation[8] * world[2],
        )
        return MotionUpdate(
            user_acceleration=body,
            rotation_rate=(0.0, -self._omega, 0.0),
            rotation_row_major=rotation,
        )

    # -- Thread ------------------------------------------------------------------

    def _run(self, sink: ProducerSink, stop_event: threading.Event) -> None:
        t0 = self._clock()
        while not stop_event.wait(self._interval):
            now = self._clock()
            t = now - t0
            try:
                if self._pose_supported:
                    sink.publish_pose(self.pose_at(t, now))
                if self._motion_supported:
                    sink.publish_motion(self.motion_at(t))
            except Exception as exc:
                logger.warning("Simulator sink failed", exc_info=True)
                sink.report_error(str(exc))
