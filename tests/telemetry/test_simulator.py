from __future__ import annotations

import math
import time
from collections.abc import Callable

import pytest

from posecast.telemetry.producer import MotionUpdate, PoseUpdate
from posecast.telemetry.simulator import SimulatedProducer
from posecast.telemetry.snapshot import TrackingState


class RecordingSink:
    def __init__(self, *, fail: bool = False) -> None:
        self.poses: list[PoseUpdate] = []
        self.motions: list[MotionUpdate] = []
        self.errors: list[str] = []
        self._fail = fail

    def publish_pose(self, update: PoseUpdate) -> None:
        if self._fail:
            raise RuntimeError("sink bug")
        self.poses.append(update)

    def publish_motion(self, update: MotionUpdate) -> None:
        self.motions.append(update)

    def report_error(self, message: str) -> None:
        self.errors.append(message)


def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached before timeout")
        time.sleep(0.005)


class TestSamples:
    def test_pose_starts_on_circle_while_initializing(self) -> None:
        sim = SimulatedProducer(radius_m=2.0, warmup_s=0.5)
        pose = sim.pose_at(0.0, timestamp_s=5.0)
        assert pose.position == pytest.approx((2.0, 0.0, 0.0))
        assert pose.orientation == pytest.approx((0.0, 0.0, 0.0, 1.0))
        assert pose.tracking.state is TrackingState.LIMITED
        assert pose.tracking.reason == "startup"
        assert pose.timestamp_s == 5.0

    def test_pose_after_warmup_is_normal(self) -> None:
        sim = SimulatedProducer(period_s=4.0)
        pose = sim.pose_at(1.0, timestamp_s=1.0)
        assert pose.tracking.state is TrackingState.OK
        assert pose.position == pytest.approx((0.0, 0.0, 1.0), abs=1e-9)
        assert pose.num_features == 300

    def test_body_acceleration_rotates_back_to_centripetal(self) -> None:
        sim = SimulatedProducer(radius_m=1.5, period_s=3.0)
        t = 0.7
        motion = sim.motion_at(t)
        r = motion.rotation_row_major
        a = motion.user_acceleration
        world = [r[3 * i] * a[0] + r[3 * i + 1] * a[1] + r[3 * i + 2] * a[2] for i in range(3)]
        omega = 2.0 * math.pi / 3.0
        angle = omega * t
        expected = [
            -omega * omega * 1.5 * math.cos(angle),
            0.0,
            -omega * omega * 1.5 * math.sin(angle),
        ]
        assert world == pytest.approx(expected, abs=1e-9)
        assert motion.rotation_rate == pytest.approx((0.0, -omega, 0.0))

    def test_rejects_non_positive_rate(self) -> None:
        with pytest.raises(ValueError):
            SimulatedProducer(rate_hz=0)


class TestThread:
    def test_emits_until_stopped(self) -> None:
        sim = SimulatedProducer(rate_hz=200.0)
        sink = RecordingSink()
        sim.start(sink)
        try:
            _wait_for(lambda: len(sink.poses) >= 3 and len(sink.motions) >= 3)
            assert sim.is_running
        finally:
            sim.stop()
        assert not sim.is_running
        count = len(sink.poses)
        time.sleep(0.03)
        assert len(sink.poses) == count

    def test_unsupported_pose_emits_motion_only(self) -> None:
        sim = SimulatedProducer(rate_hz=200.0, pose_supported=False)
        sink = RecordingSink()
        sim.start(sink)
        try:
            _wait_for(lambda: len(sink.motions) >= 3)
        finally:
            sim.stop()
        assert sink.poses == []
        assert not sim.pose_supported

    def test_sink_errors_are_reported(self) -> None:
        sim = SimulatedProducer(rate_hz=200.0)
        sink = RecordingSink(fail=True)
        sim.start(sink)
        try:
            _wait_for(lambda: len(sink.errors) >= 2)
        finally:
            sim.stop()
        assert sink.errors[0] == "sink bug"
