"""Map producer tracking conditions to the wire representation."""

from __future__ import annotations

from dataclasses import dataclass

from posecast.telemetry.snapshot import TrackingState


@dataclass(frozen=True, slots=True)
class TrackingReport:
    """Tracking quality as published in ``status``."""

    state: TrackingState
    reason: str
    confidence: float


NORMAL = TrackingReport(TrackingState.OK, "none", 1.0)
UNSUPPORTED = TrackingReport(TrackingState.LOST, "unsupported", 0.0)

_CONDITIONS: dict[str, TrackingReport] = {
    "normal": NORMAL,
    "not_available": TrackingReport(TrackingState.LOST, "not_available", 0.0),
    "excessive_motion": TrackingReport(TrackingState.LIMITED, "motion_blur", 0.4),
    "insufficient_features": TrackingReport(TrackingState.LIMITED, "low_texture", 0.5),
    "initializing": TrackingReport(TrackingState.LIMITED, "startup", 0.3),
    "relocalizing": TrackingReport(TrackingState.LIMITED, "relocalize", 0.6),
}

_UNKNOWN_LIMITED = TrackingReport(TrackingState.LIMITED, "unknown", 0.5)


def tracking_report(condition: str) -> TrackingReport:
    """Return the report for a producer *condition* name.

    Unrecognised conditions are treated as a limited state with reason
    ``"unknown"``.
    """
    return _CONDITIONS.get(condition, _UNKNOWN_LIMITED)
