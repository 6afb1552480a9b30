"""posecast: stream pose and motion telemetry to a remote receiver."""

from __future__ import annotations

__version__ = "0.3.0"
