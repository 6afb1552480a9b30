from __future__ import annotations

from posecast.models.config import StreamSettings

__all__ = ["StreamSettings"]
