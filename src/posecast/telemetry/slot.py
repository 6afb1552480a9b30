"""Single-slot holder for the most recently published snapshot."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from posecast.telemetry.snapshot import TelemetrySnapshot


class SnapshotSlot:
    """Thread-safe latest-value store with replace-whole-value semantics.

    Any number of threads may publish and read. Snapshots are immutable,
    so the lock only covers the reference swap and readers never see a
    partially built record.
    """

    def __init__(self, initial: TelemetrySnapshot | None = None) -> None:
        self._lock = threading.Lock()
        self._value = initial
        self._version = 0

    def publish(self, snapshot: TelemetrySnapshot) -> None:
        """Replace the current snapshot."""
        with self._lock:
            self._value = snapshot
            self._version += 1

    def latest(self) -> TelemetrySnapshot | None:
        """Return the most recently published snapshot, or ``None``."""
        with self._lock:
            return self._value

    def update(
        self, fn: Callable[[TelemetrySnapshot | None], TelemetrySnapshot]
    ) -> TelemetrySnapshot:
        """Atomically replace the snapshot with ``fn(current)``.

        *fn* must be pure and quick: it runs while the slot is locked.
        """
        with self._lock:
            new = fn(self._value)
            self._value = new
            self._version += 1
            return new

    def reset(self, snapshot: TelemetrySnapshot | None = None) -> None:
        """Clear the slot (or seed it with *snapshot*) for a new session."""
        with self._lock:
            self._value = snapshot
            self._version += 1

    @property
    def version(self) -> int:
        """Count of replacements since creation."""
        with self._lock:
            return self._version
