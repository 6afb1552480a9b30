"""Observable human-readable status strings.

Two channels are exposed for a UI layer: the *collection* state (are we
gathering and sending telemetry) and the *connection* state (what the
receiver link is doing). Listeners are error-isolated: one failing does
not affect the others.
"""

from __future__ import annotations

import logging
import threading
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class StatusChannel(StrEnum):
    COLLECTION = "collection"
    CONNECTION = "connection"


class StatusBoard:
    """Holds the latest collection/connection messages and notifies listeners."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[StatusChannel, str | None] = {
            StatusChannel.COLLECTION: None,
            StatusChannel.CONNECTION: None,
        }
        self._listeners: list[Callable[[StatusChannel, str | None], None]] = []

    def add_listener(self, callback: Callable[[StatusChannel, str | None], None]) -> None:
        """Register *callback* to be called on every status change."""
        self._listeners.append(callback)

    @property
    def collection(self) -> str | None:
        with self._lock:
            return self._values[StatusChannel.COLLECTION]

    @property
    def connection(self) -> str | None:
        with self._lock:
            return self._values[StatusChannel.CONNECTION]

    def set_collection(self, message: str | None) -> None:
        self._set(StatusChannel.COLLECTION, message)

    def set_connection(self, message: str | None) -> None:
        self._set(StatusChannel.CONNECTION, message)

    def _set(self, channel: StatusChannel, message: str | None) -> None:
        with self._lock:
            if self._values[channel] == message:
                return
            self._values[channel] = message
        logger.debug("%s status: %s", channel.value, message)
        for listener in self._listeners:
            try:
                listener(channel, message)
            except Exception:
                logger.warning("Status listener %s failed", listener, exc_info=True)
