"""Periodic send loop.

Every tick reads the latest snapshot, encodes and frames it, and hands the
frame to a transmit callable (normally :meth:`ConnectionManager.transmit`).
Latest-value semantics: there is no queue, so a slow tick rate repeats the
same snapshot and a fast producer has intermediate updates shed.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING

from posecast.errors import FrameTooLargeError
from posecast.protocol.encoder import encode_snapshot
from posecast.protocol.framing import encode_frame

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from posecast.telemetry.slot import SnapshotSlot
    from posecast.telemetry.snapshot import TelemetrySnapshot

logger = logging.getLogger(__name__)

DEFAULT_FREQUENCY_HZ = 30.0


class SendScheduler:
    """Repeating timer that pushes the latest snapshot to a transmit callable."""

    def __init__(
        self,
        slot: SnapshotSlot,
        transmit: Callable[[bytes], Awaitable[bool]],
        *,
        encode: Callable[[TelemetrySnapshot], bytes] = encode_snapshot,
    ) -> None:
        self._slot = slot
        self._transmit = transmit
        self._encode = encode
        self._lock = threading.Lock()
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._frequency_hz: float | None = None
        self._tick_count = 0
        self._sent_count = 0
        self._dropped_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def frequency_hz(self) -> float | None:
        return self._frequency_hz

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def sent_count(self) -> int:
        return self._sent_count

    @property
    def dropped_count(self) -> int:
        """Ticks whose frame was rejected as too large."""
        return self._dropped_count

    def start(self, frequency_hz: float = DEFAULT_FREQUENCY_HZ) -> None:
        """(Re)arm the loop at *frequency_hz*. Must run on the event loop."""
        if frequency_hz <= 0:
            raise ValueError(f"frequency_hz must be positive, got {frequency_hz}")
        self.stop()
        with self._lock:
            gen = self._generation
        self._loop = asyncio.get_running_loop()
        self._frequency_hz = frequency_hz
        self._task = self._loop.create_task(self._run(gen, 1.0 / frequency_hz))
        logger.debug("Send loop started at %.1f Hz", frequency_hz)

    def stop(self) -> None:
        """Cancel the loop; no tick fires after this returns. Idempotent."""
        with self._lock:
            self._generation += 1
        task, self._task = self._task, None
        if task is None or task.done():
            return
        loop = self._loop
        try:
            on_loop = asyncio.get_running_loop() is loop
        except RuntimeError:
            on_loop = False
        if on_loop or loop is None:
            task.cancel()
        else:
            loop.call_soon_threadsafe(task.cancel)
        logger.debug("Send loop stopped")

    def _is_current(self, gen: int) -> bool:
        with self._lock:
            return gen == self._generation

    async def _run(self, gen: int, interval: float) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            if not self._is_current(gen):
                return
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("Send tick failed", exc_info=True)
            next_tick += interval
            now = loop.time()
            if next_tick < now:
                # Fell behind: skip the missed ticks rather than bursting.
                next_tick = now + interval

    async def tick(self) -> bool:
        """Run one send cycle. Returns ``True`` if a frame was transmitted."""
        self._tick_count += 1
        snapshot = self._slot.latest()
        if snapshot is None:
            return False
        try:
            frame = encode_frame(self._encode(snapshot))
        except FrameTooLargeError as exc:
            self._dropped_count += 1
            logger.warning("Dropping snapshot seq=%d: %s", snapshot.header.seq, exc)
            return False
        sent = await self._transmit(frame)
        if sent:
            self._sent_count += 1
        return sent
