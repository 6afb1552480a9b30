"""Connection lifecycle for the single outbound telemetry stream.

State machine::

    IDLE --start()--> CONNECTING --ready--> READY
    CONNECTING | READY --failure--> BACKOFF --delay--> CONNECTING
    BACKOFF --attempts exhausted--> STOPPED
    any --stop()--> IDLE

The attempt counter increments on every connect attempt (including the
first) and resets to zero when a connection becomes ready. A send failure
on a ready connection also resets it, so recovery restarts at attempt 1.

All transport callbacks carry the generation number that was current when
they were issued; anything arriving after a newer attempt or a ``stop()``
is discarded.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from posecast.stream.transport import FailureReason, tcp_transport_factory

if TYPE_CHECKING:
    from collections.abc import Callable

    from posecast.models.config import StreamSettings
    from posecast.stream.transport import Transport, TransportFactory

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class ConnectionEventKind(StrEnum):
    ATTEMPT = "attempt"
    READY = "ready"
    BACKOFF = "backoff"
    STOPPED = "stopped"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True, slots=True)
class ConnectionEvent:
    """A status change published by :class:`ConnectionManager`."""

    kind: ConnectionEventKind
    state: ConnectionState
    message: str
    attempt: int
    max_attempts: int
    failure: FailureReason | None = None


class ConnectionManager:
    """Owns one outbound stream connection and its retry policy.

    Must be started from a running event loop; :meth:`stop` may be called
    from any thread.

    Hooks:
        on_status: receives every :class:`ConnectionEvent`.
        on_ready: called when the connection becomes ready.
        on_down: called whenever the connection is torn down (failure or
            stop) so the caller can halt its send loop.
    """

    def __init__(
        self,
        settings: StreamSettings,
        *,
        transport_factory: TransportFactory | None = None,
        on_status: Callable[[ConnectionEvent], None] | None = None,
        on_ready: Callable[[], None] | None = None,
        on_down: Callable[[], None] | None = None,
    ) -> None:
        self._settings = settings
        self._factory = transport_factory or tcp_transport_factory
        self._on_status = on_status
        self._on_ready = on_ready
        self._on_down = on_down

        self._lock = threading.Lock()
        self._state = ConnectionState.IDLE
        self._attempts = 0
        self._generation = 0
        self._last_failure: FailureReason | None = None

        self._loop: asyncio.AbstractEventLoop | None = None
        self._transport: Transport | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._retry_handle: asyncio.TimerHandle | None = None
        self._cancelled: list[asyncio.Task[None]] = []

    # -- Observable state ------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def is_ready(self) -> bool:
        with self._lock:
            return self._state is ConnectionState.READY

    @property
    def attempts(self) -> int:
        with self._lock:
            return self._attempts

    @property
    def last_failure(self) -> FailureReason | None:
        with self._lock:
            return self._last_failure

    @property
    def max_attempts(self) -> int:
        return self._settings.max_connection_attempts

    # -- Public operations -----------------------------------------------------

    def start(self) -> None:
        """Begin connecting. No-op while already connecting or ready."""
        with self._lock:
            if self._state in (ConnectionState.CONNECTING, ConnectionState.READY):
                return
            self._loop = asyncio.get_running_loop()
            self._attempts = 0
            self._state = ConnectionState.CONNECTING
        self._cancel_retry()
        self._attempt_connection()

    def stop(self) -> None:
        """Tear everything down and return to IDLE. Idempotent, any thread."""
        with self._lock:
            self._generation += 1
            self._state = ConnectionState.IDLE
            self._attempts = 0
            gen = self._generation
            loop = self._loop

        if loop is None or self._on_loop_thread():
            self._finish_stop(gen)
            return
        try:
            loop.call_soon_threadsafe(self._finish_stop, gen)
        except RuntimeError:
            # Loop already closed: nothing can fire any more.
            logger.debug("Event loop closed before stop() could run teardown")

    async def close(self) -> None:
        """Stop and wait for cancelled tasks to finish unwinding."""
        self.stop()
        pending, self._cancelled = self._cancelled, []
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task

    async def transmit(self, frame: bytes) -> bool:
        """Send one framed record on the ready connection.

        Returns ``False`` without sending when not ready. A send failure
        is routed into the retry policy with a fresh attempt count.
        """
        with self._lock:
            if self._state is not ConnectionState.READY or self._transport is None:
                return False
            gen = self._generation
            transport = self._transport
        try:
            await transport.send(frame)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            reason = FailureReason.from_exception(exc)
            logger.warning("Send failed: %s", reason.short_description())
            self._handle_failure(gen, reason, reset_attempts=True)
            return False
        return True

    # -- Connect / retry ---------------------------------------------------------

    def _attempt_connection(self) -> None:
        self._retry_handle = None
        with self._lock:
            if self._state not in (ConnectionState.CONNECTING, ConnectionState.BACKOFF):
                return
            self._attempts += 1
            self._generation += 1
            self._state = ConnectionState.CONNECTING
            gen = self._generation
            attempt = self._attempts

        self._close_transport()
        transport = self._factory(self._settings)
        self._transport = transport

        logger.info(
            "Connecting to %s:%d (attempt %d/%d)",
            self._settings.host,
            self._settings.port,
            attempt,
            self.max_attempts,
        )
        self._publish(
            ConnectionEventKind.ATTEMPT,
            ConnectionState.CONNECTING,
            f"Connecting to receiver... ({attempt}/{self.max_attempts})",
            attempt,
        )
        assert self._loop is not None
        self._connect_task = self._loop.create_task(self._connect(gen, transport))

    async def _connect(self, gen: int, transport: Transport) -> None:
        try:
            await transport.open()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._handle_failure(gen, FailureReason.from_exception(exc))
            return
        self._handle_ready(gen, transport)

    def _handle_ready(self, gen: int, transport: Transport) -> None:
        with self._lock:
            if gen != self._generation or self._state is not ConnectionState.CONNECTING:
                stale = True
            else:
                stale = False
                self._attempts = 0
                self._state = ConnectionState.READY
        if stale:
            logger.debug("Discarding ready event from superseded attempt")
            transport.cancel()
            return

        logger.info("Connected to %s:%d", self._settings.host, self._settings.port)
        self._publish(
            ConnectionEventKind.READY,
            ConnectionState.READY,
            f"Connected to receiver at {self._settings.host}:{self._settings.port}",
            0,
        )
        assert self._loop is not None
        self._watch_task = self._loop.create_task(self._watch(gen, transport))
        self._call_hook(self._on_ready)

    async def _watch(self, gen: int, transport: Transport) -> None:
        reason = await transport.wait_closed()
        self._handle_failure(gen, reason)

    def _handle_failure(
        self, gen: int, reason: FailureReason, *, reset_attempts: bool = False
    ) -> None:
        with self._lock:
            if gen != self._generation or self._state not in (
                ConnectionState.CONNECTING,
                ConnectionState.READY,
            ):
                logger.debug("Discarding failure from superseded attempt: %s", reason)
                return
            self._generation += 1
            if reset_attempts:
                self._attempts = 0
            self._last_failure = reason

        logger.warning("Connection failed: %s", reason.short_description())
        self._close_transport()
        self._call_hook(self._on_down)
        self._schedule_retry(reason)

    def _schedule_retry(self, reason: FailureReason) -> None:
        max_attempts = self.max_attempts
        with self._lock:
            attempts = self._attempts
            exhausted = attempts >= max_attempts
            self._state = ConnectionState.STOPPED if exhausted else ConnectionState.BACKOFF

        if exhausted:
            message = (
                f"Receiver connection failed: {reason.short_description()}"
                f" - stopped after {max_attempts} attempts."
            )
            logger.error(message)
            self._publish(
                ConnectionEventKind.STOPPED,
                ConnectionState.STOPPED,
                message,
                attempts,
                failure=reason,
            )
            return

        delay = self._settings.retry_delay
        self._publish(
            ConnectionEventKind.BACKOFF,
            ConnectionState.BACKOFF,
            f"Connection error: {reason.short_description()}."
            f" Retrying ({attempts}/{max_attempts})",
            attempts,
            failure=reason,
        )
        logger.info("Retrying in %.1fs", delay)
        assert self._loop is not None
        self._retry_handle = self._loop.call_later(delay, self._attempt_connection)

    # -- Teardown ----------------------------------------------------------------

    def _finish_stop(self, gen: int) -> None:
        with self._lock:
            superseded = gen != self._generation
        if superseded:
            # A start() ran before this queued teardown; its attempt owns the transport now.
            logger.debug("Skipping teardown superseded by a newer start")
            return
        self._cancel_retry()
        self._close_transport()
        self._call_hook(self._on_down)
        self._publish(
            ConnectionEventKind.DISCONNECTED,
            ConnectionState.IDLE,
            "Disconnected",
            0,
        )

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _close_transport(self) -> None:
        for task in (self._connect_task, self._watch_task):
            self._cancel_task(task)
        self._connect_task = None
        self._watch_task = None
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.cancel()

    def _cancel_task(self, task: asyncio.Task[None] | None) -> None:
        if task is None or task.done():
            return
        with contextlib.suppress(RuntimeError):
            if task is asyncio.current_task():
                return
        task.cancel()
        self._cancelled = [t for t in self._cancelled if not t.done()]
        self._cancelled.append(task)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    # -- Notification ------------------------------------------------------------

    def _publish(
        self,
        kind: ConnectionEventKind,
        state: ConnectionState,
        message: str,
        attempt: int,
        *,
        failure: FailureReason | None = None,
    ) -> None:
        if self._on_status is None:
            return
        event = ConnectionEvent(
            kind=kind,
            state=state,
            message=message,
            attempt=attempt,
            max_attempts=self.max_attempts,
            failure=failure,
        )
        try:
            self._on_status(event)
        except Exception:
            logger.warning("Status callback failed for %s", kind, exc_info=True)

    @staticmethod
    def _call_hook(hook: Callable[[], None] | None) -> None:
        if hook is None:
            return
        try:
            hook()
        except Exception:
            logger.warning("Connection hook %s failed", hook, exc_info=True)
