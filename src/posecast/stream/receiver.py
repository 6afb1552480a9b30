"""Async TCP server that accepts length-prefixed telemetry frames.

A development counterpart to the streaming client: it splits the byte
stream into payloads and hands each one to ``on_frame``. Payloads are not
decoded here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from posecast.protocol.framing import FrameReader

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

_READ_CHUNK = 65536


class FrameReceiver:
    """Receives framed telemetry from one or more streaming clients."""

    def __init__(
        self,
        on_frame: Callable[[bytes], Awaitable[None]],
        *,
        host: str = "127.0.0.1",
        port: int = 4820,
    ) -> None:
        self._host = host
        self._port = port
        self._on_frame = on_frame
        self._server: asyncio.Server | None = None
        self._writers: set[asyncio.StreamWriter] = set()
        self._connection_count = 0
        self._frame_count = 0

    async def start(self) -> None:
        """Start listening. Port ``0`` lets the OS choose; see :attr:`port`."""
        self._server = await asyncio.start_server(self._handler, self._host, self._port)
        sockets = self._server.sockets
        if sockets:
            self._port = sockets[0].getsockname()[1]
        logger.info("Frame receiver listening on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._server is not None:
            self._server.close()
            # Connected clients keep wait_closed() pending until they go away.
            for writer in list(self._writers):
                writer.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("Frame receiver stopped")

    async def _handler(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Split one client's stream into frames.

        A failing ``on_frame`` callback is logged and the frame skipped;
        it never drops the connection.
        """
        self._connection_count += 1
        self._writers.add(writer)
        remote = writer.get_extra_info("peername", ("unknown", 0))
        logger.info("Client connected: %s (total: %d)", remote, self._connection_count)
        frames = FrameReader()
        try:
            while True:
                chunk = await reader.read(_READ_CHUNK)
                if not chunk:
                    break
                for payload in frames.feed(chunk):
                    self._frame_count += 1
                    try:
                        await self._on_frame(payload)
                    except Exception:
                        logger.warning(
                            "Frame handler failed (%d bytes)", len(payload), exc_info=True
                        )
        except OSError:
            logger.debug("Connection error: %s", remote, exc_info=True)
        finally:
            self._connection_count -= 1
            self._writers.discard(writer)
            if frames.pending:
                logger.info("Discarding %d bytes of partial frame from %s", frames.pending, remote)
            writer.close()
            logger.info("Client disconnected: %s (remaining: %d)", remote, self._connection_count)

    @property
    def port(self) -> int:
        return self._port

    @property
    def connection_count(self) -> int:
        """Number of currently connected clients."""
        return self._connection_count

    @property
    def frame_count(self) -> int:
        """Total frames received since start."""
        return self._frame_count
