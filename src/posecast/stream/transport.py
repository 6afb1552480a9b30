"""Stream transports and failure classification.

A transport owns one outbound byte-stream connection. It reports failure
by raising from :meth:`Transport.open` / :meth:`Transport.send`, or by
:meth:`Transport.wait_closed` returning a :class:`FailureReason` when the
peer goes away mid-stream. Classification into a :class:`FailureReason`
happens here so the connection state machine never branches on exception
types.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import socket
import ssl
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from posecast.models.config import StreamSettings

logger = logging.getLogger(__name__)

_READ_CHUNK = 4096


class FailureKind(StrEnum):
    POSIX = "posix"
    DNS = "dns"
    TLS = "tls"
    TIMEOUT = "timeout"
    CLOSED = "closed"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class FailureReason:
    """Why a connect attempt or an established stream failed."""

    kind: FailureKind
    message: str
    code: int | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> FailureReason:
        # gaierror and SSLError are OSError subclasses, so test them first.
        if isinstance(exc, socket.gaierror):
            return cls(FailureKind.DNS, exc.strerror or str(exc), exc.errno)
        if isinstance(exc, ssl.SSLError):
            return cls(FailureKind.TLS, getattr(exc, "reason", None) or str(exc), exc.errno)
        if isinstance(exc, TimeoutError):
            return cls(FailureKind.TIMEOUT, str(exc) or "timed out")
        if isinstance(exc, OSError) and exc.errno is not None:
            return cls(FailureKind.POSIX, exc.strerror or os.strerror(exc.errno), exc.errno)
        if isinstance(exc, ConnectionError):
            return cls(FailureKind.CLOSED, str(exc) or "connection closed")
        return cls(FailureKind.OTHER, str(exc) or type(exc).__name__)

    def short_description(self) -> str:
        """Return a compact label such as ``POSIX(111): Connection refused``."""
        if self.kind is FailureKind.POSIX:
            return f"POSIX({self.code}): {self.message}"
        if self.kind is FailureKind.DNS:
            return f"DNS({self.code}): {self.message}"
        if self.kind is FailureKind.TLS:
            return f"TLS: {self.message}"
        if self.kind is FailureKind.TIMEOUT:
            return f"Timeout: {self.message}"
        if self.kind is FailureKind.CLOSED:
            return f"Closed: {self.message}"
        return self.message


class Transport(Protocol):
    """One outbound stream connection."""

    async def open(self) -> None: ...
    async def send(self, data: bytes) -> None: ...
    async def wait_closed(self) -> FailureReason: ...
    def cancel(self) -> None: ...


TransportFactory = Callable[["StreamSettings"], Transport]


class TCPTransport:
    """TCP client transport built on asyncio streams."""

    def __init__(self, host: str, port: int, *, connect_timeout: float | None = None) -> None:
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @classmethod
    def from_settings(cls, settings: StreamSettings) -> TCPTransport:
        return cls(settings.host, settings.port, connect_timeout=settings.connect_timeout)

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    async def open(self) -> None:
        """Connect to the receiver. Raises ``OSError`` on failure."""
        connect = asyncio.open_connection(self._host, self._port)
        if self._connect_timeout is not None:
            self._reader, self._writer = await asyncio.wait_for(
                connect, timeout=self._connect_timeout
            )
        else:
            self._reader, self._writer = await connect
        logger.debug("TCP connection open to %s", self.address)

    async def send(self, data: bytes) -> None:
        if self._writer is None or self._writer.is_closing():
            raise ConnectionResetError("transport is not open")
        self._writer.write(data)
        await self._writer.drain()

    async def wait_closed(self) -> FailureReason:
        """Block until the peer closes the stream or it errors.

        The receiver is not expected to send anything; inbound bytes are
        discarded.
        """
        if self._reader is None:
            return FailureReason(FailureKind.CLOSED, "transport is not open")
        try:
            while True:
                chunk = await self._reader.read(_READ_CHUNK)
                if not chunk:
                    return FailureReason(FailureKind.CLOSED, "receiver closed the connection")
        except OSError as exc:
            return FailureReason.from_exception(exc)

    def cancel(self) -> None:
        """Close the socket. Safe to call more than once."""
        writer, self._writer = self._writer, None
        self._reader = None
        if writer is not None:
            with contextlib.suppress(Exception):
                writer.close()


def tcp_transport_factory(settings: StreamSettings) -> Transport:
    return TCPTransport.from_settings(settings)
