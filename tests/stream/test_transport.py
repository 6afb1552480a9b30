from __future__ import annotations

import asyncio
import socket
import ssl

import pytest

from posecast.models.config import StreamSettings
from posecast.stream.transport import (
    FailureKind,
    FailureReason,
    TCPTransport,
    tcp_transport_factory,
)


def _unused_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestFailureReason:
    def test_posix(self) -> None:
        reason = FailureReason.from_exception(ConnectionRefusedError(111, "Connection refused"))
        assert reason.kind is FailureKind.POSIX
        assert reason.code == 111
        assert reason.short_description() == "POSIX(111): Connection refused"

    def test_dns(self) -> None:
        reason = FailureReason.from_exception(socket.gaierror(-2, "Name or service not known"))
        assert reason.kind is FailureKind.DNS
        assert reason.short_description() == "DNS(-2): Name or service not known"

    def test_tls(self) -> None:
        reason = FailureReason.from_exception(ssl.SSLError(1, "bad handshake"))
        assert reason.kind is FailureKind.TLS
        assert reason.code == 1
        assert "bad handshake" in reason.message
        assert reason.short_description().startswith("TLS: ")

    def test_timeout(self) -> None:
        reason = FailureReason.from_exception(TimeoutError())
        assert reason.kind is FailureKind.TIMEOUT
        assert reason.short_description() == "Timeout: timed out"

    def test_closed(self) -> None:
        reason = FailureReason.from_exception(ConnectionResetError("transport is not open"))
        assert reason.kind is FailureKind.CLOSED
        assert reason.short_description() == "Closed: transport is not open"

    def test_other(self) -> None:
        reason = FailureReason.from_exception(ValueError("boom"))
        assert reason.kind is FailureKind.OTHER
        assert reason.short_description() == "boom"


class TestTCPTransport:
    def test_from_settings(self) -> None:
        settings = StreamSettings(host="10.0.0.5", port=5000, connect_timeout=2.0)
        transport = tcp_transport_factory(settings)
        assert isinstance(transport, TCPTransport)
        assert transport.address == "10.0.0.5:5000"

    async def test_send_and_peer_close(self) -> None:
        received: asyncio.Queue[bytes] = asyncio.Queue()

        async def handler(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            await received.put(await reader.readexactly(5))
            writer.close()

        server = await asyncio.start_server(handler, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            transport = TCPTransport("127.0.0.1", port, connect_timeout=2.0)
            await transport.open()
            await transport.send(b"hello")
            assert await asyncio.wait_for(received.get(), 2.0) == b"hello"
            reason = await asyncio.wait_for(transport.wait_closed(), 2.0)
            assert reason.kind is FailureKind.CLOSED
            transport.cancel()
            transport.cancel()
        finally:
            server.close()
            await server.wait_closed()

    async def test_connect_refused_raises_oserror(self) -> None:
        transport = TCPTransport("127.0.0.1", _unused_port())
        with pytest.raises(OSError) as excinfo:
            await transport.open()
        assert FailureReason.from_exception(excinfo.value).kind is FailureKind.POSIX

    async def test_send_before_open(self) -> None:
        transport = TCPTransport("127.0.0.1", 1)
        with pytest.raises(ConnectionResetError):
            await transport.send(b"x")
