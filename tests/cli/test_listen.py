"""Tests for ``posecast listen``."""

from __future__ import annotations

import asyncio
import json

import pytest
from click.testing import CliRunner

from posecast.cli.listen import _cmd_listen
from posecast.cli.main import AppContext, cli
from posecast.protocol.framing import encode_frame


async def _connect(port: int) -> asyncio.StreamWriter:
    for _ in range(100):
        try:
            _reader, writer = await asyncio.open_connection("127.0.0.1", port)
        except OSError:
            await asyncio.sleep(0.02)
            continue
        return writer
    raise AssertionError(f"receiver on port {port} never came up")


class TestCmdListen:
    async def test_stops_after_count(
        self, free_port: int, capsys: pytest.CaptureFixture[str]
    ) -> None:
        app_ctx = AppContext(output_format="json", quiet=False, verbose=False)
        task = asyncio.create_task(
            _cmd_listen(app_ctx, host="127.0.0.1", port=free_port, count=2, duration=5.0)
        )
        writer = await _connect(free_port)
        writer.write(encode_frame(b"abc") + encode_frame(b"defgh"))
        await writer.drain()

        received = await asyncio.wait_for(task, timeout=5.0)
        writer.close()

        assert received == 2
        out = capsys.readouterr().out
        events = [json.loads(line) for line in out.splitlines() if line.startswith('{"event"')]
        assert [(e["index"], e["size"]) for e in events] == [(1, 3), (2, 5)]
        assert '"frames": 2' in out

    async def test_duration_without_frames(
        self, free_port: int, capsys: pytest.CaptureFixture[str]
    ) -> None:
        app_ctx = AppContext(output_format="rich", quiet=False, verbose=False)
        received = await _cmd_listen(
            app_ctx, host="127.0.0.1", port=free_port, count=None, duration=0.2
        )
        assert received == 0
        assert "Received 0 frame(s)." in capsys.readouterr().out


class TestListenOptions:
    def test_rejects_zero_count(self) -> None:
        result = CliRunner().invoke(cli, ["listen", "--count", "0"])
        assert result.exit_code == 2
        assert "--count" in result.output
