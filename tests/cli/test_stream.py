"""Tests for ``posecast stream`` and top-level error handling."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from posecast.cli.main import cli, main
from posecast.errors import ReceiverUnavailableError


def _events(output: str) -> list[dict[str, object]]:
    """Parse the one-line JSON status events, skipping any log lines."""
    return [json.loads(line) for line in output.splitlines() if line.startswith('{"event"')]


def _envelope(output: str) -> dict[str, object]:
    """Parse the final pretty-printed JSON envelope."""
    lines = output.splitlines()
    start = lines.index("{")
    end = lines.index("}", start)
    return json.loads("\n".join(lines[start : end + 1]))


class TestLocalOnly:
    def test_json_events_and_summary(self) -> None:
        result = CliRunner().invoke(
            cli, ["--format", "json", "stream", "--local-only", "--duration", "0.3"]
        )
        assert result.exit_code == 0, result.output
        events = _events(result.stdout)
        envelope = _envelope(result.stdout)

        assert any(e["message"] == "Local-only mode - collecting without sending" for e in events)
        assert any(e["message"] == "Local-only mode: no connection" for e in events)
        assert envelope["command"] == "stream"
        data = envelope["data"]
        assert isinstance(data, dict)
        assert data["ticks"] == 0
        assert data["sent"] == 0
        assert data["snapshot"]["origin_reset"]["origin_id"] == 1

    def test_rich_summary(self) -> None:
        result = CliRunner().invoke(
            cli, ["--format", "rich", "stream", "--local-only", "--duration", "0.2"]
        )
        assert result.exit_code == 0, result.output
        assert "local only" in result.output
        assert "Stream Summary" in result.output

    def test_no_pose_reports_unsupported(self) -> None:
        result = CliRunner().invoke(
            cli,
            ["--format", "json", "stream", "--local-only", "--no-pose", "--duration", "0.2"],
        )
        assert result.exit_code == 0, result.output
        events = _events(result.stdout)
        envelope = _envelope(result.stdout)
        assert any(
            e["message"] == "World tracking is not supported on this device." for e in events
        )
        data = envelope["data"]
        assert isinstance(data, dict)
        assert data["snapshot"]["status"]["tracking"] == "LOST"
        assert data["snapshot"]["status"]["status_reason"] == "unsupported"


class TestConnectionFailure:
    def test_raises_receiver_unavailable(self, free_port: int) -> None:
        result = CliRunner().invoke(
            cli,
            [
                "--format",
                "json",
                "stream",
                "--port",
                str(free_port),
                "--max-attempts",
                "2",
                "--retry-delay",
                "0",
                "--duration",
                "5",
            ],
        )
        assert isinstance(result.exception, ReceiverUnavailableError)
        assert "stopped after 2 attempts" in str(result.exception)

        messages = [e["message"] for e in _events(result.stdout) if e["channel"] == "connection"]
        assert "Connecting to receiver... (1/2)" in messages
        assert "Connecting to receiver... (2/2)" in messages

    def test_main_reports_error_envelope(
        self, free_port: int, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(
                [
                    "--format",
                    "json",
                    "stream",
                    "--port",
                    str(free_port),
                    "--max-attempts",
                    "1",
                    "--retry-delay",
                    "0",
                ]
            )
        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        start = out.index('{\n')
        parsed = json.loads(out[start:])
        assert parsed["ok"] is False
        assert parsed["error"]["code"] == "receiver_unavailable"


class TestConfigErrors:
    def test_invalid_port(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--format", "json", "stream", "--port", "0"])
        assert exc_info.value.code == 1
        parsed = json.loads(capsys.readouterr().out)
        assert parsed["ok"] is False
        assert parsed["error"]["code"] == "config_invalid"
        assert parsed["error"]["message"].startswith("Invalid stream settings")
        assert "POSECAST_" in parsed["error"]["hint"]
        assert "POSECAST_" not in parsed["error"]["message"]

    def test_bad_option_type_is_usage_error(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["stream", "--rate", "fast"])
        assert exc_info.value.code == 2
