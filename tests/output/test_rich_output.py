from __future__ import annotations

from io import StringIO

from rich.console import Console

from posecast.output.rich_output import RichOutput
from posecast.telemetry.snapshot import TelemetrySnapshot, TrackingState


def _make_console() -> tuple[Console, StringIO]:
    """Return a ``(Console, buffer)`` pair for capturing Rich output."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=True, width=100)
    return console, buf


class TestSnapshot:
    def test_renders_main_fields(self) -> None:
        console, buf = _make_console()
        RichOutput(console).snapshot(TelemetrySnapshot.sample())
        output = buf.getvalue()

        assert "2025-10-23-rc01" in output
        assert "Telemetry Snapshot" in output
        assert "OK" in output
        assert "NO_JUMP" in output
        assert "startup" in output
        assert "AB12EF34" in output

    def test_invalid_sections(self) -> None:
        console, buf = _make_console()
        snap = TelemetrySnapshot.sample()
        snap = snap.model_copy(
            update={
                "status": snap.status.model_copy(
                    update={"tracking": TrackingState.LOST, "status_reason": "unsupported"}
                ),
                "pose_world_phone": snap.pose_world_phone.model_copy(update={"valid": False}),
            }
        )
        RichOutput(console).snapshot(snap)
        output = buf.getvalue()

        assert "LOST" in output
        assert "unsupported" in output
        assert "invalid" in output

    def test_empty_session_id(self) -> None:
        console, buf = _make_console()
        RichOutput(console).snapshot(TelemetrySnapshot())
        assert "no session" in buf.getvalue()


class TestStreamingLines:
    def test_status_line(self) -> None:
        console, buf = _make_console()
        RichOutput(console).status_line("connection", "Connecting to receiver... (1/5)")
        output = buf.getvalue()
        assert "connection" in output
        assert "Connecting to receiver" in output

    def test_frame_received(self) -> None:
        console, buf = _make_console()
        RichOutput(console).frame_received(3, 412)
        output = buf.getvalue()
        assert "#3" in output
        assert "412 bytes" in output

    def test_status_line_numbers_are_plain(self) -> None:
        console, buf = _make_console()
        RichOutput(console).status_line("connection", "Retrying (2/5)")
        assert "Retrying (2/5)" in buf.getvalue()

    def test_stream_summary(self) -> None:
        console, buf = _make_console()
        RichOutput(console).stream_summary(ticks=90, sent=88, dropped=0)
        output = buf.getvalue()
        assert "Stream Summary" in output
        assert "90" in output
        assert "88" in output


class TestHexDump:
    def test_rows(self) -> None:
        console, buf = _make_console()
        RichOutput(console).hex_dump(bytes(range(20)), width=16)
        lines = [line for line in buf.getvalue().splitlines() if line.strip()]

        assert len(lines) == 2
        assert "00 01 02 03" in lines[0]
        assert "00000010" in lines[1]
        assert "10 11 12 13" in lines[1]

    def test_empty(self) -> None:
        console, buf = _make_console()
        RichOutput(console).hex_dump(b"")
        assert buf.getvalue() == ""


class TestGeneric:
    def test_error(self) -> None:
        console, buf = _make_console()
        RichOutput(console).error("boom")
        output = buf.getvalue()
        assert "Error:" in output
        assert "boom" in output
