from __future__ import annotations

from typing import TYPE_CHECKING

from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from posecast.telemetry.snapshot import TelemetrySnapshot, Vector3

_TRACKING_STYLES = {"OK": "green", "LIMITED": "yellow", "LOST": "red"}


def _vec(v: Vector3) -> str:
    return f"({v.x:+.3f}, {v.y:+.3f}, {v.z:+.3f})"


def _valid(flag: bool) -> str:
    return "[green]valid[/green]" if flag else "[dim]invalid[/dim]"


class RichOutput:
    """Rich-based terminal output helpers for *posecast*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self, snap: TelemetrySnapshot) -> None:
        """Print a panel header and a table of the snapshot's main fields."""
        header = snap.header
        self._con.print(
            Panel(
                f"[bold]{header.session_id or 'no session'}[/bold]"
                f"  schema {snap.schema_version}  seq {header.seq}",
                expand=False,
            )
        )

        table = Table(title="Telemetry Snapshot")
        table.add_column("Field", style="bold")
        table.add_column("Value")

        status = snap.status
        style = _TRACKING_STYLES.get(status.tracking.value, "white")
        table.add_row("Tracking", f"[{style}]{status.tracking.value}[/{style}]")
        table.add_row("Confidence", f"{status.tracking_confidence:.2f}")
        table.add_row("Reason", status.status_reason or "-")
        table.add_row("Features", str(status.num_features))
        if status.flags:
            table.add_row("Flags", ", ".join(status.flags))

        pose = snap.pose_world_phone
        q = pose.orientation
        table.add_row("Position", f"{_vec(pose.position)}  {_valid(pose.valid)}")
        table.add_row("Orientation", f"({q.x:+.3f}, {q.y:+.3f}, {q.z:+.3f}, {q.w:+.3f})")
        table.add_row(
            "Velocity", f"{_vec(snap.velocity.world)}  {_valid(snap.velocity.valid)}"
        )
        table.add_row(
            "Accel (world)",
            f"{_vec(snap.acceleration.world)}  {_valid(snap.acceleration.valid)}",
        )
        table.add_row("Gyro", f"{_vec(snap.gyro.body)}  {_valid(snap.gyro.valid)}")

        reset = snap.origin_reset
        table.add_row("Origin", f"#{reset.origin_id} {reset.reason} ({reset.nonce})")
        table.add_row("Stamp", f"{header.stamp_ns} ns (dt {header.dt_ns} ns)")
        if snap.integrity.crc32:
            table.add_row("CRC32", snap.integrity.crc32)

        self._con.print(table)

    # ------------------------------------------------------------------
    # Streaming events
    # ------------------------------------------------------------------

    def status_line(self, channel: str, message: str | None) -> None:
        """Print one status change, tagged with its channel."""
        self._con.print(f"[cyan]{channel:<10}[/cyan] {message or ''}", highlight=False)

    def frame_received(self, index: int, size: int) -> None:
        """Print one line per received frame."""
        self._con.print(f"[bold]#{index}[/bold]  {size} bytes", highlight=False)

    def stream_summary(self, *, ticks: int, sent: int, dropped: int) -> None:
        """Print send-loop counters after a stream run."""
        table = Table(title="Stream Summary")
        table.add_column("Ticks", justify="right")
        table.add_column("Sent", justify="right")
        table.add_column("Dropped", justify="right")
        table.add_row(str(ticks), str(sent), str(dropped))
        self._con.print(table)

    def hex_dump(self, data: bytes, *, width: int = 16) -> None:
        """Print *data* as offset-prefixed hex rows."""
        for offset in range(0, len(data), width):
            chunk = data[offset : offset + width]
            self._con.print(f"[dim]{offset:08x}[/dim]  {chunk.hex(' ')}", highlight=False)

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
