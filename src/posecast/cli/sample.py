"""``posecast sample``: show the sample snapshot and its wire encoding."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from posecast.protocol.encoder import encode_snapshot
from posecast.protocol.framing import encode_frame
from posecast.telemetry.snapshot import TelemetrySnapshot

if TYPE_CHECKING:
    from posecast.cli.main import AppContext


@click.command("sample")
@click.option("--hex", "show_hex", is_flag=True, default=False, help="Print the framed wire bytes")
@click.pass_obj
def sample_cmd(app_ctx: AppContext, show_hex: bool) -> None:
    """Print the built-in sample snapshot."""
    formatter = app_ctx.formatter
    snapshot = TelemetrySnapshot.sample()
    payload = encode_snapshot(snapshot)
    frame = encode_frame(payload)

    if formatter.format == "json":
        data: dict[str, object] = {"snapshot": snapshot, "payload_size": len(payload)}
        if show_hex:
            data["frame_hex"] = frame
        formatter.output(data, command="sample")
        return

    if show_hex:
        formatter.rich.hex_dump(frame)
    else:
        formatter.rich.snapshot(snapshot)
    formatter.rich.info(f"Encoded payload: {len(payload)} bytes (frame {len(frame)} bytes)")
