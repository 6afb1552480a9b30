"""``posecast listen``: accept framed telemetry and report each frame."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import click

from posecast._internal.async_utils import run_async, wait_for_interrupt
from posecast.models.config import StreamSettings
from posecast.stream.receiver import FrameReceiver

if TYPE_CHECKING:
    from posecast.cli.main import AppContext


@click.command("listen")
@click.option("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Listen port (env: POSECAST_PORT)")
@click.option("--count", type=int, default=None, help="Exit after this many frames")
@click.option("--duration", type=float, default=None, help="Exit after this many seconds")
@click.pass_obj
def listen_cmd(
    app_ctx: AppContext,
    host: str,
    port: int | None,
    count: int | None,
    duration: float | None,
) -> None:
    """Listen for length-prefixed telemetry frames.

    Useful as a local receiver while developing against ``posecast stream``.
    Payloads are reported by size only; they are not decoded.
    """
    if port is None:
        port = StreamSettings.load().port
    if count is not None and count < 1:
        raise click.BadParameter("must be at least 1", param_hint="--count")
    run_async(_cmd_listen(app_ctx, host=host, port=port, count=count, duration=duration))


async def _cmd_listen(
    app_ctx: AppContext,
    *,
    host: str,
    port: int,
    count: int | None,
    duration: float | None,
) -> int:
    formatter = app_ctx.formatter
    done = asyncio.Event()
    received = 0

    async def _on_frame(payload: bytes) -> None:
        nonlocal received
        received += 1
        formatter.frame(received, len(payload))
        if count is not None and received >= count:
            done.set()

    receiver = FrameReceiver(_on_frame, host=host, port=port)
    await receiver.start()
    if formatter.format == "rich":
        formatter.rich.info(
            f"Listening on [cyan]{host}:{receiver.port}[/cyan] [dim](Ctrl+C to stop)[/dim]"
        )
    try:
        await wait_for_interrupt(done, timeout=duration)
    finally:
        await receiver.stop()

    if formatter.format == "json":
        formatter.output({"frames": received}, command="listen")
    elif formatter.format == "rich":
        formatter.rich.info(f"Received {received} frame(s).")
    return received
