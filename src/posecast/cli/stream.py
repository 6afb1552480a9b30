"""``posecast stream``: run a simulator-fed telemetry session."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import click

from posecast._internal.async_utils import run_async, wait_for_interrupt
from posecast.errors import ReceiverUnavailableError
from posecast.models.config import StreamSettings
from posecast.stream.connection import ConnectionState
from posecast.telemetry.session import TelemetrySession
from posecast.telemetry.simulator import SimulatedProducer

if TYPE_CHECKING:
    from posecast.cli.main import AppContext
    from posecast.telemetry.status import StatusChannel

logger = logging.getLogger(__name__)


@click.command("stream")
@click.option("--host", default=None, help="Receiver host (env: POSECAST_HOST)")
@click.option("--port", type=int, default=None, help="Receiver port (env: POSECAST_PORT)")
@click.option(
    "--rate",
    "send_frequency",
    type=float,
    default=None,
    help="Send frequency in Hz (default: 30)",
)
@click.option(
    "--max-attempts",
    "max_connection_attempts",
    type=int,
    default=None,
    help="Connection attempts before giving up (default: 5)",
)
@click.option(
    "--retry-delay",
    type=float,
    default=None,
    help="Seconds between connection attempts (default: 1.5)",
)
@click.option(
    "--connect-timeout",
    type=float,
    default=None,
    help="Cap on a single connect attempt in seconds",
)
@click.option(
    "--local-only",
    is_flag=True,
    default=False,
    help="Collect telemetry without connecting to a receiver",
)
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: run until Ctrl+C)",
)
@click.option("--no-pose", is_flag=True, default=False, help="Simulate missing pose tracking")
@click.option("--no-motion", is_flag=True, default=False, help="Simulate missing motion sensors")
@click.pass_obj
def stream_cmd(
    app_ctx: AppContext,
    host: str | None,
    port: int | None,
    send_frequency: float | None,
    max_connection_attempts: int | None,
    retry_delay: float | None,
    connect_timeout: float | None,
    local_only: bool,
    duration: float | None,
    no_pose: bool,
    no_motion: bool,
) -> None:
    """Stream simulated pose and motion telemetry to a receiver.

    \b
    Examples:
      posecast stream                          # 127.0.0.1:4820 at 30 Hz
      posecast stream --host 10.0.0.5 --rate 60
      posecast stream --local-only --duration 5
    """
    settings = StreamSettings.load().merge_overrides(
        host=host,
        port=port,
        send_frequency=send_frequency,
        max_connection_attempts=max_connection_attempts,
        retry_delay=retry_delay,
        connect_timeout=connect_timeout,
        local_only=local_only or None,
    )
    producer = SimulatedProducer(pose_supported=not no_pose, motion_supported=not no_motion)
    run_async(_cmd_stream(app_ctx, settings, producer, duration=duration))


async def _cmd_stream(
    app_ctx: AppContext,
    settings: StreamSettings,
    producer: SimulatedProducer,
    *,
    duration: float | None,
) -> None:
    formatter = app_ctx.formatter
    session = TelemetrySession(settings, producer)
    exhausted = asyncio.Event()

    def _on_status(channel: StatusChannel, message: str | None) -> None:
        formatter.status(channel.value, message)
        if session.manager.state is ConnectionState.STOPPED:
            exhausted.set()

    session.status.add_listener(_on_status)

    if formatter.format == "rich":
        target = "local only" if settings.local_only else f"{settings.host}:{settings.port}"
        formatter.rich.info(
            f"Streaming to [cyan]{target}[/cyan] at {settings.send_frequency:g} Hz"
            " [dim](Ctrl+C to stop)[/dim]"
        )

    session.start()
    try:
        await wait_for_interrupt(exhausted, timeout=duration)
        failed = session.manager.state is ConnectionState.STOPPED
        failure_message = session.status.connection
    finally:
        await session.close()

    scheduler = session.scheduler
    logger.debug(
        "Stream finished: ticks=%d sent=%d dropped=%d",
        scheduler.tick_count,
        scheduler.sent_count,
        scheduler.dropped_count,
    )
    if failed:
        raise ReceiverUnavailableError(failure_message or "Receiver connection failed.")

    if formatter.format == "json":
        formatter.output(
            {
                "ticks": scheduler.tick_count,
                "sent": scheduler.sent_count,
                "dropped": scheduler.dropped_count,
                "snapshot": session.slot.latest(),
            },
            command="stream",
        )
    elif formatter.format == "rich":
        formatter.rich.stream_summary(
            ticks=scheduler.tick_count,
            sent=scheduler.sent_count,
            dropped=scheduler.dropped_count,
        )
