"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import dataclasses
import logging

import click

from posecast.errors import ConfigError, PosecastError, ReceiverUnavailableError
from posecast.output.formatter import OutputFormatter

# Error code and user hint for failures that deserve a friendly message.
_KNOWN_ERRORS: dict[type[PosecastError], tuple[str, str]] = {
    ConfigError: (
        "config_invalid",
        "Check POSECAST_* environment variables, .env and command options.",
    ),
    ReceiverUnavailableError: (
        "receiver_unavailable",
        "Start a receiver (e.g. 'posecast listen') or use --local-only.",
    ),
}


@dataclasses.dataclass
class AppContext:
    """Global options, available to subcommands via ``@click.pass_obj``."""

    output_format: str | None
    quiet: bool
    verbose: bool
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        """Formatter for the chosen format, created on first use."""
        if self._formatter is None:
            self._formatter = OutputFormatter(
                force_format="quiet" if self.quiet else self.output_format
            )
        return self._formatter


@click.group()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["rich", "json", "quiet"]),
    default=None,
    help="Output format (default: rich on a terminal, json when piped)",
)
@click.option("--quiet", is_flag=True, default=False, help="Suppress normal output")
@click.option("--verbose", is_flag=True, default=False, help="Log debug detail to stderr")
@click.pass_context
def cli(ctx: click.Context, output_format: str | None, quiet: bool, verbose: bool) -> None:
    """Stream pose and motion telemetry to a remote receiver."""
    ctx.obj = AppContext(output_format=output_format, quiet=quiet, verbose=verbose)
    _configure_logging(verbose)


def _configure_logging(verbose: bool) -> None:
    """Route ``posecast`` log records to stderr through Rich."""
    from rich.console import Console
    from rich.logging import RichHandler

    log = logging.getLogger("posecast")
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in log.handlers):
        log.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
        )


def _register_commands() -> None:
    from posecast.cli.listen import listen_cmd
    from posecast.cli.sample import sample_cmd
    from posecast.cli.stream import stream_cmd

    for command in (listen_cmd, sample_cmd, stream_cmd):
        cli.add_command(command)


_register_commands()


def main(argv: list[str] | None = None) -> None:
    """Run the CLI and turn failures into exit codes.

    Usage errors exit 2, Ctrl+C exits 130 and any other failure is
    reported through the active formatter before exiting 1.
    """
    try:
        cli(args=argv, standalone_mode=False)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.exceptions.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as exc:
        app_ctx, cmd_name = _current_command()
        _report_failure(exc, app_ctx.formatter if app_ctx else OutputFormatter(), cmd_name)
        raise SystemExit(1) from exc


def _current_command() -> tuple[AppContext | None, str]:
    """Return the :class:`AppContext` and dotted subcommand name, if any."""
    app_ctx: AppContext | None = None
    parts: list[str] = []
    ctx = click.get_current_context(silent=True)
    while ctx is not None:
        if app_ctx is None and isinstance(ctx.obj, AppContext):
            app_ctx = ctx.obj
        if ctx.info_name and ctx.parent is not None:
            parts.append(ctx.info_name)
        ctx = ctx.parent
    return app_ctx, ".".join(reversed(parts)) or "unknown"


def _report_failure(exc: Exception, formatter: OutputFormatter, cmd_name: str) -> None:
    known = next(
        (entry for kind, entry in _KNOWN_ERRORS.items() if isinstance(exc, kind)),
        None,
    )
    if known is None:
        formatter.output_error(code=type(exc).__name__, message=str(exc), command=cmd_name)
        return

    code, hint = known
    if formatter.format == "json":
        formatter.output_error(code=code, message=str(exc), command=cmd_name, hint=hint)
        return
    formatter.rich.error(str(exc))
    formatter.rich.info(f"[dim]{hint}[/dim]")
