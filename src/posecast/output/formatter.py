from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from posecast.output.json_output import (
    format_json_error,
    format_json_event,
    format_json_response,
)
from posecast.output.rich_output import RichOutput

if TYPE_CHECKING:
    from io import TextIOBase


class OutputFormatter:
    """Routes command output to JSON lines, a Rich terminal, or nowhere.

    The format is *force_format* when given, ``"rich"`` when *stream*
    (default ``sys.stdout``) is a TTY and ``"json"`` when it is piped.
    ``"quiet"`` sends Rich output to stderr and drops streaming events, so
    stdout stays empty.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        if force_format is not None:
            self._format = force_format
        elif hasattr(self._stream, "isatty") and self._stream.isatty():
            self._format = "rich"
        else:
            self._format = "json"

        self._console = Console(stderr=self._format == "quiet")
        self._rich = RichOutput(self._console)

    @property
    def format(self) -> str:  # noqa: A003
        """Active format: ``"rich"``, ``"json"`` or ``"quiet"``."""
        return self._format

    @property
    def console(self) -> Console:
        return self._console

    @property
    def rich(self) -> RichOutput:
        return self._rich

    # ------------------------------------------------------------------
    # Final results
    # ------------------------------------------------------------------

    def output(self, data: Any, *, command: str) -> None:
        """Print *data* as the command's result.

        Rich callers usually render typed output through :attr:`rich`
        instead; the fallback here is ``str(data)``.
        """
        if self._format == "json":
            print(format_json_response(data=data, command=command))  # noqa: T201
        else:
            self._rich.info(str(data))

    def output_error(self, *, code: str, message: str, command: str, **extra: Any) -> None:
        """Report a failure; *extra* fields join the JSON error object."""
        if self._format == "json":
            print(  # noqa: T201
                format_json_error(code=code, message=message, command=command, **extra)
            )
        else:
            self._rich.error(message)

    # ------------------------------------------------------------------
    # Streaming events
    # ------------------------------------------------------------------

    def event(self, event: str, **fields: Any) -> None:
        """Print one JSON event line. No-op outside JSON mode."""
        if self._format == "json":
            print(format_json_event(event=event, **fields), flush=True)  # noqa: T201

    def status(self, channel: str, message: str | None) -> None:
        """Report a collection or connection status change."""
        if self._format == "json":
            self.event("status", channel=channel, message=message)
        elif self._format == "rich":
            self._rich.status_line(channel, message)

    def frame(self, index: int, size: int) -> None:
        """Report one received frame."""
        if self._format == "json":
            self.event("frame", index=index, size=size)
        elif self._format == "rich":
            self._rich.frame_received(index, size)
