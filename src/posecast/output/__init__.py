"""Terminal and JSON output for the CLI."""

from __future__ import annotations

from posecast.output.formatter import OutputFormatter
from posecast.output.rich_output import RichOutput

__all__ = ["OutputFormatter", "RichOutput"]
