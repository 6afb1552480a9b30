"""JSON rendering for machine-readable output.

One-shot commands print a single indented envelope. Streaming commands
print one compact line per event followed by the envelope.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel


def _serialize(obj: Any) -> Any:
    """Convert *obj* into plain JSON types.

    Models are dumped in JSON mode (enums to values, tuples to lists) and
    ``bytes`` become lowercase hex. Containers are walked recursively;
    anything else is left to ``json.dumps(default=str)``.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (list, tuple)):
        return [_serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _serialize(value) for key, value in obj.items()}
    if isinstance(obj, bytes):
        return obj.hex()
    return obj


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _envelope(*, ok: bool, command: str, **body: Any) -> str:
    return json.dumps(
        {"ok": ok, "command": command, **body, "timestamp": _now()},
        indent=2,
        default=str,
    )


def format_json_response(*, data: Any, command: str) -> str:
    """Return the success envelope ``{"ok": true, "command", "data", "timestamp"}``."""
    return _envelope(ok=True, command=command, data=_serialize(data))


def format_json_error(*, code: str, message: str, command: str, **extra: Any) -> str:
    """Return the failure envelope.

    ``error`` holds ``code``, ``message`` and any *extra* keys such as a
    hint for the user.
    """
    return _envelope(
        ok=False,
        command=command,
        error={"code": code, "message": message, **_serialize(extra)},
    )


def format_json_event(*, event: str, **fields: Any) -> str:
    """Return one compact JSON line ``{"event", ...fields, "timestamp"}``."""
    return json.dumps(
        {"event": event, **_serialize(fields), "timestamp": _now()},
        default=str,
    )
