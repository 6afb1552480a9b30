"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

import logging
import socket
from collections.abc import Iterator
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run every command with default settings and no stray ``.env``."""
    for name in ("POSECAST_HOST", "POSECAST_PORT", "POSECAST_LOCAL_ONLY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def posecast_logger() -> Iterator[None]:
    """Undo the handler and level that ``cli()`` installs on the ``posecast`` logger."""
    log = logging.getLogger("posecast")
    handlers = list(log.handlers)
    level = log.level
    yield
    log.handlers[:] = handlers
    log.setLevel(level)


@pytest.fixture()
def free_port() -> int:
    """Return a loopback port that nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
