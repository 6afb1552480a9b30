"""Asyncio utilities."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run an async coroutine from synchronous code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        import concurrent.futures

        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)


async def wait_for_interrupt(
    shutdown_event: asyncio.Event | None = None,
    *,
    timeout: float | None = None,
) -> None:
    """Block until Ctrl+C, *shutdown_event* is set, or *timeout* seconds pass.

    Ctrl+C surfaces as cancellation of the running task under
    :func:`asyncio.run`; it is swallowed here so the caller's cleanup runs.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout if timeout is not None else None

    def _should_stop() -> bool:
        if shutdown_event is not None and shutdown_event.is_set():
            return True
        return deadline is not None and loop.time() >= deadline

    try:
        while not _should_stop():
            await asyncio.sleep(0.1)
    except asyncio.CancelledError:
        pass
