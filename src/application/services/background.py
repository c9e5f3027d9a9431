"""Fire-and-forget tasks that must not block the caller."""

import asyncio
from collections.abc import Coroutine
from typing import Any

from src.commons.telemetry import get_logger

logger = get_logger(__name__)

# Strong references; the event loop only keeps weak ones
_tasks: set[asyncio.Task[Any]] = set()


def _on_done(task: asyncio.Task[Any]) -> None:
    _tasks.discard(task)
    if task.cancelled():
        logger.warning("Background task cancelled", extra={"task": task.get_name()})
        return
    exc = task.exception()
    if exc is not None:
        logger.exception(
            "Background task failed",
            exc_info=exc,
            extra={"task": task.get_name()},
        )


def spawn(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
    """Schedule a coroutine and return immediately.

    Failures are logged and never propagate to the caller.

    Args:
        coro: Coroutine to run.
        name: Task name used in logs.

    Returns:
        The scheduled task.
    """
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _tasks.add(task)
    task.add_done_callback(_on_done)
    return task


def pending() -> int:
    """Number of tasks still running."""
    return len(_tasks)


async def drain(timeout: float | None = None) -> None:
    """Wait for outstanding tasks, e.g. on shutdown or in tests."""
    while _tasks:
        await asyncio.wait(set(_tasks), timeout=timeout)
        if timeout is not None:
            break
