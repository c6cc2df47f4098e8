"""Detached background task submission.

Side effects that must not hold up the caller (search indexing, derived
record triggers) are spawned here. Each task carries a done callback that
logs failures, and a strong reference is held until the task finishes so it
is not garbage-collected mid-flight.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger

_background_tasks: set[asyncio.Task] = set()


def _on_task_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning("Background task cancelled", task=task.get_name())
        return
    error = task.exception()
    if error is not None:
        logger.opt(exception=error).bind(task=task.get_name(), error=str(error)).error("Background task failed")
    else:
        logger.debug("Background task completed", task=task.get_name())


def spawn_background(coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
    """Schedule a coroutine without awaiting it.

    Args:
        coro: Coroutine to run
        name: Task name used in log lines

    Returns:
        The scheduled task (callers normally ignore it)
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    logger.debug("Background task spawned", task=name)
    return task


async def drain_background_tasks() -> None:
    """Wait for all pending background tasks. Used at shutdown and in tests."""
    if not _background_tasks:
        return
    await asyncio.gather(*list(_background_tasks), return_exceptions=True)


def pending_background_tasks() -> int:
    return len(_background_tasks)
