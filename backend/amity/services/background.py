from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)

_background_tasks: set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("detached task failed name=%s", task.get_name(), exc_info=exc)


def spawn_detached(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
    """Run `coro` without the caller awaiting it. Failures are logged here and go no further."""
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain() -> None:
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
