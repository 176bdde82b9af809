from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K")
R = TypeVar("R")


def chunked(items: Sequence[K], size: int) -> list[list[K]]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


class ChunkedFanout:
    """Issues one worker call per chunk, all at once, and concatenates whatever succeeds.

    Results arrive in completion order, not chunk order.
    """

    async def run(
        self,
        items: Sequence[K],
        chunk_size: int,
        worker: Callable[[list[K]], Awaitable[Sequence[R]]],
        label: str = "fanout",
    ) -> list[R]:
        chunks = chunked(items, chunk_size)
        if not chunks:
            return []

        results: list[R] = []
        pending = [self._guarded(chunk, worker, label) for chunk in chunks]
        for next_done in asyncio.as_completed(pending):
            results.extend(await next_done)
        return results

    @staticmethod
    async def _guarded(chunk: list[K], worker: Callable[[list[K]], Awaitable[Sequence[R]]], label: str) -> list[R]:
        try:
            return list(await worker(chunk))
        except Exception as exc:
            logger.warning("%s chunk failed size=%s first=%s: %r", label, len(chunk), chunk[0], exc)
            return []
